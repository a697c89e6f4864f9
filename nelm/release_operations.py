"""Operations that change the state of a release in the release history."""

from __future__ import annotations

from typing import Callable, Protocol

from .operation import DeployType, Operation, OperationError, OperationType, Status


class _Release(Protocol):
    def id(self) -> str: ...

    def human_id(self) -> str: ...

    def pend(self, deploy_type: DeployType) -> None: ...

    def fail(self) -> None: ...

    def succeed(self) -> None: ...

    def supersede(self) -> None: ...


class _History(Protocol):
    def create_release(self, release: _Release) -> None: ...

    def update_release(self, release: _Release) -> None: ...


class _ReleaseOperation(Operation):
    def __init__(self, release: _Release, history: _History) -> None:
        super().__init__()
        self.release = release
        self.history = history

    def _store(self, action: Callable[[_Release], None], failure: str) -> None:
        try:
            action(self.release)
        except Exception as err:
            self.status = Status.FAILED
            raise OperationError(f"{failure}: {err}") from err
        self.status = Status.COMPLETED


class CreatePendingReleaseOperation(_ReleaseOperation):
    """Mark a release as pending and record it in the history."""

    def __init__(self, release: _Release, deploy_type: DeployType, history: _History) -> None:
        super().__init__(release, history)
        self.deploy_type = deploy_type

    def execute(self) -> None:
        self.release.pend(self.deploy_type)
        self._store(self.history.create_release, "error creating release")

    def id(self) -> str:
        return f"{self.type().value}/{self.release.id()}"

    def human_id(self) -> str:
        return f"create pending release: {self.release.human_id()}"

    def type(self) -> OperationType:
        return OperationType.CREATE_PENDING_RELEASE

    def empty(self) -> bool:
        return False


class FailReleaseOperation(_ReleaseOperation):
    """Mark a release as failed in the history."""

    def __init__(self, release: _Release, history: _History) -> None:
        super().__init__(release, history)

    def execute(self) -> None:
        self.release.fail()
        self._store(self.history.update_release, "error updating release")

    def id(self) -> str:
        return f"{self.type().value}/{self.release.id()}"

    def human_id(self) -> str:
        return f"fail release: {self.release.human_id()}"

    def type(self) -> OperationType:
        return OperationType.FAIL_RELEASE

    def empty(self) -> bool:
        return False


class SucceedReleaseOperation(_ReleaseOperation):
    """Mark a release as succeeded in the history."""

    def __init__(self, release: _Release, history: _History) -> None:
        super().__init__(release, history)

    def execute(self) -> None:
        self.release.succeed()
        self._store(self.history.update_release, "error updating release")

    def id(self) -> str:
        return f"{self.type().value}/{self.release.id()}"

    def human_id(self) -> str:
        return f"succeed release: {self.release.human_id()}"

    def type(self) -> OperationType:
        return OperationType.SUCCEED_RELEASE

    def empty(self) -> bool:
        return False


class SupersedeReleaseOperation(_ReleaseOperation):
    """Mark a release as superseded in the history."""

    def __init__(self, release: _Release, history: _History) -> None:
        super().__init__(release, history)

    def execute(self) -> None:
        self.release.supersede()
        self._store(self.history.update_release, "error updating release")

    def id(self) -> str:
        return f"{self.type().value}/{self.release.id()}"

    def human_id(self) -> str:
        return f"supersede release: {self.release.human_id()}"

    def type(self) -> OperationType:
        return OperationType.SUPERSEDE_RELEASE

    def empty(self) -> bool:
        return False
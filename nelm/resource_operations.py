"""Operations that create, update, apply, recreate or delete cluster resources."""

from __future__ import annotations

from typing import Any, Protocol

from .kube_client import AlreadyExistsError
from .operation import Operation, OperationError, OperationType, Status


class _Resource(Protocol):
    def id(self) -> str: ...

    def human_id(self) -> str: ...


class _KubeClient(Protocol):
    def create(self, resource: Any, obj: dict, force_replicas: int | None = None) -> dict: ...

    def apply(self, resource: Any, obj: dict, dry_run: bool = False) -> dict: ...

    def delete(self, resource: Any, propagation_policy: Any = None) -> None: ...


class _Tracker(Protocol):
    def track(self) -> None: ...


class _ResourceOperation(Operation):
    def __init__(self, resource: _Resource, kube_client: _KubeClient, extra_post: bool) -> None:
        super().__init__()
        self.resource = resource
        self.kube_client = kube_client
        self.extra_post = extra_post

    def _fail(self, message: str, err: Exception) -> OperationError:
        self.status = Status.FAILED
        return OperationError(f"{message}: {err}")


class ApplyResourceOperation(_ResourceOperation):
    """Server-side apply a resource."""

    def __init__(
        self,
        resource: _Resource,
        obj: dict,
        kube_client: _KubeClient,
        manageable_by: Any = None,
        extra_post: bool = False,
    ) -> None:
        super().__init__(resource, kube_client, extra_post)
        self.obj = obj
        self.manageable_by = manageable_by

    def execute(self) -> None:
        try:
            self.kube_client.apply(self.resource, self.obj)
        except Exception as err:
            raise self._fail("error applying resource", err) from err
        self.status = Status.COMPLETED

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"apply resource: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.EXTRA_POST_APPLY if self.extra_post else OperationType.APPLY

    def empty(self) -> bool:
        return False


class UpdateResourceOperation(_ResourceOperation):
    """Update an existing resource by a server-side apply."""

    def __init__(
        self,
        resource: _Resource,
        obj: dict,
        kube_client: _KubeClient,
        manageable_by: Any = None,
        extra_post: bool = False,
    ) -> None:
        super().__init__(resource, kube_client, extra_post)
        self.obj = obj
        self.manageable_by = manageable_by

    def execute(self) -> None:
        try:
            self.kube_client.apply(self.resource, self.obj)
        except Exception as err:
            raise self._fail("error applying resource", err) from err
        self.status = Status.COMPLETED

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"update resource: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.EXTRA_POST_UPDATE if self.extra_post else OperationType.UPDATE

    def empty(self) -> bool:
        return False


class CreateResourceOperation(_ResourceOperation):
    """Create a resource.

    If the resource already exists it is applied instead, but the operation
    is still reported as failed.
    """

    def __init__(
        self,
        resource: _Resource,
        obj: dict,
        kube_client: _KubeClient,
        manageable_by: Any = None,
        force_replicas: int | None = None,
        extra_post: bool = False,
    ) -> None:
        super().__init__(resource, kube_client, extra_post)
        self.obj = obj
        self.manageable_by = manageable_by
        self.force_replicas = force_replicas

    def execute(self) -> None:
        try:
            self.kube_client.create(self.resource, self.obj, force_replicas=self.force_replicas)
        except Exception as err:
            if isinstance(err, AlreadyExistsError):
                try:
                    self.kube_client.apply(self.resource, self.obj)
                except Exception as apply_err:
                    raise self._fail("error applying resource", apply_err) from apply_err
            raise self._fail("error creating resource", err) from err
        self.status = Status.COMPLETED

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"create resource: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.EXTRA_POST_CREATE if self.extra_post else OperationType.CREATE

    def empty(self) -> bool:
        return False


class DeleteResourceOperation(_ResourceOperation):
    """Delete a resource."""

    def __init__(
        self, resource: _Resource, kube_client: _KubeClient, extra_post: bool = False
    ) -> None:
        super().__init__(resource, kube_client, extra_post)

    def execute(self) -> None:
        try:
            self.kube_client.delete(self.resource)
        except Exception as err:
            raise self._fail("error deleting resource", err) from err
        self.status = Status.COMPLETED

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"delete resource: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.EXTRA_POST_DELETE if self.extra_post else OperationType.DELETE

    def empty(self) -> bool:
        return False


class RecreateResourceOperation(_ResourceOperation):
    """Delete a resource, wait until it is gone, then create it again."""

    def __init__(
        self,
        resource: _Resource,
        obj: dict,
        absence_tracker: _Tracker,
        kube_client: _KubeClient,
        manageable_by: Any = None,
        force_replicas: int | None = None,
        extra_post: bool = False,
    ) -> None:
        super().__init__(resource, kube_client, extra_post)
        self.obj = obj
        self.absence_tracker = absence_tracker
        self.manageable_by = manageable_by
        self.force_replicas = force_replicas

    def execute(self) -> None:
        try:
            self.kube_client.delete(self.resource)
        except Exception as err:
            raise self._fail("error deleting resource", err) from err

        try:
            self.absence_tracker.track()
        except Exception as err:
            raise self._fail("track resource absence", err) from err

        try:
            self.kube_client.create(self.resource, self.obj, force_replicas=self.force_replicas)
        except Exception as err:
            raise self._fail("error creating resource", err) from err

        self.status = Status.COMPLETED

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"recreate resource: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.EXTRA_POST_RECREATE if self.extra_post else OperationType.RECREATE

    def empty(self) -> bool:
        return False
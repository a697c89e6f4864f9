"""Operations that make up a deployment plan."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum


class _StrEnum(str, Enum):
    def __str__(self) -> str:
        return self.value


class Status(_StrEnum):
    """Outcome of an operation; UNKNOWN means it has not run."""

    UNKNOWN = ""
    COMPLETED = "completed"
    FAILED = "failed"


class OperationType(_StrEnum):
    """Kinds of operations a plan may hold."""

    STAGE = "stage"
    CREATE = "create"
    EXTRA_POST_CREATE = "extra-post-create"
    RECREATE = "recreate"
    EXTRA_POST_RECREATE = "extra-post-recreate"
    UPDATE = "update"
    EXTRA_POST_UPDATE = "extra-post-update"
    APPLY = "apply"
    EXTRA_POST_APPLY = "extra-post-apply"
    DELETE = "delete"
    EXTRA_POST_DELETE = "extra-post-delete"
    CREATE_PENDING_RELEASE = "create-pending-release"
    FAIL_RELEASE = "fail-release"
    SUCCEED_RELEASE = "succeed-release"
    SUPERSEDE_RELEASE = "supersede-release"
    TRACK_RESOURCE_ABSENCE = "track-resource-absence"
    TRACK_RESOURCE_PRESENCE = "track-resource-presence"
    TRACK_RESOURCE_READINESS = "track-resource-readiness"


class DeployType(_StrEnum):
    """Kind of deployment a release is part of."""

    INITIAL = "initial"
    INSTALL = "install"
    UPGRADE = "upgrade"
    ROLLBACK = "rollback"


class OperationError(RuntimeError):
    """Raised when an operation fails to execute."""


class Operation(ABC):
    """A single step of a plan."""

    def __init__(self) -> None:
        self.status: Status = Status.UNKNOWN

    @abstractmethod
    def execute(self) -> None:
        """Run the operation, updating ``status``; raise on failure."""

    @abstractmethod
    def id(self) -> str:
        """Unique identifier of the operation within a plan."""

    @abstractmethod
    def human_id(self) -> str:
        """Identifier meant for people."""

    @abstractmethod
    def type(self) -> OperationType:
        """Kind of the operation."""

    @abstractmethod
    def empty(self) -> bool:
        """Whether the operation does no real work."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id()} {self.status.value or 'unknown'}>"


class StageOperation(Operation):
    """Marker operation that separates stages of a plan."""

    def __init__(self, name: str) -> None:
        super().__init__()
        self.name = name

    def execute(self) -> None:
        self.status = Status.COMPLETED

    def id(self) -> str:
        return self.name

    def human_id(self) -> str:
        return self.name

    def type(self) -> OperationType:
        return OperationType.STAGE

    def empty(self) -> bool:
        return True
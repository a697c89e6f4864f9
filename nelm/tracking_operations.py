"""Operations that watch resources until they appear, disappear or become ready."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Protocol

from .operation import Operation, OperationError, OperationType, Status


class _Resource(Protocol):
    def id(self) -> str: ...

    def human_id(self) -> str: ...


class _Tracker(Protocol):
    def track(self) -> None: ...


@dataclass
class ReadinessTrackOptions:
    """Settings for tracking a resource until it is ready."""

    timeout: timedelta = timedelta(0)
    no_activity_timeout: timedelta = timedelta(0)
    ignore_readiness_probe_fails_by_container_name: dict[str, timedelta] = field(
        default_factory=dict
    )
    capture_logs_from_time: datetime | None = None
    save_logs_only_for_containers: list[str] = field(default_factory=list)
    save_logs_by_regex: re.Pattern[str] | None = None
    save_logs_by_regex_for_containers: dict[str, re.Pattern[str]] = field(default_factory=dict)
    ignore_logs: bool = False
    ignore_logs_for_containers: list[str] = field(default_factory=list)
    save_events: bool = False


class _TrackOperation(Operation):
    def __init__(self, resource: _Resource) -> None:
        super().__init__()
        self.resource = resource

    def _track(self, tracker: _Tracker, label: str) -> None:
        try:
            tracker.track()
        except Exception as err:
            self.status = Status.FAILED
            raise OperationError(f"track {label}: {err}") from err
        self.status = Status.COMPLETED


class TrackResourceAbsenceOperation(_TrackOperation):
    """Wait until a resource is gone from the cluster."""

    def __init__(self, resource: _Resource, tracker: _Tracker) -> None:
        super().__init__(resource)
        self.tracker = tracker

    def execute(self) -> None:
        self._track(self.tracker, "resource absence")

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"track resource absence: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.TRACK_RESOURCE_ABSENCE

    def empty(self) -> bool:
        return False


class TrackResourcePresenceOperation(_TrackOperation):
    """Wait until a resource exists in the cluster."""

    def __init__(self, resource: _Resource, tracker: _Tracker) -> None:
        super().__init__(resource)
        self.tracker = tracker

    def execute(self) -> None:
        self._track(self.tracker, "resource presence")

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"track resource presence: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.TRACK_RESOURCE_PRESENCE

    def empty(self) -> bool:
        return False


class TrackResourceReadinessOperation(_TrackOperation):
    """Wait until a resource becomes ready.

    The tracker is built when the operation runs, from ``tracker_factory``
    called with the operation's options.
    """

    def __init__(
        self,
        resource: _Resource,
        tracker_factory: Callable[[ReadinessTrackOptions], _Tracker],
        options: ReadinessTrackOptions | None = None,
    ) -> None:
        super().__init__(resource)
        self.tracker_factory = tracker_factory
        self.options = options if options is not None else ReadinessTrackOptions()

    def execute(self) -> None:
        try:
            tracker = self.tracker_factory(self.options)
        except Exception as err:
            raise OperationError(f"create readiness tracker: {err}") from err
        self._track(tracker, "resource readiness")

    def id(self) -> str:
        return f"{self.type().value}/{self.resource.id()}"

    def human_id(self) -> str:
        return f"track resource readiness: {self.resource.human_id()}"

    def type(self) -> OperationType:
        return OperationType.TRACK_RESOURCE_READINESS

    def empty(self) -> bool:
        return False
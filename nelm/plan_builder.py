"""Builders that turn resource information into deployment plans."""

from __future__ import annotations

from typing import Any, Callable, Iterable, Protocol, Sequence

from .operation import DeployType, OperationType, Status
from .plan import Plan, PlanError
from .release_operations import FailReleaseOperation
from .resource_operations import DeleteResourceOperation
from .tracking_operations import TrackResourceAbsenceOperation

STAGE_OP_NAME_SUFFIX_START = "start"
STAGE_OP_NAME_SUFFIX_END = "end"

_CRD_GROUP = "apiextensions.k8s.io"
_CRD_KIND = "CustomResourceDefinition"


class _ResourceID(Protocol):
    def id(self) -> str: ...

    def human_id(self) -> str: ...


class _HookResource(Protocol):
    def group_version_kind(self) -> tuple[str, str, str]: ...

    def on_pre_install(self) -> bool: ...

    def on_post_install(self) -> bool: ...

    def on_pre_upgrade(self) -> bool: ...

    def on_post_upgrade(self) -> bool: ...

    def on_pre_rollback(self) -> bool: ...

    def on_post_rollback(self) -> bool: ...


class _ResourceInfo(Protocol):
    resource_id: _ResourceID

    def id(self) -> str: ...

    def resource(self) -> Any: ...

    def should_cleanup_on_failed(
        self, prev_release_failed: bool, release_name: str, release_namespace: str
    ) -> bool: ...


class _LiveInfo(Protocol):
    def live_uid(self) -> str | None: ...


class _Release(Protocol):
    def id(self) -> str: ...

    def human_id(self) -> str: ...

    def name(self) -> str: ...

    def failed(self) -> bool: ...

    def fail(self) -> None: ...


def current_release_existing_resources_uids(
    standalone_crds_infos: Iterable[_LiveInfo],
    hook_resources_infos: Iterable[_LiveInfo],
    general_resources_infos: Iterable[_LiveInfo],
) -> list[str]:
    """UIDs of the resources of the current release that exist in the cluster."""
    uids: list[str] = []
    for infos in (standalone_crds_infos, hook_resources_infos, general_resources_infos):
        for info in infos:
            uid = info.live_uid()
            if uid is not None:
                uids.append(uid)
    return uids


def _is_crd(resource: Any) -> bool:
    group, _, kind = resource.group_version_kind()
    return group == _CRD_GROUP and kind == _CRD_KIND


def _hook_phases(resource: _HookResource, deploy_type: DeployType) -> tuple[bool, bool]:
    if deploy_type in (DeployType.INITIAL, DeployType.INSTALL):
        return resource.on_pre_install(), resource.on_post_install()
    if deploy_type == DeployType.UPGRADE:
        return resource.on_pre_upgrade(), resource.on_post_upgrade()
    if deploy_type == DeployType.ROLLBACK:
        return resource.on_pre_rollback(), resource.on_post_rollback()
    return False, False


class DeployFailurePlanBuilder:
    """Build the plan that runs after a deployment has failed.

    The plan marks the new release as failed and deletes the resources whose
    readiness tracking failed in the deployment plan and which ask to be
    cleaned up on failure.
    """

    def __init__(
        self,
        release_namespace: str,
        deploy_type: DeployType,
        deploy_plan: Plan,
        hook_resource_infos: Sequence[_ResourceInfo],
        general_resource_infos: Sequence[_ResourceInfo],
        new_release: _Release,
        history: Any,
        kube_client: Any,
        absence_tracker_factory: Callable[[_ResourceID], Any],
        prev_release: _Release | None = None,
    ) -> None:
        self.release_namespace = release_namespace
        self.deploy_type = deploy_type
        self.deploy_plan = deploy_plan
        self.hook_resource_infos = list(hook_resource_infos)
        self.general_resource_infos = list(general_resource_infos)
        self.new_release = new_release
        self.history = history
        self.kube_client = kube_client
        self.absence_tracker_factory = absence_tracker_factory
        self.prev_release = prev_release
        self.plan = Plan()

    def build(self) -> Plan:
        """Build and return the failure plan."""
        self.plan.add_operation(FailReleaseOperation(self.new_release, self.history))

        prev_release_failed = (
            self.prev_release.failed() if self.prev_release is not None else False
        )

        for info in [*self._unique_hook_infos(), *self.general_resource_infos]:
            self._setup_cleanup(info, prev_release_failed)

        return self.plan

    def _unique_hook_infos(self) -> list[_ResourceInfo]:
        seen: set[str] = set()
        unique: list[_ResourceInfo] = []
        for info in self.hook_resource_infos:
            pre, post = _hook_phases(info.resource(), self.deploy_type)
            key = f"{info.id()}::{str(pre).lower()}::{str(post).lower()}"
            if key in seen:
                continue
            seen.add(key)
            unique.append(info)
        return unique

    def _setup_cleanup(self, info: _ResourceInfo, prev_release_failed: bool) -> None:
        if not info.should_cleanup_on_failed(
            prev_release_failed, self.new_release.name(), self.release_namespace
        ) or _is_crd(info.resource()):
            return

        track_op = self.deploy_plan.operation(
            f"{OperationType.TRACK_RESOURCE_READINESS.value}/{info.id()}"
        )
        if track_op is None or track_op.status != Status.FAILED:
            return

        cleanup_op = DeleteResourceOperation(info.resource_id, self.kube_client)
        self.plan.add_operation(cleanup_op)

        track_deletion_op = TrackResourceAbsenceOperation(
            info.resource_id, self.absence_tracker_factory(info.resource_id)
        )
        self.plan.add_operation(track_deletion_op)
        try:
            self.plan.add_dependency(cleanup_op.id(), track_deletion_op.id())
        except PlanError as err:
            raise PlanError(f"error adding dependency: {err}") from err
from __future__ import annotations

import pytest

from nelm.operation import DeployType, OperationType, Status
from nelm.plan import Plan
from nelm.plan_builder import DeployFailurePlanBuilder, current_release_existing_resources_uids
from nelm.tracking_operations import TrackResourceReadinessOperation


class FakeID:
    def __init__(self, ident):
        self._id = ident

    def id(self):
        return self._id

    def human_id(self):
        return "human " + self._id


class FakeResource:
    def __init__(self, gvk=("apps", "v1", "Deployment"), pre=False, post=False):
        self._gvk = gvk
        self._pre = pre
        self._post = post

    def group_version_kind(self):
        return self._gvk

    def on_pre_install(self):
        return self._pre

    def on_post_install(self):
        return self._post

    def on_pre_upgrade(self):
        return self._pre

    def on_post_upgrade(self):
        return self._post

    def on_pre_rollback(self):
        return self._pre

    def on_post_rollback(self):
        return self._post


class FakeInfo:
    def __init__(self, ident, cleanup=True, resource=None, uid=None):
        self.resource_id = FakeID(ident)
        self._cleanup = cleanup
        self._resource = resource or FakeResource()
        self._uid = uid
        self.cleanup_calls = []

    def id(self):
        return self.resource_id.id()

    def resource(self):
        return self._resource

    def live_uid(self):
        return self._uid

    def should_cleanup_on_failed(self, prev_release_failed, release_name, release_namespace):
        self.cleanup_calls.append((prev_release_failed, release_name, release_namespace))
        return self._cleanup


class FakeRelease:
    def __init__(self, failed=False):
        self._failed = failed

    def id(self):
        return "ns:app:2"

    def human_id(self):
        return "app:2"

    def name(self):
        return "app"

    def failed(self):
        return self._failed

    def fail(self):
        self._failed = True


class FakeHistory:
    def update_release(self, release):
        pass


class FakeKube:
    def __init__(self):
        self.deleted = []

    def delete(self, resource, propagation_policy=None):
        self.deleted.append(resource.id())


def deploy_plan_with(*tracked):
    plan = Plan()
    for ident, status in tracked:
        op = TrackResourceReadinessOperation(FakeID(ident), lambda opts: None)
        op.status = status
        plan.add_operation(op)
    return plan


def make_builder(deploy_plan, hooks=(), general=(), prev_release=None, factory=None, kube=None):
    trackers = []

    def default_factory(resource_id):
        trackers.append(resource_id.id())
        return object()

    builder = DeployFailurePlanBuilder(
        "ns",
        DeployType.UPGRADE,
        deploy_plan,
        list(hooks),
        list(general),
        FakeRelease(),
        FakeHistory(),
        kube or FakeKube(),
        factory or default_factory,
        prev_release=prev_release,
    )
    return builder, trackers


def test_existing_uids_collected_in_order():
    uids = current_release_existing_resources_uids(
        [FakeInfo("a", uid="u1")],
        [FakeInfo("b"), FakeInfo("c", uid="u2")],
        [FakeInfo("d", uid="u3")],
    )
    assert uids == ["u1", "u2", "u3"]


def test_existing_uids_empty():
    assert current_release_existing_resources_uids([], [FakeInfo("a")], []) == []


def test_plan_without_failures_holds_only_fail_release():
    builder, _ = make_builder(Plan(), general=[FakeInfo("ns:apps:Deployment:web")])
    plan = builder.build()
    assert [op.id() for op in plan.operations()] == ["fail-release/ns:app:2"]


def test_failed_readiness_adds_cleanup_and_tracking():
    ident = "ns:apps:Deployment:web"
    builder, trackers = make_builder(
        deploy_plan_with((ident, Status.FAILED)), general=[FakeInfo(ident)]
    )
    plan = builder.build()
    delete_id = f"{OperationType.DELETE.value}/{ident}"
    track_id = f"{OperationType.TRACK_RESOURCE_ABSENCE.value}/{ident}"
    assert plan.operation(delete_id) is not None
    assert plan.operation(track_id) is not None
    assert plan.predecessor_map()[track_id] == {delete_id}
    assert trackers == [ident]


def test_completed_readiness_is_not_cleaned_up():
    ident = "ns:apps:Deployment:web"
    builder, trackers = make_builder(
        deploy_plan_with((ident, Status.COMPLETED)), general=[FakeInfo(ident)]
    )
    plan = builder.build()
    assert len(plan.operations()) == 1
    assert trackers == []


def test_no_cleanup_when_info_declines():
    ident = "ns:apps:Deployment:web"
    builder, _ = make_builder(
        deploy_plan_with((ident, Status.FAILED)), general=[FakeInfo(ident, cleanup=False)]
    )
    assert len(builder.build().operations()) == 1


def test_crds_are_never_cleaned_up():
    ident = "apiextensions.k8s.io:CustomResourceDefinition:things"
    crd = FakeResource(gvk=("apiextensions.k8s.io", "v1", "CustomResourceDefinition"))
    builder, _ = make_builder(
        deploy_plan_with((ident, Status.FAILED)), hooks=[FakeInfo(ident, resource=crd)]
    )
    assert len(builder.build().operations()) == 1


def test_duplicate_hooks_are_handled_once():
    ident = "ns:batch:Job:migrate"
    hook = FakeResource(gvk=("batch", "v1", "Job"), pre=True)
    first, second = FakeInfo(ident, resource=hook), FakeInfo(ident, resource=hook)
    builder, trackers = make_builder(
        deploy_plan_with((ident, Status.FAILED)), hooks=[first, second]
    )
    plan = builder.build()
    assert trackers == [ident]
    assert second.cleanup_calls == []
    assert plan.operation(f"{OperationType.DELETE.value}/{ident}") is not None


def test_prev_release_failure_and_names_passed_to_info():
    ident = "ns:apps:Deployment:web"
    info = FakeInfo(ident)
    builder, _ = make_builder(
        deploy_plan_with((ident, Status.FAILED)),
        general=[info],
        prev_release=FakeRelease(failed=True),
    )
    builder.build()
    assert info.cleanup_calls == [(True, "app", "ns")]


def test_cleanup_operation_deletes_through_kube_client():
    ident = "ns:apps:Deployment:web"
    kube = FakeKube()
    builder, _ = make_builder(
        deploy_plan_with((ident, Status.FAILED)), general=[FakeInfo(ident)], kube=kube
    )
    plan = builder.build()
    op = plan.operation(f"{OperationType.DELETE.value}/{ident}")
    op.execute()
    assert kube.deleted == [ident]
    assert op.status == Status.COMPLETED


def test_fail_release_operation_marks_release_failed():
    builder, _ = make_builder(Plan())
    plan = builder.build()
    op = plan.operation("fail-release/ns:app:2")
    op.execute()
    assert builder.new_release.failed() is True


def test_tracker_factory_error_propagates():
    ident = "ns:apps:Deployment:web"

    def broken(resource_id):
        raise ValueError("no tracker")

    builder, _ = make_builder(
        deploy_plan_with((ident, Status.FAILED)), general=[FakeInfo(ident)], factory=broken
    )
    with pytest.raises(ValueError):
        builder.build()
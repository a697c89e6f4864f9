import pytest

from nelm.kube_client import AlreadyExistsError, KubeClientError
from nelm.operation import OperationError, OperationType, Status
from nelm.resource_operations import (
    ApplyResourceOperation,
    CreateResourceOperation,
    DeleteResourceOperation,
    RecreateResourceOperation,
    UpdateResourceOperation,
)

RID = "default:apps:Deployment:web"
HUMAN = "deployment/web"


class FakeResource:
    def id(self):
        return RID

    def human_id(self):
        return HUMAN


class FakeKubeClient:
    def __init__(self, create_error=None, apply_error=None, delete_error=None, calls=None):
        self.create_error = create_error
        self.apply_error = apply_error
        self.delete_error = delete_error
        self.calls = calls if calls is not None else []

    def create(self, resource, obj, force_replicas=None):
        self.calls.append(("create", resource.id(), force_replicas))
        if self.create_error:
            raise self.create_error
        return obj

    def apply(self, resource, obj, dry_run=False):
        self.calls.append(("apply", resource.id()))
        if self.apply_error:
            raise self.apply_error
        return obj

    def delete(self, resource, propagation_policy=None):
        self.calls.append(("delete", resource.id()))
        if self.delete_error:
            raise self.delete_error


class FakeTracker:
    def __init__(self, calls, error=None):
        self.calls = calls
        self.error = error

    def track(self):
        self.calls.append(("track",))
        if self.error:
            raise self.error


@pytest.mark.parametrize(
    "cls,normal,extra,label",
    [
        (ApplyResourceOperation, OperationType.APPLY, OperationType.EXTRA_POST_APPLY, "apply resource"),
        (UpdateResourceOperation, OperationType.UPDATE, OperationType.EXTRA_POST_UPDATE, "update resource"),
    ],
)
def test_apply_like_identity(cls, normal, extra, label):
    op = cls(FakeResource(), {}, FakeKubeClient())
    assert op.id() == normal.value + "/" + RID
    assert op.type() is normal
    assert op.human_id() == label + ": " + HUMAN
    assert op.empty() is False
    extra_op = cls(FakeResource(), {}, FakeKubeClient(), extra_post=True)
    assert extra_op.id() == extra.value + "/" + RID
    assert extra_op.type() is extra


@pytest.mark.parametrize("cls", [ApplyResourceOperation, UpdateResourceOperation])
def test_apply_like_success(cls):
    client = FakeKubeClient()
    op = cls(FakeResource(), {"kind": "Deployment"}, client)
    assert op.status is Status.UNKNOWN
    op.execute()
    assert op.status is Status.COMPLETED
    assert client.calls == [("apply", RID)]


@pytest.mark.parametrize("cls", [ApplyResourceOperation, UpdateResourceOperation])
def test_apply_like_failure(cls):
    op = cls(FakeResource(), {}, FakeKubeClient(apply_error=KubeClientError("boom")))
    with pytest.raises(OperationError, match="error applying resource"):
        op.execute()
    assert op.status is Status.FAILED


def test_create_passes_force_replicas():
    client = FakeKubeClient()
    op = CreateResourceOperation(FakeResource(), {}, client, force_replicas=3)
    op.execute()
    assert op.status is Status.COMPLETED
    assert client.calls == [("create", RID, 3)]


def test_create_identity_extra_post():
    op = CreateResourceOperation(FakeResource(), {}, FakeKubeClient(), extra_post=True)
    assert op.id() == "extra-post-create/" + RID
    assert op.human_id() == "create resource: " + HUMAN


def test_create_already_exists_applies_but_fails():
    client = FakeKubeClient(create_error=AlreadyExistsError("exists"))
    op = CreateResourceOperation(FakeResource(), {}, client)
    with pytest.raises(OperationError, match="error creating resource"):
        op.execute()
    assert op.status is Status.FAILED
    assert [c[0] for c in client.calls] == ["create", "apply"]


def test_create_already_exists_apply_failure():
    client = FakeKubeClient(
        create_error=AlreadyExistsError("exists"), apply_error=KubeClientError("bad")
    )
    op = CreateResourceOperation(FakeResource(), {}, client)
    with pytest.raises(OperationError, match="error applying resource"):
        op.execute()
    assert op.status is Status.FAILED


def test_create_other_error_does_not_apply():
    client = FakeKubeClient(create_error=KubeClientError("denied"))
    op = CreateResourceOperation(FakeResource(), {}, client)
    with pytest.raises(OperationError, match="error creating resource"):
        op.execute()
    assert [c[0] for c in client.calls] == ["create"]


def test_delete_success_and_identity():
    client = FakeKubeClient()
    op = DeleteResourceOperation(FakeResource(), client)
    op.execute()
    assert op.status is Status.COMPLETED
    assert client.calls == [("delete", RID)]
    assert op.id() == "delete/" + RID
    assert op.human_id() == "delete resource: " + HUMAN
    assert DeleteResourceOperation(FakeResource(), client, extra_post=True).type() is (
        OperationType.EXTRA_POST_DELETE
    )


def test_delete_failure():
    op = DeleteResourceOperation(FakeResource(), FakeKubeClient(delete_error=KubeClientError("x")))
    with pytest.raises(OperationError, match="error deleting resource"):
        op.execute()
    assert op.status is Status.FAILED


def test_recreate_order():
    calls = []
    client = FakeKubeClient(calls=calls)
    op = RecreateResourceOperation(
        FakeResource(), {}, FakeTracker(calls), client, force_replicas=2
    )
    op.execute()
    assert op.status is Status.COMPLETED
    assert calls == [("delete", RID), ("track",), ("create", RID, 2)]
    assert op.id() == "recreate/" + RID
    assert op.human_id() == "recreate resource: " + HUMAN


def test_recreate_tracking_failure_stops_before_create():
    calls = []
    client = FakeKubeClient(calls=calls)
    op = RecreateResourceOperation(
        FakeResource(), {}, FakeTracker(calls, error=RuntimeError("timeout")), client
    )
    with pytest.raises(OperationError, match="track resource absence"):
        op.execute()
    assert op.status is Status.FAILED
    assert calls == [("delete", RID), ("track",)]


def test_recreate_delete_failure():
    calls = []
    client = FakeKubeClient(delete_error=KubeClientError("x"), calls=calls)
    op = RecreateResourceOperation(FakeResource(), {}, FakeTracker(calls), client, extra_post=True)
    with pytest.raises(OperationError, match="error deleting resource"):
        op.execute()
    assert calls == [("delete", RID)]
    assert op.type() is OperationType.EXTRA_POST_RECREATE
import pytest

from nelm.operation import (
    Operation,
    OperationType,
    StageOperation,
    Status,
)


def test_stage_operation_identity():
    op = StageOperation("stage/initialization/start")
    assert op.id() == "stage/initialization/start"
    assert op.human_id() == "stage/initialization/start"
    assert op.type() is OperationType.STAGE
    assert op.empty() is True


def test_stage_operation_execute_completes():
    op = StageOperation("stage/x")
    assert op.status is Status.UNKNOWN
    op.execute()
    assert op.status is Status.COMPLETED


def test_stage_type_renders_as_value():
    op = StageOperation("s")
    assert f"{op.type()}/{op.id()}" == "stage/s"


def test_operation_is_abstract():
    with pytest.raises(TypeError):
        Operation()


def test_unknown_status_is_falsy_value():
    op = StageOperation("s")
    assert op.status.value == ""
    op.execute()
    assert op.status.value == "completed"


def test_operation_types_round_trip_through_values():
    for member in OperationType:
        assert OperationType(member.value) is member
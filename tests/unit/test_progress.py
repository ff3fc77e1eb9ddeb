"""Progress tracker tests."""

from conftest import build_workflow

from formflow.contracts import Actor, EngineState, EngineStatus
from formflow.progress import (
    is_at_final_step,
    missing_required_steps,
    progress,
)

ACTOR = Actor.of(user_id="1")


def _state(step: int, status: EngineStatus = EngineStatus.IN_PROGRESS) -> EngineState:
    return EngineState(workflow_id="claim", step=step, status=status, actor=ACTOR)


def test_progress_on_four_step_workflow_at_position_three():
    wf = build_workflow(total=4)
    result = progress(_state(3), wf)
    assert (result.current, result.total, result.percent) == (3, 4, 50)
    assert result.completed_steps == 2


def test_progress_is_zero_at_first_step_and_hundred_when_complete():
    wf = build_workflow(total=3)
    assert progress(_state(1), wf).percent == 0
    done = progress(_state(4, EngineStatus.COMPLETE), wf)
    assert done.percent == 100
    assert done.current == 3
    assert done.completed_steps == 3


def test_progress_rounds_half_up():
    wf = build_workflow(total=8)
    # 100 * 1 / 8 = 12.5
    assert progress(_state(2), wf).percent == 13


def test_is_at_final_step():
    wf = build_workflow(total=3)
    assert not is_at_final_step(_state(2), wf)
    assert is_at_final_step(_state(3), wf)
    assert not is_at_final_step(_state(4, EngineStatus.COMPLETE), wf)


def test_missing_required_steps_ignores_hidden_steps():
    wf = build_workflow(total=3, required=(1, 2, 3))
    assert missing_required_steps(wf, [1]) == [2, 3]
    assert missing_required_steps(wf, [1], visible={2: False}) == [3]
    assert missing_required_steps(wf, [1, 2, 3]) == []

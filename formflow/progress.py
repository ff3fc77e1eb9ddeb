"""Progress calculations over engine state.

Everything here is a pure function of an :class:`EngineState` and its
:class:`WorkflowDefinition`; nothing touches storage.
"""

from __future__ import annotations

from typing import Iterable, List, Mapping

from .contracts import EngineState, EngineStatus, Progress, WorkflowDefinition


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def is_past_last_step(state: EngineState, definition: WorkflowDefinition) -> bool:
    return (
        state.status == EngineStatus.COMPLETE
        or state.step > definition.total_steps
    )


def progress(state: EngineState, definition: WorkflowDefinition) -> Progress:
    """Return ``current``/``total``/``percent`` for ``state``.

    ``percent`` is ``round(100 * (current - 1) / total)`` while the workflow is
    open and ``100`` once it is complete. A completed workflow reports its last
    step as ``current``.
    """
    total = definition.total_steps
    if is_past_last_step(state, definition):
        return Progress(current=total, total=total, percent=100, completed_steps=total)
    current = min(max(state.step, 1), total)
    percent = _round_half_up(100 * (current - 1) / total)
    return Progress(
        current=current,
        total=total,
        percent=percent,
        completed_steps=current - 1,
    )


def is_at_final_step(state: EngineState, definition: WorkflowDefinition) -> bool:
    """``True`` on the last fillable step, not on the completed pseudo-step."""
    return (
        state.status != EngineStatus.COMPLETE
        and state.step == definition.total_steps
    )


def missing_required_steps(
    definition: WorkflowDefinition,
    completed_positions: Iterable[int],
    visible: Mapping[int, bool] | None = None,
) -> List[int]:
    """Positions of required steps without a completed submission.

    Steps hidden by their conditions (``visible[position] is False``) do not
    gate completion.
    """
    done = set(completed_positions)
    visible = visible or {}
    return [
        step.position
        for step in definition.required_steps()
        if visible.get(step.position, True) and step.position not in done
    ]

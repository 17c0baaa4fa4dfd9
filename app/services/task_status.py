"""Task status normalization and the forward-only transition guard."""
import re
from datetime import datetime
from typing import Optional

from app.core.exceptions import InvalidStatusError, InvalidTransitionError
from app.models.task import Task, TaskStatus

BACKWARD_TRANSITION_MESSAGE = "Invalid status transition. Tasks cannot move backwards."
ACCEPTED_STATUS_FORMS = (
    "'todo'/'to do', 'in_progress'/'in progress', 'done'/'completed' (case-insensitive)"
)

_SEPARATORS = re.compile(r"[\s\-_]+")
_SYNONYMS = {
    "to_do": TaskStatus.TODO.value,
    "completed": TaskStatus.DONE.value,
}


def normalize_status(text: Optional[str]) -> TaskStatus:
    """Map free-form status text onto the canonical TaskStatus.

    ``"To Do"``, ``"to-do"``, ``"TO_DO"`` and ``"todo"`` all resolve to
    ``TaskStatus.TODO``.
    """
    raw = text or ""
    candidate = _SEPARATORS.sub("_", raw.strip().lower())
    candidate = _SYNONYMS.get(candidate, candidate)
    try:
        if not candidate:
            raise ValueError(candidate)
        return TaskStatus(candidate)
    except ValueError:
        raise InvalidStatusError(
            f"Invalid status: '{raw}'. Valid values: {ACCEPTED_STATUS_FORMS}"
        ) from None


def guard_forward_only(current: TaskStatus, target: TaskStatus) -> None:
    """Reject transitions that move a task backwards. Same-status is allowed."""
    if target.ordinal < current.ordinal:
        raise InvalidTransitionError(BACKWARD_TRANSITION_MESSAGE)


def apply_status(task: Task, status: TaskStatus, now: Optional[datetime] = None) -> Task:
    """Set the task status and keep ``completed_at`` in step with it.

    ``completed_at`` is set when the task becomes done, left alone when it was
    already done, and cleared when it leaves done.
    """
    was_done = task.status == TaskStatus.DONE
    task.status = status
    if status == TaskStatus.DONE:
        if not was_done or task.completed_at is None:
            task.completed_at = now or datetime.utcnow()
    else:
        task.completed_at = None
    return task

"""
Action lifecycle.

    PENDING ──batch export──▶ EXPORTED
       │                         │
       └──────manual update──────┴──▶ COMPLETED (terminal)

Manual updates may also move an action between PENDING and EXPORTED.
Nothing leaves COMPLETED, and actions are never deleted.
"""

import uuid
from datetime import datetime

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from actions.types import ActionStatus
from db.models import ActionRecommendation

logger = structlog.get_logger()

TRANSITIONS: dict[ActionStatus, frozenset[ActionStatus]] = {
    ActionStatus.PENDING: frozenset({ActionStatus.PENDING, ActionStatus.EXPORTED, ActionStatus.COMPLETED}),
    ActionStatus.EXPORTED: frozenset({ActionStatus.PENDING, ActionStatus.EXPORTED, ActionStatus.COMPLETED}),
    ActionStatus.COMPLETED: frozenset({ActionStatus.COMPLETED}),
}


class ActionNotFoundError(LookupError):
    def __init__(self, action_id: uuid.UUID):
        super().__init__(f"Action {action_id} not found")
        self.action_id = action_id


class InvalidStatusTransitionError(ValueError):
    def __init__(self, current: ActionStatus, target: ActionStatus):
        super().__init__(f"Cannot move action from {current.value} to {target.value}")
        self.current = current
        self.target = target


def can_transition(current: ActionStatus | str, target: ActionStatus | str) -> bool:
    return ActionStatus(target) in TRANSITIONS[ActionStatus(current)]


async def update_action_status(
    db: AsyncSession,
    action_id: uuid.UUID,
    status: ActionStatus,
    notes: str | None = None,
    completed_by: str | None = None,
    now: datetime | None = None,
) -> ActionRecommendation:
    """Manually set an action's status. Completion stamps who and when, export stamps when."""
    result = await db.execute(select(ActionRecommendation).where(ActionRecommendation.action_id == action_id))
    action = result.scalar_one_or_none()
    if action is None:
        raise ActionNotFoundError(action_id)

    target = ActionStatus(status)
    current = ActionStatus(action.status)
    if not can_transition(current, target):
        raise InvalidStatusTransitionError(current, target)

    if current != ActionStatus.COMPLETED:
        stamp = now or datetime.utcnow()
        action.status = target.value
        if target == ActionStatus.COMPLETED:
            action.completed_at = stamp
            action.completed_by = completed_by
        else:
            action.completed_at = None
            action.completed_by = None
        if target == ActionStatus.EXPORTED and (current != ActionStatus.EXPORTED or action.exported_at is None):
            action.exported_at = stamp
        elif target == ActionStatus.PENDING:
            action.exported_at = None
    if notes is not None:
        action.notes = notes

    await db.commit()
    await db.refresh(action)
    logger.info("actions.status.updated", action_id=str(action_id), previous=current.value, status=target.value)
    return action


async def mark_exported(db: AsyncSession, action_ids: list[uuid.UUID], now: datetime | None = None) -> int:
    """Move PENDING actions to EXPORTED. Returns how many changed."""
    if not action_ids:
        return 0
    result = await db.execute(
        select(ActionRecommendation).where(
            ActionRecommendation.action_id.in_(action_ids),
            ActionRecommendation.status == ActionStatus.PENDING.value,
        )
    )
    pending = result.scalars().all()

    exported_at = now or datetime.utcnow()
    for action in pending:
        action.status = ActionStatus.EXPORTED.value
        action.exported_at = exported_at

    await db.commit()
    exported = len(pending)
    logger.info("actions.batch_export.completed", requested=len(action_ids), exported=exported)
    return exported

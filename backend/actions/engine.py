"""
Action Engine — turn open discrepancies into persisted action recommendations.

Pipeline:
  1. Load OPEN discrepancies in scope (critical first, oldest first)
  2. Evaluate the action rules for each one
  3. Skip (discrepancy, action type) pairs that already exist
  4. Insert the rest as PENDING, one SAVEPOINT per action

The unique constraint on (discrepancy_id, action_type) is what keeps
concurrent runs from duplicating work: a losing insert rolls back its own
savepoint and is counted as skipped. Any other failure is logged and
counted, and the run moves on to the next candidate.
"""

import uuid
from dataclasses import dataclass, field

import structlog
from sqlalchemy import case, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from actions.rules import CandidateAction, evaluate
from actions.types import ActionStatus, ActionType, DiscrepancyStatus, Priority, Severity
from db.models import ActionRecommendation, Discrepancy, Location

logger = structlog.get_logger()

SEVERITY_ORDER = case(
    {
        Severity.CRITICAL.value: 0,
        Severity.HIGH.value: 1,
        Severity.MEDIUM.value: 2,
        Severity.LOW.value: 3,
    },
    value=Discrepancy.severity,
    else_=4,
)


@dataclass(frozen=True)
class GenerationScope:
    """Subset of open discrepancies a generation run considers. Empty means all."""

    zone: str | None = None
    location_code: str | None = None
    sku: str | None = None
    discrepancy_ids: tuple[uuid.UUID, ...] | None = None

    @property
    def is_all(self) -> bool:
        return not (self.zone or self.location_code or self.sku or self.discrepancy_ids)


ALL_OPEN = GenerationScope()


@dataclass
class GenerationResult:
    created: list[ActionRecommendation] = field(default_factory=list)
    skipped_count: int = 0
    failed_count: int = 0
    discrepancy_count: int = 0

    @property
    def generated_count(self) -> int:
        return len(self.created)


# ──────────────────────────────────────────────────────────────────────────
# Store reads
# ──────────────────────────────────────────────────────────────────────────


async def load_open_discrepancies(db: AsyncSession, scope: GenerationScope = ALL_OPEN) -> list[Discrepancy]:
    query = select(Discrepancy).where(Discrepancy.status == DiscrepancyStatus.OPEN.value)
    if scope.zone:
        query = query.join(Location, Location.code == Discrepancy.location_code).where(Location.zone == scope.zone)
    if scope.location_code:
        query = query.where(Discrepancy.location_code == scope.location_code)
    if scope.sku:
        query = query.where(Discrepancy.sku == scope.sku)
    if scope.discrepancy_ids:
        query = query.where(Discrepancy.discrepancy_id.in_(scope.discrepancy_ids))

    query = query.order_by(SEVERITY_ORDER, Discrepancy.created_at.asc(), Discrepancy.discrepancy_id)
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_recommendations(
    db: AsyncSession,
    action_type: ActionType | None = None,
    priority: Priority | None = None,
    status: ActionStatus | None = ActionStatus.PENDING,
    limit: int | None = 50,
) -> list[ActionRecommendation]:
    """Persisted actions, most urgent first and newest first within a priority."""
    query = select(ActionRecommendation)
    if status is not None:
        query = query.where(ActionRecommendation.status == ActionStatus(status).value)
    if action_type is not None:
        query = query.where(ActionRecommendation.action_type == ActionType(action_type).value)
    if priority is not None:
        query = query.where(ActionRecommendation.priority == int(priority))
    query = query.order_by(ActionRecommendation.priority.asc(), ActionRecommendation.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def existing_action_keys(db: AsyncSession, discrepancy_ids: list[uuid.UUID]) -> set[tuple[str, str]]:
    """(discrepancy_id, action_type) pairs already persisted for these discrepancies."""
    if not discrepancy_ids:
        return set()
    result = await db.execute(
        select(ActionRecommendation.discrepancy_id, ActionRecommendation.action_type).where(
            ActionRecommendation.discrepancy_id.in_(discrepancy_ids)
        )
    )
    return {(str(row.discrepancy_id), row.action_type) for row in result.all()}


# ──────────────────────────────────────────────────────────────────────────
# Conflict-tolerant insert
# ──────────────────────────────────────────────────────────────────────────


UNIQUE_PAIR_CONSTRAINT = "uq_action_per_discrepancy_type"
# SQLite reports the columns rather than the constraint name
UNIQUE_PAIR_COLUMNS = ("action_recommendations.discrepancy_id", "action_recommendations.action_type")


def _is_unique_violation(exc: IntegrityError) -> bool:
    """True only when the (discrepancy, action type) constraint rejected the row."""
    message = str(exc.orig)
    if UNIQUE_PAIR_CONSTRAINT in message:
        return True
    return "UNIQUE constraint failed" in message and all(column in message for column in UNIQUE_PAIR_COLUMNS)


def build_action(discrepancy: Discrepancy, candidate: CandidateAction) -> ActionRecommendation:
    return ActionRecommendation(
        action_type=candidate.action_type.value,
        priority=int(candidate.priority),
        description=candidate.description,
        instructions=candidate.instructions,
        discrepancy_id=discrepancy.discrepancy_id,
        sku=discrepancy.sku,
        location_code=discrepancy.location_code,
        estimated_impact=candidate.estimated_impact,
        status=ActionStatus.PENDING.value,
    )


async def insert_action(db: AsyncSession, action: ActionRecommendation) -> bool:
    """
    Insert one action inside its own SAVEPOINT.

    Returns False when the (discrepancy, type) pair already exists.
    Other database errors propagate after the savepoint is rolled back.
    """
    try:
        async with db.begin_nested():
            db.add(action)
    except IntegrityError as exc:
        if _is_unique_violation(exc):
            return False
        raise
    return True


# ──────────────────────────────────────────────────────────────────────────
# Generation run
# ──────────────────────────────────────────────────────────────────────────


async def generate_actions(db: AsyncSession, scope: GenerationScope = ALL_OPEN) -> GenerationResult:
    """
    Evaluate every open discrepancy in scope and persist new PENDING actions.

    Re-running over an unchanged discrepancy set creates nothing new.
    """
    discrepancies = await load_open_discrepancies(db, scope)
    existing = await existing_action_keys(db, [d.discrepancy_id for d in discrepancies])
    result = GenerationResult(discrepancy_count=len(discrepancies))

    logger.info(
        "actions.generate.started",
        discrepancies=len(discrepancies),
        existing_actions=len(existing),
        scope="all" if scope.is_all else "narrowed",
    )

    for discrepancy in discrepancies:
        for candidate in evaluate(discrepancy):
            key = (str(discrepancy.discrepancy_id), candidate.action_type.value)
            if key in existing:
                result.skipped_count += 1
                continue

            action = build_action(discrepancy, candidate)
            try:
                inserted = await insert_action(db, action)
            except SQLAlchemyError as exc:
                result.failed_count += 1
                logger.error(
                    "actions.generate.insert_failed",
                    discrepancy_id=key[0],
                    action_type=key[1],
                    error=str(exc),
                )
                continue

            if not inserted:
                result.skipped_count += 1
                continue

            existing.add(key)
            result.created.append(action)

    await db.commit()

    logger.info(
        "actions.generate.completed",
        generated=result.generated_count,
        skipped=result.skipped_count,
        failed=result.failed_count,
    )
    return result

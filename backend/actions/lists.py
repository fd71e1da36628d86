"""
Work Lists — read-only reports built from open discrepancies.

  - Cycle count list:   open discrepancies ranked by prioritization score
  - Location audit list: locations with repeated or serious issues
  - Re-slot suggestions: SKUs with issues spread across several locations
  - Training flags:      operators with heavy adjustment activity

Every builder returns a well-formed envelope with zero counts when nothing
qualifies.
"""

from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import case, distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from actions.scoring import (
    AGE_POINTS,
    DEFAULT_SEVERITY_POINTS,
    DEFAULT_STALE_DAYS,
    SEVERITY_POINTS,
    VARIANCE_VALUE_BANDS,
    priority_label,
    score_bounds,
)
from actions.types import DiscrepancyStatus, Priority, Severity, TrainingPriority
from db.models import AdjustmentSnapshot, Discrepancy, Investigation, Location, Operator, Product

logger = structlog.get_logger()

AUDIT_CHECKLIST = (
    "Verify location label is readable and correct",
    "Check physical condition of location",
    "Verify no commingled SKUs",
    "Check adjacent locations for mis-slots",
    "Verify location is accessible",
    "Check for damaged or obstructed inventory",
)

SERIOUS_SEVERITIES = (Severity.CRITICAL.value, Severity.HIGH.value)

RESLOT_MAX_SUGGESTIONS = 20
RESLOT_MIN_LOCATIONS = 2
RESLOT_CONSOLIDATE_ABOVE = 3

TRAINING_MIN_ADJUSTMENTS = 10


def _is_open():
    return Discrepancy.status == DiscrepancyStatus.OPEN.value


# ──────────────────────────────────────────────────────────────────────────
# Cycle Count List
# ──────────────────────────────────────────────────────────────────────────


def cycle_count_reason(severity: str, variance_value: float | None) -> str:
    if severity == Severity.CRITICAL.value:
        return "Critical discrepancy"
    if variance_value is not None and variance_value > 100:
        return "High value variance"
    return "Standard verification"


def priority_score_expression(stale_before: datetime):
    """SQL form of score_discrepancy, so ranking and the cap run in the database."""
    magnitude = func.abs(Discrepancy.variance_value)
    severity_points = case(SEVERITY_POINTS, value=Discrepancy.severity, else_=DEFAULT_SEVERITY_POINTS)
    value_points = case(
        *[(magnitude > threshold, points) for threshold, points in VARIANCE_VALUE_BANDS],
        else_=0,
    )
    age_points = case((Discrepancy.created_at < stale_before, AGE_POINTS), else_=0)
    return severity_points + value_points + age_points


async def build_cycle_count_list(
    db: AsyncSession,
    max_tasks: int = 50,
    zone: str | None = None,
    priority: Priority | None = None,
    now: datetime | None = None,
    stale_days: int = DEFAULT_STALE_DAYS,
) -> dict[str, Any]:
    """
    Rank open discrepancies by prioritization score, highest first.

    Optional filters: warehouse zone, and the display priority a task
    must map to. The cap applies after filtering.
    """
    now = now or datetime.utcnow()
    score = priority_score_expression(now - timedelta(days=stale_days))

    query = (
        select(Discrepancy, Location.zone, Product.cost, score.label("priority_score"))
        .outerjoin(Location, Location.code == Discrepancy.location_code)
        .outerjoin(Product, Product.sku == Discrepancy.sku)
        .where(_is_open())
    )
    if zone:
        query = query.where(Location.zone == zone)
    if priority is not None:
        lower, upper = score_bounds(Priority(priority))
        if lower is not None:
            query = query.where(score >= lower)
        if upper is not None:
            query = query.where(score < upper)

    query = query.order_by(
        score.desc(),
        Discrepancy.created_at.asc().nulls_last(),
        Discrepancy.discrepancy_id,
    ).limit(max_tasks)
    rows = (await db.execute(query)).all()

    tasks = [
        {
            "sequence": index + 1,
            "discrepancy_id": str(disc.discrepancy_id),
            "location_code": disc.location_code,
            "sku": disc.sku,
            "priority": priority_label(int(points)),
            "priority_score": int(points),
            "reason": cycle_count_reason(disc.severity, disc.variance_value),
            "expected_variance": float(disc.variance or 0),
            "zone": loc_zone,
            "product_cost": cost,
        }
        for index, (disc, loc_zone, cost, points) in enumerate(rows)
    ]

    return {
        "generated_at": now,
        "task_count": len(tasks),
        "tasks": tasks,
    }


# ──────────────────────────────────────────────────────────────────────────
# Location Audit List
# ──────────────────────────────────────────────────────────────────────────


async def build_audit_list(db: AsyncSession, max_locations: int = 20, now: datetime | None = None) -> dict[str, Any]:
    """Locations with two or more open issues, or at least one critical/high issue."""
    issue_count = func.count().label("issue_count")
    serious_expr = func.sum(case((Discrepancy.severity.in_(SERIOUS_SEVERITIES), 1), else_=0))
    serious_count = serious_expr.label("serious_count")

    result = await db.execute(
        select(
            Discrepancy.location_code,
            issue_count,
            serious_count,
            func.min(Discrepancy.created_at).label("oldest_issue"),
        )
        .where(_is_open())
        .group_by(Discrepancy.location_code)
        .having((func.count() >= 2) | (serious_expr >= 1))
        .order_by(serious_count.desc(), issue_count.desc(), Discrepancy.location_code)
        .limit(max_locations)
    )
    groups = result.all()

    issue_types: dict[str, set[str]] = {}
    if groups:
        type_rows = await db.execute(
            select(Discrepancy.location_code, Discrepancy.discrepancy_type)
            .where(_is_open(), Discrepancy.location_code.in_([g.location_code for g in groups]))
            .distinct()
        )
        for row in type_rows.all():
            issue_types.setdefault(row.location_code, set()).add(row.discrepancy_type)

    locations = [
        {
            "location_code": g.location_code,
            "issue_count": int(g.issue_count),
            "serious_issue_count": int(g.serious_count or 0),
            "issue_types": sorted(issue_types.get(g.location_code, ())),
            "oldest_issue": g.oldest_issue,
            "audit_checklist": list(AUDIT_CHECKLIST),
        }
        for g in groups
    ]

    return {
        "generated_at": now or datetime.utcnow(),
        "location_count": len(locations),
        "locations": locations,
    }


# ──────────────────────────────────────────────────────────────────────────
# Re-slot Suggestions
# ──────────────────────────────────────────────────────────────────────────


def reslot_recommendation(location_count: int) -> str:
    if location_count > RESLOT_CONSOLIDATE_ABOVE:
        return "Consider consolidating to fewer locations"
    return "Review slotting strategy for this SKU"


async def build_reslot_suggestions(
    db: AsyncSession,
    limit: int = RESLOT_MAX_SUGGESTIONS,
    now: datetime | None = None,
) -> dict[str, Any]:
    """SKUs whose open issues touch two or more distinct locations."""
    location_count = func.count(distinct(Discrepancy.location_code)).label("location_count")
    total_issues = func.count().label("total_issues")

    result = await db.execute(
        select(
            Discrepancy.sku,
            location_count,
            total_issues,
            func.sum(func.abs(Discrepancy.variance)).label("total_variance"),
        )
        .where(_is_open())
        .group_by(Discrepancy.sku)
        .having(func.count(distinct(Discrepancy.location_code)) >= RESLOT_MIN_LOCATIONS)
        .order_by(total_issues.desc(), Discrepancy.sku)
        .limit(limit)
    )
    candidates = result.all()

    products: dict[str, Product] = {}
    if candidates:
        product_rows = await db.execute(select(Product).where(Product.sku.in_([c.sku for c in candidates])))
        products = {p.sku: p for p in product_rows.scalars().all()}

    suggestions = []
    for c in candidates:
        product = products.get(c.sku)
        locations = int(c.location_count)
        issues = int(c.total_issues)
        suggestions.append(
            {
                "sku": c.sku,
                "product_name": product.name if product else None,
                "category": product.category if product else None,
                "current_location_count": locations,
                "total_issues": issues,
                "total_variance": float(c.total_variance or 0),
                "recommendation": reslot_recommendation(locations),
                "reason": f"{issues} discrepancies across {locations} locations",
            }
        )

    return {
        "generated_at": now or datetime.utcnow(),
        "suggestion_count": len(suggestions),
        "suggestions": suggestions,
    }


# ──────────────────────────────────────────────────────────────────────────
# Training Flags
# ──────────────────────────────────────────────────────────────────────────


def training_priority(adjustment_count: int, related_issues: int) -> TrainingPriority:
    if adjustment_count > 50 and related_issues > 5:
        return TrainingPriority.HIGH
    if adjustment_count > 20 and related_issues > 2:
        return TrainingPriority.MEDIUM
    return TrainingPriority.LOW


def training_recommendations(adjustment_count: int, related_issues: int, priority: TrainingPriority) -> list[str]:
    recommendations = []
    if adjustment_count > 30:
        recommendations.append("Refresh on proper adjustment procedures")
    if related_issues > 3:
        recommendations.append("Review accuracy and attention to detail")
    if priority == TrainingPriority.HIGH:
        recommendations.append("Shadow experienced operator for 1 shift")
        recommendations.append("Review with supervisor")
    if not recommendations:
        recommendations.append("Monitor performance - no immediate action needed")
    return recommendations


async def build_training_flags(db: AsyncSession, days: int = 30, now: datetime | None = None) -> dict[str, Any]:
    """
    Operator adjustment activity over the trailing window, regardless of
    discrepancy status. Only operators with more than 10 adjustments appear.
    """
    now = now or datetime.utcnow()
    date_from = now - timedelta(days=days)

    adjustment_count = func.count().label("adjustment_count")
    adj_result = await db.execute(
        select(
            AdjustmentSnapshot.user_id,
            adjustment_count,
            func.sum(func.abs(AdjustmentSnapshot.adjustment_qty)).label("total_adjusted"),
            func.count(distinct(AdjustmentSnapshot.location_code)).label("locations_touched"),
            func.count(distinct(AdjustmentSnapshot.sku)).label("skus_touched"),
        )
        .where(
            AdjustmentSnapshot.adjustment_date >= date_from,
            AdjustmentSnapshot.user_id.is_not(None),
        )
        .group_by(AdjustmentSnapshot.user_id)
        .having(func.count() > TRAINING_MIN_ADJUSTMENTS)
        .order_by(adjustment_count.desc(), AdjustmentSnapshot.user_id)
    )
    operator_rows = adj_result.all()

    issues_by_user: dict[str, int] = {}
    names: dict[str, str | None] = {}
    if operator_rows:
        user_ids = [row.user_id for row in operator_rows]
        issue_result = await db.execute(
            select(Investigation.user_id, func.count().label("issue_count"))
            .join(Discrepancy, Discrepancy.discrepancy_id == Investigation.discrepancy_id)
            .where(Investigation.created_at >= date_from, Investigation.user_id.in_(user_ids))
            .group_by(Investigation.user_id)
        )
        issues_by_user = {row.user_id: int(row.issue_count) for row in issue_result.all()}

        name_result = await db.execute(select(Operator.user_id, Operator.full_name).where(Operator.user_id.in_(user_ids)))
        names = {row.user_id: row.full_name for row in name_result.all()}

    operators = []
    for row in operator_rows:
        count = int(row.adjustment_count)
        related = issues_by_user.get(row.user_id, 0)
        priority = training_priority(count, related)
        operators.append(
            {
                "user_id": row.user_id,
                "operator_name": names.get(row.user_id),
                "adjustment_count": count,
                "total_adjusted": float(row.total_adjusted or 0),
                "locations_touched": int(row.locations_touched),
                "skus_touched": int(row.skus_touched),
                "related_issues": related,
                "training_priority": priority.value,
                "recommended_training": training_recommendations(count, related, priority),
            }
        )

    flagged = sum(1 for op in operators if op["training_priority"] != TrainingPriority.LOW.value)
    logger.info("actions.training_flags.built", days=days, operators=len(operators), flagged=flagged)

    return {
        "generated_at": now,
        "period": {"from": date_from, "to": now},
        "flag_count": flagged,
        "operators": operators,
    }

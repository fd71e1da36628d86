"""
Cycle count prioritization score.

score = severity band + variance value band + age band

  severity:        critical 100, high 75, medium 50, anything else 25
  variance value:  |value| > 1000 → +50, |value| > 100 → +25
  age:             open longer than the stale window (7 days) → +25

Scores map to display labels: >= 100 URGENT, >= 75 HIGH, >= 50 MEDIUM,
otherwise LOW. Equal scores are ordered oldest first, then by id, so a
list is stable across runs.
"""

from datetime import datetime, timedelta
from typing import Any

from actions.rules import enum_value
from actions.types import Priority, Severity

SEVERITY_POINTS = {
    Severity.CRITICAL.value: 100,
    Severity.HIGH.value: 75,
    Severity.MEDIUM.value: 50,
}
DEFAULT_SEVERITY_POINTS = 25

# (threshold, points), checked in order, strictly greater than
VARIANCE_VALUE_BANDS = ((1000, 50), (100, 25))

AGE_POINTS = 25
DEFAULT_STALE_DAYS = 7

LABEL_THRESHOLDS = (
    (100, Priority.URGENT),
    (75, Priority.HIGH),
    (50, Priority.MEDIUM),
)


def score_discrepancy(
    severity: Any,
    variance_value: float | None,
    created_at: datetime | None,
    *,
    now: datetime | None = None,
    stale_days: int = DEFAULT_STALE_DAYS,
) -> int:
    """Additive urgency score for one open discrepancy."""
    score = SEVERITY_POINTS.get(enum_value(severity), DEFAULT_SEVERITY_POINTS)

    if variance_value is not None:
        magnitude = abs(variance_value)
        for threshold, points in VARIANCE_VALUE_BANDS:
            if magnitude > threshold:
                score += points
                break

    if created_at is not None:
        now = now or datetime.utcnow()
        if created_at < now - timedelta(days=stale_days):
            score += AGE_POINTS

    return score


def priority_for_score(score: int) -> Priority:
    for threshold, priority in LABEL_THRESHOLDS:
        if score >= threshold:
            return priority
    return Priority.LOW


def priority_label(score: int) -> str:
    """Display label (URGENT/HIGH/MEDIUM/LOW) for a score."""
    return priority_for_score(score).label


def severity_rank(severity: Any) -> int:
    """0 for critical through 3 for low; unknown severities sort last."""
    try:
        return Severity(enum_value(severity)).rank
    except ValueError:
        return len(Severity)


def tie_break_key(score: int, created_at: datetime | None, ident: Any) -> tuple:
    """Sort key: highest score first, then oldest, then id."""
    return (-score, created_at or datetime.max, str(ident))


def score_bounds(priority: Priority) -> tuple[int | None, int | None]:
    """Inclusive lower and exclusive upper score bound of a display priority."""
    upper = None
    for threshold, label in LABEL_THRESHOLDS:
        if label == priority:
            return threshold, upper
        upper = threshold
    return None, upper

"""
Action Rules — map one discrepancy to the remediation actions it warrants.

Rules are applied independently, so a single discrepancy can yield several
actions:

  - cycle_count:       always (URGENT when critical, otherwise HIGH)
  - supervisor_alert:  severity is critical
  - hold_inventory:    negative on-hand
  - location_audit:    adjustment spikes and gradual drift

Pure functions only. Persistence lives in actions.engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from actions.types import ActionType, DiscrepancyType, Priority, Severity

# Variance in units is converted to an impact estimate at this rate when
# the discrepancy carries no currency value.
UNIT_IMPACT_MULTIPLIER = 10

LOCATION_AUDIT_TRIGGERS = frozenset({DiscrepancyType.ADJUSTMENT_SPIKE.value, DiscrepancyType.DRIFT_DETECTED.value})


class DiscrepancyLike(Protocol):
    sku: str
    location_code: str
    discrepancy_type: str
    severity: str
    variance: float
    variance_value: float | None
    description: str | None


@dataclass(frozen=True)
class CandidateAction:
    """An action the rules recommend, before it is persisted."""

    action_type: ActionType
    priority: Priority
    description: str
    instructions: str
    estimated_impact: float


def enum_value(value: Any) -> Any:
    """Plain value of an enum member; anything else passes through."""
    return value.value if isinstance(value, Enum) else value


def _format_qty(value: Any) -> str:
    if value is None:
        return "0"
    number = float(value)
    return str(int(number)) if number.is_integer() else f"{number:g}"


def _cycle_count(d: DiscrepancyLike, severity: str, dtype: str) -> CandidateAction:
    if d.variance_value is not None:
        impact = abs(d.variance_value)
    else:
        impact = abs(d.variance or 0) * UNIT_IMPACT_MULTIPLIER
    return CandidateAction(
        action_type=ActionType.CYCLE_COUNT,
        priority=Priority.URGENT if severity == Severity.CRITICAL.value else Priority.HIGH,
        description=f"Verify {d.sku} at {d.location_code}",
        instructions=(
            f"Count inventory at location {d.location_code}. "
            f"System shows variance of {_format_qty(d.variance)} ({dtype}). "
            "Report actual quantity found."
        ),
        estimated_impact=float(impact),
    )


def _supervisor_alert(d: DiscrepancyLike, dtype: str) -> CandidateAction:
    detail = f" {d.description}" if getattr(d, "description", None) else ""
    return CandidateAction(
        action_type=ActionType.SUPERVISOR_ALERT,
        priority=Priority.URGENT,
        description=f"Critical inventory issue: {dtype} for {d.sku} at {d.location_code}",
        instructions=(
            "Investigate critical discrepancy immediately. "
            f"Variance of {_format_qty(d.variance)} on {d.sku} at {d.location_code}.{detail}"
        ),
        estimated_impact=float(abs(d.variance_value)) if d.variance_value is not None else 0.0,
    )


def _hold_inventory(d: DiscrepancyLike, dtype: str) -> CandidateAction:
    return CandidateAction(
        action_type=ActionType.HOLD_INVENTORY,
        priority=Priority.URGENT,
        description=f"Hold orders for {d.sku} pending investigation",
        instructions=(
            f"Do not allocate or pick {d.sku} from {d.location_code} until inventory is verified. "
            f"System shows {dtype} with variance of {_format_qty(d.variance)}."
        ),
        estimated_impact=0.0,
    )


def _location_audit(d: DiscrepancyLike, dtype: str) -> CandidateAction:
    return CandidateAction(
        action_type=ActionType.LOCATION_AUDIT,
        priority=Priority.HIGH,
        description=f"Audit location {d.location_code}",
        instructions=(
            f"Physical audit of {d.location_code} after {dtype} on {d.sku} "
            f"(variance {_format_qty(d.variance)}). Check: label visibility, physical condition, "
            "adjacent locations, slotting appropriateness."
        ),
        estimated_impact=0.0,
    )


def evaluate(discrepancy: DiscrepancyLike) -> list[CandidateAction]:
    """Return every action the rules recommend for a discrepancy, in rule order."""
    severity = enum_value(discrepancy.severity)
    dtype = enum_value(discrepancy.discrepancy_type)

    candidates = [_cycle_count(discrepancy, severity, dtype)]

    if severity == Severity.CRITICAL.value:
        candidates.append(_supervisor_alert(discrepancy, dtype))

    if dtype == DiscrepancyType.NEGATIVE_ON_HAND.value:
        candidates.append(_hold_inventory(discrepancy, dtype))

    if dtype in LOCATION_AUDIT_TRIGGERS:
        candidates.append(_location_audit(discrepancy, dtype))

    return candidates

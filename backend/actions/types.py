"""
Closed value sets shared by the action engine, the ORM and the API.
"""

from enum import Enum, IntEnum


class ActionType(str, Enum):
    """Kinds of remediation the engine can recommend."""

    CYCLE_COUNT = "cycle_count"
    PHYSICAL_AUDIT = "physical_audit"
    LOCATION_AUDIT = "location_audit"
    RESLOT = "reslot"
    TRAINING = "training"
    PROCESS_REVIEW = "process_review"
    ADJUSTMENT = "adjustment"
    INVESTIGATION = "investigation"
    SUPERVISOR_ALERT = "supervisor_alert"
    HOLD_INVENTORY = "hold_inventory"


class Priority(IntEnum):
    """Work priority. Lower numbers are more urgent."""

    URGENT = 1  # Do today
    HIGH = 2  # Do this week
    MEDIUM = 3  # Schedule this month
    LOW = 4  # When convenient

    @property
    def label(self) -> str:
        return self.name


class ActionStatus(str, Enum):
    PENDING = "PENDING"
    EXPORTED = "EXPORTED"
    COMPLETED = "COMPLETED"


class DiscrepancyType(str, Enum):
    NEGATIVE_ON_HAND = "negative_on_hand"
    TRANSACTION_GAP = "transaction_gap"
    CYCLE_COUNT_VARIANCE = "cycle_count_variance"
    ADJUSTMENT_SPIKE = "adjustment_spike"
    DRIFT_DETECTED = "drift_detected"
    UNEXPLAINED_OVERAGE = "unexplained_overage"
    OTHER = "other"


class DiscrepancyStatus(str, Enum):
    OPEN = "OPEN"
    INVESTIGATING = "INVESTIGATING"
    INVESTIGATED = "INVESTIGATED"
    RESOLVED = "RESOLVED"


class Severity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, critical first."""
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class TrainingPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ExportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


def sql_in_list(enum_cls: type[Enum]) -> str:
    """Render an enum's values as a SQL IN list for CheckConstraints."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)

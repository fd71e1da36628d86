"""
FlowLogic Database Models

Tables:
  Reference (read-only to the action engine):
  1. locations             - Warehouse locations and their zones
  2. products              - Product master (name, category, cost)
  3. operators             - Warehouse users who post adjustments
  4. discrepancies         - Detected inventory mismatches
  5. adjustment_snapshots  - Inventory adjustments ingested from the WMS
  6. investigations        - Root-cause investigations on discrepancies

  Action Engine (owned):
  7. action_recommendations - Generated remediation tasks and their lifecycle
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
    types,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import relationship


class GUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL UUID when available, stores as CHAR(36) on SQLite.
    """

    impl = types.String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PG_UUID(as_uuid=True))
        return dialect.type_descriptor(types.String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if dialect.name == "postgresql":
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        return str(value) if isinstance(value, uuid.UUID) else value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))



from actions.types import ActionStatus, ActionType, DiscrepancyStatus, DiscrepancyType, Severity, sql_in_list
from db.session import Base

# ─── 1. Locations ──────────────────────────────────────────────────────────


class Location(Base):
    __tablename__ = "locations"

    code = Column(String(50), primary_key=True)
    zone = Column(String(50))
    location_type = Column(String(30))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_locations_zone", "zone"),)


# ─── 2. Products ───────────────────────────────────────────────────────────


class Product(Base):
    __tablename__ = "products"

    sku = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    category = Column(String(100))
    cost = Column(Float)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# ─── 3. Operators ──────────────────────────────────────────────────────────


class Operator(Base):
    __tablename__ = "operators"

    user_id = Column(String(100), primary_key=True)
    full_name = Column(String(255))
    email = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


# ─── 4. Discrepancies ──────────────────────────────────────────────────────


class Discrepancy(Base):
    """Inventory mismatch for a SKU at a location. Never written by the action engine."""

    __tablename__ = "discrepancies"

    discrepancy_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    sku = Column(String(100), nullable=False)
    location_code = Column(String(50), nullable=False)
    discrepancy_type = Column(String(30), nullable=False)
    severity = Column(String(20), nullable=False)
    expected_qty = Column(Float)
    actual_qty = Column(Float)
    variance = Column(Float, nullable=False, default=0)  # actual - expected
    variance_percent = Column(Float)
    variance_value = Column(Float)  # currency-equivalent, signed
    description = Column(Text)
    status = Column(String(20), nullable=False, default=DiscrepancyStatus.OPEN.value)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_discrepancies_status", "status", "severity", "created_at"),
        Index("ix_discrepancies_location", "location_code"),
        Index("ix_discrepancies_sku", "sku"),
        CheckConstraint(f"discrepancy_type IN ({sql_in_list(DiscrepancyType)})", name="ck_discrepancy_type"),
        CheckConstraint(f"severity IN ({sql_in_list(Severity)})", name="ck_discrepancy_severity"),
        CheckConstraint(f"status IN ({sql_in_list(DiscrepancyStatus)})", name="ck_discrepancy_status"),
    )

    investigations = relationship("Investigation", back_populates="discrepancy")


# ─── 5. Adjustment Snapshots ───────────────────────────────────────────────


class AdjustmentSnapshot(Base):
    __tablename__ = "adjustment_snapshots"

    adjustment_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(100), ForeignKey("operators.user_id"))
    sku = Column(String(100), nullable=False)
    location_code = Column(String(50), nullable=False)
    adjustment_qty = Column(Float, nullable=False)
    reason = Column(String(100))
    adjustment_date = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_adjustments_user_date", "user_id", "adjustment_date"),)


# ─── 6. Investigations ─────────────────────────────────────────────────────


class Investigation(Base):
    __tablename__ = "investigations"

    investigation_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    discrepancy_id = Column(GUID(), ForeignKey("discrepancies.discrepancy_id"), nullable=False)
    user_id = Column(String(100), ForeignKey("operators.user_id"))
    root_cause = Column(Text)
    category = Column(String(50))
    status = Column(String(20), nullable=False, default="IN_PROGRESS")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (Index("ix_investigations_user_time", "user_id", "created_at"),)

    discrepancy = relationship("Discrepancy", back_populates="investigations")


# ─── 7. Action Recommendations ─────────────────────────────────────────────


class ActionRecommendation(Base):
    """A generated remediation task. At most one per (discrepancy, action type)."""

    __tablename__ = "action_recommendations"

    action_id = Column(GUID(), primary_key=True, default=uuid.uuid4)
    action_type = Column(String(30), nullable=False)
    priority = Column(Integer, nullable=False)
    description = Column(Text, nullable=False)
    instructions = Column(Text)
    # Weak reference: the discrepancy may be resolved independently
    discrepancy_id = Column(GUID(), ForeignKey("discrepancies.discrepancy_id"))
    sku = Column(String(100))
    location_code = Column(String(50))
    estimated_impact = Column(Float, nullable=False, default=0)
    status = Column(String(20), nullable=False, default=ActionStatus.PENDING.value)
    notes = Column(Text)
    completed_by = Column(String(255))
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    completed_at = Column(DateTime)
    exported_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint("discrepancy_id", "action_type", name="uq_action_per_discrepancy_type"),
        Index("ix_actions_status_priority", "status", "priority", "created_at"),
        CheckConstraint(f"action_type IN ({sql_in_list(ActionType)})", name="ck_action_type"),
        CheckConstraint(f"status IN ({sql_in_list(ActionStatus)})", name="ck_action_status"),
        CheckConstraint("priority BETWEEN 1 AND 4", name="ck_action_priority"),
        CheckConstraint("estimated_impact >= 0", name="ck_action_impact_non_negative"),
    )

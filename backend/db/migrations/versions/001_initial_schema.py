"""
Initial schema - reference tables and action recommendations

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # 1. Locations
    op.create_table(
        "locations",
        sa.Column("code", sa.String(50), primary_key=True),
        sa.Column("zone", sa.String(50)),
        sa.Column("location_type", sa.String(30)),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_locations_zone", "locations", ["zone"])

    # 2. Products
    op.create_table(
        "products",
        sa.Column("sku", sa.String(100), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("category", sa.String(100)),
        sa.Column("cost", sa.Float),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # 3. Operators
    op.create_table(
        "operators",
        sa.Column("user_id", sa.String(100), primary_key=True),
        sa.Column("full_name", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # 4. Discrepancies
    op.create_table(
        "discrepancies",
        sa.Column("discrepancy_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("location_code", sa.String(50), nullable=False),
        sa.Column("discrepancy_type", sa.String(30), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("expected_qty", sa.Float),
        sa.Column("actual_qty", sa.Float),
        sa.Column("variance", sa.Float, nullable=False, server_default="0"),
        sa.Column("variance_percent", sa.Float),
        sa.Column("variance_value", sa.Float),
        sa.Column("description", sa.Text),
        sa.Column("status", sa.String(20), nullable=False, server_default="OPEN"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "discrepancy_type IN ('negative_on_hand', 'transaction_gap', 'cycle_count_variance', "
            "'adjustment_spike', 'drift_detected', 'unexplained_overage', 'other')",
            name="ck_discrepancy_type",
        ),
        sa.CheckConstraint("severity IN ('critical', 'high', 'medium', 'low')", name="ck_discrepancy_severity"),
        sa.CheckConstraint(
            "status IN ('OPEN', 'INVESTIGATING', 'INVESTIGATED', 'RESOLVED')", name="ck_discrepancy_status"
        ),
    )
    op.create_index("ix_discrepancies_status", "discrepancies", ["status", "severity", "created_at"])
    op.create_index("ix_discrepancies_location", "discrepancies", ["location_code"])
    op.create_index("ix_discrepancies_sku", "discrepancies", ["sku"])

    # 5. Adjustment snapshots
    op.create_table(
        "adjustment_snapshots",
        sa.Column("adjustment_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("user_id", sa.String(100), sa.ForeignKey("operators.user_id")),
        sa.Column("sku", sa.String(100), nullable=False),
        sa.Column("location_code", sa.String(50), nullable=False),
        sa.Column("adjustment_qty", sa.Float, nullable=False),
        sa.Column("reason", sa.String(100)),
        sa.Column("adjustment_date", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_adjustments_user_date", "adjustment_snapshots", ["user_id", "adjustment_date"])

    # 6. Investigations
    op.create_table(
        "investigations",
        sa.Column(
            "investigation_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")
        ),
        sa.Column(
            "discrepancy_id", UUID(as_uuid=True), sa.ForeignKey("discrepancies.discrepancy_id"), nullable=False
        ),
        sa.Column("user_id", sa.String(100), sa.ForeignKey("operators.user_id")),
        sa.Column("root_cause", sa.Text),
        sa.Column("category", sa.String(50)),
        sa.Column("status", sa.String(20), nullable=False, server_default="IN_PROGRESS"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_investigations_user_time", "investigations", ["user_id", "created_at"])

    # 7. Action recommendations
    op.create_table(
        "action_recommendations",
        sa.Column("action_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("action_type", sa.String(30), nullable=False),
        sa.Column("priority", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("instructions", sa.Text),
        sa.Column("discrepancy_id", UUID(as_uuid=True), sa.ForeignKey("discrepancies.discrepancy_id")),
        sa.Column("sku", sa.String(100)),
        sa.Column("location_code", sa.String(50)),
        sa.Column("estimated_impact", sa.Float, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text),
        sa.Column("completed_by", sa.String(255)),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("completed_at", sa.DateTime),
        sa.Column("exported_at", sa.DateTime),
        sa.UniqueConstraint("discrepancy_id", "action_type", name="uq_action_per_discrepancy_type"),
        sa.CheckConstraint(
            "action_type IN ('cycle_count', 'physical_audit', 'location_audit', 'reslot', 'training', "
            "'process_review', 'adjustment', 'investigation', 'supervisor_alert', 'hold_inventory')",
            name="ck_action_type",
        ),
        sa.CheckConstraint("status IN ('PENDING', 'EXPORTED', 'COMPLETED')", name="ck_action_status"),
        sa.CheckConstraint("priority BETWEEN 1 AND 4", name="ck_action_priority"),
        sa.CheckConstraint("estimated_impact >= 0", name="ck_action_impact_non_negative"),
    )
    op.create_index("ix_actions_status_priority", "action_recommendations", ["status", "priority", "created_at"])


def downgrade() -> None:
    tables = [
        "action_recommendations",
        "investigations",
        "adjustment_snapshots",
        "discrepancies",
        "operators",
        "products",
        "locations",
    ]
    for table in tables:
        op.drop_table(table)

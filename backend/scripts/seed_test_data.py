"""
Seed Test Data — Creates demo warehouse data for development.

Run: python scripts/seed_test_data.py
"""

import asyncio
import random
from datetime import datetime, timedelta

from core.config import get_settings
from db.models import AdjustmentSnapshot, Discrepancy, Investigation, Location, Operator, Product
from db.session import build_engine, session_factory

settings = get_settings()

ZONES = ["PICK-A", "PICK-B", "PICK-C", "BULK-A", "BULK-B"]
CATEGORIES = ["Hardware", "Electrical", "Plumbing", "Fasteners", "Safety"]
REASONS = ["Damaged", "Cycle Count", "Receiving Error", "Pick Short", "Customer Return"]

DISCREPANCIES = [
    # (type, severity, sku, location, expected, actual, value, days_ago, description)
    ("negative_on_hand", "critical", "SKU-001", "PICK-A-01-01", 0, -5, 125.0, 2,
     "Negative on-hand quantity detected. System shows -5 units which is physically impossible."),
    ("cycle_count_variance", "high", "SKU-005", "BULK-B-02-03", 100, 73, 675.0, 1,
     "Cycle count revealed 27% shortage. System showed 100 units, physical count found 73."),
    ("unexplained_overage", "medium", "SKU-012", "PICK-C-01-02", 50, 62, 180.0, 3,
     "Unexplained overage of 12 units. No receiving transactions found to explain increase."),
    ("adjustment_spike", "medium", "SKU-008", "PICK-A-03-01", None, None, 900.0, 5,
     "Unusual adjustment activity detected. 8 adjustments totaling 45 units in past 7 days."),
    ("drift_detected", "low", "SKU-020", "BULK-A-01-01", 500, 467, 330.0, 0,
     "Gradual inventory drift detected over 30 days. No single event explains 33-unit decline."),
    ("transaction_gap", "high", "SKU-005", "PICK-B-02-01", 40, 31, 225.0, 9,
     "Picks recorded without matching replenishment."),
    ("drift_detected", "medium", "SKU-005", "PICK-C-03-02", 80, 71, 225.0, 12,
     "Slow decline without matching transactions."),
]


async def seed_data():
    """Create demo data for development."""
    engine = build_engine(settings.database_url)
    SessionLocal = session_factory(engine)

    async with SessionLocal() as db:
        # ── Locations ────────────────────────────────────────
        location_codes = set()
        for zone in ZONES:
            for aisle in range(1, 4):
                for slot in range(1, 4):
                    code = f"{zone}-{aisle:02d}-{slot:02d}"
                    location_codes.add(code)
                    db.add(Location(code=code, zone=zone, location_type=zone.split("-")[0].lower()))

        # ── Products ─────────────────────────────────────────
        for i in range(1, 21):
            db.add(
                Product(
                    sku=f"SKU-{i:03d}",
                    name=f"Demo Item {i}",
                    category=random.choice(CATEGORIES),
                    cost=round(random.uniform(2, 80), 2),
                )
            )

        # ── Operators ────────────────────────────────────────
        operators = [
            Operator(user_id=f"user_warehouse{i}", full_name=f"Operator {i}", email=f"op{i}@flowlogic.local")
            for i in range(1, 5)
        ]
        db.add_all(operators)
        await db.flush()

        # ── Discrepancies ────────────────────────────────────
        now = datetime.utcnow()
        discrepancies = []
        for dtype, severity, sku, loc, expected, actual, value, days_ago, description in DISCREPANCIES:
            variance = (actual - expected) if expected is not None and actual is not None else 45
            disc = Discrepancy(
                discrepancy_type=dtype,
                severity=severity,
                sku=sku,
                location_code=loc,
                expected_qty=expected,
                actual_qty=actual,
                variance=variance,
                variance_percent=round(variance / expected * 100, 1) if expected else None,
                variance_value=value,
                description=description,
                created_at=now - timedelta(days=days_ago),
            )
            db.add(disc)
            discrepancies.append(disc)
        await db.flush()

        # ── Investigations ───────────────────────────────────
        db.add(
            Investigation(
                discrepancy_id=discrepancies[3].discrepancy_id,
                user_id=operators[0].user_id,
                root_cause="Training gap - new operator unfamiliar with adjustment procedures",
                category="human",
            )
        )

        # ── Adjustment history ───────────────────────────────
        codes = sorted(location_codes)
        for operator, volume in zip(operators, (60, 25, 12, 4)):
            for _ in range(volume):
                db.add(
                    AdjustmentSnapshot(
                        user_id=operator.user_id,
                        sku=f"SKU-{random.randint(1, 20):03d}",
                        location_code=random.choice(codes),
                        adjustment_qty=random.randint(-10, 10),
                        reason=random.choice(REASONS),
                        adjustment_date=now - timedelta(days=random.randint(0, 29)),
                    )
                )

        await db.commit()
        print(f"✅ Seeded: {len(codes)} locations, 20 products, {len(discrepancies)} discrepancies, {len(operators)} operators")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_data())

"""
Tests for the work list builders: cycle counts, audits, re-slotting, training.
"""

from datetime import timedelta

import pytest
from sqlalchemy import select

from actions.lists import (
    AUDIT_CHECKLIST,
    build_audit_list,
    build_cycle_count_list,
    build_reslot_suggestions,
    build_training_flags,
    cycle_count_reason,
    priority_score_expression,
    reslot_recommendation,
    training_priority,
    training_recommendations,
)
from actions.scoring import score_discrepancy, tie_break_key
from actions.types import Priority, TrainingPriority
from db.models import Discrepancy, Investigation
from factories import NOW, make_adjustments, make_discrepancy


@pytest.mark.asyncio
class TestCycleCountList:
    async def _seed(self, db):
        critical = make_discrepancy(severity="critical", variance_value=50.0, created_at=NOW - timedelta(days=1))
        stale_medium = make_discrepancy(
            severity="medium",
            sku="SKU-005",
            location_code="BULK-B-02-03",
            variance=-27,
            variance_value=500.0,
            created_at=NOW - timedelta(days=8),
        )
        low = make_discrepancy(severity="low", sku="SKU-012", location_code="PICK-A-01-02", created_at=NOW)
        resolved = make_discrepancy(severity="high", status="RESOLVED")
        db.add_all([critical, stale_medium, low, resolved])
        await db.commit()
        return critical, stale_medium, low

    async def test_empty_envelope(self, test_db):
        result = await build_cycle_count_list(test_db, now=NOW)

        assert result["task_count"] == 0
        assert result["tasks"] == []
        assert result["generated_at"] == NOW

    async def test_ranked_by_score_then_oldest(self, seeded_db, test_db):
        critical, stale_medium, low = await self._seed(test_db)

        result = await build_cycle_count_list(test_db, now=NOW)

        tasks = result["tasks"]
        assert result["task_count"] == 3
        assert [t["discrepancy_id"] for t in tasks] == [
            str(stale_medium.discrepancy_id),
            str(critical.discrepancy_id),
            str(low.discrepancy_id),
        ]
        assert [t["sequence"] for t in tasks] == [1, 2, 3]
        assert [t["priority_score"] for t in tasks] == [100, 100, 25]
        assert [t["priority"] for t in tasks] == ["URGENT", "URGENT", "LOW"]
        assert [t["reason"] for t in tasks] == [
            "High value variance",
            "Critical discrepancy",
            "Standard verification",
        ]

    async def test_task_carries_zone_and_cost(self, seeded_db, test_db):
        await self._seed(test_db)

        result = await build_cycle_count_list(test_db, now=NOW)

        first = result["tasks"][0]
        assert first["zone"] == "BULK"
        assert first["product_cost"] == 0.05
        assert first["expected_variance"] == -27.0
        assert first["location_code"] == "BULK-B-02-03"
        assert first["sku"] == "SKU-005"

    async def test_unknown_location_still_listed(self, test_db):
        test_db.add(make_discrepancy(location_code="NOWHERE"))
        await test_db.commit()

        result = await build_cycle_count_list(test_db, now=NOW)

        assert result["tasks"][0]["zone"] is None
        assert result["tasks"][0]["product_cost"] is None

    async def test_zone_filter(self, seeded_db, test_db):
        await self._seed(test_db)

        result = await build_cycle_count_list(test_db, zone="PICK", now=NOW)

        assert {t["location_code"] for t in result["tasks"]} == {"PICK-A-01-01", "PICK-A-01-02"}

    async def test_priority_filter(self, seeded_db, test_db):
        _, _, low = await self._seed(test_db)

        result = await build_cycle_count_list(test_db, priority=Priority.LOW, now=NOW)

        assert [t["discrepancy_id"] for t in result["tasks"]] == [str(low.discrepancy_id)]

    async def test_max_tasks_caps_after_sorting(self, seeded_db, test_db):
        _, stale_medium, _ = await self._seed(test_db)

        result = await build_cycle_count_list(test_db, max_tasks=1, now=NOW)

        assert result["task_count"] == 1
        assert result["tasks"][0]["discrepancy_id"] == str(stale_medium.discrepancy_id)

    async def test_priority_filter_uses_score_range(self, seeded_db, test_db):
        # medium (50) + value band (25) = 75, the bottom of HIGH
        high = make_discrepancy(severity="medium", variance_value=150.0, created_at=NOW - timedelta(days=1))
        test_db.add(high)
        await self._seed(test_db)

        result = await build_cycle_count_list(test_db, priority=Priority.HIGH, now=NOW)

        assert [t["discrepancy_id"] for t in result["tasks"]] == [str(high.discrepancy_id)]
        assert result["tasks"][0]["priority_score"] == 75

    async def test_sql_score_matches_reference(self, test_db):
        values = [None, 0.0, 100.0, -100.5, 1000.0, 1000.01, -5000.0]
        ages = [timedelta(days=1), timedelta(days=7), timedelta(days=8)]
        test_db.add_all(
            make_discrepancy(severity=severity, variance_value=value, created_at=NOW - age)
            for severity in ("critical", "high", "medium", "low")
            for value in values
            for age in ages
        )
        await test_db.commit()

        stale_before = NOW - timedelta(days=7)
        rows = (await test_db.execute(select(Discrepancy, priority_score_expression(stale_before)))).all()

        assert len(rows) == 84
        for disc, points in rows:
            assert points == score_discrepancy(disc.severity, disc.variance_value, disc.created_at, now=NOW)

        result = await build_cycle_count_list(test_db, max_tasks=500, now=NOW)
        expected = sorted(
            rows,
            key=lambda row: tie_break_key(row[1], row[0].created_at, row[0].discrepancy_id),
        )
        assert [t["discrepancy_id"] for t in result["tasks"]] == [str(disc.discrepancy_id) for disc, _ in expected]


class TestCycleCountReason:
    def test_reason_precedence(self):
        assert cycle_count_reason("critical", 5000) == "Critical discrepancy"
        assert cycle_count_reason("high", 100.5) == "High value variance"
        assert cycle_count_reason("high", 100) == "Standard verification"
        assert cycle_count_reason("low", None) == "Standard verification"


@pytest.mark.asyncio
class TestAuditList:
    async def test_empty_envelope(self, test_db):
        result = await build_audit_list(test_db, now=NOW)
        assert result == {"generated_at": NOW, "location_count": 0, "locations": []}

    async def test_repeated_or_serious_locations_only(self, test_db):
        test_db.add_all(
            [
                # Two medium issues
                make_discrepancy(location_code="LOC-A", discrepancy_type="other", created_at=NOW - timedelta(days=4)),
                make_discrepancy(location_code="LOC-A", discrepancy_type="drift_detected", created_at=NOW - timedelta(days=2)),
                # One high issue
                make_discrepancy(location_code="LOC-B", severity="high", discrepancy_type="transaction_gap"),
                # One medium issue, plus a resolved high one that must not count
                make_discrepancy(location_code="LOC-C"),
                make_discrepancy(location_code="LOC-C", severity="high", status="RESOLVED"),
                # Critical plus low
                make_discrepancy(location_code="LOC-D", severity="critical", discrepancy_type="negative_on_hand"),
                make_discrepancy(location_code="LOC-D", severity="low", discrepancy_type="negative_on_hand"),
            ]
        )
        await test_db.commit()

        result = await build_audit_list(test_db, now=NOW)

        codes = [loc["location_code"] for loc in result["locations"]]
        assert codes == ["LOC-D", "LOC-B", "LOC-A"]
        assert result["location_count"] == 3

        by_code = {loc["location_code"]: loc for loc in result["locations"]}
        assert by_code["LOC-D"]["issue_count"] == 2
        assert by_code["LOC-D"]["serious_issue_count"] == 1
        assert by_code["LOC-D"]["issue_types"] == ["negative_on_hand"]
        assert by_code["LOC-A"]["serious_issue_count"] == 0
        assert by_code["LOC-A"]["issue_types"] == ["drift_detected", "other"]
        assert by_code["LOC-A"]["oldest_issue"] == NOW - timedelta(days=4)
        assert by_code["LOC-B"]["audit_checklist"] == list(AUDIT_CHECKLIST)

    async def test_max_locations(self, test_db):
        test_db.add_all([make_discrepancy(location_code=f"LOC-{i}", severity="critical") for i in range(5)])
        await test_db.commit()

        result = await build_audit_list(test_db, max_locations=2, now=NOW)

        assert [loc["location_code"] for loc in result["locations"]] == ["LOC-0", "LOC-1"]


class TestAuditChecklist:
    def test_checklist_is_fixed(self):
        assert len(AUDIT_CHECKLIST) == 6
        assert AUDIT_CHECKLIST[0] == "Verify location label is readable and correct"


@pytest.mark.asyncio
class TestReslotSuggestions:
    async def test_empty_envelope(self, test_db):
        result = await build_reslot_suggestions(test_db, now=NOW)
        assert result == {"generated_at": NOW, "suggestion_count": 0, "suggestions": []}

    async def test_skus_spread_across_locations(self, seeded_db, test_db):
        test_db.add_all(
            [make_discrepancy(sku="SKU-005", location_code=f"LOC-{i}", variance=-2) for i in range(4)]
            + [make_discrepancy(sku="SKU-005", location_code="LOC-0", variance=1)]
            + [
                make_discrepancy(sku="SKU-001", location_code="LOC-0", variance=-3),
                make_discrepancy(sku="SKU-001", location_code="LOC-1", variance=4),
            ]
            # Same location twice is not spread
            + [make_discrepancy(sku="SKU-012", location_code="LOC-9") for _ in range(2)]
        )
        await test_db.commit()

        result = await build_reslot_suggestions(test_db, now=NOW)

        assert result["suggestion_count"] == 2
        first, second = result["suggestions"]

        assert first["sku"] == "SKU-005"
        assert first["product_name"] == "Cable Tie 200mm"
        assert first["category"] == "Electrical"
        assert first["current_location_count"] == 4
        assert first["total_issues"] == 5
        assert first["total_variance"] == 9.0
        assert first["recommendation"] == "Consider consolidating to fewer locations"
        assert first["reason"] == "5 discrepancies across 4 locations"

        assert second["sku"] == "SKU-001"
        assert second["total_variance"] == 7.0
        assert second["recommendation"] == "Review slotting strategy for this SKU"

    async def test_limit(self, test_db):
        for n in range(3):
            test_db.add_all([make_discrepancy(sku=f"SKU-{n}", location_code=f"LOC-{i}") for i in range(2)])
        await test_db.commit()

        result = await build_reslot_suggestions(test_db, limit=2, now=NOW)

        assert result["suggestion_count"] == 2


class TestReslotRules:
    def test_recommendation_text(self):
        assert reslot_recommendation(2) == "Review slotting strategy for this SKU"
        assert reslot_recommendation(3) == "Review slotting strategy for this SKU"
        assert reslot_recommendation(4) == "Consider consolidating to fewer locations"


@pytest.mark.asyncio
class TestTrainingFlags:
    async def test_empty_envelope(self, test_db):
        result = await build_training_flags(test_db, days=30, now=NOW)

        assert result["operators"] == []
        assert result["flag_count"] == 0
        assert result["period"] == {"from": NOW - timedelta(days=30), "to": NOW}

    async def test_activity_floor_is_more_than_ten(self, seeded_db, test_db):
        test_db.add_all(make_adjustments("op-1", 11) + make_adjustments("op-2", 10))
        await test_db.commit()

        result = await build_training_flags(test_db, days=30, now=NOW)

        assert [op["user_id"] for op in result["operators"]] == ["op-1"]
        op = result["operators"][0]
        assert op["operator_name"] == "Alex Morgan"
        assert op["adjustment_count"] == 11
        assert op["training_priority"] == "LOW"
        assert op["recommended_training"] == ["Monitor performance - no immediate action needed"]
        assert result["flag_count"] == 0

    async def test_adjustments_outside_window_ignored(self, seeded_db, test_db):
        test_db.add_all(make_adjustments("op-1", 5) + make_adjustments("op-1", 20, days_ago=40))
        await test_db.commit()

        result = await build_training_flags(test_db, days=30, now=NOW)

        assert result["operators"] == []

    async def test_high_priority_operator(self, seeded_db, test_db):
        discrepancies = [make_discrepancy(location_code=f"LOC-{i}") for i in range(6)]
        test_db.add_all(discrepancies)
        test_db.add_all(
            Investigation(discrepancy_id=d.discrepancy_id, user_id="op-1", created_at=NOW - timedelta(days=1))
            for d in discrepancies
        )
        test_db.add_all(make_adjustments("op-1", 55) + make_adjustments("op-2", 12))
        await test_db.commit()

        result = await build_training_flags(test_db, days=30, now=NOW)

        assert [op["user_id"] for op in result["operators"]] == ["op-1", "op-2"]
        flagged = result["operators"][0]
        assert flagged["related_issues"] == 6
        assert flagged["total_adjusted"] == 110.0
        assert flagged["locations_touched"] == 4
        assert flagged["skus_touched"] == 3
        assert flagged["training_priority"] == "HIGH"
        assert flagged["recommended_training"] == [
            "Refresh on proper adjustment procedures",
            "Review accuracy and attention to detail",
            "Shadow experienced operator for 1 shift",
            "Review with supervisor",
        ]
        assert result["flag_count"] == 1

    async def test_adjustments_without_operator_ignored(self, test_db):
        test_db.add_all(make_adjustments(None, 15))
        await test_db.commit()

        result = await build_training_flags(test_db, days=30, now=NOW)

        assert result["operators"] == []


class TestTrainingRules:
    @pytest.mark.parametrize(
        "count,related,expected",
        [
            (51, 6, TrainingPriority.HIGH),
            (50, 6, TrainingPriority.MEDIUM),
            (51, 5, TrainingPriority.MEDIUM),
            (21, 3, TrainingPriority.MEDIUM),
            (21, 2, TrainingPriority.LOW),
            (20, 3, TrainingPriority.LOW),
        ],
    )
    def test_priority_tiers(self, count, related, expected):
        assert training_priority(count, related) == expected

    def test_recommendations(self):
        assert training_recommendations(31, 0, TrainingPriority.LOW) == ["Refresh on proper adjustment procedures"]
        assert training_recommendations(25, 4, TrainingPriority.MEDIUM) == ["Review accuracy and attention to detail"]
        assert training_recommendations(15, 1, TrainingPriority.LOW) == [
            "Monitor performance - no immediate action needed"
        ]

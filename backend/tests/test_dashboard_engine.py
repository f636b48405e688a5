"""
test_dashboard_engine.py — Unit tests for DashboardEngine aggregates.

Tests cover:
  - production_stats: counts per status, delay rate, machine filter
  - repair_stats: open / closed, success rate, top operators, ageing buckets
  - supplier_analytics: on-time and quality rates, empty suppliers, ordering
  - machine_breakdown: inactive machines omitted
  - percent: halves rounded up
"""

import pytest

from otgtrack.models.repair_schema import RepairStatus
from otgtrack.services.dashboard_engine import DashboardEngine, percent

TODAY = "2025-06-15"


@pytest.fixture
def engine():
    return DashboardEngine(today=TODAY)


class TestPercent:

    def test_half_rounds_up(self):
        assert percent(1, 8) == 13
        assert percent(1, 6) == 17
        assert percent(1, 3) == 33

    def test_empty_whole(self):
        assert percent(3, 0) == 0
        assert percent(3, 0, empty=100) == 100

    def test_negative_part(self):
        assert percent(-1, 2) == -50


class TestProductionStats:

    def test_counts(self, engine, sample_items):
        stats = engine.production_stats(sample_items)
        assert stats["total"] == 5
        assert stats["delayed"] == 1
        assert stats["received"] == 1
        assert stats["ordered"] == 1
        assert stats["not_ordered"] == 2
        assert stats["delay_rate"] == 20
        assert stats["delayed_ids"] == ["d2"]

    def test_machine_filter(self, engine, sample_items):
        stats = engine.production_stats(sample_items, machine="MACARBOX")
        assert stats["total"] == 3
        assert stats["delayed"] == 0

    def test_all_means_no_filter(self, engine, sample_items):
        assert engine.production_stats(sample_items, machine="all")["total"] == 5

    def test_empty(self, engine):
        stats = engine.production_stats([])
        assert stats["total"] == 0 and stats["delay_rate"] == 0


class TestRepairStats:

    @pytest.fixture
    def repairs(self, make_repair):
        return [
            make_repair(id="r1", operator="HILALI", declaration_date="2025-06-14"),
            make_repair(id="r2", operator="HILALI", declaration_date="2025-06-12"),
            make_repair(id="r3", operator="REDA", declaration_date="2025-06-08"),
            make_repair(id="r4", operator="REDA", declaration_date="2025-06-07"),
            make_repair(id="r5", operator="SAMIR", declaration_date="not a date"),
            make_repair(id="r6", operator="HILALI", declaration_date="2025-01-01",
                        status=RepairStatus.CLOSED, machine="DRO"),
        ]

    def test_counts_and_rate(self, engine, repairs):
        stats = engine.repair_stats(repairs)
        assert (stats["total"], stats["open"], stats["closed"]) == (6, 5, 1)
        assert stats["success_rate"] == 17

    def test_top_operators(self, engine, repairs):
        top = engine.repair_stats(repairs)["top_operators"]
        assert top[0] == {"name": "HILALI", "count": 3}
        assert top[1] == {"name": "REDA", "count": 2}
        assert len(top) == 3

    def test_top_operators_capped_at_five(self, engine, make_repair):
        repairs = [make_repair(operator=f"OP{i}") for i in range(8)]
        assert len(engine.repair_stats(repairs)["top_operators"]) == 5

    def test_ageing_buckets(self, engine, repairs):
        """1 day fresh; 3 and 7 days medium; 8 days old; bad date and closed skipped."""
        assert engine.repair_stats(repairs)["ageing"] == {"fresh": 1, "medium": 2, "old": 1}

    def test_machine_filter(self, engine, repairs):
        stats = engine.repair_stats(repairs, machine="DRO")
        assert stats["total"] == 1 and stats["closed"] == 1


class TestSupplierAnalytics:

    def test_scorecard(self, engine, sample_items, default_config):
        rows = engine.supplier_analytics(sample_items, default_config.suppliers)
        by_name = {r["name"]: r for r in rows}

        lte = by_name["LTE"]
        assert (lte["total"], lte["delayed"], lte["received"], lte["sav"]) == (2, 1, 1, 1)
        assert lte["on_time_rate"] == 0
        assert lte["quality_rate"] == 50

        assert by_name["CHIMO"]["total"] == 1
        assert by_name["GRABALFA"]["total"] == 1

    def test_supplier_without_dossiers_scores_100(self, engine, sample_items):
        row = engine.supplier_analytics(sample_items, ["MILLER"])[0]
        assert row["total"] == 0
        assert row["on_time_rate"] == 100 and row["quality_rate"] == 100

    def test_sorted_by_total(self, engine, sample_items, default_config):
        rows = engine.supplier_analytics(sample_items, default_config.suppliers)
        totals = [r["total"] for r in rows]
        assert totals == sorted(totals, reverse=True)
        assert rows[0]["name"] == "LTE"

    def test_on_time_rate_can_go_negative(self, engine, make_item):
        items = [
            make_item(supplier_cliche="X", is_ordered_cliche=True, date_expected_cliche="2025-01-01"),
            make_item(supplier_cliche="X", is_ordered_cliche=True, date_expected_cliche="2025-01-01"),
        ]
        assert engine.supplier_analytics(items, ["X"])[0]["on_time_rate"] == -100


class TestMachineBreakdown:

    def test_inactive_machines_omitted(self, engine, sample_items, default_config, make_repair):
        repairs = [make_repair(machine="CHROMA HQP"), make_repair(machine="DRO", status=RepairStatus.CLOSED)]
        rows = engine.machine_breakdown(sample_items, repairs, default_config.machines)
        assert [r["name"] for r in rows] == ["MACARBOX", "ASAHI CELMACH", "CHROMA HQP"]
        assert rows[0] == {"name": "MACARBOX", "received": 1, "delayed": 0, "open_repairs": 0}
        assert rows[2]["open_repairs"] == 1


class TestSummary:

    def test_summary_shape(self, engine, sample_items, default_config, make_repair):
        summary = engine.summary(
            sample_items, [make_repair()], default_config.machines, default_config.suppliers,
        )
        assert summary["today"] == TODAY
        assert set(summary) == {"today", "production", "repairs", "suppliers", "machines"}
        assert summary["production"]["total"] == 5
        assert summary["repairs"]["open"] == 1

    def test_machine_filter_keeps_supplier_scope(self, engine, sample_items, default_config):
        summary = engine.summary(sample_items, [], default_config.machines, default_config.suppliers, machine="DRO")
        assert summary["production"]["total"] == 1
        lte = next(r for r in summary["suppliers"] if r["name"] == "LTE")
        assert lte["total"] == 2

"""Tests for critical field scoring."""

from unittest.mock import MagicMock

import pytest

from impact_engine.application.queries.critical_fields import (
    CriticalFieldsInput,
    field_distribution,
    rank_fields,
    summarize_critical_fields,
)
from impact_engine.domain.entities import FieldFan
from impact_engine.domain.enums import RiskLevel, SortKey
from impact_engine.domain.exceptions import InvalidParameterError


class TestRankFields:
    def test_by_consumers(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(), fan_store)
        assert [f.field for f in ranked] == ["HUB", "MULTI", "SOLO"]
        hub = ranked[0]
        assert hub.consumer_count == 12
        assert hub.producer_count == 1
        assert hub.impact_ratio == 12.0
        assert hub.total_connections == 13

    def test_by_producers(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(sort_by="producers"), fan_store)
        assert [f.field for f in ranked] == ["MULTI", "HUB", "SOLO"]

    def test_by_ratio(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(sort_by=SortKey.RATIO), fan_store)
        assert [f.field for f in ranked] == ["HUB", "SOLO", "MULTI"]
        assert ranked[-1].impact_ratio == pytest.approx(1 / 3)

    def test_unproduced_fields_excluded(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(min_consumers=0), fan_store)
        assert "ORPHAN" not in {f.field for f in ranked}

    def test_min_consumers(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(min_consumers=2), fan_store)
        assert [f.field for f in ranked] == ["HUB"]

    def test_limit(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(limit=1), fan_store)
        assert [f.field for f in ranked] == ["HUB"]

    def test_ties_keep_source_order(self):
        graph = MagicMock()
        graph.field_fan.return_value = [
            FieldFan(field="B", producer_count=1, consumer_count=5),
            FieldFan(field="A", producer_count=1, consumer_count=5),
            FieldFan(field="C", producer_count=1, consumer_count=9),
        ]
        ranked = rank_fields(CriticalFieldsInput(), graph)
        assert [f.field for f in ranked] == ["C", "B", "A"]
        graph.field_fan.assert_called_once_with(
            min_consumers=1, min_producers=1, order_by=SortKey.CONSUMERS, limit=50
        )

    def test_ranking_pushed_to_port(self, fan_store):
        graph = MagicMock(wraps=fan_store)
        ranked = rank_fields(CriticalFieldsInput(sort_by="ratio", limit=2), graph)
        assert [f.field for f in ranked] == ["HUB", "SOLO"]
        graph.field_fan.assert_called_once_with(
            min_consumers=1, min_producers=1, order_by=SortKey.RATIO, limit=2
        )

    def test_risk_attached(self):
        graph = MagicMock()
        graph.field_fan.return_value = [
            FieldFan(field="BIG", producer_count=1, consumer_count=1500),
            FieldFan(field="SMALL", producer_count=1, consumer_count=5),
        ]
        ranked = rank_fields(CriticalFieldsInput(), graph)
        assert ranked[0].risk.level is RiskLevel.CRITICAL
        assert ranked[1].risk.level is RiskLevel.LOW


class TestCriticalFieldsInput:
    @pytest.mark.parametrize("kwargs", [
        {"min_consumers": -1},
        {"limit": 0},
        {"sort_by": "popularity"},
    ])
    def test_rejected(self, kwargs):
        with pytest.raises(InvalidParameterError):
            CriticalFieldsInput(**kwargs)


class TestFieldDistribution:
    def test_bands(self, fan_store):
        dist = field_distribution(fan_store)
        assert dist.total_fields == 3
        assert [(b.label, b.count) for b in dist.consumer_bands] == [
            ("1-9", 2),
            ("10-99", 1),
            ("100-999", 0),
            ("1000+", 0),
        ]
        assert [b.percentage for b in dist.consumer_bands] == [66.67, 33.33, 0.0, 0.0]
        assert [(b.label, b.count) for b in dist.producer_bands] == [
            ("1", 2),
            ("2-3", 1),
            ("4-5", 0),
            ("6+", 0),
        ]

    def test_band_counts_sum_to_eligible_total(self, network_store):
        dist = field_distribution(network_store)
        assert sum(b.count for b in dist.consumer_bands) == dist.total_fields == 4
        assert sum(b.percentage for b in dist.consumer_bands) == pytest.approx(100.0)

    def test_zero_eligible_fields(self):
        graph = MagicMock()
        graph.field_fan.return_value = []
        dist = field_distribution(graph)
        assert dist.total_fields == 0
        assert all(b.count == 0 and b.percentage == 0.0 for b in dist.consumer_bands)
        assert all(b.count == 0 and b.percentage == 0.0 for b in dist.producer_bands)


class TestSummarizeCriticalFields:
    def test_summary(self, fan_store):
        ranked = rank_fields(CriticalFieldsInput(), fan_store)
        summary = summarize_critical_fields(ranked, field_distribution(fan_store))
        assert summary.total_fields == 3
        assert summary.max_consumers == 12
        assert summary.average_consumers == pytest.approx(14 / 3)
        assert [f.field for f in summary.top_fields] == ["HUB", "MULTI", "SOLO"]
        assert summary.risk_counts[RiskLevel.LOW] == 3
        assert summary.distribution.total_fields == 3

    def test_empty(self):
        summary = summarize_critical_fields([])
        assert summary.total_fields == 0
        assert summary.top_fields == []
        assert summary.average_consumers == 0.0
        assert summary.max_consumers == 0

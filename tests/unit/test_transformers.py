"""Unit tests for behavior and metric row transformation."""
from dataclasses import FrozenInstanceError
from datetime import date

import pytest

from coachbridge.ingest.tracker import NormalizationTracker
from coachbridge.ingest.transformers import (
    BehaviorRecord,
    DatasetStats,
    FilteredOut,
    FilterReason,
    MetricRecord,
    RowContext,
    is_activity_program,
    transform_behavior_row,
    transform_metric_row,
)
from coachbridge.mappings.alias_rules import AliasRule, MatchType, build_resolver
from coachbridge.mappings.resolvers import STATIC_ONLY, CanonicalResolvers


def make_ctx(**overrides):
    params = dict(
        sheet_name="Sheet1",
        client="UHC",
        today=date(2025, 7, 10),
        stats=DatasetStats(),
        resolvers=STATIC_ONLY,
        tracker=NormalizationTracker(),
    )
    params.update(overrides)
    return RowContext(**params)


BEHAVIOR_ROW = {
    "Month": "Jun-25",
    "Organization": "United Health Group",
    "Program": "Retention",
    "Metric": "Chat NPS",
    "Behavior": "Empathy",
    "Sub-Behavior": "Acknowledge",
    "Coaching Count": 42,
    "Effectiveness%": "55%",
}

METRIC_ROW = {
    "Period": "Jun-25",
    "Org": "Acme Widgets",
    "Program": "Performance",
    "KPI": "Upsell Rate",
    "Actual": "1,234",
    "Goal": 1300,
    "PTG": "98%",
}


class TestBehaviorRows:
    def test_accepted_row(self):
        ctx = make_ctx()
        record = transform_behavior_row(BEHAVIOR_ROW, 0, ctx)
        assert isinstance(record, BehaviorRecord)
        assert (record.month, record.year) == ("Jun", 2025)
        assert record.client == "UHC"
        assert record.source_sheet == "Sheet1"
        assert record.source_row_number == 2
        assert record.organization == "United Health Group"
        assert record.canonical_org == "UHC"
        assert record.canonical_metric == "NPS"
        assert record.canonical_industry == "HEALTHCARE"
        assert record.coaching_count == 42
        assert record.effectiveness_pct == 55.0
        assert record.sub_behavior == "Acknowledge"
        assert record.raw["Organization"] == "United Health Group"
        assert ctx.stats == DatasetStats(total_rows=1, accepted_rows=1)

    def test_fractional_coaching_count_is_not_rounded(self):
        record = transform_behavior_row({**BEHAVIOR_ROW, "Coaching Count": "2.5"}, 0, make_ctx())
        assert record.coaching_count == 2.5

    def test_records_are_immutable_with_unique_ids(self):
        ctx = make_ctx()
        first = transform_behavior_row(BEHAVIOR_ROW, 0, ctx)
        second = transform_behavior_row(BEHAVIOR_ROW, 1, ctx)
        assert first.id != second.id
        assert second.source_row_number == 3
        with pytest.raises(FrozenInstanceError):
            first.month = "Jul"

    def test_public_dict_drops_raw(self):
        record = transform_behavior_row(BEHAVIOR_ROW, 0, make_ctx())
        data = record.to_public_dict()
        assert "raw" not in data
        assert data["canonical_org"] == "UHC"

    def test_missing_period(self):
        ctx = make_ctx()
        result = transform_behavior_row({**BEHAVIOR_ROW, "Month": "sometime"}, 4, ctx)
        assert result == FilteredOut(FilterReason.MISSING_DATA, 6)
        assert ctx.stats.filtered_missing_data == 1

    @pytest.mark.parametrize("field", ["Organization", "Program"])
    def test_missing_required_field(self, field):
        ctx = make_ctx()
        result = transform_behavior_row({**BEHAVIOR_ROW, field: None}, 0, ctx)
        assert isinstance(result, FilteredOut)
        assert ctx.stats.filtered_missing_data == 1
        assert ctx.stats.accepted_rows == 0

    def test_metric_is_optional_for_behavior_rows(self):
        row = {k: v for k, v in BEHAVIOR_ROW.items() if k != "Metric"}
        record = transform_behavior_row(row, 0, make_ctx())
        assert record.metric is None
        assert record.canonical_metric is None


class TestMetricRows:
    def test_accepted_row_with_aliases(self):
        ctx = make_ctx()
        record = transform_metric_row(METRIC_ROW, 0, ctx)
        assert isinstance(record, MetricRecord)
        assert record.metric_name == "Upsell Rate"
        assert record.actual == 1234.0
        assert record.goal == 1300.0
        assert record.ptg == 98.0
        assert record.canonical_org == "ACME WIDGETS"
        assert record.canonical_metric == "UPSELL RATE"
        assert record.canonical_industry is None
        assert record.is_activity_metric is False

    def test_missing_metric_name_is_filtered(self):
        ctx = make_ctx()
        result = transform_metric_row({**METRIC_ROW, "KPI": ""}, 0, ctx)
        assert isinstance(result, FilteredOut)
        assert ctx.stats.filtered_missing_data == 1
        assert ctx.stats.total_rows == 1

    def test_unparsable_numbers_become_none(self):
        record = transform_metric_row({**METRIC_ROW, "Actual": "n/a", "PTG": None}, 0, make_ctx())
        assert record.actual is None
        assert record.ptg is None

    def test_activity_program(self):
        record = transform_metric_row({**METRIC_ROW, "Program": "ACTIVITY METRICS"}, 0, make_ctx())
        assert record.is_activity_metric is True

    def test_custom_activity_sentinel(self):
        ctx = make_ctx(activity_program="ACTIVITY")
        assert transform_metric_row({**METRIC_ROW, "Program": "ACTIVITY"}, 0, ctx).is_activity_metric


class TestDateFilter:
    def test_skipped_by_default(self):
        ctx = make_ctx()
        assert isinstance(transform_metric_row({**METRIC_ROW, "Period": "Aug-25"}, 0, ctx), MetricRecord)

    def test_recent_month_filtered_when_enabled(self):
        ctx = make_ctx(skip_date_filter=False)
        kept = transform_metric_row(METRIC_ROW, 0, ctx)
        dropped = transform_metric_row({**METRIC_ROW, "Period": "Aug-25"}, 1, ctx)
        assert isinstance(kept, MetricRecord)
        assert dropped == FilteredOut(FilterReason.TOO_RECENT, 3)
        assert ctx.stats == DatasetStats(total_rows=2, accepted_rows=1, filtered_too_recent=1)
        assert ctx.stats.is_conserved()

    def test_period_checked_before_required_fields(self):
        ctx = make_ctx(skip_date_filter=False)
        transform_metric_row({"Period": "Aug-25"}, 0, ctx)
        assert ctx.stats.filtered_too_recent == 1
        assert ctx.stats.filtered_missing_data == 0


class TestResolutionAndTracking:
    def test_dynamic_metric_rule_wins(self):
        rules = [AliasRule("UPSELL", "upsell", MatchType.CONTAINS)]
        resolvers = CanonicalResolvers(metric=build_resolver(rules, "UHC"))
        record = transform_metric_row(METRIC_ROW, 0, make_ctx(resolvers=resolvers))
        assert record.canonical_metric == "UPSELL"

    def test_dynamic_industry_rule(self):
        rules = [AliasRule("MANUFACTURING", "acme", MatchType.CONTAINS, client_scope="UHC")]
        resolvers = CanonicalResolvers(industry=build_resolver(rules, "UHC"))
        record = transform_metric_row(METRIC_ROW, 0, make_ctx(resolvers=resolvers))
        assert record.canonical_industry == "MANUFACTURING"

    def test_tracker_events(self):
        tracker = NormalizationTracker()
        ctx = make_ctx(tracker=tracker)
        transform_behavior_row(BEHAVIOR_ROW, 0, ctx)
        transform_metric_row(METRIC_ROW, 1, ctx)
        summary = tracker.summarize()
        assert {"original": "United Health Group", "normalized": "UHC", "occurrence_count": 1} in summary.organizations
        assert summary.metrics == [{"original": "Chat NPS", "normalized": "NPS", "occurrence_count": 1}]
        assert summary.industries == [
            {"original": "United Health Group", "normalized": "HEALTHCARE", "occurrence_count": 1}
        ]
        assert summary.unmatched_metrics == [{"name": "Upsell Rate", "occurrence_count": 1}]
        assert summary.unmatched_organizations == [
            {"name": "Acme Widgets", "canonical_guess": "ACME WIDGETS", "occurrence_count": 1}
        ]


def test_is_activity_program_is_exact_and_case_sensitive():
    assert is_activity_program("ACTIVITY METRICS")
    assert not is_activity_program("Activity Metrics")
    assert not is_activity_program("ACTIVITY METRICS ")
    assert not is_activity_program(None)

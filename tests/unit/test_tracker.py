"""Unit tests for the per-session normalization tracker."""
import pytest

from coachbridge.ingest.tracker import NormalizationTracker, is_unmatched_metric


def test_unchanged_values_are_not_reported():
    tracker = NormalizationTracker()
    tracker.record_normalization("organizations", "uhc", "UHC")
    tracker.record_normalization("organizations", "United Health Group", "UHC")
    summary = tracker.summarize()
    assert summary.organizations == [{"original": "United Health Group", "normalized": "UHC", "occurrence_count": 1}]


def test_counts_are_case_insensitive_and_keep_first_casing():
    tracker = NormalizationTracker()
    tracker.record_normalization("metrics", "Chat NPS", "NPS")
    tracker.record_normalization("metrics", "chat nps", "NPS")
    tracker.record_normalization("metrics", "Average Handle Time", "AHT")
    summary = tracker.summarize()
    assert summary.metrics[0] == {"original": "Chat NPS", "normalized": "NPS", "occurrence_count": 2}
    assert summary.metrics[1]["original"] == "Average Handle Time"


def test_blank_values_are_ignored():
    tracker = NormalizationTracker()
    tracker.record_normalization("industries", None, "HEALTHCARE")
    tracker.record_normalization("industries", "UHC", None)
    tracker.record_normalization("industries", "", "")
    assert tracker.summarize().industries == []


def test_unknown_kind_rejected():
    with pytest.raises(ValueError):
        NormalizationTracker().record_normalization("programs", "a", "b")


def test_sorted_by_count_descending():
    tracker = NormalizationTracker()
    tracker.record_unmatched_metric("Upsell", "UPSELL")
    for _ in range(3):
        tracker.record_unmatched_metric("Calls Taken", "CALLS TAKEN")
    for _ in range(2):
        tracker.record_unmatched_org("Acme", "ACME")
    tracker.record_unmatched_org("Zeta", "ZETA")
    summary = tracker.summarize()
    assert [m["name"] for m in summary.unmatched_metrics] == ["Calls Taken", "Upsell"]
    assert summary.unmatched_organizations[0] == {"name": "Acme", "canonical_guess": "ACME", "occurrence_count": 2}


def test_summarize_clears_state():
    tracker = NormalizationTracker()
    tracker.record_normalization("organizations", "United Health Group", "UHC")
    tracker.record_unmatched_metric("Upsell", "UPSELL")
    first = tracker.summarize()
    second = tracker.summarize()
    assert first.organizations and first.unmatched_metrics
    assert second.to_dict() == {
        "organizations": [],
        "metrics": [],
        "industries": [],
        "unmatched_organizations": [],
        "unmatched_metrics": [],
    }


def test_is_unmatched_metric():
    assert is_unmatched_metric("upsell  rate", "UPSELL RATE")
    assert not is_unmatched_metric("Chat NPS", "NPS")
    # a table hit that equals the upper-cased input is indistinguishable from the fallback
    assert is_unmatched_metric("aht", "AHT")
    assert is_unmatched_metric("x", None)

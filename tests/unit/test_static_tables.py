"""Unit tests for the compiled-in org, metric and industry tables."""
import pytest

from coachbridge.mappings.static_tables import (
    ORG_ALIASES,
    derive_canonical_industry,
    derive_canonical_metric,
    derive_canonical_org,
)


class TestCanonicalOrg:
    def test_united_health_group_maps_to_uhc(self):
        assert derive_canonical_org("United Health Group") == "UHC"

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("unitedhealthcare", "UHC"),
            ("AT&T", "ATT MEXICO"),
            ("Sam's Club", "SAMS CLUB"),
            ("Optum Behavioral Health", "OPTUM UBH"),
            ("Teleperformance Mexico", "TP"),
            ("Coca-Cola Bottling", "COCA COLA"),
        ],
    )
    def test_aliases(self, raw, expected):
        assert derive_canonical_org(raw) == expected

    def test_unknown_org_is_uppercased_and_collapsed(self):
        assert derive_canonical_org("  Acme   widgets ") == "ACME WIDGETS"

    def test_blank_is_none(self):
        assert derive_canonical_org(None) is None
        assert derive_canonical_org("   ") is None

    @pytest.mark.parametrize("raw", ["United Health Group", "acme widgets", "AT&T", "keurig", "Extended Stay"])
    def test_idempotent(self, raw):
        once = derive_canonical_org(raw)
        assert derive_canonical_org(once) == once

    def test_every_canonical_value_is_a_fixed_point(self):
        for canonical in set(ORG_ALIASES.values()):
            assert derive_canonical_org(canonical) == canonical


class TestCanonicalMetric:
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Chat NPS", "NPS"),
            ("Net Promoter Score", "NPS"),
            ("Release Rate %", "RELEASE RATE"),
            ("release", "RELEASE RATE"),
            ("Agent Attrition", "RELEASE RATE"),
            ("AHT", "AHT"),
            ("aht  chat", "AHT"),
            ("Average Handle Time", "AHT"),
            ("Phone AHT", "AHT"),
            ("Handle Time (FA)", "AHT"),
            ("Schedule Reliability", "ATTENDANCE"),
            ("Unplanned Absenteeism", "ATTENDANCE"),
        ],
    )
    def test_families(self, raw, expected):
        assert derive_canonical_metric(raw) == expected

    def test_aht_suffix_must_be_known(self):
        assert derive_canonical_metric("AHT Weekend") == "AHT WEEKEND"

    def test_unknown_metric_defaults_to_upper(self):
        assert derive_canonical_metric("upsell   rate") == "UPSELL RATE"

    def test_blank_is_none(self):
        assert derive_canonical_metric("") is None


class TestCanonicalIndustry:
    def test_exact(self):
        assert derive_canonical_industry("UHC") == "HEALTHCARE"

    def test_substring(self):
        assert derive_canonical_industry("Verizon Wireless") == "TELECOMMUNICATIONS"
        assert derive_canonical_industry("United Health Group") == "HEALTHCARE"

    def test_unknown_is_none(self):
        assert derive_canonical_industry("Zzyzx Corp") is None
        assert derive_canonical_industry(None) is None

"""Unit tests for client-aware alias rule resolution."""
import logging

from coachbridge.mappings.alias_rules import AliasRule, MatchType, build_resolver, order_rules


def rule(canonical, pattern, match_type=MatchType.EXACT, priority=0, client=None, case_sensitive=False):
    return AliasRule(
        canonical_value=canonical,
        alias_pattern=pattern,
        match_type=match_type,
        case_sensitive=case_sensitive,
        priority=priority,
        client_scope=client,
    )


class TestInputHandling:
    def test_none_and_blank_resolve_to_none(self):
        resolve = build_resolver([rule("NPS", "nps")], "UHC")
        assert resolve(None) is None
        assert resolve("") is None
        assert resolve("   ") is None

    def test_non_string_input_is_stringified(self):
        resolve = build_resolver([rule("YEAR", "2024")], None)
        assert resolve(2024) == "YEAR"

    def test_no_match_returns_none(self):
        resolve = build_resolver([rule("NPS", "nps")], None)
        assert resolve("Handle Time") is None


class TestMatchTypes:
    def test_exact_is_case_insensitive_by_default(self):
        resolve = build_resolver([rule("AHT", "handle time")], None)
        assert resolve("  Handle TIME ") == "AHT"
        assert resolve("handle time chat") is None

    def test_exact_case_sensitive(self):
        resolve = build_resolver([rule("AHT", "AHT", case_sensitive=True)], None)
        assert resolve("AHT") == "AHT"
        assert resolve("aht") is None

    def test_contains(self):
        resolve = build_resolver([rule("CSAT", "satisfaction", MatchType.CONTAINS)], None)
        assert resolve("Customer Satisfaction Score") == "CSAT"

    def test_contains_case_sensitive(self):
        resolve = build_resolver([rule("CSAT", "SAT", MatchType.CONTAINS, case_sensitive=True)], None)
        assert resolve("TSAT score") == "CSAT"
        assert resolve("tsat score") is None

    def test_regex_uses_search_and_ignores_case(self):
        resolve = build_resolver([rule("FCR", r"first\s*call", MatchType.REGEX)], None)
        assert resolve("Team FIRST CALL resolution") == "FCR"

    def test_regex_case_sensitive(self):
        resolve = build_resolver([rule("FCR", r"^FCR$", MatchType.REGEX, case_sensitive=True)], None)
        assert resolve("FCR") == "FCR"
        assert resolve("fcr") is None

    def test_match_type_given_as_string(self):
        resolve = build_resolver([rule("CSAT", "sat", "contains")], None)
        assert resolve("csat") == "CSAT"


class TestOrdering:
    def test_client_rule_beats_global_regardless_of_priority(self):
        rules = [
            rule("GLOBAL", "nps", priority=1000),
            rule("CLIENT", "nps", priority=-5, client="UHC"),
        ]
        assert build_resolver(rules, "UHC")("nps") == "CLIENT"

    def test_rules_for_other_clients_are_excluded(self):
        rules = [rule("OTHER", "nps", priority=100, client="TP"), rule("GLOBAL", "nps")]
        assert build_resolver(rules, "UHC")("nps") == "GLOBAL"
        assert build_resolver([rule("OTHER", "nps", client="TP")], "UHC")("nps") is None

    def test_scoped_rules_excluded_without_client(self):
        assert build_resolver([rule("OTHER", "nps", client="TP")], None)("nps") is None

    def test_higher_priority_wins_within_tier(self):
        rules = [rule("LOW", "nps", MatchType.CONTAINS, priority=1), rule("HIGH", "nps", MatchType.CONTAINS, priority=9)]
        assert build_resolver(rules, None)("chat nps") == "HIGH"

    def test_ties_keep_store_order(self):
        rules = [rule("FIRST", "nps"), rule("SECOND", "nps")]
        assert build_resolver(rules, None)("nps") == "FIRST"

    def test_order_rules(self):
        rules = [
            rule("G1", "a", priority=5),
            rule("C1", "a", priority=1, client="UHC"),
            rule("X", "a", priority=99, client="TP"),
            rule("C2", "a", priority=3, client="UHC"),
            rule("G2", "a", priority=7),
        ]
        assert [r.canonical_value for r in order_rules(rules, "UHC")] == ["C2", "C1", "G2", "G1"]


class TestRegexFailures:
    def test_invalid_regex_is_skipped(self, caplog):
        rules = [
            rule("BROKEN", "([unclosed", MatchType.REGEX, priority=10),
            rule("NPS", "nps", MatchType.CONTAINS, priority=1),
        ]
        with caplog.at_level(logging.WARNING, logger="coachbridge"):
            resolve = build_resolver(rules, None)
        assert resolve("Chat NPS") == "NPS"
        assert any("Invalid regex" in r.message for r in caplog.records)

    def test_overlong_pattern_is_skipped(self):
        rules = [rule("LONG", "a" * 50, MatchType.REGEX), rule("SHORT", "a", MatchType.CONTAINS)]
        resolve = build_resolver(rules, None, max_pattern_length=10)
        assert resolve("a" * 50) == "SHORT"

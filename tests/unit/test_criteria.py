"""Unit tests for criteria query parsing and matching."""

import pytest

from swayr.errors import CriteriaError
from swayr.services.criteria import compile_criteria, parse_criteria
from swayr.services.selection import switch_to_match_or_fallback


def matching(model, query):
    predicate = compile_criteria(query, model)
    return [w.id for w in model.windows() if predicate(w)]


class TestParse:
    def test_parses_all_forms(self):
        criteria = parse_criteria('[app_id="foot" con_id=101 floating]')
        assert [c.key for c in criteria] == ["app_id", "con_id", "floating"]
        assert criteria[1].number == 101

    def test_focused_value(self):
        (criterion,) = parse_criteria("[app_id=__focused__]")
        assert criterion.focused

    @pytest.mark.parametrize(
        "query",
        [
            'app_id="foot"',
            '[app_id="foot"',
            "[app_id=foot]",
            "[con_id=abc]",
            '[bogus="x"]',
            '[floating="yes"]',
            "[pid=__focused__]",
        ],
    )
    def test_malformed_queries_raise(self, query):
        with pytest.raises(CriteriaError):
            parse_criteria(query)


class TestMatching:
    def test_app_id_regex(self, model):
        assert matching(model, '[app_id="^fire"]') == [102, 201]

    def test_criteria_are_anded(self, model):
        assert matching(model, '[app_id="foot" tiling]') == [101, 105]
        assert matching(model, '[app_id="mpv" tiling]') == []

    def test_floating_flag(self, model):
        # Scratchpad windows are floating too
        assert matching(model, "[floating]") == [90, 202]

    def test_con_mark(self, model):
        assert matching(model, '[con_mark="^we"]') == [201]

    def test_con_id_and_pid(self, model):
        assert matching(model, "[con_id=104]") == [104]
        assert matching(model, "[pid=1050]") == [105]

    def test_focused_app_id(self, model):
        assert matching(model, "[app_id=__focused__]") == [101, 105]

    def test_invalid_regex_matches_nothing(self, model):
        assert matching(model, '[title="("]') == []

    def test_switch_to_matching_window(self, model):
        predicate = compile_criteria('[app_id="emacs"]', model)
        assert switch_to_match_or_fallback(model, predicate) == 104

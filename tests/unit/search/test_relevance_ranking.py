"""Unit tests for relevance scoring and ranking."""

import pytest

from item_search.domain.model import Item
from item_search.search.ranking import dataset_lookup, rank, score


@pytest.mark.unit
class TestScore:
    def test_exact_name_phrase_scores_highest(self, scenario_items):
        assert score(scenario_items[0], "alpha beta") == pytest.approx(149.0)

    def test_reordered_words_score_lower(self, scenario_items):
        # Word hits 10, one surplus field token -0.5, all-tokens bonus 20.
        assert score(scenario_items[4], "alpha beta") == pytest.approx(29.5)

    def test_missing_item_scores_zero(self):
        assert score(None, "alpha") == 0.0

    def test_score_never_negative(self):
        item = Item(id=1, description=" ".join(f"word{index}" for index in range(200)))
        assert score(item, "missing token") == 0.0

    def test_field_weights_follow_field_priority(self):
        in_name = Item(id=1, name="harbor")
        in_address = Item(id=2, address="harbor")
        in_city = Item(id=3, city="harbor")
        in_description = Item(id=4, description="harbor")

        scores = [score(item, "harbor") for item in (in_name, in_address, in_city, in_description)]

        assert scores == sorted(scores, reverse=True)
        assert scores[0] > scores[1]

    def test_scoring_is_case_insensitive(self):
        item = Item(id=1, name="Harbor View")
        assert score(item, "HARBOR view") == score(item, "harbor view")

    def test_name_position_alignment_adds_score(self):
        aligned = Item(id=1, name="red house")
        shifted = Item(id=2, name="house red")
        assert score(aligned, "red house") > score(shifted, "red house")


@pytest.mark.unit
class TestRank:
    def test_orders_by_descending_score(self, scenario_items):
        ranked = rank({5, 1}, "alpha beta", dataset_lookup(scenario_items))
        assert ranked == [1, 5]

    def test_ties_break_by_ascending_id(self, scenario_items):
        ranked = rank({5, 3, 2}, "gamma", dataset_lookup(scenario_items))
        assert ranked == [2, 3, 5]

    def test_output_is_permutation_of_capped_input(self, scenario_items):
        ranked = rank([4, 2, 1], "beta", dataset_lookup(scenario_items), cap=2)
        assert sorted(ranked) == [2, 4]

    def test_unknown_ids_are_dropped(self, scenario_items):
        ranked = rank([1, 99], "alpha", dataset_lookup(scenario_items))
        assert ranked == [1]

    def test_empty_input(self, scenario_items):
        assert rank([], "alpha", dataset_lookup(scenario_items)) == []


@pytest.mark.unit
def test_dataset_lookup_uses_dense_positions(scenario_items):
    lookup = dataset_lookup(scenario_items)

    assert lookup(1) is scenario_items[0]
    assert lookup(5) is scenario_items[4]
    assert lookup(0) is None
    assert lookup(6) is None

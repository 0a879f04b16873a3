"""Unit tests for per-session ordering, selection and search orderings."""

import pytest

from item_search.domain.model import ViewState
from item_search.domain.session import SessionState
from item_search.errors import InputError, NotFoundError, SessionNotInitializedError
from item_search.search.snapshot import SnapshotHolder
from item_search.service_layer.session_manager import SessionStateManager, coerce_id, coerce_ids


@pytest.fixture
def manager(scenario_holder) -> SessionStateManager:
    return SessionStateManager(scenario_holder)


@pytest.fixture
def ready_session(manager, session) -> SessionState:
    manager.initialize(session, 5)
    return session


@pytest.mark.unit
class TestCoerceIds:
    def test_accepts_ints_and_numeric_strings(self):
        assert coerce_ids([1, "2", 3.0]) == [1, 2, 3]

    def test_accepts_tuples(self):
        assert coerce_ids((4, 5)) == [4, 5]

    @pytest.mark.parametrize("payload", ["1,2", 3, None, {"ids": [1]}])
    def test_rejects_non_lists(self, payload):
        with pytest.raises(InputError):
            coerce_ids(payload)

    @pytest.mark.parametrize("value", ["abc", None, True, 0, -3])
    def test_rejects_invalid_members(self, value):
        with pytest.raises(InputError):
            coerce_ids([1, value])

    def test_coerce_single_id(self):
        assert coerce_id("7") == 7


@pytest.mark.unit
class TestInitialize:
    def test_identity_order(self, ready_session):
        assert ready_session.initialized is True
        assert ready_session.order == [1, 2, 3, 4, 5]
        assert ready_session.order_index == {1: 0, 2: 1, 3: 2, 4: 3, 5: 4}
        assert ready_session.selected == []
        assert ready_session.view_state == ViewState()

    def test_initialize_is_idempotent(self, manager, ready_session):
        manager.update_selection(ready_session, [2], True)
        manager.initialize(ready_session, 10)

        assert ready_session.order == [1, 2, 3, 4, 5]
        assert ready_session.selected == [2]

    @pytest.mark.parametrize(
        "operation",
        [
            lambda manager, session: manager.build_matching_array(session, "alpha"),
            lambda manager, session: manager.update_order(session, [1]),
            lambda manager, session: manager.reorder(session, 1, 2),
            lambda manager, session: manager.update_selection(session, [1], True),
            lambda manager, session: manager.update_view_state(session, {"search": "x"}),
            lambda manager, session: manager.update_search_order(session, "x", [1]),
            lambda manager, session: manager.order(session),
            lambda manager, session: manager.selected(session),
        ],
    )
    def test_operations_require_initialization(self, manager, session, operation):
        with pytest.raises(SessionNotInitializedError):
            operation(manager, session)


@pytest.mark.unit
class TestOrdering:
    def test_update_order_rebuilds_index(self, manager, ready_session):
        manager.update_order(ready_session, [3, 1, 4, 2, 5])

        assert manager.order(ready_session) == [3, 1, 4, 2, 5]
        assert ready_session.order_index[4] == 2

    @pytest.mark.parametrize("bad_order", [[1, 2, 3], [1, 2, 3, 4, 4], [1, 2, 3, 4, 6], [1, 2, 3, 4, 5, 6]])
    def test_update_order_requires_permutation(self, manager, ready_session, bad_order):
        with pytest.raises(InputError):
            manager.update_order(ready_session, bad_order)
        assert ready_session.order == [1, 2, 3, 4, 5]

    def test_reorder_moves_source_into_destination_slot(self, manager, ready_session):
        manager.update_order(ready_session, [3, 1, 4, 2, 5])

        assert manager.reorder(ready_session, 1, 4) == [3, 4, 1, 2, 5]
        assert ready_session.order_index == {3: 0, 4: 1, 1: 2, 2: 3, 5: 4}

    def test_reorder_before_earlier_item(self, manager, ready_session):
        manager.update_order(ready_session, [3, 1, 4, 2, 5])

        order = manager.reorder(ready_session, 4, 1)

        assert order == [3, 4, 1, 2, 5]
        assert sorted(order) == [1, 2, 3, 4, 5]
        assert all(ready_session.order_index[item_id] == position for position, item_id in enumerate(order))

    def test_last_reorder_wins(self, manager, ready_session):
        # Writers to one session are not isolated; the latest order replaces the earlier one.
        manager.reorder(ready_session, 5, 1)
        manager.update_order(ready_session, [2, 1, 3, 4, 5])

        assert manager.order(ready_session) == [2, 1, 3, 4, 5]

    def test_reorder_upwards(self, manager, ready_session):
        assert manager.reorder(ready_session, 5, 2) == [1, 5, 2, 3, 4]

    def test_reorder_onto_itself_is_noop(self, manager, ready_session):
        assert manager.reorder(ready_session, 3, 3) == [1, 2, 3, 4, 5]

    def test_reorder_unknown_ids(self, manager, ready_session):
        with pytest.raises(NotFoundError) as excinfo:
            manager.reorder(ready_session, 1, 42)

        assert excinfo.value.missing_ids == (42,)
        assert ready_session.order == [1, 2, 3, 4, 5]

    def test_reorder_rejects_malformed_ids(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.reorder(ready_session, "one", 2)

    def test_returned_order_is_a_copy(self, manager, ready_session):
        order = manager.order(ready_session)
        order.append(99)

        assert manager.order(ready_session) == [1, 2, 3, 4, 5]

    def test_order_change_invalidates_cache_but_keeps_pins(self, manager, ready_session):
        manager.build_matching_array(ready_session, "alpha")
        manager.update_search_order(ready_session, "gam", [5, 2])

        manager.update_order(ready_session, [5, 4, 3, 2, 1])

        assert ready_session.search_cache == {}
        assert ready_session.search_orders == {"gam": [5, 2]}


@pytest.mark.unit
class TestMatchingArray:
    def test_follows_session_order(self, manager, ready_session):
        manager.update_order(ready_session, [3, 1, 4, 2, 5])

        assert manager.build_matching_array(ready_session, "alpha") == [3, 1, 5]

    def test_token_matches_by_prefix(self, manager, ready_session):
        assert manager.build_matching_array(ready_session, "gam") == [2, 3, 5]

    def test_tokens_are_anded(self, manager, ready_session):
        assert manager.build_matching_array(ready_session, "beta gamma") == [2, 5]

    def test_unknown_token_returns_empty(self, manager, ready_session):
        assert manager.build_matching_array(ready_session, "alpha omega") == []
        assert ready_session.search_cache["alpha omega"] == []

    def test_blank_query_matches_nothing(self, manager, ready_session):
        assert manager.build_matching_array(ready_session, "  ") == []

    def test_results_are_cached_by_trimmed_query(self, manager, ready_session):
        first = manager.build_matching_array(ready_session, " alpha ")

        assert ready_session.search_cache == {"alpha": [1, 3, 5]}
        assert manager.build_matching_array(ready_session, "alpha") == first

    def test_cached_result_is_returned_as_copy(self, manager, ready_session):
        result = manager.build_matching_array(ready_session, "alpha")
        result.reverse()

        assert manager.build_matching_array(ready_session, "alpha") == [1, 3, 5]

    def test_without_snapshot_returns_empty_and_does_not_cache(self, session):
        manager = SessionStateManager(SnapshotHolder())
        manager.initialize(session, 5)

        assert manager.build_matching_array(session, "alpha") == []
        assert session.search_cache == {}

    def test_pinned_order_wins(self, manager, ready_session):
        manager.update_search_order(ready_session, "alpha", [5, 1])

        assert manager.build_matching_array(ready_session, "alpha") == [5, 1]

    def test_pinned_order_is_filtered_and_completed(self, manager, ready_session):
        manager.update_search_order(ready_session, "alpha", [5, 4, 5, 1])
        manager.update_order(ready_session, [3, 1, 4, 2, 5])

        assert manager.build_matching_array(ready_session, "alpha") == [5, 1, 3]

    def test_pinned_order_key_is_trimmed(self, manager, ready_session):
        manager.update_search_order(ready_session, "  alpha ", [3])

        assert ready_session.search_orders == {"alpha": [3]}

    def test_pinned_order_requires_id_list(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.update_search_order(ready_session, "alpha", "3,1")

    def test_invalidate_search_state(self, manager, ready_session):
        manager.build_matching_array(ready_session, "alpha")
        manager.update_search_order(ready_session, "beta", [2])

        manager.invalidate_search_state(ready_session)

        assert ready_session.search_cache == {}
        assert ready_session.search_orders == {}


@pytest.mark.unit
class TestSelection:
    def test_select_then_deselect(self, manager, ready_session):
        assert manager.update_selection(ready_session, [3, 1], True) == [3, 1]
        assert manager.update_selection(ready_session, [1, 4], True) == [3, 1, 4]
        assert manager.update_selection(ready_session, [3], False) == [1, 4]
        assert manager.selected(ready_session) == [1, 4]

    def test_selection_round_trip_restores_original(self, manager, ready_session):
        manager.update_selection(ready_session, [2], True)
        before = manager.selected(ready_session)

        manager.update_selection(ready_session, [5, 4], True)
        manager.update_selection(ready_session, [5, 4], False)

        assert manager.selected(ready_session) == before

    def test_selection_replaces_list(self, manager, ready_session):
        original = ready_session.selected
        manager.update_selection(ready_session, [1], True)

        assert original == []
        assert ready_session.selected is not original

    def test_selection_rejects_malformed_payload(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.update_selection(ready_session, [1, "x"], True)
        assert ready_session.selected == []


@pytest.mark.unit
class TestViewState:
    def test_merges_camel_case_patch(self, manager, ready_session):
        view = manager.update_view_state(ready_session, {"sortBy": "name", "search": "alpha"})

        assert view == ViewState(search="alpha", sort_by="name", sort_dir="asc")

        view = manager.update_view_state(ready_session, {"sort_dir": "desc"})
        assert view.sort_by == "name"
        assert view.sort_dir == "desc"

    def test_rejects_unknown_fields(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.update_view_state(ready_session, {"colour": "red"})

    def test_rejects_invalid_values(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.update_view_state(ready_session, {"sortDir": "sideways"})

    def test_rejects_non_mapping(self, manager, ready_session):
        with pytest.raises(InputError):
            manager.update_view_state(ready_session, ["search"])

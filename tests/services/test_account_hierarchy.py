"""
Tests for the in-memory account hierarchy.

These build the index straight from AccountNode values, so no
database is involved except in the load() test.
"""

import pytest

from ledger_core.exceptions import HierarchyCycleError
from ledger_core.models.enums import AccountType
from ledger_core.services.account_hierarchy import AccountHierarchy, AccountNode


def node(code, parent=None, is_detail=True, is_active=True,
         account_type=AccountType.ASSET):
    return AccountNode(
        account_code=code,
        account_name=f"Account {code}",
        account_type=account_type,
        parent_code=parent,
        is_detail=is_detail,
        is_active=is_active,
    )


@pytest.fixture
def hierarchy():
    #   1000
    #   +-- 1100
    #   |   +-- 1110
    #   |   +-- 1120
    #   +-- 1200
    #   2000
    return AccountHierarchy([
        node("1120", "1100"),
        node("1000", is_detail=False),
        node("1100", "1000", is_detail=False),
        node("1110", "1100"),
        node("1200", "1000"),
        node("2000", account_type=AccountType.LIABILITY),
    ])


class TestNavigation:

    def test_roots_sorted_by_code(self, hierarchy):
        assert hierarchy.roots() == ["1000", "2000"]

    def test_children_sorted_by_code(self, hierarchy):
        assert hierarchy.children("1100") == ["1110", "1120"]
        assert hierarchy.children("1110") == []

    def test_parent_and_ancestors(self, hierarchy):
        assert hierarchy.parent("1110") == "1100"
        assert hierarchy.parent("1000") is None
        assert hierarchy.ancestors("1120") == ["1100", "1000"]

    def test_depth(self, hierarchy):
        assert hierarchy.depth("1000") == 0
        assert hierarchy.depth("1100") == 1
        assert hierarchy.depth("1110") == 2

    def test_descendants_depth_first(self, hierarchy):
        assert hierarchy.descendants("1000") == ["1100", "1110", "1120", "1200"]

    def test_walk_is_pre_order_with_depth(self, hierarchy):
        walked = [(n.account_code, depth) for n, depth in hierarchy.walk()]
        assert walked == [
            ("1000", 0), ("1100", 1), ("1110", 2), ("1120", 2),
            ("1200", 1), ("2000", 0),
        ]

    def test_unknown_parent_becomes_root(self):
        h = AccountHierarchy([node("1110", parent="9999")])
        assert h.roots() == ["1110"]
        assert h.parent("1110") is None

    def test_membership_and_len(self, hierarchy):
        assert "1110" in hierarchy
        assert "9999" not in hierarchy
        assert len(hierarchy) == 6


class TestPostable:

    def test_detail_active_account_is_postable(self, hierarchy):
        assert hierarchy.is_postable("1110") is True

    def test_summary_account_is_not_postable(self, hierarchy):
        assert hierarchy.is_postable("1100") is False

    def test_inactive_account_is_not_postable(self):
        h = AccountHierarchy([node("1110", is_active=False)])
        assert h.is_postable("1110") is False

    def test_unknown_account_is_not_postable(self, hierarchy):
        assert hierarchy.is_postable("9999") is False


class TestCycles:

    def test_forest_has_no_cycle(self, hierarchy):
        assert hierarchy.find_cycle() is None
        hierarchy.validate()

    def test_existing_cycle_is_detected(self):
        h = AccountHierarchy([node("A", "B"), node("B", "C"), node("C", "A")])
        with pytest.raises(HierarchyCycleError):
            h.ancestors("A")
        assert h.find_cycle() is not None
        with pytest.raises(HierarchyCycleError):
            h.validate()

    def test_move_under_own_descendant_forms_cycle(self, hierarchy):
        path = hierarchy.cycle_if_moved("1000", "1110")
        assert path == ["1000", "1110", "1100", "1000"]

    def test_move_under_self_forms_cycle(self, hierarchy):
        assert hierarchy.cycle_if_moved("1100", "1100") == ["1100", "1100"]

    def test_safe_moves(self, hierarchy):
        assert hierarchy.cycle_if_moved("1200", "1100") is None
        assert hierarchy.cycle_if_moved("1100", None) is None
        assert hierarchy.cycle_if_moved("1000", "2000") is None


class TestLoad:

    def test_load_reads_chart(self, db_session, chart):
        h = AccountHierarchy.load(db_session)
        assert len(h) == 10
        assert h.children("1000") == ["1110", "1120", "1990"]
        assert h.get("1000").is_detail is False
        assert h.get("1990").is_active is False

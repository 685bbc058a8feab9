"""Tests for the pure stock ledger."""

import pytest

from stock.ledger import (
    MAX_ADJUSTMENT,
    ActionType,
    InsufficientLocationStock,
    InvalidAdjustment,
    LocationRequired,
    StockItem,
    StockLocationEntry,
    UnknownLocation,
    apply_adjustment,
    compute_new_total,
    distribute,
    is_reconciled,
    max_removable,
    parse_amount,
    reconciled_total,
)


def _tracked_item(stock=10, *entries):
    entries = entries or (StockLocationEntry("Shelf A", 5), StockLocationEntry("Shelf B", 5))
    return StockItem(id="item-1", stock=stock, stock_locations=tuple(entries), name="Pasta")


class TestParseAmount:
    def test_empty_is_zero(self):
        assert parse_amount("") == 0
        assert parse_amount(None) == 0

    def test_digits(self):
        assert parse_amount("12") == 12
        assert parse_amount("00007") == 7

    def test_more_than_five_digits_rejected(self):
        with pytest.raises(InvalidAdjustment):
            parse_amount("123456")

    def test_non_digits_rejected(self):
        with pytest.raises(InvalidAdjustment):
            parse_amount("1a")
        with pytest.raises(InvalidAdjustment):
            parse_amount("-3")


class TestComputeNewTotal:
    def test_add_has_no_upper_bound(self):
        item = StockItem(id="i", stock=99999)
        assert compute_new_total(item, ActionType.ADD, MAX_ADJUSTMENT) == 199998

    def test_remove_subtracts(self):
        assert compute_new_total(StockItem(id="i", stock=10), "remove", 2) == 8

    def test_remove_clamps_at_zero(self):
        assert compute_new_total(StockItem(id="i", stock=3), ActionType.REMOVE, 7) == 0

    @pytest.mark.parametrize("delta", [0, -1, MAX_ADJUSTMENT + 1, True, 2.5])
    def test_rejects_bad_delta(self, delta):
        with pytest.raises(InvalidAdjustment):
            compute_new_total(StockItem(id="i", stock=3), ActionType.ADD, delta)

    def test_rejects_adjust_mode(self):
        with pytest.raises(InvalidAdjustment):
            compute_new_total(StockItem(id="i", stock=3), ActionType.ADJUST, 1)


class TestMaxRemovable:
    def test_uses_selected_location(self):
        item = _tracked_item(10, StockLocationEntry("Shelf A", 5), StockLocationEntry("Shelf B", 5))
        assert max_removable(item, item.stock_locations[0]) == 5

    def test_defaults_to_aggregate(self):
        assert max_removable(StockItem(id="i", stock=10)) == 10


class TestApplyAdjustment:
    def test_removal_lands_on_location(self):
        item = _tracked_item()
        entries = apply_adjustment(item, 8, location="Shelf A", action_type="remove")
        assert [(e.location, e.quantity) for e in entries] == [("Shelf A", 3), ("Shelf B", 5)]
        assert reconciled_total(entries) == 8

    def test_location_match_is_case_insensitive(self):
        item = _tracked_item()
        entries = apply_adjustment(item, 12, location="shelf b", action_type="add")
        assert entries[1].quantity == 7

    def test_addition_to_new_location_appends_entry(self):
        item = _tracked_item()
        entries = apply_adjustment(item, 13, location="Fridge", parent_location="Kitchen", action_type="add")
        assert entries[-1] == StockLocationEntry("Fridge", 3, "Kitchen")
        assert reconciled_total(entries) == 13

    def test_tracked_item_requires_location(self):
        with pytest.raises(LocationRequired):
            apply_adjustment(_tracked_item(), 12)

    def test_tracked_item_without_change_needs_no_location(self):
        item = _tracked_item()
        assert apply_adjustment(item, 10) == item.stock_locations

    def test_removal_beyond_location_quantity_rejected(self):
        with pytest.raises(InsufficientLocationStock):
            apply_adjustment(_tracked_item(), 4, location="Shelf A", action_type="remove")

    def test_removal_from_unknown_location_rejected(self):
        with pytest.raises(UnknownLocation):
            apply_adjustment(_tracked_item(), 8, location="Attic", action_type="remove")

    def test_untracked_item_stays_untracked(self):
        item = StockItem(id="i", stock=10)
        assert apply_adjustment(item, 22, action_type="add") == ()

    def test_untracked_item_with_stock_cannot_start_tracking(self):
        with pytest.raises(LocationRequired):
            apply_adjustment(StockItem(id="i", stock=10), 12, location="Shelf A", action_type="add")

    def test_empty_item_starts_tracking_on_addition(self):
        entries = apply_adjustment(StockItem(id="i", stock=0), 4, location=" Shelf A ", action_type="add")
        assert entries == (StockLocationEntry("Shelf A", 4),)

    def test_existing_parent_location_is_kept(self):
        item = _tracked_item(5, StockLocationEntry("Pantry", 5, "Kitchen"))
        entries = apply_adjustment(item, 6, location="Pantry", parent_location="Garage", action_type="add")
        assert entries[0].parent_location == "Kitchen"

    def test_negative_total_rejected(self):
        with pytest.raises(InvalidAdjustment):
            apply_adjustment(StockItem(id="i", stock=1), -1)

    def test_sequence_keeps_item_reconciled(self):
        item = _tracked_item()
        steps = [
            (15, "Shelf A", "add"),
            (12, "Shelf B", "remove"),
            (14, "Garage", "add"),
            (4, "Shelf A", "remove"),
        ]
        for new_stock, location, action in steps:
            entries = apply_adjustment(item, new_stock, location=location, action_type=action)
            item = StockItem(id=item.id, stock=new_stock, stock_locations=entries)
            assert is_reconciled(item)
        assert item.find_location("Garage").quantity == 2


class TestDistribute:
    def test_drops_blank_names_and_floors_quantities(self):
        total, entries = distribute(
            [
                StockLocationEntry(" Pantry ", 4),
                StockLocationEntry("   ", 9),
                StockLocationEntry("Fridge", -2),
            ]
        )
        assert total == 4
        assert entries == (StockLocationEntry("Pantry", 4), StockLocationEntry("Fridge", 0))

    def test_merges_names_differing_only_by_case(self):
        total, entries = distribute(
            [
                StockLocationEntry("Shelf A", 3),
                StockLocationEntry("Pantry", 1),
                StockLocationEntry("shelf a ", 2, "Garage"),
            ]
        )
        assert total == 6
        assert entries == (StockLocationEntry("Shelf A", 5, "Garage"), StockLocationEntry("Pantry", 1))

    def test_untracked_item_is_reconciled(self):
        assert is_reconciled(StockItem(id="i", stock=7))


class TestLabels:
    def test_label_includes_parent(self):
        assert StockLocationEntry("Pantry", 1, "Kitchen").label == "Kitchen Pantry"
        assert StockLocationEntry("Pantry", 1).label == "Pantry"

    def test_errors_carry_message_keys(self):
        assert InsufficientLocationStock.message_key == "inventory.insufficientStock"
        assert LocationRequired.message_key == "inventory.locationRequired"

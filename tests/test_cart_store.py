"""
Tests for CartStore
"""

import json
from decimal import Decimal

import pytest
from pydantic import ValidationError
from unittest.mock import Mock

from corgicart.cart import CartRecords, CartStore, InMemoryCartStorage, StoreStatus
from corgicart.models import CartSnapshot, LineItemCandidate


def candidate(catalog_item_id="pad-thai", unit_price=100, add_ons=(), instructions=None):
    return LineItemCandidate(
        catalog_item_id=catalog_item_id,
        name=catalog_item_id.replace("-", " ").title(),
        unit_price=unit_price,
        vendor_id="rest-1",
        vendor_name="Corgi Kitchen",
        special_instructions=instructions,
        add_ons=[{"id": a, "name": a, "price": p} for a, p in add_ons],
    )


class TestAddLineItem:
    """Tests for merging and creating line items."""

    def test_scenario_a_merge_same_configuration(self, store, pad_thai):
        """Same selection twice is one line item with summed quantity."""
        store.add_line_item(pad_thai, 1)

        assert store.item_count == 1
        assert store.total_price == 100
        assert store.notification_count == 1

        store.add_line_item(pad_thai, 2)

        assert store.item_count == 3
        assert store.total_price == 300
        assert store.notification_count == 2
        assert len(store.line_items) == 1

    def test_scenario_b_different_add_ons_are_distinct(self, store):
        """Egg and shrimp versions of one dish are two line items."""
        store.add_line_item(candidate(unit_price=50, add_ons=[("egg", 20)]))
        store.add_line_item(candidate(unit_price=50, add_ons=[("shrimp", 30)]))

        assert len(store.line_items) == 2
        assert store.item_count == 2
        # (50 + 20) + (50 + 30)
        assert store.total_price == 150


    def test_different_instructions_are_distinct(self, store):
        """Instructions are part of identity."""
        store.add_line_item(candidate(instructions="no peanuts"))
        store.add_line_item(candidate(instructions="extra spicy"))
        store.add_line_item(candidate())

        assert len(store.line_items) == 3

    def test_missing_and_empty_instructions_merge(self, store):
        """None and "" are the same configuration."""
        store.add_line_item(candidate(instructions=None))
        store.add_line_item(candidate(instructions=""))

        assert len(store.line_items) == 1
        assert store.item_count == 2

    def test_add_on_order_does_not_matter(self, store):
        """Same add-ons picked in another order merge."""
        store.add_line_item(candidate(add_ons=[("egg", 20), ("shrimp", 30)]))
        store.add_line_item(candidate(add_ons=[("shrimp", 30), ("egg", 20)]))

        items = store.line_items
        assert len(items) == 1
        assert items[0].quantity == 2
        # First selection's order is kept for display
        assert items[0].add_on_ids == ["egg", "shrimp"]

    def test_many_adds_sum_quantities(self, store, pad_thai):
        """Any sequence of same-key adds sums up."""
        quantities = [1, 4, 2, 7, 1]
        for quantity in quantities:
            store.add_line_item(pad_thai, quantity)

        assert len(store.line_items) == 1
        assert store.line_items[0].quantity == sum(quantities)
        assert store.notification_count == len(quantities)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_clamped_to_one(self, store, pad_thai, quantity):
        """Non-positive add quantities count as 1."""
        store.add_line_item(pad_thai, quantity)

        assert store.item_count == 1

    @pytest.mark.parametrize("quantity, expected", [(2.0, 2), ("3", 3), (2.5, 1), (True, 1), (None, 1)])
    def test_add_quantity_is_a_whole_number(self, store, pad_thai, quantity, expected):
        """Whole-valued quantities become int; anything else adds one unit."""
        store.add_line_item(pad_thai, quantity)

        assert store.item_count == expected
        assert type(store.line_items[0].quantity) is int

    def test_rejects_infinite_prices(self, store):
        """inf never enters the cart, as base price or add-on price."""
        with pytest.raises(ValidationError):
            store.add_line_item(candidate(unit_price=float("inf")))
        with pytest.raises(ValidationError):
            store.add_line_item(candidate(add_ons=[("egg", float("inf"))]))

        assert store.item_count == 0
        assert store.snapshot().total_price == 0

    def test_new_items_append_in_first_add_order(self, store):

        """Merging does not move a line item."""
        store.add_line_item(candidate("pad-thai"))
        store.add_line_item(candidate("som-tum"))
        store.add_line_item(candidate("pad-thai"))

        assert [item.catalog_item_id for item in store.line_items] == ["pad-thai", "som-tum"]

    def test_line_item_ids_are_fresh(self, store, pad_thai_egg, pad_thai_shrimp):
        """Each configuration gets its own id, distinct from the catalog id."""
        store.add_line_item(pad_thai_egg)
        store.add_line_item(pad_thai_shrimp)

        ids = [item.id for item in store.line_items]
        assert len(set(ids)) == 2
        assert "pad-thai" not in ids

    def test_generated_id_collisions_are_retried(self, memory_storage, pad_thai):
        """An id already held by another line item is never handed out again."""
        ids = iter(["same", "same", "other"])
        store = CartStore(memory_storage, id_factory=lambda catalog_item_id: next(ids))

        store.add_line_item(pad_thai)
        store.add_line_item(candidate("som-tum"))

        assert [item.id for item in store.line_items] == ["same", "other"]

    def test_accepts_dict_candidates(self, store):
        """Dicts are validated into candidates."""
        store.add_line_item({"catalog_item_id": "pad-thai", "name": "Pad Thai", "unit_price": 100})

        assert store.total_price == 100

    def test_rejects_invalid_candidate(self, store):
        """Negative prices never enter the cart."""
        with pytest.raises(ValidationError):
            store.add_line_item({"catalog_item_id": "pad-thai", "name": "Pad Thai", "unit_price": -1})

        assert store.item_count == 0
        assert store.notification_count == 0

    def test_returns_state(self, store, pad_thai):
        """Operations return the updated state."""
        state = store.add_line_item(pad_thai, 2)

        assert state.item_count == 2
        assert state.total_price == 200


class TestRemoveAndUpdate:
    """Tests for remove_line_item and update_quantity."""

    def test_remove(self, store, pad_thai_egg, pad_thai_shrimp):
        """Removes only the given line item."""
        store.add_line_item(pad_thai_egg)
        store.add_line_item(pad_thai_shrimp)
        egg_id = store.line_items[0].id

        store.remove_line_item(egg_id)

        assert [item.add_on_ids for item in store.line_items] == [["shrimp"]]

    def test_remove_is_idempotent(self, store, pad_thai):
        """Removing twice or removing unknown ids is a no-op."""
        store.add_line_item(pad_thai)
        line_item_id = store.line_items[0].id

        store.remove_line_item(line_item_id)
        store.remove_line_item(line_item_id)
        store.remove_line_item("does-not-exist")

        assert store.line_items == ()

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_update_to_non_positive_removes(self, store, pad_thai, quantity):
        """Quantity 0 or below removes the line item."""
        store.add_line_item(pad_thai, 3)

        store.update_quantity(store.line_items[0].id, quantity)

        assert store.line_items == ()
        assert store.item_count == 0

    @pytest.mark.parametrize("quantity", [2.5, "many", None, True, float("nan")])
    def test_update_with_non_whole_quantity_is_ignored(self, store, pad_thai, quantity):
        """Quantities that are not whole numbers leave the item alone."""
        store.add_line_item(pad_thai, 3)

        store.update_quantity(store.line_items[0].id, quantity)

        assert store.line_items[0].quantity == 3

    def test_update_accepts_whole_floats(self, store, pad_thai):
        """4.0 is stored as 4."""
        store.add_line_item(pad_thai)

        store.update_quantity(store.line_items[0].id, 4.0)

        assert store.line_items[0].quantity == 4
        assert type(store.line_items[0].quantity) is int

    def test_update_sets_exact_quantity(self, store, pad_thai_egg, pad_thai_shrimp):

        """Only the targeted item changes."""
        store.add_line_item(pad_thai_egg, 2)
        store.add_line_item(pad_thai_shrimp, 1)
        egg_id, shrimp_id = (item.id for item in store.line_items)

        store.update_quantity(egg_id, 5)

        assert store.get_line_item(egg_id).quantity == 5
        assert store.get_line_item(shrimp_id).quantity == 1
        # (100 + 20) * 5 + (100 + 30) * 1
        assert store.total_price == 730

    def test_scenario_d_update_unknown_id(self, memory_storage, pad_thai):
        """Unknown id leaves the store and its storage untouched."""
        store = CartStore(memory_storage)
        store.add_line_item(pad_thai)
        before_items = store.line_items
        before_data = dict(memory_storage.data)

        store.update_quantity("does-not-exist", 5)

        assert store.line_items == before_items
        assert store.notification_count == 1
        assert memory_storage.data == before_data

    def test_update_does_not_change_notifications(self, store, pad_thai):
        """Only additions count."""
        store.add_line_item(pad_thai)
        store.update_quantity(store.line_items[0].id, 10)

        assert store.notification_count == 1


class TestClear:
    """Tests for clear and clear_notifications."""

    def test_scenario_e_clear_keeps_notifications(self, store, pad_thai):
        """Clearing the cart does not reset the badge."""
        store.add_line_item(pad_thai)
        store.add_line_item(pad_thai)

        store.clear()

        assert store.line_items == ()
        assert store.item_count == 0
        assert store.notification_count == 2

        store.clear_notifications()

        assert store.notification_count == 0

    def test_clear_notifications_keeps_cart(self, store, pad_thai):
        """Resetting the badge does not empty the cart."""
        store.add_line_item(pad_thai, 2)

        store.clear_notifications()

        assert store.item_count == 2
        assert store.notification_count == 0


class TestAggregates:
    """Tests for item_count and total_price."""

    def test_formula(self, store):
        """Σ (unit_price + Σ add-on prices) * quantity."""
        store.add_line_item(candidate("pad-thai", 100, [("egg", 20)]), 2)
        store.add_line_item(candidate("som-tum", 59.5), 3)
        store.add_line_item(candidate("khao-soi", 85, [("chicken", 25), ("noodles", 10.25)]), 1)

        assert store.item_count == 6
        assert store.total_price == Decimal("240") + Decimal("178.5") + Decimal("120.25")

    def test_empty(self, store):
        """Empty cart."""
        assert store.item_count == 0
        assert store.total_price == 0


class TestPersistence:
    """Tests for saving through the injected adapter."""

    def test_sync_storage_is_ready_after_construction(self, memory_storage):
        """Synchronous load completes in the constructor."""
        store = CartStore(memory_storage)

        assert store.status is StoreStatus.READY
        assert store.is_loaded

    def test_every_mutation_saves(self, pad_thai):
        """Mutations call save once each after hydration."""
        storage = Mock()
        storage.load.return_value = CartRecords()
        storage.save.return_value = None
        store = CartStore(storage)

        store.add_line_item(pad_thai)
        store.update_quantity(store.line_items[0].id, 3)
        store.clear()
        store.clear_notifications()

        assert storage.save.call_count == 4
        last = storage.save.call_args[0][0]
        assert last.line_items == []
        assert last.notification_count == 0

    def test_no_op_does_not_save(self):
        """Unknown ids do not trigger a save."""
        storage = Mock()
        storage.load.return_value = CartRecords()
        store = CartStore(storage)

        store.remove_line_item("missing")
        store.update_quantity("missing", 2)

        storage.save.assert_not_called()

    def test_restart_restores_cart(self, memory_storage, pad_thai_egg, pad_thai_shrimp):
        """A new store over the same storage sees the same cart."""
        first = CartStore(memory_storage)
        first.add_line_item(pad_thai_egg, 2)
        first.add_line_item(pad_thai_shrimp)

        second = CartStore(memory_storage)

        assert [item.to_dict() for item in second.line_items] == [
            item.to_dict() for item in first.line_items
        ]
        assert second.notification_count == 2
        assert second.total_price == first.total_price

    def test_odd_quantities_survive_restart(self, memory_storage, pad_thai):
        """A float quantity never reaches storage, so a restart keeps every item."""
        store = CartStore(memory_storage)
        store.add_line_item(candidate("som-tum", 60))
        store.add_line_item(pad_thai, 2.0)
        store.update_quantity(store.line_items[1].id, 2.5)

        restored = CartStore(memory_storage)

        assert [(item.catalog_item_id, item.quantity) for item in restored.line_items] == [
            ("som-tum", 1),
            ("pad-thai", 2),
        ]

    def test_restart_then_merge(self, memory_storage, pad_thai):

        """Selections merge into line items loaded from storage."""
        CartStore(memory_storage).add_line_item(pad_thai)

        store = CartStore(memory_storage)
        store.add_line_item(pad_thai, 2)

        assert len(store.line_items) == 1
        assert store.item_count == 3

    def test_scenario_c_undefined_record(self):
        """Literal "undefined" loads as an empty cart."""
        storage = InMemoryCartStorage(data={"corgigo_cart": "undefined"})

        store = CartStore(storage)

        assert store.line_items == ()
        assert store.is_loaded

    def test_duplicate_configurations_in_storage_are_merged(self, pad_thai):
        """Old records with two entries for one key load as one line item."""
        storage = InMemoryCartStorage()
        store = CartStore(storage, id_factory=lambda catalog_item_id: "x")
        store.add_line_item(pad_thai, 2)
        entry = json.loads(storage.data["corgigo_cart"])[0]
        duplicate = dict(entry, id="y", quantity=3)
        storage.data["corgigo_cart"] = json.dumps([entry, duplicate])

        restored = CartStore(storage)

        assert len(restored.line_items) == 1
        assert restored.line_items[0].id == "x"
        assert restored.item_count == 5

    def test_failing_save_does_not_raise(self, pad_thai):
        """Adapters that break the contract still cannot crash callers."""
        storage = Mock()
        storage.load.return_value = CartRecords()
        storage.save.side_effect = RuntimeError("boom")
        store = CartStore(storage)

        store.add_line_item(pad_thai)

        assert store.item_count == 1

    def test_failing_load_starts_empty(self):
        """Adapters that raise on load still hydrate."""
        storage = Mock()
        storage.load.side_effect = RuntimeError("boom")

        store = CartStore(storage)

        assert store.is_loaded
        assert store.line_items == ()

    def test_snapshots_are_copies(self, store, pad_thai):
        """Editing a snapshot does not edit the cart."""
        store.add_line_item(pad_thai)

        store.line_items[0].quantity = 99

        assert store.item_count == 1


class TestObservers:
    """Tests for subscribe."""

    def test_listener_called_on_change(self, store, pad_thai):
        """Listeners receive the new state."""
        seen = []
        store.subscribe(lambda state: seen.append(state.item_count))

        store.add_line_item(pad_thai)
        store.add_line_item(pad_thai, 2)

        assert seen == [1, 3]

    def test_unsubscribe(self, store, pad_thai):
        """Unsubscribed listeners are not called."""
        listener = Mock()
        unsubscribe = store.subscribe(listener)
        unsubscribe()
        unsubscribe()

        store.add_line_item(pad_thai)

        listener.assert_not_called()

    def test_no_op_does_not_notify(self, store):
        """Unknown ids do not fire listeners."""
        listener = Mock()
        store.subscribe(listener)

        store.remove_line_item("missing")

        listener.assert_not_called()

    def test_failing_listener_is_isolated(self, store, pad_thai):
        """One broken listener does not block others or the mutation."""
        good = Mock()
        store.subscribe(Mock(side_effect=RuntimeError("render failed")))
        store.subscribe(good)

        store.add_line_item(pad_thai)

        assert store.item_count == 1
        good.assert_called_once()


class TestSnapshot:
    """Tests for the checkout read model."""

    def test_snapshot(self, store, pad_thai_egg):
        """Snapshot carries items and totals."""
        store.add_line_item(pad_thai_egg, 2)

        snapshot = store.snapshot()

        assert isinstance(snapshot, CartSnapshot)
        assert snapshot.item_count == 2
        assert snapshot.total_price == 240
        assert snapshot.notification_count == 1
        assert snapshot.is_loaded is True
        assert snapshot.items[0].line_total == 240
        assert snapshot.items[0].add_ons[0].id == "egg"

    def test_summary(self, store, pad_thai):
        """Summary drops the items."""
        store.add_line_item(pad_thai, 3)

        summary = store.snapshot().summary()

        assert summary.item_count == 3
        assert summary.total_price == 300
        assert not hasattr(summary, "items")

    def test_display_strings(self, store):
        """Totals are formatted for the cart page."""
        store.add_line_item(candidate("khao-soi", 625), 2)
        store.add_line_item(candidate("som-tum", 59.5))

        snapshot = store.snapshot()

        assert snapshot.total_display == "฿1,309.50"
        assert [item.line_total_display for item in snapshot.items] == ["฿1,250", "฿59.50"]
        assert store.snapshot(currency="USD").total_display == "$1,309.50"

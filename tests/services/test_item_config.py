"""Tests for OriginalOrder and ItemConfigurationModel."""

from multiship.gateway.models import Consignment, LineItem, ShippingOption
from multiship.services.item_config import (
    ItemConfigurationEntry,
    ItemConfigurationModel,
    OriginalOrder,
)
from tests.helpers import make_address


def _items(*ids: str) -> list[LineItem]:
    return [LineItem(id=i) for i in ids]


class TestOriginalOrder:
    """Tests for stable ordering by captured position."""

    def test_sort_by_recorded_position(self):
        order = OriginalOrder(["A", "B", "C"])
        assert [i.id for i in order.sort(_items("C", "A", "B"))] == ["A", "B", "C"]

    def test_unknown_ids_sort_last_keeping_relative_order(self):
        order = OriginalOrder(["A", "B"])
        sorted_items = order.sort(_items("Y", "B", "X", "A"))
        assert [i.id for i in sorted_items] == ["A", "B", "Y", "X"]

    def test_replace_first_takes_slot_rest_appended(self):
        order = OriginalOrder(["A", "B", "C"])
        order.replace("B", ["B#1", "B#2", "B#3"])
        assert order.ids == ["A", "B#1", "C", "B#2", "B#3"]

    def test_replace_with_nothing_removes(self):
        order = OriginalOrder(["A", "B"])
        order.replace("A", [])
        assert order.ids == ["B"]

    def test_ids_are_strings_and_unique(self):
        order = OriginalOrder([1, "1", 2])
        assert order.ids == ["1", "2"]
        assert 2 in order
        assert order.position("2") == 1


class TestEntry:
    """Tests for ItemConfigurationEntry construction."""

    def test_from_consignment(self):
        option = ShippingOption(id="opt")
        consignment = Consignment(
            id="c1", line_item_ids=["A"], shipping_address=make_address(),
            selected_shipping_option=option, available_shipping_options=[option],
        )
        entry = ItemConfigurationEntry.from_consignment("A", consignment)
        assert entry.consignment_id == "c1"
        assert entry.has_address_and_option
        assert entry.find_option("opt") is option
        assert entry.find_option("other") is None

    def test_copy_does_not_share_option_list(self):
        entry = ItemConfigurationEntry("A", available_shipping_options=[ShippingOption(id="o")])
        clone = entry.copy()
        clone.available_shipping_options.append(ShippingOption(id="p"))
        assert len(entry.available_shipping_options) == 1


class TestModel:
    """Tests for ItemConfigurationModel."""

    def test_one_empty_entry_per_item(self):
        model = ItemConfigurationModel(_items("A", "B"))
        assert set(model.entries) == {"A", "B"}
        assert all(not e.has_address_and_option for e in model.entries.values())

    def test_replace_item_for_split(self):
        model = ItemConfigurationModel(_items("A", "B", "C"))
        siblings = [LineItem(id=f"B#{n}", remote_id="B") for n in (1, 2)]
        entries = [ItemConfigurationEntry(s.id, consignment_id=f"c{n}") for n, s in enumerate(siblings)]
        model.replace_item("B", siblings, entries)

        assert [i.id for i in model.ordered_items()] == ["A", "B#1", "C", "B#2"]
        assert model.item("B") is None
        assert "B" not in model.entries
        assert model.entry_for("B#2").consignment_id == "c1"
        assert model.index_of("B#2") == 3

    def test_set_entries_fills_missing(self):
        model = ItemConfigurationModel(_items("A", "B"))
        model.set_entries({"A": ItemConfigurationEntry("A", consignment_id="c1"), "Z": ItemConfigurationEntry("Z")})
        assert model.entry_for("A").consignment_id == "c1"
        assert model.entry_for("B").consignment_id is None
        assert "Z" not in model.entries

    def test_item_at_out_of_range(self):
        model = ItemConfigurationModel(_items("A"))
        assert model.item_at(0).id == "A"
        assert model.item_at(1) is None
        assert model.item_at(-1) is None

    def test_addresses_in_use_groups_shared_destinations(self):
        model = ItemConfigurationModel(_items("A", "B", "C"))
        model.entry_for("A").shipping_address = make_address()
        model.entry_for("B").shipping_address = make_address(phone="999")
        model.entry_for("C").shipping_address = make_address(city="Dallas")

        groups = model.addresses_in_use()
        assert sorted(len(ids) for ids in groups.values()) == [1, 2]
        assert model.has_shared_addresses()

    def test_update_item(self):
        model = ItemConfigurationModel(_items("A"))
        model.update_item(LineItem(id="A", gift_message="hi"))
        model.update_item(LineItem(id="Z"))
        assert model.item("A").gift_message == "hi"
        assert model.item("Z") is None

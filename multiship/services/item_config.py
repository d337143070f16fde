"""In-memory wizard state: one configuration entry per line item.

The model pairs the entry map with an OriginalOrder captured when the
wizard starts. Display and iteration order always come from the
OriginalOrder, never from the order the platform returns consignments in.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date

from multiship.gateway.models import Address, Consignment, LineItem, ShippingOption


@dataclass(frozen=True)
class FeatureFlags:
    """Optional wizard capabilities; all off by default."""

    delivery_dates_enabled: bool = False
    gift_messages_enabled: bool = False
    auto_recommend_option: bool = False


@dataclass
class ItemConfigurationEntry:
    """Wizard state for one line item."""

    line_item_id: str
    consignment_id: str | None = None
    shipping_address: Address | None = None
    selected_shipping_option: ShippingOption | None = None
    available_shipping_options: list[ShippingOption] = field(default_factory=list)
    delivery_date: date | None = None
    configured: bool = False

    @property
    def has_address_and_option(self) -> bool:
        return self.shipping_address is not None and self.selected_shipping_option is not None

    @classmethod
    def empty(cls, line_item_id: str) -> "ItemConfigurationEntry":
        return cls(line_item_id=line_item_id)

    @classmethod
    def from_consignment(
        cls, line_item_id: str, consignment: Consignment, delivery_date: date | None = None
    ) -> "ItemConfigurationEntry":
        return cls(
            line_item_id=line_item_id,
            consignment_id=consignment.id,
            shipping_address=consignment.shipping_address,
            selected_shipping_option=consignment.selected_shipping_option,
            available_shipping_options=list(consignment.available_shipping_options),
            delivery_date=delivery_date,
        )

    def find_option(self, option_id: str) -> ShippingOption | None:
        for option in self.available_shipping_options:
            if option.id == option_id:
                return option
        return None

    def copy(self) -> "ItemConfigurationEntry":
        return replace(self, available_shipping_options=list(self.available_shipping_options))


class OriginalOrder:
    """Ordered line item ids with stable position lookup.

    Ids that were never recorded sort after recorded ones and keep their
    relative order.
    """

    def __init__(self, ids: list[str] | None = None) -> None:
        self._ids: list[str] = []
        for item_id in ids or []:
            self._add(str(item_id))

    @classmethod
    def capture(cls, items: list[LineItem]) -> "OriginalOrder":
        return cls([item.id for item in items])

    @property
    def ids(self) -> list[str]:
        return list(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, item_id: object) -> bool:
        return str(item_id) in self._ids

    def position(self, item_id: str) -> int | None:
        try:
            return self._ids.index(str(item_id))
        except ValueError:
            return None

    def sort(self, items: list[LineItem]) -> list[LineItem]:
        """Return items ordered by recorded position (stable for unknown ids)."""
        unknown = len(self._ids)

        def _key(indexed: tuple[int, LineItem]) -> tuple[int, int]:
            index, item = indexed
            pos = self.position(item.id)
            return (unknown if pos is None else pos, index)

        return [item for _, item in sorted(enumerate(items), key=_key)]

    def append(self, item_ids: list[str]) -> None:
        for item_id in item_ids:
            self._add(str(item_id))

    def replace(self, item_id: str, new_ids: list[str]) -> None:
        """Put the first new id in ``item_id``'s place and append the rest."""
        if not new_ids:
            self.remove(item_id)
            return
        first, rest = str(new_ids[0]), [str(i) for i in new_ids[1:]]
        pos = self.position(item_id)
        if pos is None:
            self.append([first, *rest])
            return
        self._ids[pos] = first
        self.append(rest)

    def remove(self, item_id: str) -> None:
        pos = self.position(item_id)
        if pos is not None:
            del self._ids[pos]

    def _add(self, item_id: str) -> None:
        if item_id not in self._ids:
            self._ids.append(item_id)


class ItemConfigurationModel:
    """Line items, their configuration entries, and their display order.

    Mutated only by the reconciler's results and the wizard controller.
    """

    def __init__(self, items: list[LineItem], order: OriginalOrder | None = None) -> None:
        self._items: dict[str, LineItem] = {item.id: item for item in items}
        self.order = order if order is not None else OriginalOrder.capture(items)
        self._entries: dict[str, ItemConfigurationEntry] = {
            item.id: ItemConfigurationEntry.empty(item.id) for item in items
        }

    def ordered_items(self) -> list[LineItem]:
        return self.order.sort(list(self._items.values()))

    def item(self, item_id: str) -> LineItem | None:
        return self._items.get(str(item_id))

    def item_at(self, index: int) -> LineItem | None:
        items = self.ordered_items()
        if 0 <= index < len(items):
            return items[index]
        return None

    def index_of(self, item_id: str) -> int:
        for index, item in enumerate(self.ordered_items()):
            if item.id == str(item_id):
                return index
        return -1

    @property
    def entries(self) -> dict[str, ItemConfigurationEntry]:
        return self._entries

    def ordered_entries(self) -> list[ItemConfigurationEntry]:
        return [self.entry_for(item.id) for item in self.ordered_items()]

    def entry_for(self, item_id: str) -> ItemConfigurationEntry:
        """Return the entry for a line item, creating an empty one if missing."""
        key = str(item_id)
        if key not in self._entries:
            self._entries[key] = ItemConfigurationEntry.empty(key)
        return self._entries[key]

    def set_entry(self, entry: ItemConfigurationEntry) -> None:
        self._entries[entry.line_item_id] = entry

    def update_item(self, item: LineItem) -> None:
        """Replace a known line item's data (e.g. a new gift message)."""
        if item.id in self._items:
            self._items[item.id] = item

    def set_entries(self, entries: dict[str, ItemConfigurationEntry]) -> None:
        """Replace entries for known items; items without one get an empty entry."""
        self._entries = {
            item_id: entries.get(item_id) or ItemConfigurationEntry.empty(item_id)
            for item_id in self._items
        }

    def replace_item(
        self,
        item_id: str,
        new_items: list[LineItem],
        new_entries: list[ItemConfigurationEntry],
    ) -> None:
        """Swap one line item for several (a split) and keep ordering stable."""
        key = str(item_id)
        self._items.pop(key, None)
        self._entries.pop(key, None)
        for item in new_items:
            self._items[item.id] = item
        for entry in new_entries:
            self._entries[entry.line_item_id] = entry
        self.order.replace(key, [item.id for item in new_items])

    def addresses_in_use(self) -> dict[str, list[str]]:
        """Group line item ids by the destination they ship to."""
        groups: dict[str, list[str]] = {}
        for entry in self.ordered_entries():
            if entry.shipping_address is not None:
                groups.setdefault(entry.shipping_address.address_key, []).append(entry.line_item_id)
        return groups

    def has_shared_addresses(self) -> bool:
        return any(len(ids) > 1 for ids in self.addresses_in_use().values())

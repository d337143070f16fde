"""Completion rules: when is an item, and the whole cart, configured."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping

from multiship.gateway.models import LineItem
from multiship.services.item_config import ItemConfigurationEntry, ItemConfigurationModel

logger = logging.getLogger(__name__)


def is_configured(entry: ItemConfigurationEntry, delivery_date_required: bool = False) -> bool:
    """True iff the entry has an address, a selected option and, when required, a date."""
    if entry.shipping_address is None or entry.selected_shipping_option is None:
        return False
    if delivery_date_required and entry.delivery_date is None:
        return False
    return True


def all_configured(
    entries: Mapping[str, ItemConfigurationEntry],
    cart_line_items: Iterable[LineItem],
) -> bool:
    """True iff every line item has an entry flagged configured.

    An empty cart is never configured.
    """
    items = list(cart_line_items)
    if not items:
        return False
    for item in items:
        entry = entries.get(item.id)
        if entry is None or not entry.configured:
            return False
    return True


def first_unconfigured_index(
    ordered_items: list[LineItem],
    entries: Mapping[str, ItemConfigurationEntry],
) -> int:
    """Index of the first item whose entry is not configured, or -1."""
    for index, item in enumerate(ordered_items):
        entry = entries.get(item.id)
        if entry is None or not entry.configured:
            return index
    return -1


class CompletionAggregator:
    """Keeps ``configured`` flags and the all-configured signal current.

    ``refresh`` is called after every model mutation. Items listed in
    ``held`` (the item open in the editor) stay unconfigured until the
    shopper continues past them, whatever their data says.
    """

    def __init__(self, delivery_dates_enabled: bool = False) -> None:
        self.delivery_dates_enabled = delivery_dates_enabled
        self.all_items_configured = False
        self._listeners: list[Callable[[bool], None]] = []

    def subscribe(self, listener: Callable[[bool], None]) -> None:
        """Call ``listener(value)`` whenever the all-configured signal flips."""
        self._listeners.append(listener)

    def refresh(self, model: ItemConfigurationModel, held: Iterable[str] = ()) -> bool:
        held_ids = {str(i) for i in held}
        for item in model.ordered_items():
            entry = model.entry_for(item.id)
            entry.configured = (
                item.id not in held_ids
                and is_configured(entry, self.delivery_dates_enabled)
            )

        value = all_configured(model.entries, model.ordered_items())
        if value != self.all_items_configured:
            logger.debug("completion_changed all_configured=%s", value)
            self.all_items_configured = value
            for listener in self._listeners:
                listener(value)
        return value

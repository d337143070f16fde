"""Per-item shipping wizard.

Walks the shopper through one line item at a time: pick an address, pick a
shipping option, optionally pick a delivery date, continue. Multi-quantity
items can be split into single-quantity siblings so each unit ships to its
own recipient.

Only one item is open in the editor at a time. Every public operation is a
user action: it returns True on success and False on failure, and never
raises. Validation failures leave state untouched and set ``error``.
Gateway failures abort the action, exit edit mode, notify the
``on_unhandled_error`` sink, and run a reconciliation pass so no
half-updated consignment is left behind.

Example:
    wizard = WizardController(client, FileConsignmentStore(path), checkout_id)
    await wizard.start()
    await wizard.select_address(item_id, address)
    await wizard.select_shipping_option(item_id, option_id)
    await wizard.continue_to_next()
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import date
from enum import Enum

from multiship.errors import (
    EditInProgressError,
    MultiShipError,
    WizardValidationError,
)
from multiship.gateway.models import Address, Consignment, LineItem, ShippingOption
from multiship.gateway.protocol import CheckoutGateway, ConsignmentRequest, GatewayError
from multiship.services.address_validation import (
    DEFAULT_REQUIRED_FIELDS,
    AddressValidator,
    RequiredFieldsValidator,
    missing_fields,
)
from multiship.services.completion import (
    CompletionAggregator,
    first_unconfigured_index,
    is_configured,
)
from multiship.services.consignment_cache import (
    ConsignmentStore,
    DeliveryDate,
    PersistedRecord,
)
from multiship.services.item_config import (
    FeatureFlags,
    ItemConfigurationEntry,
    ItemConfigurationModel,
)
from multiship.services.reconciler import ConsignmentReconciler, ReconcileResult
from multiship.utils.redaction import redact_address

logger = logging.getLogger(__name__)

# Consignments created by a split need an address the platform accepts;
# siblings get their real address when the shopper picks one.
DEFAULT_SPLIT_ADDRESS = Address(
    city="Los Angeles",
    state_or_province="California",
    state_or_province_code="CA",
    country_code="US",
    postal_code="90017",
)

SIBLING_SEPARATOR = "#"


class ItemState(str, Enum):
    """Where a line item is in the wizard."""

    IDLE = "idle"
    ADDRESS_PENDING = "address_pending"
    OPTIONS_PENDING = "options_pending"
    OPTION_SELECTED = "option_selected"
    DATE_PENDING = "date_pending"
    CONFIGURED = "configured"


EDITING_STATES: frozenset[ItemState] = frozenset({
    ItemState.ADDRESS_PENDING,
    ItemState.OPTIONS_PENDING,
    ItemState.OPTION_SELECTED,
    ItemState.DATE_PENDING,
})


def sibling_id(item_id: str, index: int) -> str:
    """Wizard id of the ``index``-th (1-based) unit of a split line item."""
    return f"{item_id}{SIBLING_SEPARATOR}{index}"


def _user_action(method):
    """Run a wizard operation as one busy, failure-funnelled user action."""

    @functools.wraps(method)
    async def wrapper(self: "WizardController", *args, **kwargs) -> bool:
        self.busy = True
        self.error = None
        try:
            return await method(self, *args, **kwargs)
        except WizardValidationError as exc:
            self.error = exc.error
            logger.info(
                "wizard_rejected action=%s code=%s message=%s",
                method.__name__,
                exc.code,
                exc.error.message,
            )
            return False
        except GatewayError as exc:
            return await self._fail(exc)
        except Exception as exc:
            logger.exception("wizard_unexpected_error action=%s", method.__name__)
            return await self._fail(exc)
        finally:
            self.busy = False

    return wrapper


class WizardController:
    """Drives per-item shipping configuration for one checkout.

    Args:
        gateway: Remote checkout operations.
        cache: Store of confirmed consignments used for restoration.
        checkout_id: The checkout being configured.
        features: Optional capabilities (delivery dates, gift messages,
            auto-selected recommended option).
        address_validator: Host address validation; presence checks by default.
        required_fields: Address fields passed to the validator.
        on_unhandled_error: Sink called with any error that aborts an action.
        navigate_next_step: Called once with ``is_billing_same_as_shipping``
            when the shopper finishes the step.
        delivery_date_option_id: Cart product option that stores the date.
        split_address: Placeholder address for consignments created by a split.
    """

    def __init__(
        self,
        gateway: CheckoutGateway,
        cache: ConsignmentStore,
        checkout_id: str,
        *,
        features: FeatureFlags | None = None,
        address_validator: AddressValidator | None = None,
        required_fields: list[str] | None = None,
        on_unhandled_error: Callable[[Exception], None] | None = None,
        navigate_next_step: Callable[[bool], None] | None = None,
        delivery_date_option_id: str | None = None,
        split_address: Address | None = None,
    ) -> None:
        self.gateway = gateway
        self.cache = cache
        self.checkout_id = checkout_id
        self.features = features or FeatureFlags()
        self.address_validator = address_validator or RequiredFieldsValidator()
        self.required_fields = list(required_fields or DEFAULT_REQUIRED_FIELDS)
        self.on_unhandled_error = on_unhandled_error
        self.navigate_next_step = navigate_next_step
        self.delivery_date_option_id = delivery_date_option_id
        self.split_address = split_address or DEFAULT_SPLIT_ADDRESS

        self.reconciler = ConsignmentReconciler(gateway, cache, checkout_id)
        self.aggregator = CompletionAggregator(self.features.delivery_dates_enabled)

        self.model: ItemConfigurationModel | None = None
        self.cart_id: str | None = None
        self.customer_message = ""
        self.states: dict[str, ItemState] = {}
        self.current_index = -1
        self.error: MultiShipError | None = None
        self.busy = False
        self.completed = False
        self.last_result: ReconcileResult | None = None

        # Transient selections for the open item
        self.selected_address: Address | None = None
        self.selected_option_id: str | None = None
        self.selected_delivery_date: date | None = None

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def all_configured(self) -> bool:
        return self.aggregator.all_items_configured

    @property
    def current_item(self) -> LineItem | None:
        if self.model is None or self.current_index < 0:
            return None
        return self.model.item_at(self.current_index)

    def state_of(self, item_id: str) -> ItemState:
        return self.states.get(str(item_id), ItemState.IDLE)

    def entries(self) -> list[ItemConfigurationEntry]:
        """Entries in display order."""
        if self.model is None:
            return []
        return self.model.ordered_entries()

    def editing_item(self) -> LineItem | None:
        """The item currently mid-edit, if any."""
        current = self.current_item
        if current is not None and self.state_of(current.id) in EDITING_STATES:
            return current
        return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @_user_action
    async def start(self) -> bool:
        """Load the checkout, reconcile, and open the first unconfigured item."""
        checkout = await self.gateway.get_checkout(self.checkout_id)
        self.cart_id = checkout.cart.id
        self.customer_message = checkout.customer_message
        self.completed = False

        items = self._expand_split_items(checkout.cart.physical_items, checkout.consignments)
        self.model = ItemConfigurationModel(items)
        self.states = {item.id: ItemState.IDLE for item in items}
        self.current_index = -1
        logger.info(
            "wizard_start checkout=%s cart=%s items=%d consignments=%d",
            self.checkout_id,
            self.cart_id,
            len(items),
            len(checkout.consignments),
        )

        result = await self.reconciler.reconcile(checkout.consignments, items, {})
        self._apply(result)
        self._open_next()
        return True

    @_user_action
    async def select_address(self, item_id: str, address: Address) -> bool:
        """Create or update the item's consignment for ``address``.

        Does not advance: the shopper picks from the returned options next.
        On a gateway failure the entry is left as it was and the item stays
        in ADDRESS_PENDING so the shopper can retry.
        """
        item = self._target(item_id)
        if not self.address_validator.is_valid_address(address, self.required_fields):
            raise WizardValidationError(
                "E-2101",
                fields=", ".join(missing_fields(address, self.required_fields)) or "address",
                item_ids=[item.id],
            )

        entry = self.model.entry_for(item.id)
        self.selected_address = address
        self.states[item.id] = ItemState.ADDRESS_PENDING
        logger.info(
            "wizard_select_address item=%s consignment=%s address=%s",
            item.id,
            entry.consignment_id,
            redact_address(address),
        )
        try:
            if entry.consignment_id:
                consignments = await self.gateway.update_consignment_address(
                    self.checkout_id,
                    entry.consignment_id,
                    address,
                    item.platform_id,
                    item.quantity,
                )
            else:
                consignments = await self.gateway.create_consignment(
                    self.checkout_id, address, item.platform_id, item.quantity
                )
        except GatewayError as exc:
            return await self._fail(exc, item.id, keep_editing=True)

        consignment = self._find_consignment(consignments, item, entry.consignment_id)
        if consignment is None:
            error = MultiShipError.from_code("E-3102", item_id=item.id)
            return await self._fail(GatewayError(error.message), item.id)

        if consignment.selected_shipping_option is None:
            # The address changed; the cached option no longer describes it
            self.cache.delete(consignment.id)

        updated = ItemConfigurationEntry.from_consignment(
            item.id, consignment, entry.delivery_date
        )
        if updated.shipping_address is None:
            updated.shipping_address = address
        self.model.set_entry(updated)
        self.selected_option_id = (
            updated.selected_shipping_option.id if updated.selected_shipping_option else None
        )
        self.states[item.id] = ItemState.OPTIONS_PENDING

        if self.features.auto_recommend_option and updated.selected_shipping_option is None:
            recommended = next(
                (o for o in updated.available_shipping_options if o.is_recommended), None
            )
            if recommended is not None:
                logger.info("wizard_auto_recommend item=%s option=%s", item.id, recommended.id)
                await self._apply_option(item, updated, recommended)

        self._refresh()
        return True

    @_user_action
    async def select_shipping_option(self, item_id: str, option_id: str) -> bool:
        """Select a quoted option and record the confirmed pair in the cache."""
        item = self._target(item_id)
        entry = self.model.entry_for(item.id)
        if entry.shipping_address is None or not entry.consignment_id:
            raise WizardValidationError("E-2102", item_ids=[item.id])
        option = entry.find_option(option_id)
        if option is None:
            raise WizardValidationError("E-2107", option_id=option_id, item_ids=[item.id])

        await self._apply_option(item, entry, option)
        self._refresh()
        return True

    @_user_action
    async def select_delivery_date(self, item_id: str, day: date) -> bool:
        """Store the delivery date as a cart line-item option (MM/DD/YYYY)."""
        if not self.features.delivery_dates_enabled or not self.delivery_date_option_id:
            raise WizardValidationError("E-2110", feature="Delivery dates")
        item = self._target(item_id)
        entry = self.model.entry_for(item.id)

        delivery = DeliveryDate.from_date(day)
        await self.gateway.set_line_item_option(
            self.cart_id, item, self.delivery_date_option_id, delivery.display
        )

        entry.delivery_date = day
        self.selected_delivery_date = day
        if entry.consignment_id:
            record = self.cache.get(entry.consignment_id)
            if record is not None:
                self.cache.put(replace(record, selected_delivery_date=delivery))
        if entry.has_address_and_option:
            self.states[item.id] = ItemState.CONFIGURED
        logger.info("wizard_select_delivery_date item=%s date=%s", item.id, delivery.iso)
        self._refresh()
        return True

    @_user_action
    async def split_item(self, item_id: str, quantity: int) -> bool:
        """Split a multi-quantity item into ``quantity`` single-unit siblings.

        Allowed only before the item has a consignment and only for the
        item's full quantity. The first sibling takes the item's place in
        the display order and is opened in the editor.
        """
        item = self._target(item_id)
        if quantity <= 1:
            raise WizardValidationError(
                "E-2106", item_id=item.id, reason="quantity must be greater than 1",
                item_ids=[item.id],
            )
        if quantity != item.quantity:
            raise WizardValidationError(
                "E-2106", item_id=item.id,
                reason=f"quantity must equal the item quantity ({item.quantity})",
                item_ids=[item.id],
            )
        entry = self.model.entry_for(item.id)
        if entry.consignment_id:
            raise WizardValidationError(
                "E-2106", item_id=item.id, reason="it already has a consignment",
                item_ids=[item.id],
            )

        requests = [
            ConsignmentRequest(address=self.split_address, line_item_id=item.platform_id, quantity=1)
            for _ in range(quantity)
        ]
        claimed = {e.consignment_id for e in self.model.entries.values() if e.consignment_id}
        self.reconciler.split_in_flight = frozenset({item.platform_id})
        try:
            consignments = await self.gateway.create_consignments(self.checkout_id, requests)
        finally:
            self.reconciler.split_in_flight = None

        created = [
            c for c in consignments
            if c.id and c.id not in claimed and not c.is_multi_item and c.covers(item.platform_id)
        ]
        if len(created) != quantity:
            raise GatewayError(
                f"Split of item '{item.id}' returned {len(created)} consignments, expected {quantity}"
            )

        siblings = [
            item.model_copy(update={
                "id": sibling_id(item.id, n),
                "remote_id": item.platform_id,
                "quantity": 1,
                "cart_quantity": item.platform_quantity,
            })
            for n in range(1, quantity + 1)
        ]
        sibling_entries = [
            ItemConfigurationEntry(
                line_item_id=sibling.id,
                consignment_id=consignment.id,
                available_shipping_options=list(consignment.available_shipping_options),
            )
            for sibling, consignment in zip(siblings, created)
        ]
        self.model.replace_item(item.id, siblings, sibling_entries)
        self.states.pop(item.id, None)
        for sibling in siblings:
            self.states[sibling.id] = ItemState.IDLE
        logger.info(
            "wizard_split item=%s quantity=%d consignments=%s",
            item.id,
            quantity,
            ",".join(c.id for c in created),
        )

        self._open(self.model.index_of(siblings[0].id))
        return True

    @_user_action
    async def continue_to_next(self) -> bool:
        """Finish the open item and open the next unconfigured one."""
        current = self.current_item
        if current is None:
            raise WizardValidationError("E-2112")
        entry = self.model.entry_for(current.id)
        if entry.shipping_address is None:
            raise WizardValidationError("E-2102", item_ids=[current.id])
        if entry.selected_shipping_option is None:
            raise WizardValidationError("E-2103", item_ids=[current.id])
        if self.features.delivery_dates_enabled and entry.delivery_date is None:
            raise WizardValidationError("E-2104", item_ids=[current.id])

        self.states[current.id] = ItemState.CONFIGURED
        self._refresh()
        logger.info(
            "wizard_continue item=%s all_configured=%s", current.id, self.all_configured
        )
        self._open_next()
        return True

    @_user_action
    async def edit_existing(self, index: int) -> bool:
        """Reopen an item, refreshing it from the remote consignment first."""
        item = self.model.item_at(index) if self.model is not None else None
        if item is None:
            raise WizardValidationError("E-2111", item_id=str(index))
        editing = self.editing_item()
        if editing is not None and editing.id != item.id:
            raise EditInProgressError(editing.id)

        consignments = await self.gateway.list_consignments(self.checkout_id)
        entry = self.model.entry_for(item.id)
        remote = next((c for c in consignments if c.id and c.id == entry.consignment_id), None)
        if remote is not None:
            refreshed = ItemConfigurationEntry.from_consignment(
                item.id, remote, entry.delivery_date
            )
            if refreshed.has_address_and_option:
                self._write_record(item, refreshed)
            self.model.set_entry(refreshed)
        elif entry.consignment_id:
            self.model.set_entry(ItemConfigurationEntry.empty(item.id))

        logger.info("wizard_edit item=%s index=%d", item.id, index)
        self._open(index)
        return True

    @_user_action
    async def cancel_edit(self) -> bool:
        """Close the editor; the item is re-evaluated from its data."""
        editing = self.editing_item()
        if editing is None:
            raise WizardValidationError("E-2112")
        self.states[editing.id] = ItemState.IDLE
        self._close()
        self._refresh()
        return True

    @_user_action
    async def resume(self) -> bool:
        """Open the first unconfigured item when nothing is open."""
        if self.model is None:
            raise WizardValidationError("E-2112")
        if self.editing_item() is None:
            self._open_next()
        return True

    @_user_action
    async def update_gift_message(self, item_id: str, message: str) -> bool:
        """Attach a gift message to a line item, then reconcile."""
        if not self.features.gift_messages_enabled:
            raise WizardValidationError("E-2110", feature="Gift messages")
        item = self.model.item(item_id) if self.model is not None else None
        if item is None:
            raise WizardValidationError("E-2111", item_id=str(item_id))

        await self.gateway.set_gift_message(self.cart_id, item.platform_id, message)
        self.model.update_item(item.model_copy(update={"gift_message": message}))
        logger.info("wizard_gift_message item=%s length=%d", item.id, len(message))
        await self._reconcile()
        return True

    @_user_action
    async def final_continue(self, is_billing_same_as_shipping: bool = True) -> bool:
        """Leave the shipping step once every item is configured."""
        editing = self.editing_item()
        if editing is not None:
            raise EditInProgressError(editing.id)
        if not self.all_configured:
            raise WizardValidationError("E-2109")
        if self.completed:
            return True

        # Writing the checkout back makes the platform recompute totals
        await self.gateway.touch_checkout(self.checkout_id, self.customer_message)
        self.completed = True
        logger.info("wizard_complete checkout=%s", self.checkout_id)
        if self.navigate_next_step is not None:
            self.navigate_next_step(is_billing_same_as_shipping)
        return True

    @_user_action
    async def reconcile(self) -> bool:
        """Run a reconciliation pass against the current remote state."""
        if self.model is None:
            raise WizardValidationError("E-2112")
        result = await self._reconcile()
        return result.ok

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _target(self, item_id: str) -> LineItem:
        """Return the item if it is the one open in the editor."""
        item = self.model.item(item_id) if self.model is not None else None
        if item is None:
            raise WizardValidationError("E-2111", item_id=str(item_id))
        current = self.current_item
        if current is None or current.id != item.id:
            editing = self.editing_item()
            if editing is not None:
                raise EditInProgressError(editing.id)
            raise WizardValidationError("E-2108", item_id=item.id, item_ids=[item.id])
        return item

    def _expand_split_items(
        self, items: list[LineItem], consignments: list[Consignment]
    ) -> list[LineItem]:
        """Rebuild split siblings for items already split in an earlier session."""
        expanded: list[LineItem] = []
        cached_ids = {record.line_item_id for record in self.cache.records()}
        for item in items:
            singles = [
                c for c in consignments
                if not c.is_multi_item and c.covers(item.platform_id)
            ]
            sibling_ids = [sibling_id(item.id, n) for n in range(1, item.quantity + 1)]
            was_split = len(singles) > 1 or any(sid in cached_ids for sid in sibling_ids)
            if item.quantity > 1 and was_split:
                expanded.extend(
                    item.model_copy(update={
                        "id": sid, "remote_id": item.platform_id, "quantity": 1,
                        "cart_quantity": item.platform_quantity,
                    })
                    for sid in sibling_ids
                )
            else:
                expanded.append(item)
        return expanded

    def _find_consignment(
        self, consignments: list[Consignment], item: LineItem, consignment_id: str | None
    ) -> Consignment | None:
        if consignment_id:
            for consignment in consignments:
                if consignment.id == consignment_id:
                    return consignment
        claimed = {
            e.consignment_id for e in self.model.entries.values()
            if e.consignment_id and e.line_item_id != item.id
        }
        for consignment in consignments:
            if (
                consignment.id
                and consignment.id not in claimed
                and not consignment.is_multi_item
                and consignment.covers(item.platform_id)
            ):
                return consignment
        return None

    async def _apply_option(
        self, item: LineItem, entry: ItemConfigurationEntry, option: ShippingOption
    ) -> None:
        consignments = await self.gateway.set_shipping_option(
            self.checkout_id, entry.consignment_id, option.id
        )
        updated = next((c for c in consignments if c.id == entry.consignment_id), None)
        if updated is not None:
            if updated.available_shipping_options:
                entry.available_shipping_options = list(updated.available_shipping_options)
            if updated.shipping_address is not None:
                entry.shipping_address = updated.shipping_address
            entry.selected_shipping_option = updated.selected_shipping_option or option
        else:
            entry.selected_shipping_option = option
        self.selected_option_id = entry.selected_shipping_option.id
        self._write_record(item, entry)
        self.states[item.id] = (
            ItemState.DATE_PENDING
            if self.features.delivery_dates_enabled and entry.delivery_date is None
            else ItemState.OPTION_SELECTED
        )
        logger.info(
            "wizard_select_option item=%s consignment=%s option=%s",
            item.id,
            entry.consignment_id,
            entry.selected_shipping_option.id,
        )

    def _write_record(self, item: LineItem, entry: ItemConfigurationEntry) -> None:
        existing = self.cache.get(entry.consignment_id)
        delivery = None
        if existing is not None and existing.line_item_id == item.id:
            delivery = existing.selected_delivery_date
        if entry.delivery_date is not None:
            delivery = DeliveryDate.from_date(entry.delivery_date)
        self.cache.put(
            PersistedRecord(
                consignment_id=entry.consignment_id,
                line_item_id=item.id,
                quantity=item.quantity,
                shipping_address=entry.shipping_address,
                selected_shipping_option_id=entry.selected_shipping_option.id,
                selected_delivery_date=delivery,
            )
        )

    def _editing_state_for(self, entry: ItemConfigurationEntry) -> ItemState:
        if entry.shipping_address is None:
            return ItemState.ADDRESS_PENDING
        if entry.selected_shipping_option is None:
            return ItemState.OPTIONS_PENDING
        if self.features.delivery_dates_enabled and entry.delivery_date is None:
            return ItemState.DATE_PENDING
        return ItemState.OPTION_SELECTED

    def _open(self, index: int) -> None:
        """Open the item at ``index``, seeding selections from its own entry."""
        item = self.model.item_at(index)
        if item is None:
            self._close()
            return
        entry = self.model.entry_for(item.id)
        self.current_index = index
        self.states[item.id] = self._editing_state_for(entry)
        self.selected_address = entry.shipping_address
        self.selected_option_id = (
            entry.selected_shipping_option.id if entry.selected_shipping_option else None
        )
        self.selected_delivery_date = entry.delivery_date
        self._refresh()

    def _open_next(self) -> None:
        self._refresh()
        index = first_unconfigured_index(self.model.ordered_items(), self.model.entries)
        if index < 0:
            self._close()
            return
        self._open(index)

    def _close(self) -> None:
        self.current_index = -1
        self.selected_address = None
        self.selected_option_id = None
        self.selected_delivery_date = None

    def _refresh(self) -> None:
        """Recompute configured flags and settle the states of closed items."""
        current = self.current_item
        if current is not None and self.state_of(current.id) == ItemState.CONFIGURED:
            entry = self.model.entry_for(current.id)
            if not is_configured(entry, self.features.delivery_dates_enabled):
                self.states[current.id] = self._editing_state_for(entry)

        editing = self.editing_item()
        self.aggregator.refresh(self.model, [editing.id] if editing is not None else [])
        for item in self.model.ordered_items():
            if current is not None and item.id == current.id:
                continue
            self.states[item.id] = (
                ItemState.CONFIGURED
                if self.model.entry_for(item.id).configured
                else ItemState.IDLE
            )

    def _apply(self, result: ReconcileResult) -> None:
        self.last_result = result
        self.model.set_entries(result.entries)
        editing = self.editing_item()
        for item_id in result.reset_items:
            self.states[item_id] = ItemState.IDLE
            if editing is not None and editing.id == item_id:
                self._close()
                editing = None
        if editing is not None:
            entry = self.model.entry_for(editing.id)
            if entry.consignment_id is None and self.states[editing.id] != ItemState.ADDRESS_PENDING:
                self.states[editing.id] = ItemState.ADDRESS_PENDING
        self._refresh()

    async def _reconcile(self) -> ReconcileResult:
        result = await self.reconciler.load(self.model.ordered_items(), self.model.entries)
        self._apply(result)
        return result

    async def _fail(
        self, exc: Exception, item_id: str | None = None, keep_editing: bool = False
    ) -> bool:
        """Abort the running action: surface, notify the sink, reconcile."""
        current = self.current_item
        item_id = item_id or (current.id if current is not None else None)
        item_ids = [item_id] if item_id else []
        if isinstance(exc, GatewayError):
            self.error = MultiShipError.from_code("E-3101", message=exc.message, item_ids=item_ids)
        else:
            self.error = MultiShipError.from_code("E-4101", message=str(exc), item_ids=item_ids)
        logger.warning(
            "wizard_action_failed checkout=%s item=%s code=%s error=%s",
            self.checkout_id,
            item_id,
            self.error.code,
            self.error.message,
        )

        if not keep_editing:
            editing = self.editing_item()
            if editing is not None:
                self.states[editing.id] = ItemState.IDLE
            self._close()

        if self.on_unhandled_error is not None:
            try:
                self.on_unhandled_error(exc)
            except Exception:
                logger.exception("wizard_error_sink_failed checkout=%s", self.checkout_id)

        if self.model is not None:
            await self._reconcile()
        return False

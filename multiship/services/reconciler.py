"""Consignment reconciliation: bring remote consignments and wizard state together.

A pass reads the checkout's consignments and:

1. Replays cached shipping options onto consignments the platform stripped
   (it evicts the option, then the consignment, whenever one is left
   incomplete).
2. Re-reads the remote state and deletes whatever is still incomplete,
   purging its cache record.
3. Deletes consignments covering several line items, since each item ships
   on its own consignment, unless a split for exactly that item set is in
   flight.
4. Builds one entry per line item and merges it with the entries already
   in memory. A complete remote entry always wins; otherwise a complete
   local entry survives a stale or partial remote read.

Every gateway call is awaited before the next one starts. Two overlapping
consignment mutations for the same line item race on the platform side.
Gateway failures are logged and recorded on the result; nothing raises out
of a pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field

from multiship.errors import MultiShipError
from multiship.gateway.models import Consignment, LineItem
from multiship.gateway.protocol import CheckoutGateway, GatewayError
from multiship.services.consignment_cache import (
    ConsignmentStore,
    DeliveryDate,
    PersistedRecord,
)
from multiship.services.item_config import ItemConfigurationEntry
from multiship.utils.redaction import redact_address

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of one reconciliation pass.

    Unpacks as ``entries, incomplete_handled_count``.
    """

    entries: dict[str, ItemConfigurationEntry]
    incomplete_handled_count: int = 0
    restored: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    reset_items: list[str] = field(default_factory=list)
    consignments: list[Consignment] = field(default_factory=list)
    failures: list[MultiShipError] = field(default_factory=list)

    def __iter__(self) -> Iterator:
        yield self.entries
        yield self.incomplete_handled_count

    @property
    def ok(self) -> bool:
        return not self.failures


class ConsignmentReconciler:
    """Runs reconciliation passes for one checkout."""

    def __init__(
        self,
        gateway: CheckoutGateway,
        cache: ConsignmentStore,
        checkout_id: str,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self._checkout_id = checkout_id
        # Line item ids of a split whose consignments are being created
        self.split_in_flight: frozenset[str] | None = None

    async def load(
        self,
        cart_line_items: list[LineItem],
        existing: Mapping[str, ItemConfigurationEntry] | None = None,
    ) -> ReconcileResult:
        """Fetch remote consignments and reconcile against them.

        When the read fails, existing entries are returned unchanged and
        the failure is recorded on the result.
        """
        try:
            remote = await self._gateway.list_consignments(self._checkout_id)
        except GatewayError as exc:
            logger.warning(
                "reconcile_list_failed checkout=%s error=%s", self._checkout_id, exc.message
            )
            existing = existing or {}
            entries = {
                item.id: (
                    existing[item.id].copy() if item.id in existing
                    else ItemConfigurationEntry.empty(item.id)
                )
                for item in cart_line_items
            }
            return ReconcileResult(
                entries=entries,
                failures=[MultiShipError.from_code("E-3101", message=exc.message)],
            )
        return await self.reconcile(remote, cart_line_items, existing)

    async def reconcile(
        self,
        remote_consignments: list[Consignment],
        cart_line_items: list[LineItem],
        existing: Mapping[str, ItemConfigurationEntry] | None = None,
    ) -> ReconcileResult:
        """Repair remote consignments and derive one entry per line item.

        Args:
            remote_consignments: Consignments as last read from the gateway.
            cart_line_items: The wizard's line items in display order.
            existing: Entries currently held in memory, keyed by line item id.

        Returns:
            ReconcileResult with merged entries and the number of incomplete
            consignments that were restored or deleted.
        """
        items = list(cart_line_items)
        existing = existing or {}
        result = ReconcileResult(entries={})
        snapshot = list(remote_consignments)

        incomplete = [c for c in snapshot if c.id and not c.is_complete]
        if incomplete:
            live_ids = {c.id for c in snapshot if c.id}
            used: set[str] = set()
            for consignment in incomplete:
                if consignment.is_multi_item:
                    continue
                snapshot = await self._restore(
                    consignment, snapshot, items, existing, result, live_ids, used
                )

            snapshot = await self._refetch(snapshot)

            still_incomplete = [
                c for c in snapshot
                if c.id and not c.is_complete and not self._split_exempt(c)
            ]
            for consignment in still_incomplete:
                if await self._delete(consignment, result, reason="incomplete"):
                    result.incomplete_handled_count += 1
                if consignment.is_multi_item:
                    self._reset_items(consignment, items, result)

        for consignment in snapshot:
            if not consignment.id or consignment.id in result.deleted:
                continue
            if not consignment.is_multi_item or not consignment.is_complete:
                continue
            if self._split_exempt(consignment):
                logger.info(
                    "reconcile_split_in_flight consignment=%s items=%s",
                    consignment.id,
                    ",".join(consignment.line_item_ids),
                )
                continue
            await self._delete(consignment, result, reason="multi_item")
            self._reset_items(consignment, items, result)

        deleted = set(result.deleted)
        result.consignments = [c for c in snapshot if c.id not in deleted]
        usable = [
            c for c in result.consignments
            if c.id and c.is_complete and not c.is_multi_item
        ]
        matches = self._match(usable, items, existing)

        for item in items:
            incoming = self._entry_for(item, matches.get(item.id), existing.get(item.id))
            result.entries[item.id] = self._merge(item, incoming, existing.get(item.id), result)
            self._write_through(item, result.entries[item.id], matches.get(item.id))

        logger.info(
            "reconcile_done checkout=%s items=%d restored=%d deleted=%d failures=%d",
            self._checkout_id,
            len(items),
            len(result.restored),
            len(result.deleted),
            len(result.failures),
        )
        return result

    def _split_exempt(self, consignment: Consignment) -> bool:
        return (
            self.split_in_flight is not None
            and consignment.is_multi_item
            and frozenset(consignment.line_item_ids) == self.split_in_flight
        )

    def _record_for(
        self,
        consignment: Consignment,
        items: list[LineItem],
        existing: Mapping[str, ItemConfigurationEntry],
        live_ids: set[str],
        used: set[str],
    ) -> PersistedRecord | None:
        """Find the cached record for a consignment, by id first, then by item.

        The line item fallback only covers a consignment the platform
        replaced: the record's own consignment must be gone and not already
        replayed in this pass. A consignment held by an entry is only
        matched against that entry's item, so split siblings never borrow
        each other's options.
        """
        record = self._cache.get(consignment.id)
        if record is not None:
            return record

        claimant = next(
            (
                item for item in items
                if item.id in existing and existing[item.id].consignment_id == consignment.id
            ),
            None,
        )
        if claimant is not None:
            owners = [claimant]
        else:
            owners = [
                item for item in items
                if consignment.covers(item.platform_id)
                and not (
                    item.id in existing
                    and existing[item.id].consignment_id in live_ids
                )
            ]
        for item in owners:
            record = self._cache.get_by_line_item(item.id, item.quantity)
            if record is None or record.line_item_id != item.id:
                continue
            if record.consignment_id in live_ids or record.consignment_id in used:
                continue
            return record
        return None

    async def _restore(
        self,
        consignment: Consignment,
        snapshot: list[Consignment],
        items: list[LineItem],
        existing: Mapping[str, ItemConfigurationEntry],
        result: ReconcileResult,
        live_ids: set[str],
        used: set[str],
    ) -> list[Consignment]:
        record = self._record_for(consignment, items, existing, live_ids, used)
        if record is None or not record.selected_shipping_option_id:
            return snapshot
        used.add(record.consignment_id)

        logger.info(
            "reconcile_restore consignment=%s item=%s option=%s",
            consignment.id,
            record.line_item_id,
            record.selected_shipping_option_id,
        )
        try:
            updated = await self._gateway.set_shipping_option(
                self._checkout_id, consignment.id, record.selected_shipping_option_id
            )
        except GatewayError as exc:
            logger.warning(
                "reconcile_restore_failed consignment=%s item=%s error=%s",
                consignment.id,
                record.line_item_id,
                exc.message,
            )
            result.failures.append(
                MultiShipError.from_code(
                    "E-3101", message=exc.message, item_ids=[record.line_item_id]
                )
            )
            return snapshot

        result.restored.append(consignment.id)
        result.incomplete_handled_count += 1
        if updated:
            return updated
        return snapshot

    async def _refetch(self, snapshot: list[Consignment]) -> list[Consignment]:
        try:
            return await self._gateway.list_consignments(self._checkout_id)
        except GatewayError as exc:
            logger.warning(
                "reconcile_refetch_failed checkout=%s error=%s", self._checkout_id, exc.message
            )
            return snapshot

    async def _delete(
        self, consignment: Consignment, result: ReconcileResult, reason: str
    ) -> bool:
        logger.info(
            "reconcile_delete consignment=%s reason=%s items=%s address=%s",
            consignment.id,
            reason,
            ",".join(consignment.line_item_ids),
            redact_address(consignment.shipping_address),
        )
        try:
            await self._gateway.delete_consignment(self._checkout_id, consignment.id)
        except GatewayError as exc:
            logger.warning(
                "reconcile_delete_failed consignment=%s reason=%s error=%s",
                consignment.id,
                reason,
                exc.message,
            )
            result.failures.append(
                MultiShipError.from_code(
                    "E-3101", message=exc.message, item_ids=list(consignment.line_item_ids)
                )
            )
            return False

        self._cache.delete(consignment.id)
        result.deleted.append(consignment.id)
        return True

    def _reset_items(
        self, consignment: Consignment, items: list[LineItem], result: ReconcileResult
    ) -> None:
        for item in items:
            if consignment.covers(item.platform_id) and item.id not in result.reset_items:
                result.reset_items.append(item.id)

    def _match(
        self,
        usable: list[Consignment],
        items: list[LineItem],
        existing: Mapping[str, ItemConfigurationEntry],
    ) -> dict[str, Consignment]:
        """Pair line items with complete single-item consignments.

        Known consignment ids win, then cached records, then the first
        unclaimed consignment covering the item's platform id. Split
        siblings share a platform id, so the id passes come first.
        """
        by_id = {c.id: c for c in usable}
        claimed: set[str] = set()
        matches: dict[str, Consignment] = {}

        def _claim(item: LineItem, consignment_id: str | None) -> None:
            if consignment_id in by_id and consignment_id not in claimed:
                matches[item.id] = by_id[consignment_id]
                claimed.add(consignment_id)

        for item in items:
            entry = existing.get(item.id)
            if entry is not None:
                _claim(item, entry.consignment_id)

        for item in items:
            if item.id in matches:
                continue
            record = self._cache.get_by_line_item(item.id, item.quantity)
            if record is not None:
                _claim(item, record.consignment_id)

        for item in items:
            if item.id in matches:
                continue
            for consignment in usable:
                if consignment.id not in claimed and consignment.covers(item.platform_id):
                    _claim(item, consignment.id)
                    break
        return matches

    def _entry_for(
        self,
        item: LineItem,
        consignment: Consignment | None,
        previous: ItemConfigurationEntry | None,
    ) -> ItemConfigurationEntry:
        if consignment is None:
            return ItemConfigurationEntry.empty(item.id)

        delivery_date = None
        if previous is not None and previous.consignment_id == consignment.id:
            delivery_date = previous.delivery_date
        if delivery_date is None:
            record = self._cache.get(consignment.id)
            if record is not None and record.selected_delivery_date is not None:
                delivery_date = record.selected_delivery_date.to_date()
        return ItemConfigurationEntry.from_consignment(item.id, consignment, delivery_date)

    def _merge(
        self,
        item: LineItem,
        incoming: ItemConfigurationEntry,
        previous: ItemConfigurationEntry | None,
        result: ReconcileResult,
    ) -> ItemConfigurationEntry:
        if item.id in result.reset_items or previous is None:
            return incoming
        if incoming.has_address_and_option:
            return incoming
        if previous.has_address_and_option and previous.consignment_id not in result.deleted:
            return previous.copy()
        return incoming

    def _write_through(
        self,
        item: LineItem,
        entry: ItemConfigurationEntry,
        consignment: Consignment | None,
    ) -> None:
        """Mirror remote-confirmed complete consignments into the cache."""
        if consignment is None or entry.consignment_id != consignment.id:
            return
        if not entry.has_address_and_option:
            return
        current = self._cache.get(consignment.id)
        delivery = current.selected_delivery_date if current else None
        if delivery is None and entry.delivery_date is not None:
            delivery = DeliveryDate.from_date(entry.delivery_date)
        if (
            current is not None
            and current.line_item_id == item.id
            and current.quantity == item.quantity
            and current.selected_shipping_option_id == entry.selected_shipping_option.id
            and current.shipping_address == entry.shipping_address
            and current.selected_delivery_date == delivery
        ):
            return
        self._cache.put(
            PersistedRecord(
                consignment_id=consignment.id,
                line_item_id=item.id,
                quantity=item.quantity,
                shipping_address=entry.shipping_address,
                selected_shipping_option_id=entry.selected_shipping_option.id,
                selected_delivery_date=delivery,
            )
        )

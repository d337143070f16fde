"""Local store of confirmed consignments, replayed when the platform evicts them.

The platform deletes any consignment left without a selected shipping
option. Every time a consignment reaches "address + option" its record is
written here, keyed by consignment id and by (line item id, quantity), so a
later reconciliation pass can put the option back.

Two stores share one interface: an in-memory store for tests and embedding,
and a JSON-file store that outlives a single process but is scoped to one
checkout session by its path.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from multiship.gateway.models import Address

logger = logging.getLogger(__name__)

_CACHE_VERSION = 1


@dataclass(frozen=True)
class DeliveryDate:
    """Chosen delivery date in the three shapes the checkout UI uses."""

    display: str
    iso: str
    value: int

    @classmethod
    def from_date(cls, day: date) -> "DeliveryDate":
        """Build from a calendar date; ``value`` is epoch milliseconds at UTC midnight."""
        midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
        return cls(
            display=day.strftime("%m/%d/%Y"),
            iso=day.isoformat(),
            value=int(midnight.timestamp() * 1000),
        )

    def to_date(self) -> date:
        return date.fromisoformat(self.iso)


@dataclass
class PersistedRecord:
    """A consignment that once had both an address and a shipping option."""

    consignment_id: str
    line_item_id: str
    quantity: int
    shipping_address: Address | None
    selected_shipping_option_id: str
    selected_delivery_date: DeliveryDate | None = None
    saved_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "consignmentId": self.consignment_id,
            "lineItemId": self.line_item_id,
            "quantity": self.quantity,
            "shippingAddress": (
                self.shipping_address.to_api() if self.shipping_address else None
            ),
            "selectedShippingOptionId": self.selected_shipping_option_id,
            "selectedDeliveryDate": (
                {
                    "display": self.selected_delivery_date.display,
                    "iso": self.selected_delivery_date.iso,
                    "value": self.selected_delivery_date.value,
                }
                if self.selected_delivery_date
                else None
            ),
            "savedAt": self.saved_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "PersistedRecord":
        address = raw.get("shippingAddress")
        delivery = raw.get("selectedDeliveryDate")
        return cls(
            consignment_id=str(raw["consignmentId"]),
            line_item_id=str(raw["lineItemId"]),
            quantity=int(raw["quantity"]),
            shipping_address=Address.model_validate(address) if address else None,
            selected_shipping_option_id=str(raw.get("selectedShippingOptionId") or ""),
            selected_delivery_date=DeliveryDate(**delivery) if delivery else None,
            saved_at=raw.get("savedAt") or datetime.now(timezone.utc).isoformat(),
        )


class ConsignmentStore(Protocol):
    """Lookup and write-through interface used by the reconciler and wizard."""

    def get(self, consignment_id: str) -> PersistedRecord | None: ...

    def get_by_line_item(self, line_item_id: str, quantity: int) -> PersistedRecord | None: ...

    def put(self, record: PersistedRecord) -> None: ...

    def delete(self, consignment_id: str) -> None: ...

    def records(self) -> list[PersistedRecord]: ...

    def clear(self) -> None: ...


class InMemoryConsignmentStore:
    """Process-local store. Records are kept in insertion order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, PersistedRecord] = {}

    def get(self, consignment_id: str) -> PersistedRecord | None:
        """Find a record by consignment id."""
        with self._lock:
            return self._records.get(str(consignment_id))

    def get_by_line_item(self, line_item_id: str, quantity: int) -> PersistedRecord | None:
        """Find the most recent record for a (line item, quantity) pair.

        Line item ids are compared as strings; the platform reports them as
        either numbers or strings depending on the endpoint.
        """
        key = str(line_item_id)
        with self._lock:
            for record in reversed(list(self._records.values())):
                if record.line_item_id == key and record.quantity == quantity:
                    return record
        return None

    def put(self, record: PersistedRecord) -> None:
        """Insert or replace a record, moving it to the most-recent position."""
        with self._lock:
            self._records.pop(record.consignment_id, None)
            self._records[record.consignment_id] = record
            self._after_write()

    def delete(self, consignment_id: str) -> None:
        """Remove a record; unknown ids are ignored."""
        with self._lock:
            removed = self._records.pop(str(consignment_id), None)
            if removed is not None:
                self._after_write()

    def records(self) -> list[PersistedRecord]:
        with self._lock:
            return list(self._records.values())

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._after_write()

    def _after_write(self) -> None:
        """Hook for persistent subclasses, called with the lock held."""


class FileConsignmentStore(InMemoryConsignmentStore):
    """Store persisted to a JSON file, rewritten atomically on every change.

    Unreadable or version-mismatched files are treated as empty; the cache
    only ever helps recovery, so losing it costs a re-selection, not data.
    """

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self._path = Path(path)
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        try:
            raw = json.loads(self._path.read_text())
        except FileNotFoundError:
            return
        except Exception as exc:
            logger.info("consignment_cache_reset reason=file_read_error error=%s", exc)
            return

        if not isinstance(raw, dict) or raw.get("version") != _CACHE_VERSION:
            logger.info("consignment_cache_reset reason=version_mismatch")
            return

        loaded = 0
        for item in raw.get("records") or []:
            try:
                record = PersistedRecord.from_dict(item)
            except (KeyError, TypeError, ValueError) as exc:
                logger.info("consignment_cache_skip reason=record_invalid error=%s", exc)
                continue
            self._records[record.consignment_id] = record
            loaded += 1
        logger.debug("consignment_cache_loaded path=%s records=%d", self._path, loaded)

    def _after_write(self) -> None:
        payload = {
            "version": _CACHE_VERSION,
            "records": [r.to_dict() for r in self._records.values()],
        }
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, sort_keys=True))
        os.replace(tmp_path, self._path)

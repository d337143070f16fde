"""CLI output formatters for Rich tables and JSON.

Provides human-readable Rich table output (default) and machine-parseable
JSON output (--json flag). All formatting goes through these functions
so the CLI commands stay clean.
"""

import json

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from multiship.errors import MultiShipError, format_error, group_errors
from multiship.services.consignment_cache import PersistedRecord
from multiship.services.item_config import ItemConfigurationEntry
from multiship.services.wizard import ItemState
from multiship.utils.redaction import redact_address

console = Console()

STATE_COLORS = {
    ItemState.IDLE: "dim",
    ItemState.ADDRESS_PENDING: "yellow",
    ItemState.OPTIONS_PENDING: "yellow",
    ItemState.OPTION_SELECTED: "blue",
    ItemState.DATE_PENDING: "yellow",
    ItemState.CONFIGURED: "green",
}


def format_cost(cost: float | None) -> str:
    """Format a shipping cost as a dollar string, or "-" for None."""
    if cost is None:
        return "-"
    return f"${cost:,.2f}"


def _entry_to_dict(entry: ItemConfigurationEntry, state: ItemState | None) -> dict:
    option = entry.selected_shipping_option
    return {
        "lineItemId": entry.line_item_id,
        "consignmentId": entry.consignment_id,
        "state": state.value if state else None,
        "configured": entry.configured,
        "shippingAddress": entry.shipping_address.to_api() if entry.shipping_address else None,
        "selectedShippingOption": option.model_dump(by_alias=True) if option else None,
        "availableShippingOptions": len(entry.available_shipping_options),
        "deliveryDate": entry.delivery_date.isoformat() if entry.delivery_date else None,
    }


def format_entries(
    entries: list[ItemConfigurationEntry],
    states: dict[str, ItemState] | None = None,
    all_configured: bool = False,
    as_json: bool = False,
) -> str:
    """Format configuration entries as a Rich table or JSON.

    Addresses are reduced to city/state/postal/country in the table.

    Args:
        entries: Entries in display order.
        states: Wizard state per line item id.
        all_configured: Value of the completion signal.
        as_json: If True, return JSON string instead of Rich table.

    Returns:
        Formatted string output.
    """
    states = states or {}
    if as_json:
        return json.dumps(
            {
                "allConfigured": all_configured,
                "entries": [_entry_to_dict(e, states.get(e.line_item_id)) for e in entries],
            },
            indent=2,
        )

    if not entries:
        return "No line items found."

    table = Table(title="Line Items", show_lines=True)
    table.add_column("Item", style="cyan", no_wrap=True)
    table.add_column("State")
    table.add_column("Consignment", style="dim")
    table.add_column("Destination")
    table.add_column("Option")
    table.add_column("Cost", justify="right")
    table.add_column("Date")

    for entry in entries:
        state = states.get(entry.line_item_id, ItemState.IDLE)
        color = STATE_COLORS.get(state, "white")
        option = entry.selected_shipping_option
        table.add_row(
            entry.line_item_id,
            f"[{color}]{state.value}[/{color}]",
            entry.consignment_id or "-",
            redact_address(entry.shipping_address) if entry.shipping_address else "-",
            option.description or option.id if option else "-",
            format_cost(option.cost if option else None),
            entry.delivery_date.isoformat() if entry.delivery_date else "-",
        )

    summary = "[green]all items configured[/green]" if all_configured else (
        "[yellow]items still need shipping[/yellow]"
    )
    with console.capture() as capture:
        console.print(table)
        console.print(summary)
    return capture.get()


def format_records(records: list[PersistedRecord], as_json: bool = False) -> str:
    """Format cached consignment records as a Rich table or JSON."""
    if as_json:
        return json.dumps([r.to_dict() for r in records], indent=2)

    if not records:
        return "No cached consignments."

    table = Table(title="Cached Consignments")
    table.add_column("Consignment", style="cyan")
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Option")
    table.add_column("Date")
    table.add_column("Saved")
    for record in records:
        table.add_row(
            record.consignment_id,
            record.line_item_id,
            str(record.quantity),
            record.selected_shipping_option_id or "-",
            record.selected_delivery_date.display if record.selected_delivery_date else "-",
            record.saved_at[:19],
        )
    with console.capture() as capture:
        console.print(table)
    return capture.get()


def format_failures(errors: list[MultiShipError]) -> str:
    """Format reconciliation failures as a Rich panel, one line per distinct failure."""
    content = "\n".join(format_error(e) for e in group_errors(errors))
    with console.capture() as capture:
        console.print(Panel(content, title="Warnings", border_style="yellow"))
    return capture.get()

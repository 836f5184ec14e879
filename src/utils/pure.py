from datetime import datetime
from typing import Iterable, List, Literal, Optional, Sequence

from db.models import OrderLineItem, OrderStatus

STATUS_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.LOCKED: "Accepted",
    OrderStatus.PACKED: "Packed",
    OrderStatus.OUT_OF_STOCK: "Out of stock",
    OrderStatus.COMPLETED: "Completed",
}

_ALIGN_RULES = {"l": ":---", "c": ":---:", "r": "---:"}


def format_currency(amount: int) -> str:
    return f"NT${amount:,}"


def format_timestamp(ts: datetime) -> str:
    return ts.strftime("%m/%d %H:%M")


def status_label(status: OrderStatus) -> str:
    return STATUS_LABELS[OrderStatus(status)]


def describe_quantity(item: OrderLineItem) -> str:
    """'4 (+2 free, 2 sets)' for bundle lines, '3' otherwise."""
    if not item.is_bundle:
        return str(item.quantity)
    return f"{item.quantity} (+{item.free_quantity} free, {item.bundle_quantity} sets)"


def _escape_cell(value) -> str:
    return str(value).replace("|", "\\|").replace("\n", " ")


def markdown_table(
    headers: Sequence[str],
    rows: Iterable[Sequence],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Render rows as a Markdown table. Cells are stringified and pipe-escaped.
    Alignment defaults to left for every column.
    """
    aligns = aligns or ["l"] * len(headers)
    if len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    lines = [
        "| " + " | ".join(_escape_cell(h) for h in headers) + " |",
        "| " + " | ".join(_ALIGN_RULES[a] for a in aligns) + " |",
    ]
    lines.extend("| " + " | ".join(_escape_cell(c) for c in row) + " |" for row in rows)
    return "\n".join(lines)

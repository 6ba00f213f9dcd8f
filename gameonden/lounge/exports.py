"""CSV export and receipt shaping for bills."""

from __future__ import annotations

import csv
import datetime as dt
import io
from typing import Iterable

from .billing import bill_datetime, player_names
from .catalog import CURRENCY_SYMBOL, VENUE_ADDRESS, VENUE_NAME, zone_name

CSV_HEADERS = [
    "Bill ID",
    "Date",
    "Player Names",
    "Payer Age",
    "Address",
    "Contact",
    "Game Zone",
    "Total Players",
    "Duration (hr)",
    f"Subtotal ({CURRENCY_SYMBOL})",
    f"Discount ({CURRENCY_SYMBOL})",
    f"Final ({CURRENCY_SYMBOL})",
    "Payment Method",
]

RECEIPT_WIDTH = 42


def _money(value: float) -> str:
    return f"{value:.2f}"


def _hours(duration_minutes: int) -> float:
    return duration_minutes / 60


def csv_row(bill: dict) -> list[str]:
    return [
        str(bill["id"]),
        bill_datetime(bill).strftime("%x %X"),
        player_names(bill),
        str(bill.get("age", "")),
        bill.get("address") or "",
        bill.get("contactNumber") or "",
        zone_name(bill.get("gameZoneId", "")),
        str(bill["numberOfPlayers"]),
        f"{_hours(bill['durationMinutes']):.1f}",
        _money(bill["totalAmount"]),
        _money(bill["discount"]),
        _money(bill["finalAmount"]),
        bill["paymentMethod"],
    ]


def export_csv(bills: Iterable[dict]) -> str:
    """Return the CSV document for ``bills`` in the order given.

    Every field is quoted so free-text columns never shift the layout.
    """

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(csv_row(bill) for bill in bills)
    return buffer.getvalue()


def csv_filename(on: dt.date | None = None) -> str:
    on = on or dt.date.today()
    return f"billing_records_{on.isoformat()}.csv"


def build_receipt(bill: dict) -> dict:
    """Collect everything a printed receipt shows for ``bill``."""

    created = bill_datetime(bill)
    hours = _hours(bill["durationMinutes"])
    hours_label = f"{hours:g}"
    items = [
        {"label": zone_name(bill.get("gameZoneId", "")), "amount": None, "kind": "zone"},
        {
            "label": f"{bill['numberOfPlayers']} Player(s) x {hours_label} hr(s)",
            "amount": f"@ {CURRENCY_SYMBOL}{_money(bill['pricePerPersonPerHour'])}/hr",
            "kind": "detail",
        },
        {
            "label": "Subtotal",
            "amount": f"{CURRENCY_SYMBOL}{_money(bill['totalAmount'])}",
            "kind": "subtotal",
        },
    ]
    if bill["discount"] > 0:
        items.append(
            {
                "label": "Discount",
                "amount": f"- {CURRENCY_SYMBOL}{_money(bill['discount'])}",
                "kind": "discount",
            }
        )
    items.append(
        {
            "label": "Grand Total",
            "amount": f"{CURRENCY_SYMBOL}{_money(bill['finalAmount'])}",
            "kind": "total",
        }
    )

    contact = None
    if bill.get("contactNumber"):
        contact = f"{bill['contactNumber']} ({bill['customerName']})"

    return {
        "venue_name": VENUE_NAME,
        "venue_address": VENUE_ADDRESS,
        "bill_number": str(bill["id"]),
        "date": created.strftime("%b %d, %Y"),
        "time": created.strftime("%I:%M %p"),
        "players": player_names(bill),
        "age": bill.get("age"),
        "contact": contact,
        "address": bill.get("address") or None,
        "items": items,
        "payment_method": bill["paymentMethod"],
        "footer": ["Thank you for playing!", "Visit us again."],
    }


def _pair(left: str, right: str, width: int) -> str:
    gap = max(1, width - len(left) - len(right))
    return f"{left}{' ' * gap}{right}"


def render_receipt_text(bill: dict, width: int = RECEIPT_WIDTH) -> str:
    """Render ``bill`` as a fixed-width plain-text receipt."""

    receipt = build_receipt(bill)
    rule = "-" * width
    lines = [receipt["venue_name"].center(width)]
    address = receipt["venue_address"]
    while address:
        chunk = address[:width]
        if len(address) > width and " " in chunk:
            chunk = chunk[: chunk.rindex(" ")]
        lines.append(chunk.strip().center(width))
        address = address[len(chunk):].strip()
    lines.append(rule)
    lines.append(_pair("Bill No:", receipt["bill_number"], width))
    lines.append(_pair("Date:", receipt["date"], width))
    lines.append(_pair("Time:", receipt["time"], width))
    lines.append(rule)
    lines.append(f"Players: {receipt['players']}")
    lines.append(f"Payer Age: {receipt['age']}")
    if receipt["contact"]:
        lines.append(f"Contact: {receipt['contact']}")
    if receipt["address"]:
        lines.append(f"Address: {receipt['address']}")
    lines.append(rule)
    lines.append(_pair("Item", "Amount", width))
    for item in receipt["items"]:
        if item["kind"] in ("subtotal", "total"):
            lines.append(rule if item["kind"] == "subtotal" else "=" * width)
        label = f"  {item['label']}" if item["kind"] == "detail" else item["label"]
        lines.append(_pair(label, item["amount"] or "", width) if item["amount"] else label)
    lines.append("")
    lines.append(f"Payment Method: {receipt['payment_method']}")
    lines.append("")
    lines.extend(line.center(width) for line in receipt["footer"])
    return "\n".join(lines) + "\n"

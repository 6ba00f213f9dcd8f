"""Pricing, bill numbering and reporting helpers for gaming sessions."""

from __future__ import annotations

import datetime as dt
import math
from collections import defaultdict
from typing import Iterable, Sequence

from .catalog import zone_name

NO_POPULAR_ZONE = "N/A"


def compute_session_cost(tier: dict, duration: dict) -> float:
    """Price of a session: per-person hourly rate x players x hours."""

    return round(tier["pricePerPersonPerHour"] * tier["players"] * duration["hours"], 2)


def compute_final_amount(total: float, discount: float) -> float:
    """Apply ``discount`` to ``total``; an oversized discount floors at zero."""

    return round(max(0.0, total - discount), 2)


def next_sequential_id(bills: Iterable[dict]) -> str:
    """Return the next bill number after the highest numeric id seen.

    Ids that do not parse as numbers are skipped so that legacy records do
    not break numbering.
    """

    highest = 0.0
    for bill in bills:
        try:
            value = float(str(bill.get("id", "")).strip())
        except ValueError:
            continue
        if not math.isfinite(value):
            continue
        if value > highest:
            highest = value
    following = highest + 1
    if following.is_integer():
        return str(int(following))
    return str(following)


def bill_datetime(bill: dict) -> dt.datetime:
    """Local wall-clock time the bill was created."""

    return dt.datetime.fromtimestamp(bill["createdAt"] / 1000)


def bill_date(bill: dict) -> dt.date:
    return bill_datetime(bill).date()


def player_names(bill: dict) -> str:
    names = [bill.get("customerName", "")] + list(bill.get("additionalPlayerNames") or [])
    return ", ".join(name for name in names if name)


def compute_daily_stats(bills: Sequence[dict], today: dt.date | None = None) -> dict:
    today = today or dt.date.today()
    todays_bills = [bill for bill in bills if bill_date(bill) == today]

    zone_counts: dict[str, int] = defaultdict(int)
    for bill in todays_bills:
        zone_counts[zone_name(bill.get("gameZoneId", ""))] += 1

    most_popular = NO_POPULAR_ZONE
    if zone_counts:
        # Highest count wins, lexical order on the name breaks ties.
        most_popular = min(zone_counts, key=lambda name: (-zone_counts[name], name))

    return {
        "totalRevenueToday": round(sum(bill["finalAmount"] for bill in todays_bills), 2),
        "billsTodayCount": len(todays_bills),
        "mostPopularZoneName": most_popular,
        "totalAllTimeRevenue": round(sum(bill["finalAmount"] for bill in bills), 2),
    }


def filter_bills(
    bills: Iterable[dict],
    search_term: str = "",
    zone_id: str | None = None,
    date: str | None = None,
) -> list[dict]:
    """Return bills matching every given filter, newest first.

    ``search_term`` matches player names case-insensitively or the contact
    number verbatim. ``date`` is an ISO ``YYYY-MM-DD`` string compared to the
    local creation date.
    """

    search_term = search_term or ""
    needle = search_term.lower()
    matches = []
    for bill in bills:
        search_match = needle in player_names(bill).lower() or search_term in (
            bill.get("contactNumber") or ""
        )
        if not search_match:
            continue
        if zone_id and bill.get("gameZoneId") != zone_id:
            continue
        if date and bill_date(bill).isoformat() != date:
            continue
        matches.append(bill)
    matches.sort(key=lambda bill: bill["createdAt"], reverse=True)
    return matches

"""Static reference data: venue, game zones, pricing tiers and durations."""

from __future__ import annotations

VENUE_NAME = "Gameon Den"
VENUE_ADDRESS = (
    "103, Old Agraharam St, Vivekananda Nagar, TNHB Mig V Block, "
    "Chennai, Avadi, Tamil Nadu 600054"
)
CURRENCY_SYMBOL = "₹"

UNKNOWN_ZONE_NAME = "Unknown Zone"

PAYMENT_METHODS = ("UPI", "Cash", "Card")
DEFAULT_PAYMENT_METHOD = "UPI"

ROLES = ("admin", "staff")

GAME_ZONES: list[dict] = [
    {"id": "ps5", "name": "PlayStation 5"},
    {"id": "pc", "name": "PC Gaming"},
]

PRICING_TIERS: list[dict] = [
    {"id": "single", "players": 1, "pricePerPersonPerHour": 90.0, "label": "Single Player (₹90/hr)"},
    {"id": "dual", "players": 2, "pricePerPersonPerHour": 80.0, "label": "Dual Player (₹80/person/hr)"},
    {"id": "quad", "players": 4, "pricePerPersonPerHour": 70.0, "label": "4 Players (₹70/person/hr)"},
]

DURATION_SLOTS: list[dict] = [
    {"hours": hours, "label": f"{hours} Hour{'' if hours == 1 else 's'}"}
    for hours in range(1, 25)
]

# Written to storage only when no user collection exists yet.
SEED_USERS: list[dict] = [
    {"id": "user-1", "username": "1111", "password": "1111", "role": "admin"},
    {"id": "user-2", "username": "staff", "password": "password", "role": "staff"},
]


def get_zone(zone_id: str) -> dict | None:
    for zone in GAME_ZONES:
        if zone["id"] == zone_id:
            return zone
    return None


def zone_name(zone_id: str) -> str:
    """Return the display name for ``zone_id`` or the unknown-zone placeholder."""

    zone = get_zone(zone_id)
    return zone["name"] if zone else UNKNOWN_ZONE_NAME


def get_pricing_tier(tier_id: str) -> dict | None:
    for tier in PRICING_TIERS:
        if tier["id"] == tier_id:
            return tier
    return None


def get_duration(hours: int) -> dict | None:
    for slot in DURATION_SLOTS:
        if slot["hours"] == hours:
            return slot
    return None

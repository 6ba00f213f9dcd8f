"""Core orchestration logic for the Gameon Den point-of-sale tool."""

from __future__ import annotations

import datetime as dt
import logging
import math
import secrets
import threading
import time
from typing import Any, Iterable, Sequence

from . import catalog
from .billing import (
    compute_daily_stats,
    compute_final_amount,
    compute_session_cost,
    filter_bills,
    next_sequential_id,
)
from .database import SqliteRepository, get_connection, initialize_database
from .exports import export_csv

logger = logging.getLogger(__name__)

ADMIN_ONLY_ACTIONS = frozenset({"view_admin_dashboard", "delete_bill", "manage_users"})
ACTIONS = frozenset({"view_billing_form", "view_records"}) | ADMIN_ONLY_ACTIONS


class AuthorizationError(RuntimeError):
    """Raised when a user action is not permitted."""


class ValidationError(RuntimeError):
    """Raised when incoming data fails validation."""


def authenticate(username: str, password: str, users: Iterable[dict]) -> dict | None:
    """Return the first user whose username and password both match exactly."""

    for user in users:
        if user["username"] == username and user["password"] == password:
            return user
    return None


def authorize(user: dict | None, action: str) -> bool:
    if user is None or action not in ACTIONS:
        return False
    if action in ADMIN_ONLY_ACTIONS:
        return user.get("role") == "admin"
    return True


def _now_ms() -> int:
    return int(time.time() * 1000)


class LoungeSystem:
    """High level façade that exposes application level behaviours."""

    def __init__(
        self,
        db_path: str = ":memory:",
        *,
        bills_repo: Any = None,
        users_repo: Any = None,
    ) -> None:
        self.conn = get_connection(db_path)
        initialize_database(self.conn)
        # Serializes use of the shared connection and every load/modify/save cycle.
        self._lock = threading.RLock()
        self.bills_repo = bills_repo or SqliteRepository(self.conn, "bills", [], lock=self._lock)
        self.users_repo = users_repo or SqliteRepository(
            self.conn, "users", catalog.SEED_USERS, lock=self._lock
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require(self, actor: dict | None, action: str) -> dict:
        if not authorize(actor, action):
            raise AuthorizationError("User does not have permission to perform this action")
        return actor

    def _clean_credentials(self, username: str, password: str, role: str) -> tuple[str, str]:
        username = (username or "").strip()
        password = (password or "").strip()
        if not username or not password:
            raise ValidationError("Username and password cannot be empty.")
        if role not in catalog.ROLES:
            raise ValidationError(f"Unknown role: {role}")
        return username, password

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    def login(self, *, username: str, password: str) -> dict:
        user = authenticate(username, password, self.users_repo.load())
        if not user:
            raise AuthorizationError("Invalid credentials")
        logger.info("User %s logged in", user["id"])
        return user

    def find_user(self, user_id: str | None) -> dict | None:
        """Return the user with ``user_id`` or ``None`` if it no longer exists."""

        if not user_id:
            return None
        for user in self.users_repo.load():
            if user["id"] == user_id:
                return user
        return None

    # ------------------------------------------------------------------
    # User directory
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> dict:
        user = self.find_user(user_id)
        if not user:
            raise ValidationError("User not found")
        return user

    def list_users(self, *, actor: dict | None) -> list[dict]:
        self._require(actor, "manage_users")
        return self.users_repo.load()

    def add_user(self, *, username: str, password: str, role: str, actor: dict | None) -> dict:
        self._require(actor, "manage_users")
        username, password = self._clean_credentials(username, password, role)
        user = {
            "id": f"user-{secrets.token_hex(6)}",
            "username": username,
            "password": password,
            "role": role,
        }
        with self._lock:
            users = self.users_repo.load()
            users.append(user)
            self.users_repo.save(users)
        logger.info("User %s (%s) added by %s", user["id"], role, actor["id"])
        return user

    def update_user(
        self,
        user_id: str,
        *,
        username: str,
        password: str,
        role: str,
        actor: dict | None,
    ) -> dict:
        self._require(actor, "manage_users")
        username, password = self._clean_credentials(username, password, role)
        with self._lock:
            users = self.users_repo.load()
            existing = next((user for user in users if user["id"] == user_id), None)
            if not existing:
                raise ValidationError("User not found")
            if existing["role"] == "admin" and role != "admin":
                other_admins = [
                    user for user in users if user["role"] == "admin" and user["id"] != user_id
                ]
                if not other_admins:
                    raise ValidationError(
                        "Action denied: You cannot change the role of the only administrator."
                    )
            updated = {**existing, "username": username, "password": password, "role": role}
            self.users_repo.save([updated if user["id"] == user_id else user for user in users])
        logger.info("User %s updated by %s", user_id, actor["id"])
        return updated

    def delete_user(self, user_id: str, *, actor: dict | None) -> None:
        self._require(actor, "manage_users")
        if user_id == actor["id"]:
            raise ValidationError("Admins cannot delete their own account.")
        with self._lock:
            users = self.users_repo.load()
            remaining = [user for user in users if user["id"] != user_id]
            deleted = len(remaining) != len(users)
            if deleted:
                self.users_repo.save(remaining)
        if deleted:
            logger.info("User %s deleted by %s", user_id, actor["id"])

    # ------------------------------------------------------------------
    # Bills
    # ------------------------------------------------------------------
    def create_bill(
        self,
        *,
        customer_name: str,
        age: int | str,
        zone_id: str,
        tier_id: str,
        duration_hours: int | str,
        actor: dict | None,
        additional_player_names: Sequence[str] = (),
        contact_number: str = "",
        address: str = "",
        discount: float | str = 0,
        payment_method: str = catalog.DEFAULT_PAYMENT_METHOD,
        created_at: int | None = None,
    ) -> dict:
        self._require(actor, "view_billing_form")

        customer_name = (customer_name or "").strip()
        if not customer_name:
            raise ValidationError("Payer name is required")
        try:
            age = int(age)
        except (TypeError, ValueError):
            raise ValidationError("Payer age must be a number") from None
        if age <= 0:
            raise ValidationError("Payer age must be a number")

        if not catalog.get_zone(zone_id):
            raise ValidationError("Unknown game zone")
        tier = catalog.get_pricing_tier(tier_id)
        if not tier:
            raise ValidationError("Unknown player option")
        try:
            duration = catalog.get_duration(int(duration_hours))
        except (TypeError, ValueError):
            duration = None
        if not duration:
            raise ValidationError("Unknown duration")

        try:
            discount = float(discount or 0)
        except (TypeError, ValueError):
            raise ValidationError("Discount must be a number") from None
        if not math.isfinite(discount) or discount < 0:
            raise ValidationError("Discount must be zero or a positive amount")
        if payment_method not in catalog.PAYMENT_METHODS:
            raise ValidationError(f"Unknown payment method: {payment_method}")

        extra_slots = max(0, tier["players"] - 1)
        names = [(name or "").strip() for name in additional_player_names][:extra_slots]
        names.extend([""] * (extra_slots - len(names)))

        total = compute_session_cost(tier, duration)
        duration_minutes = duration["hours"] * 60
        now = created_at if created_at is not None else _now_ms()

        bill = {
            "customerName": customer_name,
            "additionalPlayerNames": names,
            "contactNumber": (contact_number or "").strip(),
            "address": (address or "").strip(),
            "age": age,
            "gameZoneId": zone_id,
            "startTime": now,
            "endTime": now + duration_minutes * 60 * 1000,
            "durationMinutes": duration_minutes,
            "numberOfPlayers": tier["players"],
            "pricePerPersonPerHour": tier["pricePerPersonPerHour"],
            "totalAmount": total,
            "discount": round(discount, 2),
            "finalAmount": compute_final_amount(total, discount),
            "paymentMethod": payment_method,
            "createdAt": now,
            "createdBy": actor["id"],
        }
        with self._lock:
            bills = self.bills_repo.load()
            bill = {"id": next_sequential_id(bills), **bill}
            bills.append(bill)
            self.bills_repo.save(bills)
        logger.info("Bill %s created by %s for %.2f", bill["id"], actor["id"], bill["finalAmount"])
        return bill

    def get_bill(self, bill_id: str) -> dict:
        for bill in self.bills_repo.load():
            if bill["id"] == bill_id:
                return bill
        raise ValidationError("Bill not found")

    def list_bills(
        self,
        *,
        actor: dict | None,
        search_term: str = "",
        zone_id: str | None = None,
        date: str | None = None,
    ) -> list[dict]:
        """Return bills matching the search filters, newest first."""

        self._require(actor, "view_records")
        return filter_bills(self.bills_repo.load(), search_term, zone_id, date)

    def delete_bill(self, bill_id: str, *, actor: dict | None) -> None:
        self._require(actor, "delete_bill")
        with self._lock:
            bills = self.bills_repo.load()
            remaining = [bill for bill in bills if bill["id"] != bill_id]
            deleted = len(remaining) != len(bills)
            if deleted:
                self.bills_repo.save(remaining)
        if deleted:
            logger.info("Bill %s deleted by %s", bill_id, actor["id"])

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def dashboard(self, *, actor: dict | None, today: dt.date | None = None) -> dict:
        self._require(actor, "view_admin_dashboard")
        return compute_daily_stats(self.bills_repo.load(), today=today)

    def export_bills_csv(
        self,
        *,
        actor: dict | None,
        search_term: str = "",
        zone_id: str | None = None,
        date: str | None = None,
    ) -> str:
        bills = self.list_bills(actor=actor, search_term=search_term, zone_id=zone_id, date=date)
        return export_csv(bills)

    def close(self) -> None:
        self.conn.close()

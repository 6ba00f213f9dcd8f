"""Flask application providing the billing counter UI."""

from __future__ import annotations

import datetime as dt
from typing import Any, Mapping

from flask import (
    Flask,
    Response,
    abort,
    flash,
    g,
    redirect,
    render_template,
    request,
    session,
    url_for,
)

from gameonden.lounge import catalog
from gameonden.lounge.billing import bill_datetime, player_names
from gameonden.lounge.exports import build_receipt, csv_filename, render_receipt_text
from gameonden.lounge.system import (
    AuthorizationError,
    LoungeSystem,
    ValidationError,
    authorize,
)


def create_app(
    database_path: str | None = None,
    config: Mapping[str, Any] | None = None,
) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(
        __name__,
        template_folder="templates",
    )
    app.config["SECRET_KEY"] = "gameonden-secret"
    app.config["DATABASE_PATH"] = "gameonden.db"
    app.config.from_prefixed_env("GAMEONDEN")
    if config:
        app.config.update(config)
    if database_path is not None:
        app.config["DATABASE_PATH"] = database_path

    system = LoungeSystem(app.config["DATABASE_PATH"])
    app.extensions["lounge_system"] = system

    @app.before_request
    def load_current_user() -> None:
        g.user = system.find_user(session.get("user_id"))
        if g.user is None:
            session.pop("user_id", None)

    @app.context_processor
    def inject_navigation() -> dict[str, Any]:
        user = g.get("user")
        return {
            "current_user": user,
            "is_admin": authorize(user, "view_admin_dashboard"),
            "venue_name": catalog.VENUE_NAME,
            "currency": catalog.CURRENCY_SYMBOL,
            "current_year": dt.date.today().year,
        }

    @app.template_filter("player_names")
    def player_names_filter(bill: dict) -> str:
        return player_names(bill)

    @app.template_filter("zone_name")
    def zone_name_filter(zone_id: str) -> str:
        return catalog.zone_name(zone_id)

    @app.template_filter("bill_time")
    def bill_time_filter(bill: dict) -> str:
        return bill_datetime(bill).strftime("%d %b %Y, %I:%M %p")

    @app.errorhandler(AuthorizationError)
    def handle_forbidden(exc: AuthorizationError) -> Any:
        app.logger.warning("Rejected %s %s: %s", request.method, request.path, exc)
        if g.get("user") is None:
            flash("Please log in", "error")
            return redirect(url_for("login"))
        flash(str(exc), "error")
        return redirect(url_for("billing"))

    @app.get("/")
    def index() -> Any:
        if g.user is None:
            return redirect(url_for("login"))
        return redirect(url_for("billing"))

    @app.route("/login", methods=["GET", "POST"])
    def login() -> Any:
        if request.method == "POST":
            try:
                user = system.login(
                    username=request.form.get("username", ""),
                    password=request.form.get("password", ""),
                )
            except AuthorizationError as exc:
                app.logger.info("Failed login for %r", request.form.get("username", ""))
                flash(str(exc), "error")
                return render_template("login.html"), 401
            session.clear()
            session["user_id"] = user["id"]
            return redirect(url_for("billing"))
        return render_template("login.html")

    @app.post("/logout")
    def logout() -> Any:
        session.clear()
        return redirect(url_for("login"))

    @app.route("/billing", methods=["GET", "POST"])
    def billing() -> Any:
        if not authorize(g.user, "view_billing_form"):
            return redirect(url_for("login"))
        if request.method == "POST":
            try:
                bill = system.create_bill(
                    customer_name=request.form.get("customer_name", ""),
                    age=request.form.get("age", ""),
                    zone_id=request.form.get("zone_id", ""),
                    tier_id=request.form.get("tier_id", ""),
                    duration_hours=request.form.get("duration_hours", ""),
                    additional_player_names=request.form.getlist("additional_player_names"),
                    contact_number=request.form.get("contact_number", ""),
                    address=request.form.get("address", ""),
                    discount=request.form.get("discount") or 0,
                    payment_method=request.form.get(
                        "payment_method", catalog.DEFAULT_PAYMENT_METHOD
                    ),
                    actor=g.user,
                )
                flash(f"Bill {bill['id']} generated", "success")
                return redirect(url_for("receipt", bill_id=bill["id"]))
            except ValidationError as exc:
                flash(str(exc), "error")
        tier_id = request.args.get("tier_id", catalog.PRICING_TIERS[0]["id"])
        tier = catalog.get_pricing_tier(tier_id) or catalog.PRICING_TIERS[0]
        return render_template(
            "billing.html",
            zones=catalog.GAME_ZONES,
            tiers=catalog.PRICING_TIERS,
            durations=catalog.DURATION_SLOTS,
            payment_methods=catalog.PAYMENT_METHODS,
            default_payment_method=catalog.DEFAULT_PAYMENT_METHOD,
            selected_tier=tier,
        )

    @app.get("/records")
    def records() -> Any:
        filters = _record_filters()
        bills = system.list_bills(actor=g.user, **filters)
        stats = None
        if authorize(g.user, "view_admin_dashboard"):
            stats = system.dashboard(actor=g.user)
        return render_template(
            "records.html",
            bills=bills,
            stats=stats,
            zones=catalog.GAME_ZONES,
            filters=filters,
            can_delete=authorize(g.user, "delete_bill"),
        )

    @app.get("/records/export.csv")
    def export_records() -> Any:
        content = system.export_bills_csv(actor=g.user, **_record_filters())
        return Response(
            content,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={csv_filename()}"},
        )

    @app.get("/bills/<bill_id>/receipt")
    def receipt(bill_id: str) -> Any:
        bill = _bill_or_404(bill_id)
        return render_template("receipt.html", bill=bill, receipt=build_receipt(bill))

    @app.get("/bills/<bill_id>/receipt.txt")
    def receipt_text(bill_id: str) -> Any:
        bill = _bill_or_404(bill_id)
        return Response(
            render_receipt_text(bill),
            mimetype="text/plain",
            headers={"Content-Disposition": f"attachment; filename=receipt-{bill['id']}.txt"},
        )

    @app.post("/bills/<bill_id>/delete")
    def delete_bill(bill_id: str) -> Any:
        system.delete_bill(bill_id, actor=g.user)
        flash(f"Bill {bill_id} deleted", "success")
        return redirect(request.referrer or url_for("records"))

    @app.route("/users", methods=["GET", "POST"])
    def users() -> Any:
        if request.method == "POST":
            try:
                system.add_user(
                    username=request.form.get("username", ""),
                    password=request.form.get("password", ""),
                    role=request.form.get("role", "staff"),
                    actor=g.user,
                )
                flash("User added", "success")
                return redirect(url_for("users"))
            except ValidationError as exc:
                flash(str(exc), "error")
        editing = system.find_user(request.args.get("edit"))
        return render_template(
            "users.html",
            users=system.list_users(actor=g.user),
            roles=catalog.ROLES,
            editing=editing,
        )

    @app.post("/users/<user_id>")
    def update_user(user_id: str) -> Any:
        try:
            system.update_user(
                user_id,
                username=request.form.get("username", ""),
                password=request.form.get("password", ""),
                role=request.form.get("role", "staff"),
                actor=g.user,
            )
            flash("User updated", "success")
        except ValidationError as exc:
            flash(str(exc), "error")
            return redirect(url_for("users", edit=user_id))
        return redirect(url_for("users"))

    @app.post("/users/<user_id>/delete")
    def delete_user(user_id: str) -> Any:
        try:
            system.delete_user(user_id, actor=g.user)
            flash("User deleted", "success")
        except ValidationError as exc:
            flash(str(exc), "error")
        return redirect(url_for("users"))

    def _record_filters() -> dict[str, Any]:
        return {
            "search_term": request.args.get("q", ""),
            "zone_id": request.args.get("zone") or None,
            "date": request.args.get("date") or None,
        }

    def _bill_or_404(bill_id: str) -> dict:
        if not authorize(g.user, "view_records"):
            raise AuthorizationError("Please log in")
        try:
            return system.get_bill(bill_id)
        except ValidationError:
            abort(404)

    return app


__all__ = ["create_app"]

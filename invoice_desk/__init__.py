import os
from datetime import timedelta
from decimal import Decimal

from flask import (
    Flask,
    abort,
    jsonify,
    redirect,
    render_template,
    request,
    session,
    url_for,
)
from flask_login import (
    LoginManager,
    UserMixin,
    current_user,
    login_required,
    login_user,
    logout_user,
)
from werkzeug.exceptions import HTTPException
from werkzeug.security import check_password_hash, generate_password_hash

from .animation import DEFAULT_RATE, render_morph_frames
from .chart import DepositChart, build_deposit_series
from .db import (
    close_db,
    ensure_customers_table,
    ensure_deposits_table,
    ensure_invoices_tables,
    ensure_users_table,
    get_db,
    init_app as init_db_app,
)
from .deposits import has_errors, parse_deposit_form
from .records import (
    create_deposit,
    get_customer,
    get_deposit,
    get_invoice_details,
    list_invoices,
)


class AppUser(UserMixin):
    def __init__(self, row):
        self.id = str(row["id"])
        self.username = row["username"]
        self.full_name = row["full_name"]
        self._is_active = bool(row["is_active"])

    @property
    def is_active(self):
        return self._is_active


def _ensure_default_admin(db):
    existing = db.execute("SELECT id FROM users LIMIT 1").fetchone()
    if existing is not None:
        return

    db.execute(
        """
        INSERT INTO users (username, full_name, password_hash, is_active)
        VALUES (?, ?, ?, ?)
        """,
        (
            "admin",
            "Administrator",
            generate_password_hash("admin123"),
            1,
        ),
    )
    db.commit()


def format_currency(value):
    amount = Decimal(str(value or 0))
    if amount < 0:
        return f"-${-amount:,.2f}"
    return f"${amount:,.2f}"


def format_display_date(value):
    return f"{value.month}/{value.day}/{value.year}"


def _wants_json():
    return request.accept_mimetypes.best == "application/json"


def _deposit_chart(deposits):
    series = build_deposit_series((d["deposit_date"], d["amount"]) for d in deposits)
    if len(series) < 2:
        return None
    return DepositChart(series)


def _chart_payload(chart):
    if chart is None:
        return {"path": None}
    labels = chart.labels()
    return {
        "path": chart.path,
        "width": chart.svg_width,
        "height": chart.svg_height,
        "margin": chart.margin,
        "labels": {
            "firstDate": _label(labels["firstDate"], format_display_date(labels["firstDate"]["date"])),
            "lastDate": _label(labels["lastDate"], format_display_date(labels["lastDate"]["date"])),
            "firstAmount": _label(labels["firstAmount"], format_currency(labels["firstAmount"]["amount"])),
            "lastAmount": _label(labels["lastAmount"], format_currency(labels["lastAmount"]["amount"])),
        },
    }


def _label(label, text):
    return {"x": label["x"], "y": label["y"], "text": text}


def create_app(test_config=None):
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_mapping(
        SECRET_KEY="dev",
        DATABASE=os.path.join(app.instance_path, "invoice_desk.sqlite"),
        PERMANENT_SESSION_LIFETIME=timedelta(minutes=30),
        DEPOSIT_ANIMATION_RATE=DEFAULT_RATE,
        LOG_LEVEL="INFO",
    )

    @app.before_request
    def make_session_permanent():
        session.permanent = True

    if test_config is None:
        app.config.from_pyfile("config.py", silent=True)
    else:
        app.config.update(test_config)

    app.logger.setLevel(app.config["LOG_LEVEL"])

    try:
        os.makedirs(app.instance_path, exist_ok=True)
    except OSError:
        pass

    init_db_app(app)
    app.teardown_appcontext(close_db)
    app.add_template_filter(format_currency, "currency")
    app.add_template_filter(format_display_date, "display_date")

    with app.app_context():
        ensure_customers_table()
        ensure_invoices_tables()
        ensure_deposits_table()
        ensure_users_table()
        _ensure_default_admin(get_db())

    login_manager = LoginManager()
    login_manager.login_view = "login"
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        db = get_db()
        row = db.execute(
            """
            SELECT id, username, full_name, is_active
            FROM users
            WHERE id = ?
            """,
            (user_id,),
        ).fetchone()
        if row is None:
            return None
        return AppUser(row)

    @app.before_request
    def require_login_for_app_pages():
        allowed_endpoints = {
            "login",
            "static",
        }
        if request.endpoint in allowed_endpoints:
            return None
        if request.endpoint is None:
            return None
        if current_user.is_authenticated:
            return None
        return redirect(url_for("login"))

    @app.errorhandler(404)
    def not_found(error):
        return (
            render_template(
                "errors/404.html",
                page_title="Not Found",
                message=error.description,
            ),
            404,
        )

    @app.errorhandler(Exception)
    def unexpected_error(error):
        if isinstance(error, HTTPException):
            return error
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        return render_template("errors/500.html", page_title="Error"), 500

    @app.route("/login", methods=["GET", "POST"])
    def login():
        if current_user.is_authenticated:
            return redirect(url_for("invoices_page"))

        if request.method == "POST":
            db = get_db()

            username = request.form.get("username", "").strip()
            password = request.form.get("password", "")

            user_row = db.execute(
                """
                SELECT id, username, full_name, password_hash, is_active
                FROM users
                WHERE username = ?
                """,
                (username,),
            ).fetchone()

            if (
                user_row is not None
                and user_row["is_active"]
                and check_password_hash(user_row["password_hash"], password)
            ):
                login_user(AppUser(user_row), remember=True)
                app.logger.info("User %s logged in", username)
                return redirect(url_for("invoices_page"))

            app.logger.info("Failed login attempt for %r", username)
            return render_template(
                "login.html",
                page_title="Login",
                error_message="Invalid username or password.",
            )

        return render_template(
            "login.html",
            page_title="Login",
            error_message="",
        )

    @app.post("/logout")
    @login_required
    def logout():
        logout_user()
        return redirect(url_for("login"))

    @app.route("/")
    def index():
        return redirect(url_for("invoices_page"))

    @app.route("/invoices")
    def invoices_page():
        db = get_db()
        return render_template(
            "invoices.html",
            page_title="Invoices",
            invoices=list_invoices(db),
        )

    def _render_invoice(details, errors=None, status=200):
        return (
            render_template(
                "invoice_view.html",
                page_title=f"Invoice {details['invoice']['invoice_number']}",
                details=details,
                chart=_deposit_chart(details["deposits"]),
                errors=errors or {},
            ),
            status,
        )

    @app.route("/invoices/<int:invoice_id>", methods=["GET", "POST"])
    def view_invoice_page(invoice_id):
        db = get_db()
        details = get_invoice_details(db, invoice_id)
        if details is None:
            abort(404, description=f'No invoice found with the ID of "{invoice_id}"')

        if request.method == "GET":
            return _render_invoice(details)

        intent = request.form.get("intent", "").strip()
        if intent != "create-deposit":
            app.logger.warning("Unsupported intent %r for invoice %s", intent, invoice_id)
            abort(400, description=f"Unsupported intent: {intent}")

        values, errors = parse_deposit_form(request.form)
        if has_errors(errors):
            app.logger.info("Rejected deposit for invoice %s: %s", invoice_id, errors)
            if _wants_json():
                return jsonify({"errors": errors}), 400
            return _render_invoice(details, errors=errors, status=400)

        deposit_id = create_deposit(
            db,
            invoice_id,
            values["amount"],
            values["deposit_date"],
            values["note"],
        )
        app.logger.info(
            "Created deposit %s of %s on invoice %s", deposit_id, values["amount"], invoice_id
        )
        if _wants_json():
            return jsonify({"ok": True, "depositId": deposit_id}), 201
        return redirect(url_for("view_invoice_page", invoice_id=invoice_id))

    @app.get("/invoices/<int:invoice_id>/deposit-chart")
    def deposit_chart(invoice_id):
        db = get_db()
        details = get_invoice_details(db, invoice_id)
        if details is None:
            abort(404, description=f'No invoice found with the ID of "{invoice_id}"')

        payload = _chart_payload(_deposit_chart(details["deposits"]))
        return jsonify(payload)

    @app.post("/invoices/<int:invoice_id>/deposit-chart/frames")
    def deposit_chart_frames(invoice_id):
        db = get_db()
        details = get_invoice_details(db, invoice_id)
        if details is None:
            abort(404, description=f'No invoice found with the ID of "{invoice_id}"')

        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            body = {}
        previous_path = body.get("previousPath") or ""
        payload = _chart_payload(_deposit_chart(details["deposits"]))
        next_path = payload["path"]

        if next_path is None:
            payload["frames"] = []
        elif not previous_path:
            payload["frames"] = [next_path]
        else:
            try:
                payload["frames"] = render_morph_frames(
                    previous_path, next_path, rate=app.config["DEPOSIT_ANIMATION_RATE"]
                )
            except ValueError as error:
                abort(400, description=f"Invalid previous path: {error}")
        return jsonify(payload)

    @app.route("/customers/<int:customer_id>")
    def view_customer_page(customer_id):
        db = get_db()
        customer = get_customer(db, customer_id)
        if customer is None:
            abort(404, description=f'No customer found with the ID of "{customer_id}"')

        return render_template(
            "customer_view.html",
            page_title=customer["customer"]["name"],
            customer=customer["customer"],
            invoices=customer["invoices"],
        )

    @app.route("/deposits/<int:deposit_id>")
    def view_deposit_page(deposit_id):
        db = get_db()
        deposit = get_deposit(db, deposit_id)
        if deposit is None:
            abort(404, description=f'No deposit found with the ID of "{deposit_id}"')

        return render_template(
            "deposit_view.html",
            page_title=f"Deposit {deposit_id}",
            deposit=deposit,
        )

    return app

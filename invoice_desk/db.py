import sqlite3
from datetime import date, timedelta

import click
from flask import current_app, g
from flask.cli import with_appcontext


def get_db():
    if "db" not in g:
        g.db = sqlite3.connect(current_app.config["DATABASE"])
        g.db.row_factory = sqlite3.Row
        g.db.execute("PRAGMA foreign_keys = ON")
    return g.db


def close_db(e=None):
    db = g.pop("db", None)
    if db is not None:
        db.close()


def init_db():
    db = get_db()
    with current_app.open_resource("schema.sql") as file:
        db.executescript(file.read().decode("utf8"))


def ensure_customers_table():
    db = get_db()
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS customers (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          name TEXT NOT NULL,
          email TEXT,
          created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    db.commit()


def ensure_invoices_tables():
    db = get_db()
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS invoices (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          invoice_number TEXT NOT NULL UNIQUE,
          customer_id INTEGER NOT NULL,
          invoice_date TEXT NOT NULL,
          due_date TEXT NOT NULL,
          created_at TEXT DEFAULT CURRENT_TIMESTAMP,
          FOREIGN KEY (customer_id) REFERENCES customers(id)
        )
        """
    )
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS invoice_line_items (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          invoice_id INTEGER NOT NULL,
          description TEXT NOT NULL,
          quantity REAL NOT NULL DEFAULT 1,
          unit_price REAL NOT NULL DEFAULT 0,
          FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
        )
        """
    )
    db.commit()


def ensure_deposits_table():
    db = get_db()
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS deposits (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          invoice_id INTEGER NOT NULL,
          amount REAL NOT NULL,
          deposit_date TEXT NOT NULL,
          note TEXT,
          created_at TEXT DEFAULT CURRENT_TIMESTAMP,
          FOREIGN KEY (invoice_id) REFERENCES invoices(id) ON DELETE CASCADE
        )
        """
    )
    db.commit()


def ensure_users_table():
    db = get_db()
    db.execute(
        """
        CREATE TABLE IF NOT EXISTS users (
          id INTEGER PRIMARY KEY AUTOINCREMENT,
          username TEXT NOT NULL UNIQUE,
          full_name TEXT,
          password_hash TEXT NOT NULL,
          is_active INTEGER NOT NULL DEFAULT 1,
          created_at TEXT DEFAULT CURRENT_TIMESTAMP
        )
        """
    )
    db.commit()


def seed_demo_data():
    db = get_db()
    today = date.today()

    db.execute(
        "INSERT INTO customers (name, email) VALUES (?, ?)",
        ("Santa Monica Bakery", "billing@smbakery.example"),
    )
    customer_id = db.execute("SELECT last_insert_rowid()").fetchone()[0]

    invoice_date = today - timedelta(days=40)
    db.execute(
        """
        INSERT INTO invoices (invoice_number, customer_id, invoice_date, due_date)
        VALUES (?, ?, ?, ?)
        """,
        (
            f"INV-{today:%Y%m%d}-001",
            customer_id,
            invoice_date.isoformat(),
            (invoice_date + timedelta(days=60)).isoformat(),
        ),
    )
    invoice_id = db.execute("SELECT last_insert_rowid()").fetchone()[0]

    line_items = [
        ("Website redesign", 1, 2400.00),
        ("Hosting (monthly)", 3, 45.50),
        ("Logo variations", 2, 150.00),
    ]
    for description, quantity, unit_price in line_items:
        db.execute(
            """
            INSERT INTO invoice_line_items (invoice_id, description, quantity, unit_price)
            VALUES (?, ?, ?, ?)
            """,
            (invoice_id, description, quantity, unit_price),
        )

    deposits = [
        (30, 500.00, "Initial deposit"),
        (30, 250.00, None),
        (18, 400.00, "Second milestone"),
        (5, 325.25, None),
    ]
    for days_ago, amount, note in deposits:
        db.execute(
            """
            INSERT INTO deposits (invoice_id, amount, deposit_date, note)
            VALUES (?, ?, ?, ?)
            """,
            (invoice_id, amount, (today - timedelta(days=days_ago)).isoformat(), note),
        )

    db.commit()
    return invoice_id


@click.command("init-db")
@with_appcontext
def init_db_command():
    init_db()
    click.echo("Initialized the database.")


@click.command("seed-demo")
@with_appcontext
def seed_demo_command():
    invoice_id = seed_demo_data()
    click.echo(f"Seeded demo invoice {invoice_id}.")


def init_app(app):
    app.cli.add_command(init_db_command)
    app.cli.add_command(seed_demo_command)

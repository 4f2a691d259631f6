from datetime import date, timedelta

import pytest

from invoice_desk import create_app
from invoice_desk.db import get_db


@pytest.fixture
def app(tmp_path):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test",
            "DATABASE": str(tmp_path / "invoice_desk.sqlite"),
        }
    )

    with app.app_context():
        db = get_db()
        db.execute("INSERT INTO customers (name, email) VALUES (?, ?)", ("Acme Corp", "ap@acme.example"))
        db.execute(
            """
            INSERT INTO invoices (invoice_number, customer_id, invoice_date, due_date)
            VALUES (?, ?, ?, ?)
            """,
            ("INV-0001", 1, "2024-01-01", (date.today() + timedelta(days=10)).isoformat()),
        )
        db.executemany(
            """
            INSERT INTO invoice_line_items (invoice_id, description, quantity, unit_price)
            VALUES (?, ?, ?, ?)
            """,
            [
                (1, "Consulting", 1, 200.00),
                (1, "Support hours", 4, 25.00),
            ],
        )
        db.executemany(
            """
            INSERT INTO deposits (invoice_id, amount, deposit_date, note)
            VALUES (?, ?, ?, ?)
            """,
            [
                (1, 100.00, "2024-01-01", "First"),
                (1, 50.00, "2024-01-01", None),
                (1, 25.00, "2024-01-10", None),
            ],
        )
        db.execute(
            """
            INSERT INTO invoices (invoice_number, customer_id, invoice_date, due_date)
            VALUES (?, ?, ?, ?)
            """,
            ("INV-0002", 1, "2024-02-01", "2024-03-01"),
        )
        db.commit()

    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


class AuthActions:
    def __init__(self, client):
        self._client = client

    def login(self, username="admin", password="admin123"):
        return self._client.post("/login", data={"username": username, "password": password})

    def logout(self):
        return self._client.post("/logout")


@pytest.fixture
def auth(client):
    return AuthActions(client)

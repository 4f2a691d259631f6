from datetime import date
from decimal import Decimal


def _to_decimal(value):
    return Decimal(str(value or 0))


def _quantity(value):
    quantity = _to_decimal(value)
    if quantity == quantity.to_integral_value():
        return quantity.quantize(Decimal("1"))
    return quantity.normalize()


def get_due_status(total_amount, total_deposits, due_date, today=None):
    today = today or date.today()
    if total_deposits == total_amount:
        return "paid"
    if total_deposits > total_amount:
        return "overpaid"
    if due_date < today:
        return "overdue"
    return "due"


def get_due_status_display(due_status, due_date, today=None):
    today = today or date.today()
    if due_status == "paid":
        return "Paid"
    if due_status == "overpaid":
        return "Overpaid"

    days = (due_date - today).days
    if due_status == "overdue":
        late = abs(days)
        return f"Overdue by {late} day" if late == 1 else f"Overdue by {late} days"
    if days == 0:
        return "Due Today"
    if days == 1:
        return "Due Tomorrow"
    return f"Due in {days} days"


def get_invoice_details(db, invoice_id, today=None):
    invoice = db.execute(
        """
        SELECT
            i.id,
            i.invoice_number,
            i.invoice_date,
            i.due_date,
            c.id AS customer_id,
            c.name AS customer_name
        FROM invoices i
        JOIN customers c ON c.id = i.customer_id
        WHERE i.id = ?
        """,
        (invoice_id,),
    ).fetchone()
    if invoice is None:
        return None

    line_items = db.execute(
        """
        SELECT id, description, quantity, unit_price
        FROM invoice_line_items
        WHERE invoice_id = ?
        ORDER BY id ASC
        """,
        (invoice_id,),
    ).fetchall()
    deposits = db.execute(
        """
        SELECT id, amount, deposit_date, note
        FROM deposits
        WHERE invoice_id = ?
        ORDER BY deposit_date ASC, id ASC
        """,
        (invoice_id,),
    ).fetchall()

    total_amount = sum(
        (_to_decimal(item["quantity"]) * _to_decimal(item["unit_price"]) for item in line_items),
        Decimal("0"),
    )
    total_deposits = sum((_to_decimal(d["amount"]) for d in deposits), Decimal("0"))
    due_date = date.fromisoformat(invoice["due_date"])
    due_status = get_due_status(total_amount, total_deposits, due_date, today)

    return {
        "invoice": invoice,
        "invoice_date": date.fromisoformat(invoice["invoice_date"]),
        "due_date": due_date,
        "line_items": [
            {
                "id": item["id"],
                "description": item["description"],
                "quantity": _quantity(item["quantity"]),
                "unit_price": _to_decimal(item["unit_price"]),
            }
            for item in line_items
        ],
        "deposits": [
            {
                "id": d["id"],
                "amount": _to_decimal(d["amount"]),
                "deposit_date": date.fromisoformat(d["deposit_date"]),
                "note": d["note"],
            }
            for d in deposits
        ],
        "total_amount": total_amount,
        "total_deposits": total_deposits,
        "due_status": due_status,
        "due_status_display": get_due_status_display(due_status, due_date, today),
    }


def list_invoices(db):
    return db.execute(
        """
        SELECT
            i.id,
            i.invoice_number,
            i.invoice_date,
            i.due_date,
            c.name AS customer_name,
            COALESCE(t.total, 0) AS total,
            COALESCE(d.paid, 0) AS paid_amount,
            MAX(COALESCE(t.total, 0) - COALESCE(d.paid, 0), 0) AS outstanding_amount
        FROM invoices i
        JOIN customers c ON c.id = i.customer_id
        LEFT JOIN (
            SELECT invoice_id, SUM(quantity * unit_price) AS total
            FROM invoice_line_items
            GROUP BY invoice_id
        ) t ON t.invoice_id = i.id
        LEFT JOIN (
            SELECT invoice_id, SUM(amount) AS paid
            FROM deposits
            GROUP BY invoice_id
        ) d ON d.invoice_id = i.id
        ORDER BY i.id DESC
        """
    ).fetchall()


def create_deposit(db, invoice_id, amount, deposit_date, note=None):
    db.execute(
        """
        INSERT INTO deposits (invoice_id, amount, deposit_date, note)
        VALUES (?, ?, ?, ?)
        """,
        (invoice_id, float(amount), deposit_date.isoformat(), note or None),
    )
    deposit_id = db.execute("SELECT last_insert_rowid()").fetchone()[0]
    db.commit()
    return deposit_id


def get_deposit(db, deposit_id):
    return db.execute(
        """
        SELECT
            d.id,
            d.amount,
            d.deposit_date,
            d.note,
            i.id AS invoice_id,
            i.invoice_number,
            c.name AS customer_name
        FROM deposits d
        JOIN invoices i ON i.id = d.invoice_id
        JOIN customers c ON c.id = i.customer_id
        WHERE d.id = ?
        """,
        (deposit_id,),
    ).fetchone()


def get_customer(db, customer_id):
    customer = db.execute(
        "SELECT id, name, email FROM customers WHERE id = ?",
        (customer_id,),
    ).fetchone()
    if customer is None:
        return None

    rows = db.execute("SELECT id FROM invoices WHERE customer_id = ?", (customer_id,)).fetchall()
    invoice_ids = {row["id"] for row in rows}
    invoices = [row for row in list_invoices(db) if row["id"] in invoice_ids]
    return {"customer": customer, "invoices": invoices}

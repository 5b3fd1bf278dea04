"""Realistic sample records for every source collection of a tenant, generated with Faker."""

import random
import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from faker import Faker

from cashbook.logger_config import logger
from cashbook.services.storage_service import StorageService

EXPENSE_CATEGORIES = ["إيجار المحل", "الكهرباء والمياه", "رواتب الموظفين", "مصاريف التسويق", "صيانة المعدات", "مصاريف النقل", "أخرى"]
CASH_CATEGORIES = ["sales", "supplies", "rent", "utilities", "marketing", "expenses"]
PAYMENT_METHODS = ["cash", "bank", "card"]


def _money(low: float, high: float, rng: random.Random) -> str:
    return str(Decimal(str(round(rng.uniform(low, high), 2))).quantize(Decimal("0.01")))


def _short_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def _phone(fake: Faker) -> str:
    return "".join(filter(str.isdigit, fake.phone_number()))[:20]


def generate_tenant_data(
    fake: Optional[Faker] = None,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
    customers: int = 20,
    suppliers: int = 8,
    products: int = 15,
    invoices: int = 40,
) -> Dict[str, List[dict]]:
    fake = fake or Faker()
    rng = rng or random.Random()
    today = today or datetime.now(timezone.utc).date()

    def past_day(max_days: int = 120) -> date:
        return today - timedelta(days=rng.randint(0, max_days))

    customer_rows = [
        {
            "id": _short_id("CUS"),
            "name": fake.name(),
            "email": fake.email(),
            "phone": _phone(fake),
            "address": fake.address().replace("\n", ", "),
            "credit_limit": _money(5000, 20000, rng),
            "created_at": datetime.combine(past_day(365), datetime.min.time(), timezone.utc).isoformat(),
        }
        for _ in range(customers)
    ]
    supplier_rows = [
        {
            "id": _short_id("SUP"),
            "name": fake.company(),
            "email": fake.company_email(),
            "phone": _phone(fake),
            "address": fake.address().replace("\n", ", "),
            "rating": round(rng.uniform(3, 5), 1),
        }
        for _ in range(suppliers)
    ]
    product_rows = [
        {
            "id": _short_id("PRD"),
            "name": fake.word().capitalize(),
            "quantity": rng.randint(0, 100),
            "min_quantity": rng.randint(5, 15),
            "cost": _money(10, 200, rng),
        }
        for _ in range(products)
    ]

    sales, installments, checks = [], [], []
    for _ in range(invoices):
        customer = rng.choice(customer_rows)
        picked = rng.sample(product_rows, k=min(len(product_rows), rng.randint(1, 3)))
        items = []
        for product in picked:
            quantity = rng.randint(1, 5)
            items.append({
                "product_id": product["id"],
                "product_name": product["name"],
                "quantity": quantity,
                "total": str(Decimal(product["cost"]) * quantity * Decimal("1.3")),
            })
        total = sum(Decimal(item["total"]) for item in items).quantize(Decimal("0.01"))
        status = rng.choice(["paid", "paid", "pending", "installment"])
        invoice = {
            "id": _short_id("INV"),
            "customer_id": customer["id"],
            "customer_name": customer["name"],
            "date": past_day().isoformat(),
            "total": str(total),
            "status": status,
            "payment_method": rng.choice(PAYMENT_METHODS),
            "items": items,
        }
        sales.append(invoice)

        if status == "installment":
            parts = 3
            share = (total / parts).quantize(Decimal("0.01"))
            for n in range(parts):
                due = date.fromisoformat(invoice["date"]) + timedelta(days=30 * (n + 1))
                paid = due <= today and rng.random() < 0.6
                installments.append({
                    "id": _short_id("INS"),
                    "customer_id": customer["id"],
                    "customer_name": customer["name"],
                    "invoice_id": invoice["id"],
                    "amount": str(share),
                    "paid_amount": str(share) if paid else "0",
                    "remaining_amount": "0" if paid else str(share),
                    "due_date": due.isoformat(),
                    "paid_date": due.isoformat() if paid else None,
                    "status": "paid" if paid else "pending",
                })
        elif status == "pending" and rng.random() < 0.5:
            due = today + timedelta(days=rng.randint(-10, 20))
            checks.append({
                "id": _short_id("CHK"),
                "customer_id": customer["id"],
                "customer_name": customer["name"],
                "amount": str(total),
                "bank_name": fake.company(),
                "check_number": str(rng.randint(100000, 999999)),
                "date_received": invoice["date"],
                "due_date": due.isoformat(),
                "cleared_date": due.isoformat() if due < today else None,
                "status": "cleared" if due < today else "pending",
            })

    purchase_invoices, supplier_payments = [], []
    for supplier in supplier_rows:
        for _ in range(rng.randint(1, 4)):
            ordered = past_day()
            received = ordered + timedelta(days=rng.randint(1, 10))
            order = {
                "id": _short_id("PUR"),
                "supplier_id": supplier["id"],
                "supplier_name": supplier["name"],
                "date": ordered.isoformat(),
                "total": _money(500, 5000, rng),
                "status": "received" if received <= today else "pending",
                "received_date": received.isoformat() if received <= today else None,
            }
            purchase_invoices.append(order)
            if rng.random() < 0.7:
                supplier_payments.append({
                    "id": _short_id("SPY"),
                    "supplier_id": supplier["id"],
                    "supplier_name": supplier["name"],
                    "purchase_invoice_id": order["id"],
                    "amount": order["total"],
                    "date": min(received, today).isoformat(),
                    "payment_method": rng.choice(PAYMENT_METHODS),
                    "status": "paid",
                })

    expenses = [
        {
            "id": _short_id("EXP"),
            "description": f"{category} {fake.month_name()}",
            "amount": _money(100, 3000, rng),
            "category": category,
            "date": past_day(60).isoformat(),
            "status": rng.choice(["paid", "paid", "pending"]),
        }
        for category in (rng.choice(EXPENSE_CATEGORIES) for _ in range(15))
    ]

    payroll = []
    for _ in range(5):
        employee = fake.name()
        for months_back in range(2):
            pay_date = today.replace(day=1) - timedelta(days=30 * months_back)
            payroll.append({
                "id": _short_id("PAY"),
                "employee_id": _short_id("EMP"),
                "employee_name": employee,
                "amount": _money(3000, 8000, rng),
                "period": pay_date.strftime("%Y-%m"),
                "pay_date": pay_date.isoformat(),
                "status": "paid" if months_back else rng.choice(["paid", "pending"]),
            })

    cash_register = [
        {
            "id": _short_id("CSH"),
            "date": past_day(45).isoformat(),
            "direction": direction,
            "category": "sales" if direction == "income" else rng.choice(CASH_CATEGORIES[1:]),
            "amount": _money(50, 1500, rng),
            "description": fake.sentence(nb_words=4),
            "payment_method": "cash",
            "created_by": fake.user_name(),
        }
        for direction in (rng.choice(["income", "expense"]) for _ in range(12))
    ]

    return {
        "customers": customer_rows,
        "suppliers": supplier_rows,
        "products": product_rows,
        "sales_invoices": sales,
        "purchase_invoices": purchase_invoices,
        "supplier_payments": supplier_payments,
        "installments": installments,
        "checks": checks,
        "expenses": expenses,
        "payroll": payroll,
        "cash_register": cash_register,
    }


def seed_tenant(storage: StorageService, seed: Optional[int] = None, **sizes) -> Dict[str, int]:
    """Overwrite every source collection of the storage's tenant with generated data."""
    fake = Faker()
    rng = random.Random(seed)
    if seed is not None:
        fake.seed_instance(seed)

    data = generate_tenant_data(fake=fake, rng=rng, **sizes)
    counts = {}
    for name, records in data.items():
        if not storage.set(name, records):
            logger.error(f"Failed to seed '{name}' for tenant {storage.tenant_id}")
            continue
        counts[name] = len(records)
    logger.info(f"Seeded tenant {storage.tenant_id}: {counts}")
    return counts

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.db.models import (
    Count,
    DecimalField,
    ExpressionWrapper,
    F,
    Sum,
    Value,
)
from django.db.models.functions import Coalesce
from django.utils import timezone

from finance.models import AccountPayable, AccountReceivable, CustomerCreditPayment, PayablePayment
from sales.models import STORE_CREDIT_CODE, Sale, SalePayment

ZERO_DECIMAL = Decimal("0.00")
UPCOMING_DAYS = 7

MONEY_FIELD = DecimalField(max_digits=16, decimal_places=2)

# Agrupamento do fechamento de caixa por código da forma de pagamento.
CASH_CODES = frozenset({"cash"})
CARD_CODES = frozenset({"debit", "credit"})
PIX_CODES = frozenset({"pix"})
CATEGORIES = ("cash", "card", "pix", "credit", "other")


def _decimal(value: Decimal | None) -> Decimal:
    """Return a Decimal zero when the value is falsy."""
    if value is None:
        return ZERO_DECIMAL
    return value


def _totals(queryset, field: str) -> dict:
    row = queryset.aggregate(
        count=Count("id"),
        amount=Coalesce(Sum(field), Value(ZERO_DECIMAL), output_field=MONEY_FIELD),
    )
    return {"count": row["count"], "amount": _decimal(row["amount"])}


def _outstanding(queryset) -> dict:
    expr = ExpressionWrapper(F("amount") - F("paid_amount"), output_field=MONEY_FIELD)
    row = queryset.aggregate(
        count=Count("id"),
        amount=Coalesce(Sum(expr), Value(ZERO_DECIMAL), output_field=MONEY_FIELD),
    )
    return {"count": row["count"], "amount": _decimal(row["amount"])}


def _month_start(day):
    return day.replace(day=1)


def get_payables_summary(today=None) -> dict:
    today = today or timezone.localdate()
    open_accounts = AccountPayable.objects.filter(status=AccountPayable.Status.OPEN)
    paid_this_month = PayablePayment.objects.filter(
        payment_date__gte=_month_start(today),
        payment_date__lte=today,
    )
    return {
        "open": _totals(open_accounts, "amount"),
        "overdue": _totals(open_accounts.filter(due_date__lt=today), "amount"),
        "due_next_days": _totals(
            open_accounts.filter(due_date__gte=today, due_date__lte=today + timedelta(days=UPCOMING_DAYS)),
            "amount",
        ),
        "paid_this_month": _totals(paid_this_month, "amount_paid"),
    }


def get_receivables_summary(store=None, today=None) -> dict:
    today = today or timezone.localdate()
    pending = AccountReceivable.objects.filter(status=AccountReceivable.Status.PENDING)
    received = CustomerCreditPayment.objects.filter(
        created_at__date__gte=_month_start(today),
        created_at__date__lte=today,
    )
    if store is not None:
        pending = pending.filter(store=store)
        received = received.filter(allocations__receivable__store=store).distinct()
    return {
        "pending": _outstanding(pending),
        "overdue": _outstanding(pending.filter(due_date__lt=today)),
        "received_this_month": _totals(received, "amount"),
    }


def get_sales_summary(store=None, today=None) -> dict:
    today = today or timezone.localdate()
    sales = Sale.objects.filter(status=Sale.Status.COMPLETED)
    if store is not None:
        sales = sales.filter(store=store)
    return {
        "today": _totals(sales.filter(completed_at__date=today), "total"),
        "this_month": _totals(sales.filter(completed_at__date__gte=_month_start(today)), "total"),
    }


def get_financial_dashboard(store=None, today=None) -> dict:
    today = today or timezone.localdate()
    return {
        "date": today,
        "store": store.code if store is not None else None,
        "payables": get_payables_summary(today=today),
        "receivables": get_receivables_summary(store=store, today=today),
        "sales": get_sales_summary(store=store, today=today),
    }


def payment_category(code: str | None, is_credit: bool = False) -> str:
    if is_credit:
        return "credit"
    if code is None or code in CASH_CODES:
        return "cash"
    if code in CARD_CODES:
        return "card"
    if code in PIX_CODES:
        return "pix"
    return "other"


def _credit_payments_of_day(store, day):
    return (
        CustomerCreditPayment.objects.filter(
            created_at__date=day,
            allocations__receivable__store=store,
        )
        .select_related("payment_method")
        .distinct()
    )


def get_expected_by_category(store, day=None) -> dict:
    """
    Amounts the register should hold for ``day``, split into cash, card, pix,
    crediário and other methods.

    Crediário installments received at the counter count under the method they
    were paid with; a payment without a method is taken as cash.
    """
    day = day or timezone.localdate()
    totals = dict.fromkeys(CATEGORIES, ZERO_DECIMAL)
    rows = (
        SalePayment.objects.filter(
            sale__store=store,
            sale__status=Sale.Status.COMPLETED,
            sale__completed_at__date=day,
        )
        .values("payment_method__code", "is_credit")
        .annotate(amount=Sum("amount"))
        .order_by()
    )
    for row in rows:
        category = payment_category(row["payment_method__code"], row["is_credit"])
        totals[category] += _decimal(row["amount"])
    for payment in _credit_payments_of_day(store, day):
        method = payment.payment_method
        totals[payment_category(method.code if method else None)] += payment.amount
    return totals


def get_cash_summary(store, day=None) -> dict:
    """Day close for ``store``: completed sales by payment method plus crediário movement."""
    day = day or timezone.localdate()
    sales = Sale.objects.filter(store=store, completed_at__date=day, status=Sale.Status.COMPLETED)
    payments = (
        SalePayment.objects.filter(sale__in=sales)
        .values("payment_method__code", "payment_method__name")
        .annotate(count=Count("id"), amount=Sum("amount"))
        .order_by("payment_method__name")
    )
    by_method = [
        {
            "code": row["payment_method__code"],
            "label": row["payment_method__name"],
            "count": row["count"],
            "amount": _decimal(row["amount"]),
        }
        for row in payments
    ]
    credit_payments = list(_credit_payments_of_day(store, day))
    cancelled = Sale.objects.filter(store=store, cancelled_at__date=day, status=Sale.Status.CANCELLED)
    sales_totals = _totals(sales, "total")
    credit_totals = _totals(sales.filter(amount_credit__gt=0), "amount_credit")
    received = sum((payment.amount for payment in credit_payments), ZERO_DECIMAL)
    cash_in = sum(
        (row["amount"] for row in by_method if row["code"] != STORE_CREDIT_CODE),
        ZERO_DECIMAL,
    )
    return {
        "date": day,
        "store": store.code,
        "sales": sales_totals,
        "by_payment_method": by_method,
        "credit_sales": credit_totals,
        "credit_payments": {"count": len(credit_payments), "amount": received},
        "cancellations": _totals(cancelled, "total"),
        "cash_in": cash_in + received,
        "expected": get_expected_by_category(store, day),
    }

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from clients.models import Client
from core.models import SalesConfiguration, Store
from finance.models import AccountPayable, CustomerCreditPayment
from finance.services import pay_account_payable, register_credit_payment
from products.models import Product, Supplier
from products.services import adjust_stock, set_product_price
from sales.models import PaymentMethod
from sales.services import PaymentEntry, build_cart, cancel_sale, finalize_sale

from .services import get_cash_summary, get_expected_by_category, get_financial_dashboard, payment_category


def create_sample_data():
    SalesConfiguration.clear_cache()
    user = get_user_model().objects.create_user("caixa", "caixa@example.com", "pw123456")
    store = Store.objects.create(name="Loja Centro", code="LJ1")
    other_store = Store.objects.create(name="Loja Bairro", code="LJ2")
    customer = Client.objects.create(name="Cliente Teste", credit_limit=Decimal("500.00"))
    product = Product.objects.create(name="Produto Teste")
    for loja in (store, other_store):
        set_product_price(product, loja, sale_price="100.00", cost_price="60.00")
        adjust_stock(product, loja, 20)

    cash = PaymentMethod.objects.get(code="cash")
    pix = PaymentMethod.objects.get(code="pix")
    store_credit = PaymentMethod.objects.get(code="store_credit")

    def sell(loja, quantity, payments):
        cart = build_cart(loja, [{"product": product.pk, "quantity": quantity}])
        return finalize_sale(loja, customer, cart, payments, actor=user)

    sell(store, 1, [PaymentEntry(cash, "100.00")])
    sell(store, 2, [PaymentEntry(pix, "50.00"), PaymentEntry(store_credit, "150.00")])
    cancelled = sell(store, 1, [PaymentEntry(cash, "100.00")])
    cancel_sale(cancelled, user, "Produto errado")
    sell(other_store, 1, [PaymentEntry(cash, "100.00")])

    register_credit_payment(customer, "40.00", user, payment_method=cash)

    supplier = Supplier.objects.create(name="Fornecedor Teste", document="12345678000190")
    today = timezone.localdate()
    AccountPayable.objects.create(
        supplier=supplier,
        description="Aluguel",
        amount=Decimal("1000.00"),
        due_date=today - timedelta(days=3),
    )
    AccountPayable.objects.create(
        supplier=supplier,
        description="Energia",
        amount=Decimal("300.00"),
        due_date=today + timedelta(days=2),
    )
    AccountPayable.objects.create(
        supplier=supplier,
        description="Internet",
        amount=Decimal("120.00"),
        due_date=today + timedelta(days=30),
    )
    paid = AccountPayable.objects.create(
        supplier=supplier,
        description="Água",
        amount=Decimal("80.00"),
        due_date=today,
    )
    pay_account_payable(paid, actor=user)
    return {"user": user, "store": store, "other_store": other_store, "customer": customer}


class FinancialDashboardTests(TestCase):
    def setUp(self):
        self.data = create_sample_data()

    def test_store_dashboard(self):
        dashboard = get_financial_dashboard(store=self.data["store"])

        self.assertEqual(dashboard["store"], "LJ1")
        self.assertEqual(dashboard["date"], timezone.localdate())
        self.assertEqual(dashboard["sales"]["today"], {"count": 2, "amount": Decimal("300.00")})
        self.assertEqual(dashboard["receivables"]["pending"], {"count": 1, "amount": Decimal("110.00")})
        self.assertEqual(dashboard["receivables"]["overdue"]["count"], 0)
        self.assertEqual(dashboard["receivables"]["received_this_month"]["amount"], Decimal("40.00"))

    def test_payables(self):
        payables = get_financial_dashboard()["payables"]

        self.assertEqual(payables["open"], {"count": 3, "amount": Decimal("1420.00")})
        self.assertEqual(payables["overdue"], {"count": 1, "amount": Decimal("1000.00")})
        self.assertEqual(payables["due_next_days"], {"count": 1, "amount": Decimal("300.00")})
        self.assertEqual(payables["paid_this_month"], {"count": 1, "amount": Decimal("80.00")})

    def test_all_stores(self):
        dashboard = get_financial_dashboard()
        self.assertIsNone(dashboard["store"])
        self.assertEqual(dashboard["sales"]["today"]["count"], 3)
        self.assertEqual(dashboard["sales"]["this_month"]["amount"], Decimal("400.00"))
        self.assertEqual(dashboard["receivables"]["received_this_month"]["amount"], Decimal("40.00"))

    def test_received_this_month_counts_only_the_store_receivables(self):
        dashboard = get_financial_dashboard(store=self.data["other_store"])
        self.assertEqual(dashboard["receivables"]["received_this_month"], {"count": 0, "amount": Decimal("0.00")})

    def test_received_this_month_ignores_future_dates(self):
        CustomerCreditPayment.objects.update(created_at=timezone.now() + timedelta(days=1))
        dashboard = get_financial_dashboard(store=self.data["store"])
        self.assertEqual(dashboard["receivables"]["received_this_month"]["amount"], Decimal("0.00"))


class CashSummaryTests(TestCase):
    def setUp(self):
        self.data = create_sample_data()

    def test_cash_summary(self):
        summary = get_cash_summary(self.data["store"])

        self.assertEqual(summary["store"], "LJ1")
        self.assertEqual(summary["sales"], {"count": 2, "amount": Decimal("300.00")})
        methods = {row["code"]: (row["count"], row["amount"]) for row in summary["by_payment_method"]}
        self.assertEqual(
            methods,
            {
                "cash": (1, Decimal("100.00")),
                "pix": (1, Decimal("50.00")),
                "store_credit": (1, Decimal("150.00")),
            },
        )
        self.assertEqual(summary["credit_sales"], {"count": 1, "amount": Decimal("150.00")})
        self.assertEqual(summary["credit_payments"], {"count": 1, "amount": Decimal("40.00")})
        self.assertEqual(summary["cancellations"], {"count": 1, "amount": Decimal("100.00")})
        self.assertEqual(summary["cash_in"], Decimal("190.00"))
        self.assertEqual(
            summary["expected"],
            {
                "cash": Decimal("140.00"),
                "card": Decimal("0.00"),
                "pix": Decimal("50.00"),
                "credit": Decimal("150.00"),
                "other": Decimal("0.00"),
            },
        )

    def test_other_day_is_empty(self):
        summary = get_cash_summary(self.data["store"], timezone.localdate() - timedelta(days=1))
        self.assertEqual(summary["sales"], {"count": 0, "amount": Decimal("0.00")})
        self.assertEqual(summary["by_payment_method"], [])
        self.assertEqual(summary["cash_in"], Decimal("0.00"))

    def test_expected_by_category_ignores_other_stores(self):
        expected = get_expected_by_category(self.data["other_store"])
        self.assertEqual(expected["cash"], Decimal("100.00"))
        self.assertEqual(expected["credit"], Decimal("0.00"))


class PaymentCategoryTests(SimpleTestCase):
    def test_categories(self):
        self.assertEqual(payment_category("cash"), "cash")
        self.assertEqual(payment_category(None), "cash")
        self.assertEqual(payment_category("debit"), "card")
        self.assertEqual(payment_category("credit"), "card")
        self.assertEqual(payment_category("pix"), "pix")
        self.assertEqual(payment_category("store_credit", is_credit=True), "credit")
        self.assertEqual(payment_category("voucher"), "other")

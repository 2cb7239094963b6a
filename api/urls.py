# api/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
	CashRegisterViewSet,
	CashSummaryView,
	CostCenterViewSet,
	CreditPaymentViewSet,
	CustomAuthToken,
	CustomerViewSet,
	DashboardView,
	MeView,
	PayableViewSet,
	PaymentMethodViewSet,
	PdvCartView,
	PdvSaleView,
	ProductViewSet,
	QuoteViewSet,
	ReceivableViewSet,
	SaleViewSet,
	StockReceiptViewSet,
	StoreViewSet,
	SupplierViewSet,
	UserViewSet,
)
router = DefaultRouter()
router.register(r"stores", StoreViewSet, basename="stores")
router.register(r"payment-methods", PaymentMethodViewSet, basename="payment-methods")
router.register(r"suppliers", SupplierViewSet, basename="suppliers")
router.register(r"products", ProductViewSet, basename="products")
router.register(r"stock-receipts", StockReceiptViewSet, basename="stock-receipts")
router.register(r"customers", CustomerViewSet, basename="customers")
router.register(r"quotes", QuoteViewSet, basename="quotes")
router.register(r"sales", SaleViewSet, basename="sales")
router.register(r"receivables", ReceivableViewSet, basename="receivables")
router.register(r"credit-payments", CreditPaymentViewSet, basename="credit-payments")
router.register(r"cost-centers", CostCenterViewSet, basename="cost-centers")
router.register(r"payables", PayableViewSet, basename="payables")
router.register(r"cash-register", CashRegisterViewSet, basename="cash-register")
router.register(r"users", UserViewSet, basename="users")
urlpatterns = [
	path("login/", CustomAuthToken.as_view(), name="api-login"),
	path("me/", MeView.as_view(), name="api-me"),
	path("pdv/cart/", PdvCartView.as_view(), name="api-pdv-cart"),
	path("pdv/sales/", PdvSaleView.as_view(), name="api-pdv-sales"),
	path("dashboard/", DashboardView.as_view(), name="api-dashboard"),
	path("dashboard/cash/", CashSummaryView.as_view(), name="api-dashboard-cash"),
	path("", include(router.urls)),
]

import logging

from django.contrib.auth import get_user_model
from django.http import HttpResponse
from django.utils import timezone
from django.utils.dateparse import parse_date

from rest_framework import mixins, status, viewsets
from rest_framework.authtoken.models import Token
from rest_framework.authtoken.views import ObtainAuthToken
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.views import APIView

from clients.models import Client
from core.models import Store
from core.roles import Capability, has_any_role, has_capability, user_capabilities, user_roles
from core.services import assign_role, create_user_account, deactivate_user, resolve_stores, revoke_role, set_store_access
from core.utils.stores import resolve_active_store
from finance.importers import import_payables_csv
from finance.models import AccountPayable, AccountReceivable, CostCenter, CustomerCreditPayment
from finance.services import (
	add_payable_attachment,
	cancel_account_payable,
	create_account_payable,
	delete_account_payable,
	pay_account_payable,
	payable_history,
	pay_receivable,
	register_credit_payment,
	update_account_payable,
)
from products.models import Product, StockMovement, StockReceipt, Supplier
from products.services import adjust_stock, annotate_store_data, receive_stock, search_products, set_product_price
from relatorios.services import get_cash_summary, get_expected_by_category, get_financial_dashboard
from sales.cash_register import (
	close_cash_register,
	closing_history,
	expected_amounts,
	get_closing,
	open_cash_register,
	register_cash_movement,
)
from sales.models import CashRegisterClosing, PaymentMethod, Sale
from sales.receipts import render_sale_receipt
from sales.services import (
	PaymentEntry,
	build_cart,
	cancel_sale,
	convert_quote,
	delete_quote,
	finalize_sale,
	load_quote,
	replicate_sale,
	save_quote,
	search_quotes,
)

from .permissions import HasCapability, capability_permission
from .serializers import (
	AccountPayableSerializer,
	AccountReceivableSerializer,
	AttachmentUploadSerializer,
	AuditLogSerializer,
	CancelPayableSerializer,
	CancelSaleSerializer,
	CartSerializer,
	CashMovementRequestSerializer,
	CashRegisterClosingSerializer,
	CashRegisterMovementSerializer,
	ClientSerializer,
	CloseCashRegisterSerializer,
	ConvertQuoteSerializer,
	CostCenterSerializer,
	CreditPaymentRequestSerializer,
	CustomerCreditHistorySerializer,
	CustomerCreditPaymentSerializer,
	DeliveryAddressSerializer,
	FinalizeSaleSerializer,
	OpenCashRegisterSerializer,
	PayableAttachmentSerializer,
	PayableImportSerializer,
	PayablePaymentSerializer,
	PayPayableSerializer,
	PayReceivableSerializer,
	PaymentMethodSerializer,
	ProductPriceSerializer,
	ProductSerializer,
	QuoteSaveSerializer,
	ReplicateSaleSerializer,
	RoleRequestSerializer,
	SaleSerializer,
	StockAdjustmentSerializer,
	StockReceiptSerializer,
	StoreAccessSerializer,
	StoreSerializer,
	SupplierSerializer,
	UserCreateSerializer,
	UserSerializer,
)

logger = logging.getLogger(__name__)

INACTIVE_USER_MESSAGE = "Usuário inativo. Sua conta ainda não foi ativada por um administrador."


def _truthy(value) -> bool:
	return str(value or "").strip().lower() in {"1", "true", "sim", "yes"}


def _query_date(params, name):
	raw = (params.get(name) or "").strip()
	if not raw:
		return None
	try:
		value = parse_date(raw)
	except ValueError:
		# bem formada, mas inexistente (ex.: 2024-02-30)
		value = None
	if value is None:
		raise ValidationError({name: "Informe uma data válida no formato AAAA-MM-DD."})
	return value


def _user_payload(user) -> dict:
	return {
		"user_id": user.pk,
		"email": user.email,
		"username": user.get_username(),
		"name": user.get_full_name() or user.get_username(),
		"roles": sorted(role.value for role in user_roles(user)),
		"capabilities": sorted(capability.value for capability in user_capabilities(user)),
	}


def _payment_entries(rows) -> list[PaymentEntry]:
	return [
		PaymentEntry(
			payment_method=row["payment_method"],
			amount=row["amount"],
			installments=row.get("installments") or 1,
		)
		for row in rows or []
	]


class StoreScopedMixin:
	"""Resolve a loja ativa depois da autenticação do DRF (token ou sessão)."""

	store_header = "X-Store"

	def get_store(self, required=True):
		request = self.request
		cached = getattr(self, "_active_store", None)
		if cached is not None:
			return cached
		requested = request.headers.get(self.store_header) or getattr(request, "requested_store_code", None)
		store, _ = resolve_active_store(request.user, requested)
		if store is None and required:
			raise PermissionDenied("Nenhuma loja disponível para este usuário.")
		self._active_store = store
		return store


class CustomAuthToken(ObtainAuthToken):
	def post(self, request, *args, **kwargs):
		serializer = self.serializer_class(data=request.data, context={"request": request})
		serializer.is_valid(raise_exception=True)
		user = serializer.validated_data["user"]
		if not has_any_role(user):
			logger.info("login recusado para %s: usuário sem papéis", user.get_username())
			return Response({"detail": INACTIVE_USER_MESSAGE}, status=status.HTTP_403_FORBIDDEN)
		token, created = Token.objects.get_or_create(user=user)
		return Response({"token": token.key, **_user_payload(user)})


class MeView(StoreScopedMixin, APIView):
	permission_classes = [HasCapability]

	def get(self, request):
		store = self.get_store(required=False)
		available = Store.available_for(request.user).order_by("code")
		return Response(
			{
				**_user_payload(request.user),
				"store": StoreSerializer(store).data if store else None,
				"stores": StoreSerializer(available, many=True).data,
			}
		)


class StoreViewSet(viewsets.ModelViewSet):
	serializer_class = StoreSerializer
	permission_classes = [HasCapability]
	pagination_class = None
	write_capability = Capability.MANAGE_STORES
	capability_map = {"destroy": Capability.DELETE_RECORDS}
	search_fields = ["code", "name", "cnpj"]
	ordering_fields = ["code", "name"]

	def get_queryset(self):
		if has_capability(self.request.user, Capability.MANAGE_STORES):
			return Store.objects.all().order_by("code")
		return Store.available_for(self.request.user).order_by("code")


class PaymentMethodViewSet(viewsets.ModelViewSet):
	queryset = PaymentMethod.objects.all().order_by("name")
	serializer_class = PaymentMethodSerializer
	permission_classes = [HasCapability]
	pagination_class = None
	write_capability = Capability.MANAGE_PAYMENT_METHODS
	capability_map = {"destroy": Capability.DELETE_RECORDS}
	filterset_fields = ["active", "code"]

	def get_queryset(self):
		qs = super().get_queryset()
		if self.action == "list" and not _truthy(self.request.query_params.get("all")):
			qs = qs.filter(active=True)
		return qs


class SupplierViewSet(viewsets.ModelViewSet):
	queryset = Supplier.objects.all().order_by("name")
	serializer_class = SupplierSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_CATALOG
	write_capability = Capability.MANAGE_CATALOG
	capability_map = {"destroy": Capability.DELETE_RECORDS}
	search_fields = ["name", "document", "email"]
	filterset_fields = ["active", "person_type", "state"]
	ordering_fields = ["name", "created_at"]


class ProductViewSet(StoreScopedMixin, viewsets.ModelViewSet):
	serializer_class = ProductSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_CATALOG
	write_capability = Capability.MANAGE_CATALOG
	capability_map = {
		"destroy": Capability.DELETE_RECORDS,
		"price": Capability.MANAGE_CATALOG,
		"stock_adjust": Capability.MANAGE_STOCK,
	}
	search_fields = ["name", "ean"]
	filterset_fields = ["active", "brand", "category", "ean", "internal_code"]
	ordering_fields = ["internal_code", "name"]

	def get_queryset(self):
		qs = Product.objects.select_related("brand", "category", "unit").order_by("name")
		store = self.get_store(required=False)
		if store is None:
			return qs
		return annotate_store_data(qs, store)

	@action(detail=False, methods=["get"])
	def search(self, request):
		store = self.get_store()
		term = request.query_params.get("q", "")
		try:
			limit = min(int(request.query_params.get("limit") or 20), 100)
		except ValueError:
			raise ValidationError({"limit": "Informe um número inteiro."})
		return Response({"store": store.code, "results": search_products(store, term, limit=limit)})

	@action(detail=True, methods=["post"])
	def price(self, request, pk=None):
		product = self.get_object()
		store = self.get_store()
		serializer = ProductPriceSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		pricing = set_product_price(
			product,
			store,
			sale_price=serializer.validated_data["sale_price"],
			cost_price=serializer.validated_data.get("cost_price"),
			actor=request.user,
		)
		return Response(
			{
				"product": product.pk,
				"store": store.code,
				"sale_price": pricing.sale_price,
				"cost_price": pricing.cost_price,
				"valid_from": pricing.valid_from,
			}
		)

	@action(detail=True, methods=["get"])
	def stock(self, request, pk=None):
		product = self.get_object()
		store = self.get_store()
		movements = (
			StockMovement.objects.filter(product=product, store=store)
			.order_by("-created_at", "-pk")[:20]
		)
		return Response(
			{
				"product": product.pk,
				"store": store.code,
				"quantity": product.stock_for(store),
				"movements": [
					{
						"movement_type": movement.movement_type,
						"quantity": movement.quantity,
						"reference_type": movement.reference_type,
						"reference_id": movement.reference_id,
						"notes": movement.notes,
						"created_at": movement.created_at,
					}
					for movement in movements
				],
			}
		)

	@stock.mapping.post
	def stock_adjust(self, request, pk=None):
		product = self.get_object()
		store = self.get_store()
		serializer = StockAdjustmentSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		entry = adjust_stock(
			product,
			store,
			serializer.validated_data["quantity"],
			movement_type=StockMovement.MovementType.ADJUSTMENT,
			notes=serializer.validated_data["notes"],
			actor=request.user,
		)
		return Response({"product": product.pk, "store": store.code, "quantity": entry.quantity})


class StockReceiptViewSet(StoreScopedMixin,
						  mixins.CreateModelMixin,
						  mixins.ListModelMixin,
						  mixins.RetrieveModelMixin,
						  viewsets.GenericViewSet):
	serializer_class = StockReceiptSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_CATALOG
	write_capability = Capability.MANAGE_STOCK
	filterset_fields = ["product", "supplier"]
	ordering_fields = ["created_at"]

	def get_queryset(self):
		return (
			StockReceipt.objects.filter(store=self.get_store())
			.select_related("product", "store", "supplier")
			.order_by("-created_at", "-pk")
		)

	def perform_create(self, serializer):
		data = serializer.validated_data
		serializer.instance = receive_stock(
			data["product"],
			self.get_store(),
			quantity=data["quantity"],
			cost_price=data["cost_price"],
			sale_price=data["sale_price"],
			supplier=data.get("supplier"),
			notes=data.get("notes", ""),
			actor=self.request.user,
		)


class CustomerViewSet(viewsets.ModelViewSet):
	queryset = Client.objects.all().order_by("name")
	serializer_class = ClientSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_CUSTOMERS
	write_capability = Capability.MANAGE_CUSTOMERS
	capability_map = {
		"destroy": Capability.DELETE_RECORDS,
		"add_address": Capability.MANAGE_CUSTOMERS,
	}
	search_fields = ["name", "document", "email", "phone"]
	filterset_fields = ["active", "document_type", "city", "state", "responsible_user"]
	ordering_fields = ["name", "created_at", "credit_limit"]

	def perform_create(self, serializer):
		serializer.save(updated_by=self.request.user)

	def perform_update(self, serializer):
		serializer.save(updated_by=self.request.user)

	@action(detail=True, methods=["get"])
	def credit(self, request, pk=None):
		customer = self.get_object()
		pending = customer.receivables.filter(status=AccountReceivable.Status.PENDING).order_by("due_date", "pk")
		return Response(
			{
				"customer": customer.pk,
				**customer.credit_summary(),
				"receivables": AccountReceivableSerializer(pending, many=True).data,
			}
		)

	@action(detail=True, methods=["get"])
	def history(self, request, pk=None):
		customer = self.get_object()
		qs = customer.credit_history.select_related("created_by").order_by("-created_at", "-pk")
		page = self.paginate_queryset(qs)
		if page is not None:
			return self.get_paginated_response(CustomerCreditHistorySerializer(page, many=True).data)
		return Response(CustomerCreditHistorySerializer(qs, many=True).data)

	@action(detail=True, methods=["get"])
	def addresses(self, request, pk=None):
		customer = self.get_object()
		qs = customer.delivery_addresses.filter(active=True).order_by("-is_default", "name")
		return Response(DeliveryAddressSerializer(qs, many=True).data)

	@addresses.mapping.post
	def add_address(self, request, pk=None):
		customer = self.get_object()
		serializer = DeliveryAddressSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		serializer.save(client=customer)
		return Response(serializer.data, status=status.HTTP_201_CREATED)


class PdvCartView(StoreScopedMixin, APIView):
	"""Precifica o carrinho com os preços da loja ativa, sem gravar nada."""

	permission_classes = [capability_permission(Capability.SELL)]

	def post(self, request):
		serializer = CartSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		store = self.get_store()
		cart = build_cart(
			store,
			data["items"],
			discount_type=data.get("discount_type", ""),
			discount_value=data.get("discount_value"),
		)
		payload = {"store": store.code, **cart.to_dict()}
		customer = data.get("customer")
		if customer is not None:
			payload["customer"] = {"id": customer.pk, "name": customer.name, **customer.credit_summary()}
		return Response(payload)


class PdvSaleView(StoreScopedMixin, APIView):
	permission_classes = [capability_permission(Capability.SELL)]

	def post(self, request):
		serializer = FinalizeSaleSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		store = self.get_store()
		cart = build_cart(
			store,
			data["items"],
			discount_type=data.get("discount_type", ""),
			discount_value=data.get("discount_value"),
		)
		sale = finalize_sale(
			store,
			data["customer"],
			cart,
			_payment_entries(data["payments"]),
			actor=request.user,
			delivery_type=data["delivery_type"],
			delivery_address=data.get("delivery_address"),
			delivery_date=data.get("delivery_date"),
			notes=data.get("notes", ""),
		)
		payload = SaleSerializer(sale).data
		payload["auto_print"] = store.pdv_auto_print
		payload["print_format"] = store.pdv_print_format
		return Response(payload, status=status.HTTP_201_CREATED)


class QuoteViewSet(StoreScopedMixin,
				   mixins.ListModelMixin,
				   mixins.RetrieveModelMixin,
				   viewsets.GenericViewSet):
	serializer_class = SaleSerializer
	permission_classes = [HasCapability]
	pagination_class = None
	read_capability = Capability.VIEW_SALES
	write_capability = Capability.SELL

	def get_queryset(self):
		return (
			Sale.objects.filter(store=self.get_store(), status=Sale.Status.QUOTE)
			.select_related("customer", "store")
			.prefetch_related("items__product", "payments")
		)

	def list(self, request, *args, **kwargs):
		quotes = search_quotes(self.get_store(), request.query_params.get("q", ""))
		return Response(SaleSerializer(quotes, many=True).data)

	def retrieve(self, request, *args, **kwargs):
		quote = self.get_object()
		cart = load_quote(quote)
		return Response({**SaleSerializer(quote).data, "cart": cart.to_dict()})

	def _save(self, request, quote=None):
		serializer = QuoteSaveSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		store = self.get_store()
		cart = build_cart(
			store,
			data["items"],
			discount_type=data.get("discount_type", ""),
			discount_value=data.get("discount_value"),
		)
		return save_quote(store, data["customer"], cart, actor=request.user, notes=data.get("notes", ""), quote=quote)

	def create(self, request, *args, **kwargs):
		quote = self._save(request)
		return Response(SaleSerializer(quote).data, status=status.HTTP_201_CREATED)

	def update(self, request, *args, **kwargs):
		quote = self._save(request, quote=self.get_object())
		return Response(SaleSerializer(quote).data)

	def destroy(self, request, *args, **kwargs):
		delete_quote(self.get_object())
		return Response(status=status.HTTP_204_NO_CONTENT)

	@action(detail=True, methods=["post"])
	def convert(self, request, pk=None):
		quote = self.get_object()
		serializer = ConvertQuoteSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		sale = convert_quote(
			quote,
			_payment_entries(data["payments"]),
			actor=request.user,
			delivery_type=data["delivery_type"],
			delivery_address=data.get("delivery_address"),
			delivery_date=data.get("delivery_date"),
			notes=data.get("notes", ""),
		)
		return Response(SaleSerializer(sale).data)


class SaleViewSet(StoreScopedMixin, viewsets.ReadOnlyModelViewSet):
	serializer_class = SaleSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_SALES
	capability_map = {
		"cancel": Capability.CANCEL_SALES,
		"replicate": Capability.SELL,
	}
	search_fields = ["sale_number", "customer__name", "customer__document"]
	filterset_fields = ["status", "payment_status", "customer", "delivery_type"]
	ordering_fields = ["created_at", "completed_at", "total", "sale_number"]

	def get_queryset(self):
		return (
			Sale.objects.filter(store=self.get_store())
			.select_related("customer", "store")
			.prefetch_related("items__product", "payments__payment_method")
			.order_by("-created_at", "-pk")
		)

	@action(detail=True, methods=["post"])
	def cancel(self, request, pk=None):
		sale = self.get_object()
		serializer = CancelSaleSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		sale = cancel_sale(sale, request.user, serializer.validated_data["reason"])
		return Response(SaleSerializer(sale).data)

	@action(detail=False, methods=["post"])
	def replicate(self, request):
		serializer = ReplicateSaleSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		store = self.get_store()
		customer, cart = replicate_sale(serializer.validated_data["sale_number"], store=store)
		return Response(
			{
				"customer": {"id": customer.pk, "name": customer.name, **customer.credit_summary()},
				**cart.to_dict(),
			}
		)

	@action(detail=True, methods=["get"])
	def receipt(self, request, pk=None):
		sale = self.get_object()
		print_format = request.query_params.get("print_format") or None
		if print_format and print_format not in Store.PrintFormat.values:
			raise ValidationError({"print_format": "Formato de impressão inválido."})
		content = render_sale_receipt(sale, print_format)
		response = HttpResponse(content, content_type="application/pdf")
		response["Content-Disposition"] = f'inline; filename="pedido-{sale.sale_number}.pdf"'
		return response


class ReceivableViewSet(viewsets.ReadOnlyModelViewSet):
	serializer_class = AccountReceivableSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_FINANCE
	capability_map = {"pay": Capability.RECEIVE_CREDIT_PAYMENTS}
	search_fields = ["customer__name", "customer__document", "sale__sale_number"]
	filterset_fields = ["status", "customer", "store", "sale"]
	ordering_fields = ["due_date", "amount", "created_at"]

	def get_queryset(self):
		qs = AccountReceivable.objects.select_related("customer", "sale").order_by("due_date", "pk")
		if _truthy(self.request.query_params.get("overdue")):
			qs = qs.filter(status=AccountReceivable.Status.PENDING, due_date__lt=timezone.localdate())
		return qs

	@action(detail=True, methods=["post"])
	def pay(self, request, pk=None):
		receivable = self.get_object()
		serializer = PayReceivableSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		payment = pay_receivable(
			receivable,
			data["amount"],
			request.user,
			payment_method=data.get("payment_method"),
			notes=data.get("notes", ""),
		)
		return Response(
			{
				"receivable": AccountReceivableSerializer(receivable).data,
				"payment": CustomerCreditPaymentSerializer(payment).data,
			}
		)


class CreditPaymentViewSet(mixins.CreateModelMixin,
						   mixins.ListModelMixin,
						   mixins.RetrieveModelMixin,
						   viewsets.GenericViewSet):
	"""Pagamentos de crediário; o valor é distribuído do título mais antigo para o mais novo."""

	serializer_class = CustomerCreditPaymentSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.VIEW_FINANCE
	write_capability = Capability.RECEIVE_CREDIT_PAYMENTS
	filterset_fields = ["customer", "payment_method"]
	ordering_fields = ["created_at", "amount"]

	def get_queryset(self):
		return (
			CustomerCreditPayment.objects.select_related("customer", "payment_method")
			.prefetch_related("allocations__receivable")
			.order_by("-created_at", "-pk")
		)

	def create(self, request, *args, **kwargs):
		serializer = CreditPaymentRequestSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		customer = data["customer"]
		payment = register_credit_payment(
			customer,
			data["amount"],
			request.user,
			payment_method=data.get("payment_method"),
			notes=data.get("notes", ""),
			allocation_id=data.get("allocation_id"),
		)
		payload = CustomerCreditPaymentSerializer(payment).data
		payload["credit"] = customer.credit_summary()
		return Response(payload, status=status.HTTP_201_CREATED)


class CostCenterViewSet(viewsets.ModelViewSet):
	queryset = CostCenter.objects.all().order_by("code")
	serializer_class = CostCenterSerializer
	permission_classes = [HasCapability]
	pagination_class = None
	read_capability = Capability.VIEW_FINANCE
	write_capability = Capability.MANAGE_PAYABLES
	capability_map = {"destroy": Capability.DELETE_RECORDS}
	search_fields = ["code", "name"]
	filterset_fields = ["active"]


class PayableViewSet(viewsets.ModelViewSet):
	serializer_class = AccountPayableSerializer
	permission_classes = [HasCapability]
	parser_classes = [JSONParser, MultiPartParser, FormParser]
	read_capability = Capability.VIEW_FINANCE
	write_capability = Capability.MANAGE_PAYABLES
	capability_map = {
		"destroy": Capability.DELETE_RECORDS,
		"pay": Capability.PAY_PAYABLES,
		"cancel": Capability.MANAGE_PAYABLES,
		"import_csv": Capability.MANAGE_PAYABLES,
		"add_attachment": Capability.MANAGE_PAYABLES,
	}
	search_fields = ["description", "supplier__name", "barcode"]
	filterset_fields = ["status", "supplier", "cost_center", "payment_type"]
	ordering_fields = ["due_date", "amount", "created_at"]

	def get_queryset(self):
		qs = (
			AccountPayable.objects.select_related("supplier", "cost_center")
			.prefetch_related("payments")
			.order_by("due_date", "pk")
		)
		params = self.request.query_params
		if _truthy(params.get("overdue")):
			qs = qs.filter(status=AccountPayable.Status.OPEN, due_date__lt=timezone.localdate())
		due_from = _query_date(params, "due_from")
		if due_from:
			qs = qs.filter(due_date__gte=due_from)
		due_until = _query_date(params, "due_until")
		if due_until:
			qs = qs.filter(due_date__lte=due_until)
		return qs

	def perform_create(self, serializer):
		serializer.instance = create_account_payable(actor=self.request.user, **serializer.validated_data)

	def perform_update(self, serializer):
		serializer.instance = update_account_payable(
			serializer.instance,
			actor=self.request.user,
			**serializer.validated_data,
		)

	def perform_destroy(self, instance):
		delete_account_payable(instance, actor=self.request.user)

	@action(detail=True, methods=["post"])
	def pay(self, request, pk=None):
		account = self.get_object()
		serializer = PayPayableSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		payment = pay_account_payable(
			account,
			amount_paid=data.get("amount_paid"),
			payment_date=data.get("payment_date"),
			payment_method=data.get("payment_method", ""),
			notes=data.get("notes", ""),
			receipt=data.get("receipt"),
			actor=request.user,
		)
		account.refresh_from_db()
		return Response(
			{
				"account": AccountPayableSerializer(account, context=self.get_serializer_context()).data,
				"payment": PayablePaymentSerializer(payment, context=self.get_serializer_context()).data,
			}
		)

	@action(detail=True, methods=["post"])
	def cancel(self, request, pk=None):
		account = self.get_object()
		serializer = CancelPayableSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		account = cancel_account_payable(account, actor=request.user, reason=serializer.validated_data["reason"])
		return Response(AccountPayableSerializer(account).data)

	@action(detail=False, methods=["post"], url_path="import-csv")
	def import_csv(self, request):
		serializer = PayableImportSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		result = import_payables_csv(serializer.validated_data["file"], actor=request.user)
		return Response(result.as_dict())

	@action(detail=True, methods=["get"])
	def attachments(self, request, pk=None):
		account = self.get_object()
		context = self.get_serializer_context()
		return Response(PayableAttachmentSerializer(account.attachments.all(), many=True, context=context).data)

	@attachments.mapping.post
	def add_attachment(self, request, pk=None):
		account = self.get_object()
		serializer = AttachmentUploadSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		attachment = add_payable_attachment(account, serializer.validated_data["file"], actor=request.user)
		return Response(
			PayableAttachmentSerializer(attachment, context=self.get_serializer_context()).data,
			status=status.HTTP_201_CREATED,
		)

	@action(detail=True, methods=["get"])
	def history(self, request, pk=None):
		account = self.get_object()
		return Response(AuditLogSerializer(payable_history(account), many=True).data)


class CashRegisterViewSet(StoreScopedMixin,
						  mixins.ListModelMixin,
						  mixins.RetrieveModelMixin,
						  viewsets.GenericViewSet):
	"""Abertura, sangria/suprimento e fechamento do caixa da loja ativa."""

	serializer_class = CashRegisterClosingSerializer
	permission_classes = [HasCapability]
	pagination_class = None
	read_capability = Capability.VIEW_DASHBOARD
	write_capability = Capability.SELL

	def get_queryset(self):
		return (
			CashRegisterClosing.objects.filter(store=self.get_store())
			.select_related("store")
			.prefetch_related("movements")
			.order_by("-closing_date", "-pk")
		)

	def list(self, request, *args, **kwargs):
		history = closing_history(self.get_store())
		return Response(CashRegisterClosingSerializer(history, many=True).data)

	@action(detail=False, methods=["get"])
	def today(self, request):
		store = self.get_store()
		day = _query_date(request.query_params, "date") or timezone.localdate()
		closing = get_closing(store, day)
		if closing is not None and closing.is_open:
			expected = expected_amounts(closing)
		elif closing is not None:
			expected = {
				"cash": closing.cash_expected,
				"card": closing.card_expected,
				"pix": closing.pix_expected,
				"credit": closing.credit_expected,
				"other": closing.other_expected,
			}
		else:
			expected = get_expected_by_category(store, day)
		return Response(
			{
				"date": day,
				"store": store.code,
				"closing": CashRegisterClosingSerializer(closing).data if closing else None,
				"expected": expected,
				"summary": get_cash_summary(store, day),
			}
		)

	@action(detail=False, methods=["post"])
	def open(self, request):
		serializer = OpenCashRegisterSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		closing = open_cash_register(
			self.get_store(),
			actor=request.user,
			opening_balance=serializer.validated_data["opening_balance"],
		)
		return Response(CashRegisterClosingSerializer(closing).data, status=status.HTTP_201_CREATED)

	@action(detail=True, methods=["post"])
	def movements(self, request, pk=None):
		closing = self.get_object()
		serializer = CashMovementRequestSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		movement = register_cash_movement(
			closing,
			data["movement_type"],
			data["amount"],
			data["reason"],
			actor=request.user,
		)
		return Response(CashRegisterMovementSerializer(movement).data, status=status.HTTP_201_CREATED)

	@action(detail=True, methods=["post"])
	def close(self, request, pk=None):
		closing = self.get_object()
		serializer = CloseCashRegisterSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = serializer.validated_data
		closing = close_cash_register(
			closing,
			cash_counted=data["cash_counted"],
			card_counted=data.get("card_counted"),
			pix_counted=data.get("pix_counted"),
			notes=data.get("notes", ""),
			actor=request.user,
		)
		return Response(CashRegisterClosingSerializer(closing).data)


class UserViewSet(mixins.CreateModelMixin,
				  mixins.ListModelMixin,
				  mixins.RetrieveModelMixin,
				  mixins.UpdateModelMixin,
				  viewsets.GenericViewSet):
	"""Usuários, funções e lojas liberadas; somente administradores."""

	serializer_class = UserSerializer
	permission_classes = [HasCapability]
	read_capability = Capability.MANAGE_USERS
	write_capability = Capability.MANAGE_USERS
	search_fields = ["username", "email", "first_name", "last_name"]
	filterset_fields = ["is_active"]
	ordering_fields = ["username", "date_joined"]

	def get_queryset(self):
		return get_user_model().objects.prefetch_related("role_assignments").order_by("username")

	def create(self, request, *args, **kwargs):
		serializer = UserCreateSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		data = dict(serializer.validated_data)
		user = create_user_account(
			data.pop("username"),
			data.pop("password"),
			roles=data.pop("roles", []),
			store_codes=data.pop("stores", []),
			actor=request.user,
			**data,
		)
		return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)

	def perform_update(self, serializer):
		user = serializer.instance
		if user.is_active and serializer.validated_data.get("is_active") is False:
			deactivate_user(user, actor=self.request.user)
		serializer.save()

	@action(detail=True, methods=["post"])
	def roles(self, request, pk=None):
		user = self.get_object()
		serializer = RoleRequestSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		_, created = assign_role(user, serializer.validated_data["role"], actor=request.user)
		return Response(
			UserSerializer(user).data,
			status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
		)

	@roles.mapping.delete
	def remove_role(self, request, pk=None):
		user = self.get_object()
		serializer = RoleRequestSerializer(data=request.data or request.query_params)
		serializer.is_valid(raise_exception=True)
		revoke_role(user, serializer.validated_data["role"], actor=request.user)
		return Response(UserSerializer(user).data)

	@action(detail=True, methods=["put"])
	def stores(self, request, pk=None):
		user = self.get_object()
		serializer = StoreAccessSerializer(data=request.data)
		serializer.is_valid(raise_exception=True)
		set_store_access(user, resolve_stores(serializer.validated_data["stores"]))
		return Response(UserSerializer(user).data)


class DashboardView(StoreScopedMixin, APIView):
	permission_classes = [capability_permission(Capability.VIEW_DASHBOARD)]

	def get(self, request):
		store = None
		if request.headers.get(self.store_header) or not has_capability(request.user, Capability.ACCESS_ALL_STORES):
			store = self.get_store()
		return Response(get_financial_dashboard(store=store))


class CashSummaryView(StoreScopedMixin, APIView):
	permission_classes = [capability_permission(Capability.VIEW_DASHBOARD)]

	def get(self, request):
		day = _query_date(request.query_params, "date") or timezone.localdate()
		return Response(get_cash_summary(self.get_store(), day))

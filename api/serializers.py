# api/serializers.py
from decimal import Decimal

from django.contrib.auth import get_user_model
from rest_framework import serializers

from clients.models import Client, CustomerCreditHistory, DeliveryAddress
from core.models import Store
from core.roles import Role, user_roles
from finance.models import (
    AccountPayable,
    AccountReceivable,
    AuditLog,
    CostCenter,
    CreditPaymentAllocation,
    CustomerCreditPayment,
    PayableAttachment,
    PayablePayment,
)
from products.models import Product, StockReceipt, Supplier
from sales.cart import DISCOUNT_TYPES
from sales.models import (
    CashRegisterClosing,
    CashRegisterMovement,
    PaymentMethod,
    Sale,
    SaleItem,
    SalePayment,
)


def _only_digits(value: str) -> str:
    return "".join(ch for ch in (value or "") if ch.isdigit())


class StoreSerializer(serializers.ModelSerializer):
    class Meta:
        model = Store
        fields = [
            "id",
            "code",
            "name",
            "cnpj",
            "address",
            "phone",
            "email",
            "active",
            "pdv_auto_print",
            "pdv_print_format",
            "pdv_max_discount_percent",
        ]

    def validate_cnpj(self, value):
        return _only_digits(value)


class PaymentMethodSerializer(serializers.ModelSerializer):
    is_store_credit = serializers.BooleanField(read_only=True)

    class Meta:
        model = PaymentMethod
        fields = ["id", "name", "code", "active", "allow_installments", "max_installments", "is_store_credit"]


class SupplierSerializer(serializers.ModelSerializer):
    class Meta:
        model = Supplier
        fields = [
            "id",
            "name",
            "person_type",
            "document",
            "email",
            "phone",
            "address",
            "city",
            "state",
            "notes",
            "active",
        ]


class ProductSerializer(serializers.ModelSerializer):
    # Preenchidos por annotate_store_data para a loja ativa
    sale_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    cost_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    stock_quantity = serializers.DecimalField(max_digits=12, decimal_places=3, read_only=True)
    brand_name = serializers.CharField(source="brand.name", read_only=True, default="")
    category_name = serializers.CharField(source="category.name", read_only=True, default="")
    unit_abbreviation = serializers.CharField(source="unit.abbreviation", read_only=True, default="")

    class Meta:
        model = Product
        fields = [
            "id",
            "internal_code",
            "ean",
            "name",
            "description",
            "brand",
            "brand_name",
            "category",
            "category_name",
            "unit",
            "unit_abbreviation",
            "active",
            "sale_price",
            "cost_price",
            "stock_quantity",
        ]
        read_only_fields = ["internal_code"]


class ProductPriceSerializer(serializers.Serializer):
    sale_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"))
    cost_price = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal("0"), required=False)


class StockAdjustmentSerializer(serializers.Serializer):
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    notes = serializers.CharField(required=False, allow_blank=True, default="")

    def validate_quantity(self, value):
        if value == 0:
            raise serializers.ValidationError("Informe uma quantidade diferente de zero.")
        return value


class StockReceiptSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    store_code = serializers.CharField(source="store.code", read_only=True)

    class Meta:
        model = StockReceipt
        fields = [
            "id",
            "product",
            "product_name",
            "store_code",
            "supplier",
            "quantity",
            "cost_price",
            "sale_price",
            "previous_sale_price",
            "notes",
            "created_at",
        ]
        read_only_fields = ["previous_sale_price", "created_at"]


class DeliveryAddressSerializer(serializers.ModelSerializer):
    full_address = serializers.CharField(read_only=True)

    class Meta:
        model = DeliveryAddress
        fields = [
            "id",
            "name",
            "address",
            "number",
            "complement",
            "district",
            "city",
            "state",
            "zip_code",
            "contact_name",
            "contact_phone",
            "is_default",
            "active",
            "full_address",
        ]


class ClientSerializer(serializers.ModelSerializer):
    formatted_document = serializers.CharField(read_only=True)
    used_credit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    available_credit = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Client
        fields = [
            "id",
            "name",
            "document_type",
            "document",
            "formatted_document",
            "email",
            "phone",
            "phone_secondary",
            "address",
            "number",
            "complement",
            "district",
            "city",
            "state",
            "zip_code",
            "responsible_user",
            "observations",
            "credit_limit",
            "used_credit",
            "available_credit",
            "active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["created_at", "updated_at"]

    def validate_document(self, value):
        return _only_digits(value)

    def validate_credit_limit(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("O limite de crédito não pode ser negativo.")
        return value


class CustomerCreditHistorySerializer(serializers.ModelSerializer):
    action_label = serializers.CharField(source="get_action_type_display", read_only=True)
    created_by_name = serializers.SerializerMethodField()

    class Meta:
        model = CustomerCreditHistory
        fields = [
            "id",
            "action_type",
            "action_label",
            "old_value",
            "new_value",
            "reference_type",
            "reference_id",
            "notes",
            "created_by_name",
            "created_at",
        ]
        read_only_fields = fields

    @staticmethod
    def get_created_by_name(obj) -> str:
        user = obj.created_by
        if not user:
            return ""
        return user.get_full_name() or user.get_username()


class CartLineSerializer(serializers.Serializer):
    product = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal("0.001"), default=Decimal("1"))
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPES, required=False, allow_blank=True, default="")
    discount_value = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0"))


class CartSerializer(serializers.Serializer):
    items = CartLineSerializer(many=True)
    discount_type = serializers.ChoiceField(choices=DISCOUNT_TYPES, required=False, allow_blank=True, default="")
    discount_value = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, default=Decimal("0"))
    customer = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all(), required=False, allow_null=True)


class PaymentEntrySerializer(serializers.Serializer):
    payment_method = serializers.PrimaryKeyRelatedField(queryset=PaymentMethod.objects.all())
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    installments = serializers.IntegerField(min_value=1, default=1)


class FinalizeSaleSerializer(CartSerializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    payments = PaymentEntrySerializer(many=True)
    delivery_type = serializers.ChoiceField(choices=Sale.DeliveryType.choices, default=Sale.DeliveryType.PICKUP)
    delivery_address = serializers.PrimaryKeyRelatedField(
        queryset=DeliveryAddress.objects.all(),
        required=False,
        allow_null=True,
    )
    delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class QuoteSaveSerializer(CartSerializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ConvertQuoteSerializer(serializers.Serializer):
    payments = PaymentEntrySerializer(many=True)
    delivery_type = serializers.ChoiceField(choices=Sale.DeliveryType.choices, default=Sale.DeliveryType.PICKUP)
    delivery_address = serializers.PrimaryKeyRelatedField(
        queryset=DeliveryAddress.objects.all(),
        required=False,
        allow_null=True,
    )
    delivery_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CancelSaleSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True)


class ReplicateSaleSerializer(serializers.Serializer):
    sale_number = serializers.CharField()


class SaleItemSerializer(serializers.ModelSerializer):
    internal_code = serializers.IntegerField(source="product.internal_code", read_only=True)

    class Meta:
        model = SaleItem
        fields = [
            "product",
            "internal_code",
            "product_name",
            "quantity",
            "unit_price",
            "discount_type",
            "discount_value",
            "discount_amount",
            "total",
        ]


class SalePaymentSerializer(serializers.ModelSerializer):
    payment_method_name = serializers.CharField(source="payment_method.name", read_only=True)

    class Meta:
        model = SalePayment
        fields = ["payment_method", "payment_method_name", "amount", "installments", "is_credit"]


class SaleSerializer(serializers.ModelSerializer):
    store_code = serializers.CharField(source="store.code", read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    items = SaleItemSerializer(many=True, read_only=True)
    payments = SalePaymentSerializer(many=True, read_only=True)

    class Meta:
        model = Sale
        fields = [
            "id",
            "sale_number",
            "store_code",
            "customer",
            "customer_name",
            "status",
            "status_label",
            "subtotal",
            "discount_type",
            "discount_value",
            "discount_amount",
            "total",
            "payment_status",
            "amount_paid",
            "amount_credit",
            "installments",
            "delivery_type",
            "delivery_address",
            "delivery_date",
            "notes",
            "items",
            "payments",
            "created_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
        ]
        read_only_fields = fields


class AccountReceivableSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    sale_number = serializers.CharField(source="sale.sale_number", read_only=True, default=None)
    outstanding = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = AccountReceivable
        fields = [
            "id",
            "customer",
            "customer_name",
            "sale",
            "sale_number",
            "amount",
            "paid_amount",
            "outstanding",
            "due_date",
            "is_overdue",
            "status",
            "paid_at",
            "notes",
            "version",
            "created_at",
        ]
        read_only_fields = fields


class PayReceivableSerializer(serializers.Serializer):
    # texto: a precisão informada é validada pelo alocador
    amount = serializers.CharField()
    payment_method = serializers.PrimaryKeyRelatedField(
        queryset=PaymentMethod.objects.all(),
        required=False,
        allow_null=True,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CreditPaymentRequestSerializer(PayReceivableSerializer):
    customer = serializers.PrimaryKeyRelatedField(queryset=Client.objects.all())
    allocation_id = serializers.UUIDField(required=False, allow_null=True)


class CreditPaymentAllocationSerializer(serializers.ModelSerializer):
    due_date = serializers.DateField(source="receivable.due_date", read_only=True)
    status = serializers.CharField(source="receivable.status", read_only=True)

    class Meta:
        model = CreditPaymentAllocation
        fields = ["receivable", "due_date", "amount", "paid_amount_before", "paid_amount_after", "status"]


class CustomerCreditPaymentSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source="customer.name", read_only=True)
    allocations = CreditPaymentAllocationSerializer(many=True, read_only=True)

    class Meta:
        model = CustomerCreditPayment
        fields = [
            "id",
            "allocation_id",
            "customer",
            "customer_name",
            "amount",
            "payment_method",
            "notes",
            "allocations",
            "created_at",
        ]
        read_only_fields = fields


class CostCenterSerializer(serializers.ModelSerializer):
    class Meta:
        model = CostCenter
        fields = ["id", "code", "name", "description", "active"]


class PayablePaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = PayablePayment
        fields = ["id", "payment_date", "amount_paid", "payment_method", "notes", "receipt", "created_at"]
        read_only_fields = ["receipt", "created_at"]


class AccountPayableSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source="supplier.name", read_only=True, default="")
    cost_center_name = serializers.CharField(source="cost_center.name", read_only=True, default="")
    is_overdue = serializers.BooleanField(read_only=True)
    payments = PayablePaymentSerializer(many=True, read_only=True)

    class Meta:
        model = AccountPayable
        fields = [
            "id",
            "supplier",
            "supplier_name",
            "cost_center",
            "cost_center_name",
            "description",
            "amount",
            "due_date",
            "payment_type",
            "status",
            "is_overdue",
            "barcode",
            "pix_key",
            "bank_name",
            "bank_agency",
            "bank_account",
            "card_last_digits",
            "observations",
            "payments",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["status", "created_at", "updated_at"]

    def validate(self, attrs):
        payment_type = attrs.get("payment_type", getattr(self.instance, "payment_type", None))
        pix_key = attrs.get("pix_key", getattr(self.instance, "pix_key", ""))
        if payment_type == AccountPayable.PaymentType.PIX and not pix_key:
            raise serializers.ValidationError({"pix_key": "Informe a chave PIX."})
        amount = attrs.get("amount")
        if amount is not None and amount <= 0:
            raise serializers.ValidationError({"amount": "O valor deve ser maior que zero."})
        if self.instance is not None and self.instance.status != AccountPayable.Status.OPEN:
            raise serializers.ValidationError("Somente contas em aberto podem ser alteradas.")
        return attrs


class PayPayableSerializer(serializers.Serializer):
    amount_paid = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True)
    payment_date = serializers.DateField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=AccountPayable.PaymentType.choices, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    receipt = serializers.FileField(required=False, allow_null=True)

class CancelPayableSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class PayableAttachmentSerializer(serializers.ModelSerializer):
    uploaded_by_name = serializers.CharField(source="uploaded_by.get_username", read_only=True, default="")

    class Meta:
        model = PayableAttachment
        fields = ["id", "account", "file", "filename", "file_size", "mime_type", "uploaded_by_name", "created_at"]
        read_only_fields = fields


class AttachmentUploadSerializer(serializers.Serializer):
    file = serializers.FileField()


class PayableImportSerializer(serializers.Serializer):
    file = serializers.FileField()


class AuditLogSerializer(serializers.ModelSerializer):
    action_label = serializers.CharField(source="get_action_display", read_only=True)
    user_name = serializers.SerializerMethodField()

    class Meta:
        model = AuditLog
        fields = [
            "id",
            "table_name",
            "record_id",
            "action",
            "action_label",
            "old_values",
            "new_values",
            "user_name",
            "created_at",
        ]
        read_only_fields = fields

    @staticmethod
    def get_user_name(obj) -> str:
        user = obj.user
        if not user:
            return ""
        return user.get_full_name() or user.get_username()


class CashRegisterMovementSerializer(serializers.ModelSerializer):
    movement_label = serializers.CharField(source="get_movement_type_display", read_only=True)

    class Meta:
        model = CashRegisterMovement
        fields = ["id", "movement_type", "movement_label", "amount", "reason", "created_at"]
        read_only_fields = fields


class CashRegisterClosingSerializer(serializers.ModelSerializer):
    store_code = serializers.CharField(source="store.code", read_only=True)
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    total_expected = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    movements = CashRegisterMovementSerializer(many=True, read_only=True)

    class Meta:
        model = CashRegisterClosing
        fields = [
            "id",
            "store_code",
            "closing_date",
            "status",
            "status_label",
            "opening_balance",
            "opened_at",
            "closed_at",
            "cash_expected",
            "card_expected",
            "pix_expected",
            "credit_expected",
            "other_expected",
            "total_expected",
            "cash_counted",
            "card_counted",
            "pix_counted",
            "difference",
            "notes",
            "movements",
        ]
        read_only_fields = fields


class OpenCashRegisterSerializer(serializers.Serializer):
    # texto: vírgula decimal aceita pelo serviço
    opening_balance = serializers.CharField(required=False, allow_blank=True, default="")


class CashMovementRequestSerializer(serializers.Serializer):
    movement_type = serializers.ChoiceField(choices=CashRegisterMovement.MovementType.choices)
    amount = serializers.CharField()
    reason = serializers.CharField(allow_blank=True)


class CloseCashRegisterSerializer(serializers.Serializer):
    cash_counted = serializers.CharField()
    card_counted = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    pix_counted = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class UserSerializer(serializers.ModelSerializer):
    roles = serializers.SerializerMethodField()
    stores = serializers.SerializerMethodField()

    class Meta:
        model = get_user_model()
        fields = ["id", "username", "email", "first_name", "last_name", "is_active", "roles", "stores"]
        read_only_fields = ["roles", "stores"]

    @staticmethod
    def get_roles(obj) -> list:
        return sorted(role.value for role in user_roles(obj))

    @staticmethod
    def get_stores(obj) -> list:
        return sorted(access.store.code for access in obj.store_accesses.select_related("store"))


class UserCreateSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)
    roles = serializers.ListField(child=serializers.ChoiceField(choices=Role.choices), required=False, default=list)
    stores = serializers.ListField(child=serializers.CharField(), required=False, default=list)

    class Meta:
        model = get_user_model()
        fields = ["username", "email", "first_name", "last_name", "password", "roles", "stores"]


class RoleRequestSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=Role.choices)


class StoreAccessSerializer(serializers.Serializer):
    stores = serializers.ListField(child=serializers.CharField(), allow_empty=True)

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from clients.models import CustomerCreditHistory
from core.models import SalesConfiguration, Store
from core.utils.money import CENT, ZERO_DECIMAL, format_brl, parse_decimal, quantize_money
from finance.services import cancel_receivables_for_sale, create_receivable
from products.models import Product, StockMovement
from products.services import adjust_stock, annotate_store_data

from .cart import Cart, CartError, CartItem
from .models import PaymentMethod, Sale, SaleItem, SalePayment

logger = logging.getLogger(__name__)

TOLERANCE = CENT


@dataclass(slots=True)
class PaymentEntry:
    payment_method: PaymentMethod
    amount: Decimal
    installments: int = 1


def build_cart(store, lines: Iterable[dict], *, discount_type: str = '', discount_value=None) -> Cart:
    """
    Price ``lines`` with the store's current prices.

    Each line holds ``product`` (id), ``quantity`` and optionally
    ``discount_type``/``discount_value``.
    """
    lines = list(lines or [])
    product_ids = {line.get('product') for line in lines}
    products = {
        product.pk: product
        for product in annotate_store_data(Product.objects.filter(pk__in=product_ids, active=True), store)
    }
    cart = Cart(max_discount_percent=store.pdv_max_discount_percent)
    for line in lines:
        product = products.get(line.get('product'))
        if product is None:
            raise CartError('Produto não encontrado ou inativo.')
        if product.sale_price is None:
            raise CartError(f'Produto {product.name} sem preço de venda nesta loja.')
        cart.add_product(
            product.pk,
            product.name,
            product.sale_price,
            line.get('quantity') or 1,
            internal_code=product.internal_code,
            ean=product.ean,
        )
    for line in lines:
        if line.get('discount_type') and parse_decimal(line.get('discount_value')):
            cart.apply_item_discount(line.get('product'), line['discount_type'], line['discount_value'])
    if discount_type and parse_decimal(discount_value):
        cart.apply_discount(discount_type, discount_value)
    return cart


def cart_from_sale(sale, *, keep_discounts: bool = True) -> Cart:
    cart = Cart(max_discount_percent=sale.store.pdv_max_discount_percent)
    for item in sale.items.select_related('product').all():
        cart.items.append(
            CartItem(
                product_id=item.product_id,
                name=item.product_name or item.product.name,
                unit_price=item.unit_price,
                quantity=item.quantity,
                internal_code=item.product.internal_code,
                ean=item.product.ean,
                discount_type=item.discount_type if keep_discounts else '',
                discount_value=item.discount_value if keep_discounts else ZERO_DECIMAL,
            )
        )
    if keep_discounts and sale.discount_type:
        cart.discount_type = sale.discount_type
        cart.discount_value = sale.discount_value
    return cart


def _sale_items(sale, cart: Cart) -> list[SaleItem]:
    return [
        SaleItem(
            sale=sale,
            product_id=item.product_id,
            product_name=item.name,
            quantity=item.quantity,
            unit_price=item.unit_price,
            discount_type=item.discount_type,
            discount_value=item.discount_value,
            discount_amount=item.discount_amount,
            total=item.total,
            sort_order=index,
        )
        for index, item in enumerate(cart.items)
    ]


def _apply_cart_totals(sale, cart: Cart) -> None:
    sale.subtotal = cart.subtotal
    sale.discount_type = cart.discount_type
    sale.discount_value = cart.discount_value
    sale.discount_amount = cart.discount_amount
    sale.total = cart.total


def _validate_customer(customer) -> None:
    if customer is None:
        raise ValidationError({'customer': 'Selecione um cliente.'})
    if not customer.active:
        raise ValidationError({'customer': 'Cliente inativo.'})


def _validate_cart(cart: Cart) -> None:
    if cart is None or cart.is_empty:
        raise ValidationError({'items': 'Adicione produtos ao carrinho.'})


def _split_payments(payments: Sequence[PaymentEntry]) -> tuple[Decimal, Decimal]:
    paid = ZERO_DECIMAL
    credit = ZERO_DECIMAL
    for entry in payments:
        method = entry.payment_method
        if not method.active:
            raise ValidationError({'payments': f'Forma de pagamento inativa: {method.name}.'})
        amount = parse_decimal(entry.amount)
        if amount is None or amount <= 0:
            raise ValidationError({'payments': 'Informe um valor válido para cada pagamento.'})
        if not method.accepts_installments(entry.installments):
            raise ValidationError({'payments': f'Número de parcelas inválido para {method.name}.'})
        entry.amount = quantize_money(amount)
        if method.is_store_credit:
            credit += entry.amount
        else:
            paid += entry.amount
    return paid, credit


def _validate_coverage(total: Decimal, paid: Decimal, credit: Decimal) -> None:
    covered = paid + credit
    if covered < total - TOLERANCE:
        raise ValidationError({'payments': 'O valor total ainda não foi coberto.'})
    if covered > total + TOLERANCE:
        raise ValidationError({'payments': 'Valor maior que o restante.'})


def _validate_delivery(customer, delivery_type, delivery_address):
    if delivery_type != Sale.DeliveryType.DELIVERY:
        return None
    if delivery_address is None:
        raise ValidationError({'delivery_address': 'Selecione o endereço de entrega.'})
    if delivery_address.client_id != customer.pk or not delivery_address.active:
        raise ValidationError({'delivery_address': 'Endereço de entrega inválido para este cliente.'})
    return delivery_address


def _payment_status(paid: Decimal, credit: Decimal) -> str:
    if credit > 0 and paid > 0:
        return Sale.PaymentStatus.PARTIAL
    if credit > 0:
        return Sale.PaymentStatus.CREDIT
    return Sale.PaymentStatus.PAID


def finalize_sale(
    store,
    customer,
    cart: Cart,
    payments: Sequence[PaymentEntry],
    *,
    actor=None,
    delivery_type: str = Sale.DeliveryType.PICKUP,
    delivery_address=None,
    delivery_date=None,
    notes: str = '',
    quote: Optional[Sale] = None,
) -> Sale:
    """
    Close a sale: persist items and payments, take the items out of stock and
    open a receivable for the crediário portion. Everything happens in one
    transaction.
    """
    _validate_customer(customer)
    _validate_cart(cart)
    payments = list(payments or [])
    if not payments:
        raise ValidationError({'payments': 'Selecione uma forma de pagamento.'})
    paid, credit = _split_payments(payments)
    total = cart.total
    _validate_coverage(total, paid, credit)
    if credit > 0 and credit > customer.available_credit:
        raise ValidationError({'payments': 'Limite de crédito insuficiente.'})
    delivery_address = _validate_delivery(customer, delivery_type, delivery_address)

    with transaction.atomic():
        Store.objects.select_for_update().filter(pk=store.pk).first()
        if quote is not None:
            sale = Sale.objects.select_for_update().get(pk=quote.pk)
            if not sale.is_quote:
                raise ValidationError('Este orçamento já foi convertido ou cancelado.')
            sale.items.all().delete()
            sale.payments.all().delete()
            sale.created_by = sale.created_by or actor
        else:
            sale = Sale(store=store, created_by=actor)

        sale.customer = customer
        sale.status = Sale.Status.COMPLETED
        _apply_cart_totals(sale, cart)
        sale.amount_paid = paid
        sale.amount_credit = credit
        sale.payment_status = _payment_status(paid, credit)
        sale.installments = max(int(entry.installments or 1) for entry in payments)
        sale.delivery_type = delivery_type or Sale.DeliveryType.PICKUP
        sale.delivery_address = delivery_address
        sale.delivery_date = delivery_date
        if notes:
            sale.notes = notes
        sale.completed_at = timezone.now()
        sale.save()

        SaleItem.objects.bulk_create(_sale_items(sale, cart))
        SalePayment.objects.bulk_create(
            [
                SalePayment(
                    sale=sale,
                    payment_method=entry.payment_method,
                    amount=entry.amount,
                    installments=int(entry.installments or 1),
                    is_credit=entry.payment_method.is_store_credit,
                )
                for entry in payments
            ]
        )

        products = Product.objects.in_bulk([item.product_id for item in cart.items])
        for item in cart.items:
            adjust_stock(
                products[item.product_id],
                store,
                -item.quantity,
                movement_type=StockMovement.MovementType.EXIT,
                reference_type=StockMovement.ReferenceType.SALE,
                reference_id=sale.pk,
                unit_price=item.unit_price,
                notes=f'Venda {sale.sale_number}',
                actor=actor,
            )

        if credit > 0:
            prior_balance = customer.used_credit
            create_receivable(
                customer,
                credit,
                sale=sale,
                store=store,
                actor=actor,
                notes=f'Venda {sale.sale_number}',
            )
            CustomerCreditHistory.objects.create(
                customer=customer,
                action_type=CustomerCreditHistory.ActionType.PURCHASE,
                old_value=prior_balance,
                new_value=prior_balance + credit,
                reference_type=CustomerCreditHistory.ReferenceType.SALE,
                reference_id=sale.pk,
                notes=f'Compra no crediário: venda {sale.sale_number} ({format_brl(credit)})',
                created_by=actor,
            )

    logger.info(
        'venda %s finalizada: total %s pago %s crediário %s',
        sale.sale_number,
        sale.total,
        paid,
        credit,
    )
    return sale


@transaction.atomic
def save_quote(store, customer, cart: Cart, *, actor=None, notes: str = '', quote: Optional[Sale] = None) -> Sale:
    _validate_customer(customer)
    _validate_cart(cart)
    if quote is not None:
        sale = Sale.objects.select_for_update().get(pk=quote.pk)
        if not sale.is_quote:
            raise ValidationError('Somente orçamentos podem ser alterados.')
        sale.items.all().delete()
    else:
        Store.objects.select_for_update().filter(pk=store.pk).first()
        sale = Sale(store=store, created_by=actor, status=Sale.Status.QUOTE)
    sale.customer = customer
    sale.payment_status = Sale.PaymentStatus.PENDING
    _apply_cart_totals(sale, cart)
    sale.notes = notes or sale.notes
    sale.save()
    SaleItem.objects.bulk_create(_sale_items(sale, cart))
    logger.info('orçamento %s salvo: total %s', sale.sale_number, sale.total)
    return sale


def search_quotes(store, term: str = '', limit: Optional[int] = None):
    qs = Sale.objects.filter(store=store, status=Sale.Status.QUOTE).select_related('customer')
    term = (term or '').strip()
    if term:
        qs = qs.filter(Q(sale_number__icontains=term) | Q(customer__name__icontains=term))
    limit = limit or SalesConfiguration.load().quote_search_limit
    return qs.order_by('-created_at', '-pk')[:limit]


def load_quote(quote) -> Cart:
    if not quote.is_quote:
        raise ValidationError('Este pedido não é um orçamento.')
    if not quote.items.exists():
        raise ValidationError('Orçamento sem itens.')
    return cart_from_sale(quote, keep_discounts=True)


def delete_quote(quote) -> None:
    if not quote.is_quote:
        raise ValidationError('Somente orçamentos podem ser excluídos.')
    number = quote.sale_number
    quote.delete()
    logger.info('orçamento %s excluído', number)


def convert_quote(quote, payments: Sequence[PaymentEntry], **kwargs) -> Sale:
    """Finalize a quote in place, keeping its number and its prices."""
    cart = load_quote(quote)
    return finalize_sale(quote.store, quote.customer, cart, payments, quote=quote, **kwargs)


def replicate_sale(sale_number: str, store=None):
    """Return ``(customer, cart)`` with the items of an existing sale, without discounts."""
    qs = Sale.objects.select_related('customer', 'store')
    if store is not None:
        qs = qs.filter(store=store)
    sale = qs.filter(sale_number=(sale_number or '').strip().upper()).first()
    if sale is None:
        raise ValidationError('Pedido não encontrado.')
    cart = cart_from_sale(sale, keep_discounts=False)
    if store is not None:
        cart.max_discount_percent = store.pdv_max_discount_percent
    return sale.customer, cart


def cancel_sale(sale, actor, reason: str) -> Sale:
    """Cancel a completed sale: return items to stock and cancel its open receivables."""
    reason = (reason or '').strip()
    if not reason:
        raise ValidationError({'reason': 'Informe o motivo do cancelamento.'})

    with transaction.atomic():
        sale = Sale.objects.select_for_update().select_related('store').get(pk=sale.pk)
        if sale.is_cancelled:
            raise ValidationError('Venda já está cancelada.')
        if sale.is_quote:
            raise ValidationError('Orçamentos não são cancelados; exclua o orçamento.')

        for item in sale.items.select_related('product'):
            adjust_stock(
                item.product,
                sale.store,
                item.quantity,
                movement_type=StockMovement.MovementType.ENTRY,
                reference_type=StockMovement.ReferenceType.SALE_CANCELLATION,
                reference_id=sale.pk,
                unit_price=item.unit_price,
                notes=f'Cancelamento da venda: {reason}',
                actor=actor,
            )

        sale.status = Sale.Status.CANCELLED
        sale.cancelled_at = timezone.now()
        sale.cancelled_by = actor
        sale.cancellation_reason = reason
        sale.save(update_fields=['status', 'cancelled_at', 'cancelled_by', 'cancellation_reason', 'updated_at'])
        cancelled = cancel_receivables_for_sale(sale)

    logger.info('venda %s cancelada (%s título(s) cancelado(s)): %s', sale.sale_number, cancelled, reason)
    return sale

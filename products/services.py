from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import DecimalField, F, OuterRef, Q, Subquery, Value
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.utils.money import parse_decimal, quantize_money

from .models import (
    ZERO_QUANTITY,
    Product,
    ProductPricing,
    ProductStock,
    StockMovement,
    StockReceipt,
)

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 20


def annotate_store_data(queryset, store):
    """Annotate ``sale_price``, ``cost_price`` and ``stock_quantity`` for ``store``."""
    current = ProductPricing.objects.filter(product=OuterRef("pk"), store=store, is_current=True)
    stock = ProductStock.objects.filter(product=OuterRef("pk"), store=store)
    return queryset.annotate(
        sale_price=Subquery(current.values("sale_price")[:1]),
        cost_price=Subquery(current.values("cost_price")[:1]),
        stock_quantity=Coalesce(
            Subquery(stock.values("quantity")[:1]),
            Value(ZERO_QUANTITY),
            output_field=DecimalField(max_digits=12, decimal_places=3),
        ),
    )


def search_products(store, term: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[dict]:
    term = (term or "").strip()
    qs = Product.objects.filter(active=True).select_related("unit")
    if term:
        filters = Q(name__icontains=term) | Q(ean=term)
        if term.isdigit():
            filters |= Q(internal_code=int(term))
        qs = qs.filter(filters)
    qs = annotate_store_data(qs, store).order_by("name")[:limit]
    return [
        {
            "id": product.pk,
            "internal_code": product.internal_code,
            "ean": product.ean,
            "name": product.name,
            "unit": product.unit.abbreviation if product.unit else "",
            "sale_price": product.sale_price,
            "stock": product.stock_quantity,
        }
        for product in qs
    ]


def current_price(product, store) -> Decimal | None:
    return product.price_for(store)


@transaction.atomic
def set_product_price(product, store, *, sale_price, cost_price=None, actor=None) -> ProductPricing:
    """Close the current pricing row of ``product`` in ``store`` and open a new one."""
    sale_price = parse_decimal(sale_price)
    if sale_price is None or sale_price < 0:
        raise ValidationError({"sale_price": "Informe um preço de venda válido."})
    previous = (
        ProductPricing.objects.select_for_update()
        .filter(product=product, store=store, is_current=True)
        .first()
    )
    if cost_price is None:
        cost_price = previous.cost_price if previous else Decimal("0")
    cost_price = parse_decimal(cost_price)
    if cost_price is None or cost_price < 0:
        raise ValidationError({"cost_price": "Informe um preço de custo válido."})

    now = timezone.now()
    if previous:
        previous.is_current = False
        previous.valid_until = now
        previous.save(update_fields=["is_current", "valid_until"])

    pricing = ProductPricing.objects.create(
        product=product,
        store=store,
        cost_price=quantize_money(cost_price),
        sale_price=quantize_money(sale_price),
        valid_from=now,
        is_current=True,
        created_by=actor,
    )
    logger.info(
        "pricing: produto %s loja %s preço %s -> %s",
        product.internal_code,
        store.code,
        previous.sale_price if previous else "-",
        pricing.sale_price,
    )
    return pricing


def adjust_stock(
    product,
    store,
    delta,
    *,
    movement_type=None,
    reference_type=StockMovement.ReferenceType.MANUAL,
    reference_id=None,
    unit_price=None,
    notes="",
    actor=None,
) -> ProductStock:
    """
    Apply ``delta`` to the stock of ``product`` in ``store`` and record the movement.

    Stock is allowed to go negative; a warning is logged when it does.
    """
    delta = parse_decimal(delta)
    if delta is None or delta == 0:
        raise ValidationError({"quantity": "Informe uma quantidade diferente de zero."})
    if movement_type is None:
        movement_type = StockMovement.MovementType.ENTRY if delta > 0 else StockMovement.MovementType.EXIT

    with transaction.atomic():
        entry, _ = ProductStock.objects.get_or_create(
            product=product,
            store=store,
            defaults={"quantity": ZERO_QUANTITY},
        )
        ProductStock.objects.filter(pk=entry.pk).update(quantity=F("quantity") + delta)
        entry.refresh_from_db(fields=["quantity", "updated_at"])
        StockMovement.objects.create(
            product=product,
            store=store,
            movement_type=movement_type,
            quantity=abs(delta),
            unit_price=unit_price,
            reference_type=reference_type,
            reference_id=reference_id,
            notes=notes or "",
            created_by=actor,
        )

    if entry.quantity < 0:
        logger.warning(
            "estoque negativo: produto %s loja %s quantidade %s",
            product.internal_code,
            store.code,
            entry.quantity,
        )
    return entry


@transaction.atomic
def receive_stock(product, store, *, quantity, cost_price, sale_price, supplier=None, notes="", actor=None) -> StockReceipt:
    """Register goods received: raise stock and re-price the product in the store."""
    quantity = parse_decimal(quantity)
    if quantity is None or quantity <= 0:
        raise ValidationError({"quantity": "A quantidade deve ser maior que zero."})
    cost_price = parse_decimal(cost_price)
    sale_price = parse_decimal(sale_price)
    if cost_price is None or cost_price < 0:
        raise ValidationError({"cost_price": "Informe um preço de custo válido."})
    if sale_price is None or sale_price < 0:
        raise ValidationError({"sale_price": "Informe um preço de venda válido."})

    previous = product.current_pricing(store)
    receipt = StockReceipt.objects.create(
        product=product,
        store=store,
        supplier=supplier,
        quantity=quantity,
        cost_price=quantize_money(cost_price),
        sale_price=quantize_money(sale_price),
        previous_sale_price=previous.sale_price if previous else None,
        notes=notes or "",
        created_by=actor,
    )
    adjust_stock(
        product,
        store,
        quantity,
        movement_type=StockMovement.MovementType.ENTRY,
        reference_type=StockMovement.ReferenceType.STOCK_RECEIPT,
        reference_id=receipt.pk,
        unit_price=receipt.cost_price,
        notes=notes,
        actor=actor,
    )
    if (
        previous is None
        or previous.sale_price != receipt.sale_price
        or previous.cost_price != receipt.cost_price
    ):
        set_product_price(product, store, sale_price=receipt.sale_price, cost_price=receipt.cost_price, actor=actor)
    return receipt

"""
Abertura, movimentação e fechamento do caixa diário de cada loja.

O valor esperado de cada forma de pagamento vem de
``relatorios.services.get_expected_by_category``. No dinheiro somam-se ainda o
fundo de troco e os suprimentos, e descontam-se as sangrias.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.utils.money import ZERO_DECIMAL, format_brl, parse_decimal, quantize_money
from relatorios.services import get_expected_by_category

from .models import CashRegisterClosing, CashRegisterMovement

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 30


def _money(value, field: str, *, required: bool = True, allow_zero: bool = True) -> Optional[Decimal]:
    if value in (None, ""):
        if required:
            raise ValidationError({field: "Informe o valor."})
        return None
    amount = parse_decimal(value)
    if amount is None or not amount.is_finite() or amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError({field: "Informe um valor válido."})
    return quantize_money(amount)


def get_closing(store, day=None) -> Optional[CashRegisterClosing]:
    day = day or timezone.localdate()
    return CashRegisterClosing.objects.filter(store=store, closing_date=day).first()


def closing_history(store, limit: int = HISTORY_LIMIT):
    return (
        CashRegisterClosing.objects.filter(store=store)
        .select_related("store", "opened_by", "closed_by")
        .order_by("-closing_date", "-pk")[:limit]
    )


def movements_total(closing) -> Decimal:
    return sum((movement.signed_amount for movement in closing.movements.all()), ZERO_DECIMAL)


def expected_amounts(closing) -> dict:
    """Expected totals for the register; cash includes the float and the movements."""
    expected = get_expected_by_category(closing.store, closing.closing_date)
    expected["cash"] = closing.opening_balance + expected["cash"] + movements_total(closing)
    return expected


def open_cash_register(store, *, actor=None, day=None, opening_balance=None) -> CashRegisterClosing:
    day = day or timezone.localdate()
    balance = _money(opening_balance, "opening_balance", required=False) or ZERO_DECIMAL
    try:
        with transaction.atomic():
            closing = CashRegisterClosing.objects.create(
                store=store,
                closing_date=day,
                opening_balance=balance,
                opened_by=actor,
            )
    except IntegrityError:
        raise ValidationError("O caixa desta loja já foi aberto nesta data.")
    logger.info("caixa %s aberto em %s com fundo %s", store.code, day, balance)
    return closing


@transaction.atomic
def register_cash_movement(closing, movement_type: str, amount, reason: str, *, actor=None) -> CashRegisterMovement:
    """Record a sangria (withdrawal) or suprimento (top-up) on an open register."""
    closing = CashRegisterClosing.objects.select_for_update().get(pk=closing.pk)
    if not closing.is_open:
        raise ValidationError("Este caixa já foi fechado.")
    if movement_type not in CashRegisterMovement.MovementType.values:
        raise ValidationError({"movement_type": "Tipo de movimentação inválido."})
    amount = _money(amount, "amount", allow_zero=False)
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError({"reason": "Informe o motivo."})
    if movement_type == CashRegisterMovement.MovementType.SANGRIA:
        available = expected_amounts(closing)["cash"]
        if amount > available:
            raise ValidationError({"amount": f"Valor maior que o dinheiro em caixa ({format_brl(available)})."})

    movement = CashRegisterMovement.objects.create(
        closing=closing,
        movement_type=movement_type,
        amount=amount,
        reason=reason,
        created_by=actor,
    )
    logger.info("caixa %s: %s de %s (%s)", closing.store.code, movement_type, amount, reason)
    return movement


@transaction.atomic
def close_cash_register(
    closing,
    *,
    cash_counted,
    card_counted=None,
    pix_counted=None,
    notes: str = "",
    actor=None,
) -> CashRegisterClosing:
    closing = CashRegisterClosing.objects.select_for_update().select_related("store").get(pk=closing.pk)
    if not closing.is_open:
        raise ValidationError("Este caixa já foi fechado.")
    cash_counted = _money(cash_counted, "cash_counted")

    expected = expected_amounts(closing)
    closing.cash_expected = expected["cash"]
    closing.card_expected = expected["card"]
    closing.pix_expected = expected["pix"]
    closing.credit_expected = expected["credit"]
    closing.other_expected = expected["other"]
    closing.cash_counted = cash_counted
    closing.card_counted = _money(card_counted, "card_counted", required=False)
    closing.pix_counted = _money(pix_counted, "pix_counted", required=False)
    closing.difference = cash_counted - closing.cash_expected
    closing.notes = (notes or "").strip()
    closing.status = CashRegisterClosing.Status.CLOSED
    closing.closed_by = actor
    closing.closed_at = timezone.now()
    closing.save()

    if closing.difference:
        logger.warning(
            "caixa %s fechado em %s com diferença de %s",
            closing.store.code,
            closing.closing_date,
            closing.difference,
        )
    else:
        logger.info("caixa %s fechado em %s sem diferença", closing.store.code, closing.closing_date)
    return closing

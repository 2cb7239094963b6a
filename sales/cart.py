"""
Point-of-sale cart.

Plain Python objects, no database access: the API rebuilds a :class:`Cart`
from the request payload, prices it, and ``sales.services`` persists it as a
sale or a quote.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from core.utils.money import CENT, ZERO_DECIMAL, parse_decimal, quantize_money

PERCENTAGE = 'percentage'
FIXED = 'fixed'
DISCOUNT_TYPES = (PERCENTAGE, FIXED)
HUNDRED = Decimal('100')
ONE = Decimal('1')
QUANTITY_PLACES = Decimal('0.001')


class CartError(ValueError):
	"""Raised when a cart operation is rejected."""


def _quantity(value) -> Decimal:
	quantity = parse_decimal(value)
	if quantity is None or not quantity.is_finite() or quantity <= 0:
		raise CartError('Quantidade inválida.')
	return quantity.quantize(QUANTITY_PLACES, rounding=ROUND_HALF_UP)


def discount_amount_for(base: Decimal, discount_type: str, value: Decimal) -> Decimal:
	if not discount_type or not value:
		return ZERO_DECIMAL
	if discount_type == PERCENTAGE:
		return quantize_money(base * value / HUNDRED)
	return min(quantize_money(value), quantize_money(base))


def validate_discount(discount_type: str, value, base: Decimal, max_percent: Decimal = HUNDRED, *, target: str = 'item') -> Decimal:
	"""Return the discount value when acceptable for ``base``; raise :class:`CartError` otherwise."""
	if discount_type not in DISCOUNT_TYPES:
		raise CartError('Tipo de desconto inválido.')
	amount = parse_decimal(value)
	if amount is None or not amount.is_finite() or amount < 0:
		raise CartError('Desconto inválido.')
	amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
	if discount_type == PERCENTAGE:
		if amount > HUNDRED:
			raise CartError('O desconto não pode ser maior que 100%.')
		percent = amount
	else:
		if amount > base:
			label = 'do item' if target == 'item' else 'da venda'
			raise CartError(f'O desconto não pode ser maior que o valor {label}.')
		percent = (amount / base * HUNDRED) if base else ZERO_DECIMAL
	if max_percent is not None and percent > max_percent:
		raise CartError(f'Desconto máximo permitido nesta loja: {max_percent}%.')
	return amount


@dataclass(slots=True)
class CartItem:
	product_id: int
	name: str
	unit_price: Decimal
	quantity: Decimal = ONE
	internal_code: Optional[int] = None
	ean: str = ''
	discount_type: str = ''
	discount_value: Decimal = ZERO_DECIMAL

	@property
	def gross_total(self) -> Decimal:
		return quantize_money(self.quantity * self.unit_price)

	@property
	def discount_amount(self) -> Decimal:
		return discount_amount_for(self.gross_total, self.discount_type, self.discount_value)

	@property
	def total(self) -> Decimal:
		return max(self.gross_total - self.discount_amount, ZERO_DECIMAL)

	def to_dict(self) -> dict:
		return {
			'product_id': self.product_id,
			'name': self.name,
			'internal_code': self.internal_code,
			'ean': self.ean,
			'quantity': self.quantity,
			'unit_price': self.unit_price,
			'discount_type': self.discount_type,
			'discount_value': self.discount_value,
			'gross_total': self.gross_total,
			'discount_amount': self.discount_amount,
			'total': self.total,
		}


class Cart:
	def __init__(self, items: Optional[Iterable[CartItem]] = None, *, max_discount_percent=HUNDRED):
		self.items: list[CartItem] = list(items or [])
		self.max_discount_percent = Decimal(max_discount_percent if max_discount_percent is not None else HUNDRED)
		self.discount_type = ''
		self.discount_value = ZERO_DECIMAL

	def __len__(self):
		return len(self.items)

	def __iter__(self):
		return iter(self.items)

	@property
	def is_empty(self) -> bool:
		return not self.items

	def find(self, product_id) -> CartItem:
		for item in self.items:
			if item.product_id == product_id:
				return item
		raise CartError('Item não encontrado no carrinho.')

	def add_product(self, product_id, name, unit_price, quantity=ONE, *, internal_code=None, ean='') -> CartItem:
		quantity = _quantity(quantity)
		price = parse_decimal(unit_price)
		if price is None or price < 0:
			raise CartError('Produto sem preço de venda cadastrado nesta loja.')
		for item in self.items:
			if item.product_id == product_id:
				item.quantity += quantity
				return item
		item = CartItem(
			product_id=product_id,
			name=name,
			unit_price=quantize_money(price),
			quantity=quantity,
			internal_code=internal_code,
			ean=ean or '',
		)
		self.items.append(item)
		return item

	def update_quantity(self, product_id, delta) -> CartItem:
		"""Add ``delta`` to the item's quantity; the result never drops below one."""
		item = self.find(product_id)
		delta = parse_decimal(delta)
		if delta is None:
			raise CartError('Quantidade inválida.')
		item.quantity = max(item.quantity + delta, ONE)
		return item

	def set_quantity(self, product_id, quantity) -> CartItem:
		item = self.find(product_id)
		item.quantity = _quantity(quantity)
		return item

	def remove_item(self, product_id) -> None:
		item = self.find(product_id)
		self.items.remove(item)

	def clear(self) -> None:
		self.items = []
		self.remove_discount()

	def apply_item_discount(self, product_id, discount_type, value) -> CartItem:
		item = self.find(product_id)
		item.discount_value = validate_discount(discount_type, value, item.gross_total, self.max_discount_percent)
		item.discount_type = discount_type if item.discount_value else ''
		return item

	def remove_item_discount(self, product_id) -> CartItem:
		item = self.find(product_id)
		item.discount_type = ''
		item.discount_value = ZERO_DECIMAL
		return item

	def apply_discount(self, discount_type, value) -> None:
		self.discount_value = validate_discount(
			discount_type,
			value,
			self.subtotal,
			self.max_discount_percent,
			target='sale',
		)
		self.discount_type = discount_type if self.discount_value else ''

	def remove_discount(self) -> None:
		self.discount_type = ''
		self.discount_value = ZERO_DECIMAL

	@property
	def subtotal(self) -> Decimal:
		return sum((item.total for item in self.items), ZERO_DECIMAL)

	@property
	def discount_amount(self) -> Decimal:
		return discount_amount_for(self.subtotal, self.discount_type, self.discount_value)

	@property
	def total(self) -> Decimal:
		return max(self.subtotal - self.discount_amount, ZERO_DECIMAL)

	@property
	def items_discount(self) -> Decimal:
		return sum((item.discount_amount for item in self.items), ZERO_DECIMAL)

	def to_dict(self) -> dict:
		return {
			'items': [item.to_dict() for item in self.items],
			'discount_type': self.discount_type,
			'discount_value': self.discount_value,
			'subtotal': self.subtotal,
			'items_discount': self.items_discount,
			'discount_amount': self.discount_amount,
			'total': self.total,
			'max_discount_percent': self.max_discount_percent,
		}

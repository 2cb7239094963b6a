"""Decimal helpers shared by sales, finance and reports."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

ZERO_DECIMAL = Decimal('0.00')
CENT = Decimal('0.01')


def parse_decimal(value) -> Optional[Decimal]:
	"""Accept Decimal, int or text with comma or dot as decimal separator."""
	if value is None:
		return None
	if isinstance(value, Decimal):
		return value
	if isinstance(value, float):
		value = repr(value)
	v = str(value).strip()
	if v == '':
		return None
	v = v.replace('.', '').replace(',', '.') if ',' in v else v
	try:
		return Decimal(v)
	except InvalidOperation:
		return None


def quantize_money(value) -> Decimal:
	if value is None:
		return ZERO_DECIMAL
	return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_brl(value) -> str:
	number = quantize_money(value)
	integer, _, cents = f'{abs(number):.2f}'.partition('.')
	groups = []
	while integer:
		groups.insert(0, integer[-3:])
		integer = integer[:-3]
	sign = '-' if number < 0 else ''
	return f'R$ {sign}{".".join(groups) or "0"},{cents}'


__all__ = [
	'ZERO_DECIMAL',
	'CENT',
	'parse_decimal',
	'quantize_money',
	'format_brl',
]

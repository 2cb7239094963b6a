"""Utility helpers for CPF/CNPJ normalization and formatting."""

from __future__ import annotations

import re
from typing import Optional

DIGITS_RE = re.compile(r'\D+')

CPF = 'cpf'
CNPJ = 'cnpj'


def only_digits(value: Optional[str]) -> str:
	if value is None:
		return ''
	return DIGITS_RE.sub('', str(value))


def normalize_cpf(value: Optional[str]) -> str:
	digits = only_digits(value)
	if len(digits) != 11:
		raise ValueError('CPF deve conter 11 dígitos.')
	return digits


def normalize_cnpj(value: Optional[str]) -> str:
	digits = only_digits(value)
	if len(digits) != 14:
		raise ValueError('CNPJ deve conter 14 dígitos.')
	return digits


def normalize_document(value: Optional[str], document_type: str) -> str:
	if document_type == CNPJ:
		return normalize_cnpj(value)
	if document_type == CPF:
		return normalize_cpf(value)
	raise ValueError('Tipo de documento inválido.')


def guess_document_type(value: Optional[str]) -> Optional[str]:
	digits = only_digits(value)
	if len(digits) == 11:
		return CPF
	if len(digits) == 14:
		return CNPJ
	return None


def format_cpf(value: Optional[str]) -> str:
	digits = only_digits(value)
	if len(digits) != 11:
		return digits
	return f'{digits[0:3]}.{digits[3:6]}.{digits[6:9]}-{digits[9:11]}'


def format_cnpj(value: Optional[str]) -> str:
	digits = only_digits(value)
	if len(digits) != 14:
		return digits
	return '{}.{}.{}/{}-{}'.format(
		digits[0:2],
		digits[2:5],
		digits[5:8],
		digits[8:12],
		digits[12:14],
	)


def format_document(value: Optional[str], document_type: Optional[str] = None) -> str:
	document_type = document_type or guess_document_type(value)
	if document_type == CNPJ:
		return format_cnpj(value)
	if document_type == CPF:
		return format_cpf(value)
	return only_digits(value)


__all__ = [
	'CPF',
	'CNPJ',
	'only_digits',
	'normalize_cpf',
	'normalize_cnpj',
	'normalize_document',
	'guess_document_type',
	'format_cpf',
	'format_cnpj',
	'format_document',
]

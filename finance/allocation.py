"""
Credit payment ("crediário") allocation.

A tendered amount is spread over the customer's pending receivables, oldest
due date first, producing one update instruction per touched record and a
single audit entry. Nothing here touches the database: persistence is the job
of a :class:`ReceivableStore` (see ``finance.services``), which must apply the
whole :class:`AllocationResult` atomically.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol, Sequence

from django.utils import timezone

from core.utils.money import CENT, ZERO_DECIMAL, format_brl

STATUS_PENDING = 'pending'
STATUS_PAID = 'paid'
ACTION_PAYMENT = 'payment'


class CreditPaymentError(Exception):
	"""Base class for every credit payment failure."""

	default_message = 'Falha ao registrar o pagamento do crediário.'
	retryable = False

	def __init__(self, message: Optional[str] = None):
		self.message = message or self.default_message
		super().__init__(self.message)


class InvalidAmount(CreditPaymentError):
	"""Tendered amount is zero, negative, non-numeric or has sub-cent precision."""

	default_message = 'Valor inválido.'


class NoOpenBalance(CreditPaymentError):
	"""Customer has no pending receivables."""

	default_message = 'Nenhum crediário em aberto.'


class AmountExceedsBalance(CreditPaymentError):
	"""Tendered amount is greater than the outstanding balance."""

	default_message = 'Valor maior que o saldo devedor.'


class PersistenceFailure(CreditPaymentError):
	"""Applying a validated allocation failed; nothing was committed."""

	default_message = 'Não foi possível registrar o pagamento. Tente novamente.'
	retryable = True


class ConcurrentAllocation(PersistenceFailure):
	"""A receivable changed between reading and applying the allocation."""

	default_message = 'Os títulos do cliente foram alterados por outro pagamento. Tente novamente.'


@dataclass(frozen=True, slots=True)
class ReceivableSnapshot:
	id: Any
	customer_id: Any
	amount: Decimal
	paid_amount: Decimal
	due_date: date
	version: int = 0

	@property
	def outstanding(self) -> Decimal:
		return self.amount - self.paid_amount


@dataclass(frozen=True, slots=True)
class RecordUpdate:
	record_id: Any
	previous_paid: Decimal
	new_paid: Decimal
	applied: Decimal
	status: str
	paid_at: Optional[datetime]
	paid_by: Any
	expected_version: int


@dataclass(frozen=True, slots=True)
class AuditEntry:
	customer_id: Any
	prior_balance: Decimal
	new_balance: Decimal
	tendered_amount: Decimal
	note: str
	actor_id: Any
	created_at: datetime
	action: str = ACTION_PAYMENT


@dataclass(frozen=True, slots=True)
class AllocationResult:
	customer_id: Any
	tendered_amount: Decimal
	updates: tuple[RecordUpdate, ...]
	audit_entry: AuditEntry

	@property
	def total_applied(self) -> Decimal:
		return sum((update.applied for update in self.updates), ZERO_DECIMAL)


class ReceivableStore(Protocol):
	def list_pending(self, customer_id) -> Sequence[ReceivableSnapshot]:
		...

	def update(self, update: RecordUpdate) -> None:
		...

	def append(self, entry: AuditEntry) -> Any:
		...

	def apply_allocation(self, result: AllocationResult, **extra) -> Any:
		...


def parse_tendered_amount(value) -> Decimal:
	"""Return ``value`` as a positive two-place Decimal or raise :class:`InvalidAmount`."""
	if value is None or isinstance(value, bool):
		raise InvalidAmount()
	if isinstance(value, float):
		value = repr(value)
	try:
		amount = Decimal(str(value).strip())
	except (InvalidOperation, ValueError):
		raise InvalidAmount()
	if not amount.is_finite() or amount <= 0:
		raise InvalidAmount()
	if amount != amount.quantize(CENT):
		raise InvalidAmount('O valor deve ter no máximo duas casas decimais.')
	return amount.quantize(CENT)


def default_note(amount: Decimal) -> str:
	return f'Pagamento de crediário: {format_brl(amount)}'


def _sort_key(record: ReceivableSnapshot):
	return (record.due_date, record.id)


def settle_record(record: ReceivableSnapshot, amount: Decimal, actor_id, now: datetime) -> RecordUpdate:
	outstanding = record.outstanding
	applied = min(amount, outstanding)
	new_paid = record.paid_amount + applied
	fully_paid = new_paid >= record.amount
	return RecordUpdate(
		record_id=record.id,
		previous_paid=record.paid_amount,
		new_paid=new_paid,
		applied=applied,
		status=STATUS_PAID if fully_paid else STATUS_PENDING,
		paid_at=now if fully_paid else None,
		paid_by=actor_id if fully_paid else None,
		expected_version=record.version,
	)


def allocate(
	customer_id,
	tendered_amount,
	pending_records: Sequence[ReceivableSnapshot],
	actor_id,
	note: str = '',
	*,
	now: Optional[datetime] = None,
) -> AllocationResult:
	"""
	Allocate ``tendered_amount`` over ``pending_records``, oldest due date first.

	Validation happens before any instruction is produced: the amount is
	checked first (``InvalidAmount``), then the presence of open records
	(``NoOpenBalance``), then the total outstanding (``AmountExceedsBalance``).
	"""
	amount = parse_tendered_amount(tendered_amount)
	records = list(pending_records or ())
	if not records:
		raise NoOpenBalance()

	prior_balance = sum((record.outstanding for record in records), ZERO_DECIMAL)
	if amount > prior_balance:
		raise AmountExceedsBalance()

	now = now or timezone.now()
	remaining = amount
	updates = []
	for record in sorted(records, key=_sort_key):
		if remaining <= 0:
			break
		if record.outstanding <= 0:
			continue
		update = settle_record(record, remaining, actor_id, now)
		updates.append(update)
		remaining -= update.applied

	audit_entry = AuditEntry(
		customer_id=customer_id,
		prior_balance=prior_balance,
		new_balance=prior_balance - amount,
		tendered_amount=amount,
		note=(note or '').strip() or default_note(amount),
		actor_id=actor_id,
		created_at=now,
	)
	return AllocationResult(
		customer_id=customer_id,
		tendered_amount=amount,
		updates=tuple(updates),
		audit_entry=audit_entry,
	)


def allocate_single(record: ReceivableSnapshot, tendered_amount, actor_id, *, now: Optional[datetime] = None) -> RecordUpdate:
	"""Validate and settle a payment against one receivable only."""
	amount = parse_tendered_amount(tendered_amount)
	if record.outstanding <= 0:
		raise NoOpenBalance('Este título não possui saldo em aberto.')
	if amount > record.outstanding:
		raise AmountExceedsBalance('Valor maior que o saldo restante do título.')
	return settle_record(record, amount, actor_id, now or timezone.now())


__all__ = [
	'STATUS_PENDING',
	'STATUS_PAID',
	'ACTION_PAYMENT',
	'CreditPaymentError',
	'InvalidAmount',
	'NoOpenBalance',
	'AmountExceedsBalance',
	'PersistenceFailure',
	'ConcurrentAllocation',
	'ReceivableSnapshot',
	'RecordUpdate',
	'AuditEntry',
	'AllocationResult',
	'ReceivableStore',
	'parse_tendered_amount',
	'default_note',
	'settle_record',
	'allocate',
	'allocate_single',
]

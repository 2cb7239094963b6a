from __future__ import annotations

import logging
import uuid
from datetime import timedelta
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import F
from django.utils import timezone

from clients.models import CustomerCreditHistory
from core.models import SalesConfiguration
from core.utils.money import parse_decimal, quantize_money

from .allocation import (
    AllocationResult,
    AuditEntry,
    ConcurrentAllocation,
    CreditPaymentError,
    NoOpenBalance,
    PersistenceFailure,
    RecordUpdate,
    ReceivableSnapshot,
    allocate,
    allocate_single,
    default_note,
)
from .models import (
    ATTACHMENT_EXTENSIONS,
    ATTACHMENT_MAX_SIZE,
    AccountPayable,
    AccountReceivable,
    AuditLog,
    CreditPaymentAllocation,
    CustomerCreditPayment,
    PayableAttachment,
    PayablePayment,
)

logger = logging.getLogger(__name__)


class DjangoReceivableStore:
    """Receivable store backed by the ORM; every allocation is applied in one transaction."""

    def list_pending(self, customer_id) -> list[ReceivableSnapshot]:
        qs = AccountReceivable.objects.filter(
            customer_id=customer_id,
            status=AccountReceivable.Status.PENDING,
        ).order_by("due_date", "pk")
        return [record.to_snapshot() for record in qs]

    def update(self, update: RecordUpdate) -> None:
        updated = AccountReceivable.objects.filter(
            pk=update.record_id,
            status=AccountReceivable.Status.PENDING,
            version=update.expected_version,
            paid_amount=update.previous_paid,
        ).update(
            paid_amount=update.new_paid,
            status=update.status,
            paid_at=update.paid_at,
            paid_by_id=update.paid_by,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        if updated != 1:
            logger.warning(
                "crediario: conflito de versão no título %s (versão esperada %s)",
                update.record_id,
                update.expected_version,
            )
            raise ConcurrentAllocation()

    def append(self, entry: AuditEntry, *, reference_id=None) -> CustomerCreditHistory:
        return CustomerCreditHistory.objects.create(
            customer_id=entry.customer_id,
            action_type=CustomerCreditHistory.ActionType.PAYMENT,
            old_value=entry.prior_balance,
            new_value=entry.new_balance,
            reference_type=CustomerCreditHistory.ReferenceType.CREDIT_PAYMENT,
            reference_id=reference_id,
            notes=entry.note,
            created_by_id=entry.actor_id,
        )

    def apply_allocation(
        self,
        result: AllocationResult,
        *,
        payment_method=None,
        allocation_id=None,
    ) -> CustomerCreditPayment:
        """Persist the payment, every record update and the audit entry, or nothing at all."""
        try:
            with transaction.atomic():
                payment = CustomerCreditPayment.objects.create(
                    customer_id=result.customer_id,
                    amount=result.tendered_amount,
                    payment_method=payment_method,
                    notes=result.audit_entry.note,
                    allocation_id=allocation_id or uuid.uuid4(),
                    created_by_id=result.audit_entry.actor_id,
                )
                for update in result.updates:
                    self.update(update)
                CreditPaymentAllocation.objects.bulk_create(
                    [
                        CreditPaymentAllocation(
                            payment=payment,
                            receivable_id=update.record_id,
                            amount=update.applied,
                            paid_amount_before=update.previous_paid,
                            paid_amount_after=update.new_paid,
                        )
                        for update in result.updates
                    ]
                )
                self.append(result.audit_entry, reference_id=payment.pk)
        except CreditPaymentError:
            raise
        except DatabaseError as exc:
            logger.exception("crediario: falha ao gravar pagamento do cliente %s", result.customer_id)
            raise PersistenceFailure() from exc
        return payment


def _actor_id(actor):
    return getattr(actor, "pk", None)


def _existing_payment(customer, allocation_id):
    if not allocation_id:
        return None
    existing = CustomerCreditPayment.objects.filter(allocation_id=allocation_id).first()
    if existing and existing.customer_id != customer.pk:
        raise CreditPaymentError("Identificador de pagamento já utilizado para outro cliente.")
    return existing


def _check_payment_method(payment_method):
    if payment_method is not None and not payment_method.active:
        raise CreditPaymentError("Forma de pagamento inativa.")


def register_credit_payment(
    customer,
    amount,
    actor,
    *,
    payment_method=None,
    notes="",
    allocation_id=None,
    store=None,
) -> CustomerCreditPayment:
    """
    Receive a crediário payment and spread it over the customer's open receivables.

    Retrying with the same ``allocation_id`` returns the payment already recorded
    instead of applying it twice.
    """
    store = store or DjangoReceivableStore()
    if isinstance(allocation_id, str):
        try:
            allocation_id = uuid.UUID(allocation_id)
        except ValueError:
            raise CreditPaymentError("Identificador de pagamento inválido.")

    existing = _existing_payment(customer, allocation_id)
    if existing:
        logger.info("crediario: pagamento %s já registrado (reenvio ignorado)", allocation_id)
        return existing
    _check_payment_method(payment_method)

    pending = store.list_pending(customer.pk)
    result = allocate(customer.pk, amount, pending, _actor_id(actor), notes)
    try:
        payment = store.apply_allocation(result, payment_method=payment_method, allocation_id=allocation_id)
    except PersistenceFailure:
        existing = _existing_payment(customer, allocation_id)
        if existing:
            return existing
        raise

    logger.info(
        "crediario: cliente %s pagou %s em %s título(s); saldo %s -> %s",
        customer.pk,
        result.tendered_amount,
        len(result.updates),
        result.audit_entry.prior_balance,
        result.audit_entry.new_balance,
    )
    return payment


def pay_receivable(receivable, amount, actor, *, payment_method=None, notes="", store=None) -> CustomerCreditPayment:
    """Settle ``amount`` against a single receivable, keeping the same audit trail as an allocation."""
    store = store or DjangoReceivableStore()
    _check_payment_method(payment_method)

    try:
        with transaction.atomic():
            pending = {
                record.pk: record
                for record in AccountReceivable.objects.select_for_update().filter(
                    customer_id=receivable.customer_id,
                    status=AccountReceivable.Status.PENDING,
                )
            }
            current = pending.get(receivable.pk)
            if current is None:
                raise NoOpenBalance("Este título não está em aberto.")

            now = timezone.now()
            update = allocate_single(current.to_snapshot(), amount, _actor_id(actor), now=now)
            prior_balance = sum((record.outstanding for record in pending.values()), Decimal("0.00"))
            note = (notes or "").strip() or default_note(update.applied)
            result = AllocationResult(
                customer_id=receivable.customer_id,
                tendered_amount=update.applied,
                updates=(update,),
                audit_entry=AuditEntry(
                    customer_id=receivable.customer_id,
                    prior_balance=prior_balance,
                    new_balance=prior_balance - update.applied,
                    tendered_amount=update.applied,
                    note=note,
                    actor_id=_actor_id(actor),
                    created_at=now,
                ),
            )
            payment = store.apply_allocation(result, payment_method=payment_method)
    except DatabaseError as exc:
        logger.exception("crediario: falha ao baixar o título %s", receivable.pk)
        raise PersistenceFailure() from exc
    logger.info("crediario: título %s recebeu %s (%s)", receivable.pk, update.applied, update.status)
    receivable.refresh_from_db()
    return payment


def create_receivable(customer, amount, *, due_date=None, sale=None, store=None, actor=None, notes="") -> AccountReceivable:
    amount = parse_decimal(amount)
    if amount is None or amount <= 0:
        raise ValidationError({"amount": "O valor do título deve ser maior que zero."})
    if due_date is None:
        config = SalesConfiguration.load()
        due_date = timezone.localdate() + timedelta(days=config.credit_due_days)
    return AccountReceivable.objects.create(
        customer=customer,
        sale=sale,
        store=store,
        amount=quantize_money(amount),
        due_date=due_date,
        notes=notes or "",
        created_by=actor,
    )


def cancel_receivables_for_sale(sale) -> int:
    return AccountReceivable.objects.filter(
        sale=sale,
        status=AccountReceivable.Status.PENDING,
    ).update(
        status=AccountReceivable.Status.CANCELLED,
        version=F("version") + 1,
        updated_at=timezone.now(),
    )


PAYABLE_TABLE = "accounts_payable"
PAYABLE_AUDIT_FIELDS = (
    "description",
    "amount",
    "due_date",
    "payment_type",
    "status",
    "supplier_id",
    "cost_center_id",
    "barcode",
    "pix_key",
    "bank_name",
    "bank_agency",
    "bank_account",
    "card_last_digits",
    "observations",
)


def _json_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


def payable_values(account) -> dict:
    return {field: _json_value(getattr(account, field)) for field in PAYABLE_AUDIT_FIELDS}


def record_audit(table_name, record_id, action, *, old_values=None, new_values=None, user=None) -> AuditLog:
    return AuditLog.objects.create(
        table_name=table_name,
        record_id=record_id,
        action=action,
        old_values=old_values,
        new_values=new_values,
        user=user if getattr(user, "is_authenticated", False) else None,
    )


def payable_history(account):
    return AuditLog.objects.filter(table_name=PAYABLE_TABLE, record_id=account.pk).select_related("user")


def validate_upload(upload, field="file"):
    """Only PDF, JPG and PNG files of up to 10 MB are accepted."""
    name = getattr(upload, "name", "") or ""
    extension = name.rsplit(".", 1)[-1].lower() if "." in name else ""
    if extension not in ATTACHMENT_EXTENSIONS:
        raise ValidationError({field: "Tipo de arquivo não permitido. Use PDF, JPG ou PNG."})
    if (upload.size or 0) > ATTACHMENT_MAX_SIZE:
        raise ValidationError({field: "Arquivo muito grande. Máximo 10MB."})
    return upload


@transaction.atomic
def create_account_payable(*, actor=None, **fields) -> AccountPayable:
    account = AccountPayable(created_by=actor, **fields)
    account.full_clean()
    account.save()
    record_audit(PAYABLE_TABLE, account.pk, AuditLog.Action.INSERT, new_values=payable_values(account), user=actor)
    return account


@transaction.atomic
def update_account_payable(account, *, actor=None, **fields) -> AccountPayable:
    account = AccountPayable.objects.select_for_update().get(pk=account.pk)
    if account.status != AccountPayable.Status.OPEN:
        raise ValidationError("Somente contas em aberto podem ser alteradas.")
    before = payable_values(account)
    for name, value in fields.items():
        setattr(account, name, value)
    account.full_clean()
    account.save()
    after = payable_values(account)
    changed = [field for field in PAYABLE_AUDIT_FIELDS if before[field] != after[field]]
    if changed:
        record_audit(
            PAYABLE_TABLE,
            account.pk,
            AuditLog.Action.UPDATE,
            old_values={field: before[field] for field in changed},
            new_values={field: after[field] for field in changed},
            user=actor,
        )
    return account


@transaction.atomic
def delete_account_payable(account, *, actor=None) -> None:
    if account.payments.exists():
        raise ValidationError("Contas com pagamentos registrados não podem ser excluídas.")
    record_audit(PAYABLE_TABLE, account.pk, AuditLog.Action.DELETE, old_values=payable_values(account), user=actor)
    account.delete()
    logger.info("contas-a-pagar: conta %s excluída", account.pk)


@transaction.atomic
def pay_account_payable(
    account,
    *,
    amount_paid=None,
    payment_date=None,
    payment_method="",
    notes="",
    receipt=None,
    actor=None,
) -> PayablePayment:
    account = AccountPayable.objects.select_for_update().get(pk=account.pk)
    if account.status != AccountPayable.Status.OPEN:
        raise ValidationError("Esta conta não está em aberto.")
    amount_paid = parse_decimal(amount_paid) if amount_paid not in (None, "") else account.amount
    if amount_paid is None or not amount_paid.is_finite() or amount_paid <= 0:
        raise ValidationError({"amount_paid": "Informe um valor pago válido."})
    if receipt is not None:
        validate_upload(receipt, "receipt")

    payment = PayablePayment(
        account=account,
        payment_date=payment_date or timezone.localdate(),
        amount_paid=quantize_money(amount_paid),
        payment_method=payment_method or account.payment_type,
        notes=notes or "",
        paid_by=actor,
    )
    if receipt is not None:
        payment.receipt = receipt
    payment.save()
    account.status = AccountPayable.Status.PAID
    account.save(update_fields=["status", "updated_at"])
    record_audit(
        PAYABLE_TABLE,
        account.pk,
        AuditLog.Action.PAYMENT,
        old_values={"status": AccountPayable.Status.OPEN.value},
        new_values={
            "status": account.status,
            "amount_paid": str(payment.amount_paid),
            "payment_date": payment.payment_date.isoformat(),
            "payment_method": payment.payment_method,
            "receipt": payment.receipt.name or None,
        },
        user=actor,
    )
    logger.info("contas-a-pagar: conta %s paga (%s)", account.pk, payment.amount_paid)
    return payment


@transaction.atomic
def cancel_account_payable(account, *, actor=None, reason="") -> AccountPayable:
    account = AccountPayable.objects.select_for_update().get(pk=account.pk)
    if account.status != AccountPayable.Status.OPEN:
        raise ValidationError("Somente contas em aberto podem ser canceladas.")
    account.status = AccountPayable.Status.CANCELLED
    if reason:
        stamp = timezone.localtime().strftime("%d/%m/%Y %H:%M")
        who = actor.get_username() if actor else "-"
        account.observations = "\n".join(
            part for part in [account.observations, f"Cancelada em {stamp} por {who}: {reason}"] if part
        )
    account.save(update_fields=["status", "observations", "updated_at"])
    record_audit(
        PAYABLE_TABLE,
        account.pk,
        AuditLog.Action.CANCEL,
        old_values={"status": AccountPayable.Status.OPEN.value},
        new_values={"status": account.status, "reason": reason or ""},
        user=actor,
    )
    logger.info("contas-a-pagar: conta %s cancelada", account.pk)
    return account


@transaction.atomic
def add_payable_attachment(account, upload, *, actor=None) -> PayableAttachment:
    validate_upload(upload)
    attachment = PayableAttachment.objects.create(
        account=account,
        file=upload,
        filename=upload.name,
        file_size=upload.size or 0,
        mime_type=getattr(upload, "content_type", "") or "",
        uploaded_by=actor,
    )
    record_audit(
        PAYABLE_TABLE,
        account.pk,
        AuditLog.Action.ATTACHMENT,
        new_values={"attachment": attachment.pk, "filename": attachment.filename},
        user=actor,
    )
    return attachment

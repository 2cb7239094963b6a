import shutil
import tempfile
import uuid
from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import DatabaseError
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from clients.models import Client, CustomerCreditHistory
from core.models import SalesConfiguration, Store
from products.models import Supplier
from sales.models import PaymentMethod, Sale

from .allocation import (
	AmountExceedsBalance,
	ConcurrentAllocation,
	CreditPaymentError,
	InvalidAmount,
	NoOpenBalance,
	PersistenceFailure,
	ReceivableSnapshot,
	allocate,
	allocate_single,
	parse_tendered_amount,
)
from .importers import import_payables_csv
from .models import (
	AccountPayable,
	AccountReceivable,
	AuditLog,
	CostCenter,
	CreditPaymentAllocation,
	CustomerCreditPayment,
	PayableAttachment,
	PayablePayment,
)
from .services import (
	DjangoReceivableStore,
	add_payable_attachment,
	cancel_account_payable,
	cancel_receivables_for_sale,
	create_account_payable,
	create_receivable,
	delete_account_payable,
	pay_account_payable,
	payable_history,
	pay_receivable,
	register_credit_payment,
	update_account_payable,
)

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=dt_timezone.utc)


def snapshot(record_id, due_date, amount, paid='0.00', version=0):
	return ReceivableSnapshot(
		id=record_id,
		customer_id=7,
		amount=Decimal(amount),
		paid_amount=Decimal(paid),
		due_date=due_date,
		version=version,
	)


class AllocateTests(SimpleTestCase):
	def setUp(self):
		self.records = [
			snapshot(2, date(2024, 2, 1), '50.00'),
			snapshot(1, date(2024, 1, 1), '100.00'),
		]

	def test_partial_payment_settles_oldest_first(self):
		result = allocate(7, Decimal('120.00'), self.records, actor_id=3, now=NOW)

		first, second = result.updates
		self.assertEqual(first.record_id, 1)
		self.assertEqual(first.new_paid, Decimal('100.00'))
		self.assertEqual(first.status, 'paid')
		self.assertEqual(first.paid_at, NOW)
		self.assertEqual(first.paid_by, 3)
		self.assertEqual(second.record_id, 2)
		self.assertEqual(second.applied, Decimal('20.00'))
		self.assertEqual(second.new_paid, Decimal('20.00'))
		self.assertEqual(second.status, 'pending')
		self.assertIsNone(second.paid_at)
		self.assertIsNone(second.paid_by)

		entry = result.audit_entry
		self.assertEqual(entry.prior_balance, Decimal('150.00'))
		self.assertEqual(entry.new_balance, Decimal('30.00'))
		self.assertEqual(entry.tendered_amount, Decimal('120.00'))
		self.assertEqual(entry.action, 'payment')
		self.assertEqual(entry.note, 'Pagamento de crediário: R$ 120,00')
		self.assertEqual(result.total_applied, Decimal('120.00'))

	def test_exact_balance_settles_everything(self):
		result = allocate(7, '150.00', self.records, actor_id=3, now=NOW)
		self.assertEqual([u.status for u in result.updates], ['paid', 'paid'])
		self.assertEqual(result.audit_entry.new_balance, Decimal('0.00'))

	def test_small_payment_touches_only_oldest(self):
		result = allocate(7, '30', self.records, actor_id=3, now=NOW)
		self.assertEqual(len(result.updates), 1)
		self.assertEqual(result.updates[0].record_id, 1)
		self.assertEqual(result.updates[0].new_paid, Decimal('30.00'))

	def test_partially_paid_records_use_outstanding(self):
		records = [snapshot(1, date(2024, 1, 1), '100.00', paid='90.00', version=4)]
		result = allocate(7, '10.00', records, actor_id=None, now=NOW)
		update = result.updates[0]
		self.assertEqual(update.previous_paid, Decimal('90.00'))
		self.assertEqual(update.new_paid, Decimal('100.00'))
		self.assertEqual(update.expected_version, 4)
		self.assertEqual(result.audit_entry.prior_balance, Decimal('10.00'))

	def test_same_due_date_breaks_tie_by_id(self):
		records = [
			snapshot(9, date(2024, 1, 1), '10.00'),
			snapshot(4, date(2024, 1, 1), '10.00'),
		]
		result = allocate(7, '10.00', records, actor_id=None, now=NOW)
		self.assertEqual([u.record_id for u in result.updates], [4])

	def test_custom_note_is_kept(self):
		result = allocate(7, '10.00', self.records, actor_id=None, note='  Pago no balcão ', now=NOW)
		self.assertEqual(result.audit_entry.note, 'Pago no balcão')

	def test_amount_above_balance(self):
		with self.assertRaises(AmountExceedsBalance):
			allocate(7, '200.00', self.records, actor_id=3)

	def test_no_open_records(self):
		with self.assertRaises(NoOpenBalance):
			allocate(7, '10.00', [], actor_id=3)

	def test_invalid_amount_is_checked_before_balance(self):
		with self.assertRaises(InvalidAmount):
			allocate(7, '-5.00', [], actor_id=3)
		with self.assertRaises(InvalidAmount):
			allocate(7, 0, self.records, actor_id=3)

	def test_allocate_single(self):
		update = allocate_single(self.records[0], '50.00', actor_id=2, now=NOW)
		self.assertEqual(update.status, 'paid')
		with self.assertRaises(AmountExceedsBalance):
			allocate_single(self.records[0], '50.01', actor_id=2)
		with self.assertRaises(NoOpenBalance):
			allocate_single(snapshot(5, date(2024, 1, 1), '10.00', paid='10.00'), '1.00', actor_id=2)


class ParseTenderedAmountTests(SimpleTestCase):
	def test_valid_values(self):
		self.assertEqual(parse_tendered_amount('10'), Decimal('10.00'))
		self.assertEqual(parse_tendered_amount(Decimal('0.01')), Decimal('0.01'))
		self.assertEqual(parse_tendered_amount(12.5), Decimal('12.50'))
		self.assertEqual(parse_tendered_amount(' 7.10 '), Decimal('7.10'))

	def test_invalid_values(self):
		for value in (None, True, False, '', 'abc', '0', '-1', 'NaN', 'Infinity', '1,50'):
			with self.subTest(value=value):
				with self.assertRaises(InvalidAmount):
					parse_tendered_amount(value)

	def test_sub_cent_precision_rejected(self):
		with self.assertRaises(InvalidAmount):
			parse_tendered_amount('10.005')

	def test_errors_carry_retry_hint(self):
		self.assertFalse(InvalidAmount().retryable)
		self.assertTrue(PersistenceFailure().retryable)
		self.assertTrue(ConcurrentAllocation().retryable)
		self.assertIsInstance(ConcurrentAllocation(), CreditPaymentError)


class FinanceFixturesMixin:
	def setUp(self):
		self.user = User.objects.create_user('caixa', 'caixa@example.com', 'pw123456')
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		self.customer = Client.objects.create(name='Bruno', credit_limit=Decimal('1000.00'))
		self.r1 = AccountReceivable.objects.create(
			customer=self.customer,
			store=self.store,
			amount=Decimal('100.00'),
			due_date=date(2024, 1, 1),
		)
		self.r2 = AccountReceivable.objects.create(
			customer=self.customer,
			store=self.store,
			amount=Decimal('50.00'),
			due_date=date(2024, 2, 1),
		)


class RegisterCreditPaymentTests(FinanceFixturesMixin, TestCase):
	def test_payment_is_persisted_with_allocations_and_history(self):
		cash = PaymentMethod.objects.get(code='cash')
		payment = register_credit_payment(self.customer, '120.00', self.user, payment_method=cash)

		self.r1.refresh_from_db()
		self.r2.refresh_from_db()
		self.assertEqual(self.r1.status, AccountReceivable.Status.PAID)
		self.assertEqual(self.r1.paid_amount, Decimal('100.00'))
		self.assertEqual(self.r1.paid_by, self.user)
		self.assertIsNotNone(self.r1.paid_at)
		self.assertEqual(self.r1.version, 1)
		self.assertEqual(self.r2.status, AccountReceivable.Status.PENDING)
		self.assertEqual(self.r2.paid_amount, Decimal('20.00'))
		self.assertIsNone(self.r2.paid_at)

		self.assertEqual(payment.amount, Decimal('120.00'))
		self.assertEqual(payment.payment_method, cash)
		allocations = list(payment.allocations.order_by('receivable__due_date'))
		self.assertEqual([a.receivable_id for a in allocations], [self.r1.pk, self.r2.pk])
		self.assertEqual([a.amount for a in allocations], [Decimal('100.00'), Decimal('20.00')])

		history = CustomerCreditHistory.objects.get(customer=self.customer)
		self.assertEqual(history.action_type, CustomerCreditHistory.ActionType.PAYMENT)
		self.assertEqual(history.old_value, Decimal('150.00'))
		self.assertEqual(history.new_value, Decimal('30.00'))
		self.assertEqual(history.reference_id, payment.pk)
		self.assertEqual(history.created_by, self.user)
		self.assertEqual(self.customer.used_credit, Decimal('30.00'))

	def test_rejections_leave_no_trace(self):
		for amount, error in (('200.00', AmountExceedsBalance), ('-5.00', InvalidAmount), ('0.001', InvalidAmount)):
			with self.subTest(amount=amount):
				with self.assertRaises(error):
					register_credit_payment(self.customer, amount, self.user)
		self.assertFalse(CustomerCreditPayment.objects.exists())
		self.assertFalse(CustomerCreditHistory.objects.exists())

	def test_customer_without_open_receivables(self):
		other = Client.objects.create(name='Sem dívida')
		with self.assertRaises(NoOpenBalance):
			register_credit_payment(other, '10.00', self.user)

	def test_replay_with_same_allocation_id_is_ignored(self):
		allocation_id = uuid.uuid4()
		first = register_credit_payment(self.customer, '30.00', self.user, allocation_id=allocation_id)
		second = register_credit_payment(self.customer, '30.00', self.user, allocation_id=str(allocation_id))
		self.assertEqual(first.pk, second.pk)
		self.assertEqual(CustomerCreditPayment.objects.count(), 1)
		self.r1.refresh_from_db()
		self.assertEqual(self.r1.paid_amount, Decimal('30.00'))

	def test_allocation_id_of_another_customer(self):
		allocation_id = uuid.uuid4()
		register_credit_payment(self.customer, '10.00', self.user, allocation_id=allocation_id)
		other = Client.objects.create(name='Outro')
		AccountReceivable.objects.create(customer=other, amount=Decimal('10.00'), due_date=date(2024, 1, 1))
		with self.assertRaises(CreditPaymentError):
			register_credit_payment(other, '10.00', self.user, allocation_id=allocation_id)

	def test_invalid_allocation_id(self):
		with self.assertRaises(CreditPaymentError):
			register_credit_payment(self.customer, '10.00', self.user, allocation_id='não-é-uuid')

	def test_inactive_payment_method(self):
		method = PaymentMethod.objects.get(code='pix')
		method.active = False
		method.save()
		with self.assertRaises(CreditPaymentError):
			register_credit_payment(self.customer, '10.00', self.user, payment_method=method)

	def test_concurrent_change_rolls_back_everything(self):
		r2 = self.r2

		class StaleStore(DjangoReceivableStore):
			def list_pending(self, customer_id):
				records = super().list_pending(customer_id)
				AccountReceivable.objects.filter(pk=r2.pk).update(version=5)
				return records

		with self.assertLogs('finance.services', level='WARNING'):
			with self.assertRaises(ConcurrentAllocation):
				register_credit_payment(self.customer, '150.00', self.user, store=StaleStore())

		self.r1.refresh_from_db()
		self.assertEqual(self.r1.paid_amount, Decimal('0.00'))
		self.assertEqual(self.r1.status, AccountReceivable.Status.PENDING)
		self.assertEqual(self.r1.version, 0)
		self.assertFalse(CustomerCreditPayment.objects.exists())
		self.assertFalse(CreditPaymentAllocation.objects.exists())
		self.assertFalse(CustomerCreditHistory.objects.exists())

	def test_database_error_becomes_persistence_failure(self):
		with patch.object(CreditPaymentAllocation.objects, 'bulk_create', side_effect=DatabaseError('disco cheio')):
			with self.assertLogs('finance.services', level='ERROR'):
				with self.assertRaises(PersistenceFailure) as ctx:
					register_credit_payment(self.customer, '50.00', self.user)
		self.assertTrue(ctx.exception.retryable)
		self.r1.refresh_from_db()
		self.assertEqual(self.r1.paid_amount, Decimal('0.00'))
		self.assertFalse(CustomerCreditPayment.objects.exists())

	def test_replay_does_not_reload_receivables(self):
		allocation_id = uuid.uuid4()
		first = register_credit_payment(self.customer, '10.00', self.user, allocation_id=allocation_id)
		with patch.object(DjangoReceivableStore, 'list_pending', side_effect=AssertionError('não deveria reler')):
			again = register_credit_payment(self.customer, '10.00', self.user, allocation_id=allocation_id)
		self.assertEqual(first.pk, again.pk)


class PayReceivableTests(FinanceFixturesMixin, TestCase):
	def test_partial_payment_of_one_receivable(self):
		payment = pay_receivable(self.r2, '40.00', self.user)
		self.r2.refresh_from_db()
		self.r1.refresh_from_db()
		self.assertEqual(self.r2.paid_amount, Decimal('40.00'))
		self.assertEqual(self.r2.status, AccountReceivable.Status.PENDING)
		self.assertEqual(self.r1.paid_amount, Decimal('0.00'))
		self.assertEqual(payment.allocations.get().receivable, self.r2)

		history = CustomerCreditHistory.objects.get(customer=self.customer)
		self.assertEqual(history.old_value, Decimal('150.00'))
		self.assertEqual(history.new_value, Decimal('110.00'))

	def test_full_payment_marks_paid(self):
		pay_receivable(self.r2, '50.00', self.user)
		self.r2.refresh_from_db()
		self.assertEqual(self.r2.status, AccountReceivable.Status.PAID)
		self.assertEqual(self.r2.paid_by, self.user)

	def test_amount_above_outstanding(self):
		with self.assertRaises(AmountExceedsBalance):
			pay_receivable(self.r2, '50.01', self.user)

	def test_closed_receivable(self):
		pay_receivable(self.r2, '50.00', self.user)
		self.r2.refresh_from_db()
		with self.assertRaises(NoOpenBalance):
			pay_receivable(self.r2, '1.00', self.user)

	def test_outdated_instance_is_reloaded_before_allocating(self):
		stale = AccountReceivable.objects.get(pk=self.r2.pk)
		pay_receivable(self.r2, '20.00', self.user)

		pay_receivable(stale, '30.00', self.user)

		self.r2.refresh_from_db()
		self.assertEqual(self.r2.paid_amount, Decimal('50.00'))
		self.assertEqual(self.r2.status, AccountReceivable.Status.PAID)
		latest = CustomerCreditHistory.objects.filter(customer=self.customer).order_by('-pk').first()
		self.assertEqual(latest.old_value, Decimal('130.00'))
		self.assertEqual(latest.new_value, Decimal('100.00'))


class ReceivableLifecycleTests(TestCase):
	def setUp(self):
		SalesConfiguration.clear_cache()
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		self.customer = Client.objects.create(name='Carla', credit_limit=Decimal('300.00'))

	def test_create_receivable_uses_configured_term(self):
		config = SalesConfiguration.load()
		receivable = create_receivable(self.customer, '80,50', store=self.store)
		self.assertEqual(receivable.amount, Decimal('80.50'))
		self.assertEqual(receivable.due_date, timezone.localdate() + timedelta(days=config.credit_due_days))
		self.assertEqual(receivable.status, AccountReceivable.Status.PENDING)

	def test_create_receivable_rejects_zero(self):
		with self.assertRaises(ValidationError):
			create_receivable(self.customer, '0')

	def test_status_must_match_paid_amount(self):
		receivable = AccountReceivable(customer=self.customer, amount=Decimal('10.00'), paid_amount=Decimal('10.00'), due_date=date(2024, 1, 1))
		with self.assertRaises(ValidationError):
			receivable.full_clean()

	def test_cancel_receivables_for_sale(self):
		sale = Sale.objects.create(store=self.store, customer=self.customer, total=Decimal('60.00'))
		open_one = create_receivable(self.customer, '60.00', sale=sale, store=self.store)
		paid = AccountReceivable.objects.create(
			customer=self.customer,
			sale=sale,
			amount=Decimal('5.00'),
			paid_amount=Decimal('5.00'),
			status=AccountReceivable.Status.PAID,
			due_date=date(2024, 1, 1),
		)
		self.assertEqual(cancel_receivables_for_sale(sale), 1)
		open_one.refresh_from_db()
		paid.refresh_from_db()
		self.assertEqual(open_one.status, AccountReceivable.Status.CANCELLED)
		self.assertEqual(open_one.version, 1)
		self.assertEqual(paid.status, AccountReceivable.Status.PAID)
		self.assertEqual(self.customer.used_credit, Decimal('0.00'))


class AccountPayableTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('pagador', 'pagador@example.com', 'pw123456')
		self.supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')
		self.account = AccountPayable.objects.create(
			supplier=self.supplier,
			description='Compra de mercadorias',
			amount=Decimal('350.00'),
			due_date=date(2024, 5, 10),
		)

	def test_pay_full_amount_by_default(self):
		payment = pay_account_payable(self.account, actor=self.user)
		self.account.refresh_from_db()
		self.assertEqual(self.account.status, AccountPayable.Status.PAID)
		self.assertEqual(payment.amount_paid, Decimal('350.00'))
		self.assertEqual(payment.payment_method, AccountPayable.PaymentType.BOLETO)
		self.assertEqual(payment.paid_by, self.user)

	def test_pay_with_informed_values(self):
		payment = pay_account_payable(
			self.account,
			amount_paid='340,00',
			payment_date=date(2024, 5, 9),
			payment_method=AccountPayable.PaymentType.PIX,
			actor=self.user,
		)
		self.assertEqual(payment.amount_paid, Decimal('340.00'))
		self.assertEqual(payment.payment_date, date(2024, 5, 9))

	def test_cannot_pay_twice(self):
		pay_account_payable(self.account, actor=self.user)
		with self.assertRaises(ValidationError):
			pay_account_payable(self.account, actor=self.user)
		self.assertEqual(PayablePayment.objects.count(), 1)

	def test_cancel_appends_reason(self):
		account = cancel_account_payable(self.account, actor=self.user, reason='Nota devolvida')
		self.assertEqual(account.status, AccountPayable.Status.CANCELLED)
		self.assertIn('por pagador: Nota devolvida', account.observations)
		with self.assertRaises(ValidationError):
			pay_account_payable(account, actor=self.user)
		with self.assertRaises(ValidationError):
			cancel_account_payable(account, actor=self.user)

	def test_pix_requires_key(self):
		self.account.payment_type = AccountPayable.PaymentType.PIX
		with self.assertRaises(ValidationError):
			self.account.full_clean()

	def test_is_overdue(self):
		self.assertTrue(self.account.is_overdue)
		self.account.due_date = timezone.localdate() + timedelta(days=1)
		self.assertFalse(self.account.is_overdue)


MEDIA_ROOT = tempfile.mkdtemp(prefix='pdv-media-')


def pdf_upload(name='boleto.pdf', size=None):
	content = b'%PDF-1.4 teste' if size is None else b'0' * size
	return SimpleUploadedFile(name, content, content_type='application/pdf')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PayableAuditTests(TestCase):
	@classmethod
	def tearDownClass(cls):
		super().tearDownClass()
		shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

	def setUp(self):
		self.user = User.objects.create_user('pagador', 'pagador@example.com', 'pw123456')
		self.supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')
		self.account = create_account_payable(
			actor=self.user,
			supplier=self.supplier,
			description='Compra de mercadorias',
			amount=Decimal('350.00'),
			due_date=date(2024, 5, 10),
		)

	def actions(self):
		return list(payable_history(self.account).order_by('pk').values_list('action', flat=True))

	def test_create_records_insert(self):
		entry = payable_history(self.account).get()
		self.assertEqual(entry.action, AuditLog.Action.INSERT)
		self.assertEqual(entry.user, self.user)
		self.assertEqual(entry.new_values['amount'], '350.00')
		self.assertEqual(entry.new_values['due_date'], '2024-05-10')
		self.assertIsNone(entry.old_values)
		self.assertEqual(self.account.created_by, self.user)

	def test_update_records_only_changed_fields(self):
		update_account_payable(self.account, actor=self.user, amount=Decimal('360.00'), description='Compra de mercadorias')
		entry = payable_history(self.account).filter(action=AuditLog.Action.UPDATE).get()
		self.assertEqual(entry.old_values, {'amount': '350.00'})
		self.assertEqual(entry.new_values, {'amount': '360.00'})

	def test_update_without_changes_is_not_logged(self):
		update_account_payable(self.account, actor=self.user, description='Compra de mercadorias')
		self.assertEqual(self.actions(), [AuditLog.Action.INSERT])

	def test_pay_and_cancel_are_logged(self):
		pay_account_payable(self.account, actor=self.user)
		other = create_account_payable(
			actor=self.user,
			description='Aluguel',
			amount=Decimal('1200.00'),
			due_date=date(2024, 6, 5),
		)
		cancel_account_payable(other, actor=self.user, reason='Lançada em dobro')

		self.assertEqual(self.actions(), [AuditLog.Action.INSERT, AuditLog.Action.PAYMENT])
		payment_entry = payable_history(self.account).get(action=AuditLog.Action.PAYMENT)
		self.assertEqual(payment_entry.new_values['amount_paid'], '350.00')
		cancel_entry = payable_history(other).get(action=AuditLog.Action.CANCEL)
		self.assertEqual(cancel_entry.new_values, {'status': 'cancelado', 'reason': 'Lançada em dobro'})

	def test_delete_keeps_history(self):
		account_id = self.account.pk
		delete_account_payable(self.account, actor=self.user)
		self.assertFalse(AccountPayable.objects.filter(pk=account_id).exists())
		entry = AuditLog.objects.get(record_id=account_id, action=AuditLog.Action.DELETE)
		self.assertEqual(entry.old_values['description'], 'Compra de mercadorias')

	def test_paid_account_cannot_be_deleted(self):
		pay_account_payable(self.account, actor=self.user)
		with self.assertRaises(ValidationError):
			delete_account_payable(self.account, actor=self.user)
		self.assertTrue(AccountPayable.objects.filter(pk=self.account.pk).exists())

	def test_audit_entries_are_immutable(self):
		entry = payable_history(self.account).get()
		entry.action = AuditLog.Action.DELETE
		with self.assertRaises(ValidationError):
			entry.save()

	def test_payment_receipt(self):
		payment = pay_account_payable(self.account, actor=self.user, receipt=pdf_upload('comprovante.pdf'))
		self.assertTrue(payment.receipt.name.startswith('payables/receipts/'))
		entry = payable_history(self.account).get(action=AuditLog.Action.PAYMENT)
		self.assertEqual(entry.new_values['receipt'], payment.receipt.name)

	def test_invalid_receipt_keeps_account_open(self):
		with self.assertRaises(ValidationError):
			pay_account_payable(self.account, actor=self.user, receipt=pdf_upload('comprovante.exe'))
		self.account.refresh_from_db()
		self.assertEqual(self.account.status, AccountPayable.Status.OPEN)
		self.assertFalse(PayablePayment.objects.exists())

	def test_attachment(self):
		attachment = add_payable_attachment(self.account, pdf_upload(), actor=self.user)
		self.assertEqual(attachment.filename, 'boleto.pdf')
		self.assertEqual(attachment.mime_type, 'application/pdf')
		self.assertGreater(attachment.file_size, 0)
		self.assertEqual(list(self.account.attachments.all()), [attachment])
		self.assertEqual(self.actions(), [AuditLog.Action.INSERT, AuditLog.Action.ATTACHMENT])

	def test_attachment_rules(self):
		with self.assertRaisesMessage(ValidationError, 'Tipo de arquivo não permitido'):
			add_payable_attachment(self.account, pdf_upload('planilha.xlsx'), actor=self.user)
		with self.assertRaisesMessage(ValidationError, 'Arquivo muito grande'):
			add_payable_attachment(self.account, pdf_upload(size=10 * 1024 * 1024 + 1), actor=self.user)
		self.assertFalse(PayableAttachment.objects.exists())


CSV_HEADER = 'nome_fornecedor;cnpj_cpf;descricao;valor;vencimento;tipo_pagamento;centro_custo;dados_pagamento\n'


class PayableImportTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('pagador', 'pagador@example.com', 'pw123456')
		self.supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')

	def run_import(self, body, encoding='utf-8'):
		upload = SimpleUploadedFile('contas.csv', (CSV_HEADER + body).encode(encoding), content_type='text/csv')
		return import_payables_csv(upload, actor=self.user)

	def test_imports_rows_and_creates_registrations(self):
		result = self.run_import(
			'Distribuidora Sul;12.345.678/0001-90;Compra de arroz;R$ 1.250,50;10/06/2024;boleto;Mercadorias;23790000000000000000\n'
			'Gráfica Nova;98765432000110;Panfletos;300,00;2024-06-15;pix;Marketing;grafica@pix.com\n'
		)

		self.assertEqual(result.success, 2)
		self.assertEqual(result.errors, [])
		self.assertEqual(result.created_suppliers, ['Gráfica Nova'])
		self.assertEqual(result.created_cost_centers, ['Mercadorias', 'Marketing'])

		rice = AccountPayable.objects.get(description='Compra de arroz')
		self.assertEqual(rice.supplier, self.supplier)
		self.assertEqual(rice.amount, Decimal('1250.50'))
		self.assertEqual(rice.due_date, date(2024, 6, 10))
		self.assertEqual(rice.payment_type, AccountPayable.PaymentType.BOLETO)
		self.assertEqual(rice.barcode, '23790000000000000000')
		self.assertEqual(rice.cost_center.code, 'MER')
		self.assertEqual(rice.created_by, self.user)

		flyers = AccountPayable.objects.get(description='Panfletos')
		self.assertEqual(flyers.payment_type, AccountPayable.PaymentType.PIX)
		self.assertEqual(flyers.pix_key, 'grafica@pix.com')
		self.assertEqual(flyers.supplier.person_type, Supplier.PersonType.LEGAL)
		self.assertEqual(flyers.cost_center.code, 'MAR')
		self.assertEqual(AuditLog.objects.filter(action=AuditLog.Action.INSERT).count(), 2)

	def test_row_errors_do_not_stop_the_import(self):
		result = self.run_import(
			';;;;;;;\n'
			'Papelaria Central;;Material de escritório;50,00;15/06/2024;cartao;Escritório;\n'
			'Distribuidora Sul;;Frete;abc;15/06/2024;boleto;;\n'
			'Distribuidora Sul;;Frete;80,00;31/02/2024;boleto;;\n'
			'distribuidora sul;;Frete;80,00;20/06/2024;transferência;;Banco X\n'
		)

		self.assertEqual(result.success, 1)
		self.assertEqual([error['row'] for error in result.errors], [2, 3, 4, 5])
		self.assertEqual(result.errors[0]['error'], 'Campos obrigatórios não preenchidos')
		self.assertIn('CPF ou CNPJ', result.errors[1]['error'])
		self.assertIn('Valor inválido', result.errors[2]['error'])
		self.assertIn('Data de vencimento inválida', result.errors[3]['error'])
		# o centro de custo da linha recusada não fica cadastrado
		self.assertEqual(result.created_cost_centers, [])
		self.assertFalse(CostCenter.objects.exists())

		freight = AccountPayable.objects.get()
		self.assertEqual(freight.supplier, self.supplier)
		self.assertEqual(freight.payment_type, AccountPayable.PaymentType.TRANSFERENCIA)
		self.assertEqual(freight.observations, 'Banco X')

	def test_latin1_file_and_comma_delimiter(self):
		text = (
			'nome_fornecedor,cnpj_cpf,descricao,valor,vencimento,tipo_pagamento,centro_custo,dados_pagamento\n'
			'José Silva,123.456.789-09,Manutenção,120.00,01/07/2024,,Manutenção,\n'
		)
		upload = SimpleUploadedFile('contas.csv', text.encode('latin-1'), content_type='text/csv')
		result = import_payables_csv(upload, actor=self.user)

		self.assertEqual(result.success, 1)
		account = AccountPayable.objects.get()
		self.assertEqual(account.description, 'Manutenção')
		self.assertEqual(account.payment_type, AccountPayable.PaymentType.BOLETO)
		self.assertEqual(account.supplier.person_type, Supplier.PersonType.INDIVIDUAL)
		self.assertEqual(account.supplier.document, '12345678909')

	def test_cost_center_codes_are_unique(self):
		CostCenter.objects.create(code='MAN', name='Manutenção predial')
		result = self.run_import('Distribuidora Sul;;Peças;10,00;01/07/2024;boleto;Manutenção de frota;\n')
		self.assertEqual(result.success, 1)
		self.assertTrue(CostCenter.objects.filter(code='MAN2', name='Manutenção de frota').exists())

	def test_missing_columns(self):
		upload = SimpleUploadedFile('contas.csv', b'fornecedor;valor\nX;10,00\n', content_type='text/csv')
		with self.assertRaises(ValidationError):
			import_payables_csv(upload, actor=self.user)

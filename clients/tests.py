from datetime import date
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.test import TestCase

from finance.models import AccountReceivable

from .models import Client, CustomerCreditHistory, DeliveryAddress


class ClientModelTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('gerente', 'gerente@example.com', 'pw123456')

	def test_document_is_normalized(self):
		client = Client.objects.create(name='Ana Silva', document='123.456.789-01')
		self.assertEqual(client.document, '12345678901')
		self.assertEqual(client.formatted_document, '123.456.789-01')
		self.assertIn('Ana Silva', str(client))

	def test_invalid_document(self):
		with self.assertRaises(ValidationError):
			Client.objects.create(name='Ana', document='1234')

	def test_document_is_optional_and_unique_when_present(self):
		Client.objects.create(name='Sem documento')
		Client.objects.create(name='Outro sem documento')
		Client.objects.create(name='Ana', document='12345678901')
		with self.assertRaises(IntegrityError):
			with transaction.atomic():
				Client.objects.create(name='Cópia', document='123.456.789-01')

	def test_limit_change_is_recorded(self):
		client = Client.objects.create(name='Ana', credit_limit=Decimal('100.00'))
		self.assertFalse(client.credit_history.exists())

		client.credit_limit = Decimal('250.00')
		client.updated_by = self.user
		client.save()

		entry = client.credit_history.get()
		self.assertEqual(entry.action_type, CustomerCreditHistory.ActionType.LIMIT_CHANGE)
		self.assertEqual(entry.old_value, Decimal('100.00'))
		self.assertEqual(entry.new_value, Decimal('250.00'))
		self.assertEqual(entry.created_by, self.user)

	def test_saving_without_limit_change_adds_no_history(self):
		client = Client.objects.create(name='Ana', credit_limit=Decimal('100.00'))
		client.phone = '11 99999-0000'
		client.save()
		self.assertEqual(client.credit_history.count(), 0)

	def test_negative_limit_rejected_by_clean(self):
		client = Client(name='Ana', credit_limit=Decimal('-1'))
		with self.assertRaises(ValidationError):
			client.full_clean()


class CreditBalanceTests(TestCase):
	def setUp(self):
		self.client_obj = Client.objects.create(name='Bruno', credit_limit=Decimal('500.00'))

	def _receivable(self, amount, paid='0', status=AccountReceivable.Status.PENDING):
		return AccountReceivable.objects.create(
			customer=self.client_obj,
			amount=Decimal(amount),
			paid_amount=Decimal(paid),
			due_date=date(2024, 1, 1),
			status=status,
		)

	def test_used_credit_sums_outstanding_of_pending(self):
		self._receivable('100.00', paid='30.00')
		self._receivable('50.00')
		self._receivable('80.00', paid='80.00', status=AccountReceivable.Status.PAID)
		self._receivable('40.00', status=AccountReceivable.Status.CANCELLED)

		self.assertEqual(self.client_obj.used_credit, Decimal('120.00'))
		self.assertEqual(self.client_obj.available_credit, Decimal('380.00'))

	def test_credit_summary(self):
		self.assertEqual(
			self.client_obj.credit_summary(),
			{
				'credit_limit': Decimal('500.00'),
				'used_credit': Decimal('0.00'),
				'available_credit': Decimal('500.00'),
			},
		)


class CustomerCreditHistoryTests(TestCase):
	def test_history_is_append_only(self):
		client = Client.objects.create(name='Carla')
		entry = CustomerCreditHistory.objects.create(
			customer=client,
			action_type=CustomerCreditHistory.ActionType.PAYMENT,
			old_value=Decimal('10.00'),
			new_value=Decimal('0.00'),
		)
		entry.notes = 'alterado'
		with self.assertRaises(ValidationError):
			entry.save()


class DeliveryAddressTests(TestCase):
	def setUp(self):
		self.client_obj = Client.objects.create(name='Diego')

	def test_single_default_address(self):
		home = DeliveryAddress.objects.create(client=self.client_obj, name='Casa', address='Rua A', is_default=True)
		work = DeliveryAddress.objects.create(client=self.client_obj, name='Trabalho', address='Rua B', is_default=True)
		home.refresh_from_db()
		self.assertFalse(home.is_default)
		self.assertTrue(work.is_default)
		self.assertEqual(list(self.client_obj.delivery_addresses.all()), [work, home])

	def test_full_address(self):
		address = DeliveryAddress(
			client=self.client_obj,
			name='Casa',
			address='Rua das Flores',
			number='10',
			district='Centro',
			city='Curitiba',
			state='PR',
			zip_code='80000-000',
		)
		self.assertEqual(address.full_address, 'Rua das Flores, 10, Centro - Curitiba - PR - 80000-000')

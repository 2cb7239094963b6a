import shutil
import tempfile
import uuid
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import override_settings
from django.urls import reverse
from django.utils import timezone
from rest_framework import status
from rest_framework.authtoken.models import Token
from rest_framework.test import APITestCase

from clients.models import Client
from core.models import SalesConfiguration, Store, UserRoleAssignment, UserStoreAccess
from core.roles import Role
from finance.allocation import PersistenceFailure
from finance.models import AccountPayable, AccountReceivable, AuditLog, CustomerCreditPayment, PayablePayment
from products.models import Product, Supplier
from products.services import adjust_stock, set_product_price
from sales.models import CashRegisterClosing, PaymentMethod, Sale


def create_user(username, *roles):
	user = User.objects.create_user(username, f'{username}@example.com', 'pw123456')
	for role in roles:
		UserRoleAssignment.objects.create(user=user, role=role)
	return user


def money(value):
	return Decimal(str(value)).quantize(Decimal('0.01'))


class PdvAPITestCase(APITestCase):
	def setUp(self):
		SalesConfiguration.clear_cache()
		self.store = Store.objects.create(name='Loja Centro', code='LJ1', pdv_auto_print=True)
		self.operador = create_user('operador', Role.OPERADOR)
		self.customer = Client.objects.create(name='Ana Silva', credit_limit=Decimal('100.00'))
		self.product = Product.objects.create(name='Arroz 5kg')
		set_product_price(self.product, self.store, sale_price='25.00', cost_price='18.00')
		adjust_stock(self.product, self.store, 10)
		self.cash = PaymentMethod.objects.get(code='cash')
		self.store_credit = PaymentMethod.objects.get(code='store_credit')

	def authenticate(self, user):
		self.client.force_authenticate(user=user)

	def sale_payload(self, **extra):
		payload = {
			'customer': self.customer.pk,
			'items': [{'product': self.product.pk, 'quantity': '2'}],
			'payments': [{'payment_method': self.cash.pk, 'amount': '50.00'}],
		}
		payload.update(extra)
		return payload


class AuthenticationAPITests(PdvAPITestCase):
	def test_login_returns_token_and_roles(self):
		resp = self.client.post(reverse('api-login'), {'username': 'operador', 'password': 'pw123456'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual(payload['token'], Token.objects.get(user=self.operador).key)
		self.assertEqual(payload['roles'], ['operador'])
		self.assertIn('sell', payload['capabilities'])

		self.client.credentials(HTTP_AUTHORIZATION=f"Token {payload['token']}")
		me = self.client.get(reverse('api-me'))
		self.assertEqual(me.status_code, status.HTTP_200_OK)
		self.assertEqual(me.json()['store']['code'], 'LJ1')

	def test_login_without_roles_is_refused(self):
		create_user('novato')
		resp = self.client.post(reverse('api-login'), {'username': 'novato', 'password': 'pw123456'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
		self.assertIn('Usuário inativo', resp.json()['detail'])
		self.assertFalse(Token.objects.filter(user__username='novato').exists())

	def test_wrong_password(self):
		resp = self.client.post(reverse('api-login'), {'username': 'operador', 'password': 'errada'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

	def test_requires_authentication(self):
		resp = self.client.get(reverse('api-me'))
		self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)

	def test_user_without_roles_is_blocked_everywhere(self):
		self.authenticate(create_user('novato'))
		for url in (reverse('api-me'), reverse('products-list'), reverse('api-dashboard')):
			with self.subTest(url=url):
				resp = self.client.get(url)
				self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
				self.assertIn('Usuário inativo', resp.json()['detail'])


class CapabilityAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.leitor = create_user('leitor', Role.LEITOR)
		UserStoreAccess.objects.create(user=self.leitor, store=self.store)

	def test_leitor_reads_but_does_not_sell(self):
		self.authenticate(self.leitor)
		self.assertEqual(self.client.get(reverse('products-list')).status_code, status.HTTP_200_OK)
		self.assertEqual(self.client.get(reverse('sales-list')).status_code, status.HTTP_200_OK)
		resp = self.client.post(reverse('api-pdv-sales'), self.sale_payload(), format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
		resp = self.client.post(reverse('customers-list'), {'name': 'Novo'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

	def test_operador_cannot_pay_bills(self):
		account = AccountPayable.objects.create(description='Aluguel', amount=Decimal('900.00'), due_date=date(2024, 5, 1))
		self.authenticate(self.operador)
		resp = self.client.post(reverse('payables-pay', args=[account.pk]), {}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

	def test_leitor_without_store_access(self):
		other = create_user('sem_loja', Role.LEITOR)
		self.authenticate(other)
		resp = self.client.get(reverse('sales-list'))
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)
		self.assertEqual(resp.json()['detail'], 'Nenhuma loja disponível para este usuário.')


class CatalogAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.authenticate(self.operador)

	def test_product_list_has_store_price(self):
		resp = self.client.get(reverse('products-list'))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		row = resp.json()['results'][0]
		self.assertEqual(row['sale_price'], '25.00')
		self.assertEqual(row['stock_quantity'], '10.000')
		self.assertEqual(row['internal_code'], self.product.internal_code)

	def test_search(self):
		resp = self.client.get(reverse('products-search'), {'q': 'arroz'})
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		results = resp.json()['results']
		self.assertEqual([row['id'] for row in results], [self.product.pk])
		self.assertEqual(money(results[0]['sale_price']), Decimal('25.00'))

	def test_set_price(self):
		resp = self.client.post(reverse('products-price', args=[self.product.pk]), {'sale_price': '27.90'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(self.product.price_for(self.store), Decimal('27.90'))
		self.assertEqual(self.product.current_pricing(self.store).cost_price, Decimal('18.00'))

	def test_stock_adjustment(self):
		resp = self.client.post(reverse('products-stock', args=[self.product.pk]), {'quantity': '-3', 'notes': 'Avaria'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(Decimal(str(resp.json()['quantity'])), Decimal('7'))
		resp = self.client.get(reverse('products-stock', args=[self.product.pk]))
		movements = resp.json()['movements']
		self.assertEqual(movements[0]['movement_type'], 'adjustment')
		self.assertEqual(movements[0]['notes'], 'Avaria')

	def test_stock_receipt(self):
		supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')
		resp = self.client.post(
			reverse('stock-receipts-list'),
			{
				'product': self.product.pk,
				'supplier': supplier.pk,
				'quantity': '5',
				'cost_price': '19.00',
				'sale_price': '26.00',
			},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		self.assertEqual(resp.json()['previous_sale_price'], '25.00')
		self.assertEqual(self.product.stock_for(self.store), Decimal('15.000'))
		self.assertEqual(self.product.price_for(self.store), Decimal('26.00'))

	def test_payment_methods_list_only_active(self):
		self.cash.active = False
		self.cash.save()
		codes = [row['code'] for row in self.client.get(reverse('payment-methods-list')).json()]
		self.assertNotIn('cash', codes)
		self.assertIn('store_credit', codes)
		codes = [row['code'] for row in self.client.get(reverse('payment-methods-list'), {'all': '1'}).json()]
		self.assertIn('cash', codes)


class PdvAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.authenticate(self.operador)

	def test_cart_pricing(self):
		resp = self.client.post(
			reverse('api-pdv-cart'),
			{
				'customer': self.customer.pk,
				'items': [{'product': self.product.pk, 'quantity': '2'}],
				'discount_type': 'percentage',
				'discount_value': '10',
			},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual(money(payload['subtotal']), Decimal('50.00'))
		self.assertEqual(money(payload['total']), Decimal('45.00'))
		self.assertEqual(money(payload['customer']['available_credit']), Decimal('100.00'))

	def test_cart_with_unknown_product(self):
		resp = self.client.post(reverse('api-pdv-cart'), {'items': [{'product': 999999}]}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Produto não encontrado ou inativo.')

	def test_finalize_sale(self):
		resp = self.client.post(
			reverse('api-pdv-sales'),
			self.sale_payload(
				payments=[
					{'payment_method': self.cash.pk, 'amount': '20.00'},
					{'payment_method': self.store_credit.pk, 'amount': '30.00', 'installments': 3},
				],
			),
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		payload = resp.json()
		self.assertEqual(payload['sale_number'], 'LJ1-000001')
		self.assertEqual(payload['total'], '50.00')
		self.assertEqual(payload['payment_status'], 'partial')
		self.assertTrue(payload['auto_print'])
		self.assertEqual(payload['print_format'], 'a4')
		self.assertEqual(len(payload['items']), 1)
		self.assertEqual(self.product.stock_for(self.store), Decimal('8.000'))
		self.assertEqual(AccountReceivable.objects.get(sale_id=payload['id']).amount, Decimal('30.00'))

	def test_finalize_sale_rules_return_detail(self):
		resp = self.client.post(
			reverse('api-pdv-sales'),
			self.sale_payload(payments=[{'payment_method': self.store_credit.pk, 'amount': '150.00'}], items=[{'product': self.product.pk, 'quantity': '6'}]),
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Limite de crédito insuficiente.')

		resp = self.client.post(reverse('api-pdv-sales'), self.sale_payload(payments=[]), format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Selecione uma forma de pagamento.')
		self.assertFalse(Sale.objects.exists())

	def test_quote_flow(self):
		resp = self.client.post(
			reverse('quotes-list'),
			{'customer': self.customer.pk, 'items': [{'product': self.product.pk, 'quantity': '2'}], 'notes': 'Aguardar'},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		quote_id = resp.json()['id']
		number = resp.json()['sale_number']

		listing = self.client.get(reverse('quotes-list'), {'q': 'ana'}).json()
		self.assertEqual([row['id'] for row in listing], [quote_id])
		detail = self.client.get(reverse('quotes-detail', args=[quote_id])).json()
		self.assertEqual(money(detail['cart']['total']), Decimal('50.00'))

		resp = self.client.post(
			reverse('quotes-convert', args=[quote_id]),
			{'payments': [{'payment_method': self.cash.pk, 'amount': '50.00'}]},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['sale_number'], number)
		self.assertEqual(resp.json()['status'], 'completed')
		self.assertEqual(self.client.get(reverse('quotes-detail', args=[quote_id])).status_code, status.HTTP_404_NOT_FOUND)

	def test_delete_quote(self):
		resp = self.client.post(
			reverse('quotes-list'),
			{'customer': self.customer.pk, 'items': [{'product': self.product.pk}]},
			format='json',
		)
		quote_id = resp.json()['id']
		resp = self.client.delete(reverse('quotes-detail', args=[quote_id]))
		self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
		self.assertFalse(Sale.objects.filter(pk=quote_id).exists())


class SaleAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.authenticate(self.operador)
		resp = self.client.post(reverse('api-pdv-sales'), self.sale_payload(), format='json')
		self.sale_id = resp.json()['id']
		self.sale_number = resp.json()['sale_number']

	def test_receipt_pdf(self):
		for print_format in ('a4', 'bobina'):
			with self.subTest(print_format=print_format):
				resp = self.client.get(reverse('sales-receipt', args=[self.sale_id]), {'print_format': print_format})
				self.assertEqual(resp.status_code, status.HTTP_200_OK)
				self.assertEqual(resp['Content-Type'], 'application/pdf')
				self.assertTrue(resp.content.startswith(b'%PDF'))

	def test_receipt_invalid_format(self):
		resp = self.client.get(reverse('sales-receipt', args=[self.sale_id]), {'print_format': 'carta'})
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

	def test_replicate(self):
		resp = self.client.post(reverse('sales-replicate'), {'sale_number': self.sale_number}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['customer']['id'], self.customer.pk)
		self.assertEqual(money(resp.json()['total']), Decimal('50.00'))

		resp = self.client.post(reverse('sales-replicate'), {'sale_number': 'LJ1-999999'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Pedido não encontrado.')

	def test_cancel(self):
		url = reverse('sales-cancel', args=[self.sale_id])
		resp = self.client.post(url, {'reason': ''}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Informe o motivo do cancelamento.')

		resp = self.client.post(url, {'reason': 'Cliente desistiu'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['status'], 'cancelled')
		self.assertEqual(self.product.stock_for(self.store), Decimal('10.000'))

		resp = self.client.post(url, {'reason': 'De novo'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Venda já está cancelada.')


class CreditPaymentAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.pagador = create_user('pagador', Role.PAGADOR)
		self.r1 = AccountReceivable.objects.create(customer=self.customer, store=self.store, amount=Decimal('100.00'), due_date=date(2024, 1, 1))
		self.r2 = AccountReceivable.objects.create(customer=self.customer, store=self.store, amount=Decimal('50.00'), due_date=date(2024, 2, 1))
		self.authenticate(self.pagador)

	def post_payment(self, amount, **extra):
		payload = {'customer': self.customer.pk, 'amount': amount, **extra}
		return self.client.post(reverse('credit-payments-list'), payload, format='json')

	def test_payment_is_allocated_oldest_first(self):
		resp = self.post_payment('120.00', payment_method=self.cash.pk)
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		payload = resp.json()
		self.assertEqual(payload['amount'], '120.00')
		self.assertEqual(
			[(row['receivable'], row['amount'], row['status']) for row in payload['allocations']],
			[(self.r1.pk, '100.00', 'paid'), (self.r2.pk, '20.00', 'pending')],
		)
		self.assertEqual(money(payload['credit']['used_credit']), Decimal('30.00'))
		self.assertEqual(money(payload['credit']['available_credit']), Decimal('70.00'))

	def test_customer_credit_view(self):
		self.post_payment('120.00')
		resp = self.client.get(reverse('customers-credit', args=[self.customer.pk]))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual([row['id'] for row in payload['receivables']], [self.r2.pk])
		self.assertEqual(payload['receivables'][0]['outstanding'], '30.00')
		history = self.client.get(reverse('customers-history', args=[self.customer.pk])).json()
		self.assertEqual(history['count'], 1)
		self.assertEqual(history['results'][0]['action_type'], 'payment')

	def test_business_errors(self):
		cases = (
			('-5.00', 'Valor inválido.'),
			('10.005', 'O valor deve ter no máximo duas casas decimais.'),
			('200.00', 'Valor maior que o saldo devedor.'),
		)
		for amount, message in cases:
			with self.subTest(amount=amount):
				resp = self.post_payment(amount)
				self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
				self.assertEqual(resp.json(), {'detail': message, 'retryable': False})
		self.assertFalse(CustomerCreditPayment.objects.exists())

	def test_no_open_balance(self):
		other = Client.objects.create(name='Sem dívida')
		resp = self.client.post(reverse('credit-payments-list'), {'customer': other.pk, 'amount': '10.00'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Nenhum crediário em aberto.')

	def test_persistence_failure_is_retryable(self):
		with patch('api.views.register_credit_payment', side_effect=PersistenceFailure()):
			resp = self.post_payment('10.00')
		self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)
		self.assertTrue(resp.json()['retryable'])

	def test_replay_returns_same_payment(self):
		allocation_id = str(uuid.uuid4())
		first = self.post_payment('10.00', allocation_id=allocation_id)
		second = self.post_payment('10.00', allocation_id=allocation_id)
		self.assertEqual(first.json()['id'], second.json()['id'])
		self.assertEqual(second.json()['allocation_id'], allocation_id)
		self.assertEqual(CustomerCreditPayment.objects.count(), 1)

	def test_pay_single_receivable(self):
		resp = self.client.post(reverse('receivables-pay', args=[self.r2.pk]), {'amount': '50.00'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['receivable']['status'], 'paid')
		self.r1.refresh_from_db()
		self.assertEqual(self.r1.paid_amount, Decimal('0.00'))

	def test_overdue_filter(self):
		AccountReceivable.objects.create(
			customer=self.customer,
			amount=Decimal('10.00'),
			due_date=timezone.localdate() + timedelta(days=10),
		)
		resp = self.client.get(reverse('receivables-list'), {'overdue': '1'})
		self.assertEqual([row['id'] for row in resp.json()['results']], [self.r1.pk, self.r2.pk])

	def test_leitor_cannot_receive(self):
		self.authenticate(create_user('leitor', Role.LEITOR))
		resp = self.post_payment('10.00')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class PayableAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.pagador = create_user('pagador', Role.PAGADOR)
		self.supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')
		self.authenticate(self.pagador)

	def create_account(self, **extra):
		payload = {
			'supplier': self.supplier.pk,
			'description': 'Compra de mercadorias',
			'amount': '350.00',
			'due_date': '2024-05-10',
			**extra,
		}
		return self.client.post(reverse('payables-list'), payload, format='json')

	def test_create_and_pay(self):
		resp = self.create_account()
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		account_id = resp.json()['id']
		self.assertEqual(resp.json()['status'], 'em_aberto')

		resp = self.client.post(reverse('payables-pay', args=[account_id]), {'payment_method': 'pix'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['account']['status'], 'pago')
		self.assertEqual(resp.json()['payment']['amount_paid'], '350.00')

		resp = self.client.post(reverse('payables-pay', args=[account_id]), {}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Esta conta não está em aberto.')

	def test_pix_requires_key(self):
		resp = self.create_account(payment_type='pix')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('pix_key', resp.json())

	def test_cancel(self):
		account_id = self.create_account().json()['id']
		resp = self.client.post(reverse('payables-cancel', args=[account_id]), {'reason': 'Duplicada'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['status'], 'cancelado')

	def test_filters(self):
		self.create_account(due_date='2024-05-10')
		self.create_account(due_date=(timezone.localdate() + timedelta(days=5)).isoformat())
		overdue = self.client.get(reverse('payables-list'), {'overdue': '1'}).json()
		self.assertEqual(overdue['count'], 1)
		window = self.client.get(reverse('payables-list'), {'due_from': '2024-05-01', 'due_until': '2024-05-31'}).json()
		self.assertEqual(window['count'], 1)

	def test_impossible_due_date_filter(self):
		for params in ({'due_from': '2024-02-30'}, {'due_until': '10/05/2024'}):
			with self.subTest(params=params):
				resp = self.client.get(reverse('payables-list'), params)
				self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
				self.assertIn(next(iter(params)), resp.json())

	def test_update_and_history(self):
		account_id = self.create_account().json()['id']
		resp = self.client.patch(reverse('payables-detail', args=[account_id]), {'amount': '400.00'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['amount'], '400.00')
		self.client.post(reverse('payables-pay', args=[account_id]), {}, format='json')

		resp = self.client.get(reverse('payables-history', args=[account_id]))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		entries = resp.json()
		self.assertEqual([entry['action'] for entry in entries], ['payment', 'update', 'insert'])
		self.assertEqual(entries[1]['old_values'], {'amount': '350.00'})
		self.assertEqual(entries[0]['user_name'], 'pagador')

	def test_delete_is_audited(self):
		admin = create_user('gerente', Role.ADMIN)
		account_id = self.create_account().json()['id']
		self.authenticate(admin)
		resp = self.client.delete(reverse('payables-detail', args=[account_id]))
		self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
		entry = AuditLog.objects.get(record_id=account_id, action=AuditLog.Action.DELETE)
		self.assertEqual(entry.user, admin)

	def test_import_csv(self):
		content = (
			'nome_fornecedor;cnpj_cpf;descricao;valor;vencimento;tipo_pagamento;centro_custo;dados_pagamento\n'
			'Distribuidora Sul;12345678000190;Compra de feijão;R$ 500,00;20/06/2024;boleto;Mercadorias;\n'
			';;;;;;;\n'
		).encode('utf-8')
		upload = SimpleUploadedFile('contas.csv', content, content_type='text/csv')
		resp = self.client.post(reverse('payables-import-csv'), {'file': upload}, format='multipart')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual(payload['success'], 1)
		self.assertEqual(payload['errors'], [{'row': 3, 'error': 'Campos obrigatórios não preenchidos'}])
		self.assertEqual(payload['created_cost_centers'], ['Mercadorias'])
		self.assertEqual(AccountPayable.objects.get().supplier, self.supplier)

	def test_import_csv_requires_manage_payables(self):
		self.authenticate(self.operador)
		upload = SimpleUploadedFile('contas.csv', b'descricao;valor;vencimento\n', content_type='text/csv')
		resp = self.client.post(reverse('payables-import-csv'), {'file': upload}, format='multipart')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class DashboardAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.other_store = Store.objects.create(name='Loja Bairro', code='LJ2')
		self.authenticate(self.operador)
		self.client.post(reverse('api-pdv-sales'), self.sale_payload(), format='json')

	def test_operador_sees_all_stores_by_default(self):
		resp = self.client.get(reverse('api-dashboard'))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertIsNone(payload['store'])
		self.assertEqual(payload['sales']['today']['count'], 1)

	def test_store_header(self):
		resp = self.client.get(reverse('api-dashboard'), HTTP_X_STORE='LJ2')
		self.assertEqual(resp.json()['store'], 'LJ2')
		self.assertEqual(resp.json()['sales']['today']['count'], 0)

	def test_leitor_is_scoped_to_linked_store(self):
		leitor = create_user('leitor', Role.LEITOR)
		UserStoreAccess.objects.create(user=leitor, store=self.store)
		self.authenticate(leitor)
		resp = self.client.get(reverse('api-dashboard'))
		self.assertEqual(resp.json()['store'], 'LJ1')

	def test_cash_summary(self):
		resp = self.client.get(reverse('api-dashboard-cash'))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual(payload['store'], 'LJ1')
		self.assertEqual(money(payload['cash_in']), Decimal('50.00'))
		self.assertEqual(payload['by_payment_method'][0]['code'], 'cash')

	def test_cash_summary_invalid_date(self):
		resp = self.client.get(reverse('api-dashboard-cash'), {'date': '31/12/2024'})
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

	def test_cash_summary_impossible_date(self):
		resp = self.client.get(reverse('api-dashboard-cash'), {'date': '2024-02-30'})
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('date', resp.json())


MEDIA_ROOT = tempfile.mkdtemp(prefix='pdv-api-media-')


@override_settings(MEDIA_ROOT=MEDIA_ROOT)
class PayableFilesAPITests(PdvAPITestCase):
	@classmethod
	def tearDownClass(cls):
		super().tearDownClass()
		shutil.rmtree(MEDIA_ROOT, ignore_errors=True)

	def setUp(self):
		super().setUp()
		self.pagador = create_user('pagador', Role.PAGADOR)
		self.account = AccountPayable.objects.create(
			description='Energia',
			amount=Decimal('300.00'),
			due_date=date(2024, 6, 10),
		)
		self.authenticate(self.pagador)

	def test_pay_with_receipt(self):
		receipt = SimpleUploadedFile('comprovante.png', b'\x89PNG teste', content_type='image/png')
		resp = self.client.post(
			reverse('payables-pay', args=[self.account.pk]),
			{'payment_method': 'pix', 'receipt': receipt},
			format='multipart',
		)
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertIn('payables/receipts/', resp.json()['payment']['receipt'])
		self.assertTrue(PayablePayment.objects.get().receipt.name.endswith('.png'))

	def test_receipt_type_is_checked(self):
		receipt = SimpleUploadedFile('comprovante.txt', b'texto', content_type='text/plain')
		resp = self.client.post(
			reverse('payables-pay', args=[self.account.pk]),
			{'receipt': receipt},
			format='multipart',
		)
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('receipt', resp.json()['errors'])
		self.account.refresh_from_db()
		self.assertEqual(self.account.status, AccountPayable.Status.OPEN)

	def test_attachments(self):
		url = reverse('payables-attachments', args=[self.account.pk])
		upload = SimpleUploadedFile('fatura.pdf', b'%PDF-1.4 teste', content_type='application/pdf')
		resp = self.client.post(url, {'file': upload}, format='multipart')
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		self.assertEqual(resp.json()['filename'], 'fatura.pdf')
		self.assertEqual(resp.json()['uploaded_by_name'], 'pagador')

		listed = self.client.get(url).json()
		self.assertEqual([item['filename'] for item in listed], ['fatura.pdf'])
		history = self.client.get(reverse('payables-history', args=[self.account.pk])).json()
		self.assertEqual(history[0]['action'], 'attachment')

	def test_attachment_rules(self):
		url = reverse('payables-attachments', args=[self.account.pk])
		upload = SimpleUploadedFile('script.sh', b'echo', content_type='text/x-sh')
		resp = self.client.post(url, {'file': upload}, format='multipart')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('Tipo de arquivo não permitido', resp.json()['detail'])

		self.authenticate(create_user('leitor', Role.LEITOR))
		self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)
		upload = SimpleUploadedFile('fatura.pdf', b'%PDF', content_type='application/pdf')
		resp = self.client.post(url, {'file': upload}, format='multipart')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)


class CashRegisterAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.authenticate(self.operador)
		self.client.post(reverse('api-pdv-sales'), self.sale_payload(), format='json')

	def open_register(self, balance='20,00'):
		return self.client.post(reverse('cash-register-open'), {'opening_balance': balance}, format='json')

	def test_open_move_and_close(self):
		resp = self.open_register()
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		closing_id = resp.json()['id']
		self.assertEqual(resp.json()['status'], 'open')
		self.assertEqual(resp.json()['opening_balance'], '20.00')

		today = self.client.get(reverse('cash-register-today')).json()
		self.assertEqual(today['closing']['id'], closing_id)
		self.assertEqual(money(today['expected']['cash']), Decimal('70.00'))
		self.assertEqual(money(today['summary']['cash_in']), Decimal('50.00'))

		movements_url = reverse('cash-register-movements', args=[closing_id])
		resp = self.client.post(movements_url, {'movement_type': 'sangria', 'amount': '100', 'reason': 'Depósito'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('amount', resp.json()['errors'])
		resp = self.client.post(movements_url, {'movement_type': 'suprimento', 'amount': '10', 'reason': 'Troco'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)

		resp = self.client.post(reverse('cash-register-close', args=[closing_id]), {'cash_counted': '80,00'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		payload = resp.json()
		self.assertEqual(payload['status'], 'closed')
		self.assertEqual(payload['cash_expected'], '80.00')
		self.assertEqual(payload['difference'], '0.00')
		self.assertEqual(len(payload['movements']), 1)

		history = self.client.get(reverse('cash-register-list')).json()
		self.assertEqual([row['id'] for row in history], [closing_id])
		resp = self.client.post(reverse('cash-register-close', args=[closing_id]), {'cash_counted': '80'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

	def test_open_twice(self):
		self.open_register()
		resp = self.open_register()
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertIn('já foi aberto', resp.json()['detail'])
		self.assertEqual(CashRegisterClosing.objects.count(), 1)

	def test_today_without_open_register(self):
		resp = self.client.get(reverse('cash-register-today'))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertIsNone(resp.json()['closing'])
		self.assertEqual(money(resp.json()['expected']['cash']), Decimal('50.00'))

	def test_leitor_reads_but_cannot_operate(self):
		closing_id = self.open_register().json()['id']
		leitor = create_user('leitor', Role.LEITOR)
		UserStoreAccess.objects.create(user=leitor, store=self.store)
		self.authenticate(leitor)
		self.assertEqual(self.client.get(reverse('cash-register-list')).status_code, status.HTTP_200_OK)
		resp = self.client.post(reverse('cash-register-close', args=[closing_id]), {'cash_counted': '70'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

	def test_other_store_register_is_not_visible(self):
		other = Store.objects.create(name='Loja Bairro', code='LJ2')
		closing = CashRegisterClosing.objects.create(store=other, closing_date=timezone.localdate())
		resp = self.client.post(reverse('cash-register-close', args=[closing.pk]), {'cash_counted': '0'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)


class UserAPITests(PdvAPITestCase):
	def setUp(self):
		super().setUp()
		self.admin = create_user('gerente', Role.ADMIN)
		self.authenticate(self.admin)

	def test_list_users_with_roles(self):
		resp = self.client.get(reverse('users-list'))
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		users = {row['username']: row for row in resp.json()['results']}
		self.assertEqual(users['operador']['roles'], ['operador'])
		self.assertEqual(users['gerente']['roles'], ['admin'])

	def test_only_admin_manages_users(self):
		self.authenticate(self.operador)
		self.assertEqual(self.client.get(reverse('users-list')).status_code, status.HTTP_403_FORBIDDEN)
		resp = self.client.post(reverse('users-roles', args=[self.operador.pk]), {'role': 'admin'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_403_FORBIDDEN)

	def test_create_user_with_role_and_store(self):
		resp = self.client.post(
			reverse('users-list'),
			{
				'username': 'joana',
				'password': 'segredo123',
				'email': 'joana@example.com',
				'roles': ['leitor'],
				'stores': ['lj1'],
			},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		self.assertEqual(resp.json()['roles'], ['leitor'])
		self.assertEqual(resp.json()['stores'], ['LJ1'])
		self.assertNotIn('password', resp.json())
		self.assertTrue(User.objects.get(username='joana').check_password('segredo123'))

	def test_create_user_with_unknown_store(self):
		resp = self.client.post(
			reverse('users-list'),
			{'username': 'joana', 'password': 'segredo123', 'stores': ['XX']},
			format='json',
		)
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertFalse(User.objects.filter(username='joana').exists())

	def test_add_and_remove_role(self):
		url = reverse('users-roles', args=[self.operador.pk])
		resp = self.client.post(url, {'role': 'pagador'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_201_CREATED)
		self.assertEqual(resp.json()['roles'], ['operador', 'pagador'])

		resp = self.client.delete(url, {'role': 'operador'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['roles'], ['pagador'])
		self.assertFalse(UserRoleAssignment.objects.filter(user=self.operador, role=Role.OPERADOR).exists())

	def test_last_admin_is_kept(self):
		resp = self.client.delete(reverse('users-roles', args=[self.admin.pk]), {'role': 'admin'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.assertEqual(resp.json()['detail'], 'Não é possível remover o último administrador.')
		resp = self.client.patch(reverse('users-detail', args=[self.admin.pk]), {'is_active': False}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
		self.admin.refresh_from_db()
		self.assertTrue(self.admin.is_active)

		create_user('diretora', Role.ADMIN)
		resp = self.client.delete(reverse('users-roles', args=[self.admin.pk]), {'role': 'admin'}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)

	def test_set_stores(self):
		other = Store.objects.create(name='Loja Bairro', code='LJ2')
		UserStoreAccess.objects.create(user=self.operador, store=self.store)
		url = reverse('users-stores', args=[self.operador.pk])
		resp = self.client.put(url, {'stores': ['LJ2']}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_200_OK)
		self.assertEqual(resp.json()['stores'], ['LJ2'])
		self.assertEqual(list(UserStoreAccess.objects.filter(user=self.operador).values_list('store', flat=True)), [other.pk])

		resp = self.client.put(url, {'stores': ['XX']}, format='json')
		self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

from datetime import date, timedelta
from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from clients.models import Client, CustomerCreditHistory, DeliveryAddress
from core.models import SalesConfiguration, Store
from finance.models import AccountReceivable
from products.models import Product, StockMovement
from finance.services import register_credit_payment
from products.services import adjust_stock, set_product_price

from .cart import FIXED, PERCENTAGE, Cart, CartError
from .cash_register import (
	close_cash_register,
	closing_history,
	expected_amounts,
	get_closing,
	open_cash_register,
	register_cash_movement,
)
from .models import CashRegisterClosing, CashRegisterMovement, PaymentMethod, Sale
from .receipts import render_sale_receipt
from .services import (
	PaymentEntry,
	build_cart,
	cancel_sale,
	convert_quote,
	delete_quote,
	finalize_sale,
	load_quote,
	replicate_sale,
	save_quote,
	search_quotes,
)


class CartTests(SimpleTestCase):
	def setUp(self):
		self.cart = Cart(max_discount_percent=Decimal('100'))
		self.cart.add_product(1, 'Arroz', Decimal('10.00'), 2)
		self.cart.add_product(2, 'Feijão', '7,50')

	def test_totals(self):
		self.assertEqual(self.cart.subtotal, Decimal('27.50'))
		self.assertEqual(self.cart.total, Decimal('27.50'))
		self.assertEqual(len(self.cart), 2)

	def test_adding_same_product_sums_quantity(self):
		self.cart.add_product(1, 'Arroz', Decimal('10.00'), 1)
		self.assertEqual(self.cart.find(1).quantity, Decimal('3.000'))
		self.assertEqual(len(self.cart), 2)

	def test_update_quantity_never_below_one(self):
		item = self.cart.update_quantity(2, -5)
		self.assertEqual(item.quantity, Decimal('1'))

	def test_invalid_quantity(self):
		with self.assertRaises(CartError):
			self.cart.set_quantity(1, 0)
		with self.assertRaises(CartError):
			self.cart.add_product(3, 'Sal', '2.00', 'abc')

	def test_item_and_sale_discounts(self):
		self.cart.apply_item_discount(1, PERCENTAGE, '10')
		self.assertEqual(self.cart.find(1).total, Decimal('18.00'))
		self.cart.apply_discount(FIXED, '5,50')
		self.assertEqual(self.cart.subtotal, Decimal('25.50'))
		self.assertEqual(self.cart.discount_amount, Decimal('5.50'))
		self.assertEqual(self.cart.total, Decimal('20.00'))
		self.assertEqual(self.cart.items_discount, Decimal('2.00'))

	def test_fixed_discount_cannot_exceed_item(self):
		with self.assertRaises(CartError):
			self.cart.apply_item_discount(2, FIXED, '7.51')

	def test_percentage_over_hundred(self):
		with self.assertRaises(CartError):
			self.cart.apply_discount(PERCENTAGE, '101')

	def test_store_max_discount(self):
		cart = Cart(max_discount_percent=Decimal('5'))
		cart.add_product(1, 'Arroz', Decimal('100.00'))
		with self.assertRaises(CartError):
			cart.apply_discount(PERCENTAGE, '6')
		with self.assertRaises(CartError):
			cart.apply_discount(FIXED, '5.01')
		cart.apply_discount(FIXED, '5.00')
		self.assertEqual(cart.total, Decimal('95.00'))

	def test_zero_discount_clears_type(self):
		self.cart.apply_discount(PERCENTAGE, '0')
		self.assertEqual(self.cart.discount_type, '')

	def test_remove_and_clear(self):
		self.cart.remove_item(2)
		with self.assertRaises(CartError):
			self.cart.find(2)
		self.cart.apply_discount(FIXED, '1')
		self.cart.clear()
		self.assertTrue(self.cart.is_empty)
		self.assertEqual(self.cart.discount_value, Decimal('0.00'))


class SalesFixturesMixin:
	def setUp(self):
		SalesConfiguration.clear_cache()
		self.user = User.objects.create_user('vendedor', 'vendedor@example.com', 'pw123456')
		self.store = Store.objects.create(name='Loja Centro', code='LJ1', pdv_max_discount_percent=Decimal('20'))
		self.customer = Client.objects.create(name='Ana Silva', credit_limit=Decimal('100.00'))
		self.rice = Product.objects.create(name='Arroz 5kg')
		self.beans = Product.objects.create(name='Feijão 1kg')
		set_product_price(self.rice, self.store, sale_price='25.00', cost_price='18.00')
		set_product_price(self.beans, self.store, sale_price='8.00', cost_price='5.00')
		adjust_stock(self.rice, self.store, 10)
		adjust_stock(self.beans, self.store, 10)
		self.cash = PaymentMethod.objects.get(code='cash')
		self.credit_card = PaymentMethod.objects.get(code='credit')
		self.store_credit = PaymentMethod.objects.get(code='store_credit')

	def cart(self, **discount):
		lines = [
			{'product': self.rice.pk, 'quantity': 2},
			{'product': self.beans.pk, 'quantity': '1'},
		]
		return build_cart(self.store, lines, **discount)


class BuildCartTests(SalesFixturesMixin, TestCase):
	def test_prices_come_from_store(self):
		cart = self.cart()
		self.assertEqual(cart.subtotal, Decimal('58.00'))
		self.assertEqual(cart.find(self.rice.pk).internal_code, self.rice.internal_code)
		self.assertEqual(cart.max_discount_percent, Decimal('20.00'))

	def test_discounts_respect_store_limit(self):
		cart = self.cart(discount_type=PERCENTAGE, discount_value='10')
		self.assertEqual(cart.total, Decimal('52.20'))
		with self.assertRaises(CartError):
			self.cart(discount_type=PERCENTAGE, discount_value='25')

	def test_line_discount(self):
		cart = build_cart(self.store, [{'product': self.rice.pk, 'quantity': 1, 'discount_type': FIXED, 'discount_value': '5'}])
		self.assertEqual(cart.total, Decimal('20.00'))

	def test_unknown_or_inactive_product(self):
		self.beans.active = False
		self.beans.save()
		with self.assertRaises(CartError):
			build_cart(self.store, [{'product': self.beans.pk, 'quantity': 1}])
		with self.assertRaises(CartError):
			build_cart(self.store, [{'product': 999999, 'quantity': 1}])

	def test_product_without_price(self):
		other = Store.objects.create(name='Loja Bairro', code='LJ2')
		with self.assertRaisesMessage(CartError, 'sem preço de venda'):
			build_cart(other, [{'product': self.rice.pk, 'quantity': 1}])


class FinalizeSaleTests(SalesFixturesMixin, TestCase):
	def test_cash_sale(self):
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, Decimal('58.00'))], actor=self.user)

		self.assertEqual(sale.status, Sale.Status.COMPLETED)
		self.assertEqual(sale.payment_status, Sale.PaymentStatus.PAID)
		self.assertEqual(sale.sale_number, 'LJ1-000001')
		self.assertEqual(sale.total, Decimal('58.00'))
		self.assertEqual(sale.items.count(), 2)
		self.assertEqual(sale.payments.get().amount, Decimal('58.00'))
		self.assertIsNotNone(sale.completed_at)
		self.assertEqual(self.rice.stock_for(self.store), Decimal('8.000'))
		self.assertEqual(self.beans.stock_for(self.store), Decimal('9.000'))
		movement = StockMovement.objects.filter(reference_type=StockMovement.ReferenceType.SALE, product=self.rice).get()
		self.assertEqual(movement.reference_id, sale.pk)
		self.assertEqual(movement.movement_type, StockMovement.MovementType.EXIT)
		self.assertFalse(AccountReceivable.objects.exists())

	def test_numbers_are_sequential_per_store(self):
		first = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')])
		second = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')])
		self.assertEqual(first.sale_number, 'LJ1-000001')
		self.assertEqual(second.sale_number, 'LJ1-000002')

	def test_mixed_payment_with_store_credit(self):
		sale = finalize_sale(
			self.store,
			self.customer,
			self.cart(),
			[PaymentEntry(self.cash, '18.00'), PaymentEntry(self.store_credit, '40.00', installments=2)],
			actor=self.user,
		)
		self.assertEqual(sale.payment_status, Sale.PaymentStatus.PARTIAL)
		self.assertEqual(sale.amount_paid, Decimal('18.00'))
		self.assertEqual(sale.amount_credit, Decimal('40.00'))
		self.assertEqual(sale.installments, 2)

		receivable = AccountReceivable.objects.get(sale=sale)
		self.assertEqual(receivable.amount, Decimal('40.00'))
		self.assertEqual(receivable.store, self.store)
		self.assertEqual(self.customer.used_credit, Decimal('40.00'))

		history = CustomerCreditHistory.objects.get(customer=self.customer, action_type=CustomerCreditHistory.ActionType.PURCHASE)
		self.assertEqual(history.old_value, Decimal('0.00'))
		self.assertEqual(history.new_value, Decimal('40.00'))
		self.assertEqual(history.reference_id, sale.pk)

	def test_all_on_store_credit(self):
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.store_credit, '58.00')])
		self.assertEqual(sale.payment_status, Sale.PaymentStatus.CREDIT)
		self.assertTrue(sale.payments.get().is_credit)

	def test_credit_limit(self):
		self.customer.credit_limit = Decimal('50.00')
		self.customer.save()
		with self.assertRaisesMessage(ValidationError, 'Limite de crédito insuficiente.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.store_credit, '58.00')])
		self.assertFalse(Sale.objects.exists())
		self.assertEqual(self.rice.stock_for(self.store), Decimal('10.000'))

	def test_payment_must_cover_total(self):
		with self.assertRaisesMessage(ValidationError, 'O valor total ainda não foi coberto.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '57.98')])
		with self.assertRaisesMessage(ValidationError, 'Valor maior que o restante.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '60.00')])

	def test_one_cent_tolerance(self):
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '57.99')])
		self.assertEqual(sale.amount_paid, Decimal('57.99'))

	def test_requires_payment_customer_and_items(self):
		with self.assertRaisesMessage(ValidationError, 'Selecione uma forma de pagamento.'):
			finalize_sale(self.store, self.customer, self.cart(), [])
		with self.assertRaisesMessage(ValidationError, 'Selecione um cliente.'):
			finalize_sale(self.store, None, self.cart(), [PaymentEntry(self.cash, '58')])
		with self.assertRaisesMessage(ValidationError, 'Adicione produtos ao carrinho.'):
			finalize_sale(self.store, self.customer, Cart(), [PaymentEntry(self.cash, '58')])

	def test_inactive_customer(self):
		self.customer.active = False
		self.customer.save()
		with self.assertRaisesMessage(ValidationError, 'Cliente inativo.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')])

	def test_installments_limit(self):
		with self.assertRaisesMessage(ValidationError, 'Número de parcelas inválido'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58', installments=2)])
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.credit_card, '58', installments=3)])
		self.assertEqual(sale.installments, 3)

	def test_inactive_payment_method(self):
		self.cash.active = False
		self.cash.save()
		with self.assertRaises(ValidationError):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')])

	def test_delivery_requires_customer_address(self):
		other = Client.objects.create(name='Outro')
		foreign = DeliveryAddress.objects.create(client=other, name='Casa', address='Rua B')
		own = DeliveryAddress.objects.create(client=self.customer, name='Casa', address='Rua A')
		kwargs = {'delivery_type': Sale.DeliveryType.DELIVERY}

		with self.assertRaisesMessage(ValidationError, 'Selecione o endereço de entrega.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')], **kwargs)
		with self.assertRaisesMessage(ValidationError, 'Endereço de entrega inválido para este cliente.'):
			finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')], delivery_address=foreign, **kwargs)

		sale = finalize_sale(
			self.store,
			self.customer,
			self.cart(),
			[PaymentEntry(self.cash, '58')],
			delivery_address=own,
			delivery_date=date(2024, 6, 1),
			**kwargs,
		)
		self.assertEqual(sale.delivery_address, own)
		self.assertEqual(sale.delivery_date, date(2024, 6, 1))

	def test_pickup_ignores_address(self):
		own = DeliveryAddress.objects.create(client=self.customer, name='Casa', address='Rua A')
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')], delivery_address=own)
		self.assertIsNone(sale.delivery_address)


class QuoteTests(SalesFixturesMixin, TestCase):
	def test_save_and_search(self):
		quote = save_quote(self.store, self.customer, self.cart(discount_type=FIXED, discount_value='3'), actor=self.user, notes='Retirar sexta')
		other_customer = Client.objects.create(name='Bruno Costa')
		save_quote(self.store, other_customer, self.cart())

		self.assertTrue(quote.is_quote)
		self.assertEqual(quote.total, Decimal('55.00'))
		self.assertEqual(quote.payment_status, Sale.PaymentStatus.PENDING)
		self.assertEqual(self.rice.stock_for(self.store), Decimal('10.000'))
		self.assertEqual([q.pk for q in search_quotes(self.store, 'ana')], [quote.pk])
		self.assertEqual(list(search_quotes(self.store, quote.sale_number)), [quote])
		self.assertEqual(len(search_quotes(self.store, limit=1)), 1)
		self.assertEqual(len(search_quotes(self.store)), 2)

	def test_update_replaces_items(self):
		quote = save_quote(self.store, self.customer, self.cart())
		cart = build_cart(self.store, [{'product': self.beans.pk, 'quantity': 3}])
		updated = save_quote(self.store, self.customer, cart, quote=quote)
		self.assertEqual(updated.pk, quote.pk)
		self.assertEqual(updated.items.get().quantity, Decimal('3.000'))
		self.assertEqual(updated.total, Decimal('24.00'))

	def test_load_quote_keeps_prices_and_discounts(self):
		quote = save_quote(self.store, self.customer, self.cart(discount_type=PERCENTAGE, discount_value='10'))
		set_product_price(self.rice, self.store, sale_price='30.00')
		cart = load_quote(quote)
		self.assertEqual(cart.find(self.rice.pk).unit_price, Decimal('25.00'))
		self.assertEqual(cart.total, Decimal('52.20'))

	def test_convert_keeps_number(self):
		quote = save_quote(self.store, self.customer, self.cart())
		sale = convert_quote(quote, [PaymentEntry(self.cash, '58.00')], actor=self.user)
		self.assertEqual(sale.pk, quote.pk)
		self.assertEqual(sale.sale_number, quote.sale_number)
		self.assertEqual(sale.status, Sale.Status.COMPLETED)
		self.assertEqual(sale.items.count(), 2)
		self.assertEqual(self.rice.stock_for(self.store), Decimal('8.000'))
		with self.assertRaises(ValidationError):
			load_quote(sale)

	def test_delete_only_quotes(self):
		quote = save_quote(self.store, self.customer, self.cart())
		delete_quote(quote)
		self.assertFalse(Sale.objects.filter(pk=quote.pk).exists())
		sale = finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.cash, '58')])
		with self.assertRaisesMessage(ValidationError, 'Somente orçamentos podem ser excluídos.'):
			delete_quote(sale)


class ReplicateAndCancelTests(SalesFixturesMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.sale = finalize_sale(
			self.store,
			self.customer,
			self.cart(discount_type=FIXED, discount_value='8'),
			[PaymentEntry(self.cash, '20.00'), PaymentEntry(self.store_credit, '30.00')],
			actor=self.user,
		)

	def test_replicate_without_discounts(self):
		customer, cart = replicate_sale(self.sale.sale_number.lower(), store=self.store)
		self.assertEqual(customer, self.customer)
		self.assertEqual(cart.total, Decimal('58.00'))
		self.assertEqual(cart.discount_type, '')

	def test_replicate_unknown_number(self):
		with self.assertRaisesMessage(ValidationError, 'Pedido não encontrado.'):
			replicate_sale('LJ1-999999')

	def test_cancel_restocks_and_cancels_receivables(self):
		self.assertEqual(self.customer.used_credit, Decimal('30.00'))
		sale = cancel_sale(self.sale, self.user, 'Cliente desistiu')

		self.assertTrue(sale.is_cancelled)
		self.assertEqual(sale.cancelled_by, self.user)
		self.assertEqual(sale.cancellation_reason, 'Cliente desistiu')
		self.assertEqual(self.rice.stock_for(self.store), Decimal('10.000'))
		self.assertEqual(self.beans.stock_for(self.store), Decimal('10.000'))
		self.assertEqual(AccountReceivable.objects.get(sale=sale).status, AccountReceivable.Status.CANCELLED)
		self.assertEqual(self.customer.used_credit, Decimal('0.00'))
		returned = StockMovement.objects.filter(reference_type=StockMovement.ReferenceType.SALE_CANCELLATION)
		self.assertEqual(returned.count(), 2)
		self.assertEqual(returned.first().notes, 'Cancelamento da venda: Cliente desistiu')

	def test_cancel_rules(self):
		with self.assertRaisesMessage(ValidationError, 'Informe o motivo do cancelamento.'):
			cancel_sale(self.sale, self.user, '  ')
		cancel_sale(self.sale, self.user, 'Erro de digitação')
		with self.assertRaisesMessage(ValidationError, 'Venda já está cancelada.'):
			cancel_sale(self.sale, self.user, 'De novo')
		quote = save_quote(self.store, self.customer, self.cart())
		with self.assertRaises(ValidationError):
			cancel_sale(quote, self.user, 'Motivo')


class ReceiptTests(SalesFixturesMixin, TestCase):
	def setUp(self):
		super().setUp()
		self.store.cnpj = '12345678000190'
		self.store.address = 'Rua Principal, 100'
		self.store.save()
		self.sale = finalize_sale(
			self.store,
			self.customer,
			self.cart(),
			[PaymentEntry(self.credit_card, '58.00', installments=2)],
			actor=self.user,
			notes='Entregar pela manhã \u2014 portão azul',
		)

	def test_a4(self):
		content = render_sale_receipt(self.sale, 'a4')
		self.assertIsInstance(content, bytes)
		self.assertTrue(content.startswith(b'%PDF'))

	def test_bobina(self):
		content = render_sale_receipt(self.sale, 'bobina')
		self.assertTrue(content.startswith(b'%PDF'))

	def test_store_default_format(self):
		self.store.pdv_print_format = Store.PrintFormat.BOBINA
		self.store.save()
		self.assertTrue(render_sale_receipt(self.sale).startswith(b'%PDF'))


class CashRegisterTests(SalesFixturesMixin, TestCase):
	def setUp(self):
		super().setUp()
		# 58,00 divididos entre dinheiro e cartão, mais uma venda no crediário
		finalize_sale(
			self.store,
			self.customer,
			self.cart(),
			[PaymentEntry(self.cash, '30.00'), PaymentEntry(self.credit_card, '28.00')],
			actor=self.user,
		)
		finalize_sale(self.store, self.customer, self.cart(), [PaymentEntry(self.store_credit, '58.00')], actor=self.user)
		register_credit_payment(self.customer, '20.00', self.user, payment_method=self.cash)
		self.closing = open_cash_register(self.store, actor=self.user, opening_balance='100,00')

	def test_open(self):
		self.assertEqual(self.closing.status, CashRegisterClosing.Status.OPEN)
		self.assertEqual(self.closing.opening_balance, Decimal('100.00'))
		self.assertEqual(self.closing.closing_date, timezone.localdate())
		self.assertEqual(self.closing.opened_by, self.user)
		self.assertEqual(get_closing(self.store), self.closing)

	def test_open_twice_on_same_day(self):
		with self.assertRaisesMessage(ValidationError, 'já foi aberto'):
			open_cash_register(self.store, actor=self.user)
		other = Store.objects.create(name='Loja Bairro', code='LJ2')
		self.assertTrue(open_cash_register(other, actor=self.user).is_open)

	def test_expected_amounts_by_category(self):
		expected = expected_amounts(self.closing)
		self.assertEqual(expected['cash'], Decimal('150.00'))
		self.assertEqual(expected['card'], Decimal('28.00'))
		self.assertEqual(expected['credit'], Decimal('58.00'))
		self.assertEqual(expected['pix'], Decimal('0.00'))
		self.assertEqual(expected['other'], Decimal('0.00'))

	def test_movements_change_expected_cash(self):
		register_cash_movement(self.closing, CashRegisterMovement.MovementType.SUPRIMENTO, '10,00', 'Troco', actor=self.user)
		sangria = register_cash_movement(self.closing, CashRegisterMovement.MovementType.SANGRIA, '40', 'Depósito', actor=self.user)
		self.assertEqual(sangria.signed_amount, Decimal('-40.00'))
		self.assertEqual(expected_amounts(self.closing)['cash'], Decimal('120.00'))

	def test_sangria_limited_to_cash_in_register(self):
		with self.assertRaises(ValidationError) as ctx:
			register_cash_movement(self.closing, CashRegisterMovement.MovementType.SANGRIA, '150.01', 'Depósito', actor=self.user)
		self.assertIn('amount', ctx.exception.message_dict)
		register_cash_movement(self.closing, CashRegisterMovement.MovementType.SANGRIA, '150.00', 'Depósito', actor=self.user)
		self.assertEqual(expected_amounts(self.closing)['cash'], Decimal('0.00'))

	def test_movement_validation(self):
		cases = [
			('retirada', '10', 'Depósito', 'movement_type'),
			(CashRegisterMovement.MovementType.SUPRIMENTO, '0', 'Troco', 'amount'),
			(CashRegisterMovement.MovementType.SUPRIMENTO, 'NaN', 'Troco', 'amount'),
			(CashRegisterMovement.MovementType.SUPRIMENTO, '10', '  ', 'reason'),
		]
		for movement_type, amount, reason, field in cases:
			with self.subTest(field=field, amount=amount):
				with self.assertRaises(ValidationError) as ctx:
					register_cash_movement(self.closing, movement_type, amount, reason, actor=self.user)
				self.assertIn(field, ctx.exception.message_dict)
		self.assertFalse(self.closing.movements.exists())

	def test_close_records_difference(self):
		closing = close_cash_register(
			self.closing,
			cash_counted='145,00',
			card_counted='28.00',
			notes='Faltou troco',
			actor=self.user,
		)
		self.assertEqual(closing.status, CashRegisterClosing.Status.CLOSED)
		self.assertEqual(closing.cash_expected, Decimal('150.00'))
		self.assertEqual(closing.card_expected, Decimal('28.00'))
		self.assertEqual(closing.credit_expected, Decimal('58.00'))
		self.assertEqual(closing.cash_counted, Decimal('145.00'))
		self.assertEqual(closing.card_counted, Decimal('28.00'))
		self.assertIsNone(closing.pix_counted)
		self.assertEqual(closing.difference, Decimal('-5.00'))
		self.assertEqual(closing.closed_by, self.user)
		self.assertIsNotNone(closing.closed_at)
		self.assertEqual(closing.total_expected, Decimal('236.00'))

	def test_closed_register_is_frozen(self):
		close_cash_register(self.closing, cash_counted='150', actor=self.user)
		with self.assertRaisesMessage(ValidationError, 'já foi fechado'):
			close_cash_register(self.closing, cash_counted='150', actor=self.user)
		with self.assertRaisesMessage(ValidationError, 'já foi fechado'):
			register_cash_movement(self.closing, CashRegisterMovement.MovementType.SUPRIMENTO, '5', 'Troco', actor=self.user)

	def test_close_requires_counted_cash(self):
		with self.assertRaises(ValidationError) as ctx:
			close_cash_register(self.closing, cash_counted='', actor=self.user)
		self.assertIn('cash_counted', ctx.exception.message_dict)
		self.closing.refresh_from_db()
		self.assertTrue(self.closing.is_open)

	def test_history_keeps_latest_thirty(self):
		today = timezone.localdate()
		for offset in range(1, 32):
			CashRegisterClosing.objects.create(store=self.store, closing_date=today - timedelta(days=offset))
		history = list(closing_history(self.store))
		self.assertEqual(len(history), 30)
		self.assertEqual(history[0], self.closing)
		self.assertEqual(history[-1].closing_date, today - timedelta(days=29))

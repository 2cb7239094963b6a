from decimal import Decimal

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.test import TestCase

from core.models import Store

from .models import FIRST_INTERNAL_CODE, Product, ProductPricing, ProductStock, StockMovement, StockReceipt, Supplier
from .services import adjust_stock, annotate_store_data, receive_stock, search_products, set_product_price


class ProductModelTests(TestCase):
	def test_internal_code_is_sequential_from_thousand(self):
		first = Product.objects.create(name='Arroz 5kg')
		second = Product.objects.create(name='Feijão 1kg')
		self.assertEqual(first.internal_code, FIRST_INTERNAL_CODE)
		self.assertEqual(second.internal_code, FIRST_INTERNAL_CODE + 1)

	def test_supplier_document_is_normalized(self):
		supplier = Supplier.objects.create(name='Distribuidora Sul', document='12.345.678/0001-90')
		self.assertEqual(supplier.document, '12345678000190')
		self.assertEqual(supplier.formatted_document, '12.345.678/0001-90')

	def test_supplier_requires_valid_document(self):
		with self.assertRaises(ValidationError):
			Supplier.objects.create(name='Sem documento', document='123')


class PricingServiceTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('gerente', 'gerente@example.com', 'pw123456')
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		self.other_store = Store.objects.create(name='Loja Bairro', code='LJ2')
		self.product = Product.objects.create(name='Café 500g', ean='7890000000001')

	def test_set_price_keeps_history(self):
		set_product_price(self.product, self.store, sale_price='10,00', cost_price='6,00', actor=self.user)
		set_product_price(self.product, self.store, sale_price=Decimal('12.50'), actor=self.user)

		history = ProductPricing.objects.filter(product=self.product, store=self.store).order_by('valid_from', 'pk')
		self.assertEqual(history.count(), 2)
		old, current = list(history)
		self.assertFalse(old.is_current)
		self.assertIsNotNone(old.valid_until)
		self.assertTrue(current.is_current)
		self.assertEqual(current.cost_price, Decimal('6.00'))
		self.assertEqual(self.product.price_for(self.store), Decimal('12.50'))

	def test_prices_are_per_store(self):
		set_product_price(self.product, self.store, sale_price='10.00')
		self.assertIsNone(self.product.price_for(self.other_store))

	def test_negative_price_rejected(self):
		with self.assertRaises(ValidationError):
			set_product_price(self.product, self.store, sale_price='-1')

	def test_markup(self):
		pricing = set_product_price(self.product, self.store, sale_price='15.00', cost_price='10.00')
		self.assertEqual(pricing.markup, Decimal('50.00'))

	def test_search_by_name_ean_and_code(self):
		set_product_price(self.product, self.store, sale_price='9.90')
		Product.objects.create(name='Chá mate')
		by_name = search_products(self.store, 'café')
		self.assertEqual([row['id'] for row in by_name], [self.product.pk])
		self.assertEqual(by_name[0]['sale_price'], Decimal('9.90'))
		self.assertEqual(search_products(self.store, '7890000000001')[0]['id'], self.product.pk)
		self.assertEqual(search_products(self.store, str(self.product.internal_code))[0]['id'], self.product.pk)

	def test_annotate_store_data(self):
		set_product_price(self.product, self.store, sale_price='9.90', cost_price='5.00')
		adjust_stock(self.product, self.store, '3')
		product = annotate_store_data(Product.objects.filter(pk=self.product.pk), self.store).get()
		self.assertEqual(product.sale_price, Decimal('9.90'))
		self.assertEqual(product.cost_price, Decimal('5.00'))
		self.assertEqual(product.stock_quantity, Decimal('3.000'))


class StockServiceTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('estoquista', 'estoque@example.com', 'pw123456')
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		self.product = Product.objects.create(name='Açúcar 1kg')
		self.supplier = Supplier.objects.create(name='Distribuidora Sul', document='12345678000190')

	def test_adjust_stock_records_movement(self):
		entry = adjust_stock(self.product, self.store, Decimal('5'), actor=self.user)
		self.assertEqual(entry.quantity, Decimal('5.000'))
		entry = adjust_stock(self.product, self.store, Decimal('-2'))
		self.assertEqual(entry.quantity, Decimal('3.000'))
		movements = StockMovement.objects.filter(product=self.product).order_by('pk')
		self.assertEqual(
			[(m.movement_type, m.quantity) for m in movements],
			[
				(StockMovement.MovementType.ENTRY, Decimal('5.000')),
				(StockMovement.MovementType.EXIT, Decimal('2.000')),
			],
		)

	def test_stock_may_go_negative(self):
		with self.assertLogs('products.services', level='WARNING'):
			entry = adjust_stock(self.product, self.store, -1)
		self.assertEqual(entry.quantity, Decimal('-1.000'))
		self.assertTrue(ProductStock.objects.get(pk=entry.pk).quantity < 0)

	def test_zero_adjustment_rejected(self):
		with self.assertRaises(ValidationError):
			adjust_stock(self.product, self.store, 0)

	def test_receive_stock_updates_quantity_and_price(self):
		set_product_price(self.product, self.store, sale_price='4.00', cost_price='3.00')
		receipt = receive_stock(
			self.product,
			self.store,
			quantity='10',
			cost_price='3,50',
			sale_price='4,50',
			supplier=self.supplier,
			actor=self.user,
		)
		self.assertEqual(receipt.previous_sale_price, Decimal('4.00'))
		self.assertEqual(self.product.stock_for(self.store), Decimal('10.000'))
		self.assertEqual(self.product.price_for(self.store), Decimal('4.50'))
		movement = StockMovement.objects.get(reference_type=StockMovement.ReferenceType.STOCK_RECEIPT)
		self.assertEqual(movement.reference_id, receipt.pk)

	def test_receive_stock_keeps_price_when_unchanged(self):
		set_product_price(self.product, self.store, sale_price='4.00', cost_price='3.00')
		receive_stock(self.product, self.store, quantity='1', cost_price='3.00', sale_price='4.00')
		self.assertEqual(ProductPricing.objects.filter(product=self.product).count(), 1)
		self.assertEqual(StockReceipt.objects.count(), 1)

	def test_receive_stock_rejects_zero_quantity(self):
		with self.assertRaises(ValidationError):
			receive_stock(self.product, self.store, quantity='0', cost_price='1', sale_price='2')

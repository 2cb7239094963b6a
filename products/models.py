from decimal import Decimal, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Max
from django.utils import timezone

from core.utils.documents import (
	format_cnpj,
	format_cpf,
	normalize_cnpj,
	normalize_cpf,
)

ZERO_DECIMAL = Decimal('0.00')
ZERO_QUANTITY = Decimal('0.000')
FIRST_INTERNAL_CODE = 1000


class Supplier(models.Model):
	class PersonType(models.TextChoices):
		INDIVIDUAL = 'F', 'Pessoa Física'
		LEGAL = 'J', 'Pessoa Jurídica'

	name = models.CharField('Nome / Razão social', max_length=200)
	person_type = models.CharField('Tipo de pessoa', max_length=1, choices=PersonType.choices, default=PersonType.LEGAL)
	document = models.CharField('CPF/CNPJ', max_length=14, unique=True)
	email = models.EmailField('E-mail', blank=True)
	phone = models.CharField('Telefone', max_length=30, blank=True)
	address = models.CharField('Endereço', max_length=255, blank=True)
	city = models.CharField('Cidade', max_length=100, blank=True)
	state = models.CharField('UF', max_length=2, blank=True)
	notes = models.TextField('Observações', blank=True)
	active = models.BooleanField('Ativo', default=True)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		verbose_name = 'Fornecedor'
		verbose_name_plural = 'Fornecedores'
		ordering = ('name',)

	def __str__(self):
		return self.name

	@property
	def formatted_document(self):
		if self.person_type == self.PersonType.LEGAL:
			return format_cnpj(self.document)
		return format_cpf(self.document)

	def _sync_document_fields(self):
		if not self.document:
			raise ValidationError({'document': 'Informe o CPF ou CNPJ.'})
		try:
			if self.person_type == self.PersonType.LEGAL:
				digits = normalize_cnpj(self.document)
			else:
				digits = normalize_cpf(self.document)
		except ValueError as exc:
			raise ValidationError({'document': str(exc)})
		self.document = digits

	def clean(self):
		super().clean()
		if self.document:
			self._sync_document_fields()

	def save(self, *args, **kwargs):
		self._sync_document_fields()
		super().save(*args, **kwargs)


class Brand(models.Model):
	name = models.CharField('Nome', max_length=200, unique=True)

	class Meta:
		verbose_name = 'Marca'
		verbose_name_plural = 'Marcas'
		ordering = ('name',)

	def __str__(self):
		return self.name


class Category(models.Model):
	name = models.CharField('Nome', max_length=200, unique=True)

	class Meta:
		verbose_name = 'Categoria'
		verbose_name_plural = 'Categorias'
		ordering = ('name',)

	def __str__(self):
		return self.name


class Unit(models.Model):
	abbreviation = models.CharField('Sigla', max_length=10, unique=True)
	name = models.CharField('Nome', max_length=100)

	class Meta:
		verbose_name = 'Unidade'
		verbose_name_plural = 'Unidades'
		ordering = ('abbreviation',)

	def __str__(self):
		return self.abbreviation


class Product(models.Model):
	internal_code = models.PositiveIntegerField('Código interno', unique=True, editable=False)
	ean = models.CharField('EAN', max_length=14, blank=True)
	name = models.CharField('Nome', max_length=200)
	description = models.TextField('Descrição', blank=True)
	brand = models.ForeignKey(Brand, related_name='products', on_delete=models.SET_NULL, blank=True, null=True, verbose_name='Marca')
	category = models.ForeignKey(Category, related_name='products', on_delete=models.SET_NULL, blank=True, null=True, verbose_name='Categoria')
	unit = models.ForeignKey(Unit, related_name='products', on_delete=models.SET_NULL, blank=True, null=True, verbose_name='Unidade')
	active = models.BooleanField('Ativo', default=True)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		verbose_name = 'Produto'
		verbose_name_plural = 'Produtos'
		ordering = ('name',)
		indexes = [
			models.Index(fields=['ean'], name='products_product_ean_idx'),
		]

	def __str__(self):
		return f'{self.internal_code} - {self.name}'

	def save(self, *args, **kwargs):
		self.ean = (self.ean or '').strip()
		if not self.internal_code:
			self.internal_code = self.get_next_internal_code()
		super().save(*args, **kwargs)

	@classmethod
	def get_next_internal_code(cls) -> int:
		last = cls.objects.aggregate(last=Max('internal_code'))['last']
		if not last or last < FIRST_INTERNAL_CODE:
			return FIRST_INTERNAL_CODE
		return last + 1

	def current_pricing(self, store):
		return self.pricings.filter(store=store, is_current=True).first()

	def price_for(self, store) -> Decimal | None:
		pricing = self.current_pricing(store)
		return pricing.sale_price if pricing else None

	def stock_for(self, store) -> Decimal:
		entry = self.stock_entries.filter(store=store).first()
		return entry.quantity if entry else ZERO_QUANTITY


class ProductPricing(models.Model):
	product = models.ForeignKey(Product, related_name='pricings', on_delete=models.CASCADE, verbose_name='Produto')
	store = models.ForeignKey('core.Store', related_name='pricings', on_delete=models.CASCADE, verbose_name='Loja')
	cost_price = models.DecimalField('Preço de custo', max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	sale_price = models.DecimalField('Preço de venda', max_digits=14, decimal_places=2)
	valid_from = models.DateTimeField('Vigente desde', default=timezone.now)
	valid_until = models.DateTimeField('Vigente até', blank=True, null=True)
	is_current = models.BooleanField('Atual', default=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Criado por',
	)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Preço do produto'
		verbose_name_plural = 'Preços dos produtos'
		ordering = ('product', 'store', '-valid_from')
		constraints = [
			models.UniqueConstraint(
				fields=['product', 'store'],
				condition=models.Q(is_current=True),
				name='uniq_products_current_pricing',
			),
		]

	def __str__(self):
		return f'{self.product} @ {self.store.code} = {self.sale_price}'

	@property
	def markup(self) -> Decimal:
		"""Markup percentual sobre o custo; zero quando não há custo."""
		if not self.cost_price:
			return ZERO_DECIMAL
		value = (self.sale_price - self.cost_price) / self.cost_price * Decimal('100')
		return value.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

	def clean(self):
		super().clean()
		if self.sale_price is not None and self.sale_price < 0:
			raise ValidationError({'sale_price': 'O preço de venda não pode ser negativo.'})
		if self.cost_price is not None and self.cost_price < 0:
			raise ValidationError({'cost_price': 'O preço de custo não pode ser negativo.'})


class ProductStock(models.Model):
	product = models.ForeignKey(Product, related_name='stock_entries', on_delete=models.CASCADE, verbose_name='Produto')
	store = models.ForeignKey('core.Store', related_name='product_stocks', on_delete=models.CASCADE, verbose_name='Loja')
	quantity = models.DecimalField('Quantidade', max_digits=12, decimal_places=3, default=ZERO_QUANTITY)
	min_quantity = models.DecimalField('Estoque mínimo', max_digits=12, decimal_places=3, default=ZERO_QUANTITY)
	max_quantity = models.DecimalField('Estoque máximo', max_digits=12, decimal_places=3, blank=True, null=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		verbose_name = 'Estoque por loja'
		verbose_name_plural = 'Estoques por loja'
		unique_together = (('product', 'store'),)
		ordering = ('product__name', 'store__code')

	def __str__(self):
		return f'{self.product} @ {self.store.code} = {self.quantity}'

	@property
	def is_below_minimum(self) -> bool:
		return (self.quantity or ZERO_QUANTITY) < (self.min_quantity or ZERO_QUANTITY)


class StockMovement(models.Model):
	class MovementType(models.TextChoices):
		ENTRY = 'entry', 'Entrada'
		EXIT = 'exit', 'Saída'
		ADJUSTMENT = 'adjustment', 'Ajuste'

	class ReferenceType(models.TextChoices):
		SALE = 'sale', 'Venda'
		SALE_CANCELLATION = 'sale_cancellation', 'Cancelamento de venda'
		STOCK_RECEIPT = 'stock_receipt', 'Entrada de mercadoria'
		MANUAL = 'manual', 'Manual'

	product = models.ForeignKey(Product, related_name='stock_movements', on_delete=models.PROTECT, verbose_name='Produto')
	store = models.ForeignKey('core.Store', related_name='stock_movements', on_delete=models.PROTECT, verbose_name='Loja')
	movement_type = models.CharField('Tipo', max_length=20, choices=MovementType.choices)
	quantity = models.DecimalField('Quantidade', max_digits=12, decimal_places=3)
	unit_price = models.DecimalField('Valor unitário', max_digits=14, decimal_places=2, blank=True, null=True)
	reference_type = models.CharField('Origem', max_length=30, choices=ReferenceType.choices, default=ReferenceType.MANUAL)
	reference_id = models.PositiveBigIntegerField('ID de origem', blank=True, null=True)
	notes = models.TextField('Observações', blank=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Criado por',
	)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Movimentação de estoque'
		verbose_name_plural = 'Movimentações de estoque'
		ordering = ('-created_at', '-pk')
		indexes = [
			models.Index(fields=['reference_type', 'reference_id'], name='products_mov_reference_idx'),
		]

	def __str__(self):
		return f'{self.get_movement_type_display()} {self.quantity} {self.product} @ {self.store.code}'


class StockReceipt(models.Model):
	product = models.ForeignKey(Product, related_name='receipts', on_delete=models.PROTECT, verbose_name='Produto')
	store = models.ForeignKey('core.Store', related_name='stock_receipts', on_delete=models.PROTECT, verbose_name='Loja')
	supplier = models.ForeignKey(Supplier, related_name='stock_receipts', on_delete=models.SET_NULL, blank=True, null=True, verbose_name='Fornecedor')
	quantity = models.DecimalField('Quantidade', max_digits=12, decimal_places=3)
	cost_price = models.DecimalField('Preço de custo', max_digits=14, decimal_places=2)
	sale_price = models.DecimalField('Preço de venda', max_digits=14, decimal_places=2)
	previous_sale_price = models.DecimalField('Preço de venda anterior', max_digits=14, decimal_places=2, blank=True, null=True)
	notes = models.TextField('Observações', blank=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Registrado por',
	)
	created_at = models.DateTimeField('Registrado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Entrada de mercadoria'
		verbose_name_plural = 'Entradas de mercadoria'
		ordering = ('-created_at', '-pk')

	def __str__(self):
		return f'Entrada {self.quantity} {self.product} @ {self.store.code}'

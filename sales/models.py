from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

ZERO_DECIMAL = Decimal('0.00')
STORE_CREDIT_CODE = 'store_credit'


class DiscountType(models.TextChoices):
	PERCENTAGE = 'percentage', _('Percentual')
	FIXED = 'fixed', _('Valor fixo')


class PaymentMethod(models.Model):
	name = models.CharField(_('Nome'), max_length=100)
	code = models.SlugField(_('Código'), max_length=30, unique=True)
	active = models.BooleanField(_('Ativa'), default=True)
	allow_installments = models.BooleanField(_('Permite parcelamento'), default=False)
	max_installments = models.PositiveSmallIntegerField(_('Máximo de parcelas'), default=1)
	created_at = models.DateTimeField(_('Criado em'), auto_now_add=True)

	class Meta:
		ordering = ['name']
		verbose_name = _('Forma de pagamento')
		verbose_name_plural = _('Formas de pagamento')

	def __str__(self):
		return self.name

	@property
	def is_store_credit(self) -> bool:
		return self.code == STORE_CREDIT_CODE

	def accepts_installments(self, installments) -> bool:
		installments = int(installments or 1)
		if installments < 1:
			return False
		if installments == 1:
			return True
		return self.allow_installments and installments <= self.max_installments


class Sale(models.Model):
	class Status(models.TextChoices):
		QUOTE = 'quote', _('Orçamento')
		COMPLETED = 'completed', _('Concluída')
		CANCELLED = 'cancelled', _('Cancelada')

	class PaymentStatus(models.TextChoices):
		PENDING = 'pending', _('Pendente')
		PAID = 'paid', _('Pago')
		PARTIAL = 'partial', _('Parcial')
		CREDIT = 'credit', _('Crediário')

	class DeliveryType(models.TextChoices):
		PICKUP = 'pickup', _('Retirada')
		DELIVERY = 'delivery', _('Entrega')

	sale_number = models.CharField(_('Número'), max_length=30, unique=True)
	store = models.ForeignKey('core.Store', verbose_name=_('Loja'), on_delete=models.PROTECT, related_name='sales')
	customer = models.ForeignKey('clients.Client', verbose_name=_('Cliente'), on_delete=models.PROTECT, related_name='sales')
	status = models.CharField(_('Situação'), max_length=20, choices=Status.choices, default=Status.COMPLETED)
	subtotal = models.DecimalField(_('Subtotal'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	discount_type = models.CharField(_('Tipo de desconto'), max_length=20, choices=DiscountType.choices, blank=True)
	discount_value = models.DecimalField(_('Desconto informado'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	discount_amount = models.DecimalField(_('Desconto'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	total = models.DecimalField(_('Total'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	payment_status = models.CharField(_('Situação do pagamento'), max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
	amount_paid = models.DecimalField(_('Valor pago'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	amount_credit = models.DecimalField(_('Valor no crediário'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	installments = models.PositiveSmallIntegerField(_('Parcelas'), default=1)
	delivery_type = models.CharField(_('Tipo de entrega'), max_length=20, choices=DeliveryType.choices, default=DeliveryType.PICKUP)
	delivery_address = models.ForeignKey(
		'clients.DeliveryAddress',
		verbose_name=_('Endereço de entrega'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='sales',
	)
	delivery_date = models.DateField(_('Data de entrega'), blank=True, null=True)
	notes = models.TextField(_('Observações'), blank=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		verbose_name=_('Vendedor'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	created_at = models.DateTimeField(_('Criado em'), auto_now_add=True)
	updated_at = models.DateTimeField(_('Atualizado em'), auto_now=True)
	completed_at = models.DateTimeField(_('Concluída em'), blank=True, null=True)
	cancelled_at = models.DateTimeField(_('Cancelada em'), blank=True, null=True)
	cancelled_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		verbose_name=_('Cancelada por'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	cancellation_reason = models.TextField(_('Motivo do cancelamento'), blank=True)

	class Meta:
		ordering = ['-created_at', '-pk']
		verbose_name = _('Venda')
		verbose_name_plural = _('Vendas')
		indexes = [
			models.Index(fields=['store', 'status', 'created_at'], name='sales_sale_store_status_idx'),
		]

	def __str__(self):
		return f'{self.get_status_display()} {self.sale_number}'

	def save(self, *args, **kwargs):
		if not self.sale_number:
			self.sale_number = self.get_next_number(self.store)
		super().save(*args, **kwargs)

	@classmethod
	def get_next_number(cls, store):
		prefix = f'{store.code}-'
		last = cls.objects.filter(store=store, sale_number__startswith=prefix).order_by('-sale_number').first()
		sequence = 1
		if last:
			try:
				sequence = int(last.sale_number[len(prefix):]) + 1
			except ValueError:
				sequence = cls.objects.filter(store=store).count() + 1
		return f'{prefix}{sequence:06d}'

	@property
	def is_quote(self) -> bool:
		return self.status == self.Status.QUOTE

	@property
	def is_cancelled(self) -> bool:
		return self.status == self.Status.CANCELLED

	@property
	def gross_total(self) -> Decimal:
		return sum((item.gross_total for item in self.items.all()), ZERO_DECIMAL)


class SaleItem(models.Model):
	sale = models.ForeignKey(Sale, related_name='items', on_delete=models.CASCADE)
	product = models.ForeignKey('products.Product', verbose_name=_('Produto'), on_delete=models.PROTECT, related_name='sale_items')
	product_name = models.CharField(_('Descrição'), max_length=200, blank=True)
	quantity = models.DecimalField(_('Quantidade'), max_digits=12, decimal_places=3, default=Decimal('1.000'))
	unit_price = models.DecimalField(_('Preço unitário'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	discount_type = models.CharField(_('Tipo de desconto'), max_length=20, choices=DiscountType.choices, blank=True)
	discount_value = models.DecimalField(_('Desconto informado'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	discount_amount = models.DecimalField(_('Desconto'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	total = models.DecimalField(_('Total'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	sort_order = models.PositiveIntegerField(_('Ordem'), default=0)

	class Meta:
		ordering = ['sort_order', 'pk']
		verbose_name = _('Item da venda')
		verbose_name_plural = _('Itens da venda')

	def __str__(self):
		return self.product_name or str(self.product)

	@property
	def gross_total(self) -> Decimal:
		return (self.quantity or Decimal('0')) * (self.unit_price or Decimal('0'))


class SalePayment(models.Model):
	sale = models.ForeignKey(Sale, related_name='payments', on_delete=models.CASCADE)
	payment_method = models.ForeignKey(PaymentMethod, verbose_name=_('Forma de pagamento'), on_delete=models.PROTECT, related_name='sale_payments')
	amount = models.DecimalField(_('Valor'), max_digits=14, decimal_places=2)
	installments = models.PositiveSmallIntegerField(_('Parcelas'), default=1)
	is_credit = models.BooleanField(_('Crediário'), default=False)
	created_at = models.DateTimeField(_('Criado em'), auto_now_add=True)

	class Meta:
		ordering = ['pk']
		verbose_name = _('Pagamento da venda')
		verbose_name_plural = _('Pagamentos da venda')

	def __str__(self):
		return f'{self.payment_method} {self.amount}'


class CashRegisterClosing(models.Model):
	"""Abertura e fechamento do caixa de uma loja em um dia."""

	class Status(models.TextChoices):
		OPEN = 'open', _('Aberto')
		CLOSED = 'closed', _('Fechado')

	store = models.ForeignKey('core.Store', verbose_name=_('Loja'), on_delete=models.PROTECT, related_name='cash_closings')
	closing_date = models.DateField(_('Data'))
	status = models.CharField(_('Situação'), max_length=10, choices=Status.choices, default=Status.OPEN)
	opening_balance = models.DecimalField(_('Fundo de troco'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	opened_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		verbose_name=_('Aberto por'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	opened_at = models.DateTimeField(_('Aberto em'), auto_now_add=True)
	closed_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		verbose_name=_('Fechado por'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	closed_at = models.DateTimeField(_('Fechado em'), blank=True, null=True)
	cash_expected = models.DecimalField(_('Dinheiro esperado'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	card_expected = models.DecimalField(_('Cartão esperado'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	pix_expected = models.DecimalField(_('PIX esperado'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	credit_expected = models.DecimalField(_('Crediário'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	other_expected = models.DecimalField(_('Outros'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	cash_counted = models.DecimalField(_('Dinheiro contado'), max_digits=14, decimal_places=2, blank=True, null=True)
	card_counted = models.DecimalField(_('Cartão conferido'), max_digits=14, decimal_places=2, blank=True, null=True)
	pix_counted = models.DecimalField(_('PIX conferido'), max_digits=14, decimal_places=2, blank=True, null=True)
	difference = models.DecimalField(_('Diferença'), max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	notes = models.TextField(_('Observações'), blank=True)
	updated_at = models.DateTimeField(_('Atualizado em'), auto_now=True)

	class Meta:
		ordering = ['-closing_date', '-pk']
		verbose_name = _('Fechamento de caixa')
		verbose_name_plural = _('Fechamentos de caixa')
		constraints = [
			models.UniqueConstraint(fields=['store', 'closing_date'], name='uniq_sales_cash_closing_store_day'),
		]

	def __str__(self):
		return f'Caixa {self.store.code} {self.closing_date:%d/%m/%Y} ({self.get_status_display()})'

	@property
	def is_open(self) -> bool:
		return self.status == self.Status.OPEN

	@property
	def total_expected(self) -> Decimal:
		return (
			self.cash_expected
			+ self.card_expected
			+ self.pix_expected
			+ self.credit_expected
			+ self.other_expected
		)


class CashRegisterMovement(models.Model):
	class MovementType(models.TextChoices):
		SANGRIA = 'sangria', _('Sangria')
		SUPRIMENTO = 'suprimento', _('Suprimento')

	closing = models.ForeignKey(CashRegisterClosing, verbose_name=_('Caixa'), on_delete=models.CASCADE, related_name='movements')
	movement_type = models.CharField(_('Tipo'), max_length=20, choices=MovementType.choices)
	amount = models.DecimalField(_('Valor'), max_digits=14, decimal_places=2)
	reason = models.CharField(_('Motivo'), max_length=255)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		verbose_name=_('Registrado por'),
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
	)
	created_at = models.DateTimeField(_('Registrado em'), auto_now_add=True)

	class Meta:
		ordering = ['created_at', 'pk']
		verbose_name = _('Movimentação de caixa')
		verbose_name_plural = _('Movimentações de caixa')
		constraints = [
			models.CheckConstraint(condition=models.Q(amount__gt=0), name='sales_cash_movement_amount_gt_0'),
		]

	def __str__(self):
		return f'{self.get_movement_type_display()} {self.amount}'

	@property
	def signed_amount(self) -> Decimal:
		return -self.amount if self.movement_type == self.MovementType.SANGRIA else self.amount

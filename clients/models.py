from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import DecimalField, ExpressionWrapper, F, Sum, Value
from django.db.models.functions import Coalesce

from core.utils.documents import format_document, normalize_document

ZERO_DECIMAL = Decimal('0.00')


class Client(models.Model):
	class DocumentType(models.TextChoices):
		CPF = 'cpf', 'CPF'
		CNPJ = 'cnpj', 'CNPJ'

	name = models.CharField('Nome / Razão social', max_length=200)
	document_type = models.CharField('Tipo de documento', max_length=4, choices=DocumentType.choices, default=DocumentType.CPF)
	document = models.CharField('CPF/CNPJ', max_length=14, blank=True)
	email = models.EmailField('E-mail', blank=True)
	phone = models.CharField('Telefone', max_length=30, blank=True)
	phone_secondary = models.CharField('Telefone secundário', max_length=30, blank=True)
	address = models.CharField('Endereço', max_length=255, blank=True)
	number = models.CharField('Número', max_length=20, blank=True)
	complement = models.CharField('Complemento', max_length=100, blank=True)
	district = models.CharField('Bairro', max_length=100, blank=True)
	city = models.CharField('Cidade', max_length=100, blank=True)
	state = models.CharField('UF', max_length=2, blank=True)
	zip_code = models.CharField('CEP', max_length=12, blank=True)
	responsible_user = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='responsible_clients',
		verbose_name='Responsável',
	)
	observations = models.TextField('Observações', blank=True)
	credit_limit = models.DecimalField('Limite de crédito', max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	active = models.BooleanField('Ativo', default=True)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)
	updated_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Atualizado por',
	)

	class Meta:
		ordering = ('name',)
		verbose_name = 'Cliente'
		verbose_name_plural = 'Clientes'
		constraints = [
			models.UniqueConstraint(
				fields=['document'],
				condition=~models.Q(document=''),
				name='uniq_clients_client_document',
			),
			models.CheckConstraint(
				condition=models.Q(credit_limit__gte=0),
				name='clients_client_credit_limit_gte_0',
			),
		]

	def __str__(self):
		if self.document:
			return f'{self.name} ({self.formatted_document})'
		return self.name

	@property
	def formatted_document(self) -> str:
		if not self.document:
			return ''
		return format_document(self.document, self.document_type)

	def _sync_document_fields(self):
		if not self.document:
			self.document = ''
			return
		try:
			self.document = normalize_document(self.document, self.document_type)
		except ValueError as exc:
			raise ValidationError({'document': str(exc)})

	def clean(self):
		super().clean()
		self._sync_document_fields()
		if self.credit_limit is not None and self.credit_limit < 0:
			raise ValidationError({'credit_limit': 'O limite de crédito não pode ser negativo.'})

	def save(self, *args, **kwargs):
		self._sync_document_fields()
		previous_limit = None
		if self.pk:
			previous_limit = (
				Client.objects.filter(pk=self.pk).values_list('credit_limit', flat=True).first()
			)
		super().save(*args, **kwargs)
		if previous_limit is not None and previous_limit != self.credit_limit:
			CustomerCreditHistory.objects.create(
				customer=self,
				action_type=CustomerCreditHistory.ActionType.LIMIT_CHANGE,
				old_value=previous_limit,
				new_value=self.credit_limit,
				reference_type=CustomerCreditHistory.ReferenceType.MANUAL,
				notes='Alteração de limite de crédito',
				created_by=self.updated_by,
			)

	@property
	def used_credit(self) -> Decimal:
		"""Saldo devedor: soma de (valor - pago) dos títulos pendentes."""
		outstanding = ExpressionWrapper(
			F('amount') - F('paid_amount'),
			output_field=DecimalField(max_digits=14, decimal_places=2),
		)
		total = self.receivables.filter(status='pending').aggregate(
			total=Coalesce(Sum(outstanding), Value(ZERO_DECIMAL), output_field=DecimalField(max_digits=14, decimal_places=2))
		)['total']
		return total or ZERO_DECIMAL

	@property
	def available_credit(self) -> Decimal:
		return (self.credit_limit or ZERO_DECIMAL) - self.used_credit

	def credit_summary(self) -> dict:
		used = self.used_credit
		limit = self.credit_limit or ZERO_DECIMAL
		return {
			'credit_limit': limit,
			'used_credit': used,
			'available_credit': limit - used,
		}


class DeliveryAddress(models.Model):
	client = models.ForeignKey(Client, related_name='delivery_addresses', on_delete=models.CASCADE, verbose_name='Cliente')
	name = models.CharField('Identificação', max_length=100)
	address = models.CharField('Endereço', max_length=255)
	number = models.CharField('Número', max_length=20, blank=True)
	complement = models.CharField('Complemento', max_length=100, blank=True)
	district = models.CharField('Bairro', max_length=100, blank=True)
	city = models.CharField('Cidade', max_length=100, blank=True)
	state = models.CharField('UF', max_length=2, blank=True)
	zip_code = models.CharField('CEP', max_length=12, blank=True)
	contact_name = models.CharField('Contato', max_length=150, blank=True)
	contact_phone = models.CharField('Telefone do contato', max_length=30, blank=True)
	is_default = models.BooleanField('Padrão', default=False)
	active = models.BooleanField('Ativo', default=True)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		ordering = ('-is_default', 'name')
		verbose_name = 'Endereço de entrega'
		verbose_name_plural = 'Endereços de entrega'

	def __str__(self):
		return f'{self.name} - {self.full_address}'

	@property
	def full_address(self) -> str:
		parts = [self.address, self.number, self.complement, self.district]
		line = ', '.join(part for part in parts if part)
		city_state = ' - '.join(part for part in [self.city, self.state] if part)
		return ' - '.join(part for part in [line, city_state, self.zip_code] if part)

	def save(self, *args, **kwargs):
		super().save(*args, **kwargs)
		if self.is_default:
			DeliveryAddress.objects.filter(client_id=self.client_id, is_default=True).exclude(pk=self.pk).update(is_default=False)


class CustomerCreditHistory(models.Model):
	class ActionType(models.TextChoices):
		LIMIT_CHANGE = 'limit_change', 'Alteração de limite'
		PURCHASE = 'purchase', 'Compra no crediário'
		PAYMENT = 'payment', 'Pagamento'

	class ReferenceType(models.TextChoices):
		MANUAL = 'manual', 'Manual'
		SALE = 'sale', 'Venda'
		CREDIT_PAYMENT = 'credit_payment', 'Pagamento de crediário'
		ACCOUNTS_RECEIVABLE = 'accounts_receivable', 'Conta a receber'

	customer = models.ForeignKey(Client, related_name='credit_history', on_delete=models.PROTECT, verbose_name='Cliente')
	action_type = models.CharField('Ação', max_length=20, choices=ActionType.choices)
	old_value = models.DecimalField('Valor anterior', max_digits=14, decimal_places=2, blank=True, null=True)
	new_value = models.DecimalField('Novo valor', max_digits=14, decimal_places=2, blank=True, null=True)
	reference_type = models.CharField('Origem', max_length=30, choices=ReferenceType.choices, default=ReferenceType.MANUAL)
	reference_id = models.PositiveBigIntegerField('ID de origem', blank=True, null=True)
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
		ordering = ('-created_at', '-pk')
		verbose_name = 'Histórico de crédito'
		verbose_name_plural = 'Histórico de crédito'

	def __str__(self):
		return f'{self.customer} - {self.get_action_type_display()} ({self.old_value} -> {self.new_value})'

	def save(self, *args, **kwargs):
		if self.pk and CustomerCreditHistory.objects.filter(pk=self.pk).exists():
			raise ValidationError('O histórico de crédito não pode ser alterado.')
		super().save(*args, **kwargs)

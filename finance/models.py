import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from .allocation import ReceivableSnapshot

ZERO_DECIMAL = Decimal('0.00')


class AccountReceivable(models.Model):
	class Status(models.TextChoices):
		PENDING = 'pending', 'Pendente'
		PAID = 'paid', 'Pago'
		CANCELLED = 'cancelled', 'Cancelado'

	customer = models.ForeignKey('clients.Client', related_name='receivables', on_delete=models.PROTECT, verbose_name='Cliente')
	sale = models.ForeignKey('sales.Sale', related_name='receivables', on_delete=models.PROTECT, blank=True, null=True, verbose_name='Venda')
	store = models.ForeignKey('core.Store', related_name='receivables', on_delete=models.PROTECT, blank=True, null=True, verbose_name='Loja')
	amount = models.DecimalField('Valor', max_digits=14, decimal_places=2)
	paid_amount = models.DecimalField('Valor pago', max_digits=14, decimal_places=2, default=ZERO_DECIMAL)
	due_date = models.DateField('Vencimento')
	status = models.CharField('Situação', max_length=20, choices=Status.choices, default=Status.PENDING)
	paid_at = models.DateTimeField('Pago em', blank=True, null=True)
	paid_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Baixado por',
	)
	notes = models.TextField('Observações', blank=True)
	version = models.PositiveIntegerField('Versão', default=0, editable=False)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Criado por',
	)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		verbose_name = 'Conta a receber'
		verbose_name_plural = 'Contas a receber'
		ordering = ('due_date', 'pk')
		indexes = [
			models.Index(fields=['customer', 'status', 'due_date'], name='finance_ar_customer_open_idx'),
		]
		constraints = [
			models.CheckConstraint(condition=models.Q(amount__gt=0), name='finance_ar_amount_gt_0'),
			models.CheckConstraint(condition=models.Q(paid_amount__gte=0), name='finance_ar_paid_gte_0'),
			models.CheckConstraint(condition=models.Q(paid_amount__lte=models.F('amount')), name='finance_ar_paid_lte_amount'),
		]

	def __str__(self) -> str:
		return f'{self.customer} - {self.amount} venc. {self.due_date:%d/%m/%Y} ({self.get_status_display()})'

	@property
	def outstanding(self) -> Decimal:
		return (self.amount or ZERO_DECIMAL) - (self.paid_amount or ZERO_DECIMAL)

	@property
	def is_overdue(self) -> bool:
		return self.status == self.Status.PENDING and self.due_date < timezone.localdate()

	def clean(self):
		super().clean()
		if self.amount is not None and self.paid_amount is not None:
			if self.paid_amount > self.amount:
				raise ValidationError({'paid_amount': 'O valor pago não pode ser maior que o valor do título.'})
			if self.status != self.Status.CANCELLED:
				expected = self.Status.PAID if self.paid_amount >= self.amount else self.Status.PENDING
				if self.status != expected:
					raise ValidationError({'status': 'Situação incompatível com o valor pago.'})

	def to_snapshot(self) -> ReceivableSnapshot:
		return ReceivableSnapshot(
			id=self.pk,
			customer_id=self.customer_id,
			amount=self.amount,
			paid_amount=self.paid_amount,
			due_date=self.due_date,
			version=self.version,
		)


class CustomerCreditPayment(models.Model):
	customer = models.ForeignKey('clients.Client', related_name='credit_payments', on_delete=models.PROTECT, verbose_name='Cliente')
	amount = models.DecimalField('Valor', max_digits=14, decimal_places=2)
	payment_method = models.ForeignKey(
		'sales.PaymentMethod',
		related_name='credit_payments',
		on_delete=models.PROTECT,
		blank=True,
		null=True,
		verbose_name='Forma de pagamento',
	)
	notes = models.TextField('Observações', blank=True)
	allocation_id = models.UUIDField('Identificador da baixa', default=uuid.uuid4, unique=True, editable=False)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Recebido por',
	)
	created_at = models.DateTimeField('Recebido em', auto_now_add=True)

	class Meta:
		verbose_name = 'Pagamento de crediário'
		verbose_name_plural = 'Pagamentos de crediário'
		ordering = ('-created_at', '-pk')

	def __str__(self) -> str:
		return f'{self.customer} - {self.amount} em {timezone.localtime(self.created_at):%d/%m/%Y}'


class CreditPaymentAllocation(models.Model):
	payment = models.ForeignKey(CustomerCreditPayment, related_name='allocations', on_delete=models.CASCADE, verbose_name='Pagamento')
	receivable = models.ForeignKey(AccountReceivable, related_name='allocations', on_delete=models.PROTECT, verbose_name='Título')
	amount = models.DecimalField('Valor aplicado', max_digits=14, decimal_places=2)
	paid_amount_before = models.DecimalField('Pago antes', max_digits=14, decimal_places=2)
	paid_amount_after = models.DecimalField('Pago depois', max_digits=14, decimal_places=2)

	class Meta:
		verbose_name = 'Baixa de título'
		verbose_name_plural = 'Baixas de títulos'
		ordering = ('payment', 'receivable__due_date', 'receivable')

	def __str__(self) -> str:
		return f'{self.amount} -> título {self.receivable_id}'


class CostCenter(models.Model):
	code = models.CharField('Código', max_length=20, unique=True)
	name = models.CharField('Nome', max_length=150)
	description = models.TextField('Descrição', blank=True)
	active = models.BooleanField('Ativo', default=True)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Centro de custo'
		verbose_name_plural = 'Centros de custo'
		ordering = ('code',)

	def __str__(self) -> str:
		return f'{self.code} - {self.name}'


class AccountPayable(models.Model):
	class PaymentType(models.TextChoices):
		BOLETO = 'boleto', 'Boleto'
		CARTAO = 'cartao', 'Cartão'
		TRANSFERENCIA = 'transferencia', 'Transferência'
		PIX = 'pix', 'PIX'

	class Status(models.TextChoices):
		OPEN = 'em_aberto', 'Em aberto'
		PAID = 'pago', 'Pago'
		CANCELLED = 'cancelado', 'Cancelado'

	supplier = models.ForeignKey('products.Supplier', related_name='payables', on_delete=models.PROTECT, blank=True, null=True, verbose_name='Fornecedor')
	cost_center = models.ForeignKey(CostCenter, related_name='payables', on_delete=models.PROTECT, blank=True, null=True, verbose_name='Centro de custo')
	description = models.CharField('Descrição', max_length=255)
	amount = models.DecimalField('Valor', max_digits=14, decimal_places=2)
	due_date = models.DateField('Vencimento')
	payment_type = models.CharField('Forma de pagamento', max_length=20, choices=PaymentType.choices, default=PaymentType.BOLETO)
	status = models.CharField('Situação', max_length=20, choices=Status.choices, default=Status.OPEN)
	barcode = models.CharField('Linha digitável', max_length=60, blank=True)
	pix_key = models.CharField('Chave PIX', max_length=140, blank=True)
	bank_name = models.CharField('Banco', max_length=100, blank=True)
	bank_agency = models.CharField('Agência', max_length=20, blank=True)
	bank_account = models.CharField('Conta', max_length=30, blank=True)
	card_last_digits = models.CharField('Final do cartão', max_length=4, blank=True)
	observations = models.TextField('Observações', blank=True)
	created_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Criado por',
	)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		verbose_name = 'Conta a pagar'
		verbose_name_plural = 'Contas a pagar'
		ordering = ('due_date', 'pk')
		constraints = [
			models.CheckConstraint(condition=models.Q(amount__gt=0), name='finance_ap_amount_gt_0'),
		]

	def __str__(self) -> str:
		return f'{self.description} - {self.amount} venc. {self.due_date:%d/%m/%Y}'

	@property
	def is_overdue(self) -> bool:
		return self.status == self.Status.OPEN and self.due_date < timezone.localdate()

	def clean(self):
		super().clean()
		if self.payment_type == self.PaymentType.PIX and not self.pix_key:
			raise ValidationError({'pix_key': 'Informe a chave PIX.'})


class PayablePayment(models.Model):
	account = models.ForeignKey(AccountPayable, related_name='payments', on_delete=models.PROTECT, verbose_name='Conta')
	payment_date = models.DateField('Data do pagamento', default=timezone.localdate)
	amount_paid = models.DecimalField('Valor pago', max_digits=14, decimal_places=2)
	payment_method = models.CharField(
		'Forma de pagamento',
		max_length=20,
		choices=AccountPayable.PaymentType.choices,
		blank=True,
	)
	notes = models.TextField('Observações', blank=True)
	receipt = models.FileField('Comprovante', upload_to='payables/receipts/%Y/%m/', blank=True)
	paid_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Pago por',
	)
	created_at = models.DateTimeField('Registrado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Pagamento de conta'
		verbose_name_plural = 'Pagamentos de contas'
		ordering = ('-payment_date', '-pk')

	def __str__(self) -> str:
		return f'{self.account.description} - {self.amount_paid} em {self.payment_date:%d/%m/%Y}'


ATTACHMENT_MAX_SIZE = 10 * 1024 * 1024
ATTACHMENT_EXTENSIONS = ('pdf', 'jpg', 'jpeg', 'png')


class PayableAttachment(models.Model):
	account = models.ForeignKey(AccountPayable, related_name='attachments', on_delete=models.CASCADE, verbose_name='Conta')
	file = models.FileField('Arquivo', upload_to='payables/attachments/%Y/%m/')
	filename = models.CharField('Nome do arquivo', max_length=255)
	file_size = models.PositiveIntegerField('Tamanho (bytes)', default=0)
	mime_type = models.CharField('Tipo', max_length=100, blank=True)
	uploaded_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Enviado por',
	)
	created_at = models.DateTimeField('Enviado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Anexo de conta'
		verbose_name_plural = 'Anexos de contas'
		ordering = ('-created_at', '-pk')

	def __str__(self) -> str:
		return self.filename


class AuditLog(models.Model):
	"""Append-only trail of changes made to financial records."""

	class Action(models.TextChoices):
		INSERT = 'insert', 'Inclusão'
		UPDATE = 'update', 'Alteração'
		DELETE = 'delete', 'Exclusão'
		PAYMENT = 'payment', 'Pagamento'
		CANCEL = 'cancel', 'Cancelamento'
		ATTACHMENT = 'attachment', 'Anexo'

	table_name = models.CharField('Tabela', max_length=60)
	record_id = models.PositiveBigIntegerField('Registro')
	action = models.CharField('Ação', max_length=20, choices=Action.choices)
	old_values = models.JSONField('Valores anteriores', blank=True, null=True)
	new_values = models.JSONField('Valores novos', blank=True, null=True)
	user = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Usuário',
	)
	created_at = models.DateTimeField('Registrado em', auto_now_add=True)

	class Meta:
		verbose_name = 'Registro de auditoria'
		verbose_name_plural = 'Registros de auditoria'
		ordering = ('-created_at', '-pk')
		indexes = [
			models.Index(fields=['table_name', 'record_id'], name='finance_audit_record_idx'),
		]

	def __str__(self) -> str:
		return f'{self.table_name}#{self.record_id} {self.get_action_display()}'

	def save(self, *args, **kwargs):
		if self.pk and AuditLog.objects.filter(pk=self.pk).exists():
			raise ValidationError('O registro de auditoria não pode ser alterado.')
		super().save(*args, **kwargs)

from decimal import Decimal

from django.conf import settings
from django.core.cache import cache
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.roles import Capability, Role, has_capability
from core.utils.documents import format_cnpj, normalize_cnpj


class Store(models.Model):
	class PrintFormat(models.TextChoices):
		A4 = 'a4', 'A4'
		BOBINA = 'bobina', 'Bobina (80mm)'

	name = models.CharField('Nome', max_length=150)
	code = models.CharField('Código', max_length=10, unique=True)
	cnpj = models.CharField('CNPJ', max_length=14, blank=True)
	address = models.CharField('Endereço', max_length=255, blank=True)
	phone = models.CharField('Telefone', max_length=30, blank=True)
	email = models.EmailField('E-mail', blank=True)
	active = models.BooleanField('Ativa', default=True)
	pdv_auto_print = models.BooleanField('Imprimir comprovante automaticamente', default=False)
	pdv_print_format = models.CharField(
		'Formato de impressão',
		max_length=10,
		choices=PrintFormat.choices,
		default=PrintFormat.A4,
	)
	pdv_max_discount_percent = models.DecimalField(
		'Desconto máximo no PDV (%)',
		max_digits=5,
		decimal_places=2,
		default=Decimal('100.00'),
		validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
	)
	created_at = models.DateTimeField('Criado em', auto_now_add=True)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)

	class Meta:
		ordering = ('code',)
		verbose_name = 'Loja'
		verbose_name_plural = 'Lojas'

	def __str__(self):
		return f'{self.code} - {self.name}'

	@property
	def formatted_cnpj(self) -> str:
		return format_cnpj(self.cnpj)

	def clean(self):
		super().clean()
		self.code = (self.code or '').strip().upper()
		if not self.code:
			raise ValidationError({'code': 'Informe o código da loja.'})
		if self.cnpj:
			try:
				self.cnpj = normalize_cnpj(self.cnpj)
			except ValueError as exc:
				raise ValidationError({'cnpj': str(exc)})

	def save(self, *args, **kwargs):
		self.code = (self.code or '').strip().upper()
		super().save(*args, **kwargs)

	@classmethod
	def available_for(cls, user):
		"""Active stores the user may operate on."""
		qs = cls.objects.filter(active=True)
		if not user or not user.is_authenticated:
			return qs.none()
		if user.is_superuser or has_capability(user, Capability.ACCESS_ALL_STORES):
			return qs
		return qs.filter(user_accesses__user=user)


class UserStoreAccess(models.Model):
	user = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.CASCADE,
		related_name='store_accesses',
		verbose_name='Usuário',
	)
	store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='user_accesses', verbose_name='Loja')
	created_at = models.DateTimeField('Criado em', auto_now_add=True)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['user', 'store'], name='uniq_core_user_store'),
		]
		verbose_name = 'Acesso à loja'
		verbose_name_plural = 'Acessos às lojas'

	def __str__(self):
		return f'{self.user} @ {self.store.code}'


class UserRoleAssignment(models.Model):
	user = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.CASCADE,
		related_name='role_assignments',
		verbose_name='Usuário',
	)
	role = models.CharField('Função', max_length=20, choices=Role.choices)
	assigned_at = models.DateTimeField('Atribuída em', auto_now_add=True)
	assigned_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		related_name='+',
		verbose_name='Atribuída por',
	)

	class Meta:
		constraints = [
			models.UniqueConstraint(fields=['user', 'role'], name='uniq_core_user_role'),
		]
		ordering = ('user__username', 'role')
		verbose_name = 'Função de usuário'
		verbose_name_plural = 'Funções de usuário'

	def __str__(self):
		return f'{self.user} - {self.get_role_display()}'


def _default_credit_due_days():
	return getattr(settings, 'PDV_CREDIT_DUE_DAYS', 30)


def _default_quote_search_limit():
	return getattr(settings, 'PDV_QUOTE_SEARCH_LIMIT', 50)


class SalesConfiguration(models.Model):
	credit_due_days = models.PositiveIntegerField('Prazo do crediário (dias)', default=_default_credit_due_days)
	quote_search_limit = models.PositiveIntegerField(
		'Limite de orçamentos na busca',
		default=_default_quote_search_limit,
	)
	updated_at = models.DateTimeField('Atualizado em', auto_now=True)
	updated_by = models.ForeignKey(
		settings.AUTH_USER_MODEL,
		on_delete=models.SET_NULL,
		null=True,
		blank=True,
		verbose_name='Atualizado por',
	)

	CACHE_KEY = 'core.sales-config'

	class Meta:
		verbose_name = 'Configuração de vendas'
		verbose_name_plural = 'Configurações de vendas'

	def __str__(self):
		return 'Configurações de vendas'

	@classmethod
	def load(cls):
		cached = cache.get(cls.CACHE_KEY)
		if cached and getattr(cached, 'pk', None) and cls.objects.filter(pk=cached.pk).exists():
			return cached
		instance = cls.objects.first()
		if not instance:
			instance = cls.objects.create()
		cache.set(cls.CACHE_KEY, instance, 300)
		return instance

	@classmethod
	def clear_cache(cls):
		cache.delete(cls.CACHE_KEY)

	def save(self, *args, **kwargs):
		super().save(*args, **kwargs)
		cache.set(self.CACHE_KEY, self, 300)

	def delete(self, *args, **kwargs):
		super().delete(*args, **kwargs)
		self.clear_cache()

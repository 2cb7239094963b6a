from decimal import Decimal
from io import StringIO

from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import RequestFactory, TestCase, override_settings
from django.contrib.sessions.middleware import SessionMiddleware

from .middleware import ActiveStoreMiddleware
from .models import SalesConfiguration, Store, UserRoleAssignment, UserStoreAccess
from .roles import Capability, Role, forget_roles, has_any_role, has_capability, user_capabilities
from .services import assign_role, create_user_account, deactivate_user, revoke_role, set_store_access
from .utils.documents import format_document, guess_document_type, normalize_document
from .utils.money import format_brl, parse_decimal, quantize_money
from .utils.stores import resolve_active_store


def create_user(username, *roles, **extra):
	user = User.objects.create_user(username, f'{username}@example.com', 'pw123456', **extra)
	for role in roles:
		UserRoleAssignment.objects.create(user=user, role=role)
	return user


class RoleCapabilityTests(TestCase):
	def test_user_without_roles_has_no_capabilities(self):
		user = create_user('semfuncao')
		self.assertFalse(has_any_role(user))
		self.assertEqual(user_capabilities(user), frozenset())
		self.assertFalse(has_capability(user, Capability.VIEW_CATALOG))

	def test_leitor_only_reads(self):
		user = create_user('leitor', Role.LEITOR)
		self.assertTrue(has_capability(user, Capability.VIEW_SALES))
		self.assertTrue(has_capability(user, Capability.VIEW_DASHBOARD))
		self.assertFalse(has_capability(user, Capability.SELL))
		self.assertFalse(has_capability(user, Capability.RECEIVE_CREDIT_PAYMENTS))

	def test_operador_sells_but_does_not_pay_bills(self):
		user = create_user('operador', Role.OPERADOR)
		self.assertTrue(has_capability(user, Capability.SELL))
		self.assertTrue(has_capability(user, Capability.CANCEL_SALES))
		self.assertTrue(has_capability(user, Capability.ACCESS_ALL_STORES))
		self.assertFalse(has_capability(user, Capability.PAY_PAYABLES))
		self.assertFalse(has_capability(user, Capability.DELETE_RECORDS))

	def test_pagador_receives_and_pays(self):
		user = create_user('pagador', Role.PAGADOR)
		self.assertTrue(has_capability(user, Capability.RECEIVE_CREDIT_PAYMENTS))
		self.assertTrue(has_capability(user, Capability.PAY_PAYABLES))
		self.assertTrue(has_capability(user, Capability.MANAGE_PAYABLES))
		self.assertFalse(has_capability(user, Capability.SELL))

	def test_admin_and_superuser_hold_every_capability(self):
		admin = create_user('admin', Role.ADMIN)
		root = User.objects.create_superuser('root', 'root@example.com', 'pw123456')
		self.assertEqual(user_capabilities(admin), frozenset(Capability))
		self.assertEqual(user_capabilities(root), frozenset(Capability))
		self.assertTrue(has_any_role(root))

	def test_roles_combine(self):
		user = create_user('misto', Role.LEITOR, Role.PAGADOR)
		self.assertTrue(has_capability(user, Capability.PAY_PAYABLES))
		self.assertFalse(has_capability(user, Capability.SELL))

	def test_inactive_user_loses_capabilities(self):
		user = create_user('inativo', Role.ADMIN)
		user.is_active = False
		self.assertEqual(user_capabilities(user), frozenset())

	def test_forget_roles_reloads_assignments(self):
		user = create_user('tardio')
		self.assertFalse(has_any_role(user))
		UserRoleAssignment.objects.create(user=user, role=Role.LEITOR)
		forget_roles(user)
		self.assertTrue(has_any_role(user))


class StoreTests(TestCase):
	def setUp(self):
		self.store_a = Store.objects.create(name='Loja Centro', code='lj1')
		self.store_b = Store.objects.create(name='Loja Bairro', code='LJ2')
		Store.objects.create(name='Loja Fechada', code='LJ9', active=False)

	def test_code_is_uppercased(self):
		self.assertEqual(self.store_a.code, 'LJ1')

	def test_clean_normalizes_cnpj(self):
		store = Store(name='Loja Nova', code='LJ3', cnpj='12.345.678/0001-90')
		store.clean()
		self.assertEqual(store.cnpj, '12345678000190')
		self.assertEqual(store.formatted_cnpj, '12.345.678/0001-90')

	def test_clean_rejects_short_cnpj(self):
		store = Store(name='Loja Nova', code='LJ3', cnpj='123')
		with self.assertRaises(ValidationError):
			store.clean()

	def test_max_discount_cannot_exceed_hundred(self):
		store = Store(name='Loja Nova', code='LJ3', pdv_max_discount_percent=Decimal('120'))
		with self.assertRaises(ValidationError):
			store.full_clean()

	def test_operador_sees_every_active_store(self):
		user = create_user('operador', Role.OPERADOR)
		codes = list(Store.available_for(user).order_by('code').values_list('code', flat=True))
		self.assertEqual(codes, ['LJ1', 'LJ2'])

	def test_leitor_sees_only_linked_stores(self):
		user = create_user('leitor', Role.LEITOR)
		UserStoreAccess.objects.create(user=user, store=self.store_b)
		codes = list(Store.available_for(user).values_list('code', flat=True))
		self.assertEqual(codes, ['LJ2'])

	def test_resolve_active_store_prefers_requested_code(self):
		user = create_user('operador', Role.OPERADOR)
		store, available = resolve_active_store(user, 'lj2')
		self.assertEqual(store, self.store_b)
		self.assertEqual(len(available), 2)

	def test_resolve_active_store_ignores_forbidden_code(self):
		user = create_user('leitor', Role.LEITOR)
		UserStoreAccess.objects.create(user=user, store=self.store_a)
		store, _ = resolve_active_store(user, 'LJ2')
		self.assertEqual(store, self.store_a)


class ActiveStoreMiddlewareTests(TestCase):
	def setUp(self):
		self.factory = RequestFactory()
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		Store.objects.create(name='Loja Bairro', code='LJ2')
		self.user = create_user('operador', Role.OPERADOR)

	def _process(self, **headers):
		request = self.factory.get('/', headers=headers)
		SessionMiddleware(lambda r: None).process_request(request)
		request.user = self.user
		middleware = ActiveStoreMiddleware(lambda r: r)
		middleware(request)
		return request

	def test_header_selects_store(self):
		request = self._process(**{'X-Store': 'lj2'})
		self.assertEqual(request.store.code, 'LJ2')
		self.assertEqual(request.session['active_store_code'], 'LJ2')

	def test_defaults_to_first_available_store(self):
		request = self._process()
		self.assertEqual(request.store, self.store)
		self.assertEqual(len(request.available_stores), 2)


class SalesConfigurationTests(TestCase):
	def setUp(self):
		SalesConfiguration.clear_cache()

	def test_load_creates_singleton(self):
		config = SalesConfiguration.load()
		self.assertIsNotNone(config.pk)
		self.assertEqual(SalesConfiguration.load().pk, config.pk)
		self.assertEqual(SalesConfiguration.objects.count(), 1)

	@override_settings(PDV_CREDIT_DUE_DAYS=45, PDV_QUOTE_SEARCH_LIMIT=10)
	def test_defaults_come_from_settings(self):
		config = SalesConfiguration.load()
		self.assertEqual(config.credit_due_days, 45)
		self.assertEqual(config.quote_search_limit, 10)

	def test_save_refreshes_cache(self):
		config = SalesConfiguration.load()
		config.credit_due_days = 60
		config.save()
		self.assertEqual(SalesConfiguration.load().credit_due_days, 60)


class GrantRoleCommandTests(TestCase):
	def setUp(self):
		self.user = User.objects.create_user('maria', 'maria@example.com', 'pw123456')
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')

	def test_assigns_role_and_store(self):
		out = StringIO()
		call_command('grant_role', 'maria', 'leitor', '--store', 'lj1', stdout=out)
		self.assertTrue(UserRoleAssignment.objects.filter(user=self.user, role=Role.LEITOR).exists())
		self.assertTrue(UserStoreAccess.objects.filter(user=self.user, store=self.store).exists())
		self.assertIn('Função atribuída', out.getvalue())

	def test_revoke_removes_role(self):
		UserRoleAssignment.objects.create(user=self.user, role=Role.OPERADOR)
		call_command('grant_role', 'maria', 'operador', '--revoke', stdout=StringIO())
		self.assertFalse(UserRoleAssignment.objects.filter(user=self.user).exists())

	def test_unknown_user(self):
		with self.assertRaises(CommandError):
			call_command('grant_role', 'ninguem', 'admin', stdout=StringIO())

	def test_unknown_store_assigns_nothing(self):
		with self.assertRaises(CommandError):
			call_command('grant_role', 'maria', 'leitor', '--store', 'XX', stdout=StringIO())
		self.assertFalse(UserRoleAssignment.objects.filter(user=self.user).exists())

	def test_cannot_revoke_last_admin(self):
		UserRoleAssignment.objects.create(user=self.user, role=Role.ADMIN)
		with self.assertRaisesMessage(CommandError, 'último administrador'):
			call_command('grant_role', 'maria', 'admin', '--revoke', stdout=StringIO())


class UserServicesTests(TestCase):
	def setUp(self):
		self.admin = create_user('gerente', Role.ADMIN)
		self.store = Store.objects.create(name='Loja Centro', code='LJ1')
		self.other_store = Store.objects.create(name='Loja Bairro', code='LJ2')

	def test_assign_role_refreshes_capabilities(self):
		user = create_user('maria')
		self.assertFalse(has_any_role(user))
		assignment, created = assign_role(user, Role.PAGADOR, actor=self.admin)
		self.assertTrue(created)
		self.assertEqual(assignment.assigned_by, self.admin)
		self.assertTrue(has_capability(user, Capability.PAY_PAYABLES))
		_, created = assign_role(user, Role.PAGADOR, actor=self.admin)
		self.assertFalse(created)

	def test_revoke_role(self):
		user = create_user('maria', Role.OPERADOR)
		self.assertTrue(has_capability(user, Capability.SELL))
		self.assertTrue(revoke_role(user, Role.OPERADOR, actor=self.admin))
		self.assertFalse(has_capability(user, Capability.SELL))
		self.assertFalse(revoke_role(user, Role.OPERADOR, actor=self.admin))

	def test_last_active_admin_is_kept(self):
		with self.assertRaises(ValidationError):
			revoke_role(self.admin, Role.ADMIN)
		with self.assertRaises(ValidationError):
			deactivate_user(self.admin)
		inactive = create_user('antigo', Role.ADMIN, is_active=False)
		with self.assertRaises(ValidationError):
			revoke_role(self.admin, Role.ADMIN)
		deactivate_user(inactive)

		create_user('diretora', Role.ADMIN)
		self.assertTrue(revoke_role(self.admin, Role.ADMIN))

	def test_set_store_access_replaces_stores(self):
		user = create_user('maria', Role.LEITOR)
		UserStoreAccess.objects.create(user=user, store=self.store)
		set_store_access(user, [self.other_store])
		self.assertEqual(list(Store.available_for(user)), [self.other_store])

	def test_create_user_account(self):
		user = create_user_account(
			'maria',
			'segredo123',
			roles=[Role.OPERADOR],
			store_codes=['lj2'],
			actor=self.admin,
			email='maria@example.com',
		)
		self.assertTrue(user.check_password('segredo123'))
		self.assertTrue(has_capability(user, Capability.SELL))
		self.assertTrue(UserStoreAccess.objects.filter(user=user, store=self.other_store).exists())
		with self.assertRaises(ValidationError):
			create_user_account('joana', 'segredo123', store_codes=['XX'])
		self.assertFalse(User.objects.filter(username='joana').exists())


class DocumentAndMoneyUtilsTests(TestCase):
	def test_normalize_document(self):
		self.assertEqual(normalize_document('123.456.789-01', 'cpf'), '12345678901')
		self.assertEqual(normalize_document('12.345.678/0001-90', 'cnpj'), '12345678000190')
		with self.assertRaises(ValueError):
			normalize_document('123', 'cpf')

	def test_format_and_guess(self):
		self.assertEqual(guess_document_type('12345678901'), 'cpf')
		self.assertEqual(format_document('12345678901'), '123.456.789-01')
		self.assertEqual(format_document('12345678000190'), '12.345.678/0001-90')

	def test_parse_decimal_accepts_comma(self):
		self.assertEqual(parse_decimal('1.234,56'), Decimal('1234.56'))
		self.assertEqual(parse_decimal('10.5'), Decimal('10.5'))
		self.assertEqual(parse_decimal(0.1), Decimal('0.1'))
		self.assertIsNone(parse_decimal('abc'))
		self.assertIsNone(parse_decimal(''))

	def test_money_formatting(self):
		self.assertEqual(quantize_money('2.345'), Decimal('2.35'))
		self.assertEqual(format_brl(Decimal('1234.5')), 'R$ 1.234,50')
		self.assertEqual(format_brl(Decimal('0')), 'R$ 0,00')

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from core.roles import Role
from core.services import assign_role, grant_store_access, resolve_stores, revoke_role


class Command(BaseCommand):
	help = 'Atribui uma função (e opcionalmente lojas) a um usuário, ativando seu acesso ao sistema.'

	def add_arguments(self, parser):
		parser.add_argument('username', help='Nome de usuário.')
		parser.add_argument('role', choices=Role.values, help='Função a atribuir.')
		parser.add_argument(
			'--store',
			action='append',
			default=[],
			dest='stores',
			help='Código de loja liberada para o usuário (pode ser repetido).',
		)
		parser.add_argument(
			'--revoke',
			action='store_true',
			help='Remove a função em vez de atribuí-la.',
		)

	def handle(self, *args, **options):
		User = get_user_model()
		try:
			user = User.objects.get(username=options['username'])
		except User.DoesNotExist:
			raise CommandError(f"Usuário '{options['username']}' não encontrado.")

		role = Role(options['role'])
		if options['revoke']:
			try:
				deleted = revoke_role(user, role)
			except ValidationError as exc:
				raise CommandError(exc.messages[0])
			if deleted:
				self.stdout.write(self.style.WARNING(f'Função removida: {role.label}'))
			else:
				self.stdout.write(f'Usuário não possuía a função {role.label}.')
			return

		try:
			stores = resolve_stores(options['stores'])
		except ValidationError as exc:
			raise CommandError(exc.messages[0])

		_, created = assign_role(user, role)
		if created:
			self.stdout.write(self.style.SUCCESS(f'Função atribuída: {role.label}'))
		else:
			self.stdout.write(f'Existente (sem alterações): {role.label}')

		for store in grant_store_access(user, stores):
			self.stdout.write(self.style.SUCCESS(f'Loja liberada: {store}'))

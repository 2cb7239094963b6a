from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import core.models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='Store',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=150, verbose_name='Nome')),
				('code', models.CharField(max_length=10, unique=True, verbose_name='Código')),
				('cnpj', models.CharField(blank=True, max_length=14, verbose_name='CNPJ')),
				('address', models.CharField(blank=True, max_length=255, verbose_name='Endereço')),
				('phone', models.CharField(blank=True, max_length=30, verbose_name='Telefone')),
				('email', models.EmailField(blank=True, max_length=254, verbose_name='E-mail')),
				('active', models.BooleanField(default=True, verbose_name='Ativa')),
				('pdv_auto_print', models.BooleanField(default=False, verbose_name='Imprimir comprovante automaticamente')),
				('pdv_print_format', models.CharField(choices=[('a4', 'A4'), ('bobina', 'Bobina (80mm)')], default='a4', max_length=10, verbose_name='Formato de impressão')),
				('pdv_max_discount_percent', models.DecimalField(decimal_places=2, default=Decimal('100.00'), max_digits=5, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))], verbose_name='Desconto máximo no PDV (%)')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
			],
			options={
				'verbose_name': 'Loja',
				'verbose_name_plural': 'Lojas',
				'ordering': ('code',),
			},
		),
		migrations.CreateModel(
			name='SalesConfiguration',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('credit_due_days', models.PositiveIntegerField(default=core.models._default_credit_due_days, verbose_name='Prazo do crediário (dias)')),
				('quote_search_limit', models.PositiveIntegerField(default=core.models._default_quote_search_limit, verbose_name='Limite de orçamentos na busca')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Atualizado por')),
			],
			options={
				'verbose_name': 'Configuração de vendas',
				'verbose_name_plural': 'Configurações de vendas',
			},
		),
		migrations.CreateModel(
			name='UserStoreAccess',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='user_accesses', to='core.store', verbose_name='Loja')),
				('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='store_accesses', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
			],
			options={
				'verbose_name': 'Acesso à loja',
				'verbose_name_plural': 'Acessos às lojas',
			},
		),
		migrations.AddConstraint(
			model_name='userstoreaccess',
			constraint=models.UniqueConstraint(fields=('user', 'store'), name='uniq_core_user_store'),
		),
		migrations.CreateModel(
			name='UserRoleAssignment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('role', models.CharField(choices=[('admin', 'Administrador'), ('pagador', 'Pagador'), ('operador', 'Operador'), ('leitor', 'Leitor')], max_length=20, verbose_name='Função')),
				('assigned_at', models.DateTimeField(auto_now_add=True, verbose_name='Atribuída em')),
				('assigned_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Atribuída por')),
				('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='role_assignments', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
			],
			options={
				'verbose_name': 'Função de usuário',
				'verbose_name_plural': 'Funções de usuário',
				'ordering': ('user__username', 'role'),
			},
		),
		migrations.AddConstraint(
			model_name='userroleassignment',
			constraint=models.UniqueConstraint(fields=('user', 'role'), name='uniq_core_user_role'),
		),
	]

from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='Client',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=200, verbose_name='Nome / Razão social')),
				('document_type', models.CharField(choices=[('cpf', 'CPF'), ('cnpj', 'CNPJ')], default='cpf', max_length=4, verbose_name='Tipo de documento')),
				('document', models.CharField(blank=True, max_length=14, verbose_name='CPF/CNPJ')),
				('email', models.EmailField(blank=True, max_length=254, verbose_name='E-mail')),
				('phone', models.CharField(blank=True, max_length=30, verbose_name='Telefone')),
				('phone_secondary', models.CharField(blank=True, max_length=30, verbose_name='Telefone secundário')),
				('address', models.CharField(blank=True, max_length=255, verbose_name='Endereço')),
				('number', models.CharField(blank=True, max_length=20, verbose_name='Número')),
				('complement', models.CharField(blank=True, max_length=100, verbose_name='Complemento')),
				('district', models.CharField(blank=True, max_length=100, verbose_name='Bairro')),
				('city', models.CharField(blank=True, max_length=100, verbose_name='Cidade')),
				('state', models.CharField(blank=True, max_length=2, verbose_name='UF')),
				('zip_code', models.CharField(blank=True, max_length=12, verbose_name='CEP')),
				('observations', models.TextField(blank=True, verbose_name='Observações')),
				('credit_limit', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Limite de crédito')),
				('active', models.BooleanField(default=True, verbose_name='Ativo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('responsible_user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='responsible_clients', to=settings.AUTH_USER_MODEL, verbose_name='Responsável')),
				('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Atualizado por')),
			],
			options={
				'verbose_name': 'Cliente',
				'verbose_name_plural': 'Clientes',
				'ordering': ('name',),
			},
		),
		migrations.AddConstraint(
			model_name='client',
			constraint=models.UniqueConstraint(condition=models.Q(('document', ''), _negated=True), fields=('document',), name='uniq_clients_client_document'),
		),
		migrations.AddConstraint(
			model_name='client',
			constraint=models.CheckConstraint(condition=models.Q(('credit_limit__gte', 0)), name='clients_client_credit_limit_gte_0'),
		),
		migrations.CreateModel(
			name='DeliveryAddress',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=100, verbose_name='Identificação')),
				('address', models.CharField(max_length=255, verbose_name='Endereço')),
				('number', models.CharField(blank=True, max_length=20, verbose_name='Número')),
				('complement', models.CharField(blank=True, max_length=100, verbose_name='Complemento')),
				('district', models.CharField(blank=True, max_length=100, verbose_name='Bairro')),
				('city', models.CharField(blank=True, max_length=100, verbose_name='Cidade')),
				('state', models.CharField(blank=True, max_length=2, verbose_name='UF')),
				('zip_code', models.CharField(blank=True, max_length=12, verbose_name='CEP')),
				('contact_name', models.CharField(blank=True, max_length=150, verbose_name='Contato')),
				('contact_phone', models.CharField(blank=True, max_length=30, verbose_name='Telefone do contato')),
				('is_default', models.BooleanField(default=False, verbose_name='Padrão')),
				('active', models.BooleanField(default=True, verbose_name='Ativo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='delivery_addresses', to='clients.client', verbose_name='Cliente')),
			],
			options={
				'verbose_name': 'Endereço de entrega',
				'verbose_name_plural': 'Endereços de entrega',
				'ordering': ('-is_default', 'name'),
			},
		),
		migrations.CreateModel(
			name='CustomerCreditHistory',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('action_type', models.CharField(choices=[('limit_change', 'Alteração de limite'), ('purchase', 'Compra no crediário'), ('payment', 'Pagamento')], max_length=20, verbose_name='Ação')),
				('old_value', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Valor anterior')),
				('new_value', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Novo valor')),
				('reference_type', models.CharField(choices=[('manual', 'Manual'), ('sale', 'Venda'), ('credit_payment', 'Pagamento de crediário'), ('accounts_receivable', 'Conta a receber')], default='manual', max_length=30, verbose_name='Origem')),
				('reference_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='ID de origem')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Registrado em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Registrado por')),
				('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='credit_history', to='clients.client', verbose_name='Cliente')),
			],
			options={
				'verbose_name': 'Histórico de crédito',
				'verbose_name_plural': 'Histórico de crédito',
				'ordering': ('-created_at', '-pk'),
			},
		),
	]

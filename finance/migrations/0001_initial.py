import uuid
from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('clients', '0001_initial'),
		('core', '0001_initial'),
		('products', '0001_initial'),
		('sales', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='AccountReceivable',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor')),
				('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Valor pago')),
				('due_date', models.DateField(verbose_name='Vencimento')),
				('status', models.CharField(choices=[('pending', 'Pendente'), ('paid', 'Pago'), ('cancelled', 'Cancelado')], default='pending', max_length=20, verbose_name='Situação')),
				('paid_at', models.DateTimeField(blank=True, null=True, verbose_name='Pago em')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('version', models.PositiveIntegerField(default=0, editable=False, verbose_name='Versão')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
				('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receivables', to='clients.client', verbose_name='Cliente')),
				('paid_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Baixado por')),
				('sale', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='receivables', to='sales.sale', verbose_name='Venda')),
				('store', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='receivables', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Conta a receber',
				'verbose_name_plural': 'Contas a receber',
				'ordering': ('due_date', 'pk'),
				'indexes': [models.Index(fields=['customer', 'status', 'due_date'], name='finance_ar_customer_open_idx')],
				'constraints': [
					models.CheckConstraint(condition=models.Q(amount__gt=0), name='finance_ar_amount_gt_0'),
					models.CheckConstraint(condition=models.Q(paid_amount__gte=0), name='finance_ar_paid_gte_0'),
					models.CheckConstraint(condition=models.Q(paid_amount__lte=models.F('amount')), name='finance_ar_paid_lte_amount'),
				],
			},
		),
		migrations.CreateModel(
			name='CustomerCreditPayment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('allocation_id', models.UUIDField(default=uuid.uuid4, editable=False, unique=True, verbose_name='Identificador da baixa')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Recebido em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Recebido por')),
				('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='credit_payments', to='clients.client', verbose_name='Cliente')),
				('payment_method', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='credit_payments', to='sales.paymentmethod', verbose_name='Forma de pagamento')),
			],
			options={
				'verbose_name': 'Pagamento de crediário',
				'verbose_name_plural': 'Pagamentos de crediário',
				'ordering': ('-created_at', '-pk'),
			},
		),
		migrations.CreateModel(
			name='CreditPaymentAllocation',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor aplicado')),
				('paid_amount_before', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Pago antes')),
				('paid_amount_after', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Pago depois')),
				('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='finance.customercreditpayment', verbose_name='Pagamento')),
				('receivable', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='allocations', to='finance.accountreceivable', verbose_name='Título')),
			],
			options={
				'verbose_name': 'Baixa de título',
				'verbose_name_plural': 'Baixas de títulos',
				'ordering': ('payment', 'receivable__due_date', 'receivable'),
			},
		),
		migrations.CreateModel(
			name='CostCenter',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('code', models.CharField(max_length=20, unique=True, verbose_name='Código')),
				('name', models.CharField(max_length=150, verbose_name='Nome')),
				('description', models.TextField(blank=True, verbose_name='Descrição')),
				('active', models.BooleanField(default=True, verbose_name='Ativo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
			],
			options={
				'verbose_name': 'Centro de custo',
				'verbose_name_plural': 'Centros de custo',
				'ordering': ('code',),
			},
		),
		migrations.CreateModel(
			name='AccountPayable',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('description', models.CharField(max_length=255, verbose_name='Descrição')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor')),
				('due_date', models.DateField(verbose_name='Vencimento')),
				('payment_type', models.CharField(choices=[('boleto', 'Boleto'), ('cartao', 'Cartão'), ('transferencia', 'Transferência'), ('pix', 'PIX')], default='boleto', max_length=20, verbose_name='Forma de pagamento')),
				('status', models.CharField(choices=[('em_aberto', 'Em aberto'), ('pago', 'Pago'), ('cancelado', 'Cancelado')], default='em_aberto', max_length=20, verbose_name='Situação')),
				('barcode', models.CharField(blank=True, max_length=60, verbose_name='Linha digitável')),
				('pix_key', models.CharField(blank=True, max_length=140, verbose_name='Chave PIX')),
				('bank_name', models.CharField(blank=True, max_length=100, verbose_name='Banco')),
				('bank_agency', models.CharField(blank=True, max_length=20, verbose_name='Agência')),
				('bank_account', models.CharField(blank=True, max_length=30, verbose_name='Conta')),
				('card_last_digits', models.CharField(blank=True, max_length=4, verbose_name='Final do cartão')),
				('observations', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('cost_center', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payables', to='finance.costcenter', verbose_name='Centro de custo')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
				('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='payables', to='products.supplier', verbose_name='Fornecedor')),
			],
			options={
				'verbose_name': 'Conta a pagar',
				'verbose_name_plural': 'Contas a pagar',
				'ordering': ('due_date', 'pk'),
				'constraints': [models.CheckConstraint(condition=models.Q(amount__gt=0), name='finance_ap_amount_gt_0')],
			},
		),
		migrations.CreateModel(
			name='PayablePayment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('payment_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data do pagamento')),
				('amount_paid', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor pago')),
				('payment_method', models.CharField(blank=True, choices=[('boleto', 'Boleto'), ('cartao', 'Cartão'), ('transferencia', 'Transferência'), ('pix', 'PIX')], max_length=20, verbose_name='Forma de pagamento')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Registrado em')),
				('account', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payments', to='finance.accountpayable', verbose_name='Conta')),
				('paid_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Pago por')),
			],
			options={
				'verbose_name': 'Pagamento de conta',
				'verbose_name_plural': 'Pagamentos de contas',
				'ordering': ('-payment_date', '-pk'),
			},
		),
	]

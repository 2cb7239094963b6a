from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	dependencies = [
		('core', '0001_initial'),
		('sales', '0002_seed_payment_methods'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='CashRegisterClosing',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('closing_date', models.DateField(verbose_name='Data')),
				('status', models.CharField(choices=[('open', 'Aberto'), ('closed', 'Fechado')], default='open', max_length=10, verbose_name='Situação')),
				('opening_balance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Fundo de troco')),
				('opened_at', models.DateTimeField(auto_now_add=True, verbose_name='Aberto em')),
				('closed_at', models.DateTimeField(blank=True, null=True, verbose_name='Fechado em')),
				('cash_expected', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Dinheiro esperado')),
				('card_expected', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Cartão esperado')),
				('pix_expected', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='PIX esperado')),
				('credit_expected', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Crediário')),
				('other_expected', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Outros')),
				('cash_counted', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Dinheiro contado')),
				('card_counted', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Cartão conferido')),
				('pix_counted', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='PIX conferido')),
				('difference', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Diferença')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('closed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Fechado por')),
				('opened_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Aberto por')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='cash_closings', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Fechamento de caixa',
				'verbose_name_plural': 'Fechamentos de caixa',
				'ordering': ['-closing_date', '-pk'],
				'constraints': [models.UniqueConstraint(fields=('store', 'closing_date'), name='uniq_sales_cash_closing_store_day')],
			},
		),
		migrations.CreateModel(
			name='CashRegisterMovement',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('movement_type', models.CharField(choices=[('sangria', 'Sangria'), ('suprimento', 'Suprimento')], max_length=20, verbose_name='Tipo')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor')),
				('reason', models.CharField(max_length=255, verbose_name='Motivo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Registrado em')),
				('closing', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='movements', to='sales.cashregisterclosing', verbose_name='Caixa')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Registrado por')),
			],
			options={
				'verbose_name': 'Movimentação de caixa',
				'verbose_name_plural': 'Movimentações de caixa',
				'ordering': ['created_at', 'pk'],
				'constraints': [models.CheckConstraint(condition=models.Q(amount__gt=0), name='sales_cash_movement_amount_gt_0')],
			},
		),
	]

from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('clients', '0001_initial'),
		('core', '0001_initial'),
		('products', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='PaymentMethod',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=100, verbose_name='Nome')),
				('code', models.SlugField(max_length=30, unique=True, verbose_name='Código')),
				('active', models.BooleanField(default=True, verbose_name='Ativa')),
				('allow_installments', models.BooleanField(default=False, verbose_name='Permite parcelamento')),
				('max_installments', models.PositiveSmallIntegerField(default=1, verbose_name='Máximo de parcelas')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
			],
			options={
				'verbose_name': 'Forma de pagamento',
				'verbose_name_plural': 'Formas de pagamento',
				'ordering': ['name'],
			},
		),
		migrations.CreateModel(
			name='Sale',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('sale_number', models.CharField(max_length=30, unique=True, verbose_name='Número')),
				('status', models.CharField(choices=[('quote', 'Orçamento'), ('completed', 'Concluída'), ('cancelled', 'Cancelada')], default='completed', max_length=20, verbose_name='Situação')),
				('subtotal', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Subtotal')),
				('discount_type', models.CharField(blank=True, choices=[('percentage', 'Percentual'), ('fixed', 'Valor fixo')], max_length=20, verbose_name='Tipo de desconto')),
				('discount_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Desconto informado')),
				('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Desconto')),
				('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Total')),
				('payment_status', models.CharField(choices=[('pending', 'Pendente'), ('paid', 'Pago'), ('partial', 'Parcial'), ('credit', 'Crediário')], default='pending', max_length=20, verbose_name='Situação do pagamento')),
				('amount_paid', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Valor pago')),
				('amount_credit', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Valor no crediário')),
				('installments', models.PositiveSmallIntegerField(default=1, verbose_name='Parcelas')),
				('delivery_type', models.CharField(choices=[('pickup', 'Retirada'), ('delivery', 'Entrega')], default='pickup', max_length=20, verbose_name='Tipo de entrega')),
				('delivery_date', models.DateField(blank=True, null=True, verbose_name='Data de entrega')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('completed_at', models.DateTimeField(blank=True, null=True, verbose_name='Concluída em')),
				('cancelled_at', models.DateTimeField(blank=True, null=True, verbose_name='Cancelada em')),
				('cancellation_reason', models.TextField(blank=True, verbose_name='Motivo do cancelamento')),
				('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Cancelada por')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Vendedor')),
				('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='clients.client', verbose_name='Cliente')),
				('delivery_address', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales', to='clients.deliveryaddress', verbose_name='Endereço de entrega')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sales', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Venda',
				'verbose_name_plural': 'Vendas',
				'ordering': ['-created_at', '-pk'],
				'indexes': [models.Index(fields=['store', 'status', 'created_at'], name='sales_sale_store_status_idx')],
			},
		),
		migrations.CreateModel(
			name='SaleItem',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('product_name', models.CharField(blank=True, max_length=200, verbose_name='Descrição')),
				('quantity', models.DecimalField(decimal_places=3, default=Decimal('1.000'), max_digits=12, verbose_name='Quantidade')),
				('unit_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Preço unitário')),
				('discount_type', models.CharField(blank=True, choices=[('percentage', 'Percentual'), ('fixed', 'Valor fixo')], max_length=20, verbose_name='Tipo de desconto')),
				('discount_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Desconto informado')),
				('discount_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Desconto')),
				('total', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Total')),
				('sort_order', models.PositiveIntegerField(default=0, verbose_name='Ordem')),
				('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sale_items', to='products.product', verbose_name='Produto')),
				('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='sales.sale')),
			],
			options={
				'verbose_name': 'Item da venda',
				'verbose_name_plural': 'Itens da venda',
				'ordering': ['sort_order', 'pk'],
			},
		),
		migrations.CreateModel(
			name='SalePayment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('amount', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Valor')),
				('installments', models.PositiveSmallIntegerField(default=1, verbose_name='Parcelas')),
				('is_credit', models.BooleanField(default=False, verbose_name='Crediário')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('payment_method', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='sale_payments', to='sales.paymentmethod', verbose_name='Forma de pagamento')),
				('sale', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='sales.sale')),
			],
			options={
				'verbose_name': 'Pagamento da venda',
				'verbose_name_plural': 'Pagamentos da venda',
				'ordering': ['pk'],
			},
		),
	]

from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	initial = True

	dependencies = [
		('core', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.CreateModel(
			name='Brand',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=200, unique=True, verbose_name='Nome')),
			],
			options={
				'verbose_name': 'Marca',
				'verbose_name_plural': 'Marcas',
				'ordering': ('name',),
			},
		),
		migrations.CreateModel(
			name='Category',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=200, unique=True, verbose_name='Nome')),
			],
			options={
				'verbose_name': 'Categoria',
				'verbose_name_plural': 'Categorias',
				'ordering': ('name',),
			},
		),
		migrations.CreateModel(
			name='Unit',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('abbreviation', models.CharField(max_length=10, unique=True, verbose_name='Sigla')),
				('name', models.CharField(max_length=100, verbose_name='Nome')),
			],
			options={
				'verbose_name': 'Unidade',
				'verbose_name_plural': 'Unidades',
				'ordering': ('abbreviation',),
			},
		),
		migrations.CreateModel(
			name='Supplier',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('name', models.CharField(max_length=200, verbose_name='Nome / Razão social')),
				('person_type', models.CharField(choices=[('F', 'Pessoa Física'), ('J', 'Pessoa Jurídica')], default='J', max_length=1, verbose_name='Tipo de pessoa')),
				('document', models.CharField(max_length=14, unique=True, verbose_name='CPF/CNPJ')),
				('email', models.EmailField(blank=True, max_length=254, verbose_name='E-mail')),
				('phone', models.CharField(blank=True, max_length=30, verbose_name='Telefone')),
				('address', models.CharField(blank=True, max_length=255, verbose_name='Endereço')),
				('city', models.CharField(blank=True, max_length=100, verbose_name='Cidade')),
				('state', models.CharField(blank=True, max_length=2, verbose_name='UF')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('active', models.BooleanField(default=True, verbose_name='Ativo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
			],
			options={
				'verbose_name': 'Fornecedor',
				'verbose_name_plural': 'Fornecedores',
				'ordering': ('name',),
			},
		),
		migrations.CreateModel(
			name='Product',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('internal_code', models.PositiveIntegerField(editable=False, unique=True, verbose_name='Código interno')),
				('ean', models.CharField(blank=True, max_length=14, verbose_name='EAN')),
				('name', models.CharField(max_length=200, verbose_name='Nome')),
				('description', models.TextField(blank=True, verbose_name='Descrição')),
				('active', models.BooleanField(default=True, verbose_name='Ativo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('brand', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='products.brand', verbose_name='Marca')),
				('category', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='products.category', verbose_name='Categoria')),
				('unit', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='products', to='products.unit', verbose_name='Unidade')),
			],
			options={
				'verbose_name': 'Produto',
				'verbose_name_plural': 'Produtos',
				'ordering': ('name',),
				'indexes': [models.Index(fields=['ean'], name='products_product_ean_idx')],
			},
		),
		migrations.CreateModel(
			name='ProductPricing',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('cost_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14, verbose_name='Preço de custo')),
				('sale_price', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Preço de venda')),
				('valid_from', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Vigente desde')),
				('valid_until', models.DateTimeField(blank=True, null=True, verbose_name='Vigente até')),
				('is_current', models.BooleanField(default=True, verbose_name='Atual')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
				('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pricings', to='products.product', verbose_name='Produto')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='pricings', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Preço do produto',
				'verbose_name_plural': 'Preços dos produtos',
				'ordering': ('product', 'store', '-valid_from'),
			},
		),
		migrations.AddConstraint(
			model_name='productpricing',
			constraint=models.UniqueConstraint(condition=models.Q(('is_current', True)), fields=('product', 'store'), name='uniq_products_current_pricing'),
		),
		migrations.CreateModel(
			name='ProductStock',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('quantity', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12, verbose_name='Quantidade')),
				('min_quantity', models.DecimalField(decimal_places=3, default=Decimal('0.000'), max_digits=12, verbose_name='Estoque mínimo')),
				('max_quantity', models.DecimalField(blank=True, decimal_places=3, max_digits=12, null=True, verbose_name='Estoque máximo')),
				('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
				('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='stock_entries', to='products.product', verbose_name='Produto')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='product_stocks', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Estoque por loja',
				'verbose_name_plural': 'Estoques por loja',
				'ordering': ('product__name', 'store__code'),
				'unique_together': {('product', 'store')},
			},
		),
		migrations.CreateModel(
			name='StockMovement',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('movement_type', models.CharField(choices=[('entry', 'Entrada'), ('exit', 'Saída'), ('adjustment', 'Ajuste')], max_length=20, verbose_name='Tipo')),
				('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade')),
				('unit_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Valor unitário')),
				('reference_type', models.CharField(choices=[('sale', 'Venda'), ('sale_cancellation', 'Cancelamento de venda'), ('stock_receipt', 'Entrada de mercadoria'), ('manual', 'Manual')], default='manual', max_length=30, verbose_name='Origem')),
				('reference_id', models.PositiveBigIntegerField(blank=True, null=True, verbose_name='ID de origem')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Criado por')),
				('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='products.product', verbose_name='Produto')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_movements', to='core.store', verbose_name='Loja')),
			],
			options={
				'verbose_name': 'Movimentação de estoque',
				'verbose_name_plural': 'Movimentações de estoque',
				'ordering': ('-created_at', '-pk'),
				'indexes': [models.Index(fields=['reference_type', 'reference_id'], name='products_mov_reference_idx')],
			},
		),
		migrations.CreateModel(
			name='StockReceipt',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Quantidade')),
				('cost_price', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Preço de custo')),
				('sale_price', models.DecimalField(decimal_places=2, max_digits=14, verbose_name='Preço de venda')),
				('previous_sale_price', models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True, verbose_name='Preço de venda anterior')),
				('notes', models.TextField(blank=True, verbose_name='Observações')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Registrado em')),
				('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Registrado por')),
				('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='receipts', to='products.product', verbose_name='Produto')),
				('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='stock_receipts', to='core.store', verbose_name='Loja')),
				('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_receipts', to='products.supplier', verbose_name='Fornecedor')),
			],
			options={
				'verbose_name': 'Entrada de mercadoria',
				'verbose_name_plural': 'Entradas de mercadoria',
				'ordering': ('-created_at', '-pk'),
			},
		),
	]

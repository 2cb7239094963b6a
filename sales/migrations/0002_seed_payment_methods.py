from django.db import migrations


DEFAULT_PAYMENT_METHODS = [
    {'code': 'cash', 'name': 'Dinheiro', 'allow_installments': False, 'max_installments': 1},
    {'code': 'debit', 'name': 'Cartão de Débito', 'allow_installments': False, 'max_installments': 1},
    {'code': 'credit', 'name': 'Cartão de Crédito', 'allow_installments': True, 'max_installments': 12},
    {'code': 'pix', 'name': 'PIX', 'allow_installments': False, 'max_installments': 1},
    {'code': 'store_credit', 'name': 'Crediário', 'allow_installments': True, 'max_installments': 6},
]


def create_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model('sales', 'PaymentMethod')
    for data in DEFAULT_PAYMENT_METHODS:
        values = dict(data)
        code = values.pop('code')
        PaymentMethod.objects.get_or_create(code=code, defaults=values)


def delete_payment_methods(apps, schema_editor):
    PaymentMethod = apps.get_model('sales', 'PaymentMethod')
    PaymentMethod.objects.filter(
        code__in=[data['code'] for data in DEFAULT_PAYMENT_METHODS],
        sale_payments__isnull=True,
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ('sales', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_payment_methods, delete_payment_methods),
    ]

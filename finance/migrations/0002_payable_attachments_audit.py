import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

	dependencies = [
		('finance', '0001_initial'),
		migrations.swappable_dependency(settings.AUTH_USER_MODEL),
	]

	operations = [
		migrations.AddField(
			model_name='payablepayment',
			name='receipt',
			field=models.FileField(blank=True, upload_to='payables/receipts/%Y/%m/', verbose_name='Comprovante'),
		),
		migrations.CreateModel(
			name='PayableAttachment',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('file', models.FileField(upload_to='payables/attachments/%Y/%m/', verbose_name='Arquivo')),
				('filename', models.CharField(max_length=255, verbose_name='Nome do arquivo')),
				('file_size', models.PositiveIntegerField(default=0, verbose_name='Tamanho (bytes)')),
				('mime_type', models.CharField(blank=True, max_length=100, verbose_name='Tipo')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Enviado em')),
				('account', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attachments', to='finance.accountpayable', verbose_name='Conta')),
				('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Enviado por')),
			],
			options={
				'verbose_name': 'Anexo de conta',
				'verbose_name_plural': 'Anexos de contas',
				'ordering': ('-created_at', '-pk'),
			},
		),
		migrations.CreateModel(
			name='AuditLog',
			fields=[
				('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
				('table_name', models.CharField(max_length=60, verbose_name='Tabela')),
				('record_id', models.PositiveBigIntegerField(verbose_name='Registro')),
				('action', models.CharField(choices=[('insert', 'Inclusão'), ('update', 'Alteração'), ('delete', 'Exclusão'), ('payment', 'Pagamento'), ('cancel', 'Cancelamento'), ('attachment', 'Anexo')], max_length=20, verbose_name='Ação')),
				('old_values', models.JSONField(blank=True, null=True, verbose_name='Valores anteriores')),
				('new_values', models.JSONField(blank=True, null=True, verbose_name='Valores novos')),
				('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Registrado em')),
				('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
			],
			options={
				'verbose_name': 'Registro de auditoria',
				'verbose_name_plural': 'Registros de auditoria',
				'ordering': ('-created_at', '-pk'),
				'indexes': [models.Index(fields=['table_name', 'record_id'], name='finance_audit_record_idx')],
			},
		),
	]

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Transaction',
            fields=[
                ('order_id', models.CharField(max_length=64, primary_key=True, serialize=False)),
                ('phone_number', models.CharField(max_length=20)),
                ('amount', models.PositiveIntegerField()),
                ('payment_method', models.CharField(default='mpesa', editable=False, max_length=20)),
                ('status', models.CharField(choices=[('submitting', 'Submitting'), ('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='submitting', max_length=20)),
                ('checkout_request_id', models.CharField(blank=True, max_length=128, null=True, unique=True)),
                ('merchant_request_id', models.CharField(blank=True, max_length=128, null=True)),
                ('result_code', models.CharField(blank=True, max_length=16, null=True)),
                ('mpesa_receipt_number', models.CharField(blank=True, max_length=100, null=True)),
                ('transaction_date', models.DateTimeField(blank=True, null=True)),
                ('failure_reason', models.CharField(blank=True, max_length=256, null=True)),
                ('customer_email', models.EmailField(blank=True, max_length=254, null=True)),
                ('transaction_description', models.CharField(blank=True, max_length=128, null=True)),
                ('flagged_for_review', models.BooleanField(default=False)),
                ('review_reason', models.CharField(blank=True, max_length=256, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['status', 'created_at'], name='payments_status_created_idx')],
            },
        ),
        migrations.CreateModel(
            name='UnmatchedCallback',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('checkout_request_id', models.CharField(blank=True, db_index=True, max_length=128, null=True)),
                ('merchant_request_id', models.CharField(blank=True, max_length=128, null=True)),
                ('result_code', models.CharField(blank=True, max_length=16, null=True)),
                ('result_desc', models.CharField(blank=True, max_length=256, null=True)),
                ('payload', models.JSONField()),
                ('resolved', models.BooleanField(default=False)),
                ('received_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-received_at'],
            },
        ),
    ]

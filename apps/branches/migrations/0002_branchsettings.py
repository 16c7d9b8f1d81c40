# Generated manually

from decimal import Decimal

import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    dependencies = [
        ('branches', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='BranchSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('company_name', models.CharField(blank=True, default='', max_length=200)),
                ('company_address', models.CharField(blank=True, default='', max_length=255)),
                ('contact_numbers', models.JSONField(blank=True, default=list)),
                ('email', models.EmailField(blank=True, default='', max_length=254)),
                ('pan_number', models.CharField(blank=True, default='', max_length=30)),
                ('reg_no', models.CharField(blank=True, default='', max_length=50)),
                ('logo', models.CharField(blank=True, default='', help_text='Logo URL or path', max_length=500)),
                ('default_currency', models.CharField(choices=[('NPR', 'Nepalese Rupee'), ('USD', 'US Dollar')], default='NPR', max_length=3)),
                ('default_language', models.CharField(choices=[('en', 'English'), ('ne', 'Nepali')], default='en', max_length=2)),
                ('conversion_rate', models.DecimalField(decimal_places=4, default=Decimal('1.6'), help_text='Rupees per unit of the foreign currency', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.0001'))])),
                ('nepali_date_format', models.CharField(default='YYYY-MM-DD', max_length=20)),
                ('ticket_rules', models.JSONField(blank=True, default=list)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='settings', to='branches.branch')),
            ],
            options={
                'verbose_name': 'Branch settings',
                'verbose_name_plural': 'Branch settings',
                'db_table': 'branch_settings',
            },
        ),
    ]

# Generated manually

from decimal import Decimal

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('branches', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SequenceCounter',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=50, unique=True)),
                ('current_value', models.PositiveBigIntegerField(default=0)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Sequence Counter',
                'verbose_name_plural': 'Sequence Counters',
                'db_table': 'sequence_counters',
            },
        ),
        migrations.CreateModel(
            name='Ticket',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('ticket_number', models.CharField(editable=False, help_text='Zero padded sequential number, assigned once', max_length=30, unique=True)),
                ('customer_name', models.CharField(blank=True, default='', max_length=200)),
                ('player_names', models.JSONField(blank=True, default=list)),
                ('contact_number', models.CharField(blank=True, default='', max_length=20)),
                ('number_of_people', models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ('ticket_type', models.CharField(choices=[('Adult', 'Adult'), ('Child', 'Child'), ('Group', 'Group'), ('Custom', 'Custom')], max_length=10)),
                ('per_person_fee', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('discount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('fee', models.DecimalField(decimal_places=2, help_text='Amount actually charged, including extra time', max_digits=12)),
                ('currency', models.CharField(default='NPR', max_length=3)),
                ('booking_date', models.DateTimeField(db_index=True, help_text='Authoritative booking instant')),
                ('booking_local_date', models.CharField(help_text='Bikram Sambat date, YYYY-MM-DD', max_length=10)),
                ('booking_time', models.CharField(help_text='Venue wall clock, HH:MM:SS', max_length=8)),
                ('remarks', models.CharField(blank=True, default='', max_length=500)),
                ('status', models.CharField(choices=[('booked', 'Booked'), ('playing', 'Playing'), ('completed', 'Completed'), ('cancelled', 'Cancelled')], db_index=True, default='booked', max_length=10)),
                ('total_players', models.PositiveIntegerField(default=1)),
                ('played_players', models.PositiveIntegerField(default=0)),
                ('waiting_players', models.PositiveIntegerField(default=1)),
                ('refunded_players_count', models.PositiveIntegerField(default=0)),
                ('is_refunded', models.BooleanField(db_index=True, default=False)),
                ('refund_reason', models.CharField(blank=True, default='', max_length=500)),
                ('refund_amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('refunded_players', models.JSONField(blank=True, default=list)),
                ('refund_name', models.CharField(blank=True, default='', max_length=200)),
                ('refund_method', models.CharField(blank=True, choices=[('cash', 'Cash'), ('online', 'Online'), ('bank', 'Bank'), ('wallet', 'Wallet'), ('other', 'Other')], default='', max_length=10)),
                ('payment_reference', models.CharField(blank=True, default='', max_length=100)),
                ('group_name', models.CharField(blank=True, default='', max_length=200)),
                ('group_number', models.CharField(blank=True, default='', max_length=50)),
                ('group_price', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('total_members', models.PositiveIntegerField(default=0)),
                ('total_extra_minutes', models.PositiveIntegerField(default=0)),
                ('printed', models.BooleanField(default=False)),
                ('version', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('branch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to='branches.branch')),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='tickets', to=settings.AUTH_USER_MODEL)),
                ('refunded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='refunded_tickets', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Ticket',
                'verbose_name_plural': 'Tickets',
                'db_table': 'tickets',
                'ordering': ['-booking_date'],
                'indexes': [models.Index(fields=['branch', 'booking_date'], name='tickets_branch_booked_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(total_players=models.F('played_players') + models.F('waiting_players') + models.F('refunded_players_count')), name='tickets_player_counts_balance')],
            },
        ),
        migrations.CreateModel(
            name='ExtraTimeEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('minutes', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('amount', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12)),
                ('label', models.CharField(blank=True, default='', max_length=100)),
                ('notes', models.CharField(blank=True, default='', max_length=500)),
                ('added_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('ticket', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='extra_time_entries', to='tickets.ticket')),
                ('added_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='extra_time_entries', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Extra Time Entry',
                'verbose_name_plural': 'Extra Time Entries',
                'db_table': 'ticket_extra_time_entries',
                'ordering': ['added_at', 'id'],
            },
        ),
    ]

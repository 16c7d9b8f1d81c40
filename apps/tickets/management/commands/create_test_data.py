"""
Management command to create demo data for a skating park branch
"""
import random

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model

from apps.branches.models import Branch
from apps.finance.services import FinanceService
from apps.tickets.models import Ticket
from apps.tickets.services import TicketLifecycle

User = get_user_model()

PLAYER_NAMES = ['Aarav', 'Bina', 'Chirag', 'Diya', 'Ekta', 'Furba', 'Gita', 'Hari', 'Isha', 'Jeevan']
SALE_ITEMS = [('Water', 30), ('Socks', 120), ('Helmet rental', 100), ('Energy drink', 150)]


class Command(BaseCommand):
    help = 'Create demo tickets, sales and expenses for one branch'

    def add_arguments(self, parser):
        parser.add_argument(
            '--tickets',
            type=int,
            default=10,
            help='Number of tickets to create (default: 10)'
        )
        parser.add_argument(
            '--branch-name',
            type=str,
            default='Demo Park',
            help='Branch to fill (created when missing, default: Demo Park)'
        )

    def handle(self, *args, **options):
        branch, created = Branch.objects.get_or_create(branch_name=options['branch_name'])
        if created:
            self.stdout.write(self.style.SUCCESS(f'Created branch: {branch.branch_name}'))

        staff, created = User.objects.get_or_create(
            email='demo.staff@example.com',
            defaults={'name': 'Demo Staff', 'branch': branch}
        )
        if created:
            staff.set_password('demo1234')
            staff.save()
            self.stdout.write(self.style.SUCCESS(f'  Created user: {staff.email} (password: demo1234)'))
        else:
            self.stdout.write(self.style.WARNING(f'  User already exists: {staff.email}'))

        lifecycle = TicketLifecycle()
        finance = FinanceService()

        self.stdout.write(self.style.SUCCESS('\nCreating tickets...'))
        tickets = []
        for i in range(options['tickets']):
            players = random.sample(PLAYER_NAMES, random.randint(1, 4))
            ticket_type = random.choice([Ticket.TYPE_ADULT, Ticket.TYPE_CHILD])
            ticket = lifecycle.quick_create(
                {'player_names': players, 'ticket_type': ticket_type},
                branch,
                staff
            )
            tickets.append(ticket)

        # A few tickets in each later state
        for ticket in tickets[1::4]:
            lifecycle.add_extra_time(ticket.pk, 30, 100, actor=staff)
        for ticket in tickets[2::4]:
            lifecycle.refund_full(ticket.pk, 'Changed plans', actor=staff)
        for ticket in tickets[3::4]:
            lifecycle.update_player_status(ticket.pk, ticket.total_players)

        self.stdout.write(self.style.SUCCESS(f'  Created {len(tickets)} tickets'))

        for item_name, price in random.sample(SALE_ITEMS, 2):
            finance.create_sale(
                {'items': [{'item_name': item_name, 'quantity': random.randint(1, 3), 'price': price}]},
                branch,
                staff
            )
        finance.create_expense({'category': 'Maintenance', 'amount': 2500, 'description': 'Rink resurfacing'}, branch, staff)

        self.stdout.write(self.style.SUCCESS('\nDemo data created successfully!'))

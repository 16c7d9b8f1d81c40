"""
Tests for ticket fees, dates, sequence numbers, the lifecycle service and views
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, date, timedelta, timezone as dt_timezone
from decimal import Decimal
from unittest.mock import patch

from django.conf import settings
from django.db import IntegrityError, OperationalError, connections
from django.db.models import F
from django.test import TestCase, TransactionTestCase, override_settings
from django.contrib.auth import get_user_model
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import RefreshToken

from apps.branches.models import Branch, BranchSettings

from .dates import DateNormalizer, parse_day
from .exceptions import (
    ConflictError,
    DependencyUnavailableError,
    NotFoundError,
    ValidationError,
)
from .fees import (
    compute_extra_time_charge,
    compute_full_refund,
    compute_partial_refund,
    compute_total_fee,
    fallback_sequence_id,
)
from .models import ExtraTimeEntry, SequenceCounter, Ticket
from .sequence import DatabaseSequenceCounter
from .services import TicketLifecycle, format_duration

User = get_user_model()

# 2024-04-13 11:45 in Kathmandu, the first day of 2081 BS
FIXED_NOW = datetime(2024, 4, 13, 6, 0, 0, tzinfo=dt_timezone.utc)


def fixed_clock():
    return FIXED_NOW


class BrokenCounter:
    def next_value(self, name):
        raise DependencyUnavailableError(f"Sequence counter '{name}' is unavailable")


class FeeEngineTestCase(TestCase):
    """Test cases for the fee and refund arithmetic"""

    def test_total_fee(self):
        self.assertEqual(compute_total_fee(100, 3, 50), Decimal('250.00'))

    def test_total_fee_discount_larger_than_subtotal(self):
        self.assertEqual(compute_total_fee(100, 1, 500), Decimal('0.00'))

    def test_total_fee_coerces_people_and_discount(self):
        self.assertEqual(compute_total_fee('100', 0, -20), Decimal('100.00'))
        self.assertEqual(compute_total_fee(100, '2', None), Decimal('200.00'))

    def test_total_fee_matches_formula(self):
        for fee in (0, 1, Decimal('99.99'), 250):
            for people in (1, 2, 7):
                for discount in (0, 10, Decimal('1000')):
                    expected = max(Decimal('0'), Decimal(str(fee)) * people - Decimal(str(discount)))
                    result = compute_total_fee(fee, people, discount)
                    self.assertGreaterEqual(result, 0)
                    self.assertEqual(result, expected.quantize(Decimal('0.01')))

    def test_total_fee_rejects_non_numeric(self):
        with self.assertRaises(ValidationError):
            compute_total_fee('abc', 1)

    def test_full_refund(self):
        self.assertEqual(compute_full_refund(250), Decimal('250.00'))
        self.assertEqual(compute_full_refund(250, 50), Decimal('200.00'))
        self.assertEqual(compute_full_refund(30, 50), Decimal('0.00'))

    def test_partial_refund(self):
        self.assertEqual(compute_partial_refund(300, 3, 1), Decimal('100.00'))
        self.assertEqual(compute_partial_refund(100, 3, 1), Decimal('33.33'))
        self.assertEqual(compute_partial_refund(300, 3, 2, 50), Decimal('150.00'))

    def test_partial_refund_requires_players(self):
        with self.assertRaises(ValidationError):
            compute_partial_refund(300, 0, 1)
        with self.assertRaises(ValidationError):
            compute_partial_refund(300, 3, -1)

    def test_extra_time_charge(self):
        self.assertEqual(compute_extra_time_charge(60, 10), Decimal('50.00'))
        self.assertEqual(compute_extra_time_charge(60, 100), Decimal('0.00'))

    def test_fallback_sequence_id(self):
        self.assertEqual(fallback_sequence_id(now_ms=1712988000123, digits=8), '88000123')
        self.assertEqual(fallback_sequence_id(now_ms=42, digits=8), '00000042')


class DateNormalizerTestCase(TestCase):
    """Test cases for venue calendar conversions"""

    def setUp(self):
        self.dates = DateNormalizer(tz='Asia/Kathmandu', clock=fixed_clock)

    def test_to_local_calendar(self):
        self.assertEqual(self.dates.to_local_calendar(FIXED_NOW), '2081-01-01')

    def test_to_local_calendar_uses_venue_day(self):
        # 20:00 UTC on 12 April is already 13 April in Kathmandu
        late = datetime(2024, 4, 12, 20, 0, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(self.dates.to_local_calendar(late), '2081-01-01')

    def test_to_local_calendar_is_deterministic(self):
        self.assertEqual(
            self.dates.to_local_calendar(FIXED_NOW),
            self.dates.to_local_calendar(FIXED_NOW)
        )

    def test_now_time_string(self):
        self.assertEqual(self.dates.now_time_string(), '11:45:00')

    def test_stamp(self):
        instant, local_date, time_string = self.dates.stamp()
        self.assertEqual(instant, FIXED_NOW)
        self.assertEqual(local_date, '2081-01-01')
        self.assertEqual(time_string, '11:45:00')

    def test_day_bounds(self):
        start, end = self.dates.day_bounds(date(2024, 4, 13))
        self.assertEqual(end - start, timedelta(days=1))
        self.assertEqual(start.utcoffset(), timedelta(hours=5, minutes=45))
        self.assertTrue(start <= FIXED_NOW < end)

    def test_parse_day(self):
        self.assertEqual(parse_day('2024-04-13'), date(2024, 4, 13))
        self.assertIsNone(parse_day(''))
        with self.assertRaises(ValidationError):
            parse_day('13/04/2024')
        with self.assertRaises(ValidationError):
            parse_day('2024-13-40')


class SequenceCounterTestCase(TestCase):
    """Test cases for the database sequence counter"""

    def setUp(self):
        self.counter = DatabaseSequenceCounter()

    def test_next_value_starts_at_one_and_increments(self):
        self.assertEqual(self.counter.next_value('ticketNo'), 1)
        self.assertEqual(self.counter.next_value('ticketNo'), 2)
        self.assertEqual(self.counter.current_value('ticketNo'), 2)

    def test_counters_are_independent(self):
        self.counter.next_value('ticketNo')
        self.counter.next_value('ticketNo')
        self.assertEqual(self.counter.next_value('saleNo'), 1)
        self.assertEqual(SequenceCounter.objects.count(), 2)

    def test_existing_counter_row_is_reused(self):
        SequenceCounter.objects.create(name='ticketNo', current_value=41)

        self.assertEqual(self.counter.next_value('ticketNo'), 42)
        self.assertEqual(SequenceCounter.objects.filter(name='ticketNo').count(), 1)

    def test_storage_failure_raises_dependency_unavailable(self):
        with patch.object(SequenceCounter.objects, 'using', side_effect=OperationalError('disk I/O error')):
            with self.assertRaises(DependencyUnavailableError):
                self.counter.next_value('ticketNo')


class SequenceCounterConcurrencyTestCase(TransactionTestCase):
    """Concurrent callers must never receive the same number"""

    def test_concurrent_next_value_is_unique(self):
        counter = DatabaseSequenceCounter()
        SequenceCounter.objects.create(name='ticketNo')

        def issue(_):
            try:
                return counter.next_value('ticketNo')
            finally:
                connections.close_all()

        with ThreadPoolExecutor(max_workers=10) as pool:
            values = list(pool.map(issue, range(100)))

        self.assertEqual(len(set(values)), 100)
        self.assertEqual(sorted(values), list(range(1, 101)))
        self.assertEqual(counter.current_value('ticketNo'), 100)


class TicketLifecycleBaseTestCase(TestCase):
    """Shared fixtures for lifecycle tests"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.staff = User.objects.create_user(
            email='staff@example.com', password='pass1234', branch=self.branch
        )
        self.lifecycle = TicketLifecycle(dates=DateNormalizer(clock=fixed_clock))

    def make_ticket(self, **overrides):
        data = {
            'customer_name': 'Asha',
            'player_names': ['Asha', 'Bikash', 'Chandra'],
            'number_of_people': 3,
            'ticket_type': 'Adult',
            'per_person_fee': 100,
            'discount': 50,
        }
        data.update(overrides)
        return self.lifecycle.create_ticket(data, self.branch, self.staff)

    def assertCountsBalance(self, ticket):
        ticket.refresh_from_db()
        self.assertEqual(
            ticket.played_players + ticket.waiting_players + ticket.refunded_players_count,
            ticket.total_players
        )

    def snapshot(self, ticket):
        ticket.refresh_from_db()
        return {
            field.attname: getattr(ticket, field.attname)
            for field in Ticket._meta.concrete_fields
        }


class TicketCreationTestCase(TicketLifecycleBaseTestCase):

    def test_create_ticket_computes_fee_and_counts(self):
        ticket = self.make_ticket()

        self.assertEqual(ticket.fee, Decimal('250.00'))
        self.assertEqual(ticket.status, Ticket.STATUS_BOOKED)
        self.assertEqual(ticket.total_players, 3)
        self.assertEqual(ticket.waiting_players, 3)
        self.assertEqual(ticket.played_players, 0)
        self.assertEqual(ticket.currency, 'NPR')
        self.assertCountsBalance(ticket)

    def test_ticket_numbers_are_sequential_and_padded(self):
        first = self.make_ticket()
        second = self.make_ticket()
        self.assertEqual(first.ticket_number, '000001')
        self.assertEqual(second.ticket_number, '000002')

    def test_booking_date_comes_from_server_clock(self):
        ticket = self.make_ticket(
            booking_date='2020-01-01T00:00:00Z',
            booking_time='01:02:03',
        )
        self.assertEqual(ticket.booking_date, FIXED_NOW)
        self.assertEqual(ticket.booking_local_date, '2081-01-01')
        self.assertEqual(ticket.booking_time, '11:45:00')

    def test_customer_name_defaults_to_first_player(self):
        ticket = self.make_ticket(customer_name='')
        self.assertEqual(ticket.customer_name, 'Asha')

    def test_number_of_people_defaults_to_player_names(self):
        ticket = self.make_ticket(number_of_people=None, discount=0)
        self.assertEqual(ticket.number_of_people, 3)
        self.assertEqual(ticket.fee, Decimal('300.00'))

    def test_create_rejects_invalid_input(self):
        invalid = [
            {'number_of_people': 0},
            {'ticket_type': 'Senior'},
            {'customer_name': '', 'player_names': []},
            {'per_person_fee': -1},
            {'remarks': 'x' * 501},
            {'number_of_people': 2},
        ]
        for overrides in invalid:
            with self.subTest(overrides=overrides):
                with self.assertRaises(ValidationError):
                    self.make_ticket(**overrides)
        self.assertEqual(Ticket.objects.count(), 0)

    def test_counter_failure_uses_fallback_number(self):
        lifecycle = TicketLifecycle(counter=BrokenCounter(), dates=DateNormalizer(clock=fixed_clock))

        with patch('apps.tickets.services.fallback_sequence_id', return_value='12345678'):
            with self.assertLogs('apps.tickets.services', level='WARNING') as logs:
                ticket = lifecycle.create_ticket(
                    {'customer_name': 'Asha', 'ticket_type': 'Child', 'per_person_fee': 150},
                    self.branch,
                    self.staff
                )

        self.assertEqual(ticket.ticket_number, '12345678')
        self.assertIn('12345678', logs.output[0])

    def test_fallback_collision_raises_conflict(self):
        lifecycle = TicketLifecycle(counter=BrokenCounter(), dates=DateNormalizer(clock=fixed_clock))
        data = {'customer_name': 'Asha', 'ticket_type': 'Child', 'per_person_fee': 150}

        with patch('apps.tickets.services.fallback_sequence_id', return_value='12345678'):
            with self.assertLogs('apps.tickets.services', level='WARNING'):
                lifecycle.create_ticket(data, self.branch, self.staff)
                with self.assertRaises(ConflictError):
                    lifecycle.create_ticket(data, self.branch, self.staff)

        self.assertEqual(Ticket.objects.count(), 1)

    @override_settings(TICKET_DEFAULT_FEES={'Adult': '200', 'Child': '150', 'Group': '180', 'Custom': '0'})
    def test_quick_create_defaults(self):
        ticket = self.lifecycle.quick_create({'player_names': ['Dipesh', 'Elina']}, self.branch, self.staff)

        self.assertEqual(ticket.ticket_type, Ticket.TYPE_ADULT)
        self.assertEqual(ticket.per_person_fee, Decimal('200.00'))
        self.assertEqual(ticket.fee, Decimal('400.00'))
        self.assertEqual(ticket.customer_name, 'Dipesh')

    def test_group_ticket_defaults_total_members(self):
        ticket = self.make_ticket(
            ticket_type='Group',
            group_info={'group_name': 'School trip', 'group_price': 500},
        )
        self.assertEqual(ticket.group_name, 'School trip')
        self.assertEqual(ticket.total_members, 3)
        self.assertEqual(ticket.group_price, Decimal('500.00'))

    def test_group_ticket_keeps_explicit_zero_members(self):
        ticket = self.make_ticket(ticket_type='Group', group_info={'total_members': 0})
        self.assertEqual(ticket.total_members, 0)

    def test_group_ticket_rejects_bad_total_members(self):
        for total_members in (-1, 'abc'):
            with self.subTest(total_members=total_members):
                with self.assertRaises(ValidationError):
                    self.make_ticket(ticket_type='Group', group_info={'total_members': total_members})

        self.assertFalse(Ticket.objects.exists())
        self.assertEqual(DatabaseSequenceCounter().current_value(settings.TICKET_NUMBER_COUNTER), 0)

    def test_storage_rejection_is_not_reported_as_number_clash(self):
        with patch.object(Ticket, 'save', side_effect=IntegrityError('CHECK constraint failed')):
            with self.assertRaises(ValidationError) as ctx:
                self.make_ticket()

        self.assertIn('could not be saved', str(ctx.exception))

    def test_currency_follows_branch_settings(self):
        BranchSettings.objects.create(branch=self.branch, default_currency='USD')

        self.assertEqual(self.make_ticket().currency, 'USD')
        self.assertEqual(self.make_ticket(currency='NPR').currency, 'NPR')

    def test_currency_defaults_without_branch_settings(self):
        ticket = self.make_ticket()

        self.assertEqual(ticket.currency, settings.DEFAULT_CURRENCY)
        self.assertFalse(BranchSettings.objects.filter(branch=self.branch).exists())


class TicketRefundTestCase(TicketLifecycleBaseTestCase):

    def test_full_refund_returns_amount_paid(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.refund_full(ticket.pk, 'Rain', actor=self.staff)

        self.assertEqual(ticket.refund_amount, Decimal('250.00'))
        self.assertTrue(ticket.is_refunded)
        self.assertEqual(ticket.status, Ticket.STATUS_CANCELLED)
        self.assertEqual(ticket.refund_name, 'Asha')
        self.assertEqual(ticket.refunded_by, self.staff)
        self.assertEqual(ticket.refunded_players_count, 3)
        self.assertCountsBalance(ticket)

    def test_full_refund_less_cancellation_fee(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.refund_full(ticket.pk, 'Changed plans', cancellation_fee=50)
        self.assertEqual(ticket.refund_amount, Decimal('200.00'))

    def test_full_refund_twice_fails_without_changes(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_full(ticket.pk, 'Rain')
        before = self.snapshot(ticket)

        with self.assertRaises(ValidationError):
            self.lifecycle.refund_full(ticket.pk, 'Rain again')

        self.assertEqual(self.snapshot(ticket), before)

    def test_full_refund_requires_reason_and_valid_method(self):
        ticket = self.make_ticket()
        with self.assertRaises(ValidationError):
            self.lifecycle.refund_full(ticket.pk, '  ')
        with self.assertRaises(ValidationError):
            self.lifecycle.refund_full(ticket.pk, 'Rain', method='cheque')

    def test_full_refund_after_partial_refunds_remainder(self):
        ticket = self.make_ticket(discount=0)
        self.lifecycle.refund_partial(ticket.pk, ['Asha'], 'Left early')
        ticket = self.lifecycle.refund_full(ticket.pk, 'Closing')

        self.assertEqual(ticket.refund_amount, Decimal('300.00'))
        self.assertCountsBalance(ticket)

    def test_partial_refund_one_player(self):
        ticket = self.make_ticket(discount=0)
        ticket = self.lifecycle.refund_partial(ticket.pk, ['Bikash'], 'Sick')

        self.assertEqual(ticket.refund_amount, Decimal('100.00'))
        self.assertEqual(ticket.refunded_players, ['Bikash'])
        self.assertEqual(ticket.refunded_players_count, 1)
        self.assertEqual(ticket.waiting_players, 2)
        self.assertFalse(ticket.is_refunded)
        self.assertCountsBalance(ticket)

    def test_partial_refunds_accumulate_like_one_refund(self):
        cases = [(100, 0), (Decimal('33.34'), 0), (100, 20)]
        for per_person_fee, cancellation_fee in cases:
            with self.subTest(per_person_fee=per_person_fee, cancellation_fee=cancellation_fee):
                split = self.make_ticket(per_person_fee=per_person_fee, discount=0)
                self.lifecycle.refund_partial(split.pk, ['Asha'], 'Sick', cancellation_fee=cancellation_fee)
                split = self.lifecycle.refund_partial(split.pk, ['Bikash'], 'Sick')

                together = self.make_ticket(per_person_fee=per_person_fee, discount=0)
                together = self.lifecycle.refund_partial(
                    together.pk, ['Asha', 'Bikash'], 'Sick', cancellation_fee=cancellation_fee
                )

                self.assertAlmostEqual(split.refund_amount, together.refund_amount, delta=Decimal('0.01'))

    def test_partial_refund_of_every_player_cancels_ticket(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_partial(ticket.pk, ['Asha', 'Bikash'], 'Sick')
        ticket = self.lifecycle.refund_partial(ticket.pk, ['Chandra'], 'Sick')

        self.assertTrue(ticket.is_refunded)
        self.assertEqual(ticket.status, Ticket.STATUS_CANCELLED)
        self.assertEqual(ticket.waiting_players, 0)
        self.assertEqual(ticket.refund_amount, ticket.fee)

    def test_one_by_one_partial_refunds_repay_whole_fee(self):
        ticket = self.make_ticket()
        for name in ('Asha', 'Bikash', 'Chandra'):
            ticket = self.lifecycle.refund_partial(ticket.pk, [name], 'Sick')

        self.assertEqual(ticket.fee, Decimal('250.00'))
        self.assertEqual(ticket.refund_amount, Decimal('250.00'))
        self.assertTrue(ticket.is_refunded)
        self.assertCountsBalance(ticket)

    def test_last_partial_refund_takes_cancellation_fee_from_remainder(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_partial(ticket.pk, ['Asha'], 'Sick')
        self.lifecycle.refund_partial(ticket.pk, ['Bikash'], 'Sick')
        ticket = self.lifecycle.refund_partial(ticket.pk, ['Chandra'], 'Sick', cancellation_fee=10)

        self.assertEqual(ticket.refund_amount, Decimal('240.00'))

    def test_partial_refund_rejects_bad_names(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_partial(ticket.pk, ['Asha'], 'Sick')

        for names in (['Zara'], ['Asha'], [], ['Bikash', 'Bikash']):
            with self.subTest(names=names):
                with self.assertRaises(ValidationError):
                    self.lifecycle.refund_partial(ticket.pk, names, 'Sick')

    def test_partial_refund_cannot_exceed_waiting_players(self):
        ticket = self.make_ticket()
        self.lifecycle.update_player_status(ticket.pk, 2)

        with self.assertRaises(ValidationError):
            self.lifecycle.refund_partial(ticket.pk, ['Asha', 'Bikash'], 'Sick')

        ticket = self.lifecycle.refund_partial(ticket.pk, ['Chandra'], 'Sick')
        self.assertEqual(ticket.waiting_players, 0)
        self.assertCountsBalance(ticket)


class TicketExtraTimeTestCase(TicketLifecycleBaseTestCase):

    def test_extra_time_additions(self):
        ticket = self.make_ticket()
        self.lifecycle.add_extra_time(ticket.pk, 60, 100, actor=self.staff)
        ticket = self.lifecycle.add_extra_time(ticket.pk, 30, 60, discount=10)

        self.assertEqual(ticket.total_extra_minutes, 90)
        self.assertEqual(ticket.fee, Decimal('400.00'))
        self.assertEqual(ticket.status, Ticket.STATUS_PLAYING)
        self.assertEqual(
            list(ticket.extra_time_entries.values_list('minutes', 'amount', 'label')),
            [(60, Decimal('100.00'), '1 hour'), (30, Decimal('50.00'), '30 minutes')]
        )
        self.assertCountsBalance(ticket)

    def test_extra_time_sums_match_entries(self):
        ticket = self.make_ticket()
        additions = [(15, 40, 0), (45, 90, 100), (10, 25, 5)]
        for minutes, charge, discount in additions:
            ticket = self.lifecycle.add_extra_time(ticket.pk, minutes, charge, discount=discount)

        self.assertEqual(ticket.total_extra_minutes, 70)
        expected_fee = Decimal('250') + sum(
            max(Decimal('0'), Decimal(charge - discount)) for _, charge, discount in additions
        )
        self.assertEqual(ticket.fee, expected_fee)

    def test_extra_time_rejects_non_positive_values(self):
        ticket = self.make_ticket()
        for minutes, charge in ((0, 100), (-5, 100), (30, 0), (30, -10), ('abc', 10), (1.5, 10)):
            with self.subTest(minutes=minutes, charge=charge):
                with self.assertRaises(ValidationError):
                    self.lifecycle.add_extra_time(ticket.pk, minutes, charge)
        self.assertEqual(ExtraTimeEntry.objects.count(), 0)

    def test_extra_time_rejected_on_closed_tickets(self):
        refunded = self.make_ticket()
        self.lifecycle.refund_full(refunded.pk, 'Rain')
        completed = self.make_ticket()
        self.lifecycle.change_status(completed.pk, Ticket.STATUS_COMPLETED)

        for ticket in (refunded, completed):
            with self.assertRaises(ValidationError):
                self.lifecycle.add_extra_time(ticket.pk, 30, 60)

    def test_extra_time_custom_label_and_notes(self):
        ticket = self.make_ticket()
        self.lifecycle.add_extra_time(ticket.pk, 20, 50, label='Bonus round', notes=' birthday ')
        entry = ticket.extra_time_entries.get()
        self.assertEqual(entry.label, 'Bonus round')
        self.assertEqual(entry.notes, 'birthday')

    def test_extra_time_report_filters_branch_and_window(self):
        ticket = self.make_ticket()
        self.lifecycle.add_extra_time(ticket.pk, 30, 60)
        other_branch = Branch.objects.create(branch_name='Patan')
        other = self.lifecycle.create_ticket(
            {'customer_name': 'Gita', 'ticket_type': 'Adult', 'per_person_fee': 100},
            other_branch,
            self.staff
        )
        self.lifecycle.add_extra_time(other.pk, 15, 30)

        entries = self.lifecycle.extra_time_report(self.branch)
        self.assertEqual([entry.ticket_id for entry in entries], [ticket.pk])

        start, end = self.lifecycle.dates.day_bounds(date(2000, 1, 1))
        self.assertFalse(self.lifecycle.extra_time_report(self.branch, start, end).exists())

    def test_format_duration(self):
        self.assertEqual(format_duration(1), '1 minute')
        self.assertEqual(format_duration(60), '1 hour')
        self.assertEqual(format_duration(150), '2 hours 30 minutes')


class TicketStateTestCase(TicketLifecycleBaseTestCase):

    def test_update_player_status(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.update_player_status(ticket.pk, 2)

        self.assertEqual(ticket.played_players, 2)
        self.assertEqual(ticket.waiting_players, 1)
        self.assertEqual(ticket.status, Ticket.STATUS_PLAYING)
        self.assertCountsBalance(ticket)

    def test_update_player_status_respects_refunds(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_partial(ticket.pk, ['Asha'], 'Sick')

        with self.assertRaises(ValidationError):
            self.lifecycle.update_player_status(ticket.pk, 3)
        with self.assertRaises(ValidationError):
            self.lifecycle.update_player_status(ticket.pk, -1)

        ticket = self.lifecycle.update_player_status(ticket.pk, 2)
        self.assertEqual(ticket.waiting_players, 0)
        self.assertCountsBalance(ticket)

    def test_change_status(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.change_status(ticket.pk, Ticket.STATUS_COMPLETED)
        self.assertEqual(ticket.status, Ticket.STATUS_COMPLETED)

        with self.assertRaises(ValidationError):
            self.lifecycle.change_status(ticket.pk, Ticket.STATUS_CANCELLED)
        with self.assertRaises(ValidationError):
            self.lifecycle.update_player_status(ticket.pk, 1)

    def test_change_status_only_to_terminal(self):
        ticket = self.make_ticket()
        with self.assertRaises(ValidationError):
            self.lifecycle.change_status(ticket.pk, Ticket.STATUS_PLAYING)

    def test_update_details(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.update_details(ticket.pk, {
            'customer_name': ' Asha Rai ',
            'remarks': 'Birthday',
            'player_names': ['Asha', 'Bikash', 'Chandra'],
            'group_price': '120',
        })

        self.assertEqual(ticket.customer_name, 'Asha Rai')
        self.assertEqual(ticket.remarks, 'Birthday')
        self.assertEqual(ticket.group_price, Decimal('120.00'))
        self.assertEqual(ticket.version, 1)

    def test_update_details_rederives_local_date(self):
        ticket = self.make_ticket()
        new_date = datetime(2024, 4, 12, 6, 0, 0, tzinfo=dt_timezone.utc)
        ticket = self.lifecycle.update_details(ticket.pk, {'booking_date': new_date})

        ticket.refresh_from_db()
        self.assertEqual(ticket.booking_date, new_date)
        self.assertEqual(ticket.booking_local_date, self.lifecycle.dates.to_local_calendar(new_date))
        self.assertTrue(ticket.booking_local_date.startswith('2080-12-'))
        self.assertEqual(ticket.booking_time, '11:45:00')

    def test_update_details_rejects_locked_fields(self):
        ticket = self.make_ticket()
        for data in ({'ticket_number': '999999'}, {'fee': 1}, {'status': 'completed'}, {'branch': 2}):
            with self.subTest(data=data):
                with self.assertRaises(ValidationError):
                    self.lifecycle.update_details(ticket.pk, data)

    def test_update_details_keeps_refunded_players(self):
        ticket = self.make_ticket()
        self.lifecycle.refund_partial(ticket.pk, ['Chandra'], 'Sick')
        with self.assertRaises(ValidationError):
            self.lifecycle.update_details(ticket.pk, {'player_names': ['Asha', 'Bikash']})

    def test_mark_printed(self):
        ticket = self.make_ticket()
        ticket = self.lifecycle.mark_printed(ticket.pk)
        self.assertTrue(ticket.printed)

    def test_lookup_and_get(self):
        ticket = self.make_ticket()
        self.assertEqual(self.lifecycle.lookup('000001').pk, ticket.pk)
        self.assertEqual(self.lifecycle.get(ticket.pk).pk, ticket.pk)

        other_branch = Branch.objects.create(branch_name='Patan')
        with self.assertRaises(NotFoundError):
            self.lifecycle.lookup('000001', branch=other_branch)
        with self.assertRaises(NotFoundError):
            self.lifecycle.get(9999)

    def test_list_for_branch(self):
        self.make_ticket()
        self.make_ticket(customer_name='Gita', player_names=['Gita'], number_of_people=1)

        self.assertEqual(self.lifecycle.list_for_branch(self.branch).count(), 2)
        self.assertEqual(self.lifecycle.list_for_branch(self.branch, search='gita').count(), 1)
        start, end = self.lifecycle.dates.day_bounds(date(2024, 4, 13))
        self.assertEqual(self.lifecycle.list_for_branch(self.branch, start, end).count(), 2)
        start, end = self.lifecycle.dates.day_bounds(date(2024, 4, 14))
        self.assertEqual(self.lifecycle.list_for_branch(self.branch, start, end).count(), 0)

    def test_delete(self):
        ticket = self.make_ticket()
        self.lifecycle.add_extra_time(ticket.pk, 30, 60)
        self.lifecycle.delete(ticket.pk)

        self.assertFalse(Ticket.objects.exists())
        self.assertFalse(ExtraTimeEntry.objects.exists())

    def test_stale_version_raises_conflict(self):
        ticket = self.make_ticket()
        stale = Ticket.objects.get(pk=ticket.pk)
        Ticket.objects.filter(pk=ticket.pk).update(version=F('version') + 1)

        with patch.object(self.lifecycle, '_load_for_update', return_value=stale):
            with self.assertRaises(ConflictError):
                self.lifecycle.add_extra_time(ticket.pk, 30, 60)

        ticket.refresh_from_db()
        self.assertEqual(ticket.fee, Decimal('250.00'))
        self.assertEqual(ticket.total_extra_minutes, 0)
        self.assertFalse(ExtraTimeEntry.objects.exists())

    def test_counts_balance_after_every_operation(self):
        ticket = self.make_ticket(
            player_names=['Asha', 'Bikash', 'Chandra', 'Dipesh', 'Elina'],
            number_of_people=5
        )
        steps = [
            lambda: self.lifecycle.update_player_status(ticket.pk, 1),
            lambda: self.lifecycle.refund_partial(ticket.pk, ['Elina'], 'Sick'),
            lambda: self.lifecycle.add_extra_time(ticket.pk, 30, 60),
            lambda: self.lifecycle.update_player_status(ticket.pk, 3),
            lambda: self.lifecycle.refund_partial(ticket.pk, ['Dipesh'], 'Left'),
            lambda: self.lifecycle.update_player_status(ticket.pk, 2),
            lambda: self.lifecycle.refund_full(ticket.pk, 'Closing'),
        ]
        for step in steps:
            step()
            self.assertCountsBalance(ticket)

    def test_display_status(self):
        ticket = self.make_ticket()
        self.assertEqual(ticket.display_status(FIXED_NOW + timedelta(minutes=10)), 'Playing')
        self.assertEqual(ticket.display_status(FIXED_NOW + timedelta(minutes=61)), 'Deactivated')

        ticket = self.lifecycle.refund_full(ticket.pk, 'Rain')
        self.assertEqual(ticket.display_status(FIXED_NOW + timedelta(minutes=61)), 'Refunded')
        self.assertEqual(ticket.status, Ticket.STATUS_CANCELLED)


class TicketAPITestCase(APITestCase):
    """Test cases for the ticket endpoints"""

    def setUp(self):
        self.branch = Branch.objects.create(branch_name='Thamel')
        self.other_branch = Branch.objects.create(branch_name='Patan')
        self.staff = User.objects.create_user(
            email='staff@example.com', password='pass1234', branch=self.branch
        )
        self.admin = User.objects.create_user(
            email='admin@example.com', password='pass1234', role=User.ROLE_ADMIN
        )
        self.url = '/api/tickets/'
        self.payload = {
            'customer_name': 'Asha',
            'player_names': ['Asha', 'Bikash', 'Chandra'],
            'number_of_people': 3,
            'ticket_type': 'Adult',
            'per_person_fee': '100.00',
            'discount': '50.00',
        }

    def get_auth_headers(self, user=None):
        """Get JWT token for authenticated requests"""
        refresh = RefreshToken.for_user(user or self.staff)
        return {'HTTP_AUTHORIZATION': f'Bearer {refresh.access_token}'}

    def create_ticket(self, user=None, **params):
        url = self.url
        if params:
            url += '?' + '&'.join(f'{key}={value}' for key, value in params.items())
        return self.client.post(url, self.payload, format='json', **self.get_auth_headers(user))

    def test_create_ticket(self):
        response = self.create_ticket()

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        ticket = response.data['ticket']
        self.assertEqual(ticket['ticket_number'], '000001')
        self.assertEqual(ticket['fee'], '250.00')
        self.assertEqual(ticket['branch'], self.branch.pk)
        self.assertEqual(ticket['player_status']['waiting_players'], 3)
        self.assertEqual(ticket['refund_details']['is_refunded'], False)
        self.assertIn('local_date', ticket['booking_date'])
        self.assertEqual(ticket['display_status'], 'Playing')

    def test_create_ticket_unauthenticated(self):
        response = self.client.post(self.url, self.payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_ticket_invalid_type(self):
        self.payload['ticket_type'] = 'Senior'
        response = self.create_ticket()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('ticket_type', response.data)

    def test_create_ticket_service_validation_error(self):
        self.payload['number_of_people'] = 0
        response = self.create_ticket()
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('error', response.data)

    def test_staff_cannot_use_other_branch(self):
        response = self.create_ticket(branch=self.other_branch.pk)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_books_for_any_branch(self):
        response = self.create_ticket(user=self.admin, branch=self.other_branch.pk)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['ticket']['branch'], self.other_branch.pk)

    def test_admin_without_branch_must_choose_one(self):
        response = self.create_ticket(user=self.admin)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_tickets(self):
        self.create_ticket()
        self.create_ticket(user=self.admin, branch=self.other_branch.pk)

        response = self.client.get(self.url, **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

        response = self.client.get(self.url, {'start_date': '2024-05-02', 'end_date': '2024-05-01'},
                                   **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_quick_create(self):
        response = self.client.post(
            f'{self.url}quick/',
            {'player_names': ['Dipesh']},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['ticket']['ticket_type'], 'Adult')
        self.assertEqual(response.data['ticket']['customer_name'], 'Dipesh')

    def test_lookup(self):
        self.create_ticket()
        response = self.client.get(f'{self.url}lookup/000001/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get(f'{self.url}lookup/999999/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn('error', response.data)

    def test_other_branch_ticket_is_not_found(self):
        response = self.create_ticket(user=self.admin, branch=self.other_branch.pk)
        ticket_id = response.data['ticket']['id']

        response = self.client.get(f'{self.url}{ticket_id}/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_refund_endpoints(self):
        ticket_id = self.create_ticket().data['ticket']['id']

        response = self.client.post(
            f'{self.url}{ticket_id}/partial-refund/',
            {'refunded_player_names': ['Bikash'], 'reason': 'Sick'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ticket']['refund_details']['refund_amount'], '83.33')

        response = self.client.post(
            f'{self.url}{ticket_id}/refund/',
            {'reason': 'Rain', 'cancellation_fee': '10.00'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['ticket']['refund_details']['refund_amount'], '240.00')

        response = self.client.post(
            f'{self.url}{ticket_id}/refund/',
            {'reason': 'Rain'},
            format='json',
            **self.get_auth_headers()
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Ticket already refunded')

    def test_extra_time_endpoints(self):
        ticket_id = self.create_ticket().data['ticket']['id']
        url = f'{self.url}{ticket_id}/extra-time/'

        response = self.client.post(url, {'minutes': 60, 'charge': '100.00'}, format='json',
                                    **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['ticket']['total_extra_minutes'], 60)
        self.assertEqual(response.data['ticket']['fee'], '350.00')

        response = self.client.post(url, {'minutes': 0, 'charge': '100.00'}, format='json',
                                    **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.get(url, **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['added_by'], 'staff@example.com')

        response = self.client.get(f'{self.url}extra-time/report/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_minutes'], 60)
        self.assertEqual(response.data['total_amount'], '100.00')

    def test_player_status_and_print(self):
        ticket_id = self.create_ticket().data['ticket']['id']

        response = self.client.patch(f'{self.url}{ticket_id}/player-status/', {'played_players': 4},
                                     format='json', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.patch(f'{self.url}{ticket_id}/player-status/', {'played_players': 2},
                                     format='json', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'playing')

        response = self.client.post(f'{self.url}{ticket_id}/print/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['printed'])

    def test_update_details(self):
        ticket_id = self.create_ticket().data['ticket']['id']
        response = self.client.patch(f'{self.url}{ticket_id}/', {'remarks': 'VIP'}, format='json',
                                     **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['remarks'], 'VIP')

    def test_status_change_and_delete_require_admin(self):
        ticket_id = self.create_ticket().data['ticket']['id']

        response = self.client.patch(f'{self.url}{ticket_id}/status/', {'status': 'completed'},
                                     format='json', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'{self.url}{ticket_id}/', **self.get_auth_headers())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = self.client.patch(f'{self.url}{ticket_id}/status/', {'status': 'completed'},
                                     format='json', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'completed')

        response = self.client.delete(f'{self.url}{ticket_id}/', **self.get_auth_headers(self.admin))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Ticket.objects.exists())

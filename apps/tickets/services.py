import logging
from contextlib import contextmanager
from datetime import datetime

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q, Sum
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from apps.branches.models import BranchSettings

from .dates import DateNormalizer
from .exceptions import (
    ConflictError,
    DependencyUnavailableError,
    NotFoundError,
    ValidationError,
)
from .fees import (
    ZERO,
    compute_extra_time_charge,
    compute_full_refund,
    compute_partial_refund,
    compute_total_fee,
    fallback_sequence_id,
    quantize,
    to_decimal,
)
from .models import ExtraTimeEntry, Ticket
from .sequence import DatabaseSequenceCounter

module_logger = logging.getLogger(__name__)

TICKET_TYPES = [choice for choice, _ in Ticket.TYPE_CHOICES]
REFUND_METHODS = [choice for choice, _ in Ticket.REFUND_METHOD_CHOICES]
EDITABLE_FIELDS = (
    'customer_name',
    'contact_number',
    'player_names',
    'remarks',
    'group_name',
    'group_number',
    'group_price',
    'total_members',
    'booking_date',
)
MAX_REMARKS_LENGTH = 500


def format_duration(minutes):
    """
    Human label for an extra time entry, e.g. 90 -> '1 hour 30 minutes'
    """
    hours, rest = divmod(minutes, 60)
    parts = []
    if hours:
        parts.append(f"{hours} hour{'s' if hours > 1 else ''}")
    if rest or not hours:
        parts.append(f"{rest} minute{'s' if rest != 1 else ''}")
    return ' '.join(parts)


def _clean_names(names):
    if names is None:
        return []
    if isinstance(names, str):
        names = names.split(',')
    if not isinstance(names, (list, tuple)):
        raise ValidationError("Player names must be a list")
    return [str(name).strip() for name in names if str(name).strip()]


def _positive_int(value, message):
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)
    if number != to_decimal(value):
        raise ValidationError(message)
    return number


class TicketLifecycle:
    """
    Owns ticket creation and every state change after it.

    Each mutating operation validates its input, computes the derived fields
    through the fee engine and persists them in one atomic write. The row is
    locked with SELECT ... FOR UPDATE for the duration of the operation and
    written back with a version check, so a concurrent writer on the same
    ticket surfaces as ConflictError instead of a lost update.
    """

    def __init__(self, counter=None, dates=None, logger=None):
        self.counter = counter or DatabaseSequenceCounter()
        self.dates = dates or DateNormalizer()
        self.logger = logger or module_logger

    # Reads

    def get(self, ticket_id):
        try:
            return Ticket.objects.select_related('branch', 'staff').get(pk=ticket_id)
        except (Ticket.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Ticket not found")

    def lookup(self, ticket_number, branch=None):
        tickets = Ticket.objects.select_related('branch', 'staff').filter(
            ticket_number=str(ticket_number).strip()
        )
        if branch is not None:
            tickets = tickets.filter(branch=branch)
        ticket = tickets.first()
        if ticket is None:
            raise NotFoundError(f"Ticket {ticket_number} not found")
        return ticket

    def list_for_branch(self, branch, start=None, end=None, status=None, search=None):
        """
        Tickets of a branch booked in [start, end), newest first
        """
        tickets = Ticket.objects.select_related('staff').filter(branch=branch)
        if start is not None:
            tickets = tickets.filter(booking_date__gte=start)
        if end is not None:
            tickets = tickets.filter(booking_date__lt=end)
        if status:
            tickets = tickets.filter(status=status)
        if search:
            tickets = tickets.filter(
                Q(ticket_number__icontains=search)
                | Q(customer_name__icontains=search)
                | Q(contact_number__icontains=search)
            )
        return tickets.order_by('-booking_date', '-id')

    def extra_time_report(self, branch, start=None, end=None):
        entries = ExtraTimeEntry.objects.select_related('ticket', 'added_by').filter(
            ticket__branch=branch
        )
        if start is not None:
            entries = entries.filter(added_at__gte=start)
        if end is not None:
            entries = entries.filter(added_at__lt=end)
        return entries.order_by('-added_at', '-id')

    # Creation

    def validate_new_ticket(self, data):
        """
        Check and normalise the client supplied fields of a new ticket.
        Booking date and time are never taken from the client.
        """
        ticket_type = data.get('ticket_type')
        if ticket_type not in TICKET_TYPES:
            raise ValidationError(
                f"Invalid ticket type '{ticket_type}'. Allowed: {', '.join(TICKET_TYPES)}"
            )

        player_names = _clean_names(data.get('player_names'))
        customer_name = (data.get('customer_name') or '').strip()
        if not customer_name and not player_names:
            raise ValidationError("Customer name or at least one player name is required")
        if not customer_name:
            customer_name = player_names[0]

        raw_people = data.get('number_of_people')
        if raw_people in (None, ''):
            number_of_people = max(1, len(player_names))
        else:
            try:
                number_of_people = int(raw_people)
            except (TypeError, ValueError):
                raise ValidationError("Number of people must be a whole number")
        if number_of_people < 1:
            raise ValidationError("Number of people must be at least 1")
        if len(player_names) > number_of_people:
            raise ValidationError(
                f"{len(player_names)} player names given for {number_of_people} people"
            )

        per_person_fee = to_decimal(data.get('per_person_fee'), 'per_person_fee')
        if per_person_fee < 0:
            raise ValidationError("Per person fee cannot be negative")
        discount = max(ZERO, to_decimal(data.get('discount'), 'discount'))

        remarks = (data.get('remarks') or '').strip()
        if len(remarks) > MAX_REMARKS_LENGTH:
            raise ValidationError(f"Remarks cannot be more than {MAX_REMARKS_LENGTH} characters")

        group_info = data.get('group_info') or {}
        total_members = group_info.get('total_members')
        if total_members in (None, ''):
            total_members = number_of_people if ticket_type == Ticket.TYPE_GROUP else 0
        try:
            total_members = int(total_members)
        except (TypeError, ValueError):
            raise ValidationError("Total members must be a whole number")
        if total_members < 0:
            raise ValidationError("Total members cannot be negative")

        return {
            'customer_name': customer_name,
            'player_names': player_names,
            'contact_number': (data.get('contact_number') or '').strip(),
            'number_of_people': number_of_people,
            'ticket_type': ticket_type,
            'per_person_fee': quantize(per_person_fee),
            'discount': quantize(discount),
            'currency': data.get('currency') or '',
            'remarks': remarks,
            'group_name': (group_info.get('group_name') or '').strip(),
            'group_number': (group_info.get('group_number') or '').strip(),
            'group_price': quantize(max(ZERO, to_decimal(group_info.get('group_price'), 'group_price'))),
            'total_members': total_members,
        }

    def next_ticket_number(self):
        counter_name = settings.TICKET_NUMBER_COUNTER
        try:
            value = self.counter.next_value(counter_name)
        except DependencyUnavailableError as e:
            number = fallback_sequence_id()
            self.logger.warning(
                f"Sequence counter '{counter_name}' unavailable ({e}); "
                f"issuing fallback ticket number {number} which is not guaranteed unique"
            )
            return number
        return str(value).zfill(settings.TICKET_NUMBER_WIDTH)

    def create_ticket(self, data, branch, staff):
        """
        Validate, price, number and stamp a new ticket, then persist it
        """
        if branch is None or staff is None:
            raise ValidationError("Branch and staff are required")

        cleaned = self.validate_new_ticket(data)
        cleaned['fee'] = compute_total_fee(
            cleaned['per_person_fee'],
            cleaned['number_of_people'],
            cleaned['discount'],
        )
        if not cleaned['currency']:
            cleaned['currency'] = BranchSettings.currency_for(branch)
        booking_date, local_date, booking_time = self.dates.stamp()
        people = cleaned['number_of_people']

        ticket = Ticket(
            ticket_number=self.next_ticket_number(),
            booking_date=booking_date,
            booking_local_date=local_date,
            booking_time=booking_time,
            branch=branch,
            staff=staff,
            status=Ticket.STATUS_BOOKED,
            total_players=people,
            played_players=0,
            waiting_players=people,
            refunded_players_count=0,
            **cleaned
        )
        try:
            with transaction.atomic():
                ticket.save()
        except IntegrityError as e:
            if Ticket.objects.filter(ticket_number=ticket.ticket_number).exists():
                raise ConflictError(f"Ticket number {ticket.ticket_number} is already taken, please retry")
            raise ValidationError(f"Ticket could not be saved: {e}")

        self.logger.info(
            f"Ticket {ticket.ticket_number} created for {ticket.customer_name} "
            f"({people} x {ticket.per_person_fee} - {ticket.discount} = {ticket.fee})"
        )
        return ticket

    def quick_create(self, data, branch, staff):
        """
        Counter shortcut: ticket type defaults to Adult and the per person
        fee to the configured price for the type.
        """
        data = dict(data)
        data.setdefault('ticket_type', Ticket.TYPE_ADULT)
        if data.get('per_person_fee') in (None, ''):
            data['per_person_fee'] = settings.TICKET_DEFAULT_FEES.get(data['ticket_type'], 0)
        return self.create_ticket(data, branch, staff)

    # Mutations

    def add_extra_time(self, ticket_id, minutes, charge, discount=0, notes='', label=None, actor=None):
        """
        Append a paid extra time entry and add its net charge to the fee
        """
        minutes = _positive_int(minutes, "Extra time minutes must be a whole number")
        if minutes <= 0:
            raise ValidationError("Extra time minutes must be greater than zero")
        charge = to_decimal(charge, 'charge')
        if charge <= 0:
            raise ValidationError("Extra time charge must be greater than zero")
        amount = compute_extra_time_charge(charge, discount)

        with self._locked(ticket_id) as ticket:
            if ticket.is_refunded:
                raise ValidationError("Cannot add extra time to a refunded ticket")
            if ticket.is_terminal:
                raise ValidationError(f"Cannot add extra time to a {ticket.status} ticket")

            ExtraTimeEntry.objects.create(
                ticket=ticket,
                added_by=actor,
                minutes=minutes,
                amount=amount,
                label=label or format_duration(minutes),
                notes=(notes or '').strip(),
            )
            ticket.total_extra_minutes = ticket.extra_time_entries.aggregate(
                total=Sum('minutes')
            )['total'] or 0
            ticket.fee = quantize(ticket.fee + amount)
            if ticket.status == Ticket.STATUS_BOOKED:
                ticket.status = Ticket.STATUS_PLAYING
            self._commit(ticket, ['total_extra_minutes', 'fee', 'status'])

        self.logger.info(
            f"Ticket {ticket.ticket_number}: +{minutes} minutes for {amount} "
            f"(total {ticket.total_extra_minutes} minutes)"
        )
        return ticket

    def refund_full(self, ticket_id, reason, cancellation_fee=0, method='cash',
                    reference='', refund_name='', actor=None):
        """
        Refund the unrefunded remainder of what was paid, minus the
        cancellation fee. A ticket can be fully refunded once.
        """
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError("Refund reason is required")
        method = method or 'cash'
        if method not in REFUND_METHODS:
            raise ValidationError(f"Invalid refund method '{method}'. Allowed: {', '.join(REFUND_METHODS)}")

        with self._locked(ticket_id) as ticket:
            if ticket.is_refunded:
                raise ValidationError("Ticket already refunded")

            remaining_paid = ticket.fee - ticket.refund_amount
            amount = compute_full_refund(remaining_paid, cancellation_fee)

            ticket.refund_amount = quantize(ticket.refund_amount + amount)
            ticket.is_refunded = True
            ticket.refund_reason = reason
            ticket.refund_name = (refund_name or '').strip() or ticket.customer_name
            ticket.refund_method = method
            ticket.payment_reference = (reference or '').strip()
            ticket.refunded_by = actor
            ticket.refunded_players_count += ticket.waiting_players
            ticket.waiting_players = 0
            ticket.status = Ticket.STATUS_CANCELLED
            self._commit(ticket, [
                'refund_amount', 'is_refunded', 'refund_reason', 'refund_name',
                'refund_method', 'payment_reference', 'refunded_by',
                'refunded_players_count', 'waiting_players', 'status',
            ])

        self.logger.info(f"Ticket {ticket.ticket_number} refunded {amount}: {reason}")
        return ticket

    def refund_partial(self, ticket_id, refunded_player_names, reason, cancellation_fee=0,
                       method='cash', reference='', actor=None):
        """
        Refund named players who have not played yet, at the paid per person
        share. Successive partial refunds accumulate into refund_amount.
        """
        names = _clean_names(refunded_player_names)
        if not names:
            raise ValidationError("Select at least one player to refund")
        if len(set(names)) != len(names):
            raise ValidationError("Duplicate player names in refund request")
        reason = (reason or '').strip()
        if not reason:
            raise ValidationError("Refund reason is required")
        method = method or 'cash'
        if method not in REFUND_METHODS:
            raise ValidationError(f"Invalid refund method '{method}'. Allowed: {', '.join(REFUND_METHODS)}")

        with self._locked(ticket_id) as ticket:
            if ticket.is_refunded:
                raise ValidationError("Ticket already refunded")
            if ticket.is_terminal:
                raise ValidationError(f"Cannot refund players on a {ticket.status} ticket")

            unknown = [name for name in names if name not in ticket.player_names]
            if unknown:
                raise ValidationError(f"Players not on this ticket: {', '.join(unknown)}")
            already = [name for name in names if name in ticket.refunded_players]
            if already:
                raise ValidationError(f"Players already refunded: {', '.join(already)}")
            if ticket.refunded_players_count + len(names) > ticket.total_players:
                raise ValidationError("Refunded players exceed total players")
            if len(names) > ticket.waiting_players:
                raise ValidationError("Refunded players exceed waiting players")

            remaining_paid = max(ZERO, ticket.fee - ticket.refund_amount)
            if ticket.played_players == 0 and ticket.refunded_players_count + len(names) == ticket.total_players:
                # Last players out take the remainder so rounding never strands a cent
                amount = compute_full_refund(remaining_paid, cancellation_fee)
            else:
                amount = compute_partial_refund(
                    ticket.fee, ticket.total_players, len(names), cancellation_fee
                )
                amount = min(amount, remaining_paid)

            ticket.refund_amount = quantize(ticket.refund_amount + amount)
            ticket.refunded_players = list(ticket.refunded_players) + names
            ticket.refunded_players_count += len(names)
            ticket.waiting_players -= len(names)
            ticket.refund_reason = reason
            ticket.refund_method = method
            ticket.payment_reference = (reference or '').strip()
            ticket.refunded_by = actor
            if ticket.refunded_players_count == ticket.total_players:
                ticket.is_refunded = True
                ticket.refund_name = ticket.refund_name or ticket.customer_name
                ticket.status = Ticket.STATUS_CANCELLED
            self._commit(ticket, [
                'refund_amount', 'refunded_players', 'refunded_players_count',
                'waiting_players', 'refund_reason', 'refund_method',
                'payment_reference', 'refunded_by', 'is_refunded', 'refund_name', 'status',
            ])

        self.logger.info(
            f"Ticket {ticket.ticket_number}: refunded {amount} for {', '.join(names)}"
        )
        return ticket

    def update_player_status(self, ticket_id, played_players):
        try:
            played_players = int(played_players)
        except (TypeError, ValueError):
            raise ValidationError("Played players must be a whole number")
        if played_players < 0:
            raise ValidationError("Played players cannot be negative")

        with self._locked(ticket_id) as ticket:
            if ticket.is_terminal:
                raise ValidationError(f"Cannot update players on a {ticket.status} ticket")
            limit = ticket.total_players - ticket.refunded_players_count
            if played_players > limit:
                raise ValidationError(
                    f"Played players cannot exceed {limit} (total players minus refunded players)"
                )

            ticket.played_players = played_players
            ticket.waiting_players = limit - played_players
            if played_players > 0 and ticket.status == Ticket.STATUS_BOOKED:
                ticket.status = Ticket.STATUS_PLAYING
            self._commit(ticket, ['played_players', 'waiting_players', 'status'])

        return ticket

    def update_details(self, ticket_id, data):
        """
        Edit descriptive fields. Changing booking_date re-derives the local
        calendar date; the booking time is kept.
        """
        locked_fields = [key for key in data if key not in EDITABLE_FIELDS]
        if locked_fields:
            raise ValidationError(f"Fields cannot be edited: {', '.join(sorted(locked_fields))}")

        with self._locked(ticket_id) as ticket:
            changed = []
            for field in ('customer_name', 'contact_number', 'group_name', 'group_number'):
                if field in data:
                    setattr(ticket, field, (data[field] or '').strip())
                    changed.append(field)

            if 'customer_name' in data and not ticket.customer_name:
                raise ValidationError("Customer name cannot be empty")

            if 'remarks' in data:
                remarks = (data['remarks'] or '').strip()
                if len(remarks) > MAX_REMARKS_LENGTH:
                    raise ValidationError(f"Remarks cannot be more than {MAX_REMARKS_LENGTH} characters")
                ticket.remarks = remarks
                changed.append('remarks')

            if 'player_names' in data:
                names = _clean_names(data['player_names'])
                if len(names) > ticket.total_players:
                    raise ValidationError(
                        f"{len(names)} player names given for {ticket.total_players} people"
                    )
                missing = [name for name in ticket.refunded_players if name not in names]
                if missing:
                    raise ValidationError(f"Refunded players cannot be removed: {', '.join(missing)}")
                ticket.player_names = names
                changed.append('player_names')

            if 'group_price' in data:
                group_price = to_decimal(data['group_price'], 'group_price')
                if group_price < 0:
                    raise ValidationError("Group price cannot be negative")
                ticket.group_price = quantize(group_price)
                changed.append('group_price')

            if 'total_members' in data:
                try:
                    ticket.total_members = max(0, int(data['total_members'] or 0))
                except (TypeError, ValueError):
                    raise ValidationError("Total members must be a whole number")
                changed.append('total_members')

            if 'booking_date' in data:
                booking_date = data['booking_date']
                if isinstance(booking_date, str):
                    booking_date = parse_datetime(booking_date)
                if not isinstance(booking_date, datetime):
                    raise ValidationError("Booking date must be a date and time")
                ticket.booking_date = self.dates.localize(booking_date)
                ticket.booking_local_date = self.dates.to_local_calendar(ticket.booking_date)
                changed.extend(['booking_date', 'booking_local_date'])

            if changed:
                self._commit(ticket, changed)

        return ticket

    def mark_printed(self, ticket_id):
        with self._locked(ticket_id) as ticket:
            if not ticket.printed:
                ticket.printed = True
                self._commit(ticket, ['printed'])
        return ticket

    def change_status(self, ticket_id, new_status):
        """
        Administrative close of a ticket as completed or cancelled
        """
        if new_status not in Ticket.TERMINAL_STATUSES:
            raise ValidationError(
                f"Status can only be changed to {' or '.join(Ticket.TERMINAL_STATUSES)}"
            )

        with self._locked(ticket_id) as ticket:
            if ticket.is_terminal:
                raise ValidationError(f"Ticket is already {ticket.status}")
            ticket.status = new_status
            self._commit(ticket, ['status'])

        self.logger.info(f"Ticket {ticket.ticket_number} marked {new_status}")
        return ticket

    def delete(self, ticket_id):
        with self._locked(ticket_id) as ticket:
            number = ticket.ticket_number
            ticket.delete()
        self.logger.info(f"Ticket {number} deleted")

    # Persistence

    def _load_for_update(self, ticket_id):
        try:
            return Ticket.objects.select_for_update().get(pk=ticket_id)
        except (Ticket.DoesNotExist, ValueError, TypeError):
            raise NotFoundError("Ticket not found")

    @contextmanager
    def _locked(self, ticket_id):
        with transaction.atomic():
            yield self._load_for_update(ticket_id)

    def _commit(self, ticket, fields):
        """
        Write ``fields`` back only if nobody else bumped the version meanwhile
        """
        expected = ticket.version
        values = {field: getattr(ticket, field) for field in fields}
        values['version'] = expected + 1
        values['updated_at'] = timezone.now()

        updated = Ticket.objects.filter(pk=ticket.pk, version=expected).update(**values)
        if not updated:
            raise ConflictError(
                f"Ticket {ticket.ticket_number} was modified by another operation, please retry"
            )
        ticket.version = values['version']
        ticket.updated_at = values['updated_at']

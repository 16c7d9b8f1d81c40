"""
Fee and refund arithmetic for tickets.

Pure functions on Decimal. Inputs may be int, float, str or Decimal; results
are quantized to currency minor units (2 decimal places, half up).
"""
import time
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

from django.conf import settings

from .exceptions import ValidationError

CENT = Decimal('0.01')
ZERO = Decimal('0')


def to_decimal(value, field='amount'):
    """
    Coerce a monetary input to Decimal. None and '' count as zero.
    """
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} must be a number")
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantize(value):
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _people(number_of_people):
    try:
        people = int(number_of_people or 1)
    except (TypeError, ValueError):
        raise ValidationError("number_of_people must be an integer")
    return max(1, people)


def compute_total_fee(per_person_fee, number_of_people, discount=0):
    """
    fee = max(0, per_person_fee * number_of_people - discount)

    number_of_people is coerced to an integer >= 1 and discount to >= 0, so
    a discount larger than the subtotal yields 0 rather than a negative fee.
    """
    subtotal = to_decimal(per_person_fee, 'per_person_fee') * _people(number_of_people)
    discount = max(ZERO, to_decimal(discount, 'discount'))
    return quantize(max(ZERO, subtotal - discount))


def compute_full_refund(amount_paid, cancellation_fee=0):
    """
    Refund what the customer actually paid, minus any cancellation fee.
    """
    amount_paid = to_decimal(amount_paid, 'amount_paid')
    cancellation_fee = max(ZERO, to_decimal(cancellation_fee, 'cancellation_fee'))
    return quantize(max(ZERO, amount_paid - cancellation_fee))


def compute_partial_refund(amount_paid, total_people, refunded_people_count, cancellation_fee=0):
    """
    Refund the paid share of ``refunded_people_count`` players.

    The per person share is amount_paid / total_people; the cancellation fee
    is taken once from the combined share.
    """
    try:
        total_people = int(total_people)
        refunded_people_count = int(refunded_people_count)
    except (TypeError, ValueError):
        raise ValidationError("Player counts must be integers")

    if total_people <= 0:
        raise ValidationError("Total number of players must be greater than zero")
    if refunded_people_count < 0:
        raise ValidationError("Refunded player count cannot be negative")

    amount_paid = to_decimal(amount_paid, 'amount_paid')
    cancellation_fee = max(ZERO, to_decimal(cancellation_fee, 'cancellation_fee'))
    per_person_paid = amount_paid / total_people
    return quantize(max(ZERO, per_person_paid * refunded_people_count - cancellation_fee))


def compute_extra_time_charge(charge, discount=0):
    """
    Amount added to a ticket's fee for one extra time entry
    """
    charge = to_decimal(charge, 'charge')
    discount = max(ZERO, to_decimal(discount, 'discount'))
    return quantize(max(ZERO, charge - discount))


def fallback_sequence_id(now_ms=None, digits=None):
    """
    Ticket number used when the sequence counter cannot be reached.

    Taken from the low-order digits of the current time in milliseconds. It
    is NOT guaranteed unique: two fallbacks in the same window, or a
    fallback that matches a sequenced number, collide on the unique
    constraint. Callers must log whenever this path is taken.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    if digits is None:
        digits = settings.TICKET_FALLBACK_DIGITS
    return str(now_ms)[-digits:].zfill(digits)

"""
Venue calendar helpers.

Bookings store the Gregorian instant as the authoritative value and keep the
Bikram Sambat (Nepali calendar) date as a derived display string.
"""
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

import nepali_datetime
from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_date

from .exceptions import ValidationError


class DateNormalizer:
    """
    Converts instants to the venue's local calendar and wall clock.

    ``clock`` returns the current aware datetime; tests inject a fixed one.
    """

    def __init__(self, tz=None, clock=None):
        if tz is None:
            tz = settings.VENUE_TIME_ZONE
        self.tz = ZoneInfo(tz) if isinstance(tz, str) else tz
        self.clock = clock or timezone.now

    def now(self):
        return self.clock().astimezone(self.tz)

    def localize(self, instant):
        if timezone.is_naive(instant):
            instant = timezone.make_aware(instant, self.tz)
        return instant.astimezone(self.tz)

    def to_local_calendar(self, instant):
        """
        Bikram Sambat date of ``instant`` in the venue time zone, as YYYY-MM-DD
        """
        local_day = self.localize(instant).date()
        bs = nepali_datetime.date.from_datetime_date(local_day)
        return f"{bs.year:04d}-{bs.month:02d}-{bs.day:02d}"

    def now_time_string(self):
        return self.now().strftime('%H:%M:%S')

    def stamp(self):
        """
        (instant, local calendar date, HH:MM:SS) for a record created now
        """
        instant = self.now()
        return instant, self.to_local_calendar(instant), instant.strftime('%H:%M:%S')

    def today(self):
        return self.now().date()

    def day_bounds(self, day):
        """
        Aware [start, end) covering the venue-local calendar day ``day``
        """
        start = datetime.combine(day, time.min, tzinfo=self.tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=self.tz)
        return start, end


def parse_day(value, field='date'):
    """
    Parse a Gregorian YYYY-MM-DD query value; empty values give None
    """
    if not value:
        return None
    try:
        day = parse_date(value) if isinstance(value, str) else value
    except ValueError:
        day = None
    if day is None:
        raise ValidationError(f"{field} must be a date in YYYY-MM-DD format")
    return day

"""
Builder for the meetings of a new transaction.
"""

import calendar
import logging
from datetime import date
from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import TooManyLocationsException, TooManyTimesException
from ..models import Meeting, MeetingProposal

logger = logging.getLogger(__name__)


def add_months(start, months):
    """
    Shift a date by a number of calendar months.

    The day is clamped to the last day of the target month, so
    January 31st plus one month is February 28th (or 29th).

    Args:
        start: datetime.date to shift
        months: Number of months to add

    Returns:
        datetime.date: Shifted date
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


class MeetingFactory:
    """
    Accumulates the schedule of an exchange and builds its meetings.

    A permanent exchange gets one meeting. A temporary exchange (the default)
    gets a second, return meeting ``duration`` months after the first, at the
    second location, flagged ``is_second_meeting``. Every meeting starts with
    a single proposal made by the proposer.
    """

    DEFAULT_DURATION = 1

    def __init__(self):
        self.reset()

    def reset(self):
        self.is_temporary = True
        self.duration = self.DEFAULT_DURATION
        self.dates = []
        self.locations = []
        self.proposer_id = None
        return self

    def permanent(self):
        self.is_temporary = False
        return self

    def temporary(self):
        self.is_temporary = True
        return self

    def set_duration(self, months):
        self.duration = months
        return self

    def set_proposer(self, user_id):
        self.proposer_id = user_id
        return self

    def fill_location(self, location):
        """
        Add a meeting location.

        Raises:
            TooManyLocationsException: If a location is already present and
                the exchange is permanent
        """
        if len(self.locations) >= 1 and not self.is_temporary:
            raise TooManyLocationsException()
        self.locations.append(location)
        return self

    def fill_time(self, meeting_date):
        """
        Set the first meeting date; the return date is always derived.

        Raises:
            TooManyTimesException: If a date was already supplied
        """
        if self.dates:
            raise TooManyTimesException()
        self.dates.append(meeting_date)
        return self

    def build(self):
        """
        Create and persist the meetings, then reset.

        Returns:
            list[Meeting]: One meeting, or two for a temporary exchange

        Raises:
            ValidationError: If the date or a location is missing
        """
        try:
            required_locations = 2 if self.is_temporary else 1
            if not self.dates:
                raise ValidationError('A meeting date is required.')
            if len(self.locations) < required_locations:
                raise ValidationError(
                    f'Expected {required_locations} location(s), got {len(self.locations)}.'
                )

            first_date = self.dates[0]
            with transaction.atomic():
                meetings = [self._create_meeting(first_date, self.locations[0], False)]
                if self.is_temporary:
                    meetings.append(self._create_meeting(
                        add_months(first_date, self.duration), self.locations[1], True
                    ))

            logger.info(
                f"Built {len(meetings)} meeting(s) starting {first_date} "
                f"proposed by user {self.proposer_id}"
            )
            return meetings
        finally:
            self.reset()

    def build_ids(self):
        return [meeting.id for meeting in self.build()]

    def _create_meeting(self, meeting_date, location, is_second_meeting):
        meeting = Meeting.objects.create(is_second_meeting=is_second_meeting)
        MeetingProposal.objects.create(
            meeting=meeting,
            date=meeting_date,
            location=location,
            editor_id=self.proposer_id,
        )
        return meeting

"""
Meeting negotiation.

A meeting moves from proposed, through any number of counter proposals, to
agreed, and is complete once every user who proposed a date or place has
confirmed it took place.
"""

import logging
from django.db import transaction

from ..exceptions import EditAgreedMeetingException, TooManyEditsException
from ..models import Meeting, MeetingProposal
from .config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


class MeetingManager:
    """
    Drives the meeting edit/agree/confirm state machine.

    The edit limit comes from configuration pushed through ``update_config``.

    Args:
        config: Initial configuration map (defaults to built-in defaults)
    """

    def __init__(self, config=None):
        self.edit_threshold = int(DEFAULT_CONFIG['maxMeetingEdits'])
        self.update_config(config or DEFAULT_CONFIG)

    def update_config(self, config):
        if 'maxMeetingEdits' in config:
            self.edit_threshold = int(config['maxMeetingEdits'])

    def get_meeting(self, meeting_id):
        return Meeting.objects.prefetch_related('proposals', 'confirmed_by').get(pk=meeting_id)

    def all(self):
        return list(Meeting.objects.prefetch_related('proposals', 'confirmed_by'))

    def user_can_edit(self, user_id, meeting):
        return meeting.edit_count(user_id) < self.edit_threshold

    def edit_meeting(self, user_id, meeting_id, location, date):
        """
        Propose a new location (and date) for a meeting.

        The date of a return meeting is fixed by the system, so only its
        location changes.

        Args:
            user_id: Id of the user proposing
            meeting_id: Id of the meeting
            location: Proposed location
            date: Proposed date (ignored for a second meeting)

        Returns:
            bool: True if the edited meeting is a first meeting

        Raises:
            TooManyEditsException: If the user used up their edits
            EditAgreedMeetingException: If the meeting is already agreed
            Meeting.DoesNotExist: If no meeting has this id
        """
        with transaction.atomic():
            meeting = Meeting.objects.select_for_update().get(pk=meeting_id)

            if not self.user_can_edit(user_id, meeting):
                logger.warning(
                    f"User {user_id} exceeded {self.edit_threshold} edits on meeting {meeting_id}"
                )
                raise TooManyEditsException()

            if meeting.is_agreed:
                logger.warning(f"User {user_id} tried to edit agreed meeting {meeting_id}")
                raise EditAgreedMeetingException()

            new_date = meeting.date if meeting.is_second_meeting else date
            MeetingProposal.objects.create(
                meeting=meeting,
                date=new_date,
                location=location,
                editor_id=user_id,
            )

        logger.info(f"User {user_id} proposed {location} on {new_date} for meeting {meeting_id}")
        return not meeting.is_second_meeting

    def agree_to_meeting(self, meeting_id):
        """Mark a meeting agreed. Agreeing twice is harmless."""
        updated = Meeting.objects.filter(pk=meeting_id).update(is_agreed=True)
        if not updated:
            raise Meeting.DoesNotExist(f"Meeting {meeting_id} does not exist.")
        logger.info(f"Meeting {meeting_id} agreed")

    def mark_conducted(self, meeting_id, user_id):
        """Record that ``user_id`` confirmed the meeting took place."""
        meeting = Meeting.objects.get(pk=meeting_id)
        meeting.confirmed_by.add(user_id)
        logger.info(f"User {user_id} confirmed meeting {meeting_id}")

    # ------------------------------------------------------------------
    # Derived permission views
    # ------------------------------------------------------------------

    def users_edit_turn(self, meetings, user_id):
        """Ids of meetings where the user is not the last editor."""
        return [meeting.id for meeting in meetings if meeting.last_editor_id != user_id]

    def get_edit_permissions(self, meetings, user_id):
        """Ids of meetings the user may edit right now."""
        return [
            meeting.id for meeting in meetings
            if meeting.last_editor_id != user_id
            and not meeting.is_agreed
            and not meeting.is_complete()
        ]

    def get_user_edit_too_many(self, meetings, user_id):
        """Ids of meetings where the user has no edits left."""
        return [meeting.id for meeting in meetings if not self.user_can_edit(user_id, meeting)]

    def get_confirm_permissions(self, meetings, today=None):
        """
        Map each agreed, incomplete, past meeting to who still has to confirm it.

        The parties are the lender and borrower of the first trade of the
        meeting's transaction.

        Args:
            meetings: Meetings to inspect
            today: Date used to decide whether a meeting has passed

        Returns:
            dict: meeting id -> list of user ids that have not confirmed
        """
        permissions = {}
        for meeting in meetings:
            if not (meeting.is_agreed and not meeting.is_complete() and meeting.has_passed(today)):
                continue
            confirmed = meeting.confirmed_ids()
            permissions[meeting.id] = [
                user_id for user_id in self._parties(meeting) if user_id not in confirmed
            ]
        return permissions

    def _parties(self, meeting):
        tx = meeting.transactions.first()
        if tx is None:
            return []
        trade = tx.trades.order_by('id').first()
        if trade is None:
            return []
        return [trade.lender_id, trade.borrower_id]

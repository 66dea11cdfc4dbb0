"""
Test suite for meeting negotiation.

Tests cover:
- Counter proposals and the per-user edit limit
- Agreed meetings are frozen
- Return meetings keep their date
- Agreement and confirmation
- Completion semantics (every editor confirmed)
- Derived edit and confirm permissions
"""

from datetime import date, timedelta

import pytest

from trading.exceptions import EditAgreedMeetingException, TooManyEditsException
from trading.models import Meeting, Transaction
from trading.services.meetings import MeetingManager


# ============================================================================
# Helper Functions
# ============================================================================

def meetings_of(transaction_id):
    return Transaction.objects.get(pk=transaction_id).meeting_list()


@pytest.fixture
def temp_tx(build_tx, borrower, lender, lender_item):
    return build_tx(borrower, lender, lender_item)


@pytest.fixture
def manager():
    return MeetingManager({'maxMeetingEdits': '3'})


# ============================================================================
# Editing
# ============================================================================

@pytest.mark.django_db
class TestEditMeeting:
    """Tests for MeetingManager.edit_meeting."""

    def test_edit_appends_proposal(self, manager, temp_tx, lender):
        first, _ = meetings_of(temp_tx)
        new_date = date(2024, 6, 20)

        result = manager.edit_meeting(lender.id, first.id, 'Cafe', new_date)

        first = manager.get_meeting(first.id)
        assert result is True
        assert first.location == 'Cafe'
        assert first.date == new_date
        assert first.last_editor_id == lender.id
        assert len(first.proposal_list()) == 2

    def test_edit_second_meeting_keeps_date(self, manager, temp_tx, lender):
        _, second = meetings_of(temp_tx)
        original_date = second.date

        result = manager.edit_meeting(lender.id, second.id, 'Harbour', date(2030, 1, 1))

        second = manager.get_meeting(second.id)
        assert result is False
        assert second.location == 'Harbour'
        assert second.date == original_date

    def test_edit_limit_counts_own_edits(self, temp_tx, borrower, lender):
        manager = MeetingManager({'maxMeetingEdits': '2'})
        first, _ = meetings_of(temp_tx)

        # The initial proposal already counts as one borrower edit
        manager.edit_meeting(lender.id, first.id, 'A', date(2024, 6, 20))
        manager.edit_meeting(borrower.id, first.id, 'B', date(2024, 6, 21))

        with pytest.raises(TooManyEditsException):
            manager.edit_meeting(borrower.id, first.id, 'C', date(2024, 6, 22))

        manager.edit_meeting(lender.id, first.id, 'D', date(2024, 6, 23))
        assert manager.get_meeting(first.id).location == 'D'

    def test_update_config_changes_limit(self, temp_tx, borrower):
        manager = MeetingManager({'maxMeetingEdits': '3'})
        manager.update_config({'maxMeetingEdits': '1'})
        first, _ = meetings_of(temp_tx)

        with pytest.raises(TooManyEditsException):
            manager.edit_meeting(borrower.id, first.id, 'Cafe', date(2024, 6, 20))

    def test_edit_agreed_meeting_rejected(self, manager, temp_tx, lender):
        first, _ = meetings_of(temp_tx)
        manager.agree_to_meeting(first.id)

        with pytest.raises(EditAgreedMeetingException):
            manager.edit_meeting(lender.id, first.id, 'Cafe', date(2024, 6, 20))

        assert manager.get_meeting(first.id).location == 'Library'

    def test_edit_limit_checked_before_agreement(self, temp_tx, borrower):
        manager = MeetingManager({'maxMeetingEdits': '1'})
        first, _ = meetings_of(temp_tx)
        manager.agree_to_meeting(first.id)

        with pytest.raises(TooManyEditsException):
            manager.edit_meeting(borrower.id, first.id, 'Cafe', date(2024, 6, 20))

    def test_edit_missing_meeting(self, manager, lender):
        with pytest.raises(Meeting.DoesNotExist):
            manager.edit_meeting(lender.id, 999999, 'Cafe', date(2024, 6, 20))


# ============================================================================
# Agreement and confirmation
# ============================================================================

@pytest.mark.django_db
class TestAgreeAndConfirm:
    """Tests for agree_to_meeting, mark_conducted and is_complete."""

    def test_agree_is_idempotent(self, manager, temp_tx):
        first, _ = meetings_of(temp_tx)

        manager.agree_to_meeting(first.id)
        manager.agree_to_meeting(first.id)

        assert Meeting.objects.get(pk=first.id).is_agreed is True

    def test_agree_missing_meeting(self, manager, db):
        with pytest.raises(Meeting.DoesNotExist):
            manager.agree_to_meeting(999999)

    def test_complete_when_only_editor_confirms(self, manager, temp_tx, borrower):
        first, _ = meetings_of(temp_tx)

        manager.mark_conducted(first.id, borrower.id)

        assert manager.get_meeting(first.id).is_complete() is True

    def test_incomplete_until_every_editor_confirms(self, manager, temp_tx, borrower, lender):
        first, _ = meetings_of(temp_tx)
        manager.edit_meeting(lender.id, first.id, 'Cafe', date(2024, 6, 20))

        manager.mark_conducted(first.id, borrower.id)
        assert manager.get_meeting(first.id).is_complete() is False

        manager.mark_conducted(first.id, lender.id)
        assert manager.get_meeting(first.id).is_complete() is True

    def test_confirming_twice_keeps_one_entry(self, manager, temp_tx, borrower):
        first, _ = meetings_of(temp_tx)

        manager.mark_conducted(first.id, borrower.id)
        manager.mark_conducted(first.id, borrower.id)

        assert manager.get_meeting(first.id).confirmed_ids() == {borrower.id}


# ============================================================================
# Derived permissions
# ============================================================================

@pytest.mark.django_db
class TestPermissionViews:
    """Tests for the derived permission lists."""

    def test_users_edit_turn(self, manager, temp_tx, borrower, lender):
        meetings = meetings_of(temp_tx)

        assert manager.users_edit_turn(meetings, borrower.id) == []
        assert manager.users_edit_turn(meetings, lender.id) == [m.id for m in meetings]

    def test_edit_permissions_skip_agreed(self, manager, temp_tx, lender):
        first, second = meetings_of(temp_tx)
        manager.agree_to_meeting(first.id)

        meetings = meetings_of(temp_tx)
        assert manager.get_edit_permissions(meetings, lender.id) == [second.id]

    def test_user_edit_too_many(self, temp_tx, borrower, lender):
        manager = MeetingManager({'maxMeetingEdits': '1'})
        meetings = meetings_of(temp_tx)

        assert manager.get_user_edit_too_many(meetings, borrower.id) == [m.id for m in meetings]
        assert manager.get_user_edit_too_many(meetings, lender.id) == []

    def test_confirm_permissions_for_past_agreed_meeting(self, manager, temp_tx, borrower, lender, today):
        first, second = meetings_of(temp_tx)
        manager.agree_to_meeting(first.id)
        manager.mark_conducted(first.id, lender.id)

        permissions = manager.get_confirm_permissions(
            meetings_of(temp_tx), today=today + timedelta(days=1)
        )

        assert permissions == {first.id: [borrower.id]}

    def test_no_confirm_permissions_before_meeting_date(self, manager, temp_tx, today):
        first, _ = meetings_of(temp_tx)
        manager.agree_to_meeting(first.id)

        assert manager.get_confirm_permissions(meetings_of(temp_tx), today=today) == {}

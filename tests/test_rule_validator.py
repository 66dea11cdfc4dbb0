"""
Tests for system rules and the RuleValidator.

All checks run against the fixed ``today`` fixture (Wednesday 2024-06-12,
so the current week started Monday 2024-06-10).
"""

from datetime import date

import pytest

from trading.exceptions import RuleDoesNotExistException
from trading.models import Transaction
from trading.services.meetings import MeetingManager
from trading.services.rules import (
    MaxIncompleteTransactionRule,
    MaxTransactionPerWeekRule,
    NoMoreBorrowThanLendRule,
    RuleValidator,
    SystemRule,
    VacationRule,
)


class UnknownRule(SystemRule):
    name = 'NoSuchRule'


def agree_first_meeting(tx_id):
    first = Transaction.objects.get(pk=tx_id).meeting_list()[0]
    MeetingManager().agree_to_meeting(first.id)


@pytest.fixture
def validator():
    return RuleValidator()


# ============================================================================
# Rule objects
# ============================================================================

def test_rules_read_default_restriction():
    assert MaxTransactionPerWeekRule().restriction == 3
    assert MaxIncompleteTransactionRule().restriction == 3
    assert NoMoreBorrowThanLendRule().restriction == 0
    assert VacationRule().restriction == 0


def test_rule_update_config_only_touches_own_key():
    weekly = MaxTransactionPerWeekRule()
    borrow = NoMoreBorrowThanLendRule()
    config = {'maxTransactionsPerWeek': '7', 'maxIncompleteTransactions': '1'}

    weekly.update_config(config)
    borrow.update_config(config)

    assert weekly.restriction == 7
    assert borrow.restriction == 0


# ============================================================================
# Validation
# ============================================================================

@pytest.mark.django_db
class TestRuleValidator:
    """Test suite for RuleValidator.violate."""

    def test_unknown_rule(self, validator, borrower, today):
        with pytest.raises(RuleDoesNotExistException):
            validator.violate(UnknownRule(), borrower.id, today)

    def test_borrowing_more_than_lending(self, validator, build_tx, borrower, lender,
                                         lender_item, today):
        build_tx(borrower, lender, lender_item)

        assert validator.violate(NoMoreBorrowThanLendRule(), borrower.id, today) is True
        assert validator.violate(NoMoreBorrowThanLendRule(), lender.id, today) is False

    def test_two_way_counts_both_directions(self, validator, build_tx, borrower, lender,
                                            lender_item, borrower_item, today):
        build_tx(borrower, lender, lender_item, borrower_item, trade_type='twoWay')

        assert validator.violate(NoMoreBorrowThanLendRule(), borrower.id, today) is False

    def test_weekly_limit_counts_expected_transactions(self, validator, build_tx, borrower,
                                                       lender, make_item, today):
        for name in ('A', 'B'):
            agree_first_meeting(build_tx(borrower, lender, make_item(lender, name=name)))
        # Not agreed yet, so not expected
        build_tx(borrower, lender, make_item(lender, name='C'))

        assert validator.violate(MaxTransactionPerWeekRule(1), borrower.id, today) is True
        assert validator.violate(MaxTransactionPerWeekRule(2), borrower.id, today) is False

    def test_weekly_limit_excludes_meetings_on_monday(self, validator, build_tx, borrower,
                                                      lender, lender_item, today):
        tx_id = build_tx(borrower, lender, lender_item, meeting_date=date(2024, 6, 10))
        agree_first_meeting(tx_id)

        assert validator.violate(MaxTransactionPerWeekRule(0), borrower.id, today) is False

    def test_incomplete_transactions(self, validator, build_tx, borrower, lender,
                                     lender_item, today):
        build_tx(borrower, lender, lender_item, trade_duration='permanent',
                 meeting_date=date(2024, 6, 1))

        assert validator.violate(MaxIncompleteTransactionRule(0), borrower.id, today) is True
        assert validator.violate(MaxIncompleteTransactionRule(1), borrower.id, today) is False

    def test_open_transaction_is_not_incomplete(self, validator, build_tx, borrower, lender,
                                                lender_item, today):
        build_tx(borrower, lender, lender_item, trade_duration='permanent')

        assert validator.violate(MaxIncompleteTransactionRule(0), borrower.id, today) is False

    def test_vacation_rule_with_open_transaction(self, validator, build_tx, borrower, lender,
                                                 lender_item, today):
        build_tx(borrower, lender, lender_item)

        assert validator.violate(VacationRule(), borrower.id, today) is True
        assert validator.violate(VacationRule(), lender.id, today) is True

    def test_rules_only_look_at_the_users_transactions(self, validator, build_tx, borrower,
                                                       lender, other_user, lender_item, today):
        build_tx(borrower, lender, lender_item, meeting_date=date(2024, 6, 1))

        for rule in (NoMoreBorrowThanLendRule(), MaxTransactionPerWeekRule(0),
                     MaxIncompleteTransactionRule(0), VacationRule()):
            assert validator.violate(rule, other_user.id, today) is False

"""
Test suite for account status, trading permissions and credit.

Tests cover:
- Status transitions and their preconditions
- Lend, borrow and vacation permissions
- Credit points for sales, loans and failed transactions
- High-credit ranking
"""

from datetime import date

import pytest

from trading.models import Transaction
from trading.services.users import HIGH_CREDIT, CreditManager, PermissionsManager, UserManager


def status_of(user):
    user.refresh_from_db()
    return user.status


# ============================================================================
# UserManager
# ============================================================================

@pytest.mark.django_db
class TestUserManager:
    """Tests for status transitions."""

    def test_vacation_round_trip(self, borrower):
        users = UserManager()

        assert users.set_vacation(borrower.id) is True
        assert status_of(borrower) == 'vacation'
        assert users.un_vacation(borrower.id) is True
        assert status_of(borrower) == 'normal'

    def test_vacation_requires_normal_account(self, borrower):
        users = UserManager()
        users.freeze_user(borrower.id)

        assert users.set_vacation(borrower.id) is False
        assert status_of(borrower) == 'frozen'

    def test_un_vacation_requires_vacation(self, borrower):
        assert UserManager().un_vacation(borrower.id) is False
        assert status_of(borrower) == 'normal'

    def test_freeze_request_unfreeze_cycle(self, borrower):
        users = UserManager()

        users.freeze_user(borrower.id)
        users.request_unfreeze(borrower.id)
        assert status_of(borrower) == 'requestUnfreeze'

        users.unfreeze_user(borrower.id)
        assert status_of(borrower) == 'normal'

    def test_promote_and_demo(self, borrower, lender):
        users = UserManager()

        users.promote(borrower.id)
        users.set_account_to_demo(lender.id)

        assert status_of(borrower) == 'admin'
        assert status_of(lender) == 'demo'

    def test_change_home_city(self, borrower):
        UserManager().change_home_city(borrower.id, 'Montreal')

        borrower.refresh_from_db()
        assert borrower.home_city == 'Montreal'

    def test_user_high_credit_ranking(self, borrower, lender, other_user):
        for user, credit in ((borrower, 50), (lender, 1500), (other_user, 300)):
            user.credit = credit
            user.save()

        ids, credits = UserManager().user_high_credit()

        assert ids == [lender.id, other_user.id, borrower.id]
        assert credits == [1500, 300, 50]


# ============================================================================
# PermissionsManager
# ============================================================================

@pytest.mark.django_db
class TestPermissionsManager:
    """Tests for what a user may do."""

    @pytest.mark.parametrize('status,expected', [
        ('normal', True),
        ('admin', True),
        ('frozen', False),
        ('vacation', False),
        ('demo', False),
        ('requestUnfreeze', False),
    ])
    def test_can_lend_by_status(self, borrower, status, expected):
        borrower.status = status
        borrower.save()

        assert PermissionsManager().can_lend(borrower.id) is expected

    def test_status_predicates(self, borrower, admin_user):
        permissions = PermissionsManager()

        assert permissions.is_normal(borrower.id) is True
        assert permissions.is_admin(admin_user.id) is True
        assert permissions.is_frozen(borrower.id) is False

    def test_can_borrow_until_borrowing_more_than_lending(self, build_tx, borrower, lender,
                                                         lender_item, today):
        permissions = PermissionsManager(today=today)
        assert permissions.can_borrow(borrower.id) is True

        build_tx(borrower, lender, lender_item)

        assert permissions.can_borrow(borrower.id) is False
        assert permissions.can_borrow(lender.id) is True

    def test_high_credit_overrides_borrow_rule(self, build_tx, borrower, lender,
                                               lender_item, today):
        build_tx(borrower, lender, lender_item)
        borrower.credit = HIGH_CREDIT
        borrower.save()

        assert PermissionsManager(today=today).can_borrow(borrower.id) is True

    def test_frozen_user_cannot_borrow(self, borrower):
        borrower.status = 'frozen'
        borrower.credit = HIGH_CREDIT * 2
        borrower.save()

        assert PermissionsManager().can_borrow(borrower.id) is False

    def test_can_vacation_without_open_transactions(self, borrower, today):
        assert PermissionsManager(today=today).can_vacation(borrower.id) is True

    def test_cannot_vacation_with_open_transaction(self, build_tx, borrower, lender,
                                                   lender_item, today):
        build_tx(borrower, lender, lender_item)

        assert PermissionsManager(today=today).can_vacation(borrower.id) is False

    def test_demo_can_always_vacation(self, build_tx, borrower, lender, lender_item, today):
        build_tx(borrower, lender, lender_item)
        borrower.status = 'demo'
        borrower.save()

        assert PermissionsManager(today=today).can_vacation(borrower.id) is True


# ============================================================================
# CreditManager
# ============================================================================

@pytest.mark.django_db
class TestCreditManager:
    """Tests for credit points."""

    def test_sale_is_worth_full_price(self, build_tx, borrower, lender, make_item):
        tx_id = build_tx(borrower, lender, make_item(lender, price=250, for_sale=True),
                         trade_type='sell', trade_duration='permanent')

        assert CreditManager().points_for(Transaction.objects.get(pk=tx_id)) == 250

    def test_loan_is_worth_half_of_every_item(self, build_tx, borrower, lender, make_item):
        tx_id = build_tx(borrower, lender, make_item(lender, price=101),
                         make_item(borrower, price=60), trade_type='twoWay')

        # 101 // 2 + 60 // 2
        assert CreditManager().points_for(Transaction.objects.get(pk=tx_id)) == 80

    def test_failed_transactions_cost_five_times(self, build_tx, borrower, lender, make_item):
        complete = Transaction.objects.get(pk=build_tx(borrower, lender, make_item(lender, price=400)))
        failed = Transaction.objects.get(pk=build_tx(borrower, lender, make_item(lender, price=20)))

        # 200 - 5 * 10
        assert CreditManager().calculate_point([complete], [failed]) == 150

    def test_refresh_counts_failed_transactions(self, build_tx, borrower, lender, make_item, today):
        build_tx(borrower, lender, make_item(lender, price=40), trade_duration='permanent',
                 meeting_date=date(2024, 6, 1))

        is_high = CreditManager(today=today).refresh(borrower.id)

        assert is_high is False
        assert CreditManager().get_credit(borrower.id) == -100

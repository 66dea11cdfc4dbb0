"""
User status, trading permissions and credit.
"""

import logging
from django.db import transaction

from ..models import User
from .queries import TransactionQuery
from .rules import NoMoreBorrowThanLendRule, RuleValidator, VacationRule
from .transactions import rank_by_frequency

logger = logging.getLogger(__name__)


HIGH_CREDIT = 1200


class UserManager:
    """
    Status transitions of user accounts.

    Each method returns True when the status changed.
    """

    def get(self, user_ids):
        return list(User.objects.filter(pk__in=user_ids).order_by('id'))

    def all(self):
        return list(User.objects.order_by('id'))

    def all_by_id(self):
        return {user.id: user for user in self.all()}

    def _set_status(self, user_id, status, required=None):
        with transaction.atomic():
            user = User.objects.select_for_update().get(pk=user_id)
            if required is not None and user.status != required:
                logger.warning(
                    f"User {user_id} cannot become {status} from status {user.status}"
                )
                return False
            old_status = user.status
            user.status = status
            user.save(update_fields=['status', 'updated_at'])

        logger.info(f"User {user_id} status changed from {old_status} to {status}")
        return True

    def promote(self, user_id):
        return self._set_status(user_id, 'admin')

    def freeze_user(self, user_id):
        return self._set_status(user_id, 'frozen')

    def unfreeze_user(self, user_id):
        return self._set_status(user_id, 'normal')

    def request_unfreeze(self, user_id):
        return self._set_status(user_id, 'requestUnfreeze')

    def set_account_to_demo(self, user_id):
        return self._set_status(user_id, 'demo')

    def set_vacation(self, user_id):
        """Only a normal account can go on vacation."""
        return self._set_status(user_id, 'vacation', required='normal')

    def un_vacation(self, user_id):
        return self._set_status(user_id, 'normal', required='vacation')

    def change_home_city(self, user_id, home_city):
        user = User.objects.get(pk=user_id)
        user.home_city = home_city
        user.save(update_fields=['home_city', 'updated_at'])
        return True

    def user_high_credit(self):
        """
        Rank every user by credit.

        Returns:
            tuple: (user ids, credits)
        """
        return rank_by_frequency({user.id: user.credit for user in self.all()})


class PermissionsManager:
    """
    Answers what a user is allowed to do, based on status and rules.

    Args:
        validator: RuleValidator used for the borrow and vacation checks
        today: Date rules are evaluated on (defaults to the local date)
    """

    def __init__(self, validator=None, today=None):
        self.validator = validator or RuleValidator()
        self.today = today

    def _status(self, user_id):
        return User.objects.filter(pk=user_id).values_list('status', flat=True).first()

    def is_admin(self, user_id):
        return self._status(user_id) == 'admin'

    def is_frozen(self, user_id):
        return self._status(user_id) == 'frozen'

    def is_vacation(self, user_id):
        return self._status(user_id) == 'vacation'

    def is_demo(self, user_id):
        return self._status(user_id) == 'demo'

    def is_normal(self, user_id):
        return self._status(user_id) == 'normal'

    def is_requested_unfreeze(self, user_id):
        return self._status(user_id) == 'requestUnfreeze'

    def can_lend(self, user_id):
        return self._status(user_id) in ('normal', 'admin')

    def can_borrow(self, user_id):
        """
        A user may borrow if they may lend and either have high credit or
        have not borrowed more than they lent.
        """
        if not self.can_lend(user_id):
            return False
        credit = User.objects.filter(pk=user_id).values_list('credit', flat=True).first()
        if credit is not None and credit >= HIGH_CREDIT:
            return True
        return not self.validator.violate(NoMoreBorrowThanLendRule(), user_id, self.today)

    def can_vacation(self, user_id):
        """Demo accounts always may; others need no open transaction."""
        if self.is_demo(user_id):
            return True
        if not self.can_lend(user_id):
            return False
        return not self.validator.violate(VacationRule(), user_id, self.today)


class CreditManager:
    """
    Computes credit points from transaction history.

    A completed transaction earns its points; a failed (incomplete) one costs
    five times its points. A sale is worth the full price of its items, any
    other transaction half the price of every item exchanged.
    """

    FAILURE_PENALTY = 5

    def __init__(self, today=None):
        self.today = today

    def points_for(self, tx):
        trades = tx.trade_list()
        if not trades:
            return 0
        if trades[0].is_sell:
            return sum(item.price for item in trades[0].item_list())
        return sum(item.price // 2 for trade in trades for item in trade.item_list())

    def calculate_point(self, complete_transactions, failed_transactions):
        earned = sum(self.points_for(tx) for tx in complete_transactions)
        lost = sum(self.points_for(tx) for tx in failed_transactions)
        return earned - lost * self.FAILURE_PENALTY

    def update_point(self, user_id, complete_transactions, failed_transactions):
        credit = self.calculate_point(complete_transactions, failed_transactions)
        User.objects.filter(pk=user_id).update(credit=credit)
        return credit

    def get_credit(self, user_id):
        return User.objects.values_list('credit', flat=True).get(pk=user_id)

    def refresh(self, user_id):
        """
        Recompute a user's credit from their transactions.

        Returns:
            bool: True if the user now has high credit
        """
        complete = TransactionQuery(self.today).involves_user(user_id).is_complete().transactions()
        failed = TransactionQuery(self.today).involves_user(user_id).is_incomplete().transactions()
        credit = self.update_point(user_id, complete, failed)
        return credit >= HIGH_CREDIT

"""
System rules and their evaluation against a user's transaction history.
"""

import logging
from datetime import timedelta
from django.utils import timezone

from ..exceptions import RuleDoesNotExistException
from .config import DEFAULT_CONFIG
from .queries import TransactionQuery

logger = logging.getLogger(__name__)


class SystemRule:
    """
    A named policy threshold.

    Subclasses with a ``config_key`` pick up their restriction from pushed
    configuration; the others keep a fixed restriction.
    """

    name = None
    config_key = None
    default_restriction = 0

    def __init__(self, restriction=None):
        if restriction is None:
            restriction = self.default_restriction
            if self.config_key:
                restriction = int(DEFAULT_CONFIG[self.config_key])
        self.restriction = restriction

    def update_config(self, config):
        if self.config_key and self.config_key in config:
            self.restriction = int(config[self.config_key])

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name}={self.restriction}>"


class NoMoreBorrowThanLendRule(SystemRule):
    name = 'NoMoreBorrowThanLend'


class MaxTransactionPerWeekRule(SystemRule):
    name = 'MaxTransactionPerWeek'
    config_key = 'maxTransactionsPerWeek'


class MaxIncompleteTransactionRule(SystemRule):
    name = 'MaxIncompleteTransaction'
    config_key = 'maxIncompleteTransactions'


class VacationRule(SystemRule):
    name = 'VacationRule'


class RuleValidator:
    """
    Decides whether a user violates a system rule.

    Usage:
        validator = RuleValidator()
        if validator.violate(MaxIncompleteTransactionRule(3), user.id):
            ...
    """

    def violate(self, rule, user_id, today=None):
        """
        Check a user against a rule.

        Args:
            rule: SystemRule to evaluate
            user_id: Id of the user
            today: Date the rule is evaluated on (defaults to the local date)

        Returns:
            bool: True if the user violates the rule

        Raises:
            RuleDoesNotExistException: If the rule name is unknown
        """
        today = today or timezone.localdate()
        checks = {
            'NoMoreBorrowThanLend': self._more_borrow_than_lend,
            'MaxTransactionPerWeek': self._too_many_transactions_per_week,
            'MaxIncompleteTransaction': self._too_many_incomplete_transactions,
            'VacationRule': self._has_open_transactions,
        }
        check = checks.get(rule.name)
        if check is None:
            raise RuleDoesNotExistException(f"Rule {rule.name} does not exist.")

        violated = check(user_id, rule.restriction, today)
        if violated:
            logger.info(f"User {user_id} violates {rule.name} (restriction {rule.restriction})")
        return violated

    def _more_borrow_than_lend(self, user_id, restriction, today):
        borrows = TransactionQuery(today).involves_user_as_borrower(user_id).count()
        lends = TransactionQuery(today).involves_user_as_lender(user_id).count()
        return borrows - lends > restriction

    def _too_many_transactions_per_week(self, user_id, restriction, today):
        monday = today - timedelta(days=today.weekday())
        count = (TransactionQuery(today)
                 .after(monday)
                 .involves_user(user_id)
                 .is_expected()
                 .count())
        return count > restriction

    def _too_many_incomplete_transactions(self, user_id, restriction, today):
        return TransactionQuery(today).involves_user(user_id).is_incomplete().count() > restriction

    def _has_open_transactions(self, user_id, restriction, today):
        return TransactionQuery(today).involves_user(user_id).is_open().count() != restriction

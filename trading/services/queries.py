"""
Composable queries over transactions.

Most trading rules are defined in terms of meeting dates and completion flags
that live on related rows, so predicates run in Python over transactions
fetched with their trades, items, meetings, proposals and confirmations
prefetched in one go.
"""

from django.db.models import Prefetch
from django.utils import timezone

from ..models import Meeting, Trade, Transaction


def _first_meeting(meetings):
    dated = [meeting for meeting in meetings if meeting.date is not None]
    return min(dated, key=lambda meeting: meeting.date) if dated else None


def _last_meeting(meetings):
    dated = [meeting for meeting in meetings if meeting.date is not None]
    return max(dated, key=lambda meeting: meeting.date) if dated else None


class TransactionQuery:
    """
    Filter transactions with a chain of predicates.

    Every filter method appends a predicate and returns the query, and the
    terminal methods evaluate them in order over all transactions.

    Usage:
        TransactionQuery().involves_user(user.id).is_incomplete().transactions()

    Args:
        today: Date used by the date based predicates (defaults to the
            local date)
    """

    def __init__(self, today=None):
        self.today = today or timezone.localdate()
        self._predicates = []

    # ------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------

    def _filter(self, predicate):
        self._predicates.append(predicate)
        return self

    def find_by_id(self, transaction_id):
        return self._filter(lambda tx: tx.id == transaction_id)

    def involves_user(self, user_id):
        return self._filter(lambda tx: any(
            trade.lender_id == user_id or trade.borrower_id == user_id
            for trade in tx.trade_list()
        ))

    def involves_user_as_borrower(self, user_id):
        return self._filter(lambda tx: any(
            trade.borrower_id == user_id for trade in tx.trade_list()
        ))

    def involves_user_as_lender(self, user_id):
        return self._filter(lambda tx: any(
            trade.lender_id == user_id for trade in tx.trade_list()
        ))

    def involves_item(self, item_id):
        return self._filter(lambda tx: any(
            item.id == item_id
            for trade in tx.trade_list()
            for item in trade.item_list()
        ))

    def is_open(self):
        """Keep transactions whose last meeting has not passed yet."""
        return self._filter(self._is_open)

    def is_complete(self):
        """Keep transactions whose trades and meetings are all complete."""
        return self._filter(self._is_complete)

    def is_incomplete(self):
        """Keep transactions that are neither complete nor still open."""
        return self._filter(lambda tx: not self._is_complete(tx) and not self._is_open(tx))

    def is_expected(self):
        """Keep transactions with at least one agreed meeting."""
        return self._filter(lambda tx: any(meeting.is_agreed for meeting in tx.meeting_list()))

    def after(self, day):
        """Keep transactions whose first meeting is strictly after ``day``."""
        def predicate(tx):
            first = _first_meeting(tx.meeting_list())
            return first is not None and first.date > day
        return self._filter(predicate)

    def _is_open(self, tx):
        last = _last_meeting(tx.meeting_list())
        return last is not None and not last.has_passed(self.today)

    def _is_complete(self, tx):
        return (all(trade.is_complete for trade in tx.trade_list())
                and all(meeting.is_complete() for meeting in tx.meeting_list()))

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _queryset(self):
        return Transaction.objects.prefetch_related(
            Prefetch('trades', queryset=Trade.objects.prefetch_related('items')),
            Prefetch('meetings', queryset=Meeting.objects.prefetch_related('proposals', 'confirmed_by')),
        ).order_by('id')

    def transactions(self):
        return [tx for tx in self._queryset() if all(p(tx) for p in self._predicates)]

    def transaction(self):
        """Return the first matching transaction, or None."""
        matches = self.transactions()
        return matches[0] if matches else None

    def ids(self):
        return [tx.id for tx in self.transactions()]

    def count(self):
        return len(self.transactions())

    def meetings(self):
        return {tx.id: tx.meeting_list() for tx in self.transactions()}

    def meetings_list(self):
        return [meeting for tx in self.transactions() for meeting in tx.meeting_list()]

    def trades(self):
        return {tx.id: tx.trade_list() for tx in self.transactions()}

    def trades_list(self):
        return [trade for tx in self.transactions() for trade in tx.trade_list()]

    def lender_ids(self):
        """Map trade id -> lender id over the matching transactions."""
        return {trade.id: trade.lender_id for trade in self.trades_list()}

    def borrower_ids(self):
        """Map trade id -> borrower id over the matching transactions."""
        return {trade.id: trade.borrower_id for trade in self.trades_list()}

    def items(self):
        """Map trade id -> items over the matching transactions."""
        return {trade.id: trade.item_list() for trade in self.trades_list()}

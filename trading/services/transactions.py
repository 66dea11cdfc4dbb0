"""
Transaction lifecycle: creation, fulfilment and cancellation.

A transaction is created together with its trades and meetings and its items
are reserved. As meetings clear (agreed and confirmed by everyone who edited
them) custody of the items changes hands. A single-meeting transaction is a
transfer of title; a two-meeting transaction is a loan returned at the second
meeting.
"""

import logging
from collections import Counter
from django.db import transaction

from ..exceptions import ItemAlreadyReservedException, TransactionDoesNotExistException
from ..models import Item, Meeting, Trade, Transaction
from .meeting_factory import MeetingFactory
from .queries import TransactionQuery
from .trade_factory import TradeFactory

logger = logging.getLogger(__name__)


def rank_by_frequency(counts):
    """
    Rank keys by descending frequency.

    Each entry, taken in first-seen order, is inserted at the position equal
    to the number of already placed frequencies strictly greater than its own,
    so among equal frequencies the later entry comes first.

    Args:
        counts: Mapping key -> frequency, in first-seen order

    Returns:
        tuple: (keys, frequencies) as parallel lists
    """
    keys = []
    frequencies = []
    for key, frequency in counts.items():
        position = sum(1 for placed in frequencies if frequency < placed)
        keys.insert(position, key)
        frequencies.insert(position, frequency)
    return keys, frequencies


def _is_clear(meeting):
    return meeting.is_complete() and meeting.is_agreed


class TransactionManager:
    """
    Creates, advances and removes transactions.

    Args:
        today: Date used by date based queries (defaults to the local date)
    """

    def __init__(self, today=None):
        self.today = today

    def query(self):
        return TransactionQuery(today=self.today)

    def get_transaction(self, transaction_id):
        try:
            return Transaction.objects.get(pk=transaction_id)
        except Transaction.DoesNotExist:
            raise TransactionDoesNotExistException(
                f"Transaction {transaction_id} does not exist."
            )

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def build_transaction(self, borrower_id, lender_id, borrow_item_id, lend_item_id,
                          trade_type, trade_duration, meeting_date,
                          meeting_location1, meeting_location2=None):
        """
        Create a transaction with its trades and meetings and reserve its items.

        Args:
            borrower_id: Id of the user asking for the item
            lender_id: Id of the user lending the item
            borrow_item_id: Id of the item the borrower receives
            lend_item_id: Id of the item offered back (two-way only)
            trade_type: 'oneWay', 'sell', anything else is two-way
            trade_duration: 'permanent', anything else is temporary
            meeting_date: Date of the first meeting
            meeting_location1: Location of the first meeting
            meeting_location2: Location of the return meeting (temporary only)

        Returns:
            int: Id of the new transaction

        Raises:
            ItemAlreadyReservedException: If an item is locked by another trade
            TooManyItemListsException, TooManyLocationsException,
            TooManyTimesException: If the factories are misused
        """
        is_two_way = trade_type not in ('oneWay', 'sell')
        reserved_ids = [borrow_item_id, lend_item_id] if is_two_way else [borrow_item_id]

        trade_factory = TradeFactory().fill_lender(lender_id).fill_borrower(borrower_id)
        if trade_type == 'oneWay':
            trade_factory.one_way().fill_items([borrow_item_id])
        elif trade_type == 'sell':
            trade_factory.sell().fill_items([borrow_item_id])
        else:
            trade_factory.two_way().fill_items([borrow_item_id]).fill_items([lend_item_id])

        meeting_factory = (MeetingFactory()
                           .fill_time(meeting_date)
                           .fill_location(meeting_location1)
                           .set_proposer(borrower_id))
        if trade_duration == 'permanent':
            meeting_factory.permanent()
        else:
            meeting_factory.temporary().fill_location(meeting_location2)

        with transaction.atomic():
            items = list(Item.objects.select_for_update().filter(pk__in=reserved_ids))
            if len(items) != len(set(reserved_ids)):
                raise Item.DoesNotExist(f"Items {reserved_ids} do not all exist.")
            for item in items:
                if item.is_reserved:
                    logger.warning(f"Item {item.id} is already reserved")
                    raise ItemAlreadyReservedException(
                        f"Item {item.id} is already reserved by another transaction."
                    )
            Item.objects.filter(pk__in=reserved_ids).update(is_reserved=True)

            trade_ids = trade_factory.build_ids()
            meeting_ids = meeting_factory.build_ids()

            tx = Transaction.objects.create()
            tx.trades.set(trade_ids)
            tx.meetings.set(meeting_ids)

        logger.info(
            f"Transaction {tx.id} initiated: borrower={borrower_id}, lender={lender_id}, "
            f"type={trade_type}, duration={trade_duration}, items={reserved_ids}"
        )
        return tx.id

    # ------------------------------------------------------------------
    # Fulfilment
    # ------------------------------------------------------------------

    def perform_meeting(self, meeting_id):
        """
        Advance the meeting's transaction after the meeting may have cleared.

        A meeting is clear when it is complete and agreed. With one meeting,
        a clear meeting finishes the transaction. With two meetings, one clear
        meeting starts the loan and two clear meetings finish it.

        Raises:
            Meeting.DoesNotExist: If no meeting has this id
        """
        meeting = Meeting.objects.get(pk=meeting_id)
        tx = meeting.transactions.first()
        if tx is None:
            raise TransactionDoesNotExistException(
                f"Meeting {meeting_id} does not belong to a transaction."
            )

        meetings = list(tx.meetings.prefetch_related('proposals', 'confirmed_by'))
        cleared = [_is_clear(m) for m in meetings]

        if len(meetings) < 2:
            if cleared and cleared[0]:
                self.finish_transaction(tx.id)
        elif cleared[0] and cleared[1]:
            self.finish_transaction(tx.id)
        elif cleared[0] or cleared[1]:
            self.start_temp_transaction(tx.id)

    def finish_transaction(self, transaction_id):
        """
        Complete every trade and hand the items over for good or back.

        Each item is un-reserved and its holder swapped between borrower and
        lender. A single-meeting transaction also transfers ownership and
        soft-deletes the item. Trades already complete are left alone, so a
        finished transaction is never reversed.
        """
        with transaction.atomic():
            tx = self.get_transaction(transaction_id)
            is_permanent = tx.is_permanent()

            trades = list(Trade.objects.select_for_update().filter(
                transactions=tx, is_complete=False
            ).order_by('id'))
            if not trades:
                logger.warning(f"Transaction {transaction_id} is already finished")
                return

            for trade in trades:
                items = list(Item.objects.select_for_update().filter(trades=trade))
                for item in items:
                    item.is_reserved = False
                    item.is_soft_deleted = is_permanent
                    item.swap_holder(trade.borrower_id, trade.lender_id)
                    if is_permanent:
                        item.swap_owner(trade.borrower_id, trade.lender_id)
                    item.save(update_fields=[
                        'is_reserved', 'is_soft_deleted', 'holder', 'owner', 'updated_at'
                    ])
                trade.is_complete = True
                trade.save()

        logger.info(f"Transaction {transaction_id} finished (permanent={is_permanent})")

    def start_temp_transaction(self, transaction_id):
        """
        Hand the items to the borrowers without touching ownership.

        Only items still held by their trade's lender move, so starting a loan
        that is already running changes nothing.
        """
        with transaction.atomic():
            tx = self.get_transaction(transaction_id)
            moved = 0
            for trade in tx.trades.filter(is_complete=False):
                items = Item.objects.select_for_update().filter(
                    trades=trade, holder_id=trade.lender_id
                )
                for item in items:
                    item.swap_holder(trade.borrower_id, trade.lender_id)
                    item.save(update_fields=['holder', 'updated_at'])
                    moved += 1

        if not moved:
            logger.warning(f"Temporary transaction {transaction_id} is already started")
            return
        logger.info(f"Temporary transaction {transaction_id} started")

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def delete_transaction(self, transaction_id):
        """
        Release the items and remove the transaction with its trades and meetings.

        Raises:
            TransactionDoesNotExistException: If no transaction has this id
        """
        with transaction.atomic():
            tx = self.get_transaction(transaction_id)
            trade_ids = list(tx.trades.values_list('id', flat=True))
            meeting_ids = list(tx.meetings.values_list('id', flat=True))

            Item.objects.filter(trades__id__in=trade_ids).update(is_reserved=False)
            tx.delete()
            Trade.objects.filter(pk__in=trade_ids).delete()
            Meeting.objects.filter(pk__in=meeting_ids).delete()

        logger.info(f"Transaction {transaction_id} deleted")

    def check_agree(self, transaction_id):
        """Return True iff every meeting of the transaction is agreed."""
        tx = self.get_transaction(transaction_id)
        return all(meeting.is_agreed for meeting in tx.meetings.all())

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------

    def frequent_partners(self, user_id):
        """
        Rank the users that traded with ``user_id`` by how often they did.

        Returns:
            tuple: (user ids, frequencies)
        """
        query = self.query().involves_user(user_id)
        trades = query.trades_list()
        parties = [trade.lender_id for trade in trades] + [trade.borrower_id for trade in trades]
        counts = Counter(party for party in parties if party != user_id)
        return rank_by_frequency(counts)

    def most_traded_items(self):
        """
        Rank items by how many completed trades they appear in.

        Returns:
            tuple: (item ids, frequencies)
        """
        trades = self.query().is_complete().trades_list()
        counts = Counter(item.id for trade in trades for item in trade.item_list())
        return rank_by_frequency(counts)

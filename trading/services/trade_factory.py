"""
Builder for the trades of a new transaction.
"""

import logging
from django.core.exceptions import ValidationError
from django.db import transaction

from ..exceptions import TooManyItemListsException
from ..models import Trade

logger = logging.getLogger(__name__)


class TradeFactory:
    """
    Accumulates the parties and item lists of an exchange and builds its trades.

    A factory is meant to be created for a single build. One-way and sell
    exchanges produce one trade (lender -> borrower). Two-way exchanges
    produce a second trade with the roles swapped, carrying the second item
    list. The builder resets itself after every build, successful or not.

    Usage:
        trades = (TradeFactory()
                  .two_way()
                  .fill_lender(lender.id)
                  .fill_borrower(borrower.id)
                  .fill_items([item_a.id])
                  .fill_items([item_b.id])
                  .build())
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.lender_id = None
        self.borrower_id = None
        self.item_lists = []
        self.is_two_way = False
        self.is_sell = False
        return self

    def one_way(self):
        self.is_two_way = False
        return self

    def two_way(self):
        self.is_two_way = True
        return self

    def sell(self):
        """A sale is a one-way exchange flagged as sell."""
        self.is_sell = True
        return self.one_way()

    def fill_lender(self, user_id):
        self.lender_id = user_id
        return self

    def fill_borrower(self, user_id):
        self.borrower_id = user_id
        return self

    def fill_items(self, item_ids):
        """
        Add an item list.

        Raises:
            TooManyItemListsException: If a list is already present and the
                exchange is not two-way
        """
        if len(self.item_lists) >= 1 and not self.is_two_way:
            raise TooManyItemListsException()
        self.item_lists.append(list(item_ids))
        return self

    def build(self):
        """
        Create and persist the trades, then reset.

        Returns:
            list[Trade]: One trade, or two for a two-way exchange

        Raises:
            ValidationError: If an item list is missing
        """
        try:
            required = 2 if self.is_two_way else 1
            if len(self.item_lists) < required:
                raise ValidationError(
                    f'Expected {required} item list(s), got {len(self.item_lists)}.'
                )

            with transaction.atomic():
                trades = [self._create_trade(self.lender_id, self.borrower_id,
                                             self.item_lists[0], self.is_sell)]
                if self.is_two_way:
                    trades.append(self._create_trade(self.borrower_id, self.lender_id,
                                                     self.item_lists[1], False))

            logger.info(
                f"Built {len(trades)} trade(s) between lender {self.lender_id} "
                f"and borrower {self.borrower_id}"
            )
            return trades
        finally:
            self.reset()

    def build_ids(self):
        return [trade.id for trade in self.build()]

    def _create_trade(self, lender_id, borrower_id, item_ids, is_sell):
        trade = Trade.objects.create(
            lender_id=lender_id,
            borrower_id=borrower_id,
            is_sell=is_sell,
        )
        trade.items.set(item_ids)
        return trade

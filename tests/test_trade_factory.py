"""
Tests for the trade builder.

Tests cover:
- One-way, sell and two-way builds
- Second item list rejected unless two-way
- Missing item lists
- Reset after build
"""

import pytest
from django.core.exceptions import ValidationError

from trading.exceptions import TooManyItemListsException
from trading.models import Trade
from trading.services.trade_factory import TradeFactory


@pytest.mark.django_db
class TestTradeFactory:
    """Test suite for TradeFactory."""

    def test_one_way_builds_single_trade(self, lender, borrower, lender_item):
        trades = (TradeFactory()
                  .fill_lender(lender.id)
                  .fill_borrower(borrower.id)
                  .fill_items([lender_item.id])
                  .build())

        assert len(trades) == 1
        trade = trades[0]
        assert trade.lender_id == lender.id
        assert trade.borrower_id == borrower.id
        assert [item.id for item in trade.item_list()] == [lender_item.id]
        assert trade.is_sell is False
        assert trade.is_complete is False

    def test_default_is_one_way(self, lender, borrower, lender_item, borrower_item):
        factory = TradeFactory().fill_lender(lender.id).fill_borrower(borrower.id)
        factory.fill_items([lender_item.id])

        with pytest.raises(TooManyItemListsException):
            factory.fill_items([borrower_item.id])

    def test_sell_flags_trade(self, lender, borrower, lender_item):
        trades = (TradeFactory()
                  .sell()
                  .fill_lender(lender.id)
                  .fill_borrower(borrower.id)
                  .fill_items([lender_item.id])
                  .build())

        assert len(trades) == 1
        assert trades[0].is_sell is True

    def test_sell_rejects_second_item_list(self, lender_item, borrower_item):
        factory = TradeFactory().two_way().sell().fill_items([lender_item.id])

        with pytest.raises(TooManyItemListsException):
            factory.fill_items([borrower_item.id])

    def test_two_way_builds_mirrored_trades(self, lender, borrower, lender_item, borrower_item):
        trades = (TradeFactory()
                  .two_way()
                  .fill_lender(lender.id)
                  .fill_borrower(borrower.id)
                  .fill_items([lender_item.id])
                  .fill_items([borrower_item.id])
                  .build())

        assert len(trades) == 2
        first, second = trades
        assert (first.lender_id, first.borrower_id) == (lender.id, borrower.id)
        assert (second.lender_id, second.borrower_id) == (borrower.id, lender.id)
        assert [item.id for item in second.item_list()] == [borrower_item.id]

    def test_two_way_without_second_list_fails(self, lender, borrower, lender_item):
        factory = (TradeFactory()
                   .two_way()
                   .fill_lender(lender.id)
                   .fill_borrower(borrower.id)
                   .fill_items([lender_item.id]))

        with pytest.raises(ValidationError):
            factory.build()

        assert Trade.objects.count() == 0

    def test_factory_resets_after_build(self, lender, borrower, lender_item):
        factory = (TradeFactory()
                   .sell()
                   .fill_lender(lender.id)
                   .fill_borrower(borrower.id)
                   .fill_items([lender_item.id]))
        factory.build_ids()

        assert factory.item_lists == []
        assert factory.lender_id is None
        assert factory.is_sell is False
        assert factory.is_two_way is False

    def test_factory_resets_after_failed_build(self, lender):
        factory = TradeFactory().two_way().fill_lender(lender.id)

        with pytest.raises(ValidationError):
            factory.build()

        assert factory.is_two_way is False
        assert factory.lender_id is None

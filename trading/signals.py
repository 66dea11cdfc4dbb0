"""
Django signals for the trading engine.

This module defines the ``config_changed`` signal sent by the configuration
manager, and receivers that keep credit points in sync with completed trades
and write an audit log line for every recorded action.
"""

import logging
from django.db import transaction
from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from .models import History, Trade, User

logger = logging.getLogger(__name__)


# Sent with ``config``: a copy of the full key -> string value map.
config_changed = Signal()


@receiver(config_changed)
def log_config_change(sender, config, **kwargs):
    """
    Log every configuration push.

    Args:
        sender: The class that sent the signal (ConfigManager)
        config: Full configuration map after the change
        **kwargs: Additional keyword arguments
    """
    summary = ', '.join(f"{key}={value}" for key, value in sorted(config.items()))
    logger.debug(f"Trading configuration pushed by {sender.__name__}: {summary}")


@receiver(post_save, sender=Trade)
def update_credit_on_trade_complete(sender, instance, created, **kwargs):
    """
    Signal receiver to recompute credit once a trade is marked complete.

    This signal:
    1. Ignores new trades and trades that are still in progress
    2. Locks both parties' user rows
    3. Recomputes each party's credit from their transaction history

    Note: This signal runs within the same database transaction as the
    Trade.save(). If it fails, the whole completion is rolled back so
    trades and credit never disagree.

    Args:
        sender: The Trade model class
        instance: The Trade instance that was saved
        created: Boolean indicating if this is a new trade
        **kwargs: Additional keyword arguments
    """
    if created or not instance.is_complete:
        return

    from .services.users import CreditManager

    try:
        with transaction.atomic():
            credit_manager = CreditManager()
            for user_id in (instance.lender_id, instance.borrower_id):
                User.objects.select_for_update().get(pk=user_id)
                credit_manager.refresh(user_id)

            logger.info(
                f"Updated credit after trade {instance.id} completed: "
                f"lender={instance.lender_id}, borrower={instance.borrower_id}"
            )

    except Exception as e:
        logger.error(
            f"Error updating credit for trade {instance.id}: {e}",
            exc_info=True
        )
        raise


@receiver(post_save, sender=History)
def log_history_entry(sender, instance, created, **kwargs):
    """Write an audit log line whenever an action is recorded or undone."""
    if created:
        logger.info(f"[{instance.action_name}] {instance.display_string}")
    elif instance.is_undone:
        logger.info(f"[{instance.action_name}] history {instance.id} undone")

"""
Audited, undoable user actions.

Every action records a History row tagged with the action's class name and a
snapshot of its inputs. The CommandManager finds the action that produced a
row and asks it to undo, provided the action says undoing is still safe.
"""

import logging
from django.db import transaction

from ..exceptions import CommandExecutionException, UndoNotAllowedException
from ..models import History, Item, Transaction
from .items import ItemEditor
from .queries import TransactionQuery
from .transactions import TransactionManager

logger = logging.getLogger(__name__)


UNDONE_SUFFIX = ' has been undone'


class Actionable:
    """An action that records History rows."""

    @property
    def action_name(self):
        return type(self).__name__

    def record(self, data, display_string):
        return History.objects.create(
            action_name=self.action_name,
            data=data,
            display_string=display_string,
        )

    def can_undo(self, history):
        return False


class Undoable(Actionable):
    """
    An action whose effect can be reversed.

    Subclasses implement ``revert(history)``; ``undo`` runs it together with
    the History update in one database transaction and wraps any failure in
    CommandExecutionException.
    """

    def revert(self, history):
        raise NotImplementedError

    def undo(self, history):
        try:
            with transaction.atomic():
                self.revert(history)
                history.is_undone = True
                history.display_string = f"{history.display_string}{UNDONE_SUFFIX}"
                history.save(update_fields=['is_undone', 'display_string'])
        except Exception as e:
            logger.error(
                f"Error undoing history {history.id} ({self.action_name}): {e}",
                exc_info=True
            )
            raise CommandExecutionException(e) from e


class AddToWishlist(Undoable):

    def __init__(self, item_editor=None):
        self.item_editor = item_editor or ItemEditor()

    def execute(self, item_id, user_id):
        """
        Add an item to a user's wishlist.

        Returns:
            History: The recorded entry, or None if the item was already there
        """
        if not self.item_editor.add_item_to_wishlist(item_id, user_id):
            return None
        return self.record(
            {'itemId': item_id, 'userId': user_id},
            f"Added item id{item_id} to wishlist of user with id {user_id}",
        )

    def revert(self, history):
        self.item_editor.remove_item_from_wishlist(history.data['itemId'], history.data['userId'])

    def can_undo(self, history):
        if history.is_undone:
            return False
        return Item.objects.in_wishlist_of(history.data['userId']).filter(
            pk=history.data['itemId']
        ).exists()


class ApproveItemToInventory(Undoable):

    def __init__(self, item_editor=None):
        self.item_editor = item_editor or ItemEditor()

    def execute(self, item_id):
        """
        Approve an item into the inventory.

        Returns:
            History: The recorded entry, or None if the item does not exist
        """
        if not self.item_editor.approve_item(item_id):
            return None
        return self.record({'itemId': item_id}, f"Approve item with id {item_id}")

    def revert(self, history):
        self.item_editor.disapprove_item(history.data['itemId'])

    def can_undo(self, history):
        """Only while the item is untouched: approved, at home and never traded."""
        item_id = history.data['itemId']
        untouched = (Item.objects
                     .only_approved()
                     .not_deleted()
                     .held_by_owner()
                     .owned_by_unfrozen_user()
                     .filter(pk=item_id)
                     .exists())
        if not untouched:
            return False
        return TransactionQuery().involves_item(item_id).count() == 0


class InitiateTransaction(Undoable):

    def __init__(self, transaction_manager=None):
        self.transaction_manager = transaction_manager or TransactionManager()

    def execute(self, borrower_id, lender_id, borrow_item_id, lend_item_id, trade_type,
                trade_duration, meeting_date, meeting_location, meeting_location2=None):
        """
        Build a transaction and record it.

        Returns:
            History: The recorded entry; ``data['transactionId']`` holds the
            new transaction id
        """
        transaction_id = self.transaction_manager.build_transaction(
            borrower_id, lender_id, borrow_item_id, lend_item_id, trade_type,
            trade_duration, meeting_date, meeting_location, meeting_location2,
        )
        data = {
            'transactionId': transaction_id,
            'borrowerId': borrower_id,
            'lenderId': lender_id,
            'borrowItemId': borrow_item_id,
            'lendItemId': lend_item_id,
            'tradeType': trade_type,
            'tradeDuration': trade_duration,
            'meetingDate': meeting_date.isoformat(),
            'meetingLocation': meeting_location,
            'meetingLocation2': meeting_location2,
        }
        return self.record(
            data,
            f"Borrower with id {borrower_id} initiates a transaction with lender with id "
            f"{lender_id} involving borrow item with id {borrow_item_id} and lend item "
            f"with id {lend_item_id}",
        )

    def revert(self, history):
        self.transaction_manager.delete_transaction(history.data['transactionId'])

    def can_undo(self, history):
        """Only while the transaction exists and none of its meetings is agreed."""
        if history.is_undone:
            return False
        tx = Transaction.objects.filter(pk=history.data.get('transactionId')).first()
        if tx is None:
            return False
        return not tx.meetings.filter(is_agreed=True).exists()


class CommandManager:
    """
    Registry of actions keyed by class name.

    Args:
        actions: Actions to register (defaults to the three built-in actions)
    """

    def __init__(self, actions=None):
        if actions is None:
            actions = [AddToWishlist(), ApproveItemToInventory(), InitiateTransaction()]
        self.actions = {action.action_name: action for action in actions}

    def get_action(self, name):
        return self.actions[name]

    def all_actions(self):
        return list(History.objects.all())

    def can_undo(self, history):
        action = self.actions.get(history.action_name)
        if action is None:
            return False
        return action.can_undo(history)

    def get_undo_permissions(self):
        """Map every history id to whether it can be undone now."""
        return {history.id: self.can_undo(history) for history in History.objects.all()}

    def undo(self, history_id):
        """
        Undo the action recorded in a History row.

        Raises:
            History.DoesNotExist: If no row has this id
            CommandExecutionException: If undoing is not allowed or fails
        """
        history = History.objects.get(pk=history_id)
        action = self.actions.get(history.action_name)

        if not isinstance(action, Undoable) or not self.can_undo(history):
            logger.warning(f"Refused to undo history {history_id} ({history.action_name})")
            raise CommandExecutionException(
                UndoNotAllowedException(f"History {history_id} can no longer be undone.")
            )

        action.undo(history)
        logger.info(f"Undid history {history_id} ({history.action_name})")
        return history

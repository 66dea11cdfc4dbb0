"""
Wiring of the trading managers.
"""

from .alerts import AddInventoryAlert, AlertManager, FreezeUserAlert, UnfreezeUserAlert
from .commands import AddToWishlist, ApproveItemToInventory, CommandManager, InitiateTransaction
from .config import ConfigManager
from .items import ItemEditor
from .meetings import MeetingManager
from .rules import RuleValidator
from .transactions import TransactionManager
from .users import CreditManager, PermissionsManager, UserManager


class TradingSystem:
    """
    Builds every manager, registers the configuration listeners and pushes
    the current configuration to them once.

    Create one per request; nothing here is shared between requests.

    Args:
        today: Date used by date based rules and queries
    """

    def __init__(self, today=None):
        self.today = today
        self.config = ConfigManager()

        self.item_editor = ItemEditor()
        self.rule_validator = RuleValidator()
        self.meeting_manager = MeetingManager(self.config.all())
        self.transaction_manager = TransactionManager(today=today)
        self.alert_manager = AlertManager([
            FreezeUserAlert(self.rule_validator, today=today),
            UnfreezeUserAlert(),
            AddInventoryAlert(),
        ])
        self.user_manager = UserManager()
        self.permissions = PermissionsManager(self.rule_validator, today=today)
        self.credit_manager = CreditManager(today=today)

        self.add_to_wishlist = AddToWishlist(self.item_editor)
        self.approve_item = ApproveItemToInventory(self.item_editor)
        self.initiate_transaction = InitiateTransaction(self.transaction_manager)
        self.command_manager = CommandManager([
            self.add_to_wishlist,
            self.approve_item,
            self.initiate_transaction,
        ])

        self.config.register(self.meeting_manager)
        self.config.register(self.alert_manager)
        self.config.notify()

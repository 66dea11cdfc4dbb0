"""
Admin alerts: who should be frozen, who asks to be unfrozen, which items wait
for approval. Everything is recomputed on every call.
"""

from ..models import Item, User
from .rules import (
    MaxIncompleteTransactionRule,
    MaxTransactionPerWeekRule,
    NoMoreBorrowThanLendRule,
    RuleValidator,
)


class SystemAlert:
    name = None

    def need_alert(self, entity):
        raise NotImplementedError


class FreezeUserAlert(SystemAlert):
    """Raised for users violating at least one registered rule."""

    name = 'FreezeUserAlert'

    def __init__(self, validator=None, rules=None, today=None):
        self.validator = validator or RuleValidator()
        self.rules = list(rules) if rules is not None else [
            MaxIncompleteTransactionRule(),
            MaxTransactionPerWeekRule(),
            NoMoreBorrowThanLendRule(),
        ]
        self.today = today

    def update_config(self, config):
        for rule in self.rules:
            rule.update_config(config)

    def need_alert(self, user):
        return any(self.validator.violate(rule, user.id, self.today) for rule in self.rules)


class UnfreezeUserAlert(SystemAlert):
    name = 'UnfreezeUserAlert'

    def need_alert(self, user):
        return user.status == 'requestUnfreeze'


class AddInventoryAlert(SystemAlert):
    name = 'AddInventoryAlert'

    def need_alert(self, item):
        return not item.is_visible


class AlertManager:
    """
    Scans users and items with the registered alerts.

    Args:
        alerts: Alerts to register (defaults to the three built-in alerts)
    """

    def __init__(self, alerts=None):
        if alerts is None:
            alerts = [FreezeUserAlert(), UnfreezeUserAlert(), AddInventoryAlert()]
        self.alerts = {alert.name: alert for alert in alerts}

    def update_config(self, config):
        for alert in self.alerts.values():
            if hasattr(alert, 'update_config'):
                alert.update_config(config)

    def get_freeze_suggestions(self):
        """Users that break a rule and are not frozen yet."""
        alert = self.alerts['FreezeUserAlert']
        return [
            user for user in User.objects.order_by('id')
            if user.status != 'frozen' and alert.need_alert(user)
        ]

    def get_unfreeze_requests(self):
        alert = self.alerts['UnfreezeUserAlert']
        return [user for user in User.objects.order_by('id') if alert.need_alert(user)]

    def get_add_item_requests(self):
        """Ids of items waiting for admin approval."""
        alert = self.alerts['AddInventoryAlert']
        return [
            item.id for item in Item.objects.not_deleted().order_by('id')
            if alert.need_alert(item)
        ]

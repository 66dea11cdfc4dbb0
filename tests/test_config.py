"""
Tests for live trading configuration.

Tests cover:
- Defaults and persisted overrides
- Editing known keys and rejecting unknown ones
- Value validation
- Listener and signal notification
- TradingSystem wiring
"""

import pytest
from django.core.exceptions import ValidationError

from trading.exceptions import UnknownConfigKeyException
from trading.models import Config
from trading.services.config import DEFAULT_CONFIG, ConfigManager
from trading.services.system import TradingSystem
from trading.signals import config_changed


class RecordingListener:
    def __init__(self):
        self.pushes = []

    def update_config(self, config):
        self.pushes.append(config)


@pytest.mark.django_db
class TestConfigManager:
    """Test suite for ConfigManager."""

    def test_defaults(self):
        config = ConfigManager()

        assert config.all() == DEFAULT_CONFIG
        assert config.get_int('maxMeetingEdits') == 3

    def test_persisted_rows_override_defaults(self):
        Config.objects.create(name='maxMeetingEdits', value='5')

        assert ConfigManager().get('maxMeetingEdits') == '5'

    def test_unknown_key(self):
        config = ConfigManager()

        with pytest.raises(UnknownConfigKeyException):
            config.get('maxSomething')
        with pytest.raises(UnknownConfigKeyException):
            config.edit('maxSomething', 1)

        assert Config.objects.count() == 0

    def test_edit_persists_and_updates(self):
        config = ConfigManager()

        config.edit('maxTransactionsPerWeek', 7)

        assert config.get('maxTransactionsPerWeek') == '7'
        assert Config.objects.get(name='maxTransactionsPerWeek').value == '7'
        assert ConfigManager().get('maxTransactionsPerWeek') == '7'

    def test_edit_twice_keeps_one_row(self):
        config = ConfigManager()

        config.edit('maxMeetingEdits', 4)
        config.edit('maxMeetingEdits', 6)

        assert Config.objects.filter(name='maxMeetingEdits').count() == 1
        assert config.get_int('maxMeetingEdits') == 6

    @pytest.mark.parametrize('value', ['-1', 'three', ''])
    def test_edit_rejects_invalid_values(self, value):
        config = ConfigManager()

        with pytest.raises(ValidationError):
            config.edit('maxMeetingEdits', value)

        assert config.get('maxMeetingEdits') == '3'

    def test_edit_notifies_listeners(self):
        config = ConfigManager()
        listener = config.register(RecordingListener())

        config.edit('maxIncompleteTransactions', 1)

        assert listener.pushes[-1]['maxIncompleteTransactions'] == '1'

    def test_register_is_idempotent(self):
        config = ConfigManager()
        listener = RecordingListener()
        config.register(listener)
        config.register(listener)

        config.notify()

        assert len(listener.pushes) == 1

    def test_notify_sends_signal(self):
        received = []

        def receiver(sender, config, **kwargs):
            received.append(config)

        config_changed.connect(receiver)
        try:
            ConfigManager().edit('maxMeetingEdits', 2)
        finally:
            config_changed.disconnect(receiver)

        assert received[-1]['maxMeetingEdits'] == '2'


@pytest.mark.django_db
def test_trading_system_pushes_persisted_config(today):
    Config.objects.create(name='maxMeetingEdits', value='1')
    Config.objects.create(name='maxIncompleteTransactions', value='0')

    system = TradingSystem(today=today)

    assert system.meeting_manager.edit_threshold == 1
    freeze_alert = system.alert_manager.alerts['FreezeUserAlert']
    restrictions = {rule.name: rule.restriction for rule in freeze_alert.rules}
    assert restrictions['MaxIncompleteTransaction'] == 0


@pytest.mark.django_db
def test_trading_system_edit_reaches_meeting_manager(today):
    system = TradingSystem(today=today)

    system.config.edit('maxMeetingEdits', 9)

    assert system.meeting_manager.edit_threshold == 9

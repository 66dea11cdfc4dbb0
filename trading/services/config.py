"""
Live trading configuration.

Policy thresholds start from built-in defaults, can be overridden through the
``TRADING_CONFIG_DEFAULTS`` setting, and finally by persisted Config rows.
Components that depend on a threshold register as listeners and receive the
full key -> string map whenever it changes, instead of reading it per call.
"""

import logging
from django.conf import settings
from django.db import transaction

from ..exceptions import UnknownConfigKeyException
from ..models import Config
from ..signals import config_changed
from ..validators import validate_config_value

logger = logging.getLogger(__name__)


DEFAULT_CONFIG = {
    'maxMeetingEdits': '3',
    'maxIncompleteTransactions': '3',
    'maxTransactionsPerWeek': '3',
}


class ConfigManager:
    """
    Holds the current configuration map and pushes it to listeners.

    A listener is any object exposing ``update_config(config)``.
    """

    def __init__(self):
        self._config = dict(DEFAULT_CONFIG)
        overrides = getattr(settings, 'TRADING_CONFIG_DEFAULTS', {}) or {}
        self._config.update({key: str(value) for key, value in overrides.items()})
        self._config.update(dict(Config.objects.values_list('name', 'value')))
        self._listeners = []

    def get(self, key):
        if key not in self._config:
            raise UnknownConfigKeyException(f"Unknown configuration key: {key}")
        return self._config[key]

    def get_int(self, key):
        return int(self.get(key))

    def all(self):
        return dict(self._config)

    def register(self, listener):
        if listener not in self._listeners:
            self._listeners.append(listener)
        return listener

    def edit(self, key, value):
        """
        Persist a new value for a known key and notify listeners.

        Args:
            key: Configuration key (must already exist)
            value: New value, stored as text

        Raises:
            UnknownConfigKeyException: If the key is not a known setting
            ValidationError: If the value is not a non-negative integer
        """
        if key not in self._config:
            raise UnknownConfigKeyException(f"Unknown configuration key: {key}")

        validate_config_value(value)
        value = str(value).strip()

        with transaction.atomic():
            Config.objects.update_or_create(name=key, defaults={'value': value})

        old_value = self._config[key]
        self._config[key] = value
        logger.info(f"Configuration {key} changed from {old_value} to {value}")
        self.notify()

    def notify(self):
        """Push the full configuration map to every listener and the signal."""
        for listener in self._listeners:
            listener.update_config(self.all())
        config_changed.send(sender=self.__class__, config=self.all())

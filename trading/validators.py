"""
Custom validators for trading models and request payloads.
"""

import re
from django.core.exceptions import ValidationError


TRADE_TYPES = ('oneWay', 'twoWay', 'sell')
TRADE_DURATIONS = ('permanent', 'temporary')


def validate_location(value):
    """
    Validate a meeting location.

    Locations are free text but must contain at least one letter or digit
    and cannot be longer than 255 characters.

    Args:
        value: Location string to validate

    Raises:
        ValidationError: If location is empty or malformed
    """
    if value is None or not value.strip():
        raise ValidationError(
            'Meeting location cannot be empty.',
            code='empty_location'
        )

    if len(value) > 255:
        raise ValidationError(
            'Meeting location cannot exceed 255 characters.',
            code='location_too_long'
        )

    if not re.search(r'\w', value):
        raise ValidationError(
            'Meeting location must contain at least one letter or digit.',
            code='invalid_location'
        )


def validate_trade_type(value):
    """
    Validate that a trade type is one of oneWay, twoWay or sell.

    Raises:
        ValidationError: If trade type is unknown
    """
    if value not in TRADE_TYPES:
        raise ValidationError(
            f'Invalid trade type: {value}. Allowed types: {", ".join(TRADE_TYPES)}',
            code='invalid_trade_type'
        )


def validate_trade_duration(value):
    """Validate that a trade duration is permanent or temporary."""
    if value not in TRADE_DURATIONS:
        raise ValidationError(
            f'Invalid trade duration: {value}. Allowed durations: {", ".join(TRADE_DURATIONS)}',
            code='invalid_trade_duration'
        )


def validate_config_value(value):
    """
    Validate a configuration value.

    Every trading policy threshold is a non-negative integer stored as text.

    Args:
        value: Value to validate (str or int)

    Raises:
        ValidationError: If value is not a non-negative integer
    """
    text = str(value).strip()
    if not text.isdigit():
        raise ValidationError(
            f'Configuration value must be a non-negative integer, got {value!r}.',
            code='invalid_config_value'
        )

"""
Exceptions raised by the trading engine.

Policy violations are recoverable: the caller rejects the request or asks the
user to try again. Command execution failures wrap whatever went wrong while
undoing an action so the audit layer has a single error type to catch.
"""


class TradingException(Exception):
    """Base class for every error raised by the trading engine."""

    default_message = 'Trading operation failed.'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class PolicyViolation(TradingException):
    """A request broke a trading rule and was rejected without side effects."""

    default_message = 'Request violates trading policy.'


class TooManyEditsException(PolicyViolation):
    default_message = 'You have reached the maximum number of edits for this meeting.'


class EditAgreedMeetingException(PolicyViolation):
    default_message = 'An agreed meeting cannot be edited.'


class TooManyItemListsException(PolicyViolation):
    default_message = 'Only a two-way trade can carry a second item list.'


class TooManyLocationsException(PolicyViolation):
    default_message = 'A permanent transaction has exactly one meeting location.'


class TooManyTimesException(PolicyViolation):
    default_message = 'Only one meeting date can be supplied.'


class RuleDoesNotExistException(PolicyViolation):
    default_message = 'No such system rule.'


class ItemAlreadyReservedException(PolicyViolation):
    default_message = 'Item is already reserved by another transaction.'


class UndoNotAllowedException(PolicyViolation):
    default_message = 'This action can no longer be undone.'


class UnknownConfigKeyException(PolicyViolation):
    default_message = 'Unknown configuration key.'


class TransactionDoesNotExistException(TradingException):
    default_message = 'Transaction does not exist.'


class CommandExecutionException(TradingException):
    """
    Raised when an action fails while being undone.

    The original exception is kept on ``cause`` and chained as ``__cause__``.
    """

    default_message = 'Command could not be executed.'

    def __init__(self, cause=None, message=None):
        if message is None and cause is not None:
            message = f'{self.default_message} {cause}'
        super().__init__(message)
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

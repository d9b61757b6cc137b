"""Exceptions raised while assembling check run models."""

from typing import TypeVar

T = TypeVar("T")


class ChecksError(Exception):
    """Base class for all errors raised by the checks API models and builders."""


class MissingValueError(ChecksError, TypeError):
    """A mandatory value was passed as None."""


class InvalidArgumentError(ChecksError, ValueError):
    """A value was present, but not acceptable in this place."""


class InconsistentStateError(InvalidArgumentError):
    """The combination of values collected by a builder is not a valid check run."""


def require_not_none(value: T | None, name: str) -> T:
    """Return the value unchanged, or raise if it is None.

    :param value: the value to check
    :param name: name of the parameter, used for the error message
    :raises MissingValueError: if the value is None
    """
    if value is None:
        msg = f"{name} must not be None"
        raise MissingValueError(msg)
    return value

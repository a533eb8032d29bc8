"""
zilstake/values.py

Present/Absent tagged union for lookup results.

A batch entry that is missing, errored, empty or undecodable becomes ABSENT;
everything else is wrapped in Present. Callers branch on the tag instead of
testing for None at every level.
"""

from dataclasses import dataclass
from typing import Any, Union


class Absent:
    """Marker for a value that could not be obtained."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "ABSENT"


ABSENT = Absent()


@dataclass(frozen=True)
class Present:
    """A value that was obtained."""
    value: Any


Value = Union[Present, Absent]


def is_present(value: Value) -> bool:
    return isinstance(value, Present)


def value_or(value: Value, default: Any = None) -> Any:
    """Unwrap a Present, or return default for ABSENT."""
    if isinstance(value, Present):
        return value.value
    return default

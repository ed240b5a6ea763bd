"""Validated name and number primitives used throughout the schema model."""

from __future__ import annotations

import re
from dataclasses import dataclass

from protogen.errors import (
    FieldNumberOutOfRangeError,
    FieldNumberReservedError,
    InvalidIdentifierError,
)

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]*")
FULL_IDENTIFIER_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_]*(\.[A-Za-z][A-Za-z0-9_]*)*")

MIN_FIELD_NUMBER = 1
MAX_FIELD_NUMBER = 536870911
RESERVED_FIELD_NUMBERS = range(19000, 20000)


def _matches(pattern: re.Pattern, value: object) -> bool:
    return isinstance(value, str) and pattern.fullmatch(value) is not None


@dataclass(frozen=True)
class Identifier:
    """A simple name: a letter followed by letters, digits or underscores."""

    name: str

    def __post_init__(self):
        if not _matches(IDENTIFIER_PATTERN, self.name):
            raise InvalidIdentifierError(self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FullIdentifier:
    """A dotted sequence of identifiers, e.g. a package name like ``demo.pkg``."""

    name: str

    def __post_init__(self):
        if not _matches(FULL_IDENTIFIER_PATTERN, self.name):
            raise InvalidIdentifierError(self.name)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class FieldNumber:
    """A message field number (tag).

    Valid numbers are 1 through 536870911, excluding the range 19000-19999
    which is reserved for the protocol buffers implementation.
    """

    number: int

    def __post_init__(self):
        if isinstance(self.number, bool) or not isinstance(self.number, int):
            raise TypeError(f"Field number must be an int, got {type(self.number).__name__}")
        if self.number < MIN_FIELD_NUMBER or self.number > MAX_FIELD_NUMBER:
            raise FieldNumberOutOfRangeError(self.number)
        if self.number in RESERVED_FIELD_NUMBERS:
            raise FieldNumberReservedError(self.number)

    def __str__(self) -> str:
        return str(self.number)

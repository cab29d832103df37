"""Key-extraction policies: map one line of text to a countable key."""

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from top_few.errors import ConfigurationError


class KeyFinder(Protocol):
    """
    Extract a key from a line, or return None if the line has none.

    `scratch` is a buffer owned by the caller and reused across lines; a finder
    may fill it to assemble multi-part keys. Finders must be picklable so they
    can be shipped to worker processes.
    """

    def key(self, line: str, scratch: list[str]) -> str | None: ...


def identity_key(line: str, scratch: list[str]) -> str | None:
    """The whole line is the key; empty lines have none."""
    return line or None


@dataclass(frozen=True)
class IdentityKeyFinder:
    def key(self, line: str, scratch: list[str]) -> str | None:
        return identity_key(line, scratch)


@dataclass(frozen=True)
class RegexKeyFinder:
    """
    Key from the first regex match in the line.

    Capture groups, if the pattern has any, are joined with a single space
    (groups that did not take part in the match are left out). Without groups
    the whole match is the key.
    """

    pattern: str
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            regex = re.compile(self.pattern)
        except re.error as exc:
            raise ConfigurationError(f"Invalid regular expression {self.pattern!r}: {exc}") from exc
        object.__setattr__(self, "_regex", regex)

    def key(self, line: str, scratch: list[str]) -> str | None:
        match = self._regex.search(line)
        if match is None:
            return None
        if not self._regex.groups:
            return match.group(0)

        scratch.extend(group for group in match.groups() if group is not None)
        if not scratch:
            return None
        return " ".join(scratch)


@dataclass(frozen=True)
class FieldsKeyFinder:
    """
    Key from selected fields of the line, joined with a single space.

    Fields are 1-based. The line is split on `separator`, or on runs of
    whitespace when no separator is given. Lines missing a field have no key.
    """

    fields: tuple[int, ...]
    separator: str | None = None

    def __post_init__(self) -> None:
        if not self.fields:
            raise ConfigurationError("At least one field is required")
        if any(index < 1 for index in self.fields):
            raise ConfigurationError(f"Fields are 1-based, got {list(self.fields)}")
        if self.separator == "":
            raise ConfigurationError("Field separator must not be empty")

    def key(self, line: str, scratch: list[str]) -> str | None:
        parts = line.split(self.separator)
        for index in self.fields:
            if index > len(parts):
                return None
            scratch.append(parts[index - 1])
        return " ".join(scratch)


def parse_fields(spec: str) -> tuple[int, ...]:
    """Parse a comma-separated list of 1-based field indices, e.g. "1,3"."""
    try:
        fields = tuple(int(part) for part in spec.split(",") if part.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid field list {spec!r}") from exc
    if not fields:
        raise ConfigurationError(f"Invalid field list {spec!r}")
    return fields


def build_key_finder(
    regexp: str | None = None,
    fields: Sequence[int] | None = None,
    separator: str | None = None,
) -> KeyFinder:
    """Choose a key finder from command-line style options."""
    if regexp is not None and fields is not None:
        raise ConfigurationError("A regular expression and a field list cannot be combined")
    if separator is not None and fields is None:
        raise ConfigurationError("A separator only applies to a field list")
    if regexp is not None:
        return RegexKeyFinder(regexp)
    if fields is not None:
        return FieldsKeyFinder(tuple(fields), separator)
    return IdentityKeyFinder()

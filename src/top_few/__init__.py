"""Top Few - find the most frequent keys in very large line-oriented files."""

from top_few.counter import Counter, KeyCount
from top_few.errors import ConfigurationError, InputFileError, SpanError, SpanOpenError, SpanReadError, TopFewError
from top_few.keys import FieldsKeyFinder, IdentityKeyFinder, KeyFinder, RegexKeyFinder
from top_few.solver.solve import main_top_few, top_few

__all__ = [
    "ConfigurationError",
    "Counter",
    "FieldsKeyFinder",
    "IdentityKeyFinder",
    "InputFileError",
    "KeyCount",
    "KeyFinder",
    "RegexKeyFinder",
    "SpanError",
    "SpanOpenError",
    "SpanReadError",
    "TopFewError",
    "main_top_few",
    "top_few",
]

"""Exceptions raised by the top-few pipeline."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from top_few.chunks.types import Span


class TopFewError(RuntimeError):
    """Fatal pipeline error; no partial result is produced."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class InputFileError(TopFewError):
    """The input file could not be opened or measured at pipeline start."""


class SpanError(TopFewError):
    """A failure tied to one span of the input."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        span: "Span | None" = None,
    ) -> None:
        super().__init__(message, path=path)
        self.span = span


class SpanOpenError(SpanError):
    """A span's file handle failed to open after the run had started."""


class SpanReadError(SpanError):
    """Reading a span's lines failed part way through."""


class ConfigurationError(ValueError):
    """Invalid key-extraction or command-line configuration."""

"""Error hierarchy for blockmark.

Every public error class inherits from :class:`BlockmarkError` and carries a
machine-readable ``code`` (an :class:`ErrorCode`), a human-readable
``message``, an optional structured ``context`` dict and an optional
``cause`` (the chained exception).

The converters contain these errors internally: :func:`blockmark.serialize`
and :func:`blockmark.deserialize` always hand back a well-formed value.  The
only error a caller can observe is :class:`BlockmarkUnsupportedBlockError`,
and only when ``unsupported_block_policy="raise"`` is configured.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Machine-readable error codes, one per concrete error class."""

    CONVERSION_ERROR = "CONVERSION_ERROR"
    PARSE_ERROR = "PARSE_ERROR"
    UNSUPPORTED_BLOCK = "UNSUPPORTED_BLOCK"


class BlockmarkError(Exception):
    """Base exception for all blockmark errors.

    Parameters
    ----------
    code:
        A value from :class:`ErrorCode` (or any string) naming the error
        category.
    message:
        Human-readable explanation, also used as ``str(err)``.
    context:
        Structured diagnostic data; the keys are documented per subclass.
    cause:
        Exception being wrapped; chained as ``__cause__``.
    """

    def __init__(
        self,
        code: str,
        message: str,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.context: dict[str, Any] = dict(context) if context else {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __repr__(self) -> str:
        fields = [
            f"code={getattr(self.code, 'value', self.code)!r}",
            f"message={self.message!r}",
        ]
        if self.context:
            fields.append(f"context={self.context!r}")
        return f"{type(self).__name__}({', '.join(fields)})"


class BlockmarkConversionError(BlockmarkError):
    """Base class for errors raised while converting a document.

    Subclasses only differ in :attr:`default_code`.

    Context keys: ``block_type``, ``block_index`` when a single block failed.
    """

    default_code: ErrorCode = ErrorCode.CONVERSION_ERROR

    def __init__(
        self,
        message: str = "Conversion error",
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(self.default_code, message, context, cause)


class BlockmarkParseError(BlockmarkConversionError):
    """The Markdown parser could not turn the input into an AST.

    Context keys: ``parser``, ``length`` or ``input_type``.
    """

    default_code = ErrorCode.PARSE_ERROR


class BlockmarkUnsupportedBlockError(BlockmarkConversionError):
    """A block type has no Markdown rendering and the policy is ``"raise"``.

    Context keys: ``block_type``.
    """

    default_code = ErrorCode.UNSUPPORTED_BLOCK

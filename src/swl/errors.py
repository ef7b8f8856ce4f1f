"""Error types raised by the swl core.

Every error carries the structured details needed to build a message
(path, byte offset, identifier). Presentation is left to the CLI.
"""

from __future__ import annotations

from collections.abc import Sequence


class SwlError(Exception):
    """Base class for all swl errors."""


class ParseError(SwlError):
    """Malformed source text: unbalanced parentheses, unterminated string, ..."""

    def __init__(
        self,
        message: str,
        offset: int,
        line: int = 1,
        column: int = 1,
        source: str | None = None,
    ) -> None:
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column
        self.source = source
        where = f"{source}:" if source else ""
        super().__init__(f"{where}{line}:{column}: {message} (byte offset {offset})")


class ImportSyntaxError(ParseError):
    """An imported file failed to parse."""

    def __init__(self, path: str, error: ParseError) -> None:
        self.path = path
        super().__init__(error.message, error.offset, error.line, error.column, path)


class ImportNotFoundError(SwlError):
    """The loader has no source for the requested path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Imported file not found: {path}")


class CyclicImportError(SwlError):
    """A file (transitively) imports itself."""

    def __init__(self, chain: Sequence[str]) -> None:
        self.chain = tuple(chain)
        super().__init__("Cyclic import: " + " -> ".join(self.chain))


class DanglingDataTargetError(SwlError):
    """A data segment targets a memory that is never declared."""

    def __init__(self, memory_index: str) -> None:
        self.memory_index = memory_index
        super().__init__(f"Data segment targets undeclared memory {memory_index}")


class MemoryLimitError(SwlError):
    """Data does not fit below a memory's declared maximum."""

    def __init__(self, memory_index: str, required: int, maximum: int) -> None:
        self.memory_index = memory_index
        self.required = required
        self.maximum = maximum
        super().__init__(
            f"Memory {memory_index} needs {required} pages "
            f"but declares a maximum of {maximum}"
        )


class DuplicateSynthesizedIdentifierError(SwlError):
    """A generated identifier collides with one already in the module."""

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"Generated identifier {identifier} is already in use")


class UnknownPassRequestedError(SwlError):
    """The caller enabled a pass name that does not exist."""

    def __init__(self, name: str, known: Sequence[str] = ()) -> None:
        self.name = name
        self.known = tuple(known)
        msg = f"Unknown pass name {name!r}"
        if self.known:
            msg += f" (known passes: {', '.join(self.known)})"
        super().__init__(msg)


class NotAModuleError(SwlError):
    """A pass was applied to something other than a `(module ...)` form."""

    def __init__(self, message: str = "Expected a top-level (module ...) form") -> None:
        self.message = message
        super().__init__(message)


class MalformedFormError(SwlError):
    """A recognized form does not have the shape a pass needs."""

    def __init__(self, message: str, form: str = "") -> None:
        self.message = message
        self.form = form
        super().__init__(f"{message}: {form}" if form else message)


class ConstExprError(SwlError):
    """A constant expression could not be evaluated."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ConfigError(SwlError):
    """The configuration file is unreadable or malformed."""


__all__ = [
    "ConfigError",
    "ConstExprError",
    "CyclicImportError",
    "DanglingDataTargetError",
    "DuplicateSynthesizedIdentifierError",
    "ImportNotFoundError",
    "ImportSyntaxError",
    "MalformedFormError",
    "MemoryLimitError",
    "NotAModuleError",
    "ParseError",
    "SwlError",
    "UnknownPassRequestedError",
]

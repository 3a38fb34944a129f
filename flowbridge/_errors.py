"""Exceptions raised by flowbridge."""

from __future__ import annotations


class FormatError(ValueError):
    """The input was dispatched to a dialect but does not match its structure."""

    def __init__(self, dialect: str, detail: str) -> None:
        self.dialect = dialect
        self.detail = detail
        super().__init__(
            f"Input does not match the expected structure for the "
            f"{dialect} dialect: {detail}"
        )


class ParserFault(RuntimeError):
    """A dialect implementation failed while being probed during dispatch.

    Never raised past the registry: it is attached to the probe outcome and
    logged.
    """

    def __init__(self, dialect: str, cause: BaseException) -> None:
        self.dialect = dialect
        self.cause = cause
        super().__init__(f"Dialect '{dialect}' failed while probing input: {cause!r}")


class UnknownDialectError(LookupError):
    """A flow references a dialect that is not registered."""

    def __init__(self, identifier: str | None) -> None:
        self.identifier = identifier
        super().__init__(f"Dialect '{identifier}' is not registered")

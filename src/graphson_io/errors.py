"""
Error taxonomy for GraphSON reading.

Decoding and store problems are raised as one of the ``GraphSONError``
subclasses below. Reader entry points surface every failure as a single
``GraphReadError`` (an ``IOError``) with the original error chained as
``__cause__``.
"""
from __future__ import annotations

from typing import Any, Optional


class GraphSONError(Exception):
    """Base class for decode and store errors."""


class MalformedValue(GraphSONError):
    """A JSON node cannot be mapped to the supported value domain."""


class MissingRequiredField(GraphSONError):
    """An entity document lacks a required field."""

    def __init__(self, field: str, kind: str):
        self.field = field
        self.kind = kind
        super().__init__(f"{kind} document is missing required field '{field}'")


class UnexpectedField(GraphSONError):
    """A field name is not recognized for the document being decoded."""

    def __init__(self, field: str, where: str = "GraphSON"):
        self.field = field
        self.where = where
        super().__init__(f"Unexpected field in {where} - {field}")


class StoreFailure(GraphSONError):
    """The target store rejected a mutation or a commit."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        message = f"Store operation '{operation}' failed"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class GraphReadError(IOError):
    """
    The single failure type raised by reader entry points.

    The taxonomy error (or the tokenizer error) is available as
    ``__cause__`` and through :attr:`cause`.
    """

    def __init__(self, message: str, line_number: Optional[int] = None):
        self.line_number = line_number
        super().__init__(message)

    @property
    def cause(self) -> Any:
        return self.__cause__

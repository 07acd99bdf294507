"""Fatal faults raised while reconstructing the schema.

Every error here aborts the whole run: later statements may depend on
state the failing statement was supposed to establish.  Constructs that
are merely noise are logged as warnings instead and never raise.
"""

from typing import Optional, Sequence


class ExtractionError(Exception):
    """Base class for all extraction faults."""


class SourceParseError(ExtractionError):
    """The JavaScript parser could not produce a clean syntax tree."""


class StructuralMismatch(ExtractionError):
    """A node does not have one of the shapes the convention uses."""

    def __init__(self, expected: str, actual: str, context: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.context = context
        message = f'expected {expected}, found "{actual}"'
        if context:
            message += f' at {context}'
        super().__init__(message)


class UnresolvedReference(ExtractionError):
    """A local binding or type reference that names nothing declared."""

    def __init__(self, name: str, context: Optional[str] = None):
        self.name = name
        self.context = context
        message = f'unknown reference "{name}"'
        if context:
            message += f' at {context}'
        super().__init__(message)


class MissingDeclaration(ExtractionError):
    """A deferred operation targets a message or field that does not exist."""

    def __init__(self, what: str, path: Sequence[str]):
        self.what = what
        self.path = tuple(path)
        super().__init__(f'{what} "{".".join(path)}" not declared')


class DeclarationConflict(ExtractionError):
    """A message and an enum would share one name at the same level."""

    def __init__(self, name: str, path: Sequence[str]):
        self.name = name
        self.path = tuple(path)
        super().__init__(f'"{".".join(path)}" is declared both as a message and an enum')

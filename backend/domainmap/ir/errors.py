from typing import Optional


class DiagramError(Exception):
    """Base class for errors raised while building or laying out a diagram."""


class ValidationError(DiagramError):
    """A row is missing a required field. The whole batch is rejected."""

    def __init__(self, row_index: int, field: str, message: Optional[str] = None):
        self.row_index = row_index
        self.field = field
        self.message = message or f"Row {row_index}: missing required field '{field}'"
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "row_index": self.row_index,
            "field": self.field,
            "message": self.message,
        }


class DuplicateKeyConflict(DiagramError):
    """Two different logical entities resolved to the same registry key."""

    def __init__(self, scope: str, key: str, first_identity, other_identity):
        self.scope = scope
        self.key = key
        self.first_identity = first_identity
        self.other_identity = other_identity
        super().__init__(
            f"{scope} key '{key}' already bound to {first_identity!r}, "
            f"requested again for {other_identity!r}"
        )


class LayoutFailure(DiagramError):
    """The layout engine failed or timed out. Prior geometry is untouched."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

class LPError(Exception):
    """Base class for solver errors."""


class InvalidProblemError(LPError, ValueError):
    """The problem (or its serialized form) is malformed."""


class TableauError(LPError, RuntimeError):
    """A tableau invariant was violated. Always a programming error."""

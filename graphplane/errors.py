class GraphplaneError(Exception):
    """Base class for errors raised by the engine."""


class ExpressionError(GraphplaneError, ValueError):
    """Raised when an expression cannot be compiled."""


class PayloadError(GraphplaneError, ValueError):
    """Raised when a scene payload cannot be decoded."""


class ValidationError(GraphplaneError):
    pass

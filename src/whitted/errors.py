"""Exception types raised by the renderer."""


class WhittedError(Exception):
    """Base class for renderer errors."""


class SceneConfigError(WhittedError, ValueError):
    """A scene description cannot be assembled.

    Raised for unknown material names, missing or malformed mesh,
    background and scene files, invalid render parameters, and scenes that
    exceed the preallocated device buffers.
    """


class NumericalInvariantError(WhittedError, FloatingPointError):
    """A NaN distance reached the nearest-hit selection during a kernel."""

"""
Exceptions raised when an image, domain or interpolator is misconfigured.

Both derive from ValueError, so callers that only care about bad arguments
can keep catching ValueError. Evaluation outside an image's support is not an
error: it is reported as ``None`` (or a ``False`` entry in a definedness mask).
"""


class InvalidDomainError(ValueError):
    """Raised for a grid with a non-positive size or a zero spacing."""


class UnsupportedDegreeError(ValueError):
    """Raised for a B-spline degree (or derivative) that is not implemented."""

"""
Exceptions raised by the sharing filter.

None of these are fatal to a run: configuration problems are reported and the
offending entry dropped, numeric problems invalidate a single strip, and a
malformed event is rejected before any output is written.
"""


class ConfigurationError(ValueError):
    """A dead-strip address outside the detector topology."""


class NumericError(ArithmeticError):
    """Degenerate divisor in the angle (de)correction."""


class MalformedEventError(ValueError):
    """Input event is missing rings or has arrays of the wrong shape."""

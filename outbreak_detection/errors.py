"""Exception and warning types raised by the outbreak detection engine."""


class OutbreakDetectionError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(OutbreakDetectionError, ValueError):
    """Malformed input: bad sizes, vertex labels, seeds or probability masses."""


class UnsupportedPolicyError(OutbreakDetectionError, ValueError):
    """Unknown testing-order policy."""


class PolicyMismatchWarning(UserWarning):
    """Simulation results were produced for a different network and were skipped."""

"""
Exception types raised by the contour detection pipeline.

Two families exist:
- InvariantViolation: a precondition of an algorithm does not hold. These are
  programming or data errors; the current pipeline run must be aborted.
- KernelConfigurationError: the requested filter configuration cannot be
  built. The pipeline reports it and aborts the run without crashing.
"""


class InvariantViolation(AssertionError):
    """Fail-fast error for broken algorithmic preconditions."""


class KernelConfigurationError(ValueError):
    """Unknown or malformed filter kernel configuration."""

"""
Exception hierarchy for F,d curve fitting.

All errors raised by the toolkit derive from FdFitError, so callers
(the CLI in particular) can catch one class. Batch operations (collection
fits, sweeps, bootstrap) recover NotEnoughData and NumericDegeneracy as
"no fit" sentinels; every other error propagates.
"""


class FdFitError(Exception):
    """Base exception for F,d fitting errors."""
    pass


class InvalidArgument(FdFitError, ValueError):
    """Malformed options: wrong shapes, unknown enumerations, bound/start mismatch."""
    pass


class NotEnoughData(FdFitError):
    """Fewer usable samples than free parameters."""
    pass


class NumericDegeneracy(FdFitError):
    """Model evaluated to NaN, complex or non-finite values during a fit."""
    pass


class EmptyInput(FdFitError):
    """An operation requiring at least one curve received none."""
    pass


class MissingConditionData(FdFitError):
    """An enumerated analysis condition has no matching tagged data."""
    pass


RECOVERABLE_FIT_ERRORS = (NotEnoughData, NumericDegeneracy)
"""Errors that batch operations turn into per-cell "no fit" sentinels."""


__all__ = [
    'FdFitError',
    'InvalidArgument',
    'NotEnoughData',
    'NumericDegeneracy',
    'EmptyInput',
    'MissingConditionData',
    'RECOVERABLE_FIT_ERRORS',
]

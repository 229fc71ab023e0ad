"""Error taxonomy for the optimizer.

Only :class:`ValidationError` is ever raised out of an optimization run. The
warning classes name conditions that are absorbed into deterministic
fallbacks; their messages end up in the logs and in ``OptimizationResult.notes``.
"""


class ValidationError(ValueError):
    """The trip cannot be optimized (e.g. no valid days after normalization)."""


class DataGapWarning(UserWarning):
    """A crowd forecast lookup returned nothing; the neutral default was used."""


class PartialAssignmentWarning(UserWarning):
    """A strategy ran out of ranked candidates before all flexible days were filled."""


def warning_note(category: type[UserWarning], message: str) -> str:
    return f"{category.__name__}: {message}"

"""Validation of submitted audio training payloads.

Each rule is a pure predicate that returns `None` when the payload
passes or a `ValidationFailure` tag when it does not. The rules run in
a fixed order and the first failure wins:

    missing -> empty -> too long -> invalid element

`check_audio_training` converts a failure tag into the matching
exception from `errors`, for callers that prefer raising.
"""

from __future__ import annotations

import enum
import math
from typing import Any, Callable, Optional, Sequence

from . import errors
from .models import MAX_AUDIO_POINTS


class ValidationFailure(enum.Enum):
    MISSING = "missing"
    EMPTY = "empty"
    TOO_LONG = "too_long"
    INVALID = "invalid"


_FAILURE_ERRORS = {
    ValidationFailure.MISSING: errors.MissingDataError,
    ValidationFailure.EMPTY: errors.EmptyDataError,
    ValidationFailure.TOO_LONG: errors.TooLongError,
    ValidationFailure.INVALID: errors.InvalidDataError,
}


def is_audio_point(value: Any) -> bool:
    """True for finite ints and floats. Booleans and numeric strings are not points."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value)


def check_present(data: Any) -> Optional[ValidationFailure]:
    if data is None:
        return ValidationFailure.MISSING
    return None


def check_not_empty(data: Any) -> Optional[ValidationFailure]:
    if isinstance(data, (list, tuple)) and len(data) == 0:
        return ValidationFailure.EMPTY
    return None


def check_length(data: Any) -> Optional[ValidationFailure]:
    if isinstance(data, (list, tuple)) and len(data) > MAX_AUDIO_POINTS:
        return ValidationFailure.TOO_LONG
    return None


def check_points(data: Any) -> Optional[ValidationFailure]:
    if not isinstance(data, (list, tuple)):
        return ValidationFailure.INVALID
    if not all(is_audio_point(v) for v in data):
        return ValidationFailure.INVALID
    return None


AUDIO_RULES: Sequence[Callable[[Any], Optional[ValidationFailure]]] = (
    check_present,
    check_not_empty,
    check_length,
    check_points,
)


def validate_audio_training(data: Any, label: Any) -> Optional[ValidationFailure]:
    """Run the audio rules against a `{label, data}` submission.

    A missing, blank or non-text label is reported as `MISSING`, the same as a
    missing `data` field. Returns the first failure, or `None`.
    """
    if not isinstance(label, str) or not label.strip():
        return ValidationFailure.MISSING
    for rule in AUDIO_RULES:
        failure = rule(data)
        if failure is not None:
            return failure
    return None


def error_for(failure: ValidationFailure) -> errors.ValidationError:
    return _FAILURE_ERRORS[failure]()


def check_audio_training(data: Any, label: Any) -> None:
    """Raise the `ValidationError` subclass matching the first failed rule."""
    failure = validate_audio_training(data, label)
    if failure is not None:
        raise error_for(failure)

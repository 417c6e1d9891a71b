"""Request payload coercion shared by the score and session services."""

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

from heart_hunt.errors import ValidationError


def require(payload: dict, *names: str, message: str) -> None:
    """Raise ValidationError unless every name is present and non-empty.

    A numeric zero counts as present; ``None`` and empty strings do not.
    """
    for name in names:
        value = payload.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(message)


def as_text(payload: dict, name: str) -> str:
    """Identity fields may arrive as strings or plain integers, nothing else."""
    value = payload.get(name)
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        raise ValidationError(f'{name} must be a string')
    return str(value).strip()


def as_int(payload: dict, name: str, default: Optional[int] = None,
           minimum: Optional[int] = 0) -> Optional[int]:
    """Coerce an integral value; bools, fractions and unparsable text are rejected.

    Pass ``minimum=None`` to accept any integer.
    """
    value = payload.get(name)
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f'{name} must be an integer')
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f'{name} must be an integer')
    if isinstance(value, float) and value != number:
        raise ValidationError(f'{name} must be an integer')
    if minimum is not None and number < minimum:
        raise ValidationError(f'{name} must be >= {minimum}')
    return number


def as_choice(payload: dict, name: str, choices: Iterable[str], default: Optional[str] = None) -> Optional[str]:
    value = payload.get(name)
    if value is None or value == '':
        return default
    if value not in choices:
        raise ValidationError(f'{name} must be one of: {", ".join(choices)}')
    return value


def as_timestamp(payload: dict, name: str, default: Any = None) -> Optional[datetime]:
    """Parse an ISO-8601 value into a naive UTC datetime."""
    value = payload.get(name)
    if value is None or value == '':
        return default
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f'{name} must be an ISO-8601 timestamp')
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed

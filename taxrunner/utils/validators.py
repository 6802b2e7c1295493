import math
from numbers import Real
from typing import Any, Dict, List, Optional

from taxrunner.utils.exceptions import ValidationError

NAME_MAX_LENGTH = 16


def is_number(value: Any) -> bool:
    """True for ints and floats, False for bools and everything else"""
    return isinstance(value, Real) and not isinstance(value, bool)


def validate_name(raw: Any, max_length: int = NAME_MAX_LENGTH) -> str:
    """Validate a display name at registration"""
    name = str(raw if raw is not None else '').strip()
    if not name or len(name) > max_length or not name.isprintable():
        raise ValidationError('invalid-name', f"Name must be 1-{max_length} visible characters")
    return name


def clean_optional_name(raw: Any, max_length: int = NAME_MAX_LENGTH) -> Optional[str]:
    """Return the name if usable, None otherwise; used for optional renames"""
    if not isinstance(raw, str):
        return None
    name = raw.strip()
    if not name or len(name) > max_length or not name.isprintable():
        return None
    return name


def validate_score(raw: Any) -> int:
    """Floor a submitted score, rejecting negative or non-finite values"""
    if not is_number(raw) or not math.isfinite(raw) or raw < 0:
        raise ValidationError('invalid-score', "Score must be a finite non-negative number")
    return int(math.floor(raw))


def validate_intervals(raw: Any) -> Optional[List[float]]:
    """Validate the optional jump interval sample"""
    if raw is None:
        return None
    if not isinstance(raw, list) or not all(is_number(v) and math.isfinite(v) for v in raw):
        raise ValidationError('invalid-intervals', "jumpIntervals must be a list of numbers")
    return [float(v) for v in raw]


def validate_amount(raw: Any) -> float:
    """Validate a prize amount and round it to cents"""
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        raise ValidationError('invalid-amount', "Amount must be a number")
    if isinstance(raw, bool) or not math.isfinite(amount) or amount <= 0:
        raise ValidationError('invalid-amount', "Amount must be positive")
    return round(amount, 2)


def require_fields(data: Dict[str, Any], *fields: str) -> None:
    """Raise if any of ``fields`` is missing or empty"""
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError('missing-parameters', f"Missing required fields: {', '.join(missing)}",
                              fields=missing)


def parse_limit(raw: Any, default: int, minimum: int, maximum: int) -> int:
    """Parse a ``limit`` query parameter and clamp it into range"""
    try:
        value = int(raw) if raw not in (None, '') else default
    except (TypeError, ValueError):
        value = default
    return max(minimum, min(value, maximum))

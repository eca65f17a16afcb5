# =======================================================================================
# village_gate/utils/validators.py - Validation Helpers
# =======================================================================================
from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional, Sequence

from .exceptions import AuthorizationDenied, ValidationError


def utcnow() -> datetime:
    """Current time as naive UTC, the representation stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a datetime to naive UTC. Naive input is assumed to be UTC already."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def to_aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach the UTC offset to a stored naive-UTC datetime for the wire."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Strip a string and map an empty result to None."""
    if value is None:
        return None
    value = value.strip()
    return value or None


def require_fields(payload: Mapping[str, object], fields: Sequence[str]) -> None:
    """Raise ValidationError listing every required field that is missing or blank."""
    missing = [
        name for name in fields
        if payload.get(name) is None
        or (isinstance(payload.get(name), str) and not payload.get(name).strip())
    ]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def require_role(role: str, allowed: Iterable[str], action: str,
                 who: str = "security officers") -> None:
    """Raise AuthorizationDenied unless role is one of allowed."""
    if role not in allowed:
        raise AuthorizationDenied(f"Only {who} can {action}")

"""Profile completeness rules shared by the API and the client session layer.

Completeness is derived from the identity on every call and never stored.
All helpers accept an ORM ``User``, a pydantic model or a plain dict.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

NO_PROFILE_LABEL = "All profile information"


@dataclass(frozen=True)
class MandatoryField:
    key: str
    label: str
    # First attribute that resolves to a value wins; the wire format exposes
    # ``has_password`` instead of the hash.
    attributes: tuple[str, ...]


MANDATORY_FIELDS: tuple[MandatoryField, ...] = (
    MandatoryField("name", "Full Name", ("name",)),
    MandatoryField("batch_year", "JNV Batch Year", ("batch_year",)),
    MandatoryField("state", "JNV State", ("state",)),
    MandatoryField("district", "JNV District", ("district",)),
    MandatoryField("password", "Password", ("password_hash", "password", "has_password")),
)


def _read(identity: Any, attribute: str) -> Any:
    if isinstance(identity, dict):
        return identity.get(attribute)
    return getattr(identity, attribute, None)


def _is_filled(value: Any) -> bool:
    if value is None or value is False:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, int):
        return value != 0
    return True


def field_status(identity: Any) -> Dict[str, bool]:
    """Map each mandatory field key to whether the identity fills it."""
    status: Dict[str, bool] = {}
    for field in MANDATORY_FIELDS:
        status[field.key] = identity is not None and any(
            _is_filled(_read(identity, attribute)) for attribute in field.attributes
        )
    return status


def is_profile_complete(identity: Any) -> bool:
    if identity is None:
        return False
    return all(field_status(identity).values())


def missing_profile_fields(identity: Any) -> List[str]:
    if identity is None:
        return [NO_PROFILE_LABEL]
    status = field_status(identity)
    return [field.label for field in MANDATORY_FIELDS if not status[field.key]]


def profile_completion_percentage(identity: Any) -> int:
    if identity is None:
        return 0
    completed = sum(1 for filled in field_status(identity).values() if filled)
    return round(completed / len(MANDATORY_FIELDS) * 100)


def profile_completion_details(identity: Any) -> Dict[str, Any]:
    return {
        "is_complete": is_profile_complete(identity),
        "missing_fields": missing_profile_fields(identity),
        "completion_percentage": profile_completion_percentage(identity),
        "details": field_status(identity),
    }

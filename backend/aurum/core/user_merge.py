"""Contact Merge Rules — pure helpers behind the User Registry.

Invariants:
    - Contact key (email) is compared stripped and lower-cased
    - Merge is non-destructive: a provided non-empty value overwrites,
      an empty/None value keeps the stored one
"""

from dataclasses import dataclass

from aurum.core.errors import InputValidationError

MAX_EMAIL_LENGTH = 100
MAX_NAME_LENGTH = 100
MAX_PHONE_LENGTH = 20


@dataclass(frozen=True)
class ContactMerge:
    name: str
    phone: str | None
    touched: bool


def normalize_contact_key(email: str | None) -> str:
    key = (email or "").strip().lower()
    if not key or "@" not in key or len(key) > MAX_EMAIL_LENGTH:
        raise InputValidationError("A valid email is required", field="email")
    return key


def clean_optional(value: str | None, limit: int, field: str) -> str | None:
    """Strip; empty becomes None; over-length is a validation error."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > limit:
        raise InputValidationError(f"{field} must be at most {limit} characters", field=field)
    return value


def merge_contact_details(
    current_name: str, current_phone: str | None,
    name: str | None, phone: str | None,
) -> ContactMerge:
    name = clean_optional(name, MAX_NAME_LENGTH, "name")
    phone = clean_optional(phone, MAX_PHONE_LENGTH, "phone")
    return ContactMerge(
        name=name or current_name,
        phone=phone or current_phone,
        touched=bool(name or phone),
    )

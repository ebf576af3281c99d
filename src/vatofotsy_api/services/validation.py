"""Field validation for organization contact details.

Each validator returns the normalized value or raises the matching
ValidationError subclass.
"""

import re
from urllib.parse import urlparse

from vatofotsy_api.errors import InvalidEmail, InvalidPhone, InvalidWebsite

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Optional leading +, then 6-20 digits with space, dash or parentheses between
PHONE_PATTERN = re.compile(r"^\+?[\s\-()]*(?:[0-9][\s\-()]*){6,20}$")


def validate_email(email: str) -> str:
    email = email.strip()
    if not EMAIL_PATTERN.match(email):
        raise InvalidEmail()
    return email


def validate_website(website: str) -> str:
    """Validate a website URL, assuming https:// when no scheme is given."""
    website = website.strip()
    if not website:
        raise InvalidWebsite()
    if "://" not in website:
        website = f"https://{website}"

    parsed = urlparse(website)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidWebsite()
    host = parsed.hostname or ""
    if not host or " " in host:
        raise InvalidWebsite()
    return website


def validate_phone(phone: str) -> str:
    phone = phone.strip()
    if not PHONE_PATTERN.match(phone):
        raise InvalidPhone()
    return phone

"""Tests for contact detail validation."""

import pytest

from vatofotsy_api.errors import InvalidEmail, InvalidPhone, InvalidWebsite
from vatofotsy_api.services.validation import (
    validate_email,
    validate_phone,
    validate_website,
)


@pytest.mark.parametrize("email", ["a@b.co", "first.last+tag@example.org"])
def test_valid_email(email):
    assert validate_email(f"  {email} ") == email


@pytest.mark.parametrize("email", ["", "plain", "no@tld", "two@@example.com", "a b@c.de"])
def test_invalid_email(email):
    with pytest.raises(InvalidEmail):
        validate_email(email)


@pytest.mark.parametrize(
    "website,expected",
    [
        ("example.com", "https://example.com"),
        ("http://example.com/about", "http://example.com/about"),
        ("https://sub.example.co.uk", "https://sub.example.co.uk"),
        ("http://localhost", "http://localhost"),
        ("https://intranet", "https://intranet"),
        ("intranet/wiki", "https://intranet/wiki"),
    ],
)
def test_valid_website(website, expected):
    assert validate_website(website) == expected


@pytest.mark.parametrize(
    "website", ["", "   ", "ftp://example.com", "https://", "http://exa mple.com"]
)
def test_invalid_website(website):
    with pytest.raises(InvalidWebsite):
        validate_website(website)


@pytest.mark.parametrize("phone", ["+261341234567", "034 12 345 67", "(555) 123-4567"])
def test_valid_phone(phone):
    assert validate_phone(phone) == phone


@pytest.mark.parametrize("phone", ["", "12345", "call me", "+" + "1" * 25])
def test_invalid_phone(phone):
    with pytest.raises(InvalidPhone):
        validate_phone(phone)

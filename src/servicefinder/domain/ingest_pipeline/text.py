"""Deterministic text canonicalisation shared by normalization and matching."""

from __future__ import annotations

import re
import unicodedata

_STREET_SUFFIXES: dict[str, str] = {
    "street": "st",
    "road": "rd",
    "avenue": "ave",
    "drive": "dr",
    "court": "ct",
    "place": "pl",
    "parade": "pde",
    "terrace": "tce",
    "highway": "hwy",
    "boulevard": "blvd",
    "crescent": "cres",
    "lane": "ln",
    "close": "cl",
    "circuit": "cct",
    "esplanade": "esp",
    "square": "sq",
}
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_SCHEME_PATTERN = re.compile(r"^[a-z][a-z0-9+.-]*://")


def clean_text(value: object) -> str | None:
    """Collapse whitespace for display; blank values become ``None``."""

    if value is None:
        return None
    text = " ".join(str(value).split())
    return text or None


def normalize_text(value: str | None) -> str | None:
    if value is None:
        return None
    text = unicodedata.normalize("NFKC", value)
    text = text.casefold().replace("&", " and ")
    text = "".join(
        " " if unicodedata.category(ch).startswith(("P", "S")) else ch for ch in text
    )
    text = " ".join(text.split())
    return text or None


def name_tokens(value: str | None, *, drop: frozenset[str] = frozenset()) -> tuple[str, ...]:
    normalized = normalize_text(value)
    if normalized is None:
        return ()
    return tuple(token for token in normalized.split() if token not in drop)


def normalize_address(value: str | None) -> str | None:
    normalized = normalize_text(value)
    if normalized is None:
        return None
    return " ".join(_STREET_SUFFIXES.get(token, token) for token in normalized.split())


def normalize_phone(value: str | None) -> str | None:
    """Digits-only phone with Australian country code folded into the trunk prefix."""

    if value is None:
        return None
    digits = "".join(ch for ch in value if ch.isdigit())
    if digits.startswith("0061"):
        digits = "0" + digits[4:]
    elif digits.startswith("61") and len(digits) == 11:
        digits = "0" + digits[2:]
    elif len(digits) == 9 and digits[0] in "2378":
        digits = "0" + digits
    if len(digits) < 6:
        return None
    return digits


def normalize_email(value: str | None) -> str | None:
    if value is None:
        return None
    email = value.strip().casefold()
    if email.startswith("mailto:"):
        email = email[len("mailto:") :]
    return email or None


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_PATTERN.match(value.strip()))


def normalize_domain(value: str | None) -> str | None:
    if value is None:
        return None
    url = value.strip().casefold()
    url = _SCHEME_PATTERN.sub("", url)
    host = url.split("/", 1)[0].split("?", 1)[0].split("#", 1)[0]
    host = host.removeprefix("www.").rstrip(".")
    if "." not in host:
        return None
    return host


def normalize_postal_code(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if isinstance(value, float) and value.is_integer():
        text = str(int(value))
    text = "".join(text.split())
    return text or None


def normalize_category(value: str) -> str | None:
    text = normalize_text(value)
    if text is None:
        return None
    return text.replace(" ", "_")

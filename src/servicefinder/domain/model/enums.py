"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class ContactKind(StrEnum):
    PHONE = "phone"
    EMAIL = "email"
    URL = "url"


class IssueKind(StrEnum):
    MISSING_DESCRIPTION = "missing_description"
    MISSING_LOCATION = "missing_location"
    MISSING_CONTACT = "missing_contact"
    MISSING_PHONE_OR_EMAIL = "missing_phone_or_email"
    MISSING_CATEGORIES = "missing_categories"
    DEFAULT_CATEGORY_ONLY = "default_category_only"
    MISSING_AGE_RANGE = "missing_age_range"
    MISSING_DEMOGRAPHIC_FLAG = "missing_demographic_flag"
    INVALID_EMAIL = "invalid_email"
    INVALID_PHONE = "invalid_phone"
    INVALID_URL = "invalid_url"
    INVALID_POSTAL_CODE = "invalid_postal_code"
    INVALID_COORDINATES = "invalid_coordinates"
    INVALID_AGE_RANGE = "invalid_age_range"


class QualityBucket(StrEnum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class MatchClassification(StrEnum):
    EXACT = "exact"
    PROBABLE = "probable"
    NONE = "none"


class JobState(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {JobState.COMPLETED, JobState.FAILED}


class ExtractionErrorKind(StrEnum):
    """Non-fatal problems an adapter reports alongside partial data."""

    TIMEOUT = "timeout"
    RATE_LIMITED = "rate_limited"
    UNAVAILABLE = "unavailable"
    HTTP_ERROR = "http_error"
    PARSE_ERROR = "parse_error"
    INVALID_RECORD = "invalid_record"

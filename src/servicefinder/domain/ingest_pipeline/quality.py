"""Deterministic, source-agnostic quality scoring of normalized services.

Scores are a weighted sum of three dimensions, each in ``[0, 1]``:

- completeness: fraction of the expected fields that are populated (name,
  description, a location, a contact channel, categories)
- contactability: a valid phone number or email address; a website alone
  counts partially
- specificity: non-default categories, an age range, a youth or indigenous flag

Scoring never raises for missing data; absent fields only lower the score.
Invalid values (malformed email, out-of-range coordinates ...) are reported as
issues and do not count as populated.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from servicefinder.config.quality import QualityConfig
from servicefinder.domain.ingest_pipeline.text import (
    is_valid_email,
    normalize_domain,
    normalize_phone,
)
from servicefinder.domain.model import (
    IssueCount,
    IssueKind,
    QualityBucket,
    QualityIssue,
    QualityReport,
    QualitySummary,
)

if TYPE_CHECKING:
    from collections.abc import Iterable

    from servicefinder.domain.model import Location, NormalizedService


@dataclass(slots=True)
class BatchAssessment:
    reports: list[QualityReport]
    summary: QualitySummary


@dataclass(slots=True)
class _Findings:
    issues: list[QualityIssue] = field(default_factory=list[QualityIssue])

    def add(self, kind: IssueKind, field_name: str) -> None:
        self.issues.append(QualityIssue(kind=kind, field_name=field_name))


@dataclass(slots=True)
class QualityEngine:
    config: QualityConfig = field(default_factory=QualityConfig)

    def assess(self, service: NormalizedService) -> QualityReport:
        findings = _Findings()
        completeness = self._completeness(service, findings)
        contactability = self._contactability(service, findings)
        specificity = self._specificity(service, findings)
        score = (
            completeness * self.config.completeness_weight
            + contactability * self.config.contactability_weight
            + specificity * self.config.specificity_weight
        )
        return QualityReport(
            service_id=service.id,
            score=min(max(score, 0.0), 1.0),
            completeness=completeness,
            contactability=contactability,
            specificity=specificity,
            issues=tuple(findings.issues),
        )

    def assess_batch(self, services: Iterable[NormalizedService]) -> BatchAssessment:
        reports = [self.assess(service) for service in services]
        return BatchAssessment(reports=reports, summary=self.summarize(reports))

    def summarize(self, reports: Iterable[QualityReport]) -> QualitySummary:
        reports = list(reports)
        distribution = dict.fromkeys(QualityBucket, 0)
        issue_counter: Counter[IssueKind] = Counter()
        for report in reports:
            distribution[self.bucket_for(report.score)] += 1
            issue_counter.update(issue.kind for issue in report.issues)

        ranked = sorted(issue_counter.items(), key=lambda item: (-item[1], item[0].value))
        average = sum(report.score for report in reports) / len(reports) if reports else 0.0
        return QualitySummary(
            total_services=len(reports),
            average_score=average,
            distribution=distribution,
            common_issues=tuple(
                IssueCount(kind=kind, count=count)
                for kind, count in ranked[: self.config.top_issues]
            ),
        )

    def bucket_for(self, score: float) -> QualityBucket:
        if score >= self.config.excellent_threshold:
            return QualityBucket.EXCELLENT
        if score >= self.config.good_threshold:
            return QualityBucket.GOOD
        if score >= self.config.fair_threshold:
            return QualityBucket.FAIR
        return QualityBucket.POOR

    # --- dimensions -----------------------------------------------------------

    def _completeness(self, service: NormalizedService, findings: _Findings) -> float:
        checks = [bool(service.name.strip())]

        has_description = bool(service.description)
        if not has_description:
            findings.add(IssueKind.MISSING_DESCRIPTION, "description")
        checks.append(has_description)

        valid_locations = [loc for loc in service.locations if _location_is_valid(loc, findings)]
        if not service.locations:
            findings.add(IssueKind.MISSING_LOCATION, "locations")
        checks.append(bool(valid_locations))

        has_contact = bool(_valid_phones(service) or _valid_emails(service) or _valid_urls(service))
        if not service.contacts:
            findings.add(IssueKind.MISSING_CONTACT, "contacts")
        checks.append(has_contact)

        if not service.categories:
            findings.add(IssueKind.MISSING_CATEGORIES, "categories")
        checks.append(bool(service.categories))

        return sum(checks) / len(checks)

    def _contactability(self, service: NormalizedService, findings: _Findings) -> float:
        for phone in service.phones:
            if normalize_phone(phone) is None:
                findings.add(IssueKind.INVALID_PHONE, "contacts.phone")
        for email in service.emails:
            if not is_valid_email(email):
                findings.add(IssueKind.INVALID_EMAIL, "contacts.email")
        for url in service.urls:
            if normalize_domain(url) is None:
                findings.add(IssueKind.INVALID_URL, "contacts.url")

        if _valid_phones(service) or _valid_emails(service):
            return 1.0
        if service.contacts:
            findings.add(IssueKind.MISSING_PHONE_OR_EMAIL, "contacts")
        if _valid_urls(service):
            return self.config.website_only_contactability
        return 0.0

    def _specificity(self, service: NormalizedService, findings: _Findings) -> float:
        specific_categories = [
            category
            for category in service.categories
            if category not in self.config.default_categories
        ]
        if service.categories and not specific_categories:
            findings.add(IssueKind.DEFAULT_CATEGORY_ONLY, "categories")

        age_range = service.age_range
        has_age_range = False
        if age_range is None:
            findings.add(IssueKind.MISSING_AGE_RANGE, "age_range")
        elif _age_range_is_valid(age_range.minimum, age_range.maximum):
            has_age_range = True
        else:
            findings.add(IssueKind.INVALID_AGE_RANGE, "age_range")

        has_flag = service.youth_specific or service.indigenous_specific
        if not has_flag:
            findings.add(IssueKind.MISSING_DEMOGRAPHIC_FLAG, "youth_specific")

        signals = (bool(specific_categories), has_age_range, has_flag)
        return sum(signals) / len(signals)


def _valid_phones(service: NormalizedService) -> list[str]:
    return [phone for phone in service.phones if normalize_phone(phone) is not None]


def _valid_emails(service: NormalizedService) -> list[str]:
    return [email for email in service.emails if is_valid_email(email)]


def _valid_urls(service: NormalizedService) -> list[str]:
    return [url for url in service.urls if normalize_domain(url) is not None]


def _location_is_valid(location: Location, findings: _Findings) -> bool:
    valid = True
    postal_code = location.postal_code
    if postal_code is not None and not (postal_code.isdigit() and len(postal_code) == 4):
        findings.add(IssueKind.INVALID_POSTAL_CODE, "locations.postal_code")
        valid = False
    if location.latitude is not None or location.longitude is not None:
        latitude, longitude = location.latitude, location.longitude
        if (
            latitude is None
            or longitude is None
            or not -90.0 <= latitude <= 90.0
            or not -180.0 <= longitude <= 180.0
        ):
            findings.add(IssueKind.INVALID_COORDINATES, "locations.coordinates")
            valid = bool(location.address or location.city)
    return valid and not location.is_empty


def _age_range_is_valid(minimum: int | None, maximum: int | None) -> bool:
    if minimum is not None and minimum < 0:
        return False
    if maximum is not None and maximum < 0:
        return False
    return minimum is None or maximum is None or minimum <= maximum

from typing import Callable, List, Tuple

from talentmatch.models.models import CandidateRecord, PositionRecord


def _blank(value) -> bool:
    return value is None or not str(value).strip()


CANDIDATE_REQUIREMENTS: List[Tuple[Callable[[CandidateRecord], bool], str]] = [
    (lambda r: _blank(r.name), "Name not found in CV"),
    (lambda r: _blank(r.email), "Email not found in CV"),
    (lambda r: not r.experience_years, "Years of experience not found in CV"),
    (lambda r: not r.technologies, "Technologies not found in CV"),
    (lambda r: not r.job_history, "Job history not found in CV"),
]

POSITION_REQUIREMENTS: List[Tuple[Callable[[PositionRecord], bool], str]] = [
    (lambda r: _blank(r.title), "Job title not found"),
    (lambda r: _blank(r.company), "Company name not found"),
    (lambda r: not r.required_skills, "Required skills not found"),
    (lambda r: _blank(r.description), "Job description not found"),
]


def audit_record(record) -> List[str]:
    """Warnings for each missing required field not already flagged on the record."""
    checks = CANDIDATE_REQUIREMENTS if record.kind == "candidate" else POSITION_REQUIREMENTS
    existing = set(record.warnings)
    return [message for is_missing, message in checks if is_missing(record) and message not in existing]


def apply_audit(record):
    """Copy of the record with audit warnings appended after the extraction warnings."""
    new_warnings = audit_record(record)
    return record.model_copy(update={"warnings": [*record.warnings, *new_warnings]})

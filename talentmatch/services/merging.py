"""
Combining per-chunk partial records into one record.

Each field is resolved on its own, so two incomplete partials can both
contribute to the merged result:

* first non-empty scalar   - contact details, title, company, location, salary
* longest string           - summary / description
* maximum number           - years of experience (required or held)
* exact-match union        - flat string lists, first-seen order
* keyed union              - job history (company, position), education (institution, degree)
"""
from typing import Callable, Hashable, Iterable, List, Optional, Sequence, TypeVar

from talentmatch.models.models import CandidateRecord, Kind, PositionRecord
from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def first_non_empty(values: Iterable[Optional[str]]) -> str:
    for value in values:
        if value is not None and value.strip():
            return value
    return ""


def longest(values: Iterable[Optional[str]]) -> str:
    best = ""
    for value in values:
        if value is not None and value.strip() and len(value) > len(best):
            best = value
    return best


def max_number(values: Iterable[Optional[float]]) -> float:
    return max((v or 0 for v in values), default=0)


def union_unique(lists: Iterable[Sequence[T]], key: Callable[[T], Hashable] = None) -> List[T]:
    key = key or (lambda item: item)
    seen = set()
    out = []
    for items in lists:
        for item in items:
            k = key(item)
            if k in seen:
                continue
            seen.add(k)
            out.append(item)
    return out


def _merge_candidates(records: List[CandidateRecord]) -> CandidateRecord:
    return CandidateRecord(
        name=first_non_empty(r.name for r in records),
        email=first_non_empty(r.email for r in records),
        phone=first_non_empty(r.phone for r in records),
        location=first_non_empty(r.location for r in records),
        summary=longest(r.summary for r in records),
        experience_years=max_number(r.experience_years for r in records),
        technologies=union_unique(r.technologies for r in records),
        job_history=union_unique(
            (r.job_history for r in records),
            key=lambda job: (job.company, job.position),
        ),
        education=union_unique(
            (r.education for r in records),
            key=lambda edu: (edu.institution, edu.degree),
        ),
        warnings=union_unique(r.warnings for r in records),
    )


def _merge_positions(records: List[PositionRecord]) -> PositionRecord:
    return PositionRecord(
        title=first_non_empty(r.title for r in records),
        company=first_non_empty(r.company for r in records),
        location=first_non_empty(r.location for r in records),
        salary=first_non_empty(r.salary for r in records),
        description=longest(r.description for r in records),
        experience_required=max_number(r.experience_required for r in records),
        required_skills=union_unique(r.required_skills for r in records),
        requirements=union_unique(r.requirements for r in records),
        warnings=union_unique(r.warnings for r in records),
    )


def merge_records(records: Sequence, kind: Kind):
    """Merge partial records of one kind. A single record is returned unchanged."""
    kind = Kind(kind)
    if not records:
        raise ValueError("merge_records needs at least one record")

    wrong = [r for r in records if r.kind != kind.value]
    if wrong:
        raise ValueError(f"Cannot merge {wrong[0].kind} records as {kind.value}")

    if len(records) == 1:
        return records[0]

    logger.debug(f"Merging {len(records)} partial {kind.value} records")
    if kind is Kind.CANDIDATE:
        return _merge_candidates(list(records))
    return _merge_positions(list(records))

"""
Cross-matching one profile against every profile of the opposite kind.

A single model call scores the whole candidate set. Scores are clamped to
0..100, anything under the threshold is dropped and the model's order is kept.
A failed scoring call degrades to an empty outcome instead of raising.
"""
import asyncio
import json
from typing import Dict, List, Optional

from talentmatch.helpers.prompts import MATCH_PROMPT, MATCH_SYSTEM_PROMPT
from talentmatch.helpers.responses import as_list, as_number, as_text
from talentmatch.models.models import Kind, MatchOutcome, MatchResult, MatchStatus
from talentmatch.services.llm_client import TextUnderstandingClient
from talentmatch.utils.exceptions import TalentMatchBaseException
from talentmatch.utils.logging_config import get_logger
from talentmatch.utils.utils import safe_json

logger = get_logger(__name__)

DEFAULT_THRESHOLD = 50.0
DEFAULT_TIMEOUT = 120.0

_LABELS = {
    Kind.CANDIDATE: ("CV", "job description"),
    Kind.POSITION: ("job description", "CV"),
}


def clamp_score(value: float) -> float:
    return max(0.0, min(100.0, value))


def _profile_json(record) -> dict:
    return record.model_dump(mode="json", exclude={"warnings"}, exclude_none=True)


def build_match_prompt(subject, candidates: Dict[str, object]) -> str:
    kind = Kind(subject.kind)
    subject_label, candidate_label = _LABELS[kind]
    payload = [{"candidate_id": cid, **_profile_json(rec)} for cid, rec in candidates.items()]
    return MATCH_PROMPT.format(
        subject_label=subject_label,
        candidate_label=candidate_label,
        subject=json.dumps(_profile_json(subject), indent=2, ensure_ascii=False),
        candidates=json.dumps(payload, indent=2, ensure_ascii=False),
    )


def parse_match_response(raw: str, subject_id: str, candidate_ids) -> Optional[List[MatchResult]]:
    """All scored entries in model order, or None when the response is unusable."""
    data = safe_json(raw, fallback=None)
    if data is None or not isinstance(data.get("matches"), list):
        return None

    known = set(candidate_ids)
    seen = set()
    results = []
    for entry in data["matches"]:
        if not isinstance(entry, dict):
            continue
        candidate_id = as_text(entry.get("candidate_id"))
        if candidate_id not in known:
            logger.debug(f"Ignoring score for unknown candidate {candidate_id!r}")
            continue
        if candidate_id in seen:
            logger.debug(f"Ignoring repeated score for candidate {candidate_id!r}")
            continue
        score = as_number(entry.get("score"))
        if score is None:
            continue
        seen.add(candidate_id)
        experience_match = entry.get("experience_match")
        results.append(MatchResult(
            subject_id=subject_id,
            candidate_id=candidate_id,
            score=clamp_score(score),
            matched_attributes=as_list(entry.get("matched_attributes")),
            missing_attributes=as_list(entry.get("missing_attributes")),
            experience_match=experience_match if isinstance(experience_match, bool) else None,
            rationale=as_text(entry.get("rationale")) or "",
        ))
    return results


class MatchScorer:
    def __init__(
        self,
        client: TextUnderstandingClient,
        threshold: float = DEFAULT_THRESHOLD,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.client = client
        self.threshold = threshold
        self.timeout = timeout

    async def score(self, subject_id: str, subject, candidates: Dict[str, object]) -> MatchOutcome:
        kind = Kind(subject.kind)
        subject_label, candidate_label = _LABELS[kind]
        plural = f"{candidate_label}s"

        candidates = {cid: rec for cid, rec in candidates.items() if rec.kind == kind.opposite.value}
        if not candidates:
            logger.info(f"No {plural} found for matching", extra={"subject_id": subject_id})
            return MatchOutcome(
                subject_id=subject_id,
                status=MatchStatus.NO_CANDIDATES,
                message=f"No {plural} available for matching",
                warnings=[f"No {plural} found to match against"],
            )

        logger.info(f"Scoring {subject_label} {subject_id} against {len(candidates)} {plural}")
        prompt = build_match_prompt(subject, candidates)
        try:
            raw = await asyncio.wait_for(
                self.client.generate(prompt, system=MATCH_SYSTEM_PROMPT), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            return self._unavailable(subject_id, len(candidates), f"timed out after {self.timeout}s")
        except TalentMatchBaseException as e:
            return self._unavailable(subject_id, len(candidates), e.message)
        except Exception as e:
            return self._unavailable(subject_id, len(candidates), str(e))

        scored = parse_match_response(raw, subject_id, candidates.keys())
        if scored is None:
            return self._unavailable(subject_id, len(candidates), "unparseable scoring response")

        matches = [m for m in scored if m.score >= self.threshold]
        if not matches:
            return MatchOutcome(
                subject_id=subject_id,
                status=MatchStatus.NO_MATCHES_ABOVE_THRESHOLD,
                message=f"Found 0 {candidate_label} matches for {subject_label}",
                warnings=[f"No {candidate_label} matches found above {self.threshold:g}% threshold"],
                total_candidates=len(candidates),
            )

        return MatchOutcome(
            subject_id=subject_id,
            status=MatchStatus.MATCHED,
            message=f"Found {len(matches)} {candidate_label} matches for {subject_label}",
            matches=matches,
            total_candidates=len(candidates),
        )

    def _unavailable(self, subject_id: str, total: int, reason: str) -> MatchOutcome:
        logger.error(f"Match scoring failed for {subject_id}: {reason}")
        return MatchOutcome(
            subject_id=subject_id,
            status=MatchStatus.SCORING_UNAVAILABLE,
            message="Match scoring is currently unavailable",
            warnings=[f"Match scoring failed: {reason}"],
            total_candidates=total,
        )

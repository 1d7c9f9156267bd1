import asyncio
import json

import pytest

from talentmatch.helpers.prompts import MATCH_SYSTEM_PROMPT
from talentmatch.models.models import MatchStatus
from talentmatch.services.matching import (
    MatchScorer,
    build_match_prompt,
    clamp_score,
    parse_match_response,
)
from talentmatch.utils.exceptions import ExternalServiceError

from conftest import FakeClient, full_candidate, full_position


def _scores(*pairs):
    return json.dumps({"matches": [{"candidate_id": cid, "score": score} for cid, score in pairs]})


@pytest.fixture
def positions():
    return {
        "job-1": full_position(title="Backend Developer"),
        "job-2": full_position(title="Data Engineer"),
        "job-3": full_position(title="Platform Engineer"),
    }


class TestParseMatchResponse:

    def test_unknown_ids_and_missing_scores_are_dropped(self):
        raw = json.dumps({"matches": [
            {"candidate_id": "job-1", "score": 80, "matched_attributes": "Python, SQL"},
            {"candidate_id": "job-404", "score": 99},
            {"candidate_id": "job-2"},
            "not an entry",
        ]})

        results = parse_match_response(raw, "cv-1", ["job-1", "job-2"])

        assert [r.candidate_id for r in results] == ["job-1"]
        assert results[0].subject_id == "cv-1"
        assert results[0].matched_attributes == ["Python", "SQL"]

    def test_scores_are_clamped(self):
        results = parse_match_response(_scores(("a", 140), ("b", "87%")), "s", ["a", "b"])
        assert [r.score for r in results] == [100.0, 87.0]
        assert clamp_score(-3) == 0.0

    def test_negative_scores_are_dropped(self):
        results = parse_match_response(_scores(("a", -5), ("b", 60)), "s", ["a", "b"])
        assert [r.candidate_id for r in results] == ["b"]

    def test_repeated_candidate_keeps_first_entry(self):
        results = parse_match_response(_scores(("job-1", 72), ("job-1", 90), ("job-2", 55)), "cv-1", ["job-1", "job-2"])
        assert [(r.candidate_id, r.score) for r in results] == [("job-1", 72.0), ("job-2", 55.0)]

    @pytest.mark.parametrize("raw", ["nothing useful", '{"matches": "none"}', '{"result": []}'])
    def test_unusable_response(self, raw):
        assert parse_match_response(raw, "s", ["a"]) is None


class TestMatchScorer:
    """Test cases for cross-matching"""

    @pytest.mark.asyncio
    async def test_threshold_filter_keeps_model_order(self, candidate_record, positions):
        client = FakeClient([_scores(("job-3", 55), ("job-2", 48), ("job-1", 72))])
        scorer = MatchScorer(client, threshold=50)

        outcome = await scorer.score("cv-1", candidate_record, positions)

        assert outcome.status is MatchStatus.MATCHED
        assert [(m.candidate_id, m.score) for m in outcome.matches] == [("job-3", 55), ("job-1", 72)]
        assert outcome.total_candidates == 3
        assert outcome.message == "Found 2 job description matches for CV"
        assert client.calls[0]["system"] == MATCH_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_score_equal_to_threshold_is_kept(self, candidate_record, positions):
        client = FakeClient([_scores(("job-1", 50), ("job-2", 49.9))])
        outcome = await MatchScorer(client, threshold=50).score("cv-1", candidate_record, positions)
        assert [m.candidate_id for m in outcome.matches] == ["job-1"]

    @pytest.mark.asyncio
    async def test_repeated_candidate_matched_once(self, candidate_record, positions):
        client = FakeClient([_scores(("job-1", 72), ("job-1", 90), ("job-2", 55))])

        outcome = await MatchScorer(client, threshold=50).score("cv-1", candidate_record, positions)

        assert [(m.candidate_id, m.score) for m in outcome.matches] == [("job-1", 72), ("job-2", 55)]
        assert outcome.message == "Found 2 job description matches for CV"

    @pytest.mark.asyncio
    async def test_no_candidates_skips_model_call(self, candidate_record):
        client = FakeClient()

        outcome = await MatchScorer(client).score("cv-1", candidate_record, {})

        assert outcome.status is MatchStatus.NO_CANDIDATES
        assert outcome.message == "No job descriptions available for matching"
        assert outcome.matches == []
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_same_kind_candidates_are_ignored(self, position_record):
        client = FakeClient()
        outcome = await MatchScorer(client).score("job-1", position_record, {"job-2": full_position()})

        assert outcome.status is MatchStatus.NO_CANDIDATES
        assert outcome.message == "No CVs available for matching"

    @pytest.mark.asyncio
    async def test_nothing_above_threshold(self, position_record):
        cvs = {"cv-1": full_candidate(), "cv-2": full_candidate(name="Grace")}
        client = FakeClient([_scores(("cv-1", 20), ("cv-2", 35))])

        outcome = await MatchScorer(client, threshold=50).score("job-1", position_record, cvs)

        assert outcome.status is MatchStatus.NO_MATCHES_ABOVE_THRESHOLD
        assert outcome.matches == []
        assert outcome.warnings == ["No CV matches found above 50% threshold"]

    @pytest.mark.asyncio
    async def test_client_failure_degrades_to_unavailable(self, candidate_record, positions):
        client = FakeClient([ExternalServiceError("connection refused")])

        outcome = await MatchScorer(client).score("cv-1", candidate_record, positions)

        assert outcome.status is MatchStatus.SCORING_UNAVAILABLE
        assert outcome.matches == []
        assert outcome.total_candidates == 3
        assert "connection refused" in outcome.warnings[0]

    @pytest.mark.asyncio
    async def test_unparseable_response_degrades_to_unavailable(self, candidate_record, positions):
        client = FakeClient(["Sorry, I cannot help with that."])
        outcome = await MatchScorer(client).score("cv-1", candidate_record, positions)
        assert outcome.status is MatchStatus.SCORING_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_unavailable(self, candidate_record, positions):
        class HangingClient:
            async def generate(self, prompt, system=None):
                await asyncio.sleep(5)
                return "{}"

        outcome = await MatchScorer(HangingClient(), timeout=0.05).score("cv-1", candidate_record, positions)
        assert outcome.status is MatchStatus.SCORING_UNAVAILABLE


class TestBuildMatchPrompt:

    def test_prompt_carries_ids_without_warnings(self, positions):
        subject = full_candidate(warnings=["Phone looks truncated"])

        prompt = build_match_prompt(subject, positions)

        assert '"candidate_id": "job-1"' in prompt
        assert "Data Engineer" in prompt
        assert "Phone looks truncated" not in prompt
        assert "The subject is a CV; the candidates are job descriptions." in prompt

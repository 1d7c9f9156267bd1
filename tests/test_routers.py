import base64
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from talentmatch.models.models import Kind, MatchOutcome, MatchStatus
from talentmatch.models.response import AnalysisResult
from talentmatch.utils.exceptions import ExtractionFailed, NotFoundError

from conftest import full_candidate, full_position, stored


@pytest.fixture
def pipeline():
    pipe = MagicMock()
    pipe.analyze_document = AsyncMock()
    pipe.match_profile = AsyncMock()
    pipe.store = MagicMock()
    pipe.store.get_profile = AsyncMock()
    return pipe


@pytest.fixture
def test_app(pipeline):
    from talentmatch.routers import analysis, matches

    app = FastAPI()
    app.include_router(analysis.router, prefix="/api/analysis")
    app.include_router(matches.router, prefix="/api/matches")
    app.state.pipeline = pipeline
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app)


def _payload(**overrides):
    data = {
        "owner_id": "alice",
        "document_id": "cv-doc",
        "file_name": "cv.txt",
        "base64_content": base64.b64encode(b"Ada Lovelace, Python engineer").decode(),
        "kind": "candidate",
    }
    data.update(overrides)
    return data


class TestDecodeBase64:

    def test_decode_plain_and_data_url(self):
        from talentmatch.routers.analysis import decode_base64_content

        encoded = base64.b64encode(b"CV body").decode()
        assert decode_base64_content(encoded) == b"CV body"
        assert decode_base64_content(f"data:application/pdf;base64,{encoded}") == b"CV body"

    def test_decode_invalid(self):
        from talentmatch.routers.analysis import decode_base64_content

        with pytest.raises(HTTPException) as exc_info:
            decode_base64_content("invalid_base64!")

        assert exc_info.value.status_code == 400
        assert "Invalid base64 document" in str(exc_info.value.detail)


class TestAnalysisRouter:
    """Test cases for the analysis endpoint"""

    def test_analyze_candidate(self, client, pipeline):
        profile = stored("cv-1", full_candidate(warnings=["Job history not found in CV"]), owner_id="alice")
        pipeline.analyze_document.return_value = AnalysisResult(
            profile=profile, status="persisted", history=["pending", "persisted"]
        )

        response = client.post("/api/analysis/", json=_payload(run_matching=False))

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "CV analyzed successfully"
        assert body["warnings"] == ["Job history not found in CV"]
        assert body["profile"]["record"]["kind"] == "candidate"
        args, kwargs = pipeline.analyze_document.call_args
        assert args == ("alice", "cv-doc", b"Ada Lovelace, Python engineer", "cv.txt", Kind.CANDIDATE)
        assert kwargs == {"run_matching": False}

    def test_extraction_failure_maps_to_422(self, client, pipeline):
        pipeline.analyze_document.side_effect = ExtractionFailed(
            "Failed to analyze CV. No valid responses received from any text chunks."
        )

        response = client.post("/api/analysis/", json=_payload())

        assert response.status_code == 422
        assert response.json()["detail"]["error"]["error_code"] == "EXTRACTION_FAILED"

    def test_invalid_base64_rejected(self, client, pipeline):
        response = client.post("/api/analysis/", json=_payload(base64_content="%%%"))

        assert response.status_code == 400
        pipeline.analyze_document.assert_not_called()

    def test_unknown_kind_rejected(self, client):
        response = client.post("/api/analysis/", json=_payload(kind="recruiter"))
        assert response.status_code == 422

    def test_pipeline_not_initialized(self, test_app, client):
        del test_app.state.pipeline
        response = client.post("/api/analysis/", json=_payload())
        assert response.status_code == 503


class TestMatchesRouter:

    def test_find_matches(self, client, pipeline):
        job = stored("job-1", full_position())
        pipeline.store.get_profile.return_value = job
        outcome = MatchOutcome(
            subject_id="job-1", status=MatchStatus.NO_CANDIDATES, message="No CVs available for matching"
        )
        pipeline.match_profile.return_value = (outcome, [])

        response = client.post("/api/matches/job-1")

        assert response.status_code == 200
        body = response.json()
        assert body["profile_id"] == "job-1"
        assert body["outcome"]["status"] == "no_candidates"
        assert body["message"] == "No CVs available for matching"
        pipeline.match_profile.assert_awaited_once_with(job)

    def test_find_matches_unknown_profile(self, client, pipeline):
        pipeline.store.get_profile.side_effect = NotFoundError("Profile missing not found", resource="profiles")

        response = client.post("/api/matches/missing")

        assert response.status_code == 404
        pipeline.match_profile.assert_not_called()

import json
from typing import Dict, List, Optional

import pytest

from talentmatch.models.models import CandidateRecord, Kind, PositionRecord, StoredProfile
from talentmatch.utils.exceptions import NotFoundError


class FakeClient:
    """Scripted text-understanding client: each call pops the next reply.

    A reply that is an exception instance is raised instead of returned.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Optional[str]]] = []

    async def generate(self, prompt: str, system: Optional[str] = None) -> str:
        self.calls.append({"prompt": prompt, "system": system})
        if not self.replies:
            raise AssertionError("FakeClient ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class InMemoryStore:
    """ProfileStore stand-in keyed by (owner_id, document_id, kind)."""

    def __init__(self, profiles=None):
        self.profiles: Dict[tuple, StoredProfile] = {}
        self.inserted: List[StoredProfile] = []
        for profile in profiles or []:
            self.profiles[(profile.owner_id, profile.document_id, profile.kind.value)] = profile

    async def insert_profile(self, owner_id, document_id, record):
        key = (owner_id, document_id, record.kind)
        existing = self.profiles.get(key)
        profile = StoredProfile(
            profile_id=existing.profile_id if existing else f"profile-{len(self.profiles) + 1}",
            owner_id=owner_id,
            document_id=document_id,
            kind=Kind(record.kind),
            record=record,
        )
        self.profiles[key] = profile
        self.inserted.append(profile)
        return profile

    async def list_profiles(self, kind):
        return [p for p in self.profiles.values() if p.kind is Kind(kind)]

    async def get_profile(self, profile_id):
        for profile in self.profiles.values():
            if profile.profile_id == profile_id:
                return profile
        raise NotFoundError(f"Profile {profile_id} not found", resource="profiles")


def candidate_json(**overrides) -> str:
    data = {
        "name": "Ada Lovelace",
        "email": "ada@example.com",
        "phone": "+44 20 0000 0000",
        "location": "London",
        "summary": "Backend engineer",
        "experience_years": 6,
        "technologies": ["Python", "SQL"],
        "job_history": [{"company": "Analytical Engines", "position": "Engineer", "duration": "2018-2024"}],
        "education": [{"institution": "UCL", "degree": "BSc Mathematics", "year": "2017"}],
    }
    data.update(overrides)
    return json.dumps(data)


def position_json(**overrides) -> str:
    data = {
        "title": "Senior Python Developer",
        "company": "Acme",
        "location": "Remote",
        "description": "Build and run data services",
        "experience_required": 5,
        "required_skills": ["Python", "MongoDB"],
        "requirements": ["5+ years backend"],
    }
    data.update(overrides)
    return json.dumps(data)


def full_candidate(**overrides) -> CandidateRecord:
    data = dict(
        name="Ada Lovelace",
        email="ada@example.com",
        experience_years=6,
        technologies=["Python", "SQL"],
        job_history=[{"company": "Analytical Engines", "position": "Engineer"}],
    )
    data.update(overrides)
    return CandidateRecord(**data)


def full_position(**overrides) -> PositionRecord:
    data = dict(
        title="Senior Python Developer",
        company="Acme",
        description="Build and run data services",
        required_skills=["Python", "MongoDB"],
    )
    data.update(overrides)
    return PositionRecord(**data)


def stored(profile_id: str, record, owner_id: str = "owner-1", document_id: str = None) -> StoredProfile:
    return StoredProfile(
        profile_id=profile_id,
        owner_id=owner_id,
        document_id=document_id or f"doc-{profile_id}",
        kind=Kind(record.kind),
        record=record,
    )


@pytest.fixture
def candidate_record():
    return full_candidate()


@pytest.fixture
def position_record():
    return full_position()

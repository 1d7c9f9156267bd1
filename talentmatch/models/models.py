from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


class Kind(str, Enum):
    """Entity type of an analysed document"""
    CANDIDATE = "candidate"
    POSITION = "position"

    @property
    def opposite(self) -> "Kind":
        return Kind.POSITION if self is Kind.CANDIDATE else Kind.CANDIDATE


class Chunk(BaseModel):
    index: int
    text: str


# -------- Extracted records --------

class JobHistoryEntry(BaseModel):
    company: Optional[str] = None
    position: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None


class EducationEntry(BaseModel):
    institution: Optional[str] = None
    degree: Optional[str] = None
    year: Optional[str] = None


class CandidateRecord(BaseModel):
    kind: Literal["candidate"] = "candidate"
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    summary: Optional[str] = None
    experience_years: Optional[float] = None
    technologies: List[str] = Field(default_factory=list)
    job_history: List[JobHistoryEntry] = Field(default_factory=list)
    education: List[EducationEntry] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


class PositionRecord(BaseModel):
    kind: Literal["position"] = "position"
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    salary: Optional[str] = None
    description: Optional[str] = None
    experience_required: Optional[float] = None
    required_skills: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


ExtractedRecord = Annotated[Union[CandidateRecord, PositionRecord], Field(discriminator="kind")]


# -------- Persisted profiles --------

class StoredProfile(BaseModel):
    profile_id: str
    owner_id: str
    document_id: str
    kind: Kind
    record: ExtractedRecord
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# -------- Matching --------

class MatchResult(BaseModel):
    subject_id: str
    candidate_id: str
    score: float = Field(ge=0, le=100)
    matched_attributes: List[str] = Field(default_factory=list)
    missing_attributes: List[str] = Field(default_factory=list)
    experience_match: Optional[bool] = None
    rationale: str = ""


class MatchStatus(str, Enum):
    MATCHED = "matched"
    NO_CANDIDATES = "no_candidates"
    NO_MATCHES_ABOVE_THRESHOLD = "no_matches_above_threshold"
    SCORING_UNAVAILABLE = "scoring_unavailable"


class MatchOutcome(BaseModel):
    subject_id: str
    status: MatchStatus
    message: str
    matches: List[MatchResult] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    total_candidates: int = 0


# -------- Notifications --------

class MatchSummary(BaseModel):
    type: Literal["cv_match", "job_match"]
    title: str
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class MatchNotification(BaseModel):
    recipient_id: str
    match_summary: MatchSummary

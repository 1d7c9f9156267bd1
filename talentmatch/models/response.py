# models/response.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from talentmatch.models.models import MatchOutcome, StoredProfile


class AnalysisResult(BaseModel):
    """What the pipeline hands back for one analysed document"""
    profile: StoredProfile
    status: str
    history: List[str] = Field(default_factory=list)
    total_chunks: int = 0
    match_outcome: Optional[MatchOutcome] = None
    notification_ids: List[str] = Field(default_factory=list)

    @property
    def warnings(self) -> List[str]:
        return self.profile.record.warnings


class AnalysisResponse(BaseModel):
    success: bool = True
    message: str
    profile: StoredProfile
    warnings: List[str] = Field(default_factory=list)
    status: str
    match_outcome: Optional[MatchOutcome] = None
    processed_at: datetime = Field(default_factory=datetime.utcnow)


class MatchResponse(BaseModel):
    success: bool = True
    message: str
    profile_id: str
    outcome: MatchOutcome
    notification_ids: List[str] = Field(default_factory=list)
    processed_at: datetime = Field(default_factory=datetime.utcnow)

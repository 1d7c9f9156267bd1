from pydantic import BaseModel, Field

from talentmatch.models.models import Kind


class AnalysisRequest(BaseModel):
    """Document handed over by the request-handling layer"""
    owner_id: str = Field(min_length=1)
    document_id: str = Field(min_length=1)
    file_name: str = Field(min_length=1)
    base64_content: str
    kind: Kind
    run_matching: bool = True

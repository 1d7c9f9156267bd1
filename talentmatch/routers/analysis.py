import base64
import binascii

from fastapi import APIRouter, Depends, HTTPException, Request

from talentmatch.models.models import Kind
from talentmatch.models.response import AnalysisResponse
from talentmatch.models.schemas import AnalysisRequest
from talentmatch.services.graph import AnalysisPipeline
from talentmatch.utils.exceptions import TalentMatchBaseException, map_to_http_exception
from talentmatch.utils.logging_config import get_logger, log_api_call

router = APIRouter()
logger = get_logger(__name__)


def get_pipeline(request: Request) -> AnalysisPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        raise HTTPException(status_code=503, detail="Analysis pipeline is not initialized")
    return pipeline


def decode_base64_content(b64_string: str) -> bytes:
    # Remove data:mime;base64, prefix if exists
    if b64_string.startswith("data:") and "," in b64_string:
        b64_string = b64_string.split(",", 1)[1]
    try:
        return base64.b64decode(b64_string, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid base64 document: {e}")


@router.post("/", response_model=AnalysisResponse)
@log_api_call("analyze_document")
async def analyze_document(payload: AnalysisRequest, pipeline: AnalysisPipeline = Depends(get_pipeline)):
    """Extract, audit and store a CV or job description, then optionally match it"""
    data = decode_base64_content(payload.base64_content)
    try:
        result = await pipeline.analyze_document(
            payload.owner_id,
            payload.document_id,
            data,
            payload.file_name,
            payload.kind,
            run_matching=payload.run_matching,
        )
    except TalentMatchBaseException as e:
        raise map_to_http_exception(e) from e

    label = "CV" if payload.kind is Kind.CANDIDATE else "Job description"
    return AnalysisResponse(
        message=f"{label} analyzed successfully",
        profile=result.profile,
        warnings=result.warnings,
        status=result.status,
        match_outcome=result.match_outcome,
    )

from fastapi import APIRouter, Depends

from talentmatch.models.response import MatchResponse
from talentmatch.routers.analysis import get_pipeline
from talentmatch.services.graph import AnalysisPipeline
from talentmatch.utils.exceptions import TalentMatchBaseException, map_to_http_exception
from talentmatch.utils.logging_config import log_api_call

router = APIRouter()


@router.post("/{profile_id}", response_model=MatchResponse)
@log_api_call("find_matches")
async def find_matches(profile_id: str, pipeline: AnalysisPipeline = Depends(get_pipeline)):
    """Match a stored CV against all jobs, or a stored job against CVs of every owner"""
    try:
        profile = await pipeline.store.get_profile(profile_id)
        outcome, notification_ids = await pipeline.match_profile(profile)
    except TalentMatchBaseException as e:
        raise map_to_http_exception(e) from e

    return MatchResponse(
        message=outcome.message,
        profile_id=profile_id,
        outcome=outcome,
        notification_ids=notification_ids,
    )

"""
Shaping match results into notifications.

A candidate analysis notifies the candidate's owner about each matching
position; a position analysis notifies the owner of every matching CV. Delivery
problems are logged and never undo the match results.
"""
from datetime import datetime
from typing import Dict, List, Protocol

from talentmatch.models.models import (
    Kind,
    MatchNotification,
    MatchOutcome,
    MatchResult,
    MatchSummary,
    StoredProfile,
)
from talentmatch.utils.exceptions import NotificationDeliveryFailed
from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


class NotificationSink(Protocol):
    async def deliver(self, notifications: List[MatchNotification]) -> List[str]:
        ...


class MongoNotificationSink:
    """Writes notifications to a motor collection, one document each."""

    def __init__(self, collection):
        self.collection = collection

    async def deliver(self, notifications: List[MatchNotification]) -> List[str]:
        now = datetime.utcnow()
        docs = [
            {
                "recipient_id": n.recipient_id,
                **n.match_summary.model_dump(),
                "read": False,
                "created_at": now,
                "updated_at": now,
            }
            for n in notifications
        ]
        try:
            result = await self.collection.insert_many(docs)
        except Exception as e:
            raise NotificationDeliveryFailed(
                f"Failed to create batch notifications: {e}",
                details={"count": len(docs)},
                cause=e,
            ) from e
        return [str(i) for i in result.inserted_ids]


def _score_label(score: float) -> str:
    return f"{score:g}"


def _cv_match(subject: StoredProfile, match: MatchResult, position: StoredProfile) -> MatchNotification:
    job = position.record
    company = job.company or "Unknown Company"
    return MatchNotification(
        recipient_id=subject.owner_id,
        match_summary=MatchSummary(
            type="cv_match",
            title="New Job Match Found!",
            message=f"Your CV matches {_score_label(match.score)}% with {job.title or 'a position'} at {company}",
            data={
                "cv_id": subject.profile_id,
                "cv_name": subject.record.name,
                "job_id": position.profile_id,
                "job_title": job.title,
                "company": company,
                "match_score": match.score,
                "matched_skills": match.matched_attributes,
                "missing_skills": match.missing_attributes,
            },
        ),
    )


def _job_match(subject: StoredProfile, match: MatchResult, cv: StoredProfile) -> MatchNotification:
    job = subject.record
    company = job.company or "Unknown Company"
    return MatchNotification(
        recipient_id=cv.owner_id,
        match_summary=MatchSummary(
            type="job_match",
            title="New Job Opportunity!",
            message=f"A job at {company} matches {_score_label(match.score)}% with your CV",
            data={
                "job_id": subject.profile_id,
                "job_title": job.title,
                "company": company,
                "cv_id": cv.profile_id,
                "cv_name": cv.record.name,
                "match_score": match.score,
                "matched_skills": match.matched_attributes,
                "missing_skills": match.missing_attributes,
            },
        ),
    )


class NotificationEmitter:
    def __init__(self, sink: NotificationSink):
        self.sink = sink

    def build(
        self,
        subject: StoredProfile,
        outcome: MatchOutcome,
        candidates: Dict[str, StoredProfile],
    ) -> List[MatchNotification]:
        notifications = []
        for match in outcome.matches:
            other = candidates.get(match.candidate_id)
            if other is None:
                continue
            if subject.kind is Kind.CANDIDATE:
                notifications.append(_cv_match(subject, match, other))
            else:
                notifications.append(_job_match(subject, match, other))
        return notifications

    async def emit(
        self,
        subject: StoredProfile,
        outcome: MatchOutcome,
        candidates: Dict[str, StoredProfile],
    ) -> List[str]:
        notifications = self.build(subject, outcome, candidates)
        if not notifications:
            return []
        try:
            ids = await self.sink.deliver(notifications)
        except Exception as e:
            logger.error(
                f"Failed to deliver match notifications for {subject.profile_id}: {e}",
                extra={"profile_id": subject.profile_id, "count": len(notifications)},
            )
            return []
        logger.info(
            f"Match notifications created for {subject.profile_id}",
            extra={"profile_id": subject.profile_id, "count": len(ids)},
        )
        return ids

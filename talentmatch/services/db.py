import os
import uuid
from datetime import datetime
from typing import List

import motor.motor_asyncio
from dotenv import load_dotenv
from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING

from talentmatch.models.models import Kind, StoredProfile
from talentmatch.utils.exceptions import ExceptionContext, NotFoundError
from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "talentmatch_db")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

# motor connects lazily, so building the client here does no I/O
client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
db = client[DB_NAME]

# Collections
profiles_coll = db["profiles"]
notifications_coll = db["notifications"]


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    try:
        await profiles_coll.create_index(
            [("owner_id", ASCENDING), ("document_id", ASCENDING), ("kind", ASCENDING)], unique=True
        )
        logger.debug("Created compound unique index on profiles.(owner_id, document_id, kind)")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug("Compound index on profiles.(owner_id, document_id, kind) already exists")
        else:
            logger.warning(f"Could not create compound unique index on profiles: {e}")

    try:
        await profiles_coll.create_index([("profile_id", ASCENDING)], unique=True)
        await profiles_coll.create_index([("kind", ASCENDING)])
        await notifications_coll.create_index([("recipient_id", ASCENDING)])
        await notifications_coll.create_index([("created_at", ASCENDING)])
        logger.debug("Created lookup indexes on profiles and notifications")
    except Exception as e:
        logger.warning(f"Could not create some lookup indexes: {e}")

    logger.info("Database index initialization completed")


def to_dict(doc):
    if not doc:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


class ProfileStore:
    """Persists final records, one per (owner, document, kind)."""

    def __init__(self, collection=None):
        self.collection = collection if collection is not None else profiles_coll

    async def insert_profile(self, owner_id: str, document_id: str, record) -> StoredProfile:
        """Insert the final record; a re-analysis of the same document overwrites it."""
        kind = Kind(record.kind)
        key = {"owner_id": owner_id, "document_id": document_id, "kind": kind.value}
        now = datetime.utcnow()

        with ExceptionContext("insert_profile", logger, owner_id=owner_id, document_id=document_id):
            await self.collection.update_one(
                key,
                {
                    "$set": {"record": record.model_dump(), "updated_at": now},
                    "$setOnInsert": {"profile_id": str(uuid.uuid4()), "created_at": now},
                },
                upsert=True,
            )
            doc = await self.collection.find_one(key)

        if not doc:
            raise NotFoundError(f"Profile for document {document_id} vanished after insert", resource="profiles")
        logger.info(f"Stored {kind.value} profile {doc['profile_id']} for owner {owner_id}")
        return StoredProfile(**to_dict(doc))

    async def list_profiles(self, kind: Kind) -> List[StoredProfile]:
        """Every stored profile of a kind, across all owners."""
        kind = Kind(kind)
        with ExceptionContext("list_profiles", logger, kind=kind.value):
            cursor = self.collection.find({"kind": kind.value})
            docs = await cursor.to_list(length=None)

        profiles = []
        for doc in docs:
            try:
                profiles.append(StoredProfile(**to_dict(doc)))
            except PydanticValidationError as e:
                logger.warning(f"Skipping unreadable {kind.value} profile {doc.get('profile_id')}: {e}")
        return profiles

    async def get_profile(self, profile_id: str) -> StoredProfile:
        with ExceptionContext("get_profile", logger, profile_id=profile_id):
            doc = await self.collection.find_one({"profile_id": profile_id})
        if not doc:
            raise NotFoundError(f"Profile {profile_id} not found", resource="profiles")
        return StoredProfile(**to_dict(doc))

"""
Per-chunk structured extraction.

Chunks are sent to the text-understanding client strictly one at a time, in
order. A chunk that times out, errors or returns unusable output contributes
nothing; the loop always moves on to the next chunk. Only when no chunk at all
produced a record does the whole extraction fail.
"""
import asyncio
from typing import List, Optional, Sequence

from talentmatch.helpers.prompts import (
    CANDIDATE_EXTRACT_PROMPT,
    CANDIDATE_SYSTEM_PROMPT,
    CHUNK_CONTEXT,
    POSITION_EXTRACT_PROMPT,
    POSITION_SYSTEM_PROMPT,
)
from talentmatch.helpers.responses import response_to_record
from talentmatch.models.models import Chunk, Kind
from talentmatch.services.llm_client import TextUnderstandingClient
from talentmatch.services.merging import merge_records
from talentmatch.utils.exceptions import ChunkSkipped, ExtractionFailed, TalentMatchBaseException
from talentmatch.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 120.0

_PROMPTS = {
    Kind.CANDIDATE: (CANDIDATE_SYSTEM_PROMPT, CANDIDATE_EXTRACT_PROMPT),
    Kind.POSITION: (POSITION_SYSTEM_PROMPT, POSITION_EXTRACT_PROMPT),
}


def build_extraction_prompt(chunk: Chunk, total: int, kind: Kind):
    system, template = _PROMPTS[Kind(kind)]
    context = CHUNK_CONTEXT.format(part=chunk.index + 1, total=total) if total > 1 else ""
    return system, template.format(doc=chunk.text, chunk_context=context)


class StructuredExtractor:
    """Folds a chunk sequence into one merged record."""

    def __init__(self, client: TextUnderstandingClient, timeout: float = DEFAULT_TIMEOUT):
        self.client = client
        self.timeout = timeout

    async def extract_chunk(self, chunk: Chunk, total: int, kind: Kind):
        """One model call for one chunk. Raises ChunkSkipped on any failure."""
        system, prompt = build_extraction_prompt(chunk, total, kind)
        try:
            raw = await asyncio.wait_for(self.client.generate(prompt, system=system), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ChunkSkipped(f"Model call timed out after {self.timeout}s", chunk_index=chunk.index, cause=e) from e
        except TalentMatchBaseException as e:
            raise ChunkSkipped(f"Model call failed: {e.message}", chunk_index=chunk.index, cause=e) from e

        if not raw or not raw.strip():
            raise ChunkSkipped("Empty response for chunk", chunk_index=chunk.index)
        return response_to_record(raw, kind, chunk_index=chunk.index)

    async def extract(self, chunks: Sequence[Chunk], kind: Kind, document_id: Optional[str] = None):
        kind = Kind(kind)
        total = len(chunks)
        accumulated: List = []

        for chunk in chunks:
            logger.info(
                "Processing chunk",
                extra={"chunk_index": chunk.index + 1, "total_chunks": total,
                       "chunk_length": len(chunk.text), "kind": kind.value},
            )
            try:
                record = await self.extract_chunk(chunk, total, kind)
            except ChunkSkipped as e:
                logger.warning(
                    f"Skipping chunk {chunk.index + 1}/{total}: {e.message}",
                    extra={"chunk_index": chunk.index + 1, "kind": kind.value},
                )
                continue
            except Exception as e:
                # provider SDKs raise their own exception types
                logger.warning(
                    f"Error processing chunk {chunk.index + 1}/{total}, continuing with next: {e}",
                    extra={"chunk_index": chunk.index + 1, "kind": kind.value},
                )
                continue
            accumulated.append(record)
            logger.info(f"Successfully processed chunk {chunk.index + 1}/{total}")

        if not accumulated:
            label = "CV" if kind is Kind.CANDIDATE else "job description"
            raise ExtractionFailed(
                f"Failed to analyze {label}. No valid responses received from any text chunks.",
                document_id=document_id,
                document_type=kind.value,
                details={"total_chunks": total},
            )

        logger.info(f"Merging {len(accumulated)} of {total} chunk records ({kind.value})")
        return merge_records(accumulated, kind)

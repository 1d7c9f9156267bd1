"""
Analysis pipeline as a LangGraph state graph.

    chunk -> extract -> audit -> persist -> [match -> [notify]]

Each node returns only the keys it changes. ``status`` follows the per-request
state machine and ``history`` records every state the request went through;
a request that fails validation or extraction ends in ``extraction_failed``.
"""
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, TypedDict

from langgraph.graph import END, StateGraph
from starlette.concurrency import run_in_threadpool

from talentmatch.helpers.chunking import chunk_text
from talentmatch.helpers.parsing import extract_text
from talentmatch.models.ai_settings import AISettings
from talentmatch.models.models import Kind, MatchOutcome, StoredProfile
from talentmatch.models.response import AnalysisResult
from talentmatch.services.auditing import apply_audit
from talentmatch.services.db import ProfileStore
from talentmatch.services.extraction import StructuredExtractor
from talentmatch.services.llm_client import TextUnderstandingClient
from talentmatch.services.matching import MatchScorer
from talentmatch.services.notifications import NotificationEmitter
from talentmatch.utils.exceptions import ExtractionFailed
from talentmatch.utils.logging_config import PerformanceMonitor, get_logger

logger = get_logger(__name__)


class AnalysisStatus(str, Enum):
    PENDING = "pending"
    CHUNKED = "chunked"
    EXTRACTING = "extracting"
    MERGED = "merged"
    AUDITED = "audited"
    PERSISTED = "persisted"
    MATCHED = "matched"
    NOTIFIED = "notified"
    EXTRACTION_FAILED = "extraction_failed"


class AnalysisState(TypedDict, total=False):
    owner_id: str
    document_id: str
    kind: str
    text: str
    run_matching: bool
    status: str
    history: List[str]
    error: str
    chunks: List[Any]
    record: Any
    profile: Any
    match_outcome: Any
    candidate_profiles: Dict[str, Any]
    notification_ids: List[str]


def _advance(state: AnalysisState, *statuses: AnalysisStatus) -> Dict[str, Any]:
    return {
        "status": statuses[-1].value,
        "history": [*state.get("history", []), *(s.value for s in statuses)],
    }


def _failed(state: AnalysisState, error: str) -> Dict[str, Any]:
    return {**_advance(state, AnalysisStatus.EXTRACTION_FAILED), "error": error}


def _unless_failed(next_node: str):
    def route(state: AnalysisState) -> str:
        if state.get("status") == AnalysisStatus.EXTRACTION_FAILED.value:
            return END
        return next_node
    return route


class AnalysisPipeline:
    """Runs one document through extraction, persistence and matching."""

    def __init__(
        self,
        client: TextUnderstandingClient,
        store: ProfileStore,
        settings: Optional[AISettings] = None,
        emitter: Optional[NotificationEmitter] = None,
        text_extractor: Callable[[bytes, str], str] = extract_text,
    ):
        self.settings = settings or AISettings()
        timeout = self.settings.llm_settings.timeout
        self.store = store
        self.emitter = emitter
        self.text_extractor = text_extractor
        self.extractor = StructuredExtractor(client, timeout=timeout)
        self.scorer = MatchScorer(
            client,
            threshold=self.settings.scoring_thresholds.match_threshold,
            timeout=timeout,
        )
        self.graph = self.build_graph()

    # ---------------- nodes ----------------

    async def node_chunk(self, state: AnalysisState):
        kind = Kind(state["kind"])
        text = state.get("text") or ""
        min_length = self.settings.processing_settings.min_text_length
        label = "CV" if kind is Kind.CANDIDATE else "job description"

        if not text.strip():
            return _failed(state, f"Could not extract text from {state['document_id']}. "
                                  "The file might be corrupted, empty, or in an unsupported format.")
        if len(text.strip()) < min_length:
            return _failed(state, f"{state['document_id']} contains very little text ({len(text.strip())} "
                                  f"characters). This might not be a valid {label}.")

        chunks = chunk_text(text, self.settings.processing_settings.max_chunk_size)
        logger.info(
            f"Created {len(chunks)} text chunks for {state['document_id']}",
            extra={"total_chunks": len(chunks), "text_length": len(text), "kind": kind.value},
        )
        return {**_advance(state, AnalysisStatus.CHUNKED), "chunks": chunks}

    async def node_extract(self, state: AnalysisState):
        extracting = {"history": [*state.get("history", []), AnalysisStatus.EXTRACTING.value]}
        try:
            with PerformanceMonitor(f"extract {state['document_id']}", logger, threshold_ms=60000):
                record = await self.extractor.extract(
                    state["chunks"], Kind(state["kind"]), document_id=state["document_id"]
                )
        except ExtractionFailed as e:
            return _failed({**state, **extracting}, e.message)
        return {**_advance({**state, **extracting}, AnalysisStatus.MERGED), "record": record}

    async def node_audit(self, state: AnalysisState):
        return {**_advance(state, AnalysisStatus.AUDITED), "record": apply_audit(state["record"])}

    async def node_persist(self, state: AnalysisState):
        profile = await self.store.insert_profile(state["owner_id"], state["document_id"], state["record"])
        return {**_advance(state, AnalysisStatus.PERSISTED), "profile": profile}

    async def node_match(self, state: AnalysisState):
        outcome, candidates = await self.score_profile(state["profile"])
        return {
            **_advance(state, AnalysisStatus.MATCHED),
            "match_outcome": outcome,
            "candidate_profiles": candidates,
        }

    async def node_notify(self, state: AnalysisState):
        ids = await self.emitter.emit(state["profile"], state["match_outcome"], state["candidate_profiles"])
        return {**_advance(state, AnalysisStatus.NOTIFIED), "notification_ids": ids}

    # ---------------- routing ----------------

    def _after_persist(self, state: AnalysisState) -> str:
        return "match" if state.get("run_matching") else END

    def _after_match(self, state: AnalysisState) -> str:
        outcome = state.get("match_outcome")
        if self.emitter is not None and outcome is not None and outcome.matches:
            return "notify"
        return END

    def build_graph(self):
        g = StateGraph(AnalysisState)
        g.add_node("chunk", self.node_chunk)
        g.add_node("extract", self.node_extract)
        g.add_node("audit", self.node_audit)
        g.add_node("persist", self.node_persist)
        g.add_node("match", self.node_match)
        g.add_node("notify", self.node_notify)
        g.set_entry_point("chunk")
        g.add_conditional_edges("chunk", _unless_failed("extract"), ["extract", END])
        g.add_conditional_edges("extract", _unless_failed("audit"), ["audit", END])
        g.add_edge("audit", "persist")
        g.add_conditional_edges("persist", self._after_persist, ["match", END])
        g.add_conditional_edges("match", self._after_match, ["notify", END])
        g.add_edge("notify", END)
        return g.compile()

    # ---------------- entry points ----------------

    async def score_profile(self, profile: StoredProfile):
        """Score a stored profile against every stored profile of the opposite kind."""
        others = await self.store.list_profiles(profile.kind.opposite)
        candidates = {p.profile_id: p for p in others}
        outcome: MatchOutcome = await self.scorer.score(
            profile.profile_id, profile.record, {pid: p.record for pid, p in candidates.items()}
        )
        return outcome, candidates

    async def match_profile(self, profile: StoredProfile):
        """Score and notify for an already stored profile."""
        outcome, candidates = await self.score_profile(profile)
        ids: List[str] = []
        if self.emitter is not None and outcome.matches:
            ids = await self.emitter.emit(profile, outcome, candidates)
        return outcome, ids

    async def analyze_text(
        self,
        owner_id: str,
        document_id: str,
        text: str,
        kind: Kind,
        run_matching: bool = False,
    ) -> AnalysisResult:
        kind = Kind(kind)
        logger.info(f"Starting {kind.value} analysis for document {document_id}")
        final = await self.graph.ainvoke({
            "owner_id": owner_id,
            "document_id": document_id,
            "kind": kind.value,
            "text": text,
            "run_matching": run_matching,
            "status": AnalysisStatus.PENDING.value,
            "history": [AnalysisStatus.PENDING.value],
        })

        if final.get("status") == AnalysisStatus.EXTRACTION_FAILED.value:
            logger.error(f"Analysis failed for document {document_id}: {final.get('error')}")
            raise ExtractionFailed(
                final.get("error") or "Extraction failed",
                document_id=document_id,
                document_type=kind.value,
                details={"history": final.get("history", [])},
            )

        logger.info(
            f"Analysis completed for document {document_id}",
            extra={"status": final["status"], "warnings_count": len(final["profile"].record.warnings)},
        )
        return AnalysisResult(
            profile=final["profile"],
            status=final["status"],
            history=final.get("history", []),
            total_chunks=len(final.get("chunks", [])),
            match_outcome=final.get("match_outcome"),
            notification_ids=final.get("notification_ids", []),
        )

    async def analyze_document(
        self,
        owner_id: str,
        document_id: str,
        data: bytes,
        file_name: str,
        kind: Kind,
        run_matching: bool = False,
    ) -> AnalysisResult:
        try:
            text = await run_in_threadpool(self.text_extractor, data, file_name)
        except Exception as e:
            raise ExtractionFailed(
                f"Could not extract text from file {file_name}: {e}",
                document_id=document_id,
                document_type=Kind(kind).value,
                cause=e,
            ) from e
        return await self.analyze_text(owner_id, document_id, text, kind, run_matching=run_matching)

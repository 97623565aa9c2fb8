"""
Verification pipeline: answer a query once per unique text, gated by confidence.

Flow: hash -> cache probe -> (hit: count and return) | (miss: generate -> score ->
optional single review pass -> persist entry + confidence record -> return).

Responsibility: Orchestration only. Generation is injected (app/agent/llm.py), storage is
injected (app/core/store.py). Called by the API and MCP layers; no HTTP here.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable

from pydantic import ValidationError

from app.agent.llm import Generation, GenerationClient, Messages
from app.core.audit_log import write_log
from app.core.config import CONFIDENCE_THRESHOLD, MAX_QUERY_LENGTH
from app.core.errors import InvalidInputError, QueryServiceError, StoreError
from app.core.store import KeyedStore
from app.schemas.records import CacheEntry, ConfidenceRecord, VerificationStatus, utcnow
from app.services.agent_lifecycle import AgentLifecycleManager
from app.services.confidence import score_confidence
from app.services.hashing import content_hash
from app.services.response_cache import ResponseCache

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    answer_text: str
    confidence: float
    was_cached: bool
    was_reprompted: bool


def system_prompt(domain_hint: str | None) -> str:
    """Persona for the first generation call. The domain only shapes the persona."""
    domain = (domain_hint or "").strip() or "general knowledge"
    return (
        f"You are a knowledgeable assistant specializing in {domain}.\n"
        "Provide accurate, fact-based answers with specific details when available.\n"
        "If you're uncertain, acknowledge it clearly."
    )


def review_prompt(answer: str) -> str:
    """Ask the model to audit a prior answer and return an improved version if needed."""
    return (
        f'Review this response for accuracy: "{answer}".\n'
        "Is it factual? Provide an improved, more accurate version if needed."
    )


def agent_id_for(domain_hint: str | None) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", (domain_hint or "").strip().lower()).strip("-")
    return f"query-agent-{slug or 'general'}"


class VerificationPipeline:
    def __init__(
        self,
        store: KeyedStore,
        generator: GenerationClient,
        scorer: Callable[[str], float] = score_confidence,
        lifecycle: AgentLifecycleManager | None = None,
        threshold: float = CONFIDENCE_THRESHOLD,
    ) -> None:
        self.store = store
        self.cache = ResponseCache(store)
        self.generator = generator
        self.scorer = scorer
        self.lifecycle = lifecycle
        self.threshold = threshold

    def resolve(self, query_text: str, domain_hint: str | None = None, use_cache: bool = True) -> Resolution:
        """
        Answer query_text. Raises InvalidInputError for empty/oversized input and the
        generation client's typed errors when the first generation call fails (nothing
        is cached in that case).
        """
        if not query_text or not query_text.strip():
            raise InvalidInputError("Query cannot be empty")
        if len(query_text) > MAX_QUERY_LENGTH:
            raise InvalidInputError("Query too long")

        started = time.monotonic()
        query_hash = content_hash(query_text)
        logger.info(
            "[verification:resolve] IN  hash=%s domain=%r use_cache=%s query_len=%d",
            query_hash[:16],
            domain_hint,
            use_cache,
            len(query_text),
        )

        if use_cache:
            cached = self._probe(query_hash, query_text)
            if cached is not None:
                self._record_agent(domain_hint, started)
                return cached
            write_log(self.store, "cache_miss", f"Cache miss for {query_hash[:16]}", {"query_hash": query_hash})

        first = self.generator.generate(
            [
                {"role": "system", "content": system_prompt(domain_hint)},
                {"role": "user", "content": query_text},
            ]
        )
        answer = first.text
        initial_score = self.scorer(answer)
        final_score = initial_score
        model_used = first.model
        reprompt_count = 0

        if initial_score < self.threshold:
            revised = self._reverify(answer)
            if revised is not None:
                answer = revised.text
                final_score = self.scorer(answer)
                model_used = revised.model or model_used
                reprompt_count = 1

        passed = final_score >= self.threshold
        self._persist(
            CacheEntry(
                query_hash=query_hash,
                query_text=query_text,
                response_text=answer,
                confidence_score=final_score,
                verification_status=VerificationStatus.VERIFIED if passed else VerificationStatus.PENDING,
                model_used=model_used,
            ),
            ConfidenceRecord(
                query_hash=query_hash,
                initial_score=initial_score,
                final_score=final_score,
                reprompt_count=reprompt_count,
                passed_validation=passed,
                verification_method="heuristic+reprompt" if reprompt_count else "heuristic",
            ),
        )
        self._record_agent(domain_hint, started)
        logger.info(
            "[verification:resolve] OUT hash=%s initial=%.4f final=%.4f reprompted=%s passed=%s",
            query_hash[:16],
            initial_score,
            final_score,
            reprompt_count > 0,
            passed,
        )
        return Resolution(answer_text=answer, confidence=final_score, was_cached=False, was_reprompted=reprompt_count > 0)

    def _probe(self, query_hash: str, query_text: str) -> Resolution | None:
        entry = self.cache.lookup_verified(query_hash, query_text)
        if entry is None:
            return None
        try:
            self.cache.record_hit(query_hash)
        except StoreError as e:
            logger.warning("[verification:probe] hit count update failed hash=%s error=%s", query_hash[:16], e)
        write_log(self.store, "cache_hit", f"Cache hit for {query_hash[:16]}", {"query_hash": query_hash})
        logger.info("[verification:resolve] OUT cached hash=%s confidence=%.4f", query_hash[:16], entry.confidence_score)
        return Resolution(
            answer_text=entry.response_text,
            confidence=entry.confidence_score,
            was_cached=True,
            was_reprompted=False,
        )

    def _reverify(self, answer: str) -> Generation | None:
        """Single review pass. Any generation failure is logged and discarded (returns None)."""
        messages: Messages = [{"role": "user", "content": review_prompt(answer)}]
        try:
            return self.generator.generate(messages)
        except QueryServiceError as e:
            logger.warning("[verification:reverify] review call failed, keeping initial answer: %s", e.message)
            return None

    def _persist(self, entry: CacheEntry, confidence: ConfidenceRecord) -> None:
        try:
            self.cache.store_answer(entry, confidence)
        except StoreError as e:
            logger.error("[verification:persist] cache write failed hash=%s error=%s", entry.query_hash[:16], e)

    def _record_agent(self, domain_hint: str | None, started: float) -> None:
        if self.lifecycle is None:
            return
        latency_ms = int((time.monotonic() - started) * 1000)
        try:
            self.lifecycle.record_activity(agent_id_for(domain_hint), response_latency_ms=latency_ms)
        except (StoreError, ValidationError) as e:
            logger.warning("[verification:record_agent] agent update failed: %s", e)

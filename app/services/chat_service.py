from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from fastapi import status
from pydantic import ValidationError as PydanticValidationError

from ..config import Settings
from ..models import (
    ChatResponse,
    ComparisonResult,
    Entities,
    FAQItem,
    IntentResult,
    Message,
    ProviderStatusReport,
    RecommendationsResponse,
    Reply,
    Session,
)
from ..utils.logging import get_request_logger
from .catalog import CatalogClient, DemoCatalog, build_catalog, product_fit
from .error_handling import CatalogError, InternalError, ValidationError
from .metrics import MetricsService, MetricsSnapshot
from .provider_chain import ProviderChain
from .providers import ProviderAdapter, build_adapters
from .reply_templates import quick_reply_table
from .response_synthesizer import ResponseSynthesizer
from .rule_engine import RuleBasedEngine
from .session_store import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class _TurnState:
    """What a turn has settled so far; survives cancellation of the turn task."""

    intent_result: Optional[IntentResult] = None


class ChatService:
    """Entry point for one chat turn and the auxiliary chat operations."""

    def __init__(
        self,
        *,
        chain: ProviderChain,
        sessions: SessionStore,
        synthesizer: ResponseSynthesizer,
        catalog: CatalogClient,
        metrics: MetricsService | None = None,
        chat_timeout: float = 8.0,
    ) -> None:
        self._chain = chain
        self._rule_engine = chain.rule_engine
        self._sessions = sessions
        self._synthesizer = synthesizer
        self._catalog = catalog
        self._metrics = metrics or MetricsService()
        self._chat_timeout = chat_timeout

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def chain(self) -> ProviderChain:
        return self._chain

    @property
    def metrics(self) -> MetricsService:
        return self._metrics

    # ------------------------------------------------------------------ chat

    async def chat(
        self,
        message: str,
        session_id: str,
        user_id: str | None = None,
        trace_id: str | None = None,
    ) -> ChatResponse:
        text = (message or "").strip()
        if not text:
            raise ValidationError(
                "message must not be empty",
                reason="empty_message",
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        if not session_id or not session_id.strip():
            raise ValidationError(
                "sessionId is required",
                reason="missing_session_id",
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        start = time.perf_counter()
        req_logger = get_request_logger(logger, trace_id=trace_id, user_id=user_id, session_id=session_id)
        inbound = Message(text=text, session_id=session_id, user_id=user_id)

        async with self._sessions.turn(session_id):
            session = self._sessions.load(session_id)
            state = _TurnState()
            try:
                reply = await asyncio.wait_for(self._resolve(inbound, session, state), timeout=self._chat_timeout)
            except asyncio.TimeoutError:
                self._metrics.record_turn_timeout()
                req_logger.warning("Turn exceeded %.1fs, answering with rule engine", self._chat_timeout)
                reply = self._fallback(inbound, session, state)
            except Exception as exc:
                error = InternalError(str(exc) or exc.__class__.__name__, reason="turn_failed")
                self._metrics.record_internal_error()
                req_logger.error(
                    "Unexpected error during turn, answering with rule engine reason=%s error=%s",
                    error.reason,
                    error,
                    exc_info=exc,
                )
                reply = self._fallback(inbound, session, state)

            result = state.intent_result
            updated = self._sessions.append(session_id, inbound, result)

        latency_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_turn(intent=result.intent.value, source=reply.source)
        self._metrics.record_response_latency(latency_ms)
        req_logger.info(
            "Turn done intent=%s confidence=%.2f intent_source=%s reply_source=%s latency_ms=%.1f",
            result.intent.value,
            result.confidence,
            result.source,
            reply.source,
            latency_ms,
        )
        return ChatResponse(
            session_id=session_id,
            intent=result.intent,
            confidence=result.confidence,
            entities=result.entities.as_dict(),
            context=updated.accumulated_entities.as_dict(),
            source=result.source,
            response=reply,
            trace_id=trace_id,
        )

    @staticmethod
    def _provider_context(inbound: Message, session: Session) -> Dict[str, Any]:
        return {
            "sessionId": session.id,
            "userId": inbound.user_id,
            "knownEntities": session.accumulated_entities.as_dict(),
            "lastIntent": session.last_intent.value if session.last_intent else None,
            "recentMessages": session.recent_messages(),
        }

    async def _resolve(self, inbound: Message, session: Session, state: _TurnState) -> Reply:
        context = self._provider_context(inbound, session)
        state.intent_result = await self._chain.analyze_intent(inbound.text, context)
        entities = session.accumulated_entities.merged_with(state.intent_result.entities)
        generated = await self._chain.generate_response(
            state.intent_result,
            entities,
            {**context, "originalMessage": inbound.text},
        )
        return await self._synthesizer.build(state.intent_result, session, generated, message=inbound.text)

    def _fallback(self, inbound: Message, session: Session, state: _TurnState) -> Reply:
        if state.intent_result is None:
            state.intent_result = self._rule_engine.classify(inbound.text)
        entities = session.accumulated_entities.merged_with(state.intent_result.entities)
        return self._rule_engine.generate_response(state.intent_result, entities)

    # ------------------------------------------------------------ auxiliary

    def quick_replies(self) -> Dict[str, List[str]]:
        return quick_reply_table()

    async def faqs(self) -> List[FAQItem]:
        try:
            return await self._catalog.list_faqs()
        except CatalogError as exc:
            logger.warning("FAQ catalog unavailable, serving built-in list: %s", exc)
            return await DemoCatalog().list_faqs()

    async def provider_status(self, name: str, *, probe: bool = True) -> ProviderStatusReport:
        return await self._chain.provider_status(name, probe=probe)

    async def provider_statuses(self, *, probe: bool = True) -> List[ProviderStatusReport]:
        return await self._chain.provider_statuses(probe=probe)

    def parse_preferences(self, preferences: Mapping[str, Any] | None, query: str | None = None) -> Entities:
        """Free-text query entities overlaid by the structured preferences."""
        parsed = self._rule_engine.extract_entities(query) if query else Entities()
        if preferences:
            try:
                explicit = Entities.model_validate(dict(preferences))
            except PydanticValidationError as exc:
                raise ValidationError(
                    "preferences are malformed",
                    reason="invalid_preferences",
                    debug={"errors": exc.errors(include_url=False, include_input=False)},
                ) from exc
            parsed = parsed.merged_with(explicit)
        return parsed

    async def compare_products(
        self,
        product_ids: Sequence[str],
        preferences: Mapping[str, Any] | None = None,
        query: str | None = None,
    ) -> ComparisonResult:
        ids = list(dict.fromkeys(pid.strip() for pid in product_ids if pid and pid.strip()))
        if not ids:
            raise ValidationError("productIds must not be empty", reason="empty_product_ids")
        parsed = self.parse_preferences(preferences, query)
        products = await self._catalog.get_products(ids)
        fits = [product_fit(product, parsed) for product in products]
        found = {fit.product.id for fit in fits}
        best = max(fits, key=lambda fit: (fit.score, -fit.product.price), default=None)
        return ComparisonResult(
            preferences=parsed,
            products=fits,
            missing_ids=[pid for pid in ids if pid not in found],
            best_match=best.product.id if best else None,
        )

    async def recommendations(
        self,
        session_id: str | None = None,
        preferences: Mapping[str, Any] | None = None,
        query: str | None = None,
        limit: int = 5,
    ) -> RecommendationsResponse:
        session = self._sessions.get(session_id) if session_id else None
        base = session.accumulated_entities if session else Entities()
        parsed = base.merged_with(self.parse_preferences(preferences, query))
        products = await self._catalog.search_products(parsed, limit=limit)
        return RecommendationsResponse(session_id=session_id, preferences=parsed, products=products)

    def expire_session(self, session_id: str) -> bool:
        return self._sessions.expire(session_id)

    def metrics_snapshot(self) -> MetricsSnapshot:
        return self._metrics.snapshot()


def build_chat_service(
    settings: Settings,
    *,
    adapters: Sequence[ProviderAdapter] | None = None,
    catalog: CatalogClient | None = None,
    metrics: MetricsService | None = None,
) -> ChatService:
    """Wire the chat core once per process from settings."""
    metrics = metrics or MetricsService()
    rule_engine = RuleBasedEngine(min_confidence=settings.rule_min_confidence)
    chain = ProviderChain(
        build_adapters(settings) if adapters is None else adapters,
        rule_engine,
        confidence_floor=settings.assistant_min_confidence,
        call_timeout=settings.provider_timeout_seconds,
        failure_threshold=settings.breaker_failure_threshold,
        cooldown_seconds=settings.breaker_cooldown_seconds,
        metrics=metrics,
    )
    catalog = catalog or build_catalog(settings)
    return ChatService(
        chain=chain,
        sessions=SessionStore(
            ttl_seconds=settings.session_ttl_seconds,
            history_limit=settings.session_history_limit,
        ),
        synthesizer=ResponseSynthesizer(catalog, enrich=settings.enable_catalog_enrichment),
        catalog=catalog,
        metrics=metrics,
        chat_timeout=settings.chat_timeout_seconds,
    )

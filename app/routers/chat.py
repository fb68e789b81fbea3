from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any, Dict, List
from uuid import uuid4

from fastapi import APIRouter, Depends, Request, status

from ..config import Settings, get_settings
from ..models import (
    ChatRequest,
    ChatResponse,
    CompareProductsRequest,
    ComparisonResult,
    FAQItem,
    ProviderStatusReport,
    RecommendationsRequest,
    RecommendationsResponse,
)
from ..services.chat_service import ChatService
from ..services.error_handling import NotFoundError

router = APIRouter(prefix="/api/chatbot", tags=["chatbot"])
logger = logging.getLogger(__name__)


def get_chat_service(request: Request) -> ChatService:
    return request.app.state.chat_service


@router.post("/chat", response_model=ChatResponse, response_model_by_alias=True)
async def post_chat(
    request: ChatRequest,
    settings: Settings = Depends(get_settings),
    service: ChatService = Depends(get_chat_service),
) -> ChatResponse:
    trace_id = request.trace_id or (uuid4().hex if settings.enable_request_tracing else None)
    return await service.chat(
        request.message,
        request.session_id,
        user_id=request.user_id,
        trace_id=trace_id,
    )


@router.get("/quick-replies")
async def get_quick_replies(service: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    return {"success": True, "quickReplies": service.quick_replies()}


@router.get("/faqs")
async def get_faqs(service: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    faqs: List[FAQItem] = await service.faqs()
    return {"success": True, "faqs": [faq.model_dump(by_alias=True) for faq in faqs]}


@router.get("/provider-status")
async def get_provider_statuses(
    probe: bool = True,
    service: ChatService = Depends(get_chat_service),
) -> Dict[str, Any]:
    reports = await service.provider_statuses(probe=probe)
    return {"success": True, "providers": [report.model_dump(mode="json", by_alias=True) for report in reports]}


@router.get("/provider-status/{name}")
async def get_provider_status(
    name: str,
    probe: bool = True,
    service: ChatService = Depends(get_chat_service),
) -> Dict[str, Any]:
    report: ProviderStatusReport = await service.provider_status(name, probe=probe)
    return {"success": True, "provider": report.model_dump(mode="json", by_alias=True)}


@router.post("/compare-products", response_model=ComparisonResult, response_model_by_alias=True)
async def post_compare_products(
    request: CompareProductsRequest,
    service: ChatService = Depends(get_chat_service),
) -> ComparisonResult:
    return await service.compare_products(request.product_ids, request.preferences, request.query)


@router.post("/recommendations", response_model=RecommendationsResponse, response_model_by_alias=True)
async def post_recommendations(
    request: RecommendationsRequest,
    service: ChatService = Depends(get_chat_service),
) -> RecommendationsResponse:
    return await service.recommendations(
        request.session_id,
        request.preferences,
        request.query,
        limit=request.limit,
    )


@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_session(session_id: str, service: ChatService = Depends(get_chat_service)) -> None:
    if not service.expire_session(session_id):
        raise NotFoundError(f"Unknown session: {session_id}", reason="unknown_session")
    logger.info("Session expired on request session_id=%s", session_id)


@router.get("/metrics")
async def get_metrics(service: ChatService = Depends(get_chat_service)) -> Dict[str, Any]:
    return {"success": True, "metrics": asdict(service.metrics_snapshot())}


@router.get("/test")
async def get_test() -> Dict[str, Any]:
    return {"success": True, "message": "Chatbot API is working"}

from __future__ import annotations

import logging
from typing import List, Optional

from ..intents import IntentType
from ..models import RULE_BASED_SOURCE, IntentResult, Reply, Session
from .catalog import CatalogClient, best_faq_match
from .error_handling import CatalogError
from .reply_templates import DEFAULT_QUICK_REPLIES, format_budget, quick_replies_for, render_message

logger = logging.getLogger(__name__)

MAX_ENRICHED_PRODUCTS = 3


class ResponseSynthesizer:
    """Turns the winning intent plus (optional) generated reply into the final payload.

    Provider-written messages are passed through verbatim. Rule-engine replies
    are rendered from templates with the session's merged entities and may be
    enriched with catalog products or a matching FAQ answer.
    """

    def __init__(self, catalog: CatalogClient | None = None, *, enrich: bool = True) -> None:
        self._catalog = catalog
        self._enrich = enrich and catalog is not None

    async def build(
        self,
        intent_result: IntentResult,
        session: Session,
        generated: Reply | None = None,
        *,
        message: str | None = None,
    ) -> Reply:
        entities = session.accumulated_entities.merged_with(intent_result.entities)
        quick_replies = (generated.quick_replies if generated else None) or quick_replies_for(intent_result.intent)

        if generated is not None and generated.source != RULE_BASED_SOURCE and generated.message.strip():
            return Reply(message=generated.message, quick_replies=quick_replies, source=generated.source)

        text = render_message(intent_result.intent, entities)
        if self._enrich:
            extra = await self._enrichment(intent_result.intent, entities, message or "")
            if extra:
                text = f"{text}\n\n{extra}"
        return Reply(
            message=text,
            quick_replies=quick_replies or list(DEFAULT_QUICK_REPLIES),
            source=RULE_BASED_SOURCE,
        )

    async def _enrichment(self, intent: IntentType, entities, message: str) -> Optional[str]:
        try:
            if intent is IntentType.PRODUCT_SEARCH:
                products = await self._catalog.search_products(entities, limit=MAX_ENRICHED_PRODUCTS)
                if not products:
                    return None
                names: List[str] = [f"{product.name} ({format_budget(product.price)})" for product in products]
                return "Top picks: " + "; ".join(names) + "."
            if intent is IntentType.FAQ:
                faq = best_faq_match(await self._catalog.list_faqs(), message)
                return faq.answer if faq else None
        except CatalogError as exc:
            logger.warning("Catalog enrichment skipped intent=%s error=%s", intent.value, exc)
        return None

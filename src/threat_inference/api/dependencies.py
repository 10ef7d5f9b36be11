"""
FastAPI dependency injection for the threat inference router.

Provides singleton instances of expensive or stateful resources (HTTP
client, prompt templates, budget ledger, event queue) and wires them into
the ArticleAnalysisService used by the routes. Tests replace
get_analysis_service through app.dependency_overrides.
"""

import random
from functools import lru_cache
from pathlib import Path

from fastapi import Depends

from threat_inference.budget.governor import BudgetGovernor
from threat_inference.config import Settings, settings
from threat_inference.inference.base_client import BaseInferenceClient
from threat_inference.inference.prompt_builder import PromptBuilder
from threat_inference.inference.workers_ai_client import WorkersAIClient
from threat_inference.observability.emitter import BoundedEventEmitter
from threat_inference.observability.sinks import LoggingEventSink
from threat_inference.routing.router import StrategyRouter
from threat_inference.search.index import BaseVectorIndex, InMemoryVectorIndex
from threat_inference.service import ArticleAnalysisService


@lru_cache()
def get_settings() -> Settings:
    """Get settings singleton."""
    return settings


@lru_cache()
def get_inference_client() -> BaseInferenceClient:
    """
    Get singleton Workers AI client with connection pooling.

    The client keeps one httpx.AsyncClient (and its pool) for the process.
    """
    config = get_settings()
    return WorkersAIClient(
        account_id=config.WORKERS_AI_ACCOUNT_ID,
        api_token=config.WORKERS_AI_API_TOKEN,
        base_url=config.WORKERS_AI_BASE_URL,
        timeout=config.WORKERS_AI_TIMEOUT,
        max_retries=config.WORKERS_AI_MAX_RETRIES,
        gateway_id=config.AI_GATEWAY_ID,
    )


@lru_cache()
def get_prompt_builder() -> PromptBuilder:
    """
    Get singleton prompt builder.

    Loads Jinja2 templates once and reuses them across requests.
    """
    config = get_settings()
    return PromptBuilder(
        templates_dir=Path(config.PROMPT_TEMPLATES_DIR) if config.PROMPT_TEMPLATES_DIR else None,
        content_truncation_limit=config.CONTENT_TRUNCATION_LIMIT,
        embedding_max_chars=config.EMBEDDING_MAX_CHARS,
        analysis_temperature=config.ANALYSIS_TEMPERATURE,
        analysis_max_tokens=config.ANALYSIS_MAX_TOKENS,
        trends_temperature=config.TRENDS_TEMPERATURE,
        trends_max_tokens=config.TRENDS_MAX_TOKENS,
    )


@lru_cache()
def get_governor() -> BudgetGovernor:
    """Get the process-wide budget governor (one ledger per process)."""
    config = get_settings()
    return BudgetGovernor(
        config.model_catalog().price_table(),
        daily_limit=config.DAILY_UNIT_LIMIT,
    )


@lru_cache()
def get_event_emitter() -> BoundedEventEmitter:
    """Get the observability emitter; started in the app startup hook."""
    return BoundedEventEmitter(LoggingEventSink(), maxsize=get_settings().EVENT_QUEUE_SIZE)


@lru_cache()
def get_vector_index() -> BaseVectorIndex:
    """Get the vector index used by /search."""
    return InMemoryVectorIndex(dimensions=get_settings().EMBEDDING_DIMENSIONS)


@lru_cache()
def get_strategy_router() -> StrategyRouter:
    """Get singleton strategy router sharing the governor and emitter."""
    return StrategyRouter(
        client=get_inference_client(),
        prompt_builder=get_prompt_builder(),
        governor=get_governor(),
        emitter=get_event_emitter(),
        catalog=get_settings().model_catalog(),
        rng=random.Random(),
    )


def get_analysis_service(
    router: StrategyRouter = Depends(get_strategy_router),
    governor: BudgetGovernor = Depends(get_governor),
    vector_index: BaseVectorIndex = Depends(get_vector_index),
    config: Settings = Depends(get_settings),
) -> ArticleAnalysisService:
    """
    Create the analysis facade with injected dependencies.

    Note: the facade is NOT cached because it is lightweight and stateless.
    All stateful resources (client, governor, emitter) are singletons.
    """
    return ArticleAnalysisService(
        router=router,
        governor=governor,
        default_config=config.deployment_config(),
        vector_index=vector_index,
        default_timeout=config.ANALYSIS_TIMEOUT,
    )

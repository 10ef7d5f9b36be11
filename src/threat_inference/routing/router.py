"""
Strategy router: decides how one article is analyzed.

Strategies:
- baseline: one call to the generalist tier for the full analysis shape
- tiered:   classifier + extractor calls in parallel, merged all-or-nothing

Deployment modes map onto strategies per call:
- baseline / tiered: always that strategy
- canary: one random draw per call, canary_percent% go to tiered
- shadow: baseline is returned, tiered runs alongside for comparison only

Failures never raise to the caller: every path collapses to None ("retry
later") plus one fire-and-forget observability event naming the reason.
Every successful inference call is charged to the budget governor.
"""

import asyncio
import random
import time
from typing import Any, Optional

import httpx
import structlog
from pydantic import ValidationError

from threat_inference.budget.governor import BudgetGovernor
from threat_inference.decoding.response_decoder import decode_response, unwrap_reply, validate_response
from threat_inference.inference.base_client import BaseInferenceClient
from threat_inference.inference.exceptions import InferenceClientError, InferenceConnectionError
from threat_inference.inference.prompt_builder import PromptBuilder
from threat_inference.inference.text_utils import (
    count_tokens_approximate,
    estimate_payload_tokens,
    extract_token_usage,
)
from threat_inference.models.analysis import AnalysisResult, ClassificationResult, ExtractionResult
from threat_inference.models.article import Article
from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.enums import AnalysisStrategy, DeploymentMode
from threat_inference.models.events import ObservabilityEvent
from threat_inference.models.tiers import ModelCatalog, ModelTier
from threat_inference.monitoring.metrics import (
    analysis_failures_total,
    inference_tokens_total,
    shadow_disagreements_total,
    strategy_executions_total,
)
from threat_inference.observability.emitter import BoundedEventEmitter


logger = structlog.get_logger(__name__)

BASELINE_REQUIRED_FIELDS = ["tldr", "category", "severity"]
CLASSIFIER_REQUIRED_FIELDS = ["tldr", "category", "severity"]
EXTRACTOR_REQUIRED_FIELDS = ["key_points"]

# Failure reasons (first tag of failure events, label of analysis_failures_total)
REASON_BASELINE_FAILURE = "baseline_analysis_failure"
REASON_TIERED_FAILURE = "tiered_analysis_failure"
REASON_TIMEOUT = "analysis_timeout"

SHADOW_COMPARISON_EVENT = "shadow_comparison"
# Outcome tag of a comparison event when nothing disagreed
SHADOW_AGREE = "agree"
SHADOW_BOTH_FAILED = "both_failed"


class StrategyRouter:
    """
    Dispatches article analysis according to a DeploymentConfig.

    The router holds no mutable deployment state: the config is passed per
    call. The only randomness is the canary draw, taken from an injectable
    random.Random so tests can pin it.
    """

    def __init__(
        self,
        client: BaseInferenceClient,
        prompt_builder: PromptBuilder,
        governor: BudgetGovernor,
        emitter: BoundedEventEmitter,
        catalog: ModelCatalog,
        rng: Optional[random.Random] = None,
    ):
        self.client = client
        self.prompt_builder = prompt_builder
        self.governor = governor
        self.emitter = emitter
        self.catalog = catalog
        self._rng = rng or random.Random()
        self._shadow_tasks: set[asyncio.Task] = set()

    # === Inference calls ===

    async def invoke(
        self,
        tier: ModelTier,
        payload: dict[str, Any],
        options: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Run one inference call and charge it to the budget.

        Token counts come from the reply's usage block; when the reply has
        none they are approximated from the payload and reply text.

        Raises:
            InferenceClientError: the call failed (httpx errors are wrapped)
        """
        try:
            reply = await self.client.run(tier.endpoint, payload, options)
        except InferenceClientError:
            raise
        except httpx.HTTPError as e:
            raise InferenceConnectionError(
                f"HTTP error calling {tier.endpoint}: {e}",
                details={"model": tier.key, "error_type": type(e).__name__},
            ) from e

        usage = extract_token_usage(reply)
        if usage is None:
            input_tokens = estimate_payload_tokens(payload)
            output_tokens = 0
            if tier.cost_out_per_million is not None:
                content = unwrap_reply(reply)
                output_tokens = count_tokens_approximate(
                    content if isinstance(content, str) else str(content)
                )
        else:
            input_tokens, output_tokens = usage

        inference_tokens_total.labels(model=tier.key, token_type="input").inc(max(input_tokens, 0))
        inference_tokens_total.labels(model=tier.key, token_type="output").inc(max(output_tokens, 0))
        self.governor.record(tier.key, input_tokens, output_tokens)
        return reply

    async def _structured_call(
        self,
        tier: ModelTier,
        payload: dict[str, Any],
        required_fields: list[str],
        article_id: str,
    ) -> Optional[dict]:
        """Call a tier and return its decoded object, or None if unusable."""
        try:
            reply = await self.invoke(tier, payload)
        except InferenceClientError as e:
            logger.warning(
                "Inference call failed",
                model=tier.key,
                article_id=article_id,
                error=e.message,
                error_type=type(e).__name__,
            )
            return None

        decoded = decode_response(reply)
        if not validate_response(decoded, required_fields):
            logger.warning("Inference reply unusable", model=tier.key, article_id=article_id)
            return None
        return decoded

    # === Strategies ===

    async def run_baseline(self, article: Article) -> Optional[AnalysisResult]:
        """Single generalist call requesting the full analysis."""
        decoded = await self._structured_call(
            self.catalog.generalist,
            self.prompt_builder.build_analysis_payload(article),
            BASELINE_REQUIRED_FIELDS,
            article.id,
        )
        if decoded is None:
            return None
        try:
            return AnalysisResult.model_validate(
                {**decoded, "strategy": AnalysisStrategy.BASELINE}
            )
        except ValidationError as e:
            logger.warning(
                "Baseline analysis failed validation",
                article_id=article.id,
                errors=e.error_count(),
                first_error=e.errors()[0]["msg"] if e.errors() else None,
            )
            return None

    async def run_tiered(self, article: Article) -> Optional[AnalysisResult]:
        """
        Classifier and extractor calls in parallel.

        Both halves must succeed; a partial analysis is never returned.
        """
        classification_raw, extraction_raw = await asyncio.gather(
            self._structured_call(
                self.catalog.classifier,
                self.prompt_builder.build_classifier_payload(article),
                CLASSIFIER_REQUIRED_FIELDS,
                article.id,
            ),
            self._structured_call(
                self.catalog.extractor,
                self.prompt_builder.build_extractor_payload(article),
                EXTRACTOR_REQUIRED_FIELDS,
                article.id,
            ),
        )
        if classification_raw is None or extraction_raw is None:
            logger.warning(
                "Tiered analysis incomplete",
                article_id=article.id,
                classifier_ok=classification_raw is not None,
                extractor_ok=extraction_raw is not None,
            )
            return None

        try:
            classification = ClassificationResult.model_validate(classification_raw)
            extraction = ExtractionResult.model_validate(extraction_raw)
        except ValidationError as e:
            logger.warning(
                "Tiered analysis failed validation",
                article_id=article.id,
                errors=e.error_count(),
                first_error=e.errors()[0]["msg"] if e.errors() else None,
            )
            return None
        return AnalysisResult.from_parts(classification, extraction)

    def select_strategy(self, config: DeploymentConfig) -> AnalysisStrategy:
        """
        Strategy whose result is returned for this call.

        Canary takes one draw per call: randrange(100) < canary_percent
        means tiered, so 0 never and 100 always routes to tiered.
        """
        if config.mode is DeploymentMode.TIERED:
            return AnalysisStrategy.TIERED
        if config.mode is DeploymentMode.CANARY:
            if self._rng.randrange(100) < config.canary_percent:
                return AnalysisStrategy.TIERED
            return AnalysisStrategy.BASELINE
        return AnalysisStrategy.BASELINE

    async def _run_strategy(
        self, strategy: AnalysisStrategy, article: Article
    ) -> Optional[AnalysisResult]:
        if strategy is AnalysisStrategy.TIERED:
            return await self.run_tiered(article)
        return await self.run_baseline(article)

    # === Entry point ===

    async def analyze(
        self,
        article: Article,
        config: DeploymentConfig,
        timeout: Optional[float] = None,
    ) -> Optional[AnalysisResult]:
        """
        Analyze one article according to the deployment config.

        Args:
            article: Article to analyze
            config: Deployment strategy for this call
            timeout: Seconds before in-flight calls are abandoned (None = no deadline)

        Returns:
            AnalysisResult tagged with the strategy that produced it, or None
            on any failure (upstream error, unusable reply, partial tiered
            result, timeout). None means "retry later", never "benign".
        """
        start = time.perf_counter()
        strategy = self.select_strategy(config)

        logger.debug(
            "Dispatching analysis",
            article_id=article.id,
            mode=config.mode.value,
            strategy=strategy.value,
        )

        try:
            if config.mode is DeploymentMode.SHADOW:
                result = await self._analyze_shadow(article, config, timeout)
            else:
                result = await asyncio.wait_for(self._run_strategy(strategy, article), timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Analysis timed out",
                article_id=article.id,
                strategy=strategy.value,
                timeout=timeout,
            )
            self._record_failure(REASON_TIMEOUT, article, config, strategy, start)
            return None
        except Exception as e:
            # Any escape from a strategy still means "no analysis"
            logger.error(
                "Unexpected analysis error",
                article_id=article.id,
                strategy=strategy.value,
                error=str(e),
                error_type=type(e).__name__,
                exc_info=True,
            )
            result = None

        success = result is not None
        strategy_executions_total.labels(
            strategy=strategy.value, mode=config.mode.value, success=str(success).lower()
        ).inc()

        if not success:
            reason = (
                REASON_TIERED_FAILURE if strategy is AnalysisStrategy.TIERED
                else REASON_BASELINE_FAILURE
            )
            self._record_failure(reason, article, config, strategy, start)
            return None

        logger.info(
            "Article analyzed",
            article_id=article.id,
            mode=config.mode.value,
            strategy=result.strategy.value,
            category=result.category.value,
            severity=result.severity.value,
            latency_ms=int((time.perf_counter() - start) * 1000),
        )
        return result

    # === Shadow mode ===

    async def _analyze_shadow(
        self,
        article: Article,
        config: DeploymentConfig,
        timeout: Optional[float],
    ) -> Optional[AnalysisResult]:
        """
        Start baseline and tiered together; return baseline as soon as it
        completes and leave tiered to a tracked background comparison.
        """
        tiered_task = asyncio.create_task(
            asyncio.wait_for(self.run_tiered(article), timeout),
            name=f"shadow-tiered-{article.id}",
        )
        try:
            baseline = await asyncio.wait_for(self.run_baseline(article), timeout)
        except asyncio.CancelledError:
            tiered_task.cancel()
            raise
        except Exception:
            # Comparison still runs so the shadow branch is never orphaned
            self._track(self._compare_shadow(article, config, None, tiered_task))
            raise

        self._track(self._compare_shadow(article, config, baseline, tiered_task))
        return baseline

    def _track(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._shadow_tasks.add(task)
        task.add_done_callback(self._shadow_tasks.discard)

    async def _compare_shadow(
        self,
        article: Article,
        config: DeploymentConfig,
        baseline: Optional[AnalysisResult],
        tiered_task: asyncio.Task,
    ) -> None:
        try:
            tiered = await tiered_task
        except asyncio.TimeoutError:
            tiered = None
        except Exception as e:
            logger.warning(
                "Shadow tiered analysis raised",
                article_id=article.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            tiered = None

        if not config.validation_logging:
            return

        differences = self.compare_results(baseline, tiered)
        for field in differences:
            shadow_disagreements_total.labels(field=field).inc()

        self.emitter.emit(
            ObservabilityEvent(
                tags=[
                    SHADOW_COMPARISON_EVENT,
                    AnalysisStrategy.BASELINE.value,
                    AnalysisStrategy.TIERED.value,
                    self._comparison_outcome(baseline, tiered, differences),
                ],
                metrics=[
                    1.0 if baseline is not None else 0.0,
                    1.0 if tiered is not None else 0.0,
                    float(len(differences)),
                ],
                partition_key=article.id,
            )
        )
        logger.info(
            "Shadow comparison",
            article_id=article.id,
            baseline_ok=baseline is not None,
            tiered_ok=tiered is not None,
            differences=differences,
        )

    @staticmethod
    def _comparison_outcome(
        baseline: Optional[AnalysisResult],
        tiered: Optional[AnalysisResult],
        differences: list[str],
    ) -> str:
        if baseline is None and tiered is None:
            return SHADOW_BOTH_FAILED
        return ",".join(differences) if differences else SHADOW_AGREE

    @staticmethod
    def compare_results(
        baseline: Optional[AnalysisResult],
        tiered: Optional[AnalysisResult],
    ) -> list[str]:
        """
        Fields on which two analyses disagree.

        When exactly one side is missing the only difference reported is
        "availability"; two missing results agree.
        """
        if baseline is None or tiered is None:
            return ["availability"] if (baseline is None) != (tiered is None) else []

        differences = []
        if baseline.category != tiered.category:
            differences.append("category")
        if baseline.severity != tiered.severity:
            differences.append("severity")
        if {a.casefold() for a in baseline.threat_actors} != {a.casefold() for a in tiered.threat_actors}:
            differences.append("threat_actors")
        if set(baseline.iocs.cves) != set(tiered.iocs.cves):
            differences.append("cves")
        return differences

    async def wait_for_shadow(self) -> None:
        """Wait until every outstanding shadow comparison has finished."""
        while self._shadow_tasks:
            await asyncio.gather(*list(self._shadow_tasks), return_exceptions=True)

    # === Failure reporting ===

    def _record_failure(
        self,
        reason: str,
        article: Article,
        config: DeploymentConfig,
        strategy: AnalysisStrategy,
        start: float,
    ) -> None:
        analysis_failures_total.labels(reason=reason).inc()
        if reason == REASON_TIMEOUT:
            strategy_executions_total.labels(
                strategy=strategy.value, mode=config.mode.value, success="false"
            ).inc()
        self.emitter.emit(
            ObservabilityEvent(
                tags=[reason, strategy.value, config.mode.value, article.source],
                metrics=[(time.perf_counter() - start) * 1000],
                partition_key=article.id,
            )
        )

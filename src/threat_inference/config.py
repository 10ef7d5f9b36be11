"""
Configuration settings for the threat article inference router.

All settings are loaded from environment variables with sensible defaults.
Use .env file for local development (see .env.example).
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.enums import DeploymentMode, OutputShape
from threat_inference.models.tiers import ModelCatalog, ModelTier


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Application ===
    APP_NAME: str = "Threat Inference Router"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # === Workers AI Gateway ===
    WORKERS_AI_BASE_URL: str = "https://api.cloudflare.com/client/v4"
    WORKERS_AI_ACCOUNT_ID: str = ""
    WORKERS_AI_API_TOKEN: Optional[str] = None
    WORKERS_AI_TIMEOUT: int = 60  # seconds
    WORKERS_AI_MAX_RETRIES: int = 2  # Connection-level retries only
    AI_GATEWAY_ID: Optional[str] = None  # Route calls through AI Gateway when set

    # === Deployment Strategy ===
    DEPLOYMENT_MODE: DeploymentMode = DeploymentMode.CANARY
    CANARY_PERCENT: int = 30  # Only used when DEPLOYMENT_MODE=canary
    VALIDATION_LOGGING: bool = True  # Only used when DEPLOYMENT_MODE=shadow
    ANALYSIS_TIMEOUT: Optional[float] = None  # seconds, None = no deadline

    # === Model Endpoints ===
    GENERALIST_MODEL: str = "@cf/meta/llama-3.3-70b-instruct-fp8-fast"
    CLASSIFIER_MODEL: str = "@cf/mistralai/mistral-small-3.1-24b-instruct"
    EXTRACTOR_MODEL: str = "@cf/qwen/qwen3-30b-a3b-fp8"
    EMBEDDING_MODEL: str = "@cf/baai/bge-m3"
    EMBEDDING_BASELINE_MODEL: str = "@cf/baai/bge-large-en-v1.5"
    EMBEDDING_DIMENSIONS: int = 1024

    # === Generation Parameters ===
    ANALYSIS_TEMPERATURE: float = 0.1  # Low for consistent output
    ANALYSIS_MAX_TOKENS: int = 1024
    TRENDS_TEMPERATURE: float = 0.3
    TRENDS_MAX_TOKENS: int = 1024

    # === Input Processing ===
    CONTENT_TRUNCATION_LIMIT: int = 12000  # chars, roughly 4000 tokens
    EMBEDDING_MAX_CHARS: int = 2000  # bge models accept ~512 tokens
    PROMPT_TEMPLATES_DIR: Optional[str] = None  # None = packaged templates

    # === Budget ===
    DAILY_UNIT_LIMIT: float = 10000.0  # Workers AI free tier, neurons/day

    # === Observability ===
    EVENT_QUEUE_SIZE: int = 1000
    PROMETHEUS_ENABLED: bool = True

    def deployment_config(self) -> DeploymentConfig:
        """Snapshot the deployment strategy as an immutable value."""
        return DeploymentConfig(
            mode=self.DEPLOYMENT_MODE,
            canary_percent=self.CANARY_PERCENT,
            validation_logging=self.VALIDATION_LOGGING,
        )

    def model_catalog(self) -> ModelCatalog:
        """
        Build the model catalog with the Workers AI price table.

        Prices are neurons per 1M tokens (input/output), from
        https://developers.cloudflare.com/workers-ai/platform/pricing/
        """
        generalist = ModelTier(
            key="llama-70b",
            endpoint=self.GENERALIST_MODEL,
            cost_in_per_million=26668,
            cost_out_per_million=204805,
            output_shape=OutputShape.STRUCTURED,
        )
        classifier = ModelTier(
            key="mistral-24b",
            endpoint=self.CLASSIFIER_MODEL,
            cost_in_per_million=31876,
            cost_out_per_million=50488,
            output_shape=OutputShape.STRUCTURED,
        )
        extractor = ModelTier(
            key="qwen-30b",
            endpoint=self.EXTRACTOR_MODEL,
            cost_in_per_million=4625,
            cost_out_per_million=30475,
            output_shape=OutputShape.STRUCTURED,
        )
        embedding = ModelTier(
            key="bge-m3",
            endpoint=self.EMBEDDING_MODEL,
            cost_in_per_million=1075,
            output_shape=OutputShape.VECTOR,
            dimensions=self.EMBEDDING_DIMENSIONS,
        )
        embedding_baseline = ModelTier(
            key="bge-large",
            endpoint=self.EMBEDDING_BASELINE_MODEL,
            cost_in_per_million=18252,
            output_shape=OutputShape.VECTOR,
            dimensions=self.EMBEDDING_DIMENSIONS,
        )
        # Priced but not routed to; kept so usage reported by older
        # deployments is still charged.
        legacy = [
            ModelTier(
                key="llama-8b-fp8",
                endpoint="@cf/meta/llama-3.1-8b-instruct-fp8-fast",
                cost_in_per_million=4119,
                cost_out_per_million=34868,
                output_shape=OutputShape.TEXT,
            ),
            ModelTier(
                key="llama-1b",
                endpoint="@cf/meta/llama-3.2-1b-instruct",
                cost_in_per_million=2457,
                cost_out_per_million=18252,
                output_shape=OutputShape.TEXT,
            ),
        ]
        return ModelCatalog(
            generalist=generalist,
            classifier=classifier,
            extractor=extractor,
            embedding=embedding,
            embedding_baseline=embedding_baseline,
            extra_tiers=legacy,
        )


# Global settings instance
settings = Settings()

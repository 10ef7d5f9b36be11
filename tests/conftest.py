"""Shared test fixtures and configuration for all tests.

This conftest.py provides settings, the model catalog and article factories
used across the unit tests.
"""

import pytest
from datetime import datetime, timezone
from typing import Any, Dict

from threat_inference.config import Settings
from threat_inference.models.article import Article
from threat_inference.models.deployment import DeploymentConfig
from threat_inference.models.enums import DeploymentMode
from threat_inference.models.tiers import ModelCatalog


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with safe defaults for local testing.

    Built explicitly so a developer's .env never leaks into tests.
    """
    return Settings(
        # === Application ===
        APP_NAME="Threat Inference Router (Test)",
        APP_VERSION="0.1.0",
        DEBUG=True,
        LOG_LEVEL="DEBUG",
        ENVIRONMENT="development",

        # === Workers AI ===
        WORKERS_AI_BASE_URL="https://api.cloudflare.test/client/v4",
        WORKERS_AI_ACCOUNT_ID="acct-test",
        WORKERS_AI_API_TOKEN="token-test",
        WORKERS_AI_TIMEOUT=5,
        WORKERS_AI_MAX_RETRIES=2,
        AI_GATEWAY_ID=None,

        # === Deployment ===
        DEPLOYMENT_MODE=DeploymentMode.BASELINE,
        CANARY_PERCENT=0,
        VALIDATION_LOGGING=True,

        # === Budget ===
        DAILY_UNIT_LIMIT=10000.0,

        PROMETHEUS_ENABLED=False,  # Disable metrics endpoint in tests
    )


@pytest.fixture
def catalog(test_settings: Settings) -> ModelCatalog:
    """Default Workers AI model catalog."""
    return test_settings.model_catalog()


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 12, 8, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def create_test_article(fixed_now: datetime):
    """Factory fixture to create Article with custom values.

    Usage:
        def test_something(create_test_article):
            article = create_test_article(content="Custom body")
    """
    def _create(
        article_id: str = "article-001",
        title: str = "LockBit affiliate hits regional hospital network",
        content: str = (
            "A LockBit affiliate encrypted systems at a regional hospital network. "
            "The attackers exploited CVE-2024-1234 in an exposed VPN appliance "
            "and staged tooling on 203.0.113.7."
        ),
        source: str = "Example Security News",
        **extra: Any,
    ) -> Article:
        return Article(
            id=article_id,
            title=title,
            content=content,
            source=source,
            url=extra.get("url", f"https://news.example.com/{article_id}"),
            published_at=extra.get("published_at", fixed_now),
            fetched_at=extra.get("fetched_at", fixed_now),
        )

    return _create


@pytest.fixture
def sample_article(create_test_article) -> Article:
    return create_test_article()


@pytest.fixture
def baseline_config() -> DeploymentConfig:
    return DeploymentConfig(mode=DeploymentMode.BASELINE)


@pytest.fixture
def tiered_config() -> DeploymentConfig:
    return DeploymentConfig(mode=DeploymentMode.TIERED)


@pytest.fixture
def full_analysis_data() -> Dict[str, Any]:
    """A complete, well-formed full-analysis object as a model would return it."""
    return {
        "tldr": "LockBit affiliate encrypted a hospital network via a VPN flaw.",
        "key_points": [
            "Regional hospital network systems were encrypted",
            "Initial access via CVE-2024-1234 in a VPN appliance",
        ],
        "category": "ransomware",
        "severity": "critical",
        "affected_sectors": ["healthcare"],
        "threat_actors": ["LockBit"],
        "iocs": {
            "ips": ["203.0.113.7"],
            "domains": [],
            "cves": ["CVE-2024-1234"],
            "hashes": [],
            "urls": [],
            "emails": [],
        },
    }

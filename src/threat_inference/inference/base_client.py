"""
Abstract base client for hosted inference.

Defines the capability the router and facade depend on: run a model with a
payload and get an opaque reply back. Keeping it this narrow lets tests and
alternative backends stand in for Workers AI without touching the router.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional
import structlog


logger = structlog.get_logger(__name__)


class BaseInferenceClient(ABC):
    """
    Abstract base class for inference clients.

    Responsibilities:
    - Send a model payload (chat messages or embedding text) to the service
    - Return the model's reply (object, string or vector container)
    - Raise InferenceClientError subclasses on transport/service failures

    Does NOT handle:
    - Prompt construction (PromptBuilder)
    - Reply decoding and validation (decoding.response_decoder)
    - Strategy selection or budget accounting (StrategyRouter)

    Connection-level retries (network errors, 5xx) MAY be handled internally.
    """

    def __init__(
        self,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 2,
        **kwargs
    ):
        """
        Initialize base client.

        Args:
            base_url: Base URL of the inference API
            timeout: Request timeout in seconds
            max_retries: Attempts for retryable transport errors
            **kwargs: Additional provider-specific config
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.max_retries = max_retries
        self.extra_config = kwargs

        logger.info(
            "Initialized inference client",
            client_class=self.__class__.__name__,
            base_url=self.base_url,
            timeout=timeout,
            max_retries=max_retries
        )

    @abstractmethod
    async def run(
        self,
        model_id: str,
        payload: dict[str, Any],
        options: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Run a model and return its reply.

        Args:
            model_id: Remote model path (e.g. "@cf/qwen/qwen3-30b-a3b-fp8")
            payload: Model input ({"messages": [...], ...} or {"text": ...})
            options: Per-call transport options (gateway routing, timeout)

        Returns:
            The model reply: typically {"response": ..., "usage": {...}} for
            text models and {"shape": [...], "data": [[...]]} for embeddings

        Raises:
            InferenceClientError: any transport or service failure
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the inference service is reachable.

        Returns:
            True if healthy, False otherwise. Never raises.
        """
        pass

    async def close(self):
        """
        Close client connections and cleanup resources.

        Default implementation does nothing.
        """
        logger.debug("Closing inference client", client_class=self.__class__.__name__)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"base_url={self.base_url}, "
            f"timeout={self.timeout}s)"
        )

"""
Inference client abstraction and implementations.

Components:
- BaseInferenceClient: Abstract base class for inference clients
- WorkersAIClient: Implementation for the Cloudflare Workers AI REST API
- PromptBuilder: Builds chat and embedding payloads from articles
- text_utils: Truncation and token usage helpers
- exceptions: Inference-specific exceptions
"""

from threat_inference.inference.base_client import BaseInferenceClient
from threat_inference.inference.workers_ai_client import WorkersAIClient
from threat_inference.inference.prompt_builder import PromptBuilder
from threat_inference.inference.exceptions import (
    InferenceAuthError,
    InferenceClientError,
    InferenceConnectionError,
    InferenceGenerationError,
    InferenceModelNotAvailableError,
    InferenceRateLimitError,
    InferenceTimeoutError,
)

__all__ = [
    "BaseInferenceClient",
    "WorkersAIClient",
    "PromptBuilder",
    "InferenceClientError",
    "InferenceConnectionError",
    "InferenceTimeoutError",
    "InferenceGenerationError",
    "InferenceModelNotAvailableError",
    "InferenceRateLimitError",
    "InferenceAuthError",
]

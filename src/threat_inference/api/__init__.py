"""
FastAPI API routes and endpoints.

- routes.py: /health, /analyze, /embed, /trends, /search, /budget
- dependencies.py: Dependency injection for client, governor, router, facade
- models.py: API-specific request/response models
- error_handlers.py: Exception handlers for structured error responses
- middleware.py: Request id tracing
"""

from threat_inference.api import dependencies, error_handlers, models
from threat_inference.api.routes import router

__all__ = [
    "router",
    "dependencies",
    "error_handlers",
    "models",
]

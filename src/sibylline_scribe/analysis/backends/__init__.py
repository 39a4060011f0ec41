"""Analysis backend registry.

Backends are registered at import time and looked up by name.
Third parties can register custom backends via register_backend().
"""

from __future__ import annotations

from ...config import ScribeConfig
from .base import AnalysisService, validate_text

_REGISTRY: dict[str, type[AnalysisService]] = {}


def register_backend(cls: type[AnalysisService]) -> type[AnalysisService]:
    """Register an analysis backend class. Can be used as a decorator."""
    _REGISTRY[cls.name()] = cls
    return cls


def get_backend(name: str) -> type[AnalysisService]:
    """Look up a registered analysis backend by name.

    Raises:
        ValueError: If the backend name is not registered.
    """
    if name not in _REGISTRY:
        available = ", ".join(sorted(_REGISTRY.keys()))
        raise ValueError(f"Unknown analysis backend {name!r}. Available backends: {available}")
    return _REGISTRY[name]


def list_backends() -> list[str]:
    """Return sorted list of registered backend names."""
    return sorted(_REGISTRY.keys())


def create_service(config: ScribeConfig | None = None, **kwargs) -> AnalysisService:
    """Instantiate the backend named in the ``analysis.backend`` setting."""
    config = config or ScribeConfig()
    backend = get_backend(config.get("analysis", "backend", "openai"))
    return backend(config=config, **kwargs)


# Register built-in backends
from .openai_backend import OpenAIAnalysisService  # noqa: E402

register_backend(OpenAIAnalysisService)

__all__ = [
    "AnalysisService",
    "OpenAIAnalysisService",
    "create_service",
    "get_backend",
    "list_backends",
    "register_backend",
    "validate_text",
]

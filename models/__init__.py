"""Pydantic 模型与 Schema：运行参数、统一配置。"""

from .schemas import (
    AppConfigSchema,
    AppSection,
    ConfigDisplay,
    EmbeddingConfigResult,
    EmbeddingSection,
    MappingOptions,
    MatchingSection,
    RunConfigSchema,
)

__all__ = [
    "AppConfigSchema",
    "AppSection",
    "ConfigDisplay",
    "EmbeddingConfigResult",
    "EmbeddingSection",
    "MappingOptions",
    "MatchingSection",
    "RunConfigSchema",
]

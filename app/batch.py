"""运行参数组装：由配置节与命令行覆盖项得到 MappingOptions，并按需创建向量服务。"""

from __future__ import annotations

from core.embedding import EmbeddingService, OpenAIEmbeddingService
from models.schemas import EmbeddingConfigResult, EmbeddingSection, MappingOptions, MatchingSection


def build_options(
    matching: MatchingSection,
    embedding: EmbeddingSection,
    credentials: EmbeddingConfigResult,
    *,
    use_rerank: bool | None = None,
    overrides: dict[str, float | int] | None = None,
) -> MappingOptions:
    """由 matching / embedding 配置节与命令行覆盖项组装 MappingOptions。"""
    values: dict[str, object] = {
        "similarity_threshold": matching.similarity_threshold,
        "gap_threshold": matching.gap_threshold,
        "token_overlap_threshold": matching.token_overlap_threshold,
        "confidence_min_percent": matching.confidence_min_percent,
        "candidate_limit": matching.candidate_limit,
        "use_rerank": matching.use_rerank if use_rerank is None else use_rerank,
        "api_key": credentials.api_key,
        "rerank_top_k": embedding.top_k,
        "rerank_timeout": embedding.timeout,
    }
    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value
    return MappingOptions.model_validate(values)


def build_embedder(options: MappingOptions, credentials: EmbeddingConfigResult) -> EmbeddingService | None:
    """仅在开启语义重排且有凭据时创建向量服务。"""
    if not options.rerank_requested:
        return None
    return OpenAIEmbeddingService.from_config(credentials)


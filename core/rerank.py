"""
语义重排：仅对词法判定为 not_mapped 的商品，取前 K 个候选请求向量服务重新打分，
用更严格的阈值再判定一次。只会把 not_mapped 升级为 mapped，从不改动已匹配的结果。
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Sequence

from domain.category import MAPPED, NOT_MAPPED, CandidateMatch, MatchStatus, ProductRecord
from models.schemas import MappingOptions

from .embedding import EmbeddingService, l2_normalize, validate_embeddings
from .exceptions import EmbeddingUnavailableError
from .gate import compute_gap, confidence_percent, format_summary, top_two
from .scoring import SCORE_DECIMALS, sort_candidates

logger = logging.getLogger(__name__)

RERANK_MIN_SIMILARITY = 0.78
RERANK_MIN_GAP = 0.02

REASON_NO_TEXT = "语义重排：商品文本不足，无法生成向量"
REASON_CONFIRMED = "语义重排确认类目"
REASON_UNCONFIRMED = "语义重排未得到可信匹配"


@dataclass(frozen=True)
class RerankResult:
    """重排结果：candidates 为合并后重新排序的完整列表。"""

    status: MatchStatus
    best: CandidateMatch | None
    candidates: list[CandidateMatch]
    gap: float
    confidence: int
    reason: str

    @property
    def summary(self) -> str:
        return format_summary(self.best, self.gap)


def rerank_thresholds(options: MappingOptions) -> tuple[float, int, float]:
    """重排阶段的 (最低得分, 最低重叠, 最低分差)。"""
    return (
        max(options.similarity_threshold, RERANK_MIN_SIMILARITY),
        max(0, options.token_overlap_threshold - 1),
        max(options.gap_threshold / 2, RERANK_MIN_GAP),
    )


def rescore_top(
    top: Sequence[CandidateMatch],
    product_vector: Sequence[float],
    candidate_vectors: Sequence[Sequence[float]],
) -> list[CandidateMatch]:
    """用余弦相似度替换前 K 个候选的得分。"""
    product_unit = l2_normalize(product_vector)
    rescored: list[CandidateMatch] = []
    for candidate, vector in zip(top, candidate_vectors):
        similarity = float(product_unit @ l2_normalize(vector))
        rescored.append(candidate.model_copy(update={"score": round(similarity, SCORE_DECIMALS)}))
    return rescored


async def _embed_with_timeout(embedder: EmbeddingService, texts: list[str], timeout: float) -> list[list[float]]:
    try:
        return await asyncio.wait_for(embedder.embed(texts), timeout=timeout)
    except asyncio.TimeoutError as e:
        raise EmbeddingUnavailableError(f"向量服务超时（{timeout}s）") from e


async def rerank_candidates(
    product: ProductRecord,
    ranked: Sequence[CandidateMatch],
    options: MappingOptions,
    embedder: EmbeddingService,
) -> RerankResult | None:
    """
    对单个商品做语义重排。无候选时返回 None。
    商品没有可用文本时直接返回 not_mapped，不调用外部服务。
    向量服务失败时抛出 EmbeddingServiceError，由调用方记录到依据中。
    """
    ranked = list(ranked)
    product_text = product.aggregated_text.strip()
    if not product_text:
        best, second = top_two(ranked)
        gap = compute_gap(best, second)
        return RerankResult(
            status=NOT_MAPPED,
            best=best,
            candidates=ranked,
            gap=gap,
            confidence=confidence_percent(best.score) if best else 0,
            reason=REASON_NO_TEXT,
        )

    top = ranked[: options.rerank_top_k]
    if not top:
        return None

    texts = [product_text, *(c.category_path for c in top)]
    vectors = validate_embeddings(
        await _embed_with_timeout(embedder, texts, options.rerank_timeout),
        len(texts),
    )
    rescored = rescore_top(top, vectors[0], vectors[1:])
    merged = sort_candidates([*rescored, *ranked[len(top):]])

    best, second = top_two(merged)
    gap = compute_gap(best, second)
    confidence = confidence_percent(best.score) if best else 0
    min_score, min_overlap, min_gap = rerank_thresholds(options)
    logger.debug(
        "语义重排 [%s]: best=%s score=%.4f gap=%.4f",
        product.product_name[:40],
        best.category_path if best else None,
        best.score if best else 0.0,
        gap,
    )

    if (
        best is not None
        and best.score >= min_score
        and best.overlap >= min_overlap
        and (second is None or gap >= min_gap)
    ):
        return RerankResult(
            status=MAPPED,
            best=best,
            candidates=merged,
            gap=gap,
            confidence=confidence,
            reason=f"{REASON_CONFIRMED} (score={best.score:.2f}, gap={gap:.2f})",
        )
    return RerankResult(
        status=NOT_MAPPED,
        best=best,
        candidates=merged,
        gap=gap,
        confidence=confidence,
        reason=f"{REASON_UNCONFIRMED} (max={(best.score if best else 0.0):.2f}, gap={gap:.2f})",
    )

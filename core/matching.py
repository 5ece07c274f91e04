"""
商品类目映射主流程：(类目语料, 商品语料, 运行参数) -> MappingResponse。

每次运行重新构建向量空间，商品逐条处理；唯一的等待点是语义重排中的向量服务调用。
只有类目语料为空（InputError）会中止整次运行，其余失败都记录在对应商品的依据中。
"""

from __future__ import annotations

import asyncio
import logging
from typing import Sequence

from tqdm import tqdm  # type: ignore[import-untyped]

from domain.category import (
    MAPPED,
    NOT_MAPPED,
    CategoryNode,
    MappingOutcome,
    MappingResponse,
    MappingStats,
    ProductBatch,
    ProductRecord,
)
from models.schemas import MappingOptions

from .embedding import EmbeddingService
from .exceptions import EmbeddingServiceError
from .gate import annotate_confidence_floor, evaluate_gate
from .rerank import rerank_candidates
from .scoring import HybridScorer

logger = logging.getLogger(__name__)

REASON_RERANK_ERROR = "语义重排失败"


def _rerank_enabled(options: MappingOptions, embedder: EmbeddingService | None) -> bool:
    return options.rerank_requested and embedder is not None


async def map_product_async(
    product: ProductRecord,
    scorer: HybridScorer,
    options: MappingOptions,
    embedder: EmbeddingService | None = None,
) -> MappingOutcome:
    """单个商品：词法打分与判定，未匹配时按需语义重排，最后补充置信度注释。"""
    ranked = scorer.rank(product)
    verdict = evaluate_gate(ranked, options)
    status = verdict.status
    category_path = verdict.category_path
    confidence = verdict.confidence
    reason = verdict.reason

    if status == NOT_MAPPED and verdict.best is not None and _rerank_enabled(options, embedder):
        assert embedder is not None
        try:
            result = await rerank_candidates(product, ranked, options, embedder)
        except EmbeddingServiceError as e:
            logger.warning("语义重排失败 [%s]: %s", product.product_name[:40], e)
            reason = f"{reason}; {REASON_RERANK_ERROR}: {e}"
        except Exception as e:
            # 注入的向量服务可能抛出任意异常，只影响当前商品
            logger.warning("语义重排异常 [%s]: %s", product.product_name[:40], e, exc_info=True)
            reason = f"{reason}; {REASON_RERANK_ERROR}: {e}"
        else:
            if result is not None:
                ranked = result.candidates
                confidence = result.confidence
                summary = result.summary
                reason = f"{result.reason}; {summary}" if summary else result.reason
                if result.status == MAPPED and result.best is not None:
                    status = MAPPED
                    category_path = result.best.category_path
                    logger.info("语义重排升级为已匹配 [%s] -> %s", product.product_name[:40], category_path)

    reason = annotate_confidence_floor(reason, status, confidence, options)
    return MappingOutcome(
        product=product,
        category_path=category_path if status == MAPPED else None,
        confidence=confidence,
        status=status,
        candidates=ranked[: options.candidate_limit],
        reason=reason,
    )


def summarize(outcomes: Sequence[MappingOutcome], products: ProductBatch) -> MappingStats:
    """运行级汇总：总数、已匹配、未匹配、成功率与用到的类目数。"""
    total = len(outcomes)
    mapped = sum(1 for o in outcomes if o.status == MAPPED)
    used = {o.category_path for o in outcomes if o.category_path}
    return MappingStats(
        brand_name=products.brand_name,
        source_file=products.source_file,
        total_products=total,
        mapped_products=mapped,
        unmapped_products=total - mapped,
        mapping_success_rate=(mapped / total) * 100 if total else 0.0,
        categories_used=len(used),
    )


async def map_products_async(
    categories: Sequence[CategoryNode],
    products: ProductBatch,
    options: MappingOptions | None = None,
    embedder: EmbeddingService | None = None,
    *,
    show_progress: bool = False,
) -> MappingResponse:
    """
    批量映射（异步）。结果顺序与输入一致。

    Raises:
        InputError: 类目语料为空，在处理任何商品之前抛出。
    """
    options = options or MappingOptions()
    scorer = HybridScorer(categories)
    if options.use_rerank and not _rerank_enabled(options, embedder):
        logger.info("语义重排已开启，但未配置凭据或向量服务，仅使用词法判定")

    logger.info("开始类目映射: 类目 %d 条, 商品 %d 条", len(scorer.categories), len(products.records))
    outcomes: list[MappingOutcome] = []
    for product in tqdm(
        products.records,
        desc="类目映射",
        unit="条",
        disable=not show_progress,
    ):
        outcome = await map_product_async(product, scorer, options, embedder)
        logger.debug(
            "商品 [%s] -> %s (%s)",
            product.product_name[:40],
            outcome.category_path or "-",
            outcome.reason,
        )
        outcomes.append(outcome)

    stats = summarize(outcomes, products)
    logger.info(
        "类目映射完成: 已匹配 %d 条, 未匹配 %d 条, 成功率 %.1f%%",
        stats.mapped_products,
        stats.unmapped_products,
        stats.mapping_success_rate,
    )
    return MappingResponse(items=outcomes, stats=stats)


def map_products(
    categories: Sequence[CategoryNode],
    products: ProductBatch,
    options: MappingOptions | None = None,
    embedder: EmbeddingService | None = None,
    *,
    show_progress: bool = False,
) -> MappingResponse:
    """批量映射（同步入口，内部 asyncio.run）。"""
    return asyncio.run(
        map_products_async(categories, products, options, embedder, show_progress=show_progress)
    )


__all__ = [
    "map_product_async",
    "map_products",
    "map_products_async",
    "summarize",
]

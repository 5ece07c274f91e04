"""core.rerank 单元测试：向量服务用确定性替身，不访问网络。"""

import asyncio

import pytest

from core.exceptions import EmbeddingResponseError, EmbeddingUnavailableError
from core.rerank import (
    REASON_CONFIRMED,
    REASON_NO_TEXT,
    REASON_UNCONFIRMED,
    rerank_candidates,
    rerank_thresholds,
    rescore_top,
)
from domain.category import MAPPED, NOT_MAPPED, CandidateMatch
from models.schemas import MappingOptions

PATH_A = "Насосы///Дренажные"
PATH_B = "Клапаны///Обратные"
PATH_C = "Фильтры///Воздушные"

OPTIONS = MappingOptions(use_rerank=True, api_key="sk-test")


def _cand(path: str, index: int, score: float, overlap: int = 1) -> CandidateMatch:
    return CandidateMatch(
        category_id=f"cat-{index}",
        category_path=path,
        category_index=index,
        score=score,
        overlap=overlap,
        jaccard=0.1,
    )


def _ranked() -> list[CandidateMatch]:
    return [_cand(PATH_A, 0, 0.5), _cand(PATH_B, 1, 0.45), _cand(PATH_C, 2, 0.4)]


class ShortEmbedder:
    async def embed(self, texts):
        return [[1.0, 0.0]]


class SlowEmbedder:
    async def embed(self, texts):
        await asyncio.sleep(1)
        return [[1.0, 0.0] for _ in texts]


def test_thresholds_are_stricter_than_lexical() -> None:
    assert rerank_thresholds(MappingOptions()) == (0.78, 0, 0.025)
    assert rerank_thresholds(MappingOptions(similarity_threshold=0.9, token_overlap_threshold=3)) == (0.9, 2, 0.025)
    assert rerank_thresholds(MappingOptions(gap_threshold=0.01)) == (0.78, 0, 0.02)


def test_rescore_top_uses_cosine() -> None:
    top = [_cand(PATH_A, 0, 0.5), _cand(PATH_B, 1, 0.4)]
    rescored = rescore_top(top, [2.0, 0.0], [[0.0, 3.0], [1.0, 1.0]])
    assert rescored[0].score == 0.0
    assert rescored[1].score == pytest.approx(0.707107)
    assert rescored[0].category_path == PATH_A
    assert top[0].score == 0.5


def test_rerank_confirms_semantic_match(product_factory, embedder_cls) -> None:
    product = product_factory("клапан обратный")
    embedder = embedder_cls(
        {"клапан обратный": [1.0, 0.0], PATH_A: [0.0, 1.0], PATH_B: [1.0, 0.0], PATH_C: [0.0, 1.0]}
    )
    result = asyncio.run(rerank_candidates(product, _ranked(), OPTIONS, embedder))
    assert result is not None
    assert result.status == MAPPED
    assert result.best is not None and result.best.category_path == PATH_B
    assert result.best.score == 1.0
    assert result.confidence == 100
    assert result.reason.startswith(REASON_CONFIRMED)
    assert embedder.calls == [["клапан обратный", PATH_A, PATH_B, PATH_C]]


def test_rerank_merges_rescored_with_remainder(product_factory, embedder_cls) -> None:
    product = product_factory("клапан обратный")
    embedder = embedder_cls({"клапан обратный": [1.0, 0.0], PATH_A: [0.0, 1.0]})
    options = MappingOptions(use_rerank=True, api_key="sk-test", rerank_top_k=1)
    result = asyncio.run(rerank_candidates(product, _ranked(), options, embedder))
    assert result is not None
    assert embedder.calls == [["клапан обратный", PATH_A]]
    assert [c.category_path for c in result.candidates] == [PATH_B, PATH_C, PATH_A]
    assert result.gap == pytest.approx(0.05)
    assert result.status == NOT_MAPPED
    assert result.reason.startswith(REASON_UNCONFIRMED)


def test_rerank_requires_gap_between_top_two(product_factory, embedder_cls) -> None:
    product = product_factory("клапан обратный")
    embedder = embedder_cls(
        {"клапан обратный": [1.0, 0.0], PATH_A: [1.0, 0.0], PATH_B: [1.0, 0.1], PATH_C: [0.0, 1.0]}
    )
    result = asyncio.run(rerank_candidates(product, _ranked(), OPTIONS, embedder))
    assert result is not None
    assert result.best is not None and result.best.score == 1.0
    assert result.gap < 0.02
    assert result.status == NOT_MAPPED


def test_product_without_text_skips_service(product_factory, embedder_cls) -> None:
    embedder = embedder_cls()
    result = asyncio.run(rerank_candidates(product_factory("  "), _ranked(), OPTIONS, embedder))
    assert result is not None
    assert result.status == NOT_MAPPED
    assert result.reason == REASON_NO_TEXT
    assert result.confidence == 50
    assert embedder.calls == []


def test_no_candidates_returns_none(product_factory, embedder_cls) -> None:
    embedder = embedder_cls()
    assert asyncio.run(rerank_candidates(product_factory("клапан"), [], OPTIONS, embedder)) is None
    assert embedder.calls == []


def test_malformed_response_raises(product_factory) -> None:
    with pytest.raises(EmbeddingResponseError):
        asyncio.run(rerank_candidates(product_factory("клапан"), _ranked(), OPTIONS, ShortEmbedder()))


def test_service_timeout_is_unavailable(product_factory) -> None:
    options = MappingOptions(use_rerank=True, api_key="sk-test", rerank_timeout=0.05)
    with pytest.raises(EmbeddingUnavailableError):
        asyncio.run(rerank_candidates(product_factory("клапан"), _ranked(), options, SlowEmbedder()))


def test_service_error_propagates(product_factory, embedder_cls) -> None:
    embedder = embedder_cls(error=EmbeddingUnavailableError("down"))
    with pytest.raises(EmbeddingUnavailableError, match="down"):
        asyncio.run(rerank_candidates(product_factory("клапан"), _ranked(), OPTIONS, embedder))

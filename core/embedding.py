"""
文本向量服务：以注入的能力对象提供「批量文本 -> 向量」，打分与判定逻辑不直接依赖网络。

- EmbeddingService: 协议，只有一个异步方法 embed(texts)。
- OpenAIEmbeddingService: OpenAI 兼容 /embeddings 接口的实现（openai SDK，不重试）。
"""

from __future__ import annotations

import logging
from typing import Protocol, Sequence, runtime_checkable

import numpy as np

from models.schemas import DEFAULT_EMBEDDING_BASE_URL, DEFAULT_EMBEDDING_MODEL, EmbeddingConfigResult

from .exceptions import EmbeddingResponseError, EmbeddingUnavailableError

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingService(Protocol):
    """给定 N 段文本，按输入顺序返回 N 个维度一致的向量。"""

    async def embed(self, texts: Sequence[str]) -> list[list[float]]: ...


def l2_normalize(vector: Sequence[float] | np.ndarray) -> np.ndarray:
    """L2 归一化；范数为 0 时原样返回。"""
    arr = np.asarray(vector, dtype=np.float64)
    norm = float(np.linalg.norm(arr))
    if norm == 0:
        return arr
    return arr / norm


def validate_embeddings(vectors: Sequence[Sequence[float]], expected: int) -> list[list[float]]:
    """校验向量数量、维度一致且全部为有限数值，否则抛出 EmbeddingResponseError。"""
    if len(vectors) != expected:
        raise EmbeddingResponseError(f"向量数量不符: 期望 {expected}，实际 {len(vectors)}")
    try:
        dims = {len(v) for v in vectors}
    except TypeError as e:
        raise EmbeddingResponseError(f"向量格式错误: {e}") from e
    if len(dims) > 1:
        raise EmbeddingResponseError(f"向量维度不一致: {sorted(dims)}")
    if dims == {0}:
        raise EmbeddingResponseError("向量为空")
    try:
        arr = np.asarray(vectors, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise EmbeddingResponseError(f"向量含非数值元素: {e}") from e
    if not np.isfinite(arr).all():
        raise EmbeddingResponseError("向量含 NaN 或无穷值")
    return arr.tolist()


def _suppress_third_party_logging() -> tuple[tuple[logging.Logger, ...], tuple[int, ...]]:
    """临时将 httpx / openai 日志设为 WARNING。返回 (loggers, old_levels)。"""
    loggers = (
        logging.getLogger("httpx"),
        logging.getLogger("openai"),
    )
    old_levels = tuple(lg.level for lg in loggers)
    for lg in loggers:
        lg.setLevel(logging.WARNING)
    return loggers, old_levels


def _restore_logging(
    loggers: tuple[logging.Logger, ...],
    old_levels: tuple[int, ...],
) -> None:
    """恢复第三方库日志级别。"""
    for lg, level in zip(loggers, old_levels):
        lg.setLevel(level)


class OpenAIEmbeddingService:
    """OpenAI 兼容的向量服务。失败统一转为 EmbeddingUnavailableError / EmbeddingResponseError。"""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_EMBEDDING_BASE_URL,
        model: str = DEFAULT_EMBEDDING_MODEL,
        timeout: float = 30.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: EmbeddingConfigResult) -> OpenAIEmbeddingService | None:
        """未配置 api_key 时返回 None。"""
        if not config.api_key:
            return None
        return cls(
            config.api_key,
            base_url=config.base_url,
            model=config.model,
            timeout=config.timeout,
        )

    def __repr__(self) -> str:
        return f"OpenAIEmbeddingService(base_url={self.base_url!r}, model={self.model!r})"

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        from openai import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncOpenAI

        inputs = list(texts)
        if not inputs:
            return []
        loggers, old_levels = _suppress_third_party_logging()
        try:
            async with AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
                max_retries=0,
            ) as client:
                resp = await client.embeddings.create(model=self.model, input=inputs)
        except APITimeoutError as e:
            raise EmbeddingUnavailableError(f"向量服务超时（{self.timeout}s）") from e
        except APIConnectionError as e:
            raise EmbeddingUnavailableError(f"向量服务不可达: {e}") from e
        except APIStatusError as e:
            raise EmbeddingUnavailableError(f"向量服务返回错误 ({e.status_code}): {e.message}") from e
        except APIError as e:
            raise EmbeddingResponseError(f"向量服务响应异常: {e}") from e
        finally:
            _restore_logging(loggers, old_levels)

        data = getattr(resp, "data", None)
        if not isinstance(data, list):
            raise EmbeddingResponseError("向量服务响应缺少 data 字段")
        try:
            ordered = sorted(data, key=lambda item: item.index)
            vectors = [list(item.embedding) for item in ordered]
        except (AttributeError, TypeError) as e:
            raise EmbeddingResponseError(f"向量服务响应格式错误: {e}") from e
        logger.debug("向量服务返回 %d 条向量, model=%s", len(vectors), self.model)
        return validate_embeddings(vectors, len(inputs))

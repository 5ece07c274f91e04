"""pytest 共享 fixture 与配置。"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

import pytest

# 保证项目根在 sys.path 中，便于导入 core / app / domain / models
_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from core.loaders import build_categories  # noqa: E402
from core.text import normalize_tokens  # noqa: E402
from domain.category import CategoryNode, ProductRecord  # noqa: E402

BRAKE_CATEGORIES = [
    "Тормозные системы///Пневматические тормоза",
    "Системы безопасности///Аварийные тормоза",
]


class FakeEmbeddingService:
    """确定性的向量服务替身：按文本查表返回向量，记录每次调用。"""

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: Sequence[float] = (0.0, 0.0, 1.0),
        error: Exception | None = None,
    ) -> None:
        self.vectors = vectors or {}
        self.default = list(default)
        self.error = error
        self.calls: list[list[str]] = []

    async def embed(self, texts: Sequence[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.error is not None:
            raise self.error
        return [list(self.vectors.get(t, self.default)) for t in texts]


def make_product(
    text: str,
    *,
    category_old: str | None = None,
    product_name: str | None = None,
    index: int = 0,
) -> ProductRecord:
    """直接构造商品记录：全文即 text，商品名默认与全文相同。"""
    return ProductRecord(
        id=f"row-{index}",
        row_index=index,
        product_name=text if product_name is None else product_name,
        category_old=category_old,
        aggregated_text=text,
        tokens=normalize_tokens(text),
    )


@pytest.fixture
def brake_categories() -> list[CategoryNode]:
    return build_categories(BRAKE_CATEGORIES)


@pytest.fixture
def brake_product() -> ProductRecord:
    return make_product("пневматический тормозной клапан", category_old="Пневматика")


@pytest.fixture
def product_factory():
    return make_product


@pytest.fixture
def embedder_cls() -> type[FakeEmbeddingService]:
    return FakeEmbeddingService

"""语料构建：类目路径列表 -> CategoryNode，商品字段行 -> ProductRecord。表格解析由调用方负责。"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Sequence

from domain.category import CategoryNode, ProductBatch, ProductRecord

from .text import join_tokens, normalize_tokens

logger = logging.getLogger(__name__)

LEVEL_DELIMITER = "///"

# 商品字段名（含大小写变体），按拼接全文时的顺序排列
PRODUCT_NAME_KEYS = ("Product name", "product name")
CATEGORY_KEYS = ("Category", "category")
DESCRIPTION_KEYS = ("Description", "description")
META_DESCRIPTION_KEYS = ("Meta description",)
PAGE_TITLE_KEYS = ("Page title",)
SEO_NAME_KEYS = ("SEO name",)
CHARACTERISTICS_KEYS = ("Характеристики",)

_BRAND_IN_FILENAME = re.compile(r"бренд\s*-\s*([^.]*)", re.IGNORECASE)


def split_levels(raw_path: str) -> list[str]:
    """按 /// 拆分层级，去空白并丢弃空层级。"""
    return [level.strip() for level in raw_path.split(LEVEL_DELIMITER) if level.strip()]


def build_category(raw_path: str, index: int) -> CategoryNode:
    path = raw_path.strip()
    tokens = normalize_tokens(path)
    return CategoryNode(
        id=f"cat-{index}",
        raw_path=path,
        levels=split_levels(path),
        tokens=tokens,
        normalized_text=join_tokens(tokens),
    )


def build_categories(raw_paths: Iterable[Any]) -> list[CategoryNode]:
    """由原始路径列表构建类目节点；跳过空行，重复路径保留。"""
    categories: list[CategoryNode] = []
    for value in raw_paths:
        path = str(value).strip() if value is not None else ""
        if not path:
            continue
        categories.append(build_category(path, len(categories)))
    logger.debug("类目语料构建完成: %d 条", len(categories))
    return categories


def _field(row: Mapping[str, Any], keys: Sequence[str]) -> str:
    """按候选键名取第一个存在的字段值，转为去空白字符串。"""
    for key in keys:
        if key in row and row[key] is not None:
            return str(row[key]).strip()
    return ""


def aggregate_text(parts: Iterable[str]) -> str:
    return " ".join(p for p in parts if p)


def build_product(row: Mapping[str, Any], index: int, source_file: str = "") -> ProductRecord:
    """从一行原始字段构建商品记录：商品名、旧类目、描述等非空字段拼接为全文。"""
    product_name = _field(row, PRODUCT_NAME_KEYS)
    category_old = _field(row, CATEGORY_KEYS)
    description = _field(row, DESCRIPTION_KEYS)
    aggregated = aggregate_text(
        [
            product_name,
            category_old,
            description,
            _field(row, META_DESCRIPTION_KEYS),
            _field(row, PAGE_TITLE_KEYS),
            _field(row, SEO_NAME_KEYS),
            _field(row, CHARACTERISTICS_KEYS),
        ]
    )
    return ProductRecord(
        id=f"row-{index}",
        source_file=source_file,
        row_index=index,
        fields=dict(row),
        product_name=product_name,
        category_old=category_old or None,
        description=description or None,
        aggregated_text=aggregated,
        tokens=normalize_tokens(aggregated),
    )


def extract_brand_name(filename: str | None) -> str | None:
    """从文件名中的「бренд - 名称」片段提取品牌名。"""
    if not filename:
        return None
    m = _BRAND_IN_FILENAME.search(filename)
    if m and m.group(1).strip():
        return m.group(1).strip()
    return None


def build_products(rows: Iterable[Mapping[str, Any]], source_file: str = "") -> ProductBatch:
    """由字段行列表构建一次运行的商品语料，品牌名取自来源文件名。"""
    records = [build_product(row, i, source_file) for i, row in enumerate(rows)]
    return ProductBatch(
        brand_name=extract_brand_name(source_file),
        source_file=source_file,
        records=records,
    )

"""将映射结果整理为导出行：原始字段按固定列序保留，并写入新类目与带品牌的类目路径。"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping, Sequence

from core.loaders import LEVEL_DELIMITER
from domain.category import MappingOutcome, MappingResponse

NOT_FOUND = "Не найдено"

OUTPUT_COLUMNS = (
    "Product code",
    "Language",
    "Category old",
    "Category",
    "Category brand",
    "Price",
    "Images",
    "Product name",
    "Description",
    "Meta description",
    "Page title",
    "SEO name",
    "Характеристики",
)

# 这些键已由对应列给出，不再原样追加
_CONSUMED_KEYS = ("Category", "category", "Product name", "product name", "Product code", "product code")


def _first(fields: Mapping[str, Any], keys: Sequence[str], default: Any = "") -> Any:
    """按键名顺序取第一个非 None 的值。"""
    for key in keys:
        value = fields.get(key)
        if value is not None:
            return value
    return default


def _cell(value: Any) -> Any:
    return "" if value is None else value


def _normalize_path(category_path: str | None) -> str:
    if not category_path:
        return NOT_FOUND
    levels = [level.strip() for level in category_path.split(LEVEL_DELIMITER) if level.strip()]
    return LEVEL_DELIMITER.join(levels) or NOT_FOUND


def build_category_brand(brand_name: str | None, category_path: str | None) -> str:
    """
    带品牌的类目：每个层级前加「品牌///」，末尾再附品牌名，以空格连接。
    未匹配时为 Не найдено；没有品牌时原样返回路径。
    """
    path = (category_path or "").strip()
    if not path:
        return brand_name or ""
    if path.lower() == NOT_FOUND.lower():
        return NOT_FOUND
    if not brand_name:
        return path
    levels = [level.strip() for level in path.split(LEVEL_DELIMITER) if level.strip()]
    if not levels:
        return f"{brand_name}{LEVEL_DELIMITER}{path} {brand_name}"
    return " ".join([*(f"{brand_name}{LEVEL_DELIMITER}{level}" for level in levels), brand_name])


def build_output_row(outcome: MappingOutcome, brand_name: str | None = None) -> dict[str, Any]:
    """单个商品的导出行：先按 OUTPUT_COLUMNS 排列，其余原始字段按原顺序追加。"""
    product = outcome.product
    fields = product.fields
    category = _normalize_path(outcome.category_path)
    brand = brand_name or _first(fields, ("Brand", "brand"), None) or None

    row: dict[str, Any] = {
        "Product code": _cell(_first(fields, ("Product code", "product code", "Артикул"))),
        "Language": _cell(_first(fields, ("Language", "language"))),
        "Category old": _cell(_first(fields, ("Category", "category"), product.category_old)),
        "Category": category,
        "Category brand": build_category_brand(brand, category),
        "Price": _cell(_first(fields, ("Price", "price"))),
        "Images": _cell(_first(fields, ("Images", "images"))),
        "Product name": product.product_name or _cell(_first(fields, ("Product name", "product name"))),
        "Description": _cell(_first(fields, ("Description", "description"))),
        "Meta description": _cell(_first(fields, ("Meta description", "meta description"))),
        "Page title": _cell(_first(fields, ("Page title", "page title"))),
        "SEO name": _cell(_first(fields, ("SEO name", "seo name"))),
        "Характеристики": _cell(fields.get("Характеристики")),
    }
    for key, value in fields.items():
        if key in _CONSUMED_KEYS or key in row:
            continue
        row[key] = _cell(value)
    return row


def build_output_rows(response: MappingResponse) -> list[dict[str, Any]]:
    """整批导出行，品牌名取自本次运行的统计信息。"""
    brand = response.stats.brand_name
    return [build_output_row(outcome, brand) for outcome in response.items]


def write_output_rows(response: MappingResponse, output_path: Path) -> None:
    """将导出行写为 UTF-8 JSON 数组。"""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(
        json.dumps(build_output_rows(response), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )

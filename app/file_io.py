"""文件读写：类目路径文本、商品字段 JSON / JSON Lines 读取，映射结果写为 JSON。"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from domain.category import MappingResponse

JSON_LINES_SUFFIXES = (".jsonl", ".ndjson")
PRODUCT_SUFFIXES = (".json", *JSON_LINES_SUFFIXES)


def read_category_paths(file_path: Path) -> list[str]:
    """
    读取类目路径文件：UTF-8 文本，每行一个完整路径（层级以 /// 分隔）。
    去掉首尾空白与 BOM，跳过空行与 # 开头的注释行；重复路径保留。
    """
    path = Path(file_path)
    if not path.exists():
        raise RuntimeError(f"文件不存在: {path}")
    text = path.read_text(encoding="utf-8-sig")
    paths: list[str] = []
    for line in text.splitlines():
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        paths.append(s)
    return paths


def _ensure_object_rows(rows: Any, path: Path) -> list[dict[str, Any]]:
    if not isinstance(rows, list):
        raise RuntimeError(f"商品文件应为对象数组: {path}")
    result: list[dict[str, Any]] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict):
            raise RuntimeError(f"商品文件第 {i + 1} 条不是对象: {path}")
        result.append(row)
    return result


def read_product_rows(file_path: Path) -> list[dict[str, Any]]:
    """
    读取商品字段行：.json 为对象数组（或含 records 数组的对象），.jsonl / .ndjson 每行一个对象。
    字段原样保留，交由 core.loaders.build_products 解释。
    """
    path = Path(file_path)
    if path.suffix.lower() not in PRODUCT_SUFFIXES:
        raise RuntimeError(f"仅支持 JSON / JSON Lines 输入，当前: {path.suffix or path.name}")
    if not path.exists():
        raise RuntimeError(f"文件不存在: {path}")
    text = path.read_text(encoding="utf-8-sig")
    try:
        if path.suffix.lower() in JSON_LINES_SUFFIXES:
            rows = [json.loads(line) for line in text.splitlines() if line.strip()]
        else:
            data = json.loads(text) if text.strip() else []
            rows = data.get("records", []) if isinstance(data, dict) else data
    except json.JSONDecodeError as e:
        raise RuntimeError(f"解析商品文件失败 {path}: {e}") from e
    return _ensure_object_rows(rows, path)


def write_mapping_json(response: MappingResponse, output_path: Path) -> None:
    """将映射结果（含候选与依据）写为 UTF-8 JSON。"""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = response.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2),
        encoding="utf-8",
    )

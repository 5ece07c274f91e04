"""
类目映射入口：加载配置后，读取类目路径文件与商品文件，执行映射并将结果写入 output 目录。

流程拆分为：init_config -> load_data -> run_matching -> save_output，便于单测与维护。
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from app import (
    build_embedder,
    build_options,
    read_category_paths,
    read_product_rows,
    write_mapping_json,
    write_output_rows,
)
from core import InputError, build_categories, build_products, map_products
from core.config import (
    AppConfig,
    EmbeddingCredentials,
    get_config_display,
    get_log_dir,
    get_output_dir,
    inject,
    load_app_config,
    normalize_input_path,
)
from domain.category import CategoryNode, MappingResponse, ProductBatch
from models.schemas import MappingOptions, RunConfigSchema

logger = logging.getLogger(__name__)

def init_config(
    *,
    output_dir: Path | None = None,
    log_dir: Path | None = None,
) -> RunConfigSchema:
    """
    初始化配置与日志：加载应用配置、配置 logging，返回 RunConfigSchema。

    Args:
        output_dir: 结果输出目录，默认 get_output_dir()。
        log_dir: 日志目录，默认 get_log_dir()。
    """
    load_app_config()
    app_cfg = inject(AppConfig).app
    config = RunConfigSchema(
        output_dir=output_dir or get_output_dir(),
        log_dir=log_dir or get_log_dir(),
        output_suffix=app_cfg.output_suffix,
    )
    _setup_logging(config.log_dir, app_cfg.log_level)
    print(f"配置已加载: output_dir={config.output_dir}")
    return config


def _setup_logging(log_dir: Path, level: str = "INFO") -> None:
    """
    将日志按日期写入 log_dir，文件名 catalog_mapper_YYYYMMDD.log。
    若已存在指向当日日志文件的 FileHandler 则不再添加。
    """
    log_dir.mkdir(parents=True, exist_ok=True)
    today = datetime.now().strftime("%Y%m%d")
    log_file = log_dir / f"catalog_mapper_{today}.log"
    log_path = str(log_file.resolve())
    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    for h in root.handlers:
        if isinstance(h, logging.FileHandler) and getattr(h, "baseFilename", "") == log_path:
            return
    fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)


def load_data(categories_path: Path, products_path: Path) -> tuple[list[CategoryNode], ProductBatch]:
    """
    读取并构建类目语料与商品语料。

    Raises:
        FileNotFoundError: 输入文件不存在。
        InputError: 类目文件中没有有效路径。
        ValueError: 文件格式错误。
    """
    for path in (categories_path, products_path):
        if not path.exists():
            raise FileNotFoundError(f"文件不存在: {path}")
    try:
        categories = build_categories(read_category_paths(categories_path))
        products = build_products(read_product_rows(products_path), source_file=products_path.name)
    except RuntimeError as e:
        raise ValueError(str(e)) from e
    if not categories:
        raise InputError(f"类目文件中没有有效路径: {categories_path}")
    print(f"类目 {len(categories)} 条，商品 {len(products.records)} 条。")
    return categories, products


def run_matching(
    categories: list[CategoryNode],
    products: ProductBatch,
    options: MappingOptions,
    *,
    show_progress: bool = False,
) -> MappingResponse:
    """执行映射；开启语义重排且有凭据时创建向量服务。"""
    embedder = build_embedder(options, inject(EmbeddingCredentials))
    return map_products(categories, products, options, embedder, show_progress=show_progress)


def save_output(
    response: MappingResponse,
    output_dir: Path,
    *,
    source_stem: str | None = None,
    suffix: str = "类目映射结果",
    as_rows: bool = False,
) -> Path:
    """
    将映射结果写为 JSON 并保存到 output_dir，返回文件路径。
    as_rows 为 True 时写出导出行（原始字段 + Category / Category brand），文件名带 _rows。

    Raises:
        RuntimeError: 写入失败。
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if as_rows:
        suffix = f"{suffix}_rows"
    name = f"{source_stem}_{suffix}_{stamp}.json" if source_stem else f"{suffix}_{stamp}.json"
    output_path = output_dir / name
    try:
        if as_rows:
            write_output_rows(response, output_path)
        else:
            write_mapping_json(response, output_path)
    except OSError as e:
        raise RuntimeError(f"写入结果文件失败: {output_path}") from e
    return output_path


def _parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """解析命令行参数；args 为 None 时使用 sys.argv，便于单测注入。"""
    parser = argparse.ArgumentParser(
        description="类目映射：将商品行映射到目标类目树的叶子路径，证据不足时标记为未匹配。",
    )
    parser.add_argument("categories_file", help="类目路径文件（UTF-8，每行一个路径，层级以 /// 分隔）")
    parser.add_argument("products_file", help="商品文件（.json 对象数组或 .jsonl）")
    parser.add_argument("--output-dir", default=None, help="结果输出目录，默认 output/")
    rerank = parser.add_mutually_exclusive_group()
    rerank.add_argument("--rerank", dest="rerank", action="store_true", default=None, help="对未匹配商品启用语义重排")
    rerank.add_argument("--no-rerank", dest="rerank", action="store_false", help="关闭语义重排")
    parser.add_argument("--similarity-threshold", type=float, default=None)
    parser.add_argument("--gap-threshold", type=float, default=None)
    parser.add_argument("--token-overlap-threshold", type=int, default=None)
    parser.add_argument("--confidence-min-percent", type=int, default=None)
    parser.add_argument("--no-progress", action="store_true", help="不显示进度条")
    parser.add_argument("--rows", action="store_true", help="另外写出按导出列排列的商品行（含带品牌的类目）")
    return parser.parse_args(args)


def _print_summary(response: MappingResponse) -> None:
    stats = response.stats
    print(
        f"共 {stats.total_products} 条：已匹配 {stats.mapped_products} 条，未匹配 {stats.unmapped_products} 条，"
        f"成功率 {stats.mapping_success_rate:.1f}%，用到类目 {stats.categories_used} 个。"
    )


def main(args: list[str] | None = None) -> None:
    """
    入口：初始化配置 -> 读取输入 -> 映射 -> 写出结果。

      python main.py categories.txt products.json
      python main.py categories.txt products.jsonl --rerank --similarity-threshold 0.6
      python main.py "categories.txt" "бренд - Acme.json" --rows
    """
    parsed = _parse_args(args)
    output_dir = normalize_input_path(parsed.output_dir) if parsed.output_dir else None
    config = init_config(output_dir=output_dir)
    app_cfg = inject(AppConfig)

    categories_path = normalize_input_path(parsed.categories_file)
    products_path = normalize_input_path(parsed.products_file)
    try:
        categories, products = load_data(categories_path, products_path)
    except (FileNotFoundError, ValueError) as e:
        print(f"加载数据失败，退出: {e}")
        sys.exit(1)

    options = build_options(
        app_cfg.matching,
        app_cfg.embedding,
        inject(EmbeddingCredentials),
        use_rerank=parsed.rerank,
        overrides={
            "similarity_threshold": parsed.similarity_threshold,
            "gap_threshold": parsed.gap_threshold,
            "token_overlap_threshold": parsed.token_overlap_threshold,
            "confidence_min_percent": parsed.confidence_min_percent,
        },
    )
    if options.use_rerank:
        display = get_config_display()
        print(f"语义重排: model={display['model']}, key={display['api_key_masked'] or '未配置'}")

    show_progress = app_cfg.matching.show_progress and not parsed.no_progress
    response = run_matching(categories, products, options, show_progress=show_progress)
    _print_summary(response)

    try:
        out_path = save_output(
            response,
            config.output_dir,
            source_stem=products_path.stem,
            suffix=config.output_suffix,
        )
        rows_path = None
        if parsed.rows:
            rows_path = save_output(
                response,
                config.output_dir,
                source_stem=products_path.stem,
                suffix=config.output_suffix,
                as_rows=True,
            )
    except RuntimeError as e:
        print(str(e))
        sys.exit(1)
    print(f"已写入: {out_path}")
    if rows_path is not None:
        print(f"已写入: {rows_path}")


if __name__ == "__main__":
    main()

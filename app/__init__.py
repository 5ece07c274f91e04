"""应用层：输入文件读取、运行参数组装与结果写出。"""

from .batch import build_embedder, build_options
from .file_io import read_category_paths, read_product_rows, write_mapping_json
from .output import build_category_brand, build_output_rows, write_output_rows

__all__ = [
    "build_category_brand",
    "build_embedder",
    "build_options",
    "build_output_rows",
    "read_category_paths",
    "read_product_rows",
    "write_mapping_json",
    "write_output_rows",
]

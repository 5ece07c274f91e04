"""
core.config：整合路径、统一 YAML 配置 app_config.yaml 及加载。

- 配置：config/app_config.yaml（含 matching、embedding、app）。
- 路径：config 目录及 output/logs（见 .paths）
- 统一加载：load_app_config() 启动时调用一次；配置通过 inject(Annotated 类型) 获取。
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Annotated

from models.schemas import (
    AppConfigSchema,
    ConfigDisplay,
    EmbeddingConfigResult,
    EmbeddingSection,
    MatchingSection,
)

from . import deps as _deps
from . import embedding as _embedding
from . import loader as _loader
from . import paths as _paths

Depends = _deps.Depends
inject = _deps.inject
logger = logging.getLogger(__name__)

# ----- 路径（直接转发） -----

get_config_dir_raw = _paths.get_config_dir_raw
get_app_config_path = _loader.get_app_config_path
get_base_dir = _paths.get_base_dir
get_output_dir = _paths.get_output_dir
get_log_dir = _paths.get_log_dir
normalize_input_path = _paths.normalize_input_path

# ----- 向量服务凭据（直接转发） -----

mask_key = _embedding.mask_key
encrypt_key = _embedding.encrypt_key
decrypt_key = _embedding.decrypt_key
build_embedding_config_result = _embedding.build_embedding_config_result

# ----- 统一加载与缓存 -----

_loaded = False
_app_config_path: Path | None = None
_app_config: AppConfigSchema | None = None
_embedding_credentials: EmbeddingConfigResult | None = None


def _ensure_loaded() -> None:
    """确保配置已加载，未加载时执行一次 load_app_config()。"""
    if not _loaded:
        load_app_config()


def load_app_config(path: Path | None = None) -> None:
    """加载全部配置：从 config/app_config.yaml（或指定路径）读取并缓存。"""
    global _loaded, _app_config_path, _app_config, _embedding_credentials

    if _loaded:
        return

    _app_config_path = path or get_app_config_path()
    _app_config = _loader.load_app_config_yaml(_app_config_path)
    _embedding_credentials = build_embedding_config_result(_app_config.embedding)

    _loaded = True
    logger.debug("公用配置已加载: config_file=%s", _app_config_path)


def reset_app_config() -> None:
    """清除已缓存的配置，下次访问时重新加载。"""
    global _loaded, _app_config_path, _app_config, _embedding_credentials
    _loaded = False
    _app_config_path = None
    _app_config = None
    _embedding_credentials = None


def _resolve_app_config() -> AppConfigSchema:
    _ensure_loaded()
    assert _app_config is not None
    return _app_config


def _resolve_app_config_path() -> Path:
    _ensure_loaded()
    assert _app_config_path is not None
    return _app_config_path


def _resolve_embedding_credentials() -> EmbeddingConfigResult:
    _ensure_loaded()
    assert _embedding_credentials is not None
    return _embedding_credentials


def _get_matching_config() -> MatchingSection:
    return _resolve_app_config().matching


def _get_embedding_config() -> EmbeddingSection:
    return _resolve_app_config().embedding


# ----- 依赖注入：Annotated 类型别名（供 inject() 使用） -----

AppConfig = Annotated[AppConfigSchema, Depends(_resolve_app_config)]
AppConfigFilePath = Annotated[Path, Depends(_resolve_app_config_path)]
MatchingConfig = Annotated[MatchingSection, Depends(_get_matching_config)]
EmbeddingConfig = Annotated[EmbeddingSection, Depends(_get_embedding_config)]
EmbeddingCredentials = Annotated[EmbeddingConfigResult, Depends(_resolve_embedding_credentials)]


def get_config_display() -> dict[str, str]:
    """用于界面/日志的配置展示：base_url、model、key 脱敏。"""
    credentials = inject(EmbeddingCredentials)
    display = ConfigDisplay(
        base_url=credentials.base_url,
        model=credentials.model,
        api_key_masked=mask_key(credentials.api_key),
        configured="是" if credentials.api_key else "否",
    )
    return display.model_dump()


# ----- CLI：加密 key -----


def _parse_plain_key_from_argv(argv: list[str]) -> str:
    """从命令行参数解析待加密的明文 API Key。"""
    if len(argv) >= 3 and argv[1] == "encrypt":
        return argv[2].strip()
    return argv[1].strip()


def main_encrypt(argv: list[str] | None = None) -> None:
    """命令行：python -m core.config encrypt <明文key> 或 python -m core.config <明文key>"""
    argv = sys.argv if argv is None else argv
    if len(argv) < 2 or (argv[1] == "encrypt" and len(argv) < 3):
        print("用法: python -m core.config encrypt <明文API_Key>  或  python -m core.config <明文API_Key>")
        print("输出加密后的字符串，填入 config/app_config.yaml 的 embedding.api_key_encrypted。")
        sys.exit(1)
    plain_key = _parse_plain_key_from_argv(argv)
    print("将下面一行填入 config/app_config.yaml 的 embedding.api_key_encrypted：")
    print(encrypt_key(plain_key))


__all__ = [
    "load_app_config",
    "reset_app_config",
    "get_config_dir_raw",
    "get_config_display",
    "build_embedding_config_result",
    "mask_key",
    "encrypt_key",
    "decrypt_key",
    "main_encrypt",
    "get_app_config_path",
    "get_base_dir",
    "get_output_dir",
    "get_log_dir",
    "normalize_input_path",
    "Depends",
    "inject",
    "AppConfig",
    "AppConfigFilePath",
    "MatchingConfig",
    "EmbeddingConfig",
    "EmbeddingCredentials",
]

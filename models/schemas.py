"""
Pydantic V2 Schema：运行参数、统一配置 app_config.yaml 各节及解析结果。

- MappingOptions: 单次运行的阈值、语义重排开关与凭据。
- MatchingSection / EmbeddingSection / AppSection: app_config.yaml 各节。
- EmbeddingConfigResult: 向量服务配置解析结果（api_key 已解密）。
- RunConfigSchema: CLI 运行时路径。
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_EMBEDDING_BASE_URL = "https://api.openai.com/v1"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


def _strip_str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


# ----- 运行参数 -----


class MappingOptions(BaseModel):
    """单次映射运行的参数；缺省字段取默认值，调用方负责阈值合理性。"""

    similarity_threshold: float = Field(default=0.55, description="最佳候选的最低得分")
    gap_threshold: float = Field(default=0.05, description="第一、二名得分差的最低要求")
    token_overlap_threshold: int = Field(default=1, description="最低词干重叠数")
    confidence_min_percent: int = Field(default=50, description="置信度下限（仅用于注释）")
    use_rerank: bool = Field(default=False, description="是否对未匹配商品启用语义重排")
    api_key: str | None = Field(default=None, repr=False, description="向量服务凭据")
    rerank_top_k: int = Field(default=6, ge=1, description="送去重排的候选数")
    rerank_timeout: float = Field(default=30.0, gt=0, description="向量服务调用超时（秒）")
    candidate_limit: int = Field(default=5, ge=5, description="结果中保留的候选数")

    @field_validator("api_key", mode="before")
    @classmethod
    def blank_key_to_none(cls, v: Any) -> str | None:
        s = _strip_str(v)
        return s or None

    @property
    def rerank_requested(self) -> bool:
        """调用方开启了重排且提供了凭据。"""
        return self.use_rerank and bool(self.api_key)

    model_config = {"frozen": True}


# ----- app_config.yaml 各节 -----


class MatchingSection(BaseModel):
    """matching 节：词法判定阈值与输出候选数。"""

    similarity_threshold: float = Field(default=0.55)
    gap_threshold: float = Field(default=0.05)
    token_overlap_threshold: int = Field(default=1)
    confidence_min_percent: int = Field(default=50)
    candidate_limit: int = Field(default=5, ge=5)
    use_rerank: bool = Field(default=False, description="默认是否启用语义重排")
    show_progress: bool = Field(default=True, description="CLI 是否显示进度条")


class EmbeddingSection(BaseModel):
    """embedding 节：OpenAI 兼容向量服务。"""

    api_key: str = Field(default="", description="明文 API Key")
    api_key_encrypted: str = Field(default="", description="加密后的 API Key")
    base_url: str = Field(default=DEFAULT_EMBEDDING_BASE_URL, description="API base URL")
    model: str = Field(default=DEFAULT_EMBEDDING_MODEL, description="向量模型名")
    timeout: float = Field(default=30.0, gt=0, description="单次请求超时（秒）")
    top_k: int = Field(default=6, ge=1, description="送去重排的候选数")

    @field_validator("api_key", "api_key_encrypted", "base_url", "model", mode="before")
    @classmethod
    def strip_strings(cls, v: Any) -> str:
        return _strip_str(v)

    @field_validator("base_url", mode="after")
    @classmethod
    def rstrip_slash(cls, v: str) -> str:
        return v.rstrip("/") if v else v


class AppSection(BaseModel):
    """app 节：输出文件名与日志。"""

    output_suffix: str = Field(default="类目映射结果", description="输出文件名后缀")
    log_level: str = Field(default="INFO", description="文件日志级别")

    @field_validator("log_level", mode="after")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return (v or "INFO").upper()


class AppConfigSchema(BaseModel):
    """app_config.yaml 根结构，各节均有默认值。"""

    matching: MatchingSection = Field(default_factory=MatchingSection)
    embedding: EmbeddingSection = Field(default_factory=EmbeddingSection)
    app: AppSection = Field(default_factory=AppSection)


# ----- 解析结果 -----


class EmbeddingConfigResult(BaseModel):
    """向量服务配置加载结果：api_key 为 None 表示未配置，不调用服务。"""

    api_key: str | None = Field(default=None, repr=False, description="API Key")
    base_url: str = Field(default=DEFAULT_EMBEDDING_BASE_URL)
    model: str = Field(default=DEFAULT_EMBEDDING_MODEL)
    timeout: float = Field(default=30.0)


class ConfigDisplay(BaseModel):
    """用于界面/日志的配置展示：base_url、model、key 脱敏。"""

    base_url: str = Field(default="", description="API base URL")
    model: str = Field(default="", description="模型名")
    api_key_masked: str = Field(default="", description="脱敏后的 Key")
    configured: str = Field(default="否", description="是否已配置（是/否）")


class RunConfigSchema(BaseModel):
    """运行时路径配置：输出目录、日志目录。"""

    output_dir: Path = Field(description="映射结果输出目录")
    log_dir: Path = Field(description="日志文件目录")
    output_suffix: str = Field(default="类目映射结果", description="输出文件名后缀")

    model_config = {"frozen": False}

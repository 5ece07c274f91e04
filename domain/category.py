"""类目映射相关数据模型（Pydantic V2）：类目节点、商品记录、候选、映射结果与统计。"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

MatchStatus = Literal["mapped", "not_mapped"]

MAPPED: MatchStatus = "mapped"
NOT_MAPPED: MatchStatus = "not_mapped"


def _strip_str(v: Any) -> str:
    if v is None:
        return ""
    return str(v).strip()


class CategoryNode(BaseModel):
    """目标类目树的叶子路径：原始路径、层级与归一化词干。单次运行内不可变。"""

    id: str = Field(description="类目 ID（按语料顺序生成）")
    raw_path: str = Field(description="原始层级路径，层级以 /// 分隔")
    levels: list[str] = Field(default_factory=list, description="各层级名称")
    tokens: list[str] = Field(default_factory=list, description="归一化词干序列")
    normalized_text: str = Field(default="", description="词干以空格拼接")

    @field_validator("raw_path", mode="before")
    @classmethod
    def strip_path(cls, v: Any) -> str:
        return _strip_str(v)

    model_config = {"frozen": True}


class ProductRecord(BaseModel):
    """待映射商品行：原始字段原样保留，供导出方使用。"""

    id: str = Field(description="商品 ID（按行号生成）")
    source_file: str = Field(default="", description="来源文件名")
    row_index: int = Field(default=0, ge=0, description="来源行号（从 0 开始）")
    fields: dict[str, Any] = Field(default_factory=dict, description="原始字段")
    product_name: str = Field(default="", description="商品名称")
    category_old: str | None = Field(default=None, description="旧类目标签，可选")
    description: str | None = Field(default=None, description="商品描述，可选")
    aggregated_text: str = Field(default="", description="多个文本字段拼接后的全文")
    tokens: list[str] = Field(default_factory=list, description="全文的归一化词干序列")

    @field_validator("product_name", "aggregated_text", mode="before")
    @classmethod
    def strip_str_fields(cls, v: Any) -> str:
        return _strip_str(v)

    @field_validator("category_old", "description", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> str | None:
        s = _strip_str(v)
        return s or None

    model_config = {"frozen": True}


class ProductBatch(BaseModel):
    """一次运行的商品语料：品牌、来源文件与记录列表。"""

    brand_name: str | None = Field(default=None, description="品牌名（来自文件名），可选")
    source_file: str = Field(default="", description="来源文件名")
    records: list[ProductRecord] = Field(default_factory=list, description="商品记录")


class CandidateMatch(BaseModel):
    """单个候选类目及其得分；每次运行重新计算，不持久化。"""

    category_id: str = Field(description="类目 ID")
    category_path: str = Field(description="类目原始路径")
    category_index: int = Field(default=0, ge=0, description="类目在语料中的位置，同分时靠前者优先")
    score: float = Field(default=0.0, description="组合得分")
    overlap: int = Field(default=0, ge=0, description="与类目词干的重叠数")
    jaccard: float = Field(default=0.0, ge=0.0, le=1.0, description="词干集合 Jaccard 系数")

    model_config = {"frozen": True}


class MappingOutcome(BaseModel):
    """单个商品的映射结果。category_path 为 None 当且仅当 status 为 not_mapped。"""

    product: ProductRecord
    category_path: str | None = Field(default=None, description="选中的类目路径")
    confidence: int = Field(default=0, ge=0, le=100, description="置信度百分比")
    status: MatchStatus = Field(default=NOT_MAPPED, description="mapped / not_mapped")
    candidates: list[CandidateMatch] = Field(default_factory=list, description="排序后的前 N 个候选")
    reason: str = Field(default="", description="判定依据")

    @property
    def is_mapped(self) -> bool:
        return self.status == MAPPED


class MappingStats(BaseModel):
    """运行级汇总。"""

    brand_name: str | None = None
    source_file: str = ""
    total_products: int = 0
    mapped_products: int = 0
    unmapped_products: int = 0
    mapping_success_rate: float = Field(default=0.0, ge=0.0, le=100.0, description="映射成功率（百分比）")
    categories_used: int = Field(default=0, description="实际用到的不同类目数")


class MappingResponse(BaseModel):
    """一次运行的完整输出：按输入顺序排列的结果与汇总。"""

    items: list[MappingOutcome] = Field(default_factory=list)
    stats: MappingStats = Field(default_factory=MappingStats)

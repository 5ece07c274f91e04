"""匹配核心的异常类型。"""

from __future__ import annotations


class InputError(ValueError):
    """输入语料不可用（如类目语料为空），整次运行在处理任何商品之前终止。"""


class EmbeddingServiceError(RuntimeError):
    """向量服务调用失败；只影响当前商品的语义重排，运行继续。"""


class EmbeddingUnavailableError(EmbeddingServiceError):
    """向量服务不可达、返回错误状态或超时。"""


class EmbeddingResponseError(EmbeddingServiceError):
    """向量服务返回的数据格式不正确（数量或维度不一致等）。"""

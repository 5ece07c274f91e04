"""
匹配核心：分词与词干、双轴 TF-IDF 向量空间、混合打分、词法判定、语义重排与批量映射。
"""

from domain.category import CandidateMatch, CategoryNode, MappingOutcome, MappingResponse, ProductBatch, ProductRecord

from .embedding import EmbeddingService, OpenAIEmbeddingService
from .exceptions import EmbeddingResponseError, EmbeddingServiceError, EmbeddingUnavailableError, InputError
from .gate import ADMISSION_RULES, evaluate_gate
from .loaders import build_categories, build_products, extract_brand_name
from .matching import map_products, map_products_async
from .scoring import HybridScorer
from .text import char_ngrams, normalize_tokens, tokenize
from .vectorizer import TfIdfVectorizer

__all__ = [
    "ADMISSION_RULES",
    "CandidateMatch",
    "CategoryNode",
    "EmbeddingResponseError",
    "EmbeddingService",
    "EmbeddingServiceError",
    "EmbeddingUnavailableError",
    "HybridScorer",
    "InputError",
    "MappingOutcome",
    "MappingResponse",
    "OpenAIEmbeddingService",
    "ProductBatch",
    "ProductRecord",
    "TfIdfVectorizer",
    "build_categories",
    "build_products",
    "char_ngrams",
    "evaluate_gate",
    "extract_brand_name",
    "map_products",
    "map_products_async",
    "normalize_tokens",
    "tokenize",
]

"""混合打分：词干轴与字符 n-gram 轴的 TF-IDF 余弦加权，叠加旧类目重叠与 Jaccard 加分。"""

from __future__ import annotations

import logging
from typing import Sequence

from domain.category import CandidateMatch, CategoryNode, ProductRecord

from .exceptions import InputError
from .text import char_ngrams, compute_overlap, jaccard_index, normalize_tokens
from .vectorizer import TfIdfVectorizer

logger = logging.getLogger(__name__)

WORD_WEIGHT = 0.6
CHAR_WEIGHT = 0.4
# 旧类目每个重叠词干的加分，不设上限
LEGACY_OVERLAP_BOOST = 0.05
JACCARD_BOOST = 0.1
SCORE_DECIMALS = 6


def sort_candidates(candidates: Sequence[CandidateMatch]) -> list[CandidateMatch]:
    """按得分降序排列，同分时语料中靠前的类目优先。"""
    return sorted(candidates, key=lambda c: (-c.score, c.category_index))


def product_char_text(product: ProductRecord) -> str:
    """字符轴使用的商品文本：商品名 + 旧类目。"""
    return f"{product.product_name} {product.category_old or ''}"


class HybridScorer:
    """
    一次运行内的打分器：构造时由类目语料建立两个独立的 TF-IDF 模型（词干轴、字符轴），
    之后对每个商品调用 rank()。模型只读，不随商品变化。
    """

    def __init__(self, categories: Sequence[CategoryNode]) -> None:
        if not categories:
            raise InputError("类目语料为空，无法构建向量空间")
        self.categories = list(categories)
        self._category_token_sets = [set(c.tokens) for c in self.categories]

        self.word_vectorizer = TfIdfVectorizer([c.tokens for c in self.categories])
        self._category_word_vectors = [self.word_vectorizer.vectorize(c.tokens) for c in self.categories]

        category_char_tokens = [char_ngrams(c.raw_path) for c in self.categories]
        self.char_vectorizer = TfIdfVectorizer(category_char_tokens)
        self._category_char_vectors = [self.char_vectorizer.vectorize(t) for t in category_char_tokens]

        logger.debug(
            "向量空间已构建: 类目 %d 条, 词干词表 %d, 字符词表 %d",
            len(self.categories),
            self.word_vectorizer.vocab_size,
            self.char_vectorizer.vocab_size,
        )

    def rank(self, product: ProductRecord) -> list[CandidateMatch]:
        """对所有类目打分，返回排序后的候选列表（每个类目一条）。"""
        product_word_vec = self.word_vectorizer.vectorize(product.tokens)
        product_char_vec = self.char_vectorizer.vectorize(char_ngrams(product_char_text(product)))
        old_tokens = set(normalize_tokens(product.category_old))
        product_token_set = set(product.tokens)

        candidates: list[CandidateMatch] = []
        for index, category in enumerate(self.categories):
            word_score = self.word_vectorizer.similarity(product_word_vec, self._category_word_vectors[index])
            char_score = self.char_vectorizer.similarity(product_char_vec, self._category_char_vectors[index])
            combined = WORD_WEIGHT * word_score + CHAR_WEIGHT * char_score

            category_token_set = self._category_token_sets[index]
            if old_tokens:
                overlap_old = compute_overlap(old_tokens, category_token_set)
                if overlap_old > 0:
                    combined += LEGACY_OVERLAP_BOOST * overlap_old

            overlap = compute_overlap(product_token_set, category_token_set)
            jaccard = jaccard_index(product_token_set, category_token_set)
            combined += JACCARD_BOOST * jaccard

            candidates.append(
                CandidateMatch(
                    category_id=category.id,
                    category_path=category.raw_path,
                    category_index=index,
                    score=round(combined, SCORE_DECIMALS),
                    overlap=overlap,
                    jaccard=round(jaccard, SCORE_DECIMALS),
                )
            )
        return sort_candidates(candidates)

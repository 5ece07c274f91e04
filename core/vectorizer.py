"""TF-IDF 向量空间：词表与 IDF 只由类目语料构建，商品文本按同一词表向量化。"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from sklearn.feature_extraction.text import TfidfVectorizer as _SkTfidf  # type: ignore[import-untyped]


def _as_tokens(doc: Sequence[str]) -> list[str]:
    """输入已是 token 序列，跳过 sklearn 自带的分词与小写。"""
    return list(doc)


class TfIdfVectorizer:
    """
    由一组 token 序列（语料）构建的向量空间。

    - 词表：token -> 下标，按语料中首次出现的顺序；
    - IDF：ln((N + 1) / (df + 1)) + 1（smooth_idf），恒为正且随 df 单调递减；
    - vectorize：词频 × IDF 后 L2 归一化，范数为 0 时为全零向量；词表外 token 忽略。

    构建后只读，可在一次运行的所有商品之间共享。语料没有任何 token 时词表为空，所有向量长度为 0。
    """

    def __init__(self, documents: Sequence[Sequence[str]]) -> None:
        vocabulary: dict[str, int] = {}
        for tokens in documents:
            for token in tokens:
                if token not in vocabulary:
                    vocabulary[token] = len(vocabulary)
        self._vocabulary = vocabulary
        self._model: _SkTfidf | None = None
        self._columns = np.zeros(0, dtype=np.intp)
        self._idf = np.zeros(0, dtype=np.float64)
        if vocabulary:
            self._model = _SkTfidf(analyzer=_as_tokens, lowercase=False, norm="l2", smooth_idf=True)
            self._model.fit([list(tokens) for tokens in documents])
            # sklearn 按字母序编号，换回首次出现顺序
            self._columns = np.array([self._model.vocabulary_[token] for token in vocabulary], dtype=np.intp)
            self._idf = np.asarray(self._model.idf_, dtype=np.float64)[self._columns]
        self._idf.setflags(write=False)

    @property
    def vocabulary(self) -> dict[str, int]:
        return dict(self._vocabulary)

    @property
    def idf(self) -> np.ndarray:
        return self._idf

    @property
    def vocab_size(self) -> int:
        return len(self._vocabulary)

    def idf_of(self, token: str) -> float | None:
        """词表内 token 的 IDF；词表外返回 None。"""
        idx = self._vocabulary.get(token)
        return None if idx is None else float(self._idf[idx])

    def vectorize(self, tokens: Sequence[str]) -> np.ndarray:
        """词频 × IDF，再 L2 归一化，返回稠密向量。"""
        if self._model is None:
            return np.zeros(0, dtype=np.float64)
        row = self._model.transform([list(tokens)]).toarray()[0]
        return np.asarray(row[self._columns], dtype=np.float64)

    def similarity(self, vec_a: np.ndarray, vec_b: np.ndarray) -> float:
        """同一模型产生的两个单位向量的点积，即余弦相似度。"""
        return float(vec_a @ vec_b)

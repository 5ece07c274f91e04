"""文本处理：分词、俄语词干归一化、停用词过滤与字符 n-gram，纯函数便于单测与复用。"""

from __future__ import annotations

import re
from typing import Iterable

import snowballstemmer  # type: ignore[import-untyped]

_stemmer = snowballstemmer.stemmer("russian")

# 功能词 + 类目中过于泛化的名词，词干化之后再比对
STOP_WORDS = frozenset(
    {
        "и", "в", "во", "не", "что", "он", "она", "но", "а", "как", "к", "ко", "до", "вы", "мы", "они",
        "из", "у", "по", "на", "это", "тот", "та", "те", "для", "при", "от", "со", "соответствие",
        "комплект", "система", "системы", "системный", "оборудование", "оборудования", "решение",
        "решения", "платформа", "платформы", "серия", "серии", "тип", "типа", "устройство",
        "устройства", "timmer", "бренд", "brand", "series", "system", "systems", "device", "devices",
    }
)

# 字母（含西里尔字母）与数字的最长连续片段，其余均为分隔符
TOKEN_PATTERN = re.compile(r"[a-zа-яё0-9]+", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")
_NON_NGRAM_CHARS = re.compile(r"[^a-zа-яё0-9 ]")

DEFAULT_NGRAM_MIN = 3
DEFAULT_NGRAM_MAX = 5


def tokenize(text: str | None) -> list[str]:
    """提取字母/数字片段；None 或空串返回空列表。"""
    if not text:
        return []
    return TOKEN_PATTERN.findall(text)


def stem(token: str) -> str:
    return _stemmer.stemWord(token)


def normalize_tokens(text: str | None) -> list[str]:
    """
    分词后小写、词干化，去掉长度 <= 1 的词与停用词。
    保留顺序与重复（词频需要）。
    """
    stems = (stem(token.lower()) for token in tokenize(text))
    return [s for s in stems if len(s) > 1 and s not in STOP_WORDS]


def join_tokens(tokens: Iterable[str]) -> str:
    return " ".join(tokens)


def char_ngrams(
    value: str | None,
    min_n: int = DEFAULT_NGRAM_MIN,
    max_n: int = DEFAULT_NGRAM_MAX,
) -> list[str]:
    """
    生成字符 n-gram：小写、合并空白、去掉字母/数字/空格以外的字符，
    再依次输出长度 min_n..max_n 的全部连续子串（先全部 3-gram，再 4-gram ...）。
    捕捉词干化覆盖不到的复合词与拼写变体。
    """
    if not value:
        return []
    collapsed = _WHITESPACE.sub(" ", value.lower())
    cleaned = _NON_NGRAM_CHARS.sub("", collapsed)
    ngrams: list[str] = []
    for n in range(min_n, max_n + 1):
        for i in range(len(cleaned) - n + 1):
            ngrams.append(cleaned[i : i + n])
    return ngrams


def compute_overlap(tokens_a: set[str], tokens_b: set[str]) -> int:
    """两个词干集合的交集大小。"""
    return len(tokens_a & tokens_b)


def jaccard_index(tokens_a: set[str], tokens_b: set[str]) -> float:
    """交集 / 并集；并集为空时为 0。"""
    overlap = compute_overlap(tokens_a, tokens_b)
    union = len(tokens_a) + len(tokens_b) - overlap
    return overlap / union if union > 0 else 0.0

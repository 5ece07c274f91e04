"""core.text 单元测试：分词、词干归一化、字符 n-gram。"""

from __future__ import annotations

from core.text import (
    char_ngrams,
    compute_overlap,
    jaccard_index,
    join_tokens,
    normalize_tokens,
    tokenize,
)


def test_tokenize_empty() -> None:
    assert tokenize(None) == []
    assert tokenize("") == []
    assert tokenize(" -/ ") == []


def test_tokenize_splits_on_non_alnum() -> None:
    assert tokenize("Клапан-ABC 12/3, ёлка") == ["Клапан", "ABC", "12", "3", "ёлка"]


def test_normalize_lowercases_and_drops_short_and_stop_words() -> None:
    assert normalize_tokens("Brand X100 valve system a") == ["x100", "valve"]
    assert normalize_tokens("для и в") == []


def test_normalize_keeps_duplicates_and_order() -> None:
    assert normalize_tokens("valve pump valve") == ["valve", "pump", "valve"]


def test_normalize_stems_inflections_together() -> None:
    assert normalize_tokens("тормоза") == normalize_tokens("тормоз")
    assert normalize_tokens("Тормозные") == normalize_tokens("тормозной")
    assert normalize_tokens("пневматические") == normalize_tokens("пневматический")


def test_join_tokens() -> None:
    assert join_tokens(["a1", "b2"]) == "a1 b2"


def test_char_ngrams_ranges_in_order() -> None:
    assert char_ngrams("abcd", 3, 4) == ["abc", "bcd", "abcd"]


def test_char_ngrams_cleans_and_collapses() -> None:
    # 斜杠被去掉而不是替换为空格；多个空白合并为一个
    assert char_ngrams("A/B  c", 3, 3) == ["ab ", "b c"]


def test_char_ngrams_short_or_empty() -> None:
    assert char_ngrams("ab") == []
    assert char_ngrams("") == []
    assert char_ngrams(None) == []


def test_char_ngrams_keeps_duplicates() -> None:
    assert char_ngrams("aaaa", 3, 3) == ["aaa", "aaa"]


def test_overlap_and_jaccard() -> None:
    a = {"x", "y", "z"}
    b = {"y", "z", "w"}
    assert compute_overlap(a, b) == 2
    assert jaccard_index(a, b) == 2 / 4
    assert jaccard_index(set(), set()) == 0.0

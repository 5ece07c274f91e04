"""core.gate 单元测试：各判定规则、拒绝依据、置信度注释与单调性。"""

from __future__ import annotations

import pytest

from core.gate import (
    ADMISSION_RULES,
    NOTE_CONFIDENCE_FLOOR,
    REASON_NO_CANDIDATES,
    annotate_confidence_floor,
    compute_gap,
    confidence_percent,
    evaluate_gate,
)
from domain.category import MAPPED, NOT_MAPPED, CandidateMatch
from models.schemas import MappingOptions

DEFAULTS = MappingOptions()


def _cand(score: float, overlap: int = 0, jaccard: float = 0.0, index: int = 0) -> CandidateMatch:
    return CandidateMatch(
        category_id=f"cat-{index}",
        category_path=f"Путь///{index}",
        category_index=index,
        score=score,
        overlap=overlap,
        jaccard=jaccard,
    )


def test_rule_order_and_names() -> None:
    assert [r.name for r in ADMISSION_RULES] == [
        "strict_gap",
        "jaccard_relaxed_gap",
        "extra_overlap",
        "score_margin",
    ]


def test_no_candidates() -> None:
    verdict = evaluate_gate([], DEFAULTS)
    assert verdict.status == NOT_MAPPED
    assert verdict.reason == REASON_NO_CANDIDATES
    assert verdict.category_path is None


def test_strict_gap_admits() -> None:
    verdict = evaluate_gate([_cand(0.6, 1, 0.1, 0), _cand(0.5, index=1)], DEFAULTS)
    assert verdict.status == MAPPED
    assert verdict.rule == "strict_gap"
    assert verdict.category_path == "Путь///0"
    assert verdict.gap == pytest.approx(0.1)
    assert "rule=strict_gap" in verdict.reason


def test_jaccard_relaxed_gap_admits() -> None:
    verdict = evaluate_gate([_cand(0.6, 1, 0.35, 0), _cand(0.575, index=1)], DEFAULTS)
    assert verdict.status == MAPPED
    assert verdict.rule == "jaccard_relaxed_gap"


def test_extra_overlap_admits() -> None:
    verdict = evaluate_gate([_cand(0.6, 2, 0.35, 0), _cand(0.585, index=1)], DEFAULTS)
    assert verdict.status == MAPPED
    assert verdict.rule == "extra_overlap"


def test_score_margin_admits_without_overlap() -> None:
    verdict = evaluate_gate([_cand(0.7, 0, 0.35, 0), _cand(0.69, index=1)], DEFAULTS)
    assert verdict.status == MAPPED
    assert verdict.rule == "score_margin"


def test_low_score_rejected_with_summary() -> None:
    verdict = evaluate_gate([_cand(0.5, 3, 0.5, 0), _cand(0.1, index=1)], DEFAULTS)
    assert verdict.status == NOT_MAPPED
    assert verdict.rule is None
    assert "score=0.50" in verdict.reason
    assert "overlap=3" in verdict.reason
    assert "gap=0.40" in verdict.reason
    assert "jaccard=0.50" in verdict.reason


def test_ambiguous_gap_rejected() -> None:
    verdict = evaluate_gate([_cand(0.6, 1, 0.1, 0), _cand(0.59, index=1)], DEFAULTS)
    assert verdict.status == NOT_MAPPED
    assert verdict.confidence == 60


def test_single_candidate_gap_is_its_score() -> None:
    best = _cand(0.6, 1, 0.1)
    assert compute_gap(best, None) == 0.6
    verdict = evaluate_gate([best], DEFAULTS)
    assert verdict.status == MAPPED
    assert verdict.second is None


def test_zero_score_never_admitted() -> None:
    options = MappingOptions(similarity_threshold=0, gap_threshold=0, token_overlap_threshold=0)
    verdict = evaluate_gate([_cand(0.0, index=0), _cand(0.0, index=1)], options)
    assert verdict.status == NOT_MAPPED


def test_confidence_percent() -> None:
    assert confidence_percent(0.684) == 68
    assert confidence_percent(0.686) == 69
    assert confidence_percent(1.2) == 100
    assert confidence_percent(-0.2) == 0


def test_confidence_floor_note() -> None:
    assert annotate_confidence_floor("x", NOT_MAPPED, 60, DEFAULTS) == f"x; {NOTE_CONFIDENCE_FLOOR}"
    assert annotate_confidence_floor("x", NOT_MAPPED, 40, DEFAULTS) == "x"
    assert annotate_confidence_floor("x", MAPPED, 90, DEFAULTS) == "x"


@pytest.mark.parametrize(
    "ranked",
    [
        [_cand(0.6, 1, 0.1, 0), _cand(0.5, index=1)],
        [_cand(0.6, 1, 0.35, 0), _cand(0.575, index=1)],
        [_cand(0.7, 0, 0.35, 0), _cand(0.69, index=1)],
        [_cand(0.58, 2, 0.4, 0)],
        [_cand(0.5, 1, 0.2, 0), _cand(0.2, index=1)],
    ],
)
def test_similarity_threshold_monotonic(ranked: list[CandidateMatch]) -> None:
    statuses = [
        evaluate_gate(ranked, MappingOptions(similarity_threshold=t)).status
        for t in (0.3, 0.45, 0.55, 0.6, 0.65, 0.75, 0.9)
    ]
    # 阈值升高后，一旦变为 not_mapped 就不会再变回 mapped
    first_rejection = statuses.index(NOT_MAPPED) if NOT_MAPPED in statuses else len(statuses)
    assert all(s == MAPPED for s in statuses[:first_rejection])
    assert all(s == NOT_MAPPED for s in statuses[first_rejection:])

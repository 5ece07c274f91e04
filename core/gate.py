"""
词法判定：根据排序后的候选决定 mapped / not_mapped。

判定规则为有序、具名、可单独测试的谓词列表，任一规则通过即判为 mapped；
阈值与权重保持固定，便于核对每条商品的判定依据。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Sequence

from domain.category import MAPPED, NOT_MAPPED, CandidateMatch, MatchStatus
from models.schemas import MappingOptions

MIN_JACCARD = 0.3
RELAXED_GAP_FACTOR = 0.4
EXTRA_OVERLAP_GAP_FACTOR = 0.2
SCORE_MARGIN = 0.08

REASON_NO_CANDIDATES = "无候选类目"
REASON_MAPPED = "自动匹配"
REASON_LOW_CONFIDENCE = "置信不足"
NOTE_CONFIDENCE_FLOOR = "仅达到置信度下限，不足以判定匹配"


@dataclass(frozen=True)
class GateInput:
    """规则判定所需的输入：最佳候选、第二候选（可无）、分差与阈值。"""

    best: CandidateMatch
    second: CandidateMatch | None
    gap: float
    options: MappingOptions

    @property
    def passes_score(self) -> bool:
        return self.best.score >= self.options.similarity_threshold

    @property
    def passes_overlap(self) -> bool:
        return self.best.overlap >= self.options.token_overlap_threshold

    @property
    def passes_jaccard(self) -> bool:
        return self.best.jaccard >= MIN_JACCARD


@dataclass(frozen=True)
class AdmissionRule:
    """具名判定规则。"""

    name: str
    description: str
    predicate: Callable[[GateInput], bool]

    def admits(self, gate_input: GateInput) -> bool:
        return self.predicate(gate_input)


def _strict_gap(g: GateInput) -> bool:
    return g.passes_score and g.passes_overlap and g.gap >= g.options.gap_threshold


def _jaccard_relaxed_gap(g: GateInput) -> bool:
    return (
        g.passes_score
        and g.passes_overlap
        and g.passes_jaccard
        and g.gap >= g.options.gap_threshold * RELAXED_GAP_FACTOR
    )


def _extra_overlap(g: GateInput) -> bool:
    return (
        g.passes_score
        and g.passes_jaccard
        and g.best.overlap >= g.options.token_overlap_threshold + 1
        and (g.second is None or g.gap >= g.options.gap_threshold * EXTRA_OVERLAP_GAP_FACTOR)
    )


def _score_margin(g: GateInput) -> bool:
    return g.passes_score and g.passes_jaccard and g.best.score >= g.options.similarity_threshold + SCORE_MARGIN


ADMISSION_RULES: tuple[AdmissionRule, ...] = (
    AdmissionRule("strict_gap", "得分、重叠、分差均达标", _strict_gap),
    AdmissionRule("jaccard_relaxed_gap", "Jaccard 达标时放宽分差至 40%", _jaccard_relaxed_gap),
    AdmissionRule("extra_overlap", "重叠多一个词干时放宽分差至 20%", _extra_overlap),
    AdmissionRule("score_margin", "得分高出阈值 0.08 且 Jaccard 达标", _score_margin),
)


@dataclass(frozen=True)
class GateVerdict:
    """判定结果。rule 为通过的规则名，未通过时为 None。"""

    status: MatchStatus
    best: CandidateMatch | None
    second: CandidateMatch | None
    gap: float
    confidence: int
    rule: str | None
    reason: str

    @property
    def category_path(self) -> str | None:
        if self.status == MAPPED and self.best is not None:
            return self.best.category_path
        return None


def compute_gap(best: CandidateMatch | None, second: CandidateMatch | None) -> float:
    """第一名与第二名的得分差；无第二名时为第一名得分。"""
    if best is None:
        return 0.0
    if second is None:
        return best.score
    return best.score - second.score


def confidence_percent(score: float) -> int:
    """得分 × 100 四舍五入，限定在 [0, 100]。"""
    return min(100, max(0, math.floor(score * 100 + 0.5)))


def format_summary(best: CandidateMatch | None, gap: float) -> str:
    if best is None:
        return ""
    return f"score={best.score:.2f}, overlap={best.overlap}, gap={gap:.2f}, jaccard={best.jaccard:.2f}"


def top_two(ranked: Sequence[CandidateMatch]) -> tuple[CandidateMatch | None, CandidateMatch | None]:
    best = ranked[0] if ranked else None
    second = ranked[1] if len(ranked) > 1 else None
    return best, second


def evaluate_gate(
    ranked: Sequence[CandidateMatch],
    options: MappingOptions,
    rules: Sequence[AdmissionRule] = ADMISSION_RULES,
) -> GateVerdict:
    """
    对排序后的候选做词法判定。
    得分 <= 0 的最佳候选没有任何证据，任何阈值下都不予通过。
    """
    best, second = top_two(ranked)
    if best is None:
        return GateVerdict(
            status=NOT_MAPPED,
            best=None,
            second=None,
            gap=0.0,
            confidence=0,
            rule=None,
            reason=REASON_NO_CANDIDATES,
        )

    gap = compute_gap(best, second)
    summary = format_summary(best, gap)
    confidence = confidence_percent(best.score)
    gate_input = GateInput(best=best, second=second, gap=gap, options=options)

    admitted: AdmissionRule | None = None
    if best.score > 0:
        admitted = next((rule for rule in rules if rule.admits(gate_input)), None)

    if admitted is not None:
        return GateVerdict(
            status=MAPPED,
            best=best,
            second=second,
            gap=gap,
            confidence=confidence,
            rule=admitted.name,
            reason=f"{REASON_MAPPED} ({summary}, rule={admitted.name})",
        )
    return GateVerdict(
        status=NOT_MAPPED,
        best=best,
        second=second,
        gap=gap,
        confidence=confidence,
        rule=None,
        reason=f"{REASON_LOW_CONFIDENCE} ({summary})",
    )


def annotate_confidence_floor(reason: str, status: MatchStatus, confidence: int, options: MappingOptions) -> str:
    """未匹配但置信度已达下限时，在依据中注明仅靠下限不足以判定。"""
    if status != NOT_MAPPED or confidence < options.confidence_min_percent:
        return reason
    return f"{reason}; {NOTE_CONFIDENCE_FLOOR}" if reason else NOTE_CONFIDENCE_FLOOR

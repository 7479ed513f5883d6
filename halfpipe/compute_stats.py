"""
halfpipe/compute_stats.py
Descriptive statistics shared by the analysis scripts: summaries, Pearson
correlation, the official trimmed mean, grouped aggregation, crash streaks
and per-judge profiles.

Every function is pure. Empty input, missing values and NaN raise
InsufficientDataError instead of producing a degenerate number.
"""
import math
import statistics
from dataclasses import dataclass

from classify import RunClassification, is_completed
from errors import InsufficientDataError, MalformedInputError

PANEL_SIZE = 6


def _checked(values, what: str = 'values') -> list:
    values = list(values)
    if not values:
        raise InsufficientDataError(f"no {what} given")
    for v in values:
        if v is None or math.isnan(v):
            raise InsufficientDataError(f"{what} contain a missing or NaN entry")
    return values


def _checked_panel(scores) -> list:
    scores = _checked(scores, 'judge scores')
    if len(scores) != PANEL_SIZE:
        raise InsufficientDataError(
            f"need exactly {PANEL_SIZE} judge scores, got {len(scores)}")
    return scores


def summarize(values) -> dict:
    """count/mean/median/std/min/max of a non-empty sequence.

    std is the sample (n-1) standard deviation, None for a single value.
    """
    values = _checked(values)
    return {
        'count':  len(values),
        'mean':   float(statistics.mean(values)),
        'median': float(statistics.median(values)),
        'std':    statistics.stdev(values) if len(values) > 1 else None,
        'min':    min(values),
        'max':    max(values),
    }


def mean(values) -> float:
    return float(statistics.mean(_checked(values)))


def correlation(xs, ys) -> float:
    """Pearson sample correlation coefficient of two equal-length sequences."""
    xs, ys = list(xs), list(ys)
    if len(xs) != len(ys):
        raise MalformedInputError(
            f"correlation needs equal-length sequences, got {len(xs)} and {len(ys)}")
    if len(xs) < 2:
        raise InsufficientDataError(f"correlation needs at least 2 points, got {len(xs)}")
    xs, ys = _checked(xs), _checked(ys)
    mx, my = statistics.mean(xs), statistics.mean(ys)
    sxx = sum((x - mx) ** 2 for x in xs)
    syy = sum((y - my) ** 2 for y in ys)
    if sxx == 0 or syy == 0:
        raise InsufficientDataError("correlation is undefined for a constant sequence")
    sxy = sum((x - mx) * (y - my) for x, y in zip(xs, ys))
    return float(sxy / math.sqrt(sxx * syy))


def panel_exclusions(scores) -> tuple[int, int]:
    """Indices of the (low, high) judge scores dropped from a 6-judge panel.

    Ties go to the first judge holding the extreme value.
    """
    scores = _checked_panel(scores)
    low = scores.index(min(scores))
    top = max(scores)
    high = next(i for i, s in enumerate(scores) if s == top and i != low)
    return low, high


def trimmed_mean(scores) -> float:
    """Mean of the middle four of exactly six judge scores."""
    scores = _checked_panel(scores)
    return float(statistics.mean(sorted(scores)[1:PANEL_SIZE - 1]))


def group_summaries(items, key, metric) -> dict:
    """Partition `items` by `key(item)` and summarize `metric(item)` per group.

    Groups keep first-seen order; a group only exists if something fell in it.
    """
    groups = {}
    for item in items:
        groups.setdefault(key(item), []).append(metric(item))
    return {k: summarize(values) for k, values in groups.items()}


def attach_streaks(classified) -> list[tuple]:
    """Scan each round in position order, tracking consecutive failures.

    Takes [(record, classification)] and returns
    [(record, classification, streak)] ordered by round then position,
    where streak is the number of failures immediately before a clean run
    and None for every other run. Completed runs (clean, skip, unknown)
    reset the count; it never carries across rounds.
    """
    by_round = {}
    for record, classification in classified:
        by_round.setdefault(record.round, []).append((record, classification))

    result = []
    for round_number in sorted(by_round):
        streak = 0
        for record, classification in sorted(by_round[round_number], key=lambda rc: rc[0].position):
            if not is_completed(classification):
                streak += 1
                result.append((record, classification, None))
                continue
            emitted = streak if classification == RunClassification.CLEAN else None
            result.append((record, classification, emitted))
            streak = 0
    return result


@dataclass(frozen=True)
class JudgeScore:
    competitor: str
    country: str
    round: int
    score: float
    deviation: float          # score - mean of the full panel
    final_score: float


@dataclass(frozen=True)
class JudgeProfile:
    number: int
    name: str
    country: str
    scores: tuple             # JudgeScore, in input order
    excluded_high: int
    excluded_low: int

    @property
    def deviations(self) -> list[float]:
        return [s.deviation for s in self.scores]


def judge_profiles(records, judges=None) -> list[JudgeProfile]:
    """Per-judge scores, deviations from the panel mean and exclusion counts.

    Only runs with a full six-judge panel are used. `judges` maps judge
    number to records.JudgeInfo; without it names fall back to "Judge N"
    and countries to the scores table.
    """
    judges = judges or {}
    entries = {n: [] for n in range(1, PANEL_SIZE + 1)}
    excluded_high = dict.fromkeys(entries, 0)
    excluded_low = dict.fromkeys(entries, 0)
    table_countries = {}

    for record in records:
        if not record.is_judged:
            continue
        scores = list(record.judge_scores)
        panel_mean = statistics.mean(scores)
        low, high = panel_exclusions(scores)
        excluded_low[low + 1] += 1
        excluded_high[high + 1] += 1
        for i, score in enumerate(scores):
            number = i + 1
            table_countries.setdefault(number, record.judge_countries[i])
            entries[number].append(JudgeScore(
                competitor=record.competitor,
                country=record.country,
                round=record.round,
                score=score,
                deviation=float(score - panel_mean),
                final_score=record.final_score,
            ))

    profiles = []
    for number, scores in entries.items():
        if not scores:
            continue
        info = judges.get(number)
        profiles.append(JudgeProfile(
            number=number,
            name=info.name if info else f'Judge {number}',
            country=info.country_code if info else table_countries.get(number, ''),
            scores=tuple(scores),
            excluded_high=excluded_high[number],
            excluded_low=excluded_low[number],
        ))
    return profiles


def round_output(value, digits: int = 2):
    """Round every float in a JSON-bound structure; everything else passes through."""
    if isinstance(value, bool):
        return value
    if isinstance(value, float):
        return round(value, digits)
    if isinstance(value, dict):
        return {k: round_output(v, digits) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [round_output(v, digits) for v in value]
    return value

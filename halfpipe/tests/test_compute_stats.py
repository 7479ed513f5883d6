import math
import statistics

import pytest
from classify import RunClassification
from compute_stats import (
    attach_streaks,
    correlation,
    group_summaries,
    judge_profiles,
    mean,
    panel_exclusions,
    round_output,
    summarize,
    trimmed_mean,
)
from errors import InsufficientDataError, MalformedInputError
from records import JudgeInfo, PerformanceRecord

CLEAN = RunClassification.CLEAN
WIPEOUT = RunClassification.WIPEOUT
CRASH = RunClassification.INCOMPLETE_CRASH
SKIP = RunClassification.INCOMPLETE_STRATEGIC_SKIP
UNKNOWN = RunClassification.INCOMPLETE_UNKNOWN

SCORES = [84.0, 85.25, 86.75, 88.25, 90.5]
PANEL_COUNTRIES = ('SLO', 'GBR', 'SWE', 'SUI', 'FRA', 'JPN')


def make_record(position, round_=1, score=None, judges=None, country='USA', competitor=None):
    return PerformanceRecord(
        competitor=competitor or f'Rider {position}', country=country, position=position,
        round=round_, final_score=score, judge_countries=PANEL_COUNTRIES,
        judge_scores=tuple(judges) if judges else (None,) * 6, tricks=(),
    )


def streaks_for(sequence, round_=1):
    classified = [(make_record(i + 1, round_), c) for i, c in enumerate(sequence)]
    return [s for _, _, s in attach_streaks(classified)]


# --- summaries ---

def test_summarize_returns_count_mean_median_std_min_max():
    stats = summarize(SCORES)
    assert stats['count'] == 5
    assert stats['mean'] == pytest.approx(86.95)
    assert stats['median'] == 86.75
    assert stats['std'] == pytest.approx(statistics.stdev(SCORES))  # sample stdev (N-1)
    assert stats['min'] == 84.0
    assert stats['max'] == 90.5


def test_summarize_single_value_has_no_std():
    stats = summarize([93.5])
    assert stats['count'] == 1
    assert stats['std'] is None


def test_summarize_empty_raises():
    with pytest.raises(InsufficientDataError):
        summarize([])


def test_summarize_nan_raises():
    with pytest.raises(InsufficientDataError):
        summarize([84.0, math.nan])


def test_mean_missing_value_raises():
    with pytest.raises(InsufficientDataError):
        mean([84.0, None])


# --- correlation ---

def test_correlation_perfect_positive_and_negative():
    assert correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert correlation([1, 2, 3], [6, 4, 2]) == pytest.approx(-1.0)


def test_correlation_is_symmetric():
    xs = [84.0, 85.25, 32.25, 84.75, 21.5, 80.5]
    ys = [5, 5, 3, 5, 2, 4]
    assert correlation(xs, ys) == pytest.approx(correlation(ys, xs))


def test_correlation_matches_statistics_module():
    xs = [84.0, 85.25, 32.25, 84.75, 21.5, 80.5]
    ys = [5, 5, 3, 5, 2, 4]
    assert correlation(xs, ys) == pytest.approx(statistics.correlation(xs, ys))


def test_correlation_needs_two_points():
    with pytest.raises(InsufficientDataError):
        correlation([1.0], [2.0])


def test_correlation_constant_sequence_raises():
    with pytest.raises(InsufficientDataError):
        correlation([1, 2, 3], [5, 5, 5])


def test_correlation_length_mismatch():
    with pytest.raises(MalformedInputError):
        correlation([1, 2, 3], [1, 2])


# --- trimmed mean ---

def test_trimmed_mean_drops_one_high_one_low():
    assert trimmed_mean([89, 95, 91, 91, 91, 91]) == pytest.approx(91.0)


def test_trimmed_mean_ties_at_extremes():
    assert trimmed_mean([50, 45, 50, 46, 49, 50]) == pytest.approx(48.75)


def test_trimmed_mean_equals_middle_four():
    scores = [93, 94, 96, 93, 91, 94]
    assert trimmed_mean(scores) == pytest.approx(statistics.mean(sorted(scores)[1:5]))


@pytest.mark.parametrize('scores', [[], [90, 91, 92, 93, 94], [90] * 7])
def test_trimmed_mean_needs_exactly_six(scores):
    with pytest.raises(InsufficientDataError):
        trimmed_mean(scores)


def test_panel_exclusions_first_judge_at_each_extreme():
    assert panel_exclusions([50, 45, 50, 46, 49, 50]) == (1, 0)


def test_panel_exclusions_all_equal_drops_two_different_judges():
    low, high = panel_exclusions([90, 90, 90, 90, 90, 90])
    assert (low, high) == (0, 1)


# --- grouping ---

def test_group_summaries_partitions_every_item():
    items = [('a', 1.0), ('b', 2.0), ('a', 3.0), ('c', 4.0), ('b', 6.0)]
    groups = group_summaries(items, key=lambda i: i[0], metric=lambda i: i[1])
    assert list(groups) == ['a', 'b', 'c']
    assert sum(g['count'] for g in groups.values()) == len(items)
    assert groups['b']['mean'] == pytest.approx(4.0)


def test_group_summaries_omits_empty_groups():
    groups = group_summaries([], key=lambda i: i, metric=lambda i: i)
    assert groups == {}


# --- streaks ---

def test_streak_reset_law():
    assert streaks_for([WIPEOUT, WIPEOUT, CLEAN, WIPEOUT, CLEAN]) == [None, None, 2, None, 1]


def test_incomplete_crash_counts_as_failure():
    assert streaks_for([WIPEOUT, CRASH, CLEAN]) == [None, None, 2]


@pytest.mark.parametrize('completed', [SKIP, UNKNOWN])
def test_skip_and_unknown_reset_without_emitting(completed):
    assert streaks_for([WIPEOUT, completed, CLEAN]) == [None, None, 0]


def test_streak_does_not_cross_rounds():
    classified = [
        (make_record(1, 1), WIPEOUT),
        (make_record(2, 1), WIPEOUT),
        (make_record(1, 2), CLEAN),
    ]
    assert [s for _, _, s in attach_streaks(classified)] == [None, None, 0]


def test_attach_streaks_orders_by_round_then_position():
    classified = [
        (make_record(2, 2), CLEAN),
        (make_record(1, 2), WIPEOUT),
        (make_record(1, 1), CLEAN),
    ]
    result = attach_streaks(classified)
    assert [(r.round, r.position, s) for r, _, s in result] == [(1, 1, 0), (2, 1, None), (2, 2, 1)]


# --- judge profiles ---

PANEL_RECORDS = [
    make_record(1, score=48.75, judges=[50, 45, 50, 46, 49, 50], country='AUS'),
    make_record(2, score=91.0, judges=[89, 95, 91, 91, 91, 91], country='JPN'),
    make_record(3),
]


def test_judge_profiles_skip_incomplete_panels():
    profiles = judge_profiles(PANEL_RECORDS)
    assert [p.number for p in profiles] == [1, 2, 3, 4, 5, 6]
    assert all(len(p.scores) == 2 for p in profiles)


def test_judge_profiles_deviation_from_panel_mean():
    profiles = judge_profiles(PANEL_RECORDS)
    panel_mean = statistics.mean([50, 45, 50, 46, 49, 50])
    assert profiles[1].deviations[0] == pytest.approx(45 - panel_mean)


def test_judge_profiles_exclusion_counts():
    profiles = {p.number: p for p in judge_profiles(PANEL_RECORDS)}
    assert profiles[2].excluded_low == 1     # 45 in the first run
    assert profiles[2].excluded_high == 1    # 95 in the second run
    assert profiles[1].excluded_high == 1    # first 50 in the first run
    assert profiles[1].excluded_low == 1     # 89 in the second run
    assert sum(p.excluded_high for p in profiles.values()) == 2


def test_judge_profiles_use_metadata_when_given():
    judges = {6: JudgeInfo(6, 'NAKAMURA Ken', 'JPN', 'Japan', 'Judge')}
    profiles = judge_profiles(PANEL_RECORDS, judges)
    assert profiles[5].name == 'NAKAMURA Ken'
    assert profiles[0].name == 'Judge 1'
    assert profiles[0].country == 'SLO'


# --- output ---

def test_round_output_rounds_nested_floats_only():
    out = round_output({'a': 86.34999, 'b': [1.23456, True, 3], 'c': None})
    assert out == {'a': 86.35, 'b': [1.23, True, 3], 'c': None}

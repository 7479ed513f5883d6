import pytest
from classify import (
    RunClassification,
    classify_all,
    classify_run,
    classify_score,
    is_completed,
    is_failure,
)
from records import DniResolution, PerformanceRecord


def make_record(competitor='Hiro Sato', round_=3, score=None):
    return PerformanceRecord(
        competitor=competitor, country='JPN', position=9, round=round_,
        final_score=score, judge_countries=('SLO', 'GBR', 'SWE', 'SUI', 'FRA', 'JPN'),
        judge_scores=(None,) * 6, tricks=(),
    )


def resolution(classification, competitor='Hiro Sato', round_=3):
    return DniResolution(competitor, 'JPN', 9, round_, 0, classification, 'heuristic', 'high')


def test_threshold_is_inclusive():
    assert classify_score(50.0) == RunClassification.CLEAN


def test_just_below_threshold_is_wipeout():
    assert classify_score(49.99) == RunClassification.WIPEOUT


def test_numeric_final_ignores_resolutions():
    table = {('Hiro Sato', 3): resolution(RunClassification.INCOMPLETE_CRASH)}
    assert classify_run(make_record(score=90.25), table) == RunClassification.CLEAN


def test_dni_without_resolution_is_unknown():
    assert classify_run(make_record()) == RunClassification.INCOMPLETE_UNKNOWN


def test_dni_looks_up_competitor_and_round():
    table = {
        ('Hiro Sato', 3): resolution(RunClassification.INCOMPLETE_STRATEGIC_SKIP),
        ('Hiro Sato', 2): resolution(RunClassification.INCOMPLETE_CRASH, round_=2),
    }
    assert classify_run(make_record(), table) == RunClassification.INCOMPLETE_STRATEGIC_SKIP
    assert classify_run(make_record(round_=2), table) == RunClassification.INCOMPLETE_CRASH
    assert classify_run(make_record(round_=1), table) == RunClassification.INCOMPLETE_UNKNOWN


@pytest.mark.parametrize('classification, failure', [
    (RunClassification.CLEAN, False),
    (RunClassification.WIPEOUT, True),
    (RunClassification.INCOMPLETE_CRASH, True),
    (RunClassification.INCOMPLETE_STRATEGIC_SKIP, False),
    (RunClassification.INCOMPLETE_UNKNOWN, False),
])
def test_failures_and_completed_runs(classification, failure):
    assert is_failure(classification) is failure
    assert is_completed(classification) is not failure


def test_classify_all_one_label_per_record():
    records = [make_record(score=93.5), make_record(score=48.75), make_record()]
    labels = [c for _, c in classify_all(records)]
    assert labels == [
        RunClassification.CLEAN,
        RunClassification.WIPEOUT,
        RunClassification.INCOMPLETE_UNKNOWN,
    ]


def test_classification_values_are_strings():
    assert RunClassification.INCOMPLETE_STRATEGIC_SKIP.value == 'incomplete-strategic-skip'

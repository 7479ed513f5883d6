import pytest
from errors import InsufficientDataError
from load_data import load_overview
from overview_analysis import (
    build_output,
    consecutive_scores,
    interpret_correlation,
    momentum,
    performance_clusters,
    scores_after_performance,
)
from records import CompetitorOverview


def make_overview(best_scores):
    return [
        CompetitorOverview(
            position=i + 1, competitor=f'Rider {i + 1}', country='USA', final_rank=i + 1,
            qual_score=80.0, run_scores=(score, None, None), best_score=score,
        )
        for i, score in enumerate(best_scores)
    ]


@pytest.mark.parametrize('r, wording', [
    (0.8, 'strong positive'),
    (0.3, 'moderate positive'),
    (0.0, 'weak'),
    (-0.3, 'moderate negative'),
    (-0.9, 'strong negative'),
])
def test_interpret_correlation(r, wording):
    assert interpret_correlation(r).startswith(wording)


def test_consecutive_scores_pairs_neighbours():
    result = consecutive_scores(make_overview([80.0, 85.0, 90.0, 95.0]))
    assert len(result['pairs']) == 3
    assert result['pairs'][0]['difference'] == pytest.approx(5.0)
    assert result['correlation'] == pytest.approx(1.0)


def test_consecutive_scores_too_few_riders():
    result = consecutive_scores(make_overview([80.0, 85.0]))
    assert result['correlation'] is None


def test_scores_after_performance_split_on_median():
    result = scores_after_performance(make_overview([80.0, 90.0, 70.0, 95.0, 85.0]))
    assert result['median'] == 85.0
    assert result['after_high']['count'] == 2     # after 90 and 95
    assert result['after_low']['count'] == 2      # after 80 and 70
    assert result['difference'] == pytest.approx((70.0 + 85.0) / 2 - (90.0 + 95.0) / 2)


def test_performance_clusters_partition_scores():
    scores = [60.0, 85.0, 86.0, 87.0, 88.0, 99.0]
    result = performance_clusters(make_overview(scores))
    assert result['poor'] == [60.0]
    assert result['exceptional'] == [99.0]
    assert len(result['poor']) + len(result['average']) + len(result['exceptional']) == len(scores)


def test_performance_clusters_single_rider():
    with pytest.raises(InsufficientDataError):
        performance_clusters(make_overview([90.0]))


def test_momentum_run_lengths():
    result = momentum(make_overview([1.0, 2.0, 3.0, 2.0, 1.0, 1.0, 5.0]))
    assert result['rising_runs'] == [2, 1]
    assert result['falling_runs'] == [2]
    assert result['avg_rising_run'] == pytest.approx(1.5)


def test_build_output_on_sample():
    output = build_output(load_overview(), updated_at='2026-02-14')
    assert output['updated_at'] == '2026-02-14'
    assert output['competitors'] == 12
    assert len(output['consecutive']['pairs']) == 11
    assert output['consecutive']['correlation'] is not None


def test_build_output_without_competitors():
    with pytest.raises(InsufficientDataError):
        build_output([])


def test_scores_after_performance_without_competitors():
    with pytest.raises(InsufficientDataError):
        scores_after_performance([])

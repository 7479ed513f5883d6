"""
halfpipe/overview_analysis.py
Reads the competition overview, looks for order effects in best scores taken
in performance order, writes overview_analysis.json.
Run: python overview_analysis.py
"""
import json
import statistics
from datetime import date

from compute_stats import correlation, round_output, summarize
from errors import InsufficientDataError, run_script
from load_data import RESULTS_DIR, load_overview

# (lower bound exclusive, wording), checked top down
CORRELATION_WORDING = (
    (0.5,  'strong positive: high scores tend to follow high scores'),
    (0.2,  'moderate positive'),
    (-0.2, 'weak: scores appear independent'),
    (-0.5, 'moderate negative'),
)
STRONG_NEGATIVE = 'strong negative: regression towards the mean'


def interpret_correlation(r: float) -> str:
    for bound, wording in CORRELATION_WORDING:
        if r > bound:
            return wording
    return STRONG_NEGATIVE


def best_scores(overview) -> list[float]:
    return [c.best_score for c in sorted(overview, key=lambda c: c.position)]


def consecutive_scores(overview) -> dict:
    """Correlation of each best score with the one performed just before it."""
    ordered = sorted(overview, key=lambda c: c.position)
    pairs = [
        {
            'previous':         prev.competitor,
            'previous_score':   prev.best_score,
            'current':          cur.competitor,
            'current_score':    cur.best_score,
            'difference':       cur.best_score - prev.best_score,
        }
        for prev, cur in zip(ordered, ordered[1:])
    ]
    try:
        r = correlation([p['previous_score'] for p in pairs], [p['current_score'] for p in pairs])
    except InsufficientDataError:
        return {'pairs': pairs, 'correlation': None, 'interpretation': None}
    return {'pairs': pairs, 'correlation': r, 'interpretation': interpret_correlation(r)}


def scores_after_performance(overview) -> dict:
    """Split each score by whether its predecessor beat the field median."""
    scores = best_scores(overview)
    median = summarize(scores)['median']
    after_high, after_low = [], []
    for prev, cur in zip(scores, scores[1:]):
        (after_high if prev > median else after_low).append(cur)

    result = {'median': median, 'after_high': None, 'after_low': None, 'difference': None}
    if after_high:
        result['after_high'] = summarize(after_high)
    if after_low:
        result['after_low'] = summarize(after_low)
    if after_high and after_low:
        result['difference'] = result['after_high']['mean'] - result['after_low']['mean']
    return result


def performance_clusters(overview) -> dict:
    scores = best_scores(overview)
    stats = summarize(scores)
    if stats['std'] is None:
        raise InsufficientDataError("performance clusters need at least 2 scores")
    upper, lower = stats['mean'] + stats['std'], stats['mean'] - stats['std']
    return {
        'mean':        stats['mean'],
        'std':         stats['std'],
        'exceptional': [s for s in scores if s > upper],
        'average':     [s for s in scores if lower <= s <= upper],
        'poor':        [s for s in scores if s < lower],
    }


def momentum(overview) -> dict:
    """Lengths of consecutive rising and falling stretches of best scores."""
    scores = best_scores(overview)
    differences = [cur - prev for prev, cur in zip(scores, scores[1:])]
    rising, falling = [], []
    direction, length = 0, 0
    for d in differences:
        step = (d > 0) - (d < 0)
        if step == 0:
            continue
        if step == direction:
            length += 1
            continue
        if length:
            (rising if direction > 0 else falling).append(length)
        direction, length = step, 1
    if length:
        (rising if direction > 0 else falling).append(length)
    return {
        'differences':       differences,
        'rising_runs':       rising,
        'falling_runs':      falling,
        'avg_rising_run':    statistics.mean(rising) if rising else None,
        'avg_falling_run':   statistics.mean(falling) if falling else None,
    }


def build_output(overview, updated_at: str = None) -> dict:
    return {
        'updated_at':        updated_at or str(date.today()),
        'competitors':       len(overview),
        'consecutive':       consecutive_scores(overview),
        'after_performance': scores_after_performance(overview),
        'clusters':          performance_clusters(overview),
        'momentum':          momentum(overview),
    }


def main():
    overview = load_overview()
    output = build_output(overview)

    out_path = RESULTS_DIR / 'overview_analysis.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(round_output(output), f, indent=2)

    consecutive = output['consecutive']
    if consecutive['correlation'] is not None:
        print(f"Consecutive best scores: r = {consecutive['correlation']:.3f} ({consecutive['interpretation']})")
    difference = output['after_performance']['difference']
    if difference is not None:
        print(f"After an above-median score: {difference:+.2f} points")
    print(f"Done. {output['competitors']} competitors written to {out_path}")


if __name__ == '__main__':
    run_script(main)

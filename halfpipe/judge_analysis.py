"""
halfpipe/judge_analysis.py
Reads the judge scores table and judges metadata, profiles every judge on the
panel, writes judge_analysis.json.

Covers judge severity, trimmed-mean effectiveness, panel consensus, judge to
judge correlations, crash-streak relief, home-nation bias, round drift and
how wipeouts are scored.
Run: python judge_analysis.py
"""
import json
import statistics
from datetime import date
from itertools import combinations

from classify import WIPEOUT_THRESHOLD, RunClassification, classify_all
from compute_stats import (
    PANEL_SIZE,
    attach_streaks,
    correlation,
    group_summaries,
    judge_profiles,
    panel_exclusions,
    round_output,
    summarize,
    trimmed_mean,
)
from errors import InsufficientDataError, run_script
from load_data import RESULTS_DIR, load_dni_resolutions, load_judges, load_performances

TENDENCY_THRESHOLD = 0.2
DRIFT_THRESHOLD = 0.3
NEAR_CONSENSUS_SPREAD = 1.0
PODIUM = 3
# (band, lowest final score in it), checked top down
SCORE_BANDS = (('elite', 90.0), ('strong', 80.0), ('mid', WIPEOUT_THRESHOLD), ('wipeout', float('-inf')))
MIN_CORRELATION_POINTS = 3


def tendency(avg_deviation: float) -> str:
    if avg_deviation > TENDENCY_THRESHOLD:
        return 'generous'
    if avg_deviation < -TENDENCY_THRESHOLD:
        return 'strict'
    return 'neutral'


def score_band(score: float) -> str:
    return next(band for band, floor in SCORE_BANDS if score >= floor)


def _safe_correlation(xs, ys):
    try:
        return correlation(xs, ys)
    except InsufficientDataError:
        return None


def judge_severity(profiles) -> list[dict]:
    result = []
    for p in profiles:
        deviations = p.deviations
        avg = statistics.mean(deviations)
        runs = len(p.scores)
        result.append({
            'judge':              p.number,
            'name':               p.name,
            'country':            p.country,
            'avg_deviation':      avg,
            'deviation_std':      statistics.stdev(deviations) if runs > 1 else None,
            'excluded_high':      p.excluded_high,
            'excluded_low':       p.excluded_low,
            'excluded_high_rate': p.excluded_high / runs,
            'excluded_low_rate':  p.excluded_low / runs,
            'runs':               runs,
            'tendency':           tendency(avg),
        })
    return result


def trimmed_mean_effectiveness(records) -> dict:
    """Official trimmed means against plain panel means, and whether the podium moves."""
    comparisons = []
    for record in records:
        if not record.is_judged:
            continue
        scores = list(record.judge_scores)
        raw = statistics.mean(scores)
        trimmed = trimmed_mean(scores)
        low, high = panel_exclusions(scores)
        comparisons.append({
            'competitor':     record.competitor,
            'run':            record.round,
            'official_score': record.final_score,
            'raw_mean':       float(raw),
            'trimmed_mean':   trimmed,
            'shift':          float(trimmed - raw),
            'dropped_low':    {'judge': low + 1, 'score': scores[low]},
            'dropped_high':   {'judge': high + 1, 'score': scores[high]},
            'spread':         max(scores) - min(scores),
        })

    best_official, best_raw = {}, {}
    for c in comparisons:
        if c['official_score'] < WIPEOUT_THRESHOLD:
            continue
        name = c['competitor']
        best_official[name] = max(best_official.get(name, c['official_score']), c['official_score'])
        best_raw[name] = max(best_raw.get(name, c['raw_mean']), c['raw_mean'])
    official_ranking = sorted(best_official, key=lambda n: -best_official[n])
    raw_ranking = sorted(best_raw, key=lambda n: -best_raw[n])

    shifts = [abs(c['shift']) for c in comparisons]
    return {
        'comparisons':      comparisons,
        'mean_abs_shift':   statistics.mean(shifts) if shifts else None,
        'max_abs_shift':    max(shifts) if shifts else None,
        'official_podium':  official_ranking[:PODIUM],
        'raw_mean_podium':  raw_ranking[:PODIUM],
        'podium_changes':   official_ranking[:PODIUM] != raw_ranking[:PODIUM],
    }


def consensus(records) -> dict:
    runs = []
    for record in records:
        if not record.is_judged:
            continue
        scores = list(record.judge_scores)
        spread = max(scores) - min(scores)
        runs.append({
            'competitor': record.competitor,
            'run':        record.round,
            'score':      record.final_score,
            'spread':     spread,
            'std':        statistics.stdev(scores),
            'identical':  spread == 0,
            'band':       score_band(record.final_score),
        })
    runs.sort(key=lambda r: r['spread'])

    by_band = {}
    for band, _ in SCORE_BANDS:
        spreads = [r['spread'] for r in runs if r['band'] == band]
        if spreads:
            by_band[band] = summarize(spreads)
    return {
        'runs':                runs,
        'perfect_consensus':   sum(1 for r in runs if r['identical']),
        'near_consensus':      sum(1 for r in runs if not r['identical'] and r['spread'] <= NEAR_CONSENSUS_SPREAD),
        'spread_by_band':      by_band,
    }


def judge_correlations(profiles) -> dict:
    vectors = {p.number: [s.score for s in p.scores] for p in profiles}
    pairs = []
    for a, b in combinations(sorted(vectors), 2):
        pairs.append({'judge1': a, 'judge2': b, 'r': _safe_correlation(vectors[a], vectors[b])})

    averages = {}
    for number in sorted(vectors):
        rs = [p['r'] for p in pairs if number in (p['judge1'], p['judge2']) and p['r'] is not None]
        averages[str(number)] = statistics.mean(rs) if rs else None

    ranked = sorted((p for p in pairs if p['r'] is not None), key=lambda p: -p['r'])
    return {'pairs': ranked, 'average_by_judge': averages}


def streak_relief(classified) -> dict:
    """Clean-run scores grouped by how many failures came straight before them."""
    clean = [
        (record, streak) for record, classification, streak in attach_streaks(classified)
        if classification == RunClassification.CLEAN
    ]
    by_streak = {}
    for record, streak in sorted(clean, key=lambda rs: rs[1]):
        by_streak.setdefault(str(streak), []).append(record)

    after_0 = [r.final_score for r, s in clean if s == 0]
    after_1_plus = [r.final_score for r, s in clean if s >= 1]

    riders = {}
    for record, streak in clean:
        riders.setdefault(record.competitor, []).append((record, streak))
    within_rider = [
        {
            'competitor': name,
            'runs': [{'round': r.round, 'streak': s, 'score': r.final_score} for r, s in runs],
        }
        for name, runs in riders.items()
        if len(runs) >= 2 and len({s for _, s in runs}) > 1
    ]

    return {
        'by_streak': {
            k: {**summarize([r.final_score for r in v]), 'avg_position': statistics.mean(r.position for r in v)}
            for k, v in by_streak.items()
        },
        'binary_difference': (
            statistics.mean(after_1_plus) - statistics.mean(after_0)
            if after_0 and after_1_plus else None
        ),
        'within_rider': within_rider,
    }


def home_nation_bias(profiles) -> list[dict]:
    """Each judge's deviation on riders from their own country against everyone else."""
    result = []
    for p in profiles:
        own = [s.deviation for s in p.scores if s.country == p.country]
        other = [s.deviation for s in p.scores if s.country != p.country]
        entry = {
            'judge':          p.number,
            'country':        p.country,
            'own_runs':       len(own),
            'own_deviation':  statistics.mean(own) if own else None,
            'other_deviation': statistics.mean(other) if other else None,
            'bias':           None,
        }
        if own and other:
            entry['bias'] = entry['own_deviation'] - entry['other_deviation']
        result.append(entry)
    return result


def drift_label(drift) -> str:
    if drift is None:
        return 'n/a'
    if drift > DRIFT_THRESHOLD:
        return 'more generous'
    if drift < -DRIFT_THRESHOLD:
        return 'stricter'
    return 'stable'


def round_drift(profiles) -> list[dict]:
    result = []
    for p in profiles:
        clean = [s for s in p.scores if s.final_score >= WIPEOUT_THRESHOLD]
        per_round = group_summaries(clean, key=lambda s: s.round, metric=lambda s: s.deviation)
        means = {str(r): per_round[r]['mean'] for r in sorted(per_round)}
        rounds = sorted(per_round)
        drift = None
        if len(rounds) >= 2:
            drift = per_round[rounds[-1]]['mean'] - per_round[rounds[0]]['mean']
        result.append({
            'judge':      p.number,
            'name':       p.name,
            'by_round':   means,
            'drift':      drift,
            'label':      drift_label(drift),
        })
    return result


def wipeout_mechanics(records) -> dict:
    wipeouts = []
    clean_spreads = []
    for record in records:
        if record.final_score is None:
            continue
        present = [s for _, s in record.judge_entries()]
        spread = max(present) - min(present) if len(present) >= 2 else 0.0
        if record.final_score >= WIPEOUT_THRESHOLD:
            clean_spreads.append(spread)
            continue
        wipeouts.append({
            'competitor':  record.competitor,
            'run':         record.round,
            'score':       record.final_score,
            'trick_count': record.trick_count,
            'spread':      spread,
            'judge_std':   statistics.stdev(present) if len(present) >= 2 else None,
        })
    wipeouts.sort(key=lambda w: (w['trick_count'], w['score']))

    r = None
    if len(wipeouts) >= MIN_CORRELATION_POINTS:
        r = _safe_correlation([w['trick_count'] for w in wipeouts], [w['score'] for w in wipeouts])
    return {
        'runs':                    wipeouts,
        'trick_count_correlation': r,
        'mean_spread_wipeout':     statistics.mean(w['spread'] for w in wipeouts) if wipeouts else None,
        'mean_spread_clean':       statistics.mean(clean_spreads) if clean_spreads else None,
    }


def build_output(records, judges=None, resolutions=None, updated_at: str = None) -> dict:
    profiles = judge_profiles(records, judges)
    classified = classify_all(records, resolutions)
    return {
        'updated_at':          updated_at or str(date.today()),
        'panel_size':          PANEL_SIZE,
        'judge_severity':      judge_severity(profiles),
        'trimmed_mean':        trimmed_mean_effectiveness(records),
        'consensus':           consensus(records),
        'correlations':        judge_correlations(profiles),
        'streak_relief':       streak_relief(classified),
        'home_nation_bias':    home_nation_bias(profiles),
        'round_drift':         round_drift(profiles),
        'wipeout_mechanics':   wipeout_mechanics(records),
    }


def main():
    records = load_performances()
    output = build_output(records, load_judges(), load_dni_resolutions())

    out_path = RESULTS_DIR / 'judge_analysis.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(round_output(output), f, indent=2)

    for j in output['judge_severity']:
        print(f"  J{j['judge']} {j['name']:<20} {j['country']}  {j['avg_deviation']:+.2f}  "
              f"high {j['excluded_high']}  low {j['excluded_low']}  {j['tendency']}")
    podium = 'changes' if output['trimmed_mean']['podium_changes'] else 'unchanged'
    print(f"Podium under raw panel means: {podium}")
    print(f"Done. {len(output['judge_severity'])} judges written to {out_path}")


if __name__ == '__main__':
    run_script(main)

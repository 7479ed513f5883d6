"""
halfpipe/wipeout_context.py
Do judges score clean runs higher right after watching other riders fail?

Reads the judge scores table (plus dni_resolved.csv when present), works out
the failure context of every clean run, compares recovery runs with baseline
runs overall and within qualifying tiers, writes wipeout_context_analysis.json.
Run: python wipeout_context.py
"""
import json
from dataclasses import dataclass
from datetime import date

from classify import RunClassification, classify_all, is_failure
from compute_stats import attach_streaks, mean, round_output, summarize
from errors import InsufficientDataError, MalformedInputError, run_script
from load_data import RESULTS_DIR, load_dni_resolutions, load_performances

# performance position -> qualifying tier; riders drop in worst qualifier first
TIERS = {
    'bottom': range(1, 5),
    'middle': range(5, 9),
    'top':    range(9, 13),
}
OVERALL = 'overall'

HIGH_SCORE = 80.0
# (label, window, minimum failures inside the window)
RECENT_FAILURE_WINDOWS = (
    ('2_of_last_3', 3, 2),
    ('3_of_last_5', 5, 3),
    ('5_of_last_5', 5, 5),
)


def tier_of(position: int) -> str:
    for tier, positions in TIERS.items():
        if position in positions:
            return tier
    raise MalformedInputError(f"position {position} is outside every qualifying tier")


@dataclass(frozen=True)
class CleanRunContext:
    record: object
    failures_before: int          # anywhere earlier in the round
    clean_before: int
    streak: int                   # consecutive failures immediately before
    last_was_failure: bool | None  # None for the first rider of a round
    last_3: int
    last_5: int
    mean_clean_before: float | None

    @property
    def tier(self) -> str:
        return tier_of(self.record.position)

    @property
    def is_recovery(self) -> bool:
        return self.failures_before > 0


def _by_round(classified) -> dict:
    rounds = {}
    for record, classification in sorted(classified, key=lambda rc: (rc[0].round, rc[0].position)):
        rounds.setdefault(record.round, []).append((record, classification))
    return rounds


def failure_context(classified) -> list[CleanRunContext]:
    """One CleanRunContext per clean run, ordered by round then position."""
    streaks = {record.key: streak for record, _, streak in attach_streaks(classified)}
    contexts = []
    for runs in _by_round(classified).values():
        for i, (record, classification) in enumerate(runs):
            if classification != RunClassification.CLEAN:
                continue
            before = [c for _, c in runs[:i]]
            clean_scores = [r.final_score for r, c in runs[:i] if c == RunClassification.CLEAN]
            contexts.append(CleanRunContext(
                record=record,
                failures_before=sum(1 for c in before if is_failure(c)),
                clean_before=len(clean_scores),
                streak=streaks[record.key],
                last_was_failure=is_failure(before[-1]) if before else None,
                last_3=sum(1 for c in before[-3:] if is_failure(c)),
                last_5=sum(1 for c in before[-5:] if is_failure(c)),
                mean_clean_before=mean(clean_scores) if clean_scores else None,
            ))
    return contexts


def summary_or_placeholder(values) -> dict:
    try:
        return summarize(values)
    except InsufficientDataError:
        return {'count': len(values), 'insufficient_data': True}


def _comparison(contexts) -> dict:
    all_clean = [c.record.final_score for c in contexts]
    baseline = [c.record.final_score for c in contexts if not c.is_recovery]
    recovery = [c.record.final_score for c in contexts if c.is_recovery]
    relief = relief_vs_all = None
    if recovery:
        relief_vs_all = mean(recovery) - mean(all_clean)
        if baseline:
            relief = mean(recovery) - mean(baseline)
    return {
        'all_clean':    summarize(all_clean),
        'baseline':     summary_or_placeholder(baseline),
        'recovery':     summary_or_placeholder(recovery),
        'relief_bonus': relief,
        # recovery against every clean run in the group, failures or not
        'relief_vs_all_clean': relief_vs_all,
        'recovery_runs': [
            {
                'competitor':      c.record.competitor,
                'round':           c.record.round,
                'score':           c.record.final_score,
                'failures_before': c.failures_before,
            }
            for c in contexts if c.is_recovery
        ],
    }


def recovery_comparison(contexts, key=lambda c: c.tier) -> dict:
    """Baseline (no failure earlier in the round) vs recovery runs per group.

    Groups come from `key(context)`; empty groups are left out. The pooled
    comparison over every context is added under 'overall'.
    """
    groups = {}
    for context in contexts:
        groups.setdefault(key(context), []).append(context)
    result = {k: _comparison(v) for k, v in groups.items()}
    if contexts:
        result[OVERALL] = _comparison(contexts)
    return result


def cumulative_effects(contexts) -> dict:
    result = {}
    for label, window, minimum in RECENT_FAILURE_WINDOWS:
        attr = f'last_{window}'
        result[label] = summary_or_placeholder(
            [c.record.final_score for c in contexts if getattr(c, attr) >= minimum])
    return result


def wipeout_rates(classified) -> dict:
    rates = {}
    for tier in TIERS:
        runs = [(r, c) for r, c in classified if tier_of(r.position) == tier]
        if not runs:
            continue
        wipeouts = sum(1 for _, c in runs if c == RunClassification.WIPEOUT)
        rates[tier] = {
            'runs':       len(runs),
            'wipeouts':   wipeouts,
            'failures':   sum(1 for _, c in runs if is_failure(c)),
            'incomplete': sum(1 for r, _ in runs if r.is_incomplete),
            'rate':       wipeouts / len(runs),
        }
    return rates


def pattern_letter(record, classification) -> str:
    if record.is_incomplete:
        return 'D'
    if classification == RunClassification.WIPEOUT:
        return 'W'
    return 'H' if record.final_score >= HIGH_SCORE else 'L'


def trajectories(classified) -> dict:
    """{competitor: {'pattern': 'W-H-D', 'scores': [...], 'is_recovery_pattern': bool}}"""
    runs = {}
    for record, classification in sorted(classified, key=lambda rc: (rc[0].position, rc[0].round)):
        runs.setdefault(record.competitor, []).append((record, classification))
    result = {}
    for competitor, entries in runs.items():
        pattern = '-'.join(pattern_letter(r, c) for r, c in entries)
        result[competitor] = {
            'pattern':             pattern,
            'scores':              [r.final_score for r, _ in entries],
            'is_recovery_pattern': 'W' in pattern and 'H' in pattern,
        }
    return result


def round_transitions(classified) -> list[dict]:
    """Last clean run of each round against the first run of the next."""
    rounds = _by_round(classified)
    result = []
    for number in sorted(rounds):
        following = rounds.get(number + 1)
        clean = [r for r, c in rounds[number] if c == RunClassification.CLEAN]
        if not following or not clean:
            continue
        last, (first, first_class) = clean[-1], following[0]
        result.append({
            'transition': f'R{number}->R{number + 1}',
            'last_clean': {'competitor': last.competitor, 'score': last.final_score},
            'first_next': {
                'competitor':     first.competitor,
                'score':          first.final_score,
                'classification': first_class.value,
            },
            'difference': None if first.is_incomplete else first.final_score - last.final_score,
        })
    return result


def build_output(classified, updated_at: str = None) -> dict:
    contexts = failure_context(classified)
    return {
        'updated_at': updated_at or str(date.today()),
        'hypothesis': 'Do judges give higher scores after witnessing failures earlier in the round?',
        'clean_runs': [
            {
                'competitor':        c.record.competitor,
                'round':             c.record.round,
                'position':          c.record.position,
                'tier':              c.tier,
                'score':             c.record.final_score,
                'failures_before':   c.failures_before,
                'clean_before':      c.clean_before,
                'streak':            c.streak,
                'last_was_failure':  c.last_was_failure,
                'last_3':            c.last_3,
                'last_5':            c.last_5,
                'mean_clean_before': c.mean_clean_before,
            }
            for c in contexts
        ],
        'recovery_by_tier':   recovery_comparison(contexts),
        'cumulative_effects': cumulative_effects(contexts),
        'wipeout_rates':      wipeout_rates(classified),
        'trajectories':       trajectories(classified),
        'round_transitions':  round_transitions(classified),
    }


def main():
    records = load_performances()
    classified = classify_all(records, load_dni_resolutions())
    output = build_output(classified)

    out_path = RESULTS_DIR / 'wipeout_context_analysis.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(round_output(output), f, indent=2)

    for tier, result in output['recovery_by_tier'].items():
        baseline, recovery = result['baseline'], result['recovery']
        if result['relief_bonus'] is None:
            print(f"  {tier:<8} baseline n={baseline['count']}, recovery n={recovery['count']}: insufficient data")
            continue
        print(f"  {tier:<8} baseline {baseline['mean']:.2f} (n={baseline['count']})"
              f"  recovery {recovery['mean']:.2f} (n={recovery['count']})"
              f"  relief {result['relief_bonus']:+.2f}")
    print(f"Done. {len(output['clean_runs'])} clean runs written to {out_path}")


if __name__ == '__main__':
    run_script(main)

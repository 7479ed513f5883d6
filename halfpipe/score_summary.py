"""
halfpipe/score_summary.py
Reads the judge scores table, summarizes final scores per round and per
classification, writes score_summary.json.
Run: python score_summary.py
"""
import json
from datetime import date

from classify import RunClassification, classify_all
from compute_stats import group_summaries, round_output, summarize
from errors import run_script
from load_data import RESULTS_DIR, load_dni_resolutions, load_performances


def compute_round_stats(classified) -> dict:
    scored = [(r, c) for r, c in classified if r.final_score is not None]
    return group_summaries(scored, key=lambda rc: f'round_{rc[0].round}', metric=lambda rc: rc[0].final_score)


def compute_classification_stats(classified) -> dict:
    """Summaries of numeric finals per classification, plus a count for every label."""
    scored = [(r, c) for r, c in classified if r.final_score is not None]
    stats = group_summaries(scored, key=lambda rc: rc[1].value, metric=lambda rc: rc[0].final_score)
    counts = {c.value: 0 for c in RunClassification}
    for _, classification in classified:
        counts[classification.value] += 1
    return {'counts': counts, 'scores': stats}


def build_output(classified, updated_at: str = None) -> dict:
    scores = [r.final_score for r, _ in classified if r.final_score is not None]
    return {
        'updated_at':      updated_at or str(date.today()),
        'runs':            len(classified),
        'scored_runs':     len(scores),
        'global':          summarize(scores),
        'rounds':          compute_round_stats(classified),
        'classifications': compute_classification_stats(classified),
        'incomplete': [
            {'competitor': r.competitor, 'run': r.round, 'classification': c.value}
            for r, c in classified if r.is_incomplete
        ],
    }


def summary_line(stats: dict) -> str:
    if stats['std'] is None:
        return f"Global mean: {stats['mean']:.2f} (n={stats['count']}, no std)"
    return f"Global mean: {stats['mean']:.2f}, std: {stats['std']:.2f}"


def main():
    records = load_performances()
    classified = classify_all(records, load_dni_resolutions())
    output = build_output(classified)

    out_path = RESULTS_DIR / 'score_summary.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(round_output(output), f, indent=2)

    print(f"Done. {output['runs']} runs ({output['scored_runs']} scored) written to {out_path}")
    print(summary_line(output['global']))


if __name__ == '__main__':
    run_script(main)

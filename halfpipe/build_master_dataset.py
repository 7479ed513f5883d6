"""
halfpipe/build_master_dataset.py
Merges judge scores, trick difficulty, run classification, DNI resolution,
overview qualifying data and tier into one table.
Run: python build_master_dataset.py
Output: ../data/processed/master_enriched_dataset.csv
"""
from collections import Counter

from classify import DNI_REASONS, classify_run
from errors import run_script
from load_data import PROCESSED_DIR, load_dni_resolutions, load_overview, load_performances, write_table
from records import JUDGE_COUNT, TRICK_SLOTS
from trick_difficulty import score_run
from wipeout_context import tier_of

MASTER_CSV = PROCESSED_DIR / 'master_enriched_dataset.csv'
REASONS = {c: reason for reason, c in DNI_REASONS.items()}

HEADER = (
    ['competitor', 'country', 'position', 'run', 'final_score']
    + [f'judge{j}_score' for j in range(1, JUDGE_COUNT + 1)]
    + [f'trick{i}' for i in range(1, TRICK_SLOTS + 1)]
    + ['medal', 'notes',
       'total_difficulty', 'avg_difficulty', 'max_difficulty', 'trick_count',
       'run_status', 'dni_reason', 'dni_confidence',
       'qual_score', 'final_rank', 'tier']
)


def _fmt(value) -> str:
    if value is None:
        return ''
    return f'{value:.2f}' if isinstance(value, float) else str(value)


def master_rows(records, overview, resolutions) -> list[dict]:
    """One merged {column: value} row per run, in input order."""
    by_name = {c.competitor: c for c in overview}
    rows = []
    for record in records:
        run = score_run(record.tricks)
        resolution = resolutions.get(record.key)
        info = by_name.get(record.competitor)
        tricks = list(record.tricks) + [''] * (TRICK_SLOTS - len(record.tricks))
        row = {
            'competitor':  record.competitor,
            'country':     record.country,
            'position':    record.position,
            'run':         record.round,
            'final_score': 'DNI' if record.is_incomplete else _fmt(record.final_score),
        }
        row.update({f'judge{j + 1}_score': _fmt(s) for j, s in enumerate(record.judge_scores)})
        row.update({f'trick{i + 1}': t for i, t in enumerate(tricks)})
        row.update({
            'medal':            record.medal,
            'notes':            record.notes,
            'total_difficulty': _fmt(run.total),
            'avg_difficulty':   _fmt(run.average),
            'max_difficulty':   _fmt(run.maximum),
            'trick_count':      run.trick_count,
            'run_status':       classify_run(record, resolutions).value,
            'dni_reason':       REASONS[resolution.classification] if resolution else '',
            'dni_confidence':   resolution.confidence if resolution else '',
            'qual_score':       _fmt(info.qual_score) if info else '',
            'final_rank':       info.final_rank if info else '',
            'tier':             tier_of(record.position),
        })
        rows.append(row)
    return rows


def main():
    records = load_performances()
    rows = master_rows(records, load_overview(), load_dni_resolutions())
    write_table(MASTER_CSV, HEADER, ([row[h] for h in HEADER] for row in rows))

    print(f"Merged {len(rows)} runs into {len(HEADER)} columns")
    print("Run status:")
    for status, count in sorted(Counter(r['run_status'] for r in rows).items()):
        print(f"  {status:<28} {count}")
    print("Tier:")
    for tier, count in Counter(r['tier'] for r in rows).items():
        print(f"  {tier:<28} {count}")
    print(f"Done. {MASTER_CSV}")


if __name__ == '__main__':
    run_script(main)

"""
halfpipe/trick_difficulty.py
Scores trick codes for difficulty and adds run-level difficulty columns to
the judge scores table.

Trick code format: [stance/spin]-[cork]-[rotation]-[grab], e.g.
  Cab-DC-14-Mu      = Cab, double cork 1440, mute
  f-TC-14-Tdr       = frontside triple cork 1440, tail drag
  x-b-D-AO-Rd-9-St  = switch backside alley-oop rodeo 900, stalefish

Run: python trick_difficulty.py
Output: ../data/processed/trick_difficulty_scores.csv
        ../data/processed/enriched-judge-scores.csv
        ../results/trick_difficulty_scores.json
"""
import json
from dataclasses import dataclass
from datetime import date
from functools import lru_cache

from classify import RunClassification, classify_all
from compute_stats import correlation, group_summaries, round_output
from errors import InsufficientDataError, run_script
from load_data import PROCESSED_DIR, RESULTS_DIR, SCORES_CSV, load_performances, read_table, write_table

DELIMITER = '-'
COMBO_MARKER = '-to-'

# numeric token -> degrees
ROTATIONS = {3: 360, 5: 540, 7: 720, 9: 900, 10: 1080, 12: 1260, 14: 1440, 16: 1600}
# degrees -> base score; 0 covers straight airs and unrecognised spins
ROTATION_BASE = {
    0: 0.5, 360: 1.0, 540: 1.5, 720: 2.0, 900: 3.0,
    1080: 4.0, 1260: 5.0, 1440: 6.0, 1600: 7.0,
}
# checked in this order, first hit wins
CORKS = (('TC', 2.0), ('DC', 1.5), ('SC', 1.2))
NO_CORK = ('none', 1.0)

SWITCH_PREFIXES = ('Cab', 'x')
SWITCH_BONUS = 0.5

GRABS = {
    'Mu': 'mute', 'Ng': 'nose grab', 'Jp': 'japan', 'Tdr': 'tail drag',
    'I': 'indy', 'St': 'stalefish', 'Ddr': 'double grab', 'Me': 'melon',
    'Tg': 'tail grab', 'Ste': 'stalefish extended',
}
GRAB_BONUS = 0.5
COMBO_BONUS = 0.5

SPECIALS = {'AO': 1.0, 'Rd': 1.0, 'CF': 1.0, 'Mc': 1.5}   # alley-oop, rodeo, corkflip, McTwist

MIN_CORRELATION_RUNS = 3


@dataclass(frozen=True)
class TrickDifficulty:
    code: str
    rotation: int                 # degrees
    cork: str                     # TC / DC / SC / none
    cork_multiplier: float
    switch_bonus: float
    grab_count: int
    grab_bonus: float
    combo_bonus: float
    specials: tuple[str, ...]
    specials_bonus: float
    total: float

    @property
    def rotation_base(self) -> float:
        return ROTATION_BASE[self.rotation]

    @property
    def complexity(self) -> int:
        return len(self.code.split(DELIMITER))


@dataclass(frozen=True)
class RunDifficulty:
    trick_count: int
    total: float
    average: float
    maximum: float
    tricks: tuple


def extract_rotation(tokens) -> int:
    for token in tokens:
        if token.isdigit() and int(token) in ROTATIONS:
            return ROTATIONS[int(token)]
    return 0


def extract_cork(code: str) -> tuple[str, float]:
    for cork, multiplier in CORKS:
        if cork in code:
            return cork, multiplier
    return NO_CORK


@lru_cache(maxsize=None)
def score_trick(code: str):
    """TrickDifficulty for a trick code, or None for a blank one.

    Tokens that match no table contribute nothing.
    """
    if not code or not code.strip():
        return None
    code = code.strip()
    tokens = code.split(DELIMITER)

    rotation = extract_rotation(tokens)
    cork, multiplier = extract_cork(code)
    switch_bonus = SWITCH_BONUS if tokens[0] in SWITCH_PREFIXES else 0.0
    grab_count = sum(1 for t in tokens if t in GRABS)
    grab_bonus = GRAB_BONUS if grab_count else 0.0
    combo_bonus = COMBO_BONUS if COMBO_MARKER in code else 0.0
    specials = tuple(s for s in SPECIALS if s in code)
    specials_bonus = sum(SPECIALS[s] for s in specials)

    total = ROTATION_BASE[rotation] * multiplier + switch_bonus + grab_bonus + combo_bonus + specials_bonus
    return TrickDifficulty(
        code=code,
        rotation=rotation,
        cork=cork,
        cork_multiplier=multiplier,
        switch_bonus=switch_bonus,
        grab_count=grab_count,
        grab_bonus=grab_bonus,
        combo_bonus=combo_bonus,
        specials=specials,
        specials_bonus=specials_bonus,
        total=total,
    )


def score_run(tricks) -> RunDifficulty:
    scored = tuple(t for t in (score_trick(code) for code in tricks) if t is not None)
    if not scored:
        return RunDifficulty(trick_count=0, total=0.0, average=0.0, maximum=0.0, tricks=())
    total = sum(t.total for t in scored)
    return RunDifficulty(
        trick_count=len(scored),
        total=total,
        average=total / len(scored),
        maximum=max(t.total for t in scored),
        tricks=scored,
    )


def rank_tricks(records) -> list[TrickDifficulty]:
    """Every distinct trick in the table, hardest first (ties by code)."""
    codes = {code for record in records for code in record.tricks}
    return sorted((score_trick(c) for c in codes), key=lambda t: (-t.total, t.code))


def difficulty_correlation(run_rows):
    """Pearson r of run difficulty vs final score over clean runs, or None."""
    clean = [r for r in run_rows if r['classification'] == RunClassification.CLEAN.value]
    if len(clean) < MIN_CORRELATION_RUNS:
        return None
    try:
        r = correlation([c['total_difficulty'] for c in clean], [c['final_score'] for c in clean])
    except InsufficientDataError:
        return None
    return {
        'pearson_r': r,
        'runs': len(clean),
        'note': 'Correlation between total trick difficulty and final score for clean runs',
    }


def build_output(records, updated_at: str = None) -> dict:
    tricks = rank_tricks(records)
    run_rows = []
    for record, classification in classify_all(records):
        run = score_run(record.tricks)
        run_rows.append({
            'competitor':       record.competitor,
            'run':              record.round,
            'final_score':      record.final_score,
            'classification':   classification.value,
            'trick_count':      run.trick_count,
            'total_difficulty': run.total,
            'avg_difficulty':   run.average,
            'max_difficulty':   run.maximum,
        })

    clean_with_tricks = [
        r for r in run_rows
        if r['classification'] == RunClassification.CLEAN.value and r['trick_count']
    ]
    points_per_trick = group_summaries(
        clean_with_tricks,
        key=lambda r: str(r['trick_count']),
        metric=lambda r: r['final_score'] / r['trick_count'],
    )

    return {
        'updated_at':       updated_at or str(date.today()),
        'unique_tricks':    len(tricks),
        'scoring_system': {
            'rotation_base':   ROTATION_BASE,
            'cork_multiplier': dict(CORKS + (NO_CORK,)),
            'switch_bonus':    SWITCH_BONUS,
            'grab_bonus':      GRAB_BONUS,
            'combo_bonus':     COMBO_BONUS,
            'specials_bonus':  SPECIALS,
        },
        'trick_scores': [
            {
                'code':       t.code,
                'difficulty': t.total,
                'rotation':   t.rotation,
                'cork':       t.cork,
                'complexity': t.complexity,
            }
            for t in tricks
        ],
        'run_scores':       run_rows,
        'correlation':      difficulty_correlation(run_rows),
        'points_per_trick': points_per_trick,
    }


def trick_table_rows(tricks):
    for t in tricks:
        yield [
            t.code, t.rotation, t.cork, t.cork_multiplier, t.switch_bonus > 0,
            ';'.join(t.specials) or 'none', t.grab_count, t.complexity, f'{t.total:.2f}',
        ]


def enriched_rows(raw_rows, records):
    for row, record in zip(raw_rows, records):
        run = score_run(record.tricks)
        yield list(row.values()) + [
            f'{run.total:.2f}', f'{run.average:.2f}', f'{run.maximum:.2f}', run.trick_count,
        ]


def main():
    records = load_performances()
    raw_rows = read_table(SCORES_CSV)
    output = build_output(records)

    trick_csv = PROCESSED_DIR / 'trick_difficulty_scores.csv'
    write_table(
        trick_csv,
        ['trick_code', 'rotation_degrees', 'cork_type', 'cork_multiplier', 'switch',
         'specials', 'grab_count', 'complexity', 'difficulty_score'],
        trick_table_rows(rank_tricks(records)),
    )
    enriched_csv = PROCESSED_DIR / 'enriched-judge-scores.csv'
    write_table(
        enriched_csv,
        list(raw_rows[0]) + ['total_difficulty', 'avg_difficulty', 'max_difficulty', 'trick_count'],
        enriched_rows(raw_rows, records),
    )
    out_path = RESULTS_DIR / 'trick_difficulty_scores.json'
    out_path.parent.mkdir(exist_ok=True)
    with open(out_path, 'w') as f:
        json.dump(round_output(output), f, indent=2)

    print(f"Scored {output['unique_tricks']} unique tricks over {len(records)} runs")
    for t in output['trick_scores'][:5]:
        print(f"  {t['code']:<25} difficulty={t['difficulty']:5.1f} rot={t['rotation']}")
    if output['correlation']:
        print(f"Difficulty vs score (clean runs): r = {output['correlation']['pearson_r']:.3f}")
    else:
        print("Difficulty vs score: insufficient clean runs for a correlation")
    print(f"Done. {trick_csv}, {enriched_csv}, {out_path}")


if __name__ == '__main__':
    run_script(main)

"""
halfpipe/load_data.py
Reads (and writes) the delimited tables under data/, and turns their rows
into typed records.

No quoting or escaping: a field never contains the delimiter. Every row
must have exactly as many fields as the header.
"""
from pathlib import Path

from compute_stats import trimmed_mean
from errors import MalformedInputError, MissingFileError
from records import (
    parse_dni_resolution,
    parse_judge,
    parse_overview,
    parse_performance,
)

ROOT = Path(__file__).parent.parent
RAW_DIR = ROOT / 'data' / 'raw'
PROCESSED_DIR = ROOT / 'data' / 'processed'
RESULTS_DIR = ROOT / 'results'

SCORES_CSV = RAW_DIR / 'milano-cortina-2026-individual-judge-scores.csv'
JUDGES_CSV = RAW_DIR / 'judges-metadata.csv'
OVERVIEW_CSV = RAW_DIR / 'milano-cortina-2026-mens-halfpipe.csv'
DNI_CSV = PROCESSED_DIR / 'dni_resolved.csv'

DELIMITER = ','
FINAL_SCORE_TOLERANCE = 0.01


def read_table(path, delimiter: str = DELIMITER) -> list[dict[str, str]]:
    """Return one {header: value} dict per data row, values stripped."""
    path = Path(path)
    if not path.exists():
        raise MissingFileError(f"CSV not found at {path}")
    lines = path.read_text(encoding='utf-8').strip().splitlines()
    if not lines or not lines[0].strip():
        raise MalformedInputError(f"{path}: no header row")

    header = [h.strip() for h in lines[0].split(delimiter)]
    rows = []
    for line_no, line in enumerate(lines[1:], start=2):
        values = line.split(delimiter)
        if len(values) != len(header):
            raise MalformedInputError(
                f"{path}:{line_no}: expected {len(header)} fields, got {len(values)}")
        rows.append({h: v.strip() for h, v in zip(header, values)})
    return rows


def write_table(path, header: list[str], rows, delimiter: str = DELIMITER) -> None:
    """Write rows (sequences, in header order) in the format read_table reads."""
    lines = [delimiter.join(header)]
    for row in rows:
        values = ['' if v is None else str(v) for v in row]
        if len(values) != len(header):
            raise MalformedInputError(
                f"{path}: row has {len(values)} fields, header has {len(header)}")
        for v in values:
            if delimiter in v or '\n' in v:
                raise MalformedInputError(f"{path}: field {v!r} contains the delimiter")
        lines.append(delimiter.join(values))
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')


def check_final_score(record) -> None:
    """A numeric final score must be the trimmed mean of its full panel.

    An incomplete run carries no judge scores at all.
    """
    if record.final_score is None:
        if any(s is not None for s in record.judge_scores):
            raise MalformedInputError(
                f"{record.competitor} run {record.round}: judge scores on an incomplete run")
        return
    if not record.has_full_panel:
        return
    expected = trimmed_mean(record.judge_scores)
    if abs(expected - record.final_score) > FINAL_SCORE_TOLERANCE:
        raise MalformedInputError(
            f"{record.competitor} run {record.round}: final score {record.final_score} "
            f"is not the trimmed judge mean {expected:.2f}")


def load_performances(path=SCORES_CSV) -> list:
    records = []
    for line_no, row in enumerate(read_table(path), start=2):
        try:
            record = parse_performance(row)
            check_final_score(record)
        except MalformedInputError as e:
            raise MalformedInputError(f"{path}:{line_no}: {e}") from None
        records.append(record)
    return records


def load_judges(path=JUDGES_CSV) -> dict:
    """{judge number: JudgeInfo}"""
    judges = {}
    for row in read_table(path):
        judge = parse_judge(row)
        judges[judge.number] = judge
    return judges


def load_overview(path=OVERVIEW_CSV) -> list:
    return [parse_overview(row) for row in read_table(path)]


def load_dni_resolutions(path=DNI_CSV, required: bool = False) -> dict:
    """{(competitor, round): DniResolution}; an absent optional file is empty."""
    if not Path(path).exists() and not required:
        return {}
    resolutions = {}
    for row in read_table(path):
        resolution = parse_dni_resolution(row)
        resolutions[resolution.key] = resolution
    return resolutions

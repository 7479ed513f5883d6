"""
halfpipe/records.py
Typed, immutable records built from the string rows of the loader.
"""
import math
from dataclasses import dataclass

from classify import DNI_REASONS, RunClassification
from errors import MalformedInputError

INCOMPLETE = 'DNI'
JUDGE_COUNT = 6
TRICK_SLOTS = 5


def parse_float(value: str, field: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedInputError(f"{field}: expected a number, got {value!r}") from None
    if not math.isfinite(number):
        raise MalformedInputError(f"{field}: expected a finite number, got {value!r}")
    return number


def parse_int(value: str, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise MalformedInputError(f"{field}: expected an integer, got {value!r}") from None


def parse_optional_float(value: str, field: str):
    if value is None or value == '' or value == INCOMPLETE:
        return None
    return parse_float(value, field)


def _field(row: dict, name: str) -> str:
    try:
        return row[name]
    except KeyError:
        raise MalformedInputError(f"missing column {name!r}") from None


@dataclass(frozen=True)
class PerformanceRecord:
    competitor: str
    country: str
    position: int
    round: int
    final_score: float | None          # None: the run was DNI
    judge_countries: tuple[str, ...]
    judge_scores: tuple               # JUDGE_COUNT entries, None where blank
    tricks: tuple[str, ...]            # non-blank trick codes in slot order
    medal: str = ''
    notes: str = ''

    @property
    def key(self) -> tuple[str, int]:
        return (self.competitor, self.round)

    @property
    def is_incomplete(self) -> bool:
        return self.final_score is None

    @property
    def has_full_panel(self) -> bool:
        return all(s is not None for s in self.judge_scores)

    @property
    def is_judged(self) -> bool:
        """A numeric final backed by all six judge scores."""
        return self.final_score is not None and self.has_full_panel

    @property
    def trick_count(self) -> int:
        return len(self.tricks)

    def judge_entries(self) -> list[tuple[int, float]]:
        """(judge number, score) for every judge who scored this run."""
        return [(i + 1, s) for i, s in enumerate(self.judge_scores) if s is not None]


@dataclass(frozen=True)
class JudgeInfo:
    number: int
    name: str
    country_code: str
    country: str
    role: str


@dataclass(frozen=True)
class CompetitorOverview:
    position: int
    competitor: str
    country: str
    final_rank: int
    qual_score: float
    run_scores: tuple                  # one per round, None for DNI
    best_score: float
    notes: str = ''


@dataclass(frozen=True)
class DniResolution:
    competitor: str
    country: str
    position: int
    round: int
    trick_count: int
    classification: RunClassification
    source: str
    confidence: str
    evidence: str = ''

    @property
    def key(self) -> tuple[str, int]:
        return (self.competitor, self.round)


def parse_performance(row: dict) -> PerformanceRecord:
    final = _field(row, 'final_score')
    return PerformanceRecord(
        competitor=_field(row, 'competitor'),
        country=_field(row, 'country'),
        position=parse_int(_field(row, 'position'), 'position'),
        round=parse_int(_field(row, 'run'), 'run'),
        final_score=parse_optional_float(final, 'final_score'),
        judge_countries=tuple(_field(row, f'judge{j}_country') for j in range(1, JUDGE_COUNT + 1)),
        judge_scores=tuple(
            parse_optional_float(_field(row, f'judge{j}_score'), f'judge{j}_score')
            for j in range(1, JUDGE_COUNT + 1)
        ),
        tricks=tuple(t for t in (row.get(f'trick{i}', '') for i in range(1, TRICK_SLOTS + 1)) if t),
        medal=row.get('medal', ''),
        notes=row.get('notes', ''),
    )


def parse_judge(row: dict) -> JudgeInfo:
    return JudgeInfo(
        number=parse_int(_field(row, 'judge_number'), 'judge_number'),
        name=_field(row, 'name'),
        country_code=_field(row, 'country_code'),
        country=_field(row, 'country'),
        role=row.get('role', ''),
    )


def parse_overview(row: dict) -> CompetitorOverview:
    return CompetitorOverview(
        position=parse_int(_field(row, 'performance_order'), 'performance_order'),
        competitor=_field(row, 'competitor'),
        country=_field(row, 'country'),
        final_rank=parse_int(_field(row, 'final_rank'), 'final_rank'),
        qual_score=parse_float(_field(row, 'qual_score'), 'qual_score'),
        run_scores=tuple(
            parse_optional_float(_field(row, f'run{r}'), f'run{r}') for r in range(1, 4)
        ),
        best_score=parse_float(_field(row, 'best_score'), 'best_score'),
        notes=row.get('notes', ''),
    )


def parse_dni_resolution(row: dict) -> DniResolution:
    reason = _field(row, 'dni_reason')
    if reason not in DNI_REASONS:
        raise MalformedInputError(
            f"dni_reason: expected one of {sorted(DNI_REASONS)}, got {reason!r}")
    return DniResolution(
        competitor=_field(row, 'competitor'),
        country=_field(row, 'country'),
        position=parse_int(_field(row, 'position'), 'position'),
        round=parse_int(_field(row, 'run'), 'run'),
        trick_count=parse_int(_field(row, 'trick_count'), 'trick_count'),
        classification=DNI_REASONS[reason],
        source=_field(row, 'source'),
        confidence=_field(row, 'confidence'),
        evidence=row.get('evidence', ''),
    )

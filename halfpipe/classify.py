"""
halfpipe/classify.py
Labels each run as clean, wipeout or one of the incomplete (DNI) outcomes.
"""
from enum import Enum


class RunClassification(str, Enum):
    CLEAN = 'clean'
    WIPEOUT = 'wipeout'
    INCOMPLETE_CRASH = 'incomplete-crash'
    INCOMPLETE_STRATEGIC_SKIP = 'incomplete-strategic-skip'
    INCOMPLETE_UNKNOWN = 'incomplete-unknown'


WIPEOUT_THRESHOLD = 50.0

# dni_reason column of dni_resolved.csv -> classification
DNI_REASONS = {
    'crash':          RunClassification.INCOMPLETE_CRASH,
    'strategic_skip': RunClassification.INCOMPLETE_STRATEGIC_SKIP,
    'unknown':        RunClassification.INCOMPLETE_UNKNOWN,
}

FAILURES = frozenset({RunClassification.WIPEOUT, RunClassification.INCOMPLETE_CRASH})


def is_failure(classification: RunClassification) -> bool:
    """A witnessed failure: wipeout or a DNI resolved as a crash."""
    return classification in FAILURES


def is_completed(classification: RunClassification) -> bool:
    return classification not in FAILURES


def classify_score(score: float) -> RunClassification:
    if score >= WIPEOUT_THRESHOLD:
        return RunClassification.CLEAN
    return RunClassification.WIPEOUT


def classify_run(record, resolutions=None) -> RunClassification:
    """Classify one PerformanceRecord.

    `resolutions` maps (competitor, round) to an object with a
    `classification` attribute (see records.DniResolution). DNI runs
    missing from it are incomplete-unknown.
    """
    if record.final_score is not None:
        return classify_score(record.final_score)
    resolution = (resolutions or {}).get(record.key)
    if resolution is None:
        return RunClassification.INCOMPLETE_UNKNOWN
    return resolution.classification


def classify_all(records, resolutions=None) -> list:
    """Return [(record, classification)] in input order."""
    return [(record, classify_run(record, resolutions)) for record in records]

import math

from codeprobe.services.analysis_types import AnalysisRecord


def round_half_up(value: float) -> int:
    # Python's round() rounds half to even; scores round .5 upwards.
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0, high: float = 100) -> float:
    return max(low, min(high, value))


def compute_maintainability(line_count: int, cyclomatic_complexity: int) -> int:
    """
    Maintainability index on a 0-100 scale.

    The classic formula uses the Halstead volume for the first logarithmic
    term. Halstead operands are not counted here, so the line count stands in
    for the volume and ``ln(LOC + 1)`` appears twice.
    """
    log_loc = math.log(line_count + 1)
    mi = 171 - 5.2 * log_loc - 0.23 * cyclomatic_complexity - 16.2 * log_loc
    return round_half_up(clamp(mi))


def compute_quality_score(record: AnalysisRecord) -> int:
    if record.error is not None:
        return 0

    score = 100
    score -= min(30, record.metrics.cyclomatic_complexity * 2)
    score -= min(15, record.complexity.max_depth)
    score -= len(record.issues) * 10
    if record.line_count > 300:
        score -= 10
    if record.line_count > 500:
        score -= 10
    if record.hooks and record.components:
        score += 5

    return round_half_up(clamp(score))

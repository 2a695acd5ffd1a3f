"""
FILE: core/profiler_engine.py
------------------------------
Pure column profiling engine.
No LangGraph dependencies, just pandas and numpy.

Column type rules (on non-missing cells, after numeric coercion):
  - every cell parses as a number   → numeric
  - no cell parses as a number      → categorical
  - some do, some don't             → mixed (numeric stats over the numbers,
                                      categorical stats over the rest)
  - every cell is missing           → unknown
"""

import logging

import pandas as pd

from core import numeric_summary as ns
from core.dataset import is_missing, parse_number
from Schemas.dataset import Dataset
from Schemas.data_profiler_schema import (
    CategoricalStats,
    ColumnProfile,
    ColumnType,
    DatasetProfile,
    FrequencyEntry,
)
from constants.data_profiler_constants import (
    CLASS_IMBALANCE_SHARE,
    COMPLETENESS_WARNING_PCT,
    HIGH_CARDINALITY_THRESHOLD,
    MAX_FREQUENCY_ENTRIES,
    SKEW_HIGH,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────
# PRIVATE HELPERS
# ─────────────────────────────────────────────

def _classify(parsed: pd.Series) -> ColumnType:
    if parsed.empty:
        return ColumnType.UNKNOWN
    numeric_share = parsed.notna().mean()
    if numeric_share == 1.0:
        return ColumnType.NUMERIC
    if numeric_share == 0.0:
        return ColumnType.CATEGORICAL
    return ColumnType.MIXED


def _categorical_stats(present: pd.Series) -> CategoricalStats:
    """Frequency table sorted by descending count; ties keep first appearance."""
    labels = present.map(lambda v: str(v).strip())
    counts = labels.value_counts(sort=False)
    # stable sort keeps first-appearance order among equal counts
    counts = counts.sort_values(ascending=False, kind="stable")
    total = int(counts.sum())

    frequencies = [
        FrequencyEntry(value=str(value), count=int(count), percentage=100.0 * count / total)
        for value, count in counts.items()
    ]
    mode = frequencies[0]
    return CategoricalStats(
        frequencies=frequencies[:MAX_FREQUENCY_ENTRIES],
        mode=mode.value,
        mode_count=mode.count,
        mode_percentage=mode.percentage,
        entropy=ns.entropy(counts.tolist()),
    )


def _column_warnings(profile: ColumnProfile) -> list[str]:
    warnings: list[str] = []
    name = profile.column

    if profile.completeness_pct < COMPLETENESS_WARNING_PCT:
        warnings.append(
            f"Column '{name}' is only {profile.completeness_pct:.1f}% complete."
        )
    if profile.column_type == ColumnType.MIXED:
        warnings.append(
            f"Column '{name}' mixes numbers and text; it is treated as categorical."
        )

    cat = profile.categorical_stats
    if cat is not None:
        if profile.distinct_count > HIGH_CARDINALITY_THRESHOLD:
            warnings.append(
                f"Column '{name}' has {profile.distinct_count} distinct values "
                f"(high cardinality); it is a poor grouping variable."
            )
        if profile.distinct_count > 1 and cat.mode_percentage / 100 > CLASS_IMBALANCE_SHARE:
            warnings.append(
                f"Column '{name}' is imbalanced: '{cat.mode}' accounts for "
                f"{cat.mode_percentage:.1f}% of values."
            )

    num = profile.numeric_stats
    if num is not None and abs(num.skewness) >= SKEW_HIGH:
        warnings.append(
            f"Column '{name}' shows {num.skewness_interpretation} "
            f"(skewness {num.skewness:.2f}); consider a nonparametric test."
        )
    return warnings


# ─────────────────────────────────────────────
# PUBLIC API
# ─────────────────────────────────────────────

def profile_column(name: str, raw: pd.Series) -> ColumnProfile:
    total = len(raw)
    missing_mask = raw.map(is_missing).astype(bool)
    present = raw[~missing_mask]
    parsed = present.map(parse_number)
    column_type = _classify(parsed)

    numeric_stats = None
    categorical_stats = None
    if column_type == ColumnType.NUMERIC:
        numbers = parsed.astype(float).tolist()
        numeric_stats = ns.summarize(numbers)
        distinct_count = len(set(numbers))
    elif column_type == ColumnType.UNKNOWN:
        distinct_count = 0
    else:
        # mixed: numbers summarised apart from the text cells
        is_number = parsed.notna()
        if is_number.any():
            numeric_stats = ns.summarize(parsed[is_number].astype(float).tolist())
        categorical_stats = _categorical_stats(present[~is_number])
        distinct_count = int(present.map(lambda v: str(v).strip()).nunique())

    return ColumnProfile(
        column=name,
        column_type=column_type,
        count=int(len(present)),
        missing_count=int(missing_mask.sum()),
        distinct_count=distinct_count,
        completeness_pct=100.0 * len(present) / total if total else 0.0,
        numeric_stats=numeric_stats,
        categorical_stats=categorical_stats,
    )


def profile(dataset: Dataset | list[dict]) -> DatasetProfile:
    """Profiles every column of the dataset in column order."""
    if not isinstance(dataset, Dataset):
        dataset = Dataset.from_rows(list(dataset or []))

    df = pd.DataFrame(list(dataset.rows), columns=list(dataset.columns), dtype=object)
    columns: dict[str, ColumnProfile] = {}
    warnings: list[str] = []
    for name in dataset.columns:
        column_profile = profile_column(name, df[name])
        columns[name] = column_profile
        warnings.extend(_column_warnings(column_profile))

    result = DatasetProfile(
        n_rows=dataset.n_rows,
        n_cols=dataset.n_columns,
        columns=columns,
        has_numeric_data=any(p.column_type == ColumnType.NUMERIC for p in columns.values()),
        has_categorical_data=any(
            p.column_type in (ColumnType.CATEGORICAL, ColumnType.MIXED) for p in columns.values()
        ),
        warnings=warnings,
    )
    logger.debug(
        "Profiled %d rows x %d columns (%d warnings)",
        result.n_rows, result.n_cols, len(result.warnings),
    )
    return result

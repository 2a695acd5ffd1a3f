"""
FILE: core/dataset.py
----------------------
Cell-level coercion shared by profiling, assumption checks and test runs.

parse_number() is the single numeric coercion rule:
  - real numbers pass through (NaN counts as missing, booleans are not numbers)
  - strings are stripped; empty → missing
  - standard parsing with "." as decimal point
  - then the Arabic decimal separator "٫" read as "."
  - then "," read as "." as a last resort
Anything else is not numeric.
"""

import math
from numbers import Real
from typing import Any

from core.errors import InputValidationError
from Schemas.dataset import Dataset
from constants.data_profiler_constants import ALT_DECIMAL_SEPARATOR, MISSING_MARKERS


def is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() in MISSING_MARKERS:
        return True
    return False


def _parse_float(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_number(value: Any) -> float | None:
    """
    Coerces one cell to a float.
    Returns None when the cell is not numeric. Callers must check is_missing()
    first: a missing cell is also None here.
    """
    if is_missing(value):
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, Real):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip()
    number = _parse_float(text)
    if number is None and ALT_DECIMAL_SEPARATOR in text:
        number = _parse_float(text.replace(ALT_DECIMAL_SEPARATOR, "."))
    if number is None and "," in text:
        number = _parse_float(text.replace(",", "."))
    return number


def group_label(value: Any) -> str:
    """Canonical string form of a grouping cell. 1 and 1.0 are the same label."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def unique_in_order(labels: list[Any]) -> list[Any]:
    """Distinct labels in first-appearance order."""
    return list(dict.fromkeys(labels))


# ─────────────────────────────────────────────
# COLUMN EXTRACTION
# ─────────────────────────────────────────────

def numeric_values(raw: list[Any], column: str) -> list[float]:
    """
    Coerces every non-missing cell to float and drops missing cells.
    Raises InputValidationError naming the first cell that cannot be coerced.
    """
    values: list[float] = []
    for i, cell in enumerate(raw):
        if is_missing(cell):
            continue
        number = parse_number(cell)
        if number is None:
            raise InputValidationError(
                f"Column '{column}' row {i + 1}: value '{cell}' is not a number."
            )
        values.append(number)
    return values


def grouped_numeric(
    dataset: Dataset,
    group_column: str,
    value_column: str,
) -> tuple[list[float], list[str]]:
    """
    Extracts (values, group labels) pairs for a group-based test.
    Rows where either cell is missing are dropped together.
    """
    values: list[float] = []
    groups: list[str] = []
    for i, row in enumerate(dataset.rows):
        group_cell, value_cell = row[group_column], row[value_column]
        if is_missing(group_cell) or is_missing(value_cell):
            continue
        number = parse_number(value_cell)
        if number is None:
            raise InputValidationError(
                f"Column '{value_column}' row {i + 1}: value '{value_cell}' is not a number."
            )
        values.append(number)
        groups.append(group_label(group_cell))
    return values, groups


def paired_numeric(
    dataset: Dataset,
    x_column: str,
    y_column: str,
) -> tuple[list[float], list[float]]:
    """
    Extracts (x, y) numeric pairs for correlation and regression.
    Rows where either cell is missing are dropped together.
    """
    xs: list[float] = []
    ys: list[float] = []
    for i, row in enumerate(dataset.rows):
        x_cell, y_cell = row[x_column], row[y_column]
        if is_missing(x_cell) or is_missing(y_cell):
            continue
        for column, cell in ((x_column, x_cell), (y_column, y_cell)):
            if parse_number(cell) is None:
                raise InputValidationError(
                    f"Column '{column}' row {i + 1}: value '{cell}' is not a number."
                )
        xs.append(parse_number(x_cell))
        ys.append(parse_number(y_cell))
    return xs, ys


def categorical_pairs(
    dataset: Dataset,
    row_column: str,
    col_column: str,
) -> tuple[list[str], list[str]]:
    """Extracts category label pairs for a contingency table."""
    rows: list[str] = []
    cols: list[str] = []
    for row in dataset.rows:
        a, b = row[row_column], row[col_column]
        if is_missing(a) or is_missing(b):
            continue
        rows.append(group_label(a))
        cols.append(group_label(b))
    return rows, cols

"""
FILE: Schemas/data_profiler_schema.py
--------------------------------------
Pydantic output schemas for column profiling.
These are shared data contracts: the wizard, the Recommender and the
CLI report all read ColumnProfile / DatasetProfile from here.
"""

from enum import Enum

from pydantic import BaseModel, Field


class ColumnType(str, Enum):
    NUMERIC     = "numeric"
    CATEGORICAL = "categorical"
    MIXED       = "mixed"        # some cells parse as numbers, some do not
    UNKNOWN     = "unknown"      # every cell is missing


class NumericStats(BaseModel):
    min: float
    max: float
    mean: float
    median: float
    std_dev: float               # population-style (denominator n)
    variance: float
    q1: float
    q3: float
    iqr: float
    skewness: float
    kurtosis: float              # excess kurtosis
    skewness_interpretation: str = ""


class FrequencyEntry(BaseModel):
    value: str
    count: int
    percentage: float


class CategoricalStats(BaseModel):
    frequencies: list[FrequencyEntry] = Field(default_factory=list)   # sorted by count, descending
    mode: str | None = None
    mode_count: int = 0
    mode_percentage: float = 0.0
    entropy: float = 0.0         # Shannon entropy, base 2


class ColumnProfile(BaseModel):
    column: str
    column_type: ColumnType
    count: int                   # non-missing cells
    missing_count: int
    distinct_count: int
    completeness_pct: float
    numeric_stats: NumericStats | None = None
    categorical_stats: CategoricalStats | None = None


class DatasetProfile(BaseModel):
    n_rows: int
    n_cols: int
    columns: dict[str, ColumnProfile] = Field(default_factory=dict)
    has_numeric_data: bool = False
    has_categorical_data: bool = False
    warnings: list[str] = Field(default_factory=list)

    def numeric_columns(self) -> list[str]:
        return [c for c, p in self.columns.items() if p.column_type == ColumnType.NUMERIC]

    def categorical_columns(self) -> list[str]:
        return [
            c for c, p in self.columns.items()
            if p.column_type in (ColumnType.CATEGORICAL, ColumnType.MIXED)
        ]

"""
FILE: Schemas/dataset.py
-------------------------
Immutable rectangular table handed to every engine entry point.

Rows are mappings from column name to a scalar (str, int, float or None).
A Dataset is never mutated in place: a new upload builds a new Dataset.
"""

from typing import Any

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from core.errors import InputValidationError
from constants.data_profiler_constants import MAX_ROWS, MAX_COLUMNS


class Dataset(BaseModel):
    model_config = ConfigDict(frozen=True)

    rows: tuple[dict[str, Any], ...] = Field(default_factory=tuple)
    columns: tuple[str, ...] = Field(default_factory=tuple)

    @model_validator(mode="before")
    @classmethod
    def _derive_columns(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("columns"):
            rows = data.get("rows") or ()
            if rows:
                first = rows[0]
                if not isinstance(first, dict):
                    raise InputValidationError("Each row must be a mapping of column name to value.")
                data = {**data, "columns": tuple(str(c) for c in first.keys())}
        return data

    @model_validator(mode="after")
    def _check_shape(self) -> "Dataset":
        if len(self.rows) > MAX_ROWS:
            raise InputValidationError(
                f"Dataset has {len(self.rows)} rows; the maximum is {MAX_ROWS}."
            )
        if len(self.columns) > MAX_COLUMNS:
            raise InputValidationError(
                f"Dataset has {len(self.columns)} columns; the maximum is {MAX_COLUMNS}."
            )
        expected = set(self.columns)
        for i, row in enumerate(self.rows):
            if set(row.keys()) != expected:
                raise InputValidationError(
                    f"Row {i + 1} does not have the same columns as the first row."
                )
        return self

    # ── Constructors ──

    @classmethod
    def from_rows(cls, rows: list[dict[str, Any]]) -> "Dataset":
        """Copies the given rows so later changes by the caller cannot leak in."""
        return cls(rows=tuple(dict(row) for row in rows))

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "Dataset":
        """Builds a Dataset from a DataFrame. NaN cells become None."""
        clean = df.astype(object).where(df.notna(), None)
        clean.columns = [str(c) for c in clean.columns]
        return cls(
            rows=tuple(clean.to_dict(orient="records")),
            columns=tuple(clean.columns),
        )

    # ── Accessors ──

    @property
    def n_rows(self) -> int:
        return len(self.rows)

    @property
    def n_columns(self) -> int:
        return len(self.columns)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column(self, name: str) -> list[Any]:
        if name not in self.columns:
            raise InputValidationError(f"Column '{name}' does not exist in the dataset.")
        return [row[name] for row in self.rows]

    def to_payload(self) -> list[dict[str, Any]]:
        """Plain copy of the rows for shipping to another process."""
        return [dict(row) for row in self.rows]

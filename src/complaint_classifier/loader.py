"""Loading complaint records from tabular files.

Reads CSV/TSV exports of the consumer complaint database (optionally
zip- or gzip-compressed) with pandas. Rows with a missing narrative are
dropped here, before normalization, and counted; training labels are
checked against the fixed product categories.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import pandas as pd

from .models import LabelDomainError, Product, Record

LOGGER = logging.getLogger("complaint_classifier.loader")

# Narrative column names tried, in order, when none is configured
NARRATIVE_COLUMNS: tuple[str, ...] = (
    "Consumer complaint narrative",
    "Consumer_complaint_narrative",
    "narrative",
    "complaint",
    "Complain",
)

_SEPARATORS: dict[str, str] = {
    ".csv": ",",
    ".tsv": "\t",
    ".txt": "\t",
}

_COMPRESSION_SUFFIXES: tuple[str, ...] = (".zip", ".gz")


@dataclass
class LoadResult:
    """Records read from one file.

    Attributes:
        records: Retained records, in file order.
        dropped: Rows dropped for a missing narrative.
        source: File the records were read from.
        text_column: Narrative column that was used.
        rows: 1-based data row number of each record in the source file.
    """

    records: list[Record] = field(default_factory=list)
    dropped: int = 0
    source: str = ""
    text_column: str = ""
    rows: list[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def texts(self) -> list[str]:
        return [r.text for r in self.records]

    @property
    def labels(self) -> list[Optional[Product]]:
        return [r.label for r in self.records]

    def to_dict(self) -> dict:
        return {
            "source": self.source,
            "text_column": self.text_column,
            "records": len(self.records),
            "dropped": self.dropped,
        }


def _separator_for(path: Path) -> str:
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] in _COMPRESSION_SUFFIXES:
        suffixes = suffixes[:-1]
    if suffixes and suffixes[-1] in _SEPARATORS:
        return _SEPARATORS[suffixes[-1]]
    supported = sorted(
        list(_SEPARATORS) + [f".csv{c}" for c in _COMPRESSION_SUFFIXES]
    )
    raise ValueError(
        f"Unsupported file extension '{''.join(path.suffixes)}' for {path.name}. "
        f"Supported: {', '.join(supported)}"
    )


def _resolve_text_column(columns: list[str], text_column: Optional[str]) -> str:
    if text_column is not None:
        if text_column not in columns:
            raise ValueError(
                f"Narrative column '{text_column}' not found. Available: {', '.join(columns)}"
            )
        return text_column
    for candidate in NARRATIVE_COLUMNS:
        if candidate in columns:
            return candidate
    raise ValueError(
        f"No narrative column found (tried {', '.join(NARRATIVE_COLUMNS)}). "
        f"Available: {', '.join(columns)}"
    )


def load_records(
    path: str | Path,
    *,
    text_column: Optional[str] = None,
    label_column: str = "Product",
    require_labels: bool = True,
) -> LoadResult:
    """Read complaint records from a tabular file.

    Args:
        path: CSV/TSV file, optionally ``.zip`` or ``.gz`` compressed.
        text_column: Narrative column; auto-detected when ``None``.
        label_column: Product label column.
        require_labels: Read and validate labels (training data). When
            ``False`` labels are ignored and records are unlabeled.

    Returns:
        LoadResult with the retained records and the dropped-row count.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the format is unsupported or a column is missing.
        LabelDomainError: If a training label is missing or unknown.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    sep = _separator_for(path)

    # Only empty fields are missing; "NA" or "None" is narrative text
    frame = pd.read_csv(
        path, sep=sep, low_memory=False, keep_default_na=False, na_values=[""]
    )
    columns = [str(c) for c in frame.columns]
    text_col = _resolve_text_column(columns, text_column)

    if require_labels and label_column not in columns:
        raise ValueError(
            f"Label column '{label_column}' not found. Available: {', '.join(columns)}"
        )

    missing = frame[text_col].isna()
    dropped = int(missing.sum())
    frame = frame.loc[~missing]

    records: list[Record] = []
    rows: list[int] = []
    for row_number, row in zip(frame.index, frame.itertuples(index=False)):
        values = dict(zip(columns, row))
        label = None
        if require_labels:
            raw_label = values[label_column]
            try:
                label = Product.from_label(None if pd.isna(raw_label) else raw_label)
            except LabelDomainError as exc:
                raise LabelDomainError(f"{path.name} row {row_number + 1}: {exc}") from exc
        records.append(Record(text=str(values[text_col]), label=label))
        rows.append(int(row_number) + 1)

    LOGGER.info(
        "[LOAD] %s: %d records kept, %d dropped for missing narrative",
        path.name,
        len(records),
        dropped,
    )
    return LoadResult(
        records=records,
        dropped=dropped,
        source=str(path),
        text_column=text_col,
        rows=rows,
    )

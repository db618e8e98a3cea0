"""Delimited-file ingestion into :class:`IngestedTable`."""

from pathlib import Path
from typing import Optional

import pandas as pd  # type: ignore

from ..core.errors import TableLoadError
from ..core.models import IngestedTable
from ..utils.logging import get_logger

logger = get_logger(__name__)


def table_from_dataframe(df: pd.DataFrame) -> IngestedTable:
    """Convert a DataFrame to an ingested table, keeping header order.

    Missing values become ``None``; every other cell is kept as parsed.
    """
    header = [str(c) for c in df.columns]
    clean = df.astype(object).where(pd.notna(df), None)
    rows = [dict(zip(header, values)) for values in clean.itertuples(index=False, name=None)]
    return IngestedTable(header=header, rows=rows)


def read_table(path: Path, delimiter: Optional[str] = None) -> IngestedTable:
    """Read a CSV/TSV file with every cell as text.

    Empty cells stay empty strings and blank lines are skipped, so row
    indices match the data lines of the file.
    """
    sep = delimiter or ("\t" if path.suffix.lower() in (".tsv", ".tab") else ",")
    try:
        df = pd.read_csv(
            path,
            sep=sep,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except FileNotFoundError as e:
        raise TableLoadError(str(path), "file not found") from e
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise TableLoadError(str(path), str(e)) from e
    table = table_from_dataframe(df)
    logger.info(f"Loaded {table.row_count} rows x {len(table.header)} columns from {path}")
    return table

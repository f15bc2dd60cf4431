"""
Dataset Store

Immutable in-memory snapshot of the gold star schema. Tables are polars
DataFrames keyed by name; monetary columns are normalized to a decimal dtype
at least as fine as their input, so every sum over them is an exact decimal
accumulation.
"""

from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

import polars as pl
import structlog

from gold_analytics.config import get_settings
from gold_analytics.errors import InvalidRequestError, NotFoundError

logger = structlog.get_logger(__name__)

SUPPORTED_FORMATS = ("csv", "parquet")
MAX_PRECISION = 38


def _text_scale(value: Decimal) -> int:
    exponent = value.as_tuple().exponent
    return -exponent if exponent < 0 else 0


def _checked(column: str, scale: int) -> int:
    if scale > MAX_PRECISION:
        raise InvalidRequestError(
            f"Monetary column '{column}' needs {scale} decimal places, at most {MAX_PRECISION} fit",
            details={"column": column, "scale": scale},
        )
    return scale


def _float_as_decimal(series: pl.Series, min_scale: int) -> pl.Series:
    # Shortest repr of each float, so 0.1 stays 0.1 rather than its binary expansion
    values = [None if v is None else Decimal(repr(v)) for v in series.to_list()]
    non_finite = [v for v in values if v is not None and not v.is_finite()]
    if non_finite:
        raise InvalidRequestError(
            f"Monetary column '{series.name}' holds non-finite values",
            details={"column": series.name, "values": [str(v) for v in non_finite[:5]]},
        )
    scale = max([min_scale] + [_text_scale(v) for v in values if v is not None])
    return pl.Series(series.name, values, dtype=pl.Decimal(MAX_PRECISION, _checked(series.name, scale)))


def normalize_money_columns(
    df: pl.DataFrame,
    money_columns: Iterable[str],
    scale: int,
) -> pl.DataFrame:
    """
    Cast monetary columns present in df to Decimal(38, s).

    s is the configured scale or the input's own scale, whichever is larger,
    so loading never drops digits.

    Raises:
        InvalidRequestError: a value is not a finite number or needs more
            digits than the decimal type holds
    """
    columns = []
    for col in money_columns:
        if col not in df.columns:
            continue
        dtype = df.schema[col]
        if dtype.is_float():
            columns.append(_float_as_decimal(df[col], scale))
            continue

        expr = pl.col(col)
        col_scale = scale
        if dtype.is_decimal():
            col_scale = max(scale, dtype.scale or 0)
        elif dtype == pl.String:
            expr = expr.str.strip_chars()
            digits = df[col].str.strip_chars().str.extract(r"\.(\d+)$", 1).str.len_chars().max()
            col_scale = max(scale, digits or 0)

        target = pl.Decimal(MAX_PRECISION, _checked(col, col_scale))
        try:
            columns.append(df.select(expr.cast(target).alias(col)).to_series())
        except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as e:
            raise InvalidRequestError(
                f"Monetary column '{col}' is not numeric",
                details={"column": col, "dtype": str(dtype), "error": str(e)},
            ) from e

    if not columns:
        return df
    return df.with_columns(columns)


class DatasetStore:
    """
    Read-only table store for fact and dimension data.

    Supports full scans (rows) and equality lookups (lookup). Raw scans carry
    no ordering guarantee; ordering is imposed by the grouping and ranking
    steps only.

    Example:
        store = DatasetStore.from_directory("./data/gold")
        facts = store.rows("fact_sales")
    """

    def __init__(
        self,
        tables: Mapping[str, pl.DataFrame],
        money_columns: Optional[Iterable[str]] = None,
        money_scale: Optional[int] = None,
    ):
        settings = get_settings().store
        self.money_columns = list(money_columns if money_columns is not None else settings.money_columns)
        self.money_scale = money_scale if money_scale is not None else settings.money_scale

        self._tables: Dict[str, pl.DataFrame] = {
            name: normalize_money_columns(df, self.money_columns, self.money_scale)
            for name, df in tables.items()
        }

        logger.info(
            "Dataset store loaded",
            tables={name: len(df) for name, df in self._tables.items()},
        )

    @classmethod
    def from_records(
        cls,
        tables: Mapping[str, List[Dict[str, Any]]],
        schemas: Optional[Mapping[str, Mapping[str, pl.DataType]]] = None,
        **kwargs: Any,
    ) -> "DatasetStore":
        """
        Build a store from lists of row dicts.

        A table listed in schemas keeps those columns even when it has no
        records; other tables infer their columns from the records.
        """
        schemas = schemas or {}
        frames = {}
        for name, records in tables.items():
            schema = schemas.get(name)
            if records:
                frames[name] = pl.from_dicts(records, schema=schema, infer_schema_length=None)
            else:
                frames[name] = pl.DataFrame(schema=schema)
        return cls(frames, **kwargs)

    @classmethod
    def from_directory(
        cls,
        path: Optional[str] = None,
        file_format: Optional[str] = None,
        **kwargs: Any,
    ) -> "DatasetStore":
        """
        Load every table file in a directory.

        Table names are the file stems, e.g. fact_sales.csv -> fact_sales.

        Args:
            path: Directory holding the table files
            file_format: csv or parquet

        Returns:
            Store holding one table per file
        """
        settings = get_settings().store
        root = Path(path or settings.data_path)
        fmt = (file_format or settings.file_format).lower()
        money_columns = kwargs.get("money_columns")
        if money_columns is None:
            money_columns = settings.money_columns

        if fmt not in SUPPORTED_FORMATS:
            raise ValueError(f"Unsupported file format '{fmt}', expected one of {SUPPORTED_FORMATS}")
        if not root.is_dir():
            raise NotFoundError(
                f"Data directory '{root}' not found",
                details={"path": str(root)},
            )

        frames: Dict[str, pl.DataFrame] = {}
        for table_file in sorted(root.glob(f"*.{fmt}")):
            if fmt == "csv":
                header = pl.read_csv(table_file, n_rows=0).columns
                money_text = {col: pl.String for col in money_columns if col in header}
                frames[table_file.stem] = pl.read_csv(
                    table_file,
                    try_parse_dates=True,
                    schema_overrides=money_text,
                )
            else:
                frames[table_file.stem] = pl.read_parquet(table_file)
            logger.debug("Table file read", table=table_file.stem, path=str(table_file))

        return cls(frames, **kwargs)

    def tables(self) -> List[str]:
        """Names of all tables, sorted"""
        return sorted(self._tables)

    def has_table(self, table: str) -> bool:
        return table in self._tables

    def rows(self, table: str) -> pl.DataFrame:
        """Full scan of a table"""
        try:
            return self._tables[table]
        except KeyError:
            raise NotFoundError(
                f"Table '{table}' not found",
                details={"table": table, "available": self.tables()},
            ) from None

    def column(self, table: str, name: str) -> pl.Series:
        df = self.rows(table)
        if name not in df.columns:
            raise NotFoundError(
                f"Column '{name}' not found in table '{table}'",
                details={"table": table, "column": name},
            )
        return df[name]

    def lookup(self, table: str, key: str, value: Any) -> pl.DataFrame:
        """Rows of table whose key column equals value"""
        self.column(table, key)
        return self.rows(table).filter(pl.col(key) == value)

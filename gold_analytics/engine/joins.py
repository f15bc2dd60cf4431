"""
Join Resolver

Attaches dimension attributes to fact rows with a left outer join. Every fact
row appears exactly once in the output; unmatched rows carry nulls for the
dimension attributes.

The dimension side of the join key is kept next to the fact side as
<key>_dim. It is null for unmatched rows, so grouping by it puts every
orphan fact row in one null bucket, whatever its fact key.
"""

from typing import List, Sequence, Union

import polars as pl
import structlog

from gold_analytics.errors import InvalidRequestError, NotFoundError

logger = structlog.get_logger(__name__)

# Suffix for dimension columns whose name already exists on the fact side
DIMENSION_SUFFIX = "_dim"


def _as_keys(key: Union[str, Sequence[str]]) -> List[str]:
    return [key] if isinstance(key, str) else list(key)


def joined_columns(
    fact_columns: Sequence[str],
    dimension_columns: Sequence[str],
    key: Union[str, Sequence[str]],
) -> List[str]:
    """
    Column names produced by JoinResolver.join, in output order.

    One name per fact column, then one per dimension column; key columns
    and colliding names of the dimension get DIMENSION_SUFFIX.
    """
    keys = set(_as_keys(key))
    columns = list(fact_columns)
    for col in dimension_columns:
        if col in keys or col in fact_columns:
            columns.append(f"{col}{DIMENSION_SUFFIX}")
        else:
            columns.append(col)
    return columns


class JoinResolver:
    """
    Left outer join of facts onto a dimension table.

    Dimension keys are expected to be unique; duplicates are collapsed to
    their first occurrence so the output row count always equals the fact
    row count.

    Example:
        resolver = JoinResolver()
        enriched = resolver.join(facts, products, "product_key")
        enriched.filter(pl.col("product_key_dim").is_null())  # orphan lines
    """

    def join(
        self,
        facts: pl.DataFrame,
        dimension: pl.DataFrame,
        key: Union[str, Sequence[str]],
    ) -> pl.DataFrame:
        keys = _as_keys(key)
        for side, df in (("fact", facts), ("dimension", dimension)):
            missing = [k for k in keys if k not in df.columns]
            if missing:
                raise NotFoundError(
                    f"Join key {missing} not found on {side} side",
                    details={"side": side, "missing": missing},
                )

        duplicated = dimension.select(keys).is_duplicated()
        if duplicated.any():
            logger.warning(
                "Duplicate dimension keys collapsed",
                keys=keys,
                duplicates=int(duplicated.sum()),
            )
            dimension = dimension.unique(subset=keys, keep="first", maintain_order=True)

        dimension = self._align_keys(facts, dimension, keys)

        joined = facts.join(
            dimension,
            on=keys,
            how="left",
            suffix=DIMENSION_SUFFIX,
            coalesce=False,
            maintain_order="left",
        ).select(joined_columns(facts.columns, dimension.columns, keys))

        if len(facts):
            matched = joined.select(pl.col(f"{keys[0]}{DIMENSION_SUFFIX}").is_not_null().sum()).item()
            logger.debug(
                "Dimension joined",
                keys=keys,
                fact_rows=len(facts),
                matched_rows=matched,
                match_rate=round(matched / len(facts), 4),
            )

        return joined

    @staticmethod
    def _align_keys(facts: pl.DataFrame, dimension: pl.DataFrame, keys: List[str]) -> pl.DataFrame:
        """Cast dimension keys to the fact key dtypes, e.g. Int64 onto Int32"""
        try:
            return dimension.with_columns([
                pl.col(k).cast(facts.schema[k]) for k in keys
            ])
        except (pl.exceptions.InvalidOperationError, pl.exceptions.ComputeError) as e:
            raise InvalidRequestError(
                f"Join key {keys} cannot be compared across fact and dimension",
                details={
                    "keys": keys,
                    "fact_types": [str(facts.schema[k]) for k in keys],
                    "dimension_types": [str(dimension.schema[k]) for k in keys],
                },
            ) from e

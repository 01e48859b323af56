"""Gold layer: analytics marts derived from the full transaction set.

build_marts() is a pure function of fact_transactions; recompute_marts()
loads the full set, rebuilds every mart and writes them to
c_processed/analytics. Marts are never updated incrementally.

Money is summed as Decimal and only rounded to 2 places when written.

Marts:
    sales_summary: one row with overall totals.
    revenue_by_day: store x calendar day.
    demand_by_hour: hour of day 0-23, zero-filled.
    demand_by_weekday: Sunday..Saturday, zero-filled.
    store_ranking: stores ranked by revenue.
    category_mix: platform x category, with revenue share within platform.
    customer_behaviour: per store repeat-customer statistics.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

import pandas as pd

from pos_ingest.etl.utils import atomic_write
from pos_ingest.transactions import core
from pos_ingest.transactions.metadata import StageMetadata, write_stage_metadata

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)

STAGE = "analytics"
VERSION = "marts_v1"

MART_NAMES = (
    "sales_summary",
    "revenue_by_day",
    "demand_by_hour",
    "demand_by_weekday",
    "store_ranking",
    "category_mix",
    "customer_behaviour",
)

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

CENTS = Decimal("0.01")
ZERO = Decimal(0)


def _dsum(values: Iterable) -> Decimal:
    return sum(values, ZERO)


def _ratio(num: Decimal, den: int | Decimal) -> Decimal:
    if not den:
        return ZERO
    # numpy integers are not accepted by Decimal()
    return num / (den if isinstance(den, Decimal) else Decimal(int(den)))


def _prepare(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df["amount"] = df["amount"].map(lambda v: v if isinstance(v, Decimal) else Decimal(str(v)))
    df["date"] = pd.to_datetime(df["date"])
    df["day"] = df["date"].dt.date
    df["hour"] = df["date"].dt.hour
    # pandas counts Monday=0; marts count Sunday=0
    df["day_of_week"] = (df["date"].dt.dayofweek + 1) % 7
    df["customer_identifier"] = df["customer_identifier"].fillna("").astype(str)
    return df


def _counts_and_revenue(df: pd.DataFrame, keys: list[str]) -> pd.DataFrame:
    if df.empty:
        return pd.DataFrame(columns=keys + ["transaction_count", "revenue"])
    grouped = df.groupby(keys, sort=True)
    out = grouped.size().rename("transaction_count").to_frame()
    out["revenue"] = grouped["amount"].agg(_dsum)
    return out.reset_index()


def _sales_summary(df: pd.DataFrame) -> pd.DataFrame:
    total = _dsum(df["amount"])
    count = len(df)
    return pd.DataFrame(
        [
            {
                "transaction_count": count,
                "total_revenue": total,
                "average_transaction_value": _ratio(total, count),
                "store_count": df["store_id"].nunique(),
                "first_date": df["date"].min().isoformat() if count else None,
                "last_date": df["date"].max().isoformat() if count else None,
            }
        ]
    )


def _demand(df: pd.DataFrame, key: str, index: range) -> pd.DataFrame:
    base = _counts_and_revenue(df, [key]).set_index(key)
    out = pd.DataFrame(index=pd.Index(index, name=key))
    out["transaction_count"] = base["transaction_count"].reindex(out.index, fill_value=0).astype(int)
    out["revenue"] = base["revenue"].reindex(out.index).map(lambda v: v if isinstance(v, Decimal) else ZERO)
    return out.reset_index()


def _demand_by_weekday(df: pd.DataFrame) -> pd.DataFrame:
    out = _demand(df, "day_of_week", range(7))
    out.insert(1, "day_name", [DAY_NAMES[d] for d in out["day_of_week"]])
    return out


def _store_ranking(df: pd.DataFrame) -> pd.DataFrame:
    out = _counts_and_revenue(df, ["store_id", "store_name", "platform"])
    if out.empty:
        return out.assign(average_transaction_value=[], rank=[])
    out["average_transaction_value"] = [
        _ratio(r, c) for r, c in zip(out["revenue"], out["transaction_count"])
    ]
    order = sorted(range(len(out)), key=lambda i: (-out.at[i, "revenue"], out.at[i, "store_id"]))
    out = out.iloc[order].reset_index(drop=True)
    out["rank"] = range(1, len(out) + 1)
    return out


def _category_mix(df: pd.DataFrame) -> pd.DataFrame:
    out = _counts_and_revenue(df, ["platform", "category"])
    if out.empty:
        return out.assign(revenue_share=[])
    totals = {p: _dsum(g["revenue"]) for p, g in out.groupby("platform")}
    out["revenue_share"] = [_ratio(r, totals[p]) for p, r in zip(out["platform"], out["revenue"])]
    return out


def _customer_behaviour(df: pd.DataFrame) -> pd.DataFrame:
    columns = [
        "store_id",
        "identified_customers",
        "repeat_customers",
        "repeat_rate",
        "identified_transactions",
        "repeat_transactions",
    ]
    rows = []
    for store_id, group in df.groupby("store_id", sort=True):
        visits = group.loc[group["customer_identifier"] != "", "customer_identifier"].value_counts()
        repeat = visits[visits > 1]
        rows.append(
            {
                "store_id": store_id,
                "identified_customers": len(visits),
                "repeat_customers": len(repeat),
                "repeat_rate": _ratio(Decimal(len(repeat)), len(visits)),
                "identified_transactions": int(visits.sum()),
                "repeat_transactions": int(repeat.sum()),
            }
        )
    return pd.DataFrame(rows, columns=columns)


def build_marts(df: pd.DataFrame) -> dict[str, pd.DataFrame]:
    """Build every analytics mart from fact_transactions.

    Args:
        df: Full transaction set as returned by core.load() ("amount" as
            Decimal, "date" as datetime).

    Returns:
        Dict of mart name -> DataFrame. Money columns hold exact Decimals.

    Examples:
        >>> marts = build_marts(core.load(paths))
        >>> marts["demand_by_hour"].shape[0]
        24
    """
    df = _prepare(df)
    return {
        "sales_summary": _sales_summary(df),
        "revenue_by_day": _counts_and_revenue(df, ["store_id", "store_name", "day"]),
        "demand_by_hour": _demand(df, "hour", range(24)),
        "demand_by_weekday": _demand_by_weekday(df),
        "store_ranking": _store_ranking(df),
        "category_mix": _category_mix(df),
        "customer_behaviour": _customer_behaviour(df),
    }


def _round_money(df: pd.DataFrame) -> pd.DataFrame:
    """Quantize Decimal columns to cents for output."""
    out = df.copy()
    for col in out.columns:
        if out[col].map(lambda v: isinstance(v, Decimal)).any():
            places = Decimal("0.0001") if col.endswith(("_share", "_rate")) else CENTS
            out[col] = out[col].map(
                lambda v: v.quantize(places, rounding=ROUND_HALF_UP) if isinstance(v, Decimal) else v
            )
    return out


def mart_path(paths: DataPaths, name: str) -> Path:
    """CSV path of a mart."""
    return paths.mart_analytics / f"mart_{name}.csv"


def recompute_marts(paths: DataPaths) -> dict[str, pd.DataFrame]:
    """Rebuild and write all marts from the full transaction set.

    Writes one CSV per mart to c_processed/analytics and stage metadata to
    c_processed/analytics/_meta/analytics.json.

    Returns:
        Dict of mart name -> DataFrame (rounded, as written).
    """
    paths.ensure_dirs()
    stores: list[str] = []
    row_count = 0
    try:
        df = core.load(paths)
        stores = sorted(df["store_id"].unique().tolist())
        row_count = len(df)
        logger.info("Rebuilding analytics marts from %d transactions (%d stores)", row_count, len(stores))

        marts = {name: _round_money(mart) for name, mart in build_marts(df).items()}
        for name, mart in marts.items():
            atomic_write(
                mart_path(paths, name),
                lambda p, m=mart: m.to_csv(p, index=False, encoding="utf-8-sig"),
            )

        write_stage_metadata(
            paths.mart_analytics,
            StageMetadata(
                stage=STAGE,
                version=VERSION,
                last_run=datetime.now().isoformat(),
                status="ok",
                stores=stores,
                row_count=row_count,
            ),
        )
        return marts

    except Exception as e:
        logger.error("Error rebuilding analytics marts: %s", e)
        write_stage_metadata(
            paths.mart_analytics,
            StageMetadata(
                stage=STAGE,
                version=VERSION,
                last_run=datetime.now().isoformat(),
                status="failed",
                stores=stores,
                row_count=row_count,
            ),
        )
        raise


def load_mart(paths: DataPaths, name: str) -> pd.DataFrame:
    """Read a written mart back from disk.

    Raises:
        ValueError: If name is not a known mart.
        FileNotFoundError: If the mart has not been built yet.
    """
    if name not in MART_NAMES:
        raise ValueError(f"Invalid mart '{name}'. Must be one of: {', '.join(MART_NAMES)}.")
    path = mart_path(paths, name)
    if not path.exists():
        raise FileNotFoundError(
            f"Mart {name} not found at {path}. Use aggregate.recompute_marts() to build the marts."
        )
    return pd.read_csv(path, encoding="utf-8-sig")

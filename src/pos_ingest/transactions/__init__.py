"""Transactions domain module.

This module provides access to transaction data across bronze/silver/gold layers:

- **Bronze (raw)**: `transactions.raw.decode_table()` - uploaded CSV/XLSX bytes
  to rows; the last accepted file per store is archived
- **Silver (core)**: `transactions.core.load()` - fact_transactions, one
  partition per store, replaced whole on every upload
- **Gold (marts)**: `transactions.aggregate.recompute_marts()` / `load_mart()` -
  analytics marts rebuilt from the full set
- **API**: `transactions.api.upload()` - the ingestion entry point

Example:
    >>> from pos_ingest import DataPaths, Platform, StoreContext
    >>> from pos_ingest.transactions import aggregate, api, core
    >>>
    >>> paths = DataPaths.from_root("data", "utils/stores.json")
    >>> ctx = StoreContext("salon-1", "Hair by Noa", Platform.BOOKER)
    >>> api.upload_path(paths, "booker_export.xlsx", ctx).to_dict()
    >>>
    >>> fact_df = core.load(paths)
    >>> by_hour = aggregate.load_mart(paths, "demand_by_hour")
"""

from pos_ingest.transactions import aggregate, api, core, metadata, raw

__all__ = ["aggregate", "api", "core", "metadata", "raw"]

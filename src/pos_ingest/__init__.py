"""POS Ingest - upload, normalization and analytics for point-of-sale exports.

This package ingests CSV/XLSX exports from two payment platforms into one
canonical transaction record set, organised in layers:

- **Bronze (raw)**: the last accepted upload file per store
- **Silver (core facts)**: fact_transactions, one partition per store
- **Gold (marts)**: analytics tables rebuilt from the full set

Module Structure:
    pos_ingest.transactions: Upload API, transaction store and marts
    pos_ingest.etl: Value normalizers, column resolver, categorizer, parsers
    pos_ingest.stores: Store registry (stores.json)
    pos_ingest.config: DataPaths and IngestSettings
    pos_ingest.models: Transaction, StoreContext, Platform

Quick Start:
    >>> from pos_ingest import DataPaths, StoreContext, Platform
    >>> from pos_ingest.transactions import aggregate, api
    >>>
    >>> paths = DataPaths.from_root("data", "utils/stores.json")
    >>> ctx = StoreContext("cafe-1", "High St Café", Platform.TAKEMYPAYMENTS)
    >>>
    >>> result = api.upload_path(paths, "takemypayments_export.csv", ctx)
    >>> result.to_dict()
    {'success': True, 'transactionCount': 412, 'lastUploaded': '2025-01-15T12:00:00'}
    >>>
    >>> ranking = aggregate.load_mart(paths, "store_ranking")

Supported platforms:
    - takemypayments: retail / café card terminal exports (café taxonomy)
    - booker: salon / spa appointment exports (services taxonomy)
"""

__version__ = "0.1.0"

from pos_ingest.config import DataPaths, IngestSettings
from pos_ingest.exceptions import (
    ConfigError,
    DecodeError,
    EmptyBatchError,
    ETLError,
    PersistenceError,
    PosAPIError,
    TransactionNotFoundError,
    ValidationError,
)
from pos_ingest.models import Platform, ProductLine, StoreContext, Transaction

__all__ = [
    "ConfigError",
    "DataPaths",
    "DecodeError",
    "ETLError",
    "EmptyBatchError",
    "IngestSettings",
    "PersistenceError",
    "Platform",
    "PosAPIError",
    "ProductLine",
    "StoreContext",
    "Transaction",
    "TransactionNotFoundError",
    "ValidationError",
    "__version__",
]

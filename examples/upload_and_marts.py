"""Example: Upload a store export and read the analytics marts.

This example demonstrates the ingestion flow end to end:
1. Replace a store's transactions with a CSV/XLSX export (Silver)
2. Rebuild the analytics marts from every store's transactions (Gold)
3. Read a mart back for reporting

Prerequisites:
- Create utils/stores.json with your store configuration
- Have an export file from TakeMyPayments or Booker at hand
"""

from pathlib import Path

from pos_ingest import DataPaths
from pos_ingest.stores import StoreRegistry
from pos_ingest.transactions import aggregate
from pos_ingest.transactions.api import list_uploads, upload_path

paths = DataPaths.from_root(Path("data"), Path("utils/stores.json"))
registry = StoreRegistry(paths)

store_id = "cafe-1"  # MODIFY AS NEEDED
export_file = Path("exports/cafe-1-december.csv")  # MODIFY AS NEEDED

# Upload replaces every transaction of the store; other stores are untouched
print(f"Uploading {export_file} for {store_id}...")
result = upload_path(paths, export_file, registry.context_for(store_id))
print(result.to_dict())

if not result.success:
    raise SystemExit(1)

if result.rejected:
    print(f"Skipped rows: {result.rejected}")

# Marts were rebuilt after the upload; read two of them back
summary = aggregate.load_mart(paths, "sales_summary")
print("\nSales summary:")
print(summary.to_string(index=False))

by_hour = aggregate.load_mart(paths, "demand_by_hour")
busiest = by_hour.sort_values("transaction_count", ascending=False).head(3)
print("\nBusiest hours:")
print(busiest[["hour", "transaction_count", "revenue"]].to_string(index=False))

print("\nLast upload per store:")
for meta in list_uploads(paths):
    print(f"  {meta.store_id}: {meta.transaction_count} transactions at {meta.last_uploaded}")

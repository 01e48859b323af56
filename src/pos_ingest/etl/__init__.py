"""Row-level ETL building blocks.

- cleaning_utils: value normalizers (amounts, dates, text)
- columns: header alias resolution
- categorize: keyword-table product categorizer
- staging: per-platform row -> Transaction parsers
- utils: file naming and formatting helpers
"""

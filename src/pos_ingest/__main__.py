"""Allow running the CLI with ``python -m pos_ingest``."""

from pos_ingest.cli import main

raise SystemExit(main())

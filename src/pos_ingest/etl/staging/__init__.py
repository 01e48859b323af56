"""Staging (Silver) parsers: decoded rows -> canonical transactions.

One parser per supported platform. Adding a platform means adding a module
here with its header vocabulary and registering it in PARSERS.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from pos_ingest.config import IngestSettings
from pos_ingest.etl.columns import RawRow
from pos_ingest.etl.staging.booker import SCHEMA as BOOKER_SCHEMA
from pos_ingest.etl.staging.booker import parse_booker
from pos_ingest.etl.staging.common import ParseResult, PlatformSchema
from pos_ingest.etl.staging.takemypayments import SCHEMA as TAKEMYPAYMENTS_SCHEMA
from pos_ingest.etl.staging.takemypayments import parse_takemypayments
from pos_ingest.models import Platform, StoreContext

Parser = Callable[[Sequence[RawRow], StoreContext, Optional[IngestSettings]], ParseResult]

PARSERS: dict[Platform, Parser] = {
    Platform.TAKEMYPAYMENTS: parse_takemypayments,
    Platform.BOOKER: parse_booker,
}

SCHEMAS: dict[Platform, PlatformSchema] = {
    Platform.TAKEMYPAYMENTS: TAKEMYPAYMENTS_SCHEMA,
    Platform.BOOKER: BOOKER_SCHEMA,
}


def parse_for_platform(
    rows: Sequence[RawRow],
    context: StoreContext,
    settings: Optional[IngestSettings] = None,
) -> ParseResult:
    """Dispatch to the parser of the context's platform."""
    return PARSERS[Platform.coerce(context.platform)](rows, context, settings)


def expected_columns_hint(platform: Platform) -> str:
    """Human-readable list of the headers a platform needs at minimum."""
    return SCHEMAS[Platform.coerce(platform)].expected_columns


__all__ = [
    "PARSERS",
    "ParseResult",
    "PlatformSchema",
    "expected_columns_hint",
    "parse_booker",
    "parse_for_platform",
    "parse_takemypayments",
]

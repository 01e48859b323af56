"""Store registry backed by stores.json.

stores.json maps store ids to their display name, platform and optional
platform identifiers:

    {
      "cafe-1": {"name": "High St Café", "platform": "takemypayments",
                 "outlet_id": "OUT-01", "mid": "4432001"},
      "salon-1": {"name": "Hair by Noa", "platform": "booker", "booker_id": 9081}
    }
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Optional

from pos_ingest.exceptions import ConfigError, ValidationError
from pos_ingest.models import Platform, StoreContext

if TYPE_CHECKING:
    from pos_ingest.config import DataPaths

logger = logging.getLogger(__name__)


def _optional_text(value) -> Optional[str]:
    if value is None or str(value).strip() == "":
        return None
    return str(value).strip()


def load_stores_from_json(stores_path: Path) -> Dict[str, StoreContext]:
    """Load store definitions from a stores.json file.

    Args:
        stores_path: Path to the stores.json configuration file.

    Returns:
        Dictionary mapping store ids to their StoreContext.

    Raises:
        ConfigError: If the file is missing, is not valid JSON, or an entry
            lacks a name or has an unsupported platform.

    Examples:
        >>> stores = load_stores_from_json(Path("utils/stores.json"))
        >>> stores["salon-1"].platform
        <Platform.BOOKER: 'booker'>
    """
    try:
        data = json.loads(Path(stores_path).read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"Stores file not found: {stores_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {stores_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{stores_path} must contain an object keyed by store id")

    stores: Dict[str, StoreContext] = {}
    for store_id, rec in data.items():
        if not isinstance(rec, dict) or not _optional_text(rec.get("name")):
            raise ConfigError(f"Store '{store_id}' in {stores_path} has no name")
        try:
            platform = Platform.coerce(rec.get("platform"))
        except ValidationError as e:
            raise ConfigError(f"Store '{store_id}': {e}") from e

        booker_id = rec.get("booker_id")
        try:
            booker_id = int(booker_id) if booker_id not in (None, "") else None
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Store '{store_id}': booker_id must be an integer") from e

        stores[store_id] = StoreContext(
            store_id=store_id,
            store_name=_optional_text(rec["name"]) or store_id,
            platform=platform,
            outlet_id=_optional_text(rec.get("outlet_id")),
            mid=_optional_text(rec.get("mid")),
            booker_id=booker_id,
        )

    logger.debug("Loaded %d stores from %s", len(stores), stores_path)
    return stores


class StoreRegistry:
    """Registry of known stores and their upload context.

    Example:
        >>> from pos_ingest import DataPaths
        >>> from pos_ingest.stores import StoreRegistry
        >>>
        >>> paths = DataPaths.from_root("data", "utils/stores.json")
        >>> registry = StoreRegistry(paths)
        >>> registry.list_stores()
        ['cafe-1', 'salon-1']
        >>> registry.context_for("salon-1").booker_id
        9081

    """

    def __init__(self, paths: DataPaths) -> None:
        """Initialize the registry from DataPaths configuration.

        Args:
            paths: DataPaths instance containing the stores_json path.

        """
        self.paths = paths
        self._stores = load_stores_from_json(paths.stores_json)

    def list_stores(self) -> list[str]:
        """List all registered store ids, sorted."""
        return sorted(self._stores.keys())

    def __contains__(self, store_id: object) -> bool:
        return store_id in self._stores

    def get(self, store_id: str) -> StoreContext:
        """Return the registered context of a store.

        Raises:
            ConfigError: If the store is not in stores.json.
        """
        if store_id not in self._stores:
            raise ConfigError(f"Store '{store_id}' not found in registry")
        return self._stores[store_id]

    def context_for(
        self,
        store_id: str,
        store_name: Optional[str] = None,
        platform: Optional[str | Platform] = None,
    ) -> StoreContext:
        """Upload context for a registered store, with optional overrides.

        Raises:
            ConfigError: If the store is not in stores.json.
            ValidationError: If the platform override is unsupported.
        """
        ctx = self.get(store_id)
        return StoreContext(
            store_id=ctx.store_id,
            store_name=store_name or ctx.store_name,
            platform=Platform.coerce(platform) if platform else ctx.platform,
            outlet_id=ctx.outlet_id,
            mid=ctx.mid,
            booker_id=ctx.booker_id,
        )

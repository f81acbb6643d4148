"""
Cache Service
=============
Persists the last fetched deploy runs so the widgets have something to
show before the first poll of a fresh process completes.

Cacheable:
    - The provider's run list, JSON-serialized under DEPLOY_STORAGE_KEY

Cache invalidation:
    - Overwritten after every successful refresh
    - Never expired; stale-but-present beats empty

Corruption:
    - Non-JSON text, a non-list value, or entries that fail DeployRun
      validation all load as an empty list. Loading never raises.
"""
import json
import logging
from typing import List

from pydantic import ValidationError

from app.core.constants import DEPLOY_STORAGE_KEY
from app.models.deploy_run import DeployRun
from app.services.local_store import LocalStore

logger = logging.getLogger(__name__)


class DeployRunCache:
    """
    Round-trips the run list through one slot of a LocalStore.

    Usage:
        cache = DeployRunCache(LocalStore("var/local_store.json"))
        cache.save(runs)
        runs = cache.load()
    """

    def __init__(self, store: LocalStore, key: str = DEPLOY_STORAGE_KEY) -> None:
        self.store = store
        self.key = key

    def load(self) -> List[DeployRun]:
        """
        Read cached runs.

        Returns
        -------
        List[DeployRun]
            Cached runs in provider order, or [] when nothing usable is cached.
        """
        raw = self.store.get_item(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [DeployRun.model_validate(item) for item in data]
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Ignoring corrupt deploy status cache: %s", e)
            return []

    def save(self, runs: List[DeployRun]) -> None:
        try:
            payload = json.dumps([run.to_payload() for run in runs])
        except (TypeError, ValueError) as e:
            logger.error("Failed to serialize deploy status cache: %s", e)
            return
        self.store.set_item(self.key, payload)

    def clear(self) -> None:
        self.store.remove_item(self.key)
        logger.debug("Deploy status cache cleared")

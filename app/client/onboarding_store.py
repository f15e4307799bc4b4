"""Client-local key/value storage, namespaced per identity.

Backs the dismissible "onboarding seen" hint. Completeness itself is never
stored here; see ``app.services.profile_completion``.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from app.config import settings

logger = logging.getLogger(__name__)


class KeyValueStore:
    def get(self, key: str, default: Any = None) -> Any:
        raise NotImplementedError

    def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def keys(self, prefix: str = "") -> list[str]:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._data if key.startswith(prefix)]


class JsonFileStore(KeyValueStore):
    """Whole-file JSON store; every write rewrites the file atomically."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._data: Optional[Dict[str, Any]] = None

    def _load(self) -> Dict[str, Any]:
        if self._data is None:
            try:
                self._data = json.loads(self.path.read_text(encoding="utf-8"))
            except FileNotFoundError:
                self._data = {}
            except (OSError, ValueError):
                logger.warning("Onboarding store at %s is unreadable; starting empty", self.path)
                self._data = {}
        return self._data

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._load(), sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def get(self, key: str, default: Any = None) -> Any:
        return self._load().get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._load()[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._load().pop(key, None) is not None:
            self._flush()

    def keys(self, prefix: str = "") -> list[str]:
        return [key for key in self._load() if key.startswith(prefix)]


class NamespacedStore:
    """View of a store restricted to ``<namespace>:<identity_id>:`` keys."""

    def __init__(self, store: KeyValueStore, namespace: str, identity_id: int):
        self.store = store
        self.prefix = f"{namespace}:{identity_id}:"

    def get(self, key: str, default: Any = None) -> Any:
        return self.store.get(self.prefix + key, default)

    def set(self, key: str, value: Any) -> None:
        self.store.set(self.prefix + key, value)

    def delete(self, key: str) -> None:
        self.store.delete(self.prefix + key)

    def clear(self) -> None:
        for key in self.store.keys(self.prefix):
            self.store.delete(key)


class OnboardingTracker:
    NAMESPACE = "onboarding"
    SEEN_KEY = "seen"

    def __init__(self, store: Optional[KeyValueStore] = None):
        self.store = store if store is not None else JsonFileStore(settings.ONBOARDING_STORE_FILE)

    def scope(self, identity_id: int) -> NamespacedStore:
        return NamespacedStore(self.store, self.NAMESPACE, identity_id)

    def has_seen_onboarding(self, identity_id: Optional[int]) -> bool:
        if identity_id is None:
            return False
        return self.scope(identity_id).get(self.SEEN_KEY) is True

    def mark_onboarding_seen(self, identity_id: int) -> None:
        self.scope(identity_id).set(self.SEEN_KEY, True)

    def reset_onboarding_seen(self, identity_id: int) -> None:
        self.scope(identity_id).delete(self.SEEN_KEY)

"""Backend pair resolution.

A request names a backend pair with a selector ('aws' or 'gcp'). Each
pair couples a document store with a model invoker for the same cloud.
Pairs are built on first use and cached for the life of the app.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from papermap.config import KNOWN_BACKENDS, Settings
from papermap.errors import UnknownBackendError
from papermap.llm.backends import ModelBackend
from papermap.llm.factory import get_model_backend
from papermap.llm.invoker import ModelInvoker, RetryPolicy
from papermap.persistence.base import DocumentStore
from papermap.persistence.factory import get_document_store

logger = logging.getLogger(__name__)


@dataclass
class BackendPair:
    selector: str
    store: DocumentStore
    invoker: ModelInvoker


class BackendRegistry:
    """Builds and caches one BackendPair per selector."""

    def __init__(
        self,
        settings: Settings,
        *,
        store_factory: Callable[[str, Settings], DocumentStore] = get_document_store,
        model_factory: Callable[[str, Settings], ModelBackend] = get_model_backend,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.settings = settings
        self._store_factory = store_factory
        self._model_factory = model_factory
        self._retry_policy = retry_policy
        self._pairs: dict[str, BackendPair] = {}
        self._lock = threading.Lock()

    def normalize_selector(self, selector: Optional[str]) -> str:
        """Missing or blank selectors mean the configured default.

        Raises:
            UnknownBackendError: If selector names no known pair
        """
        if selector is None or not selector.strip():
            return self.settings.default_backend
        key = selector.strip().lower()
        if key not in KNOWN_BACKENDS:
            raise UnknownBackendError(selector, list(KNOWN_BACKENDS))
        return key

    def resolve(self, selector: Optional[str] = None) -> BackendPair:
        key = self.normalize_selector(selector)
        with self._lock:
            pair = self._pairs.get(key)
            if pair is None:
                pair = self._build(key)
                self._pairs[key] = pair
        return pair

    def register(self, pair: BackendPair) -> None:
        """Install a prebuilt pair, replacing any cached one."""
        with self._lock:
            self._pairs[pair.selector] = pair

    def _build(self, key: str) -> BackendPair:
        store = self._store_factory(key, self.settings)
        backend = self._model_factory(key, self.settings)
        invoker = ModelInvoker(backend, self.settings, self._retry_policy)
        logger.info(
            f"Initialized backend pair '{key}': store={store.backend_name}, "
            f"model={backend.model_id}"
        )
        return BackendPair(selector=key, store=store, invoker=invoker)

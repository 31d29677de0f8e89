"""Process-wide container for the store, history index, image cache and gateway.

Construct one per process and hand it to the UI layer:

    client = SnapSolveClient()
    await client.initialize()   # call once at startup
    engine = await client.open_session()
    ...
    await client.close()        # call once at shutdown
"""

from __future__ import annotations

import logging

import httpx

from snapsolve.chat.history import ChatHistory
from snapsolve.chat.session import SessionEngine
from snapsolve.config import Settings, configure_logging, settings as default_settings
from snapsolve.errors import ConfigurationError
from snapsolve.gateway.base import CompletionGateway
from snapsolve.gateway.langchain import LangChainGateway
from snapsolve.images.cache import ImageCache
from snapsolve.images.hosts import build_hosts
from snapsolve.images.pipeline import ImageUploader
from snapsolve.models.conf import ChatConf
from snapsolve.storage.base import KeyValueStore
from snapsolve.storage.conf import load_chat_conf, save_chat_conf
from snapsolve.storage.memory import InMemoryKeyValueStore

logger = logging.getLogger(__name__)


class SnapSolveClient:
    """Owns the shared components and their lifecycle."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        store: KeyValueStore | None = None,
        gateway: CompletionGateway | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._store = store
        self._owns_store = store is None
        self._gateway = gateway or LangChainGateway()
        self._http = http
        self._owns_http = http is None
        self._history: ChatHistory | None = None
        self._image_cache: ImageCache | None = None
        self._uploader: ImageUploader | None = None
        self._initialized = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        if self._initialized:
            logger.warning("SnapSolveClient already initialized - skipping")
            return

        configure_logging(self._settings)

        if self._store is None:
            self._store = await self._create_store()
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._settings.http_timeout)

        self._history = ChatHistory(self._store, self._settings)
        self._image_cache = ImageCache(self._store, self._http, self._settings)
        self._uploader = ImageUploader(
            self._image_cache, build_hosts(self._http), self._settings
        )
        self._initialized = True
        logger.info("%s client initialized", self._settings.app_name)

    async def _create_store(self) -> KeyValueStore:
        backend = self._settings.store_backend.lower()
        if backend == "memory":
            return InMemoryKeyValueStore()
        if backend == "mongodb":
            from snapsolve.storage.mongo import MongoKeyValueStore

            store = MongoKeyValueStore(self._settings)
            await store.initialize()
            return store
        raise ConfigurationError(f"unknown store backend: {self._settings.store_backend}")

    async def close(self) -> None:
        """Release connections."""
        if self._owns_http and self._http is not None:
            await self._http.aclose()
            self._http = None
        if self._owns_store and self._store is not None:
            close_store = getattr(self._store, "close", None)
            if close_store is not None:
                await close_store()
            self._store = None
        self._initialized = False
        logger.info("%s client shut down", self._settings.app_name)

    # ------------------------------------------------------------------
    # Properties (guard against use before init)
    # ------------------------------------------------------------------

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def gateway(self) -> CompletionGateway:
        return self._gateway

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            raise RuntimeError("SnapSolveClient not initialized - call initialize() first")
        return self._store

    @property
    def history(self) -> ChatHistory:
        if self._history is None:
            raise RuntimeError("SnapSolveClient not initialized - call initialize() first")
        return self._history

    @property
    def image_cache(self) -> ImageCache:
        if self._image_cache is None:
            raise RuntimeError("SnapSolveClient not initialized - call initialize() first")
        return self._image_cache

    @property
    def uploader(self) -> ImageUploader:
        if self._uploader is None:
            raise RuntimeError("SnapSolveClient not initialized - call initialize() first")
        return self._uploader

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Configuration and sessions
    # ------------------------------------------------------------------

    async def load_chat_conf(self) -> ChatConf:
        return await load_chat_conf(self.store)

    async def save_chat_conf(self, conf: ChatConf) -> None:
        await save_chat_conf(self.store, conf)

    async def open_session(
        self, session_id: str | None = None, conf: ChatConf | None = None
    ) -> SessionEngine:
        """New session, or resume ``session_id``. Uses the stored conf by default."""
        if conf is None:
            conf = await self.load_chat_conf()
        return await SessionEngine.open(
            conf,
            history=self.history,
            gateway=self._gateway,
            session_id=session_id,
            settings=self._settings,
        )

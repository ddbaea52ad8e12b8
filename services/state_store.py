# services/state_store.py

"""
Клиент удалённого хранилища состояния и очередь отложенной записи.

Хранилище - один JSON-документ за GET/POST ``/api/state``; каждая
запись перезаписывает документ целиком, побеждает последняя запись.
Одновременное редактирование с нескольких устройств не поддерживается:
правки одной из сторон могут молча потеряться.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import aiohttp

from config import config
from core.models import HistoryStore
from utils.decorators import retry_on_exception

logger = logging.getLogger(__name__)

STATE_PATH = "/api/state"

# ===== EXCEPTIONS =====

class StateStoreError(Exception):
    """Базовое исключение хранилища состояния"""
    pass


class StoreUnavailableError(StateStoreError):
    """Хранилище недоступно при загрузке"""
    pass

# ===== CLIENT =====

class StateStoreClient:
    """Загрузка и сохранение HistoryStore целиком"""

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None,
                 retries: Optional[int] = None, retry_delay: Optional[float] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.base_url = (base_url or config.store.base_url).rstrip('/')
        self.timeout = timeout if timeout is not None else config.store.request_timeout
        self.retries = max(1, retries if retries is not None else config.store.load_retries)
        self.retry_delay = retry_delay if retry_delay is not None else config.store.retry_delay
        self._session = session
        self._owns_session = session is None

        self.load_count = 0
        self.save_count = 0
        self.failed_saves = 0

    @property
    def url(self) -> str:
        return f"{self.base_url}{STATE_PATH}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self._session

    async def _fetch_raw(self) -> bytes:
        session = self._get_session()
        async with session.get(self.url) as response:
            if response.status == 404:
                logger.info("No stored state document, starting empty")
                return b""
            response.raise_for_status()
            return await response.read()

    async def load(self) -> HistoryStore:
        """Загрузить состояние; битый документ заменяется пустым хранилищем"""
        fetch = retry_on_exception(
            retries=self.retries,
            delay=self.retry_delay,
            exceptions=(aiohttp.ClientError, asyncio.TimeoutError)
        )(self._fetch_raw)

        try:
            raw = await fetch()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Failed to load state from {self.url}: {e}")
            raise StoreUnavailableError(f"load_failed: {e}") from e

        self.load_count += 1
        store = HistoryStore.from_json(raw)
        logger.info(f"📂 State loaded: {len(store.weeks)} weeks, {len(store.unlocked)} achievements")
        return store

    async def save(self, store: HistoryStore) -> bool:
        """Перезаписать документ целиком; ошибки логируются и не пробрасываются"""
        session = self._get_session()
        try:
            async with session.post(
                self.url,
                data=store.to_json().encode('utf-8'),
                headers={'Content-Type': 'application/json; charset=utf-8'}
            ) as response:
                if response.status >= 400:
                    body = await response.text()
                    self.failed_saves += 1
                    logger.warning(f"State save rejected ({response.status}): {body[:200]}")
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            self.failed_saves += 1
            logger.warning(f"State save failed: {e}")
            return False

        self.save_count += 1
        logger.debug("State saved")
        return True

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()

# ===== WRITE COALESCING =====

class DebouncedWriter:
    """
    Очередь отложенной записи с одним слотом.

    ``schedule`` кладёт payload в слот (предыдущий заменяется) и
    перезапускает таймер тишины; по истечении таймера записывается
    только последний payload. Ошибки записи не повторяются.
    """

    def __init__(self, save_func: Callable[[Any], Awaitable[Any]], delay: Optional[float] = None):
        self.save_func = save_func
        self.delay = delay if delay is not None else config.store.debounce_seconds
        self._pending: Any = None
        self._has_pending = False
        self._timer: Optional[asyncio.Task] = None
        self._write_lock = asyncio.Lock()
        self.closed = False

        self.writes = 0
        self.coalesced = 0

    @property
    def has_pending(self) -> bool:
        return self._has_pending

    def schedule(self, payload: Any) -> None:
        if self.closed:
            logger.warning("Write scheduled on a closed writer, ignored")
            return

        if self._has_pending:
            self.coalesced += 1
        self._pending = payload
        self._has_pending = True

        self._cancel_timer()
        self._timer = asyncio.get_running_loop().create_task(self._write_after_delay())

    def _cancel_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _write_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        # Таймер отвязывается до записи, чтобы новый schedule не прервал её
        self._timer = None
        await self._write_pending()

    async def _write_pending(self) -> bool:
        async with self._write_lock:
            if not self._has_pending:
                return False
            payload = self._pending
            self._pending = None
            self._has_pending = False

            try:
                await self.save_func(payload)
                self.writes += 1
                return True
            except Exception as e:
                logger.warning(f"Debounced write failed: {e}")
                return False

    async def flush(self) -> bool:
        """Записать ожидающий payload немедленно"""
        self._cancel_timer()
        return await self._write_pending()

    async def close(self) -> None:
        await self.flush()
        self.closed = True


__all__ = [
    'STATE_PATH',
    'StateStoreError',
    'StoreUnavailableError',
    'StateStoreClient',
    'DebouncedWriter'
]

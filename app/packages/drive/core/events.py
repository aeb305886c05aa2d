"""存储变更通知：使用 Redis 发布订阅或内存后端广播某个用户的用量已变化。

订阅方（例如前端推送网关）据此重新读取 ``/user/storage``，用量本身始终按需重算。
"""

from __future__ import annotations

import json
import threading
from typing import Callable, Optional

import redis

from app.packages.drive.core.config import get_settings
from app.packages.drive.core.constants import STORAGE_CHANGED_EVENT, STORAGE_EVENT_CHANNEL_PREFIX
from app.packages.drive.core.logger import logger

Subscriber = Callable[[dict], None]


class EventBackend:
    """事件后端基类，定义发布与订阅接口。"""

    def publish(self, owner_id: str, payload: dict) -> None:  # pragma: no cover - interface definition
        raise NotImplementedError

    def subscribe(self, owner_id: str, callback: Subscriber) -> Callable[[], None]:  # pragma: no cover
        raise NotImplementedError


class RedisEventBackend(EventBackend):
    """基于 Redis pub/sub 的事件后端，频道按用户划分。"""

    def __init__(self, url: str, timeout: float = 2.0) -> None:
        self._client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_connect_timeout=timeout,
            socket_timeout=timeout,
        )
        self._client.ping()

    def publish(self, owner_id: str, payload: dict) -> None:
        self._client.publish(self._build_channel(owner_id), json.dumps(payload, ensure_ascii=False))

    def subscribe(self, owner_id: str, callback: Subscriber) -> Callable[[], None]:
        pubsub = self._client.pubsub(ignore_subscribe_messages=True)

        def _handler(message: dict) -> None:
            try:
                callback(json.loads(message["data"]))
            except Exception:
                logger.warning("Storage event subscriber failed for owner %s", owner_id, exc_info=True)

        pubsub.subscribe(**{self._build_channel(owner_id): _handler})
        worker = pubsub.run_in_thread(sleep_time=0.5, daemon=True)

        def _unsubscribe() -> None:
            worker.stop()
            pubsub.close()

        return _unsubscribe

    @staticmethod
    def _build_channel(owner_id: str) -> str:
        return f"{STORAGE_EVENT_CHANNEL_PREFIX}{owner_id}"


class InMemoryEventBackend(EventBackend):
    """内存后端用于测试或缺少 Redis 时的回退实现，订阅者在发布线程内同步回调。"""

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = {}
        self._lock = threading.Lock()

    def publish(self, owner_id: str, payload: dict) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(owner_id, []))
        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.warning("Storage event subscriber failed for owner %s", owner_id, exc_info=True)

    def subscribe(self, owner_id: str, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.setdefault(owner_id, []).append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(owner_id, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return _unsubscribe


_backend: Optional[EventBackend] = None


def _get_backend() -> EventBackend:
    global _backend
    if _backend is not None:
        return _backend

    settings = get_settings()
    if (settings.event_backend or "").strip().lower() == "memory":
        _backend = InMemoryEventBackend()
        return _backend
    try:
        backend = RedisEventBackend(settings.redis_url, timeout=settings.redis_socket_timeout)
        logger.info("Storage event channel initialized with Redis at %s", settings.redis_url)
        _backend = backend
    except Exception as exc:
        logger.warning("Redis unavailable (%s), falling back to in-memory storage events", exc)
        _backend = InMemoryEventBackend()
    return _backend


def init_storage_events() -> None:
    """启动时建立事件后端连接，避免首个请求承担 Redis 建连耗时。"""
    backend = _get_backend()
    logger.info("Storage events use %s", type(backend).__name__)


def publish_storage_changed(owner_id: str, *, reason: str) -> None:
    """广播用户存储用量变化；发布失败仅记录日志，不影响主流程。"""
    payload = {"event": STORAGE_CHANGED_EVENT, "owner_id": owner_id, "reason": reason}
    try:
        _get_backend().publish(owner_id, payload)
    except Exception:
        logger.warning("Failed to publish storage event for owner %s", owner_id, exc_info=True)


def subscribe_storage_changed(owner_id: str, callback: Subscriber) -> Callable[[], None]:
    """订阅指定用户的存储变更事件，返回取消订阅函数。"""
    return _get_backend().subscribe(owner_id, callback)

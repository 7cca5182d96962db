"""
Pool of clients keyed by data center and token.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging import Logger
from typing import Callable, Generator

from .exceptions import SharebaseError
from .gateway import BaseGateway, Client

__all__ = [
    "ClientPool",
]


@dataclass(frozen=True)
class PoolKey:
    data_center: str
    token: str


@dataclass
class SubPool:
    """
    Clients for a single key.

    Not thread-safe; only use while holding the pool's lock.
    """

    clients: list[BaseGateway | None] = field(default_factory=list)
    """
    All clients cached in this sub-pool, by slot. Slots of discarded clients
    are `None` until reused.
    """

    free: list[int] = field(default_factory=list)
    """
    Stack of indices of idle clients.
    """

    in_use: dict[int, int] = field(default_factory=dict)
    """
    Mapping of id() of a borrowed client to its index.
    """

    vacant: list[int] = field(default_factory=list)
    """
    Indices of slots freed by discarded clients.
    """

    def get(self) -> BaseGateway | None:
        """
        Pop the most recently cached idle client, if any.
        """
        if not self.free:
            return None

        index = self.free.pop()
        client = self.clients[index]
        assert client is not None
        self.in_use[id(client)] = index

        return client

    def put(self, client: BaseGateway):
        """
        Cache a client, returning it to its original slot if it was borrowed
        from this sub-pool.
        """
        index = self.in_use.pop(id(client), None)

        if index is None:
            if self.vacant:
                index = self.vacant.pop()
                self.clients[index] = client
            else:
                index = len(self.clients)
                self.clients.append(client)

        self.free.append(index)

    def remove(self, client: BaseGateway):
        """
        Forget a borrowed client, freeing its slot.
        """
        index = self.in_use.pop(id(client), None)

        if index is not None:
            self.clients[index] = None
            self.vacant.append(index)

    def clear(self) -> list[BaseGateway]:
        """
        Forget all idle clients, returning them.
        """
        idle: list[BaseGateway] = []

        for index in self.free:
            client = self.clients[index]
            assert client is not None

            idle.append(client)
            self.clients[index] = None
            self.vacant.append(index)

        self.free.clear()
        return idle


class ClientPool:
    """
    Hands out clients for exclusive use, caching them by data center and
    token.

    The pool serializes its own bookkeeping, but clients themselves must not
    be used concurrently and must not be used after being released. A
    client in an unknown state should be discarded rather than released.
    """

    _factory: Callable[[str, str], BaseGateway]
    _lock: threading.Lock
    _sub_pools: dict[PoolKey, SubPool]
    _logger: Logger

    def __init__(
        self,
        factory: Callable[[str, str], BaseGateway] = Client,
        *,
        logger: Logger | None = None,
    ):
        """
        :param factory: Callable creating a client from a data center and token
        :param logger: Logger to use, or `None` to use default logger
        """
        self._factory = factory
        self._lock = threading.Lock()
        self._sub_pools = dict()
        self._logger = logger or logging.getLogger()

    def borrow(self, data_center: str, token: str) -> BaseGateway:
        """
        Get an idle cached client for this data center and token, or create
        a new one.
        """
        with self._lock:
            client = self._get_sub_pool(PoolKey(data_center, token)).get()

        if client is None:
            self._logger.debug(f"Creating client for '{data_center}'")
            client = self._factory(data_center, token)

        return client

    def release(self, client: BaseGateway):
        """
        Return a client to the pool. The client need not have been created by
        this pool.
        """
        key = PoolKey(client.data_center, client.token)

        with self._lock:
            self._get_sub_pool(key).put(client)

    def discard(self, client: BaseGateway):
        """
        Close a borrowed client and free its slot instead of returning it
        to the pool.
        """
        key = PoolKey(client.data_center, client.token)

        with self._lock:
            self._get_sub_pool(key).remove(client)

        self._logger.debug(f"Discarding client for '{client.data_center}'")
        client.close()

    def close(self):
        """
        Close all idle clients. Borrowed clients are left to their holders.
        """
        with self._lock:
            idle = [
                client
                for sub_pool in self._sub_pools.values()
                for client in sub_pool.clear()
            ]

        for client in idle:
            client.close()

    @contextmanager
    def client(
        self, data_center: str, token: str
    ) -> Generator[BaseGateway, None, None]:
        """
        Borrow a client for the duration of a `with` block.

        The client is released if the block completes or fails with an
        error reported by the remote, and discarded if the block fails with
        any other exception since its connection state is then unknown.
        """
        client = self.borrow(data_center, token)

        try:
            yield client
        except SharebaseError:
            self.release(client)
            raise
        except BaseException:
            self.discard(client)
            raise
        else:
            self.release(client)

    @property
    def idle_count(self) -> int:
        """
        Number of idle clients across all keys.
        """
        with self._lock:
            return sum(len(sp.free) for sp in self._sub_pools.values())

    def _get_sub_pool(self, key: PoolKey) -> SubPool:
        sub_pool = self._sub_pools.get(key)

        if sub_pool is None:
            sub_pool = SubPool()
            self._sub_pools[key] = sub_pool

        return sub_pool

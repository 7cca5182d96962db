import threading
import time
from concurrent.futures import ThreadPoolExecutor

from pytest import raises

from sharebase_mirror import *
from sharebase_mirror.core.pool import PoolKey

DATA_CENTER = "https://sharebase.test/sharebasews/"


class DummyClient:
    def __init__(self, data_center: str, token: str):
        self.data_center = data_center
        self.token = token
        self.closed = False

    def close(self):
        self.closed = True


def test_borrow_distinct():
    pool = ClientPool(DummyClient)

    client1 = pool.borrow(DATA_CENTER, "token")
    client2 = pool.borrow(DATA_CENTER, "token")

    assert client1 is not client2
    assert pool.idle_count == 0


def test_lifo_reuse():
    created: list[DummyClient] = []

    def factory(data_center: str, token: str) -> DummyClient:
        client = DummyClient(data_center, token)
        created.append(client)
        return client

    pool = ClientPool(factory)

    client1 = pool.borrow(DATA_CENTER, "token")
    client2 = pool.borrow(DATA_CENTER, "token")

    pool.release(client1)
    pool.release(client2)
    assert pool.idle_count == 2

    # most recently released first
    assert pool.borrow(DATA_CENTER, "token") is client2
    assert pool.borrow(DATA_CENTER, "token") is client1
    assert len(created) == 2


def test_key_isolation():
    pool = ClientPool(DummyClient)

    client_a = pool.borrow(DATA_CENTER, "token-a")
    pool.release(client_a)

    client_b = pool.borrow(DATA_CENTER, "token-b")
    assert client_b is not client_a
    assert client_b.token == "token-b"

    client_c = pool.borrow("https://other.test/", "token-a")
    assert client_c is not client_a

    assert pool.borrow(DATA_CENTER, "token-a") is client_a


def test_release_foreign():
    pool = ClientPool(DummyClient)
    client = DummyClient(DATA_CENTER, "token")

    pool.release(client)

    assert pool.borrow(DATA_CENTER, "token") is client


def test_context():
    pool = ClientPool(DummyClient)

    with pool.client(DATA_CENTER, "token") as client:
        assert pool.idle_count == 0

    assert pool.idle_count == 1

    # released when the remote reports an error
    with raises(ChildNotFoundError):
        with pool.client(DATA_CENTER, "token") as client2:
            assert client2 is client
            raise ChildNotFoundError("missing")

    assert pool.idle_count == 1
    assert not client.closed

    # discarded and closed on any other exception
    with raises(RuntimeError):
        with pool.client(DATA_CENTER, "token") as client3:
            assert client3 is client
            raise RuntimeError

    assert pool.idle_count == 0
    assert client.closed

    # slot is reused by the next client
    with pool.client(DATA_CENTER, "token") as client4:
        assert client4 is not client

    sub_pool = pool._sub_pools[PoolKey(DATA_CENTER, "token")]
    assert sub_pool.clients == [client4]
    assert sub_pool.in_use == {}


def test_discard_leak():
    pool = ClientPool(DummyClient)
    clients: list[DummyClient] = []

    for _ in range(3):
        with raises(RuntimeError):
            with pool.client(DATA_CENTER, "token") as client:
                clients.append(client)
                raise RuntimeError

    assert all(c.closed for c in clients)

    sub_pool = pool._sub_pools[PoolKey(DATA_CENTER, "token")]
    assert sub_pool.in_use == {}
    assert all(c is None for c in sub_pool.clients)


def test_close():
    pool = ClientPool(DummyClient)

    idle = pool.borrow(DATA_CENTER, "token")
    borrowed = pool.borrow(DATA_CENTER, "token")
    pool.release(idle)

    pool.close()

    assert idle.closed
    assert not borrowed.closed
    assert pool.idle_count == 0

    # borrowed client can still be returned and reused
    pool.release(borrowed)
    assert pool.borrow(DATA_CENTER, "token") is borrowed


def test_concurrent():
    pool = ClientPool(DummyClient)
    lock = threading.Lock()
    in_use: set[int] = set()
    violations: list[int] = []

    def work(_):
        for _ in range(20):
            with pool.client(DATA_CENTER, "token") as client:
                with lock:
                    if id(client) in in_use:
                        violations.append(id(client))
                    in_use.add(id(client))

                time.sleep(0.0005)

                with lock:
                    in_use.remove(id(client))

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(work, range(8)))

    assert violations == []
    assert 1 <= pool.idle_count <= 8

import itertools

import pytest

from fake_store import FakeConnector, FakeStore
from insertbench.connectors import ConnectionFactory
from insertbench.core.errors import EndpointUnreachable
from insertbench.models import Endpoint

A, B, C = "a:5432", "b:5432", "c:5432"


def _factory(connector: FakeConnector, **kwargs) -> ConnectionFactory:
    return ConnectionFactory([A, B, C], connect=connector, **kwargs)


@pytest.mark.asyncio
async def test_fixed_order_fails_over_to_first_reachable():
    connector = FakeConnector(down={A})
    factory = _factory(connector)

    conn = await factory.acquire()

    assert conn.endpoint == Endpoint(host="b", port=5432)
    assert connector.tried == [A, B]
    assert [(str(a.endpoint), a.ok) for a in factory.attempts] == [(A, False), (B, True)]
    assert "ConnectionRefusedError" in factory.attempts[0].error


@pytest.mark.asyncio
async def test_fixed_order_always_starts_at_first_endpoint():
    connector = FakeConnector()
    factory = _factory(connector)

    for _ in range(3):
        conn = await factory.acquire()
        assert str(conn.endpoint) == A


@pytest.mark.asyncio
async def test_all_endpoints_down_raises_after_each_tried_once():
    connector = FakeConnector(down={A, B, C})
    factory = _factory(connector)

    with pytest.raises(EndpointUnreachable) as exc_info:
        await factory.acquire()

    assert connector.tried == [A, B, C]
    assert [str(a.endpoint) for a in exc_info.value.attempts] == [A, B, C]
    assert "Database is unreachable" in str(exc_info.value)


@pytest.mark.asyncio
async def test_round_robin_rotates_start_index():
    connector = FakeConnector()
    factory = _factory(connector, round_robin=True)

    endpoints = [str((await factory.acquire()).endpoint) for _ in range(7)]

    assert endpoints == [A, B, C, A, B, C, A]


@pytest.mark.asyncio
async def test_round_robin_skips_down_endpoint_without_stalling_rotation():
    connector = FakeConnector(down={B})
    factory = _factory(connector, round_robin=True)

    endpoints = [str((await factory.acquire()).endpoint) for _ in range(4)]

    # start=1 hits B, fails over to C; rotation continues at start=2.
    assert endpoints == [A, C, C, A]


@pytest.mark.asyncio
async def test_round_robin_honours_injected_counter():
    connector = FakeConnector()
    factory = _factory(connector, round_robin=True, counter=itertools.count(5))

    endpoints = [str((await factory.acquire()).endpoint) for _ in range(3)]

    assert endpoints == [C, A, B]


@pytest.mark.asyncio
async def test_independent_factories_keep_their_own_rotation():
    store = FakeStore()
    first = _factory(FakeConnector(store), round_robin=True)
    second = _factory(FakeConnector(store), round_robin=True)

    await first.acquire()
    await first.acquire()
    conn = await second.acquire()

    assert str(conn.endpoint) == A


@pytest.mark.asyncio
async def test_failed_endpoint_is_not_remembered():
    connector = FakeConnector(down={A})
    factory = _factory(connector)

    assert str((await factory.acquire()).endpoint) == B
    connector.down.clear()
    assert str((await factory.acquire()).endpoint) == A


@pytest.mark.asyncio
async def test_connection_context_closes_on_error():
    connector = FakeConnector()
    factory = _factory(connector)

    with pytest.raises(RuntimeError):
        async with factory.connection() as conn:
            raise RuntimeError("boom")

    assert conn.closed
    assert connector.store.open_connections == 0


@pytest.mark.asyncio
async def test_attempt_history_is_bounded():
    connector = FakeConnector(down={A})
    factory = _factory(connector, attempt_history=3)

    for _ in range(4):
        await factory.acquire()

    assert len(factory.attempts) == 3


def test_uri_lists_pool_in_order():
    factory = _factory(FakeConnector())

    assert factory.uri() == "a:5432,b:5432,c:5432"

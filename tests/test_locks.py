import asyncio

import pytest

from src.modules.appointments.locks import KeyedLock


@pytest.mark.asyncio
async def test_same_key_is_serialized():
    locks = KeyedLock()
    trace = []

    async def worker(name):
        async with locks.hold(("doc", "2030-05-20")):
            trace.append(f"{name}:in")
            await asyncio.sleep(0.01)
            trace.append(f"{name}:out")

    await asyncio.gather(worker("a"), worker("b"))

    assert trace in (["a:in", "a:out", "b:in", "b:out"], ["b:in", "b:out", "a:in", "a:out"])
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_different_keys_do_not_block_each_other():
    locks = KeyedLock()

    async with locks.hold("doc-a"):
        async with asyncio.timeout(1):
            async with locks.hold("doc-b"):
                assert len(locks) == 2
    assert len(locks) == 0


@pytest.mark.asyncio
async def test_lock_is_released_when_body_raises():
    locks = KeyedLock()

    with pytest.raises(RuntimeError):
        async with locks.hold("doc"):
            raise RuntimeError("boom")

    assert len(locks) == 0
    async with asyncio.timeout(1):
        async with locks.hold("doc"):
            pass

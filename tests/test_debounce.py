import asyncio

from horizon_engine.debounce import Debouncer


def test_burst_runs_once_with_latest_value():
    seen = []

    async def scenario():
        debouncer = Debouncer(seen.append, delay=0.01)
        for text in ('1', '12', '120'):
            debouncer.submit(text)
        await asyncio.sleep(0.05)
        return debouncer

    debouncer = asyncio.run(scenario())
    assert seen == ['120']
    assert not debouncer.has_pending
    assert debouncer.token == 3


def test_separate_bursts_run_separately():
    seen = []

    async def scenario():
        debouncer = Debouncer(seen.append, delay=0.01)
        debouncer.submit('a')
        await asyncio.sleep(0.05)
        debouncer.submit('b')
        debouncer.submit('bc')
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert seen == ['a', 'bc']


def test_without_loop_value_waits_for_flush():
    seen = []
    debouncer = Debouncer(seen.append, delay=0.01)
    debouncer.submit('10')
    debouncer.submit('100')

    assert debouncer.has_pending
    assert seen == []
    assert debouncer.flush()
    assert seen == ['100']
    assert not debouncer.flush()


def test_cancel_drops_pending_value():
    seen = []

    async def scenario():
        debouncer = Debouncer(seen.append, delay=0.01)
        debouncer.submit('5')
        debouncer.cancel()
        await asyncio.sleep(0.05)
        return debouncer

    debouncer = asyncio.run(scenario())
    assert seen == []
    assert not debouncer.has_pending


def test_flush_before_timer_runs_once():
    seen = []

    async def scenario():
        debouncer = Debouncer(seen.append, delay=0.01)
        debouncer.submit('7')
        debouncer.flush()
        await asyncio.sleep(0.05)

    asyncio.run(scenario())
    assert seen == ['7']

import pytest
import asyncio
from retry_policy import RetryPolicy

@pytest.mark.asyncio
async def test_success_no_retry():
    calls = []
    async def func(x):
        calls.append(x)
        return x * 2
    policy = RetryPolicy(max_retries=2, delay=0.01)
    result = await policy.execute_with_retry(func, 3)
    assert result == 6
    assert calls == [3]

@pytest.mark.asyncio
async def test_retry_then_success():
    calls = []
    async def func(x):
        if len(calls) < 2:
            calls.append('fail')
            raise ValueError("fail")
        calls.append(x)
        return x * 2
    policy = RetryPolicy(max_retries=3, delay=0.01)
    result = await policy.execute_with_retry(func, 5)
    assert result == 10
    assert calls == ['fail', 'fail', 5]

@pytest.mark.asyncio
async def test_give_up_after_max_retries():
    calls = []
    async def func(x):
        calls.append('fail')
        raise RuntimeError("always fail")
    policy = RetryPolicy(max_retries=2, delay=0.01)
    with pytest.raises(RuntimeError):
        await policy.execute_with_retry(func, 1)
    assert calls == ['fail', 'fail', 'fail']

@pytest.mark.asyncio
async def test_backoff_delay(monkeypatch):
    delays = []
    orig_sleep = asyncio.sleep
    async def fake_sleep(secs):
        delays.append(secs)
        await orig_sleep(0)  # 실제로는 바로 통과
    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    calls = []
    async def func():
        if len(calls) < 3:
            calls.append('fail')
            raise Exception("fail")
        return 42
    policy = RetryPolicy(max_retries=3, delay=0.1, backoff_factor=2)
    result = await policy.execute_with_retry(func)
    assert result == 42
    assert delays == [0.1, 0.2, 0.4]

@pytest.mark.asyncio
async def test_unlisted_exception_is_not_retried():
    calls = []
    async def func():
        calls.append('fail')
        raise KeyError("nope")
    policy = RetryPolicy(max_retries=3, delay=0.01, retry_on=(ValueError,))
    with pytest.raises(KeyError):
        await policy.execute_with_retry(func)
    assert calls == ['fail']

@pytest.mark.asyncio
async def test_initial_delay_waits_before_first_attempt(monkeypatch):
    delays = []
    orig_sleep = asyncio.sleep
    async def fake_sleep(secs):
        delays.append(secs)
        await orig_sleep(0)
    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    async def func():
        return "done"
    policy = RetryPolicy(max_retries=2, delay=5, backoff_factor=1, initial_delay=True)
    assert await policy.execute_with_retry(func) == "done"
    assert delays == [5]

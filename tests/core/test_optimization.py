"""
API 优化组件测试

使用可控时钟验证缓存过期、限流窗口和熔断器状态切换
"""
import asyncio

import pytest

from recruitai.core.optimization import (
    ApiOptimizationService,
    BatchQueue,
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    ConnectionPool,
    PoolExhaustedError,
    PriorityRequestQueue,
    RateLimitConfig,
    RateLimiter,
    ResponseCache,
    get_cache_key,
    get_cache_ttl,
    retry_with_backoff,
)


class FakeClock:
    """手动推进的时钟"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ========== 缓存 ==========

def test_cache_entry_lives_exactly_ttl():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("/jobs?page=1", {"total": 3}, ttl=10)

    clock.advance(9.999)
    assert cache.get("/jobs?page=1") == {"total": 3}

    clock.advance(0.002)
    assert cache.get("/jobs?page=1") is None
    assert len(cache) == 0


def test_cache_invalidate_by_prefix():
    cache = ResponseCache()
    cache.set("/jobs?page=1", 1)
    cache.set("/jobs?page=2", 2)
    cache.set("/analytics/completion-stats?", 3)

    assert cache.invalidate("/jobs") == 2
    assert cache.get("/analytics/completion-stats?") == 3


def test_cache_evicts_oldest_when_full():
    cache = ResponseCache(max_entries=2)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.set("c", 3)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_cache_sweep_removes_expired_only():
    clock = FakeClock()
    cache = ResponseCache(clock=clock)
    cache.set("short", 1, ttl=5)
    cache.set("long", 2, ttl=50)
    clock.advance(10)

    assert cache.sweep() == 1
    assert cache.get("long") == 2


def test_cache_key_is_order_independent():
    assert get_cache_key("/jobs", {"page": 1, "status": "active"}) == \
        get_cache_key("/jobs", {"status": "active", "page": 1})
    assert get_cache_key("/jobs") == "/jobs?"


def test_cache_ttl_by_endpoint():
    assert get_cache_ttl("/jobs?page=1") == 300
    assert get_cache_ttl("/applicants") == 120
    assert get_cache_ttl("/interviews/recent") == 60
    assert get_cache_ttl("/analytics/time-based") == 600
    assert get_cache_ttl("/something-else") == 30


# ========== 限流 ==========

def test_rate_limiter_allows_exactly_max_requests():
    clock = FakeClock()
    limiter = RateLimiter(clock=clock)
    config = RateLimitConfig(window=60, max_requests=3)

    assert [limiter.check("api:k", config) for _ in range(4)] == [True, True, True, False]
    assert limiter.retry_after("api:k") == pytest.approx(60)

    clock.advance(60)
    assert limiter.check("api:k", config) is True


def test_rate_limiter_keys_are_independent():
    limiter = RateLimiter(clock=FakeClock())
    config = RateLimitConfig(window=60, max_requests=1)

    assert limiter.check("api:a", config) is True
    assert limiter.check("api:b", config) is True
    assert limiter.check("api:a", config) is False


# ========== 熔断器 ==========

async def _fail():
    raise RuntimeError("upstream down")


async def _ok():
    return "ok"


@pytest.mark.asyncio
async def test_circuit_opens_at_threshold_and_half_opens_after_timeout():
    clock = FakeClock()
    breaker = CircuitBreaker(clock=clock)

    for _ in range(3):
        with pytest.raises(RuntimeError):
            await breaker.call("llm", _fail, failure_threshold=3, timeout=30)
    assert breaker.state("llm") == CircuitState.OPEN

    with pytest.raises(CircuitOpenError):
        await breaker.call("llm", _ok, failure_threshold=3, timeout=30)

    # 恰好等于 timeout 仍然保持打开
    clock.advance(30)
    with pytest.raises(CircuitOpenError):
        await breaker.call("llm", _ok, failure_threshold=3, timeout=30)

    clock.advance(0.001)
    assert await breaker.call("llm", _ok, failure_threshold=3, timeout=30) == "ok"
    assert breaker.state("llm") == CircuitState.CLOSED
    assert breaker.failures("llm") == 0


@pytest.mark.asyncio
async def test_circuit_success_resets_failure_count():
    breaker = CircuitBreaker(clock=FakeClock())
    with pytest.raises(RuntimeError):
        await breaker.call("jobs", _fail, failure_threshold=2)
    await breaker.call("jobs", _ok, failure_threshold=2)
    with pytest.raises(RuntimeError):
        await breaker.call("jobs", _fail, failure_threshold=2)

    assert breaker.state("jobs") == CircuitState.CLOSED


# ========== 重试 ==========

@pytest.mark.asyncio
async def test_retry_uses_exponential_delays():
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    with pytest.raises(RuntimeError):
        await retry_with_backoff(_fail, max_retries=3, base_delay=1.0, sleep=fake_sleep)

    assert delays == [1.0, 2.0, 4.0]


@pytest.mark.asyncio
async def test_retry_caps_delay_and_returns_first_success():
    delays = []
    attempts = {"n": 0}

    async def fake_sleep(seconds):
        delays.append(seconds)

    async def flaky():
        attempts["n"] += 1
        if attempts["n"] < 4:
            raise ValueError("not yet")
        return attempts["n"]

    result = await retry_with_backoff(flaky, max_retries=5, base_delay=3.0, max_delay=8.0, sleep=fake_sleep)

    assert result == 4
    assert delays == [3.0, 6.0, 8.0]


# ========== 优先级队列 ==========

@pytest.mark.asyncio
async def test_priority_queue_runs_highest_priority_first():
    queue = PriorityRequestQueue()
    order = []

    def make(name):
        async def run():
            order.append(name)
            return name
        return run

    results = await asyncio.gather(
        queue.submit(make("low"), priority=1),
        queue.submit(make("high"), priority=10),
        queue.submit(make("mid-a"), priority=5),
        queue.submit(make("mid-b"), priority=5),
    )

    assert results == ["low", "high", "mid-a", "mid-b"]
    assert order == ["high", "mid-a", "mid-b", "low"]
    assert queue.processing is False


# ========== 批处理 ==========

@pytest.mark.asyncio
async def test_batch_flushes_when_full():
    batches = BatchQueue()
    results = await asyncio.gather(
        batches.add("scores", "/score", {"n": 1}, batch_size=2, max_wait=60),
        batches.add("scores", "/score", {"n": 2}, batch_size=2, max_wait=60),
    )

    assert results == [{"n": 1}, {"n": 2}]
    assert batches.pending("scores") == 0


@pytest.mark.asyncio
async def test_batch_flushes_after_max_wait_and_isolates_errors():
    async def executor(request):
        if request.payload == "bad":
            raise ValueError("bad payload")
        return request.payload.upper()

    batches = BatchQueue(executor=executor)
    good, bad = await asyncio.gather(
        batches.add("emails", "/send", "ok", batch_size=10, max_wait=0.01),
        batches.add("emails", "/send", "bad", batch_size=10, max_wait=0.01),
        return_exceptions=True,
    )

    assert good == "OK"
    assert isinstance(bad, ValueError)


@pytest.mark.asyncio
async def test_timed_flush_task_is_held_until_done():
    seen = []

    async def executor(request):
        seen.append(len(batches._flush_tasks))
        return request.payload

    batches = BatchQueue(executor=executor)
    assert await batches.add("emails", "/send", "ok", batch_size=10, max_wait=0.01) == "ok"
    await asyncio.sleep(0.01)

    assert seen == [1]
    assert batches._flush_tasks == set()


# ========== 连接池 ==========

def test_pool_rejects_when_exhausted():
    pools = ConnectionPool()
    assert pools.acquire("db", 2) is True
    assert pools.acquire("db", 2) is True
    assert pools.acquire("db", 2) is False

    pools.release("db")
    assert pools.acquire("db", 2) is True
    assert pools.status() == {"db": {"active": 2, "max": 2}}


def test_pool_context_manager_releases_on_error():
    pools = ConnectionPool()
    with pytest.raises(KeyError):
        with pools.connection("db", 1):
            raise KeyError("boom")
    with pools.connection("db", 1):
        with pytest.raises(PoolExhaustedError):
            with pools.connection("db", 1):
                pass


# ========== 组合服务 ==========

@pytest.mark.asyncio
async def test_measure_api_call_records_failures_without_raising():
    service = ApiOptimizationService(clock=FakeClock())

    ok = await service.measure_api_call("jobs-list", _ok)
    failed = await service.measure_api_call("jobs-list", _fail)

    assert ok.success and ok.result == "ok"
    assert not failed.success and isinstance(failed.error, RuntimeError)
    assert service.total_calls == 2
    assert service.get_status()["calls"]["jobs-list"]["failures"] == 1


@pytest.mark.asyncio
async def test_start_and_stop_background_sweepers():
    service = ApiOptimizationService()
    service.start(cache_interval=0.01, rate_limit_interval=0.01)
    service.set_cached_response("k", 1, ttl=0)
    await asyncio.sleep(0.05)
    await service.stop()

    assert service.get_cached_response("k") is None
    assert service.get_status()["cache_entries"] == 0

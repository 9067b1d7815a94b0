"""
API 优化组件模块

进程内的请求优化工具集合：响应缓存、限流、批处理、连接池计数、
指数退避重试、优先级队列和熔断器。

所有状态只保存在内存中，进程重启后清空，多实例之间不共享。
"""
import asyncio
import heapq
import itertools
import time
from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Set, Tuple, TypeVar

from loguru import logger

from .config import settings
from .exceptions import ServiceUnavailableException

T = TypeVar("T")

Clock = Callable[[], float]

DEFAULT_CACHE_TTL = 300.0

# 路径前缀 -> 缓存时长（秒）
ENDPOINT_TTLS: List[Tuple[str, float]] = [
    ("/jobs", 300.0),
    ("/applicants", 120.0),
    ("/interviews", 60.0),
    ("/analytics", 600.0),
]
FALLBACK_TTL = 30.0


class CircuitOpenError(ServiceUnavailableException):
    """熔断器处于打开状态"""

    def __init__(self, name: str):
        super().__init__(message=f"服务熔断中: {name}", data={"circuit": name})
        self.name = name


class PoolExhaustedError(ServiceUnavailableException):
    """连接池已满"""

    def __init__(self, pool_name: str):
        super().__init__(message=f"连接池已满: {pool_name}", data={"pool": pool_name})
        self.pool_name = pool_name


# ==================== 响应缓存 ====================

@dataclass
class CacheEntry:
    """缓存条目"""
    data: Any
    timestamp: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.timestamp > self.ttl


class ResponseCache:
    """
    带 TTL 的响应缓存

    读取时检查过期并顺带删除；max_entries 限制条目数，超出时淘汰最早写入的条目。
    """

    def __init__(self, clock: Clock = time.monotonic, max_entries: Optional[int] = None):
        self._clock = clock
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, data: Any, ttl: float = DEFAULT_CACHE_TTL) -> None:
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(data=data, timestamp=self._clock(), ttl=ttl)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)

    def invalidate(self, prefix: str = "") -> int:
        """删除以 prefix 开头的缓存，返回删除数量"""
        with self._lock:
            keys = [k for k in self._entries if k.startswith(prefix)]
            for key in keys:
                del self._entries[key]
            return len(keys)

    def sweep(self) -> int:
        """清理全部过期条目"""
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("清理过期缓存 {} 条", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ==================== 限流 ====================

@dataclass
class RateLimitConfig:
    """固定窗口限流配置"""
    window: float
    max_requests: int


@dataclass
class _RateWindow:
    count: int
    reset_time: float


class RateLimiter:
    """按 key 计数的固定窗口限流器"""

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._windows: Dict[str, _RateWindow] = {}
        self._lock = Lock()

    def check(self, key: str, config: RateLimitConfig) -> bool:
        """是否允许本次请求，允许时计数加一"""
        now = self._clock()
        with self._lock:
            window = self._windows.get(key)
            if window is None or now >= window.reset_time:
                self._windows[key] = _RateWindow(count=1, reset_time=now + config.window)
                return True
            if window.count >= config.max_requests:
                return False
            window.count += 1
            return True

    def retry_after(self, key: str) -> float:
        """距离窗口重置的剩余秒数"""
        window = self._windows.get(key)
        if window is None:
            return 0.0
        return max(0.0, window.reset_time - self._clock())

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, w in self._windows.items() if now >= w.reset_time]
            for key in stale:
                del self._windows[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


# ==================== 批处理 ====================

@dataclass
class BatchRequest:
    """批处理中的单个请求"""
    id: int
    endpoint: str
    payload: Any
    future: "asyncio.Future[Any]" = field(repr=False)


BatchExecutor = Callable[[BatchRequest], Awaitable[Any]]


async def echo_executor(request: BatchRequest) -> Any:
    """默认执行器：原样返回请求载荷"""
    logger.debug("执行批处理请求: {} {}", request.endpoint, request.id)
    return request.payload


class BatchQueue:
    """
    按 batch_key 聚合请求

    队列达到 batch_size 立即处理，否则在 max_wait 秒后处理；
    每个请求的结果或异常单独返回给各自的调用方。
    """

    def __init__(self, executor: BatchExecutor = echo_executor):
        self._executor = executor
        self._queues: Dict[str, List[BatchRequest]] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}
        self._flush_tasks: Set["asyncio.Task[None]"] = set()
        self._ids = itertools.count(1)

    async def add(
        self,
        batch_key: str,
        endpoint: str,
        payload: Any,
        batch_size: int = 10,
        max_wait: float = 1.0,
    ) -> Any:
        loop = asyncio.get_running_loop()
        request = BatchRequest(
            id=next(self._ids),
            endpoint=endpoint,
            payload=payload,
            future=loop.create_future(),
        )
        queue = self._queues.setdefault(batch_key, [])
        queue.append(request)

        if len(queue) >= batch_size:
            await self.flush(batch_key)
        elif batch_key not in self._timers:
            self._timers[batch_key] = loop.call_later(max_wait, self._schedule_flush, batch_key)
        return await request.future

    def _schedule_flush(self, batch_key: str) -> None:
        # 事件循环只持有任务的弱引用，这里保留到任务结束
        task = asyncio.ensure_future(self.flush(batch_key))
        self._flush_tasks.add(task)
        task.add_done_callback(self._flush_tasks.discard)

    async def flush(self, batch_key: str) -> None:
        """立即处理指定 key 的全部请求"""
        timer = self._timers.pop(batch_key, None)
        if timer is not None:
            timer.cancel()
        batch = self._queues.pop(batch_key, [])
        if not batch:
            return

        logger.debug("处理批次 {}: {} 个请求", batch_key, len(batch))
        results = await asyncio.gather(
            *(self._executor(req) for req in batch), return_exceptions=True
        )
        for req, result in zip(batch, results):
            if req.future.done():
                continue
            if isinstance(result, BaseException):
                req.future.set_exception(result)
            else:
                req.future.set_result(result)

    def pending(self, batch_key: str) -> int:
        return len(self._queues.get(batch_key, []))

    def clear(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        for batch in self._queues.values():
            for req in batch:
                if not req.future.done():
                    req.future.cancel()
        self._queues.clear()


# ==================== 连接池计数 ====================

@dataclass
class PoolState:
    active: int
    max: int


class ConnectionPool:
    """按名称统计并发连接数"""

    def __init__(self):
        self._pools: Dict[str, PoolState] = {}
        self._lock = Lock()

    def acquire(self, pool_name: str, max_connections: int = 5) -> bool:
        with self._lock:
            pool = self._pools.setdefault(pool_name, PoolState(active=0, max=max_connections))
            if pool.active >= pool.max:
                return False
            pool.active += 1
            return True

    def release(self, pool_name: str) -> None:
        with self._lock:
            pool = self._pools.get(pool_name)
            if pool is not None and pool.active > 0:
                pool.active -= 1

    @contextmanager
    def connection(self, pool_name: str, max_connections: int = 5) -> Iterator[None]:
        """获取连接，失败抛出 PoolExhaustedError，退出时自动释放"""
        if not self.acquire(pool_name, max_connections):
            raise PoolExhaustedError(pool_name)
        try:
            yield
        finally:
            self.release(pool_name)

    def status(self) -> Dict[str, Dict[str, int]]:
        return {name: {"active": p.active, "max": p.max} for name, p in self._pools.items()}

    def clear(self) -> None:
        with self._lock:
            self._pools.clear()


# ==================== 重试 ====================

async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> T:
    """
    指数退避重试

    第 n 次失败后等待 min(base_delay * 2**n, max_delay) 秒，
    共尝试 max_retries + 1 次，全部失败时抛出最后一次的异常。
    """
    last_error: Optional[Exception] = None
    for attempt in range(max_retries + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc
            if attempt == max_retries:
                break
            delay = min(base_delay * (2 ** attempt), max_delay)
            logger.warning("第 {} 次调用失败: {}，{} 秒后重试", attempt + 1, exc, delay)
            await sleep(delay)
    raise last_error


# ==================== 优先级队列 ====================

class PriorityRequestQueue:
    """优先级高的先执行，同优先级按提交顺序执行"""

    def __init__(self):
        self._heap: List[Tuple[int, int, Callable[[], Awaitable[Any]], "asyncio.Future[Any]"]] = []
        self._seq = itertools.count()
        self._processing = False
        self._task: Optional[asyncio.Task] = None

    async def submit(self, request: Callable[[], Awaitable[T]], priority: int = 0) -> T:
        future = asyncio.get_running_loop().create_future()
        heapq.heappush(self._heap, (-priority, next(self._seq), request, future))
        if not self._processing:
            self._processing = True
            self._task = asyncio.ensure_future(self._drain())
        return await future

    async def _drain(self) -> None:
        try:
            while self._heap:
                _, _, request, future = heapq.heappop(self._heap)
                if future.done():
                    continue
                try:
                    result = await request()
                except Exception as exc:
                    future.set_exception(exc)
                else:
                    future.set_result(result)
        finally:
            self._processing = False

    @property
    def processing(self) -> bool:
        return self._processing

    def __len__(self) -> int:
        return len(self._heap)

    def clear(self) -> None:
        for _, _, _, future in self._heap:
            if not future.done():
                future.cancel()
        self._heap.clear()


# ==================== 熔断器 ====================

class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


@dataclass
class _Circuit:
    state: CircuitState = CircuitState.CLOSED
    failures: int = 0
    last_failure: float = 0.0


class CircuitBreaker:
    """
    按名称维护的熔断器

    连续失败达到 failure_threshold 后打开；打开后超过 timeout 秒进入半开，
    半开状态下成功一次即关闭，失败则重新计数。
    """

    def __init__(self, clock: Clock = time.monotonic):
        self._clock = clock
        self._circuits: Dict[str, _Circuit] = {}

    async def call(
        self,
        name: str,
        operation: Callable[[], Awaitable[T]],
        failure_threshold: int = 5,
        timeout: float = 60.0,
    ) -> T:
        circuit = self._circuits.setdefault(name, _Circuit())

        if circuit.state == CircuitState.OPEN:
            if self._clock() - circuit.last_failure > timeout:
                circuit.state = CircuitState.HALF_OPEN
                logger.info("熔断器 {} 进入半开状态", name)
            else:
                raise CircuitOpenError(name)

        try:
            result = await operation()
        except Exception:
            circuit.failures += 1
            circuit.last_failure = self._clock()
            if circuit.failures >= failure_threshold and circuit.state != CircuitState.OPEN:
                circuit.state = CircuitState.OPEN
                logger.warning("熔断器 {} 已打开，连续失败 {} 次", name, circuit.failures)
            raise

        if circuit.state != CircuitState.CLOSED or circuit.failures:
            logger.info("熔断器 {} 恢复关闭", name)
        circuit.state = CircuitState.CLOSED
        circuit.failures = 0
        return result

    def state(self, name: str) -> CircuitState:
        circuit = self._circuits.get(name)
        return circuit.state if circuit else CircuitState.CLOSED

    def failures(self, name: str) -> int:
        circuit = self._circuits.get(name)
        return circuit.failures if circuit else 0

    def status(self) -> Dict[str, Dict[str, Any]]:
        return {
            name: {"state": c.state.value, "failures": c.failures}
            for name, c in self._circuits.items()
        }

    def clear(self) -> None:
        self._circuits.clear()


# ==================== 调用计时 ====================

@dataclass
class MeasuredCall:
    """一次被计时的调用结果"""
    result: Any
    duration_ms: float
    success: bool
    error: Optional[Exception] = None


@dataclass
class CallStats:
    calls: int = 0
    failures: int = 0
    total_ms: float = 0.0

    @property
    def average_ms(self) -> float:
        return round(self.total_ms / self.calls, 2) if self.calls else 0.0


# ==================== 工具函数 ====================

def get_cache_key(endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
    """按参数名排序生成稳定的缓存 key"""
    params = params or {}
    query = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{endpoint}?{query}"


def get_cache_ttl(endpoint: str) -> float:
    """不同资源使用不同缓存时长"""
    for marker, ttl in ENDPOINT_TTLS:
        if marker in endpoint:
            return ttl
    return FALLBACK_TTL


# ==================== 组合服务 ====================

class ApiOptimizationService:
    """
    API 优化服务

    组合各个组件，并负责后台定时清理过期缓存和限流窗口。
    """

    def __init__(
        self,
        clock: Clock = time.monotonic,
        cache_max_entries: Optional[int] = None,
        batch_executor: BatchExecutor = echo_executor,
    ):
        self._clock = clock
        self.cache = ResponseCache(clock=clock, max_entries=cache_max_entries)
        self.rate_limiter = RateLimiter(clock=clock)
        self.batches = BatchQueue(executor=batch_executor)
        self.pools = ConnectionPool()
        self.priority_queue = PriorityRequestQueue()
        self.circuits = CircuitBreaker(clock=clock)
        self.call_stats: Dict[str, CallStats] = {}
        self._sweepers: List[asyncio.Task] = []

    # ---------- 缓存 ----------

    def get_cached_response(self, key: str) -> Optional[Any]:
        return self.cache.get(key)

    def set_cached_response(self, key: str, data: Any, ttl: float = DEFAULT_CACHE_TTL) -> None:
        self.cache.set(key, data, ttl)

    def invalidate_cache(self, prefix: str = "") -> int:
        return self.cache.invalidate(prefix)

    # ---------- 限流 ----------

    def check_rate_limit(self, key: str, config: RateLimitConfig) -> bool:
        allowed = self.rate_limiter.check(key, config)
        if not allowed:
            logger.warning("触发限流: {}", key)
        return allowed

    # ---------- 批处理 ----------

    async def add_to_batch(
        self,
        batch_key: str,
        endpoint: str,
        payload: Any,
        batch_size: int = 10,
        max_wait: float = 1.0,
    ) -> Any:
        return await self.batches.add(batch_key, endpoint, payload, batch_size, max_wait)

    # ---------- 连接池 ----------

    def acquire_connection(self, pool_name: str, max_connections: int = 5) -> bool:
        return self.pools.acquire(pool_name, max_connections)

    def release_connection(self, pool_name: str) -> None:
        self.pools.release(pool_name)

    def connection(self, pool_name: str, max_connections: int = 5):
        return self.pools.connection(pool_name, max_connections)

    # ---------- 重试 / 优先级 / 熔断 ----------

    async def retry_with_backoff(self, operation: Callable[[], Awaitable[T]], **kwargs) -> T:
        return await retry_with_backoff(operation, **kwargs)

    async def add_priority_request(self, request: Callable[[], Awaitable[T]], priority: int = 0) -> T:
        return await self.priority_queue.submit(request, priority)

    async def call_with_circuit_breaker(
        self,
        name: str,
        operation: Callable[[], Awaitable[T]],
        failure_threshold: int = 5,
        timeout: float = 60.0,
    ) -> T:
        return await self.circuits.call(name, operation, failure_threshold, timeout)

    # ---------- 计时 ----------

    async def measure_api_call(self, name: str, call: Callable[[], Awaitable[T]]) -> MeasuredCall:
        """执行调用并记录耗时，异常不会向外抛出，而是放在结果里"""
        stats = self.call_stats.setdefault(name, CallStats())
        start = time.perf_counter()
        try:
            result = await call()
        except Exception as exc:
            duration = (time.perf_counter() - start) * 1000
            stats.calls += 1
            stats.failures += 1
            stats.total_ms += duration
            logger.error("API 调用失败: {} ({:.2f}ms) - {}", name, duration, exc)
            return MeasuredCall(result=None, duration_ms=duration, success=False, error=exc)

        duration = (time.perf_counter() - start) * 1000
        stats.calls += 1
        stats.total_ms += duration
        logger.debug("API 调用: {} 耗时 {:.2f}ms", name, duration)
        return MeasuredCall(result=result, duration_ms=duration, success=True)

    @property
    def total_calls(self) -> int:
        return sum(s.calls for s in self.call_stats.values())

    # ---------- 生命周期 ----------

    async def _sweep_forever(self, interval: float, sweep: Callable[[], int]) -> None:
        while True:
            await asyncio.sleep(interval)
            sweep()

    def start(
        self,
        cache_interval: float = 300.0,
        rate_limit_interval: float = 60.0,
    ) -> None:
        """启动后台清理任务，需在事件循环中调用"""
        if self._sweepers:
            return
        self._sweepers = [
            asyncio.create_task(self._sweep_forever(cache_interval, self.cache.sweep)),
            asyncio.create_task(self._sweep_forever(rate_limit_interval, self.rate_limiter.sweep)),
        ]
        logger.info("API 优化组件已启动")

    async def stop(self) -> None:
        for task in self._sweepers:
            task.cancel()
        for task in self._sweepers:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._sweepers = []
        self.batches.clear()

    def reset(self) -> None:
        """清空所有状态"""
        self.cache.clear()
        self.rate_limiter.clear()
        self.batches.clear()
        self.pools.clear()
        self.priority_queue.clear()
        self.circuits.clear()
        self.call_stats.clear()

    def get_status(self) -> Dict[str, Any]:
        return {
            "cache_entries": len(self.cache),
            "rate_limit_keys": len(self.rate_limiter),
            "pools": self.pools.status(),
            "circuits": self.circuits.status(),
            "priority_queue": len(self.priority_queue),
            "calls": {
                name: {"calls": s.calls, "failures": s.failures, "average_ms": s.average_ms}
                for name, s in self.call_stats.items()
            },
        }


# 全局单例
api_optimization = ApiOptimizationService(cache_max_entries=settings.cache_max_entries)

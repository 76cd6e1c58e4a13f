"""
采样循环

每隔 interval 秒探测所有服务器，平滑后提交到内存状态，并落盘。
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Mapping, Optional, Set

from .config import ServerEntry
from .models import MonitorState
from .prober import fetch_player_count
from .storage import StateStore
from .utils import now_ms

logger = logging.getLogger(__name__)

ProbeFunc = Callable[[str, Optional[int], float], Awaitable[Optional[int]]]


class Sampler:
    """
    采样器

    同一时刻最多只有一轮采样在执行；上一轮未结束时触发的新一轮直接跳过。
    """

    def __init__(
        self,
        state: MonitorState,
        store: StateStore,
        servers: Mapping[str, ServerEntry],
        interval: float = 30,
        timeout: float = 0.8,
        retention_ms: int = 72 * 60 * 60 * 1000,
        probe: ProbeFunc = fetch_player_count,
        clock: Callable[[], int] = now_ms
    ):
        self.state = state
        self.store = store
        self.servers: Dict[str, ServerEntry] = dict(servers)
        self.interval = interval
        self.timeout = timeout
        self.retention_ms = retention_ms
        self._probe = probe
        self._clock = clock

        self._tick_lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def busy(self) -> bool:
        return self._tick_lock.locked()

    async def _probe_all(self) -> Dict[str, Optional[int]]:
        """并发探测所有服务器"""
        server_ids = list(self.servers)
        results = await asyncio.gather(
            *(
                self._probe(self.servers[sid].host, self.servers[sid].port, self.timeout)
                for sid in server_ids
            ),
            return_exceptions=True
        )

        readings: Dict[str, Optional[int]] = {}
        for server_id, result in zip(server_ids, results):
            if isinstance(result, BaseException):
                logger.warning(f"Probe for {server_id} raised: {result!r}")
                result = None
            readings[server_id] = result
        return readings

    async def tick(self) -> bool:
        """
        执行一轮采样

        Returns:
            True 表示本轮已执行；False 表示上一轮仍在进行，本轮跳过
        """
        if self._tick_lock.locked():
            logger.debug("Previous tick still running, skipping")
            return False

        async with self._tick_lock:
            readings = await self._probe_all()

            now = self._clock()
            point = await self.state.record_tick(readings, now, self.retention_ms)

            failed = [sid for sid, raw in readings.items() if raw is None]
            if failed:
                logger.debug(f"No reading this tick from: {', '.join(failed)}")
            logger.debug(f"Tick committed: total={point.total} at {point.time}")

            self.store.save(await self.state.export_state())

        return True

    async def _tick_safely(self):
        try:
            await self.tick()
        except Exception as e:
            logger.error(f"Sampler tick error: {e}", exc_info=True)

    def _spawn_tick(self):
        task = asyncio.create_task(self._tick_safely())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self):
        """
        运行采样循环

        启动时立即采样一次，之后每隔 interval 秒触发一次，不等待上一轮结束。
        """
        logger.info(
            f"Starting sampler loop (servers={len(self.servers)}, "
            f"interval={self.interval}s, timeout={self.timeout}s)"
        )

        try:
            while True:
                self._spawn_tick()
                await asyncio.sleep(self.interval)
        except asyncio.CancelledError:
            logger.info("Sampler task cancelled")
            for task in list(self._tasks):
                task.cancel()
            raise

"""
图表聚合

把历史点按固定宽度的时间桶求平均，结果带独立的短期缓存。
"""

import logging
import math
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Sequence

from .models import ChartPoint, ChartResponse, HistoryPoint, MonitorState
from .utils import now_ms

logger = logging.getLogger(__name__)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def build_chart(history: Sequence[HistoryPoint], bucket_ms: int) -> List[ChartPoint]:
    """
    计算图表数据

    Args:
        history: 历史点
        bucket_ms: 时间桶宽度（毫秒）

    Returns:
        每个非空时间桶一个点，按桶起始时间升序
    """
    buckets: Dict[int, List[int]] = defaultdict(list)
    for point in history:
        bucket = point.time // bucket_ms * bucket_ms
        buckets[bucket].append(point.total)

    return [
        ChartPoint(time=bucket, total=_round_half_up(sum(totals) / len(totals)))
        for bucket, totals in sorted(buckets.items())
    ]


class ChartCache:
    """
    图表缓存

    缓存过期（超过 max_age_ms）后的第一次请求重新计算，
    其余请求直接返回缓存，与采样周期无关。
    """

    def __init__(
        self,
        state: MonitorState,
        bucket_ms: int = 5 * 60 * 1000,
        max_age_ms: int = 60 * 1000,
        clock: Callable[[], int] = now_ms
    ):
        self._state = state
        self._bucket_ms = bucket_ms
        self._max_age_ms = max_age_ms
        self._clock = clock

        self._data: List[ChartPoint] = []
        self._updated: Optional[int] = None

    def is_stale(self, now: int) -> bool:
        return self._updated is None or now - self._updated > self._max_age_ms

    async def get(self) -> ChartResponse:
        """获取图表数据（必要时刷新缓存）"""
        now = self._clock()

        if self.is_stale(now):
            history = await self._state.get_history()
            self._data = build_chart(history, self._bucket_ms)
            self._updated = now
            logger.debug(
                f"Chart rebuilt: {len(history)} points -> {len(self._data)} buckets"
            )

        return ChartResponse(updated=self._updated, data=list(self._data))

"""
数据模型定义

包括：
- Pydantic 响应模型
- 落盘状态模型
- 内存状态管理
"""

import asyncio
from typing import Dict, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from .fallback import smooth_reading


# =============================================================================
# Pydantic 模型（用于 API 和落盘）
# =============================================================================

class HistoryPoint(BaseModel):
    """历史数据点（一次采样的总人数）"""
    time: int
    total: int


class ChartPoint(BaseModel):
    """图表数据点（一个时间桶的平均总人数）"""
    time: int
    total: int


class OnlineResponse(BaseModel):
    """GET /online 响应"""
    success: bool = True
    servers: Dict[str, int] = Field(default_factory=dict)
    total: int = 0
    updated: int = 0


class ChartResponse(BaseModel):
    """GET /online/chart 响应"""
    success: bool = True
    updated: int = 0
    data: List[ChartPoint] = Field(default_factory=list)


class PersistedState(BaseModel):
    """落盘状态：历史 + 每台服务器最后一次有效在线人数"""

    model_config = ConfigDict(populate_by_name=True)

    history: List[HistoryPoint] = Field(default_factory=list)
    last_valid_online: Dict[str, Optional[int]] = Field(
        default_factory=dict, alias="lastValidOnline"
    )


# =============================================================================
# 内存状态
# =============================================================================

class MonitorState:
    """
    内存状态管理器

    管理：
    - servers / total / updated: 最新快照（供 /online 读取）
    - history: 总人数历史（供图表聚合和落盘）
    - last_valid: 每台服务器最后一次大于 0 的读数（回退平滑用）

    只有采样器会写入，并且一次采样的所有写入在同一个锁区间内完成，
    读方要么看到上一轮，要么看到这一轮。
    """

    def __init__(self, server_ids: Iterable[str]):
        self._server_ids: List[str] = list(server_ids)

        # 最新快照：{server_id: players}
        self._servers: Dict[str, int] = {sid: 0 for sid in self._server_ids}
        self._total = 0
        self._updated = 0

        # 历史：按时间非递减
        self._history: List[HistoryPoint] = []

        # 最后有效读数：{server_id: players | None}
        self._last_valid: Dict[str, Optional[int]] = {sid: None for sid in self._server_ids}

        self._lock = asyncio.Lock()

    def restore(self, persisted: PersistedState):
        """从落盘状态恢复历史和最后有效读数（启动时调用一次）"""
        self._history = sorted(persisted.history, key=lambda p: p.time)
        for server_id in self._server_ids:
            self._last_valid[server_id] = persisted.last_valid_online.get(server_id)

    async def record_tick(
        self,
        readings: Mapping[str, Optional[int]],
        now: int,
        retention_ms: int,
    ) -> HistoryPoint:
        """
        提交一轮采样结果

        Args:
            readings: 每台服务器的原始读数，None 表示探测失败
            now: 本轮时间戳（毫秒）
            retention_ms: 历史保留窗口（毫秒）

        Returns:
            本轮追加的历史点
        """
        async with self._lock:
            # 系统时钟回拨时不早于最后一个历史点，保持历史按时间非递减
            if self._history and now < self._history[-1].time:
                now = self._history[-1].time

            total = 0
            for server_id in self._server_ids:
                value = smooth_reading(self._last_valid, server_id, readings.get(server_id))
                if value is None:
                    # 探测失败：保留上一轮的显示值，不计入本轮总数
                    continue
                self._servers[server_id] = value
                total += value

            self._total = total
            self._updated = now

            point = HistoryPoint(time=now, total=total)
            self._history.append(point)

            cutoff = now - retention_ms
            self._history = [p for p in self._history if p.time >= cutoff]

            return point

    async def get_snapshot(self) -> OnlineResponse:
        """获取最新快照"""
        async with self._lock:
            return OnlineResponse(
                servers=dict(self._servers),
                total=self._total,
                updated=self._updated,
            )

    async def get_history(self) -> List[HistoryPoint]:
        """获取历史副本"""
        async with self._lock:
            return list(self._history)

    async def get_last_valid(self) -> Dict[str, Optional[int]]:
        """获取最后有效读数副本"""
        async with self._lock:
            return dict(self._last_valid)

    async def export_state(self) -> PersistedState:
        """导出需要落盘的状态"""
        async with self._lock:
            return PersistedState(
                history=list(self._history),
                last_valid_online=dict(self._last_valid),
            )

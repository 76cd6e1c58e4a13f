"""
在线人数 API

提供最新快照和图表数据，只读内存状态，从不触发探测。
"""

from fastapi import APIRouter, Depends

from ...aggregator import ChartCache
from ...models import ChartResponse, MonitorState, OnlineResponse
from ..dependencies import get_chart_cache, get_monitor_state

router = APIRouter(prefix="/online", tags=["online"])


@router.get("", response_model=OnlineResponse)
async def get_online(state: MonitorState = Depends(get_monitor_state)):
    """获取每台服务器和总计的最新在线人数"""
    return await state.get_snapshot()


@router.get("/chart", response_model=ChartResponse)
async def get_online_chart(chart: ChartCache = Depends(get_chart_cache)):
    """
    获取总在线人数图表

    返回按时间桶平均后的数据，updated 为缓存刷新时间。
    """
    return await chart.get()

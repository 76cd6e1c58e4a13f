"""
依赖注入模块

提供 FastAPI 依赖项：从 app.state 取出启动时构建的状态对象。
"""

from fastapi import Request

from ..aggregator import ChartCache
from ..models import MonitorState


async def get_monitor_state(request: Request) -> MonitorState:
    """获取内存状态实例"""
    return request.app.state.monitor


async def get_chart_cache(request: Request) -> ChartCache:
    """获取图表缓存实例"""
    return request.app.state.chart

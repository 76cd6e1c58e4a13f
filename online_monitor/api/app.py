"""
FastAPI 应用配置

配置 CORS、路由注册，并挂载运行时状态。
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..aggregator import ChartCache
from ..models import MonitorState
from .routers import online

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Online Monitor API starting up...")
    yield
    logger.info("Online Monitor API shutting down...")


def create_app(
    state: MonitorState,
    chart: ChartCache,
    cors_origins: Optional[List[str]] = None
) -> FastAPI:
    """
    创建 FastAPI 应用实例

    Args:
        state: 采样器写入的内存状态
        chart: 基于同一状态的图表缓存
        cors_origins: 允许的跨域来源，默认允许所有
    """
    app = FastAPI(
        title="Online Monitor",
        description="游戏服务器在线人数监控 API",
        version=__version__,
        lifespan=lifespan,
    )

    # 路由通过依赖注入读取
    app.state.monitor = state
    app.state.chart = chart

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    # 注册路由
    app.include_router(online.router)

    return app

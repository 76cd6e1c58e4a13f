"""
主程序入口

并发运行两个任务：
1. 30s 采样循环
2. REST API 服务
"""

import asyncio
import logging
import sys
from pathlib import Path

import uvicorn

from .aggregator import ChartCache
from .config import AppConfig, LoggingConfig, get_config
from .models import MonitorState
from .sampler import Sampler
from .storage import StateStore


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(settings: LoggingConfig):
    """
    配置根日志：标准输出，另可追加写入日志文件

    Args:
        settings: 日志配置段（level / file）
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.file:
        log_path = Path(settings.file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(str(log_path), encoding="utf-8"))

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)

    # uvicorn 访问日志只保留警告
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


async def run_api_server(config: AppConfig, state: MonitorState, chart: ChartCache):
    """运行 API 服务器"""
    from .api.app import create_app

    app = create_app(state, chart, cors_origins=config.api.cors_origins)

    server_config = uvicorn.Config(
        app=app,
        host=config.api.host,
        port=config.api.port,
        log_level="info",
        access_log=False
    )
    server = uvicorn.Server(server_config)
    await server.serve()


async def main(config: AppConfig):
    """主函数：恢复状态并启动所有任务"""
    logger = logging.getLogger(__name__)

    logger.info("=" * 60)
    logger.info("Online Monitor v1.0.0")
    logger.info("=" * 60)
    logger.info(f"Config loaded: API={config.api.host}:{config.api.port}")
    logger.info(
        "Monitoring: "
        + ", ".join(f"{sid}={entry.address}" for sid, entry in config.servers.items())
    )

    store = StateStore(config.storage.path)
    state = MonitorState(config.servers.keys())
    state.restore(store.load())

    sampler = Sampler(
        state,
        store,
        config.servers,
        interval=config.sampler.interval,
        timeout=config.sampler.timeout,
        retention_ms=config.sampler.retention_ms,
    )
    chart = ChartCache(
        state,
        bucket_ms=config.chart.bucket_ms,
        max_age_ms=config.chart.cache_ms,
    )

    logger.info("Starting concurrent tasks...")

    # API 服务退出（如收到 SIGINT）时一并停止采样循环
    sampler_task = asyncio.create_task(sampler.run())
    try:
        await run_api_server(config, state, chart)
    except asyncio.CancelledError:
        logger.info("Tasks cancelled, shutting down...")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        raise
    finally:
        sampler_task.cancel()
        await asyncio.gather(sampler_task, return_exceptions=True)


def cli():
    """命令行入口"""
    try:
        config = get_config()
    except Exception as e:
        # 配置错误是唯一允许中止启动的错误
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    setup_logging(config.logging)

    try:
        asyncio.run(main(config))
    except KeyboardInterrupt:
        print("\nShutdown requested, exiting...")
        sys.exit(0)


if __name__ == "__main__":
    cli()

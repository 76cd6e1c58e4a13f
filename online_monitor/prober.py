"""
游戏服务器探测

通过 Server List Ping 查询单台 Minecraft 服务器的在线人数。
"""

import asyncio
import logging
from typing import Optional

from mcstatus import JavaServer

logger = logging.getLogger(__name__)


async def _query_status(host: str, port: Optional[int], timeout: float):
    if port is None:
        # 未指定端口：先查 SRV 记录，和官方客户端一致
        server = await JavaServer.async_lookup(host, timeout=timeout)
    else:
        server = JavaServer(host, port, timeout=timeout)
    return await server.async_status()


async def fetch_player_count(
    host: str,
    port: Optional[int] = None,
    timeout: float = 0.8
) -> Optional[int]:
    """
    查询单台服务器的在线人数

    Args:
        host: 服务器 IP/域名
        port: 服务器端口，None 表示通过 SRV 记录解析
        timeout: 超时时间（秒），包含 SRV 解析

    Returns:
        在线人数；超时、不可达、响应异常或缺少人数字段时返回 None（不抛异常）
    """
    target = host if port is None else f"{host}:{port}"
    try:
        status = await asyncio.wait_for(_query_status(host, port, timeout), timeout=timeout)
        online = status.players.online
    except Exception as e:
        logger.debug(f"Probe failed for {target}: {e!r}")
        return None

    if not isinstance(online, int) or online < 0:
        logger.debug(f"Probe for {target} returned invalid player count: {online!r}")
        return None

    return online

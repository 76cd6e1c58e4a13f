"""
在线人数回退平滑

探测偶发失败或读到 0 时，用最后一次有效读数代替，避免图表出现单点跌零。
"""

from typing import MutableMapping, Optional


def smooth_reading(
    last_valid: MutableMapping[str, Optional[int]],
    server_id: str,
    raw: Optional[int],
) -> Optional[int]:
    """
    把原始读数转换为显示值

    Args:
        last_valid: 每台服务器最后一次大于 0 的读数，会被原地更新
        server_id: 服务器标识
        raw: 原始读数，None 表示探测失败

    Returns:
        显示值；None 表示本轮不更新该服务器
    """
    if raw is None:
        return None

    if raw > 0:
        last_valid[server_id] = raw
        return raw

    # 读到 0：有历史有效值时视为抖动
    previous = last_valid.get(server_id)
    if previous is not None:
        return previous
    return 0

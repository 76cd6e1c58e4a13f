"""
工具函数模块
"""

import time


def now_ms() -> int:
    """当前时间（毫秒级 Unix 时间戳）"""
    return int(time.time() * 1000)

"""
Online Monitor - 游戏服务器在线人数监控服务

负责：
- 每 30s 探测所有游戏服务器的在线人数
- 对探测失败/归零做回退平滑
- 维护 72 小时的总人数历史并落盘
- 提供最新快照和降采样图表的 REST API
"""

__version__ = "1.0.0"

"""
Online Monitor 主程序入口

使用方式:
    python -m online_monitor
    或
    online-monitor
"""

from online_monitor.main import cli


if __name__ == "__main__":
    cli()

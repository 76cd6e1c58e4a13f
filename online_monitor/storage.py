"""
状态落盘

把历史和最后有效读数写入 JSON 文件，启动时读回，用于重启恢复。
"""

import logging
import os
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from .models import PersistedState

logger = logging.getLogger(__name__)


class StateStore:
    """状态文件读写类"""

    def __init__(self, path: Union[str, Path]):
        """
        Args:
            path: 状态文件路径
        """
        self.path = Path(path)

    def load(self) -> PersistedState:
        """
        读取落盘状态

        文件不存在、无法读取或内容损坏时返回空状态，从不抛异常。
        """
        if not self.path.exists():
            logger.info(f"No saved state at {self.path}, starting empty")
            return PersistedState()

        try:
            raw = self.path.read_text(encoding="utf-8")
            state = PersistedState.model_validate_json(raw)
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Failed to load saved state from {self.path}, starting empty: {e}")
            return PersistedState()

        logger.info(
            f"Loaded saved state from {self.path}: {len(state.history)} history points"
        )
        return state

    def save(self, state: PersistedState) -> bool:
        """
        整体覆盖写入落盘状态

        先写临时文件再原子替换，写入失败只记录日志。

        Returns:
            是否写入成功
        """
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                state.model_dump_json(by_alias=True),
                encoding="utf-8"
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed to save state to {self.path}: {e}")
            return False
        return True

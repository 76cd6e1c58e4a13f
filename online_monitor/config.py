"""
配置加载模块

从 config.yaml 加载配置，支持 Pydantic 验证和环境变量覆盖。
"""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ServerEntry(BaseModel):
    """
    被监控的游戏服务器地址

    未配置端口时通过 _minecraft._tcp SRV 记录解析，没有 SRV 记录则用 25565。
    """
    host: str
    port: Optional[int] = Field(default=None, ge=1, le=65535)

    @model_validator(mode="before")
    @classmethod
    def _parse_address(cls, data: Any) -> Any:
        # 允许简写为 "host"、"host:port" 或 "[ipv6]:port"
        if not isinstance(data, str):
            return data

        if data.startswith("["):
            host, sep, rest = data[1:].partition("]")
            if not sep or (rest and not rest.startswith(":")):
                raise ValueError(f"Invalid server address {data!r}, expected [addr]:port")
            port = rest[1:]
            return {"host": host, "port": port} if port else {"host": host}

        if data.count(":") > 1:
            raise ValueError(
                f"Invalid server address {data!r}, write IPv6 addresses as [addr]:port"
            )

        host, sep, port = data.partition(":")
        if not sep:
            return {"host": data}
        return {"host": host, "port": port}

    @property
    def address(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        if self.port is None:
            return host
        return f"{host}:{self.port}"


def _default_servers() -> Dict[str, ServerEntry]:
    return {
        "lobby": ServerEntry(host="mc.teslacraft.org"),
        "royale": ServerEntry(host="hub.holyworld.ru"),
        "uhc": ServerEntry(host="astrummc.su"),
        "meetup": ServerEntry(host="mc.politmine.ru"),
    }


class APIConfig(BaseModel):
    """API 服务配置"""
    host: str = "0.0.0.0"
    port: int = Field(default=3000, ge=1, le=65535)
    cors_origins: List[str] = ["*"]


class SamplerConfig(BaseModel):
    """采样配置"""
    interval: float = Field(default=30, gt=0)
    timeout: float = Field(default=0.8, gt=0)
    retention_hours: float = Field(default=72, gt=0)

    @property
    def retention_ms(self) -> int:
        return int(self.retention_hours * 3600 * 1000)


class ChartConfig(BaseModel):
    """图表聚合配置"""
    bucket_seconds: int = Field(default=300, gt=0)
    cache_seconds: int = Field(default=60, ge=0)

    @property
    def bucket_ms(self) -> int:
        return self.bucket_seconds * 1000

    @property
    def cache_ms(self) -> int:
        return self.cache_seconds * 1000


class StorageConfig(BaseModel):
    """状态落盘配置"""
    path: str = "online-history.json"


class LoggingConfig(BaseModel):
    """日志配置"""
    level: str = "INFO"
    file: Optional[str] = None


class AppConfig(BaseSettings):
    """应用配置（完整配置）"""

    model_config = SettingsConfigDict(
        env_prefix="ONLINE_MONITOR_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    api: APIConfig = Field(default_factory=APIConfig)
    servers: Dict[str, ServerEntry] = Field(default_factory=_default_servers)
    sampler: SamplerConfig = Field(default_factory=SamplerConfig)
    chart: ChartConfig = Field(default_factory=ChartConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # 环境变量优先于 config.yaml
        return env_settings, dotenv_settings, init_settings, file_secret_settings


def load_config(config_path: Optional[str] = None) -> AppConfig:
    """
    加载配置文件

    优先级：
    1. 参数指定的路径
    2. 环境变量 ONLINE_MONITOR_CONFIG
    3. 默认路径 ./config.yaml

    配置文件中的相对路径以配置文件所在目录为基准。
    环境变量 PORT 覆盖 api.port，非法值直接抛出异常中止启动。
    """
    if config_path is None:
        config_path = os.environ.get("ONLINE_MONITOR_CONFIG", "config.yaml")

    config_file = Path(config_path)
    raw_config: Dict[str, Any] = {}

    if config_file.exists():
        with open(config_file, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f) or {}

        base_dir = config_file.resolve().parent

        def _resolve_path(value: Optional[str]) -> Optional[str]:
            if not value:
                return value
            path = Path(value)
            if path.is_absolute():
                return str(path)
            return str((base_dir / path).resolve())

        for section, key in (("storage", "path"), ("logging", "file")):
            values = raw_config.get(section)
            if isinstance(values, dict) and values.get(key):
                values[key] = _resolve_path(values[key])

    config = AppConfig(**raw_config)

    port = os.environ.get("PORT")
    if port:
        config.api = APIConfig(**{**config.api.model_dump(), "port": port})

    return config


# 全局配置实例（延迟加载）
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """获取全局配置实例（单例模式）"""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config():
    """重置配置（主要用于测试）"""
    global _config
    _config = None

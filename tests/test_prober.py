"""
单元测试：游戏服务器探测

用假的 JavaServer 替换 mcstatus，验证所有失败都折叠为 None。
"""

import asyncio
from types import SimpleNamespace

import pytest

from online_monitor import prober
from online_monitor.prober import fetch_player_count


def _fake_server(status_factory, calls=None):
    calls = [] if calls is None else calls

    class FakeServer:
        def __init__(self, host, port, timeout):
            calls.append(("connect", host, port))
            self.host = host
            self.port = port
            self.timeout = timeout

        @classmethod
        async def async_lookup(cls, address, timeout=3):
            calls.append(("lookup", address))
            server = cls.__new__(cls)
            server.host = address
            server.port = 25565
            server.timeout = timeout
            return server

        async def async_status(self):
            return await status_factory()

    return FakeServer


def _status(online):
    async def factory():
        return SimpleNamespace(players=SimpleNamespace(online=online))
    return factory


class TestFetchPlayerCount:
    """探测测试"""

    def test_success(self, monkeypatch):
        """测试：正常返回在线人数"""
        monkeypatch.setattr(prober, "JavaServer", _fake_server(_status(7)))

        assert asyncio.run(fetch_player_count("mc.example.org", 25565, 0.5)) == 7

    def test_zero_players(self, monkeypatch):
        """测试：0 人是合法读数"""
        monkeypatch.setattr(prober, "JavaServer", _fake_server(_status(0)))

        assert asyncio.run(fetch_player_count("mc.example.org")) == 0

    def test_connection_error(self, monkeypatch):
        """测试：连接失败返回 None"""
        async def factory():
            raise ConnectionRefusedError("refused")

        monkeypatch.setattr(prober, "JavaServer", _fake_server(factory))

        assert asyncio.run(fetch_player_count("mc.example.org")) is None

    def test_timeout(self, monkeypatch):
        """测试：超时返回 None"""
        async def factory():
            await asyncio.sleep(1)
            return SimpleNamespace(players=SimpleNamespace(online=1))

        monkeypatch.setattr(prober, "JavaServer", _fake_server(factory))

        assert asyncio.run(fetch_player_count("mc.example.org", timeout=0.01)) is None

    @pytest.mark.parametrize("online", [None, -1, "12"])
    def test_invalid_player_count(self, monkeypatch, online):
        """测试：人数字段缺失或非法时返回 None"""
        monkeypatch.setattr(prober, "JavaServer", _fake_server(_status(online)))

        assert asyncio.run(fetch_player_count("mc.example.org")) is None

    def test_malformed_response(self, monkeypatch):
        """测试：响应缺少 players 字段时返回 None"""
        async def factory():
            return SimpleNamespace()

        monkeypatch.setattr(prober, "JavaServer", _fake_server(factory))

        assert asyncio.run(fetch_player_count("mc.example.org")) is None


class TestAddressResolution:
    """地址解析测试"""

    def test_srv_lookup_without_port(self, monkeypatch):
        """测试：未指定端口时通过 SRV 记录解析地址"""
        calls = []
        monkeypatch.setattr(prober, "JavaServer", _fake_server(_status(3), calls))

        assert asyncio.run(fetch_player_count("mc.example.org", None, 0.5)) == 3
        assert calls == [("lookup", "mc.example.org")]

    def test_explicit_port_connects_directly(self, monkeypatch):
        """测试：指定端口时直接连接，不查 SRV 记录"""
        calls = []
        monkeypatch.setattr(prober, "JavaServer", _fake_server(_status(3), calls))

        assert asyncio.run(fetch_player_count("mc.example.org", 25570, 0.5)) == 3
        assert calls == [("connect", "mc.example.org", 25570)]

    def test_lookup_failure_returns_none(self, monkeypatch):
        """测试：SRV 解析失败时返回 None"""
        class FailingLookup:
            @classmethod
            async def async_lookup(cls, address, timeout=3):
                raise OSError("dns failure")

        monkeypatch.setattr(prober, "JavaServer", FailingLookup)

        assert asyncio.run(fetch_player_count("mc.example.org")) is None

"""PluginClient 单元测试（mock HTTP）。"""
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from nrplugin_agent import __version__
from nrplugin_agent.client import PluginClient, check_status
from nrplugin_agent.config import DEFAULT_GUID, DEFAULT_URL, NewRelicConfig
from nrplugin_agent.exceptions import (
    ApplicationError,
    AuthenticationError,
    BadStatusError,
    ConfigError,
    EndpointUnavailableError,
    InvalidResponseError,
    PayloadTooLargeError,
    SerializationError,
    StatusError,
    TransportError,
    VersionMismatchError,
)
from nrplugin_agent.models import Sample


def _response(status_code=200, body=b'{"status": "ok"}'):
    resp = MagicMock()
    resp.status_code = status_code
    resp.content = body
    return resp


def _mock_http(resp=None, exc=None):
    http = AsyncMock()
    http.is_closed = False
    if exc is not None:
        http.post.side_effect = exc
    else:
        http.post.return_value = resp or _response()
    return http


@pytest.fixture
def samples():
    return [
        Sample(name="m1", tags={"tag1": "tagvalue1"}, fields={"value1": 3, "value2": 4}),
        Sample(name="m1", tags={"tag1": "tagvalue1"}, fields={"value1": 2}),
    ]


async def _connected(http, **cfg):
    cfg.setdefault("license", "secret")
    client = PluginClient(NewRelicConfig(**cfg), hostname="agent-host")
    with patch("httpx.AsyncClient", return_value=http):
        await client.connect()
    return client


class TestConnect:
    async def test_missing_license_fails_before_network(self):
        client = PluginClient(NewRelicConfig(license=""))
        with patch("httpx.AsyncClient") as mock_cls, patch("socket.gethostname") as mock_host:
            with pytest.raises(ConfigError):
                await client.connect()
            mock_cls.assert_not_called()
            mock_host.assert_not_called()
        assert client.agent is None

    async def test_defaults_and_identity(self):
        client = PluginClient(NewRelicConfig(license="secret"))
        with patch("httpx.AsyncClient") as mock_cls, patch("socket.gethostname", return_value="box-1"):
            await client.connect()
            mock_cls.assert_called_once()
        assert client.config.url == DEFAULT_URL
        assert client.config.guid == DEFAULT_GUID
        assert client.agent.host == "box-1"
        assert client.agent.version == __version__ == "1.0.0"
        assert client.agent.pid > 0

    async def test_custom_url_and_guid_kept(self):
        http = _mock_http()
        client = await _connected(http, url="http://nr.test/metrics", guid="com.example.plugin")
        assert client.config.url == "http://nr.test/metrics"
        assert client.config.guid == "com.example.plugin"

    async def test_hostname_failure(self):
        client = PluginClient(NewRelicConfig(license="secret"))
        with patch("httpx.AsyncClient"), patch("socket.gethostname", side_effect=OSError("boom")):
            with pytest.raises(ConfigError, match="hostname"):
                await client.connect()
        assert client.agent is None

    async def test_write_before_connect(self, samples):
        client = PluginClient(NewRelicConfig(license="secret"))
        with pytest.raises(ConfigError):
            await client.write(samples)

    def test_self_description(self):
        assert "license" in PluginClient.sample_config()
        assert "New Relic" in PluginClient.description()


class TestWrite:
    async def test_empty_batch_is_noop(self):
        http = _mock_http()
        client = await _connected(http)
        await client.write([])
        http.post.assert_not_called()

    async def test_request_shape_and_headers(self, samples):
        http = _mock_http()
        client = await _connected(http, url="http://nr.test/metrics", guid="g")
        await client.write(samples)

        http.post.assert_awaited_once()
        args, kwargs = http.post.call_args
        assert args[0] == "http://nr.test/metrics"
        headers = kwargs["headers"]
        assert headers["Content-Type"] == "application/json"
        assert headers["Accept"] == "application/json"
        assert headers["X-License-Key"] == "secret"

        payload = json.loads(kwargs["content"])
        assert payload["agent"]["host"] == "agent-host"
        assert payload["agent"]["version"] == "1.0.0"
        assert isinstance(payload["agent"]["pid"], int)
        assert len(payload["components"]) == 1
        comp = payload["components"][0]
        assert comp["name"] == "agent-host"
        assert comp["guid"] == "g"
        assert comp["duration"] == "60"
        metric = comp["metrics"]["Component/m1/tagvalue1/value1"]
        assert metric == {"count": 2, "total": 5.0, "min": 2.0, "max": 3.0, "sum_of_squares": 13.0}

    async def test_envelope_fresh_per_write(self):
        http = _mock_http()
        client = await _connected(http)
        await client.write([Sample(name="a", fields={"v": 1})])
        await client.write([Sample(name="b", fields={"v": 1})])
        first = json.loads(http.post.call_args_list[0].kwargs["content"])
        second = json.loads(http.post.call_args_list[1].kwargs["content"])
        assert list(first["components"][0]["metrics"]) == ["Component/a/v"]
        assert list(second["components"][0]["metrics"]) == ["Component/b/v"]
        assert first["agent"] == second["agent"]

    async def test_status_ok(self, samples):
        client = await _connected(_mock_http(_response(200, b'{"status":"ok"}')))
        await client.write(samples)

    async def test_forbidden(self, samples):
        client = await _connected(_mock_http(_response(403, b"")))
        with pytest.raises(AuthenticationError) as exc:
            await client.write(samples)
        assert exc.value.status_code == 403

    async def test_application_error(self, samples):
        client = await _connected(_mock_http(_response(200, b'{"error":"force error"}')))
        with pytest.raises(ApplicationError, match="force error"):
            await client.write(samples)

    async def test_status_not_ok(self, samples):
        client = await _connected(_mock_http(_response(202, b'{"status":"pending"}')))
        with pytest.raises(ApplicationError, match="pending"):
            await client.write(samples)

    async def test_malformed_body(self, samples):
        client = await _connected(_mock_http(_response(200, b"<html>oops</html>")))
        with pytest.raises(InvalidResponseError) as exc:
            await client.write(samples)
        assert "oops" in exc.value.detail

    async def test_error_status_skips_body(self, samples):
        # 状态码错误时不解析响应体
        client = await _connected(_mock_http(_response(500, b'{"status":"ok"}')))
        with pytest.raises(EndpointUnavailableError):
            await client.write(samples)

    async def test_transport_error(self, samples):
        client = await _connected(_mock_http(exc=httpx.ConnectError("connection refused")))
        with pytest.raises(TransportError, match="connection refused"):
            await client.write(samples)

    @pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf")])
    async def test_non_finite_values_rejected(self, bad):
        http = _mock_http()
        client = await _connected(http)
        with pytest.raises(SerializationError):
            await client.write([Sample(name="m", fields={"v": bad, "w": 1})])
        http.post.assert_not_called()

    async def test_merged_total_overflow_rejected(self):
        http = _mock_http()
        client = await _connected(http)
        batch = [Sample(name="m", fields={"v": 1e308}), Sample(name="m", fields={"v": 1e308})]
        with pytest.raises(SerializationError):
            await client.write(batch)
        http.post.assert_not_called()

    async def test_huge_int_field_skipped(self):
        http = _mock_http()
        client = await _connected(http)
        await client.write([Sample(name="m", fields={"v": 10 ** 400, "w": 2})])
        payload = json.loads(http.post.call_args.kwargs["content"])
        assert list(payload["components"][0]["metrics"]) == ["Component/m/w"]

    async def test_invalid_url(self, samples):
        client = await _connected(_mock_http(exc=httpx.InvalidURL("Invalid URL")))
        with pytest.raises(TransportError, match="Invalid URL"):
            await client.write(samples)

    async def test_serialization_error(self, samples):
        client = await _connected(_mock_http())
        request = MagicMock()
        request.model_dump_json.side_effect = ValueError("bad float")
        with pytest.raises(SerializationError):
            await client.send(request)

    async def test_close(self):
        http = _mock_http()
        client = await _connected(http)
        await client.close()
        http.aclose.assert_awaited_once()
        with pytest.raises(ConfigError):
            await client.write([Sample(name="a", fields={"v": 1})])

    async def test_context_manager(self, samples):
        http = _mock_http()
        client = PluginClient(NewRelicConfig(license="secret"), hostname="h")
        with patch("httpx.AsyncClient", return_value=http):
            async with client as c:
                await c.write(samples)
        http.post.assert_awaited_once()
        http.aclose.assert_awaited_once()


class TestCheckStatus:
    @pytest.mark.parametrize("code", [200, 201, 204, 209])
    def test_accepted(self, code):
        check_status(code)

    @pytest.mark.parametrize("code,exc_cls", [
        (400, VersionMismatchError),
        (404, VersionMismatchError),
        (405, VersionMismatchError),
        (403, AuthenticationError),
        (413, PayloadTooLargeError),
        (500, EndpointUnavailableError),
        (502, EndpointUnavailableError),
        (503, EndpointUnavailableError),
        (504, EndpointUnavailableError),
        (210, BadStatusError),
        (301, BadStatusError),
        (401, BadStatusError),
        (501, BadStatusError),
    ])
    def test_classified(self, code, exc_cls):
        with pytest.raises(exc_cls) as exc:
            check_status(code)
        assert isinstance(exc.value, StatusError)
        assert exc.value.status_code == code

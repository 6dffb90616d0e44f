"""
Unit tests for the domain API connectors (httpx.MockTransport backed).
"""

import json

import httpx
import pytest

from ops_agent.connectors import (
    APIConnector,
    APIConnectorConfig,
    APIEndpoint,
    ConnectorCredentials,
    ConnectorRegistry,
)
from ops_agent.errors import ConnectorNotFound


def make_config(**overrides) -> APIConnectorConfig:
    data = {
        "name": "mes",
        "base_url": "https://mes.plant.local/api",
        "endpoints": [
            APIEndpoint(name="get_equipment", method="GET", path="/equipment/{deviceId}"),
            APIEndpoint(name="report_production", method="POST", path="/production"),
        ],
    }
    data.update(overrides)
    return APIConnectorConfig(**data)


class Recorder:
    """MockTransport handler that records requests and answers with a fixed response."""

    def __init__(self, status_code: int = 200, body=None, error: Exception = None):
        self.status_code = status_code
        self.body = {"ok": True} if body is None else body
        self.error = error
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if isinstance(self.body, str):
            return httpx.Response(self.status_code, text=self.body)
        return httpx.Response(self.status_code, json=self.body)


class TestAPIConnector:

    @pytest.mark.asyncio
    async def test_get_substitutes_path_and_sends_query(self):
        recorder = Recorder(body={"status": "running"})
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        result = await connector.call("get_equipment", {"deviceId": "PLC-7", "fields": "status"})

        assert result.success is True
        assert result.data == {"status": "running"}
        assert result.status_code == 200
        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/api/equipment/PLC-7"
        assert request.url.params["fields"] == "status"
        await connector.close()

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        recorder = Recorder()
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        await connector.call("report_production", {"workOrder": "WO-1182", "quantity": 40})

        assert json.loads(recorder.requests[0].content) == {"workOrder": "WO-1182", "quantity": 40}
        await connector.close()

    @pytest.mark.asyncio
    async def test_error_status_is_failed_result(self):
        recorder = Recorder(status_code=503, body={"error": "maintenance"})
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        result = await connector.call("report_production", {})

        assert result.success is False
        assert result.status_code == 503
        assert result.data == {"error": "maintenance"}
        assert "503" in result.error
        await connector.close()

    @pytest.mark.asyncio
    async def test_transport_error_is_failed_result(self):
        recorder = Recorder(error=httpx.ConnectError("connection refused"))
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        result = await connector.call("report_production", {})

        assert result.success is False
        assert "ConnectError" in result.error
        await connector.close()

    @pytest.mark.asyncio
    async def test_text_response_kept_as_text(self):
        recorder = Recorder(body="OK")
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        result = await connector.call("report_production", {})

        assert result.data == "OK"
        await connector.close()

    @pytest.mark.asyncio
    async def test_unknown_endpoint_and_missing_path_param(self):
        recorder = Recorder()
        connector = APIConnector(make_config(), transport=httpx.MockTransport(recorder))

        unknown = await connector.call("reboot", {})
        missing = await connector.call("get_equipment", {})

        assert unknown.success is False and "reboot" in unknown.error
        assert missing.success is False and "deviceId" in missing.error
        assert recorder.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "auth_type, credentials, header, expected",
        [
            ("bearer", ConnectorCredentials(token="t0k"), "Authorization", "Bearer t0k"),
            ("apikey", ConnectorCredentials(api_key="k3y"), "X-API-Key", "k3y"),
            ("basic", ConnectorCredentials(username="op", password="pw"), "Authorization", "Basic b3A6cHc="),
        ],
    )
    async def test_auth_headers(self, auth_type, credentials, header, expected):
        recorder = Recorder()
        config = make_config(auth_type=auth_type, credentials=credentials)
        connector = APIConnector(config, transport=httpx.MockTransport(recorder))

        await connector.call("report_production", {})

        assert recorder.requests[0].headers[header] == expected
        await connector.close()


class TestConnectorRegistry:

    def test_lookup(self):
        registry = ConnectorRegistry([APIConnector(make_config())])

        assert registry.list() == ["mes"]
        assert registry.endpoints("mes") == ["get_equipment", "report_production"]
        assert registry.get("erp") is None
        with pytest.raises(ConnectorNotFound):
            registry.require("erp")

    def test_from_file(self, tmp_path):
        path = tmp_path / "connectors.json"
        path.write_text(json.dumps([
            {
                "name": "kingdee",
                "base_url": "https://erp.example.com",
                "auth_type": "bearer",
                "credentials": {"token": "abc"},
                "endpoints": [{"name": "get_voucher", "path": "/vouchers/{id}"}],
            }
        ]))

        registry = ConnectorRegistry.from_file(path)

        assert registry.list() == ["kingdee"]
        assert registry.endpoints("kingdee") == ["get_voucher"]

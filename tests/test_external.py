"""
Tests for the directory and SMS clients against a mocked transport.
"""

import json

import httpx
import pytest

from vems_booking.config import ExternalAPIConfig
from vems_booking.core.exceptions import DirectoryLookupError, DirectoryNotFoundError, NotificationAPIError
from vems_booking.services.external import DirectoryService, NotificationService


def _directory(handler, token=None):
    service = DirectoryService(
        ExternalAPIConfig(directory_base_url="https://directory.test/api", directory_api_token=token)
    )
    service.client.transport = httpx.MockTransport(handler)
    return service


def _sms(handler, backend="http"):
    service = NotificationService(
        ExternalAPIConfig(sms_backend=backend, sms_base_url="https://sms.test/v1", sms_api_token="secret")
    )
    service.client.transport = httpx.MockTransport(handler)
    return service


class TestDirectoryService:

    @pytest.mark.asyncio
    async def test_get_patient(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={"message": "ok", "data": {"id": "p1", "name": "Jane", "phone": "0712345678"}})

        patient = await _directory(handler, token="tok").get_patient("p1")
        assert patient.name == "Jane"
        assert seen["url"] == "https://directory.test/api/patients/p1"
        assert seen["auth"] == "Bearer tok"

    @pytest.mark.asyncio
    async def test_get_contract_service(self):
        def handler(request):
            return httpx.Response(
                200,
                json={"data": {"id": "cs1", "code": "US-01", "name": "Ultrasound", "tariff": "1800.00",
                               "facility_share": "800.00", "vendor_share": "1000.00"}},
            )

        record = await _directory(handler).get_contract_service("cs1")
        assert str(record.tariff) == "1800.00"

    @pytest.mark.asyncio
    async def test_not_found(self):
        service = _directory(lambda request: httpx.Response(404, json={"message": "missing"}))
        with pytest.raises(DirectoryNotFoundError):
            await service.get_facility("f404")

    @pytest.mark.asyncio
    async def test_server_error(self):
        service = _directory(lambda request: httpx.Response(500))
        with pytest.raises(DirectoryLookupError) as exc:
            await service.get_practitioner("pr1")
        assert not isinstance(exc.value, DirectoryNotFoundError)

    @pytest.mark.asyncio
    async def test_malformed_record(self):
        service = _directory(lambda request: httpx.Response(200, json={"data": {"id": "p1"}}))
        with pytest.raises(DirectoryLookupError):
            await service.get_patient("p1")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(DirectoryLookupError):
            await _directory(handler).get_patient("p1")


class TestNotificationService:

    @pytest.mark.asyncio
    async def test_http_backend_posts_normalised_number(self):
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": True})

        await _sms(handler).send("0712 345 678", "Your code is 12345")
        assert seen["url"] == "https://sms.test/v1/messages"
        assert seen["body"] == {"to": "254712345678", "message": "Your code is 12345", "sender_id": "VEMS"}

    @pytest.mark.asyncio
    async def test_gateway_rejection(self):
        service = _sms(lambda request: httpx.Response(200, json={"status": False, "message": "no credit"}))
        with pytest.raises(NotificationAPIError, match="no credit"):
            await service.send("0712345678", "hi")

    @pytest.mark.asyncio
    async def test_gateway_error(self):
        service = _sms(lambda request: httpx.Response(503))
        with pytest.raises(NotificationAPIError):
            await service.send("0712345678", "hi")

    @pytest.mark.asyncio
    async def test_invalid_number(self):
        service = _sms(lambda request: httpx.Response(200, json={"status": True}))
        with pytest.raises(NotificationAPIError):
            await service.send("12", "hi")

    @pytest.mark.asyncio
    async def test_log_backend_makes_no_request(self):
        def handler(request):
            raise AssertionError("log backend must not call the gateway")

        await _sms(handler, backend="log").send("0712345678", "hi")

"""Unit tests for TradingApiClient with a scripted transport."""
import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock, patch

import aiohttp
import pytest

from api.errors import MalformedResponseError, TradingApiError
from api.oauth import StaticTokenProvider
from api.trading_client import TradingApiClient
from api.transport import AiohttpTransport, TransportResponse


GET_USER_OK = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<GetUserResponse xmlns="urn:ebay:apis:eBLBaseComponents">'
    "<Ack>Success</Ack><User><UserID>seller_one</UserID></User>"
    "</GetUserResponse>"
)


@pytest.fixture
def transport():
    transport = Mock()
    transport.send = AsyncMock(return_value=TransportResponse(status=200, text=GET_USER_OK))
    transport.close = AsyncMock()
    return transport


@pytest.fixture
def client(trading_config, marketplace_de, logger, transport):
    return TradingApiClient(
        trading_config,
        marketplace_de,
        StaticTokenProvider("user-token-abc"),
        logger,
        transport=transport
    )


class TestHeaders:
    @pytest.mark.asyncio
    async def test_build_headers(self, client):
        headers = await client.build_headers("GetUser")

        assert headers == {
            "X-EBAY-API-IAF-TOKEN": "user-token-abc",
            "X-EBAY-API-SITEID": "77",
            "X-EBAY-API-COMPATIBILITY-LEVEL": "1157",
            "X-EBAY-API-CALL-NAME": "GetUser",
            "Content-Type": "text/xml",
        }

    @pytest.mark.asyncio
    async def test_token_is_requested_per_call(self, trading_config, marketplace_us, logger, transport):
        provider = Mock()
        provider.get_token = AsyncMock(side_effect=["first", "second"])
        client = TradingApiClient(trading_config, marketplace_us, provider, logger, transport=transport)

        await client.execute("GetUser", {})
        await client.execute("GetUser", {})

        sent = [call.args[2]["X-EBAY-API-IAF-TOKEN"] for call in transport.send.call_args_list]
        assert sent == ["first", "second"]
        assert transport.send.call_args_list[0].args[2]["X-EBAY-API-SITEID"] == "0"


class TestExecute:
    @pytest.mark.asyncio
    async def test_posts_xml_to_trading_endpoint(self, client, transport):
        result = await client.execute("GetUser", {"DetailLevel": "ReturnAll"})

        assert result["User"]["UserID"] == "seller_one"
        url, method, _, body = transport.send.call_args.args
        assert url == "https://api.sandbox.ebay.com/ws/api.dll"
        assert method == "POST"
        assert "<GetUserRequest" in body
        assert "<DetailLevel>ReturnAll</DetailLevel>" in body

    @pytest.mark.asyncio
    async def test_success_is_logged(self, client, logger):
        await client.execute("GetUser", {})

        logger.external_api_called.assert_called_once()
        args = logger.external_api_called.call_args
        assert args.args[:3] == ("trading", "GetUser", 200)
        assert args.kwargs["ack"] == "Success"

    @pytest.mark.asyncio
    async def test_failure_ack_raises(self, client, transport, logger):
        transport.send.return_value = TransportResponse(
            status=200,
            text=(
                "<GetUserResponse><Ack>Failure</Ack><Errors><ErrorCode>931</ErrorCode>"
                "<ShortMessage>Auth token is invalid.</ShortMessage></Errors></GetUserResponse>"
            )
        )

        with pytest.raises(TradingApiError) as exc_info:
            await client.execute("GetUser", {})

        assert exc_info.value.error_codes == ["931"]
        logger.external_api_failed.assert_called_once()
        assert logger.external_api_failed.call_args.kwargs["error_type"] == "TradingApiError"

    @pytest.mark.asyncio
    async def test_non_xml_body_is_malformed(self, client, transport):
        transport.send.return_value = TransportResponse(status=502, text="Bad Gateway")

        with pytest.raises(MalformedResponseError) as exc_info:
            await client.execute("GetUser", {})

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_error_xml_in_non_2xx_reply_is_decoded(self, client, transport):
        transport.send.return_value = TransportResponse(
            status=500,
            text=(
                "<GetUserResponse><Ack>Failure</Ack><Errors><ErrorCode>10007</ErrorCode>"
                "<ShortMessage>Internal error</ShortMessage></Errors></GetUserResponse>"
            )
        )

        with pytest.raises(TradingApiError):
            await client.execute("GetUser", {})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("refused"), asyncio.TimeoutError()])
    async def test_network_errors_propagate_without_retry(self, client, transport, error):
        transport.send.side_effect = error

        with pytest.raises(type(error)):
            await client.execute("GetUser", {})

        assert transport.send.await_count == 1

    @pytest.mark.asyncio
    async def test_close_closes_transport(self, client, transport):
        await client.close()
        transport.close.assert_awaited_once()


def test_transport_response_ok():
    assert TransportResponse(status=204, text="").ok
    assert not TransportResponse(status=503, text="").ok


class TestAiohttpTransport:
    @pytest.mark.asyncio
    async def test_send_reads_status_and_text(self):
        response = Mock(status=500)
        response.text = AsyncMock(return_value="<GetItemResponse/>")
        request_cm = MagicMock()
        request_cm.__aenter__ = AsyncMock(return_value=response)
        request_cm.__aexit__ = AsyncMock(return_value=None)
        session = Mock(closed=False)
        session.request = Mock(return_value=request_cm)
        session.close = AsyncMock()

        with patch("api.transport.aiohttp.ClientSession", return_value=session) as session_class:
            async with AiohttpTransport(timeout_seconds=5) as transport:
                reply = await transport.send("https://api.ebay.com/ws/api.dll", "POST", {"A": "b"}, "<x/>")
                await transport.send("https://api.ebay.com/ws/api.dll", "POST", {"A": "b"}, "<x/>")

        assert reply == TransportResponse(status=500, text="<GetItemResponse/>")
        session.request.assert_called_with(
            "POST", "https://api.ebay.com/ws/api.dll", headers={"A": "b"}, data=b"<x/>"
        )
        session_class.assert_called_once()
        assert session_class.call_args.kwargs["timeout"].total == 5
        session.close.assert_awaited_once()

"""
eBay Trading API client.

Builds the XML envelope and headers for a call, sends it through the
transport, and decodes the reply. One client is bound to one marketplace
and one seller token source.
"""
import time
from typing import Any, Dict, Optional, Protocol

from api.marketplaces import MarketplaceDescriptor
from api.transport import AiohttpTransport, Transport
from api import xml_codec


class TokenProvider(Protocol):
    async def get_token(self) -> str:
        ...


class TradingApiClient:
    """
    Executes Trading API calls for a single marketplace.

    Errors from the transport or codec propagate unchanged; the client
    never retries.
    """

    API_NAME = "trading"

    def __init__(
        self,
        config,
        marketplace: MarketplaceDescriptor,
        token_provider: TokenProvider,
        logger,
        transport: Optional[Transport] = None
    ):
        self.config = config
        self.marketplace = marketplace
        self.token_provider = token_provider
        self.logger = logger
        self.transport = transport or AiohttpTransport(config.timeout)

    async def build_headers(self, call_name: str) -> Dict[str, str]:
        """Build the Trading API headers for a call."""
        token = await self.token_provider.get_token()
        return {
            "X-EBAY-API-IAF-TOKEN": token,
            "X-EBAY-API-SITEID": str(self.marketplace.site_id),
            "X-EBAY-API-COMPATIBILITY-LEVEL": str(self.config.compatibility_level),
            "X-EBAY-API-CALL-NAME": call_name,
            "Content-Type": "text/xml",
        }

    async def execute(self, call_name: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Execute a Trading API call.

        Args:
            call_name: Trading API call name, e.g. "GetSellerList"
            params: Request body tree

        Returns:
            Content of the ``{call_name}Response`` element

        Raises:
            MalformedResponseError: Reply could not be decoded
            TradingApiError: eBay acknowledged Failure or PartialFailure
        """
        headers = await self.build_headers(call_name)
        body = xml_codec.encode(call_name, params)

        self.logger.debug(
            "Trading API request",
            call_name=call_name,
            marketplace=self.marketplace.code,
            site_id=self.marketplace.site_id
        )

        start_time = time.time()
        try:
            response = await self.transport.send(
                self.config.trading_api_url, "POST", headers, body
            )
            # eBay reports most failures as XML in a non-2xx body
            result = xml_codec.decode(response.text, call_name, response.status)
        except Exception as e:
            self.logger.external_api_failed(
                self.API_NAME,
                call_name,
                str(e),
                error_type=type(e).__name__,
                marketplace=self.marketplace.code
            )
            raise

        self.logger.external_api_called(
            self.API_NAME,
            call_name,
            response.status,
            time.time() - start_time,
            ack=result.get("Ack"),
            marketplace=self.marketplace.code
        )
        return result

    async def close(self) -> None:
        """Release transport resources."""
        close = getattr(self.transport, "close", None)
        if close is not None:
            await close()

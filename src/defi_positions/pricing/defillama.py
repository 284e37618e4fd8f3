"""DeFiLlama pricing service for fetching token USD prices."""

import logging
from decimal import Decimal

import httpx

from defi_positions.data import get_llama_chain

logger = logging.getLogger(__name__)


class DeFiLlamaPricing:
    """
    Fetches token prices from DeFiLlama API.

    DeFiLlama provides free price data for thousands of tokens across many
    chains. Native assets use the zero address, which DeFiLlama does not
    index, so they are queried through their ``coingecko:`` identifier.

    Parameters
    ----------
    base_url : str
        DeFiLlama API base URL
    timeout : float
        HTTP timeout in seconds
    transport : httpx.AsyncBaseTransport | None
        Custom transport (tests use ``httpx.MockTransport``)

    """

    NATIVE_COINGECKO_IDS = {
        "ethereum": "ethereum",
        "optimism": "ethereum",
        "arbitrum": "ethereum",
        "base": "ethereum",
        "polygon": "polygon-ecosystem-token",
        "avalanche": "avalanche-2",
        "fantom": "fantom",
        "binance-smart-chain": "binancecoin",
        "gnosis": "xdai",
    }

    ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

    def __init__(
        self,
        base_url: str = "https://coins.llama.fi",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def get_prices(
        self,
        tokens: list[tuple[str, str]],
    ) -> dict[tuple[str, str], Decimal]:
        """
        Fetch USD prices for multiple tokens in one request.

        Parameters
        ----------
        tokens : list[tuple[str, str]]
            List of (network, address) tuples

        Returns
        -------
        dict[tuple[str, str], Decimal]
            Mapping of (network, lower-cased address) to USD price; tokens
            DeFiLlama does not know are omitted

        Examples
        --------
        >>> pricing = DeFiLlamaPricing()
        >>> tokens = [
        ...     ("ethereum", "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"),  # USDC
        ...     ("ethereum", "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"),  # WETH
        ... ]
        >>> prices = await pricing.get_prices(tokens)

        """
        if not tokens:
            return {}

        coin_ids = {self._format_coin_id(network, address): (network, address.lower()) for network, address in tokens}
        prices_data = await self._fetch_batch_prices(list(coin_ids))

        result = {}
        for coin_id, key in coin_ids.items():
            price_info = prices_data.get(coin_id)
            if price_info and "price" in price_info:
                result[key] = Decimal(str(price_info["price"]))
        return result

    async def _fetch_batch_prices(self, coin_ids: list[str]) -> dict:
        """
        Fetch prices from DeFiLlama API.

        Parameters
        ----------
        coin_ids : list[str]
            Coin identifiers in "chain:address" format

        Returns
        -------
        dict
            Raw 'coins' mapping of the response, empty when the request failed

        """
        url = f"{self.base_url}/prices/current/{','.join(coin_ids)}"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("DeFiLlama price request failed: %s", e)
            return {}
        return response.json().get("coins", {})

    def _format_coin_id(self, network: str, address: str) -> str:
        """
        Format coin identifier for DeFiLlama API.

        Parameters
        ----------
        network : str
            Network name
        address : str
            Token address

        Returns
        -------
        str
            Formatted coin ID (e.g., "ethereum:0x...")

        """
        network = str(network)
        if address.lower() == self.ZERO_ADDRESS and network in self.NATIVE_COINGECKO_IDS:
            return f"coingecko:{self.NATIVE_COINGECKO_IDS[network]}"
        return f"{get_llama_chain(network)}:{address.lower()}"

    async def aclose(self) -> None:
        """Close HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> "DeFiLlamaPricing":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.aclose()

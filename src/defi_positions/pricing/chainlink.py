"""Chainlink pricing service reading on-chain USD feeds through multicall."""

import asyncio
import logging
from decimal import Decimal
from typing import Any

from defi_positions.contracts.abis import CHAINLINK_AGGREGATOR
from defi_positions.contracts.factory import ContractFactory
from defi_positions.core.errors import DefiPositionsError
from defi_positions.data import CHAINLINK_PRICE_FEEDS
from defi_positions.positions.numbers import from_raw
from defi_positions.rpc.multicall import MulticallBatcher

logger = logging.getLogger(__name__)

# Chainlink USD feeds answer with 8 decimals
FEED_DECIMALS = 8


class ChainlinkPricing:
    """
    Fetches token prices from Chainlink price feeds.

    All feeds requested in one lookup are read in a single multicall batch
    per network. Tokens without a feed, or whose feed read fails, are passed
    to the fallback service.

    Parameters
    ----------
    contract_factory : ContractFactory
        Factory used to build feed contracts and the multicall batcher
    fallback_pricing : Any | None
        Fallback pricing service (e.g., DeFiLlama) for tokens without Chainlink feeds
    feeds : dict[str, dict[str, str]] | None
        Feed addresses per network and token. Uses the packaged table when None.

    """

    def __init__(
        self,
        contract_factory: ContractFactory,
        fallback_pricing: Any | None = None,
        feeds: dict[str, dict[str, str]] | None = None,
    ) -> None:
        self.contract_factory = contract_factory
        self.fallback_pricing = fallback_pricing
        self.feeds = CHAINLINK_PRICE_FEEDS if feeds is None else feeds

    async def get_prices(
        self,
        tokens: list[tuple[str, str]],
    ) -> dict[tuple[str, str], Decimal]:
        """
        Fetch USD prices for multiple tokens.

        Uses Chainlink feeds when available, falls back otherwise.

        Parameters
        ----------
        tokens : list[tuple[str, str]]
            List of (network, address) tuples

        Returns
        -------
        dict[tuple[str, str], Decimal]
            Mapping of (network, lower-cased address) to USD price

        """
        if not tokens:
            return {}

        chainlink_tokens = []
        fallback_tokens = []
        for network, address in tokens:
            feed_address = self._get_feed_address(network, address)
            if feed_address:
                chainlink_tokens.append((str(network), address.lower(), feed_address))
            else:
                fallback_tokens.append((str(network), address.lower()))

        prices: dict[tuple[str, str], Decimal] = {}
        if chainlink_tokens:
            prices.update(await self._fetch_chainlink_prices(chainlink_tokens))

        # Feeds that failed or answered zero are priced by the fallback
        for network, address, _ in chainlink_tokens:
            if (network, address) not in prices:
                fallback_tokens.append((network, address))

        if fallback_tokens and self.fallback_pricing:
            prices.update(await self.fallback_pricing.get_prices(fallback_tokens))

        return prices

    async def _fetch_chainlink_prices(
        self,
        tokens: list[tuple[str, str, str]],
    ) -> dict[tuple[str, str], Decimal]:
        """
        Read ``latestAnswer()`` of every feed in one batch per network.

        Parameters
        ----------
        tokens : list[tuple[str, str, str]]
            List of (network, token_address, feed_address) tuples

        Returns
        -------
        dict[tuple[str, str], Decimal]
            Prices of the feeds that answered with a positive value

        """
        multicall = MulticallBatcher(self.contract_factory)
        requests = []
        for network, token_address, feed_address in tokens:
            feed = self.contract_factory.build(network, feed_address, CHAINLINK_AGGREGATOR)
            try:
                requests.append(((network, token_address), multicall.wrap(feed).latestAnswer()))
            except DefiPositionsError as e:
                logger.debug("Skipping Chainlink feed on %s: %s", network, e)

        answers = await asyncio.gather(*(future for _, future in requests), return_exceptions=True)

        prices = {}
        for (key, _), answer in zip(requests, answers, strict=True):
            if isinstance(answer, DefiPositionsError):
                logger.debug("Chainlink feed read failed for %s: %s", key, answer)
                continue
            if isinstance(answer, BaseException):
                raise answer
            if answer > 0:
                prices[key] = from_raw(answer, FEED_DECIMALS)
        return prices

    def _get_feed_address(self, network: str, token_address: str) -> str | None:
        """
        Get Chainlink price feed address for a token.

        Parameters
        ----------
        network : str
            Network name
        token_address : str
            Token contract address

        Returns
        -------
        str | None
            Price feed address, or None if not available

        """
        network_feeds = self.feeds.get(str(network))
        if not network_feeds:
            return None
        return network_feeds.get(token_address.lower())

    async def aclose(self) -> None:
        """Close pricing service (delegate to fallback if available)."""
        if self.fallback_pricing and hasattr(self.fallback_pricing, "aclose"):
            await self.fallback_pricing.aclose()

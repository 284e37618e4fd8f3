"""Token service: USD prices of base tokens and ERC20 metadata."""

import asyncio
import logging
from decimal import Decimal
from typing import Any, Protocol

from pydantic import BaseModel

from defi_positions.contracts.factory import ContractFactory
from defi_positions.core.errors import PriceUnavailableError
from defi_positions.core.models import BaseToken
from defi_positions.data import get_base_tokens
from defi_positions.positions.numbers import from_raw
from defi_positions.rpc.cache import TTLCache
from defi_positions.rpc.multicall import MulticallBatcher

logger = logging.getLogger(__name__)


class PricingSource(Protocol):
    """Anything able to price a list of (network, address) tokens."""

    async def get_prices(self, tokens: list[tuple[str, str]]) -> dict[tuple[str, str], Decimal]:
        ...


class TokenMetadata(BaseModel):
    """
    ERC20 metadata read on-chain.

    Attributes
    ----------
    address : str
        Lower-cased token address
    symbol : str
        Token symbol
    decimals : int
        Number of decimal places
    supply : Decimal
        Total supply in token units

    """

    network: str
    address: str
    symbol: str
    decimals: int
    supply: Decimal


class TokenService:
    """
    Prices base tokens and reads token metadata.

    Prices are looked up through the pricing source and cached per
    (network, address) for ``price_ttl`` seconds.

    Parameters
    ----------
    pricing : PricingSource
        Price source, typically Chainlink with a DeFiLlama fallback
    contract_factory : ContractFactory
        Factory used for metadata reads
    price_ttl : int
        Cache lifetime of prices in seconds
    base_tokens : dict[str, list[dict[str, Any]]] | None
        Base token table per network. Uses networks.yaml when None.

    """

    def __init__(
        self,
        pricing: PricingSource,
        contract_factory: ContractFactory,
        price_ttl: int = 300,
        base_tokens: dict[str, list[dict[str, Any]]] | None = None,
    ) -> None:
        self.pricing = pricing
        self.contract_factory = contract_factory
        self.cache = TTLCache(default_ttl=price_ttl)
        self._base_tokens = base_tokens

    def _base_token_entries(self, network: str) -> list[dict[str, Any]]:
        if self._base_tokens is not None:
            return list(self._base_tokens.get(str(network), []))
        return get_base_tokens(network)

    async def _get_prices(self, network: str, addresses: list[str]) -> dict[str, Decimal]:
        network = str(network)
        prices: dict[str, Decimal] = {}
        missing = []
        for address in addresses:
            cached = self.cache.get((network, address))
            if cached is None:
                missing.append(address)
            else:
                prices[address] = cached

        if missing:
            expired = self.cache.cleanup_expired()
            if expired:
                logger.debug("Dropped %d expired prices", expired)
            fetched = await self.pricing.get_prices([(network, address) for address in missing])
            for (_, address), price in fetched.items():
                if price > 0:
                    self.cache.set((network, address), price)
                    prices[address] = price
        return prices

    async def get_token_price(self, network: str, address: str) -> Decimal:
        """
        Get the USD price of a token.

        Parameters
        ----------
        network : str
            Network name
        address : str
            Token address

        Returns
        -------
        Decimal
            USD price

        Raises
        ------
        PriceUnavailableError
            If no source returned a positive price

        """
        address = address.lower()
        prices = await self._get_prices(network, [address])
        if address not in prices:
            raise PriceUnavailableError(str(network), address)
        return prices[address]

    async def get_token_prices(self, network: str) -> dict[str, Decimal]:
        """
        Get USD prices of every configured base token on a network.

        Parameters
        ----------
        network : str
            Network name

        Returns
        -------
        dict[str, Decimal]
            Mapping of lower-cased address to price; unpriced tokens omitted

        """
        addresses = [entry["address"].lower() for entry in self._base_token_entries(network)]
        return await self._get_prices(network, addresses)

    async def get_base_tokens(self, network: str) -> list[BaseToken]:
        """
        Get priced base tokens of a network.

        Parameters
        ----------
        network : str
            Network name

        Returns
        -------
        list[BaseToken]
            Base tokens with a known price

        """
        prices = await self.get_token_prices(network)
        tokens = []
        for entry in self._base_token_entries(network):
            price = prices.get(entry["address"].lower())
            if price is None:
                logger.debug("No price for base token %s on %s", entry["symbol"], network)
                continue
            tokens.append(
                BaseToken(
                    network=network,
                    address=entry["address"],
                    symbol=entry["symbol"],
                    decimals=entry["decimals"],
                    price=price,
                )
            )
        return tokens

    async def get_token_metadata(self, multicall: MulticallBatcher, network: str, address: str) -> TokenMetadata:
        """
        Read symbol, decimals and total supply of an ERC20 token in one batch.

        Parameters
        ----------
        multicall : MulticallBatcher
            Batcher of the calling pipeline
        network : str
            Network name
        address : str
            Token address

        Returns
        -------
        TokenMetadata
            Token metadata

        Raises
        ------
        DecodeError
            If one of the reads failed

        """
        token = multicall.wrap(self.contract_factory.erc20(network, address))
        symbol, decimals, supply_raw = await asyncio.gather(token.symbol(), token.decimals(), token.totalSupply())
        return TokenMetadata(
            network=str(network),
            address=address.lower(),
            symbol=symbol,
            decimals=decimals,
            supply=from_raw(supply_raw, decimals),
        )

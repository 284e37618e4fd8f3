"""Capability facade handed to protocol adapters."""

import logging
from decimal import Decimal
from typing import Protocol

import httpx

from defi_positions.config import Settings
from defi_positions.contracts.factory import ContractFactory
from defi_positions.core.models import AppTokenPosition, BaseToken, ContractPosition
from defi_positions.positions.service import AppGroupsDefinition, PositionService
from defi_positions.pricing.chainlink import ChainlinkPricing
from defi_positions.pricing.defillama import DeFiLlamaPricing
from defi_positions.pricing.token_service import TokenService
from defi_positions.rpc.multicall import MulticallBatcher
from defi_positions.rpc.provider import NetworkProviderResolver, ProviderHandle
from defi_positions.rpc.retry import RetryConfig

logger = logging.getLogger(__name__)


class IAppToolkit(Protocol):
    """Public surface available to position fetchers, balance fetchers and presenters."""

    contract_factory: ContractFactory
    position_service: PositionService
    token_service: TokenService

    def get_network_provider(self, network: str) -> ProviderHandle:
        ...

    def get_multicall(self, network: str | None = None) -> MulticallBatcher:
        ...

    async def get_base_tokens(self, network: str) -> list[BaseToken]:
        ...

    async def get_base_token_prices(self, network: str) -> dict[str, Decimal]:
        ...

    async def get_base_token_price(self, network: str, address: str) -> Decimal:
        ...

    async def get_app_token_positions(self, *definitions: AppGroupsDefinition) -> list[AppTokenPosition]:
        ...

    async def get_app_contract_positions(self, *definitions: AppGroupsDefinition) -> list[ContractPosition]:
        ...


class AppToolkit:
    """
    Default toolkit wiring the provider resolver, contract factory, pricing and position service.

    Parameters
    ----------
    provider_resolver : NetworkProviderResolver
        Provider per network
    contract_factory : ContractFactory
        Contract handle builder
    token_service : TokenService
        Base token prices and token metadata
    position_service : PositionService
        Registered fetcher runner; bound to this toolkit on construction
    max_batch_size : int
        Size limit of batches created by :meth:`get_multicall`

    """

    def __init__(
        self,
        provider_resolver: NetworkProviderResolver,
        contract_factory: ContractFactory,
        token_service: TokenService,
        position_service: PositionService,
        max_batch_size: int = 500,
    ) -> None:
        self.provider_resolver = provider_resolver
        self.contract_factory = contract_factory
        self.token_service = token_service
        self.position_service = position_service.bind(self)
        self.max_batch_size = max_batch_size
        self._closeables: list = []

    def get_network_provider(self, network: str) -> ProviderHandle:
        return self.provider_resolver.get_provider(network)

    def get_multicall(self, network: str | None = None) -> MulticallBatcher:
        """
        Create a new batch collector.

        Every call returns a fresh collector owned by the caller; nothing is
        shared between pipeline invocations.

        Parameters
        ----------
        network : str | None
            Network the caller reads; validated eagerly when given

        Returns
        -------
        MulticallBatcher
            New batcher

        Raises
        ------
        UnsupportedNetworkError
            If the network has no aggregator or no provider

        """
        if network is not None:
            self.contract_factory.aggregator_address(network)
            self.get_network_provider(network)
        return MulticallBatcher(self.contract_factory, self.max_batch_size)

    async def get_base_tokens(self, network: str) -> list[BaseToken]:
        return await self.token_service.get_base_tokens(network)

    async def get_base_token_prices(self, network: str) -> dict[str, Decimal]:
        return await self.token_service.get_token_prices(network)

    async def get_base_token_price(self, network: str, address: str) -> Decimal:
        return await self.token_service.get_token_price(network, address)

    async def get_app_token_positions(self, *definitions: AppGroupsDefinition) -> list[AppTokenPosition]:
        return await self.position_service.get_app_token_positions(*definitions)

    async def get_app_contract_positions(self, *definitions: AppGroupsDefinition) -> list[ContractPosition]:
        return await self.position_service.get_app_contract_positions(*definitions)

    def on_close(self, resource: object) -> None:
        """Register a resource whose ``aclose`` runs in :meth:`aclose`."""
        self._closeables.append(resource)

    async def aclose(self) -> None:
        """Close HTTP clients held by the toolkit."""
        for resource in self._closeables:
            await resource.aclose()
        self._closeables.clear()
        await self.provider_resolver.aclose()

    async def __aenter__(self) -> "AppToolkit":
        return self

    async def __aexit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        await self.aclose()


def build_toolkit(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppToolkit:
    """
    Wire a toolkit from settings.

    Parameters
    ----------
    settings : Settings | None
        Runtime settings. Loaded from networks.yaml when None.
    transport : httpx.AsyncBaseTransport | None
        Transport shared by every HTTP client (tests)

    Returns
    -------
    AppToolkit
        Toolkit with Chainlink pricing falling back to DeFiLlama

    """
    settings = settings or Settings.load()
    resolver = NetworkProviderResolver(timeout=settings.timeout, transport=transport)
    factory = ContractFactory(resolver.get_provider)

    llama = DeFiLlamaPricing(settings.defillama_url, timeout=settings.timeout, transport=transport)
    pricing = ChainlinkPricing(factory, fallback_pricing=llama)
    token_service = TokenService(pricing, factory, price_ttl=settings.price_ttl)
    position_service = PositionService(RetryConfig.from_settings(settings.retry))

    toolkit = AppToolkit(resolver, factory, token_service, position_service, settings.max_batch_size)
    toolkit.on_close(pricing)
    logger.debug("Toolkit ready for networks: %s", ", ".join(resolver.networks))
    return toolkit

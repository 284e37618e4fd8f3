"""JSON-RPC provider handles and the per-network provider resolver."""

import itertools
import logging
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

import httpx

from defi_positions.core.errors import RPCError, UnsupportedNetworkError
from defi_positions.data import get_all_supported_networks, get_rpc_endpoints

logger = logging.getLogger(__name__)


class ProviderHandle(Protocol):
    """Read-only connection to one network."""

    network: str

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        """Execute a read-only call and return the raw return data."""
        ...


class JsonRpcProvider:
    """
    JSON-RPC provider for one network over a shared ``httpx.AsyncClient``.

    The HTTP client is created on first request and reused for the lifetime
    of the provider. When a transport error occurs the provider moves on to
    the next configured endpoint for subsequent requests; the failed request
    itself is not retried here.

    Parameters
    ----------
    network : str
        Network name (e.g., 'ethereum', 'base')
    endpoints : Sequence[str]
        RPC endpoint URLs, first one used initially
    timeout : float
        Request timeout in seconds
    transport : httpx.AsyncBaseTransport | None
        Custom transport (tests use ``httpx.MockTransport``)

    """

    def __init__(
        self,
        network: str,
        endpoints: Sequence[str],
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not endpoints:
            raise UnsupportedNetworkError(network)
        self.network = network
        self.endpoints = list(endpoints)
        self.timeout = timeout
        self._transport = transport
        self._endpoint_index = 0
        self._client: httpx.AsyncClient | None = None
        self._request_ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        """Endpoint currently in use."""
        return self.endpoints[self._endpoint_index]

    def rotate_endpoint(self, failed: str | None = None) -> None:
        """
        Switch to the next configured endpoint.

        Parameters
        ----------
        failed : str | None
            Endpoint the failed request used. Nothing changes when another
            request already moved past it.

        """
        if failed is not None and failed != self.endpoint:
            return
        self._endpoint_index = (self._endpoint_index + 1) % len(self.endpoints)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            logger.debug("Opening RPC connection for %s", self.network)
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def make_request(self, method: str, params: list[Any]) -> Any:
        """
        Make a JSON-RPC request.

        Parameters
        ----------
        method : str
            RPC method name (e.g., 'eth_call', 'eth_chainId')
        params : list[Any]
            Method parameters

        Returns
        -------
        Any
            The 'result' member of the response

        Raises
        ------
        RPCError
            If the node answered with an error payload
        httpx.HTTPError
            If the request failed at the transport or HTTP level

        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        client = self._get_client()
        endpoint = self.endpoint
        try:
            response = await client.post(endpoint, json=payload)
            response.raise_for_status()
        except httpx.HTTPError:
            if len(self.endpoints) > 1:
                logger.debug("RPC endpoint %s failed for %s, rotating", endpoint, self.network)
                self.rotate_endpoint(endpoint)
            raise

        body = response.json()
        if body.get("error"):
            error = body["error"]
            raise RPCError(error.get("message", str(error)), error.get("code"))
        if "result" not in body:
            raise RPCError(f"response without result for {method}")
        return body["result"]

    async def eth_call(self, to: str, data: bytes, block: str = "latest") -> bytes:
        """
        Execute a read-only contract call.

        Parameters
        ----------
        to : str
            Target contract address
        data : bytes
            ABI encoded call data
        block : str
            Block tag or hex block number

        Returns
        -------
        bytes
            Raw return data

        """
        result = await self.make_request("eth_call", [{"to": to, "data": "0x" + data.hex()}, block])
        return bytes.fromhex(result[2:] if result.startswith("0x") else result)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class NetworkProviderResolver:
    """
    Resolves a network to its provider handle, creating each handle once.

    Parameters
    ----------
    endpoints : Mapping[str, Sequence[str]] | None
        Explicit network to endpoint mapping. Uses networks.yaml (with
        environment overrides) when None.
    timeout : float
        Request timeout applied to created providers
    transport : httpx.AsyncBaseTransport | None
        Transport shared by created providers (tests)

    """

    def __init__(
        self,
        endpoints: Mapping[str, Sequence[str]] | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if endpoints is None:
            endpoints = {network: get_rpc_endpoints(network) for network in get_all_supported_networks()}
        self._endpoints = {str(network): list(urls) for network, urls in endpoints.items()}
        self.timeout = timeout
        self._transport = transport
        self._providers: dict[str, ProviderHandle] = {}

    def get_provider(self, network: str) -> ProviderHandle:
        """
        Get the provider handle for a network.

        Parameters
        ----------
        network : str
            Network name

        Returns
        -------
        ProviderHandle
            Same handle for the same network on every call

        Raises
        ------
        UnsupportedNetworkError
            If no endpoint is configured for the network

        """
        key = str(network)
        provider = self._providers.get(key)
        if provider is not None:
            return provider

        urls = self._endpoints.get(key)
        if not urls:
            raise UnsupportedNetworkError(key)

        provider = JsonRpcProvider(key, urls, timeout=self.timeout, transport=self._transport)
        self._providers[key] = provider
        return provider

    def register(self, network: str, provider: ProviderHandle) -> None:
        """Install a provider handle for a network (replaces the endpoint lookup)."""
        self._providers[str(network)] = provider

    @property
    def networks(self) -> list[str]:
        """Networks with a configured endpoint or registered provider."""
        configured = [network for network, urls in self._endpoints.items() if urls]
        return sorted(set(configured) | set(self._providers))

    async def aclose(self) -> None:
        """Close every provider created by this resolver."""
        for provider in self._providers.values():
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()
        self._providers.clear()

"""Contract factory building callable contract handles bound to network providers."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from eth_utils import is_address, to_checksum_address

from defi_positions.contracts.abis import CORE_INTERFACES, ERC20, MULTICALL3
from defi_positions.contracts.interface import ContractInterface, FunctionSpec
from defi_positions.core.errors import DecodeError, InvalidAddressError, UnsupportedNetworkError
from defi_positions.data import get_all_supported_networks, get_multicall_address
from defi_positions.rpc.provider import ProviderHandle


@dataclass(frozen=True)
class ContractDescriptor:
    """
    Where a contract lives and what it looks like.

    Attributes
    ----------
    network : str
        Network name
    address : str
        Checksummed contract address
    interface : ContractInterface
        Read functions of the contract

    """

    network: str
    address: str
    interface: ContractInterface


class BoundFunction:
    """Contract function bound to an address; awaiting a call performs one ``eth_call``."""

    def __init__(self, handle: "ContractHandle", spec: FunctionSpec) -> None:
        self.handle = handle
        self.spec = spec

    def encode(self, *args: Any) -> bytes:
        return self.spec.encode(*args)

    async def __call__(self, *args: Any) -> Any:
        data = self.spec.encode(*args)
        provider = self.handle.provider
        raw = await provider.eth_call(self.handle.address, data)
        try:
            return self.spec.decode(raw)
        except DecodeError as e:
            raise DecodeError(self.spec.signature, e.reason, target=self.handle.address) from e


class ContractHandle:
    """
    Callable binding of a contract descriptor to a provider.

    Function attributes mirror the interface, e.g. ``await token.totalSupply()``.
    The provider is resolved on first call, so building a handle never does I/O.

    Parameters
    ----------
    descriptor : ContractDescriptor
        Contract location and interface
    provider_getter : Callable[[str], ProviderHandle]
        Resolves the network provider

    """

    def __init__(self, descriptor: ContractDescriptor, provider_getter: Callable[[str], ProviderHandle]) -> None:
        self.descriptor = descriptor
        self._provider_getter = provider_getter

    @property
    def network(self) -> str:
        return self.descriptor.network

    @property
    def address(self) -> str:
        return self.descriptor.address

    @property
    def interface(self) -> ContractInterface:
        return self.descriptor.interface

    @property
    def provider(self) -> ProviderHandle:
        return self._provider_getter(self.network)

    def __getattr__(self, name: str) -> BoundFunction:
        if name.startswith("_"):
            raise AttributeError(name)
        return BoundFunction(self, self.descriptor.interface.get_function(name))

    def __repr__(self) -> str:
        return f"ContractHandle({self.interface.name}@{self.address} on {self.network})"


def normalize_address(address: str) -> str:
    """
    Validate an address and return its checksummed form.

    Parameters
    ----------
    address : str
        Hex address (any case, checksum validated when mixed case)

    Returns
    -------
    str
        Checksummed address

    Raises
    ------
    InvalidAddressError
        If the value is not a 20-byte hex address

    """
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddressError(address)
    return to_checksum_address(address)


class ContractFactory:
    """
    Builds contract handles; construction is pure and never touches the network.

    Parameters
    ----------
    provider_getter : Callable[[str], ProviderHandle]
        Usually ``NetworkProviderResolver.get_provider``
    aggregator_addresses : Mapping[str, str] | None
        Multicall aggregator address per network. Uses networks.yaml when None.
    interfaces : Mapping[str, ContractInterface] | None
        Additional named interfaces available to ``build``

    """

    def __init__(
        self,
        provider_getter: Callable[[str], ProviderHandle],
        aggregator_addresses: Mapping[str, str] | None = None,
        interfaces: Mapping[str, ContractInterface] | None = None,
    ) -> None:
        self._provider_getter = provider_getter
        if aggregator_addresses is None:
            aggregator_addresses = {
                network: address
                for network in get_all_supported_networks()
                if (address := get_multicall_address(network))
            }
        self._aggregators = {str(network): address for network, address in aggregator_addresses.items()}
        self.interfaces: dict[str, ContractInterface] = dict(CORE_INTERFACES)
        if interfaces:
            self.interfaces.update(interfaces)

    def register_interface(self, interface: ContractInterface) -> None:
        """Make an interface available by name."""
        self.interfaces[interface.name] = interface

    def build(self, network: str, address: str, interface: str | ContractInterface) -> ContractHandle:
        """
        Build a contract handle.

        Parameters
        ----------
        network : str
            Network name
        address : str
            Contract address
        interface : str | ContractInterface
            Interface or registered interface name

        Returns
        -------
        ContractHandle
            New handle bound to the network's provider

        Raises
        ------
        InvalidAddressError
            If the address is malformed
        KeyError
            If a named interface is not registered

        """
        if isinstance(interface, str):
            interface = self.interfaces[interface]
        descriptor = ContractDescriptor(
            network=str(network),
            address=normalize_address(address),
            interface=interface,
        )
        return ContractHandle(descriptor, self._provider_getter)

    def aggregator_address(self, network: str) -> str:
        """
        Multicall aggregator address for a network.

        Raises
        ------
        UnsupportedNetworkError
            If no aggregator is deployed on the network

        """
        address = self._aggregators.get(str(network))
        if not address:
            raise UnsupportedNetworkError(str(network), "no multicall aggregator deployed")
        return address

    def erc20(self, network: str, address: str) -> ContractHandle:
        return self.build(network, address, ERC20)

    def multicall(self, network: str) -> ContractHandle:
        """Handle on the network's aggregator contract."""
        return self.build(network, self.aggregator_address(network), MULTICALL3)

    def get_provider(self, network: str) -> ProviderHandle:
        return self._provider_getter(str(network))

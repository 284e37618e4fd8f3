"""Network configuration loader."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from defi_positions.core.errors import UnsupportedNetworkError
from defi_positions.data.addresses import PROTOCOL_ADDRESSES

RPC_ENV_PREFIX = "DEFI_POSITIONS_RPC_"


@lru_cache(maxsize=1)
def load_networks() -> dict[str, Any]:
    """
    Load packaged network configuration from networks.yaml.

    Returns
    -------
    dict[str, Any]
        Configuration with 'settings' and 'networks' sections

    """
    path = Path(__file__).parent / "networks.yaml"
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def get_network_config(network: str) -> dict[str, Any]:
    """
    Get configuration for a specific network.

    Parameters
    ----------
    network : str
        Network name (e.g., 'ethereum', 'base')

    Returns
    -------
    dict[str, Any]
        Network configuration including RPC endpoints and base tokens

    Raises
    ------
    UnsupportedNetworkError
        If the network is not configured

    """
    networks = load_networks()["networks"]
    try:
        return networks[str(network)]
    except KeyError:
        raise UnsupportedNetworkError(str(network), "not configured") from None


def rpc_env_var(network: str) -> str:
    """
    Name of the environment variable overriding a network's endpoints.

    Parameters
    ----------
    network : str
        Network name

    Returns
    -------
    str
        Environment variable name

    """
    return RPC_ENV_PREFIX + str(network).upper().replace("-", "_")


def get_rpc_endpoints(network: str) -> list[str]:
    """
    Get RPC endpoints for a network, honouring environment overrides.

    Parameters
    ----------
    network : str
        Network name

    Returns
    -------
    list[str]
        RPC endpoint URLs (may be empty)

    """
    override = os.environ.get(rpc_env_var(network))
    if override:
        return [url.strip() for url in override.split(",") if url.strip()]
    try:
        return list(get_network_config(network).get("rpc_endpoints", []))
    except UnsupportedNetworkError:
        return []


def get_multicall_address(network: str) -> str | None:
    """Aggregator contract address for a network, or None when not deployed."""
    try:
        return get_network_config(network).get("multicall")
    except UnsupportedNetworkError:
        return None


def get_base_tokens(network: str) -> list[dict[str, Any]]:
    """
    Get base tokens priced directly on a network.

    Parameters
    ----------
    network : str
        Network name

    Returns
    -------
    list[dict[str, Any]]
        Token entries with 'address', 'symbol' and 'decimals'

    """
    try:
        return list(get_network_config(network).get("base_tokens", []))
    except UnsupportedNetworkError:
        return []


def get_protocol_addresses(network: str, protocol: str) -> dict[str, str]:
    """
    Get all contract addresses for a protocol on a network.

    Parameters
    ----------
    network : str
        Network name
    protocol : str
        Protocol name (e.g., 'synthetix', 'lido')

    Returns
    -------
    dict[str, str]
        Mapping of contract names to addresses, empty when not deployed

    """
    return dict(PROTOCOL_ADDRESSES.get(protocol, {}).get(str(network), {}))


def get_all_supported_networks() -> list[str]:
    """
    Get list of all configured network names.

    Returns
    -------
    list[str]
        List of network names

    """
    return list(load_networks()["networks"].keys())


def get_chain_id(network: str) -> int:
    """
    Get numeric chain ID.

    Parameters
    ----------
    network : str
        Network name

    Returns
    -------
    int
        Chain ID

    """
    return get_network_config(network)["chain_id"]


def get_llama_chain(network: str) -> str:
    """Chain prefix used by DeFiLlama coin identifiers."""
    return get_network_config(network).get("llama_chain", str(network))


def get_settings_section() -> dict[str, Any]:
    """Raw 'settings' section of the packaged configuration."""
    return dict(load_networks().get("settings", {}))

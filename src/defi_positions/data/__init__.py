"""Network configuration and address constants."""

from defi_positions.data.addresses import (
    CHAINLINK_PRICE_FEEDS,
    MULTICALL3_ADDRESS,
    PROTOCOL_ADDRESSES,
    ZERO_ADDRESS,
)
from defi_positions.data.loader import (
    get_all_supported_networks,
    get_base_tokens,
    get_chain_id,
    get_llama_chain,
    get_multicall_address,
    get_network_config,
    get_protocol_addresses,
    get_rpc_endpoints,
    get_settings_section,
    load_networks,
    rpc_env_var,
)

__all__ = [
    # Centralized address constants
    "CHAINLINK_PRICE_FEEDS",
    "MULTICALL3_ADDRESS",
    "PROTOCOL_ADDRESSES",
    "ZERO_ADDRESS",
    # Loader functions
    "get_all_supported_networks",
    "get_base_tokens",
    "get_chain_id",
    "get_llama_chain",
    "get_multicall_address",
    "get_network_config",
    "get_protocol_addresses",
    "get_rpc_endpoints",
    "get_settings_section",
    "load_networks",
    "rpc_env_var",
]

"""ABIs of the contracts used by the core: ERC20, Multicall3 and Chainlink feeds."""

from typing import Any

from defi_positions.contracts.interface import ContractInterface


def view_function(name: str, inputs: list[str] | None = None, outputs: list[str] | None = None) -> dict[str, Any]:
    """
    Build a JSON ABI entry for a view function with unnamed scalar parameters.

    Parameters
    ----------
    name : str
        Function name
    inputs : list[str] | None
        Input types
    outputs : list[str] | None
        Output types

    Returns
    -------
    dict[str, Any]
        ABI entry

    """
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": "", "type": t} for t in inputs or []],
        "outputs": [{"name": "", "type": t} for t in outputs or []],
    }


ERC20_ABI = [
    view_function("name", outputs=["string"]),
    view_function("symbol", outputs=["string"]),
    view_function("decimals", outputs=["uint8"]),
    view_function("totalSupply", outputs=["uint256"]),
    view_function("balanceOf", ["address"], ["uint256"]),
]

MULTICALL3_ABI = [
    {
        "type": "function",
        "name": "aggregate3",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "calls",
                "type": "tuple[]",
                "components": [
                    {"name": "target", "type": "address"},
                    {"name": "allowFailure", "type": "bool"},
                    {"name": "callData", "type": "bytes"},
                ],
            }
        ],
        "outputs": [
            {
                "name": "returnData",
                "type": "tuple[]",
                "components": [
                    {"name": "success", "type": "bool"},
                    {"name": "returnData", "type": "bytes"},
                ],
            }
        ],
    },
    view_function("getEthBalance", ["address"], ["uint256"]),
    view_function("getBlockNumber", outputs=["uint256"]),
]

CHAINLINK_AGGREGATOR_ABI = [
    view_function("latestAnswer", outputs=["int256"]),
    view_function("decimals", outputs=["uint8"]),
]

ERC20 = ContractInterface("erc20", ERC20_ABI)
MULTICALL3 = ContractInterface("multicall3", MULTICALL3_ABI)
CHAINLINK_AGGREGATOR = ContractInterface("chainlink-aggregator", CHAINLINK_AGGREGATOR_ABI)

CORE_INTERFACES = {interface.name: interface for interface in (ERC20, MULTICALL3, CHAINLINK_AGGREGATOR)}

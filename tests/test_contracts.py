"""Tests for contract interfaces and the contract factory."""

import pytest
from eth_abi import encode

from defi_positions.contracts import ERC20, MULTICALL3, ContractInterface, canonical_type, normalize_address
from defi_positions.core.errors import DecodeError, InvalidAddressError, RPCError, UnsupportedNetworkError
from defi_positions.data import MULTICALL3_ADDRESS

TOKEN = "0x1111111111111111111111111111111111111111"


def test_canonical_type_expands_tuples():
    param = {
        "type": "tuple[]",
        "components": [
            {"name": "target", "type": "address"},
            {"name": "allowFailure", "type": "bool"},
            {"name": "callData", "type": "bytes"},
        ],
    }
    assert canonical_type(param) == "(address,bool,bytes)[]"
    assert canonical_type({"type": "uint256"}) == "uint256"


def test_function_signature_and_selector():
    """Selectors are the first four bytes of the keccak of the signature."""
    balance_of = ERC20.get_function("balanceOf")
    assert balance_of.signature == "balanceOf(address)"
    assert balance_of.selector.hex() == "70a08231"
    assert ERC20.get_function("totalSupply").selector.hex() == "18160ddd"
    assert MULTICALL3.get_function("aggregate3").signature == "aggregate3((address,bool,bytes)[])"
    assert MULTICALL3.get_function("aggregate3").selector.hex() == "82ad56cb"


def test_encode_appends_arguments():
    call = ERC20.get_function("balanceOf").encode(TOKEN)
    assert call[:4].hex() == "70a08231"
    assert call[4:] == encode(["address"], [TOKEN])


def test_encode_checks_argument_count():
    with pytest.raises(TypeError, match="takes 1 arguments"):
        ERC20.get_function("balanceOf").encode()


def test_decode_single_and_multiple_outputs():
    assert ERC20.get_function("decimals").decode(encode(["uint8"], [6])) == 6

    pair = ContractInterface(
        "pair",
        [{"type": "function", "name": "getReserves", "inputs": [], "outputs": [{"type": "uint112"}, {"type": "uint112"}]}],
    )
    assert pair.get_function("getReserves").decode(encode(["uint112", "uint112"], [1, 2])) == (1, 2)


def test_decode_empty_data_raises():
    with pytest.raises(DecodeError, match="empty return data"):
        ERC20.get_function("totalSupply").decode(b"")


def test_unknown_function_raises_attribute_error():
    with pytest.raises(AttributeError, match="no function 'mint'"):
        ERC20.get_function("mint")
    assert "symbol" in ERC20
    assert "mint" not in ERC20


def test_normalize_address():
    assert normalize_address("0xcA11bde05977b3631167028862bE2a173976CA11") == MULTICALL3_ADDRESS
    assert normalize_address(MULTICALL3_ADDRESS.lower()) == MULTICALL3_ADDRESS
    for bad in ("0x1234", "not an address", "0xca11bde05977b3631167028862be2a173976ca1z"):
        with pytest.raises(InvalidAddressError):
            normalize_address(bad)


def test_build_is_pure(factory, chain):
    handle = factory.erc20("ethereum", TOKEN)
    assert handle.network == "ethereum"
    assert handle.address.lower() == TOKEN
    assert handle.interface is ERC20
    assert chain.requests == []


def test_build_by_interface_name(factory):
    assert factory.build("ethereum", TOKEN, "chainlink-aggregator").interface.name == "chainlink-aggregator"
    with pytest.raises(KeyError):
        factory.build("ethereum", TOKEN, "unknown")


def test_build_rejects_invalid_address(factory):
    with pytest.raises(InvalidAddressError):
        factory.erc20("ethereum", "0xdeadbeef")


def test_aggregator_address(factory):
    assert factory.aggregator_address("ethereum") == MULTICALL3_ADDRESS
    with pytest.raises(UnsupportedNetworkError):
        factory.aggregator_address("fantom")


@pytest.mark.asyncio
async def test_direct_call(factory, chain):
    chain.on(TOKEN, ERC20.get_function("symbol"), "USDC")

    assert await factory.erc20("ethereum", TOKEN).symbol() == "USDC"
    assert len(chain.requests) == 1


@pytest.mark.asyncio
async def test_direct_call_revert_raises_rpc_error(factory):
    with pytest.raises(RPCError, match="execution reverted"):
        await factory.erc20("ethereum", TOKEN).decimals()


def test_registered_interface_built_by_name(factory):
    pool = ContractInterface("pool", [{"type": "function", "name": "fee", "inputs": [], "outputs": [{"type": "uint24"}]}])
    factory.register_interface(pool)

    assert factory.build("ethereum", TOKEN, "pool").interface is pool

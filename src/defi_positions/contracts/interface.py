"""Contract interfaces parsed from JSON ABIs, with call encoding and return decoding."""

from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector

from defi_positions.core.errors import DecodeError


def canonical_type(param: dict[str, Any]) -> str:
    """
    Canonical ABI type of a parameter, expanding tuple components.

    Parameters
    ----------
    param : dict[str, Any]
        ABI parameter entry with 'type' and optional 'components'

    Returns
    -------
    str
        Canonical type (e.g. 'uint256', '(address,bool,bytes)[]')

    """
    abi_type = param["type"]
    if not abi_type.startswith("tuple"):
        return abi_type
    inner = ",".join(canonical_type(component) for component in param.get("components", []))
    return f"({inner}){abi_type[len('tuple'):]}"


@dataclass(frozen=True)
class FunctionSpec:
    """
    A single ABI function.

    Attributes
    ----------
    name : str
        Function name
    input_types : tuple[str, ...]
        Canonical input types
    output_types : tuple[str, ...]
        Canonical output types

    """

    name: str
    input_types: tuple[str, ...]
    output_types: tuple[str, ...]

    @property
    def signature(self) -> str:
        """Canonical signature, e.g. 'balanceOf(address)'."""
        return f"{self.name}({','.join(self.input_types)})"

    @property
    def selector(self) -> bytes:
        """4-byte function selector."""
        return function_signature_to_4byte_selector(self.signature)

    def encode(self, *args: Any) -> bytes:
        """
        Encode a call to this function.

        Parameters
        ----------
        *args : Any
            Positional arguments matching the input types

        Returns
        -------
        bytes
            Selector followed by the ABI encoded arguments

        Raises
        ------
        TypeError
            If the number of arguments does not match the ABI

        """
        if len(args) != len(self.input_types):
            msg = f"{self.signature} takes {len(self.input_types)} arguments, got {len(args)}"
            raise TypeError(msg)
        if not self.input_types:
            return self.selector
        return self.selector + encode(list(self.input_types), list(args))

    def decode(self, data: bytes) -> Any:
        """
        Decode return data of this function.

        Single outputs are unwrapped; multiple outputs are returned as a tuple.

        Parameters
        ----------
        data : bytes
            Raw return data

        Returns
        -------
        Any
            Decoded value(s), None for functions without outputs

        Raises
        ------
        DecodeError
            If the data does not match the output types

        """
        if not self.output_types:
            return None
        if not data:
            raise DecodeError(self.signature, "empty return data")
        try:
            values = decode(list(self.output_types), data)
        except (DecodingError, ValueError) as e:
            raise DecodeError(self.signature, str(e)) from e
        if len(values) == 1:
            return values[0]
        return tuple(values)


class ContractInterface:
    """
    Named set of read functions parsed from a JSON ABI.

    Overloaded functions keep the first definition.

    Parameters
    ----------
    name : str
        Interface identifier (e.g. 'erc20')
    abi : list[dict[str, Any]]
        JSON ABI entries

    """

    def __init__(self, name: str, abi: list[dict[str, Any]]) -> None:
        self.name = name
        self.abi = abi
        self.functions: dict[str, FunctionSpec] = {}
        for entry in abi:
            if entry.get("type", "function") != "function":
                continue
            if entry["name"] in self.functions:
                continue
            self.functions[entry["name"]] = FunctionSpec(
                name=entry["name"],
                input_types=tuple(canonical_type(p) for p in entry.get("inputs", [])),
                output_types=tuple(canonical_type(p) for p in entry.get("outputs", [])),
            )

    def get_function(self, name: str) -> FunctionSpec:
        """
        Look up a function by name.

        Raises
        ------
        AttributeError
            If the interface has no such function

        """
        try:
            return self.functions[name]
        except KeyError:
            msg = f"Interface '{self.name}' has no function '{name}'"
            raise AttributeError(msg) from None

    def __contains__(self, name: str) -> bool:
        return name in self.functions

    def __repr__(self) -> str:
        return f"ContractInterface({self.name!r}, functions={sorted(self.functions)})"

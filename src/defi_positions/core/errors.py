"""Exception hierarchy shared by the provider, contract, batching and valuation layers."""


class DefiPositionsError(Exception):
    """Base class for all errors raised by defi_positions."""


class UnsupportedNetworkError(DefiPositionsError):
    """
    Raised when a network has no endpoint or no aggregator contract configured.

    Parameters
    ----------
    network : str
        Network identifier
    reason : str
        What is missing for this network

    """

    def __init__(self, network: str, reason: str = "no endpoint configured") -> None:
        self.network = network
        self.reason = reason
        super().__init__(f"Network '{network}' is not supported: {reason}")


class InvalidAddressError(DefiPositionsError):
    """Raised when an address is not a well-formed 20-byte hex address."""

    def __init__(self, address: object) -> None:
        self.address = address
        super().__init__(f"Invalid address: {address!r}")


class RPCError(DefiPositionsError):
    """
    JSON-RPC error payload returned by a node.

    Parameters
    ----------
    code : int | None
        JSON-RPC error code
    message : str
        Error message returned by the node

    """

    def __init__(self, message: str, code: int | None = None) -> None:
        self.code = code
        super().__init__(f"RPC error {code}: {message}" if code is not None else f"RPC error: {message}")


class BatchExecutionError(DefiPositionsError):
    """
    The aggregated call of a batch failed; every call in the batch fails with it.

    Reads are idempotent so the whole batch may be re-issued by the caller.

    Parameters
    ----------
    network : str
        Network the batch targeted
    size : int
        Number of calls in the failed batch
    cause : BaseException | None
        Underlying transport, RPC or decoding failure

    """

    def __init__(self, network: str, size: int, cause: BaseException | None = None) -> None:
        self.network = network
        self.size = size
        self.cause = cause
        super().__init__(f"Multicall batch of {size} calls on {network} failed: {cause}")


class DecodeError(DefiPositionsError):
    """Return data of a single call could not be decoded (or the call reverted)."""

    def __init__(self, function: str, message: str, target: str | None = None) -> None:
        self.function = function
        self.reason = message
        self.target = target
        location = f" on {target}" if target else ""
        super().__init__(f"Cannot decode {function}{location}: {message}")


class PriceUnavailableError(DefiPositionsError):
    """No pricing source returned a usable USD price for a token."""

    def __init__(self, network: str, address: str) -> None:
        self.network = network
        self.address = address
        super().__init__(f"No USD price available for {address} on {network}")

"""Data models for networks, tokens, positions, balances and balance products."""

from decimal import Decimal
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Network(StrEnum):
    """Supported EVM networks."""

    ETHEREUM_MAINNET = "ethereum"
    OPTIMISM_MAINNET = "optimism"
    POLYGON_MAINNET = "polygon"
    ARBITRUM_MAINNET = "arbitrum"
    BASE_MAINNET = "base"
    AVALANCHE_MAINNET = "avalanche"
    FANTOM_OPERA_MAINNET = "fantom"
    BINANCE_SMART_CHAIN_MAINNET = "binance-smart-chain"
    GNOSIS_MAINNET = "gnosis"


class ContractType(StrEnum):
    """Variant tag of a position record."""

    BASE_TOKEN = "base-token"
    APP_TOKEN = "app-token"
    CONTRACT_POSITION = "contract-position"


class MetaType(StrEnum):
    """Role of a token inside a contract position."""

    SUPPLIED = "supplied"
    BORROWED = "borrowed"
    CLAIMABLE = "claimable"
    WALLET = "wallet"


class DisplayItemType(StrEnum):
    """How a display value should be formatted."""

    DOLLAR = "dollar"
    PERCENTAGE = "pct"
    NUMBER = "number"
    STRING = "string"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class DisplayItem(_Frozen):
    """Typed value rendered by a UI."""

    type: DisplayItemType
    value: Decimal | str


class StatsItem(_Frozen):
    """Labelled statistic shown next to a position."""

    label: str
    value: DisplayItem


class MetadataItem(_Frozen):
    """
    Summary metric attached to a balance product or response.

    Attributes
    ----------
    label : str
        Metric name (e.g. 'Debt', 'Utilization Rate')
    value : Decimal
        Metric value
    type : DisplayItemType
        Formatting hint

    """

    label: str
    value: Decimal
    type: DisplayItemType


class DisplayProps(_Frozen):
    """Presentation metadata of a position."""

    label: str
    secondary_label: DisplayItem | str | None = None
    tertiary_label: DisplayItem | str | None = None
    images: list[str] = Field(default_factory=list)
    stats_items: list[StatsItem] = Field(default_factory=list)


class _PositionBase(_Frozen):
    network: Network
    address: str

    @field_validator("address")
    @classmethod
    def _lower_address(cls, value: str) -> str:
        return value.lower()


class BaseToken(_PositionBase):
    """
    Directly priced token (ETH, USDC, stETH...).

    Attributes
    ----------
    symbol : str
        Token symbol
    decimals : int
        Number of decimal places
    price : Decimal
        USD price

    """

    type: Literal[ContractType.BASE_TOKEN] = ContractType.BASE_TOKEN
    symbol: str
    decimals: int = Field(ge=0, le=255)
    price: Decimal = Field(ge=0)


class AppTokenPosition(_PositionBase):
    """
    Position that is itself a tradable token with its own supply and price.

    Attributes
    ----------
    app_id : str
        Protocol identifier
    group_id : str
        Group of positions inside the protocol
    symbol : str
        Token symbol
    decimals : int
        Token decimals
    supply : Decimal
        Total supply in token units
    price : Decimal
        USD price of one token
    price_per_share : Decimal | list[Decimal]
        Underlying tokens per share, one entry per underlying when a list
    tokens : list[BaseToken | AppTokenPosition]
        Underlying tokens
    data_props : dict[str, Any]
        Protocol-specific facts used for valuation downstream
    display_props : DisplayProps
        UI metadata

    """

    type: Literal[ContractType.APP_TOKEN] = ContractType.APP_TOKEN
    app_id: str
    group_id: str
    symbol: str
    decimals: int = Field(ge=0, le=255)
    supply: Decimal = Field(ge=0)
    price: Decimal = Field(ge=0)
    price_per_share: Decimal | list[Decimal] = Decimal(1)
    tokens: list["Token"] = Field(default_factory=list)
    data_props: dict[str, Any] = Field(default_factory=dict)
    display_props: DisplayProps

    @property
    def liquidity(self) -> Decimal:
        """USD value of the whole supply."""
        return self.supply * self.price


Token = Annotated[BaseToken | AppTokenPosition, Field(discriminator="type")]

AppTokenPosition.model_rebuild()


class PositionToken(_Frozen):
    """Token held inside a contract position with its role."""

    meta_type: MetaType
    token: Token


class ContractPosition(_PositionBase):
    """
    Position anchored to a non-tokenized contract (lending market, farm...).

    Attributes
    ----------
    app_id : str
        Protocol identifier
    group_id : str
        Group of positions inside the protocol
    tokens : list[PositionToken]
        Tokens supplied to, borrowed from or claimable from the contract
    data_props : dict[str, Any]
        Protocol-specific facts
    display_props : DisplayProps
        UI metadata

    """

    type: Literal[ContractType.CONTRACT_POSITION] = ContractType.CONTRACT_POSITION
    app_id: str
    group_id: str
    tokens: list[PositionToken] = Field(default_factory=list)
    data_props: dict[str, Any] = Field(default_factory=dict)
    display_props: DisplayProps


Position = Annotated[AppTokenPosition | ContractPosition, Field(discriminator="type")]


class TokenBalance(_Frozen):
    """Amount of one token held by an account inside a contract position."""

    meta_type: MetaType
    token: Token
    balance: Decimal
    balance_raw: int
    balance_usd: Decimal


class AppTokenPositionBalance(_Frozen):
    """An account's holding of an app token."""

    type: Literal[ContractType.APP_TOKEN] = ContractType.APP_TOKEN
    position: AppTokenPosition
    balance: Decimal
    balance_raw: int
    balance_usd: Decimal

    @property
    def group_id(self) -> str:
        return self.position.group_id


class ContractPositionBalance(_Frozen):
    """An account's balances inside a contract position; borrowed amounts count negative in USD."""

    type: Literal[ContractType.CONTRACT_POSITION] = ContractType.CONTRACT_POSITION
    position: ContractPosition
    tokens: list[TokenBalance]
    balance_usd: Decimal

    @property
    def group_id(self) -> str:
        return self.position.group_id


PositionBalance = Annotated[AppTokenPositionBalance | ContractPositionBalance, Field(discriminator="type")]


class ProductItem(BaseModel):
    """
    Named group of balances for one account with summary metadata.

    Attributes
    ----------
    label : str
        Product name (e.g. 'Morpho Compound')
    assets : list[PositionBalance]
        Balances in this product
    meta : list[MetadataItem]
        Summary metrics (collateral, debt, utilization...)

    """

    label: str
    assets: list[PositionBalance]
    meta: list[MetadataItem] = Field(default_factory=list)


class TokenBalanceResponse(BaseModel):
    """Per-account, per-protocol balance report."""

    products: list[ProductItem] = Field(default_factory=list)
    meta: list[MetadataItem] = Field(default_factory=list)
    error: str | None = None


class PositionError(BaseModel):
    """Failure to value one position instance; the instance is omitted from results."""

    app_id: str
    group_id: str
    network: Network
    definition: str
    error_type: str
    message: str
    retryable: bool = False


class PositionResults(BaseModel):
    """
    Outcome of one valuation run.

    Attributes
    ----------
    positions : list[Position]
        Successfully valued positions in definition order
    errors : list[PositionError]
        Instances that were omitted

    """

    positions: list[Position] = Field(default_factory=list)
    errors: list[PositionError] = Field(default_factory=list)

    @property
    def retryable(self) -> bool:
        """Whether any instance failed because its whole batch failed."""
        return any(error.retryable for error in self.errors)

    @property
    def error_note(self) -> str | None:
        """Human readable summary of omitted instances."""
        if not self.errors:
            return None
        return "; ".join(f"{e.app_id}/{e.group_id} {e.definition}: {e.message}" for e in self.errors)

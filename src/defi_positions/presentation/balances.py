"""Per-account balance records and the balance fetcher interface."""

from collections.abc import Sequence
from decimal import Decimal
from typing import Protocol

from defi_positions.core.models import (
    AppTokenPosition,
    AppTokenPositionBalance,
    ContractPosition,
    ContractPositionBalance,
    MetaType,
    TokenBalance,
    TokenBalanceResponse,
)
from defi_positions.positions.numbers import from_raw, multiply


class BalanceFetcher(Protocol):
    """
    Interface of per-account balance fetchers.

    Attributes
    ----------
    app_id : str
        Protocol identifier
    network : str
        Network the fetcher reads

    """

    app_id: str
    network: str

    async def get_balances(self, address: str) -> TokenBalanceResponse:
        """
        Fetch an account's balances in the protocol.

        Parameters
        ----------
        address : str
            Account address

        Returns
        -------
        TokenBalanceResponse
            Products, summary metrics and an optional error note

        """
        ...


def build_app_token_balance(position: AppTokenPosition, balance_raw: int) -> AppTokenPositionBalance:
    """Holding of an app token from a raw ``balanceOf`` value."""
    balance = from_raw(balance_raw, position.decimals)
    return AppTokenPositionBalance(
        position=position,
        balance=balance,
        balance_raw=balance_raw,
        balance_usd=multiply(balance, position.price),
    )


def build_contract_position_balance(position: ContractPosition, balances_raw: Sequence[int]) -> ContractPositionBalance:
    """
    Balances of an account inside a contract position.

    Parameters
    ----------
    position : ContractPosition
        Valued position
    balances_raw : Sequence[int]
        Raw amount per position token, aligned with ``position.tokens``

    Returns
    -------
    ContractPositionBalance
        Per-token balances; ``balance_usd`` counts borrowed tokens negative

    Raises
    ------
    ValueError
        If the raw amounts do not match the position tokens

    """
    if len(balances_raw) != len(position.tokens):
        msg = f"Expected {len(position.tokens)} balances for {position.address}, got {len(balances_raw)}"
        raise ValueError(msg)

    tokens = []
    total = Decimal(0)
    for position_token, raw in zip(position.tokens, balances_raw, strict=True):
        token = position_token.token
        balance = from_raw(raw, token.decimals)
        balance_usd = multiply(balance, token.price)
        total += -balance_usd if position_token.meta_type == MetaType.BORROWED else balance_usd
        tokens.append(
            TokenBalance(
                meta_type=position_token.meta_type,
                token=token,
                balance=balance,
                balance_raw=raw,
                balance_usd=balance_usd,
            )
        )
    return ContractPositionBalance(position=position, tokens=tokens, balance_usd=total)


def has_balance(balance: AppTokenPositionBalance | ContractPositionBalance) -> bool:
    """Whether a balance record holds anything."""
    if isinstance(balance, AppTokenPositionBalance):
        return balance.balance_raw > 0
    return any(token.balance_raw > 0 for token in balance.tokens)

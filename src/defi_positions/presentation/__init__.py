"""Balance presentation: products, summary metrics and balance fetchers."""

from defi_positions.presentation.balances import (
    BalanceFetcher,
    build_app_token_balance,
    build_contract_position_balance,
    has_balance,
)
from defi_positions.presentation.presenter import PositionPresenter, balance_totals, product_meta, utilization

__all__ = [
    "BalanceFetcher",
    "PositionPresenter",
    "balance_totals",
    "build_app_token_balance",
    "build_contract_position_balance",
    "has_balance",
    "product_meta",
    "utilization",
]

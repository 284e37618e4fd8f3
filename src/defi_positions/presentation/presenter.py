"""Position presenters: group an account's balances into products with summary metrics."""

import logging
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import ClassVar

from defi_positions.core.models import (
    AppTokenPositionBalance,
    ContractPositionBalance,
    DisplayItemType,
    MetadataItem,
    MetaType,
    Network,
    ProductItem,
    TokenBalanceResponse,
)
from defi_positions.positions.display import build_metadata_item
from defi_positions.positions.numbers import safe_divide

logger = logging.getLogger(__name__)

Balance = AppTokenPositionBalance | ContractPositionBalance
MetaBuilder = Callable[..., list[MetadataItem]]

_PRODUCT_META_ATTR = "__product_meta_label__"


def product_meta(label: str) -> Callable[[MetaBuilder], MetaBuilder]:
    """
    Mark a presenter method as the metadata builder of a product.

    The method is called as ``method(address, balances)`` with the balances
    grouped under ``label`` and returns a list of ``MetadataItem``.

    Parameters
    ----------
    label : str
        Product label the metadata belongs to

    Returns
    -------
    Callable
        Decorator leaving the method unchanged apart from the marker

    """

    def decorator(method: MetaBuilder) -> MetaBuilder:
        setattr(method, _PRODUCT_META_ATTR, label)
        return method

    return decorator


def utilization(total_debt: Decimal, max_debt: Decimal) -> Decimal:
    """Share of borrowing capacity in use; 0 when there is no capacity."""
    return safe_divide(total_debt, max_debt)


def balance_totals(balances: Sequence[Balance]) -> tuple[Decimal, Decimal]:
    """
    Sum the USD assets and debt of a set of balances.

    Parameters
    ----------
    balances : Sequence[AppTokenPositionBalance | ContractPositionBalance]
        Balances to sum

    Returns
    -------
    tuple[Decimal, Decimal]
        (assets, debt), both non-negative

    """
    assets = Decimal(0)
    debt = Decimal(0)
    for balance in balances:
        if isinstance(balance, AppTokenPositionBalance):
            assets += balance.balance_usd
            continue
        for token in balance.tokens:
            if token.meta_type == MetaType.BORROWED:
                debt += token.balance_usd
            else:
                assets += token.balance_usd
    return assets, debt


class PositionPresenter:
    """
    Turns one protocol's balances for an account into a balance response.

    Balances are grouped into products by ``product_labels[group_id]``
    (the protocol id when a group has no label), keeping first-seen order.
    Methods decorated with :func:`product_meta` add metrics to the product
    of their label. ``present`` performs no I/O.

    Attributes
    ----------
    app_id : str
        Protocol identifier (must be set in subclass)
    network : Network
        Network of the balances (must be set in subclass)
    product_labels : dict[str, str]
        Product label per group identifier

    """

    app_id: ClassVar[str] = ""
    network: ClassVar[Network]
    product_labels: ClassVar[dict[str, str]] = {}
    _meta_builders: ClassVar[dict[str, str]] = {}

    def __init_subclass__(cls, **kwargs) -> None:
        super().__init_subclass__(**kwargs)
        builders = dict(cls._meta_builders)
        for name, member in vars(cls).items():
            label = getattr(member, _PRODUCT_META_ATTR, None)
            if label is not None:
                builders[label] = name
        cls._meta_builders = builders

    def product_label(self, balance: Balance) -> str:
        return self.product_labels.get(balance.group_id, self.app_id)

    def build_product_meta(self, label: str, address: str, balances: Sequence[Balance]) -> list[MetadataItem]:
        """Metrics of one product; empty when no builder is registered for its label."""
        name = self._meta_builders.get(label)
        if name is None:
            return []
        return list(getattr(self, name)(address, balances))

    def present(self, address: str, balances: Sequence[Balance], error: str | None = None) -> TokenBalanceResponse:
        """
        Build the balance response of an account.

        Parameters
        ----------
        address : str
            Account address
        balances : Sequence[AppTokenPositionBalance | ContractPositionBalance]
            The account's balances in this protocol
        error : str | None
            Note about positions that could not be valued

        Returns
        -------
        TokenBalanceResponse
            Products with their metrics, plus account totals 'Assets', 'Debt' and 'Total'

        """
        grouped: dict[str, list[Balance]] = {}
        for balance in balances:
            grouped.setdefault(self.product_label(balance), []).append(balance)

        products = [
            ProductItem(label=label, assets=assets, meta=self.build_product_meta(label, address, assets))
            for label, assets in grouped.items()
        ]

        assets, debt = balance_totals(balances)
        meta = [
            build_metadata_item("Assets", assets, DisplayItemType.DOLLAR),
            build_metadata_item("Debt", debt, DisplayItemType.DOLLAR),
            build_metadata_item("Total", assets - debt, DisplayItemType.DOLLAR),
        ]
        logger.debug("Presented %d balances of %s in %d products", len(balances), address, len(products))
        return TokenBalanceResponse(products=products, meta=meta, error=error)

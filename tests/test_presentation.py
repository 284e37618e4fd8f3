"""Tests for balance records and position presenters."""

from decimal import Decimal

import pytest

from defi_positions.core.models import (
    AppTokenPosition,
    BaseToken,
    ContractPosition,
    DisplayItemType,
    DisplayProps,
    MetaType,
    Network,
    PositionToken,
)
from defi_positions.positions.display import build_metadata_item, get_token_img
from defi_positions.presentation import (
    PositionPresenter,
    build_app_token_balance,
    build_contract_position_balance,
    has_balance,
    product_meta,
    utilization,
)

USDC = BaseToken(
    network=Network.ETHEREUM_MAINNET,
    address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    symbol="USDC",
    decimals=6,
    price=Decimal(1),
)
WETH = BaseToken(
    network=Network.ETHEREUM_MAINNET,
    address="0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2",
    symbol="WETH",
    decimals=18,
    price=Decimal(2000),
)


def lending_market(group_id: str = "lending") -> ContractPosition:
    return ContractPosition(
        app_id="example",
        group_id=group_id,
        network=Network.ETHEREUM_MAINNET,
        address="0x1111111111111111111111111111111111111111",
        tokens=[
            PositionToken(meta_type=MetaType.SUPPLIED, token=WETH),
            PositionToken(meta_type=MetaType.BORROWED, token=USDC),
        ],
        display_props=DisplayProps(label="WETH / USDC"),
    )


def vault_token(group_id: str = "vault") -> AppTokenPosition:
    return AppTokenPosition(
        app_id="example",
        group_id=group_id,
        network=Network.ETHEREUM_MAINNET,
        address="0x2222222222222222222222222222222222222222",
        symbol="vUSDC",
        decimals=6,
        supply=Decimal(1000),
        price=Decimal("1.1"),
        price_per_share=Decimal("1.1"),
        tokens=[USDC],
        display_props=DisplayProps(label="vUSDC"),
    )


class ExamplePresenter(PositionPresenter):
    app_id = "example"
    network = Network.ETHEREUM_MAINNET
    product_labels = {"lending": "Lending"}

    @product_meta("Lending")
    def lending_meta(self, address, balances):
        debt = Decimal(0)
        for balance in balances:
            for token in balance.tokens:
                if token.meta_type == MetaType.BORROWED:
                    debt += token.balance_usd
        return [build_metadata_item("Borrowed", debt)]


def test_utilization():
    assert utilization(Decimal(50), Decimal(200)) == Decimal("0.25")
    assert utilization(Decimal(50), Decimal(0)) == Decimal(0)


def test_contract_position_balance_counts_debt_negative():
    balance = build_contract_position_balance(lending_market(), [2 * 10**18, 500 * 10**6])

    assert [t.balance for t in balance.tokens] == [Decimal(2), Decimal(500)]
    assert [t.balance_usd for t in balance.tokens] == [Decimal(4000), Decimal(500)]
    assert balance.balance_usd == Decimal(3500)
    assert balance.group_id == "lending"


def test_contract_position_balance_requires_aligned_amounts():
    with pytest.raises(ValueError, match="Expected 2 balances"):
        build_contract_position_balance(lending_market(), [1])


def test_app_token_balance():
    balance = build_app_token_balance(vault_token(), 250 * 10**6)

    assert balance.balance == Decimal(250)
    assert balance.balance_usd == Decimal("275")
    assert has_balance(balance)
    assert not has_balance(build_app_token_balance(vault_token(), 0))


def test_present_groups_balances_by_product_label():
    presenter = ExamplePresenter()
    balances = [
        build_contract_position_balance(lending_market(), [10**18, 100 * 10**6]),
        build_app_token_balance(vault_token(), 100 * 10**6),
        build_contract_position_balance(lending_market(), [10**18, 0]),
    ]

    response = presenter.present("0xabc", balances)

    assert [p.label for p in response.products] == ["Lending", "example"]
    lending = response.products[0]
    assert len(lending.assets) == 2
    assert [(m.label, m.value) for m in lending.meta] == [("Borrowed", Decimal(100))]
    # groups without a builder carry no metrics
    assert response.products[1].meta == []

    totals = {item.label: item.value for item in response.meta}
    assert totals == {"Assets": Decimal(4110), "Debt": Decimal(100), "Total": Decimal(4010)}
    assert {item.type for item in response.meta} == {DisplayItemType.DOLLAR}
    assert response.error is None


def test_present_without_balances_keeps_error_note():
    response = ExamplePresenter().present("0xabc", [], error="example/lending 0x1: timeout")

    assert response.products == []
    assert [item.value for item in response.meta] == [0, 0, 0]
    assert response.error == "example/lending 0x1: timeout"


def test_meta_builders_are_inherited():
    class ExtendedPresenter(ExamplePresenter):
        product_labels = {"lending": "Lending", "vault": "Vaults"}

        @product_meta("Vaults")
        def vault_meta(self, address, balances):
            return [build_metadata_item("Count", Decimal(len(balances)), DisplayItemType.NUMBER)]

    presenter = ExtendedPresenter()

    assert set(presenter._meta_builders) == {"Lending", "Vaults"}
    assert set(ExamplePresenter._meta_builders) == {"Lending"}
    assert presenter.build_product_meta("Unknown", "0xabc", []) == []


def test_token_image_url():
    url = get_token_img("0xA0b86991c6218b36c1d19d4a2e9eb0ce3606eb48", Network.ETHEREUM_MAINNET)

    assert url.endswith("/tokens/ethereum/0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48.png")

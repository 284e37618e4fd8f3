"""Tests for protocol registry."""

import pytest

from defi_positions.core.models import Network
from defi_positions.core.registry import ProtocolRegistry


@pytest.fixture
def empty_registry(monkeypatch):
    """Swap the registry tables for empty ones for the duration of a test."""
    monkeypatch.setattr(ProtocolRegistry, "_fetchers", {})
    monkeypatch.setattr(ProtocolRegistry, "_balance_fetchers", {})
    monkeypatch.setattr(ProtocolRegistry, "_presenters", {})
    return ProtocolRegistry


def test_protocol_registration():
    """Adapters register themselves when the protocols package is imported."""
    from defi_positions import protocols  # noqa: F401

    assert ProtocolRegistry.list_protocols() == ["lido", "morpho", "synthetix"]


def test_get_fetchers_filters():
    from defi_positions import protocols  # noqa: F401

    synthetix = ProtocolRegistry.get_fetchers(app_id="synthetix")
    assert {str(f.network) for f in synthetix} == {"ethereum", "optimism"}

    ethereum = ProtocolRegistry.get_fetchers(network=Network.ETHEREUM_MAINNET)
    assert {(f.app_id, f.group_id) for f in ethereum} == {
        ("synthetix", "synth"),
        ("lido", "wsteth"),
        ("morpho", "compound"),
    }
    assert ProtocolRegistry.get_fetchers(app_id="lido", network="optimism") == []


def test_get_networks():
    from defi_positions import protocols  # noqa: F401

    assert ProtocolRegistry.get_networks("synthetix") == ["ethereum", "optimism"]
    assert ProtocolRegistry.get_networks("morpho") == ["ethereum"]
    assert ProtocolRegistry.get_networks("nonexistent") == []


def test_register_fetcher(empty_registry):
    @empty_registry.register
    class ExampleFetcher:
        app_id = "example"
        group_id = "pool"
        network = Network.BASE_MAINNET

    assert empty_registry.get_fetcher("example", "pool", "base") is ExampleFetcher
    assert empty_registry.get_fetcher("example", "pool", "ethereum") is None
    assert empty_registry.list_protocols() == ["example"]


def test_register_requires_identifiers(empty_registry):
    class MissingGroup:
        app_id = "example"
        network = Network.ETHEREUM_MAINNET

    with pytest.raises(ValueError, match="must define 'group_id'"):
        empty_registry.register(MissingGroup)

    class MissingNetwork:
        app_id = "example"

    with pytest.raises(ValueError, match="must define 'network'"):
        empty_registry.register_presenter(MissingNetwork)


def test_register_balance_fetcher_and_presenter(empty_registry):
    @empty_registry.register_balance_fetcher
    class ExampleBalances:
        app_id = "example"
        network = Network.ETHEREUM_MAINNET

    @empty_registry.register_presenter
    class ExamplePresenter:
        app_id = "example"
        network = Network.ETHEREUM_MAINNET

    assert empty_registry.get_balance_fetcher("example", "ethereum") is ExampleBalances
    assert empty_registry.get_presenter("example", Network.ETHEREUM_MAINNET) is ExamplePresenter
    assert empty_registry.get_networks("example") == ["ethereum"]


def test_clear(empty_registry):
    @empty_registry.register
    class ExampleFetcher:
        app_id = "example"
        group_id = "pool"
        network = Network.ETHEREUM_MAINNET

    empty_registry.clear()

    assert empty_registry.list_protocols() == []

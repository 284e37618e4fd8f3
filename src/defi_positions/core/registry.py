"""Registry of protocol adapters with decorator-based auto-registration."""


class ProtocolRegistry:
    """
    Registry for protocol adapters with auto-registration.

    Position fetchers register with ``@ProtocolRegistry.register``, balance
    fetchers with ``@ProtocolRegistry.register_balance_fetcher`` and
    presenters with ``@ProtocolRegistry.register_presenter``. The position
    service and the CLI look adapters up here.

    """

    _fetchers: dict[tuple[str, str, str], type] = {}
    _balance_fetchers: dict[tuple[str, str], type] = {}
    _presenters: dict[tuple[str, str], type] = {}

    @staticmethod
    def _require(handler_class: type, *attributes: str) -> None:
        for attribute in attributes:
            if not getattr(handler_class, attribute, None):
                msg = f"Handler {handler_class.__name__} must define '{attribute}' attribute"
                raise ValueError(msg)

    @classmethod
    def register(cls, fetcher_class: type) -> type:
        """
        Decorator to register a position fetcher.

        Parameters
        ----------
        fetcher_class : type
            Fetcher class to register

        Returns
        -------
        type
            The fetcher class (for decorator chaining)

        Raises
        ------
        ValueError
            If the class lacks 'app_id', 'group_id' or 'network'

        Examples
        --------
        >>> @ProtocolRegistry.register
        ... class EthereumSynthetixSynthTokenFetcher(AppTokenTemplatePositionFetcher):
        ...     app_id = "synthetix"
        ...     group_id = "synth"
        ...     network = Network.ETHEREUM_MAINNET

        """
        cls._require(fetcher_class, "app_id", "group_id", "network")
        key = (fetcher_class.app_id, fetcher_class.group_id, str(fetcher_class.network))
        cls._fetchers[key] = fetcher_class
        return fetcher_class

    @classmethod
    def register_balance_fetcher(cls, fetcher_class: type) -> type:
        """Decorator to register a per-account balance fetcher keyed by (app_id, network)."""
        cls._require(fetcher_class, "app_id", "network")
        cls._balance_fetchers[(fetcher_class.app_id, str(fetcher_class.network))] = fetcher_class
        return fetcher_class

    @classmethod
    def register_presenter(cls, presenter_class: type) -> type:
        """Decorator to register a position presenter keyed by (app_id, network)."""
        cls._require(presenter_class, "app_id", "network")
        cls._presenters[(presenter_class.app_id, str(presenter_class.network))] = presenter_class
        return presenter_class

    @classmethod
    def get_fetcher(cls, app_id: str, group_id: str, network: str) -> type | None:
        """
        Get fetcher class by app, group and network.

        Parameters
        ----------
        app_id : str
            Protocol identifier
        group_id : str
            Group identifier
        network : str
            Network name

        Returns
        -------
        type | None
            Fetcher class or None if not found

        """
        return cls._fetchers.get((app_id, group_id, str(network)))

    @classmethod
    def get_fetchers(cls, app_id: str | None = None, network: str | None = None) -> list[type]:
        """
        Get registered fetcher classes, optionally filtered.

        Parameters
        ----------
        app_id : str | None
            Only fetchers of this protocol
        network : str | None
            Only fetchers of this network

        Returns
        -------
        list[type]
            Matching fetcher classes in registration order

        """
        return [
            fetcher_class
            for (fetcher_app, _, fetcher_network), fetcher_class in cls._fetchers.items()
            if (app_id is None or fetcher_app == app_id) and (network is None or fetcher_network == str(network))
        ]

    @classmethod
    def get_balance_fetcher(cls, app_id: str, network: str) -> type | None:
        return cls._balance_fetchers.get((app_id, str(network)))

    @classmethod
    def get_presenter(cls, app_id: str, network: str) -> type | None:
        return cls._presenters.get((app_id, str(network)))

    @classmethod
    def get_networks(cls, app_id: str) -> list[str]:
        """Networks where a protocol has at least one adapter."""
        networks = {network for (fetcher_app, _, network) in cls._fetchers if fetcher_app == app_id}
        networks.update(network for (fetcher_app, network) in cls._balance_fetchers if fetcher_app == app_id)
        return sorted(networks)

    @classmethod
    def clear(cls) -> None:
        """Clear all registered adapters (useful for testing)."""
        cls._fetchers.clear()
        cls._balance_fetchers.clear()
        cls._presenters.clear()

    @classmethod
    def list_protocols(cls) -> list[str]:
        """
        Get list of all registered protocol identifiers.

        Returns
        -------
        list[str]
            Sorted protocol identifiers

        """
        apps = {app_id for (app_id, _, _) in cls._fetchers}
        apps.update(app_id for (app_id, _) in cls._balance_fetchers)
        return sorted(apps)

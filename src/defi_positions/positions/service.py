"""Position service: runs registered fetchers and retries batch failures."""

import asyncio
import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from defi_positions.core.models import AppTokenPosition, ContractPosition, Network, PositionResults
from defi_positions.core.registry import ProtocolRegistry
from defi_positions.rpc.retry import RetryConfig, retry_async

if TYPE_CHECKING:
    from defi_positions.positions.template import PositionFetcher
    from defi_positions.toolkit import IAppToolkit

logger = logging.getLogger(__name__)


class AppGroupsDefinition(BaseModel):
    """
    Selection of position groups of one protocol on one network.

    Attributes
    ----------
    app_id : str
        Protocol identifier
    group_ids : list[str]
        Groups to value; every registered group when empty
    network : Network
        Network to value

    """

    app_id: str
    group_ids: list[str] = Field(default_factory=list)
    network: Network


class _RetryableFailures(Exception):
    """Carries a run whose instances failed with whole-batch errors."""

    def __init__(self, results: PositionResults) -> None:
        self.results = results
        super().__init__(results.error_note)


class PositionService:
    """
    Resolves position fetchers from the registry and runs them.

    A run whose errors are flagged retryable is re-run with a
    fresh batch collector under the retry policy; the last run is returned
    when every attempt failed. Fetchers need the toolkit and the toolkit
    exposes this service, so the two are tied with :meth:`bind`.

    Parameters
    ----------
    retry_config : RetryConfig | None
        Backoff policy for re-running failed groups
    registry : type[ProtocolRegistry]
        Registry fetcher classes are looked up in

    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        registry: type[ProtocolRegistry] = ProtocolRegistry,
    ) -> None:
        self.retry_config = retry_config or RetryConfig()
        self.registry = registry
        self._toolkit: "IAppToolkit | None" = None
        self._fetchers: dict[tuple[str, str, str], "PositionFetcher"] = {}

    def bind(self, toolkit: "IAppToolkit") -> "PositionService":
        """Attach the toolkit handed to fetchers; returns self."""
        self._toolkit = toolkit
        self._fetchers.clear()
        return self

    @property
    def toolkit(self) -> "IAppToolkit":
        if self._toolkit is None:
            msg = "PositionService is not bound to a toolkit"
            raise RuntimeError(msg)
        return self._toolkit

    def get_fetcher(self, app_id: str, group_id: str, network: str) -> "PositionFetcher":
        """
        Get the fetcher instance of a group.

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
        PositionFetcher
            Fetcher bound to the toolkit (one instance per group)

        Raises
        ------
        KeyError
            If no fetcher is registered for the group

        """
        key = (app_id, group_id, str(network))
        if key not in self._fetchers:
            fetcher_class = self.registry.get_fetcher(*key)
            if fetcher_class is None:
                msg = f"No position fetcher registered for {app_id}/{group_id} on {network}"
                raise KeyError(msg)
            self._fetchers[key] = fetcher_class(self.toolkit)
        return self._fetchers[key]

    def get_group_ids(self, network: str, app_id: str) -> list[str]:
        """Registered group identifiers of a protocol on a network."""
        return [fetcher_class.group_id for fetcher_class in self.registry.get_fetchers(app_id, network)]

    async def _run_group(self, app_id: str, group_id: str, network: str) -> PositionResults:
        fetcher = self.get_fetcher(app_id, group_id, network)

        async def attempt() -> PositionResults:
            results = await fetcher.compute_positions()
            if results.retryable:
                raise _RetryableFailures(results)
            return results

        try:
            return await retry_async(attempt, self.retry_config, retry_on=(_RetryableFailures,))
        except _RetryableFailures as e:
            logger.warning("Giving up on %s/%s on %s: %s", app_id, group_id, network, e)
            return e.results

    async def compute_positions(
        self,
        network: str,
        app_id: str,
        group_ids: list[str] | None = None,
    ) -> PositionResults:
        """
        Value positions of a protocol on a network.

        Parameters
        ----------
        network : str
            Network name
        app_id : str
            Protocol identifier
        group_ids : list[str] | None
            Groups to value; every registered group when None or empty

        Returns
        -------
        PositionResults
            Positions of all groups in order, with the errors of omitted instances

        """
        group_ids = group_ids or self.get_group_ids(network, app_id)
        runs = await asyncio.gather(*(self._run_group(app_id, group_id, network) for group_id in group_ids))

        merged = PositionResults()
        for run in runs:
            merged.positions.extend(run.positions)
            merged.errors.extend(run.errors)
        return merged

    async def _collect(self, definitions: tuple[AppGroupsDefinition, ...]) -> PositionResults:
        runs = await asyncio.gather(
            *(self.compute_positions(d.network, d.app_id, d.group_ids) for d in definitions),
        )
        merged = PositionResults()
        for run in runs:
            merged.positions.extend(run.positions)
            merged.errors.extend(run.errors)
        return merged

    async def get_app_token_positions(self, *definitions: AppGroupsDefinition) -> list[AppTokenPosition]:
        """
        Get app token positions of the selected groups.

        Parameters
        ----------
        *definitions : AppGroupsDefinition
            Group selections

        Returns
        -------
        list[AppTokenPosition]
            Valued app tokens; failed instances are omitted

        """
        results = await self._collect(definitions)
        return [position for position in results.positions if isinstance(position, AppTokenPosition)]

    async def get_app_contract_positions(self, *definitions: AppGroupsDefinition) -> list[ContractPosition]:
        """
        Get contract positions of the selected groups.

        Parameters
        ----------
        *definitions : AppGroupsDefinition
            Group selections

        Returns
        -------
        list[ContractPosition]
            Valued contract positions; failed instances are omitted

        """
        results = await self._collect(definitions)
        return [position for position in results.positions if isinstance(position, ContractPosition)]

"""Adapter discovery, deployment and introspection via the per-type factories."""

import sys

from vaults_curation.constants import (
    ADAPTER_FACTORY_GETTER_ABI,
    ID_STYLE_MARKETS,
    ZERO_ADDRESS,
    adapter_abi,
    adapter_factory_abi,
)
from vaults_curation.errors import ContractCallError, PreconditionError, VaultsError
from vaults_curation.executor import CallExecutor
from vaults_curation.formatters import is_zero_address
from vaults_curation.models import AdapterTypeSpec, ChainConfig, DeployResult, MarketParams


class AdapterRegistry:
    """Find-or-deploy adapters for (vault, underlying) pairs on one chain.

    Factories are the single source of truth: an adapter "exists" when the
    factory's lookup for the pair returns a non-zero address.
    """

    def __init__(self, executor: CallExecutor, chain_config: ChainConfig):
        self.executor = executor
        self.config = chain_config
        self._factory_abis = {spec.name: adapter_factory_abi(spec) for spec in chain_config.adapter_types}
        self._adapter_abis = {spec.name: adapter_abi(spec) for spec in chain_config.adapter_types}

    @property
    def types(self) -> tuple[str, ...]:
        """Adapter type names in lookup priority order."""
        return tuple(spec.name for spec in self.config.adapter_types)

    def spec(self, adapter_type: str) -> AdapterTypeSpec:
        for spec in self.config.adapter_types:
            if spec.name == adapter_type:
                return spec
        raise PreconditionError(f"Unknown adapter type {adapter_type!r} (expected one of {', '.join(self.types)})")

    def factory(self, adapter_type: str) -> str:
        self.spec(adapter_type)
        address = self.config.factory_for(adapter_type)
        if is_zero_address(address):
            raise PreconditionError(f"No {adapter_type} adapter factory configured on {self.config.name}")
        return address

    @staticmethod
    def _factory_args(spec: AdapterTypeSpec, vault: str, underlying: str, extra: str | None) -> tuple:
        if spec.extra_param:
            if extra is None:
                raise PreconditionError(f"{spec.extra_param} is required for {spec.name} adapters")
            return (vault, underlying, extra)
        return (vault, underlying)

    # -- lookup -------------------------------------------------------------

    def find(self, vault: str, underlying: str, adapter_type: str | None = None, extra: str | None = None) -> str:
        """Return the adapter deployed for (vault, underlying), or the zero address.

        Without `adapter_type`, every configured type is probed in priority order
        and the first non-zero hit wins. A failing probe is skipped, and types
        that need an extra argument are skipped when none is given.
        """
        if adapter_type is not None:
            spec = self.spec(adapter_type)
            args = self._factory_args(spec, vault, underlying, extra)
            return self.executor.read(self.factory(adapter_type), self._factory_abis[spec.name], spec.lookup_fn, *args)

        for spec in self.config.adapter_types:
            if spec.extra_param and extra is None:
                continue
            if is_zero_address(self.config.factory_for(spec.name)):
                continue
            try:
                address = self.find(vault, underlying, spec.name, extra)
            except VaultsError as ex:
                print(f"⚠️  {spec.name} adapter lookup failed: {ex}", file=sys.stderr)
                continue
            if not is_zero_address(address):
                return address
        return ZERO_ADDRESS

    def is_adapter(self, adapter_type: str, address: str) -> bool:
        spec = self.spec(adapter_type)
        return bool(
            self.executor.read(self.factory(adapter_type), self._factory_abis[spec.name], spec.membership_fn, address)
        )

    # -- deployment ---------------------------------------------------------

    def deploy(
        self,
        adapter_type: str,
        vault: str,
        underlying: str,
        extra: str | None = None,
        *,
        wait: bool = True,
    ) -> DeployResult:
        """Deploy an adapter for (vault, underlying) unless one already exists."""
        spec = self.spec(adapter_type)
        args = self._factory_args(spec, vault, underlying, extra)
        factory = self.factory(adapter_type)
        factory_abi = self._factory_abis[spec.name]

        existing = self.find(vault, underlying, adapter_type, extra)
        if not is_zero_address(existing):
            return DeployResult(adapter_type=adapter_type, address=existing, confirmed=True, created=False)

        try:
            predicted = self.executor.dry_run(factory, factory_abi, spec.create_fn, *args)
            tx = self.executor.transact(factory, factory_abi, spec.create_fn, *args, wait=wait)
        except ContractCallError:
            # Someone else may have deployed the same pair in the meantime.
            existing = self.find(vault, underlying, adapter_type, extra)
            if not is_zero_address(existing):
                return DeployResult(adapter_type=adapter_type, address=existing, confirmed=True, created=False)
            raise
        return DeployResult(
            adapter_type=adapter_type,
            address=str(predicted),
            confirmed=tx.confirmed,
            created=True,
            tx_hash=tx.tx_hash,
        )

    # -- introspection ------------------------------------------------------

    def factory_of(self, adapter: str) -> str:
        return str(self.executor.read(adapter, ADAPTER_FACTORY_GETTER_ABI, "factory"))

    def classify(self, adapter: str) -> str | None:
        """Adapter type of `adapter`, judged by the factory that deployed it. None if unknown."""
        factory = self.factory_of(adapter).lower()
        for spec in self.config.adapter_types:
            configured = self.config.factory_for(spec.name)
            if configured and configured.lower() == factory:
                return spec.name
        return None

    def underlying(self, adapter: str, adapter_type: str) -> str:
        spec = self.spec(adapter_type)
        return str(self.executor.read(adapter, self._adapter_abis[spec.name], spec.underlying_fn))

    def market_params_list(self, adapter: str, adapter_type: str) -> list[MarketParams]:
        spec = self.spec(adapter_type)
        if spec.id_style != ID_STYLE_MARKETS:
            return []
        abi = self._adapter_abis[spec.name]
        length = int(self.executor.read(adapter, abi, "marketParamsListLength"))
        return [MarketParams.from_value(self.executor.read(adapter, abi, "marketParamsList", i)) for i in range(length)]

    def allocation_ids(self, adapter: str, adapter_type: str) -> list[bytes]:
        """Allocation ids the adapter reports, deduplicated in first-seen order."""
        spec = self.spec(adapter_type)
        abi = self._adapter_abis[spec.name]
        if spec.id_style == ID_STYLE_MARKETS:
            raw: list = []
            for market in self.market_params_list(adapter, adapter_type):
                raw.extend(self.executor.read(adapter, abi, "ids", market.as_tuple()))
        else:
            raw = list(self.executor.read(adapter, abi, "ids"))
        ids: list[bytes] = []
        for value in raw:
            id_bytes = bytes(value)
            if id_bytes not in ids:
                ids.append(id_bytes)
        return ids

import pytest

from fakechain import CHAIN_ID, FACTORIES, VAULT, FakeChain, build_chain

from vaults_curation.adapters import AdapterRegistry
from vaults_curation.caps import CapResolver
from vaults_curation.contracts import chain_config_from_dict
from vaults_curation.executor import CallExecutor
from vaults_curation.models import ChainConfig
from vaults_curation.timelock import TimelockOrchestrator


@pytest.fixture
def chain() -> FakeChain:
    return build_chain()


@pytest.fixture
def config() -> ChainConfig:
    return chain_config_from_dict(
        CHAIN_ID,
        {"name": "Testnet", "family": "byzantine", "adapter_factories": FACTORIES},
    )


@pytest.fixture
def executor(chain) -> CallExecutor:
    return CallExecutor(chain)


@pytest.fixture
def registry(executor, config) -> AdapterRegistry:
    return AdapterRegistry(executor, config)


@pytest.fixture
def timelock(executor, chain) -> TimelockOrchestrator:
    return TimelockOrchestrator(executor, VAULT, sleep=chain.advance, poll_interval=1)


@pytest.fixture
def caps(executor, chain) -> CapResolver:
    return CapResolver(executor, sleep=chain.advance, poll_interval=1)

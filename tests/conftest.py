import pytest
from ape import project

from proxy_upgrades.params import Deployer
from proxy_upgrades.registry import DeploymentRecordStore
from proxy_upgrades.utils import load_manifest, get_manifest_filepath


# Fixtures
@pytest.fixture(scope="session")
def oz_dependency():
    return project.dependencies["openzeppelin"]["5.0.0"]


@pytest.fixture
def creator(accounts):
    return accounts[0]


@pytest.fixture
def account1(accounts):
    return accounts[1]


@pytest.fixture
def account2(accounts):
    return accounts[2]


@pytest.fixture
def manifest(tmp_path):
    """Loads a bundled manifest with its records redirected to a temporary directory."""

    def _load(name):
        config = load_manifest(get_manifest_filepath(name))
        config["artifacts"]["dir"] = str(tmp_path / "deployments")
        return config

    return _load


@pytest.fixture
def make_deployer(creator, tmp_path):
    def _make(config, account=None):
        return Deployer(
            config=config,
            path=tmp_path / "manifest.yml",
            verify=False,
            account=account or creator,
            autosign=True,
        )

    return _make


@pytest.fixture
def record_store(tmp_path):
    return DeploymentRecordStore(tmp_path / "deployments" / "upgrade.json")

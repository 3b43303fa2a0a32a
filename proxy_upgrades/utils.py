import json
import os
from pathlib import Path
from typing import Dict, Iterable, List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP

from proxy_upgrades.constants import CONSTRUCTOR_PARAMS_DIR, DEPLOYMENTS_DIR, OZ_DEPENDENCY
from proxy_upgrades.networks import is_local_network

MANIFEST_SUFFIX = ".yml"


def load_manifest(filepath: Path) -> Dict:
    """Loads a deployment manifest, refusing files that hold no mapping."""
    with open(filepath, "r") as file:
        manifest = yaml.safe_load(file)
    if not isinstance(manifest, dict):
        raise ValueError(f"Manifest {filepath} does not hold a mapping of parameters.")
    return manifest


def load_record_file(filepath: Path) -> Dict:
    """Loads a deployment record file, which maps proxy patterns to upgrade records."""
    with open(filepath, "r") as file:
        records = json.load(file)
    if not isinstance(records, dict):
        raise ValueError(f"Record file {filepath} is not keyed by proxy pattern.")
    return records


def bundled_manifests() -> List[str]:
    return sorted(path.stem for path in CONSTRUCTOR_PARAMS_DIR.glob(f"*{MANIFEST_SUFFIX}"))


def get_manifest_filepath(name: str) -> Path:
    """Returns the filepath of a manifest shipped with this package, e.g. 'uups'."""
    filepath = CONSTRUCTOR_PARAMS_DIR / f"{name}{MANIFEST_SUFFIX}"
    if not filepath.exists():
        raise FileNotFoundError(
            f"No bundled manifest named '{name}'; choose one of {', '.join(bundled_manifests())}"
        )
    return filepath


def get_record_filepath(config: Dict) -> Path:
    """Returns where the upgrade records of a manifest are written."""
    artifacts = config.get("artifacts", {})
    filename = artifacts.get("filename")
    if not filename:
        raise ValueError("Manifest does not name a record file ('artifacts.filename').")
    return Path(artifacts.get("dir", DEPLOYMENTS_DIR)) / filename


def validate_config(config: Dict) -> Path:
    """
    Checks that the manifest declares contracts and targets the chain the
    provider is connected to, then returns its record filepath.

    Local and forked networks accept any chain_id so that a manifest written
    for a live network can be rehearsed against a fork of it.
    """
    print("Validating manifest...")

    chain_id = config.get("deployment", {}).get("chain_id")
    if not chain_id:
        raise ValueError("Manifest does not set 'deployment.chain_id'.")
    if not config.get("contracts"):
        raise ValueError("Manifest does not declare any 'contracts'.")

    connected_chain_id = networks.provider.network.chain_id
    if int(chain_id) != connected_chain_id and not is_local_network():
        raise ValueError(
            f"Manifest targets chain {chain_id} but the provider is connected "
            f"to chain {connected_chain_id}."
        )

    return get_record_filepath(config=config)


def _require_any_envvar(envvars: Iterable[str], purpose: str) -> None:
    envvars = list(envvars)
    if not any(os.environ.get(envvar) for envvar in envvars):
        raise ValueError(
            f"{purpose} needs one of these environment variables: {', '.join(envvars)}"
        )


def check_plugins(verify: bool = False) -> None:
    """
    Checks the credentials of the plugins a live run relies on: ape-infura
    when it is the connected provider, and ape-etherscan when deployed
    contracts are going to be published. Local networks need neither.
    """
    if is_local_network():
        return
    print("Checking plugins...")

    if networks.provider.name == "infura":
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES

        _require_any_envvar(_ENVIRONMENT_VARIABLE_NAMES, purpose="The infura provider")

    if verify:
        ecosystem_name = networks.provider.network.ecosystem.name
        explorer_envvar = API_KEY_ENV_KEY_MAP.get(ecosystem_name)
        if explorer_envvar is None:
            raise ValueError(f"ape-etherscan cannot publish contracts on {ecosystem_name}.")
        _require_any_envvar([explorer_envvar], purpose="Publishing contracts")


def verify_contracts(contracts: List[ContractInstance]) -> None:
    """Publishes the sources of the implementations and proxy layers of a run."""
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Publishing {instance.contract_type.name} at {instance.address}...")
        explorer.publish_contract(instance.address)


def get_contract_container(contract: str) -> ContractContainer:
    """
    Looks a contract up by name: counters and tokens are compiled from this
    project, proxy layers come from the OpenZeppelin dependency.
    """
    for source in (project, OZ_DEPENDENCY):
        try:
            return getattr(source, contract)
        except AttributeError:
            continue
    raise ValueError(f"No contract named '{contract}' in this project or in OpenZeppelin.")

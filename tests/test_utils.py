from collections import OrderedDict

import click
import pytest
from ape.utils import ZERO_ADDRESS

from proxy_upgrades import confirm
from proxy_upgrades.utils import (
    bundled_manifests,
    check_plugins,
    get_contract_container,
    get_manifest_filepath,
    get_record_filepath,
    load_manifest,
    load_record_file,
)


def test_bundled_manifests():
    assert bundled_manifests() == ["beacon", "lockable-token", "transparent", "uups"]
    assert get_manifest_filepath("uups").name == "uups.yml"
    with pytest.raises(FileNotFoundError, match="beacon, lockable-token, transparent, uups"):
        get_manifest_filepath("diamond")


def test_load_manifest_rejects_empty_file(tmp_path):
    filepath = tmp_path / "empty.yml"
    filepath.write_text("")
    with pytest.raises(ValueError, match="mapping"):
        load_manifest(filepath)

    assert load_manifest(get_manifest_filepath("beacon"))["upgrade"]["to"] == "CounterBeaconV2"


def test_load_record_file_rejects_non_mapping(tmp_path):
    filepath = tmp_path / "records.json"
    filepath.write_text("[]")
    with pytest.raises(ValueError, match="keyed by proxy pattern"):
        load_record_file(filepath)


def test_record_filepath(tmp_path):
    config = {"artifacts": {"dir": str(tmp_path), "filename": "uups-upgrade.json"}}
    assert get_record_filepath(config) == tmp_path / "uups-upgrade.json"
    with pytest.raises(ValueError, match="artifacts.filename"):
        get_record_filepath({"artifacts": {"dir": str(tmp_path)}})


def test_contract_lookup_falls_back_to_openzeppelin():
    assert get_contract_container("CounterUUPSV1").contract_type.name == "CounterUUPSV1"
    assert get_contract_container("BeaconProxy").contract_type.name == "BeaconProxy"
    with pytest.raises(ValueError, match="No contract named 'Diamond'"):
        get_contract_container("Diamond")


def test_local_network_needs_no_plugin_credentials(monkeypatch):
    monkeypatch.delenv("ETHERSCAN_API_KEY", raising=False)
    check_plugins(verify=True)


def test_zero_address_needs_second_confirmation(monkeypatch):
    questions = list()

    def _confirm(question, default=False, abort=False):
        questions.append(question)
        return True

    monkeypatch.setattr(click, "confirm", _confirm)
    confirm._confirm_resolution(OrderedDict({"implementation": ZERO_ADDRESS}), "BeaconProxy")
    assert questions == ["Deploy BeaconProxy?", "Deploy anyway?"]

    questions.clear()
    confirm._confirm_resolution(OrderedDict(), "CounterUUPSV1")
    assert questions == ["Deploy CounterUUPSV1?"]

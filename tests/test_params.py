import pytest
from ape.utils import ZERO_ADDRESS
from eth_utils import to_hex

from proxy_upgrades.constants import Pattern
from proxy_upgrades.params import ProxyParameters, UpgradeParameters


def _config(contracts, upgrade=None):
    config = {
        "deployment": {"name": "params-test", "chain_id": 1337},
        "artifacts": {"dir": "./deployments/", "filename": "params-test.json"},
        "contracts": contracts,
    }
    if upgrade:
        config["upgrade"] = upgrade
    return config


def test_bundled_manifests_parse(manifest, make_deployer):
    for name, pattern in [("transparent", "transparent"), ("beacon", "beacon"), ("uups", "uups")]:
        deployer = make_deployer(manifest(name))
        assert deployer.upgrade_parameters.pattern == Pattern(pattern)
        assert deployer.record_filepath.name == f"{pattern}-upgrade.json"

    token_deployer = make_deployer(manifest("lockable-token"))
    assert token_deployer.upgrade_parameters is None
    assert token_deployer.constants.TOKEN_SYMBOL == "LOCK"


def test_proxy_layers(manifest, make_deployer):
    deployer = make_deployer(manifest("beacon"))
    info = deployer.proxy_parameters.resolve("CounterBeaconV1")
    assert info.pattern == Pattern.BEACON
    assert not info.atomic_initialization
    names = [layer.container.contract_type.name for layer in info.layers]
    assert names == ["UpgradeableBeacon", "BeaconProxy"]
    assert [layer.instances for layer in info.layers] == [1, 2]

    deployer = make_deployer(manifest("transparent"))
    info = deployer.proxy_parameters.resolve("CounterTransparentV1")
    assert info.atomic_initialization
    assert list(info.layers[0].constructor_params) == ["_logic", "initialOwner", "_data"]
    assert not deployer.proxy_parameters.contract_needs_proxy("CounterTransparentV2")


def test_initializer_encoding(manifest, make_deployer, project, creator):
    deployer = make_deployer(manifest("uups"))
    initializer = deployer.proxy_parameters.resolve("CounterUUPSV1").initializer

    # not deployed yet
    assert initializer.resolve() == "0xdeadbeef"

    implementation = deployer.deploy(project.CounterUUPSV1)
    expected = to_hex(implementation.initialize.encode_input(creator.address))
    assert initializer.resolve() == expected
    assert initializer.resolve_call() == ("initialize", [creator.address])


def test_contract_name_resolves_to_proxy(make_deployer, project):
    config = _config(
        [
            {"CounterTransparentV1": {"proxy": {"initializer": "initialize"}}},
            {"LockableToken": {"constructor": {
                "name_": "Name", "symbol_": "SYM", "initialOwner": "$CounterTransparentV1"
            }}},
        ]
    )
    deployer = make_deployer(config)
    assert deployer.constructor_parameters.resolve("LockableToken")["initialOwner"] == ZERO_ADDRESS

    deployer.deploy(project.CounterTransparentV1)
    indirection = deployer.proxy(project.CounterTransparentV1)
    resolved = deployer.constructor_parameters.resolve("LockableToken")
    assert resolved["initialOwner"] == indirection.proxies[0].address


@pytest.mark.parametrize(
    "proxy_data,message",
    [
        ({"pattern": "diamond"}, "Unsupported proxy pattern"),
        ({"pattern": "transparent", "instances": 2}, "Only beacon proxies"),
        ({"pattern": "beacon", "instances": 0}, "At least one"),
        ({"pattern": "transparent", "constructor": {"_logic": "$deployer"}}, "implicitly wired"),
        ({"pattern": "beacon", "constructor": {"data": "0x"}}, "implicitly wired"),
        ({"pattern": "uups", "constructor": {"initialOwner": "$deployer"}}, "Unknown proxy"),
    ],
)
def test_invalid_proxy_parameters(make_deployer, proxy_data, message):
    config = _config([{"CounterBeaconV1": {"proxy": proxy_data}}])
    with pytest.raises(ProxyParameters.Invalid, match=message):
        make_deployer(config)


def test_beacon_owner_override(make_deployer, account1):
    config = _config(
        [
            {"CounterBeaconV1": {"proxy": {
                "pattern": "beacon", "constructor": {"initialOwner": account1.address}
            }}},
        ]
    )
    deployer = make_deployer(config)
    beacon_layer = deployer.proxy_parameters.resolve("CounterBeaconV1").layers[0]
    assert beacon_layer.constructor_params["initialOwner"] == account1.address


@pytest.mark.parametrize(
    "contracts,upgrade,message",
    [
        (
            ["CounterBeaconV1", "CounterBeaconV2"],
            {"from": "CounterBeaconV1", "to": "CounterBeaconV2"},
            "not proxied",
        ),
        (
            [{"CounterBeaconV1": {"proxy": {"pattern": "beacon"}}}],
            {"from": "CounterBeaconV1", "to": "CounterBeaconV2"},
            "not declared",
        ),
        (
            [{"CounterBeaconV1": {"proxy": {"pattern": "beacon"}}}, "CounterBeaconV2"],
            {"from": "CounterBeaconV1", "to": "CounterBeaconV2", "call": "initialize"},
            "reinitialization call",
        ),
        (
            [{"CounterBeaconV1": {"proxy": {"pattern": "beacon"}}}],
            {"from": "CounterBeaconV1"},
            "missing 'to'",
        ),
    ],
)
def test_invalid_upgrade_parameters(make_deployer, contracts, upgrade, message):
    with pytest.raises(UpgradeParameters.Invalid, match=message):
        make_deployer(_config(contracts, upgrade=upgrade))


def test_upgrade_call_data(manifest, make_deployer, project):
    deployer = make_deployer(manifest("transparent"))
    upgrade = deployer.upgrade_parameters
    assert (upgrade.from_name, upgrade.to_name) == ("CounterTransparentV1", "CounterTransparentV2")

    v2 = deployer.deploy(project.CounterTransparentV2)
    assert upgrade.resolve_call_data() == to_hex(v2.reinitialize.encode_input())

    beacon_deployer = make_deployer(manifest("beacon"))
    assert beacon_deployer.upgrade_parameters.resolve_call_data() == b""


def test_unknown_constant(make_deployer):
    config = _config(
        [{"LockableToken": {"constructor": {
            "name_": "$MISSING", "symbol_": "SYM", "initialOwner": "$deployer"
        }}}]
    )
    with pytest.raises(ValueError, match="MISSING"):
        make_deployer(config)

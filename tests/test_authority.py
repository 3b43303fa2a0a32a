import ape
import pytest
from ape.exceptions import ContractLogicError, TransactionNotFoundError
from eth_utils import to_hex

from proxy_upgrades.authority import (
    BeaconAuthority,
    TransparentAuthority,
    UUPSAuthority,
    authority_for,
    classified_upgrade_errors,
)
from proxy_upgrades.constants import Pattern
from proxy_upgrades.errors import (
    ImplementationNotUpgradeable,
    UpgradeFailed,
    UpgradeRejected,
    UpgradeTimeout,
)
from proxy_upgrades.params import Transactor


def _deploy(deployer, v1_container, v2_container):
    deployer.deploy(v1_container)
    v2 = deployer.deploy(v2_container)
    indirection = deployer.proxy(v1_container)
    return indirection, v2


def test_authority_for(creator):
    transactor = Transactor(account=creator, autosign=True)
    assert isinstance(authority_for("beacon", transactor), BeaconAuthority)
    assert isinstance(authority_for(Pattern.TRANSPARENT, transactor), TransparentAuthority)
    assert isinstance(authority_for("uups", transactor), UUPSAuthority)
    with pytest.raises(ValueError, match="Unsupported"):
        authority_for("diamond", transactor)


def test_revert_before_inclusion_is_rejected():
    with pytest.raises(UpgradeRejected, match="was rejected"):
        with classified_upgrade_errors("Test upgrade"):
            raise ContractLogicError("boom")


def test_transparent_authority_transfer(project, manifest, make_deployer, creator, account1):
    deployer = make_deployer(manifest("transparent"))
    indirection, v2 = _deploy(deployer, project.CounterTransparentV1, project.CounterTransparentV2)
    proxy = indirection.proxies[0]
    authority = authority_for(Pattern.TRANSPARENT, deployer)

    assert authority.owner(proxy) == creator.address
    assert indirection.proxy_admin.owner == creator.address

    assert authority.pending_owner(proxy) is None
    with pytest.raises(ValueError, match="one step"):
        authority.accept(proxy)

    authority.transfer(proxy, account1.address)
    assert authority.owner(proxy) == account1.address

    data = to_hex(v2.reinitialize.encode_input())
    with pytest.raises(UpgradeRejected):
        authority.upgrade(proxy, v2.address, data)
    assert proxy.implementation == deployer.deployments.instances["CounterTransparentV1"].address

    new_authority = authority_for(Pattern.TRANSPARENT, Transactor(account=account1, autosign=True))
    new_authority.upgrade(proxy, v2.address, data)
    assert proxy.implementation == v2.address

    counter = proxy.wrap(project.CounterTransparentV2).instance
    assert counter.getMultiplier() == 2
    assert counter.getVersion() == "2.0.0"


def test_beacon_authority(project, manifest, make_deployer, creator, account1):
    deployer = make_deployer(manifest("beacon"))
    indirection, v2 = _deploy(deployer, project.CounterBeaconV1, project.CounterBeaconV2)
    assert len(indirection.proxies) == 2
    authority = authority_for(Pattern.BEACON, deployer)
    proxy = indirection.proxies[0]

    with pytest.raises(ValueError, match="Beacon upgrades"):
        authority.upgrade(proxy, v2.address, b"\x01")

    assert authority.owner(proxy) == creator.address
    authority.transfer(proxy, account1.address)
    assert indirection.beacon.owner == account1.address

    with pytest.raises(UpgradeRejected):
        authority.upgrade(proxy, v2.address)

    new_authority = authority_for(Pattern.BEACON, Transactor(account=account1, autosign=True))
    new_authority.upgrade(proxy, v2.address)

    # one beacon upgrade retargets every proxy
    for handle in indirection.proxies:
        assert handle.implementation == v2.address
        assert handle.resolved_beacon == indirection.beacon.address


def test_uups_rejects_non_upgradeable_implementation(
    project, manifest, make_deployer, creator, account2
):
    deployer = make_deployer(manifest("uups"))
    indirection, v2 = _deploy(deployer, project.CounterUUPSV1, project.CounterUUPSV2)
    proxy = indirection.proxies[0]
    v1_address = proxy.implementation
    authority = authority_for(Pattern.UUPS, deployer)

    stuck = project.CounterUUPSV2WithoutUpgrade.deploy(sender=creator)
    with pytest.raises(ImplementationNotUpgradeable):
        authority.upgrade(proxy, stuck.address)
    with pytest.raises(ImplementationNotUpgradeable):
        UUPSAuthority.check_upgradeable(account2.address)
    assert proxy.implementation == v1_address

    UUPSAuthority.check_upgradeable(v2.address)
    authority.upgrade(proxy, v2.address, to_hex(v2.reinitialize.encode_input()))
    assert proxy.implementation == v2.address


def test_uups_authority_two_step_transfer(project, manifest, make_deployer, creator, account1):
    deployer = make_deployer(manifest("uups"))
    indirection, v2 = _deploy(deployer, project.CounterUUPSV1, project.CounterUUPSV2)
    proxy = indirection.proxies[0]
    v1_address = proxy.implementation
    authority = authority_for(Pattern.UUPS, deployer)
    new_authority = authority_for(Pattern.UUPS, Transactor(account=account1, autosign=True))

    assert authority.owner(proxy) == creator.address
    assert authority.pending_owner(proxy) is None
    with pytest.raises(ContractLogicError):
        new_authority.accept(proxy)

    authority.transfer(proxy, account1.address)
    assert authority.pending_owner(proxy) == account1.address

    # the handover is only nominated; the previous owner still holds the upgrade right
    assert authority.owner(proxy) == creator.address
    with pytest.raises(UpgradeRejected):
        new_authority.upgrade(proxy, v2.address)
    authority.upgrade(proxy, v2.address)
    assert proxy.implementation == v2.address

    new_authority.accept(proxy)
    assert authority.owner(proxy) == account1.address
    assert authority.pending_owner(proxy) is None

    with pytest.raises(UpgradeRejected):
        authority.upgrade(proxy, v1_address)
    new_authority.upgrade(proxy, v1_address)
    assert proxy.implementation == v1_address


def test_mined_revert_is_failed(creator, account1):
    receipt = creator.transfer(account1, 1)
    cause = ContractLogicError("boom")
    # a revert carrying a receipt was included in a block
    cause.txn = receipt

    with pytest.raises(UpgradeFailed, match="reverted in transaction") as error:
        with classified_upgrade_errors("Test upgrade"):
            raise cause

    assert error.value.__cause__ is cause
    assert str(receipt.txn_hash) in str(error.value)


def test_lost_receipt_is_timeout():
    cause = TransactionNotFoundError(transaction_hash="0x" + "ab" * 32)

    with pytest.raises(UpgradeTimeout, match="not confirmed in time") as error:
        with classified_upgrade_errors("Test upgrade"):
            raise cause

    assert error.value.__cause__ is cause


def test_transparent_proxy_denies_upgrade_from_outside_its_admin(
    project, oz_dependency, manifest, make_deployer, creator
):
    deployer = make_deployer(manifest("transparent"))
    indirection, v2 = _deploy(deployer, project.CounterTransparentV1, project.CounterTransparentV2)
    proxy = indirection.proxies[0]
    v1_address = proxy.implementation

    # creator owns the ProxyAdmin but is not the ProxyAdmin itself
    assert indirection.proxy_admin.owner == creator.address
    assert indirection.proxy_admin.address != creator.address

    upgradeable = oz_dependency.ITransparentUpgradeableProxy.at(proxy.address)
    with ape.reverts():
        upgradeable.upgradeToAndCall(v2.address, b"", sender=creator)
    assert proxy.implementation == v1_address

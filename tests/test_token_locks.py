import ape
import pytest

from proxy_upgrades.probes import expect_revert
from proxy_upgrades.scenarios import token_lock_scenario


@pytest.fixture()
def deployer(manifest, make_deployer):
    return make_deployer(manifest("lockable-token"))


@pytest.fixture()
def token(project, deployer):
    return deployer.deploy(project.LockableToken)


def test_token_deployed_from_manifest(token, creator):
    assert token.name() == "Lockable Token"
    assert token.symbol() == "LOCK"
    assert token.owner() == creator.address


def test_token_lock_scenario(token, deployer, account1, account2):
    results = token_lock_scenario(token, deployer, holder=account1, recipient=account2)
    assert results == {
        "locked_transfer": True,
        "mint_while_paused": True,
        "unauthorized_mint": True,
    }
    assert token.ownerOf(0) == account2.address
    assert not token.paused()


def test_locked_token_cannot_move(token, creator, account1, account2):
    token.mint(account1.address, sender=creator)
    token.setTokenLock(0, True, sender=creator)
    assert token.isTokenLocked(0)

    with ape.reverts():
        token.transferFrom(account1.address, account2.address, 0, sender=account1)

    # only the owner can unlock
    with ape.reverts():
        token.setTokenLock(0, False, sender=account1)

    token.setTokenLock(0, False, sender=creator)
    token.transferFrom(account1.address, account2.address, 0, sender=account1)
    assert token.ownerOf(0) == account2.address


def test_lock_requires_existing_token(token, creator):
    with ape.reverts():
        token.setTokenLock(7, True, sender=creator)


def test_expect_revert_reports_unexpected_success(token, creator, account1):
    assert not expect_revert("Mint by owner", token.mint, account1.address, sender=creator)
    assert expect_revert("Mint by non-owner", token.mint, account1.address, sender=account1)

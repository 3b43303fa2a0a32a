"""
Exercise scenarios run against the deployed contracts.

The counter hooks run around an upgrade: each receives the deployed
indirection (wrapped with the ABI of the implementation live at that point)
and the transactor to send calls with.
"""

from typing import Callable, Dict, NamedTuple, Optional

from proxy_upgrades.constants import Pattern
from proxy_upgrades.handles import Indirection
from proxy_upgrades.params import Transactor
from proxy_upgrades.probes import expect_revert

Hook = Callable[[Indirection, Transactor], None]


def _repeat(transactor: Transactor, method, times: int) -> None:
    for _ in range(times):
        transactor.transact(method)


def transparent_before_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    counter = indirection.proxies[0].instance
    _repeat(transactor, counter.increment, 3)


def transparent_after_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    counter = indirection.proxies[0].instance
    transactor.transact(counter.multiply)
    transactor.transact(counter.incrementUserCount)


def beacon_before_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    counters = [proxy.instance for proxy in indirection.proxies]
    _repeat(transactor, counters[0].increment, 2)
    if len(counters) > 1:
        _repeat(transactor, counters[1].increment, 1)


def beacon_after_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    for proxy in indirection.proxies:
        transactor.transact(proxy.instance.multiply)


def uups_before_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    counter = indirection.proxies[0].instance
    _repeat(transactor, counter.increment, 2)
    transactor.transact(counter.decrement)


def uups_after_upgrade(indirection: Indirection, transactor: Transactor) -> None:
    counter = indirection.proxies[0].instance
    transactor.transact(counter.multiply)
    transactor.transact(counter.incrementUserCount)


class Scenario(NamedTuple):
    before_upgrade: Optional[Hook]
    after_upgrade: Optional[Hook]


SCENARIOS: Dict[Pattern, Scenario] = {
    Pattern.TRANSPARENT: Scenario(transparent_before_upgrade, transparent_after_upgrade),
    Pattern.BEACON: Scenario(beacon_before_upgrade, beacon_after_upgrade),
    Pattern.UUPS: Scenario(uups_before_upgrade, uups_after_upgrade),
}


def token_lock_scenario(token, transactor: Transactor, holder, recipient) -> Dict[str, bool]:
    """
    Walks a LockableToken through its guards: a locked token cannot be moved
    by its holder until it is unlocked, and nothing can be minted while paused.
    Returns whether each expected revert actually happened.
    """
    token_id = token.nextTokenId()
    transactor.transact(token.mint, holder.address)
    transactor.transact(token.setTokenLock, token_id, True)

    results = dict()
    results["locked_transfer"] = expect_revert(
        f"Transfer of locked token #{token_id}",
        token.transferFrom,
        holder.address,
        recipient.address,
        token_id,
        sender=holder,
    )

    transactor.transact(token.setTokenLock, token_id, False)
    token.transferFrom(holder.address, recipient.address, token_id, sender=holder)
    print(f"(i) Token #{token_id} moved to {recipient.address} after unlocking")

    transactor.transact(token.pause)
    results["mint_while_paused"] = expect_revert(
        "Mint while paused", token.mint, holder.address, sender=transactor.get_account()
    )
    transactor.transact(token.unpause)

    results["unauthorized_mint"] = expect_revert(
        "Mint by a non-owner", token.mint, holder.address, sender=holder
    )
    return results

"""
Upgrade authorities: the party allowed to retarget a proxy, one per pattern.

Beacon proxies are upgraded through their beacon, transparent proxies through
the ProxyAdmin recorded in their admin slot, and UUPS proxies through the
upgrade entry point of the implementation they currently run.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Optional, Type, Union

from ape import chain, networks
from ape.api import ReceiptAPI
from ape.exceptions import ContractLogicError, TransactionNotFoundError, VirtualMachineError
from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from proxy_upgrades.constants import PROXIABLE_UUID_SELECTOR, Pattern
from proxy_upgrades.errors import (
    ImplementationNotUpgradeable,
    UpgradeFailed,
    UpgradeRejected,
    UpgradeTimeout,
)
from proxy_upgrades.handles import BeaconHandle, ProxyAdminHandle, ProxyHandle
from proxy_upgrades.params import Transactor
from proxy_upgrades.slots import IMPLEMENTATION_SLOT
from proxy_upgrades.storage import beacon_of

CallData = Union[bytes, str]


@contextmanager
def classified_upgrade_errors(description: str):
    """Maps ape transaction failures onto the upgrade error taxonomy."""
    try:
        yield
    except ContractLogicError as e:
        if isinstance(e.txn, ReceiptAPI):
            raise UpgradeFailed(
                f"{description} reverted in transaction {e.txn.txn_hash}: {e}"
            ) from e
        raise UpgradeRejected(f"{description} was rejected: {e}") from e
    except TransactionNotFoundError as e:
        raise UpgradeTimeout(f"{description} was not confirmed in time: {e}") from e


class UpgradeAuthority(ABC):
    pattern: Pattern

    def __init__(self, transactor: Optional[Transactor]):
        self.transactor = transactor

    @abstractmethod
    def upgrade(
        self, target: ProxyHandle, implementation: str, data: CallData = b""
    ) -> ReceiptAPI:
        """Points `target` at `implementation`, optionally calling `data` on it atomically."""
        raise NotImplementedError

    @abstractmethod
    def owner(self, target: ProxyHandle) -> ChecksumAddress:
        """Returns the account currently allowed to upgrade `target`."""
        raise NotImplementedError

    @abstractmethod
    def transfer(self, target: ProxyHandle, new_owner: str) -> ReceiptAPI:
        """
        Hands the upgrade authority over `target` to `new_owner`. Where the
        handover takes two steps this only nominates `new_owner`, who must
        then `accept` it.
        """
        raise NotImplementedError

    def pending_owner(self, target: ProxyHandle) -> Optional[ChecksumAddress]:
        """Returns the account a two-step handover is waiting on, if any."""
        return None

    def accept(self, target: ProxyHandle) -> ReceiptAPI:
        """Completes a two-step handover; the transactor must be the pending owner."""
        raise ValueError(f"Upgrade authority of {self.pattern.value} proxies moves in one step")


class BeaconAuthority(UpgradeAuthority):
    pattern = Pattern.BEACON

    @staticmethod
    def _beacon(target: ProxyHandle) -> BeaconHandle:
        if target.beacon is not None:
            return target.beacon
        return BeaconHandle(address=beacon_of(target.address))

    def upgrade(
        self, target: ProxyHandle, implementation: str, data: CallData = b""
    ) -> ReceiptAPI:
        if data:
            raise ValueError("Beacon upgrades cannot call into the new implementation")
        beacon = self._beacon(target).contract
        with classified_upgrade_errors(f"Beacon {beacon.address} upgrade"):
            return self.transactor.transact(beacon.upgradeTo, implementation)

    def owner(self, target: ProxyHandle) -> ChecksumAddress:
        return self._beacon(target).owner

    def transfer(self, target: ProxyHandle, new_owner: str) -> ReceiptAPI:
        beacon = self._beacon(target).contract
        return self.transactor.transact(beacon.transferOwnership, new_owner)


class TransparentAuthority(UpgradeAuthority):
    pattern = Pattern.TRANSPARENT

    def upgrade(
        self, target: ProxyHandle, implementation: str, data: CallData = b""
    ) -> ReceiptAPI:
        proxy_admin = ProxyAdminHandle.of(target.address).contract
        with classified_upgrade_errors(f"ProxyAdmin {proxy_admin.address} upgrade"):
            return self.transactor.transact(
                proxy_admin.upgradeAndCall, target.address, implementation, data
            )

    def owner(self, target: ProxyHandle) -> ChecksumAddress:
        return ProxyAdminHandle.of(target.address).owner

    def transfer(self, target: ProxyHandle, new_owner: str) -> ReceiptAPI:
        proxy_admin = ProxyAdminHandle.of(target.address).contract
        return self.transactor.transact(proxy_admin.transferOwnership, new_owner)


class UUPSAuthority(UpgradeAuthority):
    pattern = Pattern.UUPS

    @staticmethod
    def check_upgradeable(implementation: str) -> None:
        """
        Raises ImplementationNotUpgradeable unless `implementation` answers
        proxiableUUID() with the EIP1967 implementation slot.
        """
        txn = networks.provider.network.ecosystem.create_transaction(
            receiver=to_checksum_address(implementation),
            data=HexBytes(PROXIABLE_UUID_SELECTOR),
        )
        try:
            result = chain.provider.send_call(txn)
        except VirtualMachineError as e:
            raise ImplementationNotUpgradeable(
                f"{implementation} does not implement proxiableUUID(): {e}"
            ) from e

        if int.from_bytes(bytes(result), byteorder="big") != IMPLEMENTATION_SLOT.position:
            raise ImplementationNotUpgradeable(
                f"{implementation} proxiableUUID() returned {HexBytes(result).hex()}, "
                f"expected {IMPLEMENTATION_SLOT.word}"
            )

    def upgrade(
        self, target: ProxyHandle, implementation: str, data: CallData = b""
    ) -> ReceiptAPI:
        self.check_upgradeable(implementation)
        proxy = target.instance
        with classified_upgrade_errors(f"UUPS proxy {target.address} upgrade"):
            return self.transactor.transact(proxy.upgradeToAndCall, implementation, data)

    def owner(self, target: ProxyHandle) -> ChecksumAddress:
        return target.instance.owner()

    def transfer(self, target: ProxyHandle, new_owner: str) -> ReceiptAPI:
        proxy = target.instance
        return self.transactor.transact(proxy.transferOwnership, new_owner)

    def pending_owner(self, target: ProxyHandle) -> Optional[ChecksumAddress]:
        pending = target.instance.pendingOwner()
        if pending == ZERO_ADDRESS:
            return None
        return to_checksum_address(pending)

    def accept(self, target: ProxyHandle) -> ReceiptAPI:
        proxy = target.instance
        return self.transactor.transact(proxy.acceptOwnership)


AUTHORITIES: Dict[Pattern, Type[UpgradeAuthority]] = {
    Pattern.BEACON: BeaconAuthority,
    Pattern.TRANSPARENT: TransparentAuthority,
    Pattern.UUPS: UUPSAuthority,
}


def authority_for(
    pattern: Union[Pattern, str], transactor: Optional[Transactor]
) -> UpgradeAuthority:
    try:
        authority_class = AUTHORITIES[Pattern(pattern)]
    except ValueError:
        raise ValueError(f"Unsupported proxy pattern '{pattern}'")
    return authority_class(transactor=transactor)

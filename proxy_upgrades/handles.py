from typing import Dict, List, NamedTuple, Optional

from ape.contracts import ContractContainer, ContractInstance
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from proxy_upgrades.constants import OZ_DEPENDENCY, Pattern
from proxy_upgrades.storage import admin_of, beacon_of, implementation_of


class ImplementationDescriptor(NamedTuple):
    """A deployed implementation version."""

    name: str
    address: ChecksumAddress
    selectors: Dict[str, str]

    @classmethod
    def from_instance(cls, instance: ContractInstance) -> "ImplementationDescriptor":
        contract_type = instance.contract_type
        return cls(
            name=contract_type.name,
            address=to_checksum_address(instance.address),
            selectors=dict(contract_type.method_identifiers),
        )


class BeaconHandle(NamedTuple):
    address: ChecksumAddress

    @property
    def contract(self) -> ContractInstance:
        return OZ_DEPENDENCY.UpgradeableBeacon.at(self.address)

    @property
    def owner(self) -> ChecksumAddress:
        return self.contract.owner()


class ProxyAdminHandle(NamedTuple):
    address: ChecksumAddress

    @classmethod
    def of(cls, proxy_address: str) -> "ProxyAdminHandle":
        """Discovers the ProxyAdmin of a transparent proxy from its admin slot."""
        return cls(address=admin_of(proxy_address))

    @property
    def contract(self) -> ContractInstance:
        return OZ_DEPENDENCY.ProxyAdmin.at(self.address)

    @property
    def owner(self) -> ChecksumAddress:
        return self.contract.owner()


class ProxyHandle(NamedTuple):
    """
    A stable proxy address plus the ABI it is currently viewed through.

    The implementation is never cached: it is re-read from ledger storage on
    every access because an upgrade can change it underneath the handle.
    """

    address: ChecksumAddress
    pattern: Pattern
    container: ContractContainer
    beacon: Optional[BeaconHandle] = None

    @property
    def instance(self) -> ContractInstance:
        return self.container.at(self.address)

    @property
    def implementation(self) -> ChecksumAddress:
        return implementation_of(self.address, self.pattern)

    @property
    def resolved_beacon(self) -> ChecksumAddress:
        return beacon_of(self.address)

    def wrap(self, container: ContractContainer) -> "ProxyHandle":
        """Returns a handle for the same proxy viewed through another ABI."""
        return self._replace(container=container)


class Indirection(NamedTuple):
    """The proxy layer deployed in front of an implementation."""

    pattern: Pattern
    proxies: List[ProxyHandle]
    beacon: Optional[BeaconHandle] = None
    proxy_admin: Optional[ProxyAdminHandle] = None

    def wrap(self, container: ContractContainer) -> "Indirection":
        return self._replace(proxies=[proxy.wrap(container) for proxy in self.proxies])

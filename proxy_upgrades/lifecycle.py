from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Type

from ape.contracts import ContractInstance
from ape.exceptions import TransactionError, TransactionNotFoundError, VirtualMachineError

from proxy_upgrades.authority import authority_for
from proxy_upgrades.constants import BEACON_CONTRACT, Pattern
from proxy_upgrades.errors import (
    DeploymentFailed,
    InitializationFailed,
    OrchestrationError,
    StageFailed,
    UpgradeNotVerified,
)
from proxy_upgrades.handles import ImplementationDescriptor, Indirection
from proxy_upgrades.networks import network_identity
from proxy_upgrades.params import Deployer
from proxy_upgrades.probes import snapshot
from proxy_upgrades.registry import DeploymentRecordStore, UpgradeRecord
from proxy_upgrades.scenarios import Hook
from proxy_upgrades.utils import get_contract_container


class Stage(Enum):
    DEPLOY_IMPL_1 = "DeployImpl1"
    DEPLOY_IMPL_2 = "DeployImpl2"
    DEPLOY_INDIRECTION = "DeployIndirection"
    INITIALIZE = "Initialize"
    PROBE_PRE_UPGRADE = "ProbePreUpgrade"
    UPGRADE = "Upgrade"
    PROBE_POST_UPGRADE = "ProbePostUpgrade"
    VERIFY = "Verify"
    PERSIST = "Persist"
    DONE = "Done"


@contextmanager
def _transaction_errors_as(error_class: Type[OrchestrationError], description: str):
    try:
        yield
    except (TransactionError, VirtualMachineError, TransactionNotFoundError) as e:
        raise error_class(f"{description}: {e}") from e


class ProxyLifecycle:
    """
    Deploys two implementation versions behind a proxy, upgrades the proxy
    from the first to the second and verifies the result from raw storage.

    Stages run strictly in order and nothing is retried or rolled back.
    After each stage the addresses known so far are written to the record
    store, so an interrupted run leaves an inspectable record behind.
    """

    V1 = "v1"
    V2 = "v2"

    def __init__(
        self,
        deployer: Deployer,
        record_store: Optional[DeploymentRecordStore] = None,
        before_upgrade: Optional[Hook] = None,
        after_upgrade: Optional[Hook] = None,
    ):
        if deployer.upgrade_parameters is None:
            raise ValueError("Manifest does not declare an 'upgrade' section.")

        self.deployer = deployer
        self.upgrade_parameters = deployer.upgrade_parameters
        self.pattern: Pattern = self.upgrade_parameters.pattern
        self.proxy_info = deployer.proxy_parameters.resolve(self.upgrade_parameters.from_name)
        self.record_store = record_store or DeploymentRecordStore(deployer.record_filepath)
        self.authority = authority_for(self.pattern, transactor=deployer)
        self.before_upgrade = before_upgrade
        self.after_upgrade = after_upgrade

        self.implementations: Dict[str, ContractInstance] = dict()
        self.indirection: Optional[Indirection] = None
        self.layers: List[ContractInstance] = list()
        self.stage: Optional[Stage] = None
        self.record: Optional[UpgradeRecord] = None

    @property
    def descriptors(self) -> Dict[str, ImplementationDescriptor]:
        return {
            version: ImplementationDescriptor.from_instance(instance)
            for version, instance in self.implementations.items()
        }

    def run(self) -> UpgradeRecord:
        steps = [
            (Stage.DEPLOY_IMPL_1, self._deploy_v1),
            (Stage.DEPLOY_IMPL_2, self._deploy_v2),
            (Stage.DEPLOY_INDIRECTION, self._deploy_indirection),
            (Stage.INITIALIZE, self._initialize),
            (Stage.PROBE_PRE_UPGRADE, self._probe_pre_upgrade),
            (Stage.UPGRADE, self._upgrade),
            (Stage.PROBE_POST_UPGRADE, self._probe_post_upgrade),
            (Stage.VERIFY, self._verify),
            (Stage.PERSIST, self._persist),
        ]
        for stage, step in steps:
            print(f"\n[{self.pattern.value}] Stage {stage.value}")
            try:
                step()
            except Exception as e:
                if self.stage is not None:
                    self._checkpoint(self.stage)
                raise StageFailed(stage, e) from e

            self.stage = stage
            if stage != Stage.PERSIST:
                self._checkpoint(stage)

        self.stage = Stage.DONE
        return self.record

    #
    # Stages
    #

    def _deploy_v1(self) -> None:
        container = get_contract_container(self.upgrade_parameters.from_name)
        with _transaction_errors_as(DeploymentFailed, f"{container.contract_type.name} deployment"):
            self.implementations[self.V1] = self.deployer.deploy(container)

    def _deploy_v2(self) -> None:
        container = get_contract_container(self.upgrade_parameters.to_name)
        with _transaction_errors_as(DeploymentFailed, f"{container.contract_type.name} deployment"):
            self.implementations[self.V2] = self.deployer.deploy(container)

    def _deploy_indirection(self) -> None:
        container = get_contract_container(self.upgrade_parameters.from_name)
        with _transaction_errors_as(DeploymentFailed, f"{self.pattern.value} proxy deployment"):
            self.indirection = self.deployer.proxy(container, on_deployed=self.layers.append)

    def _initialize(self) -> None:
        initializer = self.proxy_info.initializer
        if initializer is None:
            print("(i) No initializer declared; proxies left uninitialized.")
            return
        if self.proxy_info.atomic_initialization:
            print(f"(i) {initializer.method_name} was called by the proxy constructor.")
            return

        for proxy in self.indirection.proxies:
            with _transaction_errors_as(
                InitializationFailed, f"{initializer.method_name} on {proxy.address}"
            ):
                self.deployer.initialize(proxy, initializer)

    def _probe_pre_upgrade(self) -> None:
        self._probe(self.before_upgrade)

    def _upgrade(self) -> None:
        v2 = self.implementations[self.V2]
        data = self.upgrade_parameters.resolve_call_data()

        # one beacon upgrade retargets every proxy reading from that beacon
        targets = self.indirection.proxies
        if self.pattern == Pattern.BEACON:
            targets = targets[:1]

        for target in targets:
            self.authority.upgrade(target, v2.address, data)

        container = get_contract_container(self.upgrade_parameters.to_name)
        self.indirection = self.indirection.wrap(container)

    def _probe_post_upgrade(self) -> None:
        self._probe(self.after_upgrade)

    def _verify(self) -> None:
        expected = self.implementations[self.V2].address
        for proxy in self.indirection.proxies:
            actual = proxy.implementation
            if actual.lower() != expected.lower():
                raise UpgradeNotVerified(
                    f"Proxy {proxy.address} resolves to {actual}, expected {expected}"
                )
            if self.pattern == Pattern.BEACON:
                beacon = proxy.resolved_beacon
                if beacon.lower() != self.indirection.beacon.address.lower():
                    raise UpgradeNotVerified(
                        f"Proxy {proxy.address} reads from beacon {beacon}, "
                        f"expected {self.indirection.beacon.address}"
                    )
            print(f"(i) Proxy {proxy.address} verified at implementation {actual}")

    def _persist(self) -> None:
        self.record = self._build_record(Stage.DONE)
        filepath = self.record_store.write(self.record)
        print(f"(i) Upgrade record written to {filepath}")
        self.deployer.finalize(deployments=self._deployed_contracts())

    #
    # Helpers
    #

    def _probe(self, hook: Optional[Hook]) -> None:
        if hook is not None:
            hook(self.indirection, self.deployer)
        for proxy in self.indirection.proxies:
            snapshot(proxy)

    def _deployed_contracts(self) -> List[ContractInstance]:
        contracts = list(self.implementations.values())
        contracts.extend(proxy.instance for proxy in self.indirection.proxies)
        if self.indirection.beacon:
            contracts.append(self.indirection.beacon.contract)
        return contracts

    def _layer_addresses(self):
        """Proxy and beacon addresses known so far, even when the indirection is incomplete."""
        indirection = self.indirection
        if indirection is not None:
            return (
                [proxy.address for proxy in indirection.proxies],
                indirection.proxy_admin.address if indirection.proxy_admin else None,
                indirection.beacon.address if indirection.beacon else None,
            )

        proxies, beacon = list(), None
        for instance in self.layers:
            if instance.contract_type.name == BEACON_CONTRACT:
                beacon = instance.address
            else:
                proxies.append(instance.address)
        return proxies, None, beacon

    def _build_record(self, stage: Stage) -> UpgradeRecord:
        proxies, proxy_admin, beacon = self._layer_addresses()
        return UpgradeRecord(
            pattern=self.pattern,
            implementations={
                version: descriptor.address for version, descriptor in self.descriptors.items()
            },
            proxies=proxies,
            proxy_admin=proxy_admin,
            beacon=beacon,
            network=network_identity(),
            stage=stage.value,
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    def _checkpoint(self, stage: Stage) -> None:
        self.record = self._build_record(stage)
        self.record_store.write(self.record)

import typing
from abc import ABC, abstractmethod
from collections import OrderedDict, namedtuple
from pathlib import Path
from typing import Any, Callable, Dict, List, NamedTuple, Optional

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.utils import ZERO_ADDRESS
from ape_accounts import KeyfileAccount
from eth_utils import to_checksum_address, to_hex
from ethpm_types import MethodABI
from web3.auto import w3

from proxy_upgrades.confirm import _confirm_resolution, _continue
from proxy_upgrades.constants import (
    BEACON_CONTRACT,
    PROXY_CONTRACTS,
    SUPPORTED_PATTERNS,
    Pattern,
)
from proxy_upgrades.handles import BeaconHandle, Indirection, ProxyAdminHandle, ProxyHandle
from proxy_upgrades.utils import (
    check_plugins,
    get_contract_container,
    load_manifest,
    validate_config,
    verify_contracts,
)

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
CONTRACT_PROXY_PARAMETER_KEY = "proxy"
UPGRADE_PARAMETER_KEY = "upgrade"


class LiveDeployments(NamedTuple):
    """Contracts deployed during the current run, keyed by contract name."""

    instances: Dict[str, ContractInstance]
    proxies: Dict[str, List[ProxyHandle]]

    @classmethod
    def empty(cls) -> "LiveDeployments":
        return cls(instances=dict(), proxies=dict())


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        deployments: LiveDeployments,
        constants: typing.Dict[str, Any] = None,
        check_for_proxy_instances: bool = True,
    ):
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.deployments = deployments
        self.constants = constants or dict()
        self.check_for_proxy_instances = check_for_proxy_instances


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        result = isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)
        return result


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self) -> Any:
        deployer_account = Deployer.get_account()
        if deployer_account is None:
            return ZERO_ADDRESS
        return deployer_account.address


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ValueError(f"Constant '{constant_name}' not found in deployment file.")

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a deployment constant."""
        return value.isupper()

    def resolve(self) -> Any:
        return self.constant_value


class Encode(Variable):
    ENCODE_PREFIX = "encode:"

    def __init__(self, variable: str, context: VariableContext):
        variable = variable[len(self.ENCODE_PREFIX) :]
        self.method_name, self.method_args = self._get_call_data(variable, context)
        self.contract_name = context.contract_name
        self.deployments = context.deployments

    @staticmethod
    def _get_call_data(variable, context) -> typing.Tuple[str, List[Any]]:
        variable_elements = variable.split(",")
        method_name = variable_elements[0]
        method_args = [_process_raw_value(arg, context) for arg in variable_elements[1:]]

        contract_name = context.contract_name
        contract_container = get_contract_container(contract_name)
        contract_method_abis = contract_container.contract_type.methods
        specific_method_abis = [abi for abi in contract_method_abis if abi.name == method_name]

        resolved_method_args = [_resolve_param(method_arg) for method_arg in method_args]
        _validate_method_args(method_abis=specific_method_abis, args=resolved_method_args)

        return method_name, method_args

    @classmethod
    def is_encode(cls, value: str) -> bool:
        """Returns True if the variable is a variable that needs encoding to bytes"""
        return value.startswith(cls.ENCODE_PREFIX)

    @classmethod
    def from_call(cls, call: str, context: VariableContext) -> "Encode":
        """Builds an encoded call from the manifest's 'method,arg,...' shorthand."""
        return cls(f"{cls.ENCODE_PREFIX}{call}", context)

    def resolve_call(self) -> typing.Tuple[str, List[Any]]:
        """Returns the method name and resolved arguments, unencoded."""
        return self.method_name, [_resolve_param(arg) for arg in self.method_args]

    def resolve(self) -> Any:
        contract_instance = self.deployments.instances.get(self.contract_name)
        if contract_instance is None:
            # logic contract not yet deployed - in eager validation check
            return "0xdeadbeef"  # something noticeable in case ever actually returned

        method_name, resolved_method_args = self.resolve_call()
        method_handler = getattr(contract_instance, method_name)
        encoded_bytes = method_handler.encode_input(*resolved_method_args)
        return to_hex(encoded_bytes)  # return as hex - just cleaner


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ValueError(f"Contract name {contract_name} not found")

        self.contract_name = contract_name
        self.deployments = context.deployments
        self.check_for_proxy_instances = context.check_for_proxy_instances

    def resolve(self) -> Any:
        """Resolves a contract address."""
        if self.check_for_proxy_instances:
            # check if contract is proxied - if so return proxy contract instead
            proxies = self.deployments.proxies.get(self.contract_name)
            if proxies:
                return proxies[0].address

        contract_instance = self.deployments.instances.get(self.contract_name)
        if contract_instance is None:
            # eager validation
            return ZERO_ADDRESS

        return contract_instance.address


def _resolve_param(value: Any) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v) for v in value]

    if isinstance(value, Variable):
        return value.resolve()

    return value  # literally a value


def _resolve_params(parameters: OrderedDict) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value)

    return resolved_parameters


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable.strip(Variable.VARIABLE_PREFIX)
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Encode.is_encode(variable):
        return Encode(variable, context)
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: OrderedDict, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _get_contract_entry(contract_info: Any) -> typing.Tuple[str, typing.Dict]:
    if isinstance(contract_info, str):
        return contract_info, dict()
    if isinstance(contract_info, dict) and len(contract_info) == 1:
        contract_name = list(contract_info.keys())[0]  # only one entry
        return contract_name, contract_info[contract_name] or dict()
    raise ValueError("Malformed constructor parameters YAML.")


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        contract_name, contract_data = _get_contract_entry(contract_info)
        contract_names.append(contract_name)
        if CONTRACT_PROXY_PARAMETER_KEY in contract_data:
            # proxy layers can be referenced by name, e.g. $UpgradeableBeacon
            proxy_data = contract_data[CONTRACT_PROXY_PARAMETER_KEY] or dict()
            pattern = proxy_data.get(ProxyParameters.PATTERN, Pattern.TRANSPARENT)
            if pattern not in SUPPORTED_PATTERNS:
                continue  # reported by ProxyParameters
            pattern = Pattern(pattern)
            contract_names.append(PROXY_CONTRACTS[pattern])
            if pattern == Pattern.BEACON:
                contract_names.append(BEACON_CONTRACT)

    return contract_names


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """Validates the constructor parameters against the constructor ABI."""
    if len(resolved_parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )
    if not abi_inputs:
        return  # no constructor parameters

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, resolved_input) in codex:
        name, value = resolved_input
        # validate name
        if abi_input.name != name:
            raise ConstructorParameters.Invalid(
                f"{contract_name} constructor parameter '{name}' at position {position} does not "
                f"match the expected ABI name '{abi_input.name}'."
            )

        # validate value type
        if not w3.is_encodable(abi_input.type, value):
            raise ConstructorParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


def validate_constructor_parameters(contracts_parameters) -> None:
    """Validates the constructor parameters for all contracts in a single config."""
    for contract, parameters in contracts_parameters.items():
        if not isinstance(parameters, dict):
            # this can happen if the yml file is malformed
            raise ValueError(f"Malformed constructor parameter config for {contract}.")

        resolved_parameters = _resolve_params(parameters=parameters)
        contract_container = get_contract_container(contract)
        _validate_constructor_abi_inputs(
            contract_name=contract,
            abi_inputs=contract_container.constructor.abi.inputs,
            resolved_parameters=resolved_parameters,
        )


class ConstructorParameters:
    """Represents the constructor parameters for a set of contracts."""

    class Invalid(Exception):
        """Raised when the constructor parameters are invalid"""

    def __init__(self, parameters: OrderedDict):
        self.parameters = parameters
        validate_constructor_parameters(parameters)

    @classmethod
    def from_config(
        cls, config: typing.Dict, deployments: LiveDeployments
    ) -> "ConstructorParameters":
        """Loads the constructor parameters from a manifest."""
        print("Processing contract constructor parameters...")
        contracts_config = OrderedDict()
        contract_names = _get_contract_names(config)
        constants = config.get("constants")
        for contract_info in config["contracts"]:
            contract_name, contract_data = _get_contract_entry(contract_info)
            parameter_values = OrderedDict()
            if CONTRACT_CONSTRUCTOR_PARAMETER_KEY in contract_data:
                parameter_values = _process_raw_values(
                    contract_data[CONTRACT_CONSTRUCTOR_PARAMETER_KEY],
                    VariableContext(
                        contract_names=contract_names,
                        contract_name=contract_name,
                        deployments=deployments,
                        constants=constants,
                    ),
                )
            contracts_config[contract_name] = parameter_values

        return cls(parameters=contracts_config)

    def resolve(self, contract_name: str) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        resolved_params = _resolve_params(self.parameters[contract_name])
        return resolved_params


def validate_proxy_info(contracts_proxy_info) -> None:
    """Validates the proxy layers of every proxied contract."""
    for contract, proxy_info in contracts_proxy_info.items():
        for layer in proxy_info.layers:
            resolved_parameters = _resolve_params(layer.constructor_params)
            _validate_constructor_abi_inputs(
                contract_name=layer.container.contract_type.name,
                abi_inputs=layer.container.constructor.abi.inputs,
                resolved_parameters=resolved_parameters,
            )


class ProxyParameters:
    """Represents the proxy parameters for contracts that are to be proxied"""

    PATTERN = "pattern"
    INSTANCES = "instances"
    INITIALIZER = "initializer"

    # implicit constructor arguments: wired by the deployer, never by the manifest
    IMPLICIT_PARAMETERS = {"_logic", "implementation", "implementation_", "beacon", "_data", "data"}

    class Invalid(Exception):
        """Raised when the proxy parameters are invalid"""

    class ProxyLayer(typing.NamedTuple):
        container: ContractContainer
        constructor_params: OrderedDict
        instances: int = 1

    class ProxyInfo(typing.NamedTuple):
        pattern: Pattern
        layers: List["ProxyParameters.ProxyLayer"]
        initializer: Optional[Encode]

        @property
        def atomic_initialization(self) -> bool:
            """Transparent and UUPS proxies run the initializer inside their constructor."""
            return self.pattern != Pattern.BEACON

    def __init__(self, contracts_proxy_info: OrderedDict):
        self.contracts_proxy_info = contracts_proxy_info
        validate_proxy_info(contracts_proxy_info)

    @classmethod
    def from_config(cls, config: typing.Dict, deployments: LiveDeployments) -> "ProxyParameters":
        """Loads the proxy parameters from a manifest."""
        print("Processing proxy parameters...")
        contract_names = _get_contract_names(config)
        constants = config.get("constants")

        contracts_proxy_info = OrderedDict()
        for contract_info in config["contracts"]:
            contract_name, contract_data = _get_contract_entry(contract_info)
            if CONTRACT_PROXY_PARAMETER_KEY not in contract_data:
                continue

            proxy_info = cls._generate_proxy_info(
                contract_data,
                VariableContext(
                    contract_names=contract_names,
                    contract_name=contract_name,
                    deployments=deployments,
                    constants=constants,
                    check_for_proxy_instances=False,
                ),
            )
            contracts_proxy_info.update({contract_name: proxy_info})

        return cls(contracts_proxy_info=contracts_proxy_info)

    def contract_needs_proxy(self, contract_name) -> bool:
        proxy_info = self.contracts_proxy_info.get(contract_name)
        return proxy_info is not None

    def resolve(self, contract_name: str) -> "ProxyParameters.ProxyInfo":
        proxy_info = self.contracts_proxy_info.get(contract_name)
        if not proxy_info:
            raise ValueError(f"Unexpected contract to proxy: {contract_name}")
        return proxy_info

    @classmethod
    def _generate_proxy_info(cls, contract_data, variable_context: VariableContext) -> ProxyInfo:
        proxy_data = contract_data[CONTRACT_PROXY_PARAMETER_KEY] or dict()

        try:
            pattern = Pattern(proxy_data.get(cls.PATTERN, Pattern.TRANSPARENT))
        except ValueError:
            raise cls.Invalid(f"Unsupported proxy pattern '{proxy_data.get(cls.PATTERN)}'")

        instances = int(proxy_data.get(cls.INSTANCES, 1))
        if instances < 1:
            raise cls.Invalid("At least one proxy instance is required")
        if instances > 1 and pattern != Pattern.BEACON:
            raise cls.Invalid("Only beacon proxies can share an implementation across instances")

        initializer = None
        if proxy_data.get(cls.INITIALIZER):
            initializer = Encode.from_call(proxy_data[cls.INITIALIZER], variable_context)

        layers_data = cls._default_proxy_parameters(
            pattern, variable_context.contract_name, initializer
        )
        if CONTRACT_CONSTRUCTOR_PARAMETER_KEY in proxy_data:
            overrides = proxy_data[CONTRACT_CONSTRUCTOR_PARAMETER_KEY] or dict()
            cls._apply_overrides(layers_data, overrides)

        layers = list()
        for contract_type, constructor_data in layers_data:
            processed_values = _process_raw_values(constructor_data, variable_context)
            layer_instances = instances if contract_type == PROXY_CONTRACTS[pattern] else 1
            layers.append(
                cls.ProxyLayer(
                    container=get_contract_container(contract_type),
                    constructor_params=processed_values,
                    instances=layer_instances,
                )
            )

        return cls.ProxyInfo(pattern=pattern, layers=layers, initializer=initializer)

    @classmethod
    def _apply_overrides(cls, layers_data, overrides: typing.Dict) -> None:
        for name, value in overrides.items():
            if name in cls.IMPLICIT_PARAMETERS:
                raise cls.Invalid(
                    f"'{name}' parameter cannot be specified: it is implicitly wired "
                    "to the contract being proxied (use 'initializer' for setup calls)"
                )
            matching_layers = [params for _, params in layers_data if name in params]
            if not matching_layers:
                raise cls.Invalid(f"Unknown proxy constructor parameter '{name}'")
            for params in matching_layers:
                params[name] = value

    @classmethod
    def _default_proxy_parameters(
        cls, pattern: Pattern, contract_name: str, initializer: Optional[Encode]
    ) -> List[typing.Tuple[str, OrderedDict]]:
        implementation = f"${contract_name}"
        data = initializer if initializer is not None else b""
        if pattern == Pattern.TRANSPARENT:
            return [
                (
                    PROXY_CONTRACTS[pattern],
                    OrderedDict(
                        {"_logic": implementation, "initialOwner": "$deployer", "_data": data}
                    ),
                )
            ]
        if pattern == Pattern.UUPS:
            return [
                (
                    PROXY_CONTRACTS[pattern],
                    OrderedDict({"implementation": implementation, "_data": data}),
                )
            ]
        return [
            (
                BEACON_CONTRACT,
                OrderedDict({"implementation_": implementation, "initialOwner": "$deployer"}),
            ),
            (
                PROXY_CONTRACTS[pattern],
                OrderedDict({"beacon": f"${BEACON_CONTRACT}", "data": b""}),
            ),
        ]


class UpgradeParameters:
    """Represents the upgrade of a proxied contract to a new implementation."""

    FROM = "from"
    TO = "to"
    CALL = "call"

    class Invalid(Exception):
        """Raised when the upgrade parameters are invalid"""

    def __init__(self, from_name: str, to_name: str, pattern: Pattern, call: Optional[Encode]):
        self.from_name = from_name
        self.to_name = to_name
        self.pattern = pattern
        self.call = call

    @classmethod
    def from_config(
        cls,
        config: typing.Dict,
        proxy_parameters: ProxyParameters,
        deployments: LiveDeployments,
    ) -> Optional["UpgradeParameters"]:
        upgrade_data = config.get(UPGRADE_PARAMETER_KEY)
        if not upgrade_data:
            return None

        print("Processing upgrade parameters...")
        contract_names = _get_contract_names(config)
        try:
            from_name, to_name = upgrade_data[cls.FROM], upgrade_data[cls.TO]
        except KeyError as e:
            raise cls.Invalid(f"Upgrade parameters missing '{e.args[0]}' field.")

        if not proxy_parameters.contract_needs_proxy(from_name):
            raise cls.Invalid(f"{from_name} is not proxied; there is nothing to upgrade")
        if to_name not in contract_names:
            raise cls.Invalid(f"Upgrade target {to_name} is not declared in the manifest")
        if proxy_parameters.contract_needs_proxy(to_name):
            raise cls.Invalid(f"Upgrade target {to_name} must not declare its own proxy")

        pattern = proxy_parameters.resolve(from_name).pattern
        call = None
        if upgrade_data.get(cls.CALL):
            if pattern == Pattern.BEACON:
                raise cls.Invalid("Beacon upgrades do not support a reinitialization call")
            call = Encode.from_call(
                upgrade_data[cls.CALL],
                VariableContext(
                    contract_names=contract_names,
                    contract_name=to_name,
                    deployments=deployments,
                    constants=config.get("constants"),
                ),
            )

        return cls(from_name=from_name, to_name=to_name, pattern=pattern, call=call)

    def resolve_call_data(self) -> typing.Union[str, bytes]:
        """Encodes the reinitialization call against the deployed target, if any."""
        if self.call is None:
            return b""
        return self.call.resolve()


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        if isinstance(self._account, KeyfileAccount):
            self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        print(message)
        if not self._autosign:
            _continue()

        result = method(*args, sender=self._account)
        return result


class Deployer(Transactor):
    """
    Represents an ape account plus
    deployment parameters for a set of contracts, plus validated/annotated execution.
    """

    __DEPLOYER_ACCOUNT: AccountAPI = None

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ):
        super().__init__(account, autosign)

        check_plugins(verify=verify)
        self.path = path
        self.config = config
        self.record_filepath = validate_config(config=self.config)
        self.deployments = LiveDeployments.empty()
        self.constructor_parameters = ConstructorParameters.from_config(
            self.config, self.deployments
        )
        self.proxy_parameters = ProxyParameters.from_config(self.config, self.deployments)
        self.upgrade_parameters = UpgradeParameters.from_config(
            self.config, self.proxy_parameters, self.deployments
        )

        # Little trick to expose constants as attributes (e.g., deployer.constants.FOO)
        constants = config.get("constants", {})
        _Constants = namedtuple("_Constants", list(constants))
        self.constants = _Constants(**constants)

        self._set_account(self._account)
        self.verify = verify
        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "Deployer":
        config = load_manifest(filepath)
        return cls(config=config, path=filepath, *args, **kwargs)

    @classmethod
    def get_account(cls) -> AccountAPI:
        """Returns the deployer account."""
        return cls.__DEPLOYER_ACCOUNT

    @classmethod
    def _set_account(cls, deployer: AccountAPI) -> None:
        """Sets the deployer account."""
        cls.__DEPLOYER_ACCOUNT = deployer

    def _get_kwargs(self) -> typing.Dict[str, Any]:
        """Returns the deployment kwargs."""
        return {"publish": self.verify}

    def deploy(self, container: ContractContainer) -> ContractInstance:
        contract_name = container.contract_type.name

        resolved_constructor_params = self.constructor_parameters.resolve(contract_name)
        instance = self._deploy_contract(container, resolved_constructor_params)
        self.deployments.instances[contract_name] = instance
        return instance

    def _deploy_contract(
        self, container: ContractContainer, resolved_params: OrderedDict
    ) -> ContractInstance:
        contract_name = container.contract_type.name
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)
        deployment_params = [container, *resolved_params.values()]
        kwargs = self._get_kwargs()

        deployer_account = self.get_account()
        return deployer_account.deploy(*deployment_params, **kwargs)

    def proxy(
        self,
        container: ContractContainer,
        on_deployed: Optional[Callable[[ContractInstance], None]] = None,
    ) -> Indirection:
        """
        Deploys the indirection layer(s) declared for an already deployed
        implementation and returns handles to the resulting proxies.

        `on_deployed` is called with every layer contract as soon as it is on
        chain, before the next one is deployed.
        """
        target_contract_name = container.contract_type.name
        if target_contract_name not in self.deployments.instances:
            raise ValueError(f"{target_contract_name} must be deployed before it is proxied")

        proxy_info = self.proxy_parameters.resolve(target_contract_name)
        beacon = None
        proxy_instances = list()
        for layer in proxy_info.layers:
            layer_name = layer.container.contract_type.name
            print(
                f"\nDeploying {layer.instances} {layer_name} "
                f"contract(s) to proxy {target_contract_name}."
            )
            for _ in range(layer.instances):
                resolved_params = _resolve_params(layer.constructor_params)
                instance = self._deploy_contract(layer.container, resolved_params=resolved_params)
                self.deployments.instances[layer_name] = instance
                if on_deployed is not None:
                    on_deployed(instance)
                if layer_name == BEACON_CONTRACT:
                    beacon = BeaconHandle(address=to_checksum_address(instance.address))
                else:
                    proxy_instances.append(instance)

        proxies = list()
        for instance in proxy_instances:
            print(
                f"\nWrapping {target_contract_name} into {instance.contract_type.name} "
                f"(as type {target_contract_name}) at {instance.address}."
            )
            handle = ProxyHandle(
                address=to_checksum_address(instance.address),
                pattern=proxy_info.pattern,
                container=container,
                beacon=beacon,
            )
            proxies.append(handle)
        self.deployments.proxies[target_contract_name] = proxies

        proxy_admin = None
        if proxy_info.pattern == Pattern.TRANSPARENT:
            proxy_admin = ProxyAdminHandle.of(proxies[0].address)

        return Indirection(
            pattern=proxy_info.pattern,
            proxies=proxies,
            beacon=beacon,
            proxy_admin=proxy_admin,
        )

    def initialize(self, handle: ProxyHandle, initializer: Encode) -> ReceiptAPI:
        """Calls an initializer through a proxy that was deployed without one."""
        method_name, args = initializer.resolve_call()
        method = getattr(handle.instance, method_name)
        return self.transact(method, *args)

    def finalize(self, deployments: List[ContractInstance]) -> None:
        """Optionally publishes the deployments to block explorers."""
        if self.verify:
            verify_contracts(contracts=deployments)

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Config: {self.path}",
            f"Record: {self.record_filepath}",
            f"Verify: {self.verify}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )

from typing import Any, Callable, Dict

from ape.exceptions import ContractLogicError

from proxy_upgrades.constants import COUNTER_PROBE_METHODS
from proxy_upgrades.handles import ProxyHandle


def expect_revert(description: str, method: Callable, *args, **kwargs) -> bool:
    """
    Performs an operation that should revert. Returns True if it did;
    an unexpected success is reported and returns False.
    """
    try:
        method(*args, **kwargs)
    except ContractLogicError as e:
        print(f"(i) {description} reverted as expected: {e}")
        return True
    print(f"WARNING: {description} succeeded but was expected to revert")
    return False


def snapshot(proxy: ProxyHandle) -> Dict[str, Any]:
    """
    Reads whichever counter views the proxy's current ABI exposes.
    Views that revert are reported as None.
    """
    instance = proxy.instance
    view_names = {abi.name for abi in instance.contract_type.view_methods}
    state = dict()
    for method_name in COUNTER_PROBE_METHODS:
        if method_name not in view_names:
            continue
        try:
            state[method_name] = getattr(instance, method_name)()
        except ContractLogicError:
            # the live implementation may not match the ABI the handle is wrapped as
            state[method_name] = None

    pretty_state = ", ".join(f"{k}={v}" for k, v in state.items())
    print(f"{instance.contract_type.name}[{proxy.address[:10]}]: {pretty_state}")
    return state

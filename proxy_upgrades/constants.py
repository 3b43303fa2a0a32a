from enum import Enum
from pathlib import Path

from ape import project

import proxy_upgrades

#
# Filesystem
#

PACKAGE_DIR = Path(proxy_upgrades.__file__).parent
CONSTRUCTOR_PARAMS_DIR = PACKAGE_DIR / "constructor_params"
DEPLOYMENTS_DIR = Path.cwd() / "deployments"

#
# Networks
#

LOCAL_BLOCKCHAIN_ENVIRONMENTS = ["local"]
FORKED_NETWORK_SUFFIX = "-fork"

#
# Proxy patterns
#


class Pattern(str, Enum):
    BEACON = "beacon"
    TRANSPARENT = "transparent"
    UUPS = "uups"


SUPPORTED_PATTERNS = [pattern.value for pattern in Pattern]

#
# Contracts
#

OZ_DEPENDENCY = project.dependencies["openzeppelin"]["5.0.0"]

# EIP1967 labels - https://eips.ethereum.org/EIPS/eip-1967
EIP1967_IMPLEMENTATION_LABEL = "eip1967.proxy.implementation"
EIP1967_ADMIN_LABEL = "eip1967.proxy.admin"
EIP1967_BEACON_LABEL = "eip1967.proxy.beacon"

# EIP1967 Implementation slot - https://eips.ethereum.org/EIPS/eip-1967#logic-contract-address
EIP1967_IMPLEMENTATION_SLOT = 0x360894A13BA1A3210667C828492DB98DCA3E2076CC3735A920A3CA505D382BBC

# EIP1967 Admin slot - https://eips.ethereum.org/EIPS/eip-1967#admin-address
EIP1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

# EIP1967 Beacon slot - https://eips.ethereum.org/EIPS/eip-1967#beacon-contract-address
EIP1967_BEACON_SLOT = 0xA3F0AD74E5423AEBFD80D3EF4346578335A9A72AEAEE59FF6CB3582B35133D50

# OZ UpgradeableBeacon layout: slot 0 is Ownable._owner, slot 1 is _implementation
BEACON_IMPLEMENTATION_SLOT = 1

# keccak256("proxiableUUID()")[:4]
PROXIABLE_UUID_SELECTOR = "0x52d1902d"

PROXY_CONTRACTS = {
    Pattern.TRANSPARENT: "TransparentUpgradeableProxy",
    Pattern.UUPS: "ERC1967Proxy",
    Pattern.BEACON: "BeaconProxy",
}
BEACON_CONTRACT = "UpgradeableBeacon"

#
# Counter probes
#

COUNTER_PROBE_METHODS = ["getCount", "getVersion", "getMultiplier"]

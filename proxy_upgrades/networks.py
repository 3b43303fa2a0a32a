from ape import networks

from proxy_upgrades.constants import FORKED_NETWORK_SUFFIX, LOCAL_BLOCKCHAIN_ENVIRONMENTS


def is_local_network() -> bool:
    """True for the in-process test chain and for forks of a live network."""
    network_name = networks.provider.network.name
    return (
        network_name in LOCAL_BLOCKCHAIN_ENVIRONMENTS
        or network_name.endswith(FORKED_NETWORK_SUFFIX)
    )


def network_identity() -> dict:
    """Identifies the network a run executed against, for deployment records."""
    network = networks.provider.network
    return {
        "ecosystem": network.ecosystem.name,
        "name": network.name,
        "chain_id": network.chain_id,
    }

from typing import NamedTuple

from eth_typing import HexStr
from eth_utils import keccak

from proxy_upgrades.constants import (
    EIP1967_ADMIN_LABEL,
    EIP1967_BEACON_LABEL,
    EIP1967_IMPLEMENTATION_LABEL,
)

WORD_SIZE = 32
SLOT_SPACE = 2 ** (WORD_SIZE * 8)


class StorageSlot(NamedTuple):
    """A storage location derived from a human-readable label."""

    label: str
    position: int

    @property
    def word(self) -> HexStr:
        """The slot position as a 0x-prefixed, zero-padded 32-byte hex word."""
        return HexStr(f"0x{self.position:0{WORD_SIZE * 2}x}")


def derive_slot(label: str) -> StorageSlot:
    """
    Returns the slot at keccak256(label) - 1.

    Subtracting one moves the slot off the hash preimage so that it can never
    coincide with a slot assigned by the sequential storage layout.
    """
    digest = int.from_bytes(keccak(text=label), byteorder="big")
    return StorageSlot(label=label, position=(digest - 1) % SLOT_SPACE)


IMPLEMENTATION_SLOT = derive_slot(EIP1967_IMPLEMENTATION_LABEL)
ADMIN_SLOT = derive_slot(EIP1967_ADMIN_LABEL)
BEACON_SLOT = derive_slot(EIP1967_BEACON_LABEL)

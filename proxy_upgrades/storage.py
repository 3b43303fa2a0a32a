"""
Raw storage reads for proxy metadata.

Everything here bypasses contract accessors and reads the ledger's storage
directly, so a proxy or implementation cannot misreport where it points.
"""

from typing import Union

from ape import chain
from ape.utils import EMPTY_BYTES32
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from proxy_upgrades.constants import BEACON_IMPLEMENTATION_SLOT, Pattern
from proxy_upgrades.errors import MalformedStorageWord
from proxy_upgrades.slots import (
    ADMIN_SLOT,
    BEACON_SLOT,
    IMPLEMENTATION_SLOT,
    WORD_SIZE,
    StorageSlot,
)

ADDRESS_SIZE = 20

Slot = Union[int, StorageSlot]


def _position(slot: Slot) -> int:
    if isinstance(slot, StorageSlot):
        return slot.position
    return slot


def read_slot(address: str, slot: Slot) -> bytes:
    """Returns the 32-byte word stored at `slot` of the contract at `address`."""
    word = chain.provider.get_storage_at(address=address, slot=_position(slot))
    return bytes(word).rjust(WORD_SIZE, b"\x00")


def decode_address(word: bytes, strict: bool = True) -> ChecksumAddress:
    """
    Decodes an address from the low-order 20 bytes of a storage word.

    In strict mode the 12 high-order bytes must be zero padding; otherwise they
    are discarded without inspection.
    """
    word = bytes(word)
    if len(word) > WORD_SIZE:
        raise MalformedStorageWord(f"Storage word is {len(word)} bytes long")
    word = word.rjust(WORD_SIZE, b"\x00")
    padding, address = word[:-ADDRESS_SIZE], word[-ADDRESS_SIZE:]
    if strict and any(padding):
        raise MalformedStorageWord(
            f"Storage word 0x{word.hex()} has non-zero padding above the address"
        )
    return to_checksum_address(address)


def read_slot_as_address(address: str, slot: Slot, strict: bool = True) -> ChecksumAddress:
    word = read_slot(address=address, slot=slot)
    return decode_address(word, strict=strict)


def is_empty_slot(address: str, slot: Slot) -> bool:
    return read_slot(address=address, slot=slot) == EMPTY_BYTES32


def admin_of(proxy_address: str) -> ChecksumAddress:
    """Returns the admin recorded in the EIP1967 admin slot of a proxy."""
    if is_empty_slot(proxy_address, ADMIN_SLOT):
        raise ValueError(
            f"Admin slot for contract at {proxy_address} is empty. "
            "Are you sure this is an EIP1967-compatible proxy?"
        )
    return read_slot_as_address(proxy_address, ADMIN_SLOT)


def beacon_of(proxy_address: str) -> ChecksumAddress:
    """Returns the beacon recorded in the EIP1967 beacon slot of a proxy."""
    if is_empty_slot(proxy_address, BEACON_SLOT):
        raise ValueError(f"Beacon slot for contract at {proxy_address} is empty.")
    return read_slot_as_address(proxy_address, BEACON_SLOT)


def beacon_implementation(beacon_address: str) -> ChecksumAddress:
    return read_slot_as_address(beacon_address, BEACON_IMPLEMENTATION_SLOT)


def implementation_of(proxy_address: str, pattern: Pattern) -> ChecksumAddress:
    """Resolves the implementation a proxy currently delegates to."""
    if Pattern(pattern) == Pattern.BEACON:
        return beacon_implementation(beacon_of(proxy_address))
    return read_slot_as_address(proxy_address, IMPLEMENTATION_SLOT)

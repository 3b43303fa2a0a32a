#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, network_option

from proxy_upgrades.authority import authority_for
from proxy_upgrades.constants import BEACON_IMPLEMENTATION_SLOT, Pattern
from proxy_upgrades.handles import ProxyHandle
from proxy_upgrades.options import lax_option, pattern_option, proxy_option
from proxy_upgrades.slots import ADMIN_SLOT, BEACON_SLOT, IMPLEMENTATION_SLOT
from proxy_upgrades.storage import read_slot, read_slot_as_address
from proxy_upgrades.utils import get_contract_container


def _echo_slot(name, address, slot, strict):
    word = read_slot(address=address, slot=slot)
    value = read_slot_as_address(address=address, slot=slot, strict=strict)
    click.echo(f"{name}: {value}")
    click.echo(f"  raw word 0x{word.hex()}")
    return value


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@proxy_option
@pattern_option
@lax_option
@click.option(
    "--contract",
    "-c",
    help="Contract name to view a UUPS proxy through when reading its owner.",
    default=None,
)
def cli(network, proxy, pattern, lax, contract):
    """Read the upgrade metadata of a proxy straight from ledger storage."""
    click.echo(f"Connected to {network.name} network.")
    pattern = Pattern(pattern)
    strict = not lax

    if pattern == Pattern.BEACON:
        beacon = _echo_slot("beacon", proxy, BEACON_SLOT, strict)
        _echo_slot("implementation", beacon, BEACON_IMPLEMENTATION_SLOT, strict)
    else:
        _echo_slot("implementation", proxy, IMPLEMENTATION_SLOT, strict)
    if pattern == Pattern.TRANSPARENT:
        _echo_slot("admin", proxy, ADMIN_SLOT, strict)

    if pattern == Pattern.UUPS and contract is None:
        click.secho("Pass --contract to read the owner of a UUPS proxy.", fg="yellow")
        return

    container = get_contract_container(contract) if contract else None
    handle = ProxyHandle(address=proxy, pattern=pattern, container=container)
    authority = authority_for(pattern, transactor=None)
    click.echo(f"upgrade authority: {authority.owner(handle)}")
    pending_owner = authority.pending_owner(handle)
    if pending_owner is not None:
        click.echo(f"pending upgrade authority: {pending_owner}")

#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from proxy_upgrades.authority import authority_for
from proxy_upgrades.constants import Pattern
from proxy_upgrades.handles import ProxyHandle
from proxy_upgrades.options import autosign_option, new_owner_option, pattern_option, proxy_option
from proxy_upgrades.params import Transactor
from proxy_upgrades.utils import check_plugins, get_contract_container


@click.command(cls=ConnectedProviderCommand)
@account_option()
@network_option(required=True)
@proxy_option
@pattern_option
@new_owner_option
@autosign_option
@click.option(
    "--contract",
    "-c",
    help="Contract name the UUPS proxy currently runs (required for uups).",
    default=None,
)
@click.option(
    "--accept",
    help="Accept a pending two-step handover as the nominated owner.",
    is_flag=True,
    default=False,
)
def cli(network, account, proxy, pattern, new_owner, autosign, contract, accept):
    """Hand the right to upgrade a proxy over to another account."""
    check_plugins()
    click.echo(f"Connected to {network.name} network.")
    pattern = Pattern(pattern)
    if pattern == Pattern.UUPS and contract is None:
        raise click.UsageError("--contract is required for uups proxies")
    if accept == (new_owner is not None):
        raise click.UsageError("Pass exactly one of --new-owner or --accept")

    container = get_contract_container(contract) if contract else None
    handle = ProxyHandle(address=proxy, pattern=pattern, container=container)
    transactor = Transactor(account=account, autosign=autosign)
    authority = authority_for(pattern, transactor=transactor)
    sender = transactor.get_account().address

    previous_owner = authority.owner(handle)
    if accept:
        pending_owner = authority.pending_owner(handle)
        if pending_owner != sender:
            raise click.ClickException(
                f"{sender} is not the pending owner of {proxy} (pending: {pending_owner})"
            )
        authority.accept(handle)
    else:
        if previous_owner != sender:
            raise click.ClickException(
                f"{sender} is not the upgrade authority of {proxy} (owned by {previous_owner})"
            )
        authority.transfer(handle, new_owner)

    pending_owner = authority.pending_owner(handle)
    if pending_owner is not None:
        click.secho(
            f"Upgrade authority of {proxy} stays with {previous_owner} "
            f"until {pending_owner} accepts it (--accept)",
            fg="yellow",
        )
        return
    click.secho(
        f"Upgrade authority of {proxy} moved from {previous_owner} to {authority.owner(handle)}",
        fg="green",
    )

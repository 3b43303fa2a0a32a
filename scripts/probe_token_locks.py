#!/usr/bin/python3

import click
from ape import accounts, project
from ape.cli import ConnectedProviderCommand, network_option

from proxy_upgrades.networks import is_local_network
from proxy_upgrades.params import Deployer
from proxy_upgrades.scenarios import token_lock_scenario
from proxy_upgrades.utils import get_manifest_filepath

MANIFEST_FILEPATH = get_manifest_filepath("lockable-token")


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
def cli(network):
    """Deploy a LockableToken and check that its lock and pause guards hold."""
    if not is_local_network():
        raise click.UsageError("Token lock probes use test accounts; run them on a local network")

    owner, holder, recipient = (accounts.test_accounts[i] for i in range(3))
    deployer = Deployer.from_yaml(
        filepath=MANIFEST_FILEPATH, verify=False, account=owner, autosign=True
    )
    token = deployer.deploy(project.LockableToken)
    results = token_lock_scenario(token, deployer, holder=holder, recipient=recipient)

    failed = [name for name, reverted in results.items() if not reverted]
    if failed:
        raise click.ClickException(f"Guards did not hold: {', '.join(failed)}")
    click.secho("All token guards held.", fg="green")

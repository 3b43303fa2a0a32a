#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from proxy_upgrades.constants import Pattern
from proxy_upgrades.options import autosign_option, manifest_option, verify_option
from scripts.utils import run_upgrade


@click.command(cls=ConnectedProviderCommand)
@account_option()
@network_option(required=True)
@manifest_option
@autosign_option
@verify_option
@click.option(
    "--exercise/--no-exercise",
    help="Call the counter before and after the upgrade.",
    default=True,
)
def cli(network, account, manifest, autosign, verify, exercise):
    """Deploy CounterBeaconV1 behind a beacon shared by two proxies and upgrade the beacon to V2."""
    click.echo(f"Connected to {network.name} network.")
    run_upgrade(
        pattern=Pattern.BEACON,
        account=account,
        manifest=manifest,
        autosign=autosign,
        verify=verify,
        exercise=exercise,
    )

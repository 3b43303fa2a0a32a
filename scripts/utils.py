from pathlib import Path
from typing import Optional

import click
from ape.api import AccountAPI

from proxy_upgrades.constants import Pattern
from proxy_upgrades.errors import StageFailed
from proxy_upgrades.lifecycle import ProxyLifecycle
from proxy_upgrades.params import Deployer
from proxy_upgrades.registry import UpgradeRecord
from proxy_upgrades.scenarios import SCENARIOS
from proxy_upgrades.utils import get_manifest_filepath


def echo_record(record: UpgradeRecord) -> None:
    click.secho(f"\n{record.pattern.value.capitalize()} upgrade ({record.stage})", bold=True)
    for version, address in record.implementations.items():
        click.echo(f"  implementation {version}: {address}")
    for address in record.proxies:
        click.echo(f"  proxy: {address}")
    if record.proxy_admin:
        click.echo(f"  proxy admin: {record.proxy_admin}")
    if record.beacon:
        click.echo(f"  beacon: {record.beacon}")
    network = record.network
    click.echo(f"  network: {network['ecosystem']}:{network['name']} ({network['chain_id']})")


def run_upgrade(
    pattern: Pattern,
    account: AccountAPI,
    manifest: Optional[str],
    autosign: bool,
    verify: bool,
    exercise: bool = True,
) -> UpgradeRecord:
    """Runs the full deploy-upgrade-verify lifecycle for one proxy pattern."""
    filepath = Path(manifest) if manifest else get_manifest_filepath(pattern.value)
    deployer = Deployer.from_yaml(
        filepath=filepath, verify=verify, account=account, autosign=autosign
    )

    scenario = SCENARIOS[pattern]
    lifecycle = ProxyLifecycle(
        deployer=deployer,
        before_upgrade=scenario.before_upgrade if exercise else None,
        after_upgrade=scenario.after_upgrade if exercise else None,
    )
    try:
        record = lifecycle.run()
    except StageFailed as e:
        if lifecycle.record is not None:
            click.secho(f"Checkpoint left at {lifecycle.record_store.filepath}:", fg="yellow")
            echo_record(lifecycle.record)
        if isinstance(e.cause, click.Abort):
            raise e.cause
        raise click.ClickException(str(e))

    echo_record(record)
    click.secho(f"\n{pattern.value.capitalize()} upgrade verified.", fg="green")
    return record

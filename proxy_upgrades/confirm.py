from collections import OrderedDict

import click
from ape.utils import ZERO_ADDRESS


def _continue() -> None:
    """Asks the operator to go on; refusing raises click.Abort."""
    click.confirm("Continue?", default=True, abort=True)


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """
    Shows the resolved constructor arguments of `contract_name` and asks for
    confirmation before it is deployed.

    A `$ContractName` reference that resolved before its target was deployed
    comes out as the zero address. A proxy layer built on it would point at
    nothing, so that case is confirmed a second time.
    """
    click.echo(f"\nDeploying {contract_name}")
    if not resolved_params:
        click.echo("\t(no constructor parameters)")
    for name, value in resolved_params.items():
        click.echo(f"\t{name}={value}")
    click.confirm(f"Deploy {contract_name}?", default=True, abort=True)

    unresolved = [name for name, value in resolved_params.items() if value == ZERO_ADDRESS]
    if unresolved:
        click.secho(f"{', '.join(unresolved)} resolved to the zero address.", fg="red")
        click.confirm("Deploy anyway?", default=False, abort=True)

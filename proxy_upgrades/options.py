import click

from proxy_upgrades.constants import SUPPORTED_PATTERNS
from proxy_upgrades.types import ChecksumAddress

pattern_option = click.option(
    "--pattern",
    "-p",
    help="Proxy pattern of the target.",
    type=click.Choice(SUPPORTED_PATTERNS),
    required=True,
)

proxy_option = click.option(
    "--proxy",
    help="Address of the proxy.",
    type=ChecksumAddress(),
    required=True,
)

new_owner_option = click.option(
    "--new-owner",
    help="Account that receives the upgrade authority.",
    type=ChecksumAddress(),
    required=False,
)

manifest_option = click.option(
    "--manifest",
    "-m",
    help="Path to the deployment manifest; defaults to the bundled one.",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without prompting for confirmation.",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish deployed contracts to the network's block explorer.",
    default=False,
)

lax_option = click.option(
    "--lax",
    help="Ignore non-zero padding above addresses read from storage.",
    is_flag=True,
    default=False,
)

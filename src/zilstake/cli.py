"""
zilstake/cli.py

Command-line entry point.

Usage:
    zilstake 0xb1fe20cd2b856ba1a4e08afb39dff5c80f0cbbca
    zilstake --no-legacy --json 0xb1fe...
"""

import json
import logging

import click
import trio

from .address import InvalidAddressError
from .checker import StakeReport, check_account
from .config import DEFAULT_REGISTRY, MAINNET, NetworkConfig
from .protocol.positions import format_amount, format_duration
from .rpc.client import RpcError


def render_report(report: StakeReport) -> str:
    """Human-readable summary of a report."""
    lines = [f"Stakes for {report.account}"]
    if not report.positions:
        lines.append("  No active stakes")
        return "\n".join(lines)

    for position in report.positions:
        pool = position.pool
        lines.append(f"  {pool.name} ({pool.address})")
        lines.append(f"    Stake:     {format_amount(position.stake, pool.decimals)} {pool.symbol}")
        if not pool.is_liquid:
            lines.append(f"    Reward:    {format_amount(position.reward or 0, pool.decimals)} {pool.symbol}")
        if position.claimable:
            lines.append(f"    Claimable: {format_amount(position.claimable, pool.decimals)} ZIL")
        for claim in position.pending_claims:
            remaining = claim.blocks_remaining(report.block_number)
            eta = claim.eta(report.block_number, report.block_time)
            when = f" in ~{remaining} blocks" if remaining is not None else ""
            if eta is not None and remaining:
                when += f" (~{format_duration(eta)})"
            lines.append(f"    Pending:   {format_amount(claim.amount, pool.decimals)} ZIL{when}")
        if position.commission is not None:
            lines.append(f"    Commission: {position.commission * 100:.2f}%")
        if position.apr is not None:
            lines.append(f"    APR (est.): {position.apr * 100:.2f}%")
        if position.active is not None:
            lines.append(f"    Status:    {'active' if position.active else 'inactive'}")

    lines.append("  Totals:")
    for symbol, amount in report.summary.stake.items():
        reward = report.summary.reward.get(symbol, 0)
        lines.append(f"    {symbol}: stake {amount:,.3f}, reward {reward:,.3f}")
    return "\n".join(lines)


@click.command()
@click.argument("address")
@click.option("--rpc-url", default=MAINNET.rpc_url, show_default=True, help="JSON-RPC endpoint.")
@click.option("--timeout", default=MAINNET.timeout, show_default=True, type=float, help="HTTP timeout in seconds.")
@click.option("--legacy/--no-legacy", default=True, show_default=True,
              help="Check every legacy SSN the address deposited with.")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON.")
@click.option("--log-level", default="WARNING", show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False))
def main(address, rpc_url, timeout, legacy, as_json, log_level):
    """Show staked balances and unclaimed rewards for ADDRESS."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    network = NetworkConfig(rpc_url=rpc_url, timeout=timeout)

    try:
        report = trio.run(check_account, address, DEFAULT_REGISTRY, network, legacy)
    except InvalidAddressError as e:
        raise click.BadParameter(str(e), param_hint="ADDRESS")
    except RpcError as e:
        raise click.ClickException(str(e))

    if as_json:
        click.echo(json.dumps(report.to_dict(), indent=2))
    else:
        click.echo(render_report(report))


if __name__ == "__main__":
    main()

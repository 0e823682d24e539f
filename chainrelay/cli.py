"""Click CLI: serve, chains, tx-status, balance, gas, transfer."""

from __future__ import annotations

import asyncio
import json

import click

from chainrelay.config import VERSION, get_settings
from chainrelay.logs import configure_logging


def _run(coro_factory):
    """Run a client call against the configured service, turning API errors into CLI errors."""
    from chainrelay.api.client import ChainRelayAPIError

    try:
        return asyncio.run(coro_factory())
    except ChainRelayAPIError as e:
        kind = f"{e.kind}: " if e.kind else ""
        raise click.ClickException(f"{kind}{e.message}")


def _client(ctx: click.Context):
    from chainrelay.api.client import ChainRelayClient

    return ChainRelayClient(ctx.obj["api_url"])


def _parse_transfer(value: str) -> dict[str, str]:
    parts = value.split(":")
    if len(parts) != 3:
        raise click.BadParameter(f"expected FROM:TO:AMOUNT, got {value!r}")
    from_chain, to_chain, amount = parts
    return {"fromChain": from_chain, "toChain": to_chain, "amount": amount}


@click.group()
@click.version_option(version=VERSION)
@click.option("--api-url", default=None, help="Base URL of a running chainrelay service")
@click.pass_context
def cli(ctx: click.Context, api_url: str | None):
    """chainrelay - Multi-chain status reads and batch transfers."""
    settings = get_settings()
    configure_logging(settings.log_level)
    ctx.ensure_object(dict)
    ctx.obj["api_url"] = api_url or settings.api_url


@cli.command()
@click.option("--host", default=None)
@click.option("--port", default=None, type=int)
def serve(host: str | None, port: int | None):
    """Run the HTTP service."""
    import uvicorn

    from chainrelay.api.app import create_app

    settings = get_settings()
    app = create_app(settings)
    uvicorn.run(app, host=host or settings.api_host, port=port or settings.api_port, log_level=settings.log_level.lower())


@cli.command()
@click.pass_context
def chains(ctx: click.Context):
    """List supported chains."""

    async def _call():
        async with _client(ctx) as client:
            return await client.fetch_chains()

    for key in _run(_call):
        click.echo(key)


@cli.command("tx-status")
@click.option("--chain", required=True, help="Chain key, e.g. ETH")
@click.argument("tx_hash")
@click.pass_context
def tx_status(ctx: click.Context, chain: str, tx_hash: str):
    """Show the receipt of a transaction."""

    async def _call():
        async with _client(ctx) as client:
            return await client.check_tx_status(chain, tx_hash)

    receipt = _run(_call)
    state = "success" if receipt.get("status") else "failed"
    click.echo(f"{receipt.get('transactionHash')} on {chain}: {state} (block {receipt.get('blockNumber')})")
    click.echo(json.dumps(receipt, indent=2))


@cli.command()
@click.option("--chain", required=True, help="Chain key, e.g. ETH")
@click.pass_context
def balance(ctx: click.Context, chain: str):
    """Show the configured account's balance."""

    async def _call():
        async with _client(ctx) as client:
            return await client.check_balance(chain)

    click.echo(f"{chain}: {_run(_call)}")


@cli.command()
@click.option("--chain", required=True, help="Chain key, e.g. ETH")
@click.pass_context
def gas(ctx: click.Context, chain: str):
    """Show the current gas price in gwei."""

    async def _call():
        async with _client(ctx) as client:
            return await client.get_gas_price(chain)

    click.echo(f"{chain}: {_run(_call)} gwei")


@cli.command()
@click.option("--transfer", "transfers", multiple=True, required=True, help="FROM:TO:AMOUNT, repeatable")
@click.pass_context
def transfer(ctx: click.Context, transfers: tuple[str, ...]):
    """Submit a batch of cross-chain transfers."""
    payload = [_parse_transfer(t) for t in transfers]

    async def _call():
        async with _client(ctx) as client:
            return await client.execute_multi_transfer(payload)

    batch = _run(_call)
    click.echo(f"Batch status: {batch['status']}")
    for item, request in zip(batch["results"], payload):
        route = f"{request['fromChain']} -> {request['toChain']} ({request['amount']})"
        if item["success"]:
            click.echo(f"  #{item['index']} {route}: ok {item['receipt'].get('transactionHash')}")
        else:
            click.echo(f"  #{item['index']} {route}: {item['errorKind']}: {item['error']}")

    failed = sum(1 for item in batch["results"] if not item["success"])
    if failed:
        ctx.exit(1)


if __name__ == "__main__":
    cli()

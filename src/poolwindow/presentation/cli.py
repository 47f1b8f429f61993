import asyncio, json, logging
import click
from rich.console import Console
from rich.table import Table

from ..adapters.parquet_sink import write_outcomes
from ..adapters.rpc_httpx import HttpxRPC
from ..application.estimator import estimate_block_interval
from ..application.resolver import resolve_block_for_timestamp
from ..application.use_cases import checked_address, fetch_activity_report, get_pool_activity
from ..application.utils import parse_timestamp
from ..config import Settings
from ..domain.errors import PoolWindowError
from ..domain.models import ActivityReport, DecodeFailure, TimeWindow
from ..log import configure_logging
from .serialize import report_to_dict

console = Console()
logger = logging.getLogger(__name__)

# swapped out in tests
rpc_factory = HttpxRPC.from_settings


class TimestampParam(click.ParamType):
    name = "timestamp"

    def convert(self, value, param, ctx):
        try:
            return parse_timestamp(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


TIMESTAMP = TimestampParam()


class AddressParam(click.ParamType):
    name = "address"

    def convert(self, value, param, ctx):
        try:
            return checked_address(value, param.name if param else "address")
        except ValueError as e:
            self.fail(str(e), param, ctx)


ADDRESS = AddressParam()


def _run(coro):
    try:
        return asyncio.run(coro)
    except (PoolWindowError, ValueError) as e:
        raise click.ClickException(str(e))


def _override(settings: Settings, **kw) -> Settings:
    try:
        return settings.with_overrides(**kw)
    except ValueError as e:
        raise click.UsageError(str(e))


def _summary_table(report: ActivityReport, limit: int) -> Table:
    table = Table(title=f"{report.pool}  blocks {report.block_range.start:,}-{report.block_range.end:,}")
    table.add_column("block", justify="right")
    table.add_column("log", justify="right")
    table.add_column("event")
    table.add_column("details", overflow="fold")
    for o in report.outcomes[:limit]:
        if isinstance(o, DecodeFailure):
            table.add_row(str(o.block_number), str(o.log_index), f"[red]{o.kind}[/]", o.reason)
        elif o.event == "Swap":
            table.add_row(str(o.block_number), str(o.log_index), o.event,
                          f"amount0={o.amount0} amount1={o.amount1} tick={o.tick}")
        else:
            table.add_row(str(o.block_number), str(o.log_index), o.event,
                          f"ticks=[{o.tick_lower},{o.tick_upper}] amount0={o.amount0} amount1={o.amount1}")
    return table


@click.group()
@click.option("--log-level", default=None, help="Logging level (default from POOLWINDOW_LOG_LEVEL or INFO)")
@click.pass_context
def cli(ctx, log_level):
    """poolwindow - Uniswap V3 pool activity over a wall-clock time window."""
    try:
        settings = Settings.from_env().with_overrides(log_level=log_level)
    except ValueError as e:
        raise click.UsageError(str(e))
    configure_logging(settings.log_level)
    ctx.obj = settings


@cli.command("activity")
@click.option("--rpc", default=None, help="RPC endpoint URL")
@click.option("--pool", type=ADDRESS, default=None, help="Pool address; skips the factory lookup")
@click.option("--token-a", type=ADDRESS, default=None, help="First token address")
@click.option("--token-b", type=ADDRESS, default=None, help="Second token address")
@click.option("--fee", type=int, default=None, help="Fee tier in hundredths of a bip (default 3000)")
@click.option("--factory", type=ADDRESS, default=None, help="Uniswap V3 factory address")
@click.option("--start", type=TIMESTAMP, required=True, help="'YYYY-MM-DD HH:MM:SS' (UTC), ISO-8601 or unix seconds")
@click.option("--end", type=TIMESTAMP, required=True)
@click.option("--sample-size", type=int, default=None, help="Blocks sampled for the average block time")
@click.option("--end-resolution", type=click.Choice(["projected", "exact"]), default=None,
              help="Project the end block from the average block time, or search for it")
@click.option("--step", type=int, default=None, help="Blocks per eth_getLogs request")
@click.option("--concurrency", type=int, default=None, help="Max parallel eth_getLogs requests")
@click.option("--json", "as_json", is_flag=True, help="Print the full report as JSON")
@click.option("--json-out", type=click.Path(dir_okay=False), default=None, help="Write the report as JSON")
@click.option("--parquet-out", type=click.Path(dir_okay=False), default=None, help="Write outcomes to Parquet")
@click.option("--limit", type=int, default=20, show_default=True, help="Rows shown in the summary table")
@click.pass_obj
def activity_cmd(settings: Settings, rpc, pool, token_a, token_b, fee, factory, start, end, sample_size,
                 end_resolution, step, concurrency, as_json, json_out, parquet_out, limit):
    """Fetch and decode pool events between START and END."""
    if not pool and not (token_a and token_b):
        raise click.UsageError("Pass --pool, or both --token-a and --token-b")
    settings = _override(
        settings, rpc_url=rpc, fee=fee, factory_address=factory, sample_size=sample_size,
        end_resolution=end_resolution, log_step=step, concurrency=concurrency,
    )

    window = TimeWindow(start, end)
    options = dict(
        sample_size=settings.sample_size,
        end_resolution=settings.end_resolution,
        log_step=settings.log_step,
        concurrency=settings.concurrency,
    )

    async def run() -> ActivityReport:
        async with rpc_factory(settings) as client:
            if pool:
                return await fetch_activity_report(client, pool, window, **options)
            return await get_pool_activity(
                client, settings.factory_address, token_a, token_b, window,
                fee=settings.fee, **options,
            )

    with console.status("[bold]collecting data[/]"):
        report = _run(run())

    payload = report_to_dict(report)
    if json_out:
        with open(json_out, "w") as f:
            json.dump(payload, f, indent=2)
    if parquet_out:
        write_outcomes(parquet_out, report.outcomes)
    if as_json:
        click.echo(json.dumps(payload, indent=2))
        return

    console.print(_summary_table(report, limit))
    counts: dict[str, int] = {}
    for o in report.events:
        counts[o.event] = counts.get(o.event, 0) + 1
    console.print(
        f"[bold]summary[/]: "
        + "  ".join(f"{k}={v}" for k, v in sorted(counts.items()))
        + f"  [red]failed[/]={len(report.failures)}"
        + f"  (logs={len(report.outcomes)}, avg_block_time={report.avg_block_time}s)"
    )


@cli.command("block-at")
@click.option("--rpc", default=None, help="RPC endpoint URL")
@click.option("--timestamp", "ts", type=TIMESTAMP, required=True)
@click.option("--sample-size", type=int, default=None)
@click.pass_obj
def block_at_cmd(settings: Settings, rpc, ts, sample_size):
    """Print the first block whose timestamp is >= TIMESTAMP."""
    settings = _override(settings, rpc_url=rpc, sample_size=sample_size)

    async def run() -> int:
        async with rpc_factory(settings) as client:
            avg = await estimate_block_interval(client, settings.sample_size)
            return await resolve_block_for_timestamp(client, ts, avg)

    click.echo(_run(run()))


@cli.command("serve")
@click.option("--rpc", default=None, help="RPC endpoint URL")
@click.option("--host", default=None)
@click.option("--port", type=int, default=None)
@click.pass_obj
def serve_cmd(settings: Settings, rpc, host, port):
    """Serve GET /pool-data over HTTP."""
    from .http import create_app

    settings = _override(settings, rpc_url=rpc, host=host, port=port)
    logger.info("Server running at http://%s:%d", settings.host, settings.port)
    create_app(settings).run(host=settings.host, port=settings.port)


if __name__ == "__main__":
    cli()

"""
nrplugin-agent 命令行入口模块。

提供 CLI 命令：check（验证配置文件）、sample-config（输出示例配置）
和 send（采集或读取一批样本并上报一次）。
"""
import asyncio
import json
import logging
import sys

import click

from nrplugin_agent import __version__
from nrplugin_agent.client import PluginClient
from nrplugin_agent.config import SAMPLE_CONFIG, load_config
from nrplugin_agent.exceptions import ForwarderError
from nrplugin_agent.models import Sample


@click.group(invoke_without_command=True)
@click.option("--config", "-c", default="/etc/nrplugin/agent.yaml", help="Config file path")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx, config, verbose):
    """nrplugin-agent - 将指标聚合后上报到 New Relic plugin API。"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if ctx.invoked_subcommand is None:
        click.echo(f"nrplugin-agent v{__version__}")
        click.echo(f"Config: {config}")
        click.echo("Use --help for available commands")


@cli.command()
@click.pass_context
def check(ctx):
    """验证配置文件是否正确。"""
    config_path = ctx.obj["config_path"]
    try:
        cfg = load_config(config_path)
    except (FileNotFoundError, ForwarderError) as e:
        click.echo(f"❌ Config error: {e}", err=True)
        sys.exit(1)

    if not cfg.newrelic.license:
        click.echo("❌ Config error: no license key. Set newrelic.license or NEWRELIC_LICENSE_KEY env.", err=True)
        sys.exit(1)

    click.echo(f"✅ Config OK: {config_path}")
    click.echo(f"   URL: {cfg.newrelic.url or '(default)'}")
    click.echo(f"   GUID: {cfg.newrelic.guid or '(default)'}")
    click.echo(f"   Host: {cfg.host.name or '(auto-detect)'}")
    click.echo(f"   Timeout: {cfg.newrelic.timeout}s")


@cli.command("sample-config")
def sample_config():
    """输出示例配置。"""
    click.echo(SAMPLE_CONFIG, nl=False)


def _read_samples(path: str) -> list:
    with open(path) as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError("Input must be a JSON list of samples")
    return [Sample.from_dict(item) for item in data]


async def _send_once(client: PluginClient, samples: list):
    async with client:
        await client.write(samples)


@cli.command()
@click.option("--input", "-i", "input_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON file with a list of samples (default: collect host metrics)")
@click.pass_context
def send(ctx, input_path):
    """聚合一批样本并上报一次。"""
    logger = logging.getLogger("nrplugin-agent")
    config_path = ctx.obj["config_path"]

    try:
        cfg = load_config(config_path)
    except (FileNotFoundError, ForwarderError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if input_path:
        try:
            samples = _read_samples(input_path)
        except (OSError, ValueError, TypeError) as e:
            click.echo(f"Error: invalid input {input_path}: {e}", err=True)
            sys.exit(1)
    else:
        from nrplugin_agent.collector import collect_samples
        samples = collect_samples()

    logger.info(f"Sending {len(samples)} samples to {cfg.newrelic.url or '(default URL)'}")
    client = PluginClient(cfg.newrelic, hostname=cfg.host.name)
    try:
        asyncio.run(_send_once(client, samples))
    except ForwarderError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"✅ Sent {len(samples)} samples")


def main():
    """CLI 入口函数。"""
    cli()


if __name__ == "__main__":
    main()

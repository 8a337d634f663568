"""Click commands: ``kubestate serve`` and ``kubestate collectors``."""

from __future__ import annotations

import asyncio

import click

from kubestate.config import load_config, parse_label_allowlist, split_list
from kubestate.errors import ConfigError
from kubestate.models.config import KubeStateConfig
from kubestate.models.resources import ResourceType


@click.group("kubestate", invoke_without_command=True)
@click.version_option(package_name="kubestate")
@click.pass_context
def cli(ctx: click.Context) -> None:
    """Expose Kubernetes object state as Prometheus metrics.

    Without a command, runs `serve` configured from KSM_* environment variables.
    """
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve_cmd)


@cli.command("serve")
@click.option("--collectors", help="Comma-separated resources to mirror (default: all).")
@click.option("--namespaces", help="Comma-separated namespaces to watch (default: all).")
@click.option("--metric-whitelist", help="Comma-separated family name patterns to keep.")
@click.option("--metric-blacklist", help="Comma-separated family name patterns to drop.")
@click.option("--labels-allowlist", help="Object labels per resource, e.g. pods=[app,team].")
@click.option("--resync-period", type=click.IntRange(10, 86400), help="Seconds between full relists.")
@click.option("--sync-timeout", type=click.IntRange(0, 3600), help="Seconds to wait for warm-up.")
@click.option("--host", help="HTTP bind address.")
@click.option("--port", type=click.IntRange(1, 65535), help="HTTP port.")
@click.option("--gzip/--no-gzip", "enable_gzip", default=None, help="Compress responses.")
@click.option("--kubeconfig", type=click.Path(dir_okay=False), help="Explicit kubeconfig file.")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Log verbosity.",
)
def serve_cmd(**options: object) -> None:
    """Run the metrics server. Flags override KSM_* environment variables."""
    try:
        config = apply_overrides(load_config(), options)
    except ConfigError as exc:
        raise click.UsageError(str(exc)) from exc

    from kubestate.app import main

    asyncio.run(main(config))


@cli.command("collectors")
def collectors_cmd() -> None:
    """List the resource identifiers accepted by --collectors."""
    for resource in sorted(ResourceType, key=str):
        scope = "namespaced" if resource.namespaced else "cluster"
        click.echo(f"{resource.value:<12} {resource.kind:<12} {scope}")


def apply_overrides(config: KubeStateConfig, options: dict[str, object]) -> KubeStateConfig:
    """Apply non-None CLI flag values on top of an environment-loaded config.

    Raises:
        ConfigError: the resulting metric whitelist and blacklist are both set.
    """
    if options.get("collectors") is not None:
        config.collector.collectors = split_list(str(options["collectors"]))
    if options.get("namespaces") is not None:
        config.collector.namespaces = split_list(str(options["namespaces"])) or [""]
    if options.get("labels_allowlist") is not None:
        config.collector.label_allowlist = parse_label_allowlist(str(options["labels_allowlist"]))
    if options.get("resync_period") is not None:
        config.collector.resync_period_seconds = int(options["resync_period"])  # type: ignore[call-overload]
    if options.get("sync_timeout") is not None:
        config.collector.sync_timeout_seconds = int(options["sync_timeout"])  # type: ignore[call-overload]
    if options.get("metric_whitelist") is not None:
        config.filters.whitelist = split_list(str(options["metric_whitelist"]))
    if options.get("metric_blacklist") is not None:
        config.filters.blacklist = split_list(str(options["metric_blacklist"]))
    if options.get("host") is not None:
        config.api.host = str(options["host"])
    if options.get("port") is not None:
        config.api.port = int(options["port"])  # type: ignore[call-overload]
    if options.get("enable_gzip") is not None:
        config.api.enable_gzip = bool(options["enable_gzip"])
    if options.get("kubeconfig") is not None:
        config.kubeconfig = str(options["kubeconfig"])
    if options.get("log_level") is not None:
        config.log.level = str(options["log_level"]).lower()

    if config.filters.whitelist and config.filters.blacklist:
        raise ConfigError("metric whitelist and blacklist are mutually exclusive")
    return config

from __future__ import annotations

import logging
import time
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from kube_surface.core.discovery import ClusterResourceDiscovery
from kube_surface.core.exceptions import FatalKubeAPIError
from kube_surface.core.integrations.kubectl import Kubectl
from kube_surface.core.logs import ContainerLogStream
from kube_surface.core.models.config import Config, settings
from kube_surface.utils.version import get_version

app = typer.Typer(
    pretty_exceptions_show_locals=False,
    pretty_exceptions_short=True,
    no_args_is_help=True,
    help="Inspect what a cluster's API serves and tail container logs without duplicates.",
)

logger = logging.getLogger("kube_surface")


@app.callback()
def configure(
    kubeconfig: Optional[str] = typer.Option(
        None,
        "--kubeconfig",
        "-k",
        help="Path to kubeconfig file. If not provided, kubectl will attempt to find it.",
        rich_help_panel="Kubernetes Settings",
    ),
    context: Optional[str] = typer.Option(
        None,
        "--context",
        "-c",
        help="Kubeconfig context to use. By default, the current context.",
        rich_help_panel="Kubernetes Settings",
    ),
    namespace: str = typer.Option(
        "default",
        "--namespace",
        "-n",
        help="Namespace used by namespaced commands.",
        rich_help_panel="Kubernetes Settings",
    ),
    strategy: str = typer.Option(
        "path",
        "--strategy",
        "-s",
        help="How to discover the API surface: 'path' reads the raw API documents, 'tabular' parses `kubectl api-resources`.",
        rich_help_panel="Discovery Settings",
    ),
    version_overrides_file: Optional[str] = typer.Option(
        None,
        "--version-overrides",
        help="YAML file mapping kinds to the API version they must be pruned with. Merged over the built-in table.",
        rich_help_panel="Discovery Settings",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode", rich_help_panel="Logging Settings"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Enable quiet mode", rich_help_panel="Logging Settings"),
    log_to_stderr: bool = typer.Option(
        False, "--logtostderr", help="Pass logs to stderr", rich_help_panel="Logging Settings"
    ),
) -> None:
    try:
        config = Config(
            kubeconfig=kubeconfig,
            context=context,
            namespace=namespace,
            discovery_strategy=strategy,
            version_overrides_file=version_overrides_file,
            verbose=verbose,
            quiet=quiet,
            log_to_stderr=log_to_stderr,
        )
        Config.set_config(config)
    except (ValidationError, OSError, ValueError) as e:
        typer.echo(f"Invalid settings: {e}", err=True)
        raise typer.Exit(code=2)


def exit_on_api_error(error: FatalKubeAPIError) -> None:
    logger.error(str(error))
    raise typer.Exit(code=1)


@app.command(rich_help_panel="Utils")
def version() -> None:
    typer.echo(get_version())


@app.command(rich_help_panel="Discovery")
def prunable(
    namespaced: bool = typer.Option(
        True, "--namespaced/--cluster-scoped", help="Which partition of the API surface to list."
    ),
) -> None:
    """List group/version/kind identifiers that are safe to prune."""

    discovery = ClusterResourceDiscovery()
    try:
        resources = discovery.prunable_resources(namespaced=namespaced)
    except FatalKubeAPIError as e:
        exit_on_api_error(e)
        return

    for resource in resources:
        typer.echo(resource)


@app.command("api-resources", rich_help_panel="Discovery")
def api_resources(
    namespaced: bool = typer.Option(
        True, "--namespaced/--cluster-scoped", help="Which partition of the API surface to list."
    ),
) -> None:
    """List the resource kinds the cluster serves."""

    discovery = ClusterResourceDiscovery()
    try:
        descriptors = discovery.fetch_resources(namespaced=namespaced)
    except FatalKubeAPIError as e:
        exit_on_api_error(e)
        return

    table = Table(show_header=True, header_style="bold magenta")
    for column in ("Kind", "Group", "Version", "Verbs"):
        table.add_column(column)
    for descriptor in descriptors:
        table.add_row(
            descriptor.kind,
            descriptor.api_group or "-",
            descriptor.version or "-",
            " ".join(sorted(descriptor.verbs)),
        )
    Console(width=settings.width).print(table)


@app.command(rich_help_panel="Discovery")
def crds(
    prunable_only: bool = typer.Option(False, "--prunable", help="Only list definitions marked as prunable."),
) -> None:
    """List the custom resource definitions installed in the cluster."""

    discovery = ClusterResourceDiscovery()
    try:
        definitions = discovery.prunable_crds() if prunable_only else discovery.crds()
    except FatalKubeAPIError as e:
        exit_on_api_error(e)
        return

    for crd in definitions:
        typer.echo(f"{crd.name}\t{crd.group_version_kind}\t{'prunable' if crd.prunable else '-'}")


@app.command(rich_help_panel="Logs")
def logs(
    pod: str = typer.Argument(..., help="Name of the pod to read logs from."),
    container: str = typer.Option(..., "--container", "-C", help="Container of the pod."),
    follow: bool = typer.Option(False, "--follow", "-f", help="Keep polling for new lines until interrupted."),
    interval: float = typer.Option(2.0, "--interval", min=0.1, help="Seconds between polls when following."),
    prefix: bool = typer.Option(False, "--prefix", help="Prefix every line with the container name."),
) -> None:
    """Print the logs of a container, polling for new lines with --follow."""

    kubectl = Kubectl(
        context=settings.current_context,
        namespace=settings.namespace,
        kubeconfig=settings.kubeconfig,
        log_failure_by_default=False,
    )
    stream = ContainerLogStream(pod, container, logger, line_limit=settings.log_line_limit)

    try:
        while True:
            stream.sync(kubectl)
            stream.print_latest(prefix=prefix)
            if not follow:
                break
            time.sleep(interval)
    except KeyboardInterrupt:
        pass


def run() -> None:
    app()


if __name__ == "__main__":
    run()

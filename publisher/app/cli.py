"""Command-line entry point for the cluster publisher."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markup import escape

from publisher.app.dependencies import (
    get_bundle_admin,
    get_deploy_service,
    get_root_descriptor_builder,
    get_settings,
)
from publisher.app.logging_config import configure_application_logging
from publisher.app.services.deploy_service import DeployRequest
from publisher.app.services.errors import PublishError
from publisher.app.services.root_descriptor import RootDescriptorRequest, render_root_application

console = Console()
err_console = Console(stderr=True)


def _fail(exc: PublishError) -> None:
    err_console.print(f"[red]{exc.operation} failed:[/red] {escape(str(exc))}")
    raise click.exceptions.Exit(1)


@click.group()
@click.version_option(version="0.1.0")
def main() -> None:
    """Publish cluster configuration to a GitOps repository."""
    configure_application_logging(get_settings())


@main.group()
def cluster() -> None:
    """Manage clusters."""


@cluster.command()
@click.argument("cluster_name")
@click.option("--repo-url", required=True, help="Git repository the cluster is published to.")
@click.option("--repo-branch", default=None, help="Branch to publish to.")
@click.option("--base-path", default=None, help="Repository directory holding cluster trees.")
@click.option("--profile", "profile_name", default="", help="Profile naming the bundles to publish.")
def deploy(
    cluster_name: str,
    repo_url: str,
    repo_branch: str | None,
    base_path: str | None,
    profile_name: str,
) -> None:
    """Publish a cluster's management and workload trees."""
    settings = get_settings()
    request = DeployRequest(
        cluster_name=cluster_name,
        repo_url=repo_url,
        branch=repo_branch or settings.default_branch,
        base_path=base_path or settings.default_base_path,
        profile_name=profile_name,
    )
    try:
        result = get_deploy_service().deploy(request)
    except PublishError as exc:
        _fail(exc)
        return

    if not result.committed:
        console.print(f"[yellow]No changes for cluster[/yellow] {escape(cluster_name)}")
        return
    console.print(
        f"[green]Published cluster[/green] {escape(cluster_name)} "
        f"at {result.commit_sha} ({len(result.bundles)} inline bundles)"
    )


@cluster.command(name="root-descriptor")
@click.argument("cluster_name")
@click.option("--cluster-spec", required=True, help="Cluster spec configmap name.")
@click.option("--repo-url", required=True, help="Git repository the cluster is published to.")
@click.option("--repo-branch", default=None, help="Branch the controller tracks.")
@click.option("--base-path", default=None, help="Repository directory holding cluster trees.")
@click.option(
    "--output",
    type=click.Choice(["yaml", "json"]),
    default="yaml",
    show_default=True,
)
def root_descriptor(
    cluster_name: str,
    cluster_spec: str,
    repo_url: str,
    repo_branch: str | None,
    base_path: str | None,
    output: str,
) -> None:
    """Print the root Application for a cluster."""
    settings = get_settings()
    request = RootDescriptorRequest(
        cluster_name=cluster_name,
        cluster_spec_name=cluster_spec,
        repo_url=repo_url,
        branch=repo_branch or settings.default_branch,
        base_path=base_path or settings.default_base_path,
    )
    try:
        application = get_root_descriptor_builder().build(request)
    except PublishError as exc:
        _fail(exc)
        return
    click.echo(render_root_application(application, "json" if output == "json" else "yaml"))


@main.group()
def bundle() -> None:
    """Manage configuration bundles."""


@bundle.command(name="delete")
@click.argument("bundle_name")
def delete_bundle(bundle_name: str) -> None:
    """Delete a configuration bundle."""
    try:
        get_bundle_admin().delete_bundle(bundle_name)
    except PublishError as exc:
        _fail(exc)
        return
    console.print(f"[green]Deleted bundle[/green] {escape(bundle_name)}")


if __name__ == "__main__":
    main()

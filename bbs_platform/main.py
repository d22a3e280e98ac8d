"""bbs command line interface."""

import logging
from typing import Annotated, get_args

import typer
from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from bbs_platform.client import BitbucketServerClient
from bbs_platform.models import GitUrlOption, PrState
from bbs_platform.settings import BbsSettings, get_settings, host_credential

app = typer.Typer(help="bbs-platform: Bitbucket Server adapter for dependency automation", no_args_is_help=True)

ProfileOpt = Annotated[
    str | None,
    typer.Option("--profile", "-p", help="Profile name from ~/.config/bbs-platform/config.toml"),
]

_STATE_STYLE = {PrState.OPEN: "green", PrState.MERGED: "magenta", PrState.CLOSED: "red"}


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log debug output to stderr")] = False,
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def get_client(profile: str | None = None, settings: BbsSettings | None = None) -> BitbucketServerClient:
    settings = settings or get_settings(profile=profile)
    return BitbucketServerClient(settings, host_credential(settings))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


@app.command("list-repos")
def list_repos(
    project: Annotated[str, typer.Argument(help="Project key")],
    profile: ProfileOpt = None,
) -> None:
    """List repositories in a project."""
    client = get_client(profile)
    repos = client.list_repos(project)

    table = Table(title=f"Repositories in {project}")
    table.add_column("Slug", style="cyan")
    table.add_column("Name")
    table.add_column("Clone links", style="dim")

    for repo in repos:
        table.add_row(repo.slug, repo.name, ", ".join(link.name for link in repo.links.clone) or "—")

    rprint(table)


@app.command("list-prs")
def list_prs(
    project: Annotated[str, typer.Argument(help="Project key")],
    repo: Annotated[str, typer.Argument(help="Repository slug")],
    state: Annotated[str, typer.Option("--state", "-s", help="OPEN, MERGED, DECLINED or ALL")] = "ALL",
    profile: ProfileOpt = None,
) -> None:
    """List pull requests of a repository."""
    client = get_client(profile)
    prs = client.list_prs(project, repo, state=state.upper())

    table = Table(title=f"Pull requests in {project}/{repo}")
    table.add_column("#", style="cyan")
    table.add_column("State")
    table.add_column("Branches")
    table.add_column("Title")

    for pr in prs:
        style = _STATE_STYLE[pr.state]
        table.add_row(
            str(pr.number),
            f"[{style}]{pr.state}[/{style}]",
            f"{pr.source_branch} → {pr.target_branch}",
            pr.title,
        )

    rprint(table)


@app.command("get-pr")
def get_pr(
    project: Annotated[str, typer.Argument(help="Project key")],
    repo: Annotated[str, typer.Argument(help="Repository slug")],
    number: Annotated[int, typer.Argument(help="Pull request id")],
    profile: ProfileOpt = None,
) -> None:
    """Show a single pull request."""
    client = get_client(profile)
    pr = client.get_pr(project, repo, number)

    table = Table(title=f"#{pr.number}: {pr.title}")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("State", str(pr.state))
    table.add_row("Source", pr.source_branch)
    table.add_row("Target", pr.target_branch)
    table.add_row("Version", str(pr.version))
    table.add_row("Description", pr.body or "_No description provided._")

    rprint(table)


@app.command("git-url")
def git_url(
    project: Annotated[str, typer.Argument(help="Project key")],
    repo: Annotated[str, typer.Argument(help="Repository slug")],
    git_url_option: Annotated[
        str | None,
        typer.Option("--git-url", "-g", help="ssh, default or endpoint (auto-detect when omitted)"),
    ] = None,
    profile: ProfileOpt = None,
) -> None:
    """Print the git remote URL to push to (includes credentials for http remotes)."""
    settings = get_settings(profile=profile)
    if git_url_option is not None:
        if git_url_option not in get_args(GitUrlOption):
            rprint(f"[red]Invalid --git-url '{git_url_option}'. Valid: ssh, default, endpoint[/red]")
            raise typer.Exit(1)
        settings = settings.model_copy(update={"git_url": git_url_option})

    client = get_client(settings=settings)
    url = client.get_repo_git_url(project, repo)
    if url is None:
        typer.echo(f"error: no usable git URL for {project}/{repo}", err=True)
        raise typer.Exit(1)
    # No trailing newline: used in shell substitution: $(bbs git-url PROJ repo)
    typer.echo(url, nl=False)


@app.command("config-show")
def config_show(profile: ProfileOpt = None) -> None:
    """Show resolved configuration (masks credentials)."""
    settings = get_settings(profile=profile)

    def mask(val: str | None) -> str:
        if val is None:
            return "[dim](not set)[/dim]"
        if len(val) <= 5:
            return "***"
        return f"...{val[-4:]}"

    table = Table(title="bbs-platform Configuration")
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("default_profile", settings.default_profile or "[dim](not set)[/dim]")
    table.add_row("endpoint", settings.endpoint)
    table.add_row("username", settings.username or "[dim](not set)[/dim]")
    table.add_row("password", mask(settings.password.get_secret_value() if settings.password else None))
    table.add_row("git_url", settings.git_url or "[dim](auto)[/dim]")
    table.add_row("page_limit", str(settings.page_limit))
    table.add_row("timeout", str(settings.timeout))

    rprint(table)

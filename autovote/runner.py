from __future__ import annotations

import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Callable, List, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from autovote.controller import VoteController
from autovote.logsink import ConsoleObserver, JsonlObserver, broadcaster
from autovote.models import Phase, RunConfig, Timing
from autovote.page_session import PageSession
from autovote.sites import DEFAULT_SITES_FILE, SiteFileError, SiteNotFound, SiteStore

# Typer builds the CLI from the function signatures below; `sites` is a nested sub-command group.
app = typer.Typer(add_completion=False, no_args_is_help=True, help="Automate session-based voting forms.")
sites_app = typer.Typer(add_completion=False, no_args_is_help=True, help="Manage saved site configurations.")
app.add_typer(sites_app, name="sites")

# Rich Console is shared by the report tables and the live log observer.
console = Console()

# One option object reused by every command that touches the sites file.
SitesFileOption = typer.Option(
    DEFAULT_SITES_FILE,
    "--sites-file",
    envvar="AUTOVOTE_SITES_FILE",
    help="JSON file holding site configurations",
)


@dataclass
class RunResult:
    """Result of ONE identifier's run, kept for the final report."""
    identifier: str
    phase: Phase
    rounds: int
    groups: int
    duration_ms: int
    error: Optional[str] = None  # full traceback when the run failed

    @property
    def ok(self) -> bool:
        return self.phase is Phase.COMPLETED


def run_once(config: RunConfig, open_session: Callable[[], object]) -> RunResult:
    start = time.perf_counter()

    # `controller` stays None until a browser session exists; that is how the
    # except-branch knows whether the run itself or the launch blew up.
    controller = None
    try:
        page = open_session()
        controller = VoteController(config, page)
        controller.run()
        err = None
    except Exception as e:
        # A run failure must not stop the other IDs, so we keep the traceback
        # for the report instead of letting it propagate.
        if controller is None:
            # Browser never came up; the controller had no chance to log it.
            config.logger(f"Fatal Error: {e}")
        err = traceback.format_exc(limit=20)

    dur_ms = int((time.perf_counter() - start) * 1000)
    if controller is None:
        return RunResult(config.identifier, Phase.FAILED, 0, 0, dur_ms, err)
    state = controller.state
    return RunResult(config.identifier, state.phase, state.rounds, state.groups_processed, dur_ms, err)


def _describe(error: Exception) -> str:
    # Pydantic errors are verbose; show one "field: reason" pair per problem.
    if isinstance(error, ValidationError):
        return "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in error.errors())
    return str(error)


def _fail(message: str) -> None:
    # Messages may quote user input or file content; escape so rich does not read it as markup.
    console.print(f"[red]{escape(message)}[/red]")
    raise typer.Exit(code=2)


def _print_report(results: List[RunResult]) -> None:
    table = Table(title="AutoVote - Report")
    table.add_column("Identifier", style="bold")
    table.add_column("Result")
    table.add_column("Rounds", justify="right")
    table.add_column("Groups", justify="right")
    table.add_column("Duration", justify="right")

    for r in results:
        status = "[green]completed[/green]" if r.ok else "[red]failed[/red]"
        table.add_row(escape(r.identifier), status, str(r.rounds), str(r.groups), f"{r.duration_ms} ms")

    console.print()
    console.print(table)

    failures = [r for r in results if not r.ok]
    if failures:
        console.print("\n[bold red]Failures (first 1 shown):[/bold red]\n")
        first = failures[0]
        console.print(f"[red]{escape(first.identifier)} failed[/red] after {first.duration_ms} ms\n")
        console.print(first.error, markup=False)


@app.command("run")
def run_cmd(
    identifiers: List[str] = typer.Argument(..., help="One or more subject IDs to vote for"),
    site: Optional[str] = typer.Option(None, "--site", "-s", help="Saved site id or name"),
    login_url: Optional[str] = typer.Option(None, "--login-url", help="Login page URL (overrides the site)"),
    vote_url: Optional[str] = typer.Option(None, "--vote-url", help="Voting page URL (overrides the site)"),
    choice: int = typer.Option(0, "--choice", "-c", min=0, help="Zero-based option to pick in every question"),
    iterations: Optional[int] = typer.Option(
        None,
        "--iterations",
        "-n",
        min=1,
        help="Maximum voting rounds per ID (default: the site's default, else 1)",
    ),
    parallel: int = typer.Option(1, "--parallel", "-p", min=1, max=16, help="How many IDs to run at once"),
    headless: bool = typer.Option(True, "--headless/--headed", help="Run headless (default) or show the browser"),
    close_delay: float = typer.Option(0.0, "--close-delay", min=0.0, help="Seconds to keep the browser open at the end"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also append log lines to this JSONL file"),
    sites_file: Path = SitesFileOption,
):
    """
    Log in with each ID and answer every question group until none are left.
    """
    default_iterations = 1
    if site:
        try:
            resolved = SiteStore(sites_file).resolve(site)
        except (SiteNotFound, SiteFileError) as e:
            _fail(str(e))
        # Explicit URLs win over the saved site, so one site entry can be reused with tweaks.
        login_url = login_url or resolved.login_url
        vote_url = vote_url or resolved.vote_url
        default_iterations = resolved.default_iterations
    if not login_url or not vote_url:
        _fail("Provide --site, or both --login-url and --vote-url.")

    # Observers live only for this command; unsubscribed in `finally` below.
    unsubscribers = [broadcaster.subscribe(ConsoleObserver(console))]
    if log_file:
        unsubscribers.append(broadcaster.subscribe(JsonlObserver(log_file)))

    try:
        try:
            configs = [
                RunConfig(
                    identifier=ident,
                    choice_index=choice,
                    login_url=login_url,
                    vote_url=vote_url,
                    max_iterations=iterations or default_iterations,
                    logger=broadcaster.logger_for(ident),
                    timing=Timing(),
                )
                for ident in identifiers
            ]
        except ValueError as e:
            _fail(str(e))

        # Each call launches its OWN playwright + browser, so runs never share a page.
        open_session = partial(PageSession.launch, headless=headless, close_delay_s=close_delay)
        if parallel > 1 and len(configs) > 1:
            # The sync Playwright API is started per worker thread inside `launch`,
            # which keeps every run on the thread that created its browser.
            with ThreadPoolExecutor(max_workers=parallel) as pool:
                results = list(pool.map(lambda cfg: run_once(cfg, open_session), configs))
        else:
            results = [run_once(cfg, open_session) for cfg in configs]
    finally:
        for unsubscribe in unsubscribers:
            unsubscribe()

    _print_report(results)
    if any(not r.ok for r in results):
        raise typer.Exit(code=1)


@sites_app.command("add")
def sites_add(
    name: str = typer.Argument(..., help="Display name of the site"),
    login_url: str = typer.Option(..., "--login-url", help="Login page URL"),
    vote_url: str = typer.Option(..., "--vote-url", help="Voting page URL"),
    iterations: int = typer.Option(1, "--iterations", "-n", min=1, help="Default voting rounds"),
    sites_file: Path = SitesFileOption,
):
    """Save a new site configuration."""
    try:
        created = SiteStore(sites_file).create(name, login_url, vote_url, iterations)
    except ValueError as e:
        # Covers pydantic ValidationError (a ValueError) and an unreadable sites file.
        _fail(_describe(e))
    console.print(f"[green]Saved[/green] {created.name} (id: {created.id})")


@sites_app.command("list")
def sites_list(sites_file: Path = SitesFileOption):
    """Show saved site configurations."""
    try:
        sites = SiteStore(sites_file).list()
    except SiteFileError as e:
        _fail(str(e))
    if not sites:
        console.print("[dim]No sites saved yet.[/dim]")
        return

    table = Table(title="Sites")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Login URL")
    table.add_column("Vote URL")
    table.add_column("Iterations", justify="right")
    for s in sites:
        table.add_row(s.id, s.name, s.login_url, s.vote_url, str(s.default_iterations))
    console.print(table)


@sites_app.command("remove")
def sites_remove(
    site_id: str = typer.Argument(..., help="Id of the site to delete"),
    sites_file: Path = SitesFileOption,
):
    """Delete a saved site configuration."""
    try:
        SiteStore(sites_file).delete(site_id)
    except (SiteNotFound, SiteFileError) as e:
        _fail(str(e))
    console.print(f"[green]Removed[/green] {site_id}")


if __name__ == "__main__":
    app()

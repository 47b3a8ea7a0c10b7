"""Gittyx CLI: analyze a repository's history and ask questions about it."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.progress import Progress, TaskID
from rich.table import Table

app = typer.Typer(
    name="gittyx",
    help="Gittyx: AI-powered Git history analyst",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=verbose)],
        force=True,
    )
    # Keep third-party chatter out of the default output
    for name in ("httpx", "anthropic", "sentence_transformers"):
        logging.getLogger(name).setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging.",
    ),
) -> None:
    """Gittyx: AI-powered Git history analyst."""
    _setup_logging(verbose)


def _open_workspace(path: Path, *, with_provider: bool = True):
    """Load config and build a workspace, exiting with a message on config errors."""
    from dotenv import load_dotenv

    from gittyx.config import ConfigError, GittyxConfig
    from gittyx.core.pipeline import Workspace
    from gittyx.tools import llm

    path = path.resolve()
    load_dotenv(path / ".env")
    try:
        config = GittyxConfig.load(path)
        provider = llm.create_provider(config) if with_provider else None
    except ConfigError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1)
    return Workspace(config, provider)


@app.command()
def init(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory to initialize.",
    ),
) -> None:
    """Write a Gittyx configuration template into a project directory."""
    from gittyx.config import GittyxConfig

    path = path.resolve()
    config_dir = path / "config"
    config_dir.mkdir(exist_ok=True)

    dest = config_dir / "gittyx.yaml"
    template = Path(__file__).parent.parent.parent / "config" / "gittyx.yaml"
    if dest.exists():
        console.print(f"  [yellow]exists[/yellow]  {dest.relative_to(path)}")
    elif template.exists():
        shutil.copy2(template, dest)
        console.print(f"  [green]created[/green] {dest.relative_to(path)}")
    else:
        defaults = GittyxConfig().model_dump(mode="json")
        dest.write_text("# Gittyx configuration\n" + yaml.safe_dump(defaults, sort_keys=False))
        console.print(f"  [green]created[/green] {dest.relative_to(path)}")

    console.print(f"\n[bold green]Gittyx initialized in {path}[/bold green]")
    console.print("Set ANTHROPIC_API_KEY (or add it to .env), then run: gittyx analyze")


@app.command()
def analyze(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory to analyze.",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-n",
        help="Number of recent commits to analyze (defaults to vcs.max_commits).",
    ),
) -> None:
    """Fetch, summarize and index the repository's commit history."""
    workspace = _open_workspace(path)

    tasks: dict[str, TaskID] = {}
    with Progress(console=console, transient=True) as progress:

        def on_step(step: str, done: int, total: int) -> None:
            if step not in tasks:
                tasks[step] = progress.add_task(step.capitalize(), total=total)
            progress.update(tasks[step], completed=done, total=total)

        try:
            result = workspace.analyze(limit, progress_callback=on_step)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        except RuntimeError as e:
            console.print(f"[red]Git failed:[/red] {e}")
            raise typer.Exit(1)

    table = Table(title="Analysis Results")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Commits fetched", str(result.fetch.commits_seen))
    table.add_row("New commits", str(result.fetch.commits_added))
    table.add_row("Commits summarized", str(result.summarize.summarized))
    table.add_row("Overall summary", "yes" if result.overall else "no")
    table.add_row("Timeline days", str(result.chart_days))
    table.add_row("Chunks indexed", str(result.ingest.chunks_indexed))
    table.add_row("Chunks already indexed", str(result.ingest.chunks_skipped))
    console.print(table)

    if result.errors:
        console.print(f"\n[yellow]Errors ({len(result.errors)}):[/yellow]")
        for err in result.errors[:10]:
            console.print(f"  - {err}")


@app.command()
def insights(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory.",
    ),
    limit: Optional[int] = typer.Option(
        None,
        "--limit", "-n",
        help="Number of recent commits to include.",
    ),
    as_json: bool = typer.Option(
        False,
        "--json",
        help="Print the raw dashboard payload as JSON.",
    ),
) -> None:
    """Show the overall summary, timeline and recent commits."""
    workspace = _open_workspace(path, with_provider=False)
    payload = workspace.insights(limit)

    if as_json:
        typer.echo(payload.model_dump_json(by_alias=True, indent=2))
        return

    console.print(Panel(Markdown(payload.summary), title="Project Summary"))

    if payload.chart_config:
        data = payload.chart_config["data"]
        timeline = Table(title="Commits per Day")
        timeline.add_column("Date")
        timeline.add_column("Commits", justify="right")
        for label, count in zip(data["labels"], data["datasets"][0]["data"]):
            timeline.add_row(label, str(count))
        console.print(timeline)

    table = Table(title=f"Commits ({len(payload.commits)})")
    table.add_column("Date", style="dim")
    table.add_column("Hash", style="cyan")
    table.add_column("Author")
    table.add_column("Summary")
    for commit in payload.commits:
        table.add_row(
            commit.timestamp.date().isoformat(),
            commit.hash[:7],
            commit.author,
            commit.summary or commit.message,
        )
    console.print(table)


@app.command()
def ask(
    question: str = typer.Argument(
        ...,
        help="Natural language question about the repository.",
    ),
    path: Path = typer.Option(
        Path("."),
        "--path", "-p",
        help="Project root directory.",
    ),
    session: Optional[str] = typer.Option(
        None,
        "--session", "-s",
        help="Continue an existing chat session.",
    ),
) -> None:
    """Ask a question; the answer streams as it is generated."""
    from gittyx.agent.chat import new_session_id

    workspace = _open_workspace(path)
    session_id = session or new_session_id()

    try:
        agent = workspace.chat_agent()
        for fragment in agent.stream_chat(question, session_id):
            console.print(fragment, end="", markup=False, highlight=False)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print()
    console.print(f"\n[dim]Session: {session_id}[/dim]")


@app.command()
def sessions(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory.",
    ),
    delete: Optional[str] = typer.Option(
        None,
        "--delete", "-d",
        help="Delete the session with this id.",
    ),
) -> None:
    """List chat sessions, or delete one."""
    workspace = _open_workspace(path, with_provider=False)

    if delete:
        try:
            removed = workspace.sessions.delete(delete)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1)
        if not removed:
            console.print(f"[yellow]No session {delete}[/yellow]")
            raise typer.Exit(1)
        console.print(f"[green]Deleted session {delete}[/green]")
        return

    listed = workspace.sessions.list_sessions()
    if not listed:
        console.print("No chat sessions yet. Start one with: gittyx ask \"...\"")
        return

    table = Table(title="Chat Sessions")
    table.add_column("Id", style="cyan")
    table.add_column("Title")
    table.add_column("Messages", justify="right")
    table.add_column("Updated", style="dim")
    for info in listed:
        table.add_row(
            info.id,
            info.title,
            str(info.message_count),
            info.updated_at.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@app.command()
def status(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory.",
    ),
) -> None:
    """Show Gittyx configuration and cache statistics."""
    from gittyx.schema.models import RecordKind
    from gittyx.tools.vcs import GitRepo

    workspace = _open_workspace(path, with_provider=False)
    config = workspace.config

    table = Table(title="Gittyx Status")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    table.add_row("Project root", config.project.root)
    table.add_row("Provider", f"{config.provider.name} ({config.provider.model})")
    table.add_row("Embedding model", config.embedding.model)
    table.add_row("Max commits", str(config.vcs.max_commits))
    console.print(table)

    commits = workspace.store.list_commits()
    stats = Table(title="Caches")
    stats.add_column("Item", style="bold")
    stats.add_column("Value", justify="right")
    stats.add_row("Commits cached", str(len(commits)))
    stats.add_row("Commits summarized", str(sum(1 for c in commits if c.summary)))
    stats.add_row(
        "Overall summary",
        "yes" if workspace.store.get_singleton(RecordKind.OVERALL) else "no",
    )
    stats.add_row("Vectors", str(len(workspace.index)))
    stats.add_row("Chat sessions", str(len(workspace.sessions.list_ids())))
    console.print(stats)

    if GitRepo.detect(workspace.project_root):
        console.print("VCS: git detected")
    else:
        console.print("[yellow]No git repository detected[/yellow]")


@app.command()
def reset(
    path: Path = typer.Argument(
        Path("."),
        help="Project root directory.",
    ),
    yes: bool = typer.Option(
        False,
        "--yes", "-y",
        help="Do not ask for confirmation.",
    ),
) -> None:
    """Delete the commit cache, vector index and chat sessions."""
    workspace = _open_workspace(path, with_provider=False)
    if not yes:
        typer.confirm("Delete all Gittyx caches and sessions?", abort=True)

    removed = workspace.reset()
    console.print(f"[green]Reset complete.[/green] Removed {removed} chat sessions.")


if __name__ == "__main__":
    app()

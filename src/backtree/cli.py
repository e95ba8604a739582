from __future__ import annotations
from pathlib import Path
from typing import Optional
import logging
import typer
from rich.console import Console
from rich.markup import escape

from .archive import Archive
from .errors import BacktreeError, describe_error
from .materialize import WriteMode
from .models import BacktreeConfig, load_config
from .progress import ProgressPort
from .utils import PerfTimer

app = typer.Typer(no_args_is_help=True, help="Rebuild file trees from flat, content-addressed backups.")

console = Console()
err_console = Console(stderr=True)

ConfigOpt = typer.Option(None, "--config", help="YAML config file.")
VerboseOpt = typer.Option(0, "--verbose", "-v", count=True, help="-v for info, -vv for debug logging.")
CopyOpt = typer.Option(False, "--copy", "-c", help="Copy the files instead of creating symbolic links.")


def _setup(config: Optional[Path], verbose: int) -> BacktreeConfig:
    level = logging.WARNING if verbose <= 0 else logging.INFO if verbose == 1 else logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)
    return load_config(config)


def _fail(context: str, err: BacktreeError) -> typer.Exit:
    wrapped = BacktreeError(context)
    wrapped.__cause__ = err
    err_console.print(f"[bold red]error:[/bold red] {escape(describe_error(wrapped))}", highlight=False, soft_wrap=True)
    return typer.Exit(code=1)


def _progress_port(cfg: BacktreeConfig) -> ProgressPort:
    return ProgressPort(
        console=err_console,
        refresh_interval_s=cfg.progress.refresh_interval_s,
        enabled=cfg.progress.enabled,
    )


@app.command()
def domains(
    backup_dir: Path,
    config: Optional[Path] = ConfigOpt,
    verbose: int = VerboseOpt,
):
    """List all the domains of a backup archive."""
    try:
        cfg = _setup(config, verbose)
        timer = PerfTimer(err_console)
        with Archive.open(backup_dir, cfg) as archive:
            names = archive.list_domains()
    except BacktreeError as e:
        raise _fail("failed to list domains", e)
    timer.finish()
    for name in names:
        typer.echo(name)


@app.command()
def extract(
    backup_dir: Path,
    domain: str,
    out_dir: Path = typer.Option(..., "--out", "-o", help="Destination directory for extracted files."),
    copy: bool = CopyOpt,
    config: Optional[Path] = ConfigOpt,
    verbose: int = VerboseOpt,
):
    """Extract one domain's files into a directory tree."""
    mode = WriteMode.COPY if copy else WriteMode.LINK
    try:
        cfg = _setup(config, verbose)
        timer = PerfTimer(err_console)
        with Archive.open(backup_dir, cfg) as archive, _progress_port(cfg) as port:
            count = archive.extract(domain, out_dir, mode=mode, progress=port.send)
    except BacktreeError as e:
        raise _fail("failed to extract files", e)
    # the progress bar is gone by now, so the summary is not clobbered
    console.print(f"[green]Extracted {count} files to {escape(str(out_dir))}[/green]")
    timer.finish()


@app.command()
def migrate(
    backup_dir: Path,
    domain: str,
    to: Path = typer.Option(..., "--to", "-m", help="Destination backup archive."),
    copy: bool = CopyOpt,
    config: Optional[Path] = ConfigOpt,
    verbose: int = VerboseOpt,
):
    """Migrate one domain's files and manifest rows to another backup archive."""
    mode = WriteMode.COPY if copy else WriteMode.LINK
    try:
        cfg = _setup(config, verbose)
        timer = PerfTimer(err_console)
        with Archive.open(backup_dir, cfg) as src, Archive.open(to, cfg) as dest, _progress_port(cfg) as port:
            count = dest.migrate(domain, src, mode=mode, progress=port.send)
    except BacktreeError as e:
        raise _fail("failed to migrate files", e)
    console.print(f"[green]Migrated {count} rows of {escape(domain)} to {escape(str(to))}[/green]")
    timer.finish()


def main():
    app()


if __name__ == "__main__":
    main()

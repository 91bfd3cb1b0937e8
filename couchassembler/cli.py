"""CLI interface for couchassembler."""

import logging
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .api import CouchClient
from .assembler.context import BuildContext, Diagnostic
from .config import config
from .exceptions import CouchAPIError, SyncCancelledError
from .output import OutputFormatter
from .sync import SyncEngine

logger = logging.getLogger(__name__)


def diagnostic_printer(out: OutputFormatter) -> Callable[[Diagnostic], None]:
    """Return a callback that prints diagnostics as they are recorded."""

    def report(diagnostic: Diagnostic) -> None:
        if diagnostic.is_error:
            out.error(str(diagnostic))
        else:
            out.warning(str(diagnostic))

    return report


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.version_option()
@click.pass_context
def main(ctx: Any, quiet: bool, json: bool, verbose: bool) -> None:
    """couchassembler - Assemble folders into CouchDB documents and push them."""
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        logging.getLogger("couchassembler").setLevel(logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.option(
    "--database-url",
    prompt="Database URL (e.g. http://localhost:5984/mydb)",
    help="URL of the target database",
)
@click.option("--username", "-u", prompt="Username", default="", help="Username")
@click.option(
    "--password",
    "-p",
    prompt="Password",
    default="",
    hide_input=True,
    help="Password",
)
@click.pass_context
def init(ctx: Any, database_url: str, username: str, password: str) -> None:
    """Initialize the database configuration.

    Stores the settings in ~/.config/couchassembler/config for future use.
    """
    out: OutputFormatter = ctx.obj["out"]

    out.info("Validating database...")
    try:
        client = CouchClient(
            database_url, username=username or None, password=password or None
        )
        try:
            info = client.get_database_info()
        finally:
            client.close()
        out.success(f"Connected to database '{info.get('db_name', database_url)}'")
    except CouchAPIError as e:
        out.error(f"Database validation failed: {e}")
        if not click.confirm("Save settings anyway?", default=False):
            out.warning("Configuration cancelled.")
            ctx.exit(1)

    try:
        config.save_settings(
            database_url, username=username or None, password=password or None
        )
    except OSError as e:
        out.error(f"Initialization failed: {e}")
        ctx.exit(1)

    out.print_summary(
        "Initialization Complete",
        [
            ("Status", "Configuration saved successfully"),
            ("Config file", str(config.get_config_path())),
        ],
    )


@main.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.argument("database_url", required=False)
@click.option("--username", "-u", default=None, help="Database username")
@click.option("--password", "-p", default=None, help="Database password")
@click.option(
    "--minify/--no-minify",
    default=None,
    help="Minify JavaScript sources (default from configuration)",
)
@click.option(
    "--dry-run", is_flag=True, help="Show what would be written without writing"
)
@click.option(
    "--exclude-dot-files",
    is_flag=True,
    help="Skip files and folders whose name starts with a dot",
)
@click.pass_context
def push(
    ctx: Any,
    source: Path,
    database_url: Optional[str],
    username: Optional[str],
    password: Optional[str],
    minify: Optional[bool],
    dry_run: bool,
    exclude_dot_files: bool,
) -> None:
    """Assemble SOURCE and push it to the database.

    SOURCE is a folder containing a _design folder and loose JSON documents,
    or a _design folder on its own. DATABASE_URL defaults to the configured
    database.

    Nothing is written if any file fails to assemble.

    Examples:
        couchasm push ./app http://localhost:5984/app
        couchasm push ./app/_design --minify
        couchasm push ./app --dry-run
    """
    out: OutputFormatter = ctx.obj["out"]

    if not source.is_dir():
        out.error("Fatal error: Directory name is invalid.")
        ctx.exit(1)

    context = BuildContext(
        source,
        minify=config.minify if minify is None else minify,
        exclude_dot_files=exclude_dot_files,
        callback=diagnostic_printer(out),
    )

    try:
        client = CouchClient(
            database_url,
            username=username or config.username,
            password=password or config.password,
        )
    except CouchAPIError as e:
        out.error(f"Fatal error: {e}")
        ctx.exit(1)
        return

    try:
        stats = SyncEngine(client, out).push(source, context, dry_run=dry_run)
    except (KeyboardInterrupt, SyncCancelledError):
        out.warning("Push cancelled by user")
        ctx.exit(130)
        return
    except ValueError as e:
        out.error(f"Fatal error: {e}")
        ctx.exit(1)
        return
    finally:
        client.close()

    if out.json_output:
        out.output_json(
            {
                **stats,
                "diagnostics": [str(d) for d in context.diagnostics],
            }
        )

    if context.has_failed:
        ctx.exit(1)


@main.command()
@click.argument("source", type=click.Path(path_type=Path))
@click.option("--minify/--no-minify", default=None, help="Minify JavaScript sources")
@click.option(
    "--exclude-dot-files",
    is_flag=True,
    help="Skip files and folders whose name starts with a dot",
)
@click.pass_context
def build(
    ctx: Any, source: Path, minify: Optional[bool], exclude_dot_files: bool
) -> None:
    """Assemble SOURCE and print the documents as JSON.

    No database is contacted; use this to check a tree before pushing it.
    """
    out: OutputFormatter = ctx.obj["out"]

    if not source.is_dir():
        out.error("Fatal error: Directory name is invalid.")
        ctx.exit(1)

    context = BuildContext(
        source,
        minify=config.minify if minify is None else minify,
        exclude_dot_files=exclude_dot_files,
        callback=diagnostic_printer(out),
    )
    documents = SyncEngine(output=out).build(source, context)

    if context.has_failed:
        out.warning("Aborting.")
        ctx.exit(1)

    out.output_json([document.to_json() for document in documents])
    logger.debug(f"Assembled {context.files_assembled} file(s)")


if __name__ == "__main__":
    main()

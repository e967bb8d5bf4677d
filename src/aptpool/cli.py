"""aptpool command line interface."""

import logging
import platform
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from aptpool import __version__, constants
from aptpool.exceptions import AptPoolError
from aptpool.html import generate_html_indexes
from aptpool.models import RepositoryConfig
from aptpool.repository import Repository
from aptpool.signing import GnupgSigner

logger = logging.getLogger(__name__)

cli = typer.Typer(
    help="Manage a local APT repository: add packages, build indexes, sign and prune.",
    no_args_is_help=True,
)
console = Console()


class CliState:
    repo: Repository
    keep_versions: int


state = CliState()


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]Error:[/red] {error}")
    return typer.Exit(code=1)


@cli.callback()
def main_options(
    repo_root: Path = typer.Option(constants.REPO_ROOT, "--repo-root", "-r", help="Path to repository root"),
    keep_versions: int = typer.Option(
        constants.KEEP_VERSIONS, help="Number of versions to keep per package when pruning"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Global options shared by all commands."""
    if verbose:
        logging.getLogger("aptpool").setLevel(logging.DEBUG)
    state.repo = Repository(repo_root, RepositoryConfig())
    state.keep_versions = keep_versions


@cli.command()
def init():
    """Initialize repository directory structure."""
    repo = state.repo
    try:
        repo.init()
        generate_html_indexes(repo.root)
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e

    console.print("Repository initialized successfully")
    console.print(f"  Root: {repo.root}")
    console.print(f"  Distributions: {' '.join(repo.config.distributions)}")
    console.print(f"  Components: {' '.join(repo.config.components)}")
    console.print(f"  Architectures: {' '.join(repo.config.architectures)}")


@cli.command()
def add(
    deb_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="Package archive to add"),
    dist: str = typer.Option("stable", "--dist", "-d", help="Distribution to add the package to"),
    component: str = typer.Option(constants.DEFAULT_COMPONENT, "--component", "-c", help="Pool component"),
):
    """Add a .deb to the pool, prune old versions and regenerate the indexes."""
    repo = state.repo
    try:
        entry = repo.add_package(deb_file, component)
        record = entry.record
        console.print(f"Added package: {record.name} {record.version} ({record.architecture})")
        console.print(f"  Pool path: {record.filename}")

        if state.keep_versions > 0:
            result = repo.prune(state.keep_versions)
            if result.deleted:
                console.print(f"  Pruned {len(result.deleted)} old version(s)")

        repo.build_index(dist)
        console.print(f"  Updated Packages index for {dist}")
        repo.build_release(dist)
        console.print(f"  Updated Release for {dist}")
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e


@cli.command()
def index(
    dist: str = typer.Option("stable", "--dist", "-d", help="Distribution to regenerate the index for"),
    html: bool = typer.Option(True, help="Also generate browsable index.html pages"),
):
    """Regenerate the Packages and Release files of a distribution."""
    repo = state.repo
    try:
        repo.build_index(dist)
        console.print(f"Generated Packages index for {dist}")
        repo.build_release(dist)
        console.print(f"Generated Release for {dist}")
        if html:
            generate_html_indexes(repo.root)
            console.print("Generated HTML index pages")
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e


@cli.command()
def prune(
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show what would be deleted without deleting"),
):
    """Remove old package versions, keeping the newest N per package."""
    try:
        result = state.repo.prune(state.keep_versions, dry_run=dry_run)
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e

    if dry_run:
        console.print("Dry run - no files deleted")
    console.print(f"Kept: {len(result.kept)} packages")
    console.print(f"Deleted: {len(result.deleted)} packages")
    if result.deleted:
        console.print("\nDeleted packages:")
        for path in result.deleted:
            console.print(f"  - {path}")


@cli.command()
def sign(
    dist: str = typer.Option("stable", "--dist", "-d", help="Distribution to sign"),
    key: str | None = typer.Option(None, "--key", "-k", help="GPG key ID to use for signing"),
    gnupghome: str | None = typer.Option(None, help="GnuPG home directory"),
    export_key: Path | None = typer.Option(None, help="Also export the public key to this path"),
):
    """Sign the Release file, creating Release.gpg and InRelease."""
    dist_dir = state.repo.dist_dir(dist)
    try:
        signer = GnupgSigner(key_id=key, gnupghome=gnupghome)
        detached, inline = signer.sign_release(dist_dir)
        if export_key is not None:
            signer.export_public_key(export_key)
            console.print(f"  Exported public key to {export_key}")
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e

    console.print(f"Signed Release for {dist}")
    console.print(f"  Created: {detached}")
    console.print(f"  Created: {inline}")


@cli.command(name="list")
def list_packages(
    dist: str = typer.Option("stable", "--dist", "-d", help="Distribution to list"),
):
    """List the packages in the built indexes of a distribution."""
    repo = state.repo
    table = Table("Package", "Version", "Architecture", "Component", "Size")
    try:
        for component in repo.config.components:
            for arch in repo.config.architectures:
                for record in repo.read_index(dist, component, arch):
                    table.add_row(record.name, record.version, record.architecture, component, str(record.size))
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e
    console.print(table)


@cli.command()
def verify(
    dist: str = typer.Option("stable", "--dist", "-d", help="Distribution to verify"),
):
    """Check the Release checksums of a distribution against the files on disk."""
    repo = state.repo
    try:
        problems = repo.verify_release(dist)
        generated = repo.release_date(dist)
    except (AptPoolError, OSError) as e:
        raise _fail(e) from e

    if generated is not None:
        console.print(f"Release for {dist} generated {generated.isoformat()}")
    if problems:
        for problem in problems:
            console.print(f"[red]✗[/red] {problem}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Release for {dist} matches the index files")


@cli.command()
def version():
    """Print version information."""
    console.print(f"aptpool {__version__}")
    console.print(f"  Python: {platform.python_version()}")
    console.print(f"  OS/Arch: {platform.system().lower()}/{platform.machine()}")


def main() -> None:
    """Main entry point for the aptpool CLI."""
    cli()


if __name__ == "__main__":
    main()

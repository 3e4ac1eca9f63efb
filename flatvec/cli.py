"""flatvec CLI application with Typer."""

import json
import logging
from pathlib import Path
from typing import Annotated

import typer

from flatvec import __version__
from flatvec.bootstrap import ApplicationContainer, bootstrap_application
from flatvec.config import get_settings, set_settings
from flatvec.errors import FlatIndexError

app = typer.Typer(
    name="flatvec",
    help="Append-only flat vector store with exact cosine search",
    add_completion=False,
    no_args_is_help=True,
)

PathOption = Annotated[
    Path | None,
    typer.Option("--path", "-p", help="Index file (defaults to <data-dir>/<index-name>)"),
]
DimOption = Annotated[
    int | None,
    typer.Option("--dim", "-d", help="Vector dimensionality", min=1),
]
JsonOption = Annotated[
    bool,
    typer.Option("--json", help="Output as JSON"),
]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"flatvec version {__version__}")
        raise typer.Exit()


def _fail(message: str, *, code: int = 1) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


def _open(path: Path | None, dim: int | None, *, create: bool = True) -> ApplicationContainer:
    try:
        return bootstrap_application(index_path=path, dim=dim, create=create)
    except FileNotFoundError as exc:
        raise _fail(f"{exc}. Run 'flatvec init' first.") from exc
    except FlatIndexError as exc:
        raise _fail(str(exc)) from exc
    except OSError as exc:
        raise _fail(f"cannot open index: {exc}") from exc


def _parse_vector(raw: str) -> list[float]:
    """Parse a JSON array of numbers from ``raw``."""
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise typer.BadParameter(f"not valid JSON: {exc.msg}") from exc

    if not isinstance(value, list) or not all(
        isinstance(item, (int, float)) and not isinstance(item, bool) for item in value
    ):
        raise typer.BadParameter("vector must be a JSON array of numbers")
    return [float(item) for item in value]


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", "-v", callback=version_callback, is_eager=True),
    ] = None,
    data_dir: Annotated[
        Path | None,
        typer.Option("--data-dir", help="Override data directory"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """flatvec - persistent flat vector store."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Update settings with CLI flags
    settings = get_settings()
    if data_dir:
        settings.data_dir = data_dir
    set_settings(settings)


@app.command("init")
def init_index(path: PathOption = None, dim: DimOption = None) -> None:
    """Create an index, or validate an existing one."""
    existed = (path or get_settings().get_index_path()).exists()
    container = _open(path, dim)
    store = container.store

    action = "Validated" if existed else "Created"
    typer.secho(
        f"{action} index {store.path} (dim={store.dim}, records={store.count()})",
        fg=typer.colors.GREEN,
    )


@app.command("add")
def add_vectors(
    vector: Annotated[
        str | None,
        typer.Argument(help="Vector as a JSON array, e.g. '[0.1, 0.2]'"),
    ] = None,
    file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="File with one JSON array per line", exists=True),
    ] = None,
    path: PathOption = None,
    dim: DimOption = None,
    json_output: JsonOption = False,
) -> None:
    """Append vectors and print their assigned IDs."""
    if vector is not None and file is None:
        vectors = [_parse_vector(vector)]
    elif file is not None and vector is None:
        lines = file.read_text(encoding="utf-8").splitlines()
        vectors = [_parse_vector(line) for line in lines if line.strip()]
    else:
        raise _fail("provide either a VECTOR argument or --file", code=2)

    container = _open(path, dim)
    ids: list[int] = []
    try:
        for values in vectors:
            ids.append(container.vector_store.add(values))
    except FlatIndexError as exc:
        if ids:
            typer.secho(f"Appended {len(ids)} vectors before failing", fg=typer.colors.YELLOW)
        raise _fail(str(exc)) from exc

    if json_output:
        from flatvec.utils.cli_output import json_response

        typer.echo(json_response("append_result", 1, index=str(container.store.path), ids=ids))
        return

    for record_id in ids:
        typer.echo(str(record_id))


@app.command("search")
def search_vectors(
    query: Annotated[str, typer.Argument(help="Query vector as a JSON array")],
    top_k: Annotated[
        int | None,
        typer.Option("--top-k", "-k", help="Maximum results to return", min=0),
    ] = None,
    path: PathOption = None,
    dim: DimOption = None,
    json_output: JsonOption = False,
) -> None:
    """Rank stored vectors by cosine distance to QUERY."""
    values = _parse_vector(query)
    container = _open(path, dim)
    limit = top_k if top_k is not None else container.settings.default_top_k

    try:
        hits = container.vector_store.query(values, top_k=limit)
    except FlatIndexError as exc:
        raise _fail(str(exc)) from exc

    if json_output:
        from flatvec.utils.cli_output import json_response

        typer.echo(
            json_response(
                "search_results",
                1,
                index=str(container.store.path),
                top_k=limit,
                total_hits=len(hits),
                results=[{"id": hit.identifier, "distance": hit.distance} for hit in hits],
            )
        )
        return

    if not hits:
        typer.secho("No results found", fg=typer.colors.YELLOW)
        return

    for rank, hit in enumerate(hits, 1):
        typer.echo(f"{rank}. id={hit.identifier} distance={hit.distance:.6f}")


@app.command("info")
def index_info(path: PathOption = None, json_output: JsonOption = False) -> None:
    """Show index dimension, record count, and next ID."""
    container = _open(path, None, create=False)
    try:
        stats = container.store.stats()
    except FlatIndexError as exc:
        raise _fail(str(exc)) from exc

    if json_output:
        from flatvec.utils.cli_output import json_response

        typer.echo(json_response("index_info", 1, **stats.model_dump(mode="json")))
        return

    typer.echo(f"Path: {stats.path}")
    typer.echo(f"Dimension: {stats.dim}")
    typer.echo(f"Format version: {stats.version}")
    typer.echo(f"Records: {stats.record_count}")
    typer.echo(f"Next ID: {stats.next_id}")
    typer.echo(f"Size: {stats.size_bytes} bytes")


@app.command("verify")
def verify_index(path: PathOption = None) -> None:
    """Scan every record and report format problems."""
    container = _open(path, None, create=False)
    try:
        count = container.store.verify()
    except FlatIndexError as exc:
        raise _fail(str(exc)) from exc

    typer.secho(f"Index is valid ({count} records)", fg=typer.colors.GREEN)


if __name__ == "__main__":
    app()

"""CLI command implementations"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from sqlmodel import Session

from mdconf.config import Settings, load_config
from mdconf.core.convert import Converter
from mdconf.core.dump import dump_store
from mdconf.core.errors import ConfigError, MdconfError
from mdconf.core.index import Indexer
from mdconf.core.model_io import load_model, model_overview, save_model
from mdconf.core.models import ContentModel
from mdconf.core.publish import PublishReport, publish_model
from mdconf.core.render.extensions import DEFAULT_EXTENSIONS
from mdconf.core.render.pipeline import Pipeline
from mdconf.core.titles import make_title_resolver
from mdconf.crud.database import init_db, make_engine, reset_db
from mdconf.crud.store import SqlContentStore


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


def _settings(overrides: dict = None) -> Settings:
    """Load config with standard CLI error handling."""
    try:
        return load_config(overrides=overrides)
    except ConfigError as e:
        _fail(str(e))


def _converter(settings: Settings) -> Converter:
    extensions = set(DEFAULT_EXTENSIONS)
    if settings.plantuml_macro:
        extensions.add('plantuml')
    return Converter(
        Path(settings.output_dir),
        pipeline=Pipeline(extensions, suppress_html=settings.suppress_html),
        title_resolver=make_title_resolver(
            settings.title_strategy, settings.title_prefix, settings.title_suffix, settings.charset,
        ),
        title_child_prefixed=settings.title_child_prefixed,
        remove_title=settings.remove_title,
        plantuml_macro_name=settings.plantuml_macro_name,
        charset=settings.charset,
        workers=settings.workers,
    )


def _run_convert(settings: Settings) -> ContentModel:
    indexer = Indexer(
        file_extension=settings.file_extension,
        exclude_pattern=settings.exclude_pattern,
        child_layout=settings.child_layout,
        orphan_file_action=settings.orphan_file_action,
        charset=settings.charset,
    )
    try:
        structure = indexer.index(Path(settings.input_dir))
        model = _converter(settings).convert(structure)
        model_path = save_model(model, settings.model_path)
    except MdconfError as e:
        _fail("Conversion failed", e)
    for page in model.walk():
        typer.echo(f"  {page.title} -> {page.content_file_path}")
    typer.echo(f"Converted {sum(1 for _ in model.walk())} page(s); model written to {model_path}")
    return model


def _run_publish(settings: Settings, model: ContentModel) -> PublishReport:
    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        with Session(engine) as session:
            store = SqlContentStore(session, settings.space_key, settings.max_versions)
            report = publish_model(
                model, store, settings.parent_title, settings.orphan_removal, settings.charset,
            )
            session.commit()
    except MdconfError as e:
        _fail("Publish failed", e)
    for title, summary in report.changes.items():
        typer.echo(f"  updated: {title} (+{summary['added']} -{summary['deleted']})")
    counts = report.counts()
    typer.echo(
        f"Publish complete - "
        f"{counts['created']} created, "
        f"{counts['updated']} updated, "
        f"{counts['moved']} moved, "
        f"{counts['unchanged']} unchanged, "
        f"{counts['skipped']} skipped, "
        f"{counts['deleted']} deleted"
    )
    return report


def convert_cmd(
    input_dir: Annotated[Optional[str], typer.Argument(help="Markdown page tree to convert")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    layout: Annotated[Optional[str], typer.Option("--child-layout", help="sub_directory or same_directory")] = None,
    strategy: Annotated[Optional[str], typer.Option("--title-strategy", help="default, first_heading, or filename")] = None,
    remove_title: Annotated[Optional[bool], typer.Option("--remove-title/--keep-title", help="Strip the title heading")] = None,
    plantuml: Annotated[Optional[bool], typer.Option("--plantuml/--no-plantuml", help="Render plantuml fences as macros")] = None,
    workers: Annotated[Optional[int], typer.Option("--workers", help="Parallel top-level subtree conversions")] = None,
    ):
    """Convert a markdown page tree into wiki files and a content model."""
    settings = _settings(overrides={
        "input_dir": input_dir, "output_dir": out, "child_layout": layout,
        "title_strategy": strategy, "remove_title": remove_title,
        "plantuml_macro": plantuml, "workers": workers,
    })
    _run_convert(settings)


def publish_cmd(
    model_file: Annotated[Optional[str], typer.Option("--model", help="Content model JSON file")] = None,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Content store database URL")] = None,
    space: Annotated[Optional[str], typer.Option("--space", help="Space key")] = None,
    parent: Annotated[Optional[str], typer.Option("--parent-title", help="Existing page to publish under")] = None,
    orphans: Annotated[Optional[str], typer.Option("--orphan-removal", help="remove or keep")] = None,
    ):
    """Publish a previously converted content model to the content store."""
    settings = _settings(overrides={
        "db_url": db_url, "space_key": space, "parent_title": parent, "orphan_removal": orphans,
    })
    path = Path(model_file) if model_file else settings.model_path
    try:
        model = load_model(path)
    except MdconfError as e:
        _fail(f"Cannot load content model {path}", e)
    _run_publish(settings, model)


def convert_and_publish_cmd(
    input_dir: Annotated[Optional[str], typer.Argument(help="Markdown page tree to convert")] = None,
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Content store database URL")] = None,
    space: Annotated[Optional[str], typer.Option("--space", help="Space key")] = None,
    parent: Annotated[Optional[str], typer.Option("--parent-title", help="Existing page to publish under")] = None,
    ):
    """Run convert, then publish the resulting model."""
    settings = _settings(overrides={
        "input_dir": input_dir, "output_dir": out,
        "db_url": db_url, "space_key": space, "parent_title": parent,
    })
    model = _run_convert(settings)
    _run_publish(settings, model)


def dump_cmd(
    out: Annotated[Optional[str], typer.Option("--out-dir", help="Output directory")] = None,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Content store database URL")] = None,
    space: Annotated[Optional[str], typer.Option("--space", help="Space key")] = None,
    parent: Annotated[Optional[str], typer.Option("--parent-title", help="Dump only the pages below this page")] = None,
    ):
    """Dump pages from the content store to local files and a content model."""
    settings = _settings(overrides={
        "output_dir": out, "db_url": db_url, "space_key": space, "parent_title": parent,
    })
    engine = make_engine(settings.db_url)
    init_db(engine)
    try:
        with Session(engine) as session:
            store = SqlContentStore(session, settings.space_key, settings.max_versions)
            model = dump_store(store, Path(settings.output_dir), settings.parent_title)
        model_path = save_model(model, settings.model_path)
    except MdconfError as e:
        _fail("Dump failed", e)
    typer.echo(f"Dumped {sum(1 for _ in model.walk())} page(s); model written to {model_path}")


def model_overview_cmd(
    model_file: Annotated[Optional[str], typer.Option("--model", help="Content model JSON file")] = None,
    ):
    """Print the page tree of a content model."""
    settings = _settings()
    path = Path(model_file) if model_file else settings.model_path
    try:
        model = load_model(path)
    except MdconfError as e:
        _fail(f"Cannot load content model {path}", e)
    typer.echo(model_overview(model))


def init_cmd(
    reset: Annotated[bool, typer.Option("--reset", help="Drop and recreate all tables")] = False,
    db_url: Annotated[Optional[str], typer.Option("--db-url", help="Content store database URL")] = None,
    ):
    """Initialize the content store schema. Use --reset to clear existing data."""
    settings = _settings(overrides={"db_url": db_url})
    engine = make_engine(settings.db_url)
    if reset:
        reset_db(engine)
        typer.echo("Existing data cleared.")
    else:
        init_db(engine)
    typer.echo(f"Content store initialized at: {settings.db_url}")

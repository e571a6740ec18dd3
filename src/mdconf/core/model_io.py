"""Content model persistence (JSON) and a printable tree overview"""

from pathlib import Path

from pydantic import ValidationError

from mdconf.core.errors import ConversionIOError, MdconfError
from mdconf.core.models import ContentModel, OutputPage


MODEL_FILE = "confluence-content-model.json"


def save_model(model: ContentModel, path: Path) -> Path:
    """Write the content model as indented JSON; path may be a directory."""
    path = Path(path)
    if path.is_dir():
        path = path / MODEL_FILE
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(model.model_dump_json(indent=2), encoding='utf-8')
    except OSError as e:
        raise ConversionIOError(path, "write", str(e)) from e
    return path


def load_model(path: Path) -> ContentModel:
    """Read a content model written by save_model; path may be a directory."""
    path = Path(path)
    if path.is_dir():
        path = path / MODEL_FILE
    try:
        return ContentModel.model_validate_json(path.read_text(encoding='utf-8'))
    except OSError as e:
        raise ConversionIOError(path, "read", str(e)) from e
    except ValidationError as e:
        raise MdconfError(f"Invalid content model {path}: {e}") from e


def model_overview(model: ContentModel) -> str:
    """Indented tree of page titles with attachment counts."""
    lines: list[str] = []

    def _visit(page: OutputPage, depth: int) -> None:
        flags = []
        if page.attachments:
            flags.append(f"{len(page.attachments)} attachment(s)")
        if page.skip_update:
            flags.append("skip update")
        suffix = f" ({', '.join(flags)})" if flags else ""
        lines.append(f"{'  ' * depth}- {page.title}{suffix}")
        for child in page.children:
            _visit(child, depth + 1)

    for page in model.pages:
        _visit(page, 0)
    count = sum(1 for _ in model.walk())
    lines.append(f"{count} page(s)")
    return "\n".join(lines)

"""Integration tests: publish a converted model into the SQL content store and dump it back"""

import logging
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlmodel import SQLModel, Session

from mdconf.core.convert import Converter
from mdconf.core.dump import dump_store
from mdconf.core.errors import PageNotFoundError
from mdconf.core.index import Indexer
from mdconf.core.models import ContentModel
from mdconf.core.publish import OrphanRemoval, Publisher, publish_model
from mdconf.crud.store import SqlContentStore
from mdconf.crud.versioning import list_versions


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    SQLModel.metadata.create_all(engine)
    with Session(engine) as s:
        yield s
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="store")
def store_fixture(session):
    return SqlContentStore(session, "DOCS")


@pytest.fixture(name="site")
def site_fixture(tmp_path) -> Path:
    root = tmp_path / "site"
    _write(root / "home.md", "# Home\n\n[guide](guide.md)\n")
    _write(root / "home_attachments" / "logo.png", "logo-v1")
    _write(root / "guide.md", "# Guide\n")
    _write(root / "guide" / "setup.md", "# Setup\n")
    return root


@pytest.fixture(name="convert")
def convert_fixture(site, tmp_path):
    def _convert() -> ContentModel:
        return Converter(tmp_path / "out").convert(Indexer().index(site))
    return _convert


def test_first_publish_creates_tree(store, convert):
    report = publish_model(convert(), store)
    assert sorted(report.created) == ["Guide", "Home", "Setup"]
    assert report.attachments_added == 1

    guide = store.get_page_by_title("Guide")
    assert [p.title for p in store.list_child_pages(guide.id)] == ["Setup"]
    assert [p.title for p in store.list_child_pages(None)] == ["Guide", "Home"]
    assert store.get_page_by_title("Setup").content == "h1. Setup\n"


def test_republish_unchanged(store, convert):
    model = convert()
    publish_model(model, store)
    report = publish_model(model, store)
    assert report.counts() == {
        "created": 0, "updated": 0, "moved": 0, "unchanged": 3, "skipped": 0, "deleted": 0,
    }
    assert report.attachments_added == report.attachments_updated == 0


def test_changed_page_is_updated_with_next_version(store, session, site, convert):
    publish_model(convert(), store)
    (site / "guide.md").write_text("# Guide\n\nMore text.\n")
    (site / "home_attachments" / "logo.png").write_text("logo-v2")

    report = publish_model(convert(), store)

    assert report.updated == ["Guide"]
    assert report.changes["Guide"] == {"added": 2, "deleted": 0, "unchanged": 1}
    assert report.attachments_updated == 1
    guide = store.get_page_by_title("Guide")
    assert guide.version == 2
    assert [v.version for v in list_versions(session, guide.id)] == [1]


def test_update_logs_page_diff_at_debug(store, site, convert, caplog):
    publish_model(convert(), store)
    (site / "guide.md").write_text("# Guide\n\nMore text.\n")
    with caplog.at_level(logging.DEBUG, logger="mdconf"):
        publish_model(convert(), store)
    assert "+++ Guide (rendered)" in caplog.text
    assert "+More text." in caplog.text


def test_skip_update_page_is_not_touched(store, site, convert):
    publish_model(convert(), store)
    (site / "guide.md").write_text("---\nskip_update: true\n---\n# Guide\n\nChanged.\n")

    report = publish_model(convert(), store)

    assert report.skipped == ["Guide"]
    assert store.get_page_by_title("Guide").content == "h1. Guide\n"


def test_removed_pages_are_deleted_as_orphans(store, site, convert):
    publish_model(convert(), store)
    (site / "guide" / "setup.md").unlink()
    (site / "guide").rmdir()

    report = publish_model(convert(), store)

    assert report.deleted == ["Setup"]
    assert store.get_page_by_title("Setup") is None


def test_orphans_kept_when_disabled(store, site, convert):
    publish_model(convert(), store)
    (site / "guide" / "setup.md").unlink()

    report = Publisher(store, OrphanRemoval.keep).publish(convert())

    assert report.deleted == []
    assert store.get_page_by_title("Setup") is not None


def test_moved_page(store, site, convert):
    publish_model(convert(), store)
    _write(site / "home" / "setup.md", "# Setup\n")
    (site / "guide" / "setup.md").unlink()

    report = publish_model(convert(), store)

    assert report.moved == ["Setup"]
    home = store.get_page_by_title("Home")
    assert store.get_page_by_title("Setup").parent_id == home.id


def test_publish_under_parent(store, convert):
    root = store.create_page("Space Root", "root")
    publish_model(convert(), store, parent_title="Space Root")
    assert [p.title for p in store.list_child_pages(root.id)] == ["Guide", "Home"]


def test_publish_under_missing_parent(store, convert):
    with pytest.raises(PageNotFoundError):
        publish_model(convert(), store, parent_title="Nowhere")


def test_dump_round_trip(store, convert, tmp_path):
    publish_model(convert(), store)

    model = dump_store(store, tmp_path / "dump")

    assert [p.title for p in model.pages] == ["Guide", "Home"]
    guide, home = model.pages
    assert guide.children[0].content_file_path == str((tmp_path / "dump" / "guide" / "setup.wiki").absolute())
    assert Path(home.content_file_path).read_text() == "h1. Home\n\n[guide|Guide]\n"
    assert Path(home.attachments["logo.png"]).read_text() == "logo-v1"


def test_dump_missing_parent(store, tmp_path):
    with pytest.raises(PageNotFoundError):
        dump_store(store, tmp_path / "dump", parent_title="Nowhere")

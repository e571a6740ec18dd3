"""Unit tests for crud/store.py"""

from uuid import uuid4

import pytest

from mdconf.core.errors import (
    AttachmentNotFoundError,
    PageAlreadyExistsError,
    PageNotFoundError,
    VersionConflictError,
)
from mdconf.core.utils.hashing import sha256, sha256_bytes
from mdconf.crud.store import SqlContentStore
from mdconf.crud.versioning import list_versions


# --- pages ---

def test_create_page(store, page):
    assert page.version == 1
    assert page.hash == sha256("h1. Home\n")
    assert store.get_page_by_title("Home").id == page.id


def test_create_page_duplicate_title(store, page):
    with pytest.raises(PageAlreadyExistsError):
        store.create_page("Home", "again")


def test_same_title_in_other_space(session, page):
    other = SqlContentStore(session, "OTHER")
    assert other.get_page_by_title("Home") is None
    assert other.create_page("Home", "x").space_key == "OTHER"


def test_create_page_unknown_parent(store):
    with pytest.raises(PageNotFoundError):
        store.create_page("Orphan", "x", parent_id=uuid4())


def test_get_page_by_id_other_space(session, page):
    with pytest.raises(PageNotFoundError):
        SqlContentStore(session, "OTHER").get_page_by_id(page.id)


def test_list_child_pages_in_position_order(store, page):
    store.create_page("B", "b", page.id, position=1)
    store.create_page("A", "a", page.id, position=0)
    store.create_page("Top", "t")
    assert [p.title for p in store.list_child_pages(page.id)] == ["A", "B"]
    assert [p.title for p in store.list_child_pages(None)] == ["Home", "Top"]


def test_update_page_next_version(store, session, page):
    updated = store.update_page(page.id, "Home", "h1. Home\n\nnew\n", 2)
    assert updated.version == 2
    assert updated.hash == sha256("h1. Home\n\nnew\n")
    (snapshot,) = list_versions(session, page.id)
    assert (snapshot.version, snapshot.content) == (1, "h1. Home\n")


@pytest.mark.parametrize("version", [1, 3])
def test_update_page_version_conflict(store, page, version):
    with pytest.raises(VersionConflictError) as exc:
        store.update_page(page.id, "Home", "x", version)
    assert exc.value.expected == 2
    assert exc.value.actual == version


def test_update_page_rename_clash(store, page):
    other = store.create_page("Other", "o")
    with pytest.raises(PageAlreadyExistsError):
        store.update_page(other.id, "Home", "o", 2)


def test_update_page_prunes_history(store, session, page):
    for v in range(2, 7):
        store.update_page(page.id, "Home", f"v{v}", v)
    assert [s.version for s in list_versions(session, page.id)] == [3, 4, 5]


def test_update_page_keeps_parent_unless_given(store, page):
    child = store.create_page("Child", "c", page.id)
    assert store.update_page(child.id, "Child", "c2", 2).parent_id == page.id
    assert store.update_page(child.id, "Child", "c3", 3, None).parent_id is None


def test_move_page_keeps_version(store, page):
    child = store.create_page("Child", "c")
    moved = store.move_page(child.id, page.id, 4)
    assert (moved.parent_id, moved.position, moved.version) == (page.id, 4, 1)


def test_delete_page_removes_subtree(store, session, page):
    child = store.create_page("Child", "c", page.id)
    store.create_page("Grandchild", "g", child.id)
    store.add_attachment(child.id, "a.png", b"png")
    store.update_page(child.id, "Child", "c2", 2)

    assert store.delete_page(page.id) == 3
    assert store.list_child_pages(None) == []
    assert store.get_page_by_title("Grandchild") is None
    assert list_versions(session, child.id) == []


# --- attachments ---

def test_add_and_get_attachment(store, page):
    a = store.add_attachment(page.id, "logo.png", b"\x89PNG")
    assert a.hash == sha256_bytes(b"\x89PNG")
    assert store.get_attachment_by_filename(page.id, "logo.png").id == a.id
    assert [x.file_name for x in store.list_attachments(page.id)] == ["logo.png"]


def test_update_attachment_content(store, page):
    a = store.add_attachment(page.id, "logo.png", b"one")
    updated = store.update_attachment_content(page.id, a.id, b"two")
    assert (updated.data, updated.version) == (b"two", 2)


def test_update_attachment_wrong_page(store, page):
    a = store.add_attachment(page.id, "logo.png", b"one")
    other = store.create_page("Other", "o")
    with pytest.raises(AttachmentNotFoundError):
        store.update_attachment_content(other.id, a.id, b"two")


def test_delete_attachment(store, page):
    a = store.add_attachment(page.id, "logo.png", b"one")
    store.delete_attachment(a.id)
    assert store.list_attachments(page.id) == []
    with pytest.raises(AttachmentNotFoundError):
        store.delete_attachment(a.id)

"""Page version history: snapshot, prune, and list"""

from uuid import UUID

from sqlmodel import Session, select

from mdconf.crud.tables import PageVersion, StoredPage


def list_versions(session: Session, page_id: UUID) -> list[PageVersion]:
    """Return all snapshots for a page ordered by version ascending."""
    return list(
        session.exec(
            select(PageVersion)
            .where(PageVersion.page_id == page_id)
            .order_by(PageVersion.version.asc())
        ).all()
    )


def prune_versions(session: Session, page_id: UUID, max_versions: int) -> int:
    """Delete oldest snapshots beyond max_versions. Returns count deleted. No-op if max_versions=0."""
    if max_versions == 0:
        return 0

    versions = list_versions(session, page_id)
    excess = len(versions) - max_versions
    if excess <= 0:
        return 0

    for v in versions[:excess]:
        session.delete(v)
    session.flush()
    return excess


def save_version(session: Session, page: StoredPage, max_versions: int = 10) -> PageVersion:
    """Snapshot the page's current state under its current version number.

    Calls prune_versions after saving if max_versions > 0.
    """
    snapshot = PageVersion(
        page_id=page.id,
        version=page.version,
        title=page.title,
        content=page.content,
        hash=page.hash,
    )
    session.add(snapshot)
    session.flush()

    if max_versions > 0:
        prune_versions(session, page.id, max_versions)

    return snapshot


def delete_versions(session: Session, page_id: UUID) -> None:
    for v in list_versions(session, page_id):
        session.delete(v)
    session.flush()

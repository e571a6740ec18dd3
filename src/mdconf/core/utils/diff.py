"""Line-level change statistics for page updates"""

import difflib


def diff_summary(old: str, new: str) -> dict[str, int]:
    """Count lines added, deleted and kept when old content is replaced by new."""
    counts = {"added": 0, "deleted": 0, "unchanged": 0}
    matcher = difflib.SequenceMatcher(None, old.splitlines(), new.splitlines(), autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            counts["unchanged"] += i2 - i1
        else:
            # insert and delete opcodes have an empty range on one side
            counts["deleted"] += i2 - i1
            counts["added"] += j2 - j1
    return counts


def page_diff(old: str, new: str, title: str, context: int = 3) -> str:
    """Unified diff of a page update labelled with the page title, '' when identical."""
    return "".join(difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"{title} (stored)",
        tofile=f"{title} (rendered)",
        n=context,
    ))

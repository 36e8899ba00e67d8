"""Static version/update notices served by the whats_new and check_updates tools."""

from __future__ import annotations

_WHATS_NEW = """\
# memshare {version} — what's new

- Memories are plain Markdown files with YAML frontmatter, one directory per type.
- Full-text search is backed by a persisted index; run `rebuild_index` to recover it.
- `related` links are kept on both memories and cleaned up when either is deleted.
"""

_UPDATE_INFO = """\
You are running memshare {version}.

To upgrade, reinstall the package and restart the server:
  pip install --upgrade memshare
"""


def get_whats_new_message(version: str) -> str:
    return _WHATS_NEW.format(version=version)


def get_update_info_message(version: str) -> str:
    return _UPDATE_INFO.format(version=version)

from __future__ import annotations

"""
Read-only access to the legacy binary envelope (extensionless per-scope file).

Older releases pickled plain builtins (dicts, lists, strings, numbers, bools).
Nothing in that format needs a global, so the unpickler refuses all of them;
a crafted file cannot import or call anything. Shape validation is left to the
caller's legacy decoder. This module never writes.
"""

import io
import pickle
from pathlib import Path
from typing import Any

from jira_test_reporter.errors import LegacyMigrationError


class _PlainUnpickler(pickle.Unpickler):
    def find_class(self, module: str, name: str) -> Any:
        raise pickle.UnpicklingError(f"global '{module}.{name}' is not allowed in a legacy envelope")


def read_envelope(path: Path) -> Any:
    """Return the unpickled content of a legacy file.

    Raises FileNotFoundError when the file is absent and LegacyMigrationError
    when it exists but is not a readable envelope.
    """
    data = path.read_bytes()
    try:
        return _PlainUnpickler(io.BytesIO(data)).load()
    except (pickle.UnpicklingError, EOFError, ValueError, TypeError, AttributeError, IndexError) as ex:
        raise LegacyMigrationError(f"unreadable legacy envelope {path}: {ex}") from ex

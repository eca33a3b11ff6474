from __future__ import annotations

import os.path
from typing import Iterable, Sequence

from .types import CandidateProcess, Ownership


def _normalize(path: str, pathmod) -> str:
    return pathmod.normcase(pathmod.normpath(path))


def is_within(path: str, root: str, pathmod=os.path) -> bool:
    """True if ``path`` is ``root`` or sits below it on a separator boundary."""
    p = _normalize(path, pathmod)
    r = _normalize(root, pathmod)
    if p == r:
        return True
    prefix = r if r.endswith(pathmod.sep) else r + pathmod.sep
    return p.startswith(prefix)


def is_owned_by_workspace(
    candidates: Iterable[CandidateProcess],
    workspace_roots: Sequence[str],
    pathmod=os.path,
) -> bool:
    roots = [r for r in workspace_roots if r]
    for c in candidates:
        if not c.working_directory:
            continue
        if any(is_within(c.working_directory, root, pathmod) for root in roots):
            return True
    return False


def classify_ownership(
    candidates: Sequence[CandidateProcess],
    workspace_roots: Sequence[str],
    pathmod=os.path,
) -> Ownership:
    """
    UNKNOWN when nothing attributable was found (no candidates, or none with a
    resolvable cwd); otherwise OWNED or FOREIGN.
    """
    if not any(c.working_directory for c in candidates):
        return Ownership.UNKNOWN
    if is_owned_by_workspace(candidates, workspace_roots, pathmod):
        return Ownership.OWNED
    return Ownership.FOREIGN

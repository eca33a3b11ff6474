"""
Best-effort lookup of running dev server processes and their working directories.

An empty result means "ownership unknown", never "server not running".
"""

from __future__ import annotations

import logging
import os
import re
import sys
from typing import Optional, Protocol

import psutil

from .errors import ProcessEnumerationUnavailable
from .types import CandidateProcess

log = logging.getLogger(__name__)


DEV_SERVER_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"npm run dev"),
    re.compile(r"vite.*dev"),
    re.compile(r"node.*vite"),
    re.compile(r"(pnpm|yarn)( run)? dev"),
)

# platforms where psutil can resolve another process's cwd
_CWD_PLATFORMS = ("linux", "darwin", "win32", "freebsd", "openbsd", "netbsd", "sunos")


def looks_like_dev_server(command_line: str) -> bool:
    return any(p.search(command_line) for p in DEV_SERVER_PATTERNS)


class ProcessLocator(Protocol):
    def locate_candidates(self) -> list[CandidateProcess]:
        ...


class NoopProcessLocator:
    """Used where working directories cannot be resolved, or when the ownership check is off."""

    def locate_candidates(self) -> list[CandidateProcess]:
        return []


class PsutilProcessLocator:
    def __init__(self) -> None:
        self._own_pid = os.getpid()

    def locate_candidates(self) -> list[CandidateProcess]:
        try:
            return self._enumerate()
        except ProcessEnumerationUnavailable as e:
            log.debug(f"Process enumeration unavailable: {e}")
            return []
        except (psutil.Error, OSError) as e:
            log.debug(f"Process enumeration failed: {e}")
            return []

    def _enumerate(self) -> list[CandidateProcess]:
        found: list[CandidateProcess] = []
        try:
            procs = psutil.process_iter(attrs=["pid", "cmdline"])
        except NotImplementedError as e:
            raise ProcessEnumerationUnavailable(str(e)) from e

        for p in procs:
            try:
                pid = p.info.get("pid", p.pid)
                if pid == self._own_pid:
                    continue
                cmdline = p.info.get("cmdline") or []
                command_line = " ".join(str(part) for part in cmdline)
                if not command_line or not looks_like_dev_server(command_line):
                    continue
                found.append(CandidateProcess(
                    pid=pid,
                    command_line=command_line,
                    working_directory=self._cwd(p),
                ))
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue
        return found

    @staticmethod
    def _cwd(p: psutil.Process) -> Optional[str]:
        try:
            return p.cwd() or None
        except (psutil.AccessDenied, psutil.ZombieProcess, NotImplementedError):
            return None


def default_locator(enabled: bool = True, platform: str = sys.platform) -> ProcessLocator:
    if not enabled:
        return NoopProcessLocator()
    if not platform.startswith(_CWD_PLATFORMS):
        log.info(f"Working directory lookup not supported on {platform}; ownership check disabled")
        return NoopProcessLocator()
    return PsutilProcessLocator()

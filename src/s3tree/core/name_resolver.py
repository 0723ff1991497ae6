"""Collision-free destination names for uploads and copies."""

from __future__ import annotations

import logging
import posixpath
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from s3tree.constants import DELIMITER, MAX_NAME_PROBES
from s3tree.core.errors import NameResolutionError

if TYPE_CHECKING:
    from s3tree.core.s3_client import S3Client

logger = logging.getLogger("s3tree.name_resolver")


@dataclass
class NameProbe:
    """Split of a candidate into ``<parent><base>(<counter>)<extension>``."""

    parent: str
    base: str
    extension: str
    is_folder: bool
    counter: int = 0

    @classmethod
    def split(cls, candidate: str) -> NameProbe:
        is_folder = candidate.endswith(DELIMITER)
        path = candidate.rstrip(DELIMITER) if is_folder else candidate
        parent, _, leaf = path.rpartition(DELIMITER)
        if parent:
            parent += DELIMITER
        if is_folder:
            return cls(parent, leaf, "", True)
        base, ext = posixpath.splitext(leaf)
        return cls(parent, base, ext, False)

    def render(self) -> str:
        suffix = f"({self.counter})" if self.counter else ""
        tail = DELIMITER if self.is_folder else ""
        return f"{self.parent}{self.base}{suffix}{self.extension}{tail}"


class NameResolver:
    """Finds the first free name among ``name``, ``name(1)``, ``name(2)``, ...

    Keys ending in the delimiter are folders: they are taken when any object
    exists beneath them. With ``reserve=True`` handed-out names are remembered
    so concurrent callers sharing this resolver never get the same one.
    """

    def __init__(self, client: S3Client, bucket: str, max_probes: int = MAX_NAME_PROBES) -> None:
        self._s3 = client
        self._bucket = bucket
        self._max_probes = max_probes
        self._reserved: set[str] = set()
        self._lock = threading.Lock()

    def exists(self, name: str) -> bool:
        if name.endswith(DELIMITER):
            return self._s3.prefix_exists(self._bucket, name)
        return self._s3.object_exists(self._bucket, name)

    def _is_reserved(self, name: str) -> bool:
        with self._lock:
            return name in self._reserved

    def _claim(self, name: str, reserve: bool) -> bool:
        if not reserve:
            return True
        with self._lock:
            if name in self._reserved:
                return False
            self._reserved.add(name)
            return True

    def _try(self, name: str, reserve: bool) -> bool:
        if self._is_reserved(name) or self.exists(name):
            return False
        return self._claim(name, reserve)

    def resolve(self, candidate: str, reserve: bool = False) -> str:
        if self._try(candidate, reserve):
            return candidate

        probe = NameProbe.split(candidate)
        while probe.counter < self._max_probes:
            probe.counter += 1
            name = probe.render()
            if self._try(name, reserve):
                logger.debug("Resolved '%s' -> '%s'", candidate, name)
                return name
        logger.error("Gave up resolving '%s' after %d probes", candidate, self._max_probes)
        raise NameResolutionError(candidate, self._max_probes)

    def release(self, name: str) -> None:
        with self._lock:
            self._reserved.discard(name)

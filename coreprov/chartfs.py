"""A read-only file system over a packaged chart archive (.tgz)."""

from __future__ import annotations

import io
import posixpath
import tarfile
from typing import NamedTuple


class _DirEntry(NamedTuple):
    name: str
    is_dir: bool


def _clean(name: str) -> str:
    return posixpath.normpath(name.lstrip("/"))


class ChartFS:
    """The files of a chart archive that holds exactly one root directory."""

    def __init__(self, files, dirs, root_dir, package_url=""):
        self._files = dict(files)
        self._dirs = set(dirs)
        self._root_dir = root_dir
        self._package_url = package_url
        self._children: dict[str, list[_DirEntry]] = {}
        for path in self._dirs | self._files.keys():
            parent = posixpath.dirname(path) or "."
            entry = _DirEntry(posixpath.basename(path), path in self._dirs)
            self._children.setdefault(parent, []).append(entry)
        for entries in self._children.values():
            entries.sort(key=lambda e: e.name)

    @classmethod
    def from_reader(cls, stream, package_url):
        """Load a (possibly gzipped) tar archive from a binary stream or bytes."""
        data = stream.read() if hasattr(stream, "read") else bytes(stream)
        files: dict[str, bytes] = {}
        dirs: set[str] = set()
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tar:
            for member in tar:
                path = _clean(member.name)
                if path == "." or path.startswith(".."):
                    continue
                if member.isdir():
                    dirs.add(path)
                elif member.isfile():
                    extracted = tar.extractfile(member)
                    files[path] = extracted.read() if extracted is not None else b""
        for path in list(files) + list(dirs):
            parent = posixpath.dirname(path)
            while parent:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        roots = [p for p in dirs if "/" not in p]
        if len(roots) != 1:
            raise ValueError("archive should contain only one root dir")
        return cls(files, dirs, roots[0], package_url)

    @property
    def root_dir(self):
        return self._root_dir

    @property
    def package_url(self):
        return self._package_url

    def exists(self, name):
        path = _clean(name)
        return path == "." or path in self._files or path in self._dirs

    def open(self, name):
        """Return a binary stream over the file ``name``."""
        path = _clean(name)
        if path in self._files:
            return io.BytesIO(self._files[path])
        if path == "." or path in self._dirs:
            raise IsADirectoryError(name)
        raise FileNotFoundError(name)

    def read_dir(self, name):
        """Return the entries of directory ``name``, sorted by name."""
        path = _clean(name)
        if path in self._files:
            raise NotADirectoryError(name)
        if path != "." and path not in self._dirs:
            raise FileNotFoundError(name)
        return list(self._children.get(path, []))
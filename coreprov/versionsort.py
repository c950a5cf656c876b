"""Ordering of Kubernetes-style API version strings (v1, v2beta1, v1alpha3...)."""

from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass
from typing import Optional

_log = logging.getLogger(__name__)
_INT_RE = re.compile(r"[+-]?\d+")


def _atoi(text: str) -> Optional[int]:
    return int(text) if _INT_RE.fullmatch(text) else None


@dataclass
class Version:
    """A parsed API version; fields are None when absent."""

    major: Optional[int] = None
    stability: Optional[str] = None
    additional: Optional[int] = None
    original: str = ""

    def __str__(self) -> str:
        return self.original

    @classmethod
    def parse(cls, version_string):
        version = cls(original=version_string)
        parts = version_string.split("v")
        if len(parts) < 2:
            return version
        body = parts[1]
        major = _atoi(body.split("beta", 1)[0])
        if major is None:
            major = _atoi(body.split("alpha", 1)[0])
            if major is None:
                _log.warning("Error parsing major version: %r", body)
                major = 0
        version.major = major

        if "beta" in body or "alpha" in body:
            version.stability = "beta" if "beta" in body else "alpha"
            for char in body:
                digit = _atoi(char)
                if digit is not None:
                    version.additional = digit
        return version

    def compare(self, other):
        """Negative if self sorts first, positive if other does, zero if equal."""
        my_major, other_major = self.major or 0, other.major or 0
        if my_major != other_major and self.stability is None and other.stability is None:
            return other_major - my_major
        if self.stability is None and other.stability is not None:
            return 1
        if self.stability is not None and other.stability is None:
            return -1
        if (self.stability or "") != (other.stability or ""):
            return {"beta": -1, "alpha": 1}.get(self.stability or "", 0)
        if my_major != other_major:
            return other_major - my_major
        my_add, other_add = self.additional or 0, other.additional or 0
        if my_add != other_add:
            return other_add - my_add
        if self.original and other.original:
            return (self.original > other.original) - (self.original < other.original)
        return 0


def sort_versions(version_strings):
    """Sort versions: GA (newest first), then beta/alpha, then unparseable."""
    stable, staged, unknown = [], [], []
    for text in version_strings:
        version = Version.parse(text)
        if version.stability is None and version.major is not None:
            stable.append(version)
        elif version.stability is not None:
            staged.append(version)
        else:
            unknown.append(version)
    key = functools.cmp_to_key(Version.compare)
    ordered = sorted(stable, key=key) + sorted(staged, key=key) + sorted(unknown, key=key)
    return [v.original for v in ordered]
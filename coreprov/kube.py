"""Minimal Kubernetes object model, an in-memory client and shared helpers."""

from __future__ import annotations

import copy
import itertools
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class NamespacedName:
    name: str
    namespace: str = ""


@dataclass(frozen=True)
class GroupKind:
    group: str
    kind: str


@dataclass(frozen=True)
class GroupResource:
    group: str
    resource: str

    def __str__(self) -> str:
        return f"{self.resource}.{self.group}" if self.group else self.resource

    def with_version(self, version):
        return GroupVersionResource(self.group, version, self.resource)


@dataclass(frozen=True)
class GroupVersionKind:
    group: str
    version: str
    kind: str

    def group_kind(self):
        return GroupKind(self.group, self.kind)


@dataclass(frozen=True)
class GroupVersionResource:
    group: str
    version: str
    resource: str

    def group_resource(self):
        return GroupResource(self.group, self.resource)

    def __str__(self) -> str:
        return f"{self.group}/{self.version}, Resource={self.resource}"


class NotFoundError(LookupError):
    """The requested object does not exist."""


class AlreadyExistsError(ValueError):
    """An object with the same key already exists."""


class InMemoryClient:
    """An object store keyed by kind, namespace and name.

    Stored objects need ``kind``, ``name`` and ``namespace`` attributes; a
    ``resource_version`` attribute, when present, is kept up to date.
    """

    def __init__(self):
        self._objects: dict[tuple[str, str, str], Any] = {}
        self._versions = itertools.count(1)

    @staticmethod
    def _key(obj):
        return (obj.kind, obj.namespace or "", obj.name)

    def _stamp(self, obj):
        if hasattr(obj, "resource_version"):
            obj.resource_version = str(next(self._versions))

    def get(self, kind, key):
        try:
            stored = self._objects[(kind, key.namespace or "", key.name)]
        except KeyError:
            raise NotFoundError(f'{kind} "{key.name}" not found') from None
        return copy.deepcopy(stored)

    def create(self, obj):
        key = self._key(obj)
        if key in self._objects:
            raise AlreadyExistsError(f'{obj.kind} "{obj.name}" already exists')
        self._stamp(obj)
        self._objects[key] = copy.deepcopy(obj)

    def update(self, obj):
        key = self._key(obj)
        if key not in self._objects:
            raise NotFoundError(f'{obj.kind} "{obj.name}" not found')
        self._stamp(obj)
        self._objects[key] = copy.deepcopy(obj)

    def delete(self, obj):
        if self._objects.pop(self._key(obj), None) is None:
            raise NotFoundError(f'{obj.kind} "{obj.name}" not found')


@dataclass
class UninstallOptions:
    kube_client: InMemoryClient
    namespaced_name: NamespacedName
    log: Optional[Callable[..., None]] = None


@dataclass
class SecretKeySelector:
    name: str
    namespace: str
    key: str


@dataclass
class Secret:
    name: str
    namespace: str = ""
    data: dict[str, bytes] = field(default_factory=dict)
    kind: str = "Secret"
    resource_version: str = ""


def retry_do(func, attempts=10, delay=0.1):
    """Call ``func`` until it succeeds, backing off between failures.

    Returns its result, or raises the last error after ``attempts`` tries.
    """
    for attempt in range(attempts):
        try:
            return func()
        except Exception:
            if attempt == attempts - 1:
                raise
            if delay:
                time.sleep(delay * (2**attempt))
    return None


def get_secret(kube, selector):
    """Return the selected key of a Secret as text (empty if the key is absent)."""
    secret = kube.get("Secret", NamespacedName(selector.name, selector.namespace))
    return secret.data.get(selector.key, b"").decode()
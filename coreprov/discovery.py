"""API discovery: an in-memory fake server and a disk-caching discovery client."""

from __future__ import annotations

import datetime
import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from .kube import GroupVersionResource, NotFoundError

_log = logging.getLogger(__name__)

_SHA256_SIZE = 32


def parse_group_version(group_version):
    """Split "group/version" into ``(group, version)``; a bare version has an empty group."""
    if not group_version or group_version == "/":
        return "", ""
    count = group_version.count("/")
    if count == 0:
        return "", group_version
    if count == 1:
        group, version = group_version.split("/")
        return group, version
    raise ValueError(f"unexpected GroupVersion string: {group_version}")


@dataclass
class APIResource:
    name: str
    kind: str
    namespaced: bool = False
    group: str = ""
    version: str = ""

    def to_dict(self):
        return {
            "name": self.name,
            "kind": self.kind,
            "namespaced": self.namespaced,
            "group": self.group,
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            kind=data["kind"],
            namespaced=bool(data.get("namespaced", False)),
            group=data.get("group", ""),
            version=data.get("version", ""),
        )


@dataclass
class APIResourceList:
    group_version: str
    api_resources: list[APIResource] = field(default_factory=list)

    def to_dict(self):
        return {
            "kind": "APIResourceList",
            "groupVersion": self.group_version,
            "resources": [r.to_dict() for r in self.api_resources],
        }

    @classmethod
    def from_dict(cls, data):
        if data.get("kind") != "APIResourceList":
            raise ValueError("not an APIResourceList")
        return cls(
            group_version=data["groupVersion"],
            api_resources=[APIResource.from_dict(r) for r in data.get("resources") or []],
        )


@dataclass
class APIGroup:
    """A discovered API group; versions are "group/version" strings."""

    name: str
    preferred_version: str = ""
    versions: list[str] = field(default_factory=list)

    def to_dict(self):
        def entry(gv):
            return {"groupVersion": gv, "version": parse_group_version(gv)[1]}

        return {
            "name": self.name,
            "versions": [entry(gv) for gv in self.versions],
            "preferredVersion": entry(self.preferred_version),
        }

    @classmethod
    def from_dict(cls, data):
        return cls(
            name=data["name"],
            preferred_version=(data.get("preferredVersion") or {}).get("groupVersion", ""),
            versions=[v["groupVersion"] for v in data.get("versions") or []],
        )


@dataclass(frozen=True)
class RESTMapping:
    resource: GroupVersionResource
    kind: str
    namespaced: bool


class FakeDiscovery:
    """A discovery server answering from a fixed list of resource lists.

    Every call is recorded in ``actions`` as a ``(verb, resource)`` pair.
    """

    def __init__(self, resources=None):
        self.resources: list[APIResourceList] = list(resources or [])
        self.actions: list[tuple[str, str]] = []

    def _invoke(self, resource):
        self.actions.append(("get", resource))

    def server_resources_for_group_version(self, group_version):
        self._invoke("resource")
        _log.debug("known group versions: %s", [r.group_version for r in self.resources])
        for resource_list in self.resources:
            if resource_list.group_version == group_version:
                return resource_list
        raise NotFoundError(
            "the server could not find the requested resource, "
            f'GroupVersion "{group_version}" not found'
        )

    def server_groups(self):
        self._invoke("group")
        groups: dict[str, APIGroup] = {}
        for resource_list in self.resources:
            group_name, _ = parse_group_version(resource_list.group_version)
            group = groups.get(group_name)
            if group is None:
                group = APIGroup(name=group_name, preferred_version=resource_list.group_version)
                groups[group_name] = group
            group.versions.append(resource_list.group_version)
        return list(groups.values())

    def server_groups_and_resources(self):
        groups = self.server_groups()
        self._invoke("resource")
        return groups, list(self.resources)

    def server_preferred_resources(self):
        return []


def _to_seconds(ttl):
    if isinstance(ttl, datetime.timedelta):
        return ttl.total_seconds()
    return float(ttl)


class CachedDiscoveryClient:
    """Discovery client that keeps server answers as JSON files under a directory."""

    def __init__(self, delegate, cache_directory, ttl):
        self._delegate = delegate
        self._cache_directory = str(cache_directory)
        self._ttl = _to_seconds(ttl)
        self._lock = threading.Lock()
        self._our_files: set[str] = set()
        self._invalidated = False
        self._fresh = True

    def server_resources_for_group_version(self, group_version):
        filename = os.path.join(self._cache_directory, group_version, "serverresources.json")
        cached = self._read_cached(filename)
        if cached is not None:
            try:
                result = APIResourceList.from_dict(cached)
            except (KeyError, TypeError, ValueError, AttributeError):
                pass
            else:
                _log.debug("returning cached discovery info from %s", filename)
                return result

        live = self._delegate.server_resources_for_group_version(group_version)
        if live is None or not live.api_resources:
            _log.debug("skipped caching discovery info, no resources found")
            return live
        self._write_cached_logged(filename, live.to_dict())
        return live

    def server_groups(self):
        filename = os.path.join(self._cache_directory, "servergroups.json")
        cached = self._read_cached(filename)
        if cached is not None:
            try:
                if cached.get("kind") != "APIGroupList":
                    raise ValueError("not an APIGroupList")
                result = [APIGroup.from_dict(g) for g in cached.get("groups") or []]
            except (KeyError, TypeError, ValueError, AttributeError):
                pass
            else:
                _log.debug("returning cached discovery info from %s", filename)
                return result

        live = self._delegate.server_groups()
        if not live:
            _log.debug("skipped caching discovery info, no groups found")
            return live
        payload = {"kind": "APIGroupList", "groups": [g.to_dict() for g in live]}
        self._write_cached_logged(filename, payload)
        return live

    def server_groups_and_resources(self):
        groups = self.server_groups()
        resources = []
        for group in groups:
            for group_version in group.versions:
                try:
                    found = self.server_resources_for_group_version(group_version)
                except NotFoundError as exc:
                    _log.warning("unable to retrieve resources for %s: %s", group_version, exc)
                    continue
                if found is not None:
                    resources.append(found)
        return groups, resources

    def fresh(self):
        """True when every cache file used so far was written by this client."""
        with self._lock:
            return self._fresh

    def invalidate(self):
        """Ignore from now on every cache file this client did not write itself."""
        with self._lock:
            self._our_files = set()
            self._fresh = True
            self._invalidated = True
        invalidate = getattr(self._delegate, "invalidate", None)
        if callable(invalidate):
            invalidate()

    def rest_mapping(self, group, kind):
        """Map a group and kind to its resource, trying the preferred version first."""
        mapping = self._find_mapping(group, kind)
        if mapping is None and not self.fresh():
            self.invalidate()
            mapping = self._find_mapping(group, kind)
        if mapping is None:
            raise NotFoundError(f'no matches for kind "{kind}" in group "{group}"')
        return mapping

    def _find_mapping(self, group, kind):
        groups, resource_lists = self.server_groups_and_resources()
        by_group_version = {rl.group_version: rl for rl in resource_lists}
        for api_group in groups:
            if api_group.name != group:
                continue
            ordered = [api_group.preferred_version] + [
                gv for gv in api_group.versions if gv != api_group.preferred_version
            ]
            for group_version in ordered:
                resource_list = by_group_version.get(group_version)
                if resource_list is None:
                    continue
                version = parse_group_version(group_version)[1]
                for res in resource_list.api_resources:
                    if res.kind == kind and "/" not in res.name:
                        return RESTMapping(
                            GroupVersionResource(group, version, res.name),
                            kind,
                            res.namespaced,
                        )
        return None

    def _read_cached(self, filename):
        with self._lock:
            ours = filename in self._our_files
            if self._invalidated and not ours:
                return None
        try:
            with open(filename, "rb") as stream:
                mtime = os.fstat(stream.fileno()).st_mtime
                if time.time() > mtime + self._ttl:
                    return None
                raw = stream.read()
        except OSError:
            return None
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        with self._lock:
            self._fresh = self._fresh and ours
        return data

    def _write_cached_logged(self, filename, payload):
        try:
            self._write_cached(filename, payload)
        except OSError as exc:
            _log.info("failed to write cache to %s due to %s", filename, exc)

    def _write_cached(self, filename, payload):
        directory = os.path.dirname(filename)
        os.makedirs(directory, mode=0o750, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=directory, prefix=os.path.basename(filename) + ".")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as stream:
                json.dump(payload, stream)
            os.chmod(tmp_name, 0o660)
            with self._lock:
                os.replace(tmp_name, filename)
                self._our_files.add(filename)
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)


def sanitize(key):
    """Turn an HTTP cache key into a safe file name: the hex SHA-256 of the key."""
    return hashlib.sha256(key.encode()).hexdigest()


class SumDiskCache:
    """Disk cache whose entries carry a SHA-256 sum checked on every read."""

    def __init__(self, base_path):
        self._base_path = str(base_path)

    def _path(self, key):
        return os.path.join(self._base_path, sanitize(key))

    def get(self, key) -> Optional[bytes]:
        """Return the cached response, or None when absent or corrupted."""
        try:
            with open(self._path(key), "rb") as stream:
                data = stream.read()
        except OSError:
            return None
        if len(data) < _SHA256_SIZE:
            return None
        want, response = data[:_SHA256_SIZE], data[_SHA256_SIZE:]
        if hashlib.sha256(response).digest() != want:
            return None
        return response

    def set(self, key, response):
        """Store ``response`` under ``key``; write failures are ignored."""
        response = bytes(response)
        try:
            os.makedirs(self._base_path, mode=0o750, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._base_path, prefix=".tmp-")
            try:
                with os.fdopen(fd, "wb") as stream:
                    stream.write(hashlib.sha256(response).digest() + response)
                os.chmod(tmp_name, 0o660)
                os.replace(tmp_name, self._path(key))
            finally:
                if os.path.exists(tmp_name):
                    os.remove(tmp_name)
        except OSError as exc:
            _log.debug("failed to write cache entry: %s", exc)

    def delete(self, key):
        """Remove the entry for ``key``; a missing entry is not an error."""
        try:
            os.remove(self._path(key))
        except OSError:
            pass
import os
import time

import pytest

from coreprov.discovery import (
    APIResource,
    APIResourceList,
    CachedDiscoveryClient,
    FakeDiscovery,
    SumDiskCache,
    parse_group_version,
    sanitize,
)
from coreprov.kube import GroupVersionResource, NotFoundError


def _core_resources():
    return [
        APIResourceList(
            group_version="v1",
            api_resources=[
                APIResource(name="secrets", kind="Secret", namespaced=True, version="v1"),
                APIResource(name="configmaps", kind="ConfigMap", namespaced=True, version="v1"),
                APIResource(name="pods", kind="Pod", namespaced=True, version="v1"),
            ],
        )
    ]


def _fake():
    return FakeDiscovery(
        _core_resources()
        + [
            APIResourceList(
                group_version="rbac.authorization.k8s.io/v1",
                api_resources=[APIResource(name="clusterroles", kind="ClusterRole")],
            )
        ]
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        ("v1", ("", "v1")),
        ("apps/v1", ("apps", "v1")),
        ("", ("", "")),
        ("/", ("", "")),
    ],
)
def test_parse_group_version(text, expected):
    assert parse_group_version(text) == expected


def test_parse_group_version_rejects_extra_slashes():
    with pytest.raises(ValueError):
        parse_group_version("a/b/c")


def test_fake_resources_for_group_version():
    fake = _fake()
    found = fake.server_resources_for_group_version("v1")
    assert [r.name for r in found.api_resources] == ["secrets", "configmaps", "pods"]
    assert fake.actions == [("get", "resource")]


def test_fake_resources_missing_group_version():
    with pytest.raises(NotFoundError, match='GroupVersion "apps/v1" not found'):
        _fake().server_resources_for_group_version("apps/v1")


def test_fake_server_groups():
    groups = _fake().server_groups()
    assert [g.name for g in groups] == ["", "rbac.authorization.k8s.io"]
    assert groups[1].preferred_version == "rbac.authorization.k8s.io/v1"
    assert groups[0].versions == ["v1"]


def test_fake_groups_and_resources():
    fake = _fake()
    groups, resources = fake.server_groups_and_resources()
    assert len(groups) == 2
    assert resources == fake.resources
    assert fake.server_preferred_resources() == []


def test_cached_writes_and_reuses_file(tmp_path):
    fake = FakeDiscovery(_core_resources())
    client = CachedDiscoveryClient(fake, tmp_path, 60)
    first = client.server_resources_for_group_version("v1")
    assert (tmp_path / "v1" / "serverresources.json").is_file()
    calls = len(fake.actions)
    second = client.server_resources_for_group_version("v1")
    assert second == first
    assert len(fake.actions) == calls
    assert client.fresh() is True


def test_cache_from_other_client_is_not_fresh(tmp_path):
    CachedDiscoveryClient(FakeDiscovery(_core_resources()), tmp_path, 60).server_groups()
    fake = FakeDiscovery(_core_resources())
    other = CachedDiscoveryClient(fake, tmp_path, 60)
    groups = other.server_groups()
    assert [g.name for g in groups] == [""]
    assert fake.actions == []
    assert other.fresh() is False


def test_invalidate_ignores_foreign_cache(tmp_path):
    CachedDiscoveryClient(FakeDiscovery(_core_resources()), tmp_path, 60).server_groups()
    fake = FakeDiscovery(_core_resources())
    other = CachedDiscoveryClient(fake, tmp_path, 60)
    other.invalidate()
    other.server_groups()
    assert fake.actions == [("get", "group")]
    assert other.fresh() is True


def test_expired_cache_goes_live(tmp_path):
    fake = FakeDiscovery(_core_resources())
    client = CachedDiscoveryClient(fake, tmp_path, 60)
    client.server_resources_for_group_version("v1")
    path = tmp_path / "v1" / "serverresources.json"
    old = time.time() - 3600
    os.utime(path, (old, old))
    client.server_resources_for_group_version("v1")
    assert fake.actions.count(("get", "resource")) == 2


def test_empty_resources_are_not_cached(tmp_path):
    fake = FakeDiscovery([APIResourceList(group_version="apps/v1")])
    client = CachedDiscoveryClient(fake, tmp_path, 60)
    result = client.server_resources_for_group_version("apps/v1")
    assert result.api_resources == []
    assert not (tmp_path / "apps" / "v1" / "serverresources.json").exists()


def test_cached_missing_group_version_raises(tmp_path):
    client = CachedDiscoveryClient(FakeDiscovery(_core_resources()), tmp_path, 60)
    with pytest.raises(NotFoundError):
        client.server_resources_for_group_version("apps/v1")


def test_rest_mapping_core_kind(tmp_path):
    client = CachedDiscoveryClient(_fake(), tmp_path, 60)
    mapping = client.rest_mapping("", "Pod")
    assert mapping.resource == GroupVersionResource("", "v1", "pods")
    assert mapping.namespaced is True


def test_rest_mapping_cluster_scoped(tmp_path):
    client = CachedDiscoveryClient(_fake(), tmp_path, 60)
    mapping = client.rest_mapping("rbac.authorization.k8s.io", "ClusterRole")
    assert mapping.resource.resource == "clusterroles"
    assert mapping.namespaced is False


def test_rest_mapping_unknown_kind(tmp_path):
    client = CachedDiscoveryClient(_fake(), tmp_path, 60)
    with pytest.raises(NotFoundError, match="Deployment"):
        client.rest_mapping("apps", "Deployment")


def test_sanitize_is_sha256_hex():
    assert sanitize("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
    assert sanitize("GET /api") == sanitize("GET /api")
    assert sanitize("a") != sanitize("b")


def test_sum_disk_cache_round_trip(tmp_path):
    cache = SumDiskCache(tmp_path)
    cache.set("GET /api", b"payload")
    assert cache.get("GET /api") == b"payload"
    assert cache.get("GET /other") is None


def test_sum_disk_cache_detects_corruption(tmp_path):
    cache = SumDiskCache(tmp_path)
    cache.set("key", b"payload")
    path = tmp_path / sanitize("key")
    data = bytearray(path.read_bytes())
    data[-1] ^= 0xFF
    path.write_bytes(bytes(data))
    assert cache.get("key") is None


def test_sum_disk_cache_short_file(tmp_path):
    (tmp_path / sanitize("key")).write_bytes(b"short")
    assert SumDiskCache(tmp_path).get("key") is None


def test_sum_disk_cache_delete(tmp_path):
    cache = SumDiskCache(tmp_path)
    cache.set("key", b"payload")
    cache.delete("key")
    cache.delete("key")
    assert cache.get("key") is None
from coreprov.versionsort import Version, sort_versions


def test_parse_ga():
    v = Version.parse("v1")
    assert v.major == 1
    assert v.stability is None
    assert str(v) == "v1"


def test_parse_beta():
    v = Version.parse("v2beta3")
    assert v.major == 2
    assert v.stability == "beta"
    assert v.additional == 3


def test_parse_without_v():
    v = Version.parse("latest")
    assert v.major is None and v.stability is None


def test_sort_order():
    result = sort_versions(["v1alpha1", "v1", "v2", "v1beta1"])
    assert result == ["v2", "v1", "v1beta1", "v1alpha1"]


def test_sort_is_permutation():
    items = ["v1alpha2", "foo", "v3", "v1beta2", "v1alpha1"]
    result = sort_versions(items)
    assert sorted(result) == sorted(items)
    assert result[-1] == "foo"
    assert result[0] == "v3"


def test_compare_antisymmetric():
    a, b = Version.parse("v1beta1"), Version.parse("v1alpha1")
    assert a.compare(b) < 0
    assert b.compare(a) > 0
    assert a.compare(a) == 0
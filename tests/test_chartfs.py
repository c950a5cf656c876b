import io
import tarfile

import pytest

from coreprov.chartfs import ChartFS


def _tgz(files, dirs=()):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name in dirs:
            info = tarfile.TarInfo(name)
            info.type = tarfile.DIRTYPE
            tar.addfile(info)
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


CHART = {
    "mychart/Chart.yaml": "name: mychart\nversion: 0.1.0\n",
    "mychart/values.yaml": "a: 1\n",
    "mychart/templates/deploy.yaml": "kind: Deployment\n",
}


@pytest.fixture
def chart():
    return ChartFS.from_reader(io.BytesIO(_tgz(CHART)), "oci://example.com/mychart")


def test_root_dir_and_url(chart):
    assert chart.root_dir == "mychart"
    assert chart.package_url == "oci://example.com/mychart"


def test_open_returns_content(chart):
    assert chart.open("mychart/Chart.yaml").read().decode() == CHART["mychart/Chart.yaml"]


def test_read_dir_sorted(chart):
    entries = chart.read_dir("mychart")
    assert [e.name for e in entries] == ["Chart.yaml", "templates", "values.yaml"]
    assert [e.is_dir for e in entries] == [False, True, False]


def test_read_dir_of_root(chart):
    assert [(e.name, e.is_dir) for e in chart.read_dir(".")] == [("mychart", True)]


def test_exists(chart):
    assert chart.exists("mychart/templates")
    assert chart.exists("mychart/templates/deploy.yaml")
    assert not chart.exists("mychart/crds")


def test_missing_paths_raise(chart):
    with pytest.raises(FileNotFoundError):
        chart.open("mychart/nope.yaml")
    with pytest.raises(FileNotFoundError):
        chart.read_dir("mychart/crds")
    with pytest.raises(IsADirectoryError):
        chart.open("mychart/templates")
    with pytest.raises(NotADirectoryError):
        chart.read_dir("mychart/values.yaml")


def test_explicit_directory_entries():
    data = _tgz({"c/Chart.yaml": "x"}, dirs=["c", "c/crds"])
    fs = ChartFS.from_reader(data, "")
    assert fs.root_dir == "c"
    assert fs.read_dir("c/crds") == []


def test_two_roots_rejected():
    data = _tgz({"a/Chart.yaml": "x", "b/Chart.yaml": "y"})
    with pytest.raises(ValueError, match="archive should contain only one root dir"):
        ChartFS.from_reader(io.BytesIO(data), "")


def test_no_root_rejected():
    data = _tgz({"Chart.yaml": "x"})
    with pytest.raises(ValueError, match="only one root dir"):
        ChartFS.from_reader(io.BytesIO(data), "")
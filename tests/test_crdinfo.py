import io
import tarfile

import pytest

from coreprov.chartfs import ChartFS
from coreprov.crdinfo import CRDInfo, get_crd_info_list

WIDGET_CRD = """\
apiVersion: apiextensions.k8s.io/v1
kind: CustomResourceDefinition
metadata:
  name: widgets.example.com
spec:
  group: example.com
  scope: Namespaced
  names:
    kind: Widget
    plural: widgets
  versions:
    - name: v1
    - name: v1beta1
"""

GADGET_CRD = """\
spec:
  group: tools.example.com
  scope: Cluster
  names:
    kind: Gadget
    plural: gadgets
  versions:
    - name: v1alpha1
"""


def _chart(files):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode()
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return ChartFS.from_reader(io.BytesIO(buf.getvalue()), "")


def test_versions_are_listed():
    pkg = _chart(
        {
            "chart/Chart.yaml": "name: chart\n",
            "chart/crds/a-widget.yaml": WIDGET_CRD,
            "chart/crds/b-gadget.yaml": GADGET_CRD,
            "chart/crds/notes.txt": "ignored",
        }
    )
    assert get_crd_info_list(pkg) == [
        CRDInfo("Widget", "widgets", "example.com", "v1", True),
        CRDInfo("Widget", "widgets", "example.com", "v1beta1", True),
        CRDInfo("Gadget", "gadgets", "tools.example.com", "v1alpha1", False),
    ]


def test_non_yaml_files_ignored():
    pkg = _chart({"chart/Chart.yaml": "x", "chart/crds/widget.yml": WIDGET_CRD})
    assert get_crd_info_list(pkg) == []


def test_missing_crds_directory():
    pkg = _chart({"chart/Chart.yaml": "x"})
    with pytest.raises(FileNotFoundError, match="failed to read directory chart/crds"):
        get_crd_info_list(pkg)


def test_invalid_yaml_rejected():
    pkg = _chart({"chart/crds/bad.yaml": "spec: [unclosed"})
    with pytest.raises(ValueError, match="failed to unmarshal CRD"):
        get_crd_info_list(pkg)


def test_scalar_document_rejected():
    pkg = _chart({"chart/crds/bad.yaml": "just text"})
    with pytest.raises(ValueError, match="failed to unmarshal CRD"):
        get_crd_info_list(pkg)
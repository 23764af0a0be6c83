"""Document paths — layout and segment validation."""

import pytest

from uemp.core import document_paths as paths
from uemp.core.errors import InvalidArgumentError


def test_instance_path_layout():
    path = paths.instance_path("mfgA", "modelX", "SN001")
    assert path == "manufacturers/mfgA/models/modelX/instances/SN001"
    assert paths.parent_collection(path) == "manufacturers/mfgA/models/modelX/instances"
    assert paths.document_id(path) == "SN001"


def test_scan_record_keyed_by_product():
    assert paths.scan_record_path("u1", "modelX") == "consumers/u1/scannedProducts/modelX"


def test_model_key_ignores_outer_whitespace_but_not_case():
    assert paths.model_key(" Kettle ", "Electronics ") == paths.model_key("Kettle", "Electronics")
    assert paths.model_key("Kettle", "Electronics") != paths.model_key("kettle", "electronics")
    assert paths.model_key("Kettle", "Electronics") != paths.model_key("Kettle", "Kitchen")


@pytest.mark.parametrize("bad", ["", "a/b"])
def test_bad_segment_rejected(bad):
    with pytest.raises(InvalidArgumentError):
        paths.instance_path("mfgA", "modelX", bad)


def test_request_key_distinguishes_consumer_and_serial():
    assert paths.request_key_path("r1", "u1", "SN1") != paths.request_key_path("r1", "u2", "SN1")

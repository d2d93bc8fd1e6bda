"""Unit tests for label extraction and storage."""

from __future__ import annotations

import base64
from pathlib import Path

import pytest

from modules.shipping.labels import decode_label, extract_label

pytestmark = pytest.mark.unit

PDF = b"%PDF-1.4 label"
ENCODED = base64.b64encode(PDF).decode()


class TestExtractLabel:
    @pytest.mark.parametrize(
        "data",
        [
            {"Consignments": [{"OutputFiles": {"LABEL_PDF_100X175": [ENCODED]}}]},
            {"Consignments": [{"outputs": [ENCODED]}]},
            {"Consignments": {"Outputs": ENCODED}},
            {"Consignments": [{"OutputFiles": {}}, {"outputs": ENCODED}]},
        ],
        ids=["output-files", "outputs-list", "single-consignment", "second-consignment"],
    )
    def test_finds_document(self, data):
        assert extract_label(data) == ENCODED

    @pytest.mark.parametrize(
        "data",
        [None, [], {}, {"Consignments": []}, {"Consignments": [{"OutputFiles": ""}]}],
    )
    def test_nothing_to_extract(self, data):
        assert extract_label(data) is None


class TestDecodeLabel:
    def test_base64(self):
        assert decode_label(ENCODED) == PDF

    def test_plain_document_kept(self):
        assert decode_label("not base64!") == b"not base64!"


class TestLabelStorage:
    def test_writes_pdf(self, label_storage, tmp_path):
        stored = label_storage.save_label_pdf("order-1", ENCODED)

        path = Path(stored.path)
        assert path.parent == tmp_path
        assert path.name.startswith("label-order-order-1-")
        assert path.suffix == ".pdf"
        assert path.read_bytes() == PDF
        assert stored.url == f"/media/gss-labels/{path.name}"

    def test_same_second_gets_distinct_files(self, label_storage):
        first = label_storage.save_label_pdf("order-1", ENCODED)
        second = label_storage.save_label_pdf("order-1", ENCODED)
        assert first.path != second.path

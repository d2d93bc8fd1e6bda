"""Label artifact handling.

Pulls the label document out of the carrier's shipment response, decodes
it and writes it with Django's ``FileSystemStorage`` under
``SHIPPING_LABEL_DIR`` as ``label-order-<order id>-<unix time>.pdf``.
"""

from __future__ import annotations

import base64
import binascii
import time
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import FileSystemStorage

logger = structlog.get_logger(__name__)

_OUTPUT_KEYS = ("OutputFiles", "outputs", "Outputs")


@dataclass(frozen=True)
class StoredLabel:
    path: str
    url: str


def extract_label(data: Any) -> Optional[str]:
    """First label document found under ``Consignments[*]`` outputs.

    ``Consignments`` may be a list or a single object; outputs may be a
    string, a list, or a mapping of format name to document.
    """
    if not isinstance(data, dict):
        return None
    consignments = data.get("Consignments")
    if isinstance(consignments, dict):
        consignments = [consignments]
    for consignment in consignments or []:
        if not isinstance(consignment, dict):
            continue
        for key in _OUTPUT_KEYS:
            found = _first_document(consignment.get(key))
            if found:
                return found
    return None


def _first_document(outputs: Any) -> Optional[str]:
    if isinstance(outputs, str):
        return outputs or None
    if isinstance(outputs, dict):
        outputs = list(outputs.values())
    if isinstance(outputs, list):
        for value in outputs:
            found = _first_document(value)
            if found:
                return found
    return None


def decode_label(document: str) -> bytes:
    """Base64-decode a label; a document that is not base64 is kept as is."""
    try:
        return base64.b64decode(document, validate=True)
    except (binascii.Error, ValueError):
        return document.encode("utf-8")


class LabelStorage:
    def __init__(
        self, location: Optional[str] = None, base_url: Optional[str] = None
    ) -> None:
        self._storage = FileSystemStorage(
            location=str(location or settings.SHIPPING_LABEL_DIR),
            base_url=base_url or settings.SHIPPING_LABEL_URL,
        )

    def save_label_pdf(self, order_id: Any, document: str) -> StoredLabel:
        """Decode and store a label, returning where it was written."""
        filename = f"label-order-{order_id}-{int(time.time())}.pdf"
        name = self._storage.save(filename, ContentFile(decode_label(document)))
        stored = StoredLabel(path=self._storage.path(name), url=self._storage.url(name))
        logger.info("shipping.label_saved", order_id=str(order_id), path=stored.path)
        return stored

"""Post-write verification for created documents.

Frappe acknowledges a create before it is guaranteed to be readable, and a
proxied site occasionally acknowledges writes that never land. After each
create we try to read the document back:

1. the response must carry a ``name``;
2. a direct fetch by that name;
3. a filtered list query on the most discriminating value that was sent
   (``name``, then ``title``, then a prefix of ``description``).

The outcome is a ``VerificationResult`` report; verification never raises.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import asdict, dataclass
from typing import Any

from frappe_gateway.channel import Channel

logger = logging.getLogger(__name__)

# Maximum number of candidates fetched by the filter search
FILTER_SEARCH_LIMIT = 5

# Description prefix used for the "like" match
DESCRIPTION_PREFIX_LENGTH = 20


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


FilterRule = tuple[Callable[[dict[str, Any]], bool], Callable[[dict[str, Any]], dict[str, Any]]]

# Ordered (applies?, build filters) pairs; the first applicable rule wins.
FILTER_RULES: tuple[FilterRule, ...] = (
    (lambda v: bool(v.get("name")), lambda v: {"name": ["=", v["name"]]}),
    (lambda v: bool(v.get("title")), lambda v: {"title": ["=", v["title"]]}),
    (
        lambda v: bool(v.get("description")),
        lambda v: {
            "description": ["like", f"%{str(v['description'])[:DESCRIPTION_PREFIX_LENGTH]}%"]
        },
    ),
)


def build_verification_filters(values: dict[str, Any]) -> dict[str, Any] | None:
    """Return filters from the first applicable rule, or None."""
    for applies, build in FILTER_RULES:
        if applies(values):
            return build(values)
    return None


class VerificationEngine:
    """Confirms that a created document is readable upstream."""

    def __init__(self, channel: Channel):
        self.channel = channel

    async def verify(
        self,
        doctype: str,
        values: dict[str, Any],
        creation_response: dict[str, Any] | None,
    ) -> VerificationResult:
        try:
            return await self._verify(doctype, values, creation_response)
        except Exception as e:
            logger.warning("Error during verification of %s", doctype, exc_info=True)
            return VerificationResult(False, f"Error during verification: {e}")

    async def _verify(
        self,
        doctype: str,
        values: dict[str, Any],
        creation_response: dict[str, Any] | None,
    ) -> VerificationResult:
        expected = (creation_response or {}).get("name")
        if not expected:
            return VerificationResult(False, "Response does not contain a document name")

        try:
            document = await self.channel.get_doc(doctype, expected)
        except Exception as e:
            logger.debug(
                "Direct fetch of %s/%s failed during verification: %s", doctype, expected, e
            )
        else:
            if document and document.get("name") == expected:
                return VerificationResult(True, "Document verified by direct fetch")

        filters = build_verification_filters(values or {})
        if filters is None:
            return VerificationResult(
                False, "Could not verify document creation - no suitable filters available"
            )

        documents = await self.channel.get_doc_list(
            doctype, filters=filters, limit=FILTER_SEARCH_LIMIT
        )
        if not documents:
            return VerificationResult(False, "No documents found matching the creation filters")

        if any(doc.get("name") == expected for doc in documents):
            return VerificationResult(True, "Document verified by filter search")

        return VerificationResult(
            False,
            f"Found {len(documents)} documents matching filters, "
            f"but none match the expected name {expected}",
        )

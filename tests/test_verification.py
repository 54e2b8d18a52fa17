# Tests for verification.py: the post-create verification cascade.
# Created: 2026-02-16

from unittest.mock import AsyncMock

import pytest

from conftest import make_http_error
from frappe_gateway.verification import (
    FILTER_SEARCH_LIMIT,
    VerificationEngine,
    VerificationResult,
    build_verification_filters,
)


@pytest.fixture
def channel():
    return AsyncMock()


@pytest.fixture
def engine(channel):
    return VerificationEngine(channel)


class TestFilterRules:
    def test_name_has_priority(self):
        values = {"name": "TODO-9", "title": "t", "description": "d"}
        assert build_verification_filters(values) == {"name": ["=", "TODO-9"]}

    def test_title_before_description(self):
        assert build_verification_filters({"title": "Call", "description": "d"}) == {
            "title": ["=", "Call"]
        }

    def test_description_prefix_like(self):
        values = {"description": "Follow up with the supplier about pricing"}
        assert build_verification_filters(values) == {
            "description": ["like", "%Follow up with the s%"]
        }

    def test_no_suitable_field(self):
        assert build_verification_filters({"priority": "High"}) is None


class TestVerify:
    async def test_missing_name_never_succeeds(self, engine, channel):
        result = await engine.verify("ToDo", {"name": "TODO-1", "title": "x"}, {})

        assert result == VerificationResult(False, "Response does not contain a document name")
        channel.get_doc.assert_not_called()
        channel.get_doc_list.assert_not_called()

    async def test_none_response(self, engine):
        result = await engine.verify("ToDo", {"title": "x"}, None)
        assert result.success is False

    async def test_direct_fetch(self, engine, channel):
        channel.get_doc.return_value = {"name": "TODO-0001"}

        result = await engine.verify("ToDo", {"description": "x"}, {"name": "TODO-0001"})

        assert result.success is True
        assert "direct fetch" in result.message
        channel.get_doc.assert_awaited_once_with("ToDo", "TODO-0001")
        channel.get_doc_list.assert_not_called()

    async def test_filter_search_after_failed_fetch(self, engine, channel):
        channel.get_doc.side_effect = make_http_error(404)
        channel.get_doc_list.return_value = [{"name": "TODO-0007"}, {"name": "TODO-0001"}]

        result = await engine.verify("ToDo", {"title": "Quarterly review"}, {"name": "TODO-0001"})

        assert result.success is True
        assert "filter search" in result.message
        channel.get_doc_list.assert_awaited_once_with(
            "ToDo", filters={"title": ["=", "Quarterly review"]}, limit=FILTER_SEARCH_LIMIT
        )

    async def test_fetch_with_other_name_falls_through(self, engine, channel):
        channel.get_doc.return_value = {"name": "SOMETHING-ELSE"}
        channel.get_doc_list.return_value = [{"name": "TODO-0001"}]

        result = await engine.verify("ToDo", {"title": "t"}, {"name": "TODO-0001"})

        assert result.success is True
        channel.get_doc_list.assert_awaited_once()

    async def test_results_without_match_is_integrity_signal(self, engine, channel):
        channel.get_doc.return_value = None
        channel.get_doc_list.return_value = [{"name": "A"}, {"name": "B"}]

        result = await engine.verify("ToDo", {"title": "t"}, {"name": "TODO-0001"})

        assert result.success is False
        assert result.message == (
            "Found 2 documents matching filters, but none match the expected name TODO-0001"
        )

    async def test_no_results(self, engine, channel):
        channel.get_doc.return_value = None
        channel.get_doc_list.return_value = []

        result = await engine.verify("ToDo", {"name": "TODO-0001"}, {"name": "TODO-0001"})

        assert result == VerificationResult(
            False, "No documents found matching the creation filters"
        )

    async def test_no_suitable_filters(self, engine, channel):
        channel.get_doc.side_effect = make_http_error(404)

        result = await engine.verify("ToDo", {"priority": "High"}, {"name": "TODO-0001"})

        assert result.success is False
        assert "no suitable filters" in result.message
        channel.get_doc_list.assert_not_called()

    async def test_search_error_is_reported_not_raised(self, engine, channel):
        channel.get_doc.return_value = None
        channel.get_doc_list.side_effect = make_http_error(500)

        result = await engine.verify("ToDo", {"title": "t"}, {"name": "TODO-0001"})

        assert result.success is False
        assert result.message.startswith("Error during verification:")

    def test_to_dict(self):
        assert VerificationResult(True, "ok").to_dict() == {"success": True, "message": "ok"}

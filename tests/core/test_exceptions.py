"""Tests for the vaultnet error taxonomy (core/exceptions.py)."""

from __future__ import annotations

from vaultnet.core.exceptions import (
    AllNodesUnreachableError,
    BlobNotFoundError,
    ConsistencyViolationError,
    ContentTypeRejectedError,
    IntegrityViolationError,
    NodeRequestError,
    NodeTimeoutError,
    RetrievalFailedError,
    UploadFailedError,
    VaultError,
)


class TestErrorCodes:
    def test_codes_are_distinct(self):
        classes = [
            VaultError,
            NodeRequestError,
            NodeTimeoutError,
            BlobNotFoundError,
            RetrievalFailedError,
            AllNodesUnreachableError,
            IntegrityViolationError,
            ConsistencyViolationError,
            UploadFailedError,
            ContentTypeRejectedError,
        ]
        codes = [cls.code for cls in classes]
        assert len(codes) == len(set(codes))

    def test_hierarchy(self):
        assert issubclass(NodeTimeoutError, NodeRequestError)
        assert issubclass(AllNodesUnreachableError, RetrievalFailedError)
        assert issubclass(ContentTypeRejectedError, UploadFailedError)
        assert not issubclass(IntegrityViolationError, RetrievalFailedError)


class TestNodeRequestError:
    def test_not_found_detection_uses_status(self):
        assert NodeRequestError("gone", "http://a", 404).is_not_found
        assert not NodeRequestError("boom", "http://a", 500).is_not_found
        # A transport failure mentioning 404 is not a 404
        assert not NodeRequestError("proxy said 404", "http://a").is_not_found

    def test_to_dict(self):
        error = NodeTimeoutError("http://a: timeout", "http://a")
        assert error.to_dict() == {
            "code": "TIMEOUT",
            "message": "http://a: timeout",
            "node_url": "http://a",
            "status": None,
        }


class TestIntegrityViolationError:
    def test_message_shows_prefixes(self):
        expected = "a" * 64
        actual = "b" * 64
        error = IntegrityViolationError(expected, actual, node_url="http://evil")

        assert "a" * 16 + "..." in str(error)
        assert "b" * 16 + "..." in str(error)
        assert "a" * 17 not in str(error)
        assert error.node_url == "http://evil"
        assert error.to_dict()["expected"] == expected


class TestAggregateErrors:
    def test_retrieval_failed_keeps_per_node_errors(self):
        errors = {"http://a": NodeRequestError("http://a: HTTP 500", "http://a", 500)}
        error = RetrievalFailedError("All nodes failed", errors)
        assert error.to_dict()["errors"] == {"http://a": "http://a: HTTP 500"}

    def test_consistency_violation_lists_nodes(self):
        error = ConsistencyViolationError("http://a", ["http://b", "http://c"])
        assert "2 node(s)" in str(error)
        assert "http://b, http://c" in str(error)
        assert error.to_dict()["divergent_nodes"] == ["http://b", "http://c"]

    def test_blob_not_found_default_message(self):
        error = BlobNotFoundError("abc123")
        assert str(error) == "Blob not found: abc123"
        assert error.cid == "abc123"

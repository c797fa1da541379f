"""Tests for content addressing (storage/content.py)."""

from __future__ import annotations

import logging

import pytest

from vaultnet.core.exceptions import IntegrityViolationError
from vaultnet.storage.content import digest, is_valid_cid, normalize_cid, verify

EMPTY_SHA256 = "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
ABC_SHA256 = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


class TestDigest:
    def test_known_vectors(self):
        assert digest(b"") == EMPTY_SHA256
        assert digest(b"abc") == ABC_SHA256

    def test_no_normalization(self):
        assert digest(b"abc\n") != digest(b"abc")
        assert digest(b"ABC") != digest(b"abc")

    def test_lowercase_hex(self):
        cid = digest(b"\x00" * 1024)
        assert len(cid) == 64
        assert cid == cid.lower()


class TestNormalize:
    def test_strips_prefix_and_lowercases(self):
        assert normalize_cid("0x" + ABC_SHA256.upper()) == ABC_SHA256

    def test_is_valid_cid(self):
        assert is_valid_cid(ABC_SHA256)
        assert is_valid_cid("0X" + ABC_SHA256)
        assert not is_valid_cid(ABC_SHA256[:-1])
        assert not is_valid_cid("z" * 64)


class TestVerify:
    def test_matching_data_passes(self):
        verify(b"abc", ABC_SHA256)

    def test_prefixed_uppercase_cid_accepted(self):
        verify(b"abc", "0x" + ABC_SHA256.upper())

    def test_mismatch_raises_and_logs(self, caplog):
        with caplog.at_level(logging.ERROR, logger="vaultnet.storage.content"):
            with pytest.raises(IntegrityViolationError) as exc_info:
                verify(b"tampered", ABC_SHA256, node_url="http://evil.example.com")

        error = exc_info.value
        assert error.expected == ABC_SHA256
        assert error.actual == digest(b"tampered")
        assert error.node_url == "http://evil.example.com"
        assert "http://evil.example.com" in caplog.text
        assert ABC_SHA256[:16] in caplog.text

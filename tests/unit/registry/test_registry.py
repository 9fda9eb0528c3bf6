"""Tests for trust anchor stores."""

import logging

import pytest

from dac_common.crypto.certificate_codec import (
    MAX_DER_CERT_LENGTH,
    extract_subject_key_id,
    load_certificate,
)
from dac_common.exceptions import (
    BufferTooSmallError,
    ConfigurationError,
    TrustAnchorNotFoundError,
)
from tests.fixtures.pki import (
    der,
    generate_key,
    issue_certificate,
    issue_duplicate_extension_certificate,
    key_identifier,
    make_name,
    pem,
)
from trust_anchor import (
    TEST_TRUST_ANCHORS,
    FileTrustAnchorRegistry,
    StaticTrustAnchorRegistry,
    TrustAnchorEntry,
)
from trust_anchor.builtin_anchors import (
    TEST_PAA_FFF1_DER,
    TEST_PAA_FFF1_SKID,
    TEST_PAA_FFF2_DER,
    TEST_PAA_FFF2_SKID,
)


class TestBuiltinAnchors:
    def test_lookup_returns_registered_certificate(self):
        assert TEST_TRUST_ANCHORS.lookup(TEST_PAA_FFF1_SKID) == TEST_PAA_FFF1_DER
        assert TEST_TRUST_ANCHORS.lookup(TEST_PAA_FFF2_SKID) == TEST_PAA_FFF2_DER

    def test_registered_keys_match_certificate_skids(self):
        for entry in TEST_TRUST_ANCHORS:
            assert extract_subject_key_id(entry.certificate) == entry.key_identifier

    def test_builtin_anchors_are_self_signed(self):
        for entry in TEST_TRUST_ANCHORS:
            certificate = load_certificate(entry.certificate)
            assert certificate.issuer == certificate.subject
            certificate.verify_directly_issued_by(certificate)

    def test_contains_two_anchors(self):
        assert len(TEST_TRUST_ANCHORS) == 2
        assert TEST_PAA_FFF1_SKID in TEST_TRUST_ANCHORS
        assert "not bytes" not in TEST_TRUST_ANCHORS

    @pytest.mark.parametrize(
        "identifier",
        [
            bytes(20),
            TEST_PAA_FFF1_SKID[:-1] + bytes([TEST_PAA_FFF1_SKID[-1] ^ 0x01]),
            TEST_PAA_FFF1_SKID[:19],
            TEST_PAA_FFF1_SKID + b"\x00",
            b"",
        ],
    )
    def test_lookup_requires_exact_match(self, identifier):
        with pytest.raises(TrustAnchorNotFoundError):
            TEST_TRUST_ANCHORS.lookup(identifier)


class TestCopyCertificate:
    def test_copy_into_buffer(self):
        buffer = bytearray(MAX_DER_CERT_LENGTH)
        length = TEST_TRUST_ANCHORS.copy_certificate(TEST_PAA_FFF2_SKID, buffer)
        assert length == len(TEST_PAA_FFF2_DER)
        assert bytes(buffer[:length]) == TEST_PAA_FFF2_DER

    def test_buffer_too_small(self):
        buffer = bytearray(len(TEST_PAA_FFF1_DER) - 1)
        with pytest.raises(BufferTooSmallError) as exc_info:
            TEST_TRUST_ANCHORS.copy_certificate(TEST_PAA_FFF1_SKID, buffer)
        assert exc_info.value.required == len(TEST_PAA_FFF1_DER)
        assert buffer == bytearray(len(buffer))

    def test_copy_unknown_key(self):
        with pytest.raises(TrustAnchorNotFoundError):
            TEST_TRUST_ANCHORS.copy_certificate(bytes(20), bytearray(MAX_DER_CERT_LENGTH))


class TestStaticRegistry:
    def test_duplicate_key_identifiers_rejected(self):
        entry = TrustAnchorEntry(TEST_PAA_FFF1_SKID, TEST_PAA_FFF1_DER)
        with pytest.raises(ValueError, match="Duplicate"):
            StaticTrustAnchorRegistry([entry, entry])

    def test_first_match_wins_order_is_preserved(self):
        registry = StaticTrustAnchorRegistry(
            [
                TrustAnchorEntry(TEST_PAA_FFF2_SKID, TEST_PAA_FFF2_DER),
                TrustAnchorEntry(TEST_PAA_FFF1_SKID, TEST_PAA_FFF1_DER),
            ]
        )
        assert [e.key_identifier for e in registry] == [TEST_PAA_FFF2_SKID, TEST_PAA_FFF1_SKID]

    @pytest.mark.parametrize(
        ("identifier", "certificate"),
        [
            (bytes(19), b"\x30"),
            (bytes(21), b"\x30"),
            (bytes(20), b""),
            (bytes(20), bytes(MAX_DER_CERT_LENGTH + 1)),
        ],
    )
    def test_invalid_entries(self, identifier, certificate):
        with pytest.raises(ValueError):
            TrustAnchorEntry(identifier, certificate)

    def test_entries_are_immutable(self):
        entry = TrustAnchorEntry(bytearray(TEST_PAA_FFF1_SKID), TEST_PAA_FFF1_DER)
        assert isinstance(entry.key_identifier, bytes)
        with pytest.raises(AttributeError):
            entry.certificate = b""


class TestFileRegistry:
    def test_loads_pem_and_der(self, tmp_path, attestation_pki):
        other_key = generate_key()
        other_name = make_name("Other PAA")
        other_paa = issue_certificate(other_name, other_key, other_name, other_key, ca=True)

        (tmp_path / "a_paa.der").write_bytes(attestation_pki.paa_der)
        (tmp_path / "b_paa.pem").write_bytes(pem(other_paa))
        (tmp_path / "README.txt").write_text("ignored")

        registry = FileTrustAnchorRegistry(tmp_path)

        assert len(registry) == 2
        assert registry.lookup(key_identifier(attestation_pki.paa)) == attestation_pki.paa_der
        assert registry.lookup(key_identifier(other_paa)) == der(other_paa)

    def test_skips_unusable_files(self, tmp_path, attestation_pki, caplog):
        (tmp_path / "dac.der").write_bytes(attestation_pki.dac_der)
        (tmp_path / "garbage.crt").write_bytes(b"garbage")
        (tmp_path / "paa.der").write_bytes(attestation_pki.paa_der)

        with caplog.at_level(logging.WARNING):
            registry = FileTrustAnchorRegistry(tmp_path)

        assert len(registry) == 1
        assert "not a CA" in caplog.text
        assert "garbage.crt" in caplog.text

    def test_skips_certificate_with_duplicated_extension(self, tmp_path, attestation_pki, caplog):
        key = generate_key()
        name = make_name("PAA with duplicated extension")
        (tmp_path / "bad.der").write_bytes(
            issue_duplicate_extension_certificate(name, key, name, key, ca=True, path_length=1)
        )
        (tmp_path / "good.der").write_bytes(attestation_pki.paa_der)

        with caplog.at_level(logging.WARNING):
            registry = FileTrustAnchorRegistry(tmp_path)

        assert len(registry) == 1
        assert key_identifier(attestation_pki.paa) in registry
        assert "bad.der" in caplog.text

    def test_duplicate_files_keep_first(self, tmp_path, attestation_pki, caplog):
        (tmp_path / "1.der").write_bytes(attestation_pki.paa_der)
        (tmp_path / "2.pem").write_bytes(pem(attestation_pki.paa))

        with caplog.at_level(logging.WARNING):
            registry = FileTrustAnchorRegistry(tmp_path)

        assert len(registry) == 1
        assert "already registered" in caplog.text

    def test_missing_directory(self, tmp_path):
        with pytest.raises(ConfigurationError):
            FileTrustAnchorRegistry(tmp_path / "missing")

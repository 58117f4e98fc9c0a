"""Tests for did_btc.encoding and did_btc.consts."""
from __future__ import annotations

import pytest

from did_btc.consts import (
    DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS,
    VerificationRelationshipFlags,
    is_valid_verification_relationship_flags,
)
from did_btc.encoding import (
    CODECS,
    base58btc_decode,
    base58btc_encode,
    decode_multibase,
    decode_multikey,
    encode_multibase,
    encode_multikey,
    get_codec,
    get_codec_by_prefix,
    prepend_codec_to_key,
)
from did_btc.errors import DidFormatError

from conftest import PUBKEYS


# ---------------------------------------------------------------------------
# Base58btc
# ---------------------------------------------------------------------------


class TestBase58btc:
    def test_known_vector(self) -> None:
        assert base58btc_encode(b"hello world") == "StV1DL6CwTryKyV"

    def test_leading_zero_bytes_become_ones(self) -> None:
        assert base58btc_encode(b"\x00\x00\x01") == "112"
        assert base58btc_decode("112") == b"\x00\x00\x01"

    def test_empty_input(self) -> None:
        assert base58btc_encode(b"") == ""
        assert base58btc_decode("") == b""

    def test_decode_inverts_encode(self) -> None:
        data = bytes(range(40))
        assert base58btc_decode(base58btc_encode(data)) == data

    def test_rejects_characters_outside_alphabet(self) -> None:
        with pytest.raises(DidFormatError):
            base58btc_decode("0OIl")


# ---------------------------------------------------------------------------
# Codecs and multikeys
# ---------------------------------------------------------------------------


class TestCodecs:
    def test_codec_prefixes_and_lengths(self) -> None:
        assert CODECS["ed25519-pub"].prefix == b"\xed\x01"
        assert CODECS["ed25519-pub"].pubkey_length == 32
        assert CODECS["secp256k1-pub"].prefix == b"\xe7\x01"
        assert CODECS["secp256k1-pub"].pubkey_length == 33

    def test_get_codec_unknown_name(self) -> None:
        with pytest.raises(DidFormatError):
            get_codec("rsa-pub")

    def test_get_codec_by_prefix(self) -> None:
        assert get_codec_by_prefix(b"\xed\x01").name == "ed25519-pub"

    def test_get_codec_by_unknown_prefix(self) -> None:
        with pytest.raises(DidFormatError, match="unrecognized codec"):
            get_codec_by_prefix(b"\x12\x00")

    def test_prepend_codec_to_key(self) -> None:
        multikey = prepend_codec_to_key(PUBKEYS[0], "ed25519-pub")
        assert multikey[:2] == b"\xed\x01"
        assert multikey[2:] == PUBKEYS[0]


class TestMultikey:
    def test_ed25519_multikey_has_z6mk_prefix(self) -> None:
        assert encode_multikey(PUBKEYS[0], "ed25519-pub").startswith("z6Mk")

    def test_decode_multikey_returns_codec_and_key(self) -> None:
        decoded = decode_multikey(encode_multikey(PUBKEYS[1], "ed25519-pub"))
        assert decoded.codec_name == "ed25519-pub"
        assert decoded.key == PUBKEYS[1]

    def test_secp256k1_multikey(self) -> None:
        key = b"\x02" + bytes(range(32))
        decoded = decode_multikey(encode_multikey(key, "secp256k1-pub"))
        assert decoded.codec_name == "secp256k1-pub"
        assert decoded.key == key

    def test_multibase_matches_multikey_of_prefixed_bytes(self) -> None:
        multikey = prepend_codec_to_key(PUBKEYS[2], "ed25519-pub")
        assert encode_multibase(multikey) == encode_multikey(PUBKEYS[2], "ed25519-pub")
        assert decode_multibase(encode_multibase(multikey)) == multikey

    def test_unsupported_multibase_prefix(self) -> None:
        with pytest.raises(DidFormatError, match="multibase prefix"):
            decode_multibase("f" + PUBKEYS[0].hex())

    def test_unknown_codec_in_multikey(self) -> None:
        with pytest.raises(DidFormatError):
            decode_multikey(encode_multibase(b"\x12\x00" + PUBKEYS[0]))


# ---------------------------------------------------------------------------
# Verification relationship flags
# ---------------------------------------------------------------------------


class TestVerificationRelationshipFlags:
    def test_default_is_authentication_and_assertion(self) -> None:
        assert DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS == 3
        assert VerificationRelationshipFlags.AUTHENTICATION in DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS
        assert VerificationRelationshipFlags.ASSERTION in DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS

    @pytest.mark.parametrize("flags", [1, 3, 16, 31])
    def test_valid_flags(self, flags: int) -> None:
        assert is_valid_verification_relationship_flags(flags)

    @pytest.mark.parametrize("flags", [0, 32, -1, True])
    def test_invalid_flags(self, flags: int) -> None:
        assert not is_valid_verification_relationship_flags(flags)

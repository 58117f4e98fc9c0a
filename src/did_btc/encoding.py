"""Multicodec key prefixes and multibase (base58btc) string encoding.

Multikey encoding
-----------------
1. Take the raw public key bytes (33 bytes secp256k1, 32 bytes ed25519).
2. Prepend the 2-byte varint multicodec prefix (``0xe701`` or ``0xed01``).
3. Encode the result with base58btc.
4. Prefix the encoded string with ``z`` (the multibase indicator for base58btc).

Only the base58btc multibase prefix is supported. Any other prefix is a
:class:`~did_btc.errors.DidFormatError`.

See https://github.com/multiformats/multicodec/blob/master/table.csv and
https://w3c-ccg.github.io/multibase/
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from did_btc.errors import DidFormatError

CodecName = Literal["secp256k1-pub", "ed25519-pub"]

MULTIBASE_BASE58BTC_PREFIX: str = "z"


@dataclass(frozen=True)
class Codec:
    """A multicodec key type.

    Parameters
    ----------
    name:
        The multicodec table name, e.g. ``"ed25519-pub"``.
    prefix:
        The unsigned-varint encoded codec value (2 bytes for both key types).
    pubkey_length:
        The length of a raw public key of this type.
    """

    name: CodecName
    prefix: bytes
    pubkey_length: int


CODECS: dict[str, Codec] = {
    "secp256k1-pub": Codec(name="secp256k1-pub", prefix=b"\xe7\x01", pubkey_length=33),
    "ed25519-pub": Codec(name="ed25519-pub", prefix=b"\xed\x01", pubkey_length=32),
}

SUPPORTED_CODECS: tuple[str, ...] = tuple(CODECS)


@dataclass(frozen=True)
class DecodedKey:
    """A multikey split into its codec name and raw key bytes."""

    codec_name: CodecName
    key: bytes


# ---------------------------------------------------------------------------
# Base58btc codec
# ---------------------------------------------------------------------------

_BASE58_ALPHABET: bytes = b"123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
_BASE58_INDEX: dict[str, int] = {
    char: index for index, char in enumerate(_BASE58_ALPHABET.decode("ascii"))
}


def base58btc_encode(data: bytes) -> str:
    """Encode *data* to a base58btc string.

    Leading zero bytes are preserved as leading ``1`` characters.
    """
    n = int.from_bytes(data, "big")
    result: list[bytes] = []
    while n > 0:
        n, remainder = divmod(n, 58)
        result.append(_BASE58_ALPHABET[remainder : remainder + 1])
    for byte in data:
        if byte == 0:
            result.append(b"1")
        else:
            break
    return b"".join(reversed(result)).decode("ascii")


def base58btc_decode(encoded: str) -> bytes:
    """Decode a base58btc string back to bytes.

    Raises
    ------
    DidFormatError
        If the string contains a character outside the base58btc alphabet.
    """
    n = 0
    for char in encoded:
        index = _BASE58_INDEX.get(char)
        if index is None:
            raise DidFormatError(
                f"Invalid base58btc character {char!r} in encoded string {encoded!r}"
            )
        n = n * 58 + index
    result = n.to_bytes((n.bit_length() + 7) // 8, "big") if n > 0 else b""
    pad_size = len(encoded) - len(encoded.lstrip("1"))
    return b"\x00" * pad_size + result


# ---------------------------------------------------------------------------
# Codec helpers
# ---------------------------------------------------------------------------


def get_codec(name: str) -> Codec:
    """Return the :class:`Codec` registered under *name*.

    Raises
    ------
    DidFormatError
        If *name* is not a supported codec.
    """
    try:
        return CODECS[name]
    except KeyError:
        raise DidFormatError(
            f"Unsupported codec {name!r}. Supported: {list(SUPPORTED_CODECS)}"
        ) from None


def get_codec_by_prefix(prefix: bytes) -> Codec:
    """Return the codec whose varint prefix equals *prefix*.

    Raises
    ------
    DidFormatError
        If no supported codec has that prefix.
    """
    for codec in CODECS.values():
        if codec.prefix == prefix:
            return codec
    raise DidFormatError(f"unrecognized codec {bytes(prefix).hex()}")


def prepend_codec_to_key(key: bytes, codec: str) -> bytes:
    """Prepend the multicodec prefix of *codec* to raw *key* bytes."""
    return get_codec(codec).prefix + bytes(key)


def encode_multikey(key: bytes, codec: str) -> str:
    """Encode a raw public key as a multibase base58btc multikey string."""
    return MULTIBASE_BASE58BTC_PREFIX + base58btc_encode(prepend_codec_to_key(key, codec))


def decode_multikey(multikey: str) -> DecodedKey:
    """Decode a multibase multikey string into its codec name and key bytes.

    Raises
    ------
    DidFormatError
        If the multibase prefix is not ``z`` or the codec is not recognized.
    """
    decoded = decode_multibase(multikey)
    codec = get_codec_by_prefix(decoded[:2])
    return DecodedKey(codec_name=codec.name, key=decoded[2:])


def encode_multibase(data: bytes) -> str:
    """Encode bytes as a multibase base58btc string."""
    return MULTIBASE_BASE58BTC_PREFIX + base58btc_encode(bytes(data))


def decode_multibase(multibase: str) -> bytes:
    """Decode a multibase base58btc string.

    Raises
    ------
    DidFormatError
        If the string does not start with the ``z`` prefix.
    """
    prefix = multibase[:1]
    if prefix != MULTIBASE_BASE58BTC_PREFIX:
        raise DidFormatError(f"unsupported multibase prefix {prefix!r}")
    return base58btc_decode(multibase[1:])


__all__ = [
    "CODECS",
    "Codec",
    "CodecName",
    "DecodedKey",
    "MULTIBASE_BASE58BTC_PREFIX",
    "SUPPORTED_CODECS",
    "base58btc_decode",
    "base58btc_encode",
    "decode_multibase",
    "decode_multikey",
    "encode_multibase",
    "encode_multikey",
    "get_codec",
    "get_codec_by_prefix",
    "prepend_codec_to_key",
]

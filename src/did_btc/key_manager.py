"""KeyManager: key generation for DID subjects and DID outputs.

Two kinds of key show up around a ``did:btc`` DID:

* **subject keys**, published as verification methods. ``ed25519-pub``
  keys come from the ``cryptography`` package and ``secp256k1-pub`` keys
  (33-byte compressed) from ``coincurve``;
* **wallet keys**, raw 32-byte secp256k1 secrets controlling P2TR outputs
  (the DID output, funding inputs, change).

All key material is handled as raw bytes so callers can store it however
they like.
"""
from __future__ import annotations

from coincurve import PrivateKey
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
)

from did_btc.consts import Network
from did_btc.encoding import encode_multikey, get_codec, prepend_codec_to_key
from did_btc.taproot import TaprootKey


class KeyManager:
    """Generate subject and wallet keys.

    Example
    -------
    ::

        manager = KeyManager()
        private_bytes, multikey = manager.generate_multikey("ed25519-pub")
        wallet_key = manager.generate_wallet_key()
        address = manager.taproot_address(wallet_key, Network.TESTNET)
    """

    def generate_keypair(self, codec: str = "ed25519-pub") -> tuple[bytes, bytes]:
        """Generate a keypair of the given codec's type.

        Returns
        -------
        tuple[bytes, bytes]
            ``(private_key_bytes, public_key_bytes)``. The public key has the
            codec's raw length (32 bytes ed25519, 33 bytes secp256k1).
        """
        codec_name = get_codec(codec).name
        if codec_name == "ed25519-pub":
            private_key = Ed25519PrivateKey.generate()
            private_bytes = private_key.private_bytes(
                Encoding.Raw, PrivateFormat.Raw, NoEncryption()
            )
            public_bytes = private_key.public_key().public_bytes(
                Encoding.Raw, PublicFormat.Raw
            )
            return private_bytes, public_bytes
        secret = PrivateKey()
        return secret.secret, secret.public_key.format(compressed=True)

    def generate_multikey(self, codec: str = "ed25519-pub") -> tuple[bytes, str]:
        """Generate a keypair and return its public half as a multikey.

        Returns
        -------
        tuple[bytes, str]
            ``(private_key_bytes, multibase_multikey)``, e.g.
            ``(b"...", "z6Mk...")`` for ed25519.
        """
        private_bytes, public_bytes = self.generate_keypair(codec)
        return private_bytes, encode_multikey(public_bytes, codec)

    def multikey_bytes(self, public_key: bytes, codec: str = "ed25519-pub") -> bytes:
        """Return the codec-prefixed bytes published in a creation transaction."""
        return prepend_codec_to_key(public_key, codec)

    def generate_wallet_key(self) -> bytes:
        """Generate a raw 32-byte secp256k1 secret for a P2TR output."""
        return PrivateKey().secret

    def taproot_address(self, privkey: bytes, network: Network | str = Network.MAINNET) -> str:
        """Return the key-path P2TR address of a wallet key."""
        return TaprootKey.from_privkey(privkey).address(network)


__all__ = ["KeyManager"]

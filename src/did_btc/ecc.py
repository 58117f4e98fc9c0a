"""Secp256k1: the elliptic-curve backend used for Taproot keys and signatures.

This is a thin wrapper around ``coincurve`` (libsecp256k1 bindings). The
builders receive an instance through their constructor instead of relying
on a process-wide registration, so tests can substitute their own backend.

Only the handful of primitives needed by BIP340/BIP341 are exposed:

* x-only public key from a secret scalar,
* tweaking a secret key or an x-only public key,
* Schnorr signing and verification.

Signatures are produced with 32 zero bytes of auxiliary randomness, which
makes every transaction built by this package byte-for-byte reproducible.
"""
from __future__ import annotations

from bitcoinutils.utils import negate_privkey
from coincurve import PrivateKey, PublicKey, PublicKeyXOnly

ZERO_AUX_RANDOMNESS: bytes = bytes(32)


class Secp256k1:
    """BIP340/BIP341 primitives backed by libsecp256k1.

    Example
    -------
    ::

        ecc = Secp256k1()
        pubkey = ecc.x_only_pubkey(secret)
        signature = ecc.sign_schnorr(sighash, secret)
        assert ecc.verify_schnorr(signature, sighash, pubkey)
    """

    # ------------------------------------------------------------------
    # Points
    # ------------------------------------------------------------------

    def x_only_pubkey(self, secret: bytes) -> bytes:
        """Return the 32-byte x coordinate of ``secret * G``."""
        return PrivateKey(bytes(secret)).public_key.format(compressed=True)[1:]

    def has_odd_y(self, secret: bytes) -> bool:
        """Return ``True`` if ``secret * G`` has an odd y coordinate."""
        return PrivateKey(bytes(secret)).public_key.format(compressed=True)[0] == 0x03

    # ------------------------------------------------------------------
    # Tweaks
    # ------------------------------------------------------------------

    def tweak_private_key(self, secret: bytes, tweak: bytes) -> bytes:
        """Tweak a secret key the way BIP341 ``taproot_tweak_seckey`` does.

        The secret is negated first when its point has an odd y, so the
        result always signs for the even-y lifted output key.

        Raises
        ------
        ValueError
            If the tweak is not below the group order or the result is zero.
        """
        if self.has_odd_y(secret):
            secret = bytes.fromhex(negate_privkey(bytes(secret)))
        return PrivateKey(bytes(secret)).add(bytes(tweak)).secret

    def tweak_x_only_pubkey(self, x_only: bytes, tweak: bytes) -> tuple[bytes, int]:
        """Return ``(x_only, parity)`` of ``lift_x(x_only) + tweak * G``."""
        lifted = PublicKey(b"\x02" + bytes(x_only))
        tweaked = lifted.add(bytes(tweak)).format(compressed=True)
        return tweaked[1:], tweaked[0] & 1

    # ------------------------------------------------------------------
    # Schnorr
    # ------------------------------------------------------------------

    def sign_schnorr(
        self,
        message: bytes,
        secret: bytes,
        aux_randomness: bytes = ZERO_AUX_RANDOMNESS,
    ) -> bytes:
        """Produce a 64-byte BIP340 signature over a 32-byte *message*."""
        return PrivateKey(bytes(secret)).sign_schnorr(bytes(message), aux_randomness)

    def verify_schnorr(self, signature: bytes, message: bytes, x_only: bytes) -> bool:
        """Verify a BIP340 signature against an x-only public key."""
        return PublicKeyXOnly(bytes(x_only)).verify(bytes(signature), bytes(message))


__all__ = ["Secp256k1", "ZERO_AUX_RANDOMNESS"]

"""Tests for did_btc.key_manager."""
from __future__ import annotations

import pytest

from did_btc.consts import Network
from did_btc.encoding import decode_multikey
from did_btc.errors import DidFormatError
from did_btc.key_manager import KeyManager
from did_btc.taproot import TaprootKey

from conftest import PRIVKEY, TWEAKED_PUBKEY


@pytest.fixture()
def manager() -> KeyManager:
    return KeyManager()


class TestGenerateKeypair:
    def test_ed25519(self, manager: KeyManager) -> None:
        private_bytes, public_bytes = manager.generate_keypair("ed25519-pub")
        assert len(private_bytes) == 32
        assert len(public_bytes) == 32

    def test_secp256k1_is_compressed(self, manager: KeyManager) -> None:
        private_bytes, public_bytes = manager.generate_keypair("secp256k1-pub")
        assert len(private_bytes) == 32
        assert len(public_bytes) == 33
        assert public_bytes[0] in (2, 3)

    def test_keys_are_fresh(self, manager: KeyManager) -> None:
        assert manager.generate_keypair()[1] != manager.generate_keypair()[1]

    def test_unknown_codec(self, manager: KeyManager) -> None:
        with pytest.raises(DidFormatError):
            manager.generate_keypair("rsa-pub")


class TestMultikeys:
    def test_ed25519_multikey(self, manager: KeyManager) -> None:
        _, multikey = manager.generate_multikey("ed25519-pub")
        assert multikey.startswith("z6Mk")
        decoded = decode_multikey(multikey)
        assert decoded.codec_name == "ed25519-pub"
        assert len(decoded.key) == 32

    def test_secp256k1_multikey(self, manager: KeyManager) -> None:
        _, multikey = manager.generate_multikey("secp256k1-pub")
        assert multikey.startswith("zQ3s")
        assert decode_multikey(multikey).codec_name == "secp256k1-pub"

    def test_multikey_bytes(self, manager: KeyManager) -> None:
        assert manager.multikey_bytes(bytes(32)) == b"\xed\x01" + bytes(32)


class TestWalletKeys:
    def test_wallet_key_is_usable_for_taproot(self, manager: KeyManager) -> None:
        wallet_key = manager.generate_wallet_key()
        assert len(wallet_key) == 32
        assert len(TaprootKey.from_privkey(wallet_key).tweaked_pubkey) == 32

    def test_taproot_address(self, manager: KeyManager) -> None:
        address = manager.taproot_address(PRIVKEY, Network.TESTNET)
        assert address == TaprootKey.from_privkey(PRIVKEY).address(Network.TESTNET)
        assert address.startswith("tb1p")

    def test_mainnet_address_by_default(self, manager: KeyManager) -> None:
        assert manager.taproot_address(PRIVKEY).startswith("bc1p")

    def test_address_commits_to_tweaked_key(self, manager: KeyManager) -> None:
        assert TaprootKey.from_privkey(PRIVKEY).tweaked_pubkey.hex() == TWEAKED_PUBKEY

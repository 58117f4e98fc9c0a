"""Shared fixtures: testnet transactions and keys of a published DID batch.

The funding output, key and transactions below were broadcast on testnet,
so every builder test can compare against bytes that a node accepted.
"""
from __future__ import annotations

import base64

import pytest

from did_btc.consts import Network
from did_btc.models import Utxo, WalletUtxo

PRIVKEY: bytes = base64.b64decode("jjoSPe0Rb930tdPEJLSnf3i6coIBaWCqJXS8JUxrCww=")

FEE_RATE: int = 17

NETWORK: Network = Network.TESTNET

PUBKEYS: list[bytes] = [
    bytes.fromhex("988403912c92a9e10a384620a5eb6579da156b6d48fbe08dc5815d4abef38823"),
    bytes.fromhex("b9b624758eea864d3268ac5d999e1b0ac3167313bc85ed1804b7d6713904a608"),
    bytes.fromhex("548edbd592684fdf0a2a159d0f8845f22fdec8dc1f56d2209cb53acdb20f3d88"),
]

UPDATED_PUBKEYS: list[bytes] = [
    bytes.fromhex("dc1b32f3e3756160c48fa1f74f7d7651aea38d30a6a6e2f759fd7f423d4338e8"),
    bytes.fromhex("4c0a076e0400c35d3d312131c10c71a8e95c4db7cbb1b558e218af23ae08168c"),
    bytes.fromhex("2bca2c074ec4f7aa03279de6f724430e00aa196111ad158ad8b2f34b83c9152f"),
]

FUNDING_UTXO: Utxo = Utxo.from_hex(
    "48452f42ac0accd63a0467f7e0406945320061bd19971bf34478582d76e85dbe", 1, 4131295
)

#: x-only key of the P2TR output controlled by PRIVKEY.
TWEAKED_PUBKEY: str = "5daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e"

#: x-only public key of PRIVKEY itself.
INTERNAL_PUBKEY: str = "684a27dce671f9d17f4a25763a83a68ab4f9df58aa5db92aa488499f4f0f37bd"

CREATION_TX_HEX: str = (
    "01000000000101be5de8762d587844f31b9719bd610032456940e0f767043ad6cc0aac422f45480100000000ffffffff030000000000000000286a2664696403ed01988403912c92a9e10a384620a5eb6579da156b6d48fbe08dc5815d4abef388234a010000000000002251205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e1afb3e00000000002251205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e014003a115576176bc0cafcc2dbc9cccfad94737476fc3a8e15bc217756694eaa8e715cac8e9d60051c613cdc64236f23d5b639df1c67b8cb24a6f0fe221161f393600000000"
)

BATCH_CREATION_TX_HEX: str = (
    "010000000001016287f37e2ed77d8e5e1bf5195b6b077d6e5dfc007e85d1ce25e9cae710d291680000000000ffffffff014a010000000000002251205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e0340df7658f7d09a34683bf17a917fd048c7dc5c9ace14b0cd4dd0f388221075d0ff625b3644f4e48c0d028b6051181d2b601ef68606cac3cf82d5082dd07320b2e58e205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9eac00634c6764696473ed0103988403912c92a9e10a384620a5eb6579da156b6d48fbe08dc5815d4abef38823b9b624758eea864d3268ac5d999e1b0ac3167313bc85ed1804b7d6713904a608548edbd592684fdf0a2a159d0f8845f22fdec8dc1f56d2209cb53acdb20f3d886821c0684a27dce671f9d17f4a25763a83a68ab4f9df58aa5db92aa488499f4f0f37bd00000000"
)

BATCH_COMMIT_TXID: str = "6891d210e7cae925ced1857e00fc5d6e7d076b5b19f51b5e8e7dd72e7ef38762"
BATCH_REVEAL_TXID: str = "de7523bc733b5195025583a72eafc55aa636e0a7a536e87c5ebb1ae79df42252"
FIRST_BATCH_UPDATE_TXID: str = "a722f00dc17aba62689f51e6dc790f52f6320ff6f2a7b404377e382370782814"
SECOND_BATCH_UPDATE_TXID: str = "82b011145bf47ff2caf3db2c342946cb1a9afadca1b4b6f19534b47145cc647c"

BATCH_CHANGE_VALUE: int = 4125695


@pytest.fixture()
def wallet_utxo() -> WalletUtxo:
    return WalletUtxo(utxo=FUNDING_UTXO, privkey=PRIVKEY)


@pytest.fixture()
def batch_did_utxo() -> Utxo:
    """The DID output of the batch reveal transaction."""
    return Utxo.from_hex(BATCH_REVEAL_TXID, 0, 330)


@pytest.fixture()
def batch_wallet_utxo() -> WalletUtxo:
    """The change output of the batch commitment transaction."""
    return WalletUtxo(
        utxo=Utxo.from_hex(BATCH_COMMIT_TXID, 1, BATCH_CHANGE_VALUE), privkey=PRIVKEY
    )

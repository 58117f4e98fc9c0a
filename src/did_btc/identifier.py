"""``did:btc`` identifiers.

A DID is named after the position of its creation transaction::

    did:btc:<txref>            mainnet
    did:btc:test:<txref>       testnet and regtest

``<txref>`` is the BIP-136 reference of the creation transaction without
its ``tx1:``/``txtest1:`` prefix. DIDs created in a batch carry their index
in the batch as the txref outpoint.

Examples::

    did:btc:yq7p-v92k-prqq-sg9a-e6
    did:btc:test:8q7p-v92k-prqq-7s2k-6a
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from did_btc.consts import Network
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.txref import decode_txref, encode_txref

DID_BTC_PREFIX: str = "did:btc:"


@dataclass(frozen=True)
class DidBtcIdentifier:
    """The components encoded in a ``did:btc`` identifier.

    Parameters
    ----------
    block_height:
        Height of the block confirming the creation transaction.
    tx_index:
        Index of the creation transaction in that block.
    did_index:
        Index of the DID in its batch, if it was created in one.
    network:
        The network the DID lives on.
    """

    block_height: int
    tx_index: int
    did_index: Optional[int] = None
    network: Network = Network.MAINNET

    def to_dict(self) -> dict[str, object]:
        return {
            "blockHeight": self.block_height,
            "txIndex": self.tx_index,
            "didIndex": self.did_index,
            "network": Network(self.network).value,
        }


def get_did_prefix(network: Network | str = Network.MAINNET) -> str:
    """Return ``did:btc:`` for mainnet and ``did:btc:test:`` otherwise.

    Raises
    ------
    DidValidationError
        If *network* is not a supported network.
    """
    try:
        network = Network(network)
    except ValueError:
        raise DidValidationError(f"Unsupported network: {network}") from None
    return DID_BTC_PREFIX if network is Network.MAINNET else DID_BTC_PREFIX + "test:"


def is_did_btc(did: str) -> bool:
    return did.startswith(DID_BTC_PREFIX)


def extract_did_unique_suffix(did: str) -> str:
    """Return the part of *did* after its last colon."""
    return did[did.rfind(":") + 1 :]


def encode_did_btc(identifier: DidBtcIdentifier) -> str:
    """Encode *identifier* as a ``did:btc`` string."""
    prefix = get_did_prefix(identifier.network)
    try:
        txref = encode_txref(
            identifier.block_height,
            identifier.tx_index,
            network=identifier.network,
            outpoint=identifier.did_index,
        )
    except ValueError as exc:
        raise DidValidationError(str(exc)) from exc
    return prefix + txref[txref.index(":") + 1 :]


def decode_did_btc(did: str) -> DidBtcIdentifier:
    """Decode a ``did:btc`` string into its components.

    ``did_index`` is 0 when the identifier carries no batch index.

    Raises
    ------
    DidFormatError
        If *did* is not a ``did:btc`` identifier or its reference is invalid.
    """
    if not is_did_btc(did):
        raise DidFormatError(f"Unsupported DID method: {did}")
    txref = decode_txref(extract_did_unique_suffix(did))
    return DidBtcIdentifier(
        block_height=txref.block_height,
        tx_index=txref.tx_index,
        did_index=txref.outpoint if txref.outpoint is not None else 0,
        network=txref.network,
    )


__all__ = [
    "DID_BTC_PREFIX",
    "DidBtcIdentifier",
    "decode_did_btc",
    "encode_did_btc",
    "extract_did_unique_suffix",
    "get_did_prefix",
    "is_did_btc",
]

"""DidTransactionBuilder: every DID operation behind one object.

The builder owns the elliptic-curve backend and passes it to each
operation, so a process can run several builders with different backends
and nothing depends on global initialisation.

Example
-------
::

    builder = DidTransactionBuilder()
    tx = builder.create(
        multikey=prepend_codec_to_key(pubkey, "ed25519-pub"),
        wallet_utxos=[WalletUtxo(utxo=utxo, privkey=privkey)],
        sats_per_vbyte=17,
        network=Network.TESTNET,
    )
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from did_btc.consts import Network
from did_btc.ecc import Secp256k1
from did_btc.models import (
    BitcoinTransaction,
    CommitRevealTransactions,
    Did,
    Utxo,
    WalletUtxo,
)
from did_btc.operations.algebra import BatchDidUpdate, DidUpdate
from did_btc.operations.create import (
    build_batch_did_creation_transactions,
    build_did_creation_transaction,
)
from did_btc.operations.deactivate import build_did_deactivation_transaction
from did_btc.operations.update import (
    build_batch_did_update_transactions,
    build_did_update_transactions,
)


class DidTransactionBuilder:
    """Builds ``did:btc`` transactions with an injected ECC backend.

    Parameters
    ----------
    ecc:
        The backend used for key tweaking and signing. Defaults to
        :class:`~did_btc.ecc.Secp256k1`.
    """

    def __init__(self, ecc: Optional[Secp256k1] = None) -> None:
        self._ecc = ecc or Secp256k1()

    @property
    def ecc(self) -> Secp256k1:
        return self._ecc

    def create(
        self,
        multikey: bytes,
        wallet_utxos: Sequence[WalletUtxo],
        sats_per_vbyte: float,
        network: Network | str = Network.MAINNET,
        **options: Any,
    ) -> BitcoinTransaction:
        """Create a single DID. See :func:`build_did_creation_transaction`."""
        return build_did_creation_transaction(
            multikey, wallet_utxos, sats_per_vbyte, network, ecc=self._ecc, **options
        )

    def batch_create(
        self,
        pubkeys: Sequence[bytes],
        wallet_utxos: Sequence[WalletUtxo],
        sats_per_vbyte: float,
        network: Network | str = Network.MAINNET,
        **options: Any,
    ) -> CommitRevealTransactions:
        """Create a batch of DIDs. See :func:`build_batch_did_creation_transactions`."""
        return build_batch_did_creation_transactions(
            pubkeys, wallet_utxos, sats_per_vbyte, network, ecc=self._ecc, **options
        )

    def update(
        self,
        did: Did,
        update: DidUpdate,
        did_utxo: Utxo,
        did_privkey: bytes,
        sats_per_vbyte: float,
        network: Network | str = Network.MAINNET,
        **options: Any,
    ) -> CommitRevealTransactions:
        """Update a single DID. See :func:`build_did_update_transactions`."""
        return build_did_update_transactions(
            did, update, did_utxo, did_privkey, sats_per_vbyte, network, ecc=self._ecc, **options
        )

    def batch_update(
        self,
        did_utxo: Utxo,
        did_privkey: bytes,
        sats_per_vbyte: float,
        network: Network | str = Network.MAINNET,
        updates: Sequence[BatchDidUpdate] = (),
        deactivation_indexes: Sequence[int] = (),
        **options: Any,
    ) -> CommitRevealTransactions:
        """Update or deactivate DIDs of a batch. See :func:`build_batch_did_update_transactions`."""
        return build_batch_did_update_transactions(
            did_utxo,
            did_privkey,
            sats_per_vbyte,
            network,
            updates=updates,
            deactivation_indexes=deactivation_indexes,
            ecc=self._ecc,
            **options,
        )

    def deactivate(
        self,
        did_utxo: Utxo,
        did_privkey: bytes,
        sats_per_vbyte: float,
        network: Network | str = Network.MAINNET,
        **options: Any,
    ) -> BitcoinTransaction:
        """Deactivate a single DID. See :func:`build_did_deactivation_transaction`."""
        return build_did_deactivation_transaction(
            did_utxo, did_privkey, sats_per_vbyte, network, ecc=self._ecc, **options
        )


__all__ = ["DidTransactionBuilder"]

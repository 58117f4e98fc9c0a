"""Builders for DID creation transactions.

A single DID fits in one transaction: an ``OP_RETURN`` output carries
``"did" || flags || multikey`` and the next output becomes the DID output.

A batch of DIDs is inscribed with a commit/reveal pair. The reveal payload
is ``"dids" || codec prefix || flags || key_0 || key_1 || ...`` where every
key has the length the codec implies, so DID ``n`` of the batch lives at a
fixed offset.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from bitcoinutils.script import Script
from bitcoinutils.transactions import TxOutput

from did_btc.consts import (
    DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS,
    DID_CREATION_OP_RETURN_PREFIX,
    DIDS_BATCH_CREATION_PAYLOAD_PREFIX,
    DUST_LIMIT,
    Network,
    is_valid_verification_relationship_flags,
)
from did_btc.ecc import Secp256k1
from did_btc.encoding import Codec, get_codec, get_codec_by_prefix
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.models import BitcoinTransaction, CommitRevealTransactions, WalletUtxo
from did_btc.operations.commit_reveal import get_commit_reveal_transactions
from did_btc.operations.fees import (
    add_and_sign_inputs,
    add_change_if_economically_feasible,
    calculate_tx_fee_and_input_value,
    new_transaction,
    txid_of,
    validate_did_sats,
    validate_fee_rate,
)
from did_btc.taproot import TaprootKey, as_script, get_change_output

logger = logging.getLogger(__name__)


def _validate_flags(flags: int) -> None:
    if not is_valid_verification_relationship_flags(flags):
        raise DidValidationError(f"Invalid verification relationship flags {flags}")


def _validate_wallet_utxos(wallet_utxos: Sequence[WalletUtxo]) -> None:
    if not wallet_utxos:
        raise DidValidationError("wallet_utxos must be provided")


def get_creation_op_return_script(multikey: bytes, verification_relationship_flags: int) -> Script:
    """Return the ``OP_RETURN`` output script announcing a single DID."""
    payload = DID_CREATION_OP_RETURN_PREFIX + bytes([verification_relationship_flags]) + multikey
    return Script(["OP_RETURN", payload.hex()])


def build_did_creation_transaction(
    multikey: bytes,
    wallet_utxos: Sequence[WalletUtxo],
    sats_per_vbyte: float,
    network: Network | str = Network.MAINNET,
    change_address: Optional[str] = None,
    did_output: Optional[Script | bytes] = None,
    did_sats: int = DUST_LIMIT,
    verification_relationship_flags: int = DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS,
    ecc: Optional[Secp256k1] = None,
) -> BitcoinTransaction:
    """Build a signed transaction creating one DID.

    Parameters
    ----------
    multikey:
        Codec-prefixed public key of the initial verification method.
    wallet_utxos:
        P2TR outputs funding the transaction, with their keys.
    sats_per_vbyte:
        Fee rate, at least 1.
    network:
        Network of the change address.
    change_address:
        Segwit address for change. Defaults to the first wallet key.
    did_output:
        Output script of the DID output. Defaults to the first wallet key.
    did_sats:
        Value of the DID output, at least the dust limit.
    verification_relationship_flags:
        Flags of the initial verification method (default 3).
    ecc:
        Elliptic-curve backend.

    Returns
    -------
    BitcoinTransaction
        The signed transaction; the DID output is at index 1.

    Raises
    ------
    DidValidationError
        If any input is invalid.
    InsufficientFundsError
        If the UTXOs cannot pay for the outputs and the fee.
    """
    _validate_wallet_utxos(wallet_utxos)
    validate_did_sats(did_sats)
    validate_fee_rate(sats_per_vbyte)
    _validate_flags(verification_relationship_flags)
    multikey = bytes(multikey)
    try:
        get_codec_by_prefix(multikey[:2])
    except DidFormatError as exc:
        raise DidValidationError(f"Invalid multikey: {exc}") from exc

    ecc = ecc or Secp256k1()
    utxos = [wallet_utxo.utxo for wallet_utxo in wallet_utxos]
    tr_keys = [TaprootKey.from_privkey(wallet_utxo.privkey, ecc) for wallet_utxo in wallet_utxos]
    did_output_script = as_script(did_output) if did_output is not None else tr_keys[0].output_script

    op_return = get_creation_op_return_script(multikey, verification_relationship_flags)
    change_output = get_change_output(change_address, wallet_utxos[0].privkey, network, ecc)
    estimate = calculate_tx_fee_and_input_value(
        utxos,
        [TxOutput(0, op_return), TxOutput(did_sats, did_output_script)],
        change_output,
        sats_per_vbyte,
    )

    tx = new_transaction([], [TxOutput(0, op_return), TxOutput(did_sats, did_output_script)])
    change = add_change_if_economically_feasible(
        tx, change_output, estimate.input_value, did_sats, estimate.fee, network
    )
    add_and_sign_inputs(tx, utxos, tr_keys, ecc)
    txid = txid_of(tx)

    logger.info("Built DID creation transaction %s (fee %d)", txid.hex(), estimate.fee)
    return BitcoinTransaction(
        tx_hex=tx.serialize(),
        txid=txid,
        change_index=change.change_index,
        change_value=change.change_value,
        change_address=change.change_address,
        did_utxo_index=1,
        did_utxo_value=did_sats,
    )


def get_batch_create_content(
    pubkeys: Sequence[bytes], codec: Codec, verification_relationship_flags: int
) -> bytes:
    """Return the reveal payload of a batch creation."""
    return b"".join(
        [
            DIDS_BATCH_CREATION_PAYLOAD_PREFIX,
            codec.prefix,
            bytes([verification_relationship_flags]),
            *(bytes(pubkey) for pubkey in pubkeys),
        ]
    )


def build_batch_did_creation_transactions(
    pubkeys: Sequence[bytes],
    wallet_utxos: Sequence[WalletUtxo],
    sats_per_vbyte: float,
    network: Network | str = Network.MAINNET,
    change_address: Optional[str] = None,
    did_output: Optional[Script | bytes] = None,
    did_sats: int = DUST_LIMIT,
    verification_relationship_flags: int = DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS,
    codec: Codec | str = "ed25519-pub",
    ecc: Optional[Secp256k1] = None,
) -> CommitRevealTransactions:
    """Build the commit/reveal pair creating one DID per public key.

    All DIDs in the batch share the reveal transaction's DID output
    (index 0) and the flags given here. ``pubkeys`` are raw keys without a
    codec prefix and must all have the codec's key length.

    Raises
    ------
    DidValidationError
        If any input is invalid.
    InsufficientFundsError
        If the UTXOs cannot pay for both transactions.
    """
    _validate_wallet_utxos(wallet_utxos)
    validate_did_sats(did_sats)
    validate_fee_rate(sats_per_vbyte)
    _validate_flags(verification_relationship_flags)
    if isinstance(codec, str):
        try:
            codec = get_codec(codec)
        except DidFormatError as exc:
            raise DidValidationError(str(exc)) from exc
    if not pubkeys:
        raise DidValidationError("At least one public key is required")
    if any(len(pubkey) != codec.pubkey_length for pubkey in pubkeys):
        raise DidValidationError(f"all pubkeys must be {codec.pubkey_length} bytes")

    content = get_batch_create_content(pubkeys, codec, verification_relationship_flags)
    change_output = get_change_output(change_address, wallet_utxos[0].privkey, network, ecc)
    logger.debug("Batch creation of %d DIDs, payload %d bytes", len(pubkeys), len(content))
    return get_commit_reveal_transactions(
        reveal_content=content,
        wallet_utxos=wallet_utxos,
        change_output=change_output,
        did_sats=did_sats,
        sats_per_vbyte=sats_per_vbyte,
        network=network,
        did_output=did_output,
        ecc=ecc,
    )


__all__ = [
    "build_batch_did_creation_transactions",
    "build_did_creation_transaction",
    "get_batch_create_content",
    "get_creation_op_return_script",
]

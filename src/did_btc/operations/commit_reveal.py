"""Commit/reveal transaction pairs that inscribe a payload in a witness.

The commitment transaction pays to a Taproot output whose script tree is a
single leaf::

    <tweaked pubkey> OP_CHECKSIG OP_FALSE OP_IF <chunk> <chunk> ... OP_ENDIF

The ``OP_FALSE OP_IF`` envelope is never executed; it only carries the
payload, split into pushes of at most 520 bytes. The reveal transaction
spends that output through the script path, which puts the leaf script,
and so the payload, in its witness:

    [signature, leaf script, control block]

:func:`parse_reveal_payload_from_witness` is the exact inverse of
:func:`build_reveal_script`.
"""
from __future__ import annotations

import logging
import math
import struct
from typing import Optional, Sequence

from bitcoinutils.constants import LEAF_VERSION_TAPSCRIPT
from bitcoinutils.script import OP_CODES, Script
from bitcoinutils.transactions import TxInput, TxOutput, TxWitnessInput

from did_btc.consts import Network, STACK_ELEMENT_SIZE_LIMIT
from did_btc.ecc import Secp256k1
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.models import BitcoinTransaction, CommitRevealTransactions, WalletUtxo
from did_btc.operations.fees import (
    PLACEHOLDER_SIGNATURE,
    SIGHASH_DEFAULT,
    TX_SEQUENCE,
    add_and_sign_inputs,
    add_change_if_economically_feasible,
    calculate_tx_fee_and_input_value,
    new_transaction,
    txid_of,
)
from did_btc.taproot import CompiledScript, TaprootKey, as_script, taproot_commitment

logger = logging.getLogger(__name__)

OP_PUSHDATA1: int = OP_CODES["OP_PUSHDATA1"][0]
OP_PUSHDATA2: int = OP_CODES["OP_PUSHDATA2"][0]
MAX_DIRECT_PUSH: int = 75

#: 32-byte pubkey push (33 bytes) + OP_CHECKSIG OP_FALSE OP_IF.
REVEAL_SCRIPT_HEADER_SIZE: int = 33 + 3

# Size only matters while estimating the reveal fee.
_PLACEHOLDER_TXID: str = "ff" * 32


# ------------------------------------------------------------------
# Reveal script
# ------------------------------------------------------------------


def chunk_payload(payload: bytes, size: int = STACK_ELEMENT_SIZE_LIMIT) -> list[bytes]:
    """Split *payload* into pieces of at most *size* bytes."""
    return [payload[offset : offset + size] for offset in range(0, len(payload), size)]


def compile_push(data: bytes) -> bytes:
    """Compile a data push: direct up to 75 bytes, then PUSHDATA1, then PUSHDATA2."""
    length = len(data)
    if length <= MAX_DIRECT_PUSH:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", length) + data
    raise DidValidationError(f"Cannot push {length} bytes in a single script element.")


def build_reveal_script(payload: bytes, tweaked_pubkey: bytes) -> CompiledScript:
    """Compile the tapscript leaf that inscribes *payload*."""
    raw = b"".join(
        [
            compile_push(bytes(tweaked_pubkey)),
            OP_CODES["OP_CHECKSIG"],
            OP_CODES["OP_0"],
            OP_CODES["OP_IF"],
            *(compile_push(chunk) for chunk in chunk_payload(bytes(payload))),
            OP_CODES["OP_ENDIF"],
        ]
    )
    return CompiledScript(raw)


def parse_reveal_payload_from_witness(witness: Sequence[bytes]) -> bytes:
    """Recover the payload inscribed by a reveal transaction input.

    Parameters
    ----------
    witness:
        The witness stack of the reveal input. Item 1 is the leaf script.

    Raises
    ------
    DidFormatError
        If the stack has no leaf script, a push opcode is not a data push,
        or a push runs past the end of the script.
    """
    if len(witness) < 2:
        raise DidFormatError("Reveal witness does not contain a tapleaf script.")
    leaf_script = bytes(witness[1])
    inscription = leaf_script[REVEAL_SCRIPT_HEADER_SIZE:-1]

    chunks: list[bytes] = []
    offset = 0
    while offset < len(inscription):
        opcode = inscription[offset]
        if 1 <= opcode <= MAX_DIRECT_PUSH:
            push_size = opcode
            offset += 1
        elif opcode == OP_PUSHDATA1 and offset + 2 <= len(inscription):
            push_size = inscription[offset + 1]
            offset += 2
        elif opcode == OP_PUSHDATA2 and offset + 3 <= len(inscription):
            (push_size,) = struct.unpack_from("<H", inscription, offset + 1)
            offset += 3
        else:
            raise DidFormatError(f"Invalid push op code {opcode}")
        chunk = inscription[offset : offset + push_size]
        if len(chunk) != push_size:
            raise DidFormatError("Push runs past the end of the reveal script.")
        chunks.append(chunk)
        offset += push_size
    return b"".join(chunks)


# ------------------------------------------------------------------
# Transaction pair
# ------------------------------------------------------------------


def get_commit_reveal_transactions(
    reveal_content: bytes,
    wallet_utxos: Sequence[WalletUtxo],
    change_output: Script,
    did_sats: int,
    sats_per_vbyte: float,
    network: Network | str,
    did_output: Optional[Script | bytes] = None,
    ecc: Optional[Secp256k1] = None,
) -> CommitRevealTransactions:
    """Build and sign a commitment transaction and the reveal spending it.

    Parameters
    ----------
    reveal_content:
        The payload to inscribe.
    wallet_utxos:
        Inputs of the commitment transaction. When a DID output is being
        spent it must come first; its key also signs the reveal.
    change_output:
        Output script receiving the commitment transaction's change.
    did_sats:
        Value of the reveal transaction's only output.
    sats_per_vbyte:
        Fee rate for both transactions.
    network:
        Network used to render the change address.
    did_output:
        Output script of the new DID output. Defaults to the P2TR output
        of the first wallet key.
    ecc:
        Elliptic-curve backend; a default one is created when omitted.

    Raises
    ------
    DidValidationError
        If no UTXOs are given.
    InsufficientFundsError
        If the UTXOs cannot pay for both transactions.
    """
    if not wallet_utxos:
        raise DidValidationError("At least one UTXO is required")
    ecc = ecc or Secp256k1()
    utxos = [wallet_utxo.utxo for wallet_utxo in wallet_utxos]
    tr_keys = [TaprootKey.from_privkey(wallet_utxo.privkey, ecc) for wallet_utxo in wallet_utxos]
    signer = tr_keys[0]

    reveal_script = build_reveal_script(reveal_content, signer.tweaked_pubkey)
    commitment = taproot_commitment(signer.internal_pubkey, reveal_script, ecc)
    control_block = commitment.control_block
    did_output_script = as_script(did_output) if did_output is not None else signer.output_script

    reveal_estimate = new_transaction(
        [TxInput(_PLACEHOLDER_TXID, 0, sequence=TX_SEQUENCE)],
        [TxOutput(did_sats, did_output_script)],
    )
    reveal_estimate.witnesses = [
        TxWitnessInput(
            [PLACEHOLDER_SIGNATURE.hex(), reveal_script.to_hex(), control_block.hex()]
        )
    ]
    reveal_fee = math.ceil(reveal_estimate.get_vsize() * sats_per_vbyte)
    commit_value = reveal_fee + did_sats

    commit_output = TxOutput(commit_value, commitment.output_script)
    estimate = calculate_tx_fee_and_input_value(
        utxos, [commit_output], change_output, sats_per_vbyte
    )

    commit_tx = new_transaction([], [commit_output])
    change = add_change_if_economically_feasible(
        commit_tx, change_output, estimate.input_value, commit_value, estimate.fee, network
    )
    add_and_sign_inputs(commit_tx, utxos, tr_keys, ecc)
    commit_txid = txid_of(commit_tx)

    reveal_tx = new_transaction(
        [TxInput(commit_txid.hex(), 0, sequence=TX_SEQUENCE)],
        [TxOutput(did_sats, did_output_script)],
    )
    digest = reveal_tx.get_transaction_taproot_digest(
        0,
        [commitment.output_script],
        [commit_value],
        ext_flag=1,
        script=reveal_script,
        leaf_ver=LEAF_VERSION_TAPSCRIPT,
        sighash=SIGHASH_DEFAULT,
    )
    signature = ecc.sign_schnorr(digest, signer.tweaked_privkey)
    reveal_tx.witnesses = [
        TxWitnessInput([signature.hex(), reveal_script.to_hex(), control_block.hex()])
    ]
    reveal_txid = txid_of(reveal_tx)

    logger.debug(
        "Commit fee %d, reveal fee %d, commitment value %d",
        estimate.fee,
        reveal_fee,
        commit_value,
    )
    logger.info("Built commit %s and reveal %s", commit_txid.hex(), reveal_txid.hex())
    return CommitRevealTransactions(
        commit_transaction=BitcoinTransaction(
            tx_hex=commit_tx.serialize(),
            txid=commit_txid,
            change_index=change.change_index,
            change_value=change.change_value,
            change_address=change.change_address,
        ),
        reveal_transaction=BitcoinTransaction(
            tx_hex=reveal_tx.serialize(),
            txid=reveal_txid,
            did_utxo_index=0,
            did_utxo_value=did_sats,
        ),
    )


__all__ = [
    "build_reveal_script",
    "chunk_payload",
    "compile_push",
    "get_commit_reveal_transactions",
    "parse_reveal_payload_from_witness",
]

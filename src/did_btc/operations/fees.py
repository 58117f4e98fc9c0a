"""Fee and change engine.

Whether a change output is added changes the size of a transaction, and
the size decides the fee. The circle is broken in two passes:

1. :func:`calculate_tx_fee_and_input_value` builds a placeholder
   transaction with every real input (each witness stubbed with a 64-byte
   signature) and every intended output, prices it as if a change output
   were appended, decides whether that change is worth keeping, and prices
   the result.
2. :func:`add_change_if_economically_feasible` is then called on the real
   transaction with that fee. Change is added only when it is above the
   dust limit; a negative balance aborts the build.

Fees are always rounded up to whole satoshis.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from bitcoinutils.script import Script
from bitcoinutils.transactions import Transaction, TxInput, TxOutput, TxWitnessInput

from did_btc.consts import DUST_LIMIT, Network
from did_btc.ecc import Secp256k1
from did_btc.errors import DidValidationError, InsufficientFundsError
from did_btc.models import Utxo
from did_btc.taproot import TaprootKey, output_script_to_address

logger = logging.getLogger(__name__)

#: Every transaction built by this package is version 1.
TX_VERSION: bytes = b"\x01\x00\x00\x00"

#: Final sequence number on every input: no RBF signalling, no relative locktime.
TX_SEQUENCE: bytes = b"\xff\xff\xff\xff"

#: BIP341 ``SIGHASH_DEFAULT``: sign all inputs and outputs, no sighash byte.
SIGHASH_DEFAULT: int = 0x00

#: Bytes a change output adds on top of its script: 8 value bytes + 1 length byte.
CHANGE_OUTPUT_OVERHEAD: int = 9

PLACEHOLDER_SIGNATURE: bytes = bytes(64)


@dataclass(frozen=True)
class FeeEstimate:
    """Result of sizing a transaction before it is built."""

    fee: int
    input_value: int


@dataclass(frozen=True)
class ChangeResult:
    """Outcome of the change decision.

    ``change_index``, ``change_value`` and ``change_address`` are ``None``
    when the surplus was too small and went to the fee instead.
    """

    available_change: int
    change_index: Optional[int] = None
    change_value: Optional[int] = None
    change_address: Optional[str] = None

    @property
    def added(self) -> bool:
        return self.change_index is not None


# ------------------------------------------------------------------
# Transaction helpers
# ------------------------------------------------------------------


def new_transaction(
    inputs: Sequence[TxInput] = (),
    outputs: Sequence[TxOutput] = (),
) -> Transaction:
    """Return an empty-witness segwit transaction with the package defaults."""
    return Transaction(list(inputs), list(outputs), version=TX_VERSION, has_segwit=True)


def utxo_input(utxo: Utxo) -> TxInput:
    return TxInput(utxo.txid.hex(), utxo.index, sequence=TX_SEQUENCE)


def validate_fee_rate(sats_per_vbyte: float) -> None:
    if not sats_per_vbyte >= 1:
        raise DidValidationError("sats_per_vbyte must be greater than or equal to 1")


def validate_did_sats(did_sats: int) -> None:
    if did_sats < DUST_LIMIT:
        raise DidValidationError(
            f"did_sats must be at least the {DUST_LIMIT} sat dust limit"
        )


# ------------------------------------------------------------------
# Fee and change
# ------------------------------------------------------------------


def get_tx_fee_assuming_change_output(
    tx: Transaction, change_output: Script, sats_per_vbyte: float
) -> int:
    """Fee for *tx* if a change output paying to *change_output* were appended."""
    vbytes = tx.get_vsize() + len(change_output.to_bytes()) + CHANGE_OUTPUT_OVERHEAD
    return math.ceil(vbytes * sats_per_vbyte)


def add_change_if_economically_feasible(
    tx: Transaction,
    change_output: Script,
    input_value: int,
    output_value: int,
    fee: int,
    network: Network | str,
) -> ChangeResult:
    """Append a change output to *tx* when the surplus is above dust.

    ``available_change = input_value - output_value - fee``. Change is added
    at the next output index when it exceeds :data:`DUST_LIMIT`; a value
    between zero and the dust limit is left to the miners.

    Raises
    ------
    InsufficientFundsError
        If ``available_change`` is negative.
    """
    available_change = input_value - output_value - fee
    if available_change < 0:
        raise InsufficientFundsError(available_change)
    if available_change <= DUST_LIMIT:
        return ChangeResult(available_change=available_change)

    change_index = len(tx.outputs)
    tx.outputs.append(TxOutput(available_change, change_output))
    return ChangeResult(
        available_change=available_change,
        change_index=change_index,
        change_value=available_change,
        change_address=output_script_to_address(change_output, network),
    )


def calculate_tx_fee_and_input_value(
    utxos: Sequence[Utxo],
    outputs: Sequence[TxOutput],
    change_output: Script,
    sats_per_vbyte: float,
) -> FeeEstimate:
    """Size a transaction spending *utxos* into *outputs* plus optional change.

    Raises
    ------
    InsufficientFundsError
        If the inputs cannot pay for the outputs and the fee of a
        transaction that includes a change output.
    """
    placeholder = new_transaction(
        [utxo_input(utxo) for utxo in utxos],
        [TxOutput(output.amount, output.script_pubkey) for output in outputs],
    )
    placeholder.witnesses = [
        TxWitnessInput([PLACEHOLDER_SIGNATURE.hex()]) for _ in utxos
    ]

    input_value = sum(utxo.value for utxo in utxos)
    output_value = sum(output.amount for output in outputs)

    fee_with_change = get_tx_fee_assuming_change_output(
        placeholder, change_output, sats_per_vbyte
    )
    change = add_change_if_economically_feasible(
        placeholder,
        change_output,
        input_value,
        output_value,
        fee_with_change,
        Network.MAINNET,
    )

    vsize = placeholder.get_vsize()
    fee = math.ceil(vsize * sats_per_vbyte)
    logger.debug(
        "Sized transaction: %d vbytes at %s sat/vB, fee %d, change %s",
        vsize,
        sats_per_vbyte,
        fee,
        "added" if change.added else "dropped",
    )
    return FeeEstimate(fee=fee, input_value=input_value)


# ------------------------------------------------------------------
# Signing
# ------------------------------------------------------------------


def add_and_sign_inputs(
    tx: Transaction,
    utxos: Sequence[Utxo],
    tr_keys: Sequence[TaprootKey],
    ecc: Optional[Secp256k1] = None,
) -> None:
    """Add *utxos* as inputs of *tx* and sign each one on the key path.

    ``utxos[n]`` must be a P2TR output of ``tr_keys[n]``. Signatures commit
    to all inputs and outputs (``SIGHASH_DEFAULT``), so *tx* must already
    hold its final outputs.
    """
    ecc = ecc or Secp256k1()
    prevout_scripts = [key.output_script for key in tr_keys]
    prevout_values = [utxo.value for utxo in utxos]

    tx.inputs.extend(utxo_input(utxo) for utxo in utxos)

    signatures = []
    for index, key in enumerate(tr_keys):
        digest = tx.get_transaction_taproot_digest(
            index,
            prevout_scripts,
            prevout_values,
            ext_flag=0,
            sighash=SIGHASH_DEFAULT,
        )
        signatures.append(ecc.sign_schnorr(digest, key.tweaked_privkey))
    tx.witnesses = [TxWitnessInput([signature.hex()]) for signature in signatures]


def txid_of(tx: Transaction) -> bytes:
    """Return the id of *tx* in display order."""
    return bytes.fromhex(tx.get_txid())


__all__ = [
    "CHANGE_OUTPUT_OVERHEAD",
    "ChangeResult",
    "FeeEstimate",
    "PLACEHOLDER_SIGNATURE",
    "SIGHASH_DEFAULT",
    "TX_SEQUENCE",
    "TX_VERSION",
    "add_and_sign_inputs",
    "add_change_if_economically_feasible",
    "calculate_tx_fee_and_input_value",
    "get_tx_fee_assuming_change_output",
    "new_transaction",
    "txid_of",
    "utxo_input",
    "validate_did_sats",
    "validate_fee_rate",
]

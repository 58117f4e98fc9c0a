"""Resolution of a DID from its chain of transactions.

The first transaction creates the DID:

* If its first output is an ``OP_RETURN``, it is a single creation. The
  payload is ``"did" || flags || multikey`` and the second output is the
  DID output, whose key becomes the controller key.
* Otherwise it is the reveal transaction of a batch creation. The caller
  passes the DID's index in the batch; the key sits at
  ``7 + index * key_length`` in the payload inscribed in the witness, and
  the controller key is the key of the first output.

Every following transaction is folded into the state with
:func:`apply_update_transaction`, which reports one of three outcomes:

``APPLIED``
    the transaction changed the DID (an update or a deactivation);
``SKIPPED``
    the transaction carries no change for this DID, e.g. a batch update
    without an entry for its index, or anything after a deactivation;
``MALFORMED``
    the witness does not hold a DID update at all (no inscription, not
    JSON, wrong shape). The state passes through unchanged.

Format errors in data that *is* recognized as a DID payload (unknown codec,
invalid push opcode) and updates that do not apply to the state (missing
metadata key, bad index) abort the resolution.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from functools import reduce
from typing import Any, Optional, Sequence

from bitcoinutils.transactions import Transaction

from did_btc.consts import (
    DEACTIVATION_OP_RETURN_OUTPUT,
    DID_CREATION_OP_RETURN_PREFIX,
    DIDS_BATCH_CREATION_PAYLOAD_PREFIX,
    VerificationRelationshipFlags,
    is_valid_verification_relationship_flags,
)
from did_btc.encoding import get_codec_by_prefix
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.models import Did, VerificationMethod
from did_btc.operations.algebra import DidUpdate, apply_did_update
from did_btc.operations.commit_reveal import parse_reveal_payload_from_witness

logger = logging.getLogger(__name__)

_OP_RETURN: int = 0x6A


class UpdateOutcome(str, Enum):
    """What a transaction did to the DID being resolved."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class UpdateResult:
    """The DID after one transaction, and why it looks that way."""

    did: Did
    outcome: UpdateOutcome
    reason: Optional[str] = None


@dataclass(frozen=True)
class Resolution:
    """A resolved DID plus the outcome of every update transaction."""

    did: Did
    history: tuple[UpdateResult, ...] = ()


# ------------------------------------------------------------------
# Transaction access
# ------------------------------------------------------------------


def parse_transaction(tx_hex: str) -> Transaction:
    """Decode a serialized transaction.

    Raises
    ------
    DidFormatError
        If *tx_hex* is not a transaction.
    """
    try:
        return Transaction.from_raw(tx_hex)
    except (ValueError, IndexError, TypeError) as exc:
        raise DidFormatError(f"Invalid transaction hex: {exc}") from exc


def _output_script(tx: Transaction, index: int) -> bytes:
    return tx.outputs[index].script_pubkey.to_bytes()


def _first_input_witness(tx: Transaction) -> list[bytes]:
    if not tx.witnesses:
        return []
    return [bytes.fromhex(item) for item in tx.witnesses[0].stack]


def _check_flags(flags: int) -> VerificationRelationshipFlags:
    if not is_valid_verification_relationship_flags(flags):
        raise DidFormatError("Invalid verification relationship flags")
    return VerificationRelationshipFlags(flags)


# ------------------------------------------------------------------
# Creation
# ------------------------------------------------------------------


def _resolve_single_creation(tx: Transaction) -> Did:
    op_return = _output_script(tx, 0)
    if op_return[2:5] != DID_CREATION_OP_RETURN_PREFIX or len(op_return) < 6:
        raise DidFormatError("Invalid DID creation prefix")
    flags = _check_flags(op_return[5])
    multikey = op_return[6:]
    get_codec_by_prefix(multikey[:2])

    # The DID output is ``OP_1 <32-byte key>``; the key controls the DID.
    controller_key = _output_script(tx, 1)[2:] if len(tx.outputs) > 1 else None
    return Did(
        verification_methods=(VerificationMethod(multikey, flags),),
        controller_key=controller_key,
    )


def _resolve_batch_creation(tx: Transaction, did_index: Optional[int]) -> Did:
    if did_index is None:
        raise DidValidationError(
            "did_index is required for resolving a DID that was created in a batch"
        )
    if did_index < 0:
        raise DidValidationError("did_index must be greater than or equal to 0")

    controller_key = _output_script(tx, 0)[2:]
    payload = parse_reveal_payload_from_witness(_first_input_witness(tx))
    if payload[:4] != DIDS_BATCH_CREATION_PAYLOAD_PREFIX:
        raise DidFormatError("Invalid batch creation payload prefix")
    codec = get_codec_by_prefix(payload[4:6])
    if len(payload) < 7:
        raise DidFormatError("Batch creation payload has no flags")
    flags = _check_flags(payload[6])

    position = 7 + did_index * codec.pubkey_length
    pubkey = payload[position : position + codec.pubkey_length]
    if len(pubkey) != codec.pubkey_length:
        raise DidFormatError(f"DID index {did_index} is out of range for this batch")
    return Did(
        verification_methods=(VerificationMethod(codec.prefix + pubkey, flags),),
        controller_key=controller_key,
    )


def resolve_creation_transaction(tx_hex: str, did_index: Optional[int] = None) -> Did:
    """Return the initial state of a DID from its creation transaction."""
    tx = parse_transaction(tx_hex)
    if not tx.outputs:
        raise DidFormatError("Creation transaction has no outputs")
    if _output_script(tx, 0)[:1] == bytes([_OP_RETURN]):
        return _resolve_single_creation(tx)
    return _resolve_batch_creation(tx, did_index)


# ------------------------------------------------------------------
# Updates
# ------------------------------------------------------------------


def _select_update_entry(
    payload: Any, did_index: Optional[int]
) -> tuple[Optional[dict[str, Any]], Optional[UpdateOutcome], Optional[str]]:
    """Pick the entry addressed to this DID out of a decoded payload."""
    if isinstance(payload, dict):
        return payload, None, None
    if not isinstance(payload, list):
        return None, UpdateOutcome.MALFORMED, "payload is neither an object nor an array"
    if did_index is None:
        raise DidValidationError("did_index is required to apply a batch update")
    for entry in payload:
        index = entry.get("i") if isinstance(entry, dict) else None
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            return None, UpdateOutcome.MALFORMED, "batch entry without a valid index"
        if index == did_index:
            return entry, None, None
    return None, UpdateOutcome.SKIPPED, f"no entry for DID index {did_index}"


def apply_update_transaction(
    did: Did, tx_hex: str, did_index: Optional[int] = None
) -> UpdateResult:
    """Fold one update transaction into *did*.

    Parameters
    ----------
    did:
        State before the transaction.
    tx_hex:
        The transaction spending the current DID output.
    did_index:
        Index of the DID in its batch creation, if it was created in one.

    Raises
    ------
    DidFormatError
        If the inscription has an invalid push opcode or an update carries
        a key with an unsupported multibase prefix.
    DidValidationError
        If a batch update is met without *did_index*, or an update does
        not apply to *did*.
    """
    if did.is_deactivated:
        return UpdateResult(did, UpdateOutcome.SKIPPED, "DID is deactivated")

    tx = parse_transaction(tx_hex)
    if tx.outputs and _output_script(tx, 0) == DEACTIVATION_OP_RETURN_OUTPUT:
        return UpdateResult(did.replace(is_deactivated=True), UpdateOutcome.APPLIED)

    witness = _first_input_witness(tx)
    if len(witness) < 2:
        return UpdateResult(did, UpdateOutcome.MALFORMED, "no inscription in witness")
    payload = parse_reveal_payload_from_witness(witness)
    try:
        decoded = json.loads(payload.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return UpdateResult(did, UpdateOutcome.MALFORMED, "payload is not JSON")

    entry, outcome, reason = _select_update_entry(decoded, did_index)
    if entry is None:
        return UpdateResult(did, outcome, reason)

    # An entry with nothing but its index deactivates that DID of the batch.
    if not [key for key in entry if key != "i"]:
        return UpdateResult(did.replace(is_deactivated=True), UpdateOutcome.APPLIED)

    try:
        update = DidUpdate.from_json(entry)
    except DidFormatError as exc:
        return UpdateResult(did, UpdateOutcome.MALFORMED, str(exc))
    return UpdateResult(apply_did_update(did, update), UpdateOutcome.APPLIED)


def apply_update_transaction_to_did(
    did: Did, tx_hex: str, did_index: Optional[int] = None
) -> Did:
    """Return the state of *did* after one more update transaction.

    Lets a caller holding a resolved state catch up with a new transaction
    instead of replaying the whole chain.
    """
    return apply_update_transaction(did, tx_hex, did_index).did


# ------------------------------------------------------------------
# Resolution
# ------------------------------------------------------------------


def replay_did_btc(
    transactions: Sequence[str], did_index: Optional[int] = None
) -> Resolution:
    """Resolve a DID and keep the outcome of every update transaction.

    Parameters
    ----------
    transactions:
        Serialized transactions in chain order: the creation transaction,
        then each transaction spending the previous DID output. Linkage
        between them is not checked.
    did_index:
        Index of the DID in its batch creation, if it was created in one.
    """
    if not transactions:
        raise DidValidationError("At least one transaction is required")

    initial = Resolution(did=resolve_creation_transaction(transactions[0], did_index))

    def step(resolution: Resolution, tx_hex: str) -> Resolution:
        result = apply_update_transaction(resolution.did, tx_hex, did_index)
        if result.outcome is UpdateOutcome.APPLIED:
            logger.debug("Applied update transaction")
        else:
            logger.warning("Update transaction %s: %s", result.outcome.value, result.reason)
        return Resolution(did=result.did, history=resolution.history + (result,))

    return reduce(step, transactions[1:], initial)


def resolve_did_btc(transactions: Sequence[str], did_index: Optional[int] = None) -> Did:
    """Resolve the current state of a DID from its chain of transactions."""
    return replay_did_btc(transactions, did_index).did


__all__ = [
    "Resolution",
    "UpdateOutcome",
    "UpdateResult",
    "apply_update_transaction",
    "apply_update_transaction_to_did",
    "parse_transaction",
    "replay_did_btc",
    "resolve_creation_transaction",
    "resolve_did_btc",
]

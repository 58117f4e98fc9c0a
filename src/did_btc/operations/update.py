"""Builders for DID update transactions.

Updates are inscribed with a commit/reveal pair whose first input is the
current DID output, so the reveal transaction is signed by the DID key and
its only output becomes the next DID output.

Payloads are compact UTF-8 JSON:

* a single update is a :class:`~did_btc.operations.algebra.DidUpdate`
  object, e.g. ``{"vm":[{"i":0,"k":"z6Mk..."}]}``;
* a batch update is an array of ``{...update, "i": n}`` entries followed by
  ``{"i": n}`` entries for the DIDs being deactivated.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Sequence

from bitcoinutils.script import Script

from did_btc.consts import DUST_LIMIT, Network
from did_btc.ecc import Secp256k1
from did_btc.errors import DidValidationError
from did_btc.models import CommitRevealTransactions, Did, Utxo, WalletUtxo
from did_btc.operations.algebra import BatchDidUpdate, DidUpdate
from did_btc.operations.commit_reveal import get_commit_reveal_transactions
from did_btc.operations.fees import validate_did_sats, validate_fee_rate
from did_btc.taproot import get_change_output

logger = logging.getLogger(__name__)


def encode_json_payload(obj: Any) -> bytes:
    """Serialize *obj* the way update payloads are written on-chain."""
    return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def get_update_content(update: DidUpdate, did: Did) -> bytes:
    """Validate *update* against *did* and return its payload."""
    update.validate(did)
    return encode_json_payload(update.to_json())


def get_batch_update_content(
    updates: Sequence[BatchDidUpdate] = (),
    deactivation_indexes: Sequence[int] = (),
) -> bytes:
    """Validate a batch of updates and deactivations and return its payload.

    Raises
    ------
    DidValidationError
        If the batch is empty, an index is negative, or an update does not
        apply to its DID.
    """
    if not updates and not deactivation_indexes:
        raise DidValidationError("No updates or deactivations provided")

    entries: list[dict[str, Any]] = []
    for batch_update in updates:
        batch_update.validate()
        entries.append(batch_update.to_json())
    for index in deactivation_indexes:
        if isinstance(index, bool) or not isinstance(index, int) or index < 0:
            raise DidValidationError("i must be greater than or equal to 0")
        entries.append({"i": index})
    return encode_json_payload(entries)


def build_did_update_transactions(
    did: Did,
    update: DidUpdate,
    did_utxo: Utxo,
    did_privkey: bytes,
    sats_per_vbyte: float,
    network: Network | str = Network.MAINNET,
    wallet_utxos: Sequence[WalletUtxo] = (),
    change_address: Optional[str] = None,
    did_output: Optional[Script | bytes] = None,
    did_sats: int = DUST_LIMIT,
    ecc: Optional[Secp256k1] = None,
) -> CommitRevealTransactions:
    """Build the commit/reveal pair applying *update* to *did*.

    Parameters
    ----------
    did:
        Current state of the DID, used to validate *update*.
    update:
        The update to inscribe.
    did_utxo:
        The output currently controlling the DID. Spent first.
    did_privkey:
        Private key of the DID output's internal key.
    wallet_utxos:
        Extra funding inputs, spent after the DID output.

    Raises
    ------
    DidValidationError
        If the DID is deactivated or *update* does not apply to it.
    InsufficientFundsError
        If the inputs cannot pay for both transactions.
    """
    validate_did_sats(did_sats)
    validate_fee_rate(sats_per_vbyte)
    content = get_update_content(update, did)
    change_output = get_change_output(change_address, did_privkey, network, ecc)
    return get_commit_reveal_transactions(
        reveal_content=content,
        wallet_utxos=[WalletUtxo(utxo=did_utxo, privkey=did_privkey), *wallet_utxos],
        change_output=change_output,
        did_sats=did_sats,
        sats_per_vbyte=sats_per_vbyte,
        network=network,
        did_output=did_output,
        ecc=ecc,
    )


def build_batch_did_update_transactions(
    did_utxo: Utxo,
    did_privkey: bytes,
    sats_per_vbyte: float,
    network: Network | str = Network.MAINNET,
    updates: Sequence[BatchDidUpdate] = (),
    deactivation_indexes: Sequence[int] = (),
    wallet_utxos: Sequence[WalletUtxo] = (),
    change_address: Optional[str] = None,
    did_output: Optional[Script | bytes] = None,
    did_sats: int = DUST_LIMIT,
    ecc: Optional[Secp256k1] = None,
) -> CommitRevealTransactions:
    """Build the commit/reveal pair updating or deactivating DIDs of a batch.

    Every DID of a batch is controlled by the same output, so one pair can
    carry any mix of updates and deactivations for its members.

    Raises
    ------
    DidValidationError
        If the batch is empty or any entry is invalid.
    InsufficientFundsError
        If the inputs cannot pay for both transactions.
    """
    validate_did_sats(did_sats)
    validate_fee_rate(sats_per_vbyte)
    content = get_batch_update_content(updates, deactivation_indexes)
    change_output = get_change_output(change_address, did_privkey, network, ecc)
    logger.debug(
        "Batch update of %d DIDs, %d deactivations",
        len(updates),
        len(deactivation_indexes),
    )
    return get_commit_reveal_transactions(
        reveal_content=content,
        wallet_utxos=[WalletUtxo(utxo=did_utxo, privkey=did_privkey), *wallet_utxos],
        change_output=change_output,
        did_sats=did_sats,
        sats_per_vbyte=sats_per_vbyte,
        network=network,
        did_output=did_output,
        ecc=ecc,
    )


__all__ = [
    "build_batch_did_update_transactions",
    "build_did_update_transactions",
    "encode_json_payload",
    "get_batch_update_content",
    "get_update_content",
]

"""Builder for the transaction deactivating a single DID.

Deactivation spends the DID output into ``OP_RETURN 'd'`` and creates no
new DID output, so nothing can update the DID afterwards.
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from bitcoinutils.transactions import TxOutput

from did_btc.consts import DEACTIVATION_OP_RETURN_OUTPUT, Network
from did_btc.ecc import Secp256k1
from did_btc.models import BitcoinTransaction, Utxo, WalletUtxo
from did_btc.operations.fees import (
    add_and_sign_inputs,
    add_change_if_economically_feasible,
    calculate_tx_fee_and_input_value,
    new_transaction,
    txid_of,
    validate_fee_rate,
)
from did_btc.taproot import TaprootKey, as_script, get_change_output

logger = logging.getLogger(__name__)


def build_did_deactivation_transaction(
    did_utxo: Utxo,
    did_privkey: bytes,
    sats_per_vbyte: float,
    network: Network | str = Network.MAINNET,
    wallet_utxos: Sequence[WalletUtxo] = (),
    change_address: Optional[str] = None,
    ecc: Optional[Secp256k1] = None,
) -> BitcoinTransaction:
    """Build a signed transaction deactivating the DID controlled by *did_utxo*.

    The DID output is spent first, followed by any *wallet_utxos*. What is
    left after the fee goes to change when it is above dust.

    Raises
    ------
    DidValidationError
        If the fee rate is below 1 or the change address is invalid.
    InsufficientFundsError
        If the inputs cannot pay the fee.
    """
    validate_fee_rate(sats_per_vbyte)
    ecc = ecc or Secp256k1()
    wallet_utxos = [WalletUtxo(utxo=did_utxo, privkey=did_privkey), *wallet_utxos]
    utxos = [wallet_utxo.utxo for wallet_utxo in wallet_utxos]
    tr_keys = [TaprootKey.from_privkey(wallet_utxo.privkey, ecc) for wallet_utxo in wallet_utxos]

    deactivation_output = as_script(DEACTIVATION_OP_RETURN_OUTPUT)
    change_output = get_change_output(change_address, did_privkey, network, ecc)
    estimate = calculate_tx_fee_and_input_value(
        utxos, [TxOutput(0, deactivation_output)], change_output, sats_per_vbyte
    )

    tx = new_transaction([], [TxOutput(0, deactivation_output)])
    change = add_change_if_economically_feasible(
        tx, change_output, estimate.input_value, 0, estimate.fee, network
    )
    add_and_sign_inputs(tx, utxos, tr_keys, ecc)
    txid = txid_of(tx)

    logger.info("Built DID deactivation transaction %s", txid.hex())
    return BitcoinTransaction(
        tx_hex=tx.serialize(),
        txid=txid,
        change_index=change.change_index,
        change_value=change.change_value,
        change_address=change.change_address,
    )


__all__ = ["build_did_deactivation_transaction"]

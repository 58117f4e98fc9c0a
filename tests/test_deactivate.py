"""Tests for did_btc.operations.deactivate."""
from __future__ import annotations

import pytest

from did_btc.errors import DidValidationError, InsufficientFundsError
from did_btc.models import Utxo, WalletUtxo
from did_btc.operations.deactivate import build_did_deactivation_transaction
from did_btc.operations.resolve import parse_transaction, resolve_did_btc

from conftest import CREATION_TX_HEX, FEE_RATE, FUNDING_UTXO, NETWORK, PRIVKEY


class TestDeactivation:
    def test_resolves_as_deactivated(self) -> None:
        transaction = build_did_deactivation_transaction(
            did_utxo=FUNDING_UTXO,
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
        )
        did = resolve_did_btc([CREATION_TX_HEX, transaction.tx_hex])
        assert did.is_deactivated

    def test_outputs(self) -> None:
        transaction = build_did_deactivation_transaction(
            did_utxo=FUNDING_UTXO,
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
        )
        tx = parse_transaction(transaction.tx_hex)
        assert tx.outputs[0].script_pubkey.to_bytes() == bytes.fromhex("6a0164")
        assert tx.outputs[0].amount == 0
        assert transaction.has_change
        assert transaction.change_index == 1
        assert transaction.did_utxo() is None

    def test_dust_output_leaves_no_change(self) -> None:
        transaction = build_did_deactivation_transaction(
            did_utxo=Utxo(FUNDING_UTXO.txid, FUNDING_UTXO.index, 330),
            did_privkey=PRIVKEY,
            sats_per_vbyte=1,
            network=NETWORK,
        )
        assert not transaction.has_change
        assert len(parse_transaction(transaction.tx_hex).outputs) == 1

    def test_extra_wallet_utxos_fund_the_fee(self) -> None:
        did_utxo = Utxo(FUNDING_UTXO.txid, 0, 330)
        transaction = build_did_deactivation_transaction(
            did_utxo=did_utxo,
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
            wallet_utxos=[WalletUtxo(utxo=FUNDING_UTXO, privkey=PRIVKEY)],
        )
        tx = parse_transaction(transaction.tx_hex)
        assert len(tx.inputs) == 2
        assert tx.inputs[0].txout_index == 0
        assert transaction.change_value is not None
        assert transaction.change_value < FUNDING_UTXO.value + 330

    def test_fee_exceeding_did_output(self) -> None:
        with pytest.raises(InsufficientFundsError):
            build_did_deactivation_transaction(
                did_utxo=Utxo(FUNDING_UTXO.txid, 1, 330),
                did_privkey=PRIVKEY,
                sats_per_vbyte=FEE_RATE,
                network=NETWORK,
            )

    def test_fee_rate_below_one(self) -> None:
        with pytest.raises(DidValidationError, match="sats_per_vbyte"):
            build_did_deactivation_transaction(
                did_utxo=FUNDING_UTXO,
                did_privkey=PRIVKEY,
                sats_per_vbyte=0,
                network=NETWORK,
            )

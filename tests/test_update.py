"""Tests for the update builders in did_btc.operations.update."""
from __future__ import annotations

import json

import pytest

from did_btc.encoding import encode_multikey, prepend_codec_to_key
from did_btc.errors import DidValidationError
from did_btc.models import BitcoinTransaction, Did, Utxo, WalletUtxo
from did_btc.operations.algebra import (
    BatchDidUpdate,
    DidUpdate,
    VerificationMethodAppend,
    VerificationMethodUpdate,
)
from did_btc.operations.create import build_did_creation_transaction
from did_btc.operations.update import (
    build_batch_did_update_transactions,
    build_did_update_transactions,
    encode_json_payload,
    get_batch_update_content,
    get_update_content,
)
from did_btc.operations.resolve import resolve_did_btc

from conftest import (
    BATCH_CREATION_TX_HEX,
    FEE_RATE,
    FIRST_BATCH_UPDATE_TXID,
    NETWORK,
    PRIVKEY,
    PUBKEYS,
    SECOND_BATCH_UPDATE_TXID,
    UPDATED_PUBKEYS,
)


def _update_dids_in_batch(
    did_indexes: list[int],
    did_utxo: Utxo,
    wallet_utxo: WalletUtxo,
    history: list[str],
) -> tuple[str, str, Utxo, WalletUtxo]:
    """Replace the first key of each DID in *did_indexes* with its updated key.

    Returns the reveal hex and txid plus the DID output and wallet change
    the next update spends.
    """
    updates = [
        BatchDidUpdate(
            i=index,
            did=resolve_did_btc(history, did_index=index),
            update=DidUpdate(
                vm=[
                    VerificationMethodUpdate(
                        i=0, k=encode_multikey(UPDATED_PUBKEYS[index], "ed25519-pub")
                    )
                ]
            ),
        )
        for index in did_indexes
    ]
    transactions = build_batch_did_update_transactions(
        did_utxo=did_utxo,
        did_privkey=PRIVKEY,
        sats_per_vbyte=FEE_RATE,
        network=NETWORK,
        updates=updates,
        wallet_utxos=[wallet_utxo],
    )
    commit, reveal = transactions.commit_transaction, transactions.reveal_transaction
    assert commit.has_change
    assert reveal.did_utxo_value == 330

    for index in did_indexes:
        updated = resolve_did_btc([*history, reveal.tx_hex], did_index=index)
        assert updated.verification_methods[0].multikey[2:] == UPDATED_PUBKEYS[index]

    next_wallet_utxo = WalletUtxo(utxo=commit.change_utxo(), privkey=PRIVKEY)
    return reveal.tx_hex, reveal.txid.hex(), reveal.did_utxo(), next_wallet_utxo


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------


class TestPayloads:
    def test_json_payload_is_compact(self) -> None:
        assert encode_json_payload({"vm": [{"i": 0}]}) == b'{"vm":[{"i":0}]}'

    def test_non_ascii_is_kept_as_utf8(self) -> None:
        assert encode_json_payload({"a": {"name": "é"}}) == '{"a":{"name":"é"}}'.encode("utf-8")

    def test_update_content_is_validated(self) -> None:
        did = resolve_did_btc([BATCH_CREATION_TX_HEX], did_index=0)
        with pytest.raises(DidValidationError, match="Invalid verification method index 1"):
            get_update_content(DidUpdate(vm=[VerificationMethodUpdate(i=1, vr=3)]), did)

    def test_batch_content_lists_updates_then_deactivations(self) -> None:
        did = resolve_did_btc([BATCH_CREATION_TX_HEX], did_index=0)
        update = BatchDidUpdate(i=0, did=did, update=DidUpdate(vm=[VerificationMethodUpdate(i=0, vr=1)]))
        content = json.loads(get_batch_update_content([update], [2]))
        assert content == [{"vm": [{"i": 0, "vr": 1}], "i": 0}, {"i": 2}]

    def test_empty_batch(self) -> None:
        with pytest.raises(DidValidationError, match="No updates or deactivations provided"):
            get_batch_update_content()

    def test_negative_deactivation_index(self) -> None:
        with pytest.raises(DidValidationError, match="i must be greater than or equal to 0"):
            get_batch_update_content(deactivation_indexes=[-1])

    def test_negative_update_index(self) -> None:
        did = resolve_did_btc([BATCH_CREATION_TX_HEX], did_index=0)
        update = BatchDidUpdate(i=-1, did=did, update=DidUpdate(a={"service": []}))
        with pytest.raises(DidValidationError, match="i must be greater than or equal to 0"):
            get_batch_update_content([update])


# ---------------------------------------------------------------------------
# Batch updates
# ---------------------------------------------------------------------------


class TestBatchUpdate:
    def test_updates_published_on_testnet(
        self, batch_did_utxo: Utxo, batch_wallet_utxo: WalletUtxo
    ) -> None:
        first_hex, first_txid, did_utxo, wallet_utxo = _update_dids_in_batch(
            [0], batch_did_utxo, batch_wallet_utxo, [BATCH_CREATION_TX_HEX]
        )
        assert first_txid == FIRST_BATCH_UPDATE_TXID

        _, second_txid, _, _ = _update_dids_in_batch(
            [1, 2], did_utxo, wallet_utxo, [BATCH_CREATION_TX_HEX, first_hex]
        )
        assert second_txid == SECOND_BATCH_UPDATE_TXID

    def test_other_dids_are_untouched(
        self, batch_did_utxo: Utxo, batch_wallet_utxo: WalletUtxo
    ) -> None:
        first_hex, _, _, _ = _update_dids_in_batch(
            [0], batch_did_utxo, batch_wallet_utxo, [BATCH_CREATION_TX_HEX]
        )
        did = resolve_did_btc([BATCH_CREATION_TX_HEX, first_hex], did_index=1)
        assert did.verification_methods[0].multikey[2:] == PUBKEYS[1]
        assert not did.is_deactivated

    def test_deactivates_one_did(
        self, batch_did_utxo: Utxo, batch_wallet_utxo: WalletUtxo
    ) -> None:
        transactions = build_batch_did_update_transactions(
            did_utxo=batch_did_utxo,
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
            deactivation_indexes=[1],
            wallet_utxos=[batch_wallet_utxo],
        )
        history = [BATCH_CREATION_TX_HEX, transactions.reveal_transaction.tx_hex]
        assert resolve_did_btc(history, did_index=1).is_deactivated
        assert not resolve_did_btc(history, did_index=0).is_deactivated

    def test_rejects_invalid_update(
        self, batch_did_utxo: Utxo, batch_wallet_utxo: WalletUtxo
    ) -> None:
        did = resolve_did_btc([BATCH_CREATION_TX_HEX], did_index=0)
        update = BatchDidUpdate(i=0, did=did, update=DidUpdate(d={"service": None}))
        with pytest.raises(DidValidationError, match="does not exist"):
            build_batch_did_update_transactions(
                did_utxo=batch_did_utxo,
                did_privkey=PRIVKEY,
                sats_per_vbyte=FEE_RATE,
                network=NETWORK,
                updates=[update],
                wallet_utxos=[batch_wallet_utxo],
            )


# ---------------------------------------------------------------------------
# Single updates
# ---------------------------------------------------------------------------


class TestSingleUpdate:
    @pytest.fixture()
    def creation(self, wallet_utxo: WalletUtxo) -> BitcoinTransaction:
        return build_did_creation_transaction(
            multikey=prepend_codec_to_key(PUBKEYS[0], "ed25519-pub"),
            wallet_utxos=[wallet_utxo],
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
        )

    def test_appends_key_and_adds_service(self, creation: BitcoinTransaction) -> None:
        did = resolve_did_btc([creation.tx_hex])
        service = [{"id": "#linked-domain", "serviceEndpoint": "https://example.com"}]
        update = DidUpdate(
            vm=[VerificationMethodAppend(k=encode_multikey(UPDATED_PUBKEYS[0], "ed25519-pub"), vr=1)],
            a={"service": service},
        )
        transactions = build_did_update_transactions(
            did=did,
            update=update,
            did_utxo=creation.did_utxo(),
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
            wallet_utxos=[WalletUtxo(utxo=creation.change_utxo(), privkey=PRIVKEY)],
        )

        updated = resolve_did_btc([creation.tx_hex, transactions.reveal_transaction.tx_hex])
        assert len(updated.verification_methods) == 2
        assert updated.verification_methods[1].multikey[2:] == UPDATED_PUBKEYS[0]
        assert int(updated.verification_methods[1].verification_relationship_flags) == 1
        assert updated.metadata == {"service": service}
        assert transactions.reveal_transaction.did_utxo_index == 0

    def test_did_output_alone_pays_when_large_enough(self, creation: BitcoinTransaction) -> None:
        did = resolve_did_btc([creation.tx_hex])
        rich_did_utxo = creation.change_utxo()
        transactions = build_did_update_transactions(
            did=did,
            update=DidUpdate(vm=[VerificationMethodUpdate(i=0, vr=31)]),
            did_utxo=rich_did_utxo,
            did_privkey=PRIVKEY,
            sats_per_vbyte=FEE_RATE,
            network=NETWORK,
        )
        updated = resolve_did_btc([creation.tx_hex, transactions.reveal_transaction.tx_hex])
        assert int(updated.verification_methods[0].verification_relationship_flags) == 31

    def test_deactivated_did_cannot_be_updated(self, creation: BitcoinTransaction) -> None:
        did = resolve_did_btc([creation.tx_hex]).replace(is_deactivated=True)
        with pytest.raises(DidValidationError, match="Cannot update a deactivated DID"):
            build_did_update_transactions(
                did=did,
                update=DidUpdate(vm=[VerificationMethodUpdate(i=0, vr=1)]),
                did_utxo=creation.did_utxo(),
                did_privkey=PRIVKEY,
                sats_per_vbyte=FEE_RATE,
                network=NETWORK,
            )

    def test_existing_metadata_key_cannot_be_added(self, creation: BitcoinTransaction) -> None:
        did = Did(
            verification_methods=resolve_did_btc([creation.tx_hex]).verification_methods,
            metadata={"service": []},
        )
        with pytest.raises(DidValidationError, match="already exists"):
            build_did_update_transactions(
                did=did,
                update=DidUpdate(a={"service": []}),
                did_utxo=creation.did_utxo(),
                did_privkey=PRIVKEY,
                sats_per_vbyte=FEE_RATE,
                network=NETWORK,
            )

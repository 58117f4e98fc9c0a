#!/usr/bin/env python3
"""Example: DID lifecycle

Builds the transactions that create, update and deactivate a DID, then
replays them to show how the DID evolves. Nothing is broadcast: the funding
output below is made up, so the transactions are valid in shape only.

Usage:
    python examples/02_lifecycle.py

Requirements:
    pip install did-btc
"""
from __future__ import annotations

from did_btc import (
    DidTransactionBuilder,
    DidUpdate,
    KeyManager,
    Network,
    Utxo,
    VerificationMethodAppend,
    WalletUtxo,
    replay_did_btc,
)


def main() -> None:
    network = Network.TESTNET
    manager = KeyManager()
    builder = DidTransactionBuilder()

    wallet_key = manager.generate_wallet_key()
    print(f"Funding address: {manager.taproot_address(wallet_key, network)}")
    funding = WalletUtxo(utxo=Utxo(txid=bytes(32), index=0, value=100_000), privkey=wallet_key)

    # Step 1: Create the DID with a fresh ed25519 key
    _, public_key = manager.generate_keypair("ed25519-pub")
    creation = builder.create(
        multikey=manager.multikey_bytes(public_key),
        wallet_utxos=[funding],
        sats_per_vbyte=2,
        network=network,
    )
    print(f"Creation txid: {creation.txid.hex()}")

    # Step 2: Add a second key and a service endpoint
    did = replay_did_btc([creation.tx_hex]).did
    _, second_key = manager.generate_multikey("ed25519-pub")
    update = DidUpdate(
        vm=[VerificationMethodAppend(k=second_key, vr=1)],
        a={"service": [{"id": "#hub", "type": "LinkedDomains", "serviceEndpoint": "https://example.com"}]},
    )
    pair = builder.update(
        did=did,
        update=update,
        did_utxo=creation.did_utxo(),
        did_privkey=wallet_key,
        sats_per_vbyte=2,
        network=network,
        wallet_utxos=[WalletUtxo(utxo=creation.change_utxo(), privkey=wallet_key)],
    )
    reveal = pair.reveal_transaction
    print(f"Update reveal txid: {reveal.txid.hex()}")

    # Step 3: Deactivate it
    deactivation = builder.deactivate(
        did_utxo=reveal.did_utxo(),
        did_privkey=wallet_key,
        sats_per_vbyte=2,
        network=network,
        wallet_utxos=[WalletUtxo(utxo=pair.commit_transaction.change_utxo(), privkey=wallet_key)],
    )
    print(f"Deactivation txid: {deactivation.txid.hex()}")

    # Step 4: Replay the chain
    resolution = replay_did_btc([creation.tx_hex, reveal.tx_hex, deactivation.tx_hex])
    for position, entry in enumerate(resolution.history, start=1):
        print(f"  update {position}: {entry.outcome.value}")
    print(f"Keys: {len(resolution.did.verification_methods)}")
    print(f"Deactivated: {resolution.did.is_deactivated}")


if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""Example: Quickstart

Resolves a DID created on testnet from its creation transaction and prints
its identifier and DID document.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install did-btc
"""
from __future__ import annotations

import did_btc
from did_btc import (
    DidBtcIdentifier,
    Network,
    build_did_document,
    encode_did_btc,
    resolve_did_btc,
)

# Confirmed in testnet block 2819040 at position 1738.
CREATION_TX_HEX = (
    "01000000000101be5de8762d587844f31b9719bd610032456940e0f767043ad6cc0aac422f45480100000000ffffffff030000000000000000286a2664696403ed01988403912c92a9e10a384620a5eb6579da156b6d48fbe08dc5815d4abef388234a010000000000002251205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e1afb3e00000000002251205daf8e901f08dcf171e6bfea8a75cf9d312a489651203720de899bf3728f1b9e014003a115576176bc0cafcc2dbc9cccfad94737476fc3a8e15bc217756694eaa8e715cac8e9d60051c613cdc64236f23d5b639df1c67b8cb24a6f0fe221161f393600000000"
)


def main() -> None:
    print(f"did-btc version: {did_btc.__version__}")

    # Step 1: Name the DID after the position of its creation transaction
    did_id = encode_did_btc(
        DidBtcIdentifier(block_height=2819040, tx_index=1738, network=Network.TESTNET)
    )
    print(f"DID: {did_id}")

    # Step 2: Resolve its state
    did = resolve_did_btc([CREATION_TX_HEX])
    method = did.verification_methods[0]
    print(f"Key: {method.public_key_multibase} (flags {int(method.verification_relationship_flags)})")

    # Step 3: Build the DID document
    print(build_did_document(did, did_id).to_json(indent=2))

    print("\nQuickstart complete.")


if __name__ == "__main__":
    main()

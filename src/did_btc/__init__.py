"""did-btc: the did:btc DID method, anchored in Bitcoin transactions.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import did_btc
>>> did_btc.__version__
'0.1.0'

Quick start
-----------
::

    from did_btc import (
        DidTransactionBuilder, Network, Utxo, WalletUtxo,
        prepend_codec_to_key, resolve_did_btc, build_did_document,
    )

    builder = DidTransactionBuilder()
    tx = builder.create(
        multikey=prepend_codec_to_key(pubkey, "ed25519-pub"),
        wallet_utxos=[WalletUtxo(utxo=Utxo.from_hex(txid, 1, 4131295), privkey=key)],
        sats_per_vbyte=17,
        network=Network.TESTNET,
    )
    did = resolve_did_btc([tx.tx_hex])
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ------------------------------------------------------------------
# Constants and errors
# ------------------------------------------------------------------
from did_btc.consts import (
    DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS,
    DUST_LIMIT,
    STACK_ELEMENT_SIZE_LIMIT,
    Network,
    VerificationRelationshipFlags,
)
from did_btc.errors import (
    DidBtcError,
    DidFormatError,
    DidValidationError,
    InsufficientFundsError,
)

# ------------------------------------------------------------------
# Keys and encodings
# ------------------------------------------------------------------
from did_btc.ecc import Secp256k1
from did_btc.encoding import (
    decode_multibase,
    decode_multikey,
    encode_multibase,
    encode_multikey,
    prepend_codec_to_key,
)
from did_btc.key_manager import KeyManager
from did_btc.taproot import TaprootKey

# ------------------------------------------------------------------
# Models
# ------------------------------------------------------------------
from did_btc.models import (
    BitcoinTransaction,
    CommitRevealTransactions,
    Did,
    Utxo,
    VerificationMethod,
    WalletUtxo,
)

# ------------------------------------------------------------------
# Operations
# ------------------------------------------------------------------
from did_btc.operations import (
    BatchDidUpdate,
    DidTransactionBuilder,
    DidUpdate,
    Resolution,
    UpdateOutcome,
    VerificationMethodAppend,
    VerificationMethodDeletion,
    VerificationMethodUpdate,
    apply_did_update,
    apply_update_transaction_to_did,
    build_batch_did_creation_transactions,
    build_batch_did_update_transactions,
    build_did_creation_transaction,
    build_did_deactivation_transaction,
    build_did_update_transactions,
    replay_did_btc,
    resolve_did_btc,
)

# ------------------------------------------------------------------
# Identifiers and documents
# ------------------------------------------------------------------
from did_btc.document import DidDocument, build_did_document
from did_btc.identifier import (
    DidBtcIdentifier,
    decode_did_btc,
    encode_did_btc,
    get_did_prefix,
)

__all__ = [
    "__version__",
    # Constants and errors
    "DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS",
    "DUST_LIMIT",
    "STACK_ELEMENT_SIZE_LIMIT",
    "Network",
    "VerificationRelationshipFlags",
    "DidBtcError",
    "DidFormatError",
    "DidValidationError",
    "InsufficientFundsError",
    # Keys and encodings
    "KeyManager",
    "Secp256k1",
    "TaprootKey",
    "decode_multibase",
    "decode_multikey",
    "encode_multibase",
    "encode_multikey",
    "prepend_codec_to_key",
    # Models
    "BitcoinTransaction",
    "CommitRevealTransactions",
    "Did",
    "Utxo",
    "VerificationMethod",
    "WalletUtxo",
    # Operations
    "BatchDidUpdate",
    "DidTransactionBuilder",
    "DidUpdate",
    "Resolution",
    "UpdateOutcome",
    "VerificationMethodAppend",
    "VerificationMethodDeletion",
    "VerificationMethodUpdate",
    "apply_did_update",
    "apply_update_transaction_to_did",
    "build_batch_did_creation_transactions",
    "build_batch_did_update_transactions",
    "build_did_creation_transaction",
    "build_did_deactivation_transaction",
    "build_did_update_transactions",
    "replay_did_btc",
    "resolve_did_btc",
    # Identifiers and documents
    "DidBtcIdentifier",
    "DidDocument",
    "build_did_document",
    "decode_did_btc",
    "encode_did_btc",
    "get_did_prefix",
]

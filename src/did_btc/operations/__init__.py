"""DID operations: transaction builders, the update algebra, and the resolver."""
from __future__ import annotations

from did_btc.operations.algebra import (
    BatchDidUpdate,
    DidUpdate,
    VerificationMethodAppend,
    VerificationMethodDeletion,
    VerificationMethodOperation,
    VerificationMethodUpdate,
    apply_did_update,
    classify_verification_method_operation,
)
from did_btc.operations.builder import DidTransactionBuilder
from did_btc.operations.commit_reveal import (
    get_commit_reveal_transactions,
    parse_reveal_payload_from_witness,
)
from did_btc.operations.create import (
    build_batch_did_creation_transactions,
    build_did_creation_transaction,
)
from did_btc.operations.deactivate import build_did_deactivation_transaction
from did_btc.operations.resolve import (
    Resolution,
    UpdateOutcome,
    UpdateResult,
    apply_update_transaction,
    apply_update_transaction_to_did,
    replay_did_btc,
    resolve_did_btc,
)
from did_btc.operations.update import (
    build_batch_did_update_transactions,
    build_did_update_transactions,
)

__all__ = [
    "BatchDidUpdate",
    "DidTransactionBuilder",
    "DidUpdate",
    "Resolution",
    "UpdateOutcome",
    "UpdateResult",
    "VerificationMethodAppend",
    "VerificationMethodDeletion",
    "VerificationMethodOperation",
    "VerificationMethodUpdate",
    "apply_did_update",
    "apply_update_transaction",
    "apply_update_transaction_to_did",
    "build_batch_did_creation_transactions",
    "build_batch_did_update_transactions",
    "build_did_creation_transaction",
    "build_did_deactivation_transaction",
    "build_did_update_transactions",
    "classify_verification_method_operation",
    "get_commit_reveal_transactions",
    "parse_reveal_payload_from_witness",
    "replay_did_btc",
    "resolve_did_btc",
]

"""Value objects shared by the builders and the resolver.

Everything here is immutable. A resolved :class:`Did` is a snapshot: every
update produces a new instance through :meth:`Did.replace`, so a state that
was handed to a caller never changes underneath them.

Transaction ids are stored as bytes in display order, the same order block
explorers and ``getrawtransaction`` use.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from did_btc.consts import VerificationRelationshipFlags
from did_btc.encoding import encode_multibase

# ------------------------------------------------------------------
# UTXOs
# ------------------------------------------------------------------


@dataclass(frozen=True)
class Utxo:
    """A reference to an unspent transaction output.

    Parameters
    ----------
    txid:
        Id of the transaction that created the output (display order).
    index:
        Output index within that transaction.
    value:
        Value of the output in satoshis.
    """

    txid: bytes
    index: int
    value: int

    def __post_init__(self) -> None:
        if len(self.txid) != 32:
            raise ValueError(f"Utxo.txid must be 32 bytes, got {len(self.txid)}.")
        if self.index < 0:
            raise ValueError("Utxo.index must not be negative.")
        if self.value < 0:
            raise ValueError("Utxo.value must not be negative.")

    @classmethod
    def from_hex(cls, txid: str, index: int, value: int) -> "Utxo":
        """Build a :class:`Utxo` from a hex txid."""
        return cls(txid=bytes.fromhex(txid), index=index, value=value)

    def to_dict(self) -> dict[str, object]:
        return {"txid": self.txid.hex(), "index": self.index, "value": self.value}


@dataclass(frozen=True)
class WalletUtxo:
    """A P2TR output together with the private key that can spend it.

    Parameters
    ----------
    utxo:
        The output to spend. Its internal key must be the x-only public
        key of ``privkey``.
    privkey:
        32-byte private key for the output's internal key.
    """

    utxo: Utxo
    privkey: bytes = field(repr=False)


# ------------------------------------------------------------------
# DID state
# ------------------------------------------------------------------


@dataclass(frozen=True)
class VerificationMethod:
    """A multikey plus its verification relationship flags."""

    multikey: bytes
    verification_relationship_flags: VerificationRelationshipFlags

    @property
    def public_key_multibase(self) -> str:
        return encode_multibase(self.multikey)

    def replace(self, **changes: Any) -> "VerificationMethod":
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, object]:
        return {
            "multikey": self.multikey.hex(),
            "publicKeyMultibase": self.public_key_multibase,
            "verificationRelationshipFlags": int(self.verification_relationship_flags),
        }


@dataclass(frozen=True)
class Did:
    """The resolved state of one ``did:btc`` identity.

    Parameters
    ----------
    verification_methods:
        Ordered verification methods. The position of each entry is the
        index later updates address it by.
    controller_key:
        x-only key of the P2TR output that controls the DID, if known.
    metadata:
        Additional document properties such as ``service``.
    is_deactivated:
        ``True`` once a deactivation has been resolved. Terminal.
    """

    verification_methods: tuple[VerificationMethod, ...] = ()
    controller_key: Optional[bytes] = None
    metadata: Optional[Mapping[str, Any]] = None
    is_deactivated: bool = False

    def __post_init__(self) -> None:
        # Callers may pass lists; the snapshot always holds a tuple.
        if not isinstance(self.verification_methods, tuple):
            object.__setattr__(
                self, "verification_methods", tuple(self.verification_methods)
            )
        if self.metadata is not None and not isinstance(self.metadata, dict):
            object.__setattr__(self, "metadata", dict(self.metadata))

    def replace(self, **changes: Any) -> "Did":
        """Return a copy of this snapshot with *changes* applied."""
        return dataclasses.replace(self, **changes)

    def has_metadata_key(self, key: str) -> bool:
        return self.metadata is not None and key in self.metadata

    def to_dict(self) -> dict[str, object]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "verificationMethods": [vm.to_dict() for vm in self.verification_methods],
            "controllerKey": self.controller_key.hex() if self.controller_key else None,
            "metadata": dict(self.metadata) if self.metadata is not None else None,
            "isDeactivated": self.is_deactivated,
        }


# ------------------------------------------------------------------
# Build results
# ------------------------------------------------------------------


@dataclass(frozen=True)
class BitcoinTransaction:
    """A signed transaction ready to broadcast.

    Parameters
    ----------
    tx_hex:
        The serialized transaction.
    txid:
        The transaction id (display order).
    change_index, change_value, change_address:
        Set only when a change output was added.
    did_utxo_index, did_utxo_value:
        Set when the transaction creates the output controlling a DID.
    """

    tx_hex: str
    txid: bytes
    change_index: Optional[int] = None
    change_value: Optional[int] = None
    change_address: Optional[str] = None
    did_utxo_index: Optional[int] = None
    did_utxo_value: Optional[int] = None

    @property
    def has_change(self) -> bool:
        return self.change_index is not None

    def did_utxo(self) -> Optional[Utxo]:
        """Return the DID output of this transaction as a :class:`Utxo`."""
        if self.did_utxo_index is None or self.did_utxo_value is None:
            return None
        return Utxo(txid=self.txid, index=self.did_utxo_index, value=self.did_utxo_value)

    def change_utxo(self) -> Optional[Utxo]:
        """Return the change output of this transaction as a :class:`Utxo`."""
        if self.change_index is None or self.change_value is None:
            return None
        return Utxo(txid=self.txid, index=self.change_index, value=self.change_value)

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"txid": self.txid.hex(), "txHex": self.tx_hex}
        optional = {
            "changeIndex": self.change_index,
            "changeValue": self.change_value,
            "changeAddress": self.change_address,
            "didUtxoIndex": self.did_utxo_index,
            "didUtxoValue": self.did_utxo_value,
        }
        result.update({key: value for key, value in optional.items() if value is not None})
        return result


@dataclass(frozen=True)
class CommitRevealTransactions:
    """A commitment transaction and the reveal transaction spending it."""

    commit_transaction: BitcoinTransaction
    reveal_transaction: BitcoinTransaction

    def to_dict(self) -> dict[str, object]:
        return {
            "commitTransaction": self.commit_transaction.to_dict(),
            "revealTransaction": self.reveal_transaction.to_dict(),
        }


__all__ = [
    "BitcoinTransaction",
    "CommitRevealTransactions",
    "Did",
    "Utxo",
    "VerificationMethod",
    "WalletUtxo",
]

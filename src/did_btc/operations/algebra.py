"""Update operations on a DID and the pure function that applies them.

A :class:`DidUpdate` carries an ordered list of verification method
operations (``vm``) and three metadata mappings:

* ``a`` adds keys that must not exist yet,
* ``u`` overwrites keys that must already exist,
* ``d`` deletes keys that must already exist (the values are ignored).

On the wire a verification method operation has no tag. Its kind follows
from which fields are present:

=============  ======  ======  ======
Kind           ``i``   ``k``   ``vr``
=============  ======  ======  ======
deletion       yes     no      no
update         yes     one or both
append         no      yes     yes
=============  ======  ======  ======

:func:`classify_verification_method_operation` maps a decoded JSON object
onto one of the three tagged classes once, when the payload is parsed.
Everything downstream dispatches on the class.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Union

from did_btc.consts import (
    VerificationRelationshipFlags,
    is_valid_verification_relationship_flags,
)
from did_btc.encoding import decode_multibase
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.models import Did, VerificationMethod

# ------------------------------------------------------------------
# Verification method operations
# ------------------------------------------------------------------


@dataclass(frozen=True)
class VerificationMethodAppend:
    """Append a new verification method.

    Parameters
    ----------
    k:
        The multibase-encoded multikey of the new method.
    vr:
        Its verification relationship flags.
    """

    k: str
    vr: int

    def to_json(self) -> dict[str, Any]:
        return {"k": self.k, "vr": int(self.vr)}


@dataclass(frozen=True)
class VerificationMethodUpdate:
    """Replace the key and/or the flags of the method at index ``i``."""

    i: int
    k: Optional[str] = None
    vr: Optional[int] = None

    def __post_init__(self) -> None:
        if self.k is None and self.vr is None:
            raise ValueError("VerificationMethodUpdate needs k, vr, or both.")

    def to_json(self) -> dict[str, Any]:
        result: dict[str, Any] = {"i": self.i}
        if self.k is not None:
            result["k"] = self.k
        if self.vr is not None:
            result["vr"] = int(self.vr)
        return result


@dataclass(frozen=True)
class VerificationMethodDeletion:
    """Remove the method at index ``i``; later methods shift down by one."""

    i: int

    def to_json(self) -> dict[str, Any]:
        return {"i": self.i}


VerificationMethodOperation = Union[
    VerificationMethodAppend, VerificationMethodUpdate, VerificationMethodDeletion
]


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def classify_verification_method_operation(obj: object) -> VerificationMethodOperation:
    """Turn a decoded ``vm`` entry into its tagged operation.

    Raises
    ------
    DidFormatError
        If *obj* has none of the three shapes, or its ``vr`` is not a
        valid flag set.
    """
    if not isinstance(obj, Mapping):
        raise DidFormatError(f"Verification method operation must be an object, got {obj!r}")

    i, k, vr = obj.get("i"), obj.get("k"), obj.get("vr")
    has_i = "i" in obj and _is_int(i)
    has_k = "k" in obj and isinstance(k, str)
    has_vr = "vr" in obj and _is_int(vr)
    if has_vr and not is_valid_verification_relationship_flags(vr):
        raise DidFormatError(f"Invalid verification relationship flags {vr}")

    if has_i and (has_k or has_vr):
        return VerificationMethodUpdate(i=i, k=k if has_k else None, vr=vr if has_vr else None)
    if has_i and "k" not in obj and "vr" not in obj:
        return VerificationMethodDeletion(i=i)
    if has_k and has_vr and "i" not in obj:
        return VerificationMethodAppend(k=k, vr=vr)
    raise DidFormatError(f"Invalid verification method operation {dict(obj)!r}")


# ------------------------------------------------------------------
# DID updates
# ------------------------------------------------------------------


def _metadata_mapping(obj: Mapping[str, Any], name: str) -> Optional[dict[str, Any]]:
    if name not in obj:
        return None
    value = obj[name]
    if not isinstance(value, Mapping):
        raise DidFormatError(f"DID update field {name!r} must be an object, got {value!r}")
    return dict(value)


@dataclass(frozen=True)
class DidUpdate:
    """An update intent for a single DID.

    Parameters
    ----------
    vm:
        Verification method operations, applied in order.
    u:
        Metadata entries to overwrite. Every key must already exist.
    d:
        Metadata entries to delete. Every key must already exist.
    a:
        Metadata entries to add. No key may exist yet.
    """

    vm: Optional[tuple[VerificationMethodOperation, ...]] = None
    u: Optional[Mapping[str, Any]] = None
    d: Optional[Mapping[str, Any]] = None
    a: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.vm is not None and not isinstance(self.vm, tuple):
            object.__setattr__(self, "vm", tuple(self.vm))

    @classmethod
    def from_json(cls, obj: object) -> "DidUpdate":
        """Parse a decoded JSON object. A batch index ``i`` is ignored.

        Raises
        ------
        DidFormatError
            If the object does not have the shape of an update.
        """
        if not isinstance(obj, Mapping):
            raise DidFormatError(f"DID update must be an object, got {obj!r}")
        vm: Optional[tuple[VerificationMethodOperation, ...]] = None
        if "vm" in obj:
            if not isinstance(obj["vm"], list):
                raise DidFormatError("DID update field 'vm' must be an array.")
            vm = tuple(classify_verification_method_operation(op) for op in obj["vm"])
        return cls(
            vm=vm,
            u=_metadata_mapping(obj, "u"),
            d=_metadata_mapping(obj, "d"),
            a=_metadata_mapping(obj, "a"),
        )

    def to_json(self) -> dict[str, Any]:
        """Serialize to the on-chain object shape, omitting absent fields."""
        result: dict[str, Any] = {}
        if self.vm is not None:
            result["vm"] = [op.to_json() for op in self.vm]
        for name in ("u", "d", "a"):
            value = getattr(self, name)
            if value is not None:
                result[name] = dict(value)
        return result

    def validate(self, did: Did) -> None:
        """Check that this update can be applied to *did*.

        Verification method indexes are checked against the array as it
        will be when each operation runs, so a deletion earlier in ``vm``
        shrinks the range for the operations after it.

        Raises
        ------
        DidValidationError
            If *did* is deactivated, an index is out of range, flags are
            invalid, a key is not multibase, or a metadata key is missing
            (``u``/``d``) or already present (``a``).
        """
        if did.is_deactivated:
            raise DidValidationError("Cannot update a deactivated DID")

        length = len(did.verification_methods)
        for op in self.vm or ():
            if not isinstance(op, VerificationMethodAppend):
                if not 0 <= op.i < length:
                    raise DidValidationError(f"Invalid verification method index {op.i}")
            if isinstance(op, (VerificationMethodAppend, VerificationMethodUpdate)):
                _validate_operation_fields(op)
            if isinstance(op, VerificationMethodDeletion):
                length -= 1
            elif isinstance(op, VerificationMethodAppend):
                length += 1

        for key in self.a or {}:
            if did.has_metadata_key(key):
                raise DidValidationError(f"Metadata key {key} already exists in DID document")
        for name in ("u", "d"):
            for key in getattr(self, name) or {}:
                if not did.has_metadata_key(key):
                    raise DidValidationError(
                        f"Metadata key {key} does not exist in DID document"
                    )


def _validate_operation_fields(
    op: Union[VerificationMethodAppend, VerificationMethodUpdate],
) -> None:
    if op.vr is not None and not is_valid_verification_relationship_flags(op.vr):
        raise DidValidationError(f"Invalid verification relationship flags {op.vr}")
    if op.k is not None:
        try:
            decode_multibase(op.k)
        except DidFormatError as exc:
            raise DidValidationError(f"Invalid multikey {op.k!r}: {exc}") from exc


@dataclass(frozen=True)
class BatchDidUpdate:
    """An update addressed to one DID of a batch.

    Parameters
    ----------
    i:
        Index of the DID in its batch creation transaction.
    update:
        The update to apply. An empty update deactivates the DID.
    did:
        Current state of the DID. Only used to validate ``update`` before
        the transaction is built; it is not written on-chain.
    """

    i: int
    update: DidUpdate
    did: Did = field(repr=False)

    def validate(self) -> None:
        if not _is_int(self.i) or self.i < 0:
            raise DidValidationError("i must be greater than or equal to 0")
        self.update.validate(self.did)

    def to_json(self) -> dict[str, Any]:
        return {**self.update.to_json(), "i": self.i}


# ------------------------------------------------------------------
# Application
# ------------------------------------------------------------------


def _apply_verification_method_operation(
    methods: list[VerificationMethod], op: VerificationMethodOperation
) -> None:
    if isinstance(op, VerificationMethodAppend):
        methods.append(
            VerificationMethod(
                multikey=decode_multibase(op.k),
                verification_relationship_flags=VerificationRelationshipFlags(op.vr),
            )
        )
        return

    if not 0 <= op.i < len(methods):
        raise DidValidationError(f"Invalid verification method index {op.i}")
    if isinstance(op, VerificationMethodDeletion):
        del methods[op.i]
        return

    changes: dict[str, Any] = {}
    if op.k is not None:
        changes["multikey"] = decode_multibase(op.k)
    if op.vr is not None:
        changes["verification_relationship_flags"] = VerificationRelationshipFlags(op.vr)
    methods[op.i] = methods[op.i].replace(**changes)


def apply_did_update(did: Did, update: DidUpdate) -> Did:
    """Return the state of *did* after *update*; *did* itself is unchanged.

    Raises
    ------
    DidValidationError
        If a verification method index is out of range, an ``a`` key
        already exists, or a ``u``/``d`` key does not exist.
    DidFormatError
        If a key in ``vm`` is not a supported multibase string.
    """
    methods = list(did.verification_methods)
    for op in update.vm or ():
        _apply_verification_method_operation(methods, op)

    metadata = dict(did.metadata) if did.metadata is not None else None
    if update.a is not None:
        metadata = {} if metadata is None else metadata
        for key, value in update.a.items():
            if key in metadata:
                raise DidValidationError(f"Metadata key {key} already exists")
            metadata[key] = value
    if update.u is not None:
        for key, value in update.u.items():
            if metadata is None or key not in metadata:
                raise DidValidationError(f"Metadata key {key} does not exist")
            metadata[key] = value
    if update.d is not None:
        for key in update.d:
            if metadata is None or key not in metadata:
                raise DidValidationError(f"Metadata key {key} does not exist")
            del metadata[key]

    return did.replace(verification_methods=tuple(methods), metadata=metadata)


__all__ = [
    "BatchDidUpdate",
    "DidUpdate",
    "VerificationMethodAppend",
    "VerificationMethodDeletion",
    "VerificationMethodOperation",
    "VerificationMethodUpdate",
    "apply_did_update",
    "classify_verification_method_operation",
]

"""DidDocument: the W3C DID Core document of a resolved ``did:btc`` DID.

Shape
-----
::

    {
      "@context": ["https://www.w3.org/ns/did/v1",
                   "https://w3id.org/security/multikey/v1"],
      "id": "did:btc:...",
      "controller": "did:key:z...",
      "verificationMethod": [
        {"id": "did:btc:...#key-0", "controller": "did:key:z...",
         "type": "Multikey", "publicKeyMultibase": "z..."}
      ],
      "authentication": ["did:btc:...#key-0"],
      "assertionMethod": ["did:btc:...#key-0"],
      ...metadata
    }

A relationship array is present only when at least one verification method
carries its flag. Metadata entries (``service`` and friends) are spread into
the top level last, so they win over any generated property of the same name.

The controller is the ``did:key`` of the DID output's x-only key, encoded
with the ``secp256k1-pub`` codec.

Specification reference
-----------------------
https://www.w3.org/TR/did-core/#did-documents
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from did_btc.consts import VerificationRelationshipFlags
from did_btc.encoding import encode_multikey
from did_btc.identifier import is_did_btc
from did_btc.models import Did

DID_CONTEXT: tuple[str, ...] = (
    "https://www.w3.org/ns/did/v1",
    "https://w3id.org/security/multikey/v1",
)

VERIFICATION_METHOD_TYPE: str = "Multikey"

# Document property for each relationship flag, in document order.
RELATIONSHIP_PROPERTIES: tuple[tuple[VerificationRelationshipFlags, str], ...] = (
    (VerificationRelationshipFlags.AUTHENTICATION, "authentication"),
    (VerificationRelationshipFlags.ASSERTION, "assertionMethod"),
    (VerificationRelationshipFlags.KEY_AGREEMENT, "keyAgreement"),
    (VerificationRelationshipFlags.CAPABILITY_INVOCATION, "capabilityInvocation"),
    (VerificationRelationshipFlags.CAPABILITY_DELEGATION, "capabilityDelegation"),
)


@dataclass(frozen=True)
class DocumentVerificationMethod:
    """A ``Multikey`` verification method entry of a DID document."""

    id: str
    controller: Optional[str]
    public_key_multibase: str
    type: str = VERIFICATION_METHOD_TYPE

    def to_dict(self) -> dict[str, object]:
        """Serialize to a W3C-compatible plain dictionary."""
        result: dict[str, object] = {"id": self.id}
        if self.controller is not None:
            result["controller"] = self.controller
        result["type"] = self.type
        result["publicKeyMultibase"] = self.public_key_multibase
        return result


class DidDocument(BaseModel):
    """A W3C DID Core document for the ``did:btc`` method.

    Parameters
    ----------
    id:
        The ``did:btc`` identifier.
    controller:
        ``did:key`` of the key controlling the DID output, if known.
    verification_method:
        One entry per verification method, ids ``<id>#key-<n>``.
    relationships:
        Document property name (``authentication``, ``assertionMethod``,
        ...) to the ids of the methods carrying that relationship.
    metadata:
        Extra top-level properties from the DID's metadata.
    """

    model_config = {"arbitrary_types_allowed": True}

    context: list[str] = Field(default_factory=lambda: list(DID_CONTEXT))
    id: str
    controller: Optional[str] = None
    verification_method: list[DocumentVerificationMethod] = Field(default_factory=list)
    relationships: dict[str, list[str]] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("id")
    @classmethod
    def validate_did_btc(cls, value: str) -> str:
        if not is_did_btc(value):
            raise ValueError(f"{value!r} is not a did:btc identifier.")
        return value

    def to_dict(self) -> dict[str, object]:
        """Serialize to the JSON-LD document shape."""
        data: dict[str, object] = {"@context": list(self.context), "id": self.id}
        if self.controller is not None:
            data["controller"] = self.controller
        data["verificationMethod"] = [vm.to_dict() for vm in self.verification_method]
        for _, name in RELATIONSHIP_PROPERTIES:
            if self.relationships.get(name):
                data[name] = list(self.relationships[name])
        data.update(self.metadata)
        return data

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize this document to a JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


def controller_did_key(controller_key: Optional[bytes]) -> Optional[str]:
    """Return the ``did:key`` of a controller key, or ``None`` without one."""
    if not controller_key:
        return None
    return f"did:key:{encode_multikey(controller_key, 'secp256k1-pub')}"


def build_did_document(did: Did, did_id: str) -> DidDocument:
    """Build the DID document of *did*, published under *did_id*."""
    controller = controller_did_key(did.controller_key)
    methods = [
        DocumentVerificationMethod(
            id=f"{did_id}#key-{index}",
            controller=controller,
            public_key_multibase=vm.public_key_multibase,
        )
        for index, vm in enumerate(did.verification_methods)
    ]
    relationships = {
        name: [
            f"{did_id}#key-{index}"
            for index, vm in enumerate(did.verification_methods)
            if vm.verification_relationship_flags & flag
        ]
        for flag, name in RELATIONSHIP_PROPERTIES
    }
    return DidDocument(
        id=did_id,
        controller=controller,
        verification_method=methods,
        relationships={name: ids for name, ids in relationships.items() if ids},
        metadata=dict(did.metadata or {}),
    )


__all__ = [
    "DID_CONTEXT",
    "DidDocument",
    "DocumentVerificationMethod",
    "RELATIONSHIP_PROPERTIES",
    "build_did_document",
    "controller_did_key",
]

"""Protocol constants for the ``did:btc`` method.

Verification relationships
--------------------------
Each verification method carries a 5-bit flag set. Every bit maps to one of
the W3C DID Core verification relationships:

============================  =====
Relationship                  Bit
============================  =====
authentication                1
assertionMethod               2
keyAgreement                  4
capabilityInvocation          8
capabilityDelegation          16
============================  =====

Any non-zero combination below 32 is valid.
"""
from __future__ import annotations

from enum import Enum, IntFlag


class VerificationRelationshipFlags(IntFlag):
    """Bit flags for the verification relationships of a verification method.

    See https://www.w3.org/TR/did-core/#verification-relationships
    """

    AUTHENTICATION = 1
    ASSERTION = 2
    KEY_AGREEMENT = 4
    CAPABILITY_INVOCATION = 8
    CAPABILITY_DELEGATION = 16


class Network(str, Enum):
    """Bitcoin networks a DID can live on."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


# ------------------------------------------------------------------
# Transaction limits
# ------------------------------------------------------------------

#: Minimum value of a standard P2TR output, in satoshis.
DUST_LIMIT: int = 330

#: Maximum size of a single stack element (BIP342 resource limit).
STACK_ELEMENT_SIZE_LIMIT: int = 520

#: Flags used when the caller does not choose any (authentication | assertion).
DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS: VerificationRelationshipFlags = (
    VerificationRelationshipFlags.AUTHENTICATION
    | VerificationRelationshipFlags.ASSERTION
)

MAX_VERIFICATION_RELATIONSHIP_FLAGS: int = 31

# ------------------------------------------------------------------
# Payload prefixes
# ------------------------------------------------------------------

#: Prefix of the OP_RETURN payload of a single DID creation.
DID_CREATION_OP_RETURN_PREFIX: bytes = b"did"

#: Prefix of the reveal payload of a batch DID creation.
DIDS_BATCH_CREATION_PAYLOAD_PREFIX: bytes = b"dids"

#: Payload of the OP_RETURN output that deactivates a single DID.
DEACTIVATION_PAYLOAD: bytes = b"d"

#: Compiled ``OP_RETURN <'d'>`` output script.
DEACTIVATION_OP_RETURN_OUTPUT: bytes = b"\x6a\x01" + DEACTIVATION_PAYLOAD


def is_valid_verification_relationship_flags(flags: int) -> bool:
    """Return ``True`` if *flags* is a non-empty combination of the five relationships."""
    return (
        isinstance(flags, int)
        and not isinstance(flags, bool)
        and 0 < flags <= MAX_VERIFICATION_RELATIONSHIP_FLAGS
    )


__all__ = [
    "DEACTIVATION_OP_RETURN_OUTPUT",
    "DEACTIVATION_PAYLOAD",
    "DEFAULT_VERIFICATION_RELATIONSHIP_FLAGS",
    "DIDS_BATCH_CREATION_PAYLOAD_PREFIX",
    "DID_CREATION_OP_RETURN_PREFIX",
    "DUST_LIMIT",
    "MAX_VERIFICATION_RELATIONSHIP_FLAGS",
    "Network",
    "STACK_ELEMENT_SIZE_LIMIT",
    "VerificationRelationshipFlags",
    "is_valid_verification_relationship_flags",
]

"""Tests for the DID update algebra in did_btc.operations.algebra."""
from __future__ import annotations

import pytest

from did_btc.consts import VerificationRelationshipFlags
from did_btc.encoding import encode_multikey, prepend_codec_to_key
from did_btc.errors import DidFormatError, DidValidationError
from did_btc.models import Did, VerificationMethod
from did_btc.operations.algebra import (
    BatchDidUpdate,
    DidUpdate,
    VerificationMethodAppend,
    VerificationMethodDeletion,
    VerificationMethodUpdate,
    apply_did_update,
    classify_verification_method_operation,
)

from conftest import PUBKEYS, UPDATED_PUBKEYS

SERVICE = [{"id": "linked-domain", "serviceEndpoint": "https://didservice.com"}]


def _method(pubkey: bytes, flags: int = 3) -> VerificationMethod:
    return VerificationMethod(
        multikey=prepend_codec_to_key(pubkey, "ed25519-pub"),
        verification_relationship_flags=VerificationRelationshipFlags(flags),
    )


@pytest.fixture()
def did() -> Did:
    return Did(
        verification_methods=(_method(PUBKEYS[0]), _method(PUBKEYS[1], 1)),
        controller_key=bytes(32),
        metadata={"service": SERVICE},
    )


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


class TestClassify:
    def test_append(self) -> None:
        op = classify_verification_method_operation({"k": "z6Mk", "vr": 3})
        assert op == VerificationMethodAppend(k="z6Mk", vr=3)

    def test_update_key_only(self) -> None:
        op = classify_verification_method_operation({"i": 0, "k": "z6Mk"})
        assert op == VerificationMethodUpdate(i=0, k="z6Mk")

    def test_update_flags_only(self) -> None:
        op = classify_verification_method_operation({"i": 2, "vr": 8})
        assert op == VerificationMethodUpdate(i=2, vr=8)

    def test_deletion(self) -> None:
        assert classify_verification_method_operation({"i": 1}) == VerificationMethodDeletion(i=1)

    @pytest.mark.parametrize(
        "obj", [{"k": "z6Mk", "vr": 0}, {"i": 0, "vr": 32}, {"i": 0, "k": "z6Mk", "vr": -1}]
    )
    def test_out_of_range_flags(self, obj: dict[str, object]) -> None:
        with pytest.raises(DidFormatError, match="flags"):
            classify_verification_method_operation(obj)

    @pytest.mark.parametrize(
        "obj",
        [{}, {"k": "z6Mk"}, {"vr": 3}, {"i": "0"}, {"i": True}, [1, 2], "z6Mk"],
    )
    def test_unrecognized_shapes(self, obj: object) -> None:
        with pytest.raises(DidFormatError):
            classify_verification_method_operation(obj)


class TestDidUpdateJson:
    def test_from_json_ignores_batch_index(self) -> None:
        update = DidUpdate.from_json({"i": 4, "vm": [{"i": 0}], "a": {"x": 1}})
        assert update.vm == (VerificationMethodDeletion(i=0),)
        assert update.a == {"x": 1}
        assert "i" not in update.to_json()

    def test_to_json_key_order(self) -> None:
        update = DidUpdate(
            a={"b": 2},
            vm=[VerificationMethodUpdate(i=0, k="z1", vr=3)],
            d={"c": None},
            u={"a": 1},
        )
        data = update.to_json()
        assert list(data) == ["vm", "u", "d", "a"]
        assert list(data["vm"][0]) == ["i", "k", "vr"]

    def test_absent_fields_are_omitted(self) -> None:
        assert DidUpdate(vm=[VerificationMethodDeletion(i=0)]).to_json() == {"vm": [{"i": 0}]}

    def test_vm_must_be_an_array(self) -> None:
        with pytest.raises(DidFormatError):
            DidUpdate.from_json({"vm": {"i": 0}})

    def test_update_must_be_an_object(self) -> None:
        with pytest.raises(DidFormatError):
            DidUpdate.from_json([{"i": 0}])

    def test_batch_update_serializes_index_last(self, did: Did) -> None:
        batch_update = BatchDidUpdate(
            i=2, update=DidUpdate(vm=[VerificationMethodDeletion(i=0)]), did=did
        )
        assert list(batch_update.to_json()) == ["vm", "i"]
        assert batch_update.to_json()["i"] == 2


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidate:
    def test_valid_update(self, did: Did) -> None:
        DidUpdate(
            vm=[VerificationMethodUpdate(i=1, k=encode_multikey(UPDATED_PUBKEYS[1], "ed25519-pub"))],
            u={"service": []},
        ).validate(did)

    def test_deactivated_did(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="deactivated"):
            DidUpdate(a={"x": 1}).validate(did.replace(is_deactivated=True))

    def test_index_out_of_range(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="Invalid verification method index 2"):
            DidUpdate(vm=[VerificationMethodDeletion(i=2)]).validate(did)

    def test_deletion_shrinks_range_for_later_operations(self, did: Did) -> None:
        update = DidUpdate(vm=[VerificationMethodDeletion(i=0), VerificationMethodDeletion(i=1)])
        with pytest.raises(DidValidationError, match="index 1"):
            update.validate(did)

    def test_append_grows_range_for_later_operations(self, did: Did) -> None:
        key = encode_multikey(UPDATED_PUBKEYS[0], "ed25519-pub")
        DidUpdate(
            vm=[VerificationMethodAppend(k=key, vr=1), VerificationMethodUpdate(i=2, vr=3)]
        ).validate(did)

    def test_invalid_flags(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="flags"):
            DidUpdate(vm=[VerificationMethodUpdate(i=0, vr=32)]).validate(did)

    def test_key_must_be_multibase(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="multikey"):
            DidUpdate(vm=[VerificationMethodUpdate(i=0, k=PUBKEYS[0].hex())]).validate(did)

    def test_update_of_missing_metadata_key(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="Metadata key alsoKnownAs does not exist"):
            DidUpdate(u={"alsoKnownAs": []}).validate(did)

    def test_deletion_of_missing_metadata_key(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="does not exist"):
            DidUpdate(d={"alsoKnownAs": None}).validate(did)

    def test_addition_of_existing_metadata_key(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="already exists"):
            DidUpdate(a={"service": []}).validate(did)

    def test_negative_batch_index(self, did: Did) -> None:
        with pytest.raises(DidValidationError, match="greater than or equal to 0"):
            BatchDidUpdate(i=-1, update=DidUpdate(a={"x": 1}), did=did).validate()


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


class TestApply:
    def test_update_replaces_key_and_keeps_flags(self, did: Did) -> None:
        key = encode_multikey(UPDATED_PUBKEYS[0], "ed25519-pub")
        updated = apply_did_update(did, DidUpdate(vm=[VerificationMethodUpdate(i=0, k=key)]))
        assert updated.verification_methods[0].multikey[2:] == UPDATED_PUBKEYS[0]
        assert updated.verification_methods[0].verification_relationship_flags == 3

    def test_update_flags_only(self, did: Did) -> None:
        updated = apply_did_update(did, DidUpdate(vm=[VerificationMethodUpdate(i=1, vr=31)]))
        assert updated.verification_methods[1].verification_relationship_flags == 31
        assert updated.verification_methods[1].multikey == did.verification_methods[1].multikey

    def test_append(self, did: Did) -> None:
        key = encode_multikey(UPDATED_PUBKEYS[2], "ed25519-pub")
        updated = apply_did_update(did, DidUpdate(vm=[VerificationMethodAppend(k=key, vr=4)]))
        assert len(updated.verification_methods) == 3
        assert updated.verification_methods[2].verification_relationship_flags == 4

    def test_deletion_shifts_later_methods(self, did: Did) -> None:
        updated = apply_did_update(did, DidUpdate(vm=[VerificationMethodDeletion(i=0)]))
        assert updated.verification_methods == (did.verification_methods[1],)

    def test_metadata_add_update_delete(self, did: Did) -> None:
        updated = apply_did_update(
            did,
            DidUpdate(a={"alsoKnownAs": ["https://example.com"]}, d={"service": None}),
        )
        assert updated.metadata == {"alsoKnownAs": ["https://example.com"]}
        updated = apply_did_update(updated, DidUpdate(u={"alsoKnownAs": []}))
        assert updated.metadata == {"alsoKnownAs": []}

    def test_metadata_is_created_when_absent(self) -> None:
        bare = Did(verification_methods=(_method(PUBKEYS[0]),))
        assert apply_did_update(bare, DidUpdate(a={"x": 1})).metadata == {"x": 1}

    def test_input_state_is_not_modified(self, did: Did) -> None:
        apply_did_update(did, DidUpdate(a={"x": 1}, vm=[VerificationMethodDeletion(i=0)]))
        assert did.metadata == {"service": SERVICE}
        assert len(did.verification_methods) == 2

    def test_empty_update_changes_nothing(self, did: Did) -> None:
        assert apply_did_update(did, DidUpdate()) == did

    def test_out_of_range_index(self, did: Did) -> None:
        with pytest.raises(DidValidationError):
            apply_did_update(did, DidUpdate(vm=[VerificationMethodDeletion(i=5)]))

    def test_add_existing_metadata_key(self, did: Did) -> None:
        with pytest.raises(DidValidationError):
            apply_did_update(did, DidUpdate(a={"service": []}))

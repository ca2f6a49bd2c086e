"""
Certificate registry tests.

Covers instructor management, mint authorization, one-certificate-per-student,
token ID allocation, read-only lookups and the single-owner / non-unique
variants.
"""

import pytest

from btcu.certificate import (
    CertificateRegistry,
    InstructorSetPolicy,
    SingleOwnerPolicy,
    StudentToken,
)
from btcu.config import BtcuConfig
from btcu.errors import ErrorCode, UnknownEntryPoint
from btcu.hardening import InvariantViolation, ValidationErrors
from btcu.store import CertificateStore


def _student(i: int) -> str:
    return "ST" + str(i).zfill(38)


@pytest.fixture
def registry(deployer):
    return CertificateRegistry(deployer)


class TestInstructorManagement:
    """add-instructor / is-instructor."""

    def test_deployer_is_instructor_by_default(self, registry, deployer):
        assert registry.is_instructor(deployer).value is True

    def test_non_instructor_returns_false(self, registry, wallet1, wallet2):
        assert registry.is_instructor(wallet1).value is False
        assert registry.is_instructor(wallet2).value is False

    def test_deployer_can_add_instructor(self, registry, deployer, wallet1):
        result = registry.add_instructor(deployer, wallet1)
        assert result.is_ok and result.value is True
        assert registry.is_instructor(wallet1).value is True

    def test_instructor_can_add_instructor(self, registry, deployer, wallet1, wallet2):
        registry.add_instructor(deployer, wallet1)
        assert registry.add_instructor(wallet1, wallet2).is_ok
        assert registry.is_instructor(wallet2).value is True

    def test_non_instructor_cannot_add_instructor(self, registry, wallet1, wallet2):
        result = registry.add_instructor(wallet1, wallet2)
        assert result.code == ErrorCode.NOT_AUTHORIZED == 100
        assert registry.is_instructor(wallet2).value is False

    def test_duplicate_add_is_ok(self, registry, deployer, wallet1):
        registry.add_instructor(deployer, wallet1)
        assert registry.add_instructor(deployer, wallet1).is_ok
        assert registry.store.instructors == {deployer, wallet1}


class TestMint:
    """mint-for-student authorization, uniqueness and ID allocation."""

    def test_first_mint_returns_one(self, registry, deployer, wallet1):
        result = registry.mint(deployer, wallet1)
        assert result.is_ok
        assert result.value == 1

    def test_added_instructor_can_mint(self, registry, deployer, wallet1, wallet2):
        registry.add_instructor(deployer, wallet1)
        assert registry.mint(wallet1, wallet2).value == 1

    def test_non_instructor_cannot_mint(self, registry, wallet1, wallet2):
        assert registry.mint(wallet1, wallet2).code == 100
        assert registry.mint(wallet1, wallet1).code == 100
        assert registry.get_last_token_id().value == 0

    def test_duplicate_mint_fails_with_already_exists(self, registry, deployer, wallet1):
        registry.mint(deployer, wallet1)
        result = registry.mint(deployer, wallet1)
        assert result.code == ErrorCode.ALREADY_EXISTS == 104
        assert registry.get_last_token_id().value == 1

    def test_other_instructor_cannot_mint_duplicate(self, registry, deployer, wallet1, wallet2):
        registry.add_instructor(deployer, wallet1)
        registry.mint(deployer, wallet2)
        assert registry.mint(wallet1, wallet2).code == 104

    def test_ids_are_sequential(self, registry, deployer, wallet1, wallet2, wallet3, wallet4):
        ids = [registry.mint(deployer, s).value for s in (wallet1, wallet2, wallet3, wallet4)]
        assert ids == [1, 2, 3, 4]
        assert registry.get_last_token_id().value == 4

    def test_can_mint_to_deployer(self, registry, deployer):
        assert registry.mint(deployer, deployer).value == 1
        assert registry.get_owner(1).value == deployer

    def test_mint_alias_by_name(self, registry, deployer, wallet1):
        assert registry.call("mint-for-student", [wallet1], deployer).value == 1
        assert registry.call("mint", [wallet1], deployer).code == 104

    def test_failed_mint_leaves_no_event(self, registry, deployer, wallet1):
        registry.mint(deployer, wallet1)
        registry.mint(deployer, wallet1)
        assert len(registry.events.events("mint-for-student")) == 1

    def test_invalid_student_raises(self, registry, deployer):
        with pytest.raises(ValidationErrors):
            registry.mint(deployer, "not-a-principal")
        assert registry.get_last_token_id().value == 0


class TestReadOnly:
    """get-owner, has-nft, get-student-token-id, get-token-uri."""

    def test_get_owner_none_for_unminted(self, registry):
        assert registry.get_owner(1).value is None
        assert registry.get_owner(0).value is None
        assert registry.get_owner(2 ** 128 - 1).value is None

    def test_get_owner_after_mint(self, registry, deployer, wallet1, wallet2):
        registry.mint(deployer, wallet1)
        registry.mint(deployer, wallet2)
        assert registry.get_owner(1).value == wallet1
        assert registry.get_owner(2).value == wallet2
        assert registry.get_owner(3).value is None

    def test_has_nft(self, registry, deployer, wallet1, wallet2):
        registry.mint(deployer, wallet1)
        assert registry.has_nft(wallet1).value is True
        assert registry.has_nft(wallet2).value is False

    def test_student_token(self, registry, deployer, wallet1, wallet2):
        assert registry.get_student_token(wallet1).value is None
        registry.mint(deployer, wallet2)
        registry.mint(deployer, wallet1)
        token = registry.get_student_token(wallet1).value
        assert token == StudentToken(2)
        assert registry.get_student_token(wallet1).to_dict() == {
            "ok": {"token-id": 2, "minted": True}
        }

    def test_token_uri_is_always_none(self, registry, deployer, wallet1):
        assert registry.get_token_uri(1).value is None
        registry.mint(deployer, wallet1)
        assert registry.get_token_uri(1).value is None

    def test_read_only_ignores_caller(self, registry, deployer, wallet1, wallet3):
        registry.mint(deployer, wallet1)
        by_name = registry.call("get-owner", [1], wallet3)
        assert by_name.value == wallet1
        assert registry.call("get-last-token-id").value == 1

    def test_unknown_entry_point(self, registry):
        with pytest.raises(UnknownEntryPoint):
            registry.call("burn", [1])


class TestInvariants:

    def test_state_consistency_after_mints(self, registry, deployer):
        for i in range(1, 26):
            registry.mint(deployer, _student(i))
        store = registry.store
        assert len(store.owner_of) == store.last_token_id == 25
        assert set(store.owner_of) == set(range(1, 26))
        for student, token_id in store.student_token.items():
            assert store.owner_of[token_id] == student
        registry.check_invariants()

    def test_independent_stores(self, deployer, wallet1):
        a = CertificateRegistry(deployer)
        b = CertificateRegistry(deployer, store=CertificateStore())
        a.mint(deployer, wallet1)
        assert b.get_last_token_id().value == 0
        assert b.mint(deployer, wallet1).value == 1

    def test_owned_id_collision_rolls_back(self, deployer, wallet1, wallet2):
        registry = CertificateRegistry(deployer, store=CertificateStore(owner_of={1: wallet1}))
        with pytest.raises(InvariantViolation):
            registry.mint(deployer, wallet2)
        assert registry.get_last_token_id().value == 0
        assert registry.has_nft(wallet2).value is False
        assert len(registry.events) == 0

    def test_event_chain_verifies(self, registry, deployer, wallet1, wallet2):
        registry.add_instructor(deployer, wallet1)
        registry.mint(wallet1, wallet2)
        assert len(registry.events) == 2
        assert registry.events.verify()


class TestVariants:
    """Mint policies selected from configuration."""

    def test_default_policy_is_instructor_set(self, registry):
        assert isinstance(registry.policy, InstructorSetPolicy)
        assert registry.policy.unique_per_recipient is True

    def test_single_owner_only_deployer_mints(self, deployer, wallet1, wallet2):
        config = BtcuConfig.from_dict({"registry": {"authorized_minters": "single-owner"}})
        registry = CertificateRegistry(deployer, config=config)
        assert isinstance(registry.policy, SingleOwnerPolicy)

        assert registry.add_instructor(deployer, wallet1).code == 100
        assert registry.is_instructor(wallet1).value is False
        assert registry.is_instructor(deployer).value is True
        assert registry.mint(wallet1, wallet2).code == 100
        assert registry.mint(deployer, wallet2).value == 1

    def test_non_unique_allows_repeat_mints(self, deployer, wallet1):
        config = BtcuConfig.from_dict({"registry": {"unique_per_recipient": False}})
        registry = CertificateRegistry(deployer, config=config)

        assert registry.mint(deployer, wallet1).value == 1
        assert registry.mint(deployer, wallet1).value == 2
        assert registry.get_student_token(wallet1).value.token_id == 1
        assert registry.get_tokens_of(wallet1).value == [1, 2]
        assert registry.get_owner(2).value == wallet1
        registry.check_invariants()


class TestLifecycle:

    def test_complete_certificate_lifecycle(self, registry, deployer, wallet1, wallet2):
        assert registry.add_instructor(deployer, wallet1).is_ok
        assert registry.mint(wallet1, wallet2).value == 1
        assert registry.has_nft(wallet2).value is True
        assert registry.get_owner(1).value == wallet2
        assert registry.get_student_token(wallet2).value.token_id == 1
        assert registry.mint(deployer, wallet2).code == 104
        assert registry.get_tokens_of(wallet2).value == [1]

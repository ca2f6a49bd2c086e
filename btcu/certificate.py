"""
Certificate Registry

Issues non-fungible course certificates. Token IDs are allocated densely from
1; each minted ID maps to exactly one owner and is never reassigned.

Two deployment variants share the same state shape and differ only in policy:

    instructor-set   Any principal in the instructor set may mint and may add
                     further instructors. The deployer seeds the set.
    single-owner     Only the deployer may mint; there is no instructor set.

Orthogonally, ``unique_per_recipient`` decides whether a principal may hold
more than one certificate. Both knobs come from ``RegistryConfig`` and are
resolved into a ``MintPolicy`` strategy at construction.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from btcu.config import BtcuConfig
from btcu.contract import Contract, public, read_only
from btcu.errors import ALREADY_MINTED, NOT_INSTRUCTOR, ContractError
from btcu.hardening import InvariantChecker, InvariantViolation, Validators
from btcu.observability import ContractLayer
from btcu.store import CertificateStore


# =============================================================================
# MINT POLICIES
# =============================================================================

class MintPolicy:
    """Who may mint and who may grow the minter set."""

    name = ""

    def __init__(self, owner: str, unique_per_recipient: bool):
        self.owner = owner
        self.unique_per_recipient = unique_per_recipient

    def seed(self, store: CertificateStore) -> None:
        store.instructors.add(self.owner)

    def is_minter(self, store: CertificateStore, principal: str) -> bool:
        raise NotImplementedError

    def can_add_instructor(self, store: CertificateStore, principal: str) -> bool:
        raise NotImplementedError

    def is_instructor(self, store: CertificateStore, principal: str) -> bool:
        raise NotImplementedError


class InstructorSetPolicy(MintPolicy):
    """Every instructor may mint and add instructors."""

    name = "instructor-set"

    def is_minter(self, store: CertificateStore, principal: str) -> bool:
        return principal in store.instructors

    def can_add_instructor(self, store: CertificateStore, principal: str) -> bool:
        return principal in store.instructors

    def is_instructor(self, store: CertificateStore, principal: str) -> bool:
        return principal in store.instructors


class SingleOwnerPolicy(MintPolicy):
    """Only the deployer mints; the instructor set is fixed to the owner."""

    name = "single-owner"

    def is_minter(self, store: CertificateStore, principal: str) -> bool:
        return principal == self.owner

    def can_add_instructor(self, store: CertificateStore, principal: str) -> bool:
        return False

    def is_instructor(self, store: CertificateStore, principal: str) -> bool:
        return principal == self.owner


MINT_POLICIES = {
    InstructorSetPolicy.name: InstructorSetPolicy,
    SingleOwnerPolicy.name: SingleOwnerPolicy,
}


def create_mint_policy(owner: str, config: BtcuConfig) -> MintPolicy:
    """Build the policy selected by ``config.registry``."""
    minters = config.registry.authorized_minters.get()
    policy_cls = MINT_POLICIES.get(minters)
    if policy_cls is None:
        raise ValueError(f"unknown authorized_minters: {minters}")
    return policy_cls(owner, bool(config.registry.unique_per_recipient.get()))


@dataclass(frozen=True)
class StudentToken:
    """Certificate record of a student."""
    token_id: int
    minted: bool = True

    def to_dict(self) -> Dict[str, object]:
        return {"token-id": self.token_id, "minted": self.minted}


# =============================================================================
# REGISTRY
# =============================================================================

class CertificateRegistry(Contract):
    """
    NFT issuance for course certificates.

    Example:
        registry = CertificateRegistry(deployer)
        registry.mint(deployer, wallet1)      # ok(1)
        registry.mint(deployer, wallet1)      # err(u104)
        registry.get_owner(1)                 # ok(wallet1)
    """

    contract_name = "btc-university-nft"
    layer = ContractLayer.REGISTRY

    def __init__(
        self,
        deployer: str,
        store: Optional[CertificateStore] = None,
        config: Optional[BtcuConfig] = None,
        name: Optional[str] = None,
    ):
        super().__init__(deployer, store or CertificateStore(), config, name)
        self.policy = create_mint_policy(self.deployer, self.config)
        self.policy.seed(self.store)

    # ------------------------------------------------------------------
    # Public
    # ------------------------------------------------------------------

    @public("add-instructor")
    def add_instructor(self, caller: str, target: str) -> bool:
        target = Validators.validate_principal(target, "instructor").require()
        if not self.policy.can_add_instructor(self.store, caller):
            raise ContractError(NOT_INSTRUCTOR)
        # duplicate adds are accepted
        self.store.instructors.add(target)
        return True

    @public("mint-for-student", "mint")
    def mint(self, caller: str, student: str) -> int:
        student = Validators.validate_principal(student, "student").require()
        store = self.store

        if not self.policy.is_minter(store, caller):
            raise ContractError(NOT_INSTRUCTOR)
        if self.policy.unique_per_recipient and student in store.student_token:
            raise ContractError(ALREADY_MINTED)

        token_id = store.last_token_id + 1
        InvariantChecker.check_fits_uint("last-token-id", token_id)
        if token_id in store.owner_of:
            raise InvariantViolation(f"token id {token_id} already owned")

        store.last_token_id = token_id
        store.owner_of[token_id] = student
        store.student_token.setdefault(student, token_id)
        store.tokens_of.setdefault(student, []).append(token_id)
        return token_id

    # ------------------------------------------------------------------
    # Read-only
    # ------------------------------------------------------------------

    @read_only("is-instructor")
    def is_instructor(self, principal: str) -> bool:
        return self.policy.is_instructor(self.store, principal)

    @read_only("get-owner")
    def get_owner(self, token_id: int) -> Optional[str]:
        token_id = Validators.validate_uint(token_id, "token-id").require()
        return self.store.owner_of.get(token_id)

    @read_only("has-nft")
    def has_nft(self, student: str) -> bool:
        return student in self.store.student_token

    @read_only("get-student-token-id")
    def get_student_token(self, student: str) -> Optional[StudentToken]:
        token_id = self.store.student_token.get(student)
        if token_id is None:
            return None
        return StudentToken(token_id)

    @read_only("get-tokens-of")
    def get_tokens_of(self, owner: str) -> List[int]:
        return list(self.store.tokens_of.get(owner, []))

    @read_only("get-last-token-id")
    def get_last_token_id(self) -> int:
        return self.store.last_token_id

    @read_only("get-token-uri")
    def get_token_uri(self, token_id: int) -> Optional[str]:
        # No URI scheme is defined for certificates.
        Validators.validate_uint(token_id, "token-id").require()
        return None

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Raise ``InvariantViolation`` if the store is inconsistent."""
        store = self.store
        InvariantChecker.check_dense_ids("token ids", store.owner_of.keys(), store.last_token_id)
        for student, token_id in store.student_token.items():
            if store.owner_of.get(token_id) != student:
                raise InvariantViolation(f"student token {token_id} not owned by {student}")

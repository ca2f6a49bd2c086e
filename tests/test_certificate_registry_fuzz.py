"""
Property-based tests for the certificate registry.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from btcu.certificate import CertificateRegistry
from btcu.config import BtcuConfig
from btcu.hardening import Validators
from btcu.session import DEFAULT_ACCOUNTS

DEPLOYER = DEFAULT_ACCOUNTS["deployer"]
WALLETS = [DEFAULT_ACCOUNTS[f"wallet_{i}"] for i in range(1, 5)]


# ── Strategies ────────────────────────────────────────────────────────

wallets = st.sampled_from(WALLETS)
uint128 = st.integers(min_value=0, max_value=Validators.UINT128_MAX)


@st.composite
def principals(draw):
    """Standard testnet principals over the c32 alphabet."""
    body = draw(st.text(alphabet=Validators._C32, min_size=38, max_size=38))
    return "ST" + body


@st.composite
def mint_ops(draw):
    """A sequence of (caller, recipient) mint attempts."""
    callers = st.sampled_from([DEPLOYER] + WALLETS)
    return draw(st.lists(st.tuples(callers, wallets), min_size=1, max_size=20))


# ── Properties ────────────────────────────────────────────────────────

@given(st.lists(principals(), min_size=1, max_size=30, unique=True))
@settings(max_examples=50, deadline=None)
def test_distinct_students_receive_ids_one_to_k(students):
    registry = CertificateRegistry(DEPLOYER)
    ids = [registry.mint(DEPLOYER, s).value for s in students]
    assert ids == list(range(1, len(students) + 1))
    for token_id, student in zip(ids, students):
        assert registry.get_owner(token_id).value == student
    registry.check_invariants()


@given(st.lists(wallets, min_size=1, max_size=12))
@settings(max_examples=50, deadline=None)
def test_remint_fails_and_preserves_last_token_id(recipients):
    registry = CertificateRegistry(DEPLOYER)
    served = set()
    for recipient in recipients:
        before = registry.get_last_token_id().value
        result = registry.mint(DEPLOYER, recipient)
        if recipient in served:
            assert result.code == 104
            assert registry.get_last_token_id().value == before
        else:
            assert result.value == before + 1
            served.add(recipient)
    assert registry.get_last_token_id().value == len(served)


@given(mint_ops())
@settings(max_examples=50, deadline=None)
def test_only_instructors_mint(ops):
    registry = CertificateRegistry(DEPLOYER)
    for caller, recipient in ops:
        result = registry.mint(caller, recipient)
        if caller != DEPLOYER:
            assert result.code == 100
    assert set(registry.store.owner_of.values()) <= set(WALLETS)
    registry.check_invariants()


@given(uint128)
@settings(max_examples=100, deadline=None)
def test_token_uri_always_none(token_id):
    registry = CertificateRegistry(DEPLOYER)
    assert registry.get_token_uri(token_id).value is None


@given(st.integers(min_value=0, max_value=4), uint128)
@settings(max_examples=100, deadline=None)
def test_get_owner_none_beyond_last_token_id(mints, token_id):
    registry = CertificateRegistry(DEPLOYER)
    for wallet in WALLETS[:mints]:
        registry.mint(DEPLOYER, wallet)
    owner = registry.get_owner(token_id).value
    if 1 <= token_id <= mints:
        assert owner == WALLETS[token_id - 1]
    else:
        assert owner is None


@pytest.mark.slow
@given(st.lists(wallets, min_size=1, max_size=60))
@settings(max_examples=300, deadline=None)
def test_non_unique_registry_keeps_first_token(recipients):
    config = BtcuConfig.from_dict({"registry": {"unique_per_recipient": False}})
    registry = CertificateRegistry(DEPLOYER, config=config)
    first = {}
    for i, recipient in enumerate(recipients, start=1):
        assert registry.mint(DEPLOYER, recipient).value == i
        first.setdefault(recipient, i)
    for recipient, token_id in first.items():
        assert registry.get_student_token(recipient).value.token_id == token_id
    assert registry.get_last_token_id().value == len(recipients)

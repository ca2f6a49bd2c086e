"""
Property-based tests for the course ledger.
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from btcu.session import DEFAULT_ACCOUNTS, Session

DEPLOYER = DEFAULT_ACCOUNTS["deployer"]
INSTRUCTOR = DEFAULT_ACCOUNTS["wallet_1"]
STUDENTS = [DEFAULT_ACCOUNTS[f"wallet_{i}"] for i in range(2, 5)]


# ── Strategies ────────────────────────────────────────────────────────

prices = st.integers(min_value=0, max_value=10 ** 9)
balances = st.integers(min_value=0, max_value=10 ** 10)
course_names = st.text(
    alphabet=st.characters(min_codepoint=0x20, max_codepoint=0x7E),
    min_size=1,
    max_size=100,
)


@st.composite
def enrollment_attempts(draw):
    """Per-student (whitelisted, balance) plus a list of enrollment attempts."""
    profiles = {
        student: (draw(st.booleans()), draw(balances))
        for student in STUDENTS
    }
    attempts = draw(st.lists(
        st.tuples(st.sampled_from(STUDENTS), st.integers(min_value=0, max_value=3)),
        max_size=15,
    ))
    return profiles, attempts


def _session_with_course(price: int) -> Session:
    session = Session()
    session.ledger.set_token_contract(DEPLOYER, session.token)
    session.ledger.add_course(DEPLOYER, "Course", "Details", INSTRUCTOR, price, 50)
    return session


# ── Properties ────────────────────────────────────────────────────────

@given(st.lists(st.tuples(course_names, prices), min_size=1, max_size=25))
@settings(max_examples=40, deadline=None)
def test_course_ids_are_sequential(courses):
    session = Session()
    ledger = session.ledger
    for expected_id, (name, price) in enumerate(courses, start=1):
        assert ledger.add_course(DEPLOYER, name, "details", INSTRUCTOR, price, 0).value == expected_id
    assert ledger.get_course_count().value == len(courses)
    for course_id, (name, price) in enumerate(courses, start=1):
        course = ledger.get_course_details(course_id).value
        assert (course.name, course.price, course.accrued_fees) == (name, price, 0)
    ledger.check_invariants()


@given(st.integers(min_value=0, max_value=2 ** 64))
@settings(max_examples=50, deadline=None)
def test_unknown_course_ids_fail(course_id):
    session = _session_with_course(100)
    result = session.ledger.get_course_details(course_id)
    if course_id == 1:
        assert result.is_ok
    else:
        assert result.code == 101


@given(balances)
@settings(max_examples=50, deadline=None)
def test_self_whitelist_requires_minimum_balance(balance):
    session = _session_with_course(100)
    student = STUDENTS[0]
    if balance:
        session.token.mint(DEPLOYER, balance, student)
    result = session.ledger.enroll_whitelist(student, session.token)
    if balance >= 100000:
        assert result.value is True
    else:
        assert result.code == 7002
        assert session.ledger.is_whitelisted(student).code == 102


@given(prices, enrollment_attempts())
@settings(max_examples=60, deadline=None)
def test_enroll_succeeds_iff_all_conditions_hold(price, data):
    profiles, attempts = data
    session = _session_with_course(price)
    ledger, token = session.ledger, session.token

    for student, (whitelisted, balance) in profiles.items():
        if whitelisted:
            ledger.add_whitelist(DEPLOYER, student)
        if balance:
            token.mint(DEPLOYER, balance, student)

    enrolled = set()
    for student, course_id in attempts:
        whitelisted = profiles[student][0]
        exists = course_id == 1
        already = (course_id, student) in enrolled
        affordable = token.get_balance(student).value >= price

        result = ledger.enroll_course(student, course_id, token)
        should_succeed = whitelisted and exists and not already and affordable
        assert result.is_ok == should_succeed
        if should_succeed:
            enrolled.add((course_id, student))
        elif not whitelisted:
            assert result.code == 102
        elif not exists:
            assert result.code == 101
        elif already:
            assert result.code == 104
        else:
            assert result.code == 7002

    assert ledger.store.courses[1].accrued_fees == len(enrolled) * price
    assert token.get_balance(ledger.principal).value == len(enrolled) * price
    ledger.check_invariants()


@given(prices.filter(lambda p: p > 0), st.integers(min_value=1, max_value=3))
@settings(max_examples=40, deadline=None)
def test_claim_returns_accrued_and_resets(price, k):
    session = _session_with_course(price)
    ledger, token = session.ledger, session.token
    for student in STUDENTS[:k]:
        ledger.add_whitelist(DEPLOYER, student)
        token.mint(DEPLOYER, price, student)
        assert ledger.enroll_course(student, 1, token).is_ok

    assert ledger.claim_course_fees(INSTRUCTOR, 1, token).value == k * price
    assert ledger.store.courses[1].accrued_fees == 0
    assert token.get_balance(INSTRUCTOR).value == k * price
    assert ledger.claim_course_fees(INSTRUCTOR, 1, token).code == 7002


@pytest.mark.slow
@given(st.lists(st.sampled_from(STUDENTS), min_size=1, max_size=40))
@settings(max_examples=200, deadline=None)
def test_whitelist_add_remove_sequences(ops):
    session = Session()
    ledger = session.ledger
    members = set()
    for student in ops:
        if student in members:
            assert ledger.remove_whitelist(DEPLOYER, student).is_ok
            members.discard(student)
        else:
            assert ledger.add_whitelist(DEPLOYER, student).is_ok
            members.add(student)
        assert ledger.store.whitelist == members

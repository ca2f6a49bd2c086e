"""
Course Ledger

Course catalogue, beta whitelist, enrollments and per-course fee accrual,
paid in sBTC through a token collaborator.

    ┌───────────┐  enroll-course   ┌──────────────┐  transfer(price)  ┌───────────┐
    │  student  │ ───────────────▶ │ CourseLedger │ ────────────────▶ │  custody  │
    └───────────┘                  └──────────────┘                   └───────────┘
                                          │ claim-course-fees               │
                                          ▼                                 │
                                   ┌────────────┐   transfer(accrued)       │
                                   │ instructor │ ◀─────────────────────────┘
                                   └────────────┘

Custody is the ledger's own contract principal. The token is passed to each
balance-dependent call as a reference, either the collaborator object itself
or its principal (resolved through the ``resolver`` the ledger was built
with), and must match the reference configured by ``set-sbtc-contract``.

Copyright (c) 2026 BTC University. All rights reserved.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, List, Optional, Tuple

from btcu.config import BtcuConfig
from btcu.contract import Contract, public, read_only
from btcu.errors import (
    ALREADY_ENROLLED,
    ALREADY_WHITELISTED,
    NOT_OWNER,
    ContractError,
    ErrorCode,
)
from btcu.hardening import InvariantChecker, InvariantViolation, Validators
from btcu.observability import ContractLayer
from btcu.store import Course, CourseStore
from btcu.token import TokenCollaborator


TokenResolver = Callable[[str], Optional[TokenCollaborator]]


class CourseLedger(Contract):
    """
    Course enrollment ledger.

    Example:
        ledger = CourseLedger(deployer)
        ledger.set_token_contract(deployer, sbtc)
        ledger.add_course(deployer, "Bitcoin 101", "Intro", wallet1, 1000000, 50)
        ledger.add_whitelist(deployer, wallet2)
        ledger.enroll_course(wallet2, 1, sbtc)          # ok(True)
        ledger.claim_course_fees(wallet1, 1, sbtc)      # ok(1000000)
    """

    contract_name = "btc-university"
    layer = ContractLayer.LEDGER

    def __init__(
        self,
        deployer: str,
        store: Optional[CourseStore] = None,
        config: Optional[BtcuConfig] = None,
        name: Optional[str] = None,
        resolver: Optional[TokenResolver] = None,
    ):
        super().__init__(deployer, store or CourseStore(), config, name)
        self.resolver = resolver

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_owner(self, caller: str) -> None:
        if caller != self.deployer:
            raise ContractError(NOT_OWNER)

    def _token_ref(self, token: Any) -> Tuple[str, Optional[TokenCollaborator]]:
        """Split a token argument into (principal, collaborator)."""
        if isinstance(token, TokenCollaborator):
            return token.principal, token
        ref = Validators.validate_contract_principal(token, "token").require()
        return ref, self.resolver(ref) if self.resolver else None

    def _token(self, token: Any) -> TokenCollaborator:
        ref, collaborator = self._token_ref(token)
        configured = self.store.sbtc_contract
        if configured is None or ref != configured or collaborator is None:
            raise ContractError(ErrorCode.INVALID_TOKEN_CONTRACT)
        return collaborator

    def _course(self, course_id: int) -> Course:
        course = self.store.courses.get(course_id)
        if course is None:
            raise ContractError(ErrorCode.COURSE_NOT_FOUND)
        return course

    @staticmethod
    def _pay(token: TokenCollaborator, amount: int, sender: str, recipient: str) -> None:
        result = token.transfer(amount, sender, recipient)
        if not result.is_ok:
            raise ContractError(ErrorCode.NOT_ENOUGH_SBTC)

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    @public("set-sbtc-contract")
    def set_token_contract(self, caller: str, token: Any) -> bool:
        ref, _ = self._token_ref(token)
        self._require_owner(caller)
        self.store.sbtc_contract = ref
        return True

    @public("add-course")
    def add_course(
        self,
        caller: str,
        name: str,
        details: str,
        instructor: str,
        price: int,
        max_students: int,
    ) -> int:
        ledger_cfg = self.config.ledger
        name = Validators.validate_ascii(name, "name", ledger_cfg.name_max_length.get()).require()
        details = Validators.validate_ascii(
            details, "details", ledger_cfg.details_max_length.get()
        ).require()
        instructor = Validators.validate_principal(instructor, "instructor").require()
        price = Validators.validate_uint(price, "price").require()
        max_students = Validators.validate_uint(max_students, "max-students").require()

        self._require_owner(caller)

        store = self.store
        course_id = store.course_count + 1
        InvariantChecker.check_fits_uint("course-count", course_id)
        InvariantChecker.check_monotonic_increase("course-count", store.course_count, course_id)

        store.courses[course_id] = Course(
            id=course_id,
            name=name,
            details=details,
            instructor=instructor,
            price=price,
            max_students=max_students,
        )
        store.course_count = course_id
        return course_id

    # ------------------------------------------------------------------
    # Whitelist
    # ------------------------------------------------------------------

    @public("add-whitelist")
    def add_whitelist(self, caller: str, target: str) -> bool:
        target = Validators.validate_principal(target, "student").require()
        self._require_owner(caller)
        if target in self.store.whitelist:
            raise ContractError(ALREADY_WHITELISTED)
        self.store.whitelist.add(target)
        return True

    @public("remove-whitelist")
    def remove_whitelist(self, caller: str, target: str) -> bool:
        target = Validators.validate_principal(target, "student").require()
        self._require_owner(caller)
        if target not in self.store.whitelist:
            raise ContractError(ErrorCode.NOT_WHITELISTED)
        self.store.whitelist.discard(target)
        return True

    @public("enroll-whitelist")
    def enroll_whitelist(self, caller: str, token: Any) -> bool:
        sbtc = self._token(token)
        if sbtc.get_balance_available(caller) < self.config.ledger.min_sbtc_balance.get():
            raise ContractError(ErrorCode.NOT_ENOUGH_SBTC)
        self.store.whitelist.add(caller)
        return True

    @read_only("is-whitelisted-beta")
    def is_whitelisted(self, target: str) -> bool:
        if target not in self.store.whitelist:
            raise ContractError(ErrorCode.NOT_WHITELISTED)
        return True

    # ------------------------------------------------------------------
    # Enrollment
    # ------------------------------------------------------------------

    @public("enroll-course")
    def enroll_course(self, caller: str, course_id: int, token: Any) -> bool:
        course_id = Validators.validate_uint(course_id, "course-id").require()
        sbtc = self._token(token)
        store = self.store

        if caller not in store.whitelist:
            raise ContractError(ErrorCode.NOT_WHITELISTED)
        course = self._course(course_id)
        if store.is_enrolled(course_id, caller):
            raise ContractError(ALREADY_ENROLLED)
        if sbtc.get_balance_available(caller) < course.price:
            raise ContractError(ErrorCode.NOT_ENOUGH_SBTC)

        accrued = course.accrued_fees + course.price
        InvariantChecker.check_fits_uint("accrued-fees", accrued)

        # zero-priced courses skip the transfer
        if course.price > 0:
            self._pay(sbtc, course.price, caller, self.principal)

        store.enrollments[(course_id, caller)] = True
        store.enrolled_ids.setdefault(caller, []).append(course_id)
        course.accrued_fees = accrued
        return True

    @read_only("is-enrolled")
    def is_enrolled(self, course_id: int, student: str) -> bool:
        if not self.store.is_enrolled(course_id, student):
            raise ContractError(ErrorCode.NOT_ENROLLED)
        return True

    @read_only("get-enrolled-ids")
    def get_enrolled_ids(self, student: str) -> List[int]:
        return list(self.store.enrolled_ids.get(student, []))

    @public("complete-course")
    def complete_course(self, caller: str, course_id: int, student: str) -> bool:
        course_id = Validators.validate_uint(course_id, "course-id").require()
        student = Validators.validate_principal(student, "student").require()
        store = self.store

        if not store.is_enrolled(course_id, student):
            raise ContractError(ErrorCode.NOT_ENROLLED)
        course = self._course(course_id)
        if caller not in (course.instructor, self.deployer):
            raise ContractError(NOT_OWNER)

        store.completions[(course_id, student)] = True
        return True

    @read_only("is-completed")
    def is_completed(self, course_id: int, student: str) -> bool:
        if not self.store.completions.get((course_id, student), False):
            raise ContractError(ErrorCode.NOT_ENROLLED)
        return True

    # ------------------------------------------------------------------
    # Fees
    # ------------------------------------------------------------------

    @public("claim-course-fees")
    def claim_course_fees(self, caller: str, course_id: int, token: Any) -> int:
        course_id = Validators.validate_uint(course_id, "course-id").require()
        sbtc = self._token(token)

        course = self._course(course_id)
        if caller != course.instructor:
            raise ContractError(ErrorCode.UNAUTHORIZED)
        amount = course.accrued_fees
        if amount == 0:
            raise ContractError(ErrorCode.NOT_ENOUGH_SBTC)

        self._pay(sbtc, amount, self.principal, course.instructor)
        course.accrued_fees = 0
        return amount

    # ------------------------------------------------------------------
    # Catalogue
    # ------------------------------------------------------------------

    @read_only("get-course-details")
    def get_course_details(self, course_id: int) -> Course:
        return replace(self._course(course_id))

    @read_only("get-course-count")
    def get_course_count(self) -> int:
        return self.store.course_count

    @read_only("get-all-courses")
    def get_all_courses(self) -> List[Optional[Course]]:
        window = self.config.ledger.all_courses_window.get()
        courses = self.store.courses
        return [
            replace(courses[course_id]) if course_id in courses else None
            for course_id in range(1, window + 1)
        ]

    # ------------------------------------------------------------------
    # Invariants
    # ------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Raise ``InvariantViolation`` if the store is inconsistent."""
        store = self.store
        InvariantChecker.check_dense_ids("course ids", store.courses.keys(), store.course_count)
        for course in store.courses.values():
            enrolled = sum(1 for (cid, _), flag in store.enrollments.items() if cid == course.id and flag)
            if course.accrued_fees > enrolled * course.price:
                raise InvariantViolation(
                    f"course {course.id} accrued {course.accrued_fees} exceeds "
                    f"{enrolled} enrollments at {course.price}"
                )
        for (course_id, student) in store.completions:
            if not store.is_enrolled(course_id, student):
                raise InvariantViolation(f"completion without enrollment: {course_id}/{student}")

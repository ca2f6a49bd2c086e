"""
Contract state stores.

Each contract owns exactly one store object holding all of its maps, sets and
counters. Stores are plain data: they are constructed by the caller (or by the
contract with defaults) and handed in explicitly, so independent contract
instances never share state.

``snapshot``/``restore`` give whole-call rollback: a contract snapshots its
store before a public call and restores it if the call fails.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple


@dataclass
class Course:
    """A course record."""
    id: int
    name: str
    details: str
    instructor: str
    price: int
    max_students: int
    accrued_fees: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Public course tuple as returned by ``get-course-details``."""
        return {
            "name": self.name,
            "details": self.details,
            "instructor": self.instructor,
            "price": self.price,
            "max-students": self.max_students,
        }


@dataclass
class CertificateStore:
    """State of a certificate registry."""
    last_token_id: int = 0
    owner_of: Dict[int, str] = field(default_factory=dict)
    student_token: Dict[str, int] = field(default_factory=dict)
    tokens_of: Dict[str, List[int]] = field(default_factory=dict)
    instructors: Set[str] = field(default_factory=set)

    def snapshot(self) -> "CertificateStore":
        return copy.deepcopy(self)

    def restore(self, snapshot: "CertificateStore") -> None:
        self.__dict__.update(copy.deepcopy(snapshot).__dict__)


@dataclass
class CourseStore:
    """State of a course ledger."""
    course_count: int = 0
    courses: Dict[int, Course] = field(default_factory=dict)
    whitelist: Set[str] = field(default_factory=set)
    enrollments: Dict[Tuple[int, str], bool] = field(default_factory=dict)
    enrolled_ids: Dict[str, List[int]] = field(default_factory=dict)
    completions: Dict[Tuple[int, str], bool] = field(default_factory=dict)
    sbtc_contract: Optional[str] = None

    def snapshot(self) -> "CourseStore":
        return copy.deepcopy(self)

    def restore(self, snapshot: "CourseStore") -> None:
        self.__dict__.update(copy.deepcopy(snapshot).__dict__)

    def is_enrolled(self, course_id: int, student: str) -> bool:
        return self.enrollments.get((course_id, student), False)


@dataclass
class TokenStore:
    """State of a fungible token."""
    balances: Dict[str, int] = field(default_factory=dict)
    total_supply: int = 0

    def snapshot(self) -> "TokenStore":
        return copy.deepcopy(self)

    def restore(self, snapshot: "TokenStore") -> None:
        self.__dict__.update(copy.deepcopy(snapshot).__dict__)

"""Scenario loading and replay.

A scenario is a YAML document describing a sequence of contract calls:

    name: enroll and claim
    config:
      ledger: {min_sbtc_balance: 100000}
    steps:
      - contract: btc-university
        function: set-sbtc-contract
        args: [mock-sbtc-token]
        caller: deployer
        expect: {ok: true}
      - contract: btc-university
        function: claim-course-fees
        args: [1, mock-sbtc-token]
        caller: wallet_1
        expect: {err: 7002}

Documents are validated against ``schemas/scenario.schema.json`` (JSON Schema
2020-12) before replay. Account and contract names in ``args``, ``caller``
and ``expect.ok`` are resolved by the session.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from jsonschema import Draft202012Validator

from btcu.config import BtcuConfig, ConfigError
from btcu.errors import UnknownEntryPoint, _plain
from btcu.hardening import ValidationErrors
from btcu.observability import ContractLayer, get_logger, timed_operation
from btcu.session import Session


SCHEMA_DIR = Path(__file__).resolve().parent / "schemas"
SCENARIO_SCHEMA = SCHEMA_DIR / "scenario.schema.json"

logger = get_logger("scenario", ContractLayer.SCENARIO)


class ScenarioError(Exception):
    """Scenario document is unreadable or fails schema validation."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        super().__init__(message)


@lru_cache(maxsize=1)
def scenario_validator() -> Draft202012Validator:
    """Validator for scenario documents."""
    schema = json.loads(SCENARIO_SCHEMA.read_text(encoding="utf-8"))
    return Draft202012Validator(schema)


def validate_scenario(doc: Any) -> List[str]:
    """Validate a scenario document.

    Returns:
        List of validation error messages (empty if valid)
    """
    return [
        f"{error.json_path}: {error.message}"
        for error in scenario_validator().iter_errors(doc)
    ]


def load_scenario(path: Union[str, Path]) -> Dict[str, Any]:
    """Load and validate a scenario file."""
    path = Path(path)
    try:
        doc = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        raise ScenarioError(f"Failed to load scenario {path}: {e}") from e

    errors = validate_scenario(doc)
    if errors:
        raise ScenarioError(f"Invalid scenario {path}", errors)
    return doc


# =============================================================================
# REPLAY
# =============================================================================

@dataclass
class StepOutcome:
    """Result of replaying one scenario step."""
    index: int
    contract: str
    function: str
    caller: Optional[str]
    result: Optional[Dict[str, Any]] = None
    expected: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def matched(self) -> bool:
        if self.error is not None:
            return False
        if self.expected is None:
            return True
        return self.result == self.expected

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "index": self.index,
            "call": f"{self.contract}.{self.function}",
            "caller": self.caller,
            "result": self.result,
            "matched": self.matched,
        }
        if self.expected is not None:
            data["expected"] = self.expected
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ScenarioReport:
    """Outcome of a scenario replay."""
    name: str
    steps: List[StepOutcome] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        return all(step.matched for step in self.steps)

    @property
    def failures(self) -> List[StepOutcome]:
        return [step for step in self.steps if not step.matched]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "passed": self.passed,
            "steps": [step.to_dict() for step in self.steps],
        }


@timed_operation(logger, "replay_scenario")
def replay_scenario(
    doc: Dict[str, Any],
    base_config: Optional[BtcuConfig] = None,
) -> ScenarioReport:
    """Replay a scenario document against a fresh session."""
    errors = validate_scenario(doc)
    if errors:
        raise ScenarioError("Invalid scenario", errors)

    config = (base_config or BtcuConfig()).copy()
    try:
        config.apply(doc.get("config") or {})
    except (ConfigError, ValueError) as e:
        raise ScenarioError(f"Invalid scenario config: {e}") from e

    session = Session(config=config, accounts=doc.get("accounts"))
    report = ScenarioReport(name=doc["name"])

    for index, step in enumerate(doc["steps"]):
        outcome = StepOutcome(
            index=index,
            contract=step["contract"],
            function=step["function"],
            caller=step.get("caller", "deployer"),
        )
        if "expect" in step:
            outcome.expected = _expected(session, step["expect"])

        try:
            result = session.call(outcome.contract, outcome.function, step.get("args", []), outcome.caller)
        except (ValidationErrors, UnknownEntryPoint, KeyError, ValueError, TypeError) as e:
            outcome.error = f"{type(e).__name__}: {e}"
        else:
            outcome.result = result.to_dict()

        if not outcome.matched:
            logger.warning(
                f"step {index} {outcome.contract}.{outcome.function} mismatch",
                expected=outcome.expected,
                actual=outcome.result,
                error=outcome.error,
            )
        report.steps.append(outcome)

    session.check_invariants()
    logger.info(f"scenario '{report.name}' replayed", steps=len(report.steps), passed=report.passed)
    return report


def _expected(session: Session, expect: Dict[str, Any]) -> Dict[str, Any]:
    if "err" in expect:
        return {"err": expect["err"]}
    return {"ok": _plain(session.resolve(expect["ok"]))}

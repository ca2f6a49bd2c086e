"""
BTCU: BTC University contract simulator

In-memory reproduction of the BTC University contracts, usable as a
simulator or as a test oracle.

Architecture
────────────

    ┌─────────────────────────────────────────────────────────────────────────┐
    │                         BTC UNIVERSITY CONTRACTS                         │
    │                                                                          │
    │  SURFACE                                                                 │
    │    cli.py          btcu command line                                     │
    │    scenario.py     YAML scenarios, schema validation, replay             │
    │    session.py      Named deployments, account resolution                 │
    │                                                                          │
    │  CONTRACTS                                                               │
    │    certificate.py  Certificate NFT registry, mint policies               │
    │    course.py       Courses, whitelist, enrollment, fee accrual          │
    │    token.py        Token collaborator protocol, mock sBTC               │
    │                                                                          │
    │  FOUNDATION                                                              │
    │    contract.py     Entry points, per-call atomicity                     │
    │    store.py        Injectable state stores                              │
    │    errors.py       Stable error codes, Result                           │
    │    hardening.py    Input validation, invariants                         │
    │    config.py       YAML / environment configuration                     │
    │    observability.py  Structured logs, hash-chained events               │
    │                                                                          │
    └─────────────────────────────────────────────────────────────────────────┘

Design Principles
─────────────────

    Failed calls change nothing. Every public entry point snapshots its
    store and restores it on failure.

    Errors are values. Contract failures are ``err(code)`` results with
    stable numeric codes; only malformed input raises.

    No ambient state. Stores and configuration are passed in, so independent
    contract instances never interfere.

Copyright (c) 2026 BTC University. All rights reserved.
"""

__version__ = "0.3.0"


# Lazy imports to avoid circular dependencies
def __getattr__(name):
    """Lazy import BTCU modules on first access."""

    if name in ("ErrorCode", "ContractError", "Result", "UnknownEntryPoint"):
        from btcu import errors
        return getattr(errors, name)

    if name in ("CertificateRegistry", "MintPolicy", "InstructorSetPolicy",
                "SingleOwnerPolicy", "StudentToken"):
        from btcu import certificate
        return getattr(certificate, name)

    if name in ("CourseLedger",):
        from btcu import course
        return getattr(course, name)

    if name in ("TokenCollaborator", "MockSbtcToken", "TokenErrorCode"):
        from btcu import token
        return getattr(token, name)

    if name in ("Course", "CertificateStore", "CourseStore", "TokenStore"):
        from btcu import store
        return getattr(store, name)

    if name in ("Session", "DEFAULT_ACCOUNTS"):
        from btcu import session
        return getattr(session, name)

    if name in ("ScenarioReport", "ScenarioError", "load_scenario",
                "validate_scenario", "replay_scenario"):
        from btcu import scenario
        return getattr(scenario, name)

    if name in ("BtcuConfig", "ConfigManager", "get_config", "get_config_manager"):
        from btcu import config
        return getattr(config, name)

    if name in ("ValidationError", "ValidationErrors", "InvariantViolation"):
        from btcu import hardening
        return getattr(hardening, name)

    raise AttributeError(f"module 'btcu' has no attribute '{name}'")


__all__ = [
    "__version__",
    # Errors
    "ErrorCode",
    "ContractError",
    "Result",
    "UnknownEntryPoint",
    # Contracts
    "CertificateRegistry",
    "MintPolicy",
    "InstructorSetPolicy",
    "SingleOwnerPolicy",
    "StudentToken",
    "CourseLedger",
    "TokenCollaborator",
    "MockSbtcToken",
    "TokenErrorCode",
    # State
    "Course",
    "CertificateStore",
    "CourseStore",
    "TokenStore",
    # Simulation
    "Session",
    "DEFAULT_ACCOUNTS",
    "ScenarioReport",
    "ScenarioError",
    "load_scenario",
    "validate_scenario",
    "replay_scenario",
    # Configuration
    "BtcuConfig",
    "ConfigManager",
    "get_config",
    "get_config_manager",
    # Validation
    "ValidationError",
    "ValidationErrors",
    "InvariantViolation",
]

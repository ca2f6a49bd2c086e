"""
Simulation session.

A ``Session`` deploys one instance of each contract from a single deployer
and routes calls to them by contract name, the way a chain simulator does:

    session = Session()
    session.call("mock-sbtc-token", "mint", [5000000, "wallet_2"], caller="deployer")
    session.call("btc-university", "enroll-course", [1, "mock-sbtc-token"], caller="wallet_2")

String arguments naming an account (``wallet_2``) or a deployed contract
(``mock-sbtc-token``, ``deployer.mock-sbtc-token``) are resolved to principals
before the call. Each session owns fresh stores; sessions never share state.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from btcu.certificate import CertificateRegistry
from btcu.config import BtcuConfig
from btcu.contract import Contract
from btcu.course import CourseLedger
from btcu.errors import Result
from btcu.hardening import Validators
from btcu.observability import (
    ContractLayer,
    correlation_id_var,
    generate_correlation_id,
    get_logger,
)
from btcu.token import MockSbtcToken, TokenCollaborator


DEFAULT_ACCOUNTS: Dict[str, str] = {
    "deployer": "ST1PQHQKV0RJXZFY1DGX8MNSNYVE3VGZJSRTPGZGM",
    "wallet_1": "ST1SJ3DTE5DN7X54YDH5D64R3BCB6A2AG2ZQ8YPD5",
    "wallet_2": "ST2CY5V39NHDPWSXMW9QDT3HC3GD6Q6XX4CFRK9AG",
    "wallet_3": "ST2JHG361ZXG51QTKY2NQCVBPPRRE2KZB1HR05NNC",
    "wallet_4": "ST2REHHS5J3CERCRBEPMGH7921Q6PYKAADT7JP2VB",
}


class Session:
    """Deployed contracts plus named accounts."""

    def __init__(
        self,
        config: Optional[BtcuConfig] = None,
        accounts: Optional[Mapping[str, str]] = None,
    ):
        self.config = config or BtcuConfig()
        self.accounts: Dict[str, str] = dict(DEFAULT_ACCOUNTS)
        for name, address in (accounts or {}).items():
            self.accounts[name] = Validators.validate_principal(address, f"accounts.{name}").require()

        self.logger = get_logger("session", ContractLayer.SESSION)
        self.contracts: Dict[str, Contract] = {}
        self._by_principal: Dict[str, Contract] = {}

        deployer = self.deployer
        self.token = self.deploy(MockSbtcToken(deployer, config=self.config))
        self.registry = self.deploy(CertificateRegistry(deployer, config=self.config))
        self.ledger = self.deploy(
            CourseLedger(deployer, config=self.config, resolver=self.resolve_token)
        )

    @property
    def deployer(self) -> str:
        return self.accounts["deployer"]

    def deploy(self, contract: Contract) -> Any:
        """Register a contract under its name and principal."""
        if contract.name in self.contracts:
            raise ValueError(f"contract already deployed: {contract.name}")
        self.contracts[contract.name] = contract
        self._by_principal[contract.principal] = contract
        self.logger.debug(f"deployed {contract.principal}", contract=contract.name)
        return contract

    def contract(self, name: str) -> Contract:
        try:
            return self.contracts[name]
        except KeyError:
            raise KeyError(f"no contract named '{name}' in session") from None

    def resolve_token(self, principal: str) -> Optional[TokenCollaborator]:
        contract = self._by_principal.get(principal)
        if isinstance(contract, TokenCollaborator):
            return contract
        return None

    def resolve(self, value: Any) -> Any:
        """Map account and contract names to principals; pass anything else through."""
        if isinstance(value, list):
            return [self.resolve(v) for v in value]
        if isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        if not isinstance(value, str):
            return value
        if value in self.accounts:
            return self.accounts[value]
        if value in self.contracts:
            return self.contracts[value].principal
        owner, dot, name = value.partition(".")
        if dot and owner in self.accounts:
            return f"{self.accounts[owner]}.{name}"
        return value

    def call(
        self,
        contract: str,
        function: str,
        args: Sequence[Any] = (),
        caller: Optional[str] = "deployer",
    ) -> Result:
        """Call ``contract.function`` with resolved arguments."""
        target = self.contract(contract)
        resolved: List[Any] = [self.resolve(a) for a in args]
        sender = self.resolve(caller) if caller is not None else None

        token = correlation_id_var.set(generate_correlation_id())
        try:
            return target.call(function, resolved, sender)
        finally:
            correlation_id_var.reset(token)

    def check_invariants(self) -> None:
        """Run every contract's invariant check."""
        for contract in self.contracts.values():
            check = getattr(contract, "check_invariants", None)
            if check is not None:
                check()

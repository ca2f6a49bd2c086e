"""
Fungible-token collaborator.

The course ledger needs exactly two capabilities from the token it is paid
in: a balance lookup and a transfer. ``TokenCollaborator`` names that
protocol; ``MockSbtcToken`` is an in-memory implementation for simulations
and tests.

The mock's failure codes are local to the token and are not part of the
ledger's error-code table; the ledger maps every transfer failure to
``ErrorCode.NOT_ENOUGH_SBTC``.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Optional, Protocol, runtime_checkable

from btcu.config import BtcuConfig
from btcu.contract import Contract, public, read_only
from btcu.errors import ContractError, Result
from btcu.hardening import InvariantChecker, Validators
from btcu.observability import ContractLayer
from btcu.store import TokenStore


class TokenErrorCode(IntEnum):
    """Failure codes of the mock token."""
    INSUFFICIENT_BALANCE = 1
    SAME_PRINCIPAL = 2
    NON_POSITIVE_AMOUNT = 3
    NOT_TOKEN_OWNER = 4

    @property
    def description(self) -> str:
        return {
            TokenErrorCode.INSUFFICIENT_BALANCE: "insufficient balance",
            TokenErrorCode.SAME_PRINCIPAL: "sender and recipient are the same",
            TokenErrorCode.NON_POSITIVE_AMOUNT: "amount must be positive",
            TokenErrorCode.NOT_TOKEN_OWNER: "caller is not the token owner",
        }[self]


@runtime_checkable
class TokenCollaborator(Protocol):
    """
    Capabilities the course ledger consumes from a fungible token.
    """

    @property
    def principal(self) -> str:
        """Contract principal used as the token reference."""
        ...

    def get_balance_available(self, owner: str) -> int:
        """Spendable balance of ``owner`` in base units."""
        ...

    def transfer(self, amount: int, sender: str, recipient: str) -> Result:
        """Move ``amount`` from ``sender`` to ``recipient``; ``ok(True)`` or ``err``."""
        ...


class MockSbtcToken(Contract):
    """
    In-memory sBTC stand-in.

    Only the deployer may mint. Transfers through the ``transfer`` entry point
    require the caller to be the sender; the collaborator method
    ``transfer`` is the trusted path used by other contracts.
    """

    contract_name = "mock-sbtc-token"
    layer = ContractLayer.TOKEN

    NAME = "sBTC"
    SYMBOL = "sBTC"
    DECIMALS = 8

    def __init__(
        self,
        deployer: str,
        store: Optional[TokenStore] = None,
        config: Optional[BtcuConfig] = None,
        name: Optional[str] = None,
    ):
        super().__init__(deployer, store or TokenStore(), config, name)

    # ------------------------------------------------------------------
    # Collaborator capability
    # ------------------------------------------------------------------

    def get_balance_available(self, owner: str) -> int:
        return self.store.balances.get(owner, 0)

    def transfer(self, amount: int, sender: str, recipient: str) -> Result:
        """Trusted transfer used by other contracts holding custody rights."""
        with self._lock:
            snapshot = self.store.snapshot()
            try:
                self._move(amount, sender, recipient)
            except ContractError as exc:
                self.store.restore(snapshot)
                self.logger.operation("transfer", 0.0, success=False, error_code=int(exc.code))
                return Result.failure(exc.code)
            self.events.emit("transfer", sender, amount=amount, recipient=recipient)
            return Result.success(True)

    def _move(self, amount: int, sender: str, recipient: str) -> None:
        amount = Validators.validate_uint(amount, "amount").require()
        sender = Validators.validate_principal(sender, "sender").require()
        recipient = Validators.validate_principal(recipient, "recipient").require()

        if amount <= 0:
            raise ContractError(TokenErrorCode.NON_POSITIVE_AMOUNT)
        if sender == recipient:
            raise ContractError(TokenErrorCode.SAME_PRINCIPAL)

        balances = self.store.balances
        available = balances.get(sender, 0)
        if available < amount:
            raise ContractError(TokenErrorCode.INSUFFICIENT_BALANCE)

        balances[sender] = available - amount
        balances[recipient] = balances.get(recipient, 0) + amount
        InvariantChecker.check_non_negative("balance", balances[sender])

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    @public("mint")
    def mint(self, caller: str, amount: int, recipient: str) -> bool:
        amount = Validators.validate_uint(amount, "amount").require()
        recipient = Validators.validate_principal(recipient, "recipient").require()

        if caller != self.deployer:
            raise ContractError(TokenErrorCode.NOT_TOKEN_OWNER)
        if amount <= 0:
            raise ContractError(TokenErrorCode.NON_POSITIVE_AMOUNT)

        self.store.balances[recipient] = self.store.balances.get(recipient, 0) + amount
        self.store.total_supply += amount
        InvariantChecker.check_fits_uint("total-supply", self.store.total_supply)
        return True

    @public("transfer")
    def transfer_as_caller(self, caller: str, amount: int, sender: str, recipient: str) -> bool:
        if caller != sender:
            raise ContractError(TokenErrorCode.NOT_TOKEN_OWNER)
        self._move(amount, sender, recipient)
        return True

    @read_only("get-balance-available")
    def balance_available(self, owner: str) -> int:
        return self.get_balance_available(owner)

    @read_only("get-balance")
    def get_balance(self, owner: str) -> int:
        return self.store.balances.get(owner, 0)

    @read_only("get-total-supply")
    def get_total_supply(self) -> int:
        return self.store.total_supply

    @read_only("get-name")
    def get_name(self) -> str:
        return self.NAME

    @read_only("get-symbol")
    def get_symbol(self) -> str:
        return self.SYMBOL

    @read_only("get-decimals")
    def get_decimals(self) -> int:
        return self.DECIMALS

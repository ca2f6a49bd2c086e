"""
Contract base class and entry-point plumbing.

A contract is a Python object whose callable surface is a set of named entry
points, mirroring the kebab-case function names of the on-chain contract:

    registry.mint(deployer, wallet1)                     # Python API
    registry.call("mint-for-student", [wallet1], deployer)  # by name

Public entry points take the caller first and run atomically: the contract's
store is snapshotted under the contract lock and restored if the call fails,
whether by ``ContractError`` (returned as ``err``) or by any other exception
(re-raised). Read-only entry points never mutate state.

Every call returns a ``Result``.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from btcu.config import BtcuConfig
from btcu.errors import ContractError, Result, UnknownEntryPoint, _plain
from btcu.hardening import Validators
from btcu.observability import ContractLayer, EventLog, get_logger


@dataclass(frozen=True)
class EntryPoint:
    """Metadata for one callable contract function."""
    name: str
    method_name: str
    read_only: bool
    aliases: Tuple[str, ...] = ()


def public(name: str, *aliases: str) -> Callable:
    """Mark a method as a state-changing entry point."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: "Contract", caller: str, *args: Any, **kwargs: Any) -> Result:
            return self._execute_public(name, func, caller, args, kwargs)
        wrapper._btcu_entry = EntryPoint(name, func.__name__, False, aliases)  # type: ignore[attr-defined]
        return wrapper
    return decorator


def read_only(name: str, *aliases: str) -> Callable:
    """Mark a method as a read-only entry point."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: "Contract", *args: Any, **kwargs: Any) -> Result:
            return self._execute_read_only(name, func, args, kwargs)
        wrapper._btcu_entry = EntryPoint(name, func.__name__, True, aliases)  # type: ignore[attr-defined]
        return wrapper
    return decorator


class Contract:
    """
    Base class for in-memory contracts.

    Subclasses set ``contract_name`` and ``layer`` and declare entry points
    with ``@public`` / ``@read_only``.
    """

    contract_name: str = ""
    layer: ContractLayer = ContractLayer.SESSION
    _entry_points: Dict[str, EntryPoint] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        table: Dict[str, EntryPoint] = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                entry = getattr(attr, "_btcu_entry", None)
                if entry is None:
                    continue
                table[entry.name] = entry
                for alias in entry.aliases:
                    table[alias] = entry
        cls._entry_points = table

    def __init__(
        self,
        deployer: str,
        store: Any,
        config: Optional[BtcuConfig] = None,
        name: Optional[str] = None,
    ):
        self.deployer = Validators.validate_principal(deployer, "deployer").require()
        self.name = name or self.contract_name
        self.principal = Validators.validate_contract_principal(
            f"{self.deployer}.{self.name}", "contract"
        ).require()
        self.store = store
        self.config = config or BtcuConfig()
        self.logger = get_logger(self.name, self.layer)
        self.events = EventLog(self.principal, self.logger)
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    @classmethod
    def entry_points(cls) -> Dict[str, EntryPoint]:
        return dict(cls._entry_points)

    def call(self, function: str, args: Sequence[Any] = (), caller: Optional[str] = None) -> Result:
        """
        Invoke an entry point by its on-chain name.

        ``caller`` is required for public functions; read-only functions
        ignore it, as any principal may call them.
        """
        entry = self._entry_points.get(function)
        if entry is None:
            raise UnknownEntryPoint(self.name, function)

        method = getattr(self, entry.method_name)
        if entry.read_only:
            return method(*args)
        if caller is None:
            raise ValueError(f"{self.name}.{function} requires a caller")
        return method(caller, *args)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _execute_public(
        self,
        name: str,
        func: Callable,
        caller: str,
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> Result:
        caller = Validators.validate_principal(caller, "caller").require()

        with self._lock:
            snapshot = self.store.snapshot()
            start = time.monotonic()
            try:
                value = func(self, caller, *args, **kwargs)
            except ContractError as exc:
                self.store.restore(snapshot)
                self.logger.operation(
                    name,
                    (time.monotonic() - start) * 1000,
                    success=False,
                    error_code=int(exc.code),
                    caller=caller,
                )
                return Result.failure(exc.code)
            except Exception:
                self.store.restore(snapshot)
                self.logger.error(f"{name} aborted; state rolled back", exc_info=True, caller=caller)
                raise

            self.logger.operation(name, (time.monotonic() - start) * 1000, caller=caller)
            self.events.emit(
                name,
                caller,
                args=[_plain(_ref(a)) for a in args],
                result=_plain(value),
            )
            return Result.success(value)

    def _execute_read_only(
        self,
        name: str,
        func: Callable,
        args: Tuple[Any, ...],
        kwargs: Dict[str, Any],
    ) -> Result:
        with self._lock:
            try:
                value = func(self, *args, **kwargs)
            except ContractError as exc:
                self.logger.debug(f"{name} returned err u{int(exc.code)}", operation=name)
                return Result.failure(exc.code)
            return Result.success(value)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.principal}>"


def _ref(arg: Any) -> Any:
    """Contract-reference arguments are recorded by principal."""
    if isinstance(arg, Contract):
        return arg.principal
    return arg

"""In-memory ledger the reference executor and simulated venues run against.

Holds ERC-20 balances and allowances, native balances, a block timestamp and
the contracts reachable by address. snapshot()/restore() give transaction
atomicity: a reverted execute() restores the exact pre-call ledger.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Protocol

from aggregator.errors import ExecutionReverted, TransferFailed
from aggregator.models.types import UINT256_MAX, normalize_address


class Contract(Protocol):
    """A callable account in the ledger."""

    address: str

    def handle(self, state: ChainState, caller: str, value: int, payload: bytes) -> bytes:
        """Execute a call and return its raw return data.

        Raises:
            ExecutionReverted: If the call reverts
        """
        ...


@dataclass(frozen=True)
class LedgerSnapshot:
    balances: dict[tuple[str, str], int]
    allowances: dict[tuple[str, str, str], int]
    native: dict[str, int]


@dataclass
class ChainState:
    """Token and native balances of every account, keyed by lowercase address."""

    balances: dict[tuple[str, str], int] = field(default_factory=dict)
    allowances: dict[tuple[str, str, str], int] = field(default_factory=dict)
    native: dict[str, int] = field(default_factory=dict)
    contracts: dict[str, Contract] = field(default_factory=dict)
    timestamp: int = field(default_factory=lambda: int(time.time()))

    # -- accounts ---------------------------------------------------------

    def register(self, contract: Contract) -> None:
        self.contracts[normalize_address(contract.address)] = contract

    def balance_of(self, token: str, holder: str) -> int:
        return self.balances.get((normalize_address(token), normalize_address(holder)), 0)

    def native_balance_of(self, holder: str) -> int:
        return self.native.get(normalize_address(holder), 0)

    def allowance(self, token: str, owner: str, spender: str) -> int:
        key = (normalize_address(token), normalize_address(owner), normalize_address(spender))
        return self.allowances.get(key, 0)

    # -- mutations --------------------------------------------------------

    def mint(self, token: str, to: str, amount: int) -> None:
        key = (normalize_address(token), normalize_address(to))
        self.balances[key] = self.balances.get(key, 0) + amount

    def burn(self, token: str, holder: str, amount: int) -> None:
        key = (normalize_address(token), normalize_address(holder))
        balance = self.balances.get(key, 0)
        if balance < amount:
            raise TransferFailed("ERC20: burn amount exceeds balance")
        self.balances[key] = balance - amount

    def set_native_balance(self, holder: str, amount: int) -> None:
        self.native[normalize_address(holder)] = amount

    def transfer(self, token: str, sender: str, to: str, amount: int) -> None:
        """Move tokens between accounts.

        Raises:
            TransferFailed: If the sender's balance is too low
        """
        key = (normalize_address(token), normalize_address(sender))
        balance = self.balances.get(key, 0)
        if balance < amount:
            raise TransferFailed("ERC20: transfer amount exceeds balance")
        self.balances[key] = balance - amount
        self.mint(token, to, amount)

    def approve(self, token: str, owner: str, spender: str, amount: int) -> None:
        """Set (not add to) an allowance."""
        key = (normalize_address(token), normalize_address(owner), normalize_address(spender))
        self.allowances[key] = amount

    def transfer_from(self, token: str, spender: str, owner: str, to: str, amount: int) -> None:
        """Move tokens on behalf of owner, consuming spender's allowance.

        A max-uint256 allowance is treated as infinite and not decremented.

        Raises:
            TransferFailed: If the allowance or the owner's balance is too low
        """
        current = self.allowance(token, owner, spender)
        if current < amount:
            raise TransferFailed("ERC20: insufficient allowance")
        self.transfer(token, owner, to, amount)
        if current != UINT256_MAX:
            self.approve(token, owner, spender, current - amount)

    def transfer_native(self, sender: str, to: str, amount: int) -> None:
        if amount == 0:
            return
        sender_key = normalize_address(sender)
        balance = self.native.get(sender_key, 0)
        if balance < amount:
            raise TransferFailed("Address: insufficient balance")
        self.native[sender_key] = balance - amount
        to_key = normalize_address(to)
        self.native[to_key] = self.native.get(to_key, 0) + amount

    def call(self, caller: str, target: str, value: int, payload: bytes) -> bytes:
        """Send value and dispatch payload to the contract at target.

        Raises:
            ExecutionReverted: If the target has no code or the call reverts
        """
        self.transfer_native(caller, target, value)
        contract = self.contracts.get(normalize_address(target))
        if contract is None:
            raise ExecutionReverted()
        return contract.handle(self, caller, value, payload)

    # -- atomicity --------------------------------------------------------

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            balances=dict(self.balances),
            allowances=dict(self.allowances),
            native=dict(self.native),
        )

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self.balances = dict(snapshot.balances)
        self.allowances = dict(snapshot.allowances)
        self.native = dict(snapshot.native)


__all__ = ["ChainState", "Contract", "LedgerSnapshot"]

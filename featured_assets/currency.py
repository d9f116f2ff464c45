"""
Reserve Currency Module

Interface to the currency that backs asset-class and metadata deposits, plus
an in-memory implementation with free and reserved balances. Amounts are
unsigned integers in the smallest currency unit; floats are never accepted.
"""

from abc import ABC, abstractmethod
from typing import Dict
import threading

from .arithmetic import BALANCE_MAX, is_unsigned, saturating_add, saturating_sub
from .logging_config import get_logger


class InsufficientBalance(Exception):
    """Raised when a reservation or repatriation cannot be covered"""

    def __init__(self, who: str, requested: int, available: int):
        self.who = who
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient balance for {who}: requested {requested}, available {available}"
        )


class ReservableCurrency(ABC):
    """Currency supporting reservation of funds"""

    @abstractmethod
    def free_balance(self, who: str) -> int:
        """Balance available for reservation"""
        pass

    @abstractmethod
    def reserved_balance(self, who: str) -> int:
        """Balance currently held in reserve"""
        pass

    @abstractmethod
    def reserve(self, who: str, amount: int) -> None:
        """
        Move amount from free to reserved.

        Raises:
            InsufficientBalance: If the free balance is below amount
        """
        pass

    @abstractmethod
    def unreserve(self, who: str, amount: int) -> int:
        """
        Move up to amount from reserved back to free.

        Returns:
            The part of amount that could not be unreserved
        """
        pass

    @abstractmethod
    def repatriate_reserved(self, slashed: str, beneficiary: str, amount: int) -> None:
        """
        Move amount of slashed's reserve into beneficiary's reserve.

        Raises:
            InsufficientBalance: If slashed's reserve is below amount
        """
        pass


class InMemoryCurrency(ReservableCurrency):
    """In-memory reservable currency for tests and single-process deployments"""

    def __init__(self):
        self._free: Dict[str, int] = {}
        self._reserved: Dict[str, int] = {}
        self._lock = threading.RLock()
        self.logger = get_logger("featured_assets.currency")

    def deposit_creating(self, who: str, amount: int) -> int:
        """Credit amount to who's free balance, returning the new free balance"""
        if not is_unsigned(amount):
            raise ValueError(f"Invalid currency amount: {amount!r}")
        with self._lock:
            self._free[who] = saturating_add(self._free.get(who, 0), amount, BALANCE_MAX)
            return self._free[who]

    def free_balance(self, who: str) -> int:
        with self._lock:
            return self._free.get(who, 0)

    def reserved_balance(self, who: str) -> int:
        with self._lock:
            return self._reserved.get(who, 0)

    def total_balance(self, who: str) -> int:
        """Free plus reserved balance"""
        with self._lock:
            return self._free.get(who, 0) + self._reserved.get(who, 0)

    def reserve(self, who: str, amount: int) -> None:
        if amount == 0:
            return
        with self._lock:
            free = self._free.get(who, 0)
            if free < amount:
                raise InsufficientBalance(who, amount, free)
            self._free[who] = free - amount
            self._reserved[who] = self._reserved.get(who, 0) + amount
        self.logger.debug(f"Reserved {amount} from {who}")

    def unreserve(self, who: str, amount: int) -> int:
        if amount == 0:
            return 0
        with self._lock:
            reserved = self._reserved.get(who, 0)
            actual = min(reserved, amount)
            self._reserved[who] = reserved - actual
            self._free[who] = saturating_add(self._free.get(who, 0), actual, BALANCE_MAX)
        self.logger.debug(f"Unreserved {actual} to {who}")
        return saturating_sub(amount, actual)

    def repatriate_reserved(self, slashed: str, beneficiary: str, amount: int) -> None:
        if amount == 0 or slashed == beneficiary:
            return
        with self._lock:
            reserved = self._reserved.get(slashed, 0)
            if reserved < amount:
                raise InsufficientBalance(slashed, amount, reserved)
            self._reserved[slashed] = reserved - amount
            self._reserved[beneficiary] = saturating_add(
                self._reserved.get(beneficiary, 0), amount, BALANCE_MAX
            )
        self.logger.debug(f"Repatriated {amount} reserved from {slashed} to {beneficiary}")

"""
Host Account Registry Module

The ledger asks the host registry whether a holder has a footprint outside
the ledger. Holders that exist there take a consumer reference instead of a
zombie slot.
"""

from abc import ABC, abstractmethod
from typing import Dict
import threading


class NoProviders(Exception):
    """Raised when a consumer reference is requested for an account without providers"""

    def __init__(self, who: str):
        self.who = who
        super().__init__(f"Account {who} has no providers")


class AccountRegistry(ABC):
    """Reference-counting view of the host account system"""

    @abstractmethod
    def account_exists(self, who: str) -> bool:
        """Check whether who has a footprint outside the ledger"""
        pass

    @abstractmethod
    def inc_consumers(self, who: str) -> None:
        """
        Add a consumer reference to who.

        Raises:
            NoProviders: If who does not exist
        """
        pass

    @abstractmethod
    def dec_consumers(self, who: str) -> None:
        """Drop a consumer reference from who (saturating)"""
        pass


class InMemoryAccountRegistry(AccountRegistry):
    """Provider/consumer counters held in memory"""

    def __init__(self):
        self._providers: Dict[str, int] = {}
        self._consumers: Dict[str, int] = {}
        self._lock = threading.RLock()

    def inc_providers(self, who: str) -> None:
        """Give who a footprint in the host system"""
        with self._lock:
            self._providers[who] = self._providers.get(who, 0) + 1

    def dec_providers(self, who: str) -> None:
        """
        Drop a provider reference from who.

        Raises:
            ValueError: If who still has consumers and this is its last provider
        """
        with self._lock:
            providers = self._providers.get(who, 0)
            if providers == 0:
                return
            if providers == 1 and self._consumers.get(who, 0) > 0:
                raise ValueError(f"Account {who} still has consumers")
            self._providers[who] = providers - 1

    def account_exists(self, who: str) -> bool:
        with self._lock:
            return self._providers.get(who, 0) > 0

    def inc_consumers(self, who: str) -> None:
        with self._lock:
            if self._providers.get(who, 0) == 0:
                raise NoProviders(who)
            self._consumers[who] = self._consumers.get(who, 0) + 1

    def dec_consumers(self, who: str) -> None:
        with self._lock:
            self._consumers[who] = max(self._consumers.get(who, 0) - 1, 0)

    def consumers(self, who: str) -> int:
        """Current consumer reference count of who"""
        with self._lock:
            return self._consumers.get(who, 0)

    def providers(self, who: str) -> int:
        """Current provider reference count of who"""
        with self._lock:
            return self._providers.get(who, 0)

"""
Credential persistence.

The secure store itself (keychain, OS vault) lives outside this package;
the controller only talks to the :class:`CredentialStore` interface.
"""

import copy
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional

from .credential import Credential


class CredentialStore(ABC):
    """Persists credentials under an identifier."""

    @abstractmethod
    def retrieve(self, identifier: str) -> Optional[Credential]:
        """Return the stored credential or None."""

    @abstractmethod
    def store(self, credential: Optional[Credential], identifier: str) -> bool:
        """
        Store ``credential`` under ``identifier``.

        Storing None removes the entry. Returns True on success.
        """

    def delete(self, identifier: str) -> bool:
        return self.store(None, identifier)


class InMemoryCredentialStore(CredentialStore):
    """
    Process-local store.

    Keeps the serialized form, so a retrieved credential is always a fresh
    object built through :meth:`Credential.from_dict`.
    """

    def __init__(self):
        self._items: Dict[str, dict] = {}
        self._lock = threading.Lock()

    def retrieve(self, identifier: str) -> Optional[Credential]:
        with self._lock:
            data = self._items.get(identifier)
        if data is None:
            return None
        return Credential.from_dict(copy.deepcopy(data))

    def store(self, credential: Optional[Credential], identifier: str) -> bool:
        with self._lock:
            if credential is None:
                self._items.pop(identifier, None)
            else:
                self._items[identifier] = credential.to_dict()
        return True

    def __contains__(self, identifier: str) -> bool:
        with self._lock:
            return identifier in self._items

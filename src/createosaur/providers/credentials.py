"""
Credential resolution for provider adapters.

Each adapter asks a CredentialResolver for its vendor key. The resolver
walks an ordered list of sources and returns the first non-empty value,
so tests and the server can swap in a fixed mapping instead of touching
the local store or the process environment.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from createosaur.core.storage import LocalStore


class CredentialSource(ABC):
    """A single place a credential may be found."""

    @abstractmethod
    def lookup(self, key: str) -> str | None:
        ...


class StoreCredentialSource(CredentialSource):
    """Credentials saved by the user in client-local storage."""

    def __init__(self, store: LocalStore):
        self.store = store

    def lookup(self, key: str) -> str | None:
        return self.store.get(key)


class EnvironmentCredentialSource(CredentialSource):
    """Credentials supplied through environment variables of the same name."""

    def __init__(self, environ: Mapping[str, str] | None = None):
        self._environ = environ

    def lookup(self, key: str) -> str | None:
        environ = self._environ if self._environ is not None else os.environ
        return environ.get(key) or None


class StaticCredentialSource(CredentialSource):
    """Fixed credentials, e.g. a server-side admin key."""

    def __init__(self, values: Mapping[str, str]):
        self._values = dict(values)

    def lookup(self, key: str) -> str | None:
        return self._values.get(key) or None


class CredentialResolver:
    """Ordered credential lookup; the first source with a value wins."""

    def __init__(self, sources: Sequence[CredentialSource]):
        self.sources = list(sources)

    @classmethod
    def default(cls, store: LocalStore) -> CredentialResolver:
        """Local storage first, then the process environment."""
        return cls([StoreCredentialSource(store), EnvironmentCredentialSource()])

    @classmethod
    def static(cls, values: Mapping[str, str]) -> CredentialResolver:
        return cls([StaticCredentialSource(values)])

    def resolve(self, key: str) -> str | None:
        for source in self.sources:
            value = source.lookup(key)
            if value:
                return value.strip() or None
        return None

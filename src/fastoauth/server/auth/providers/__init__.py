from .in_memory import InMemoryClientStore, InMemoryOAuthProvider

__all__ = ["InMemoryClientStore", "InMemoryOAuthProvider"]

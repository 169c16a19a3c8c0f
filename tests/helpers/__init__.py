from .inmemory_table import InMemTable

__all__ = ["InMemTable"]

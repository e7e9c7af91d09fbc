"""Certified maps backed by Merkle hash trees, witnesses, principals and ledger types."""

__version__ = "0.1.0"
__all__ = ["hashtree", "principal", "rbtree", "witness", "ledger"]
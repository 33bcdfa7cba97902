"""
Contracts Module

Immutable data types shared by every layer of the insight engine. Detectors,
adapters, the validation gate and the API talk to each other only through
these types; none of them imports another layer's internals.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Errors are values (Error / ErrorCode / Result), not control flow
3. All timestamps are timezone-aware UTC; boundary strings end in Z
4. Hash-based identity for cards and audit entries
"""

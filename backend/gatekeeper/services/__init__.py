"""Service Layer — imperative shell orchestrating core logic around IO.

Invariants:
    - Services own the AsyncSession passed in; they commit, callers never do
    - Every external result is classified before a session transition is applied
"""

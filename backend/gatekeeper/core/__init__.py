"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Evaluator and state transitions are pure and deterministic given their inputs

Design Decisions:
    - Functional core separated from imperative shell: services/ fetches, core/ decides
"""

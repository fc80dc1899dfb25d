"""Rule engine dispatch.

Responsibilities:
  - Register one stateless calculator per goal type and dispatch by config type.
  - Must not hold per-call state; engines are shared across callers.
"""

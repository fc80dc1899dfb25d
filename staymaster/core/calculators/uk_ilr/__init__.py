"""Continuous-residence (UK ILR) calculator.

Responsibilities:
  - Qualifying-period rules, rolling 12-month absence evaluation, validation and
    result assembly for the uk_ilr goal type.
"""

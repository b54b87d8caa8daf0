"""
Personal Finance Manager - Core Engine

Validates per-year transaction ledgers, folds them into monthly and
annual income/expense summaries, and runs priority-weighted "what-if"
spending simulations with multi-year savings projections.

DESIGN PRINCIPLES:
1. A ledger covers exactly one year
2. Strict checks gate uploads, lenient parsing feeds simulations
3. No silent drops: every rejected record has a readable reason
4. Simulation state belongs to the caller, never to the engine
5. Storage is a seam: "read a path, get lines"
"""

__version__ = "1.0.0"
__author__ = "PFM Team"

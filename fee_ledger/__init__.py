"""
Fee Ledger - school-fee installment plans

A permission-scoped ledger of installment plans with:
- Plan calculation (deposit, platform fee, installments)
- A Pending -> Successful / Failed payment workflow
- Atomic approval with balance update and notification fan-out
- Guardian, bursar and administrator views, including "act as"
- In-memory and SQLAlchemy-backed stores
"""

__version__ = "0.1.0"

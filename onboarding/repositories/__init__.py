"""Repositories package — the only layer that issues SQLAlchemy queries.

Files:
  base.py      — Generic tenant-scoped repository (pagination, optimistic-lock aware save)
  merchant.py  — Merchant lookups (email, credential tokens, review queue)
  document.py  — Active document records and aggregate counts
  history.py   — Append-only verification history
  review.py    — Reviews and the rating aggregate query
"""

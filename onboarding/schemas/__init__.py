"""Pydantic schemas package.

Folder intent:
  common.py    — CamelModel base, HealthResponse, error envelope (all schemas inherit CamelModel)
  merchant.py  — merchant provisioning, setup, profile and admin action DTOs
  document.py  — upload summaries, document review requests, stats
  bulk.py      — bulk admin requests and the per-id report
  review.py    — customer review DTOs
"""

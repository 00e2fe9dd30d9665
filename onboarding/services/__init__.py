"""Services package — all business logic lives here, never in routers.

Files:
  completeness.py   — pure profile/document completeness scoring
  verification.py   — onboarding state machine and admin transitions
  documents.py      — document metadata, supersession and per-document review
  provisioning.py   — admin creation, self-registration, setup and reset tokens
  bulk.py           — bulk admin operations with per-item isolation
  reviews.py        — customer review writes
  rating.py         — rating aggregate recomputed after review writes
  storage.py        — object storage collaborator (bytes in, locator out)
  notifications.py  — notification dispatch collaborator

Rule: routers call services, services call repositories, repositories call the DB.
      No SQLAlchemy queries in routers. No FastAPI imports in services.
"""

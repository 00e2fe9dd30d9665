"""v1 router package — all /api/v1/* endpoints live here.

Files:
  merchants.py  — provisioning, setup, documents, admin verification actions, bulk ops
  documents.py  — admin document review queue and stats
  reviews.py    — review edits and deletes (rating recomputed in the background)

Rule: Routers only handle HTTP (request parsing, response shaping).
      All business logic delegates to onboarding/services/.
"""

"""
Kernel layer: data models, store access and identity.

- Participant and check-in tables (models)
- Store access with upsert-on-conflict check-in writes (store)
- Entry pass token codec and admin gate (identity)
"""

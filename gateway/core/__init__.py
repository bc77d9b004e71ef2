# gateway/core/__init__.py
"""
Core gateway logic -- transport-agnostic.

- ``versioning`` -- semantic version / range satisfaction
- ``compat``     -- version gate for worker admission
- ``liveness``   -- last-seen tracking per worker host
- ``jobs``       -- job handoff from named queues
- ``webhooks``   -- webhook envelope normalisation and ingestion
- ``errors``     -- typed errors mapped to HTTP statuses by the transport layer
"""

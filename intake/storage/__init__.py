"""
Storage layer - remote-first persistence with a local SQLite fallback.

- local_cache: JSON collections under fixed keys in SQLite
- backends: PersistenceBackend contract, PocketBase and local implementations,
  and FallbackPersistence which picks one backend per call
- request_store: RequestStore for design requests
"""

"""Infrastructure adapters (Postgres, in-memory, key sources)"""

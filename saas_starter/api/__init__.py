"""HTTP adapter (FastAPI)"""

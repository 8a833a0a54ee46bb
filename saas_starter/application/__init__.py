"""Application layer: validation, services and use cases"""

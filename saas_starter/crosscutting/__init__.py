"""Cross-cutting concerns: config, logging, errors, request context"""

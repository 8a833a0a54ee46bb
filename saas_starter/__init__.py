"""saas_starter: multi-tenant auth, authorization and tenant isolation core"""

__version__ = "0.1.0"

"""Identity: claims, ACL predicates, passwords, signing keys and tokens"""

from .claims import INTERNAL_CLAIMS, Claims, new_claims

__all__ = ["INTERNAL_CLAIMS", "Claims", "new_claims"]

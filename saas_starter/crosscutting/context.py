"""
Name: Request Context (ContextVars)

Responsibilities:
  - Store request-scoped data (request_id, subject, audience)
  - Enable structured logging with request and tenant correlation

Collaborators:
  - api/middleware.py: sets context at request start
  - api/dependencies.py: binds subject/audience once claims are verified
  - logger.py: reads context for log enrichment

Constraints:
  - Only primitive types (str)
  - Default empty string (never None) for JSON serialization
"""

from contextvars import ContextVar

# R: Request identifier (UUID) - set by middleware
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# R: HTTP method / path - set by middleware
http_method_var: ContextVar[str] = ContextVar("http_method", default="")
http_path_var: ContextVar[str] = ContextVar("http_path", default="")

# R: Verified caller - set once the bearer token is verified
subject_var: ContextVar[str] = ContextVar("subject", default="")
audience_var: ContextVar[str] = ContextVar("audience", default="")


def get_context_dict() -> dict:
    """
    R: Get current context as dict for log enrichment.

    Returns:
        Dict with non-empty context values only
    """
    ctx = {}

    if val := request_id_var.get():
        ctx["request_id"] = val
    if val := http_method_var.get():
        ctx["method"] = val
    if val := http_path_var.get():
        ctx["path"] = val
    if val := subject_var.get():
        ctx["subject"] = val
    if val := audience_var.get():
        ctx["audience"] = val

    return ctx


def clear_context() -> None:
    """R: Reset all context vars (called at request end)."""
    request_id_var.set("")
    http_method_var.set("")
    http_path_var.set("")
    subject_var.set("")
    audience_var.set("")

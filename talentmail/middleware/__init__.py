"""HTTP middleware: request ID.

Applied in main app; order matters (first added = outermost).
Import and use from talentmail.main.
"""

from talentmail.middleware.request_id import RequestIDMiddleware

__all__ = [
    "RequestIDMiddleware",
]

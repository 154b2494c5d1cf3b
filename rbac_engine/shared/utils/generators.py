"""Primary keys for policy store rows."""

from cuid2 import cuid_wrapper

_next_cuid = cuid_wrapper()


def generate_cuid() -> str:
    """New CUID2 for role, permission, assignment and audit rows."""
    return _next_cuid()

from __future__ import annotations

import uuid


def new_id() -> str:
    """
    Random identifier rendered as decimal digits.

    Numeric-shaped ids let `/resource/<id>` share the `/resource` route policy.
    """
    return str(uuid.uuid4().int)

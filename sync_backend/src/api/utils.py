from __future__ import annotations

import time
import uuid


# PUBLIC_INTERFACE
def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


# PUBLIC_INTERFACE
def new_record_id() -> str:
    """Generate an identifier for records created server-side."""
    return str(uuid.uuid4())

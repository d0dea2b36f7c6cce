from __future__ import annotations

import time


def unix_now() -> int:
    return int(time.time())

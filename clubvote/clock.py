# clubvote/clock.py

import time


def now_ms():
    """Current wall-clock time as integer epoch milliseconds."""
    return int(time.time() * 1000)

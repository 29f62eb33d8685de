import time


def now() -> float:
    """Wall-clock epoch seconds. Tests patch this to move time."""
    return time.time()

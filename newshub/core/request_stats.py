import threading
import time
from collections import defaultdict
from typing import Tuple

# In-memory request counters per route (method + path), guarded by a lock
_request_counts = defaultdict(int)
_req_lock = threading.Lock()
_global_request_count = 0
_status_counts = defaultdict(int)

STARTED_AT = time.time()


def record_request(key: str) -> Tuple[int, int]:
    """Count one hit for ``key``; returns (route count, global count)."""
    global _global_request_count
    with _req_lock:
        _request_counts[key] += 1
        _global_request_count += 1
        return _request_counts[key], _global_request_count


def record_status(status_code: int) -> None:
    with _req_lock:
        _status_counts[f"{status_code // 100}xx"] += 1


def uptime_seconds() -> int:
    return int(time.time() - STARTED_AT)


def snapshot(top: int = 10) -> dict:
    with _req_lock:
        by_route = sorted(_request_counts.items(), key=lambda kv: kv[1], reverse=True)[:top]
        return {
            "total": _global_request_count,
            "byStatus": dict(_status_counts),
            "topRoutes": [{"route": k, "count": v} for k, v in by_route],
        }

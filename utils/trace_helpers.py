import traceback
import time
from typing import Any, Dict, List

FAILURE_SUFFIX = '_failed'


def add_traceback(obj, step: str, info: str, *, with_stack: bool = False) -> None:
    """
    Append a trace event to `obj.traceback_info`.

    Parameters
    ----------
    obj        : any object that owns a `traceback_info` list.
    step, info : short label and free-form description. Steps ending in
                 '_failed' mark an error that was turned into a sentinel.
    with_stack : include trimmed call-stack (default False).
    """
    if not hasattr(obj, "traceback_info"):
        raise AttributeError(f"{obj!r} has no attribute 'traceback_info'")

    event: Dict[str, Any] = {
        "step":       step,
        "info":       info,
        "source":     type(obj).__name__,
        "timestamp":  time.time(),
    }
    if with_stack:
        # omit the last frame (this helper)
        event["stack"] = traceback.format_stack()[:-1]

    obj.traceback_info.append(event)


def recent_events(obj, limit: int = 5) -> List[Dict[str, Any]]:
    return list(obj.traceback_info[-limit:]) if limit > 0 else []


def failures(obj) -> List[Dict[str, Any]]:
    """Events recording a failure that was swallowed into NaN or an omitted element."""
    return [e for e in obj.traceback_info if e["step"].endswith(FAILURE_SUFFIX)]


def format_events(events: List[Dict[str, Any]]) -> str:
    return "\n".join(f"  [{e['source']}] {e['step']}: {e['info']}" for e in events)

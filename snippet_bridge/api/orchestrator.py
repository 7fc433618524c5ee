from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
import logging
import queue
import threading
import time
import uuid

from snippet_bridge.api.collaborator import InstanceTarget
from snippet_bridge.api.pipeline import ApplicationResult, ParseMiss, build_request, instantiate
from snippet_bridge.config.env import BridgeConfig, get_bridge_config, get_server_config
from snippet_bridge.exports.reports import application_report_md, parse_miss_md

logger = logging.getLogger(__name__)


@dataclass
class Invocation:
    id: str
    kind: str
    source: str
    status: str = "queued"  # queued|running|completed|failed
    events: List[Dict[str, Any]] = field(default_factory=list)
    result: Optional[ApplicationResult] = None
    miss: Optional[ParseMiss] = None
    message: Optional[Dict[str, Any]] = None  # outbound request message
    error: Optional[str] = None
    done: threading.Event = field(default_factory=threading.Event, repr=False)

    def report(self) -> str:
        if self.miss is not None:
            return parse_miss_md(self.miss)
        if self.result is not None:
            return application_report_md(self.result)
        return f"# Conversion {self.id}\n\n- status: {self.status}\n" + (f"- error: {self.error}\n" if self.error else "")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "conversion_id": self.id,
            "kind": self.kind,
            "status": self.status,
            "events": list(self.events),
            "request": self.message,
            "result": self.result.to_dict() if self.result else None,
            "miss": self.miss.to_dict() if self.miss else None,
            "error": self.error,
        }


class InvocationRegistry:
    def __init__(self):
        self._items: Dict[str, Invocation] = {}
        self._lock = threading.Lock()

    def create(self, source: str, kind: str) -> Invocation:
        iid = f"c_{uuid.uuid4().hex[:8]}"
        inv = Invocation(id=iid, kind=kind, source=source)
        with self._lock:
            self._items[iid] = inv
        return inv

    def get(self, iid: str) -> Optional[Invocation]:
        with self._lock:
            return self._items.get(iid)


REGISTRY = InvocationRegistry()

CompletionHandler = Callable[[Invocation], None]


def _event(inv: Invocation, stage: str, message: str):
    inv.events.append({"stage": stage, "message": message, "ts": time.time()})
    logger.info(f"[{inv.id}] {stage}: {message}")


def orchestrate(
    inv: Invocation,
    target: InstanceTarget,
    on_complete: Optional[CompletionHandler] = None,
    config: Optional[BridgeConfig] = None,
) -> Invocation:
    """Run one invocation to completion. `on_complete` is called exactly once, even on failure."""
    config = config or get_bridge_config()
    try:
        inv.status = "running"
        _event(inv, "Parse", f"Locating <{inv.kind}> markup")
        outcome = build_request(inv.source, inv.kind, kind_defaults=config.kind_defaults)
        if isinstance(outcome, ParseMiss):
            inv.miss = outcome
            _event(inv, "Miss", outcome.message.splitlines()[0])
        else:
            inv.message = outcome.to_message()
            _event(inv, "Apply", f"Applying {len(outcome.semantic_props)} semantic props")
            inv.result = instantiate(outcome, target, config=config)
            for issue in inv.result.all_issues():
                _event(inv, "Warn", f"{issue.code}: {issue.message}")
        inv.status = "completed"
        _event(inv, "Done", "Conversion completed")
    except Exception as e:
        logger.exception(f"[{inv.id}] conversion failed")
        inv.status = "failed"
        inv.error = str(e)
        _event(inv, "Error", str(e))
    finally:
        inv.done.set()
        if on_complete is not None:
            try:
                on_complete(inv)
            except Exception:
                logger.exception(f"[{inv.id}] completion handler raised")
    return inv


# One worker: invocations against a collaborator never overlap
_JOB_Q: "queue.Queue[tuple]" = queue.Queue(maxsize=get_server_config().queue_size)


def _worker_loop():  # pragma: no cover (verified via API tests)
    while True:
        inv, target, on_complete = _JOB_Q.get()
        try:
            orchestrate(inv, target, on_complete)
        finally:
            _JOB_Q.task_done()


_worker = threading.Thread(target=_worker_loop, name="snippet-bridge-worker", daemon=True)
_worker.start()


def start_invocation(
    source: str, kind: str, target: InstanceTarget, on_complete: Optional[CompletionHandler] = None
) -> str:
    inv = REGISTRY.create(source, kind)
    _JOB_Q.put((inv, target, on_complete))
    return inv.id

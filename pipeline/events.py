"""
Listener registry for published pipeline state.

Usage:
    bus = EventBus()
    bus.subscribe(Events.ALERT_CHANGED, on_alert)
    bus.emit(Events.ALERT_CHANGED, state=new_state)
"""

import logging
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """
    Synchronous publish/subscribe. One instance per pipeline.

    Listeners run on the thread that calls emit(), which for the pipeline
    is always the consumer thread doing the publish step.
    """

    def __init__(self):
        self._listeners = defaultdict(list)  # event_name -> [callback]

    def subscribe(self, event_name: str, callback: Callable) -> None:
        self._listeners[event_name].append(callback)
        logger.debug("Subscribed to '%s': %s", event_name, getattr(callback, "__name__", callback))

    def unsubscribe(self, event_name: str, callback: Callable) -> None:
        self._listeners[event_name] = [cb for cb in self._listeners[event_name] if cb is not callback]

    def emit(self, event_name: str, **kwargs) -> None:
        for callback in list(self._listeners.get(event_name, [])):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    @property
    def listener_count(self) -> int:
        return sum(len(cbs) for cbs in self._listeners.values())


class Events:
    """Event names emitted by DetectionPipeline."""

    CYCLE_COMPLETED   = "cycle_completed"    # result=CycleResult
    REGION_CHANGED    = "region_changed"     # region=Rect | None
    ALERT_CHANGED     = "alert_changed"      # state=AlertState
    EVIDENCE_CAPTURED = "evidence_captured"  # snapshot=EvidenceSnapshot

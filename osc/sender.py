import logging

from pythonosc import udp_client

from osc.mapping import OSC_ADDRESSES, USE_STRING_VALUES, VALUE_STRINGS
from pipeline.events import EventBus, Events
from state.schema import AlertState, CycleResult, EvidenceSnapshot

logger = logging.getLogger(__name__)


class OSCSender:
    """
    Sends pipeline state to an OSC receiver.

    Subscribe it to a pipeline's EventBus with attach(); every alert change
    maps to one OSC message:
        address: /trackhands/alert
        value:   1 (active) or 0 (clear), see mapping.py
    """

    def __init__(self, host: str = "127.0.0.1", port: int = 7000):
        self.host = host
        self.port = port
        self._client = udp_client.SimpleUDPClient(host, port)
        self._last_sent: dict = {}
        logger.info("OSC sender ready — sending to %s:%d", host, port)

    def attach(self, bus: EventBus) -> None:
        bus.subscribe(Events.ALERT_CHANGED, self.on_alert_changed)
        bus.subscribe(Events.EVIDENCE_CAPTURED, self.on_evidence_captured)
        bus.subscribe(Events.CYCLE_COMPLETED, self.on_cycle_completed)

    def send_change(self, field: str, value: int) -> None:
        """
        Send an OSC message for one field, skipping repeats of the last value.

        Args:
            field: a key of OSC_ADDRESSES
            value: int value to send
        """
        address = OSC_ADDRESSES.get(field)
        if address is None:
            logger.warning("No OSC address defined for field '%s'", field)
            return
        if self._last_sent.get(field) == value:
            return

        osc_value = VALUE_STRINGS.get(value, value) if USE_STRING_VALUES else value
        self._client.send_message(address, osc_value)
        self._last_sent[field] = value
        logger.debug("Sent: %s → %s", address, osc_value)

    def on_alert_changed(self, state: AlertState) -> None:
        self.send_change("alert", int(state.active))

    def on_evidence_captured(self, snapshot: EvidenceSnapshot) -> None:
        self.send_change("evidence_frame", snapshot.frame_number)

    def on_cycle_completed(self, result: CycleResult) -> None:
        self.send_change("face", int(result.region is not None))
        self.send_change("fingertips", len(result.fingertips))

    def send_all(self, state: AlertState) -> None:
        """
        Broadcast the current alert state (useful on startup to sync the receiver).
        """
        self._last_sent.clear()
        self.send_change("alert", int(state.active))

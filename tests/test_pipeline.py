"""
End-to-end tests for DetectionPipeline
=======================================

Detectors are scripted fakes and time comes from FakeClock, so each test
controls exactly which frames are admitted and what every cycle sees.
"""

import threading
import time

import pytest

from conftest import FakeClock, ScaleSurface, ScriptedDetector, hand, lips, make_frame
from detectors.detector_base import DetectorError
from pipeline import DetectionPipeline, Events, PipelineConfig
from state.schema import CoordinateSpace

MOUTH = (0.4, 0.4, 0.2, 0.1)
INSIDE = (0.45, 0.45)
OUTSIDE = (0.9, 0.9)


class Listener:
    """Records every event the pipeline emits."""

    def __init__(self, bus):
        self.events = []
        for name in (Events.CYCLE_COMPLETED, Events.REGION_CHANGED,
                     Events.ALERT_CHANGED, Events.EVIDENCE_CAPTURED):
            bus.subscribe(name, self._recorder(name))

    def _recorder(self, name):
        def record(**kwargs):
            self.events.append((name, kwargs))
        return record

    def named(self, name):
        return [kw for n, kw in self.events if n == name]


def build(face, hands, clock, **overrides):
    config = PipelineConfig(threaded=False, **overrides)
    pipeline = DetectionPipeline(face, hands, config=config, clock=clock)
    return pipeline, Listener(pipeline.bus)


def run_one_cycle(pipeline, clock, frame_number=1):
    """Open the gate, satisfy the stride, publish. Returns the admitted frame."""
    clock.advance(pipeline.scheduler.interval)
    for _ in range(pipeline.config.frame_stride):
        frame = make_frame(frame_number, clock(), width=640, height=480)
        admitted = pipeline.submit(frame)
        frame_number += 1
    assert admitted
    pipeline.publish_pending()
    return frame


class TestScenarios:

    def test_tip_inside_mouth_raises_alert_once(self, clock):
        face = ScriptedDetector(lips(*MOUTH))
        hands = ScriptedDetector(hand(INSIDE))
        pipeline, listener = build(face, hands, clock)

        frame = run_one_cycle(pipeline, clock)

        assert pipeline.is_alert_active
        assert [kw["state"].active for kw in listener.named(Events.ALERT_CHANGED)] == [True]
        snapshots = listener.named(Events.EVIDENCE_CAPTURED)
        assert len(snapshots) == 1
        assert pipeline.latest_snapshot.frame_number == frame.frame_number
        assert pipeline.latest_snapshot.image.shape == (240, 320, 3)

    def test_tip_outside_mouth_stays_quiet(self, clock):
        pipeline, listener = build(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(OUTSIDE)), clock)
        run_one_cycle(pipeline, clock)
        assert not pipeline.is_alert_active
        assert listener.named(Events.ALERT_CHANGED) == []
        assert pipeline.latest_snapshot is None

    def test_face_lost_clears_region_and_alert(self, clock):
        face = ScriptedDetector(lips(*MOUTH), DetectorError("no face"))
        hands = ScriptedDetector(hand(INSIDE))
        pipeline, listener = build(face, hands, clock)

        run_one_cycle(pipeline, clock)
        assert pipeline.is_alert_active
        assert pipeline.target_region is not None

        run_one_cycle(pipeline, clock, frame_number=10)
        assert pipeline.target_region is None
        assert not pipeline.fingertips
        assert hands.calls == 1  # hand stage skipped on the second cycle
        assert not pipeline.is_alert_active
        assert [kw["region"] is None for kw in listener.named(Events.REGION_CHANGED)] == [False, True]

    def test_captures_match_rising_edges(self, clock):
        hands = ScriptedDetector(hand(INSIDE), hand(INSIDE), hand(OUTSIDE), hand(INSIDE), hand(INSIDE))
        pipeline, listener = build(ScriptedDetector(lips(*MOUTH)), hands, clock)
        for i in range(5):
            run_one_cycle(pipeline, clock, frame_number=i * 10)
        assert len(listener.named(Events.EVIDENCE_CAPTURED)) == 2
        assert len(listener.named(Events.CYCLE_COMPLETED)) == 5

    def test_staleness_clears_alert(self, clock):
        pipeline, _ = build(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(INSIDE)), clock,
                            check_interval=6.0)
        run_one_cycle(pipeline, clock)
        assert pipeline.is_alert_active

        # Reuse the old face observation as if the region had been cached
        pipeline.orchestrator.last_face_seen_at -= 20.0
        pipeline.orchestrator._face_detector = ScriptedDetector(None)
        run_one_cycle(pipeline, clock, frame_number=10)
        assert not pipeline.is_alert_active
        assert pipeline.alert_state.stale_face_since is not None


class TestAdmission:

    def test_twenty_frames_in_one_second(self, clock):
        face = ScriptedDetector(None)
        pipeline, _ = build(face, ScriptedDetector(None), clock, check_interval=2.0)
        admitted = 0
        for i in range(20):
            admitted += pipeline.submit(make_frame(i, clock()))
            pipeline.publish_pending()
            clock.advance(0.05)
        assert admitted <= 1
        assert face.calls == admitted

    def test_no_admission_until_published(self, clock):
        pipeline, _ = build(ScriptedDetector(None), ScriptedDetector(None), clock,
                            check_interval=0.1, frame_stride=1)
        clock.advance(0.1)
        assert pipeline.submit(make_frame(1))
        for i in range(5):
            clock.advance(0.1)
            assert not pipeline.submit(make_frame(i + 2))
        assert pipeline.publish_pending() == 1
        clock.advance(0.1)
        assert pipeline.submit(make_frame(10))

    def test_none_frame_ignored(self, clock):
        pipeline, _ = build(ScriptedDetector(None), ScriptedDetector(None), clock)
        assert pipeline.submit(None) is False

    def test_set_check_interval(self, clock):
        pipeline, _ = build(ScriptedDetector(None), ScriptedDetector(None), clock)
        pipeline.set_check_interval(0.05)
        assert pipeline.scheduler.interval == 0.1
        assert pipeline.config.check_interval == 0.1


class TestPublishing:

    def test_display_attached_maps_published_state(self, clock):
        pipeline, _ = build(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(INSIDE)), clock)
        pipeline.attach_display(ScaleSurface(100, 50))
        run_one_cycle(pipeline, clock)
        assert pipeline.last_result.space == CoordinateSpace.DISPLAY
        assert pipeline.target_region.x == pytest.approx(40.0)
        assert pipeline.fingertips.tips[0].point.x == pytest.approx(45.0)
        assert pipeline.is_alert_active

        pipeline.detach_display()
        run_one_cycle(pipeline, clock, frame_number=10)
        assert pipeline.last_result.space == CoordinateSpace.RAW
        assert pipeline.target_region.x == pytest.approx(0.4)

    def test_out_of_order_result_dropped(self, clock):
        pipeline, listener = build(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(INSIDE)), clock)
        older = pipeline.orchestrator.run_cycle(make_frame(1))
        newer = pipeline.orchestrator.run_cycle(make_frame(2))
        pipeline._outbox.put(newer)
        pipeline._outbox.put(older)
        assert pipeline.publish_pending() == 1
        assert pipeline.last_result is newer

    def test_current_frame(self, clock):
        pipeline, _ = build(ScriptedDetector(None), ScriptedDetector(None), clock)
        frame = run_one_cycle(pipeline, clock)
        assert pipeline.current_frame is frame

    def test_stop_clears_active_alert(self, clock):
        pipeline, listener = build(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(INSIDE)), clock)
        run_one_cycle(pipeline, clock)
        pipeline.stop()
        assert not pipeline.is_alert_active
        assert [kw["state"].active for kw in listener.named(Events.ALERT_CHANGED)] == [True, False]


class TestThreaded:

    def test_submit_requires_start(self, clock):
        pipeline = DetectionPipeline(ScriptedDetector(None), ScriptedDetector(None),
                                     config=PipelineConfig(threaded=True), clock=clock)
        with pytest.raises(RuntimeError):
            pipeline.submit(make_frame())

    def test_cycle_runs_on_worker_and_publishes_on_caller(self):
        clock = FakeClock()
        config = PipelineConfig(threaded=True, check_interval=0.1, frame_stride=1)
        pipeline = DetectionPipeline(ScriptedDetector(lips(*MOUTH)), ScriptedDetector(hand(INSIDE)),
                                     config=config, clock=clock)
        with pipeline:
            assert pipeline.is_running
            clock.advance(0.1)
            assert pipeline.submit(make_frame(1))

            deadline = time.monotonic() + 5.0
            while pipeline.publish_pending() == 0:
                assert time.monotonic() < deadline, "worker never produced a result"
                time.sleep(0.01)

            assert pipeline.is_alert_active
            assert not pipeline.scheduler.in_flight
        assert not pipeline.is_running

    def test_crashing_cycle_still_releases_slot(self, clock, caplog):
        config = PipelineConfig(threaded=False, check_interval=0.1, frame_stride=1)
        pipeline = DetectionPipeline(ScriptedDetector(None), ScriptedDetector(None), config=config, clock=clock)

        def crash(frame):
            raise RuntimeError("orchestrator bug")

        pipeline.orchestrator.run_cycle = crash
        clock.advance(0.1)
        assert pipeline.submit(make_frame(1))
        assert pipeline.publish_pending() == 0
        assert not pipeline.scheduler.in_flight
        assert "Detection cycle crashed" in caplog.text


class GatedDetector(ScriptedDetector):
    """Blocks inside detect() for `frame_number` until released."""

    def __init__(self, frame_number, *outputs):
        super().__init__(*outputs)
        self.frame_number = frame_number
        self.entered = threading.Event()
        self.release_gate = threading.Event()

    def detect(self, frame):
        if frame.frame_number == self.frame_number:
            self.entered.set()
            assert self.release_gate.wait(5.0)
        return super().detect(frame)


def wait_for_publish(pipeline):
    deadline = time.monotonic() + 5.0
    while pipeline.publish_pending() == 0:
        assert time.monotonic() < deadline, "worker never produced a result"
        time.sleep(0.01)


class TestPublishedConsistency:

    def test_current_frame_matches_published_result_while_cycle_in_flight(self):
        clock = FakeClock()
        face = GatedDetector(2, lips(*MOUTH))
        config = PipelineConfig(threaded=True, check_interval=0.1, frame_stride=1)
        pipeline = DetectionPipeline(face, ScriptedDetector(hand(INSIDE)), config=config, clock=clock)

        with pipeline:
            clock.advance(0.1)
            first = make_frame(1)
            assert pipeline.submit(first)
            wait_for_publish(pipeline)

            clock.advance(0.1)
            second = make_frame(2)
            assert pipeline.submit(second)
            assert face.entered.wait(5.0)

            # Worker is mid-cycle on frame 2; readers still see frame 1 everywhere
            assert pipeline.publish_pending() == 0
            assert pipeline.current_frame is first
            assert pipeline.current_frame is pipeline.last_result.frame

            face.release_gate.set()
            wait_for_publish(pipeline)
            assert pipeline.current_frame is second
            assert pipeline.current_frame is pipeline.last_result.frame

    def test_current_frame_unset_before_first_publish(self, clock):
        pipeline, _ = build(ScriptedDetector(None), ScriptedDetector(None), clock)
        assert pipeline.current_frame is None

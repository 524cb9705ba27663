from dataclasses import dataclass

MIN_CHECK_INTERVAL = 0.1
MAX_HANDS = 1


@dataclass
class PipelineConfig:
    """Tunables of the detection pipeline (the `detection` section of config.yaml)."""
    check_interval: float = 2.0        # seconds between detection gates
    frame_stride: int = 2              # admit every Nth eligible frame
    min_tip_confidence: float = 0.3    # fingertips at or below this are dropped
    max_hands: int = 1
    staleness_timeout: float = 10.0    # seconds without a face before alerts clear
    evidence_scale: float = 0.5
    threaded: bool = True

    def __post_init__(self):
        self.check_interval = max(MIN_CHECK_INTERVAL, float(self.check_interval))
        self.frame_stride   = max(1, int(self.frame_stride))
        self.max_hands      = min(MAX_HANDS, max(1, int(self.max_hands)))

    @classmethod
    def from_dict(cls, config: dict) -> "PipelineConfig":
        """Create config from the parsed `detection` section."""
        scheduler_cfg = config.get("scheduler", {})
        hands_cfg     = config.get("hands", {})
        alert_cfg     = config.get("alert", {})
        evidence_cfg  = config.get("evidence", {})
        return cls(
            check_interval=scheduler_cfg.get("check_interval", 2.0),
            frame_stride=scheduler_cfg.get("frame_stride", 2),
            min_tip_confidence=hands_cfg.get("min_tip_confidence", 0.3),
            max_hands=hands_cfg.get("max_hands", 1),
            staleness_timeout=alert_cfg.get("staleness_timeout", 10.0),
            evidence_scale=evidence_cfg.get("scale", 0.5),
            threaded=config.get("threaded", True),
        )

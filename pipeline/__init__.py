from pipeline.config       import PipelineConfig
from pipeline.coords       import DisplaySurface
from pipeline.events       import EventBus, Events
from pipeline.pipeline     import DetectionPipeline

__all__ = ["PipelineConfig", "DisplaySurface", "EventBus", "Events", "DetectionPipeline"]

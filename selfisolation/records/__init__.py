from .metrics_recording import MetricEvent, MetricsRecorder, Signpost
from .metrics_reader import MetricsReader

# selfisolation/global_context.py


class GlobalContext:
    _metrics_recorder = None

    @classmethod
    def set_metrics_recorder(cls, recorder=None):
        """
        Register a metrics recorder.
        If None is provided, a new in-memory recorder is created.
        """
        if recorder is None:
            from selfisolation.records.metrics_recording import MetricsRecorder

            recorder = MetricsRecorder()
        cls._metrics_recorder = recorder
        return recorder

    @classmethod
    def get_metrics_recorder(cls):
        """
        Get the registered metrics recorder.
        If none is registered, a new one is created.
        """
        if cls._metrics_recorder is None:
            return cls.set_metrics_recorder()
        return cls._metrics_recorder

    @classmethod
    def reset(cls):
        cls._metrics_recorder = None

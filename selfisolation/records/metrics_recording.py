import datetime
import logging
import os
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import tables

# Configure logger
logger = logging.getLogger("metrics_recording")

SIGNPOSTS_TABLE = "signposts"


class MetricEvent(Enum):
    acknowledged_start_of_isolation = "acknowledged_start_of_isolation"
    acknowledged_start_of_isolation_due_to_risky_contact = (
        "acknowledged_start_of_isolation_due_to_risky_contact"
    )
    acknowledged_end_of_isolation = "acknowledged_end_of_isolation"
    started_isolation = "started_isolation"
    completed_questionnaire_and_started_isolation = (
        "completed_questionnaire_and_started_isolation"
    )
    declared_negative_result_from_dct = "declared_negative_result_from_dct"
    did_have_symptoms_before_received_test_result = (
        "did_have_symptoms_before_received_test_result"
    )
    did_remember_onset_symptoms_date_before_received_test_result = (
        "did_remember_onset_symptoms_date_before_received_test_result"
    )
    received_positive_test_result = "received_positive_test_result"
    received_negative_test_result = "received_negative_test_result"
    received_void_test_result = "received_void_test_result"
    received_plod_test_result = "received_plod_test_result"
    received_unconfirmed_positive_test_result = (
        "received_unconfirmed_positive_test_result"
    )
    received_positive_test_result_confirmed = "received_positive_test_result_confirmed"
    negative_result_after_unconfirmed_positive_within_time_limit = (
        "negative_result_after_unconfirmed_positive_within_time_limit"
    )
    ignored_test_result = "ignored_test_result"
    is_isolating_background_tick = "is_isolating_background_tick"
    is_isolating_for_self_diagnosed_background_tick = (
        "is_isolating_for_self_diagnosed_background_tick"
    )
    is_isolating_for_tested_positive_background_tick = (
        "is_isolating_for_tested_positive_background_tick"
    )
    is_isolating_for_had_risky_contact_background_tick = (
        "is_isolating_for_had_risky_contact_background_tick"
    )
    has_finished_isolation_background_tick = "has_finished_isolation_background_tick"


class Signpost:
    """
    A single metric event.
    """

    def __init__(
        self,
        event: MetricEvent,
        timestamp: datetime.datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.event = event
        self.timestamp = timestamp
        self.metadata = metadata or {}

    @property
    def day(self) -> str:
        return self.timestamp.strftime("%Y-%m-%d")

    def __repr__(self):
        return (
            f"Signpost(event={self.event.value}, "
            f"timestamp={self.timestamp.isoformat()}, "
            f"metadata={self.metadata})"
        )


class MetricsRecorder:
    """
    Records metric signposts. Keeps running totals and per-day counts in
    memory, and, when given a filename, appends the buffered signposts to an
    HDF5 table on ``flush``.
    """

    def __init__(
        self,
        filename: Optional[Union[str, Path]] = None,
        buffer_size: int = 100,
    ):
        self.filename = Path(filename) if filename is not None else None
        if self.filename is not None:
            os.makedirs(self.filename.parent, exist_ok=True)

        # Total counters for different event types
        self.total_counters = defaultdict(int)

        # Detailed counters by day
        self.daily_counters = defaultdict(lambda: defaultdict(int))

        # Event buffer for batch writing
        self._event_buffer: List[Signpost] = []
        self._buffer_size = buffer_size

        if self.filename is not None:
            logger.info(f"MetricsRecorder writing to HDF5 file: {self.filename}")

    def signpost(
        self,
        event: MetricEvent,
        timestamp: Optional[datetime.datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Signpost:
        """
        Record a metric event.

        Parameters
        ----------
        event : MetricEvent
            The event to record
        timestamp : datetime.datetime, optional
            When it happened. Defaults to the current UTC time.
        metadata : Dict[str, Any], optional
            Additional event-specific data, kept in memory only
        """
        if timestamp is None:
            timestamp = datetime.datetime.now(datetime.timezone.utc)
        signpost = Signpost(event=event, timestamp=timestamp, metadata=metadata)
        self.total_counters[event] += 1
        self.daily_counters[signpost.day][event] += 1
        self._event_buffer.append(signpost)
        logger.debug(f"Recorded {signpost}")
        if self.filename is not None and len(self._event_buffer) >= self._buffer_size:
            self.flush()
        return signpost

    def count(self, event: MetricEvent, day: Optional[str] = None) -> int:
        if day is None:
            return self.total_counters[event]
        return self.daily_counters[day][event]

    @property
    def pending_signposts(self) -> List[Signpost]:
        return list(self._event_buffer)

    def _ensure_table(self, file):
        if f"/{SIGNPOSTS_TABLE}" in file:
            return getattr(file.root, SIGNPOSTS_TABLE)
        description = {
            "timestamp": tables.StringCol(itemsize=32, pos=0),
            "day": tables.StringCol(itemsize=10, pos=1),
            "event_type": tables.StringCol(itemsize=64, pos=2),
        }
        return file.create_table(
            file.root, SIGNPOSTS_TABLE, description, "Metric signposts"
        )

    def flush(self) -> int:
        """
        Writes buffered signposts to the HDF5 file and empties the buffer.
        Returns the number of signposts written. Without a filename the buffer
        is simply cleared.
        """
        signposts = self._event_buffer
        self._event_buffer = []
        if not signposts or self.filename is None:
            return 0
        data = np.rec.fromarrays(
            [
                np.array(
                    [signpost.timestamp.isoformat() for signpost in signposts],
                    dtype="S32",
                ),
                np.array([signpost.day for signpost in signposts], dtype="S10"),
                np.array(
                    [signpost.event.value for signpost in signposts], dtype="S64"
                ),
            ],
            names="timestamp,day,event_type",
        )
        with tables.open_file(str(self.filename), mode="a") as file:
            table = self._ensure_table(file)
            table.append(data)
            table.flush()
        logger.debug(f"Flushed {len(signposts)} signposts to {self.filename}")
        return len(signposts)

from pathlib import Path
from typing import Union
import logging

import pandas as pd
import tables

from selfisolation.records.metrics_recording import SIGNPOSTS_TABLE

logger = logging.getLogger(__name__)


class MetricsReader:
    def __init__(self, filename: Union[str, Path]):
        self.filename = Path(filename)

    def decode_bytes_columns(self, df):
        str_df = df.select_dtypes([object])
        for col in str_df:
            df[col] = str_df[col].str.decode("utf-8")
        return df

    def table_to_df(self, table_name: str = SIGNPOSTS_TABLE) -> pd.DataFrame:
        with tables.open_file(str(self.filename), mode="r") as f:
            table = getattr(f.root, table_name)
            df = pd.DataFrame.from_records(table.read())
        df = self.decode_bytes_columns(df)
        return df

    def get_signposts(self) -> pd.DataFrame:
        logger.info(f"Loading signposts from {self.filename}")
        df = self.table_to_df(SIGNPOSTS_TABLE)
        df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)
        return df

    def get_daily_counts(self) -> pd.DataFrame:
        """
        Number of signposts per day (rows) and event type (columns).
        """
        df = self.table_to_df(SIGNPOSTS_TABLE)
        counts = df.groupby(["day", "event_type"]).size().unstack(fill_value=0)
        counts.index = pd.to_datetime(counts.index)
        return counts

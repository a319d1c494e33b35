from .readers import read_day, read_optional_day, write_optional_day

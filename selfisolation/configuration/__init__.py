from .isolation_configuration import (
    Country,
    IsolationConfiguration,
    default_config_filename,
    load_yaml,
    read_country,
)
from .cached_configuration import CachedIsolationConfiguration

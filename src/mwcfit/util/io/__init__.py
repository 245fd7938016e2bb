from .read_yaml import (
    read_yaml
)

from .read_dataframe import (
    read_dataframe
)

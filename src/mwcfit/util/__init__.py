
from .validation import (
    InvalidInputError,
    check_number,
    check_array
)

from .io import (
    read_yaml,
    read_dataframe
)

from .dataframe import (
    check_columns
)

from .cli import (
    generalized_main
)

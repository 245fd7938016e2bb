from .check_columns import (
    check_columns
)

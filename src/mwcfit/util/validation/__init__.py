from .check import (
    InvalidInputError,
    check_number,
    check_array
)

from .generalized_main import (
    generalized_main
)

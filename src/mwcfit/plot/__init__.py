
from .fold_change_fit import (
    fold_change_fit
)

from .corner import (
    corner_plot
)

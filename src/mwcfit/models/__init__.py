"""
Thermodynamic models of gene regulation.
"""

from .mwc_fold_change import (
    activation_probability,
    repression,
    fold_change
)

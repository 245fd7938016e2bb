"""
Functions for generating synthetic fold-change data.
"""

from .fold_change_data import (
    simulate_fold_change,
    simulate_fold_change_file
)


from .fold_change_model import (
    ModelClass,
    jax_model,
    log_posterior
)

from .run_inference import RunInference

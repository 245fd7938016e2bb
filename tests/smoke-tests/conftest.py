import pytest
import numpy as np

# Fixed constants for the simple repression construct used in all smoke tests
CONSTANTS = {"R":100.0,
             "Nns":4.6e6,
             "ep_ai":4.5,
             "ep_r":-13.9,
             "n_sites":2}

@pytest.fixture(scope="session")
def constants():
    """Return a copy of the fixed experimental constants."""
    return dict(CONSTANTS)

@pytest.fixture(scope="session")
def smoke_conc():
    """Zero plus 12 log-spaced effector concentrations (M)."""
    return np.concatenate([[0.0],np.logspace(-7,np.log10(5e-3),12)])

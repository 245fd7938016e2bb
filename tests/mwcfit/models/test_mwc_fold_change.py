import pytest
import numpy as np
import jax
import jax.numpy as jnp

from mwcfit.models.mwc_fold_change import (
    activation_probability,
    repression,
    fold_change
)

# ----------------------------------------------------------------------------
# activation_probability
# ----------------------------------------------------------------------------

CONC = np.array([0, 1e-8, 1e-7, 1e-6, 1e-5, 1e-4])

@pytest.mark.parametrize("ep_a", [-12.0, -5.0, 0.0])
@pytest.mark.parametrize("ep_i", [-12.0, -5.0, 0.0])
@pytest.mark.parametrize("ep_ai", [-5.0, 0.0, 4.5])
@pytest.mark.parametrize("n_sites", [1, 2])
def test_activation_probability_bounds(ep_a, ep_i, ep_ai, n_sites):
    """pact lies strictly inside (0,1) for reasonable inputs."""

    pact = np.asarray(activation_probability(CONC, ep_a, ep_i, ep_ai, n_sites))

    assert pact.shape == CONC.shape
    assert np.all(pact > 0)
    assert np.all(pact < 1)

@pytest.mark.parametrize("ep_a, ep_i, n_sites", [
    (-14.0, -9.7, 2),
    (3.0, -3.0, 1),
    (0.0, 0.0, 4),
])
def test_activation_probability_no_ligand(ep_a, ep_i, n_sites):
    """c = 0 gives the two-state result independent of ep_a, ep_i, n."""

    ep_ai = 4.5
    expected = 1/(1 + np.exp(-ep_ai))
    pact = activation_probability(0.0, ep_a, ep_i, ep_ai, n_sites)

    assert np.isclose(float(pact), expected, rtol=1e-12)

def test_activation_probability_hand_calc():

    c = 50e-6
    ep_a = -14.0
    ep_i = -9.7
    ep_ai = 4.5

    numer = (1 + c*np.exp(-ep_a))**2
    denom = numer + np.exp(-ep_ai)*(1 + c*np.exp(-ep_i))**2

    pact = activation_probability(c, ep_a, ep_i, ep_ai, 2)
    assert np.isclose(float(pact), numer/denom, rtol=1e-12)

def test_activation_probability_broadcasts():

    ep_a = jnp.array([-10.0, -9.0, -8.0])[:,None]
    conc = jnp.array([0.0, 1e-5, 1e-4, 1e-3])[None,:]

    pact = activation_probability(conc, ep_a, -14.0, 4.5, 2)
    assert pact.shape == (3,4)

def test_activation_probability_double_precision():
    pact = activation_probability(jnp.array([1e-5]), -9.7, -14.0, 4.5, 2)
    assert pact.dtype == jnp.float64

# ----------------------------------------------------------------------------
# repression
# ----------------------------------------------------------------------------

def test_repression_value():

    rep = repression(0.5, 100, 4.6e6, -13.9)
    expected = 1 + 0.5*(100/4.6e6)*np.exp(13.9)

    assert np.isclose(float(rep), expected, rtol=1e-12)

def test_repression_zero_pact():
    assert float(repression(0.0, 100, 4.6e6, -13.9)) == 1.0

@pytest.mark.parametrize("ep_r", [-13.9, 0.0, 5.0])
@pytest.mark.parametrize("R", [10, 100, 1000])
def test_repression_monotonic_in_pact(ep_r, R):

    pact = jnp.linspace(0.01, 0.99, 50)
    rep = np.asarray(repression(pact, R, 4.6e6, ep_r))

    assert np.all(np.diff(rep) > 0)
    assert np.all(rep >= 1)

# ----------------------------------------------------------------------------
# fold_change
# ----------------------------------------------------------------------------

def test_fold_change_no_ligand_value():
    """R=100, Nns=4.6e6, ep_ai=4.5, ep_r=-13.9, n=2, c=0."""

    fc = fold_change(100, 4.6e6, -13.9, 0.0, -14.0, -9.7, 4.5, 2)

    pact = 1/(1 + np.exp(-4.5))
    expected = 1/(1 + pact*(100/4.6e6)*np.exp(13.9))

    assert np.isclose(float(fc), expected, rtol=1e-12)
    assert float(fc) == pytest.approx(0.0409907, rel=1e-6)

def test_fold_change_is_inverse_repression():

    conc = jnp.array([0.0, 1e-6, 1e-4])
    pact = activation_probability(conc, -9.7, -14.0, 4.5, 2)
    rep = repression(pact, 100, 4.6e6, -13.9)

    fc = fold_change(100, 4.6e6, -13.9, conc, -9.7, -14.0, 4.5, 2)
    assert jnp.allclose(fc, 1/rep)

@pytest.mark.parametrize("R", [0, 10, 1000])
@pytest.mark.parametrize("ep_r", [-15.0, -9.0, 2.0])
def test_fold_change_bounds(R, ep_r):

    fc = np.asarray(fold_change(R, 4.6e6, ep_r, CONC, -9.7, -14.0, 4.5, 2))

    assert np.all(fc > 0)
    assert np.all(fc <= 1)

def test_fold_change_no_repressor():
    fc = fold_change(0, 4.6e6, -13.9, CONC, -9.7, -14.0, 4.5, 2)
    assert jnp.allclose(fc, 1.0)

def test_fold_change_differentiable():
    """The sampler needs gradients with respect to the energies."""

    def f(ep_a):
        return fold_change(100, 4.6e6, -13.9, 1e-4, ep_a, -14.0, 4.5, 2)

    grad = jax.grad(f)(-9.7)
    assert np.isfinite(float(grad))
    assert float(grad) != 0.0

import pytest
import numpy as np
import pandas as pd
import jax.numpy as jnp
import yaml
import os

from mwcfit.__version__ import __version__
from mwcfit.util import InvalidInputError
from mwcfit.simulate import simulate_fold_change
from mwcfit.analysis.fold_change_model.model_class import (
    ModelClass,
    DEFAULT_QUANTILES,
    PARAM_NAMES
)
from mwcfit.analysis.fold_change_model.data_class import (
    FoldChangeData,
    ModelPriors,
    get_priors
)
from mwcfit.analysis.fold_change_model.model import jax_model

CONSTANTS = {"R":100.0,
             "Nns":4.6e6,
             "ep_ai":4.5,
             "ep_r":-13.9,
             "n_sites":2}

@pytest.fixture
def fold_change_df():
    conc = np.concatenate([[0.0],np.logspace(-7,-3,8)])
    df = simulate_fold_change(conc,
                              ep_a=-9.7,
                              ep_i=-14.0,
                              sigma=0.05,
                              num_replicates=2,
                              rng=0,
                              **CONSTANTS)
    return df

@pytest.fixture
def model(fold_change_df):
    return ModelClass(fold_change_df,**CONSTANTS)

@pytest.fixture
def fake_posteriors(model):
    """Posterior-shaped draws centered on the simulation truth."""

    rng = np.random.default_rng(1)
    num_draws = 200
    ep_a = rng.normal(-9.7,0.1,num_draws)
    ep_i = rng.normal(-14.0,0.1,num_draws)
    sigma = rng.uniform(0.04,0.06,num_draws)
    pred = rng.uniform(0,1,(num_draws,model.data.num_obs))

    return {"ep_a":ep_a,
            "ep_i":ep_i,
            "sigma":sigma,
            "fold_change_pred":pred}

# ----------------------------------------------------------------------------
# construction
# ----------------------------------------------------------------------------

def test_init(model,fold_change_df):

    assert isinstance(model.data,FoldChangeData)
    assert isinstance(model.priors,ModelPriors)
    assert model.jax_model is jax_model

    assert model.data.num_obs == len(fold_change_df)
    assert model.data.n_sites == 2
    assert model.data.R == 100.0
    assert model.data.conc.dtype == jnp.float64
    assert np.allclose(np.asarray(model.data.fold_change),
                       fold_change_df["fold_change"])

    assert set(model.init_params.keys()) == set(PARAM_NAMES)
    assert model.priors.ep_a_scale == 10.0

def test_init_from_file(tmpdir,fold_change_df):

    csv = os.path.join(tmpdir,"fc.csv")
    fold_change_df.to_csv(csv)

    model = ModelClass(csv,**CONSTANTS)
    assert model.data.num_obs == len(fold_change_df)

    # index column written by pandas is dropped
    assert "Unnamed: 0" not in model.df.columns

def test_init_custom_columns(fold_change_df):

    df = fold_change_df.rename(columns={"conc":"iptg","fold_change":"fc"})
    model = ModelClass(df,conc_column="iptg",fold_change_column="fc",**CONSTANTS)

    assert "conc" in model.df.columns
    assert "fold_change" in model.df.columns

def test_init_missing_column(fold_change_df):
    df = fold_change_df.drop(columns=["fold_change"])
    with pytest.raises(InvalidInputError,match="Missing columns"):
        ModelClass(df,**CONSTANTS)

def test_init_empty_df():
    df = pd.DataFrame({"conc":[],"fold_change":[]})
    with pytest.raises(InvalidInputError,match="no observations"):
        ModelClass(df,**CONSTANTS)

def test_init_non_finite(fold_change_df):

    df = fold_change_df.copy()
    df.loc[2,"fold_change"] = np.nan
    with pytest.raises(InvalidInputError,match="finite"):
        ModelClass(df,**CONSTANTS)

def test_init_negative_conc(fold_change_df):

    df = fold_change_df.copy()
    df.loc[0,"conc"] = -1e-6
    with pytest.raises(InvalidInputError,match="conc"):
        ModelClass(df,**CONSTANTS)

@pytest.mark.parametrize("key, value", [
    ("R", -1.0),
    ("Nns", 0.0),
    ("Nns", -5.0),
    ("ep_ai", np.inf),
    ("ep_r", np.nan),
    ("ep_r", "a"),
    ("n_sites", 0),
    ("n_sites", 1.5),
])
def test_init_bad_constants(fold_change_df,key,value):

    constants = dict(CONSTANTS)
    constants[key] = value
    with pytest.raises(InvalidInputError,match=key):
        ModelClass(fold_change_df,**constants)

def test_init_zero_repressor(fold_change_df):
    model = ModelClass(fold_change_df,**{**CONSTANTS,"R":0})
    assert model.data.R == 0.0

def test_init_priors(fold_change_df):

    model = ModelClass(fold_change_df,priors={"ep_a_scale":20},**CONSTANTS)
    assert model.priors.ep_a_scale == 20.0
    assert model.priors.ep_i_scale == 10.0

    priors = get_priors(sigma_alpha=2.0)
    model = ModelClass(fold_change_df,priors=priors,**CONSTANTS)
    assert model.priors is priors

@pytest.mark.parametrize("priors, match", [
    ({"not_a_prior":1.0}, "not a recognized prior"),
    ({"ep_a_scale":0.0}, "ep_a_scale"),
    ({"sigma_beta":-1.0}, "sigma_beta"),
    ("not_a_dict", "dictionary"),
    (ModelPriors(ep_a_loc=0.0,ep_a_scale=-10.0,ep_i_loc=0.0,ep_i_scale=10.0,
                 sigma_alpha=0.5,sigma_beta=0.5), "ep_a_scale"),
    (ModelPriors(ep_a_loc=0.0,ep_a_scale=10.0,ep_i_loc=0.0,ep_i_scale=10.0,
                 sigma_alpha=0.0,sigma_beta=0.5), "sigma_alpha"),
    (ModelPriors(ep_a_loc=float("nan"),ep_a_scale=10.0,ep_i_loc=0.0,ep_i_scale=10.0,
                 sigma_alpha=0.5,sigma_beta=0.5), "ep_a_loc"),
])
def test_init_bad_priors(fold_change_df,priors,match):
    with pytest.raises(InvalidInputError,match=match):
        ModelClass(fold_change_df,priors=priors,**CONSTANTS)

def test_from_arrays():

    conc = [0.0,1e-5,1e-4]
    fc = [0.04,0.2,0.6]

    model = ModelClass.from_arrays(3,conc,fc,**CONSTANTS)
    assert model.data.num_obs == 3
    assert np.allclose(np.asarray(model.data.conc),conc)

@pytest.mark.parametrize("N", [2, 4])
def test_from_arrays_length_mismatch(N):
    with pytest.raises(InvalidInputError,match="expected"):
        ModelClass.from_arrays(N,[0.0,1e-5,1e-4],[0.04,0.2,0.6],**CONSTANTS)

def test_from_arrays_unequal_sequences():
    with pytest.raises(InvalidInputError,match="fold_change"):
        ModelClass.from_arrays(3,[0.0,1e-5,1e-4],[0.04,0.2],**CONSTANTS)

# ----------------------------------------------------------------------------
# log posterior and prediction data
# ----------------------------------------------------------------------------

def test_log_posterior(model):

    value = model.log_posterior({"ep_a":-9.7,"ep_i":-14.0,"sigma":0.05})
    assert np.isfinite(float(value))

    assert float(model.log_posterior({"ep_a":-9.7,"ep_i":-14.0,"sigma":1.2})) == -np.inf

def test_get_prediction_data(model):

    data = model.get_prediction_data([0.0,1e-6,1e-3,1e-2])

    assert data.fold_change is None
    assert data.num_obs == 4
    assert data.n_sites == model.data.n_sites
    assert data.ep_r == model.data.ep_r

    with pytest.raises(InvalidInputError):
        model.get_prediction_data([-1.0])

# ----------------------------------------------------------------------------
# posterior summaries
# ----------------------------------------------------------------------------

def test_extract_parameters(model,fake_posteriors):

    df = model.extract_parameters(fake_posteriors)

    assert list(df["parameter"]) == PARAM_NAMES
    for q in DEFAULT_QUANTILES:
        assert q in df.columns

    ep_a = df[df["parameter"] == "ep_a"].iloc[0]
    assert np.isclose(ep_a["mean"],np.mean(fake_posteriors["ep_a"]))
    assert np.isclose(ep_a["median"],np.median(fake_posteriors["ep_a"]))
    assert ep_a["lower_95"] < ep_a["median"] < ep_a["upper_95"]

def test_extract_parameters_custom_quantiles(model,fake_posteriors):

    df = model.extract_parameters(fake_posteriors,q_to_get={"q10":0.1})
    assert "q10" in df.columns
    assert "median" not in df.columns

    with pytest.raises(ValueError,match="q_to_get"):
        model.extract_parameters(fake_posteriors,q_to_get=[0.1])

def test_extract_parameters_missing(model,fake_posteriors):
    del fake_posteriors["sigma"]
    with pytest.raises(ValueError,match="sigma"):
        model.extract_parameters(fake_posteriors)

def test_extract_parameters_from_file(tmpdir,model,fake_posteriors):

    npz = os.path.join(tmpdir,"posterior.npz")
    np.savez(npz,**fake_posteriors)

    df = model.extract_parameters(npz)
    assert len(df) == 3

    with pytest.raises(FileNotFoundError):
        model.extract_parameters(os.path.join(tmpdir,"missing.npz"))

def test_extract_fold_change_predictions(model,fake_posteriors):

    df = model.extract_fold_change_predictions(fake_posteriors)

    assert len(df) == model.data.num_obs
    assert np.allclose(df["fold_change"],model.df["fold_change"])
    assert np.allclose(df["median"],
                       np.median(fake_posteriors["fold_change_pred"],axis=0))

def test_extract_fold_change_predictions_chain_axis(model,fake_posteriors):
    """Draws grouped by chain are flattened."""

    pred = fake_posteriors["fold_change_pred"]
    fake_posteriors["fold_change_pred"] = pred.reshape(2,100,-1)

    df = model.extract_fold_change_predictions(fake_posteriors)
    assert np.allclose(df["median"],np.median(pred,axis=0))

def test_extract_fold_change_predictions_bad(model,fake_posteriors):

    bad = dict(fake_posteriors)
    bad["fold_change_pred"] = bad["fold_change_pred"][:,:-1]
    with pytest.raises(ValueError,match="observations"):
        model.extract_fold_change_predictions(bad)

    del bad["fold_change_pred"]
    with pytest.raises(ValueError,match="not found"):
        model.extract_fold_change_predictions(bad)

def test_extract_fold_change_curves(model,fake_posteriors):

    df = model.extract_fold_change_curves(fake_posteriors)

    assert len(df) == 101
    assert df["conc"].iloc[0] == 0.0
    assert np.isclose(df["conc"].iloc[1],1e-7)
    assert np.isclose(df["conc"].iloc[-1],1e-3)

    assert np.all(df["lower_95"] <= df["median"])
    assert np.all(df["median"] <= df["upper_95"])
    assert np.all(df["median"] > 0)
    assert np.all(df["median"] <= 1)

    # induction curve rises with effector
    assert df["median"].iloc[-1] > df["median"].iloc[0]

@pytest.mark.parametrize("missing", ["ep_a","ep_i"])
def test_extract_fold_change_curves_missing(model,fake_posteriors,missing):
    del fake_posteriors[missing]
    with pytest.raises(ValueError,match=f"'{missing}' not found"):
        model.extract_fold_change_curves(fake_posteriors)

def test_extract_fold_change_curves_custom_conc(model,fake_posteriors):

    df = model.extract_fold_change_curves(fake_posteriors,
                                          conc=[0.0,1e-4],
                                          q_to_get={"median":0.5})

    assert list(df.columns) == ["conc","median"]
    assert len(df) == 2

# ----------------------------------------------------------------------------
# configuration
# ----------------------------------------------------------------------------

def test_settings(model):

    settings = model.settings
    assert settings["constants"] == model.constants
    assert settings["priors"]["ep_a_scale"] == 10.0
    assert settings["priors"]["sigma_alpha"] == 0.5

def test_config_round_trip(tmpdir,model):

    out_root = os.path.join(tmpdir,"test")
    config_file = model.write_config("fc.csv",out_root,sampler={"num_warmup":10})

    assert config_file == f"{out_root}_config.yaml"

    fc_df, constants, priors, sampler = ModelClass.load_config(config_file)

    assert fc_df == "fc.csv"
    assert sampler == {"num_warmup":10}
    for k in CONSTANTS:
        assert constants[k] == CONSTANTS[k]
    assert priors["ep_a_scale"] == 10

    with open(config_file) as f:
        raw = yaml.safe_load(f)
    assert raw["mwcfit_version"] == __version__

def test_load_config_optional_sections(tmpdir):

    config_file = os.path.join(tmpdir,"config.yaml")
    with open(config_file,"w") as f:
        yaml.dump({"fold_change_df":"fc.csv","constants":CONSTANTS},f)

    _, constants, priors, sampler = ModelClass.load_config(config_file)
    assert constants["n_sites"] == 2
    assert priors == {}
    assert sampler == {}

def test_load_config_sci_notation(tmpdir):

    config_file = os.path.join(tmpdir,"config.yaml")
    with open(config_file,"w") as f:
        f.write("fold_change_df: fc.csv\n")
        f.write("constants:\n")
        f.write("  R: 100\n")
        f.write("  Nns: 4.6e6\n")
        f.write("  ep_ai: 4.5\n")
        f.write("  ep_r: -13.9\n")
        f.write("  n_sites: 2\n")

    _, constants, _, _ = ModelClass.load_config(config_file)
    assert constants["Nns"] == 4600000

def test_load_config_errors(tmpdir):

    with pytest.raises(FileNotFoundError):
        ModelClass.load_config(os.path.join(tmpdir,"missing.yaml"))

    config_file = os.path.join(tmpdir,"config.yaml")
    with open(config_file,"w") as f:
        yaml.dump({"constants":CONSTANTS},f)
    with pytest.raises(InvalidInputError,match="fold_change_df"):
        ModelClass.load_config(config_file)

    constants = dict(CONSTANTS)
    constants.pop("ep_r")
    with open(config_file,"w") as f:
        yaml.dump({"fold_change_df":"fc.csv","constants":constants},f)
    with pytest.raises(InvalidInputError,match="ep_r"):
        ModelClass.load_config(config_file)

def test_load_config_version_mismatch(tmpdir):

    config_file = os.path.join(tmpdir,"config.yaml")
    with open(config_file,"w") as f:
        yaml.dump({"mwcfit_version":"0.0.0-old",
                   "fold_change_df":"fc.csv",
                   "constants":CONSTANTS},f)

    with pytest.warns(UserWarning,match="does not match"):
        ModelClass.load_config(config_file)

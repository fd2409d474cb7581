import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest

import gpglm.modeldiagnosis as gd
from gpglm import GLMAlgorithm
from gpglm.kernel import MaternModel
from gpglm.core import linear_basis


@pytest.fixture
def algo():
    x = np.linspace(0.0, 1.0, 8).reshape(-1, 1)
    y = 1.0 + x + 0.3 * np.sin(6.0 * x)
    return GLMAlgorithm(x, y, MaternModel(scale=[0.5], p=1), basis=linear_basis(1))


def test_ftos():
    assert gd.ftos(0.0) == "0.0"
    assert gd.ftos(1.5) == "1.500"
    assert gd.ftos(0.05) == "0.0500"
    assert gd.ftos(25000.0) == "2.500e4"
    assert gd.ftos(float("nan")) == "NaN"
    assert gd.ftos(float("inf")) == "+Inf"


def test_dataframe():
    df = gd.DataFrame([[1.0, 2.0], [3.0, 4.0]], ["a", "b"], ["r0", "r1"])
    assert df["r1", "a"] == 3.0
    assert np.allclose(df.column("b"), [2.0, 4.0])
    both = df.concat(df)
    assert both.data.shape == (4, 2)
    assert "r0:" in repr(df)
    with pytest.raises(ValueError):
        gd.DataFrame([[1.0]], ["a", "b"], ["r0"])


def test_describe_array():
    x = np.array([[0.0, 1.0], [2.0, 5.0]])
    df = gd.describe_array(x, ["x0", "x1"], scale=[1.0, 2.0])
    assert df["x0", "delta"] == 2.0
    assert df["x1", "delta_over_scale"] == 2.0


def test_fit_report(algo, capsys):
    result = algo.get_result()
    report = gd.fit_report(result, algo)
    assert set(report) == {"fit", "parameters", "trend", "optimization", "data"}
    assert report["fit"]["log_likelihood"] == result.optimal_log_likelihood
    assert set(report["parameters"]) == {"scale_0", "amplitude_0"}
    assert set(report["trend"]) == {"output_0.1", "output_0.x_0"}
    assert report["optimization"]["analytical_amplitude"]
    assert report["optimization"]["backend"] == "lapack"
    assert "bounds.scale_0" in report["optimization"]

    gd.fit_report_disp(report)
    out = capsys.readouterr().out
    assert "[Fit diagnosis]" in out
    assert "Trend coefficients" in out


def test_report_without_algorithm(algo):
    report = gd.fit_report(algo.get_result())
    assert report["optimization"] == {}


def test_diag(algo, capsys):
    report = gd.diag(algo)
    assert "fit" in report
    assert "Covariance parameters" in capsys.readouterr().out


def test_plots(algo):
    import matplotlib.pyplot as plt

    result = algo.get_result()
    fig = gd.plot_fit(result, show=False)
    assert len(fig.axes) == 1
    plt.close(fig)

    objective = algo.get_objective_function()
    parameter = algo.get_reduced_covariance_model().get_parameter()
    fig = gd.plot_log_likelihood_profile(
        objective, parameter, n_points=5, param_names=["scale_0"], show=False
    )
    assert len(fig.axes) == 1
    plt.close(fig)

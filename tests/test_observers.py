from __future__ import annotations

import contextlib
import os
import sys
import types
from pathlib import Path

import numpy as np

# 画面のない環境でも描画できるよう、pyplot の import より前にバックエンドを固定する。
os.environ.setdefault("MPLBACKEND", "Agg")

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from lasso_admm.config import ADMMConfig
from lasso_admm.logger import SERIES_KEYS, WandBLogger, state_metrics, wandb_available
from lasso_admm.solver import AdmmLassoSolver
from lasso_admm import plotting

A = np.array(
    [
        [1.0, 36.0, 66.0],
        [1.0, 37.0, 68.0],
        [1.0, 47.0, 64.0],
        [1.0, 32.0, 53.0],
        [1.0, 1.0, 101.0],
    ]
)
B = np.array([745.0, 895.0, 442.0, 440.0, 1598.0])
QUIET = ADMMConfig(max_iter=20, show_progress=False)


def test_disabled_logger_is_noop() -> None:
    logger = WandBLogger(project="lasso-admm", enabled=False)
    logger.start_run(QUIET, lam=0.01)
    result = AdmmLassoSolver(A, B, config=QUIET, callback=logger.as_callback()).run()
    logger.log_history(result.history)
    logger.finish()
    if result.n_iter != 20:
        raise AssertionError("logger callback should not affect iteration count")
    if not isinstance(wandb_available(), bool):
        raise AssertionError("wandb_available should return bool")


@contextlib.contextmanager
def recording_wandb():
    """init / log / finish の呼び出しを記録するだけの wandb を sys.modules に差し込む。"""

    calls = {"init": [], "log": [], "finish": 0}
    module = types.ModuleType("wandb")

    def init(**kwargs):
        calls["init"].append(kwargs)
        return object()

    def log(payload, step=None):
        calls["log"].append((step, dict(payload)))

    def finish():
        calls["finish"] += 1

    module.init = init
    module.log = log
    module.finish = finish

    saved = sys.modules.get("wandb")
    sys.modules["wandb"] = module
    try:
        yield calls
    finally:
        if saved is None:
            sys.modules.pop("wandb", None)
        else:
            sys.modules["wandb"] = saved


def test_callback_and_history_steps_are_monotonic() -> None:
    logger = WandBLogger(project="lasso-admm", tags=["example"])
    with recording_wandb() as calls:
        logger.start_run(QUIET, lam=0.01)
        result = AdmmLassoSolver(
            A, B, lam=0.01, config=QUIET, callback=logger.as_callback()
        ).run()
        logger.log_history(result.history)
        logger.finish()

    if len(calls["init"]) != 1:
        raise AssertionError(f"wandb.init calls: {len(calls['init'])}")
    init = calls["init"][0]
    if init["project"] != "lasso-admm" or init["tags"] != ["example"]:
        raise AssertionError(f"unexpected init kwargs: {init}")
    if init["config"]["max_iter"] != 20 or init["config"]["lam"] != 0.01:
        raise AssertionError(f"run config missing solver settings: {init['config']}")

    steps = [step for step, _ in calls["log"]]
    if any(later < earlier for earlier, later in zip(steps, steps[1:])):
        raise AssertionError(f"logged steps go backwards: {steps}")

    # 反復ごとの 20 行（step 1..20）と、同じ最終 step への要約 1 行
    if steps != list(range(1, 21)) + [20]:
        raise AssertionError(f"unexpected steps: {steps}")
    for _, payload in calls["log"][:-1]:
        if set(payload) != {"admm/rho", "admm/n_nonzero", "admm/primal_residual"}:
            raise AssertionError(f"callback payload keys: {sorted(payload)}")

    summary = calls["log"][-1][1]
    if summary["summary/converged"] is not False:
        raise AssertionError("fixed schedule should report converged=False")
    if summary["summary/stopped_by_deadline"] is not False:
        raise AssertionError("no deadline was set")
    if summary["summary/n_iter"] != 20:
        raise AssertionError(f"summary n_iter: {summary['summary/n_iter']}")
    if summary["summary/objective"] != result.history["objective"][-1]:
        raise AssertionError("summary should carry the last objective value")
    if calls["finish"] != 1:
        raise AssertionError(f"wandb.finish calls: {calls['finish']}")


def test_history_only_logs_one_based_rows() -> None:
    result = AdmmLassoSolver(A, B, config=QUIET).run()
    logger = WandBLogger(project="lasso-admm")
    with recording_wandb() as calls:
        logger.start_run()
        logger.log_history(result.history)

    steps = [step for step, _ in calls["log"]]
    if steps != list(range(1, 21)) + [20]:
        raise AssertionError(f"unexpected steps: {steps}")

    first = calls["log"][0][1]
    expected_keys = {f"admm/{key}" for key in SERIES_KEYS}
    if set(first) != expected_keys:
        raise AssertionError(f"history payload keys: {sorted(first)}")
    if first["admm/objective"] != result.history["objective"][0]:
        raise AssertionError("step 1 should hold the first iteration")
    if first["admm/rho"] != 1e-4:
        raise AssertionError(f"step 1 rho: {first['admm/rho']}")
    if "summary/converged" not in calls["log"][-1][1]:
        raise AssertionError("summary row missing")


def test_backward_step_rejected() -> None:
    logger = WandBLogger(project="lasso-admm")
    with recording_wandb() as calls:
        logger.start_run()
        logger.log_fit({"rho": 1.0}, step=5)
        try:
            logger.log_fit({"rho": 1.0}, step=3)
        except ValueError:
            pass
        else:
            raise AssertionError("a step smaller than the last one should raise")
        logger.log_fit({"rho": 2.0}, step=5)
    if [step for step, _ in calls["log"]] != [5, 5]:
        raise AssertionError(f"unexpected steps: {calls['log']}")


def test_state_metrics_row() -> None:
    rows = []
    AdmmLassoSolver(
        A, B, config=QUIET, callback=lambda state: rows.append(state_metrics(state))
    ).solve()
    if len(rows) != 20:
        raise AssertionError(f"callback rows: {len(rows)}")
    for key in ("rho", "n_nonzero", "primal_residual"):
        if key not in rows[-1]:
            raise AssertionError(f"state_metrics missing {key}")
    if not (0 <= rows[-1]["n_nonzero"] <= 3):
        raise AssertionError("n_nonzero out of range")


def test_plots() -> None:
    if plotting.plt is None:
        print("matplotlib が利用できないため描画テストをスキップします。")
        return
    result = AdmmLassoSolver(A, B, config=QUIET).run()
    ax = plotting.plot_history(result.history)
    if len(ax.get_lines()) == 0:
        raise AssertionError("plot_history drew nothing")
    ax = plotting.plot_coefficients(result.z, names=["intercept", "age", "weight"])
    if len(ax.patches) != 3:
        raise AssertionError(f"plot_coefficients bars: {len(ax.patches)}")
    try:
        plotting.plot_coefficients(result.z, names=["only-one"])
    except ValueError:
        pass
    else:
        raise AssertionError("names length mismatch should raise ValueError")
    plotting.plt.close("all")


def test_only_exact_zeros_are_greyed() -> None:
    if plotting.plt is None:
        print("matplotlib が利用できないため描画テストをスキップします。")
        return
    from matplotlib.colors import to_rgba

    # λ が十分大きいと z はすべて 0 になるが、x は線形ソルブ由来で 0 にならない
    result = AdmmLassoSolver(A, B, lam=1e6, config=QUIET).run()
    grey = to_rgba("tab:gray")

    ax = plotting.plot_coefficients(result.z)
    if not all(bar.get_facecolor() == grey for bar in ax.patches):
        raise AssertionError("zero entries of z should be drawn grey")

    ax = plotting.plot_coefficients(result.x)
    if any(bar.get_facecolor() == grey for bar in ax.patches):
        raise AssertionError("x has no exact zeros, so no bar should be grey")
    plotting.plt.close("all")


def main() -> None:
    test_disabled_logger_is_noop()
    test_callback_and_history_steps_are_monotonic()
    test_history_only_logs_one_based_rows()
    test_backward_step_rejected()
    test_state_metrics_row()
    test_plots()
    test_only_exact_zeros_are_greyed()
    print("OK: logger / plotting checks passed")


if __name__ == "__main__":
    main()

"""ADMM 反復を WandB に記録する観測者。

方針:
    - wandb は任意依存。未インストールでもソルバ自体は動く。
    - ソルバは I/O を持たないので、記録は callback として外から差し込む。
    - wandb は step が減るログを捨てるため、step は 1 始まりで単調非減少に保つ。
      反復 k（1 始まり）のログは step=k に置き、最後に同じ step へ要約を載せる。
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Optional, Union

import numpy as np

from .config import ADMMConfig

if TYPE_CHECKING:
    from .solver import ADMMState

# 反復ごとの系列として記録する履歴キー
SERIES_KEYS = ("objective", "primal_residual", "dual_residual", "rho", "n_nonzero")


def _import_wandb():
    try:
        return importlib.import_module("wandb")
    except ImportError as exc:
        raise RuntimeError(
            "wandb がインストールされていません。"
            " `pip install lasso-admm[wandb]` を実行するか、enabled=False にしてください。"
        ) from exc


def wandb_available() -> bool:
    """wandb が import できるかを返す。"""

    try:
        _import_wandb()
    except RuntimeError:
        return False
    return True


def state_metrics(state: "ADMMState") -> Dict[str, Any]:
    """ADMMState から 1 反復分の指標を作る。

    ADMMState だけで計算できるもの（ρ, z の非ゼロ数, ||x - z||）に限る。
    目的関数値や dual residual は A と直前の z が要るので run() の履歴側で持つ。
    """

    row: Dict[str, Any] = {
        "rho": float(state.rho),
        "n_nonzero": int(np.count_nonzero(state.z)),
    }
    if state.x is not None:
        row["primal_residual"] = float(np.linalg.norm(state.x - state.z))
    return row


@dataclass
class WandBLogger:
    """ADMM の反復と結果を WandB run に記録する。

    使い方:
        logger = WandBLogger(project="lasso-admm")
        logger.start_run(config, lam=0.01)
        result = AdmmLassoSolver(A, b, lam=0.01, config=config,
                                 callback=logger.as_callback()).run()
        logger.log_history(result.history)
        logger.finish()

    enabled=False のときは全メソッドが何もしない（wandb も import しない）。
    """

    project: str
    entity: Optional[str] = None
    name: Optional[str] = None
    tags: Optional[Iterable[str]] = None
    enabled: bool = True
    prefix: str = "admm"
    _run: Any = field(default=None, init=False, repr=False)
    # 直近に記録した step。0 はまだ何も記録していないことを表す。
    _last_step: int = field(default=0, init=False, repr=False)

    def start_run(
        self,
        config: Union[ADMMConfig, Mapping[str, Any], None] = None,
        *,
        lam: Optional[float] = None,
        name: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ) -> None:
        """WandB run を開始し、ソルバ設定（と λ）を run の config に載せる。"""

        if not self.enabled:
            return
        wandb = _import_wandb()

        if isinstance(config, ADMMConfig):
            run_config: Dict[str, Any] = config.to_dict()
        else:
            run_config = dict(config or {})
        if lam is not None:
            run_config["lam"] = float(lam)

        if tags is None:
            tags = self.tags
        self._run = wandb.init(
            project=self.project,
            entity=self.entity,
            name=name or self.name,
            tags=list(tags) if tags else None,
            config=run_config,
        )
        self._last_step = 0

    def log_fit(self, row: Mapping[str, Any], step: int) -> None:
        """1 行分の指標を `<prefix>/<key>` として step に記録する。

        Raises:
            ValueError: step が直前に記録した step より小さい場合。
        """

        if not self.enabled:
            return
        step = int(step)
        if step < self._last_step:
            raise ValueError(
                f"step は単調非減少である必要があります: {step} < {self._last_step}"
            )
        wandb = _import_wandb()
        wandb.log({f"{self.prefix}/{key}": value for key, value in row.items()}, step=step)
        self._last_step = step

    def log_iteration(self, state: "ADMMState") -> None:
        """反復直後の状態を step=state.iteration（1 始まり）に記録する。"""

        self.log_fit(state_metrics(state), step=state.iteration)

    def as_callback(self) -> Callable[["ADMMState"], None]:
        """AdmmLassoSolver の callback として渡せる関数を返す。"""

        return self.log_iteration

    def log_history(self, history: Mapping[str, Any]) -> None:
        """run() の履歴と最終結果の要約を記録する。

        反復 i（0 始まりの添字）の行は step=i+1 に置く。callback で既に記録済みの
        step は飛ばす。最後に converged / stopped_by_deadline / n_iter と各系列の
        最終値を `summary/...` として最後の step に記録する。
        """

        if not self.enabled:
            return

        series = {
            key: list(history[key])
            for key in SERIES_KEYS
            if isinstance(history.get(key), (list, tuple))
        }
        n_iter = max((len(values) for values in series.values()), default=0)

        for index in range(n_iter):
            step = index + 1
            if step <= self._last_step:
                continue
            row = {key: values[index] for key, values in series.items() if index < len(values)}
            self.log_fit(row, step=step)

        summary: Dict[str, Any] = {
            "summary/converged": bool(history.get("converged", False)),
            "summary/stopped_by_deadline": bool(history.get("stopped_by_deadline", False)),
            "summary/n_iter": n_iter,
        }
        for key, values in series.items():
            if values:
                summary[f"summary/{key}"] = values[-1]

        wandb = _import_wandb()
        step = max(self._last_step, n_iter)
        wandb.log(summary, step=step)
        self._last_step = step

    def finish(self) -> None:
        """WandB run を終了する。"""

        if not self.enabled:
            return
        wandb = _import_wandb()
        wandb.finish()
        self._run = None
        self._last_step = 0

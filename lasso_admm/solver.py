"""LASSO を ADMM で解くソルバ。

解く問題:
    argmin_x (1/2)||Ax - b||^2 + λ||x||_1

    x と、その疎なコピー z に分割し、合意制約 x = z を双対変数 l で結合する。

責務:
    - ADMM 反復（x の更新 → z の prox 更新 → l の双対更新 → ρ の増加）を回す
    - 停止規則（固定回数 / primal・dual residual）と経過時間による打ち切り
    - 反復履歴の記録と、観測用コールバックの呼び出し

設計意図:
    - 反復状態は ADMMState として明示し、各ステップは状態を受け取って新しい状態を返す。
      solve() のたびに初期状態から作り直すため、呼び出し同士は独立で決定的になる。
    - AᵀA と Aᵀb は構築時に一度だけ計算し、毎反復で再利用する。
    - ソルバ本体は I/O を行わない。進捗表示は show_progress=True のときだけ tqdm で行い、
      それ以外の出力はコールバック（観測者）側に任せる。
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np
from scipy.linalg import cho_factor, cho_solve
from tqdm.auto import tqdm

from .config import ADMMConfig
from .errors import NumericDivergenceError, ShapeError, SingularSystemError
from .metrics import lasso_objective
from .prox import soft_threshold
from .types import ArrayLike, Matrix, Vector


@dataclass(frozen=True)
class ADMMState:
    """ADMM の反復状態。

    Attributes:
        x: primal 変数（係数ベクトル）。最初の反復前は None。
        z: x の疎なコピー（soft-threshold の結果）。
        l: 双対変数（ラグランジュ乗数）。
        rho: 次の反復で使うペナルティ係数 ρ。
        iteration: 完了した反復回数。
    """

    x: Optional[Vector]
    z: Vector
    l: Vector
    rho: float
    iteration: int = 0


@dataclass
class ADMMResult:
    """solve の結果と診断情報。"""

    x: Vector
    z: Vector
    l: Vector
    rho: float
    n_iter: int
    converged: bool
    stopped_by_deadline: bool
    history: Dict[str, Any] = field(default_factory=dict)


IterationCallback = Callable[[ADMMState], None]


def primal_update(
    gram: Matrix,
    atb: Vector,
    z: Vector,
    l: Vector,
    rho: float,
    factorization: str = "cholesky",
) -> Vector:
    """x ← (AᵀA + ρI)^{-1} (Aᵀb + ρz - l) を返す。

    ρ > 0 なら係数行列は正定値になる。ρ = 0 かつ AᵀA が特異な場合は分解に失敗する。

    Raises:
        SingularSystemError: 係数行列が分解できない場合。
        ValueError: factorization が未知の場合。
    """

    system = gram + rho * np.eye(gram.shape[0])
    rhs = atb + rho * z - l
    try:
        if factorization == "cholesky":
            return cho_solve(
                cho_factor(system, check_finite=False), rhs, check_finite=False
            )
        if factorization == "solve":
            return np.linalg.solve(system, rhs)
        if factorization == "inverse":
            return np.linalg.inv(system) @ rhs
    except np.linalg.LinAlgError as exc:
        raise SingularSystemError(
            f"x 更新の係数行列 (AᵀA + ρI, ρ={rho:g}) が分解できません。"
        ) from exc
    raise ValueError(f"Unknown factorization: {factorization!r}")


def proximal_update(x: Vector, l: Vector, rho: float, lam: float) -> Vector:
    """z ← S(x + l/ρ, λ/ρ)。"""

    return soft_threshold(x + l / rho, lam / rho)


def dual_update(l: Vector, x: Vector, z: Vector, rho: float) -> Vector:
    """l ← l + ρ(x - z)。"""

    return l + rho * (x - z)


def next_rho(rho: float, config: ADMMConfig) -> float:
    """ρ ← min(rho_max, ρ * rho_growth)。"""

    return min(config.rho_max, rho * config.rho_growth)


def check_finite_state(state: ADMMState) -> None:
    """x, z, l がすべて有限値であることを確認する。

    Raises:
        NumericDivergenceError: NaN/inf を含む変数があった場合。
    """

    for name in ("x", "z", "l"):
        value = getattr(state, name)
        if value is not None and not np.all(np.isfinite(value)):
            raise NumericDivergenceError(name, state.iteration)


class AdmmLassoSolver:
    """ADMM による LASSO ソルバ。"""

    def __init__(
        self,
        A: ArrayLike,
        b: ArrayLike,
        lam: float = 0.01,
        config: Optional[ADMMConfig] = None,
        callback: Optional[IterationCallback] = None,
    ) -> None:
        A_array = np.array(A, dtype=float)
        b_array = np.array(b, dtype=float)

        # (m, 1) の列ベクトルは 1 次元へ平坦化する。それ以外の形は受け付けない。
        if b_array.ndim == 2 and b_array.shape[1] == 1:
            b_array = b_array[:, 0]

        if A_array.ndim != 2:
            raise ShapeError("A は 2 次元配列（m, n）である必要があります。")
        m, n = A_array.shape
        if m < 1 or n < 1:
            raise ShapeError(f"A は空でない行列である必要があります: shape={A_array.shape}")
        if b_array.ndim != 1:
            raise ShapeError("b は 1 次元配列である必要があります。")
        if b_array.shape[0] != m:
            raise ShapeError(
                f"b の長さ {b_array.shape[0]} が A の行数 {m} と一致しません。"
            )
        if np.any(~np.isfinite(A_array)) or np.any(~np.isfinite(b_array)):
            raise ValueError("A または b に NaN/inf が含まれています。")

        lam = float(lam)
        if not (np.isfinite(lam) and lam >= 0.0):
            raise ValueError("lam は非負の有限値である必要があります。")

        # A, b: 問題データ。ソルバの寿命の間は変更しない。
        self.A = A_array
        self.b = b_array

        # lam: L1 正則化の重み λ。
        self.lam = lam

        # config: 反復回数・ρ スケジュール・停止規則など。
        self.config = config if config is not None else ADMMConfig()

        # callback: 各反復後に ADMMState を受け取る観測者（任意）。
        self.callback = callback

        # 毎反復で使う AᵀA（n×n, 対称半正定値）と Aᵀb を前計算する。
        self.gram = self.A.T @ self.A
        self.atb = self.A.T @ self.b

    @property
    def n_features(self) -> int:
        return int(self.A.shape[1])

    def initial_state(self) -> ADMMState:
        """z = 0, l = 0, ρ = rho0 の初期状態を返す。"""

        n = self.n_features
        return ADMMState(
            x=None,
            z=np.zeros(n, dtype=float),
            l=np.zeros(n, dtype=float),
            rho=float(self.config.rho0),
            iteration=0,
        )

    def step(self, state: ADMMState) -> ADMMState:
        """ADMM を 1 反復進めた新しい状態を返す（x → z → l → ρ の順に更新）。"""

        rho = state.rho
        x = primal_update(
            self.gram, self.atb, state.z, state.l, rho, self.config.factorization
        )
        z = proximal_update(x, state.l, rho, self.lam)
        l = dual_update(state.l, x, z, rho)
        return ADMMState(
            x=x,
            z=z,
            l=l,
            rho=next_rho(rho, self.config),
            iteration=state.iteration + 1,
        )

    def solve(self) -> Vector:
        """ADMM を実行し、係数ベクトル x を返す。"""

        return self.run().x

    def run(self) -> ADMMResult:
        """ADMM を実行し、x に加えて z, l, ρ と反復履歴を返す。

        Raises:
            SingularSystemError: x 更新の連立方程式が解けない場合。
            NumericDivergenceError: check_finite=True で NaN/inf を検出した場合。
        """

        config = self.config
        state = self.initial_state()

        history: Dict[str, Any] = {
            # 目的関数値 (1/2)||Ax - b||^2 + λ||x||_1
            "objective": [],
            # primal residual: ||x - z||
            "primal_residual": [],
            # dual residual: ||ρ (z^k - z^{k-1})||
            "dual_residual": [],
            # その反復で使った ρ
            "rho": [],
            # z の非ゼロ成分数
            "n_nonzero": [],
        }

        converged = False
        stopped_by_deadline = False
        max_iter = int(config.max_iter)
        started = time.perf_counter()

        for k in tqdm(
            range(max_iter),
            desc="ADMM",
            leave=False,
            disable=not config.show_progress,
        ):
            rho = state.rho
            z_prev = state.z
            state = self.step(state)

            if config.check_finite:
                check_finite_state(state)

            primal_residual = float(np.linalg.norm(state.x - state.z))
            dual_residual = float(rho * np.linalg.norm(state.z - z_prev))
            history["objective"].append(
                lasso_objective(self.A, self.b, state.x, self.lam)
            )
            history["primal_residual"].append(primal_residual)
            history["dual_residual"].append(dual_residual)
            history["rho"].append(float(rho))
            history["n_nonzero"].append(int(np.count_nonzero(state.z)))

            if self.callback is not None:
                self.callback(state)

            if (
                config.stopping == "residual"
                and primal_residual <= config.tol_primal
                and dual_residual <= config.tol_dual
            ):
                converged = True
                break

            # 協調的な打ち切り点。線形ソルブの途中では止めない。
            if (
                config.max_seconds is not None
                and k + 1 < max_iter
                and time.perf_counter() - started >= config.max_seconds
            ):
                stopped_by_deadline = True
                break

        history["stopped_by_deadline"] = stopped_by_deadline
        history["converged"] = converged

        return ADMMResult(
            x=state.x,
            z=state.z,
            l=state.l,
            rho=float(state.rho),
            n_iter=int(state.iteration),
            converged=converged,
            stopped_by_deadline=stopped_by_deadline,
            history=history,
        )

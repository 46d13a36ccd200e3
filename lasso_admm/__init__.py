"""lasso_admm パッケージ。

ADMM による LASSO 回帰の公開 API をここで再エクスポートする。
利用者は基本的に `from lasso_admm import AdmmLassoSolver` や
`from lasso_admm import LassoADMM` の形で import できる。
"""

from .config import ADMMConfig, load_config
from .errors import (
    LassoADMMError,
    NumericDivergenceError,
    ShapeError,
    SingularSystemError,
)
from .model import LassoADMM
from .prox import soft_threshold
from .reducer import DimensionalityReducer, TruncatedSVDReducer
from .solver import ADMMResult, ADMMState, AdmmLassoSolver

__all__ = [
    "ADMMConfig",
    "ADMMResult",
    "ADMMState",
    "AdmmLassoSolver",
    "DimensionalityReducer",
    "LassoADMM",
    "LassoADMMError",
    "NumericDivergenceError",
    "ShapeError",
    "SingularSystemError",
    "TruncatedSVDReducer",
    "load_config",
    "soft_threshold",
]

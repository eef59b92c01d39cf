"""EM training driver, sufficient statistics and convergence monitoring."""

from phylohmm.training.config import EMConfig, EM_CONVERGENCE_THRESHOLD, FB_TOLERANCE
from phylohmm.training.em import EMTrainer, train_by_em, default_log_function
from phylohmm.training.monitor import ConvergenceMonitor, ConvergenceWarning, TrainingStatus
from phylohmm.training.stats import SufficientStats
from phylohmm.training.workspace import EMWorkspace

__all__ = [
    'EMConfig',
    'EM_CONVERGENCE_THRESHOLD',
    'FB_TOLERANCE',
    'EMTrainer',
    'train_by_em',
    'default_log_function',
    'ConvergenceMonitor',
    'ConvergenceWarning',
    'TrainingStatus',
    'SufficientStats',
    'EMWorkspace',
]

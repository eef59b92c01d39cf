"""
Tests for phylohmm.training.monitor.
"""
import pytest
import numpy as np

from phylohmm.training.monitor import ConvergenceMonitor, TrainingStatus


class TestConvergenceMonitor:
    def test_first_iteration_always_updates(self):
        monitor = ConvergenceMonitor(threshold=0.1)
        assert monitor.update(-1e9) is True
        assert monitor.status is TrainingStatus.RUNNING
        assert monitor.previous == -1e9

    def test_converges_on_small_gain(self):
        monitor = ConvergenceMonitor(threshold=0.1)
        monitor.update(-100.0)
        assert monitor.update(-99.0) is True
        assert monitor.update(-98.95) is False

        assert monitor.converged
        assert monitor.done
        assert monitor.history == [-100.0, -99.0, -98.95]
        # The discarded iteration is not recorded as previous
        assert monitor.previous == -99.0

    def test_gain_equal_to_threshold_converges(self):
        monitor = ConvergenceMonitor(threshold=0.5)
        monitor.update(-10.0)
        assert monitor.update(-9.5) is False

    def test_decrease_converges(self):
        monitor = ConvergenceMonitor(threshold=0.1)
        monitor.update(-10.0)
        assert monitor.update(-11.0) is False
        assert monitor.converged

    def test_max_iter(self):
        monitor = ConvergenceMonitor(threshold=0.1, max_iter=3)
        assert monitor.update(-30.0)
        assert monitor.update(-20.0)
        assert monitor.update(-10.0) is False

        assert monitor.status is TrainingStatus.MAX_ITER
        assert not monitor.converged
        assert monitor.iter == 3

    def test_update_after_stop_raises(self):
        monitor = ConvergenceMonitor(threshold=0.1, max_iter=1)
        monitor.update(-1.0)
        with pytest.raises(RuntimeError):
            monitor.update(0.0)

    def test_delta(self):
        monitor = ConvergenceMonitor()
        assert np.isnan(monitor.delta)
        monitor.update(-5.0)
        monitor.update(-3.0)
        assert monitor.delta == pytest.approx(2.0)

    def test_repr(self):
        assert 'running' in repr(ConvergenceMonitor())

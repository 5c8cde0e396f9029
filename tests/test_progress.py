"""
Tests for ProgressReporter.
"""

import pytest

from aptops.errors import ProgressRegressionError
from aptops.progress import ProgressReporter


def test_forwards_to_sink():
    seen = []
    reporter = ProgressReporter(lambda completed, total: seen.append((completed, total)))
    reporter.report(0, 3)
    reporter.report(1, 3)
    assert seen == [(0, 3), (1, 3)]
    assert reporter.current.completed_steps == 1


def test_works_without_sink():
    reporter = ProgressReporter()
    reporter.report(0, 2)
    reporter.report(2, 2)
    assert [s.completed_steps for s in reporter.history] == [0, 2]


def test_repeated_value_allowed():
    reporter = ProgressReporter()
    reporter.report(1, 3)
    reporter.report(1, 3)
    assert len(reporter.history) == 2


def test_regression_rejected():
    seen = []
    reporter = ProgressReporter(lambda c, t: seen.append(c))
    reporter.report(2, 3)
    with pytest.raises(ProgressRegressionError):
        reporter.report(1, 3)
    assert seen == [2]

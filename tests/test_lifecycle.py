"""
Tests for OperationTracker state transitions.
"""

import pytest

from aptops.errors import IllegalTransitionError
from aptops.lifecycle import OperationTracker
from aptops.models import OperationState as S


class TestTransitions:

    def test_happy_path(self):
        tracker = OperationTracker("ping")
        tracker.start()
        tracker.complete(True)
        assert tracker.history == [S.PENDING, S.RUNNING, S.COMPLETED_SUCCESS]

    def test_retry_path(self):
        tracker = OperationTracker()
        tracker.start()
        tracker.retrying()
        tracker.complete(False)
        assert tracker.history == [S.PENDING, S.RUNNING, S.RETRYING, S.COMPLETED_FAILURE]
        assert tracker.retried

    def test_retrying_only_once_per_invocation(self):
        tracker = OperationTracker()
        tracker.start()
        tracker.retrying()
        with pytest.raises(IllegalTransitionError):
            tracker.retrying()

    def test_next_invocation_restores_retry_allowance(self):
        tracker = OperationTracker()
        tracker.next_invocation()
        tracker.retrying()
        tracker.next_invocation()
        assert tracker.state is S.RUNNING
        tracker.retrying()
        assert tracker.history.count(S.RETRYING) == 2

    def test_retrying_requires_running(self):
        with pytest.raises(IllegalTransitionError):
            OperationTracker().retrying()

    def test_cannot_start_twice(self):
        tracker = OperationTracker()
        tracker.start()
        with pytest.raises(IllegalTransitionError):
            tracker.start()

    def test_cannot_complete_from_pending(self):
        with pytest.raises(IllegalTransitionError):
            OperationTracker().complete(True)

    @pytest.mark.parametrize("success", [True, False])
    def test_completed_is_terminal(self, success):
        tracker = OperationTracker()
        tracker.start()
        tracker.complete(success)
        with pytest.raises(IllegalTransitionError):
            tracker.complete(not success)
        with pytest.raises(IllegalTransitionError):
            tracker.next_invocation()
        with pytest.raises(IllegalTransitionError):
            tracker.retrying()

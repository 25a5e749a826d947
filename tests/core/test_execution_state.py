"""执行状态派生单元测试"""

from datetime import UTC, datetime, timedelta

from runtrack.core.execution_state import EXECUTION_TOOLTIPS, derive_execution_state
from runtrack.core.models import ExecutionConfidence, RunSnapshot, TerminationCategory

NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def _snapshot(status: str, **fields) -> RunSnapshot:
    fields.setdefault("created_at", "2026-03-01T11:50:00+00:00")
    return RunSnapshot(run_id="r1", campaign_id="c1", status=status, **fields)


class TestDeriveExecutionState:
    def test_not_executed(self):
        state = derive_execution_state(None, no_runs=True)
        assert state.confidence == ExecutionConfidence.NOT_EXECUTED
        assert state.confidence_label == "Not Yet Executed"
        assert state.next_step_recommendation is None

    def test_queued(self):
        state = derive_execution_state(_snapshot("queued"), False, NOW)
        assert state.confidence_label == "Queued"
        assert [e.id for e in state.timeline] == ["run_created", "awaiting_pickup"]

    def test_stale_has_recommendation(self):
        snapshot = _snapshot("running", started_at=(NOW - timedelta(hours=1)).isoformat())
        state = derive_execution_state(snapshot, False, NOW)
        assert state.confidence == ExecutionConfidence.STALE
        assert "30 minutes" in state.outcome_statement
        assert state.next_step_recommendation

    def test_completed_no_steps(self):
        state = derive_execution_state(_snapshot("completed"), False, NOW)
        assert state.confidence == ExecutionConfidence.COMPLETED_NO_STEPS_OBSERVED
        assert state.confidence_label == "Completed"
        assert "no execution steps were observed" in state.outcome_statement

    def test_partial(self):
        state = derive_execution_state(_snapshot("partial"), False, NOW)
        assert state.confidence == ExecutionConfidence.COMPLETED
        assert state.confidence_label == "Partially Completed"

    def test_unknown(self):
        state = derive_execution_state(_snapshot("archived"), False, NOW)
        assert state.confidence == ExecutionConfidence.UNKNOWN
        assert state.outcome_statement == "Status: archived"


class TestFailedState:
    """失败状态按终止原因分类展示"""

    def test_unclassified_failure(self):
        state = derive_execution_state(_snapshot("failed"), False, NOW)
        assert state.confidence == ExecutionConfidence.FAILED
        assert state.confidence_label == "Failed"
        assert state.termination.category == TerminationCategory.UNCLASSIFIED
        assert state.next_step_recommendation == state.termination.recommendation

    def test_timeout_is_paused_not_error(self):
        state = derive_execution_state(
            _snapshot("failed", termination_reason="execution_timeout"), False, NOW
        )
        assert state.confidence == ExecutionConfidence.FAILED
        assert state.confidence_label == "Paused (Timeout)"
        assert state.termination.is_error is False
        assert state.timeline[-1].id == "execution_paused"

    def test_invariant_violation(self):
        state = derive_execution_state(
            _snapshot("failed", termination_reason="invariant_violation"), False, NOW
        )
        assert state.confidence_label == "Failed - Invariant Violation"
        assert state.termination.counters_valid is False

    def test_timeout_reports_counters_before_pause(self):
        snapshot = _snapshot(
            "failed", termination_reason="execution_timeout", orgs_sourced=12
        )
        state = derive_execution_state(snapshot, False, NOW)
        assert state.counters.orgs_sourced == 12
        assert state.counters.leads_promoted == 0
        assert "12 organizations sourced" in state.outcome_statement

    def test_halt_reports_counters(self):
        snapshot = _snapshot(
            "failed", termination_reason="batch_limit_reached", contacts_discovered=40
        )
        state = derive_execution_state(snapshot, False, NOW)
        assert state.confidence_label == "Incomplete"
        assert state.counters.contacts_discovered == 40

    def test_invariant_violation_hides_counters(self):
        """计数器无效时不展示"""
        snapshot = _snapshot(
            "failed", termination_reason="invariant_violation", orgs_sourced=12
        )
        state = derive_execution_state(snapshot, False, NOW)
        assert state.counters is None
        assert "organizations sourced" not in state.outcome_statement

    def test_completed_reports_counters(self):
        state = derive_execution_state(_snapshot("completed", leads_promoted=3), False, NOW)
        assert state.counters.leads_promoted == 3

    def test_same_reason_same_narrative(self):
        snapshot = _snapshot("failed", termination_reason="batch_limit_reached")
        assert derive_execution_state(snapshot, False, NOW) == derive_execution_state(
            snapshot, False, NOW
        )


class TestTooltips:
    def test_known_terms(self):
        assert {"completed", "failed", "stale", "no_steps_observed"} <= set(EXECUTION_TOOLTIPS)

"""Tests for leadcascade.services.escalation — the expiry / handover sweep."""
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from leadcascade.services import config_store, escalation, orchestrator, responsibility
from leadcascade.services.convergence import finalize_all
from leadcascade.services.escalation import SweepResult, escalate_entry, sweep

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
A, B, C = 101, 102, 103


def hours(n):
    return T0 + timedelta(hours=n)


@pytest.fixture(autouse=True)
def mock_stuck_alert():
    with patch('leadcascade.services.escalation.notifications.notify_stuck_lead') as m:
        yield m


class TestSweep:

    def test_before_expiry_creates_nothing(self, make_config, entries):
        make_config(queue=[A, B, C], sla_hours_per_step=24)
        orchestrator.start_cascade(1, 50, now=T0)

        result = sweep(hours(23))

        assert result == SweepResult()
        assert len(entries(50)) == 1

    def test_expired_entry_hands_over_to_next_consultant(self, make_config, entries):
        """Scenario: sweep at T0+25h expires A and seeds B for 24h."""
        make_config(queue=[A, B, C], sla_hours_per_step=24)
        orchestrator.start_cascade(1, 50, now=T0)

        result = sweep(hours(25))

        first, second = entries(50)
        assert first['status'] == 'Expired'
        assert first['finalization_reason'] == 'SLA_Expirado'
        assert second['sequence'] == 2
        assert second['consultant_id'] == B
        assert second['status'] == 'Active'
        assert second['started_at'] == hours(25).isoformat()
        assert second['expires_at'] == hours(49).isoformat()
        assert second['lead_id'] == 1
        assert (result.examined, result.expired, result.escalated) == (1, 1, 1)

    def test_expiry_at_exact_deadline(self, make_config, entries):
        make_config(queue=[A, B], sla_hours_per_step=24)
        orchestrator.start_cascade(1, 50, now=T0)

        sweep(hours(24))

        assert [e['consultant_id'] for e in entries(50)] == [A, B]

    def test_one_step_per_sweep(self, make_config, entries):
        make_config(queue=[A, B, C], sla_hours_per_step=1)
        orchestrator.start_cascade(1, 50, now=T0)

        sweep(hours(10))

        # B gets a fresh SLA from the sweep time, not from A's deadline
        assert [e['sequence'] for e in entries(50)] == [1, 2]
        assert entries(50)[1]['expires_at'] == hours(11).isoformat()

    def test_walks_whole_queue_then_sticks(self, make_config, entries, mock_stuck_alert):
        make_config(queue=[A, B, C], sla_hours_per_step=1)
        orchestrator.start_cascade(1, 50, now=T0)

        for h in (1, 2, 3):
            sweep(hours(h))
        result = sweep(hours(4))

        rows = entries(50)
        assert [e['consultant_id'] for e in rows] == [A, B, C]
        assert [e['status'] for e in rows] == ['Expired'] * 3
        assert result == SweepResult()
        assert mock_stuck_alert.call_count == 1
        alert = mock_stuck_alert.call_args[0][0]
        assert alert['cliente_id'] == 50
        assert alert['consultant_id'] == C

    def test_single_consultant_queue_is_terminal(self, make_config, entries, mock_stuck_alert):
        """Scenario: queue=[A], 1h SLA → expired, no successor, reported stuck."""
        make_config(queue=[A], sla_hours_per_step=1)
        orchestrator.start_cascade(1, 50, now=T0)

        result = sweep(hours(2))

        assert [e['status'] for e in entries(50)] == ['Expired']
        assert (result.expired, result.escalated, result.stuck) == (1, 0, 1)
        mock_stuck_alert.assert_called_once()

    def test_successor_takes_current_sla_and_keeps_snapshot(self, make_config, entries):
        config = make_config(queue=[A, B, C], sla_hours_per_step=24)
        orchestrator.start_cascade(1, 50, now=T0)
        config_store.update_config(config['id'], {'queue': [C, A], 'sla_hours_per_step': 2})

        sweep(hours(25))

        first, second = entries(50)
        assert first['sla_hours'] == 24
        assert second['consultant_id'] == B
        assert second['sla_hours'] == 2
        assert second['expires_at'] == hours(27).isoformat()

    def test_successor_falls_back_to_captured_sla_without_active_config(self, make_config, entries):
        config = make_config(queue=[A, B], sla_hours_per_step=3)
        orchestrator.start_cascade(1, 50, now=T0)
        config_store.deactivate_config(config['id'])

        sweep(hours(4))

        second = entries(50)[1]
        assert second['consultant_id'] == B
        assert second['sla_hours'] == 3

    def test_sequences_are_contiguous(self, make_config, entries):
        make_config(queue=[A, B, C], sla_hours_per_step=1)
        for cliente_id in (50, 51):
            orchestrator.start_cascade(cliente_id, cliente_id, now=T0)

        sweep(hours(1))
        sweep(hours(2))

        for cliente_id in (50, 51):
            assert [e['sequence'] for e in entries(cliente_id)] == [1, 2, 3]

    def test_escalation_recorded_as_responsibility_change(self, make_config):
        make_config(queue=[A, B], sla_hours_per_step=1)
        orchestrator.start_cascade(1, 50, now=T0)
        seen = []
        responsibility.register_listener(seen.append)

        sweep(hours(2))

        assert [(c['consultant_id'], c['source']) for c in seen] == [(B, 'cascade_escalation')]
        assert responsibility.current_responsible(50)['consultant_id'] == B

    def test_row_failure_does_not_abort_sweep(self, make_config, entries):
        make_config(queue=[A, B], sla_hours_per_step=1)
        first = orchestrator.start_cascade(1, 50, now=T0)
        orchestrator.start_cascade(2, 51, now=T0)

        real = escalation.escalate_entry

        def flaky(entry_id, now):
            if entry_id == first['id']:
                raise RuntimeError('db hiccup')
            return real(entry_id, now)

        with patch.object(escalation, 'escalate_entry', side_effect=flaky):
            result = sweep(hours(2))

        assert result.errors == 1
        assert result.escalated == 1
        assert [e['status'] for e in entries(50)] == ['Active']

        # retried on the next tick
        result = sweep(hours(3))
        assert result.escalated == 1
        assert [e['consultant_id'] for e in entries(50)] == [A, B]


class TestConcurrency:

    def test_second_worker_claim_is_noop(self, make_config, entries):
        """Scenario: two workers saw the same overdue row; only one hands over."""
        make_config(queue=[A, B, C], sla_hours_per_step=24)
        entry = orchestrator.start_cascade(1, 50, now=T0)

        first = escalate_entry(entry['id'], hours(25))
        second = escalate_entry(entry['id'], hours(25))

        assert first == escalation.ESCALATED
        assert second == escalation.SKIPPED
        assert [e['sequence'] for e in entries(50)] == [1, 2]

    def test_overlapping_sweeps_count_skip(self, make_config, entries):
        make_config(queue=[A, B], sla_hours_per_step=1)
        entry = orchestrator.start_cascade(1, 50, now=T0)

        sweep(hours(2))

        # worker 2 listed the row before worker 1 committed
        stale_row = type('Row', (), {'id': entry['id']})()
        with patch.object(escalation.ledger, 'select_overdue', return_value=[stale_row]):
            result = sweep(hours(2))

        assert result.skipped == 1
        assert result.escalated == 0
        assert [e['sequence'] for e in entries(50)] == [1, 2]

    def test_finalized_client_never_escalates(self, make_config, entries):
        make_config(queue=[A, B], sla_hours_per_step=1)
        entry = orchestrator.start_cascade(1, 50, now=T0)
        finalize_all(50, A, now=hours(0.5))

        assert escalate_entry(entry['id'], hours(2)) == escalation.SKIPPED
        assert [e['status'] for e in entries(50)] == ['FinalizedSuccess']


class TestFreezeWhenInactive:

    def test_inactive_config_keeps_running_by_default(self, make_config, entries):
        config = make_config(queue=[A, B], sla_hours_per_step=1)
        orchestrator.start_cascade(1, 50, now=T0)
        config_store.deactivate_config(config['id'])

        result = sweep(hours(2))

        assert result.escalated == 1
        assert len(entries(50)) == 2

    def test_freeze_flag_holds_entries(self, make_config, entries):
        config = make_config(queue=[A, B], sla_hours_per_step=1, freeze_when_inactive=True)
        orchestrator.start_cascade(1, 50, now=T0)
        config_store.deactivate_config(config['id'])

        result = sweep(hours(2))

        assert result.frozen == 1
        assert result.expired == 0
        assert [e['status'] for e in entries(50)] == ['Active']

    def test_reactivating_resumes(self, make_config, entries):
        config = make_config(queue=[A, B], sla_hours_per_step=1, freeze_when_inactive=True)
        orchestrator.start_cascade(1, 50, now=T0)
        config_store.deactivate_config(config['id'])
        sweep(hours(2))

        config_store.activate_config(config['id'])
        result = sweep(hours(3))

        assert result.escalated == 1
        assert [e['consultant_id'] for e in entries(50)] == [A, B]

    def test_freeze_flag_ignored_while_active(self, make_config, entries):
        make_config(queue=[A, B], sla_hours_per_step=1, freeze_when_inactive=True)
        orchestrator.start_cascade(1, 50, now=T0)

        assert sweep(hours(2)).escalated == 1

"""Tests for leadcascade.services.hooks — never-raise CRUD integration points."""
from unittest.mock import patch

from leadcascade.services import hooks


class TestOnLeadCreated:

    def test_starts_cascade(self, make_config):
        make_config(queue=[5, 6])
        entry = hooks.on_lead_created(1, 50)
        assert entry['consultant_id'] == 5

    def test_missing_client_returns_none(self, make_config):
        make_config()
        assert hooks.on_lead_created(1, None) is None

    def test_engine_error_is_logged_not_raised(self, caplog):
        with patch.object(hooks.orchestrator, 'start_cascade', side_effect=RuntimeError('db down')):
            assert hooks.on_lead_created(1, 50) is None
        assert 'Cascade start failed' in caplog.text


class TestOnAppointmentBooked:

    def test_finalizes(self, make_config):
        make_config(queue=[5, 6])
        hooks.on_lead_created(1, 50)
        assert hooks.on_appointment_booked(50, 5) == 1

    def test_validation_error_swallowed(self, caplog):
        assert hooks.on_appointment_booked(None, 5) is None
        assert 'Cascade finalize failed' in caplog.text

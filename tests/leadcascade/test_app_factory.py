"""Tests for leadcascade.create_app()."""
from unittest.mock import patch

from leadcascade import create_app


class TestCreateApp:

    def test_registers_blueprints(self):
        app = create_app(start_scheduler=False)
        assert {'dashboard', 'cascade', 'admin'} <= set(app.blueprints)
        assert 'cascade_scheduler' not in app.extensions

    def test_starts_scheduler_when_enabled(self):
        with patch('leadcascade.services.scheduler.SweepScheduler') as scheduler_cls:
            app = create_app(start_scheduler=True)

        scheduler_cls.return_value.start.assert_called_once()
        assert app.extensions['cascade_scheduler'] is scheduler_cls.return_value

    def test_env_flag_controls_default(self):
        with patch('leadcascade.config.CASCADE_SWEEP_ENABLED', False), \
             patch('leadcascade.services.scheduler.SweepScheduler') as scheduler_cls:
            create_app()
        scheduler_cls.assert_not_called()

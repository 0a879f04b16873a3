"""Unit tests for service bootstrap wiring."""

from unittest.mock import Mock

import pytest

from item_search import bootstrap
from item_search.config import EngineSettings
from item_search.domain.model import Item, SearchPage
from item_search.errors import InputError


@pytest.mark.unit
class TestCreateSearchService:
    def test_builds_initial_snapshot(self, scenario_items, settings):
        service = bootstrap.create_search_service(scenario_items, settings)

        assert service.snapshot is not None
        assert service.snapshot.item_count == 5
        assert service.search("zeta") == SearchPage(ids=[4], total_found=1)

    def test_uses_environment_settings_by_default(self, scenario_items, staging_root, monkeypatch):
        monkeypatch.setenv("ITEM_SEARCH_STAGING_DIR", str(staging_root))

        service = bootstrap.create_search_service(scenario_items)

        assert service.settings.batch_size == 2
        assert service.snapshot.stats.batches == 3

    def test_configure_installs_observability(self, scenario_items, settings, monkeypatch):
        configure = Mock()
        monkeypatch.setattr(bootstrap, "configure_observability", configure)

        bootstrap.create_search_service(scenario_items, settings, configure=True)

        configure.assert_called_once_with(settings)

    def test_rejects_dataset_size_mismatch(self, scenario_items, settings, staging_root):
        with pytest.raises(InputError, match="expected total_items=5"):
            bootstrap.create_search_service(scenario_items + [Item(id=6, name="omega")], settings)

        assert list(staging_root.iterdir()) == []

    def test_accepts_configured_dataset_size(self, staging_root):
        settings = EngineSettings(staging_dir=staging_root, total_items=1)

        service = bootstrap.create_search_service([Item(id=1, name="omega")], settings)

        assert service.search("omega") == SearchPage(ids=[1], total_found=1)


@pytest.mark.unit
def test_configure_observability_skips_log_export_when_disabled(monkeypatch):
    calls: list[str] = []
    for name in (
        "configure_logging",
        "configure_metrics_exporter",
        "init_metrics",
        "init_tracing",
        "configure_trace_exporter",
        "init_log_exporter",
        "configure_log_exporter",
    ):
        monkeypatch.setattr(bootstrap, name, Mock(side_effect=lambda *a, _name=name, **k: calls.append(_name)))

    bootstrap.configure_observability(EngineSettings())

    assert calls == [
        "configure_logging",
        "configure_metrics_exporter",
        "init_metrics",
        "init_tracing",
        "configure_trace_exporter",
    ]

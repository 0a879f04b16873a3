"""Wire configuration, observability and the initial index into a service."""

from __future__ import annotations

from collections.abc import Sequence
import logging

from item_search.config import EngineSettings, get_settings
from item_search.domain.model import Item
from item_search.errors import InputError
from item_search.observability import (
    configure_log_exporter,
    configure_logging,
    configure_metrics_exporter,
    configure_trace_exporter,
    init_log_exporter,
    init_metrics,
    init_tracing,
)
from item_search.service_layer.search_service import SearchService


logger = logging.getLogger(__name__)

SERVICE_NAME = "item-search-engine"


def configure_observability(settings: EngineSettings) -> None:
    """Install logging, tracing and metrics according to ``settings``."""
    configure_logging(settings.log_level, settings.log_json)

    collector_config = settings.observability
    resource_attributes = dict(collector_config.resource_attributes)
    configure_metrics_exporter(collector_config, service_name=SERVICE_NAME)
    init_metrics(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
    init_tracing(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
    configure_trace_exporter(collector_config)
    if collector_config.enabled:
        init_log_exporter(service_name=SERVICE_NAME, resource_attributes=resource_attributes)
        configure_log_exporter(collector_config)


def create_search_service(
    items: Sequence[Item],
    settings: EngineSettings | None = None,
    *,
    configure: bool = False,
) -> SearchService:
    """Build the initial snapshot for ``items`` and return a ready service.

    Args:
        items: Dense dataset (``items[id - 1].id == id``).
        settings: Engine settings; defaults to the cached environment settings.
            ``items`` must hold exactly ``settings.total_items`` entries.
        configure: Also install logging/tracing/metrics from ``settings``.
    """
    settings = settings or get_settings()
    if configure:
        configure_observability(settings)
    if len(items) != settings.total_items:
        raise InputError(f"Dataset has {len(items)} items, expected total_items={settings.total_items}")

    service = SearchService(items, settings)
    service.rebuild()
    logger.info("Search service ready with %d items", len(service.items))
    return service

from __future__ import annotations

from dependency_injector import containers, providers

from infra.resources import DatabaseResource, RateLimiterResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Process-wide resources, configured from the `Settings` dump."""

    config = providers.Configuration()

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=config.DATABASE.DATABASE_URL,
        pool_size=config.DATABASE.POOL_SIZE.as_int(),
        max_overflow=config.DATABASE.MAX_OVERFLOW.as_int(),
        pool_timeout=config.DATABASE.POOL_TIMEOUT.as_float(),
    )

    # Write limiter
    rate_limiter = providers.Singleton(
        RateLimiterResource,
        limit=config.RATE_LIMIT.RATE_LIMIT_WRITES,
        enabled=config.RATE_LIMIT.RATE_LIMIT_ENABLED,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    conversation_service = providers.Factory(
        "api.features.conversations.service.ConversationService",
    )

    message_service = providers.Factory(
        "api.features.messages.service.MessageService",
    )

    stats_service = providers.Factory(
        "api.features.stats.service.StatsService",
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    conversation_controller = providers.Factory(
        "api.features.conversations.controller.ConversationController",
        conversation_service=services.conversation_service,
    )

    message_controller = providers.Factory(
        "api.features.messages.controller.MessageController",
        message_service=services.message_service,
    )

    stats_controller = providers.Factory(
        "api.features.stats.controller.StatsController",
        stats_service=services.stats_service,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.shared.db",
            "api.shared.rate_limit",
            "api.features.health.router",
            "api.features.conversations.router",
            "api.features.messages.router",
            "api.features.stats.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)

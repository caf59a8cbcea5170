"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from core.config import Settings
from core.database import Database
from core.cache import CacheService
from core.cache_backends import MemoryCacheBackend, SQLiteCacheBackend, create_cache_backend
from services.business_profile import BusinessProfileService
from services.customers import CustomerService
from services.dashboard import DashboardService
from services.finance import FinanceService
from services.marketing import MarketingService
from services.products import ProductService
from services.transactions import TransactionService
from services.user_auth import UserAuthService


def _fallback_backend(settings: Settings, database: Database):
    """Where the cache goes when Redis cannot be reached at startup."""
    if settings.cache_backend == "memory":
        return MemoryCacheBackend()
    return SQLiteCacheBackend(database)


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    settings = providers.Singleton(Settings)

    database = providers.Singleton(
        Database,
        settings=settings
    )

    # Store handle shared by every CacheService user in the process
    cache_backend = providers.Singleton(
        create_cache_backend,
        settings=settings,
        database=database
    )

    cache = providers.Singleton(
        CacheService,
        backend=cache_backend,
        default_ttl=settings.provided.cache_ttl,
        single_flight=settings.provided.cache_single_flight,
        fallback=providers.Factory(_fallback_backend, settings=settings, database=database)
    )

    # Services
    user_auth_service = providers.Factory(
        UserAuthService,
        database=database,
        settings=settings
    )

    transaction_service = providers.Factory(
        TransactionService,
        database=database,
        cache=cache
    )

    product_service = providers.Factory(
        ProductService,
        database=database
    )

    customer_service = providers.Factory(
        CustomerService,
        database=database
    )

    business_profile_service = providers.Factory(
        BusinessProfileService,
        database=database,
        cache=cache
    )

    dashboard_service = providers.Factory(
        DashboardService,
        cache=cache,
        transactions=transaction_service
    )

    finance_service = providers.Factory(
        FinanceService,
        transactions=transaction_service
    )

    marketing_service = providers.Factory(
        MarketingService,
        cache=cache
    )


# Global container instance
container = Container()

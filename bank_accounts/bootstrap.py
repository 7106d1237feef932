"""
Service wiring

Builds a ready-to-use AccountWorkflow from configuration.
"""

from typing import Optional

from .async_storage import AsyncPostgreSQLStorage, create_async_storage
from .config import AccountServiceConfig, get_config
from .customer_client import CustomerServiceClient
from .logging_config import setup_logging
from .repository import AccountRepository
from .workflow import AccountWorkflow, CustomerClassifier


async def build_workflow(
    config: Optional[AccountServiceConfig] = None,
    classifier: Optional[CustomerClassifier] = None
) -> AccountWorkflow:
    """Create storage, classifier client and workflow from settings"""
    config = config or get_config()
    setup_logging(config.log_level, fmt=config.log_format)

    storage = create_async_storage(
        config.storage_type,
        connection_string=config.database_url,
        pool_size=config.database_pool_size
    )
    if isinstance(storage, AsyncPostgreSQLStorage):
        await storage.initialize()

    if classifier is None:
        classifier = CustomerServiceClient(
            base_url=config.customer_service_url,
            timeout=config.customer_service_timeout,
            api_key=config.customer_service_api_key or None
        )

    return AccountWorkflow(
        repository=AccountRepository(storage, table=config.accounts_table),
        classifier=classifier,
        enforce_unique_personal_accounts=config.enforce_unique_personal_accounts
    )

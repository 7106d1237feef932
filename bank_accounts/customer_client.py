"""
Customer Service Client Module

REST client for the customer service, used to classify a customer as
PERSONAL or BUSINESS before an account is opened. Failures are not retried or
defaulted: account creation cannot proceed without a classification.
"""

import httpx
import logging
from typing import Dict, Optional

from .eligibility import CustomerClassification
from .exceptions import ClassificationUnavailableError

logger = logging.getLogger("bank_accounts.customers")


class CustomerServiceClient:
    """Async REST client for the customer service"""

    def __init__(
        self,
        base_url: str = "http://localhost:8085",
        timeout: float = 5.0,
        api_key: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.api_key = api_key
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def get_classification(self, customer_id: str) -> CustomerClassification:
        """Fetch the customer's classification

        Args:
            customer_id: Customer to classify

        Returns:
            CustomerClassification with the raw customer type

        Raises:
            ClassificationUnavailableError: Customer not found, service
                unreachable, or response without a usable type
        """
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        try:
            response = await self._client.get(
                f"{self.base_url}/customers/{customer_id}",
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Customer service connection failed: {e}")
            raise ClassificationUnavailableError(
                f"Customer service unavailable: {e}"
            ) from e

        if response.status_code == 404:
            raise ClassificationUnavailableError(f"Customer {customer_id} not found")

        if response.status_code != 200:
            logger.warning(f"Customer service returned {response.status_code}: {response.text}")
            raise ClassificationUnavailableError(
                f"Customer service returned status {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ClassificationUnavailableError("Customer service returned invalid JSON") from e

        customer_type = data.get("type") if isinstance(data, dict) else None
        if not isinstance(customer_type, str) or not customer_type.strip():
            raise ClassificationUnavailableError(
                f"Customer {customer_id} has no customer type"
            )

        return CustomerClassification(customer_id=customer_id, customer_type=customer_type)

    async def health_check(self) -> bool:
        """Check if the customer service is healthy"""
        try:
            r = await self._client.get(f"{self.base_url}/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    async def aclose(self):
        """Close the HTTP client"""
        await self._client.aclose()


class StaticCustomerClassifier:
    """In-process classifier backed by a fixed mapping, for tests and local runs"""

    def __init__(self, customer_types: Optional[Dict[str, str]] = None):
        self.customer_types = dict(customer_types or {})

    async def get_classification(self, customer_id: str) -> CustomerClassification:
        """Classify from the mapping"""
        customer_type = self.customer_types.get(customer_id)
        if customer_type is None:
            raise ClassificationUnavailableError(f"Customer {customer_id} not found")
        return CustomerClassification(customer_id=customer_id, customer_type=customer_type)

    async def health_check(self) -> bool:
        """Static classifier is always available"""
        return True

    async def aclose(self):
        pass

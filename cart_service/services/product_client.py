# cart_service/services/product_client.py
from decimal import Decimal
from typing import Tuple

import requests
from pydantic import ValidationError as PayloadError
from requests import RequestException

from cart_service.domain.failures import InternalError, NotFound
from cart_service.domain.money import money
from cart_service.domain.schemas import ProductPayload
from cart_service.utils.retry import http_retry
from cart_service.utils.settings import PRODUCT_SERVICE_URL, PRODUCT_SERVICE_TIMEOUT
from cart_service.utils.logging import get_logger

logger = get_logger(__name__)


class ProductClient:
    """Price and stock oracle backed by the product service."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or PRODUCT_SERVICE_URL).rstrip("/")
        self.timeout = timeout or PRODUCT_SERVICE_TIMEOUT

    @http_retry()
    def fetch_product(self, product_id: int) -> dict | None:
        url = f"{self.base_url}/products/{product_id}"
        logger.info(f"ProductClient GET {url}")

        resp = requests.get(url, timeout=self.timeout)
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return resp.json()

    def get_price_and_stock(self, product_id: int) -> Tuple[Decimal, int]:
        try:
            pdata = self.fetch_product(product_id)
        except RequestException as e:
            logger.error(f"Product service unavailable for product {product_id}: {e}")
            raise InternalError("product service unavailable") from e

        if pdata is None:
            raise NotFound("product", f"product {product_id} not found")

        try:
            product = ProductPayload.model_validate(pdata)
        except PayloadError as e:
            logger.error(f"Product service returned an invalid product {product_id}: {e}")
            raise InternalError("product service returned an invalid product") from e

        return money(product.price), product.stock

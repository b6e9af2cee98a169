"""
ProductCatalog -- product lookup for credit transaction lines.

Prices changed here only affect transactions created afterwards: every
credit transaction line snapshots ``unit_price`` when it is created.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.dtos import ProductInfo
from ledger_kernel.exceptions import DuplicateCodeError, LedgerValidationError, ProductNotFoundError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.customer import Product
from ledger_kernel.services.base import BaseService, coerce_uuid

logger = get_logger("services.product_catalog")


class ProductCatalog(BaseService):

    def find_product(self, ref: UUID | str) -> Product | None:
        product_id = coerce_uuid(ref)
        if product_id is not None:
            product = self.session.get(Product, product_id)
            if product is not None:
                return product
        return self.session.execute(
            select(Product).where(Product.code == str(ref))
        ).scalar_one_or_none()

    def resolve(self, ref: UUID | str) -> ProductInfo:
        """
        Raises:
            ProductNotFoundError: No product with that id or code.
        """
        product = self.find_product(ref)
        if product is None:
            raise ProductNotFoundError(str(ref))
        return ProductInfo.from_model(product)

    def create_product(
        self,
        code: str,
        name: str,
        unit_price: Decimal,
        actor_id: UUID,
        unit_of_measure: str = "pcs",
    ) -> ProductInfo:
        if unit_price < 0:
            raise LedgerValidationError(f"Unit price must not be negative, got {unit_price}")
        if self.session.execute(select(Product.id).where(Product.code == code)).first():
            raise DuplicateCodeError("Product", code)

        product = Product(
            code=code,
            name=name,
            unit_price=unit_price,
            unit_of_measure=unit_of_measure,
            is_active=True,
            created_by_id=actor_id,
        )
        self.session.add(product)
        self.session.flush()
        logger.info("product_created", extra={"product_code": code, "unit_price": unit_price})
        return ProductInfo.from_model(product)

    def update_price(self, ref: UUID | str, unit_price: Decimal, actor_id: UUID) -> ProductInfo:
        if unit_price < 0:
            raise LedgerValidationError(f"Unit price must not be negative, got {unit_price}")
        product = self.find_product(ref)
        if product is None:
            raise ProductNotFoundError(str(ref))
        old_price = product.unit_price
        product.unit_price = unit_price
        product.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "product_price_updated",
            extra={
                "product_code": product.code,
                "old_price": old_price,
                "new_price": unit_price,
            },
        )
        return ProductInfo.from_model(product)

    def set_active(self, ref: UUID | str, is_active: bool, actor_id: UUID) -> ProductInfo:
        product = self.find_product(ref)
        if product is None:
            raise ProductNotFoundError(str(ref))
        product.is_active = is_active
        product.updated_by_id = actor_id
        self.session.flush()
        return ProductInfo.from_model(product)

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel

from storefront.domain.models import StoreSettings, has_cent_precision, is_valid_email
from storefront.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)


class UpdateStoreSettingsDTO(BaseModel):
    store_name: Optional[str] = None
    support_email: Optional[str] = None
    delivery_fee: Optional[Decimal] = None
    tax_rate: Optional[Decimal] = None
    currency: Optional[str] = None
    currency_symbol: Optional[str] = None


def _validate(changes: UpdateStoreSettingsDTO) -> None:
    if changes.store_name is not None and not changes.store_name.strip():
        raise ValidationError("Store name cannot be empty", field="store_name")
    if changes.support_email is not None and not is_valid_email(changes.support_email):
        raise ValidationError("Support email is invalid", field="support_email")
    if changes.delivery_fee is not None and changes.delivery_fee < 0:
        raise ValidationError("Delivery fee cannot be negative", field="delivery_fee")
    if changes.delivery_fee is not None and not has_cent_precision(changes.delivery_fee):
        raise ValidationError("Delivery fee cannot have more than 2 decimal places", field="delivery_fee")
    if changes.tax_rate is not None and not (0 <= changes.tax_rate <= 100):
        raise ValidationError("Tax rate must be between 0 and 100", field="tax_rate")
    if changes.tax_rate is not None and not has_cent_precision(changes.tax_rate):
        raise ValidationError("Tax rate cannot have more than 2 decimal places", field="tax_rate")
    if changes.currency is not None and len(changes.currency) != 3:
        raise ValidationError("Currency must be a 3-letter code", field="currency")
    if changes.currency_symbol is not None and not (1 <= len(changes.currency_symbol) <= 5):
        raise ValidationError("Currency symbol must be 1-5 characters", field="currency_symbol")


class GetStoreSettingsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self) -> StoreSettings:
        async with self._uow() as uow:
            stored = await uow.store_settings.get()
        return stored or StoreSettings()


class UpdateStoreSettingsUseCase:
    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, changes: UpdateStoreSettingsDTO) -> StoreSettings:
        _validate(changes)
        async with self._uow() as uow:
            current = await uow.store_settings.get() or StoreSettings()
            updated = current.model_copy(
                update={
                    **changes.model_dump(exclude_none=True),
                    "updated_at": datetime.now(timezone.utc),
                }
            )
            await uow.store_settings.save(updated)
            await uow.commit()

        logger.info(f"Store settings updated: {sorted(changes.model_dump(exclude_none=True))}")
        return updated

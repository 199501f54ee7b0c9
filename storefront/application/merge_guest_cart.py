import logging
from typing import List

from storefront.domain.models import CartItem, MergeLineResult, MergeResult
from storefront.domain.exceptions import DomainException
from storefront.application.manage_cart import AddCartItemUseCase, GetCartUseCase

logger = logging.getLogger(__name__)


class MergeGuestCartUseCase:
    """Merges a client-held guest cart into the server cart at login.

    Each guest line goes through AddCartItemUseCase in its own transaction, so a
    bad line is reported in the results and does not undo the lines around it.
    When nothing made it into the server cart the guest lines come back as
    ``fallback_items`` with ``degraded`` set, for display only.
    """

    def __init__(self, add_item: AddCartItemUseCase, get_cart: GetCartUseCase):
        self._add_item = add_item
        self._get_cart = get_cart

    async def __call__(self, user_id: str, guest_items: List[CartItem]) -> MergeResult:
        results: List[MergeLineResult] = []
        for item in guest_items:
            try:
                await self._add_item(user_id, item.product_id, item.quantity)
                results.append(
                    MergeLineResult(product_id=item.product_id, quantity=item.quantity, merged=True)
                )
            except DomainException as e:
                logger.warning(f"Guest cart line {item.product_id} x{item.quantity} skipped for user {user_id}: {e}")
                results.append(
                    MergeLineResult(product_id=item.product_id, quantity=item.quantity, merged=False, error=str(e))
                )

        cart = await self._get_cart(user_id)
        degraded = cart.is_empty() and bool(guest_items)
        merged_count = sum(1 for result in results if result.merged)
        logger.info(f"Guest cart merged for user {user_id}: {merged_count}/{len(results)} line(s)")
        if degraded:
            logger.warning(f"Server cart of user {user_id} is empty after merge, returning guest items")

        return MergeResult(
            cart=cart,
            results=results,
            fallback_items=list(guest_items) if degraded else [],
            degraded=degraded,
        )

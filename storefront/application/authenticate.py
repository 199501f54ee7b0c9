from typing import Optional

from storefront.domain.models import User
from storefront.domain.exceptions import AuthError


class AuthenticateUseCase:
    """Resolves an API key issued by the auth collaborator to an active user"""

    def __init__(self, unit_of_work):
        self._uow = unit_of_work

    async def __call__(self, api_key: Optional[str]) -> User:
        if not api_key:
            raise AuthError("Not authorized, no token")
        async with self._uow() as uow:
            user = await uow.users.get_by_api_token(api_key)
        if not user:
            raise AuthError("Not authorized, token failed")
        if not user.is_active:
            raise AuthError("Account is deactivated")
        return user

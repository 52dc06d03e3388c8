from ..domain.errors import ValidationError
from ..domain.interfaces import IIdentityProvider

class StaticIdentityProvider(IIdentityProvider):
    def __init__(self, user_id: str):
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError(f"userId non valido: {user_id!r}")
        self.user_id = user_id

    def current_user_id(self) -> str:
        return self.user_id

"""User lookups."""
from app.crud.base import CRUDBase
from app.models.user import User


class CRUDUser(CRUDBase[User, dict, dict]):
    """CRUD operations for User."""

    pass


user = CRUDUser(User)

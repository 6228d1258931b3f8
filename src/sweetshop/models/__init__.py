from .sweet import Sweet
from .user import User

__all__ = ["Sweet", "User"]

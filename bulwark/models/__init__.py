# Bulwark Models
from bulwark.models.user import User

__all__ = ["User"]

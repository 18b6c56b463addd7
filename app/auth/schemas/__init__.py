from app.auth.schemas.user import AuthenticatedUser

__all__ = ["AuthenticatedUser"]

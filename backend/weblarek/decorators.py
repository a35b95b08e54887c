# Overview: Request guards for API routes (authentication, roles, ownership).

from functools import wraps
from flask import request, g

from .extensions import db
from .errors import ForbiddenError, NotFoundError, UnauthorizedError
from .services import session_service


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user') and hasattr(g, 'session_context')


def require_auth(f):
    """
    Require a valid Bearer access token.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object

    SECURITY: 401 for a missing/malformed header or a bad/expired token,
    403 when the token is valid but its user no longer exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        context = session_service.validate_session(request.headers.get("Authorization"))

        g.current_user = context.user
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Require the authenticated user to hold any of roles.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthorizedError()

            if not g.current_user.has_role(*roles):
                raise ForbiddenError()

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_owner(model, id_arg: str, owner_attr: str = "id"):
    """
    Require the authenticated user to own the resource named by the id_arg
    URL parameter. Admins pass regardless of ownership.

    The resource is looked up by primary key; absent -> 404, someone else's
    -> 403.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                raise UnauthorizedError()

            user = g.current_user
            if user.is_admin:
                return f(*args, **kwargs)

            resource = db.session.get(model, kwargs.get(id_arg))
            if resource is None:
                raise NotFoundError(f"{model.__name__} not found")
            if getattr(resource, owner_attr) != user.id:
                raise ForbiddenError()

            return f(*args, **kwargs)

        return decorated_function
    return decorator

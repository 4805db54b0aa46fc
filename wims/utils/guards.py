# wims/utils/guards.py

from __future__ import annotations

from functools import wraps
from typing import Callable, Any

from flask import abort
from flask_login import login_required, current_user


def admin_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Allow only admins.
    Returns 403 for all other logged-in roles.
    """
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if getattr(current_user, "role", None) != "admin":
            abort(403)
        return view(*args, **kwargs)

    return wrapped


def role_required(*allowed_roles: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Generic role gate:
        @role_required("admin", "salesman")
        def view(): ...
    """
    def decorator(view: Callable[..., Any]) -> Callable[..., Any]:
        @wraps(view)
        @login_required
        def wrapped(*args, **kwargs):
            role = getattr(current_user, "role", None)
            if role not in allowed_roles:
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator


def approved_salesman_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Salesman workflow endpoints: the account must be approved by an admin.
    """
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        if getattr(current_user, "role", None) != "salesman":
            abort(403)
        if not getattr(current_user, "is_approved", False):
            abort(403, description="Your account is awaiting admin approval")
        return view(*args, **kwargs)

    return wrapped


def approved_user_required(view: Callable[..., Any]) -> Callable[..., Any]:
    """
    Shared endpoints: any admin, or an approved salesman.
    """
    @wraps(view)
    @login_required
    def wrapped(*args, **kwargs):
        role = getattr(current_user, "role", None)
        if role == "admin":
            return view(*args, **kwargs)
        if role == "salesman" and getattr(current_user, "is_approved", False):
            return view(*args, **kwargs)
        abort(403, description="Your account is awaiting admin approval")

    return wrapped

# wims/services/users.py
from __future__ import annotations

from typing import Optional

import sqlalchemy as sa
from flask import current_app

from ..errors import AuthenticationError, DuplicateError, NotFoundError, PermissionDenied, ValidationError
from ..extensions import db
from ..models import ROLE_ADMIN, ROLE_SALESMAN, ROLES, REQUEST_LOGIN, User, utcnow_naive
from ..utils.parsers import clean_str
from ..utils.passwords import hash_password, validate_password, verify_password
from .access import require_admin
from .store import unit_of_work


def default_salesman_email(name: str, domain: str) -> str:
    # "Ravi Kumar" -> "ravi.kumar@wims.com"
    local = ".".join(name.strip().lower().split())
    return f"{local}@{domain}"


class UserService:
    def __init__(self, *, admin_registration_code: str, salesman_email_domain: str = "wims.com", permissions=None):
        self.admin_registration_code = admin_registration_code
        self.salesman_email_domain = salesman_email_domain
        self.permissions = permissions

    def _by_email(self, email: str) -> Optional[User]:
        return User.query.filter(sa.func.lower(User.email) == email.lower()).first()

    def _salesman_by_name(self, name: str) -> Optional[User]:
        return User.query.filter(
            User.role == ROLE_SALESMAN,
            sa.func.lower(User.name) == name.strip().lower(),
        ).first()

    def register_user(
        self,
        *,
        name: Optional[str],
        password: Optional[str],
        role: str = ROLE_SALESMAN,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        admin_code: Optional[str] = None,
    ) -> User:
        role = (role or "").strip().lower()
        if role not in ROLES:
            raise ValidationError(f"Unknown role '{role}'", field="role")

        name = clean_str(name)
        if not name:
            raise ValidationError("Name is required", field="name")

        ok, msg = validate_password(password or "")
        if not ok:
            raise ValidationError(msg, field="password")

        email = clean_str(email)
        if role == ROLE_ADMIN:
            if not email:
                raise ValidationError("Email is required for admin accounts", field="email")
            if (admin_code or "") != self.admin_registration_code:
                current_app.logger.warning("Admin signup refused for %s: bad registration code", email)
                raise PermissionDenied("Invalid admin registration code")
        else:
            existing = self._salesman_by_name(name)
            if existing is not None:
                raise DuplicateError(f"A salesman named '{existing.name}' already exists", existing=existing, field="name")
            email = email or default_salesman_email(name, self.salesman_email_domain)

        email = email.lower()
        existing = self._by_email(email)
        if existing is not None:
            raise DuplicateError(f"An account with email {email} already exists", existing=existing, field="email")

        user = User(
            name=name,
            email=email,
            phone=clean_str(phone),
            role=role,
            password_hash=hash_password(password),
            is_approved=role == ROLE_ADMIN,
            is_active=True,
        )

        with unit_of_work("Register user"):
            db.session.add(user)

        current_app.logger.info("Registered %s %s", role, email)
        return user

    def authenticate(self, identifier: Optional[str], password: Optional[str], role: Optional[str] = None) -> User:
        """
        Log in by email, or by name for salesmen.

        An unapproved salesman still gets in, but a pending login request is
        filed for the admins and every salesman workflow endpoint answers 403
        until it is approved.
        """
        identifier = clean_str(identifier)
        if not identifier or not password:
            raise ValidationError("Email and password are required")

        user = self._by_email(identifier)
        if user is None and "@" not in identifier:
            user = self._salesman_by_name(identifier)

        if user is None or not verify_password(user.password_hash, password):
            current_app.logger.warning("Failed login for %s", identifier)
            raise AuthenticationError("Invalid email or password")
        if not user.is_active:
            raise PermissionDenied("This account has been deactivated")
        if role and user.role != role.strip().lower():
            raise PermissionDenied(f"This account is not a {role} account")

        with unit_of_work("Record login"):
            user.last_login_at = utcnow_naive()

        if user.is_salesman and not user.is_approved and self.permissions is not None:
            self.permissions.ensure_pending(user, REQUEST_LOGIN, notes="Automatic request on first login")

        current_app.logger.info("Login %s (%s)", user.email, user.role)
        return user

    def approve_salesman(self, user: User, admin) -> User:
        require_admin(admin)
        if not user.is_salesman:
            raise ValidationError("Only salesman accounts need approval")

        with unit_of_work("Approve salesman"):
            user.is_approved = True
            if self.permissions is not None:
                self.permissions.close_pending_logins(user, admin)

        current_app.logger.info("Salesman %s approved by %s", user.email, admin.email)
        return user

    def get_user(self, user_id: int) -> User:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def list_salesmen(self, *, approved: Optional[bool] = None) -> list[User]:
        query = User.query.filter(User.role == ROLE_SALESMAN)
        if approved is not None:
            query = query.filter(User.is_approved.is_(approved))
        return query.order_by(User.name.asc()).all()

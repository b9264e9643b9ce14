# accounts/authz.py
"""
Authorization utilities for the ledger backend.

Provides:
- ActorContext: Immutable context for the current request
- resolve_actor: Extract actor context from request
- require: Check permissions and raise if not granted

Permissions are derived from the membership role (see permission_defaults).
OWNER is an implicit allow; ADMIN and USER get exactly their role defaults.
"""

from dataclasses import dataclass
from typing import FrozenSet

from django.core.exceptions import PermissionDenied
from rest_framework.exceptions import NotAuthenticated

from accounts.models import Company, CompanyMembership
from accounts.permission_defaults import role_permission_codes


@dataclass(frozen=True)
class ActorContext:
    """
    Immutable context for the current actor (user + company).

    Every ledger command takes this as its first argument. The company is
    the tenant boundary: commands only ever look up rows inside it.

    Attributes:
        user: The authenticated user
        company: The active company (tenant)
        membership: The user's membership in the company
        perms: Permission codes granted by the membership role
    """
    user: object  # User model
    company: Company
    membership: CompanyMembership
    perms: FrozenSet[str]

    def has(self, code: str) -> bool:
        if not self.membership.is_active:
            return False
        if self.membership.role == CompanyMembership.Role.OWNER:
            return True
        return code in self.perms

    @property
    def is_owner(self) -> bool:
        return self.membership.role == CompanyMembership.Role.OWNER

    @property
    def is_admin(self) -> bool:
        """Owner or admin role."""
        return self.membership.role in [
            CompanyMembership.Role.OWNER,
            CompanyMembership.Role.ADMIN,
        ]

    @property
    def role(self) -> str:
        return self.membership.role


def build_actor(user, company: Company) -> ActorContext:
    """
    Build an ActorContext for a user inside a company.

    Used by views (through resolve_actor), Celery tasks and tests.

    Raises:
        PermissionDenied: If the user is not an active member of the company
    """
    try:
        membership = CompanyMembership.objects.select_related("company").get(
            user=user,
            company=company,
            is_active=True,
        )
    except CompanyMembership.DoesNotExist:
        raise PermissionDenied("You are not an active member of the selected company.")

    return ActorContext(
        user=user,
        company=membership.company,
        membership=membership,
        perms=role_permission_codes(membership.role),
    )


def resolve_actor(request) -> ActorContext:
    """
    Extract ActorContext from the current request.

    The membership is loaded fresh on every request so that role changes
    take effect immediately.

    Raises:
        NotAuthenticated: If user is not authenticated
        PermissionDenied: If user has no active company or membership
    """
    user = getattr(request, "user", None)

    if not user or not user.is_authenticated:
        raise NotAuthenticated("Authentication required.")

    company = getattr(user, "active_company", None)

    if not company:
        raise PermissionDenied("No active company selected. Please select a company first.")

    if not company.is_active:
        raise PermissionDenied("The selected company is not active.")

    return build_actor(user, company)


def require(actor: ActorContext, code: str) -> None:
    """
    Require that the actor has a specific permission.

    Example:
        require(actor, "invoices.approve")
        # If we get here, permission is granted
    """
    if not actor.has(code):
        raise PermissionDenied(f"Permission denied: {code}")


def require_admin(actor: ActorContext) -> None:
    if not actor.is_admin:
        raise PermissionDenied("This operation is restricted to company admins.")

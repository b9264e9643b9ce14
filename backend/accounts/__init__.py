# accounts/__init__.py
"""
Accounts app - Authentication and multi-tenancy.

This app provides:
- Company: Tenant model; every ledger document belongs to exactly one
- User: Custom user model with active_company
- CompanyMembership: User-Company relationship carrying the role
- ActorContext: Authorization context passed to every ledger command

Multi-tenancy is enforced at every layer through the ActorContext pattern.
"""

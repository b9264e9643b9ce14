# ledger/lookups.py
"""
Tenant-scoped repository lookups.

Every lookup is filtered by the actor's company, so a row owned by another
company is indistinguishable from a missing one.
"""

from ledger.exceptions import NotFound, ValidationError


def get_for_company(model, actor, pk, *, lock: bool = False, label: str = None):
    """Fetch one row of `model` by pk inside the actor's company."""
    label = label or model._meta.verbose_name
    if pk in (None, ""):
        raise ValidationError(f"{label} is required.")
    qs = model.objects.filter(company=actor.company)
    if lock:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=pk)
    except (model.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"{label.capitalize()} not found.", pk=str(pk))


def get_optional_for_company(model, actor, pk, *, lock: bool = False, label: str = None):
    if pk in (None, ""):
        return None
    return get_for_company(model, actor, pk, lock=lock, label=label)


def lock_in_pk_order(model, pks):
    """Lock rows in primary-key order, returning {pk: row}."""
    ordered = sorted(set(pks))
    rows = model.objects.select_for_update().filter(pk__in=ordered).order_by("pk")
    return {row.pk: row for row in rows}

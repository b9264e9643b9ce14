# ledger/models.py
"""
Ledger models.

Account, Customer and Supplier carry a `balance` that is a cache of the
ledger. LedgerEntry is the append-mostly event store: rows are created by
commands and only ever flagged `cancelled`, never edited in place by the
balance code.
"""

from decimal import Decimal
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import models
from django.db.models import Q

from accounts.models import Company
from ledger import effects
from ledger.write_barrier import audit_trail_write_allowed


class AuditTrailQuerySet(models.QuerySet):
    """
    QuerySet for audit-trail tables.

    Bulk writes are only allowed inside a command or reconciliation
    write context (see ledger.write_barrier).
    """

    def _check_write(self, operation: str):
        if not audit_trail_write_allowed():
            raise RuntimeError(
                f"{self.model.__name__} is an audit trail. "
                f"{operation} is only allowed inside command_writes_allowed() "
                "or reconciliation_writes_allowed()."
            )

    def bulk_create(self, objs, *args, **kwargs):
        self._check_write("bulk_create")
        return super().bulk_create(objs, *args, **kwargs)

    def update(self, **kwargs):
        self._check_write("update")
        return super().update(**kwargs)

    def delete(self):
        self._check_write("delete")
        return super().delete()


class AuditTrailModel(models.Model):
    objects = AuditTrailQuerySet.as_manager()

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not audit_trail_write_allowed():
            raise RuntimeError(
                f"{self.__class__.__name__} is an audit trail. "
                "Direct saves are only allowed from commands."
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        if not audit_trail_write_allowed():
            raise RuntimeError(
                f"{self.__class__.__name__} is an audit trail. "
                "Direct deletes are only allowed from commands."
            )
        return super().delete(*args, **kwargs)


class Partner(models.Model):
    """Shared shape of customers and suppliers."""

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="+")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=200)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=50, blank=True, default="")
    currency = models.CharField(max_length=3, default="TRY")
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    # 0 means no limit.
    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    partner_type = None

    class Meta:
        abstract = True
        ordering = ["name"]

    def __str__(self):
        return self.name

    @property
    def has_credit_limit(self) -> bool:
        return self.credit_limit > 0


class Customer(Partner):
    """Positive balance = receivable (the customer owes us)."""

    partner_type = "customer"

    class Meta(Partner.Meta):
        indexes = [models.Index(fields=["company", "email"], name="ledger_cust_company_email_idx")]


class Supplier(Partner):
    """Positive balance = payable (we owe the supplier)."""

    partner_type = "supplier"

    class Meta(Partner.Meta):
        indexes = [models.Index(fields=["company", "email"], name="ledger_supp_company_email_idx")]


class Account(models.Model):
    """
    A money-holding account: cash box, bank account, credit card,
    personnel advance or a partner-linked current account.
    """

    class AccountType(models.TextChoices):
        CASH = "cash", "Cash"
        BANK = "bank", "Bank"
        CREDIT_CARD = "credit_card", "Credit card"
        PERSONNEL = "personnel", "Personnel"
        PARTNER = "partner", "Partner-linked"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="ledger_accounts")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)
    name = models.CharField(max_length=200)
    type = models.CharField(max_length=20, choices=AccountType.choices, default=AccountType.CASH)
    currency = models.CharField(max_length=3, default="TRY")
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    customer = models.ForeignKey(
        Customer, null=True, blank=True, on_delete=models.SET_NULL, related_name="accounts"
    )
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True, on_delete=models.SET_NULL, related_name="accounts"
    )

    # Bank metadata
    bank_name = models.CharField(max_length=120, blank=True, default="")
    iban = models.CharField(max_length=34, blank=True, default="")

    # Credit card metadata
    credit_limit = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    cutoff_day = models.PositiveSmallIntegerField(null=True, blank=True)
    payment_day = models.PositiveSmallIntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=~(Q(customer__isnull=False) & Q(supplier__isnull=False)),
                name="chk_account_single_partner",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "type"], name="ledger_acct_company_type_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.currency})"

    def clean(self):
        if self.customer_id and self.supplier_id:
            raise DjangoValidationError("An account links to a customer or a supplier, not both.")
        for field in ("cutoff_day", "payment_day"):
            day = getattr(self, field)
            if day is not None and not 1 <= day <= 31:
                raise DjangoValidationError({field: "Day must be between 1 and 31."})


class LedgerEntry(AuditTrailModel):
    """
    One financial event.

    Direction is encoded by `kind` plus which account field is populated,
    never by the sign of `amount`.
    """

    class Kind(models.TextChoices):
        INCOME = effects.INCOME, "Income"
        EXPENSE = effects.EXPENSE, "Expense"
        TRANSFER = effects.TRANSFER, "Transfer"
        INVOICE_ACCRUAL = effects.INVOICE_ACCRUAL, "Invoice accrual"
        RECEIVABLE_ADJUSTMENT = effects.RECEIVABLE_ADJUSTMENT, "Receivable adjustment"

    class Origin(models.TextChoices):
        MANUAL = "manual", "Manual"
        OPENING_BALANCE = "opening_balance", "Opening balance"
        ADJUSTMENT = "adjustment", "Balance adjustment"
        TRANSFER = "transfer", "Transfer"
        INVOICE = "invoice", "Invoice"
        POS = "pos", "POS sale"

    company = models.ForeignKey(Company, on_delete=models.CASCADE, related_name="ledger_entries")
    public_id = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    kind = models.CharField(max_length=30, choices=Kind.choices)
    origin = models.CharField(max_length=20, choices=Origin.choices, default=Origin.MANUAL)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    currency = models.CharField(max_length=3, default="TRY")
    occurred_at = models.DateTimeField()
    description = models.CharField(max_length=255, blank=True, default="")

    source_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="outgoing_entries"
    )
    target_account = models.ForeignKey(
        Account, null=True, blank=True, on_delete=models.PROTECT, related_name="incoming_entries"
    )
    customer = models.ForeignKey(
        Customer, null=True, blank=True, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    supplier = models.ForeignKey(
        Supplier, null=True, blank=True, on_delete=models.PROTECT, related_name="ledger_entries"
    )
    related_invoice = models.ForeignKey(
        "invoicing.Invoice",
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="ledger_entries",
    )

    cancelled = models.BooleanField(default=False)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-occurred_at", "-id"]
        verbose_name_plural = "ledger entries"
        constraints = [
            models.CheckConstraint(
                check=Q(amount__gt=0),
                name="chk_entry_amount_positive",
            ),
            models.CheckConstraint(
                check=~(Q(customer__isnull=False) & Q(supplier__isnull=False)),
                name="chk_entry_single_partner",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "cancelled"], name="ledger_entry_co_cancelled_idx"),
            models.Index(fields=["company", "kind"], name="ledger_entry_co_kind_idx"),
            models.Index(fields=["company", "occurred_at"], name="ledger_entry_co_occurred_idx"),
        ]

    def __str__(self):
        return f"{self.kind} {self.amount} {self.currency}"

    def clean(self):
        if self.amount is None or self.amount <= 0:
            raise DjangoValidationError({"amount": "Amount must be greater than zero."})
        if self.customer_id and self.supplier_id:
            raise DjangoValidationError("An entry references a customer or a supplier, not both.")
        if self.kind == self.Kind.TRANSFER:
            if not (self.source_account_id and self.target_account_id):
                raise DjangoValidationError("A transfer needs both a source and a target account.")
            if self.source_account_id == self.target_account_id:
                raise DjangoValidationError("Source and target accounts must differ.")

    @property
    def partner(self):
        return self.customer or self.supplier

    def account_deltas(self) -> dict:
        return effects.entry_account_deltas(
            self.kind, self.amount, self.source_account_id, self.target_account_id
        )

    def partner_delta(self) -> Decimal:
        if self.customer_id:
            return effects.partner_delta(self.kind, self.amount, effects.CUSTOMER)
        if self.supplier_id:
            return effects.partner_delta(self.kind, self.amount, effects.SUPPLIER)
        return Decimal("0")

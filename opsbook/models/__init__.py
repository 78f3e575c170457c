"""ORM model package."""

from opsbook.models.entities import (
    BillStatus,
    CompanyIncome,
    ExpenseEntry,
    JobStatus,
    JobType,
    PaymentType,
    PersonalExpense,
    Profile,
    StudioExpense,
    TimesheetEntry,
    UserRole,
    Vendor,
    VendorBill,
    WorkType,
)

__all__ = [
    "BillStatus",
    "CompanyIncome",
    "ExpenseEntry",
    "JobStatus",
    "JobType",
    "PaymentType",
    "PersonalExpense",
    "Profile",
    "StudioExpense",
    "TimesheetEntry",
    "UserRole",
    "Vendor",
    "VendorBill",
    "WorkType",
]

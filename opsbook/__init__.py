"""Opsbook: timesheets, expenses, company finances and profit/loss reporting."""

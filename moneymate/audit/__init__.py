"""Audit logging package."""

from moneymate.audit.logger import AuditLogger

__all__ = ["AuditLogger"]

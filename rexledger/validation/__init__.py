"""Validation package."""

from rexledger.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]

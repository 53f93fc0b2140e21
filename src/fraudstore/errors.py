"""Structured error handling with context + cause + fix pattern.

Every fraudstore error carries:
- Context: What operation was being attempted
- Cause: Why it failed
- Fix: How to resolve the issue
"""

from __future__ import annotations


class FraudStoreError(Exception):
    """Base error with structured messaging."""

    def __init__(self, context: str, cause: str, fix: str) -> None:
        self.context = context
        self.cause = cause
        self.fix = fix
        message = f"{context}\n\nCause: {cause}\n\nFix: {fix}"
        super().__init__(message)

    def to_dict(self) -> dict:
        """Serialize error to structured dict for JSON output."""
        return {
            "error": True,
            "code": type(self).__name__,
            "context": self.context,
            "cause": self.cause,
            "fix": self.fix,
        }


class ConfigurationError(FraudStoreError):
    """Configuration file or settings related errors."""

    pass


class ConfigNotFoundError(ConfigurationError):
    """Configuration file not found."""

    def __init__(self, path: str) -> None:
        super().__init__(
            context=f"Loading configuration from '{path}'",
            cause="Configuration file not found",
            fix=f"Create a fraudstore.yaml file at '{path}' or point FRAUDSTORE_CONFIG at an existing one",
        )


class ConfigValidationError(ConfigurationError):
    """Configuration validation failed."""

    def __init__(self, path: str, details: str) -> None:
        super().__init__(
            context=f"Validating configuration from '{path}'",
            cause=details,
            fix="Check the configuration file matches the expected schema (name, default_env, environments).",
        )


class EnvironmentNotFoundError(ConfigurationError):
    """Requested environment not defined in configuration."""

    def __init__(self, env: str, available: list[str]) -> None:
        available_str = ", ".join(available) if available else "(none)"
        super().__init__(
            context=f"Resolving environment '{env}'",
            cause=f"Environment '{env}' is not defined in fraudstore.yaml",
            fix=f"Use one of the available environments: {available_str}, or add '{env}' to the environments section",
        )


class StoreError(FraudStoreError):
    """Storage operation errors."""

    pass


class ReferentialIntegrityError(StoreError):
    """A row referenced a parent row that does not exist."""

    pass


class CustomerNotFoundError(ReferentialIntegrityError):
    """Referenced customer is not in the ledger."""

    def __init__(self, customer_id: int) -> None:
        self.customer_id = customer_id
        super().__init__(
            context=f"Resolving customer {customer_id}",
            cause=f"Customer {customer_id} does not exist in the customers table",
            fix="Register the customer with upsert_customer() (or load customers first) before recording its transactions",
        )


class TransactionNotFoundError(ReferentialIntegrityError):
    """Referenced transaction is not in the transaction log."""

    def __init__(self, transaction_id: str) -> None:
        self.transaction_id = transaction_id
        super().__init__(
            context=f"Resolving transaction '{transaction_id}'",
            cause=f"Transaction '{transaction_id}' does not exist in the transactions table",
            fix="Record the transaction before storing predictions for it",
        )


class DuplicateRecordError(StoreError):
    """Insert collided with an existing primary key."""

    def __init__(self, table: str, key: object) -> None:
        super().__init__(
            context=f"Inserting into '{table}'",
            cause=f"A row with key {key!r} already exists",
            fix=f"Rows in '{table}' are immutable; use a new identifier or purge the owning customer first",
        )


class UnknownTableError(StoreError):
    """Requested table is not one of the stored tables."""

    def __init__(self, table: str, available: list[str]) -> None:
        super().__init__(
            context=f"Resolving table '{table}'",
            cause=f"'{table}' is not a fraudstore table",
            fix=f"Use one of: {', '.join(available)}",
        )


class StoreNotInitializedError(StoreError):
    """Store file or its schema is missing."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            context=f"Opening fraud store at {path}",
            cause="The store has not been initialized",
            fix="Run 'fraudstore init' to create the schema",
        )


class RecordValidationError(FraudStoreError):
    """A row failed record validation during a bulk load."""

    def __init__(self, table: str, row: int, details: str) -> None:
        super().__init__(
            context=f"Loading row {row} into '{table}'",
            cause=details,
            fix=f"Correct the row so it matches the '{table}' columns and value ranges",
        )


class ReportError(FraudStoreError):
    """Reporting view errors."""

    pass


class UnknownViewError(ReportError):
    """Requested view name is not a known reporting view."""

    def __init__(self, name: str, available: list[str]) -> None:
        super().__init__(
            context=f"Resolving reporting view '{name}'",
            cause=f"'{name}' is not a reporting view",
            fix=f"Use one of: {', '.join(available)}",
        )


class FormatError(FraudStoreError):
    """File format errors."""

    pass


class UnsupportedFormatError(FormatError):
    """File suffix does not map to a supported format."""

    def __init__(self, path: str, supported: list[str]) -> None:
        super().__init__(
            context=f"Selecting a file format for '{path}'",
            cause="The file suffix is not a supported format",
            fix=f"Use one of the supported suffixes: {', '.join(supported)}",
        )

"""Exception hierarchy for filter/update compilation and schema sync."""


class SdbcError(Exception):
    """Base exception for all pysdbc errors.

    Provides dual messaging: a sanitized user-facing message and
    internal details for logging (CWE-209 prevention).
    """

    def __init__(
        self,
        user_message: str,
        internal_details: str = "",
        wrapped: Exception | None = None,
    ) -> None:
        super().__init__(user_message)
        self.user_message = user_message
        self.internal_details = internal_details or user_message
        self.wrapped = wrapped

    def internal(self) -> str:
        return self.internal_details


class CompileError(SdbcError):
    """Base exception for filter and update compilation errors."""


class InvalidFilterError(CompileError):
    """Raised when a declarative filter is malformed."""


class InvalidUpdateError(CompileError):
    """Raised when a declarative update is malformed or not representable."""


class UnsupportedOperatorForDialectError(CompileError):
    """Raised when an operator cannot be expressed by the target dialect."""


class InvalidFieldNameError(CompileError):
    """Raised when a field or table name is invalid or empty."""


class MaxDepthExceededError(CompileError):
    """Raised when logical group nesting exceeds the configured limit."""


class SchemaError(SdbcError):
    """Base exception for table shape declaration errors."""


class InvalidSchemaError(SchemaError):
    """Raised when there is a problem with a declared table shape."""


class UnresolvedDefaultError(SchemaError):
    """Raised when a deferred default value reaches the type mapper."""


class SyncError(SdbcError):
    """Raised when schema synchronization fails fatally."""


class IntrospectionError(SyncError):
    """Raised when table introspection fails."""


class MigrationError(SdbcError):
    """Raised when a migration step or its bookkeeping fails."""


# Sanitized user-facing error message constants
ERR_MSG_INVALID_OPERATOR = "invalid operator"
ERR_MSG_INVALID_OPERAND = "invalid operand"
ERR_MSG_INVALID_FILTER = "invalid filter"
ERR_MSG_INVALID_UPDATE = "invalid update"
ERR_MSG_UNSUPPORTED_PATTERN = "pattern not supported by dialect"
ERR_MSG_TYPE_MISMATCH = "value does not match declared field type"
ERR_MSG_UNKNOWN_FIELD = "unknown field"
ERR_MSG_SYNC_FAILED = "schema synchronization failed"
ERR_MSG_MIGRATION_FAILED = "migration failed"

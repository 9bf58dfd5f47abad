"""
PostgreSQL Content Store Configuration.

Provides configuration for the database the pipeline observes: content
rows and their moderation state, index documents, and notifications.

Authentication:
    - Password auth (local dev): POSTGRES_USER + POSTGRES_PASSWORD
    - Managed identity (Azure): USE_MANAGED_IDENTITY=true, the store asks
      DefaultAzureCredential for an Entra token and uses it as password

Exports:
    DatabaseConfig: Pydantic database configuration
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults


class DatabaseConfig(BaseModel):
    """PostgreSQL connection settings."""

    host: str = Field(default=DatabaseDefaults.HOST)
    port: int = Field(default=DatabaseDefaults.PORT, ge=1, le=65535)
    database: str = Field(default=DatabaseDefaults.DATABASE)
    user: str = Field(default=DatabaseDefaults.USER)

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="Password for password auth; ignored with managed identity"
    )

    app_schema: str = Field(
        default=DatabaseDefaults.SCHEMA,
        description="Schema holding contents, index_documents and notifications"
    )

    users_table: Optional[str] = Field(
        default=None,
        description="Users table owned by the account service, as table or schema.table. "
                    "When set, notifications reference it and events for deleted users are dropped"
    )

    use_managed_identity: bool = Field(default=False)

    managed_identity_client_id: Optional[str] = Field(
        default=None,
        description="User-assigned identity client id (None = system-assigned)"
    )

    connection_timeout_seconds: int = Field(default=DatabaseDefaults.CONNECT_TIMEOUT_SECONDS, ge=1)

    @property
    def connection_string(self) -> str:
        """
        Build PostgreSQL conninfo.

        With managed identity the password is supplied per connection by the
        store, so it is left out here.
        """
        parts = (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user} connect_timeout={self.connection_timeout_seconds}"
        )
        if self.password and not self.use_managed_identity:
            parts += f" password={self.password}"
        return parts

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "managed_identity": self.use_managed_identity,
            "managed_identity_client_id": self.managed_identity_client_id[:8] + "..." if self.managed_identity_client_id else None,
            "app_schema": self.app_schema,
            "users_table": self.users_table,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            host=os.environ.get("POSTGRES_HOST", DatabaseDefaults.HOST),
            port=int(os.environ.get("POSTGRES_PORT", str(DatabaseDefaults.PORT))),
            database=os.environ.get("POSTGRES_DB", DatabaseDefaults.DATABASE),
            user=os.environ.get("POSTGRES_USER", DatabaseDefaults.USER),
            password=os.environ.get("POSTGRES_PASSWORD"),
            app_schema=os.environ.get("APP_SCHEMA", DatabaseDefaults.SCHEMA),
            users_table=os.environ.get("USERS_TABLE") or None,
            use_managed_identity=os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true",
            managed_identity_client_id=os.environ.get("DB_MANAGED_IDENTITY_CLIENT_ID"),
            connection_timeout_seconds=int(os.environ.get("DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECT_TIMEOUT_SECONDS))),
        )

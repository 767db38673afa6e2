import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file if it exists
load_dotenv()

DEFAULT_HOST = "dynamodb.us-east-1.amazonaws.com"
DEFAULT_SECURITY_TOKEN_URL = "https://sts.amazonaws.com/?Action=GetSessionToken&Version=2011-06-15"


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class DynamoDBConfig(BaseModel):
    """Configuration for the DynamoDB protocol client."""

    # Long-term keys, used only to obtain session credentials
    aws_access_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_ACCESS_KEY_ID"),
        description="AWS access key ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("AWS_SECRET_ACCESS_KEY"),
        description="AWS secret access key"
    )

    region_name: str = Field(
        default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"),
        description="AWS region the token endpoint is signed for"
    )

    # Endpoints
    host: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_HOST", DEFAULT_HOST),
        description="DynamoDB API hostname"
    )

    use_ssl: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_USE_SSL", "true"),
        description="Talk to the API over https"
    )

    security_token_url: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_SECURITY_TOKEN_URL", DEFAULT_SECURITY_TOKEN_URL),
        description="URL of the session token (GetSessionToken) endpoint"
    )

    # Table configuration
    namespace: str = Field(
        default_factory=lambda: os.getenv("DYNAMODB_NAMESPACE", ""),
        description="Prefix added to every table name on the wire"
    )

    # Retry and timeout settings
    max_retries: int = Field(
        default=1,
        description="Retries after a ProvisionedThroughputExceededException"
    )

    retry_delay_seconds: float = Field(
        default=0.1,
        description="Fixed delay between throughput retries, in seconds"
    )

    timeout_seconds: float = Field(
        default=30.0,
        description="Read timeout of every HTTP call"
    )

    # Behaviour
    raise_on_error: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_RAISE_ON_ERROR"),
        description="Raise remote/transport errors instead of returning them"
    )

    read_consistent: bool = Field(
        default=False,
        description="Default for ConsistentRead on get_item and query_items"
    )

    cache_ttl_seconds: int = Field(
        default=300,
        description="TTL handed to the read-through cache"
    )

    # Logging settings
    enable_debug_logging: bool = Field(
        default_factory=lambda: _env_flag("DYNAMODB_DEBUG_LOGGING"),
        description="Enable debug logging for DynamoDB operations"
    )

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        """Validate the API hostname."""
        if not v:
            raise ValueError("DynamoDB host is required")
        if "://" in v or "/" in v:
            raise ValueError("DynamoDB host must be a bare hostname, without scheme or path")
        return v

    @field_validator('max_retries')
    @classmethod
    def validate_max_retries(cls, v):
        if v < 0:
            raise ValueError("max_retries must not be negative")
        return v

    @field_validator('retry_delay_seconds', 'timeout_seconds')
    @classmethod
    def validate_seconds(cls, v, info):
        if v < 0:
            raise ValueError(f"{info.field_name} must not be negative")
        return v

    @property
    def endpoint_url(self) -> str:
        """URL every API request is POSTed to."""
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.host}/"

    def get_table_name(self, base_name: str) -> str:
        """Get the wire table name for a configured table.

        Args:
            base_name: Table name as used in the schema definitions

        Returns:
            Table name with the namespace prefix applied
        """
        return f"{self.namespace}{base_name}"

    def strip_namespace(self, table_name: str) -> Optional[str]:
        """Map a wire table name back to its configured name.

        Returns:
            The name without namespace, or None if the table lies outside the namespace
        """
        if not self.namespace:
            return table_name
        if not table_name.startswith(self.namespace):
            return None
        return table_name[len(self.namespace):]

    @classmethod
    def from_env(cls) -> 'DynamoDBConfig':
        """Create configuration from environment variables.

        Returns:
            DynamoDBConfig instance
        """
        return cls()

    @classmethod
    def for_local_development(cls, port: int = 8000) -> 'DynamoDBConfig':
        """Create configuration for a local DynamoDB endpoint.

        Args:
            port: Port the local endpoint listens on

        Returns:
            DynamoDBConfig instance configured for local development
        """
        return cls(
            aws_access_key_id="local",
            aws_secret_access_key="local",
            host=f"localhost:{port}",
            use_ssl=False,
            enable_debug_logging=True
        )

    model_config = ConfigDict(
        validate_assignment=True,
    )

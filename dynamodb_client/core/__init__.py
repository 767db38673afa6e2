"""
Protocol engine of the DynamoDB client.

- marshaller: native values <-> wire TypedValues
- credentials: session credential lifecycle
- signer: API request signing and token URL presigning
- expressions: key, condition, update and filter builders
- transport: signed POSTs with throughput retries
- pagination: cycle-safe Query/Scan paging
- cache: read-through cache collaborator protocol
"""

from .cache import ItemCache, cache_key
from .credentials import CredentialManager, parse_session_token_response
from .pagination import Paginator, continuation_key, fingerprint
from .signer import API_VERSION, RequestSigner
from .transport import RetryingTransport, TransportResponse, map_response_error

__all__ = [
    "API_VERSION",
    "CredentialManager",
    "ItemCache",
    "Paginator",
    "RequestSigner",
    "RetryingTransport",
    "TransportResponse",
    "cache_key",
    "continuation_key",
    "fingerprint",
    "map_response_error",
    "parse_session_token_response",
]

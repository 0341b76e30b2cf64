"""服务层能力导出集合。"""

from api_envelope.services.access import AccessGate, AccessRule, build_session_rules
from api_envelope.services.data_providers import ArrayDataProvider, DataProvider, QueryDataProvider
from api_envelope.services.local_auth import hash_password, issue_access_token, needs_rehash, verify_password
from api_envelope.services.negotiation import ContentNegotiator, detect_format
from api_envelope.services.pagination import Pagination
from api_envelope.services.rate_limit import RateLimiter, get_default_rate_limiter
from api_envelope.services.serializer import Serializer, ValueKind, classify

__all__ = [
    "AccessGate",
    "AccessRule",
    "ArrayDataProvider",
    "ContentNegotiator",
    "DataProvider",
    "Pagination",
    "QueryDataProvider",
    "RateLimiter",
    "Serializer",
    "ValueKind",
    "build_session_rules",
    "classify",
    "detect_format",
    "get_default_rate_limiter",
    "hash_password",
    "issue_access_token",
    "needs_rehash",
    "verify_password",
]

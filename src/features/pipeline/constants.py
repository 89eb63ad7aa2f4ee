"""Constants for the request pipeline.

Centralizes status codes, header names and policy defaults shared by the
policies and the transport adapter.
"""

# HTTP Status Codes
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_REQUEST_TIMEOUT = 408
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_NOT_IMPLEMENTED = 501
HTTP_STATUS_SERVICE_UNAVAILABLE = 503
HTTP_STATUS_VERSION_NOT_SUPPORTED = 505

# Header names
HEADER_CONTENT_LENGTH = "Content-Length"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_USER_AGENT = "User-Agent"
DEFAULT_CLIENT_REQUEST_ID_HEADER_NAME = "x-ms-client-request-id"

# Package identity used in the default User-Agent value
SDK_NAME = "request-pipeline"
SDK_VERSION = "1.0.0"

# Timeout policy default (milliseconds)
DEFAULT_CLIENT_REQUEST_TIMEOUT_MS = 1000 * 10

# Retry policy defaults (milliseconds)
DEFAULT_CLIENT_RETRY_COUNT = 3
DEFAULT_CLIENT_RETRY_INTERVAL_MS = 1000 * 30
DEFAULT_CLIENT_MIN_RETRY_INTERVAL_MS = 1000 * 3
DEFAULT_CLIENT_MAX_RETRY_INTERVAL_MS = 1000 * 90

# Content types parsed by the deserialization policy
DEFAULT_JSON_CONTENT_TYPES = ("application/json", "text/json")
DEFAULT_XML_CONTENT_TYPES = ("application/xml", "application/atom+xml")

# Chunk size for streaming reads and upload pass-through
DEFAULT_CHUNK_SIZE = 8192

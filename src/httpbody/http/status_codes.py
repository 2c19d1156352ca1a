"""
=============================================================================
HTTP STATUS CODES (RFC 9110)
=============================================================================

The status codes a body-negotiating request layer can produce, with their
reason phrases.

=============================================================================
WHICH CODES A BODY PARSER EMITS
=============================================================================

    ┌────────┬───────────────────────────────────────────────────────────┐
    │  Code  │ When it is produced                                       │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  200   │ Handler ran and succeeded                                 │
    │  201   │ Handler created something from the body                   │
    │  204   │ Handler ran, nothing to return                            │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  400   │ Body is malformed, or not the category the handler wants │
    │  405   │ Raw request line carried an unknown method                │
    │  413   │ Body exceeds the configured max_body_size                 │
    │  415   │ Declared charset is unknown to the codec registry         │
    │  422   │ Body parsed but the handler rejected its contents         │
    ├────────┼───────────────────────────────────────────────────────────┤
    │  500   │ Handler raised                                            │
    │  505   │ Raw request line carried an unsupported HTTP version      │
    └────────┴───────────────────────────────────────────────────────────┘

Everything in the 4xx range is the CLIENT's problem: the client must fix
its request and resubmit. There is no retry inside the parser.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes and reason phrases.

    Extends IntEnum, so members compare equal to plain integers:

        >>> HTTPStatus.PAYLOAD_TOO_LARGE == 413
        True
        >>> HTTPStatus.PAYLOAD_TOO_LARGE.phrase
        'Payload Too Large'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    NO_CONTENT = 204

    # 4xx CLIENT ERROR
    BAD_REQUEST = 400                   # Malformed or mismatched body
    METHOD_NOT_ALLOWED = 405
    PAYLOAD_TOO_LARGE = 413             # Body over max_body_size
    UNSUPPORTED_MEDIA_TYPE = 415        # Unknown charset
    UNPROCESSABLE_ENTITY = 422

    # 5xx SERVER ERROR
    INTERNAL_SERVER_ERROR = 500
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        """
        Get the reason phrase for this status code.

            HTTP/1.1 413 Payload Too Large
                     ─── ─────────────────
                      │          │
                      │          └── Reason phrase
                      └───────────── Status code
        """
        return _STATUS_PHRASES.get(self, "Unknown")


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.NO_CONTENT: "No Content",

    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.UNSUPPORTED_MEDIA_TYPE: "Unsupported Media Type",
    HTTPStatus.UNPROCESSABLE_ENTITY: "Unprocessable Entity",

    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}

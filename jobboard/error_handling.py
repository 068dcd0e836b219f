"""Central interception point for failed remote requests."""
import logging
from typing import Callable, Dict, Optional

import requests

from .delivery.notifiers import LogNotifier, Notifier
from .errors import AuthorizationError, JobBoardError, NetworkError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

UNAUTHORIZED_MESSAGE = "Your session has expired. Please sign in again."
FORBIDDEN_MESSAGE = "Access denied"
RATE_LIMITED_MESSAGE = "Too many requests. Please wait a moment and try again."
SERVER_ERROR_MESSAGE = "Server error. Please try again later."
CONNECTION_MESSAGE = "Unable to connect to server. Please check your connection or try again later."
TIMEOUT_MESSAGE = "Server is not responding. Please try again later."
NETWORK_MESSAGE = "Network request failed. Please check your connection."
GENERIC_MESSAGE = "An unexpected error occurred"


def _server_message(response: requests.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get('error') or body.get('message')
    return None


class ErrorHandler:
    """Classifies failed requests and emits one notification per failure.

    Repeated 401s produce a single notification until a request succeeds
    again.
    """

    def __init__(self, notifier: Optional[Notifier] = None,
                 on_unauthorized: Optional[Callable[[], None]] = None):
        """Initialize the error handler.

        Args:
            notifier: Where user-visible messages go
            on_unauthorized: Called on every 401, e.g. to drop the stored token
        """
        self.notifier = notifier or LogNotifier()
        self.on_unauthorized = on_unauthorized
        self.error_counts: Dict[str, int] = {}
        self._unauthorized_notified = False

    def _count(self, kind: str) -> None:
        self.error_counts[kind] = self.error_counts.get(kind, 0) + 1

    def record_success(self) -> None:
        self._unauthorized_notified = False

    def handle_response(self, response: requests.Response) -> JobBoardError:
        """Handle an HTTP error response.

        Args:
            response: The HTTP response (status >= 400)

        Returns:
            JobBoardError: Typed error for the caller to raise
        """
        status_code = response.status_code
        server_message = _server_message(response)

        if status_code == 401:
            self._count('unauthorized')
            logger.info("Unauthorized request - token cleared")
            if self.on_unauthorized:
                self.on_unauthorized()
            if not self._unauthorized_notified:
                self._unauthorized_notified = True
                self.notifier.error(UNAUTHORIZED_MESSAGE)
            return AuthorizationError(server_message or UNAUTHORIZED_MESSAGE)

        if status_code == 403:
            self._count('forbidden')
            logger.warning(f"Access forbidden (403): {server_message}")
            self.notifier.error(FORBIDDEN_MESSAGE)
            return AuthorizationError(server_message or FORBIDDEN_MESSAGE)

        if status_code == 429:
            self._count('rate_limited')
            logger.warning("Rate limit exceeded (429)")
            self.notifier.error(RATE_LIMITED_MESSAGE)
            return NetworkError(RATE_LIMITED_MESSAGE, kind='rate_limited', status=status_code)

        if status_code >= 500:
            self._count('server_error')
            logger.error(f"Server error ({status_code}): {server_message}")
            self.notifier.error(SERVER_ERROR_MESSAGE)
            return NetworkError(SERVER_ERROR_MESSAGE, kind='server_error', status=status_code)

        message = server_message or GENERIC_MESSAGE
        self.notifier.error(message)
        if status_code == 404:
            self._count('not_found')
            logger.error(f"Resource not found (404): {message}")
            return NotFoundError(message)
        if status_code == 400:
            self._count('validation')
            logger.warning(f"Request rejected (400): {message}")
            return ValidationError(message)

        self._count('generic')
        logger.error(f"HTTP error ({status_code}): {message}")
        return NetworkError(message, kind='generic', status=status_code)

    def handle_exception(self, error: requests.exceptions.RequestException) -> NetworkError:
        """Handle a request that never produced a response."""
        self._count('network')
        if isinstance(error, requests.exceptions.Timeout):
            message = TIMEOUT_MESSAGE
        elif isinstance(error, requests.exceptions.ConnectionError):
            message = CONNECTION_MESSAGE
        else:
            message = NETWORK_MESSAGE
        logger.warning(f"Network error: {type(error).__name__}: {str(error)}")
        self.notifier.error(message)
        return NetworkError(message, kind='network')

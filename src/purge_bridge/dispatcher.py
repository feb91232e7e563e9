"""Turn notification messages into purge requests against the cache server.

Each message body is parsed as a notification envelope and its key is sent
to the cache server in a Surrogate-Key header. A batch is processed in order
and abandoned at the first message that cannot be parsed or purged.
"""

import logging

import click
import requests
from pydantic import ValidationError

from purge_bridge.errors import EnvelopeError, PurgeError
from purge_bridge.queue_model_dto import NotificationEnvelope, PurgeRequest, ReceivedMessage

logger = logging.getLogger(__name__)


def parse_envelope(body: str) -> NotificationEnvelope:
    """Parse a message body into a NotificationEnvelope.

    Raises:
        EnvelopeError: if the body is not a JSON object with a string Message field.
    """
    try:
        return NotificationEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise EnvelopeError(body, str(e)) from e


class PurgeDispatcher:
    """Sends one purge request per notification, sequentially.

    Args:
        server_url: Cache server URL receiving the purge requests.
        method: HTTP method the cache server treats as a purge.
        timeout: Seconds to wait for the cache server.
        session: Object with a requests-compatible ``request`` method;
            defaults to the requests module (a fresh connection per purge).
    """

    def __init__(self, server_url: str, method: str = "BAN", timeout: float = 10.0, session=None) -> None:
        self.server_url = server_url
        self.method = method
        self.timeout = timeout
        self.session = session or requests

    def purge(self, purge_request: PurgeRequest) -> requests.Response:
        """Send the purge request, drain and close the response."""
        try:
            response = self.session.request(
                purge_request.method,
                purge_request.server_url,
                headers=purge_request.headers,
                timeout=self.timeout,
            )
        except (requests.RequestException, ValueError) as e:
            raise PurgeError(purge_request.key, e) from e
        try:
            # drain so the connection can be released
            response.content
        finally:
            response.close()
        return response

    def dispatch(self, messages: list[ReceivedMessage]) -> int:
        """Purge the key of every message until the first failure. Returns the count purged."""
        purged = 0
        for message in messages:
            try:
                envelope = parse_envelope(message.body)
            except EnvelopeError as e:
                click.secho(str(e), err=True, fg="red")
                logger.debug("Envelope of %s rejected: %s", message.message_id, e.reason)
                return purged

            purge_request = PurgeRequest.from_envelope(self.server_url, envelope, method=self.method)
            try:
                response = self.purge(purge_request)
            except PurgeError as e:
                click.secho(str(e), err=True, fg="red")
                return purged

            purged += 1
            if response.status_code >= 400:
                click.secho(
                    f"Purge of {purge_request.key} returned HTTP {response.status_code}",
                    err=True,
                    fg="yellow",
                )
            click.echo(f"Purged {purge_request.key}")
        return purged

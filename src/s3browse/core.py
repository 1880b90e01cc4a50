import httpx
from bs4 import BeautifulSoup, Tag
from httpx import AsyncBaseTransport, AsyncClient, Response
from structlog import get_logger

from .auth import DEFAULT_ENDPOINT, Credential, build_request
from .exceptions import (AuthenticationError, HttpError, NotFoundError,
                         TransportError)

logger = get_logger()


def _parse_error_body(content: bytes) -> tuple[str | None, str | None]:
    """Pull `Code` and `Message` out of an S3 `<Error>` document, if any."""
    if not content:
        return None, None

    soup = BeautifulSoup(content, "xml")
    error_el = soup.find("Error")
    if not isinstance(error_el, Tag):
        return None, None

    code_el = error_el.find("Code")
    message_el = error_el.find("Message")
    aws_code = code_el.text if isinstance(code_el, Tag) else None
    aws_message = message_el.text if isinstance(message_el, Tag) else None

    return aws_code, aws_message


def raise_for_response(res: Response, context: str):
    if res.is_success:
        return

    aws_code, aws_message = _parse_error_body(res.content)
    logger.error(
        "HttpRequest error",
        status_code=res.status_code,
        reason=res.reason_phrase,
        aws_code=aws_code,
        aws_message=aws_message,
        context=context,
    )

    match res.status_code:
        case 401 | 403:
            error_cls = AuthenticationError
        case 404:
            error_cls = NotFoundError
        case _:
            error_cls = HttpError

    raise error_cls(
        status=res.status_code,
        reason=res.reason_phrase,
        context=context,
        aws_code=aws_code,
        aws_message=aws_message,
    )


class AwsClient:
    def __init__(
        self,
        *,
        credential: Credential,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout: float | None = None,
        transport: AsyncBaseTransport | None = None,
    ):
        self.credential = credential
        self.endpoint = endpoint
        self.timeout = timeout

        self._transport = transport
        self._httpx = None

    async def connect(self):
        assert self._httpx is None, "AwsClient already connected"
        self._httpx = AsyncClient(timeout=self.timeout, transport=self._transport)

    async def disconnect(self):
        assert self._httpx is not None, "AwsClient is not connected"
        await self._httpx.aclose()
        self._httpx = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, *exc_info):
        await self.disconnect()

    async def _make_request(self, relative_path: str, *, stream: bool = False) -> Response:
        """
        Sign and send a GET for `relative_path`.

        Non-2xx responses are raised as `HttpError` subclasses. With `stream`
        the body of a successful response is left unread and the caller must
        close it.
        """
        assert isinstance(self._httpx, AsyncClient), "AwsClient is not connected"

        req = build_request(relative_path, self.credential, endpoint=self.endpoint)

        try:
            res = await self._httpx.send(req, stream=stream)
            if stream and not res.is_success:
                try:
                    await res.aread()
                finally:
                    await res.aclose()
        except httpx.TransportError as e:
            logger.error("HttpRequest transport error", path=relative_path, error=str(e))
            raise TransportError(context=relative_path, reason=str(e)) from e

        raise_for_response(res, relative_path)

        return res

import httpx

from slowquery_sentinel.output.base import Notification, serialize_notification


class WebhookNotificationOutput:
    """POSTs the JSON notification body to an HTTP endpoint.

    Non-2xx responses raise :class:`httpx.HTTPStatusError`.
    """

    def __init__(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = url
        self._headers = {"Content-Type": "application/json", **(headers or {})}
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "webhook"

    async def send(self, notification: Notification) -> None:
        body = serialize_notification(notification)
        if self._client is not None:
            await self._post(self._client, body)
            return
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            await self._post(client, body)

    async def _post(self, client: httpx.AsyncClient, body: str) -> None:
        response = await client.post(self._url, content=body, headers=self._headers)
        response.raise_for_status()

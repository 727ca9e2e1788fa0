from aiobotocore.session import get_session

from slowquery_sentinel.output.base import Notification, notification_kind, serialize_notification


class SqsNotificationOutput:
    def __init__(
        self, queue_url: str, region: str = "us-east-1", endpoint_url: str | None = None
    ) -> None:
        self._queue_url = queue_url
        self._region = region
        self._endpoint_url = endpoint_url
        self._session = get_session()

    @property
    def name(self) -> str:
        return "sqs"

    async def send(self, notification: Notification) -> None:
        async with self._session.create_client(
            "sqs", region_name=self._region, endpoint_url=self._endpoint_url
        ) as client:
            await client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=serialize_notification(notification),
                MessageAttributes={
                    "kind": {"DataType": "String", "StringValue": notification_kind(notification)},
                    "severity": {"DataType": "String", "StringValue": notification.severity.name},
                },
            )

from __future__ import annotations

import math
import time
from decimal import Decimal
from typing import Any, Callable

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from common.errors import StoreUnavailable
from common.logging_utils import get_logger
from counterstore.base import TTL_MISSING, TTL_PERSISTENT, CounterStore


logger = get_logger(__name__)

_PK = "pk"
_COUNT = "n"
_VALUE = "v"
_EXPIRES = "expires_at"


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


class DynamoCounterStore(CounterStore):
    """Counter store backed by a DynamoDB table keyed by `pk`.

    DynamoDB's own TTL sweep is lazy (items can linger for hours after
    `expires_at`), so every read checks the expiry attribute itself and
    `incr_with_expiry` resets a logically expired counter with a conditional put.

    Increment is a single conditional `UpdateItem`:

    - `ADD n :one` is atomic server-side,
    - `SET expires_at = if_not_exists(expires_at, :exp)` fixes the window on
      creation only,
    - the condition rejects items whose window already closed, which then get
      reset by `_reset_expired`.
    """

    def __init__(
        self,
        table: Any,
        *,
        clock: Callable[[], float] = time.time,
        max_attempts: int = 3,
    ) -> None:
        self._table = table
        self._clock = clock
        self._max_attempts = max(1, max_attempts)

    @classmethod
    def from_settings(
        cls,
        *,
        table_name: str,
        region: str,
        profile: str | None = None,
        timeout_seconds: float = 0.5,
    ) -> "DynamoCounterStore":
        session = boto3.Session(profile_name=profile, region_name=region)
        resource = session.resource(
            "dynamodb",
            config=Config(
                connect_timeout=timeout_seconds,
                read_timeout=timeout_seconds,
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )
        return cls(resource.Table(table_name))

    def _expired(self, item: dict[str, Any], now: float) -> bool:
        exp = item.get(_EXPIRES)
        return exp is not None and float(exp) <= now

    def _get_live(self, key: str, operation: str) -> dict[str, Any] | None:
        try:
            resp = self._table.get_item(Key={_PK: key}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            raise StoreUnavailable(operation, key, exc) from exc
        item = resp.get("Item")
        if item is None or self._expired(item, self._clock()):
            return None
        return item

    def _reset_expired(self, key: str, ttl_seconds: int, now: float) -> bool:
        """Start a fresh window over an expired item; False if another writer won."""

        try:
            self._table.put_item(
                Item={_PK: key, _COUNT: 1, _EXPIRES: math.ceil(now + ttl_seconds)},
                ConditionExpression="#exp <= :now",
                ExpressionAttributeNames={"#exp": _EXPIRES},
                ExpressionAttributeValues={":now": Decimal(str(now))},
            )
        except ClientError as exc:
            if _error_code(exc) == "ConditionalCheckFailedException":
                return False
            raise StoreUnavailable("incr_with_expiry", key, exc) from exc
        except BotoCoreError as exc:
            raise StoreUnavailable("incr_with_expiry", key, exc) from exc
        return True

    def incr_with_expiry(self, key: str, ttl_seconds: int) -> int:
        for _ in range(self._max_attempts):
            now = self._clock()
            try:
                resp = self._table.update_item(
                    Key={_PK: key},
                    UpdateExpression="ADD #n :one SET #exp = if_not_exists(#exp, :exp)",
                    ConditionExpression=(
                        "attribute_not_exists(#pk) OR attribute_not_exists(#exp) OR #exp > :now"
                    ),
                    ExpressionAttributeNames={"#n": _COUNT, "#exp": _EXPIRES, "#pk": _PK},
                    ExpressionAttributeValues={
                        ":one": 1,
                        ":exp": math.ceil(now + ttl_seconds),
                        ":now": Decimal(str(now)),
                    },
                    ReturnValues="UPDATED_NEW",
                )
                return int(resp["Attributes"][_COUNT])
            except ClientError as exc:
                if _error_code(exc) != "ConditionalCheckFailedException":
                    raise StoreUnavailable("incr_with_expiry", key, exc) from exc
            except BotoCoreError as exc:
                raise StoreUnavailable("incr_with_expiry", key, exc) from exc

            if self._reset_expired(key, ttl_seconds, now):
                return 1
            logger.debug("dynamodb counter reset raced for key=%s, retrying", key)

        raise StoreUnavailable("incr_with_expiry", key, RuntimeError("write contention"))

    def get(self, key: str) -> str | None:
        item = self._get_live(key, "get")
        if item is None:
            return None
        if _VALUE in item:
            return str(item[_VALUE])
        if _COUNT in item:
            return str(int(item[_COUNT]))
        return None

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        item: dict[str, Any] = {_PK: key, _VALUE: str(value)}
        if ttl_seconds is not None:
            item[_EXPIRES] = math.ceil(self._clock() + ttl_seconds)
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise StoreUnavailable("set", key, exc) from exc

    def delete(self, key: str) -> None:
        try:
            self._table.delete_item(Key={_PK: key})
        except (ClientError, BotoCoreError) as exc:
            raise StoreUnavailable("delete", key, exc) from exc

    def exists(self, key: str) -> bool:
        return self._get_live(key, "exists") is not None

    def ttl(self, key: str) -> int:
        item = self._get_live(key, "ttl")
        if item is None:
            return TTL_MISSING
        exp = item.get(_EXPIRES)
        if exp is None:
            return TTL_PERSISTENT
        return max(0, math.ceil(float(exp) - self._clock()))


def ensure_table(dynamodb: Any, table_name: str) -> Any:
    """Create the counters table (on-demand, TTL on `expires_at`) if missing."""

    client = dynamodb.meta.client
    try:
        client.describe_table(TableName=table_name)
        return dynamodb.Table(table_name)
    except ClientError as exc:
        if _error_code(exc) != "ResourceNotFoundException":
            raise

    table = dynamodb.create_table(
        TableName=table_name,
        KeySchema=[{"AttributeName": _PK, "KeyType": "HASH"}],
        AttributeDefinitions=[{"AttributeName": _PK, "AttributeType": "S"}],
        BillingMode="PAY_PER_REQUEST",
    )
    table.wait_until_exists()
    client.update_time_to_live(
        TableName=table_name,
        TimeToLiveSpecification={"Enabled": True, "AttributeName": _EXPIRES},
    )
    logger.info("created dynamodb counters table %s", table_name)
    return table

"""SES 送信に利用する boto3 クライアントラッパー。"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import boto3
from botocore.client import BaseClient


@lru_cache(maxsize=None)
def get_client(region: str) -> BaseClient:
    """リージョン固定の SES クライアントを返す。"""

    return boto3.client("ses", region_name=region)


def send_raw_email(
    *,
    region: str,
    destination: str,
    raw_message: bytes,
    source: str | None = None,
) -> dict[str, Any]:
    """組み立て済みの MIME メッセージをそのまま送信する。

    `source` を省略した場合は SES が From ヘッダーを送信元として扱う。
    """

    client = get_client(region)
    params: dict[str, Any] = {
        "Destinations": [destination],
        "RawMessage": {"Data": raw_message},
    }
    if source:
        params["Source"] = source
    return client.send_raw_email(**params)

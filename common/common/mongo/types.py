from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic import BaseModel, ConfigDict, Field
from pydantic.functional_validators import BeforeValidator
from typing_extensions import Annotated


def ensure_utc_datetime(value: datetime) -> datetime:
    """datetime 값을 UTC 기준으로 정규화한다.

    - tzinfo 가 없으면 UTC 로 간주해 tzinfo=UTC 를 부여
    - tzinfo 가 있으면 UTC 로 변환
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_utc_datetime(value: datetime | str) -> datetime:
    """datetime 또는 ISO8601 문자열을 UTC datetime 으로 변환한다.

    - "Z" 접미사도 허용한다 (예: 2025-01-01T09:00:00Z).
    - 파싱할 수 없는 문자열이면 ValueError 를 그대로 발생시킨다.
    """

    if isinstance(value, datetime):
        return ensure_utc_datetime(value)

    raw = str(value).strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return ensure_utc_datetime(datetime.fromisoformat(raw))


def to_object_id(value: Any) -> ObjectId:
    """여러 타입(str, ObjectId 등)을 MongoDB ObjectId 로 변환한다."""

    if isinstance(value, ObjectId):
        return value
    if value is None:
        raise TypeError("ObjectId cannot be None")
    return ObjectId(str(value))


def try_object_id(value: Any) -> ObjectId | None:
    """ObjectId 로 변환할 수 없는 값이면 None 을 반환한다.

    외부에서 넘어온 id 로 조회할 때, 형식이 잘못된 id 는 "존재하지 않음" 으로 취급하기 위해 사용한다.
    """

    try:
        return to_object_id(value)
    except (InvalidId, TypeError):
        return None


def from_object_id(value: Optional[ObjectId]) -> Optional[str]:
    if value is None:
        return None
    return str(value)


PyObjectId = Annotated[ObjectId, BeforeValidator(to_object_id)]
MongoDateTime = Annotated[datetime, BeforeValidator(ensure_utc_datetime)]


class BaseDocument(BaseModel):
    """MongoDB 도큐먼트용 공통 베이스 모델.

    - ObjectId 같은 임의 타입을 허용
    - alias 기반 직렬화(by_alias)를 사용할 수 있도록 한다.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, populate_by_name=True)

    # Mongo 공통 필드
    id: Optional[PyObjectId] = Field(default=None, alias="_id")
    created_at: MongoDateTime
    updated_at: MongoDateTime

    def to_mongo_record(self) -> dict[str, Any]:
        """MongoDB 저장에 사용할 표준 레코드(dict) 직렬화.

        - by_alias=True 로 id -> _id 등의 Mongo 필드 이름과 일치시킨다.
        - exclude_none=True 로 _id=None 같은 필드를 제거해 Mongo가 ObjectId 를 생성하도록 한다.
          (reminder_at 처럼 비어 있을 수 있는 필드도 저장되지 않는다.)
        """

        return self.model_dump(by_alias=True, exclude_none=True)

# app/schemas/common.py
import math
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DataType = TypeVar("DataType")


class CamelModel(BaseModel):
    """
    Базовая схема API: поля в Python - snake_case, в JSON - camelCase,
    как их ждет фронтенд. На вход принимаются оба варианта.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def metadata_field() -> Any:
    # В моделях колонка metadata называется meta (имя занято в SQLAlchemy)
    return Field(None, validation_alias=AliasChoices("meta", "metadata"), serialization_alias="metadata")


class OkResponse(CamelModel):
    ok: bool = True
    message: Optional[str] = None


class PaginatedResponse(CamelModel, Generic[DataType]):
    """
    Универсальная схема для пагинированных ответов.
    """
    ok: bool = True
    total_items: int
    total_pages: int
    current_page: int
    size: int
    items: List[DataType]


class StatusCount(CamelModel):
    status: str
    count: int


JsonDict = Dict[str, Any]


def total_pages(total_items: int, size: int) -> int:
    return math.ceil(total_items / size) if total_items > 0 else 1

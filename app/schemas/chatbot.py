# app/schemas/chatbot.py
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class ChatOption(CamelModel):
    label: str
    value: Optional[str] = None
    next_question_id: Optional[int] = None


class QuestionBase(CamelModel):
    question_text: str = Field(..., min_length=1)
    question_type: Literal["TEXT", "CHOICE", "VIDEO"] = "TEXT"
    options: Optional[List[ChatOption]] = None
    next_question_id: Optional[int] = None
    order: int = 0
    is_active: bool = True
    video_url: Optional[str] = None


class QuestionCreate(QuestionBase):
    pass


class QuestionUpdate(CamelModel):
    question_text: Optional[str] = None
    question_type: Optional[Literal["TEXT", "CHOICE", "VIDEO"]] = None
    options: Optional[List[ChatOption]] = None
    next_question_id: Optional[int] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
    video_url: Optional[str] = None


class QuestionRead(QuestionBase):
    id: int
    flow_id: int


class FlowCreate(CamelModel):
    name: str = Field(..., min_length=1)
    is_active: bool = True
    is_public: bool = False
    order: int = 0
    start_question_id: Optional[int] = None


class FlowUpdate(CamelModel):
    name: Optional[str] = None
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    order: Optional[int] = None
    start_question_id: Optional[int] = None


class FlowCopyRequest(CamelModel):
    name: Optional[str] = None
    is_public: bool = False


class FlowRead(CamelModel):
    id: int
    name: str
    is_active: bool
    is_public: bool
    share_token: Optional[str] = None
    start_question_id: Optional[int] = None
    order: int
    created_at: Optional[datetime] = None


class FlowDetails(FlowRead):
    questions: List[QuestionRead] = []


class FlowListResponse(CamelModel):
    ok: bool = True
    flows: List[FlowRead]


class FlowResponse(CamelModel):
    ok: bool = True
    flow: FlowDetails


class QuestionResponse(CamelModel):
    ok: bool = True
    question: QuestionRead


class ChatProduct(CamelModel):
    product_code: str
    package_name: str
    cruise_line: Optional[str] = None
    ship_name: Optional[str] = None
    nights: Optional[int] = None
    days: Optional[int] = None
    base_price: Optional[int] = None


class ChatStartResponse(CamelModel):
    ok: bool = True
    flow: FlowRead
    question: QuestionRead
    product: Optional[ChatProduct] = None


class ChatQuestionResponse(CamelModel):
    ok: bool = True
    question: QuestionRead
    product: Optional[ChatProduct] = None

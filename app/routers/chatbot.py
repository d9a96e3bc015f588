# app/routers/chatbot.py

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.core.limiter import CHATBOT_LIMIT, limiter
from app.dependencies import get_db, get_optional_current_user
from app.models.user import User
from app.schemas.chatbot import ChatQuestionResponse, ChatStartResponse, FlowRead
from app.services import chatbot as chatbot_service

router = APIRouter(prefix="/chat-bot", tags=["Chat Bot"])


@router.get("/start", response_model=ChatStartResponse)
@limiter.limit(CHATBOT_LIMIT)
def start_chat(
    request: Request,
    product_code: Optional[str] = Query(None, alias="productCode"),
    share_token: Optional[str] = Query(None, alias="shareToken"),
    flow_id: Optional[int] = Query(None, alias="flowId"),
    preview: bool = Query(False),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    """
    Первый вопрос потока с подставленными именем, товаром и ценой.
    Без авторизации имя заменяется на приветствие по умолчанию.
    """
    flow, question, product = chatbot_service.start_chat(
        db, current_user, product_code=product_code, share_token=share_token, flow_id=flow_id, preview=preview
    )
    return ChatStartResponse(
        flow=FlowRead.model_validate(flow),
        question=question,
        product=chatbot_service.to_chat_product(product),
    )


@router.get("/question/{question_id}", response_model=ChatQuestionResponse)
@limiter.limit(CHATBOT_LIMIT)
def get_question(
    request: Request,
    question_id: str,
    product_code: Optional[str] = Query(None, alias="productCode"),
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: Session = Depends(get_db)
):
    question, product = chatbot_service.get_chat_question(db, question_id, current_user, product_code)
    return ChatQuestionResponse(question=question, product=chatbot_service.to_chat_product(product))

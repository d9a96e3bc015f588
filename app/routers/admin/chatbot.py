# app/routers/admin/chatbot.py

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.dependencies import get_db
from app.schemas.chatbot import (
    FlowCopyRequest,
    FlowCreate,
    FlowDetails,
    FlowListResponse,
    FlowRead,
    FlowResponse,
    FlowUpdate,
    QuestionCreate,
    QuestionResponse,
    QuestionUpdate,
)
from app.services import chatbot as chatbot_service

router = APIRouter()


@router.get("", response_model=FlowListResponse)
def get_flows(db: Session = Depends(get_db)):
    return FlowListResponse(flows=[FlowRead.model_validate(f) for f in chatbot_service.get_flows(db)])


@router.post("", response_model=FlowResponse, status_code=status.HTTP_201_CREATED)
def create_flow(data: FlowCreate, db: Session = Depends(get_db)):
    return FlowResponse(flow=FlowDetails.model_validate(chatbot_service.create_flow(db, data)))


@router.get("/{flow_id}", response_model=FlowResponse)
def get_flow(flow_id: int, db: Session = Depends(get_db)):
    return FlowResponse(flow=FlowDetails.model_validate(chatbot_service.get_flow(db, flow_id)))


@router.patch("/{flow_id}", response_model=FlowResponse)
def update_flow(flow_id: int, data: FlowUpdate, db: Session = Depends(get_db)):
    return FlowResponse(flow=FlowDetails.model_validate(chatbot_service.update_flow(db, flow_id, data)))


@router.post("/{flow_id}/copy", response_model=FlowResponse, status_code=status.HTTP_201_CREATED)
def copy_flow(flow_id: int, data: FlowCopyRequest, db: Session = Depends(get_db)):
    """Копия потока со всеми вопросами, создается выключенной."""
    return FlowResponse(flow=FlowDetails.model_validate(chatbot_service.copy_flow(db, flow_id, data)))


@router.delete("/{flow_id}", status_code=204)
def delete_flow(flow_id: int, db: Session = Depends(get_db)):
    chatbot_service.delete_flow(db, flow_id)
    return Response(status_code=204)


# --- Вопросы потока ---

@router.post("/{flow_id}/questions", response_model=QuestionResponse, status_code=status.HTTP_201_CREATED)
def create_question(flow_id: int, data: QuestionCreate, db: Session = Depends(get_db)):
    """Первый созданный вопрос становится стартовым, если стартовый не задан."""
    return QuestionResponse(question=chatbot_service.create_question(db, flow_id, data))


@router.patch("/{flow_id}/questions/{question_id}", response_model=QuestionResponse)
def update_question(flow_id: int, question_id: int, data: QuestionUpdate, db: Session = Depends(get_db)):
    return QuestionResponse(question=chatbot_service.update_question(db, flow_id, question_id, data))


@router.delete("/{flow_id}/questions/{question_id}", status_code=204)
def delete_question(flow_id: int, question_id: int, db: Session = Depends(get_db)):
    chatbot_service.delete_question(db, flow_id, question_id)
    return Response(status_code=204)

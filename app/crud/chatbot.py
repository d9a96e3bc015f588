# app/crud/chatbot.py
from sqlalchemy.orm import Session

from app.models.chatbot import ChatBotFlow, ChatBotQuestion


def get_flow(db: Session, flow_id: int) -> ChatBotFlow | None:
    return db.query(ChatBotFlow).filter(ChatBotFlow.id == flow_id).first()

def get_flows(db: Session) -> list[ChatBotFlow]:
    return db.query(ChatBotFlow).order_by(ChatBotFlow.order, ChatBotFlow.id).all()

def get_public_flow_by_token(db: Session, share_token: str) -> ChatBotFlow | None:
    return db.query(ChatBotFlow).filter(
        ChatBotFlow.share_token == share_token,
        ChatBotFlow.is_public == True,
        ChatBotFlow.is_active == True,
    ).first()

def get_first_active_flow(db: Session) -> ChatBotFlow | None:
    return db.query(ChatBotFlow).filter(ChatBotFlow.is_active == True).order_by(
        ChatBotFlow.order, ChatBotFlow.id
    ).first()

def get_question(db: Session, question_id: int) -> ChatBotQuestion | None:
    return db.query(ChatBotQuestion).filter(ChatBotQuestion.id == question_id).first()

def get_first_active_question(db: Session, flow_id: int) -> ChatBotQuestion | None:
    return db.query(ChatBotQuestion).filter(
        ChatBotQuestion.flow_id == flow_id,
        ChatBotQuestion.is_active == True,
    ).order_by(ChatBotQuestion.order, ChatBotQuestion.id).first()

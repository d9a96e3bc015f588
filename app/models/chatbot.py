# app/models/chatbot.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, JSON, String, Text, func
from sqlalchemy.orm import relationship

from app.db.session import Base


class ChatBotFlow(Base):
    __tablename__ = "chatbot_flows"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    share_token = Column(String, unique=True, index=True, nullable=True)
    # Без внешнего ключа: вопросы ссылаются на поток, поток на первый вопрос
    start_question_id = Column(Integer, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    questions = relationship(
        "ChatBotQuestion", back_populates="flow", cascade="all, delete-orphan",
        order_by="ChatBotQuestion.order"
    )


class ChatBotQuestion(Base):
    __tablename__ = "chatbot_questions"

    id = Column(Integer, primary_key=True, index=True)
    flow_id = Column(Integer, ForeignKey("chatbot_flows.id", ondelete="CASCADE"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    # 'TEXT', 'CHOICE', 'VIDEO'
    question_type = Column(String, default="TEXT", nullable=False)
    # [{"label": "...", "value": "...", "nextQuestionId": 12}]
    options = Column(JSON, nullable=True)
    next_question_id = Column(Integer, nullable=True)
    order = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    video_url = Column(String, nullable=True)

    flow = relationship("ChatBotFlow", back_populates="questions")

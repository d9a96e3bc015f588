# app/services/chatbot.py

import logging
import re
import secrets

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.crud import chatbot as crud_chatbot, product as crud_product
from app.models.chatbot import ChatBotFlow, ChatBotQuestion
from app.models.product import CruiseProduct
from app.models.user import User
from app.schemas.chatbot import (
    ChatProduct,
    FlowCopyRequest,
    FlowCreate,
    FlowUpdate,
    QuestionCreate,
    QuestionRead,
    QuestionUpdate,
)

logger = logging.getLogger(__name__)

DEFAULT_USER_NAME = "행복♥"
DEFAULT_DESTINATION = "여행지"
PRICE_ON_REQUEST = "가격 문의"

# Вопрос с этим порядковым номером показывает видео круизной линии
VIDEO_QUESTION_ORDER = 3
CRUISE_LINE_VIDEOS = [
    (("COSTA", "코스타"), "https://youtu.be/Y0aaA9SfvlU"),
    (("MSC",), "https://youtu.be/QcTTmP5Ldt4"),
    (("ROYAL", "로얄"), "https://youtu.be/AAf4CNX-7Co"),
]
DEFAULT_VIDEO_URL = "https://youtu.be/QcTTmP5Ldt4"

DESTINATIONS = [
    ("홍콩", ("홍콩",)),
    ("대만", ("대만", "타이완")),
    ("제주", ("제주",)),
    ("후쿠오카", ("후쿠오카",)),
    ("사세보", ("사세보",)),
    ("도쿄", ("도쿄",)),
    ("나가사키", ("나가사키",)),
    ("오키나와", ("오키나와",)),
    ("싱가포르", ("싱가포르",)),
    ("베트남", ("베트남",)),
]

_PLACEHOLDER_RE = re.compile(r"\{(userName|packageName|cruiseLine|shipName|nights|days|basePrice|여행지)\}")


# --- Подстановка переменных ---

def _find_destinations(text: str | None) -> list[str]:
    if not text:
        return []
    return [name for name, keywords in DESTINATIONS if any(k in text for k in keywords)]


def extract_destinations(product: CruiseProduct) -> str:
    """Направления ищутся сначала в названии пакета, затем в маршруте."""
    found = _find_destinations(product.package_name) or _find_destinations(product.itinerary_pattern)
    return ", ".join(found) if found else DEFAULT_DESTINATION


def format_price(price: int | None) -> str:
    return f"{price:,}원" if price else PRICE_ON_REQUEST


def resolve_user_name(user: User | None) -> str:
    if user is not None:
        if user.mall_nickname:
            return user.mall_nickname
        if user.name:
            return user.name
    return DEFAULT_USER_NAME


def build_template_values(user: User | None, product: CruiseProduct | None) -> dict[str, str]:
    values = {"userName": resolve_user_name(user)}
    if product is not None:
        values.update({
            "packageName": product.package_name or "",
            "cruiseLine": product.cruise_line or "",
            "shipName": product.ship_name or "",
            "nights": str(product.nights) if product.nights is not None else "",
            "days": str(product.days) if product.days is not None else "",
            "basePrice": format_price(product.base_price),
            "여행지": extract_destinations(product),
        })
    return values


def render_text(text: str, values: dict[str, str]) -> str:
    """Неизвестные или незаполненные переменные остаются как есть."""
    return _PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), text)


def cruise_line_video(cruise_line: str | None) -> str:
    upper = (cruise_line or "").upper()
    for keys, url in CRUISE_LINE_VIDEOS:
        if any(key in upper for key in keys):
            return url
    return DEFAULT_VIDEO_URL


def render_question(question: ChatBotQuestion, user: User | None, product: CruiseProduct | None) -> QuestionRead:
    values = build_template_values(user, product)
    data = QuestionRead.model_validate(question)
    data.question_text = render_text(question.question_text, values)
    if data.options:
        for option in data.options:
            option.label = render_text(option.label, values)
    if question.order == VIDEO_QUESTION_ORDER and product is not None and not question.video_url:
        data.video_url = cruise_line_video(product.cruise_line)
    return data


def _load_product(db: Session, product_code: str | None) -> CruiseProduct | None:
    if not product_code:
        return None
    return crud_product.get_cruise_product_by_code(db, product_code.strip().upper())


def to_chat_product(product: CruiseProduct | None) -> ChatProduct | None:
    if product is None:
        return None
    return ChatProduct.model_validate(product)


# --- Публичный чат ---

def start_chat(
    db: Session,
    user: User | None,
    product_code: str | None = None,
    share_token: str | None = None,
    flow_id: int | None = None,
    preview: bool = False,
) -> tuple[ChatBotFlow, QuestionRead, CruiseProduct | None]:
    """
    Выбор потока: flowId (только в режиме предпросмотра) -> публичный поток
    по shareToken -> первый активный поток по порядку.
    """
    flow = None
    if preview and flow_id:
        flow = crud_chatbot.get_flow(db, flow_id)
    if flow is None and share_token:
        flow = crud_chatbot.get_public_flow_by_token(db, share_token)
    if flow is None:
        flow = crud_chatbot.get_first_active_flow(db)
    if flow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="활성화된 채팅봇 플로우가 없습니다.")

    question = None
    if flow.start_question_id:
        question = crud_chatbot.get_question(db, flow.start_question_id)
    if question is None:
        question = crud_chatbot.get_first_active_question(db, flow.id)
    if question is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="시작 질문을 찾을 수 없습니다.")

    product = _load_product(db, product_code)
    return flow, render_question(question, user, product), product


def get_chat_question(
    db: Session, raw_question_id: str, user: User | None, product_code: str | None = None
) -> tuple[QuestionRead, CruiseProduct | None]:
    try:
        question_id = int(raw_question_id)
    except (TypeError, ValueError):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="잘못된 질문 ID입니다.")

    question = crud_chatbot.get_question(db, question_id)
    if question is None or not question.is_active:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="질문을 찾을 수 없습니다.")
    product = _load_product(db, product_code)
    return render_question(question, user, product), product


# --- Админка ---

def _get_flow_or_404(db: Session, flow_id: int) -> ChatBotFlow:
    flow = crud_chatbot.get_flow(db, flow_id)
    if flow is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="플로우를 찾을 수 없습니다.")
    return flow


def _get_question_or_404(db: Session, flow_id: int, question_id: int) -> ChatBotQuestion:
    question = crud_chatbot.get_question(db, question_id)
    if question is None or question.flow_id != flow_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="질문을 찾을 수 없습니다.")
    return question


def get_flows(db: Session) -> list[ChatBotFlow]:
    return crud_chatbot.get_flows(db)


def get_flow(db: Session, flow_id: int) -> ChatBotFlow:
    return _get_flow_or_404(db, flow_id)


def create_flow(db: Session, data: FlowCreate) -> ChatBotFlow:
    flow = ChatBotFlow(**data.model_dump())
    if flow.is_public:
        flow.share_token = secrets.token_urlsafe(16)
    db.add(flow)
    db.commit()
    db.refresh(flow)
    logger.info(f"Chatbot flow {flow.id} '{flow.name}' created.")
    return flow


def update_flow(db: Session, flow_id: int, data: FlowUpdate) -> ChatBotFlow:
    flow = _get_flow_or_404(db, flow_id)
    update_data = data.model_dump(exclude_unset=True)
    if update_data.get("start_question_id"):
        _get_question_or_404(db, flow.id, update_data["start_question_id"])
    for key, value in update_data.items():
        setattr(flow, key, value)
    if flow.is_public and not flow.share_token:
        flow.share_token = secrets.token_urlsafe(16)
    db.commit()
    db.refresh(flow)
    return flow


def delete_flow(db: Session, flow_id: int) -> None:
    flow = _get_flow_or_404(db, flow_id)
    db.delete(flow)
    db.commit()
    logger.info(f"Chatbot flow {flow_id} deleted.")


def _dump_question(data) -> dict:
    values = data.model_dump(exclude_unset=True, by_alias=False)
    if "options" in values and data.options is not None:
        # Опции хранятся в JSON в camelCase, как их отдает API
        values["options"] = [o.model_dump(by_alias=True) for o in data.options]
    return values


def create_question(db: Session, flow_id: int, data: QuestionCreate) -> ChatBotQuestion:
    flow = _get_flow_or_404(db, flow_id)
    values = data.model_dump(exclude={"options"})
    values["options"] = [o.model_dump(by_alias=True) for o in data.options] if data.options else None
    question = ChatBotQuestion(flow_id=flow.id, **values)
    db.add(question)
    db.flush()
    if flow.start_question_id is None:
        flow.start_question_id = question.id
    db.commit()
    db.refresh(question)
    return question


def update_question(db: Session, flow_id: int, question_id: int, data: QuestionUpdate) -> ChatBotQuestion:
    question = _get_question_or_404(db, flow_id, question_id)
    for key, value in _dump_question(data).items():
        setattr(question, key, value)
    db.commit()
    db.refresh(question)
    return question


def delete_question(db: Session, flow_id: int, question_id: int) -> None:
    question = _get_question_or_404(db, flow_id, question_id)
    flow = question.flow
    if flow.start_question_id == question.id:
        flow.start_question_id = None
    db.delete(question)
    db.commit()


def copy_flow(db: Session, flow_id: int, data: FlowCopyRequest) -> ChatBotFlow:
    """
    Дублирует поток вместе с вопросами. Ссылки между вопросами
    (next_question_id, nextQuestionId в опциях, стартовый вопрос)
    переводятся на новые копии. Копия создается выключенной.
    """
    original = _get_flow_or_404(db, flow_id)
    copy = ChatBotFlow(
        name=(data.name or "").strip() or f"{original.name} (복사본)",
        is_active=False,
        is_public=data.is_public,
        share_token=secrets.token_urlsafe(16) if data.is_public else None,
        order=original.order,
    )
    db.add(copy)
    db.flush()

    id_map: dict[int, int] = {}
    copies: list[ChatBotQuestion] = []
    for question in original.questions:
        new_question = ChatBotQuestion(
            flow_id=copy.id,
            question_text=question.question_text,
            question_type=question.question_type,
            options=[dict(option) for option in question.options] if question.options else None,
            next_question_id=question.next_question_id,
            order=question.order,
            is_active=question.is_active,
            video_url=question.video_url,
        )
        db.add(new_question)
        db.flush()
        id_map[question.id] = new_question.id
        copies.append(new_question)

    # Ссылки наружу исходного потока обнуляются
    for new_question in copies:
        if new_question.next_question_id is not None:
            new_question.next_question_id = id_map.get(new_question.next_question_id)
        if new_question.options:
            new_question.options = [
                {**option, "nextQuestionId": id_map.get(option["nextQuestionId"])}
                if option.get("nextQuestionId") is not None else option
                for option in new_question.options
            ]
    copy.start_question_id = id_map.get(original.start_question_id) if original.start_question_id else None

    db.commit()
    db.refresh(copy)
    logger.info(f"Chatbot flow {original.id} copied to {copy.id} ({len(copies)} questions).")
    return copy

# tests/test_chatbot.py

import pytest
from httpx import AsyncClient

from app.models.product import CruiseProduct
from app.models.user import User
from app.services import chatbot as chatbot_service


@pytest.fixture
def cruise_product(db_session) -> CruiseProduct:
    product = CruiseProduct(
        product_code="MSC-HK-5N",
        package_name="홍콩·대만 5박 6일",
        cruise_line="MSC Cruises",
        ship_name="MSC Bellissima",
        nights=5,
        days=6,
        base_price=1_290_000,
        itinerary_pattern="부산 - 후쿠오카 - 부산",
    )
    db_session.add(product)
    db_session.commit()
    return product


def test_render_text_fills_product_values(cruise_product):
    values = chatbot_service.build_template_values(User(name="김민수"), cruise_product)

    text = chatbot_service.render_text(
        "{userName}님, {packageName} ({nights}박 {days}일) {basePrice}. 여행지: {여행지}", values
    )

    assert text == "김민수님, 홍콩·대만 5박 6일 (5박 6일) 1,290,000원. 여행지: 홍콩, 대만"


def test_render_text_without_user_or_product_keeps_unknown_placeholders():
    values = chatbot_service.build_template_values(None, None)

    text = chatbot_service.render_text("{userName} {shipName} {unknown}", values)

    assert text == "행복♥ {shipName} {unknown}"


def test_nickname_wins_over_name():
    user = User(name="김민수", mall_nickname="민수짱")

    assert chatbot_service.resolve_user_name(user) == "민수짱"


def test_destinations_fall_back_to_itinerary():
    product = CruiseProduct(package_name="봄 크루즈", itinerary_pattern="부산 - 나가사키 - 제주")

    assert chatbot_service.extract_destinations(product) == "제주, 나가사키"


def test_price_on_request_when_price_missing():
    assert chatbot_service.format_price(None) == "가격 문의"


@pytest.mark.parametrize("cruise_line, url", [
    ("Costa Serena", "https://youtu.be/Y0aaA9SfvlU"),
    ("로얄캐리비안", "https://youtu.be/AAf4CNX-7Co"),
    ("Unknown Line", "https://youtu.be/QcTTmP5Ldt4"),
])
def test_cruise_line_video(cruise_line, url):
    assert chatbot_service.cruise_line_video(cruise_line) == url


async def create_flow_with_questions(client: AsyncClient, headers: dict, **flow_fields) -> dict:
    flow = await client.post("/api/admin/chat-bot/flows", json={"name": "기본 상담", **flow_fields}, headers=headers)
    assert flow.status_code == 201
    flow_id = flow.json()["flow"]["id"]
    questions = []
    for order, text in enumerate(["{userName}님 안녕하세요!", "{packageName} 어떠세요?", "선박 영상"], start=1):
        response = await client.post(
            f"/api/admin/chat-bot/flows/{flow_id}/questions",
            json={
                "questionText": text,
                "questionType": "CHOICE",
                "order": order,
                "options": [{"label": "{shipName} 보기", "value": "yes"}],
            },
            headers=headers,
        )
        assert response.status_code == 201
        questions.append(response.json()["question"])
    return {"flow": flow.json()["flow"], "questions": questions}


async def test_start_chat_renders_first_question(
    client: AsyncClient, admin_auth_headers, cruise_product
):
    await create_flow_with_questions(client, admin_auth_headers)

    response = await client.get("/api/chat-bot/start", params={"productCode": "msc-hk-5n"})

    assert response.status_code == 200
    data = response.json()
    assert data["question"]["questionText"] == "행복♥님 안녕하세요!"
    assert data["question"]["options"][0]["label"] == "MSC Bellissima 보기"
    assert data["product"]["productCode"] == "MSC-HK-5N"


async def test_video_question_gets_cruise_line_video(client: AsyncClient, admin_auth_headers, cruise_product):
    created = await create_flow_with_questions(client, admin_auth_headers)
    third = created["questions"][2]

    response = await client.get(
        f"/api/chat-bot/question/{third['id']}", params={"productCode": cruise_product.product_code}
    )

    assert response.status_code == 200
    assert response.json()["question"]["videoUrl"] == "https://youtu.be/QcTTmP5Ldt4"


async def test_public_flow_by_share_token(client: AsyncClient, admin_auth_headers):
    await create_flow_with_questions(client, admin_auth_headers, order=0)
    public = await create_flow_with_questions(client, admin_auth_headers, isPublic=True, order=5)
    token = public["flow"]["shareToken"]
    assert token

    response = await client.get("/api/chat-bot/start", params={"shareToken": token})

    assert response.json()["flow"]["id"] == public["flow"]["id"]


async def test_bad_question_id_returns_400(client: AsyncClient, db_session):
    response = await client.get("/api/chat-bot/question/abc")

    assert response.status_code == 400


async def test_start_without_flows_returns_404(client: AsyncClient, db_session):
    response = await client.get("/api/chat-bot/start")

    assert response.status_code == 404


async def test_copy_flow_remaps_question_links(client: AsyncClient, admin_auth_headers):
    created = await create_flow_with_questions(client, admin_auth_headers)
    first, second, third = created["questions"]
    flow_id = created["flow"]["id"]
    await client.patch(
        f"/api/admin/chat-bot/flows/{flow_id}/questions/{first['id']}",
        json={"nextQuestionId": second["id"], "options": [
            {"label": "예", "value": "yes", "nextQuestionId": third["id"]},
            {"label": "다른 상담", "value": "other", "nextQuestionId": 9999},
        ]},
        headers=admin_auth_headers,
    )
    await client.patch(
        f"/api/admin/chat-bot/flows/{flow_id}", json={"startQuestionId": first["id"]}, headers=admin_auth_headers
    )

    response = await client.post(f"/api/admin/chat-bot/flows/{flow_id}/copy", json={}, headers=admin_auth_headers)

    assert response.status_code == 201
    copy = response.json()["flow"]
    assert copy["name"] == "기본 상담 (복사본)"
    assert copy["isActive"] is False
    assert copy["shareToken"] is None
    new_first, new_second, new_third = copy["questions"]
    assert {q["id"] for q in copy["questions"]}.isdisjoint({first["id"], second["id"], third["id"]})
    assert copy["startQuestionId"] == new_first["id"]
    assert new_first["nextQuestionId"] == new_second["id"]
    assert [o["nextQuestionId"] for o in new_first["options"]] == [new_third["id"], None]
    assert new_first["questionText"] == first["questionText"]


async def test_copy_public_flow_gets_own_share_token(client: AsyncClient, admin_auth_headers):
    created = await create_flow_with_questions(client, admin_auth_headers, isPublic=True)

    response = await client.post(
        f"/api/admin/chat-bot/flows/{created['flow']['id']}/copy",
        json={"name": "여름 상담", "isPublic": True},
        headers=admin_auth_headers,
    )

    copy = response.json()["flow"]
    assert copy["name"] == "여름 상담"
    assert copy["shareToken"] and copy["shareToken"] != created["flow"]["shareToken"]


async def test_copy_unknown_flow_returns_404(client: AsyncClient, admin_auth_headers):
    response = await client.post("/api/admin/chat-bot/flows/9999/copy", json={}, headers=admin_auth_headers)

    assert response.status_code == 404

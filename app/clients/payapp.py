# app/clients/payapp.py

import logging
from urllib.parse import parse_qsl

import httpx
from app.core.config import settings

logger = logging.getLogger(__name__)


class PayAppError(Exception):
    """Шлюз ответил state != 1."""
    def __init__(self, message: str, payload: dict):
        super().__init__(message)
        self.payload = payload


class PayAppClient:
    """
    Асинхронный клиент PayApp.
    Запросы уходят как application/x-www-form-urlencoded, ответ приходит
    строкой key=value, разделенной '&'.
    """
    def __init__(self, api_url: str, userid: str, linkkey: str, linkval: str):
        self.api_url = api_url
        self.userid = userid
        self.linkkey = linkkey
        self.linkval = linkval
        timeouts = httpx.Timeout(10.0, read=30.0)
        self.async_client = httpx.AsyncClient(timeout=timeouts)

    @staticmethod
    def parse_response(text: str) -> dict:
        return dict(parse_qsl(text.strip(), keep_blank_values=True))

    async def post(self, data: dict) -> dict:
        """
        Выполняет POST-запрос к шлюзу и возвращает разобранный ответ.
        Сетевые и HTTP-ошибки логируются и пробрасываются.
        """
        try:
            response = await self.async_client.post(self.api_url, data=data)
            response.raise_for_status()
        except httpx.RequestError as e:
            logger.error(f"Network error during PayApp request to {e.request.url!r}.", exc_info=True)
            raise
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error during PayApp request to {e.request.url!r}: {e.response.text}", exc_info=True)
            raise
        return self.parse_response(response.text)

    async def pay_request(
        self,
        goodname: str,
        price: int,
        recvphone: str,
        feedbackurl: str,
        var1: str = "",
        var2: str = "",
        memo: str = "",
    ) -> dict:
        """
        cmd=payrequest. Возвращает {'payurl': ..., 'mul_no': ...}.
        При state != 1 поднимает PayAppError с errorMessage шлюза.
        """
        payload = await self.post({
            "cmd": "payrequest",
            "userid": self.userid,
            "goodname": goodname,
            "price": str(price),
            "recvphone": recvphone,
            "feedbackurl": feedbackurl,
            "var1": var1,
            "var2": var2,
            "memo": memo,
            "smsuse": "n",
        })
        if payload.get("state") != "1":
            message = payload.get("errorMessage") or "결제 요청에 실패했습니다."
            logger.warning(f"PayApp payrequest rejected: {message}")
            raise PayAppError(message, payload)
        return {"payurl": payload.get("payurl", ""), "mul_no": payload.get("mul_no", "")}

    def credentials_match(self, userid: str | None, linkkey: str | None, linkval: str | None) -> bool:
        return (userid, linkkey, linkval) == (self.userid, self.linkkey, self.linkval)


# Создаем синглтон
payapp_client = PayAppClient(
    api_url=settings.PAYAPP_API_URL,
    userid=settings.PAYAPP_USERID,
    linkkey=settings.PAYAPP_LINKKEY,
    linkval=settings.PAYAPP_LINKVAL,
)

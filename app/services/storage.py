# app/services/storage.py

import logging
import os
import uuid
from pathlib import Path

import aiofiles
from fastapi import HTTPException, UploadFile, status

from app.core.config import settings

logger = logging.getLogger(__name__)

MAX_AUDIO_SIZE = 50 * 1024 * 1024
ALLOWED_AUDIO_TYPES = (
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/x-wav",
    "audio/m4a", "audio/x-m4a", "audio/mp4",
)
CHUNK_SIZE = 1024 * 1024


def audio_dir() -> Path:
    path = Path(settings.UPLOAD_DIR) / "sales-audio"
    path.mkdir(parents=True, exist_ok=True)
    return path


async def save_audio_file(file: UploadFile, sale_id: int) -> str:
    """
    Сохраняет запись звонка для подтверждения продажи и возвращает путь к файлу.
    Тип проверяется по MIME, размер по фактически записанным байтам.
    """
    if not file or not file.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="녹음 파일이 필요합니다.")
    if file.content_type not in ALLOWED_AUDIO_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="지원하지 않는 파일 형식입니다. (mp3, wav, m4a만 가능)"
        )

    file_extension = Path(file.filename).suffix.lower()
    file_path = audio_dir() / f"sale-{sale_id}-{uuid.uuid4().hex}{file_extension}"

    written = 0
    try:
        async with aiofiles.open(file_path, "wb") as out_file:
            while content := await file.read(CHUNK_SIZE):
                written += len(content)
                if written > MAX_AUDIO_SIZE:
                    break
                await out_file.write(content)
    except OSError:
        logger.error(f"Failed to save audio file '{file.filename}' for sale {sale_id}.", exc_info=True)
        await remove_file(str(file_path))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="파일 저장 중 오류가 발생했습니다.")

    if written > MAX_AUDIO_SIZE:
        await remove_file(str(file_path))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="파일 크기는 50MB 이하여야 합니다.")

    logger.info(f"Saved audio '{file.filename}' for sale {sale_id} to '{file_path}' ({written} bytes).")
    return str(file_path)


async def remove_file(file_path: str | None):
    """Удаляет файл, если он есть. Ошибка удаления только логируется."""
    try:
        if file_path and os.path.exists(file_path):
            os.remove(file_path)
            logger.info(f"Removed file: '{file_path}'.")
    except OSError:
        logger.error(f"Failed to remove file '{file_path}'.", exc_info=True)

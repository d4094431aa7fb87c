"""iGer AI chat assistant backed by Gemini."""

import asyncio
import logging
from typing import Optional, Sequence

from google import genai
from google.genai import types

from iger import config
from iger.errors import ApiError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """Kamu adalah iGer AI, asisten pintar untuk budidaya perikanan.

ATURAN PENTING:
- Berikan jawaban SINGKAT dan LANGSUNG TO THE POINT (maksimal 3-4 kalimat)
- Gunakan bahasa Indonesia yang mudah dipahami
- Fokus hanya pada ikan dan budidaya perikanan
- Jika ditanya hal lain, arahkan kembali ke topik perikanan
- Gunakan format markdown untuk penekanan (**bold**)

CONTOH JAWABAN YANG BAIK:
"**Ikan lele** sangat cocok untuk pemula karena mudah dipelihara dan tahan terhadap perubahan cuaca. Siapkan kolam dengan kedalaman **1-1.5 meter** dan beri pakan 2-3 kali sehari. Dalam **2-3 bulan** lele sudah bisa dipanen.\""""

# Gemini client, created on first use
client = None


def get_client():
    global client
    if client is None:
        if not config.GEMINI_API_KEY:
            raise ApiError("API Key tidak dikonfigurasi", status_code=500)
        client = genai.Client(api_key=config.GEMINI_API_KEY)
    return client


def _content(message) -> Optional[str]:
    if isinstance(message, dict):
        return message.get("content")
    return getattr(message, "content", None)


def last_message_content(messages: Sequence) -> str:
    """Content of the newest message; the rest of the history is not forwarded."""
    content = _content(messages[-1]) if messages else None
    if not content or not str(content).strip():
        raise ApiError("Pesan tidak valid", status_code=400)
    return str(content)


def build_prompt(content: str) -> str:
    return f"{SYSTEM_PROMPT}\n\nPertanyaan: {content}\n\nJawaban:"


async def generate_reply(messages: Sequence) -> str:
    content = last_message_content(messages)
    cli = get_client()

    try:
        response = await asyncio.to_thread(
            cli.models.generate_content,
            model=config.GEMINI_MODEL,
            contents=build_prompt(content),
            config=types.GenerateContentConfig(
                max_output_tokens=config.CHAT_MAX_OUTPUT_TOKENS,
                temperature=config.CHAT_TEMPERATURE,
            ),
        )
    except Exception as e:
        logger.exception("Gemini chat request failed")
        raise ApiError("Terjadi kesalahan pada server", details=str(e), status_code=500)

    return response.text or ""

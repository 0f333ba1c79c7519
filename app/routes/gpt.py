# ========================================
# app/routes/gpt.py - AI code conversion & chat proxy
# ========================================

import logging

from fastapi import APIRouter
from openai import AsyncOpenAI, OpenAIError

from app.config import OPENAI_API_KEY, OPENAI_MODEL
from app.schemas.gpt import ConvertRequest, ChatRequest
from app.utils.errors import UpstreamError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/gpt", tags=["GPT"])

SYSTEM_PROMPT = (
    "You are a helpful programming assistant. "
    "Provide clear, concise answers and code examples when relevant."
)


_client = None


def get_openai_client() -> AsyncOpenAI:
    """One shared client (and connection pool) for the process."""
    global _client
    if _client is None:
        if not OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY is missing; requests will be rejected upstream")
        _client = AsyncOpenAI(api_key=OPENAI_API_KEY or "missing")
    return _client


async def close_openai_client():
    global _client
    if _client is not None:
        await _client.close()
        _client = None


# ✅ 1. CONVERT CODE
@router.post("/convert")
async def convert_code(payload: ConvertRequest):
    """Translate `code` into the `convertTo` language. No retries."""
    if not payload.convertTo or not payload.code:
        raise ValidationError("Invalid Data")

    prompt = f"Convert the following code to {payload.convertTo}:\n\n{payload.code}\n\n{payload.convertTo} code:"

    try:
        response = await get_openai_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=0,
        )
    except OpenAIError as e:
        logger.error("OpenAI convert failed: %s", e)
        raise UpstreamError(str(e))

    return {"convertTo": payload.convertTo, "code": response.choices[0].message.content}


# ✅ 2. CHAT
@router.post("/chat")
async def chat_with_gpt(payload: ChatRequest):
    if not payload.message:
        raise ValidationError("Message is required")

    messages = [{"role": "system", "content": SYSTEM_PROMPT}]
    messages += [m.model_dump() for m in payload.conversationHistory]
    messages.append({"role": "user", "content": payload.message})

    try:
        response = await get_openai_client().chat.completions.create(
            model=OPENAI_MODEL,
            messages=messages,
            temperature=0.7,
            max_tokens=1000,
        )
    except OpenAIError as e:
        logger.error("OpenAI chat failed: %s", e)
        raise UpstreamError(str(e))

    usage = response.usage.model_dump() if response.usage else None
    return {"reply": response.choices[0].message.content, "usage": usage}

import asyncio
from typing import List, Optional

from fastapi import HTTPException

from core.load_model import llm_timeout, load_model_via_api
from utils.errors import internal_error
from utils.state import State

SYSTEM_PROMPT = """You are a compassionate healthcare support chatbot for an NGO helping patients.

IMPORTANT GUIDELINES:
- Provide helpful, accurate health information in simple, easy-to-understand language
- Be empathetic, supportive, and caring
- NEVER provide medical diagnoses or prescriptions
- NEVER replace professional medical advice
- Encourage users to consult healthcare professionals for serious concerns
- If a question is about emergencies (chest pain, severe bleeding, difficulty breathing, suicide), immediately advise calling emergency services
- Stay within the scope of general health information and emotional support
- You can provide information about symptoms, general wellness, healthy habits, and when to seek medical help
- Always prioritize user safety and wellbeing

RESPONSE FORMAT:
- Keep responses clear and concise (2-4 paragraphs maximum)
- Use empathetic language
- Break down complex medical information into simple terms
- Provide actionable advice when appropriate
- End with encouragement or next steps"""

SUMMARY_PROMPT = """
Summarize the following patient issue in simple terms (3-4 lines).
Avoid medical jargon.

Issue:
{issue}
"""

MOCK_RESPONSE = "This is a mock response for debugging purposes."
MOCK_SUMMARY = "This is a mock summary for debugging purposes."


def build_context_block(context: Optional[dict]) -> str:
    if not context:
        return ""
    summary_line = f"- AI Summary: {context['summary']}\n" if context.get("summary") else ""
    return (
        "\n\nCONTEXT INFORMATION:\n"
        "The user has an existing support request:\n"
        f"- Title: {context.get('title')}\n"
        f"- Issue: {context.get('issue')}\n"
        f"- Status: {context.get('status')}\n"
        f"{summary_line}"
        "\nPlease take this context into account when providing your response."
    )


def build_chat_prompt(
    question: str, history: List[dict], context: Optional[dict] = None
) -> str:
    """
    Assemble the single prompt sent to the model.

    Args:
        question (str): The new user question.
        history (List[dict]): Prior turns as ``{"role": "USER"|"ASSISTANT", "content": str}``.
        context (dict, optional): Ticket snapshot with title, issue, status and summary.

    Returns:
        str: System instruction, ticket context, transcript and question, in that order.
    """
    transcript = "\n".join(
        f"{'User' if turn['role'].upper() == 'USER' else 'Assistant'}: {turn['content']}"
        for turn in history
    )
    previous = f"Previous conversation:\n{transcript}\n\n" if transcript else ""
    return (
        f"{SYSTEM_PROMPT}{build_context_block(context)}\n\n"
        f"{previous}Current question: {question}\n\n"
        "Provide a helpful, caring response:"
    )


def _message_text(response) -> str:
    content = response.content
    if isinstance(content, list):
        content = "".join(
            part.get("text", "") if isinstance(part, dict) else str(part)
            for part in content
        )
    return content or ""


async def generate_response(
    prompt: str,
    temperature: float = 0.7,
    top_p: float = 0.95,
    top_k: int = 40,
    max_tokens: int = 1024,
    debug: bool = True,
    mock: str = MOCK_RESPONSE,
) -> str:
    """Run one completion against the hosted model, bounded by LLM_TIMEOUT_SECONDS."""
    if debug:
        return mock
    model = load_model_via_api(
        temperature=temperature,
        top_p=top_p,
        top_k=top_k,
        max_tokens=max_tokens,
    )
    response = await asyncio.wait_for(model.ainvoke(prompt), timeout=llm_timeout())
    text = _message_text(response)
    if not text.strip():
        raise ValueError("AI failed to generate a response")
    return text


async def generate_summary(issue: str, debug: bool = True) -> str:
    return await generate_response(
        SUMMARY_PROMPT.format(issue=issue), debug=debug, mock=MOCK_SUMMARY
    )


def llm_error_to_http(e: Exception, action: str) -> HTTPException:
    """Map a generative API failure onto the status code the caller sees."""
    message = str(e).lower()
    kind = type(e).__name__
    if "api key" in message or "api_key" in message:
        State.logger.error(f"AI service configuration error while {action}: {str(e)}")
        return HTTPException(
            status_code=500,
            detail="AI service configuration error. Please contact support.",
        )
    if (
        "quota" in message
        or "rate limit" in message
        or "resource exhausted" in message
        or "RateLimit" in kind
        or "ResourceExhausted" in kind
    ):
        State.logger.warning(f"AI service rate limited while {action}: {str(e)}")
        return HTTPException(
            status_code=429,
            detail="Service is currently busy. Please try again in a moment.",
        )
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        State.logger.error(f"AI service timed out while {action}")
        return HTTPException(
            status_code=500,
            detail="The AI service took too long to respond. Please try again.",
        )
    return internal_error(action, e)

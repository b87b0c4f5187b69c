import os


def is_debug() -> bool:
    return os.getenv("DEBUG") == "1"


def llm_timeout() -> float:
    return float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))


def load_model_via_api(
    model_name: str = None,
    model_provider: str = None,
    max_tokens: int = 1024,
    temperature: float = 0.7,
    top_p: float = 0.95,
    top_k: int = 40,
):
    model_provider = model_provider or os.getenv("LLM_PROVIDER", "google")
    if model_provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI

        model = ChatGoogleGenerativeAI(
            model=model_name or os.getenv("LLM_MODEL", "gemini-2.5-flash"),
            google_api_key=os.getenv("GEMINI_API_KEY"),
            temperature=temperature,
            top_p=top_p,
            top_k=top_k,
            max_output_tokens=max_tokens,
            timeout=llm_timeout(),
            max_retries=0,
        )
    elif model_provider == "groq":
        from langchain_groq.chat_models import ChatGroq

        model = ChatGroq(
            model=model_name or os.getenv("LLM_MODEL", "llama-3.3-70b-versatile"),
            api_key=os.getenv("GROQ_API_KEY"),
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=llm_timeout(),
            max_retries=0,
        )
    else:
        raise ValueError(f"Unsupported model provider: {model_provider}")

    return model

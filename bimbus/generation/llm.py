"""Chat-completion client used for every documentation request.

Wraps a LangChain chat model behind :func:`complete`, which sends one
prompt and returns the reply text.  Transport or API failures are
retried a fixed number of times by :func:`call_with_retries`; once the
bound is exhausted a :class:`CompletionError` is raised and the run is
aborted.

Supported providers (set ``llm_provider`` in config.txt or pass
``--provider``):

* **openai**: OpenAI API (default, key passed with ``-t``)
* **ollama**: local Ollama server (no API key needed)
* **anthropic**: Anthropic API
* **google**: Google Gemini API

For providers other than openai the ``-t`` token is forwarded as the
API key; keys may also live in a ``.env`` file at the project root.

Usage (programmatic)::

    from bimbus.generation.llm import get_llm, complete
    llm  = get_llm(api_key="sk-...")
    text = complete(llm, "Explain lines 1-10 of main.py ...")
"""

import logging
import textwrap
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from bimbus.config import CFG

logger = logging.getLogger(__name__)

T = TypeVar("T")

# ── Defaults (read from config.txt, fall back to built-in) ──────────
DEFAULT_PROVIDER: str = str(CFG.get("llm_provider", "openai"))
DEFAULT_MODEL: str = str(CFG.get("llm_model", "gpt-4o-mini"))
DEFAULT_TEMPERATURE: float = float(CFG.get("llm_temperature", "0.3"))
DEFAULT_RETRIES: int = int(CFG.get("max_retries", 3))
DEFAULT_RETRY_DELAY: float = float(CFG.get("retry_delay", 0))

ERROR_CODES_URL = "https://platform.openai.com/docs/guides/error-codes"

# ── Provider → default model mapping ───────────────────────────────
PROVIDER_DEFAULTS: dict[str, str] = {
    "openai": "gpt-4o-mini",
    "ollama": "llama3.2:3b",
    "anthropic": "claude-sonnet-4-20250514",
    "google": "gemini-2.0-flash",
}

# ── System prompt ───────────────────────────────────────────────────
SYSTEM_PROMPT = textwrap.dedent("""\
    You are a senior software developer who writes clear, accurate
    documentation for source code.

    RULES:
    1. Describe ONLY what the code shown actually does.
    2. Always reference the line numbers you are talking about.
    3. Follow the requested output format exactly.
    4. Never invent functions, files, or behaviour that is not shown.
""")


class CompletionError(RuntimeError):
    """Raised when a chat completion still fails after every retry."""

    def __init__(self, message: str, attempts: int):
        self.last_error = message
        self.attempts = attempts
        super().__init__(
            f"Chat completion failed after {attempts} attempt(s): {message}\n"
            f"See {ERROR_CODES_URL} for an explanation of API error codes."
        )


@dataclass
class ChatReply:
    """Reply text plus the token usage reported by the provider, if any."""

    text: str
    total_tokens: int | None = None


# ── LLM interaction ─────────────────────────────────────────────────


def default_model_for(provider: str) -> str:
    """Model to use when none is given: the configured one for the
    configured provider, otherwise that provider's own default."""
    provider = provider.lower().strip()
    if provider == DEFAULT_PROVIDER:
        return DEFAULT_MODEL
    return PROVIDER_DEFAULTS.get(provider, DEFAULT_MODEL)


def get_llm(
    model: str = DEFAULT_MODEL,
    temperature: float = DEFAULT_TEMPERATURE,
    provider: str = DEFAULT_PROVIDER,
    api_key: str | None = None,
):
    """Create a LangChain chat model for the given provider.

    Parameters
    ----------
    model : str
        Model name/tag for the chosen provider.
    temperature : float
        Sampling temperature (lower = more deterministic).
    provider : str
        One of ``"openai"``, ``"ollama"``, ``"anthropic"``,
        ``"google"``.
    api_key : str | None
        Credential for hosted providers.  Ignored by ollama.

    Returns
    -------
    BaseChatModel
        A LangChain chat model instance.

    Raises
    ------
    ValueError
        If *provider* is not recognised.
    ImportError
        If the required provider package is not installed.
    """
    provider = provider.lower().strip()
    logger.info(
        f"Initialising LLM: provider={provider}, model={model}, temp={temperature}"
    )

    if provider == "openai":
        return ChatOpenAI(model=model, temperature=temperature, api_key=api_key)

    if provider == "ollama":
        return ChatOllama(model=model, temperature=temperature)

    if provider == "anthropic":
        try:
            from langchain_anthropic import ChatAnthropic
        except ImportError:
            raise ImportError(
                "langchain-anthropic is required for the anthropic provider.\n"
                "  Run: pip install 'bimbus[anthropic]'"
            )
        return ChatAnthropic(model=model, temperature=temperature, api_key=api_key)

    if provider == "google":
        try:
            from langchain_google_genai import ChatGoogleGenerativeAI
        except ImportError:
            raise ImportError(
                "langchain-google-genai is required for the google provider.\n"
                "  Run: pip install 'bimbus[google]'"
            )
        return ChatGoogleGenerativeAI(
            model=model, temperature=temperature, google_api_key=api_key
        )

    raise ValueError(
        f"Unknown llm_provider '{provider}'. Supported: {', '.join(PROVIDER_DEFAULTS)}"
    )


def call_with_retries(
    func: Callable[[], T],
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
) -> T:
    """Call *func* once, then up to *retries* more times on failure.

    Parameters
    ----------
    func : Callable[[], T]
        Zero-argument callable performing the request.
    retries : int
        Additional attempts after the first (so ``retries + 1`` calls
        at most).
    retry_delay : float
        Seconds to sleep between attempts.  ``0`` retries immediately.

    Returns
    -------
    T
        Whatever *func* returned on the first successful attempt.

    Raises
    ------
    CompletionError
        If every attempt raised.
    """
    attempts = retries + 1
    last_exc: Exception | None = None

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except Exception as exc:
            last_exc = exc
            logger.warning(f"Completion attempt {attempt}/{attempts} failed: {exc}")
            if attempt < attempts and retry_delay > 0:
                time.sleep(retry_delay)

    raise CompletionError(str(last_exc), attempts) from last_exc


def complete(
    llm,
    prompt: str,
    *,
    retries: int = DEFAULT_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    system: str | None = SYSTEM_PROMPT,
) -> str:
    """Send *prompt* to *llm* and return the reply text.

    Token usage, when the provider reports it, is logged at INFO level
    (shown with ``--verbose``).

    Raises
    ------
    CompletionError
        After ``retries`` additional failed attempts.
    """
    messages = [("human", prompt)]
    if system:
        messages.insert(0, ("system", system))

    reply = call_with_retries(
        lambda: _invoke_llm(llm, messages),
        retries=retries,
        retry_delay=retry_delay,
    )
    if reply.total_tokens is not None:
        logger.info(f"Tokens used: {reply.total_tokens}")
    return reply.text


def _invoke_llm(llm, messages) -> ChatReply:
    """Send a single request to the LLM and wrap the response."""
    response = llm.invoke(messages)
    # LangChain chat models return AIMessage; plain strings from some
    # wrappers.  Anthropic models may return a list of content blocks.
    if not hasattr(response, "content"):
        return ChatReply(text=str(response).strip())

    content = response.content
    if isinstance(content, list):
        content = "\n".join(
            block.get("text", str(block)) if isinstance(block, dict) else str(block)
            for block in content
        )

    usage = getattr(response, "usage_metadata", None)
    total_tokens = usage.get("total_tokens") if isinstance(usage, dict) else None
    return ChatReply(text=str(content).strip(), total_tokens=total_tokens)
